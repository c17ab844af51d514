"""Feature file serialization."""
