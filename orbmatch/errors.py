"""Error types raised by orbmatch."""


class FeatureError(ValueError):
    """Base class for recoverable feature pipeline errors."""


class InvalidFormat(FeatureError):
    """Malformed or unexpected feature document or container."""


class DecodeError(FeatureError):
    """Corrupt base64 descriptor payload."""


class InvalidDimension(FeatureError):
    """Zero, negative or missing image size."""


class EmptyDescriptors(FeatureError):
    """No descriptors available to match."""


class InvalidState(FeatureError):
    """Session operation called before its inputs are ready."""
