"""Keypoints, descriptors and ORB detection."""
