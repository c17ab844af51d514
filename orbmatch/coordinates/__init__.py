"""Keypoint coordinate spaces."""
