"""Keypoint normalization between pixel and unit-square coordinates."""

from orbmatch.errors import InvalidDimension
from orbmatch.features.detection import DetectionResult
from orbmatch.features.keypoint import Keypoint


def validate_dimensions(width, height):
    """Raise InvalidDimension unless width and height are positive numbers."""
    if width is None or height is None:
        raise InvalidDimension("Image size is missing")
    try:
        if width <= 0 or height <= 0:
            raise InvalidDimension(f"Image size must be positive, got {width}x{height}")
    except TypeError as e:
        raise InvalidDimension(f"Image size is not numeric: {width}x{height}") from e


def normalize(keypoint: Keypoint, width: float, height: float) -> Keypoint:
    """Map pixel coordinates to [0, 1] relative to the image size."""
    validate_dimensions(width, height)
    return keypoint.moved(keypoint.x / width, keypoint.y / height)


def denormalize(keypoint: Keypoint, width: float, height: float) -> Keypoint:
    """Inverse of :func:`normalize` for the same width and height."""
    validate_dimensions(width, height)
    return keypoint.moved(keypoint.x * width, keypoint.y * height)


def normalize_result(result: DetectionResult) -> DetectionResult:
    """Normalize every keypoint of a result by its own image size."""
    validate_dimensions(result.width, result.height)
    return result.with_keypoints(
        [normalize(kp, result.width, result.height) for kp in result.keypoints]
    )


def denormalize_result(result: DetectionResult) -> DetectionResult:
    """Denormalize every keypoint of a result by its recorded image size."""
    validate_dimensions(result.width, result.height)
    return result.with_keypoints(
        [denormalize(kp, result.width, result.height) for kp in result.keypoints]
    )
