"""JSON feature file export and import."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

from orbmatch.config import DEFAULT_CONFIG
from orbmatch.coordinates.normalizer import (denormalize_result, normalize_result,
                                             validate_dimensions)
from orbmatch.errors import InvalidFormat
from orbmatch.features.codec import decode_matrix, encode_matrix
from orbmatch.features.detection import DetectionResult
from orbmatch.features.keypoint import Keypoint

logger = logging.getLogger(__name__)

FORMAT_VERSION = DEFAULT_CONFIG["export"]["version"]
FEATURE_TYPE = DEFAULT_CONFIG["export"]["type"]


def export_features(result: DetectionResult) -> Dict[str, Any]:
    """
    Serialize a detection result.

    Keypoints are stored normalized by the image size recorded in
    ``imageSize``; descriptors are base64 encoded.
    """
    normalized = normalize_result(result)
    return {
        "version": FORMAT_VERSION,
        "type": FEATURE_TYPE,
        "imageSize": {"width": result.width, "height": result.height},
        "keypoints": [kp.to_dict() for kp in normalized.keypoints],
        "descriptors": encode_matrix(result.descriptors)
    }


def import_features(doc: Dict[str, Any]) -> DetectionResult:
    """
    Rebuild a detection result in pixel coordinates.

    Raises:
        InvalidFormat: wrong ``type``, unsupported ``version`` or bad shape
        DecodeError: corrupt descriptor payload
        InvalidDimension: missing or non-positive image size
    """
    if not isinstance(doc, dict):
        raise InvalidFormat("Feature document must be a JSON object")
    if doc.get("type") != FEATURE_TYPE:
        raise InvalidFormat(f"Expected feature type {FEATURE_TYPE!r}, got {doc.get('type')!r}")

    version = doc.get("version", FORMAT_VERSION)
    if version != FORMAT_VERSION:
        raise InvalidFormat(f"Unsupported feature file version {version!r}")

    image_size = doc.get("imageSize")
    if not isinstance(image_size, dict):
        raise InvalidFormat("Feature document has no imageSize object")
    width = image_size.get("width")
    height = image_size.get("height")
    validate_dimensions(width, height)

    raw_keypoints = doc.get("keypoints")
    if not isinstance(raw_keypoints, list):
        raise InvalidFormat("Feature document keypoints must be a list")
    keypoints = [Keypoint.from_dict(kp) for kp in raw_keypoints]

    descriptors = decode_matrix(doc.get("descriptors"))

    normalized = DetectionResult(keypoints, descriptors, width, height)
    return denormalize_result(normalized)


def save_features(result: DetectionResult, output_path: Union[str, Path], indent: int = 2):
    """Save features to a JSON file."""
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w') as f:
        json.dump(export_features(result), f, indent=indent)
    logger.info("Saved %d features to %s", len(result), output_path)


def load_features(input_path: Union[str, Path]) -> DetectionResult:
    """Load features from a JSON file."""
    with open(input_path, 'r') as f:
        try:
            doc = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidFormat(f"{input_path} is not valid JSON: {e}") from e
    result = import_features(doc)
    logger.info("Loaded %d features from %s", len(result), input_path)
    return result
