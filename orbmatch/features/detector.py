"""ORB feature detection."""

import logging
from typing import Any, Dict, Optional

import cv2
import numpy as np

from orbmatch.config import DEFAULT_CONFIG
from orbmatch.coordinates.crop import CropRect, crop_image, offset_keypoints
from orbmatch.features.detection import DetectionResult
from orbmatch.features.keypoint import Keypoint

logger = logging.getLogger(__name__)

SCORE_TYPES = {
    "harris": cv2.ORB_HARRIS_SCORE,
    "fast": cv2.ORB_FAST_SCORE
}


def to_gray(image: np.ndarray) -> np.ndarray:
    """Convert a gray, BGR or BGRA image to single channel."""
    if image.ndim == 2:
        return image
    channels = image.shape[2]
    if channels == 1:
        return image[:, :, 0]
    if channels == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    if channels == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    raise ValueError(f"Unsupported channel count: {channels}")


class ORBDetector:
    """Detect ORB keypoints and descriptors inside an optional crop region."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize ORB detector

        Args:
            config: ``orb`` configuration section (defaults are used for
                missing keys)
        """
        params = dict(DEFAULT_CONFIG["orb"])
        params.update(config or {})
        self.params = params

        score_type = params["score_type"]
        if score_type not in SCORE_TYPES:
            raise ValueError(f"Unknown ORB score type: {score_type}")

        self.orb = cv2.ORB_create(
            nfeatures=int(params["nfeatures"]),
            scaleFactor=float(params["scale_factor"]),
            nlevels=int(params["nlevels"]),
            edgeThreshold=int(params["edge_threshold"]),
            firstLevel=int(params["first_level"]),
            WTA_K=int(params["wta_k"]),
            scoreType=SCORE_TYPES[score_type],
            patchSize=int(params["patch_size"]),
            fastThreshold=int(params["fast_threshold"])
        )

    def detect(self, image: np.ndarray, crop: Optional[CropRect] = None) -> DetectionResult:
        """
        Detect features in ``image``.

        Args:
            image: Gray, BGR or BGRA image
            crop: Optional region of interest in image pixels

        Returns:
            DetectionResult with keypoints in full-image pixel coordinates
            and the full image size
        """
        if image is None or image.size == 0:
            raise ValueError("Cannot detect features on an empty image")

        height, width = image.shape[:2]
        if crop is None:
            crop = CropRect.full(width, height)
        else:
            crop = crop.clamp(width, height)

        gray = to_gray(crop_image(image, crop))
        cv_keypoints, descriptors = self.orb.detectAndCompute(gray, None)

        if descriptors is None or len(cv_keypoints) == 0:
            logger.debug("No ORB features in crop %s", crop.as_tuple())
            return DetectionResult([], None, width, height)

        keypoints = offset_keypoints(
            (Keypoint.from_cv(kp) for kp in cv_keypoints), crop.x, crop.y
        )
        logger.debug("Detected %d ORB features in crop %s", len(keypoints), crop.as_tuple())
        return DetectionResult(keypoints, descriptors, width, height)
