"""
Interactive detect/export/match session

Holds the inputs of the two-image workflow in one explicit object and derives
the workflow state from what has been loaded so far.
"""

import logging
from enum import IntEnum
from typing import Any, Dict, Optional

import numpy as np

from orbmatch.config import DEFAULT_CONFIG
from orbmatch.coordinates.crop import CropRect
from orbmatch.errors import InvalidState
from orbmatch.features.detection import DetectionResult
from orbmatch.features.detector import ORBDetector
from orbmatch.io.feature_file import export_features, import_features
from orbmatch.matching.matcher import FeatureMatcher, MatchResult
from orbmatch.utils.visualization import draw_keypoints, draw_matches

logger = logging.getLogger(__name__)


class SessionState(IntEnum):
    IDLE = 0
    IMAGE_A_LOADED = 1
    DETECTED = 2
    IMAGE_B_LOADED = 3
    MATCHED = 4


class Session:
    """Two-image feature matching workflow."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize session

        Args:
            config: Full configuration dictionary (optional)
        """
        self.config = config or DEFAULT_CONFIG
        self.detector = ORBDetector(self.config.get("orb"))
        self.matcher = FeatureMatcher.from_config(self.config.get("matching"))

        self.image_a: Optional[np.ndarray] = None
        self.crop_a: Optional[CropRect] = None
        self.image_b: Optional[np.ndarray] = None
        self.crop_b: Optional[CropRect] = None
        self.features: Optional[DetectionResult] = None
        self.target: Optional[DetectionResult] = None
        self.match_result: Optional[MatchResult] = None

    @property
    def state(self) -> SessionState:
        if self.match_result is not None:
            return SessionState.MATCHED
        if self.features is not None and self.image_b is not None:
            return SessionState.IMAGE_B_LOADED
        if self.features is not None:
            return SessionState.DETECTED
        if self.image_a is not None:
            return SessionState.IMAGE_A_LOADED
        return SessionState.IDLE

    @property
    def can_detect(self) -> bool:
        return self.image_a is not None

    @property
    def can_export(self) -> bool:
        return self.features is not None and self.features.descriptors is not None

    @property
    def can_match(self) -> bool:
        return self.features is not None and self.image_b is not None

    def load_image_a(self, image: np.ndarray, crop: Optional[CropRect] = None):
        """Set Image A; previous features and matches are discarded."""
        if image is None or image.size == 0:
            raise ValueError("Image A is empty")
        if crop is not None:
            crop = crop.clamp(image.shape[1], image.shape[0])
        self.image_a = image
        self.crop_a = crop
        self.features = None
        self.target = None
        self.match_result = None

    def set_crop_a(self, crop: Optional[CropRect]):
        if self.image_a is None:
            raise InvalidState("Load Image A before cropping it")
        self.crop_a = None if crop is None else crop.clamp(self.image_a.shape[1], self.image_a.shape[0])

    def detect(self) -> DetectionResult:
        """Detect features in the cropped Image A."""
        if not self.can_detect:
            raise InvalidState("Load Image A before detecting")
        result = self.detector.detect(self.image_a, self.crop_a)
        self.features = result
        self.target = None
        self.match_result = None
        logger.info("Image A: %dx%d, %d keypoints", result.width, result.height, len(result))
        return result

    def export(self) -> Dict[str, Any]:
        """Feature document for the current features."""
        if not self.can_export:
            raise InvalidState("No descriptors to export")
        return export_features(self.features)

    def load_features(self, doc: Dict[str, Any]) -> DetectionResult:
        """
        Use previously exported features as the match source.

        Image A and its crop no longer describe the features, so they are
        dropped together with any target and match derived from them.
        """
        result = import_features(doc)
        self.image_a = None
        self.crop_a = None
        self.features = result
        self.target = None
        self.match_result = None
        return result

    def load_image_b(self, image: np.ndarray, crop: Optional[CropRect] = None):
        """Set Image B; a previous match is discarded."""
        if image is None or image.size == 0:
            raise ValueError("Image B is empty")
        if crop is not None:
            crop = crop.clamp(image.shape[1], image.shape[0])
        self.image_b = image
        self.crop_b = crop
        self.target = None
        self.match_result = None

    def match(self, ratio: Optional[float] = None,
              ransac_threshold: Optional[float] = None) -> MatchResult:
        """Detect in the cropped Image B and match the current features to it."""
        if not self.can_match:
            raise InvalidState("Load features and Image B before matching")
        target = self.detector.detect(self.image_b, self.crop_b)
        result = self.matcher.match_results(self.features, target,
                                            ratio=ratio, ransac_threshold=ransac_threshold)
        self.target = target
        self.match_result = result
        logger.info("Matched %d correspondences, %d inliers", len(result), result.num_inliers)
        return result

    def render_keypoints(self) -> np.ndarray:
        if self.image_a is None or self.features is None:
            raise InvalidState("Detect on Image A before drawing keypoints")
        return draw_keypoints(self.image_a, self.features.keypoints)

    def render(self) -> np.ndarray:
        """Side-by-side visualization of the last match."""
        if self.state != SessionState.MATCHED:
            raise InvalidState("Run a match before rendering it")
        image_a = self.image_a
        if image_a is None:
            # Features came from a file; draw them on a blank canvas of the recorded size
            image_a = np.zeros((self.features.height, self.features.width, 3), dtype=np.uint8)
        return draw_matches(image_a, self.image_b, self.features.keypoints,
                            self.target.keypoints, self.match_result)
