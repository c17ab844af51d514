"""
orbmatch Core Processor
File-level entry point for feature export and matching
"""

import logging
from typing import Dict, Any, Optional, Union
from datetime import datetime
from pathlib import Path
import numpy as np

from orbmatch.config import DEFAULT_CONFIG, merge_config
from orbmatch.coordinates.crop import CropRect
from orbmatch.errors import FeatureError
from orbmatch.features.detection import DetectionResult
from orbmatch.features.detector import ORBDetector
from orbmatch.io.feature_file import export_features, import_features, load_features
from orbmatch.matching.matcher import FeatureMatcher
from orbmatch.utils.io_handler import load_image
from orbmatch.utils.metrics import PerformanceMetrics, match_quality
from orbmatch.utils.visualization import draw_matches

logger = logging.getLogger(__name__)

__version__ = "1.0.0"


class FeatureProcessor:
    """Detect, export and match ORB features between image files"""

    def __init__(self, config: Dict[str, Any] = None):
        """
        Initialize processor

        Args:
            config: Configuration dictionary (optional), merged over defaults
        """
        self.config = merge_config(DEFAULT_CONFIG, config or {})
        self.version = __version__

        self.detector = ORBDetector(self.config["orb"])
        self.matcher = FeatureMatcher.from_config(self.config["matching"])

    def _load(self, image_input: Union[str, Path, np.ndarray]):
        if isinstance(image_input, (str, Path)):
            return load_image(image_input), Path(image_input).stem
        if image_input is None:
            raise ValueError("No image given")
        return image_input, f"image_{int(datetime.now().timestamp())}"

    def _base(self, image_id: str, status: str) -> Dict[str, Any]:
        return {
            "system": "orbmatch",
            "version": self.version,
            "timestamp": datetime.now().isoformat(),
            "image_id": image_id,
            "status": status
        }

    def _failure(self, image_id: str, error: FeatureError, metrics: PerformanceMetrics) -> Dict[str, Any]:
        logger.error("%s: %s", type(error).__name__, error)
        result = self._base(image_id, "failed")
        result["processing_metadata"] = {
            "processing_time_ms": round(metrics.stop_timer("total"), 2),
            "errors": [{"type": type(error).__name__, "message": str(error)}]
        }
        return result

    def detect(self, image_input: Union[str, Path, np.ndarray],
               crop: Optional[CropRect] = None) -> Dict[str, Any]:
        """
        Detect features on Image A and build the feature document

        Args:
            image_input: Path to image file or numpy array
            crop: Optional region of interest in image pixels

        Returns:
            Result dictionary; ``features`` holds the exportable document
        """
        metrics = PerformanceMetrics()
        metrics.start_timer("total")
        image, image_id = self._load(image_input)

        try:
            detection = self.detector.detect(image, crop)
            document = export_features(detection)
        except FeatureError as e:
            return self._failure(image_id, e, metrics)

        status = "success" if len(detection) > 0 else "partial"
        result = self._base(image_id, status)
        result.update({
            "detection": {
                "image_size": {"width": detection.width, "height": detection.height},
                "crop": list(crop.as_tuple()) if crop else None,
                "keypoints": len(detection),
                "descriptor_shape": [len(detection), detection.descriptor_size]
            },
            "features": document,
            "processing_metadata": {
                "processing_time_ms": round(metrics.stop_timer("total"), 2),
                "errors": []
            }
        })
        logger.info("%s: %d keypoints", image_id, len(detection))
        return result

    def match(self, features: Union[str, Path, Dict[str, Any], DetectionResult],
              image_input: Union[str, Path, np.ndarray],
              crop: Optional[CropRect] = None,
              ratio: Optional[float] = None,
              ransac_threshold: Optional[float] = None,
              image_a: Optional[np.ndarray] = None) -> Dict[str, Any]:
        """
        Match stored features against freshly detected features in Image B

        Args:
            features: Feature file path, feature document or detection result
            image_input: Image B path or numpy array
            crop: Optional region of interest in Image B
            ratio: Ratio test threshold override
            ransac_threshold: RANSAC reprojection threshold override
            image_a: Optional Image A for the visualization

        Returns:
            Result dictionary with match statistics; ``visualization`` holds
            the side-by-side image
        """
        metrics = PerformanceMetrics()
        metrics.start_timer("total")
        image_b, image_id = self._load(image_input)

        try:
            if isinstance(features, DetectionResult):
                source = features
            elif isinstance(features, dict):
                source = import_features(features)
            else:
                source = load_features(features)

            metrics.start_timer("detect")
            target = self.detector.detect(image_b, crop)
            metrics.stop_timer("detect")

            metrics.start_timer("match")
            match_result = self.matcher.match_results(source, target, ratio=ratio,
                                                      ransac_threshold=ransac_threshold)
            metrics.stop_timer("match")
        except FeatureError as e:
            return self._failure(image_id, e, metrics)

        if match_result.homography is not None:
            status = "success"
        elif len(match_result) > 0:
            status = "partial"
        else:
            status = "failed"

        if image_a is None:
            image_a = np.zeros((source.height, source.width, 3), dtype=np.uint8)
        visualization = draw_matches(image_a, image_b, source.keypoints,
                                     target.keypoints, match_result)

        quality = match_quality(match_result, source, target)
        H = match_result.homography

        result = self._base(image_id, status)
        result.update({
            "matching": {
                "source_keypoints": len(source),
                "target_keypoints": len(target),
                "target_size": {"width": target.width, "height": target.height},
                "matches": len(match_result),
                "inliers": match_result.num_inliers,
                "inlier_ratio": round(quality["inlier_ratio"], 4),
                "mean_reprojection_error": (round(quality["mean_error"], 3)
                                            if np.isfinite(quality["mean_error"]) else None),
                "homography": H.tolist() if H is not None else None,
                "correspondences": [
                    [c.source_index, c.target_index, c.distance]
                    for c in match_result.correspondences
                ]
            },
            "visualization": visualization,
            "processing_metadata": {
                "processing_time_ms": round(metrics.stop_timer("total"), 2),
                "timings_ms": {k: round(v, 2) for k, v in metrics.get_summary().items()
                               if k != "total"},
                "warnings": list(match_result.warnings),
                "errors": []
            }
        })
        logger.info("%s: %d matches, %d inliers", image_id, len(match_result),
                    match_result.num_inliers)
        return result
