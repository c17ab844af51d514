"""Descriptor matching with ratio test and homography verification."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from orbmatch.config import DEFAULT_CONFIG
from orbmatch.errors import EmptyDescriptors, InvalidFormat
from orbmatch.features.detection import DetectionResult
from orbmatch.features.keypoint import Keypoint
from orbmatch.geometry.homography import HomographyEstimator
from orbmatch.matching.hamming import knn2

logger = logging.getLogger(__name__)

MIN_HOMOGRAPHY_MATCHES = 4


@dataclass(frozen=True)
class Correspondence:
    """Source keypoint index, target keypoint index and Hamming distance."""

    source_index: int
    target_index: int
    distance: float


@dataclass(frozen=True)
class MatchResult:
    """
    Ratio-test survivors and their geometric verification.

    Attributes:
        correspondences: Matches ordered by ascending distance
        homography: 3x3 source-to-target transform, or None
        inlier_mask: One flag per correspondence
    """

    correspondences: Tuple[Correspondence, ...] = ()
    homography: Optional[np.ndarray] = field(default=None, compare=False)
    inlier_mask: Tuple[bool, ...] = ()
    warnings: Tuple[str, ...] = field(default=(), compare=False)

    @property
    def num_inliers(self) -> int:
        return sum(self.inlier_mask)

    @property
    def homography_flat(self) -> Optional[Tuple[float, ...]]:
        if self.homography is None:
            return None
        return tuple(float(v) for v in np.asarray(self.homography).ravel())

    @property
    def inliers(self) -> List[Correspondence]:
        return [c for c, ok in zip(self.correspondences, self.inlier_mask) if ok]

    def __len__(self) -> int:
        return len(self.correspondences)


class FeatureMatcher:
    """Brute-force Hamming matcher with Lowe's ratio test and RANSAC."""

    def __init__(self, ratio: float = DEFAULT_CONFIG["matching"]["ratio"],
                 ransac_threshold: float = DEFAULT_CONFIG["matching"]["ransac_threshold"],
                 max_iters: int = DEFAULT_CONFIG["matching"]["ransac_iterations"]):
        _check_ratio(ratio)
        self.ratio = ratio
        self.ransac_threshold = ransac_threshold
        self.max_iters = max_iters

    @classmethod
    def from_config(cls, config: dict) -> 'FeatureMatcher':
        """Build from a ``matching`` configuration section."""
        params = dict(DEFAULT_CONFIG["matching"])
        params.update(config or {})
        return cls(ratio=params["ratio"],
                   ransac_threshold=params["ransac_threshold"],
                   max_iters=params["ransac_iterations"])

    def ratio_test(self, source_descriptors: np.ndarray, target_descriptors: np.ndarray,
                   ratio: float) -> List[Correspondence]:
        """
        Nearest-neighbour search followed by the ratio test.

        A source row survives only if it has two neighbours and
        ``d1 < ratio * d2``.
        """
        indices, distances = knn2(source_descriptors, target_descriptors)
        if indices.shape[1] < 2:
            return []

        keep = distances[:, 0] < ratio * distances[:, 1]
        good = [
            Correspondence(int(i), int(indices[i, 0]), float(distances[i, 0]))
            for i in np.flatnonzero(keep)
        ]
        good.sort(key=lambda c: (c.distance, c.source_index, c.target_index))
        return good

    def match(self, source_descriptors: Optional[np.ndarray],
              source_keypoints: Sequence[Keypoint],
              target_descriptors: Optional[np.ndarray],
              target_keypoints: Sequence[Keypoint],
              ratio: Optional[float] = None,
              ransac_threshold: Optional[float] = None) -> MatchResult:
        """
        Match source features to target features.

        Args:
            source_descriptors: NxC uint8 descriptors paired with source_keypoints
            source_keypoints: Source keypoints in source pixel coordinates
            target_descriptors: MxC uint8 descriptors paired with target_keypoints
            target_keypoints: Target keypoints in target pixel coordinates
            ratio: Ratio test threshold in (0, 1); defaults to the matcher's
            ransac_threshold: Inlier reprojection error in pixels

        Returns:
            MatchResult; empty when either side has no descriptors
        """
        ratio = self.ratio if ratio is None else ratio
        ransac_threshold = self.ransac_threshold if ransac_threshold is None else ransac_threshold
        _check_ratio(ratio)

        try:
            _check_side("source", source_descriptors, source_keypoints)
            _check_side("target", target_descriptors, target_keypoints)
        except EmptyDescriptors as e:
            logger.warning("Nothing to match: %s", e)
            return MatchResult(warnings=(str(e),))

        good = self.ratio_test(source_descriptors, target_descriptors, ratio)
        logger.debug("%d of %d source descriptors passed the ratio test (ratio=%.2f)",
                     len(good), len(source_keypoints), ratio)

        if len(good) < MIN_HOMOGRAPHY_MATCHES:
            return MatchResult(
                correspondences=tuple(good),
                inlier_mask=(False,) * len(good)
            )

        src_pts = np.array([source_keypoints[c.source_index].pt for c in good], dtype=np.float64)
        dst_pts = np.array([target_keypoints[c.target_index].pt for c in good], dtype=np.float64)

        estimator = HomographyEstimator(ransac_threshold=ransac_threshold,
                                        max_iters=self.max_iters)
        H, mask = estimator.estimate(src_pts, dst_pts)

        warnings = ()
        if H is None:
            warnings = ("No reliable homography",)
            mask = np.zeros(len(good), dtype=bool)
        logger.debug("Homography %s with %d inliers",
                     "found" if H is not None else "not found", int(mask.sum()))

        return MatchResult(
            correspondences=tuple(good),
            homography=H,
            inlier_mask=tuple(bool(m) for m in mask),
            warnings=warnings
        )

    def match_results(self, source: DetectionResult, target: DetectionResult,
                      ratio: Optional[float] = None,
                      ransac_threshold: Optional[float] = None) -> MatchResult:
        """Match two detection results in their own pixel coordinates."""
        return self.match(source.descriptors, source.keypoints,
                          target.descriptors, target.keypoints,
                          ratio=ratio, ransac_threshold=ransac_threshold)


def _check_ratio(ratio: float):
    if not 0 < ratio < 1:
        raise ValueError(f"Ratio must lie in (0, 1), got {ratio}")


def _check_side(name: str, descriptors: Optional[np.ndarray], keypoints: Sequence[Keypoint]):
    rows = 0 if descriptors is None else len(descriptors)
    if rows != len(keypoints):
        raise InvalidFormat(f"{name}: {len(keypoints)} keypoints but {rows} descriptor rows")
    if rows == 0:
        raise EmptyDescriptors(f"{name} has no descriptors")
