"""Homography estimation and transformation."""

import logging
import cv2
import numpy as np
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


class HomographyEstimator:
    """Estimate a 3x3 homography from point correspondences."""
    
    def __init__(self, ransac_threshold: float = 3.0, max_iters: int = 2000):
        self.ransac_threshold = ransac_threshold
        self.max_iters = max_iters
    
    def fit(self, src_points: np.ndarray, dst_points: np.ndarray) -> Optional[np.ndarray]:
        """
        Least-squares homography over all given points.

        Returns None for fewer than 4 points or a degenerate configuration.
        """
        src = np.asarray(src_points, dtype=np.float64).reshape(-1, 2)
        dst = np.asarray(dst_points, dtype=np.float64).reshape(-1, 2)
        if len(src) < 4 or len(src) != len(dst):
            return None
        
        try:
            H, _ = cv2.findHomography(src, dst, 0)
        except cv2.error as e:
            logger.debug("Least-squares homography failed: %s", e)
            return None
        return _valid(H)
    
    def estimate(self, src_points: np.ndarray,
                 dst_points: np.ndarray) -> Tuple[Optional[np.ndarray], np.ndarray]:
        """
        Robust homography with RANSAC followed by a refit on all inliers.
        
        Args:
            src_points: Nx2 source-plane points
            dst_points: Nx2 target-plane points
            
        Returns:
            Tuple of (homography matrix or None, boolean inlier mask)
        """
        src = np.asarray(src_points, dtype=np.float64).reshape(-1, 2)
        dst = np.asarray(dst_points, dtype=np.float64).reshape(-1, 2)
        no_fit = np.zeros(len(src), dtype=bool)
        if len(src) < 4:
            return None, no_fit
        
        try:
            H, ransac_mask = cv2.findHomography(src, dst, cv2.RANSAC,
                                                self.ransac_threshold, maxIters=self.max_iters)
        except cv2.error as e:
            logger.warning("RANSAC failed on %d correspondences: %s", len(src), e)
            return None, no_fit
        H = _valid(H)
        if H is None or ransac_mask is None:
            logger.warning("RANSAC found no homography among %d correspondences", len(src))
            return None, no_fit
        
        consensus = ransac_mask.ravel().astype(bool)
        refit = self.fit(src[consensus], dst[consensus])
        if refit is not None:
            H = refit
        
        mask = self.reprojection_errors(src, dst, H) < self.ransac_threshold
        logger.debug("Homography refit on %d inliers, %d after refit",
                     int(consensus.sum()), int(mask.sum()))
        return H, mask
    
    def transform_points(self, points: np.ndarray, H: np.ndarray) -> np.ndarray:
        """Transform points using homography matrix."""
        points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        points_homogeneous = np.hstack([points, np.ones((points.shape[0], 1))])
        transformed = (H @ points_homogeneous.T).T
        with np.errstate(divide='ignore', invalid='ignore'):
            return transformed[:, :2] / transformed[:, 2:]
    
    def reprojection_errors(self, src_points: np.ndarray, dst_points: np.ndarray,
                            H: np.ndarray) -> np.ndarray:
        """Per-point distance between H(src) and dst; non-finite maps to inf."""
        transformed = self.transform_points(src_points, H)
        errors = np.linalg.norm(transformed - np.asarray(dst_points, dtype=np.float64), axis=1)
        errors[~np.isfinite(errors)] = np.inf
        return errors
    
    def calculate_reprojection_error(self, src_points: np.ndarray,
                                     dst_points: np.ndarray,
                                     H: Optional[np.ndarray]) -> float:
        """Average reprojection error in pixels."""
        if H is None or len(src_points) == 0:
            return float('inf')
        return float(np.mean(self.reprojection_errors(src_points, dst_points, H)))


def _valid(H: Optional[np.ndarray]) -> Optional[np.ndarray]:
    # OpenCV reports failure as None or an empty matrix
    if H is None or H.size == 0 or not np.all(np.isfinite(H)):
        return None
    return H.astype(np.float64)
