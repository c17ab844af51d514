"""Timing and match quality metrics."""

import numpy as np
from typing import Dict
from time import perf_counter

from orbmatch.features.detection import DetectionResult
from orbmatch.geometry.homography import HomographyEstimator
from orbmatch.matching.matcher import MatchResult


class PerformanceMetrics:
    """Track performance metrics."""
    
    def __init__(self):
        self.start_times = {}
        self.durations = {}
    
    def start_timer(self, name: str):
        """Start timing an operation."""
        self.start_times[name] = perf_counter()
    
    def stop_timer(self, name: str) -> float:
        """Stop timing and return duration in milliseconds."""
        if name not in self.start_times:
            return 0.0
        duration = (perf_counter() - self.start_times.pop(name)) * 1000
        self.durations[name] = duration
        return duration
    
    def get_summary(self) -> Dict[str, float]:
        """Get summary of all timings."""
        return self.durations.copy()


def match_quality(match_result: MatchResult, source: DetectionResult,
                  target: DetectionResult) -> Dict[str, float]:
    """Inlier ratio and reprojection error statistics of the inliers."""
    n_matches = len(match_result)
    stats = {
        'inlier_ratio': match_result.num_inliers / n_matches if n_matches else 0.0,
        'mean_error': float('inf'),
        'median_error': float('inf'),
        'max_error': float('inf')
    }
    inliers = match_result.inliers
    if match_result.homography is None or not inliers:
        return stats
    
    src = np.array([source.keypoints[c.source_index].pt for c in inliers])
    dst = np.array([target.keypoints[c.target_index].pt for c in inliers])
    errors = HomographyEstimator().reprojection_errors(src, dst, match_result.homography)
    stats.update({
        'mean_error': float(np.mean(errors)),
        'median_error': float(np.median(errors)),
        'max_error': float(np.max(errors))
    })
    return stats
