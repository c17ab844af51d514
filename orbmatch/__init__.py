"""
orbmatch - ORB feature export and matching

Detects ORB features in a region of one image, stores them as a portable
JSON feature file and matches them against another image with a ratio test
and RANSAC homography verification.
"""

from .core import FeatureProcessor
from .features.detection import DetectionResult
from .features.keypoint import Keypoint
from .matching.matcher import Correspondence, FeatureMatcher, MatchResult
from .session import Session, SessionState

__all__ = [
    'FeatureProcessor',
    'DetectionResult',
    'Keypoint',
    'Correspondence',
    'FeatureMatcher',
    'MatchResult',
    'Session',
    'SessionState',
]
__version__ = '1.0.0'
