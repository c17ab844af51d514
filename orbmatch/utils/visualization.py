"""Visualization of keypoints and matches."""

import cv2
import numpy as np
from typing import List, Optional, Sequence, Tuple

from orbmatch.features.keypoint import Keypoint
from orbmatch.matching.matcher import MatchResult

INLIER_COLOR = (0, 255, 0)
OUTLIER_COLOR = (0, 0, 255)


def _to_bgr(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    return image.copy()


def _point(x: float, y: float) -> Tuple[int, int]:
    return int(round(x)), int(round(y))


def draw_keypoints(image: np.ndarray, keypoints: Sequence[Keypoint],
                  color: Tuple[int, int, int] = INLIER_COLOR) -> np.ndarray:
    """Draw keypoints on image."""
    output = _to_bgr(image)
    for kp in keypoints:
        cv2.circle(output, _point(kp.x, kp.y), 3, color, -1, cv2.LINE_AA)
    return output


def draw_matches(image_a: np.ndarray, image_b: np.ndarray,
                 keypoints_a: Sequence[Keypoint], keypoints_b: Sequence[Keypoint],
                 match_result: MatchResult) -> np.ndarray:
    """
    Draw correspondences side by side, A on the left and B on the right.

    Inliers are green, outliers red. Correspondences pointing outside the
    keypoint lists are skipped.
    """
    a = _to_bgr(image_a)
    b = _to_bgr(image_b)
    h_a, w_a = a.shape[:2]
    h_b, w_b = b.shape[:2]
    
    canvas = np.zeros((max(h_a, h_b), w_a + w_b, 3), dtype=np.uint8)
    canvas[:h_a, :w_a] = a
    canvas[:h_b, w_a:] = b
    
    mask: Optional[Sequence[bool]] = match_result.inlier_mask
    if match_result.homography is None:
        mask = None
    
    for i, c in enumerate(match_result.correspondences):
        if c.source_index >= len(keypoints_a) or c.target_index >= len(keypoints_b):
            continue
        p1 = keypoints_a[c.source_index]
        p2 = keypoints_b[c.target_index]
        inlier = bool(mask[i]) if mask else True
        color = INLIER_COLOR if inlier else OUTLIER_COLOR
        start = _point(p1.x, p1.y)
        end = _point(p2.x + w_a, p2.y)
        cv2.line(canvas, start, end, color, 1, cv2.LINE_AA)
        cv2.circle(canvas, start, 3, color, -1, cv2.LINE_AA)
        cv2.circle(canvas, end, 3, color, -1, cv2.LINE_AA)
    
    return canvas


def format_stats(match_result: MatchResult, width: int, height: int) -> List[str]:
    """Text lines describing a match result."""
    lines = [
        f"B: {width}x{height}",
        f"matches: {len(match_result)}",
        f"inliers: {match_result.num_inliers}"
    ]
    H = match_result.homography_flat
    if H is None:
        lines.append("H: (none)")
    else:
        lines.append("H: [" + ", ".join(f"{v:.3f}" for v in H) + "]")
    return lines


def draw_stats(image: np.ndarray, lines: Sequence[str]) -> np.ndarray:
    """Overlay text lines in the top-left corner."""
    output = image.copy()
    y_offset = 25
    for line in lines:
        cv2.putText(output, line, (10, y_offset),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 255), 1, cv2.LINE_AA)
        y_offset += 20
    return output
