"""Crop regions and crop-space to image-space bookkeeping."""

from dataclasses import dataclass
from typing import Iterable, List, Tuple

import numpy as np

from orbmatch.errors import InvalidDimension
from orbmatch.features.keypoint import Keypoint


@dataclass(frozen=True)
class CropRect:
    """Axis-aligned region in natural image pixels."""

    x: int
    y: int
    width: int
    height: int

    @classmethod
    def full(cls, width: int, height: int) -> 'CropRect':
        return cls(0, 0, int(width), int(height))

    @classmethod
    def from_rendered(cls, rendered_rect: Tuple[float, float, float, float],
                      rendered_size: Tuple[float, float],
                      natural_size: Tuple[int, int]) -> 'CropRect':
        """
        Convert a rectangle drawn over a displayed image to natural pixels.

        Args:
            rendered_rect: (left, top, width, height) relative to the
                displayed image's top-left corner
            rendered_size: (width, height) the image is displayed at
            natural_size: (width, height) of the underlying image

        Returns:
            CropRect scaled and rounded to natural pixels
        """
        rendered_w, rendered_h = rendered_size
        natural_w, natural_h = natural_size
        if rendered_w <= 0 or rendered_h <= 0:
            raise InvalidDimension(f"Rendered size must be positive, got {rendered_w}x{rendered_h}")
        if natural_w <= 0 or natural_h <= 0:
            raise InvalidDimension(f"Natural size must be positive, got {natural_w}x{natural_h}")

        scale_x = natural_w / rendered_w
        scale_y = natural_h / rendered_h
        left, top, width, height = rendered_rect
        return cls(
            x=int(round(left * scale_x)),
            y=int(round(top * scale_y)),
            width=int(round(width * scale_x)),
            height=int(round(height * scale_y))
        )

    def clamp(self, width: int, height: int) -> 'CropRect':
        """Intersect with an image of the given size."""
        x0 = max(0, self.x)
        y0 = max(0, self.y)
        x1 = min(int(width), self.x + self.width)
        y1 = min(int(height), self.y + self.height)
        if x1 <= x0 or y1 <= y0:
            raise InvalidDimension(f"Crop {self} does not overlap a {width}x{height} image")
        return CropRect(x0, y0, x1 - x0, y1 - y0)

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)


def crop_image(image: np.ndarray, rect: CropRect) -> np.ndarray:
    """Return the region of ``image`` covered by ``rect`` (clamped)."""
    h, w = image.shape[:2]
    rect = rect.clamp(w, h)
    return image[rect.y:rect.y + rect.height, rect.x:rect.x + rect.width]


def offset_keypoints(keypoints: Iterable[Keypoint], dx: float, dy: float) -> List[Keypoint]:
    """Shift crop-space keypoints into full-image coordinates."""
    return [kp.moved(kp.x + dx, kp.y + dy) for kp in keypoints]
