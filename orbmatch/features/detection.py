"""Detection result container pairing keypoints with descriptor rows."""

from typing import Iterator, Optional, Sequence, Tuple

import numpy as np

from orbmatch.errors import InvalidDimension, InvalidFormat
from orbmatch.features.keypoint import Keypoint


class DetectionResult:
    """
    Keypoints, their descriptor rows and the source image size.

    Row ``i`` of ``descriptors`` always belongs to ``keypoints[i]``; the
    constructor refuses mismatched lengths and derived results keep the order.
    """

    def __init__(self, keypoints: Sequence[Keypoint],
                 descriptors: Optional[np.ndarray],
                 width: int, height: int):
        keypoints = tuple(keypoints)

        if descriptors is not None:
            descriptors = np.asarray(descriptors)
            if descriptors.ndim != 2:
                raise InvalidFormat(
                    f"Descriptors must be a 2-D matrix, got {descriptors.ndim} dims"
                )
            if descriptors.dtype != np.uint8:
                descriptors = descriptors.astype(np.uint8)
            if descriptors.shape[0] == 0:
                descriptors = None

        n_rows = 0 if descriptors is None else descriptors.shape[0]
        if len(keypoints) != n_rows:
            raise InvalidFormat(
                f"{len(keypoints)} keypoints but {n_rows} descriptor rows"
            )

        self._keypoints = keypoints
        self._descriptors = descriptors
        self.width = _whole_pixels("width", width)
        self.height = _whole_pixels("height", height)

    @property
    def keypoints(self) -> Tuple[Keypoint, ...]:
        return self._keypoints

    @property
    def descriptors(self) -> Optional[np.ndarray]:
        return self._descriptors

    @property
    def descriptor_size(self) -> int:
        return 0 if self._descriptors is None else int(self._descriptors.shape[1])

    @property
    def points(self) -> np.ndarray:
        """Return Nx2 array of keypoint (x, y) coordinates."""
        if not self._keypoints:
            return np.empty((0, 2), dtype=np.float64)
        return np.array([kp.pt for kp in self._keypoints], dtype=np.float64)

    def with_keypoints(self, keypoints: Sequence[Keypoint],
                       width: Optional[int] = None,
                       height: Optional[int] = None) -> 'DetectionResult':
        """Return a result with replaced keypoints and the same descriptor rows."""
        return DetectionResult(
            keypoints,
            self._descriptors,
            self.width if width is None else width,
            self.height if height is None else height
        )

    def __len__(self) -> int:
        return len(self._keypoints)

    def __iter__(self) -> Iterator[Tuple[Keypoint, np.ndarray]]:
        for i, kp in enumerate(self._keypoints):
            yield kp, self._descriptors[i]

    def __repr__(self) -> str:
        return (f"DetectionResult(keypoints={len(self)}, "
                f"descriptor_size={self.descriptor_size}, "
                f"image={self.width}x{self.height})")


def _whole_pixels(name: str, value) -> int:
    try:
        pixels = int(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidDimension(f"Image {name} must be a whole number of pixels, got {value!r}") from e
    if pixels != value:
        raise InvalidDimension(f"Image {name} must be a whole number of pixels, got {value!r}")
    return pixels
