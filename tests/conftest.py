"""Shared fixtures."""

import cv2
import numpy as np
import pytest

from orbmatch.features.keypoint import Keypoint

SHIFT = (30, 20)


def make_textured_image(seed: int = 0, height: int = 480, width: int = 640) -> np.ndarray:
    """Random rectangles and circles, rich in ORB corners."""
    rng = np.random.default_rng(seed)
    image = np.full((height, width, 3), 40, dtype=np.uint8)
    for _ in range(150):
        x, y = int(rng.integers(0, width)), int(rng.integers(0, height))
        w, h = int(rng.integers(10, 60)), int(rng.integers(10, 60))
        color = tuple(int(c) for c in rng.integers(0, 256, 3))
        cv2.rectangle(image, (x, y), (x + w, y + h), color, -1)
    for _ in range(60):
        x, y = int(rng.integers(0, width)), int(rng.integers(0, height))
        color = tuple(int(c) for c in rng.integers(0, 256, 3))
        cv2.circle(image, (x, y), int(rng.integers(5, 30)), color, -1)
    return image


def shift_image(image: np.ndarray, dx: int, dy: int) -> np.ndarray:
    h, w = image.shape[:2]
    M = np.float32([[1, 0, dx], [0, 1, dy]])
    return cv2.warpAffine(image, M, (w, h))


def random_descriptors(n: int, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, (n, 32), dtype=np.uint8)


def flip_bits(row: np.ndarray, n_bits: int) -> np.ndarray:
    """Copy of a descriptor row with its first n_bits inverted."""
    bits = np.unpackbits(row.copy())
    bits[:n_bits] ^= 1
    return np.packbits(bits)


def points_to_keypoints(points) -> list:
    return [Keypoint(float(x), float(y)) for x, y in points]


@pytest.fixture
def textured_image():
    return make_textured_image()


@pytest.fixture
def shifted_image(textured_image):
    return shift_image(textured_image, *SHIFT)
