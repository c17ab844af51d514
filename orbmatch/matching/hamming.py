"""Hamming distances between binary descriptors."""

from typing import Tuple

import cv2
import numpy as np


def distance_matrix(desc_a: np.ndarray, desc_b: np.ndarray) -> np.ndarray:
    """
    Pairwise Hamming distances between two uint8 descriptor matrices.

    Args:
        desc_a: NxC uint8 descriptors
        desc_b: MxC uint8 descriptors

    Returns:
        NxM int array of differing bit counts
    """
    desc_a = np.ascontiguousarray(np.atleast_2d(np.asarray(desc_a, dtype=np.uint8)))
    desc_b = np.ascontiguousarray(np.atleast_2d(np.asarray(desc_b, dtype=np.uint8)))
    if desc_a.shape[1] != desc_b.shape[1]:
        raise ValueError(
            f"Descriptor widths differ: {desc_a.shape[1]} vs {desc_b.shape[1]} bytes"
        )
    if len(desc_a) == 0 or len(desc_b) == 0:
        return np.zeros((len(desc_a), len(desc_b)), dtype=np.int64)

    distances, _ = cv2.batchDistance(desc_a, desc_b, cv2.CV_32S, normType=cv2.NORM_HAMMING)
    return distances.astype(np.int64)


def knn2(desc_a: np.ndarray, desc_b: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Two nearest target rows for every source row.

    Ties are broken by the lowest target index. When ``desc_b`` has a single
    row only one neighbour column is returned.

    Returns:
        (indices, distances), both of shape (N, min(2, M))
    """
    distances = distance_matrix(desc_a, desc_b)
    k = min(2, distances.shape[1])
    order = np.argsort(distances, axis=1, kind='stable')[:, :k]
    nearest = np.take_along_axis(distances, order, axis=1)
    return order, nearest
