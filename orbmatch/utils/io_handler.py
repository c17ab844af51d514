"""Image file I/O."""

import cv2
import numpy as np
from pathlib import Path
from typing import Union


def save_image(image: np.ndarray, output_path: Union[str, Path]):
    """Save image to file."""
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(output_path), image):
        raise ValueError(f"Failed to write image to {output_path}")


def load_image(image_path: Union[str, Path]) -> np.ndarray:
    """Load image from file."""
    image = cv2.imread(str(image_path))
    if image is None:
        raise ValueError(f"Failed to load image from {image_path}")
    return image
