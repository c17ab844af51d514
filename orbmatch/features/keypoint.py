"""Keypoint value type."""

from dataclasses import dataclass, replace
from typing import Any, Dict

import cv2

from orbmatch.errors import InvalidFormat

# Defaults used when a serialized keypoint omits optional fields
DEFAULT_SIZE = 31.0
DEFAULT_ANGLE = -1.0
DEFAULT_RESPONSE = 0.0
DEFAULT_OCTAVE = 0
DEFAULT_CLASS_ID = -1


@dataclass(frozen=True)
class Keypoint:
    """Immutable ORB keypoint."""

    x: float
    y: float
    size: float = DEFAULT_SIZE
    angle: float = DEFAULT_ANGLE
    response: float = DEFAULT_RESPONSE
    octave: int = DEFAULT_OCTAVE
    class_id: int = DEFAULT_CLASS_ID

    @property
    def pt(self):
        return (self.x, self.y)

    def moved(self, x: float, y: float) -> 'Keypoint':
        """Return a copy placed at (x, y)."""
        return replace(self, x=x, y=y)

    @classmethod
    def from_cv(cls, kp: cv2.KeyPoint) -> 'Keypoint':
        """Build from an OpenCV keypoint."""
        return cls(
            x=float(kp.pt[0]),
            y=float(kp.pt[1]),
            size=float(kp.size),
            angle=float(kp.angle),
            response=float(kp.response),
            octave=int(kp.octave),
            class_id=int(kp.class_id)
        )

    def to_cv(self) -> cv2.KeyPoint:
        """Convert to an OpenCV keypoint."""
        return cv2.KeyPoint(self.x, self.y, self.size, self.angle,
                            self.response, self.octave, self.class_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x": self.x,
            "y": self.y,
            "size": self.size,
            "angle": self.angle,
            "response": self.response,
            "octave": self.octave,
            "class_id": self.class_id
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Keypoint':
        """
        Build from a serialized keypoint.

        Missing optional fields fall back to the module defaults; ``x`` and
        ``y`` are required.
        """
        if not isinstance(data, dict):
            raise InvalidFormat(f"Keypoint must be an object, got {type(data).__name__}")
        try:
            return cls(
                x=float(data["x"]),
                y=float(data["y"]),
                size=float(_or_default(data.get("size"), DEFAULT_SIZE)),
                angle=float(_or_default(data.get("angle"), DEFAULT_ANGLE)),
                response=float(_or_default(data.get("response"), DEFAULT_RESPONSE)),
                octave=int(_or_default(data.get("octave"), DEFAULT_OCTAVE)),
                class_id=int(_or_default(data.get("class_id"), DEFAULT_CLASS_ID))
            )
        except KeyError as e:
            raise InvalidFormat(f"Keypoint is missing field {e}") from e
        except (TypeError, ValueError) as e:
            raise InvalidFormat(f"Keypoint has a non-numeric field: {e}") from e


def _or_default(value, default):
    return default if value is None else value
