"""Base64 codec for binary descriptor matrices."""

import base64
import binascii
import re
from typing import Any, Dict, Optional

import numpy as np

from orbmatch.errors import DecodeError, InvalidFormat

_B64_ALPHABET = re.compile(r'^[A-Za-z0-9+/]*={0,2}$')


def encode(data: bytes) -> str:
    """Encode bytes as padded standard base64 text."""
    return base64.b64encode(bytes(data)).decode('ascii')


def decode(text: str) -> bytes:
    """
    Decode padded standard base64 text.

    Raises:
        DecodeError: length is not a multiple of 4 or the text contains
            characters outside the base64 alphabet
    """
    if not isinstance(text, str):
        raise DecodeError(f"Expected base64 text, got {type(text).__name__}")
    if len(text) % 4 != 0:
        raise DecodeError(f"Base64 length {len(text)} is not a multiple of 4")
    if not _B64_ALPHABET.match(text):
        raise DecodeError("Base64 payload contains characters outside the alphabet")
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Corrupt base64 payload: {e}") from e


def encode_matrix(matrix: Optional[np.ndarray]) -> Optional[Dict[str, Any]]:
    """Serialize a uint8 descriptor matrix to ``{rows, cols, data_b64}``."""
    if matrix is None or matrix.size == 0:
        return None
    matrix = np.ascontiguousarray(matrix, dtype=np.uint8)
    rows, cols = matrix.shape
    return {
        "rows": int(rows),
        "cols": int(cols),
        "data_b64": encode(matrix.tobytes())
    }


def decode_matrix(payload: Optional[Dict[str, Any]]) -> Optional[np.ndarray]:
    """Rebuild a descriptor matrix from ``{rows, cols, data_b64}``."""
    if payload is None:
        return None
    if not isinstance(payload, dict):
        raise InvalidFormat("Descriptors must be an object or null")

    try:
        rows = int(payload["rows"])
        cols = int(payload["cols"])
        text = payload["data_b64"]
    except KeyError as e:
        raise InvalidFormat(f"Descriptors are missing field {e}") from e
    except (TypeError, ValueError) as e:
        raise InvalidFormat(f"Descriptor shape is not numeric: {e}") from e

    if rows < 0 or cols <= 0:
        raise InvalidFormat(f"Invalid descriptor shape {rows}x{cols}")

    raw = decode(text)
    if len(raw) != rows * cols:
        raise DecodeError(
            f"Descriptor payload has {len(raw)} bytes, expected {rows}x{cols}={rows * cols}"
        )
    return np.frombuffer(raw, dtype=np.uint8).reshape(rows, cols).copy()
