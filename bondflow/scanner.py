"""
Document scanner post-processing.

Turns a camera frame of a paper document into a high-contrast grayscale
image so printed text stands out like a flatbed scan.  Works on a flat
RGBA byte buffer (4 bytes per pixel), the layout a canvas frame grab uses.
"""

from __future__ import annotations

import numpy as np

DEFAULT_CONTRAST = 1.5

# Rec. 709 luma coefficients
_LUMA = np.array([0.2126, 0.7152, 0.0722], dtype=np.float64)


def enhance_document(rgba: bytes | bytearray, contrast: float = DEFAULT_CONTRAST) -> bytes:
    """Grayscale + contrast boost around mid-gray. Alpha is left untouched.

    Raises:
        ValueError: the buffer is not a whole number of RGBA pixels.
    """
    if len(rgba) % 4:
        raise ValueError(f"RGBA buffer length {len(rgba)} is not a multiple of 4")

    pixels = np.frombuffer(rgba, dtype=np.uint8).reshape(-1, 4)
    gray = pixels[:, :3].astype(np.float64) @ _LUMA
    boosted = np.clip(np.rint((gray - 128) * contrast + 128), 0, 255).astype(np.uint8)

    out = pixels.copy()
    out[:, :3] = boosted[:, None]
    return out.tobytes()
