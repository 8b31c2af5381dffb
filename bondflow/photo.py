"""
Selfie capture — turns whatever the camera or file picker handed over into
a base64 data URL that can be embedded in a check-in record and rendered
back later.

The only check is "is it an image": raw bytes must be something Pillow can
identify and verify.  The declared content type is never trusted on its own.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
import struct
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from .exceptions import NoImageSelected, UnsupportedImage
from .models import CapturedPhoto

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:(?P<type>[\w.+-]+/[\w.+-]+)?(?:;[\w=-]+)*;base64,(?P<payload>.*)$", re.S)


def identify_image(data: bytes) -> str | None:
    """Return the MIME type Pillow detects for `data`, or None if it is not an image."""
    try:
        with Image.open(BytesIO(data)) as img:
            fmt = img.format
            img.verify()
    except (
        UnidentifiedImageError,
        OSError,
        SyntaxError,
        ValueError,
        struct.error,
        Image.DecompressionBombError,
    ):
        return None
    if fmt is None:
        return None
    return Image.MIME.get(fmt, f"image/{fmt.lower()}")


def encode_photo(data: bytes | str | None, content_type: str | None = None) -> CapturedPhoto:
    """Encode raw bytes (or pass through a data URL) as a CapturedPhoto.

    Raises:
        NoImageSelected: nothing was provided (the user cancelled).
        UnsupportedImage: the payload is not an image.
    """
    if data is None or len(data) == 0:
        raise NoImageSelected()

    if isinstance(data, str):
        return _from_data_url(data)

    declared = (content_type or "").split(";")[0].strip().lower()
    mime = identify_image(data)
    if mime is None:
        raise UnsupportedImage(
            f"Selected file is not an image (content type '{declared or 'unknown'}')",
            {"content_type": declared or None},
        )
    if declared and declared != mime:
        logger.info("Declared content type %s overridden by detected %s", declared, mime)

    payload = base64.b64encode(data).decode("ascii")
    return CapturedPhoto(
        data_url=f"data:{mime};base64,{payload}",
        content_type=mime,
        size_bytes=len(data),
    )


def _from_data_url(data_url: str) -> CapturedPhoto:
    match = _DATA_URL_RE.match(data_url.strip())
    if not match:
        raise UnsupportedImage("Photo is not a base64 data URL", {"prefix": data_url[:32]})

    mime = (match.group("type") or "").lower()
    if not mime.startswith("image/"):
        raise UnsupportedImage(
            f"Data URL holds '{mime or 'unknown'}', not an image", {"content_type": mime or None}
        )

    try:
        size = len(base64.b64decode(match.group("payload"), validate=True))
    except (binascii.Error, ValueError) as exc:
        raise UnsupportedImage("Data URL payload is not valid base64") from exc

    return CapturedPhoto(data_url=data_url.strip(), content_type=mime, size_bytes=size)


class PhotoCapturer:
    """Holds the single photo for the current attempt. Capturing again replaces it."""

    def __init__(self) -> None:
        self.current: CapturedPhoto | None = None

    def capture(self, data: bytes | str | None, content_type: str | None = None) -> CapturedPhoto:
        photo = encode_photo(data, content_type)
        if self.current is not None:
            logger.info("Replacing previously captured photo")
        self.current = photo
        logger.info("Captured %s photo (%d bytes)", photo.content_type, photo.size_bytes)
        return photo

    def discard(self) -> None:
        self.current = None
