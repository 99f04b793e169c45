import base64
import binascii
import io
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from PIL import Image

from errors import DecodeError

logger = logging.getLogger(__name__)

MAX_IMAGES = 4

_DATA_URI_RE = re.compile(r"^\s*data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w=.+-]+)*;base64,", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")

_FORMAT_TO_MIME = {
    "JPEG": "image/jpeg",
    "JPG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
    "BMP": "image/bmp",
}


@dataclass(frozen=True)
class DecodedImage:
    image: Image.Image
    width: int
    height: int
    format: str
    mime_type: str

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height


def strip_data_uri(encoded: str) -> Tuple[str, Optional[str]]:
    """Split a `data:image/...;base64,` prefix off the payload.

    Returns (payload, declared_mime). Text without a prefix comes back as-is
    with declared_mime None.
    """
    text = encoded or ""
    m = _DATA_URI_RE.match(text)
    if not m:
        return text.strip(), None
    mime = (m.group("mime") or "").lower() or None
    return text[m.end():].strip(), mime


def sniff_mime_type(raw: bytes, declared: Optional[str] = None) -> str:
    """Best guess for the MIME type of raw image bytes (magic numbers first)."""
    if raw.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if raw.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if raw[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if raw[:4] == b"RIFF" and raw[8:12] == b"WEBP":
        return "image/webp"
    if declared and declared.startswith("image/"):
        return declared
    return "image/jpeg"


def b64decode_payload(encoded: str) -> Tuple[bytes, Optional[str]]:
    """Strip the prefix and decode standard base64. Returns (raw, declared_mime)."""
    payload, declared = strip_data_uri(encoded)
    payload = _WHITESPACE_RE.sub("", payload)
    if not payload:
        raise DecodeError("empty image payload")
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"invalid base64: {e}") from e
    if not raw:
        raise DecodeError("empty image payload")
    return raw, declared


def decode_image(encoded: str) -> DecodedImage:
    """Decode one base64 (optionally data-URI prefixed) image into an RGBA raster."""
    if not isinstance(encoded, str):
        raise DecodeError(f"expected a base64 string, got {type(encoded).__name__}")
    raw, declared = b64decode_payload(encoded)
    try:
        with Image.open(io.BytesIO(raw)) as im:
            im.load()
            fmt = (im.format or "").upper()
            # Animated formats: keep the first frame only
            rgba = im.convert("RGBA")
    except (OSError, ValueError, Image.DecompressionBombError, SyntaxError) as e:
        raise DecodeError(f"unsupported or corrupt image: {e}") from e
    if rgba.width <= 0 or rgba.height <= 0:
        raise DecodeError("image has no pixels")
    mime = _FORMAT_TO_MIME.get(fmt) or sniff_mime_type(raw, declared)
    return DecodedImage(image=rgba, width=rgba.width, height=rgba.height, format=fmt or "UNKNOWN", mime_type=mime)


def decode_images(encoded_images: Sequence[str], limit: int = MAX_IMAGES) -> List[DecodedImage]:
    """Decode up to `limit` images in order, dropping the ones that fail.

    Never raises: a batch where nothing decodes simply returns [].
    """
    decoded: List[DecodedImage] = []
    for i, encoded in enumerate(list(encoded_images or [])[:limit]):
        try:
            decoded.append(decode_image(encoded))
        except DecodeError as e:
            logger.warning(f"Failed to load image {i}: {e}")
    logger.info(f"Decoded {len(decoded)}/{min(len(encoded_images or []), limit)} images")
    return decoded
