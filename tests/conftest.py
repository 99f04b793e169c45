import base64
import io
from typing import Callable, Tuple

import pytest
from PIL import Image

from settings import Settings

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)


def encode_image(size: Tuple[int, int] = (40, 60), color=RED, fmt: str = "PNG") -> str:
    img = Image.new("RGBA" if fmt == "PNG" else "RGB", size, color if fmt == "PNG" else color[:3])
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return base64.b64encode(buf.getvalue()).decode("ascii")


@pytest.fixture()
def make_image() -> Callable[..., str]:
    """Factory for base64 encoded solid-colour images."""

    return encode_image


@pytest.fixture()
def offline_settings() -> Settings:
    """Settings with no Gemini key so only the local tiers run."""

    return Settings(gemini_api_key=None, remote_timeout_s=0.5, process_timeout_s=30.0)


def open_b64_png(data: str) -> Image.Image:
    raw = base64.b64decode(data)
    assert raw.startswith(b"\x89PNG\r\n\x1a\n")
    return Image.open(io.BytesIO(raw))


@pytest.fixture()
def open_png() -> Callable[[str], Image.Image]:
    return open_b64_png
