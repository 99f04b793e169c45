import base64
from functools import lru_cache
from typing import Optional

from layout import CANVAS_SIZE, encode_png, linear_gradient
from modes import DEFAULT_MODE, MODE_PROFILES, Mode, resolve_mode


@lru_cache(maxsize=None)
def _render_placeholder(mode: Mode) -> str:
    start, end = MODE_PROFILES[mode].gradient
    png = encode_png(linear_gradient(CANVAS_SIZE, start, end))
    return base64.b64encode(png).decode("ascii")


def placeholder_for(mode: Optional[str]) -> str:
    """Base64 PNG used when nothing could be rendered; tryOn for unknown modes."""
    return _render_placeholder(resolve_mode(mode) or DEFAULT_MODE)


def warm_placeholders() -> None:
    """Render every placeholder up front so the last tier never does real work."""
    for mode in Mode:
        _render_placeholder(mode)
