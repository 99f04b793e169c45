import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from modes import mode_label

logger = logging.getLogger(__name__)

CARD_TITLE = "AI Composition Complete"


@dataclass(frozen=True)
class CaptionLine:
    text: str
    x: int
    y: int
    width: float


def load_font(size: int, font_path: Optional[str] = None) -> ImageFont.ImageFont:
    """Configured TrueType font, else Pillow's bundled default at `size`."""
    if font_path:
        try:
            return ImageFont.truetype(font_path, size=size)
        except OSError as e:
            logger.warning(f"Caption font {font_path!r} unavailable ({e}); using Pillow default")
    return ImageFont.load_default(size=size)


def _hard_break(word: str, measure: Callable[[str], float], max_width: float) -> List[str]:
    pieces: List[str] = []
    cur = ""
    for ch in word:
        if cur and measure(cur + ch) > max_width:
            pieces.append(cur)
            cur = ch
        else:
            cur += ch
    if cur:
        pieces.append(cur)
    return pieces


def wrap_text(text: str, measure: Callable[[str], float], max_width: float) -> List[str]:
    """Greedy word wrap against a pixel budget.

    Words are added to the current line while the measured width stays within
    `max_width`; on overflow the line is committed and a new one started. A word
    that alone exceeds the budget is broken by characters (a single character
    wider than the budget is emitted on its own line).
    """
    lines: List[str] = []
    cur = ""
    for word in (text or "").split():
        candidate = f"{cur} {word}" if cur else word
        if measure(candidate) <= max_width:
            cur = candidate
            continue
        if cur:
            lines.append(cur)
            cur = ""
        if measure(word) <= max_width:
            cur = word
        else:
            pieces = _hard_break(word, measure, max_width)
            lines.extend(pieces[:-1])
            cur = pieces[-1] if pieces else ""
    if cur:
        lines.append(cur)
    return lines


def layout_lines(
    text: str,
    measure: Callable[[str], float],
    *,
    max_chars: int,
    max_width: float,
    x: int,
    first_baseline: int,
    line_step: int,
    max_baseline: int,
    centered: bool = False,
) -> List[CaptionLine]:
    """Wrap the first `max_chars` characters and assign baselines.

    Lines whose baseline would fall below `max_baseline` are dropped; the rest of
    the text is silently truncated.
    """
    placed: List[CaptionLine] = []
    y = first_baseline
    for line in wrap_text((text or "")[:max_chars], measure, max_width):
        if y > max_baseline:
            break
        width = measure(line)
        line_x = int(round(x - width / 2)) if centered else x
        placed.append(CaptionLine(text=line, x=line_x, y=y, width=width))
        y += line_step
    return placed


def _measure_with(draw: ImageDraw.ImageDraw, font: ImageFont.ImageFont) -> Callable[[str], float]:
    return lambda s: draw.textlength(s, font=font)


def _panel(canvas: Image.Image, box: Tuple[int, int, int, int], fill: Tuple[int, int, int, int]) -> None:
    layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    ImageDraw.Draw(layer).rectangle(box, fill=fill)
    canvas.alpha_composite(layer)


def _draw_banner(canvas: Image.Image, text: str, font_path: Optional[str]) -> List[CaptionLine]:
    w, h = canvas.size
    _panel(canvas, (20, h - 120, w - 20 - 1, h - 20 - 1), (0, 0, 0, 179))
    draw = ImageDraw.Draw(canvas)
    font = load_font(16, font_path)
    lines = layout_lines(
        text,
        _measure_with(draw, font),
        max_chars=150,
        max_width=w - 80,
        x=40,
        first_baseline=h - 90,
        line_step=25,
        max_baseline=h - 30,
    )
    for line in lines:
        draw.text((line.x, line.y), line.text, font=font, fill=(255, 255, 255, 255), anchor="ls")
    return lines


def _draw_card(canvas: Image.Image, text: str, mode: Optional[str], font_path: Optional[str]) -> List[CaptionLine]:
    w, h = canvas.size
    _panel(canvas, (50, 100, w - 50 - 1, h - 100 - 1), (255, 255, 255, 230))
    draw = ImageDraw.Draw(canvas)
    ink = (51, 51, 51, 255)
    draw.text((w // 2, 200), CARD_TITLE, font=load_font(36, font_path), fill=ink, anchor="ms")
    draw.text((w // 2, 250), f"Mode: {mode_label(mode)}", font=load_font(24, font_path), fill=ink, anchor="ms")
    if not (text or "").strip():
        return []
    font = load_font(18, font_path)
    lines = layout_lines(
        text,
        _measure_with(draw, font),
        max_chars=200,
        max_width=w - 120,
        x=w // 2,
        first_baseline=320,
        line_step=30,
        max_baseline=600,
        centered=True,
    )
    for line in lines:
        draw.text((line.x, line.y), line.text, font=font, fill=ink, anchor="ls")
    return lines


def overlay_caption(
    canvas: Image.Image,
    text: Optional[str],
    *,
    style: str = "banner",
    mode: Optional[str] = None,
    font_path: Optional[str] = None,
) -> List[CaptionLine]:
    """Draw `text` onto the canvas in place and return the lines written.

    "banner" is a dark strip along the bottom edge; "card" is a light panel in
    the middle of the canvas with a title and the mode name. Blank text leaves
    the canvas untouched.
    """
    if not text or not text.strip():
        return []
    if style == "card":
        return _draw_card(canvas, text, mode, font_path)
    return _draw_banner(canvas, text, font_path)
