"""Deterministic local composition for the fallback tier.

Every mode maps to a static recipe of placements expressed against the 800x800
logical canvas. `plan_layout` turns a recipe into integer pixel boxes for the
rasters at hand; `compose_canvas` paints the gradient background and draws the
planned rasters in z-order. Nothing here is random, so identical inputs always
produce identical pixels.
"""
import io
import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import List, Mapping, Optional, Sequence, Tuple

import numpy as np
from PIL import Image, ImageChops, ImageColor, ImageDraw, ImageFilter

from decoder import DecodedImage
from modes import LayoutKind, profile_for

logger = logging.getLogger(__name__)

CANVAS_SIZE: Tuple[int, int] = (800, 800)
LOGICAL_SIZE = 800


class Fit(str, Enum):
    FILL = "fill"        # stretch over the whole canvas, aspect ignored
    HEIGHT = "height"    # height = size_frac * canvas height, aspect kept
    SQUARE = "square"    # side = size_frac * min(canvas width, height)


class Anchor(str, Enum):
    CENTER = "center"
    TOP_LEFT = "top_left"
    TOP_RIGHT = "top_right"


@dataclass(frozen=True)
class Shadow:
    blur: float
    offset_x: int = 0
    offset_y: int = 0
    color: Tuple[int, int, int, int] = (0, 0, 0, 77)


@dataclass(frozen=True)
class RoundedRect:
    radius: int


@dataclass(frozen=True)
class Placement:
    source_index: int
    fit: Fit
    size_frac: float = 1.0
    anchor: Anchor = Anchor.TOP_LEFT
    x_frac: float = 0.0
    y_frac: float = 0.0
    margin: int = 0
    opacity: float = 1.0
    z_order: int = 0
    clip: Optional[RoundedRect] = None
    shadow: Optional[Shadow] = None


@dataclass(frozen=True)
class PlannedPlacement:
    placement: Placement
    x: int
    y: int
    width: int
    height: int

    @property
    def box(self) -> Tuple[int, int, int, int]:
        return self.x, self.y, self.x + self.width, self.y + self.height


def _rgba(r: int, g: int, b: int, a: float) -> Tuple[int, int, int, int]:
    return r, g, b, int(round(a * 255))


def _grid_recipe(cell_frac: float, gutter: int, shadow: Shadow) -> Tuple[Placement, ...]:
    cell = cell_frac * LOGICAL_SIZE
    origin = (LOGICAL_SIZE - cell * 2 - gutter) / 2
    placements = []
    for i in range(4):
        col, row = i % 2, i // 2
        placements.append(Placement(
            source_index=i,
            fit=Fit.SQUARE,
            size_frac=cell_frac,
            x_frac=(origin + col * (cell + gutter)) / LOGICAL_SIZE,
            y_frac=(origin + row * (cell + gutter)) / LOGICAL_SIZE,
            z_order=i,
            shadow=shadow,
        ))
    return tuple(placements)


_COLLAGE_ORIGINS = ((0.1, 0.1), (0.5, 0.1), (0.1, 0.5), (0.5, 0.5))

RECIPES: Mapping[LayoutKind, Tuple[Placement, ...]] = MappingProxyType({
    LayoutKind.TRY_ON: (
        Placement(source_index=0, fit=Fit.HEIGHT, size_frac=0.8, anchor=Anchor.CENTER, z_order=0),
        Placement(source_index=1, fit=Fit.SQUARE, size_frac=0.3, anchor=Anchor.TOP_RIGHT, margin=20,
                  opacity=0.8, z_order=1),
    ),
    LayoutKind.BG_SWAP: (
        Placement(source_index=1, fit=Fit.FILL, z_order=0),
        Placement(source_index=0, fit=Fit.HEIGHT, size_frac=0.9, anchor=Anchor.CENTER, z_order=1),
    ),
    LayoutKind.FLAT_LAY: _grid_recipe(0.4, 40, Shadow(blur=10, offset_x=5, offset_y=5, color=_rgba(0, 0, 0, 0.3))),
    LayoutKind.COLLAGE: tuple(
        Placement(
            source_index=i,
            fit=Fit.SQUARE,
            size_frac=0.4,
            x_frac=x,
            y_frac=y,
            z_order=i,
            clip=RoundedRect(radius=15),
            shadow=Shadow(blur=8, color=_rgba(0, 0, 0, 0.2)),
        )
        for i, (x, y) in enumerate(_COLLAGE_ORIGINS)
    ),
})


def recipe_for(mode: Optional[str]) -> Tuple[Placement, ...]:
    return RECIPES[profile_for(mode).layout]


def _resolve(p: Placement, source_size: Tuple[int, int], canvas_size: Tuple[int, int]) -> PlannedPlacement:
    cw, ch = canvas_size
    sw, sh = source_size
    if p.fit is Fit.FILL:
        w, h = float(cw), float(ch)
    elif p.fit is Fit.HEIGHT:
        h = p.size_frac * ch
        w = h * (sw / sh) if sh else h
    else:
        w = h = p.size_frac * min(cw, ch)

    if p.fit is Fit.FILL:
        x, y = 0.0, 0.0
    elif p.anchor is Anchor.CENTER:
        x, y = (cw - w) / 2, (ch - h) / 2
    elif p.anchor is Anchor.TOP_RIGHT:
        x, y = cw - w - p.margin, float(p.margin)
    else:
        x, y = p.x_frac * cw, p.y_frac * ch

    return PlannedPlacement(
        placement=p,
        x=int(round(x)),
        y=int(round(y)),
        width=max(1, int(round(w))),
        height=max(1, int(round(h))),
    )


def plan_layout(mode: Optional[str], source_sizes: Sequence[Tuple[int, int]], canvas_size: Tuple[int, int] = CANVAS_SIZE) -> List[PlannedPlacement]:
    """Resolve the mode's recipe to pixel boxes, ordered bottom to top.

    Placements whose source slot is missing are skipped; extra sources are
    ignored.
    """
    planned: List[PlannedPlacement] = []
    for p in sorted(recipe_for(mode), key=lambda item: item.z_order):
        if p.source_index >= len(source_sizes):
            continue
        planned.append(_resolve(p, source_sizes[p.source_index], canvas_size))
    return planned


def linear_gradient(size: Tuple[int, int], start: str, end: str) -> Image.Image:
    """Two-stop gradient running from the top-left to the bottom-right corner."""
    w, h = size
    c0 = np.array(ImageColor.getrgb(start)[:3], dtype=np.float64)
    c1 = np.array(ImageColor.getrgb(end)[:3], dtype=np.float64)
    ys, xs = np.mgrid[0:h, 0:w]
    # Project each pixel centre onto the (w, h) diagonal
    denom = float(w * w + h * h) or 1.0
    t = np.clip(((xs + 0.5) * w + (ys + 0.5) * h) / denom, 0.0, 1.0)[..., None]
    rgb = np.round(c0 + (c1 - c0) * t).astype(np.uint8)
    return Image.fromarray(rgb).convert("RGBA")


def _prepare_source(raster: Image.Image, planned: PlannedPlacement) -> Image.Image:
    p = planned.placement
    src = raster if raster.mode == "RGBA" else raster.convert("RGBA")
    src = src.resize((planned.width, planned.height), Image.Resampling.LANCZOS)
    alpha = src.getchannel("A")
    if p.opacity < 1.0:
        factor = max(0.0, p.opacity)
        alpha = alpha.point(lambda a: int(round(a * factor)))
    if p.clip is not None:
        mask = Image.new("L", src.size, 0)
        ImageDraw.Draw(mask).rounded_rectangle((0, 0, src.width - 1, src.height - 1), radius=p.clip.radius, fill=255)
        alpha = ImageChops.multiply(alpha, mask)
    src.putalpha(alpha)
    return src


def _draw_shadow(canvas: Image.Image, src: Image.Image, planned: PlannedPlacement, shadow: Shadow) -> None:
    r, g, b, a = shadow.color
    layer = Image.new("RGBA", canvas.size, (r, g, b, 0))
    tile = Image.new("RGBA", src.size, (r, g, b, 0))
    tile.putalpha(src.getchannel("A").point(lambda v: v * a // 255))
    layer.paste(tile, (planned.x + shadow.offset_x, planned.y + shadow.offset_y))
    if shadow.blur > 0:
        # Canvas-style shadow blur is roughly twice the gaussian sigma
        layer = layer.filter(ImageFilter.GaussianBlur(radius=shadow.blur / 2))
    canvas.alpha_composite(layer)


def _draw(canvas: Image.Image, raster: Image.Image, planned: PlannedPlacement) -> None:
    src = _prepare_source(raster, planned)
    if planned.placement.shadow is not None:
        _draw_shadow(canvas, src, planned, planned.placement.shadow)
    # Paste onto a full-size layer so boxes hanging off the canvas get clipped
    layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    layer.paste(src, (planned.x, planned.y))
    canvas.alpha_composite(layer)


def compose_canvas(mode: Optional[str], images: Sequence[DecodedImage], canvas_size: Tuple[int, int] = CANVAS_SIZE) -> Image.Image:
    """Render the mode's layout for the decoded images onto a fresh RGBA canvas."""
    profile = profile_for(mode)
    canvas = linear_gradient(canvas_size, *profile.gradient)
    planned = plan_layout(mode, [img.size for img in images], canvas_size)
    for item in planned:
        _draw(canvas, images[item.placement.source_index].image, item)
    logger.info(f"Composed {len(planned)} placement(s) for mode={mode} layout={profile.layout.value}")
    return canvas


def encode_png(canvas: Image.Image) -> bytes:
    buf = io.BytesIO()
    canvas.convert("RGB").save(buf, format="PNG")
    return buf.getvalue()
