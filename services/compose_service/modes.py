from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


class Mode(str, Enum):
    TRY_ON = "tryOn"
    BG_SWAP = "bgSwap"
    FLAT_LAY = "flatLay"
    FLAT_LAY_BG = "flatLayBg"
    GARMENT_IN_SCENE = "garmentInScene"
    COLLAGE = "collage"


class LayoutKind(str, Enum):
    TRY_ON = "tryOn"
    BG_SWAP = "bgSwap"
    FLAT_LAY = "flatLay"
    COLLAGE = "collage"


@dataclass(frozen=True)
class ModeProfile:
    mode: Mode
    instruction: str
    gradient: Tuple[str, str]
    layout: LayoutKind


DEFAULT_MODE = Mode.TRY_ON

MODE_PROFILES: Mapping[Mode, ModeProfile] = MappingProxyType({
    Mode.TRY_ON: ModeProfile(
        mode=Mode.TRY_ON,
        instruction=(
            "Create a photorealistic image of the person wearing the clothing item. The person should be "
            "naturally dressed in the provided garment with perfect fit, realistic fabric draping, proper "
            "lighting, and professional fashion photography quality. Maintain the person's pose, facial "
            "features, and background while seamlessly integrating the clothing. The result should look "
            "like a real photograph of the person actually wearing the clothes."
        ),
        gradient=("#667eea", "#764ba2"),
        layout=LayoutKind.TRY_ON,
    ),
    Mode.BG_SWAP: ModeProfile(
        mode=Mode.BG_SWAP,
        instruction=(
            "Generate a photorealistic image where the person is placed in the new background environment "
            "while keeping their appearance and clothing exactly the same. Match the lighting, shadows, and "
            "atmosphere to make it look naturally integrated."
        ),
        gradient=("#f093fb", "#f5576c"),
        layout=LayoutKind.BG_SWAP,
    ),
    Mode.FLAT_LAY: ModeProfile(
        mode=Mode.FLAT_LAY,
        instruction=(
            "Create a professional flat lay photograph of the clothing items arranged aesthetically on a "
            "clean surface with proper shadows and studio lighting."
        ),
        gradient=("#4facfe", "#00f2fe"),
        layout=LayoutKind.FLAT_LAY,
    ),
    Mode.FLAT_LAY_BG: ModeProfile(
        mode=Mode.FLAT_LAY_BG,
        instruction=(
            "Generate a realistic flat lay composition with the clothing items beautifully arranged on the "
            "provided background surface."
        ),
        gradient=("#43e97b", "#38f9d7"),
        layout=LayoutKind.COLLAGE,
    ),
    Mode.GARMENT_IN_SCENE: ModeProfile(
        mode=Mode.GARMENT_IN_SCENE,
        instruction=(
            "Create a photorealistic scene where the clothing items are naturally placed in the environment "
            "with realistic lighting and shadows."
        ),
        gradient=("#fa709a", "#fee140"),
        layout=LayoutKind.COLLAGE,
    ),
    Mode.COLLAGE: ModeProfile(
        mode=Mode.COLLAGE,
        instruction=(
            "Generate an artistic but realistic collage combining the provided images with professional "
            "composition and lighting."
        ),
        gradient=("#a8edea", "#fed6e3"),
        layout=LayoutKind.COLLAGE,
    ),
})

_missing = set(Mode) - set(MODE_PROFILES)
if _missing:
    raise RuntimeError(f"MODE_PROFILES is missing entries for: {sorted(m.value for m in _missing)}")


def resolve_mode(value: Optional[str]) -> Optional[Mode]:
    """Map a request mode string onto the enum, or None when unrecognized."""
    if isinstance(value, Mode):
        return value
    try:
        return Mode(value)
    except ValueError:
        return None


def profile_for(value: Optional[str]) -> ModeProfile:
    """Profile for a request mode string.

    Unknown modes borrow the tryOn instruction and gradient. Their layout is the
    collage recipe, like every mode without a dedicated arrangement.
    """
    mode = resolve_mode(value)
    if mode is not None:
        return MODE_PROFILES[mode]
    base = MODE_PROFILES[DEFAULT_MODE]
    return ModeProfile(mode=base.mode, instruction=base.instruction, gradient=base.gradient, layout=LayoutKind.COLLAGE)


def mode_label(value: Optional[str]) -> str:
    """Human-readable label used on captions, e.g. "flatLay" -> "FlatLay"."""
    text = (value or DEFAULT_MODE.value).strip() or DEFAULT_MODE.value
    return text[0].upper() + text[1:]
