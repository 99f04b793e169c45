import os
from dataclasses import dataclass
from typing import List, Optional, Tuple

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image-preview"
DEFAULT_TEXT_MODEL = "gemini-2.5-flash"
DEFAULT_FALLBACK_CAPTION = "AI-powered fashion composition"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for the compose service.

    Values come from the process environment (optionally seeded from a .env
    file). A missing Gemini key is a normal condition: the service then runs
    purely on the local composite path.
    """

    gemini_api_key: Optional[str] = None
    gemini_base_url: str = DEFAULT_GEMINI_BASE_URL
    image_model: str = DEFAULT_IMAGE_MODEL
    text_model: str = DEFAULT_TEXT_MODEL
    remote_timeout_s: float = 10.0
    process_timeout_s: float = 30.0
    describe_fallback: bool = False
    fallback_caption: Optional[str] = DEFAULT_FALLBACK_CAPTION
    caption_style: str = "banner"
    caption_font_path: Optional[str] = None
    cors_allow_origins: Tuple[str, ...] = ()
    log_level: str = "INFO"
    port: int = 3000

    @property
    def gemini_configured(self) -> bool:
        return bool(self.gemini_api_key)

    @classmethod
    def from_env(cls) -> "Settings":
        api_key = os.getenv("GEMINI_API_KEY", "").strip() or None

        caption_style = os.getenv("CAPTION_STYLE", "banner").strip().lower()
        if caption_style not in ("banner", "card"):
            caption_style = "banner"

        # Empty string disables the generic caption on transport failures
        fallback_caption = os.getenv("FALLBACK_CAPTION", DEFAULT_FALLBACK_CAPTION).strip() or None

        origins_env = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
        origins: List[str] = [o.strip() for o in origins_env.split(",") if o.strip()] if origins_env else []

        try:
            port = int(os.getenv("PORT", "3000"))
        except ValueError:
            port = 3000

        return cls(
            gemini_api_key=api_key,
            gemini_base_url=os.getenv("GEMINI_BASE_URL", DEFAULT_GEMINI_BASE_URL).rstrip("/"),
            image_model=os.getenv("GEMINI_IMAGE_MODEL", DEFAULT_IMAGE_MODEL),
            text_model=os.getenv("GEMINI_TEXT_MODEL", DEFAULT_TEXT_MODEL),
            remote_timeout_s=_env_float("REMOTE_TIMEOUT_S", 10.0),
            process_timeout_s=_env_float("PROCESS_TIMEOUT_S", 30.0),
            describe_fallback=_env_flag("REMOTE_DESCRIBE_FALLBACK"),
            fallback_caption=fallback_caption,
            caption_style=caption_style,
            caption_font_path=os.getenv("CAPTION_FONT_PATH", "").strip() or None,
            cors_allow_origins=tuple(origins),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
            port=port,
        )
