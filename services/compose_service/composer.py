"""Fallback chain: remote generation, then local composite, then placeholder.

The composer never fails once a request has been validated: every tier
boundary is a recovery point and the placeholder tier cannot fail.
"""
import asyncio
import base64
import logging
from dataclasses import replace
from datetime import datetime, timezone
from enum import Enum
from time import perf_counter
from typing import List, Optional

from captions import overlay_caption
from decoder import DecodedImage, decode_images
from errors import ComposeServiceError, CompositeError, RemoteError, ServiceError
from face_blur import blur_faces
from layout import compose_canvas, encode_png
from placeholders import placeholder_for
from remote import GeminiClient, GeneratedImage
from schemas import ComposeRequest, ComposeResult
from settings import Settings

logger = logging.getLogger(__name__)


class Tier(str, Enum):
    REMOTE = "remote"
    COMPOSITE = "composite"
    PLACEHOLDER = "placeholder"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def render_composite(
    images: List[DecodedImage],
    mode: Optional[str],
    *,
    caption: Optional[str] = None,
    caption_style: str = "banner",
    font_path: Optional[str] = None,
    face_blur: bool = False,
) -> bytes:
    """Layout + caption for already decoded images, as PNG bytes.

    The card panel covers the middle of the canvas, so it is only used when
    no photo was placed; photo composites always get the bottom banner.
    """
    try:
        if face_blur:
            images = [replace(img, image=blur_faces(img.image)) for img in images]
        canvas = compose_canvas(mode, images)
        style = "banner" if images else caption_style
        overlay_caption(canvas, caption, style=style, mode=mode, font_path=font_path)
        return encode_png(canvas)
    except Exception as e:
        raise CompositeError(f"local composite failed: {e}") from e


class Composer:
    def __init__(self, settings: Settings, client: Optional[GeminiClient] = None):
        self.settings = settings
        self.client = client or GeminiClient(
            settings.gemini_api_key,
            base_url=settings.gemini_base_url,
            image_model=settings.image_model,
            text_model=settings.text_model,
            timeout=settings.remote_timeout_s,
        )

    async def compose(self, request: ComposeRequest) -> ComposeResult:
        try:
            return await self._compose(request)
        except ComposeServiceError:
            raise
        except Exception as e:
            raise ServiceError(f"compose failed: {e}") from e

    async def _compose(self, request: ComposeRequest) -> ComposeResult:
        mode = request.mode
        t0 = perf_counter()

        try:
            generated = await self._generate_remote(request)
        except RemoteError as e:
            logger.info(f"Remote tier failed for mode={mode} ({e.reason}): {e}")
            caption = await self._fallback_caption(request, e)
        else:
            logger.info(f"compose: tier=remote mode={mode} elapsed={perf_counter()-t0:.2f}s")
            return self._result(mode, generated.data, generated.mime_type, Tier.REMOTE)

        try:
            png = await asyncio.wait_for(
                asyncio.to_thread(self._build_local, request, caption),
                timeout=self.settings.process_timeout_s,
            )
        except asyncio.TimeoutError:
            logger.error(f"Local composite timed out after {self.settings.process_timeout_s}s")
            png = None
        except Exception as e:
            logger.exception(f"Local composite failed, using placeholder: {e}")
            png = None

        if png is not None:
            logger.info(f"compose: tier=composite mode={mode} elapsed={perf_counter()-t0:.2f}s")
            return self._result(mode, base64.b64encode(png).decode("ascii"), "image/png", Tier.COMPOSITE)

        logger.info(f"compose: tier=placeholder mode={mode} elapsed={perf_counter()-t0:.2f}s")
        return self._result(mode, placeholder_for(mode), "image/png", Tier.PLACEHOLDER)

    async def _generate_remote(self, request: ComposeRequest) -> GeneratedImage:
        if not self.client.configured:
            logger.warning("GEMINI_API_KEY not found, using local composite")
            raise RemoteError("missing_key", "GEMINI_API_KEY not configured")
        try:
            return await asyncio.wait_for(
                self.client.generate(request.images, request.mode),
                timeout=self.settings.remote_timeout_s,
            )
        except asyncio.TimeoutError as e:
            raise RemoteError("timeout", f"remote generation exceeded {self.settings.remote_timeout_s}s") from e
        except RemoteError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected remote generation failure: {e}")
            raise RemoteError("unexpected", str(e)) from e

    async def _fallback_caption(self, request: ComposeRequest, error: RemoteError) -> Optional[str]:
        """Text to print on the local composite, if any."""
        if error.description:
            return error.description
        if error.reason == "missing_key":
            return None
        if self.settings.describe_fallback:
            try:
                return await asyncio.wait_for(
                    self.client.describe(request.images, request.mode),
                    timeout=self.settings.remote_timeout_s,
                )
            except asyncio.TimeoutError:
                logger.warning("Describe tier timed out")
            except RemoteError as e:
                logger.warning(f"Describe tier failed ({e.reason}): {e}")
            except Exception as e:
                logger.exception(f"Unexpected describe failure: {e}")
        if error.reason in ("transport", "timeout", "unexpected"):
            return self.settings.fallback_caption
        return None

    def _build_local(self, request: ComposeRequest, caption: Optional[str]) -> Optional[bytes]:
        decoded = decode_images(request.images)
        if not decoded:
            logger.warning("No images could be decoded; falling back to placeholder")
            return None
        return render_composite(
            decoded,
            request.mode,
            caption=caption,
            caption_style=self.settings.caption_style,
            font_path=self.settings.caption_font_path,
            face_blur=request.faceBlur,
        )

    @staticmethod
    def _result(mode: str, data: str, mime_type: str, tier: Tier) -> ComposeResult:
        return ComposeResult(
            success=True,
            mode=mode,
            imageData=data,
            mimeType=mime_type,
            timestamp=utc_timestamp(),
            tier=tier.value,
        )
