import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import httpx

from decoder import b64decode_payload, sniff_mime_type, strip_data_uri
from errors import DecodeError, RemoteError
from modes import profile_for
from settings import DEFAULT_GEMINI_BASE_URL, DEFAULT_IMAGE_MODEL, DEFAULT_TEXT_MODEL

logger = logging.getLogger(__name__)

IMAGE_GENERATION_CONFIG = {
    "temperature": 0.4,
    "topK": 32,
    "topP": 1,
    "maxOutputTokens": 4096,
}

DESCRIBE_GENERATION_CONFIG = {
    "temperature": 0.7,
    "topK": 40,
    "topP": 0.8,
    "maxOutputTokens": 512,
}


@dataclass(frozen=True)
class GeneratedImage:
    data: str
    mime_type: str = "image/png"
    text: Optional[str] = None


def image_part(encoded: str) -> Dict[str, Any]:
    """Gemini inlineData part for one request image (prefix stripped, MIME sniffed)."""
    payload, declared = strip_data_uri(encoded)
    try:
        raw, _ = b64decode_payload(payload)
        mime = sniff_mime_type(raw[:16], declared)
    except DecodeError:
        # Let the model reject it; local decoding will drop it on fallback
        mime = declared or "image/jpeg"
    return {"inlineData": {"mimeType": mime, "data": "".join(payload.split())}}


def build_payload(prompt: str, images: Sequence[str], generation_config: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "contents": [{
            "parts": [{"text": prompt}] + [image_part(img) for img in images],
        }],
        "generationConfig": dict(generation_config),
    }


def _iter_parts(data: Any):
    if not isinstance(data, dict):
        return
    for cand in data.get("candidates") or []:
        if not isinstance(cand, dict):
            continue
        content = cand.get("content") or {}
        if not isinstance(content, dict):
            continue
        for part in content.get("parts") or []:
            if isinstance(part, dict):
                yield part


def extract_inline_image(data: Any) -> Optional[GeneratedImage]:
    """First inline image payload anywhere in the candidates, plus any text seen."""
    texts: List[str] = []
    for part in _iter_parts(data):
        inline = part.get("inlineData") or part.get("inline_data")
        if isinstance(inline, dict) and inline.get("data"):
            mime = inline.get("mimeType") or inline.get("mime_type") or "image/png"
            return GeneratedImage(data=inline["data"], mime_type=mime, text=" ".join(texts) or None)
        text = part.get("text")
        if isinstance(text, str) and text.strip():
            texts.append(text.strip())
    return None


def extract_text(data: Any) -> Optional[str]:
    texts = [part["text"].strip() for part in _iter_parts(data) if isinstance(part.get("text"), str) and part["text"].strip()]
    return " ".join(texts) or None


class GeminiClient:
    """Single-shot client for the Gemini `generateContent` REST endpoint.

    Each method performs exactly one POST and never retries; every failure is
    reported as RemoteError so the caller can fall through to local rendering.
    """

    def __init__(
        self,
        api_key: Optional[str],
        *,
        base_url: str = DEFAULT_GEMINI_BASE_URL,
        image_model: str = DEFAULT_IMAGE_MODEL,
        text_model: str = DEFAULT_TEXT_MODEL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = (api_key or "").strip() or None
        self.base_url = base_url.rstrip("/")
        self.image_model = image_model
        self.text_model = text_model
        self.timeout = timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _endpoint(self, model: str) -> str:
        return f"{self.base_url}/models/{model}:generateContent"

    async def _post(self, model: str, payload: Dict[str, Any]) -> Any:
        if not self.api_key:
            raise RemoteError("missing_key", "GEMINI_API_KEY not configured")
        url = self._endpoint(model)
        headers = {"Content-Type": "application/json", "x-goog-api-key": self.api_key}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as h:
                r = await h.post(url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise RemoteError("timeout", f"Gemini request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise RemoteError("transport", f"Gemini request failed: {e}") from e

        if r.status_code < 200 or r.status_code >= 300:
            logger.warning(f"Gemini non-2xx status={r.status_code} model={model} body={r.text[:300]}")
            raise RemoteError("status", f"Gemini API error: {r.status_code}", status_code=r.status_code)
        try:
            return r.json()
        except ValueError as e:
            raise RemoteError("parse", f"Gemini response is not JSON: {e}") from e

    async def generate(self, images: Sequence[str], mode: Optional[str]) -> GeneratedImage:
        """Ask the image model for a composed picture of the given mode."""
        instruction = profile_for(mode).instruction
        payload = build_payload(f"Generate a realistic image: {instruction}", images, IMAGE_GENERATION_CONFIG)
        data = await self._post(self.image_model, payload)
        generated = extract_inline_image(data)
        if generated is None:
            raise RemoteError("no_image", "No image in Gemini response", description=extract_text(data))
        logger.info(f"Gemini returned an inline image ({generated.mime_type}) for mode={mode}")
        return generated

    async def describe(self, images: Sequence[str], mode: Optional[str]) -> str:
        """Ask the text model to describe the combined result, for captioning."""
        prompt = (
            f"Analyze these images and provide a detailed description of how they would look when combined "
            f"in a {mode} style. Describe the final result as if you're looking at the completed composition. "
            f"Be specific about colors, fit, style, and overall appearance."
        )
        data = await self._post(self.text_model, build_payload(prompt, images, DESCRIBE_GENERATION_CONFIG))
        text = extract_text(data)
        if not text:
            raise RemoteError("no_text", "No text in Gemini describe response")
        return text
