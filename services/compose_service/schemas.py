from typing import Any, Dict, List

from pydantic import BaseModel, field_validator
from pydantic import ValidationError as PydanticValidationError

from decoder import MAX_IMAGES
from errors import ValidationError
from modes import DEFAULT_MODE

MIN_IMAGES = 2


class ComposeRequest(BaseModel):
    images: List[str]
    mode: str = DEFAULT_MODE.value
    # Accepted for client compatibility; output size is fixed
    highResolution: bool = True
    faceBlur: bool = False

    @field_validator("mode", mode="before")
    @classmethod
    def _default_mode(cls, v: Any) -> Any:
        if v is None:
            return DEFAULT_MODE.value
        if isinstance(v, str):
            return v.strip() or DEFAULT_MODE.value
        return v


class ComposeResult(BaseModel):
    success: bool = True
    mode: str
    imageData: str
    mimeType: str = "image/png"
    timestamp: str
    tier: str

    model_config = {"frozen": True}


def parse_compose_request(payload: Any) -> ComposeRequest:
    """Validate the public /api/compose body. Raises ValidationError (HTTP 400)."""
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    images = payload.get("images")
    if not images or not isinstance(images, list) or len(images) < MIN_IMAGES:
        raise ValidationError(f"At least {MIN_IMAGES} images are required")
    if len(images) > MAX_IMAGES:
        raise ValidationError(f"Maximum {MAX_IMAGES} images allowed")
    try:
        return ComposeRequest.model_validate(payload)
    except PydanticValidationError as e:
        first: Dict[str, Any] = e.errors()[0] if e.errors() else {}
        loc = ".".join(str(p) for p in first.get("loc", ())) or "body"
        raise ValidationError(f"Invalid request field '{loc}': {first.get('msg', 'invalid value')}") from e
