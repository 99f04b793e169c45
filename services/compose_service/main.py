import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from composer import Composer, utc_timestamp
from errors import ValidationError
from placeholders import warm_placeholders
from schemas import parse_compose_request
from settings import Settings

SERVICE_NAME = "snapwear-compose-service"
VERSION = "1.0.0"

settings = Settings.from_env()

# Configure logging
logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger(__name__)

if not settings.gemini_configured:
    logger.warning("GEMINI_API_KEY not set; remote generation disabled, serving local composites.")

composer = Composer(settings)
warm_placeholders()

app = FastAPI(title="SnapWear Compose Service", version=VERSION)

# CORS middleware: allow browser clients to call this API directly.
# Configure via CORS_ALLOW_ORIGINS env (comma-separated). Defaults to wildcard.
allow_origins = list(settings.cors_allow_origins) or ["*"]
# If wildcard is present, set credentials False and pass ["*"] per Starlette rules
use_wildcard = "*" in allow_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if use_wildcard else allow_origins,
    allow_credentials=False if use_wildcard else True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    return {
        "message": "SnapWear compose backend is running",
        "timestamp": utc_timestamp(),
        "version": VERSION,
    }


@app.get("/api/test")
async def api_test():
    logger.info("[API] Test endpoint called")
    return {
        "success": True,
        "message": "Compose backend is working",
        "timestamp": utc_timestamp(),
        "server": SERVICE_NAME,
    }


@app.post("/api/compose")
async def compose(request: Request):
    """Compose 2-4 photos into one image: remote model first, local fallbacks after."""
    try:
        try:
            payload: Any = await request.json()
        except ValueError:
            payload = None
        req = parse_compose_request(payload)
    except ValidationError as e:
        logger.info(f"[API] Rejected compose request: {e}")
        return JSONResponse(status_code=400, content={"error": str(e)})

    logger.info(
        f"[API] Mode: {req.mode}, Images: {len(req.images)}, "
        f"HighRes: {req.highResolution}, FaceBlur: {req.faceBlur}"
    )
    try:
        result = await composer.compose(req)
        logger.info(f"[API] Composition completed via tier={result.tier}")
        return result.model_dump()
    except Exception as e:
        logger.exception(f"[API] Compose API error: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": str(e) or "Internal server error", "timestamp": utc_timestamp()},
        )


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": utc_timestamp(),
        "service": SERVICE_NAME,
        "gemini_configured": settings.gemini_configured,
        "describe_fallback_enabled": settings.describe_fallback,
        "image_model": settings.image_model,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
