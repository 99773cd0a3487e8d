import mimetypes
from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import PlainTextResponse, StreamingResponse
from starlette.concurrency import run_in_threadpool

from streamprobe.api.middleware import limiter
from streamprobe.config import Settings, settings as default_settings
from streamprobe.core.compressor import wrap
from streamprobe.core.pacer import Pacer, SlicedPacer, SyntheticPacer
from streamprobe.models.stream import CompressionMode
from streamprobe.utils.exceptions import SetupError
from streamprobe.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


def _rate_limit() -> str:
    return default_settings.RATE_LIMIT


def _settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or default_settings


def _guess_media_type(path) -> str:
    media_type, _ = mimetypes.guess_type(str(path))
    return media_type or "application/octet-stream"


def _stream_response(
    pacer: Pacer, mode: CompressionMode, media_type: str, flush: bool
) -> StreamingResponse:
    body = wrap(pacer, mode, flush=flush)
    headers = dict(STREAM_HEADERS)
    if mode.content_encoding:
        headers["Content-Encoding"] = mode.content_encoding
    return StreamingResponse(body, media_type=media_type, headers=headers)


@router.get("/")
@limiter.limit(_rate_limit)
async def stream_text(
    request: Request,
    fmt: Optional[str] = Query(default=None, alias="format"),
    flush: Optional[bool] = Query(default=None),
):
    """Synthetic padded text chunks, optionally compressed"""
    mode = CompressionMode.parse(fmt)
    if mode is None:
        logger.warning(f"Rejected unknown format: {fmt!r}")
        return PlainTextResponse("Unknown format", status_code=400)

    cfg = _settings(request)
    logger.info(f"Request for format: {mode.value}")
    pacer = SyntheticPacer(cfg.CHUNK_COUNT, cfg.CHUNK_SIZE, cfg.chunk_delay)
    return _stream_response(
        pacer, mode, "text/plain", cfg.COMPRESSION_FLUSH if flush is None else flush
    )


@router.get("/image")
@limiter.limit(_rate_limit)
async def stream_image(
    request: Request,
    fmt: Optional[str] = Query(default=None, alias="format"),
    flush: Optional[bool] = Query(default=None),
):
    """Static binary resource sliced into paced chunks"""
    mode = CompressionMode.parse(fmt)
    if mode is None:
        logger.warning(f"Rejected unknown format: {fmt!r}")
        return PlainTextResponse("Unknown format", status_code=400)

    cfg = _settings(request)
    path = cfg.image_path
    if path is None:
        raise SetupError("IMAGE_PATH is not configured")

    logger.info(f"Request for format: {mode.value} (resource {path.name})")
    pacer = await run_in_threadpool(SlicedPacer.from_path, path, cfg.CHUNK_SIZE, cfg.chunk_delay)
    return _stream_response(
        pacer, mode, _guess_media_type(path), cfg.COMPRESSION_FLUSH if flush is None else flush
    )
