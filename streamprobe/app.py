from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request

from streamprobe.api.middleware import error_handler, request_logger, setup_cors, setup_rate_limit
from streamprobe.api.router import router as api_router
from streamprobe.config import Settings, settings as default_settings
from streamprobe.core.compressor import available_encodings
from streamprobe.models.response import HealthResponse, StreamConfig
from streamprobe.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

SERVICE_NAME = "Stream Probe"
VERSION = "1.0.0"


# ------------------------------------------------------------------
# Lifespan
# ------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    cfg: Settings = app.state.settings
    logger.info(
        f"Starting {SERVICE_NAME}: {cfg.CHUNK_COUNT} chunks x {cfg.CHUNK_SIZE} bytes, "
        f"{cfg.CHUNK_DELAY_MS}ms apart, flush={cfg.COMPRESSION_FLUSH}"
    )
    missing = [name for name, ok in available_encodings().items() if not ok]
    if missing:
        logger.warning(f"Codecs unavailable in this runtime: {', '.join(missing)}")

    path = cfg.image_path
    if path is not None and not path.is_file():
        logger.warning(f"IMAGE_PATH {path} is not a readable file, /image will fail")

    yield
    logger.info(f"Shutting down {SERVICE_NAME}...")


def _stream_config(cfg: Settings) -> StreamConfig:
    path = cfg.image_path
    return StreamConfig(
        chunk_delay_ms=cfg.CHUNK_DELAY_MS,
        chunk_size=cfg.CHUNK_SIZE,
        chunk_count=cfg.CHUNK_COUNT,
        flush=cfg.COMPRESSION_FLUSH,
        image_path=str(path) if path else None,
    )


# ------------------------------------------------------------------
# App factory
# ------------------------------------------------------------------
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    cfg = settings or default_settings
    setup_logging(cfg.LOG_LEVEL)

    app = FastAPI(
        title=SERVICE_NAME,
        description="Paced, optionally compressed streaming responses for buffering diagnostics",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = cfg

    # later registrations run first
    app.middleware("http")(error_handler)
    app.middleware("http")(request_logger)
    setup_cors(app)
    setup_rate_limit(app)

    @app.get("/health", tags=["Health"], response_model=HealthResponse)
    async def health(request: Request):
        return HealthResponse(
            status="ok",
            service=SERVICE_NAME,
            version=VERSION,
            stream=_stream_config(request.app.state.settings),
            encodings=available_encodings(),
        )

    app.include_router(api_router)

    return app


app = create_app()
