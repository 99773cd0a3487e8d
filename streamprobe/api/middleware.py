import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from streamprobe.utils.exceptions import StreamProbeError
from streamprobe.utils.logger import get_logger

logger = get_logger(__name__)

limiter = Limiter(key_func=get_remote_address)


async def error_handler(request: Request, call_next):
    """Translate errors raised before the response starts into JSON bodies"""
    try:
        return await call_next(request)
    except StreamProbeError as e:
        logger.error(f"Stream setup error: {e.message}")
        return JSONResponse(
            status_code=e.status_code,
            content={"success": False, "error": e.message},
        )
    except Exception:
        logger.exception("Unhandled exception")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Internal server error"},
        )


async def request_logger(request: Request, call_next):
    """Log status and time-to-headers; bodies keep streaming afterwards"""
    start = time.time()
    response = await call_next(request)
    elapsed = (time.time() - start) * 1000
    query = f"?{request.url.query}" if request.url.query else ""
    logger.info(f"{request.method} {request.url.path}{query} → {response.status_code} ({elapsed:.0f}ms)")
    return response


def setup_cors(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
        expose_headers=["Content-Encoding"],
    )


def setup_rate_limit(app: FastAPI) -> None:
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
