from fastapi import APIRouter

from streamprobe.api import stream

router = APIRouter()

router.include_router(stream.router, tags=["Stream"])
