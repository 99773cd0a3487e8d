"""Incremental compression stage between the Pacer and the response body.

Every codec exposes the same three calls: ``compress`` for an input chunk,
``flush`` to force out whatever the codec holds so far (a sync flush, the
stream stays open), and ``finish`` to close the stream. ``wrap`` drives them
per input chunk, so whether output appears before the end of the stream is
decided only by ``flush`` and the codec library.
"""

import zlib
from typing import AsyncIterable, AsyncIterator, Callable, Dict

from streamprobe.models.stream import CompressionMode
from streamprobe.utils.exceptions import UnsupportedEncodingError
from streamprobe.utils.logger import get_logger

logger = get_logger(__name__)

try:
    import brotli
except ImportError:  # optional codec, reported as unsupported
    brotli = None

try:
    import zstandard
except ImportError:  # optional codec, reported as unsupported
    zstandard = None


class Codec:
    def compress(self, data: bytes) -> bytes:
        raise NotImplementedError

    def flush(self) -> bytes:
        raise NotImplementedError

    def finish(self) -> bytes:
        raise NotImplementedError


class ZlibCodec(Codec):
    """gzip (``wbits=31``) or zlib-wrapped deflate (``wbits=15``)."""

    def __init__(self, wbits: int, level: int = 6):
        self._obj = zlib.compressobj(level, zlib.DEFLATED, wbits)

    def compress(self, data: bytes) -> bytes:
        return self._obj.compress(data)

    def flush(self) -> bytes:
        return self._obj.flush(zlib.Z_SYNC_FLUSH)

    def finish(self) -> bytes:
        return self._obj.flush(zlib.Z_FINISH)


class BrotliCodec(Codec):
    def __init__(self, quality: int = 5):
        self._obj = brotli.Compressor(quality=quality)

    def compress(self, data: bytes) -> bytes:
        return self._obj.process(data)

    def flush(self) -> bytes:
        return self._obj.flush()

    def finish(self) -> bytes:
        return self._obj.finish()


class ZstdCodec(Codec):
    def __init__(self, level: int = 3):
        self._obj = zstandard.ZstdCompressor(level=level).compressobj()

    def compress(self, data: bytes) -> bytes:
        return self._obj.compress(data)

    def flush(self) -> bytes:
        return self._obj.flush(zstandard.COMPRESSOBJ_FLUSH_BLOCK)

    def finish(self) -> bytes:
        return self._obj.flush(zstandard.COMPRESSOBJ_FLUSH_FINISH)


CODECS: Dict[CompressionMode, Callable[[], Codec]] = {
    CompressionMode.GZIP: lambda: ZlibCodec(wbits=31),
    CompressionMode.DEFLATE: lambda: ZlibCodec(wbits=15),
    CompressionMode.BROTLI: BrotliCodec,
    CompressionMode.ZSTD: ZstdCodec,
}

_LIBRARIES = {
    CompressionMode.BROTLI: lambda: brotli,
    CompressionMode.ZSTD: lambda: zstandard,
}


def is_supported(mode: CompressionMode) -> bool:
    if mode is CompressionMode.NONE:
        return True
    library = _LIBRARIES.get(mode)
    return library is None or library() is not None


def available_encodings() -> Dict[str, bool]:
    return {mode.value: is_supported(mode) for mode in CompressionMode}


def create_codec(mode: CompressionMode) -> Codec:
    """Instantiate the codec for ``mode``; missing libraries fail fast."""
    if mode is CompressionMode.NONE or not is_supported(mode):
        raise UnsupportedEncodingError(mode.content_encoding or mode.value)
    return CODECS[mode]()


def wrap(
    source: AsyncIterable[bytes], mode: CompressionMode, flush: bool = True
) -> AsyncIterator[bytes]:
    """Compress ``source`` chunk by chunk.

    The codec is created here, before the caller starts a response, so an
    unsupported mode raises instead of degrading to identity.
    """
    if mode is CompressionMode.NONE:
        return _passthrough(source)
    return _compress_stream(source, create_codec(mode), mode, flush)


async def _passthrough(source: AsyncIterable[bytes]) -> AsyncIterator[bytes]:
    async for data in source:
        yield data


async def _compress_stream(
    source: AsyncIterable[bytes], codec: Codec, mode: CompressionMode, flush: bool
) -> AsyncIterator[bytes]:
    consumed = 0
    emitted = 0
    async for data in source:
        consumed += len(data)
        out = codec.compress(data)
        if flush:
            out += codec.flush()
        if out:
            emitted += len(out)
            yield out
        else:
            logger.debug(f"{mode.value}: codec held {len(data)} input bytes")
    tail = codec.finish()
    if tail:
        emitted += len(tail)
        yield tail
    logger.info(f"{mode.value}: compressed {consumed} bytes into {emitted} bytes")
