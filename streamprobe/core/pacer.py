import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, Optional

from streamprobe.models.stream import StreamChunk
from streamprobe.utils.exceptions import SetupError
from streamprobe.utils.logger import get_logger

logger = get_logger(__name__)


class Pacer:
    """Finite chunk source that waits ``delay`` seconds before every chunk.

    Subclasses provide ``_produce(index)``; a pacer is single-use, build a
    fresh one per request.
    """

    def __init__(self, delay: float):
        self._delay = max(delay, 0.0)
        self._produced = 0
        self._bytes = 0

    @property
    def produced(self) -> int:
        return self._produced

    @property
    def bytes_produced(self) -> int:
        return self._bytes

    def _exhausted(self) -> bool:
        raise NotImplementedError

    def _produce(self, index: int) -> bytes:
        raise NotImplementedError

    async def next_chunk(self) -> Optional[StreamChunk]:
        """Next chunk after the pacing delay, or ``None`` once exhausted."""
        if self._exhausted():
            return None
        # simulates a slow upstream (disk, network, computation)
        await asyncio.sleep(self._delay)
        index = self._produced + 1
        chunk = StreamChunk(index=index, data=self._produce(index))
        self._produced = index
        self._bytes += len(chunk)
        logger.info(f"Sending chunk {index}: {len(chunk)} bytes")
        return chunk

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._iter_bytes()

    async def _iter_bytes(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self.next_chunk()
            if chunk is None:
                return
            yield chunk.data


class SyntheticPacer(Pacer):
    """``count`` padded text chunks of exactly ``chunk_size`` bytes."""

    def __init__(self, count: int, chunk_size: int, delay: float):
        super().__init__(delay)
        self._count = count
        self._chunk_size = chunk_size

    @property
    def total_bytes(self) -> int:
        return self._count * self._chunk_size

    def _exhausted(self) -> bool:
        return self._produced >= self._count

    def _produce(self, index: int) -> bytes:
        stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        header = f"--- Chunk {index} at {stamp} ---\n".encode("ascii")
        padding = b"x" * max(self._chunk_size - len(header) - 1, 0)
        return header + padding + b"\n"


class SlicedPacer(Pacer):
    """Slices an in-memory binary resource into ``chunk_size`` pieces."""

    def __init__(self, payload: bytes, chunk_size: int, delay: float):
        super().__init__(delay)
        self._payload = memoryview(payload)
        self._chunk_size = chunk_size
        self._offset = 0

    @classmethod
    def from_path(cls, path: Path, chunk_size: int, delay: float) -> "SlicedPacer":
        """Read ``path`` once; unreadable files raise ``SetupError``."""
        try:
            payload = Path(path).read_bytes()
        except OSError as e:
            raise SetupError(f"Cannot read stream resource {path}: {e.strerror or e}") from e
        logger.info(f"Loaded stream resource {path} ({len(payload)} bytes)")
        return cls(payload, chunk_size, delay)

    @property
    def total_bytes(self) -> int:
        return len(self._payload)

    def _exhausted(self) -> bool:
        return self._offset >= len(self._payload)

    def _produce(self, index: int) -> bytes:
        piece = self._payload[self._offset:self._offset + self._chunk_size]
        self._offset += len(piece)
        return piece.tobytes()
