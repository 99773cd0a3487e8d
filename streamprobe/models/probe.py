from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from streamprobe.models.stream import CompressionMode


class Classification(str, Enum):
    STREAMING = "streaming"
    BUFFERED = "buffered"


class ArrivalEvent(BaseModel):
    """One body read on the client; the closing ``final`` event carries totals."""

    model_config = ConfigDict(frozen=True)

    elapsed_ms: int = Field(ge=0)
    byte_length: int = Field(ge=0)
    sequence_index: int
    final: bool = False


class ProbeResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: CompressionMode
    total_bytes: int = 0
    chunk_count: int = 0
    total_elapsed_ms: int = 0
    classification: Optional[Classification] = None
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
