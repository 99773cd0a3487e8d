from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CompressionMode(str, Enum):
    NONE = "none"
    GZIP = "gzip"
    DEFLATE = "deflate"
    BROTLI = "brotli"
    ZSTD = "zstd"

    @classmethod
    def parse(cls, token: Optional[str]) -> Optional["CompressionMode"]:
        """Map a ``format`` query value to a mode; ``None`` when unrecognized."""
        # an empty value counts as omitted; tokens match exactly
        if not token:
            return cls.NONE
        try:
            return cls(token)
        except ValueError:
            return None

    @property
    def content_encoding(self) -> Optional[str]:
        """Registered ``Content-Encoding`` token, ``None`` for identity."""
        return _CONTENT_ENCODINGS[self]


_CONTENT_ENCODINGS = {
    CompressionMode.NONE: None,
    CompressionMode.GZIP: "gzip",
    CompressionMode.DEFLATE: "deflate",
    CompressionMode.BROTLI: "br",
    CompressionMode.ZSTD: "zstd",
}


class StreamChunk(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=1)
    data: bytes

    def __len__(self) -> int:
        return len(self.data)
