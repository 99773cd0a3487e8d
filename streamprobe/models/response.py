from pydantic import BaseModel, Field
from typing import Dict, Optional


class StreamConfig(BaseModel):
    chunk_delay_ms: int
    chunk_size: int
    chunk_count: int
    flush: bool
    image_path: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    stream: StreamConfig
    encodings: Dict[str, bool] = Field(default_factory=dict)
