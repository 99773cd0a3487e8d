from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Harness configuration, loaded from the environment or .env"""

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    RATE_LIMIT: str = "600/minute"

    # Pacer
    CHUNK_DELAY_MS: int = Field(default=500, ge=0)
    CHUNK_SIZE: int = Field(default=10 * 1024, ge=64)
    CHUNK_COUNT: int = Field(default=5, ge=1)
    IMAGE_PATH: str = ""

    # Compressor
    COMPRESSION_FLUSH: bool = True

    # Probe
    BASE_URL: str = "http://localhost:3000"
    PROBE_TIMEOUT: float = 30.0
    PROBE_DECODE: bool = False
    STREAMING_THRESHOLD: int = Field(default=5, ge=2)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def chunk_delay(self) -> float:
        """Pacing delay in seconds."""
        return self.CHUNK_DELAY_MS / 1000.0

    @property
    def image_path(self) -> Optional[Path]:
        path = self.IMAGE_PATH.strip()
        if not path:
            return None
        return Path(path).expanduser()


settings = Settings()
