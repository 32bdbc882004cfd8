import logging
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

# apps/backend/src/nodebase/config.py -> parents[2] == apps/backend
BACKEND_DIR = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------
    database_path: Path = BACKEND_DIR / "data" / "nodebase.db"

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    http_timeout: float = 30.0      # seconds, per outbound HTTP request node
    max_attempts: int = 4           # total attempts per run before giving up

    # ------------------------------------------------------------------
    # Realtime
    # ------------------------------------------------------------------
    realtime_queue_size: int = 256  # per subscriber, events beyond this are dropped

    # ------------------------------------------------------------------
    # HTTP surface
    # ------------------------------------------------------------------
    public_base_url: str = "http://localhost:8000"  # used to build webhook URLs
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
