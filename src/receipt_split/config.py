"""
Runtime configuration for the split engine.

Values are read from the process environment, with a local `.env` file loaded
first via python-dotenv.
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from receipt_split.utils.logging_config import setup_logging


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class SplitSettings(BaseModel):
    """Settings consumed by the HTTP backend, the cache and split sessions."""
    api_base_url: str = "http://localhost:8000/api/v1"
    api_token: Optional[str] = None
    api_timeout: float = Field(default=30.0, gt=0)
    cache_max_concurrent: int = Field(default=5, ge=1)
    strict_mode: bool = True
    self_name: str = "Me"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "SplitSettings":
        """Builds settings from `SPLIT_*` environment variables and applies the log level."""
        load_dotenv()
        settings = cls(
            api_base_url=os.getenv("SPLIT_API_BASE_URL", "http://localhost:8000/api/v1"),
            api_token=os.getenv("SPLIT_API_TOKEN") or None,
            api_timeout=float(os.getenv("SPLIT_API_TIMEOUT", "30")),
            cache_max_concurrent=int(os.getenv("SPLIT_CACHE_MAX_CONCURRENT", "5")),
            strict_mode=_env_bool("SPLIT_STRICT_MODE", True),
            self_name=os.getenv("SPLIT_SELF_NAME", "Me"),
            log_level=os.getenv("SPLIT_LOG_LEVEL", "INFO").upper(),
        )
        setup_logging(level=settings.log_level)
        return settings
