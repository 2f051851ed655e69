"""Environment-driven settings and logging setup."""
import logging
import os
import sys
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://localhost:5173"]

_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"


def _env_float(key: str, default: float) -> float:
    raw = os.getenv(key, "").strip()
    return float(raw) if raw else default


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key, "").strip()
    return int(raw) if raw else default


@dataclass
class Settings:
    ai_provider: str = "gemini"  # gemini|openai
    ai_model: str = "gemini-2.0-flash-exp"
    ai_api_key: Optional[str] = None
    ai_base_url: str = GEMINI_BASE_URL
    ai_temperature: float = 0.7
    ai_max_output_tokens: int = 8192
    ai_timeout_seconds: float = 60.0
    ai_max_attempts: int = 3
    ai_rate_limit_per_minute: float = 15.0
    ai_rate_limit_burst: int = 5
    batch_pause_seconds: float = 2.0
    rate_limit_window_seconds: float = 900.0
    general_rate_limit_max: int = 100
    optimize_rate_limit_max: int = 20
    database_url: str = "sqlite:///./resume_optimizer.db"
    files_dir: str = "./files"
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    log_level: str = "INFO"


def load_settings() -> Settings:
    provider = os.getenv("AI_PROVIDER", "gemini").strip().lower() or "gemini"
    if provider == "openai":
        api_key = os.getenv("OPENAI_API_KEY")
        base_url = os.getenv("AI_BASE_URL") or OPENAI_BASE_URL
        model = os.getenv("AI_MODEL") or "gpt-4o-mini"
    else:
        api_key = os.getenv("GEMINI_API_KEY")
        base_url = os.getenv("AI_BASE_URL") or GEMINI_BASE_URL
        model = os.getenv("AI_MODEL") or "gemini-2.0-flash-exp"

    origins_env = os.getenv("CORS_ORIGINS")
    origins = [o.strip() for o in (origins_env or "").split(",") if o.strip()]

    return Settings(
        ai_provider=provider,
        ai_model=model,
        ai_api_key=(api_key or "").strip() or None,
        ai_base_url=base_url.rstrip("/"),
        ai_temperature=_env_float("AI_TEMPERATURE", 0.7),
        ai_max_output_tokens=_env_int("AI_MAX_OUTPUT_TOKENS", 8192),
        ai_timeout_seconds=_env_float("AI_TIMEOUT_SECONDS", 60.0),
        ai_max_attempts=_env_int("AI_MAX_ATTEMPTS", 3),
        ai_rate_limit_per_minute=_env_float("AI_RATE_LIMIT_PER_MINUTE", 15.0),
        ai_rate_limit_burst=_env_int("AI_RATE_LIMIT_BURST", 5),
        batch_pause_seconds=_env_float("BATCH_PAUSE_SECONDS", 2.0),
        rate_limit_window_seconds=_env_float("RATE_LIMIT_WINDOW_SECONDS", 900.0),
        general_rate_limit_max=_env_int("RATE_LIMIT_MAX_REQUESTS", 100),
        optimize_rate_limit_max=_env_int("OPTIMIZE_RATE_LIMIT_MAX", 20),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./resume_optimizer.db"),
        files_dir=os.getenv("FILES_DIR", "./files"),
        cors_origins=origins or list(DEFAULT_CORS_ORIGINS),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()


def configure_logging(level_name: Optional[str] = None) -> None:
    """Attach a stdout handler to the root logger once."""
    level = getattr(logging, (level_name or get_settings().log_level).upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    if root.handlers:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)
