from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from .constants import LOGGER, PRODUCTION_SERVER_URL


@dataclass
class Settings:
    app_key: str
    app_secret: str
    server_url: str = PRODUCTION_SERVER_URL
    app_name: str = ""
    app_version: str = ""
    timeout: float = 30.0
    debug: bool = False


def is_truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_env_float(key: str, default: float) -> float:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be a number.")


def load_env(path: str | Path | None = None) -> None:
    env_path = Path(path) if path is not None else Path.cwd() / ".env"
    if not env_path.exists():
        return
    from dotenv import load_dotenv

    load_dotenv(env_path, override=True)


def validate_env() -> None:
    required = ("RC_APP_KEY", "RC_APP_SECRET")
    missing = [key for key in required if not os.getenv(key, "").strip()]
    if missing:
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")

    server_url = os.getenv("RC_SERVER_URL", PRODUCTION_SERVER_URL).strip()
    parsed = urlparse(server_url)
    if parsed.scheme != "https" or not parsed.netloc:
        raise RuntimeError(
            "RC_SERVER_URL must be a valid HTTPS URL (for example: "
            f"{PRODUCTION_SERVER_URL})."
        )


def load_settings() -> Settings:
    validate_env()
    return Settings(
        app_key=os.getenv("RC_APP_KEY", "").strip(),
        app_secret=os.getenv("RC_APP_SECRET", "").strip(),
        server_url=os.getenv("RC_SERVER_URL", PRODUCTION_SERVER_URL).strip(),
        app_name=os.getenv("RC_APP_NAME", ""),
        app_version=os.getenv("RC_APP_VERSION", ""),
        timeout=_get_env_float("RC_SDK_TIMEOUT", 30.0),
        debug=is_truthy(os.getenv("RC_SDK_DEBUG")),
    )


def setup_logging() -> bool:
    debug_enabled = is_truthy(os.getenv("RC_SDK_DEBUG"))
    if debug_enabled:
        logging.basicConfig(level=logging.INFO)
        LOGGER.setLevel(logging.INFO)
    return debug_enabled
