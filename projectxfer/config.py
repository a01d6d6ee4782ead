"""Environment-driven defaults for the migrator.

Every value can also be given on the command line; the CLI falls back to these
when a flag is omitted. A ``.env`` file in the working directory is honoured.
"""

from __future__ import annotations

import os
from typing import Optional

from dotenv import find_dotenv, load_dotenv

DEFAULT_EXPORT_DIR = "./exports"
DEFAULT_HTTP_TIMEOUT = 120.0

# CLI flag -> environment variable
ENDPOINT_ENV_VARS: dict[str, str] = {
    "source_url": "PROJECTXFER_SOURCE_URL",
    "source_user": "PROJECTXFER_SOURCE_USER",
    "source_password": "PROJECTXFER_SOURCE_PASSWORD",
    "target_url": "PROJECTXFER_TARGET_URL",
    "target_user": "PROJECTXFER_TARGET_USER",
    "target_password": "PROJECTXFER_TARGET_PASSWORD",
}


def load_env(path: Optional[str] = None) -> None:
    """Load ``.env`` (default: searched from the working directory) without overriding the process env."""
    load_dotenv(path or find_dotenv(usecwd=True), override=False)


def _truthy(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def _float_env(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def env_value(name: str) -> Optional[str]:
    value = (os.getenv(name) or "").strip()
    return value or None


def endpoint_default(option: str) -> Optional[str]:
    env_name = ENDPOINT_ENV_VARS.get(option)
    return env_value(env_name) if env_name else None


def export_dir() -> str:
    return env_value("PROJECTXFER_EXPORT_DIR") or DEFAULT_EXPORT_DIR


def http_timeout() -> float:
    return _float_env("PROJECTXFER_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT)


def verify_tls() -> bool:
    # BAW test/dev servers usually run with self-signed certificates.
    return _truthy(os.getenv("PROJECTXFER_VERIFY_TLS"))
