# src/jobradar/config.py
"""
Runtime settings, read from environment variables.

The CLI calls `load_dotenv()` first, so a `.env` file in the project root
works the same as exported variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from jobradar.errors import ConfigError

PACKAGED_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

SINKS = ("json", "sheets")


@dataclass(frozen=True)
class Settings:
    service_url: str = ""
    api_key: str = ""
    timeout: float = 60.0  # seconds per extraction call
    batch_delay: float = 1.0  # pause between batch items
    templates_dir: Path = PACKAGED_TEMPLATES_DIR
    sink: str = "json"
    store_dir: Path = Path("data")
    sheet_id: str = ""
    service_account_file: str = "service_account_jobbot.json"

    def require_service_url(self) -> str:
        if not self.service_url:
            raise ConfigError("SECRETARY_SERVICE_URL is not set (export it or put it in .env).")
        return self.service_url


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {raw!r}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if env is None else env

    sink = (env.get("JOBRADAR_SINK") or "json").strip().lower()
    if sink not in SINKS:
        raise ConfigError(f"JOBRADAR_SINK must be one of {', '.join(SINKS)}, got {sink!r}")

    templates_dir = (env.get("JOBRADAR_TEMPLATES_DIR") or "").strip()

    return Settings(
        service_url=(env.get("SECRETARY_SERVICE_URL") or "").strip().rstrip("/"),
        api_key=(env.get("SECRETARY_SERVICE_API_KEY") or "").strip(),
        timeout=_float(env, "JOBRADAR_TIMEOUT", 60.0),
        batch_delay=_float(env, "JOBRADAR_BATCH_DELAY", 1.0),
        templates_dir=Path(templates_dir) if templates_dir else PACKAGED_TEMPLATES_DIR,
        sink=sink,
        store_dir=Path((env.get("JOBRADAR_STORE_DIR") or "data").strip()),
        sheet_id=(env.get("JOBRADAR_SHEET_ID") or "").strip(),
        service_account_file=(env.get("JOBRADAR_SERVICE_ACCOUNT") or "service_account_jobbot.json").strip(),
    )
