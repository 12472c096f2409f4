from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_SETTINGS_FILE = "~/.resource-forecast/settings.json"


@dataclass(frozen=True)
class RuntimeConfig:
    base_url: str
    api_token: str | None
    settings_file: Path
    range_days: int
    timeout_s: float


def load_env(dotenv_path: str | Path | None = None) -> None:
    path = Path(dotenv_path) if dotenv_path else None
    if path and path.exists():
        load_dotenv(path)
        return
    load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 1:
        raise ValueError(f"{name} must be at least 1, got {value}")
    return value


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def runtime_config() -> RuntimeConfig:
    base_url = os.getenv("FORECAST_BASE_URL", DEFAULT_BASE_URL).rstrip("/")
    api_token = os.getenv("FORECAST_API_TOKEN", "").strip() or None
    settings_file = Path(os.getenv("FORECAST_SETTINGS_FILE", DEFAULT_SETTINGS_FILE)).expanduser().resolve()
    return RuntimeConfig(
        base_url=base_url,
        api_token=api_token,
        settings_file=settings_file,
        range_days=_int_env("FORECAST_RANGE_DAYS", 30),
        timeout_s=_float_env("FORECAST_HTTP_TIMEOUT", 30.0),
    )
