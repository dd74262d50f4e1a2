"""Configuration management for the burger ordering service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Mapping, Optional

_PACKAGE_DIR = Path(__file__).resolve().parent

DEFAULT_ACCESS_TOKEN_TTL = timedelta(minutes=20)
DEFAULT_REFRESH_TOKEN_TTL = timedelta(days=30)
DEFAULT_CATALOG_TIMEOUT = 5.0
DEFAULT_ORDER_START = 1
DEFAULT_ORDER_PAGE_LIMIT = 50


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the service database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = _PACKAGE_DIR.parent / "data"
    return (base_dir / "burgers.sqlite3").resolve(strict=False)


def resolve_catalog_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the ingredient catalog file."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    return (_PACKAGE_DIR / "data" / "ingredients.yaml").resolve(strict=False)


def _positive_int(raw: Optional[str], default: int, *, name: str) -> int:
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < 1:
        raise ValueError(f"{name} must be a positive integer")
    return value


def _positive_float(raw: Optional[str], default: float, *, name: str) -> float:
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be a number") from exc
    if value <= 0:
        raise ValueError(f"{name} must be greater than zero")
    return value


@dataclass(frozen=True)
class Settings:
    """Runtime settings, normally read from ``BURGERS_*`` environment variables."""

    database_path: Path
    catalog_path: Path
    catalog_url: Optional[str] = None
    catalog_timeout: float = DEFAULT_CATALOG_TIMEOUT
    access_token_ttl: timedelta = DEFAULT_ACCESS_TOKEN_TTL
    refresh_token_ttl: timedelta = DEFAULT_REFRESH_TOKEN_TTL
    order_start: int = DEFAULT_ORDER_START
    order_page_limit: int = DEFAULT_ORDER_PAGE_LIMIT

    @staticmethod
    def from_env(environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ

        access_seconds = _positive_int(
            env.get("BURGERS_ACCESS_TOKEN_TTL"),
            int(DEFAULT_ACCESS_TOKEN_TTL.total_seconds()),
            name="BURGERS_ACCESS_TOKEN_TTL",
        )
        refresh_seconds = _positive_int(
            env.get("BURGERS_REFRESH_TOKEN_TTL"),
            int(DEFAULT_REFRESH_TOKEN_TTL.total_seconds()),
            name="BURGERS_REFRESH_TOKEN_TTL",
        )
        catalog_url = (env.get("BURGERS_CATALOG_URL") or "").strip() or None

        return Settings(
            database_path=resolve_database_path(env.get("BURGERS_DB_PATH")),
            catalog_path=resolve_catalog_path(env.get("BURGERS_CATALOG_PATH")),
            catalog_url=catalog_url,
            catalog_timeout=_positive_float(
                env.get("BURGERS_CATALOG_TIMEOUT"),
                DEFAULT_CATALOG_TIMEOUT,
                name="BURGERS_CATALOG_TIMEOUT",
            ),
            access_token_ttl=timedelta(seconds=access_seconds),
            refresh_token_ttl=timedelta(seconds=refresh_seconds),
            order_start=_positive_int(
                env.get("BURGERS_ORDER_START"), DEFAULT_ORDER_START, name="BURGERS_ORDER_START"
            ),
            order_page_limit=_positive_int(
                env.get("BURGERS_ORDER_PAGE_LIMIT"),
                DEFAULT_ORDER_PAGE_LIMIT,
                name="BURGERS_ORDER_PAGE_LIMIT",
            ),
        )


__all__ = ["Settings", "resolve_catalog_path", "resolve_database_path"]
