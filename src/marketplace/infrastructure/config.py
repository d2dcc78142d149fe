"""Runtime settings, read from ``MARKETPLACE_*`` environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

# Resolve data directory relative to the project root.
# When installed in editable mode the project root is the repo root.
_DATA_DIR = Path(__file__).resolve().parents[3] / "data"

DEFAULT_DATABASE_URL = f"sqlite+aiosqlite:///{_DATA_DIR / 'marketplace.db'}"


def _as_bool(raw: str | None, default: bool) -> bool:
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    log_level: str = "INFO"
    log_json: bool = False
    admin_ids: tuple[str, ...] = field(default_factory=tuple)
    payment_gateway_url: str | None = None
    payment_timeout: float = 10.0
    outbox_max_attempts: int = 5
    outbox_batch_size: int = 100

    @staticmethod
    def from_env(environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        admin_ids = tuple(
            part.strip()
            for part in env.get("MARKETPLACE_ADMIN_IDS", "").split(",")
            if part.strip()
        )
        return Settings(
            database_url=env.get("MARKETPLACE_DATABASE_URL", DEFAULT_DATABASE_URL),
            log_level=env.get("MARKETPLACE_LOG_LEVEL", "INFO").upper(),
            log_json=_as_bool(env.get("MARKETPLACE_LOG_JSON"), False),
            admin_ids=admin_ids,
            payment_gateway_url=env.get("MARKETPLACE_PAYMENT_GATEWAY_URL") or None,
            payment_timeout=float(env.get("MARKETPLACE_PAYMENT_TIMEOUT", "10")),
            outbox_max_attempts=int(env.get("MARKETPLACE_OUTBOX_MAX_ATTEMPTS", "5")),
            outbox_batch_size=int(env.get("MARKETPLACE_OUTBOX_BATCH_SIZE", "100")),
        )
