"""Shared state for the Bitcoin Merchant Map API: loaded config and suggestion store."""

from __future__ import annotations

import logging
import os
import threading
from datetime import datetime, timezone
from typing import Any

from fastapi import HTTPException

from ..algorithms.composite_scorer import ConfigError, ScorerConfig, load_default_config

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "MERCHANT_DEDUP_CONFIG"

# ---------------------------------------------------------------------------
# Deduplication config (populated by load_config)
# ---------------------------------------------------------------------------

_CONFIG: ScorerConfig | None = None


def load_config() -> ScorerConfig:
    """Load the config named by MERCHANT_DEDUP_CONFIG, else the bundled rules."""
    global _CONFIG  # noqa: PLW0603

    path = os.environ.get(CONFIG_ENV_VAR)
    if path:
        _CONFIG = ScorerConfig.from_yaml(path)
        logger.info("Loaded dedup config from %s", path)
    else:
        _CONFIG = load_default_config()
        logger.info("Loaded bundled dedup config")
    return _CONFIG


def get_config() -> ScorerConfig:
    if _CONFIG is None:
        return load_config()
    return _CONFIG


def config_with_overrides(overrides: dict[str, Any] | None) -> ScorerConfig:
    """Apply request overrides to the loaded config; invalid values → 422."""
    config = get_config()
    if not overrides:
        return config
    try:
        return config.with_overrides(**overrides)
    except ConfigError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# Merchant suggestions (in-memory)
# ---------------------------------------------------------------------------


class SuggestionStore:
    """Thread-safe in-memory list of submitted merchant suggestions."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: list[dict[str, Any]] = []
        self._next_id = 1

    def add(self, data: dict[str, Any]) -> dict[str, Any]:
        with self._lock:
            merchant = {
                **data,
                "id": str(self._next_id),
                "created_at": datetime.now(timezone.utc).isoformat(),
            }
            self._next_id += 1
            self._items.append(merchant)
            return dict(merchant)

    def list(self) -> list[dict[str, Any]]:
        with self._lock:
            return [dict(m) for m in self._items]

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
            self._next_id = 1

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


_STORE = SuggestionStore()


def get_store() -> SuggestionStore:
    return _STORE
