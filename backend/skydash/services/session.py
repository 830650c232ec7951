from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from itertools import count
from pathlib import Path
from typing import Protocol

from pydantic import TypeAdapter, ValidationError

from skydash.schemas import CurrentConditions, DashboardState, FavoriteCity, HistoryEntry


logger = logging.getLogger(__name__)

FAVORITES_KEY = "weatherAppFavorites"
HISTORY_KEY = "weatherAppHistory"
THEME_KEY = "weatherAppTheme"
UNITS_KEY = "weatherAppUnits"

KV_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at_utc TEXT NOT NULL
);
"""

_favorites_adapter = TypeAdapter(tuple[FavoriteCity, ...])
_history_adapter = TypeAdapter(tuple[HistoryEntry, ...])


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryKeyValueStore:
    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class SqliteKeyValueStore:
    """Single-table key/value store; a later write to a key replaces the earlier one."""

    def __init__(self, path: str | Path) -> None:
        self._db_path = Path(path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with sqlite3.connect(self._db_path) as conn:
            conn.execute(KV_TABLE_SQL)
            conn.commit()

    def get(self, key: str) -> str | None:
        with sqlite3.connect(self._db_path) as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with sqlite3.connect(self._db_path) as conn:
            conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_at_utc) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at_utc = excluded.updated_at_utc
                """,
                (key, value, _utc_now_iso()),
            )
            conn.commit()


class SessionRepository:
    def __init__(self, store: KeyValueStore, *, default_units: str = "metric") -> None:
        self.store = store
        self.default_units = default_units

    def load(self) -> DashboardState:
        favorites = self._load_json(FAVORITES_KEY, _favorites_adapter, ())
        history = self._load_json(HISTORY_KEY, _history_adapter, ())
        theme = self.store.get(THEME_KEY)
        units = self.store.get(UNITS_KEY)
        return DashboardState(
            favorites=favorites,
            history=history,
            theme=theme if theme in {"dark", "light"} else "dark",
            units=units if units in {"metric", "imperial"} else self.default_units,
        )

    def save(self, state: DashboardState) -> None:
        self.store.set(FAVORITES_KEY, _favorites_adapter.dump_json(state.favorites).decode())
        self.store.set(HISTORY_KEY, _history_adapter.dump_json(state.history).decode())
        self.store.set(THEME_KEY, state.theme)
        self.store.set(UNITS_KEY, state.units)

    def _load_json(self, key: str, adapter: TypeAdapter, default: tuple) -> tuple:
        raw = self.store.get(key)
        if not raw:
            return default
        try:
            return adapter.validate_json(raw)
        except ValidationError as exc:
            logger.error("Discarding unreadable stored value for %s: %s", key, exc)
            return default


class FetchSequencer:
    """Hands out increasing tokens so only the newest fetch may publish its result."""

    def __init__(self) -> None:
        self._counter = count(1)
        self._latest = 0

    def issue(self) -> int:
        self._latest = next(self._counter)
        return self._latest

    def is_current(self, token: int) -> bool:
        return token == self._latest


def is_favorite(state: DashboardState, location_id: int | None) -> bool:
    return location_id is not None and any(item.location_id == location_id for item in state.favorites)


def add_favorite(state: DashboardState, snapshot: CurrentConditions, *, now: datetime | None = None) -> DashboardState:
    if snapshot.location_id is None or is_favorite(state, snapshot.location_id):
        return state
    entry = FavoriteCity(location_id=snapshot.location_id, saved_at=_utc_now_iso(now), snapshot=snapshot)
    return state.model_copy(update={"favorites": (*state.favorites, entry)})


def remove_favorite(state: DashboardState, location_id: int) -> DashboardState:
    remaining = tuple(item for item in state.favorites if item.location_id != location_id)
    return state.model_copy(update={"favorites": remaining})


def record_history(
    state: DashboardState,
    snapshot: CurrentConditions,
    *,
    limit: int = 5,
    now: datetime | None = None,
) -> DashboardState:
    if snapshot.location_id is None:
        return state
    entry = HistoryEntry(location_id=snapshot.location_id, saved_at=_utc_now_iso(now), snapshot=snapshot)
    others = tuple(item for item in state.history if item.location_id != snapshot.location_id)
    return state.model_copy(update={"history": (entry, *others)[: max(1, limit)]})


def set_theme(state: DashboardState, theme: str) -> DashboardState:
    return state.model_copy(update={"theme": theme})


def toggle_theme(state: DashboardState) -> DashboardState:
    return set_theme(state, "light" if state.theme == "dark" else "dark")


def set_units(state: DashboardState, units: str) -> DashboardState:
    return state.model_copy(update={"units": units})


def toggle_units(state: DashboardState) -> DashboardState:
    return set_units(state, "imperial" if state.units == "metric" else "metric")


def _utc_now_iso(now: datetime | None = None) -> str:
    return (now or datetime.now(tz=timezone.utc)).isoformat()
