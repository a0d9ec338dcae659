"""SQLite-backed horizon profile store."""

from __future__ import annotations

import json
import sqlite3
from threading import Lock
from typing import Protocol

from maximum_horizon.contracts import HorizonProfile


def profile_key(name: str) -> str:
    """Return the case-insensitive storage key for a profile name."""
    return name.strip().casefold()


class ProfileStore(Protocol):
    """Interface for named horizon profile persistence."""

    def get(self, name: str) -> HorizonProfile | None:
        """Get one profile by name, returning None when not present."""

    def put(self, profile: HorizonProfile) -> None:
        """Insert or replace one profile."""

    def delete(self, name: str) -> bool:
        """Delete one profile, returning whether it existed."""

    def list_names(self) -> list[str]:
        """Return stored profile names sorted case-insensitively."""


class SQLiteProfileStore(ProfileStore):
    """Thread-safe SQLite profile store using deterministic JSON payload serialization."""

    def __init__(self, path: str) -> None:
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._lock = Lock()
        with self._lock:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS horizon_profile (
                    name_key TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    payload_json TEXT NOT NULL
                )
                """
            )
            self._conn.commit()

    def get(self, name: str) -> HorizonProfile | None:
        """Get one profile by name, returning None when absent.

        Raises:
            ValueError: If the stored payload cannot be decoded.
        """
        with self._lock:
            row = self._conn.execute(
                "SELECT payload_json FROM horizon_profile WHERE name_key = ?",
                (profile_key(name),),
            ).fetchone()
        if row is None:
            return None
        try:
            payload = json.loads(str(row[0]))
            return HorizonProfile.from_dict(payload)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"corrupt horizon profile payload for {name!r}: {exc}") from exc

    def put(self, profile: HorizonProfile) -> None:
        """Insert or replace one profile."""
        payload_json = json.dumps(profile.to_dict(), sort_keys=True, separators=(",", ":"))
        with self._lock:
            self._conn.execute(
                """
                INSERT OR REPLACE INTO horizon_profile (name_key, name, payload_json)
                VALUES (?, ?, ?)
                """,
                (profile_key(profile.name), profile.name, payload_json),
            )
            self._conn.commit()

    def delete(self, name: str) -> bool:
        """Delete one profile, returning whether a row was removed."""
        with self._lock:
            cursor = self._conn.execute(
                "DELETE FROM horizon_profile WHERE name_key = ?",
                (profile_key(name),),
            )
            self._conn.commit()
        return cursor.rowcount > 0

    def list_names(self) -> list[str]:
        """Return stored profile names sorted case-insensitively."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT name FROM horizon_profile ORDER BY name_key"
            ).fetchall()
        return [str(row[0]) for row in rows]

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            self._conn.close()
