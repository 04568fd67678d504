from typing import Any

import psycopg
from psycopg.types.json import Jsonb

from reportdesk.database.base import StateBackend
from reportdesk.database.connection import get_connection
from reportdesk.database.exceptions import StateBackendError


class PostgresStateBackend(StateBackend):
    """Stores state blobs in the app_state table, one JSONB row per key."""

    def ensure_schema(self) -> None:
        """Create the app_state table if it does not exist yet."""
        with get_connection() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS app_state (
                    key TEXT PRIMARY KEY,
                    value JSONB NOT NULL,
                    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                )
                """
            )
            conn.commit()

    def load(self, key: str) -> Any | None:
        try:
            with get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT value FROM app_state WHERE key = %s", (key,))
                    row = cur.fetchone()
        except psycopg.Error as exc:
            raise StateBackendError(f"Cannot load state '{key}': {exc}") from exc

        if row is None:
            return None
        return row[0]

    def save(self, key: str, value: Any) -> None:
        try:
            with get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO app_state (key, value, updated_at)
                    VALUES (%s, %s, NOW())
                    ON CONFLICT (key)
                    DO UPDATE SET value = EXCLUDED.value, updated_at = NOW()
                    """,
                    (key, Jsonb(value)),
                )
                conn.commit()
        except psycopg.Error as exc:
            raise StateBackendError(f"Cannot save state '{key}': {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            with get_connection() as conn:
                conn.execute("DELETE FROM app_state WHERE key = %s", (key,))
                conn.commit()
        except psycopg.Error as exc:
            raise StateBackendError(f"Cannot delete state '{key}': {exc}") from exc
