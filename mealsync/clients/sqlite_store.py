"""SQLite tables backing the Fitbit credential store and OAuth state mapping."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Dict, Optional


class SQLiteStore:
    """Row-level access to ``fitbit_credentials`` and ``oauth_states``.

    Token columns hold ciphertext; encryption happens in the service layer.
    Every mutation is a single statement so concurrent writers for the same
    user resolve as last-write-wins.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False, timeout=5.0)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS fitbit_credentials (
                    user_id TEXT PRIMARY KEY,
                    access_token_encrypted TEXT,
                    refresh_token_encrypted TEXT,
                    provider_user_id TEXT,
                    connected_at TEXT,
                    updated_at TEXT
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS oauth_states (
                    state TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    issued_at TEXT NOT NULL
                )
                """
            )

    # Credentials

    def upsert_credentials(
        self,
        *,
        user_id: str,
        access_token_encrypted: str,
        refresh_token_encrypted: str,
        provider_user_id: Optional[str],
        connected_at: str,
        updated_at: str,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO fitbit_credentials (
                    user_id, access_token_encrypted, refresh_token_encrypted,
                    provider_user_id, connected_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    access_token_encrypted = excluded.access_token_encrypted,
                    refresh_token_encrypted = excluded.refresh_token_encrypted,
                    provider_user_id = excluded.provider_user_id,
                    connected_at = excluded.connected_at,
                    updated_at = excluded.updated_at
                """,
                (
                    user_id,
                    access_token_encrypted,
                    refresh_token_encrypted,
                    provider_user_id,
                    connected_at,
                    updated_at,
                ),
            )

    def get_credentials(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM fitbit_credentials WHERE user_id = ?",
                (user_id,),
            ).fetchone()
        if not row:
            return None
        return dict(row)

    def update_tokens(
        self,
        *,
        user_id: str,
        access_token_encrypted: str,
        refresh_token_encrypted: str,
        updated_at: str,
    ) -> bool:
        """Replace both tokens of an existing row. Returns False when no row matched."""
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE fitbit_credentials
                SET access_token_encrypted = ?, refresh_token_encrypted = ?, updated_at = ?
                WHERE user_id = ?
                """,
                (access_token_encrypted, refresh_token_encrypted, updated_at, user_id),
            )
        return cursor.rowcount > 0

    def clear_credentials(self, *, user_id: str, updated_at: str) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE fitbit_credentials
                SET access_token_encrypted = NULL,
                    refresh_token_encrypted = NULL,
                    provider_user_id = NULL,
                    connected_at = NULL,
                    updated_at = ?
                WHERE user_id = ?
                """,
                (updated_at, user_id),
            )

    # OAuth states

    def insert_state(self, *, state: str, user_id: str, issued_at: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO oauth_states (state, user_id, issued_at) VALUES (?, ?, ?)",
                (state, user_id, issued_at),
            )

    def pop_state(self, state: str) -> Optional[Dict[str, Any]]:
        """Delete and return a state row; only one caller can win the delete."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT state, user_id, issued_at FROM oauth_states WHERE state = ?",
                (state,),
            ).fetchone()
            if not row:
                return None
            cursor = conn.execute("DELETE FROM oauth_states WHERE state = ?", (state,))
            if cursor.rowcount == 0:
                return None
        return dict(row)

    def delete_states_issued_before(self, threshold: str) -> int:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM oauth_states WHERE issued_at < ?",
                (threshold,),
            )
        return cursor.rowcount


__all__ = ["SQLiteStore"]
