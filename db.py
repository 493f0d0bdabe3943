"""
db.py
SQLite helpers: the client record store, the local key-value store
(plan catalogs, activity logs) and a small change-notification channel.
"""

from __future__ import annotations

import inspect
import logging
import sqlite3
import threading
import weakref
from contextlib import contextmanager
from pathlib import Path
from typing import Callable

from config import settings

logger = logging.getLogger(__name__)

DB_FILE: Path = settings.storage.db_file
LOCAL_DB_FILE: Path = settings.storage.local_db_file

_listeners: list[Callable[[], Callable | None]] = []
_listeners_lock = threading.Lock()


@contextmanager
def get_conn(path: Path | None = None):
    conn = sqlite3.connect(path or DB_FILE, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def execute(sql: str, params: tuple = ()) -> int:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.lastrowid


def execute_rowcount(sql: str, params: tuple = ()) -> int:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.rowcount


def executemany(sql: str, seq_of_params: list[tuple]) -> None:
    with get_conn() as conn:
        conn.executemany(sql, seq_of_params)


def fetch_one(sql: str, params: tuple = ()):
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchone()


def fetch_all(sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchall()


def _create_tables() -> None:
    execute(
        """
        CREATE TABLE IF NOT EXISTS clients (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            phone TEXT,
            plan TEXT NOT NULL,
            mac_address TEXT,
            activation_date TEXT NOT NULL,
            expiry_date TEXT NOT NULL,
            status TEXT NOT NULL CHECK(status IN ('ativo','inativo','suspenso')),
            credits REAL NOT NULL DEFAULT 0,
            monthly_value REAL NOT NULL DEFAULT 0,
            notes TEXT,
            owner_scope TEXT NOT NULL CHECK(owner_scope IN ('dono','socio')),
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )
    execute("CREATE INDEX IF NOT EXISTS idx_clients_scope ON clients(owner_scope, created_at)")

    with get_conn(LOCAL_DB_FILE) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS local_settings (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )


def init_db() -> None:
    """Create the record store and the local key-value store if missing."""
    _create_tables()
    logger.info("Database ready: %s (local: %s)", DB_FILE, LOCAL_DB_FILE)


# ---------- Local key-value store ----------

def get_setting(key: str, default: str | None = None) -> str | None:
    with get_conn(LOCAL_DB_FILE) as conn:
        row = conn.execute("SELECT value FROM local_settings WHERE key = ?", (key,)).fetchone()
    if row:
        return str(row["value"])
    return default


def set_setting(key: str, value: str) -> None:
    with get_conn(LOCAL_DB_FILE) as conn:
        conn.execute(
            """
            INSERT INTO local_settings(key, value) VALUES(?, ?)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value
            """,
            (key, value),
        )


def delete_setting(key: str) -> None:
    with get_conn(LOCAL_DB_FILE) as conn:
        conn.execute("DELETE FROM local_settings WHERE key = ?", (key,))


# ---------- Change notifications ----------

def _ref(callback: Callable) -> Callable[[], Callable | None]:
    if inspect.ismethod(callback):
        return weakref.WeakMethod(callback)
    return lambda: callback


def subscribe(callback: Callable[[str, object], None]) -> Callable[[], None]:
    """
    Register a listener called as callback(table, origin) after every committed write.
    Bound methods are held weakly: once their object is collected the listener is
    pruned on the next notification. Returns a function that removes the listener.
    """
    ref = _ref(callback)
    with _listeners_lock:
        _listeners.append(ref)

    def unsubscribe() -> None:
        with _listeners_lock:
            if ref in _listeners:
                _listeners.remove(ref)

    return unsubscribe


def notify_change(table: str, origin: object = None) -> None:
    with _listeners_lock:
        _listeners[:] = [ref for ref in _listeners if ref() is not None]
        callbacks = [ref() for ref in _listeners]
    for callback in callbacks:
        if callback is None:
            continue
        try:
            callback(table, origin)
        except Exception:
            # one broken subscriber must not block the others
            logger.exception("Change listener failed for table %s", table)
