"""SQLite-backed key-value store with hierarchical tuple keys.

Keys are tuples of strings/ints, stored as compact JSON arrays; values are
JSON documents. A fresh connection is opened per call.
"""
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

from .config import get_db_path

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS KV (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""


def encode_key(key: Sequence) -> str:
    return json.dumps(list(key), separators=(',', ':'))


def decode_key(raw: str) -> tuple:
    return tuple(json.loads(raw))


def _sort_key(key: tuple):
    # ints before strings, ints compared numerically
    return [(0, part, '') if isinstance(part, int) else (1, 0, str(part)) for part in key]


class KVStore:
    def __init__(self, path=None):
        self.path = Path(path) if path else get_db_path()

    def get_conn(self):
        conn = sqlite3.connect(str(self.path))
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = self.get_conn()
        try:
            conn.executescript(SCHEMA)
            conn.commit()
        finally:
            conn.close()
        return self

    def get(self, key: Sequence) -> Optional[Any]:
        conn = self.get_conn()
        try:
            row = conn.execute('SELECT value FROM KV WHERE key=?', (encode_key(key),)).fetchone()
        finally:
            conn.close()
        return json.loads(row['value']) if row else None

    def set(self, key: Sequence, value: Any):
        conn = self.get_conn()
        try:
            conn.execute(
                "INSERT INTO KV (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=CURRENT_TIMESTAMP",
                (encode_key(key), json.dumps(value)))
            conn.commit()
        finally:
            conn.close()

    def set_if_absent(self, key: Sequence, value: Any) -> bool:
        """Atomic compare-and-set: write only when the key is missing. Returns True if written."""
        conn = self.get_conn()
        try:
            cur = conn.execute('INSERT OR IGNORE INTO KV (key, value) VALUES (?, ?)', (encode_key(key), json.dumps(value)))
            conn.commit()
            written = cur.rowcount == 1
        finally:
            conn.close()
        if not written:
            logger.info('Key %s already present; not overwritten', list(key))
        return written

    def list(self, prefix: Sequence) -> List[Tuple[tuple, Any]]:
        """All (key, value) pairs strictly under `prefix`, ordered by key."""
        head = encode_key(prefix)[:-1] + ',' if prefix else '['
        conn = self.get_conn()
        try:
            rows = conn.execute('SELECT key, value FROM KV WHERE substr(key, 1, ?) = ?', (len(head), head)).fetchall()
        finally:
            conn.close()
        items = [(decode_key(r['key']), json.loads(r['value'])) for r in rows]
        items.sort(key=lambda kv: _sort_key(kv[0]))
        return items


def init_db(path=None) -> KVStore:
    return KVStore(path).init_db()
