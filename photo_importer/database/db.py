"""
Catalog database: one SQLite connection shared by every import worker.
"""
import sqlite3
import logging
import threading
from pathlib import Path
from typing import Optional

from ..exceptions import DatabaseError
from .ops import CatalogOperations
from .schema import init_schema

# WAL lets readers proceed while the single shared connection writes
CONNECTION_PRAGMAS = (
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=NORMAL;",
    "PRAGMA temp_store=MEMORY;",
    "PRAGMA foreign_keys=ON;",
)
BUSY_TIMEOUT_SECONDS = 30.0


class CatalogDatabase:
    """
    Opens the catalog file and hands out CatalogOperations bound to it.

    Import workers run on pool threads but never get their own connection:
    they all go through the one opened here, serialized by `lock`.
    """
    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self.lock = threading.Lock()

    def open(self) -> CatalogOperations:
        if self._conn is None:
            self._conn = self._connect()
        return CatalogOperations(self._conn, self.lock)

    def _connect(self) -> sqlite3.Connection:
        logging.info(f"Opening catalog: {self.db_path}")
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                self.db_path, timeout=BUSY_TIMEOUT_SECONDS, check_same_thread=False
            )
        except (OSError, sqlite3.Error) as e:
            raise DatabaseError(f"Cannot open catalog {self.db_path}: {e}") from e

        try:
            for pragma in CONNECTION_PRAGMAS:
                conn.execute(pragma)
            init_schema(conn)
        except sqlite3.Error as e:
            conn.close()
            raise DatabaseError(f"Cannot initialize catalog {self.db_path}: {e}") from e
        return conn

    def close(self):
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> CatalogOperations:
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
