"""
Ledger Store Module

Provides the abstract ledger store interface and implementations for in-memory
(testing), JSON file and SQLite persistence. The whole ledger document is
loaded and saved as one unit; every mutating request runs exactly one
load/mutate/save cycle under the store-wide lock.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union
import json
import os
import sqlite3
import tempfile
import threading

from .errors import CorruptLedgerError, StorageError
from .logging_config import get_logger
from .models import LedgerDocument

logger = get_logger("mybank.store")


def atomic_write_json(path: Path, data: Any) -> None:
    """
    Replace ``path`` with the JSON serialization of ``data``.

    The content is written to a sibling temp file, flushed to disk and renamed
    over the target, so the previous file stays intact if anything fails.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class LedgerStore(ABC):
    """Abstract interface for ledger storage backends"""

    def __init__(self, lock: Optional[threading.RLock] = None):
        # One coarse lock guards the whole document
        self.lock = lock or threading.RLock()

    @abstractmethod
    def _read_raw(self) -> Optional[Dict[str, Any]]:
        """Return the persisted document as parsed JSON, or None if absent"""
        pass

    @abstractmethod
    def _write_raw(self, data: Dict[str, Any]) -> None:
        """Replace the persisted document entirely"""
        pass

    def close(self) -> None:
        """Release backend resources (default no-op)"""
        pass

    def load(self) -> LedgerDocument:
        """Load the current document, persisting an empty one if none exists"""
        with self.lock:
            raw = self._read_raw()
            if raw is None:
                document = LedgerDocument()
                self._write_raw(document.to_dict())
                logger.info("Created empty ledger document")
                return document
            return LedgerDocument.from_dict(raw)

    def save(self, document: LedgerDocument) -> None:
        """Overwrite the persisted document with ``document``"""
        with self.lock:
            self._write_raw(document.to_dict())

    @contextmanager
    def transaction(self) -> Iterator[LedgerDocument]:
        """
        One load/mutate/save cycle.

        The document is saved once when the block exits normally; if the block
        raises, nothing is saved and the exception propagates.
        """
        with self.lock:
            document = self.load()
            yield document
            self.save(document)

    @contextmanager
    def read(self) -> Iterator[LedgerDocument]:
        """Load a document for read-only use"""
        with self.lock:
            yield self.load()


class InMemoryLedgerStore(LedgerStore):
    """In-memory ledger store for testing"""

    def __init__(self, initial: Optional[Dict[str, Any]] = None, lock: Optional[threading.RLock] = None):
        super().__init__(lock)
        self._data: Optional[str] = json.dumps(initial) if initial is not None else None

    def _read_raw(self) -> Optional[Dict[str, Any]]:
        if self._data is None:
            return None
        # Fresh copy on every load
        return json.loads(self._data)

    def _write_raw(self, data: Dict[str, Any]) -> None:
        self._data = json.dumps(data)


class JSONFileLedgerStore(LedgerStore):
    """Ledger store backed by a single JSON file, replaced atomically on save"""

    def __init__(self, path: Union[str, Path], lock: Optional[threading.RLock] = None):
        super().__init__(lock)
        self.path = Path(path)

    def _read_raw(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                return json.load(handle)
        except json.JSONDecodeError as e:
            raise CorruptLedgerError(f"{self.path} is not valid JSON: {e}") from e

    def _write_raw(self, data: Dict[str, Any]) -> None:
        atomic_write_json(self.path, data)


class SQLiteLedgerStore(LedgerStore):
    """Ledger store keeping the document as a single row in SQLite"""

    DOCUMENT_ID = "ledger"

    def __init__(self, db_path: Union[str, Path] = ":memory:", lock: Optional[threading.RLock] = None):
        super().__init__(lock)
        self.db_path = str(db_path)
        self._connection = sqlite3.connect(self.db_path, check_same_thread=False)
        self._connection.row_factory = sqlite3.Row

        with self.lock:
            if self.db_path != ":memory:":
                self._connection.execute("PRAGMA journal_mode = WAL")
            self._connection.execute("""
                CREATE TABLE IF NOT EXISTS ledger_document (
                    id TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            self._connection.commit()

    def _read_raw(self) -> Optional[Dict[str, Any]]:
        cursor = self._connection.execute(
            "SELECT data FROM ledger_document WHERE id = ?", (self.DOCUMENT_ID,)
        )
        row = cursor.fetchone()
        if row is None:
            return None
        try:
            return json.loads(row["data"])
        except json.JSONDecodeError as e:
            raise CorruptLedgerError(f"stored ledger document is not valid JSON: {e}") from e

    def _write_raw(self, data: Dict[str, Any]) -> None:
        now = datetime.now(timezone.utc).isoformat()
        try:
            self._connection.execute("""
                INSERT OR REPLACE INTO ledger_document (id, data, updated_at)
                VALUES (?, ?, ?)
            """, (self.DOCUMENT_ID, json.dumps(data), now))
            self._connection.commit()
        except sqlite3.Error:
            self._connection.rollback()
            raise

    def close(self) -> None:
        """Close SQLite connection"""
        with self.lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def create_ledger_store(backend: str, path: Union[str, Path, None] = None) -> LedgerStore:
    """Build the configured ledger store backend"""
    backend = backend.lower()
    if backend == "memory":
        return InMemoryLedgerStore()
    if backend == "json":
        return JSONFileLedgerStore(path or "db.json")
    if backend == "sqlite":
        return SQLiteLedgerStore(path or "mybank.db")
    raise StorageError(f"Unknown storage backend: {backend}")
