"""
Snapshot Replication Module

One-way, best-effort replication of the account snapshot. A mirror process
holds a locally cached snapshot, pulls the remote copy once at startup, and
pushes its own copy to the remote ingest endpoint on a fixed interval. Every
replication failure is logged and dropped; the next tick tries again.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import json
import threading

import httpx

from .errors import StorageError
from .logging_config import get_logger
from .store import atomic_write_json

logger = get_logger("mybank.replication")

Snapshot = List[Dict[str, Any]]


def is_snapshot(value: Any) -> bool:
    """A snapshot is a JSON array of objects"""
    return isinstance(value, list) and all(isinstance(item, dict) for item in value)


class SnapshotStore:
    """
    Holds one raw account snapshot.

    Backed by a JSON file when ``path`` is given, otherwise kept in memory.
    The lock can be shared with a ledger store so ingest follows the same
    single-writer discipline as ledger mutations.
    """

    def __init__(self, path: Union[str, Path, None] = None, lock: Optional[threading.RLock] = None):
        self.path = Path(path) if path is not None else None
        self.lock = lock or threading.RLock()
        self._memory: Optional[str] = None

    def load(self) -> Snapshot:
        """Return the stored snapshot, or an empty list if none was stored"""
        with self.lock:
            if self.path is None:
                raw = self._memory
            elif self.path.exists():
                raw = self.path.read_text(encoding="utf-8")
            else:
                raw = None
            if raw is None:
                return []
            try:
                data = json.loads(raw)
            except json.JSONDecodeError as e:
                raise StorageError(f"stored snapshot is not valid JSON: {e}") from e
            if not is_snapshot(data):
                raise StorageError("stored snapshot is not an array of objects")
            return data

    def replace(self, snapshot: Snapshot) -> None:
        """Overwrite the stored snapshot"""
        with self.lock:
            if self.path is None:
                self._memory = json.dumps(snapshot)
            else:
                atomic_write_json(self.path, snapshot)


class SyncClient:
    """HTTP client for a remote snapshot endpoint"""

    def __init__(
        self,
        base_url: str = "http://localhost:4000",
        timeout: float = 5.0,
        client: Optional[httpx.Client] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)

    def pull(self) -> Any:
        """Fetch the remote snapshot; raises on network or HTTP errors"""
        response = self._client.get(f"{self.base_url}/restore", timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def push(self, snapshot: Snapshot) -> None:
        """Overwrite the remote snapshot; raises on network or HTTP errors"""
        response = self._client.post(f"{self.base_url}/backup", json=snapshot, timeout=self.timeout)
        response.raise_for_status()

    def close(self):
        """Close the HTTP client"""
        self._client.close()


class MirrorSync:
    """
    Periodic mirror → remote push with a one-shot pull at startup.

    Nothing here raises: the mirror must keep running when the remote side
    is unreachable.
    """

    def __init__(self, local_store: SnapshotStore, client: SyncClient, interval_seconds: float = 20.0):
        self.local_store = local_store
        self.client = client
        self.interval = interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def pull_on_startup(self) -> bool:
        """
        Seed the local snapshot from the remote copy.

        The local snapshot is replaced only by a non-empty, well-formed remote
        snapshot. Returns True when it was replaced.
        """
        try:
            remote = self.client.pull()
        except Exception as e:
            logger.warning(f"Snapshot pull failed, keeping local copy: {e}")
            return False

        if not is_snapshot(remote) or not remote:
            logger.info("Remote snapshot empty or malformed, keeping local copy")
            return False

        try:
            self.local_store.replace(remote)
        except Exception as e:
            logger.error(f"Could not store pulled snapshot: {e}")
            return False
        logger.info(f"Pulled snapshot with {len(remote)} accounts")
        return True

    def push_once(self) -> bool:
        """Push the current local snapshot; returns True on success"""
        try:
            snapshot = self.local_store.load()
            self.client.push(snapshot)
        except Exception as e:
            logger.warning(f"Snapshot push failed, retrying next tick: {e}")
            return False
        logger.debug(f"Pushed snapshot with {len(snapshot)} accounts")
        return True

    def _run(self):
        """Push on a fixed cadence until stopped"""
        while not self._stop.wait(self.interval):
            self.push_once()

    def start(self):
        """Start pushing in a background thread"""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="mirror-sync", daemon=True)
        self._thread.start()

    def stop(self):
        """Stop the background thread"""
        self._stop.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=self.client.timeout + 1)

    def run_forever(self):
        """Mirror process main loop: pull once, then push every interval"""
        self.pull_on_startup()
        self._stop.clear()
        self._run()
