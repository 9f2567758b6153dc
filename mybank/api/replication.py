"""
Snapshot replication endpoints
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from .system import get_snapshot_store
from ..replication import SnapshotStore


router = APIRouter()


@router.post("/backup")
async def backup(
    snapshot: List[Dict[str, Any]],
    store: SnapshotStore = Depends(get_snapshot_store)
):
    """Replace the stored snapshot with the pushed one"""
    store.replace(snapshot)
    return {"ok": True}


@router.get("/restore")
async def restore(store: SnapshotStore = Depends(get_snapshot_store)):
    """Return the stored snapshot, or an empty list"""
    return store.load()
