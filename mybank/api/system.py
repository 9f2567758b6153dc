"""
Ledger system container and FastAPI dependencies
"""

from typing import Optional

from ..accounts import AccountService
from ..admin import AdminControl
from ..config import MyBankConfig, get_config
from ..replication import SnapshotStore
from ..store import LedgerStore, create_ledger_store
from ..transfers import TransferEngine


class BankSystem:
    """Ledger components wired to one store"""
    
    def __init__(
        self,
        config: Optional[MyBankConfig] = None,
        store: Optional[LedgerStore] = None,
        snapshot_store: Optional[SnapshotStore] = None
    ):
        self.config = config or get_config()
        
        # Initialize storage
        self.store = store or create_ledger_store(self.config.storage_backend, self.config.ledger_path)
        if snapshot_store is None:
            snapshot_path = None if self.config.storage_backend == "memory" else self.config.snapshot_path
            # Ingest shares the ledger lock
            snapshot_store = SnapshotStore(snapshot_path, lock=self.store.lock)
        self.snapshot_store = snapshot_store
        
        # Initialize core components
        self.accounts = AccountService(self.store)
        self.transfers = TransferEngine(self.store, self.config.max_transfer_amount)
        self.admin = AdminControl(self.store, self.config.admin_username, self.config.admin_password)
        
        # Fails here on a corrupt ledger document
        self.admin.ensure_admin_account()
    
    def close(self) -> None:
        self.store.close()


# Global instances, built on first use
bank_system: Optional[BankSystem] = None
snapshot_store: Optional[SnapshotStore] = None


def get_bank_system() -> BankSystem:
    global bank_system
    if bank_system is None:
        bank_system = BankSystem()
    return bank_system


def get_snapshot_store() -> SnapshotStore:
    global snapshot_store
    if snapshot_store is None:
        snapshot_store = SnapshotStore(get_config().snapshot_path)
    return snapshot_store
