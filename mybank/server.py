"""
Process entry points: the ledger primary, the standalone sync server, and
the mirror replication loop.
"""

from typing import Optional

import uvicorn

from .api import create_app, create_sync_app
from .api.system import BankSystem
from .config import MyBankConfig, get_config
from .logging_config import setup_logging
from .replication import MirrorSync, SnapshotStore, SyncClient


def _configure_logging(config: MyBankConfig):
    return setup_logging(config.log_level, config.log_format, config.log_file)


def run_server(config: Optional[MyBankConfig] = None, host: Optional[str] = None, port: Optional[int] = None):
    """Run the ledger API"""
    config = config or get_config()
    logger = _configure_logging(config)
    
    system = BankSystem(config)
    app = create_app(system)
    logger.info(f"MyBank server listening on {port or config.api_port}")
    try:
        uvicorn.run(app, host=host or config.api_host, port=port or config.api_port, log_level="info")
    finally:
        system.close()


def run_sync_server(config: Optional[MyBankConfig] = None, host: Optional[str] = None, port: Optional[int] = None):
    """Run the snapshot sync service"""
    config = config or get_config()
    logger = _configure_logging(config)
    
    app = create_sync_app(SnapshotStore(config.snapshot_path))
    logger.info(f"MyBank sync server running on port {port or config.sync_port}")
    uvicorn.run(app, host=host or config.api_host, port=port or config.sync_port, log_level="info")


def run_mirror(config: Optional[MyBankConfig] = None, primary_url: Optional[str] = None):
    """Run the mirror loop until interrupted"""
    config = config or get_config()
    logger = _configure_logging(config)
    
    client = SyncClient(primary_url or config.primary_url, timeout=config.sync_timeout_seconds)
    mirror = MirrorSync(
        SnapshotStore(config.mirror_snapshot_path),
        client,
        interval_seconds=config.sync_interval_seconds
    )
    logger.info(f"Mirror syncing with {client.base_url} every {mirror.interval}s")
    try:
        mirror.run_forever()
    finally:
        client.close()
