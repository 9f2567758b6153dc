"""
MyBank API Application Factory
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..errors import LedgerError, StorageError
from ..logging_config import get_logger
from ..replication import SnapshotStore
from .system import BankSystem, get_bank_system, get_snapshot_store
from .accounts import router as accounts_router
from .admin import router as admin_router
from .replication import router as replication_router

logger = get_logger("mybank.api")


def _install_error_handlers(app: FastAPI) -> None:
    """Render failures as ``{"error": message}`` bodies"""

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error(f"Storage failure on {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": "Storage unavailable"})


def _add_cors(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def create_app(system: Optional[BankSystem] = None) -> FastAPI:
    """
    Create and configure the ledger API.

    Args:
        system: Ledger components to serve; the global system is used if omitted
    """
    app = FastAPI(
        title="MyBank Ledger API",
        description="Accounts, capped transfers and administrative controls",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )
    _add_cors(app)
    _install_error_handlers(app)

    if system is None:
        system = get_bank_system()
    app.dependency_overrides[get_bank_system] = lambda: system
    app.dependency_overrides[get_snapshot_store] = lambda: system.snapshot_store

    # Include routers
    app.include_router(accounts_router, prefix="/api", tags=["Accounts"])
    app.include_router(admin_router, prefix="/api/admin", tags=["Admin"])
    app.include_router(replication_router, tags=["Replication"])

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "mybank_ledger",
            "version": "1.0.0"
        }

    return app


def create_sync_app(snapshot_store: Optional[SnapshotStore] = None) -> FastAPI:
    """Standalone snapshot service exposing only ``/backup`` and ``/restore``"""
    app = FastAPI(
        title="MyBank Sync Server",
        description="Stores the account snapshot pushed by mirrors",
        version="1.0.0"
    )
    _add_cors(app)
    _install_error_handlers(app)

    if snapshot_store is not None:
        app.dependency_overrides[get_snapshot_store] = lambda: snapshot_store

    app.include_router(replication_router, tags=["Replication"])
    return app
