"""
Admin endpoints

Every request carries ``adminUsername``/``adminPassword``; they are checked
before anything else happens, so the body is taken raw and only parsed into
its schema once the caller is authenticated.
"""

from typing import Any, Dict, Type, TypeVar

from fastapi import APIRouter, Body, Depends

from .system import BankSystem, get_bank_system
from .schemas import (
    AdminRequest, AdminCreateUserRequest, AdminSetBalanceRequest,
    AdminFreezeRequest, AdminDeleteRequest, AdminBroadcastRequest
)


router = APIRouter()

RequestT = TypeVar("RequestT", bound=AdminRequest)


def _authenticate(system: BankSystem, body: Any, schema: Type[RequestT] = AdminRequest) -> RequestT:
    payload: Dict[str, Any] = body if isinstance(body, dict) else {}
    system.admin.authenticate(payload.get("adminUsername"), payload.get("adminPassword"))
    return schema.model_validate(payload)


@router.post("/login")
async def admin_login(
    body: Any = Body(None),
    system: BankSystem = Depends(get_bank_system)
):
    """Check admin credentials"""
    _authenticate(system, body)
    return {"success": True}


@router.post("/users")
async def list_users(
    body: Any = Body(None),
    system: BankSystem = Depends(get_bank_system)
):
    """List all accounts without credential hashes"""
    _authenticate(system, body)
    return system.admin.list_accounts()


@router.post("/createUser")
async def create_user(
    body: Any = Body(None),
    system: BankSystem = Depends(get_bank_system)
):
    """Create an account with an opening balance"""
    request = _authenticate(system, body, AdminCreateUserRequest)
    system.admin.create_account(
        username=request.username,
        password=request.password,
        balance=request.balance,
        is_admin=request.is_admin
    )
    return {"success": True}


@router.post("/setBalance")
async def set_balance(
    body: Any = Body(None),
    system: BankSystem = Depends(get_bank_system)
):
    """Overwrite an account balance"""
    request = _authenticate(system, body, AdminSetBalanceRequest)
    system.admin.set_balance(request.username, request.balance)
    return {"success": True}


@router.post("/freezeUser")
async def freeze_user(
    body: Any = Body(None),
    system: BankSystem = Depends(get_bank_system)
):
    """Freeze or unfreeze an account"""
    request = _authenticate(system, body, AdminFreezeRequest)
    system.admin.set_frozen(request.username, request.freeze)
    return {"success": True}


@router.post("/deleteUser")
async def delete_user(
    body: Any = Body(None),
    system: BankSystem = Depends(get_bank_system)
):
    """Delete an account and its transactions"""
    request = _authenticate(system, body, AdminDeleteRequest)
    system.admin.delete_account(request.username)
    return {"success": True}


@router.post("/transactions")
async def list_transactions(
    body: Any = Body(None),
    system: BankSystem = Depends(get_bank_system)
):
    """All transactions, newest first"""
    _authenticate(system, body)
    return system.admin.list_transactions()


@router.post("/broadcast")
async def broadcast(
    body: Any = Body(None),
    system: BankSystem = Depends(get_bank_system)
):
    """Post a broadcast message"""
    request = _authenticate(system, body, AdminBroadcastRequest)
    system.admin.broadcast(request.message)
    return {"success": True}
