"""
Account and transfer endpoints
"""

from fastapi import APIRouter, Depends

from .system import BankSystem, get_bank_system
from .schemas import CredentialsRequest, BalanceRequest, SendRequest


router = APIRouter()


@router.post("/createUser")
async def create_user(
    request: CredentialsRequest,
    system: BankSystem = Depends(get_bank_system)
):
    """Self-service registration"""
    system.accounts.register(request.username, request.password)
    return {"success": True}


@router.post("/login")
async def login(
    request: CredentialsRequest,
    system: BankSystem = Depends(get_bank_system)
):
    """Check credentials and return the account"""
    user = system.accounts.login(request.username, request.password)
    return {"success": True, "user": user}


@router.post("/balance")
async def get_balance(
    request: BalanceRequest,
    system: BankSystem = Depends(get_bank_system)
):
    """Get the balance of an account"""
    return {"balance": system.accounts.get_balance(request.username)}


@router.post("/send")
async def send(
    request: SendRequest,
    system: BankSystem = Depends(get_bank_system)
):
    """Transfer between two accounts"""
    system.transfers.transfer(request.from_, request.to, request.amount)
    return {"success": True}


@router.get("/broadcasts")
async def get_broadcasts(system: BankSystem = Depends(get_bank_system)):
    """Public broadcast feed, newest first"""
    return system.admin.list_broadcasts()
