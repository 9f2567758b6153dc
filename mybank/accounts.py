"""
Account Management Module

Account registry helpers that operate on an in-memory ledger document, the
credential hashing used for stored passwords, and the self-service account
operations (registration, login, balance lookup).
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional
import hashlib
import hmac
import secrets

from .errors import Conflict, Forbidden, InvalidRequest, NotFound
from .logging_config import get_logger, log_action
from .models import Account, LedgerDocument
from .store import LedgerStore

logger = get_logger("mybank.accounts")

HASH_SCHEME = "scrypt"


def hash_password(password: str, salt: Optional[str] = None) -> str:
    """Hash password with salt using scrypt; returns ``scrypt$salt$hex``"""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.scrypt(
        password.encode(),
        salt=salt.encode(),
        n=16384, r=8, p=1
    ).hex()
    return f"{HASH_SCHEME}${salt}${digest}"


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored hash"""
    try:
        scheme, salt, _ = password_hash.split("$", 2)
    except ValueError:
        return False
    if scheme != HASH_SCHEME:
        return False
    return hmac.compare_digest(hash_password(password, salt), password_hash)


# Registry operations on a loaded document

def require_account(document: LedgerDocument, username: Any) -> Account:
    """Return the account or raise NotFound"""
    account = document.find_account(username) if isinstance(username, str) else None
    if account is None:
        raise NotFound("User not found")
    return account


def add_account(
    document: LedgerDocument,
    username: str,
    password: str,
    balance: Decimal = Decimal("0"),
    is_admin: bool = False
) -> Account:
    """Register a new account in the document, rejecting duplicates"""
    if document.find_account(username) is not None:
        raise Conflict("User already exists")
    account = Account(
        username=username,
        password_hash=hash_password(password),
        balance=balance,
        is_admin=is_admin,
        is_frozen=False,
    )
    document.accounts.append(account)
    return account


def remove_account(document: LedgerDocument, username: str) -> int:
    """
    Remove an account and purge every transaction it took part in.

    Returns the number of transaction records removed.
    """
    account = require_account(document, username)
    document.accounts.remove(account)
    kept = [
        txn for txn in document.transactions
        if txn.sender != username and txn.receiver != username
    ]
    purged = len(document.transactions) - len(kept)
    document.transactions = kept
    return purged


def sanitize_accounts(document: LedgerDocument) -> List[Dict[str, Any]]:
    return [account.to_public_dict() for account in document.accounts]


def require_credentials(username: Any, password: Any) -> None:
    if not isinstance(username, str) or not username or not isinstance(password, str) or not password:
        raise InvalidRequest("username+password required")


class AccountService:
    """Self-service account operations"""

    def __init__(self, store: LedgerStore):
        self.store = store

    def register(self, username: Any, password: Any) -> Account:
        """Create a zero-balance, non-admin account"""
        require_credentials(username, password)
        with self.store.transaction() as document:
            account = add_account(document, username, password)
        log_action(logger, "info", "Account registered", user_id=username,
                   action="register", resource=username)
        return account

    def login(self, username: Any, password: Any) -> Dict[str, Any]:
        """Check credentials and return the sanitized account"""
        with self.store.read() as document:
            account = document.find_account(username) if isinstance(username, str) else None
        if account is None:
            raise InvalidRequest("Invalid login")
        if account.is_frozen:
            raise Forbidden("Account frozen")
        if not isinstance(password, str) or not verify_password(password, account.password_hash):
            log_action(logger, "warning", "Login failed", user_id=username, action="login")
            raise InvalidRequest("Invalid login")
        return account.to_public_dict()

    def get_balance(self, username: Any) -> Decimal:
        with self.store.read() as document:
            account = require_account(document, username)
        if account.is_frozen:
            raise Forbidden("Account frozen")
        return account.balance
