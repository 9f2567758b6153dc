"""
Administrative Control Module

Privileged ledger operations gated by the configured administrator
credentials: account creation and deletion, balance corrections, freezing,
broadcasts, and read-only listings. Also seeds the administrator account at
startup.
"""

from decimal import Decimal
from typing import Any, Dict, List
import hmac

from .accounts import add_account, remove_account, require_account, require_credentials, sanitize_accounts
from .errors import Forbidden, InvalidRequest
from .logging_config import get_logger, log_action
from .models import Broadcast, is_money, to_decimal, utc_now_iso
from .store import LedgerStore

logger = get_logger("mybank.admin")


def _matches(supplied: Any, expected: str) -> bool:
    return isinstance(supplied, str) and hmac.compare_digest(supplied.encode(), expected.encode())


def _parse_balance(balance: Any) -> Decimal:
    value = to_decimal(balance)
    if value is None:
        raise InvalidRequest("Balance must be a number")
    if value < 0:
        raise InvalidRequest("Balance cannot be negative")
    if not is_money(value):
        raise InvalidRequest("Balance has too many decimal places")
    return value


def _parse_flag(value: Any, name: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise InvalidRequest(f"{name} must be true or false")
    return value


class AdminControl:
    """Administrative operations on the ledger"""

    def __init__(self, store: LedgerStore, admin_username: str, admin_password: str):
        self.store = store
        self.admin_username = admin_username
        self.admin_password = admin_password

    def authenticate(self, username: Any, password: Any) -> None:
        """Raise Forbidden unless both values equal the configured pair"""
        user_ok = _matches(username, self.admin_username)
        pass_ok = _matches(password, self.admin_password)
        if not (user_ok and pass_ok):
            log_action(logger, "warning", "Rejected admin credentials", action="admin_auth")
            raise Forbidden("Invalid admin credentials")

    def ensure_admin_account(self) -> bool:
        """
        Seed the administrator account if it is missing.

        Safe to run on every start; returns True only when an account was created.
        """
        with self.store.lock:
            with self.store.read() as document:
                if document.find_account(self.admin_username) is not None:
                    return False
            with self.store.transaction() as document:
                add_account(document, self.admin_username, self.admin_password, is_admin=True)
        log_action(logger, "info", "Seeded admin user", action="seed_admin",
                   resource=self.admin_username)
        return True

    def list_accounts(self) -> List[Dict[str, Any]]:
        with self.store.read() as document:
            return sanitize_accounts(document)

    def create_account(
        self,
        username: Any,
        password: Any,
        balance: Any = 0,
        is_admin: Any = False
    ) -> None:
        require_credentials(username, password)
        opening_balance = _parse_balance(balance if balance is not None else 0)
        admin_flag = _parse_flag(is_admin, "is_admin")

        with self.store.transaction() as document:
            add_account(document, username, password, opening_balance, admin_flag)

        log_action(logger, "info", "Account created by admin", user_id=self.admin_username,
                   action="create_account", resource=username,
                   extra={"balance": str(opening_balance), "is_admin": admin_flag})

    def set_balance(self, username: Any, balance: Any) -> None:
        """Overwrite a balance directly; no transaction record is written"""
        with self.store.transaction() as document:
            account = require_account(document, username)
            new_balance = _parse_balance(balance)
            previous = account.balance
            account.balance = new_balance

        log_action(logger, "info", "Balance set by admin", user_id=self.admin_username,
                   action="set_balance", resource=username,
                   extra={"previous": str(previous), "balance": str(new_balance)})

    def set_frozen(self, username: Any, frozen: Any) -> None:
        with self.store.transaction() as document:
            account = require_account(document, username)
            account.is_frozen = _parse_flag(frozen, "freeze")

        log_action(logger, "info", "Account frozen" if frozen else "Account unfrozen",
                   user_id=self.admin_username, action="set_frozen", resource=username)

    def delete_account(self, username: Any) -> None:
        with self.store.transaction() as document:
            purged = remove_account(document, username)

        log_action(logger, "info", "Account deleted by admin", user_id=self.admin_username,
                   action="delete_account", resource=username,
                   extra={"purged_transactions": purged})

    def list_transactions(self) -> List[Dict[str, Any]]:
        """All transaction records, newest first"""
        with self.store.read() as document:
            return [txn.to_public_dict() for txn in reversed(document.transactions)]

    def broadcast(self, message: Any) -> Broadcast:
        if not isinstance(message, str) or not message:
            raise InvalidRequest("message required")
        entry = Broadcast(message=message, created_at=utc_now_iso())
        with self.store.transaction() as document:
            document.broadcasts.append(entry)

        log_action(logger, "info", "Broadcast posted", user_id=self.admin_username,
                   action="broadcast")
        return entry

    def list_broadcasts(self) -> List[Dict[str, Any]]:
        """Public broadcast feed, newest first"""
        with self.store.read() as document:
            return [entry.to_dict() for entry in reversed(document.broadcasts)]
