"""
Ledger Document Model

Accounts, transaction records and broadcasts, plus the aggregate document that
is persisted as one unit. All monetary values are Decimal in memory and stored
as decimal strings.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from decimal import Decimal, Inexact, InvalidOperation, localcontext
from typing import Any, Dict, List, Optional

from .errors import CorruptLedgerError


def utc_now_iso() -> str:
    """Current instant as an ISO-8601 UTC string"""
    return datetime.now(timezone.utc).isoformat()


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Parse a JSON number or numeric string into a finite Decimal.

    Returns None for anything that is not a finite number, including
    booleans, empty strings, NaN and infinities.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            return None
    else:
        return None
    if not result.is_finite():
        return None
    return result


# Smallest unit the ledger moves or stores
MONEY_QUANTUM = Decimal("0.01")


def is_money(value: Decimal) -> bool:
    """
    True when ``value`` is a whole number of ``MONEY_QUANTUM`` units and fits
    the decimal context's precision, so ledger arithmetic on it stays exact.
    """
    try:
        with localcontext() as ctx:
            ctx.traps[Inexact] = True
            value.quantize(MONEY_QUANTUM)
    except (Inexact, InvalidOperation):
        return False
    return True


def _require(data: Dict[str, Any], key: str, kind: type, record: str) -> Any:
    if key not in data:
        raise CorruptLedgerError(f"{record} record is missing '{key}'")
    value = data[key]
    if kind is int and isinstance(value, bool):
        raise CorruptLedgerError(f"{record} field '{key}' has the wrong type")
    if not isinstance(value, kind):
        raise CorruptLedgerError(f"{record} field '{key}' has the wrong type")
    return value


def _require_decimal(data: Dict[str, Any], key: str, record: str) -> Decimal:
    if key not in data:
        raise CorruptLedgerError(f"{record} record is missing '{key}'")
    value = to_decimal(data[key])
    if value is None:
        raise CorruptLedgerError(f"{record} field '{key}' is not a finite number")
    return value


def _optional_flag(data: Dict[str, Any], key: str, record: str) -> bool:
    value = data.get(key, False)
    if not isinstance(value, bool):
        raise CorruptLedgerError(f"{record} field '{key}' must be true or false")
    return value


@dataclass
class Account:
    """Account record; username is unique and never changes"""
    username: str
    password_hash: str
    balance: Decimal = Decimal("0")
    is_admin: bool = False
    is_frozen: bool = False

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["balance"] = str(self.balance)
        return result

    def to_public_dict(self) -> Dict[str, Any]:
        """Sanitized view; the credential hash is never exposed"""
        return {
            "username": self.username,
            "balance": self.balance,
            "is_admin": self.is_admin,
            "is_frozen": self.is_frozen,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        if not isinstance(data, dict):
            raise CorruptLedgerError("account record is not an object")
        balance = _require_decimal(data, "balance", "account")
        if balance < 0:
            raise CorruptLedgerError(f"account '{data.get('username')}' has a negative balance")
        return cls(
            username=_require(data, "username", str, "account"),
            password_hash=_require(data, "password_hash", str, "account"),
            balance=balance,
            is_admin=_optional_flag(data, "is_admin", "account"),
            is_frozen=_optional_flag(data, "is_frozen", "account"),
        )


@dataclass(frozen=True)
class TransactionRecord:
    """Immutable audit record of one completed transfer"""
    id: int
    sender: str
    receiver: str
    amount: Decimal
    created_at: str

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["amount"] = str(self.amount)
        return result

    def to_public_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TransactionRecord":
        if not isinstance(data, dict):
            raise CorruptLedgerError("transaction record is not an object")
        amount = _require_decimal(data, "amount", "transaction")
        if amount <= 0:
            raise CorruptLedgerError(f"transaction {data.get('id')} has a non-positive amount")
        return cls(
            id=_require(data, "id", int, "transaction"),
            sender=_require(data, "sender", str, "transaction"),
            receiver=_require(data, "receiver", str, "transaction"),
            amount=amount,
            created_at=_require(data, "created_at", str, "transaction"),
        )


@dataclass(frozen=True)
class Broadcast:
    """Administrator announcement"""
    message: str
    created_at: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Broadcast":
        if not isinstance(data, dict):
            raise CorruptLedgerError("broadcast record is not an object")
        return cls(
            message=_require(data, "message", str, "broadcast"),
            created_at=_require(data, "created_at", str, "broadcast"),
        )


@dataclass
class LedgerDocument:
    """
    The single unit of durability: accounts, transaction log and broadcast log.

    ``last_transaction_id`` is the highest sequence id ever handed out, so ids
    stay unique even after account deletion purges the newest records.
    """
    accounts: List[Account] = field(default_factory=list)
    transactions: List[TransactionRecord] = field(default_factory=list)
    broadcasts: List[Broadcast] = field(default_factory=list)
    last_transaction_id: int = 0

    def find_account(self, username: str) -> Optional[Account]:
        for account in self.accounts:
            if account.username == username:
                return account
        return None

    def next_transaction_id(self) -> int:
        highest = max((txn.id for txn in self.transactions), default=0)
        return max(highest, self.last_transaction_id) + 1

    def append_transaction(self, sender: str, receiver: str, amount: Decimal) -> TransactionRecord:
        record = TransactionRecord(
            id=self.next_transaction_id(),
            sender=sender,
            receiver=receiver,
            amount=amount,
            created_at=utc_now_iso(),
        )
        self.transactions.append(record)
        self.last_transaction_id = record.id
        return record

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accounts": [account.to_dict() for account in self.accounts],
            "transactions": [txn.to_dict() for txn in self.transactions],
            "broadcasts": [broadcast.to_dict() for broadcast in self.broadcasts],
            "last_transaction_id": self.last_transaction_id,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "LedgerDocument":
        """Build a document, raising CorruptLedgerError on any malformed part"""
        if not isinstance(data, dict):
            raise CorruptLedgerError("ledger document is not an object")
        for key in ("accounts", "transactions", "broadcasts"):
            if not isinstance(data.get(key), list):
                raise CorruptLedgerError(f"ledger document is missing the '{key}' list")

        accounts = [Account.from_dict(item) for item in data["accounts"]]
        usernames = [account.username for account in accounts]
        if len(usernames) != len(set(usernames)):
            raise CorruptLedgerError("ledger document contains duplicate usernames")

        transactions = [TransactionRecord.from_dict(item) for item in data["transactions"]]
        ids = [txn.id for txn in transactions]
        if len(ids) != len(set(ids)):
            raise CorruptLedgerError("ledger document contains duplicate transaction ids")

        last_id = data.get("last_transaction_id", 0)
        if isinstance(last_id, bool) or not isinstance(last_id, int):
            raise CorruptLedgerError("'last_transaction_id' must be an integer")

        return cls(
            accounts=accounts,
            transactions=transactions,
            broadcasts=[Broadcast.from_dict(item) for item in data["broadcasts"]],
            last_transaction_id=max([last_id] + ids),
        )
