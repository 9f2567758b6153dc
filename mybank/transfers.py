"""
Transfer Processing Module

Validates and applies a single debit/credit pair between two accounts. The
checks run in a fixed order and the first failure wins; a failed transfer
never reaches the save step, so no partial effects are persisted.
"""

from decimal import Decimal, Inexact, localcontext
from typing import Any, Union

from .errors import Forbidden, InsufficientFunds, InvalidRequest, NotFound
from .logging_config import get_logger, log_action
from .models import TransactionRecord, is_money, to_decimal
from .store import LedgerStore

logger = get_logger("mybank.transfers")

DEFAULT_MAX_TRANSFER = Decimal("20")


class TransferEngine:
    """Moves value between accounts under a per-transaction cap"""

    def __init__(self, store: LedgerStore, max_transfer: Union[Decimal, str] = DEFAULT_MAX_TRANSFER):
        self.store = store
        self.max_transfer = Decimal(str(max_transfer))

    def validate_request(self, sender: Any, receiver: Any, amount: Any) -> Decimal:
        """Shape checks that need no ledger state; returns the parsed amount"""
        value = to_decimal(amount)
        if not sender or not receiver or value is None or value == 0:
            raise InvalidRequest("from,to,amount required")
        if not isinstance(sender, str) or not isinstance(receiver, str):
            raise InvalidRequest("from and to must be usernames")
        if value <= 0:
            raise InvalidRequest("Amount must be positive")
        if value > self.max_transfer:
            raise InvalidRequest(f"Max transaction is {self.max_transfer} Niftoes")
        if not is_money(value):
            raise InvalidRequest("Amount has too many decimal places")
        if sender == receiver:
            raise InvalidRequest("Cannot send to the same account")
        return value

    def transfer(self, sender: Any, receiver: Any, amount: Any) -> TransactionRecord:
        """
        Debit ``sender`` and credit ``receiver`` by ``amount``.

        Args:
            sender: Username of the account to debit
            receiver: Username of the account to credit
            amount: Positive number (or numeric string) no larger than the cap

        Returns:
            The appended TransactionRecord

        Raises:
            InvalidRequest, NotFound, Forbidden, InsufficientFunds
        """
        value = self.validate_request(sender, receiver, amount)

        with self.store.transaction() as document:
            from_account = document.find_account(sender)
            to_account = document.find_account(receiver)
            if from_account is None or to_account is None:
                raise NotFound("Sender or receiver not found")
            if from_account.is_frozen:
                raise Forbidden("Sender account frozen")
            if to_account.is_frozen:
                raise Forbidden("Receiver account frozen")
            if from_account.balance < value:
                raise InsufficientFunds("Not enough Niftoes")

            with localcontext() as ctx:
                ctx.traps[Inexact] = True
                try:
                    debited = from_account.balance - value
                    credited = to_account.balance + value
                except Inexact:
                    raise InvalidRequest("Balance exceeds ledger precision")
            from_account.balance = debited
            to_account.balance = credited
            record = document.append_transaction(sender, receiver, value)

        log_action(
            logger, "info", "Transfer completed",
            user_id=sender, action="transfer", resource=receiver,
            extra={"transaction_id": record.id, "amount": str(value)}
        )
        return record
