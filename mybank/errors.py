"""
Error Taxonomy Module

Every validation failure raised by the ledger maps onto one of these kinds.
The HTTP layer turns them into ``{"error": message}`` responses.
"""


class LedgerError(Exception):
    """Base class for failures reported back to the caller"""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequest(LedgerError):
    """Malformed, missing or out-of-range input"""
    status_code = 400


class Conflict(LedgerError):
    """Identifier already registered"""
    status_code = 400


class NotFound(LedgerError):
    """Referenced account does not exist"""
    status_code = 404


class Forbidden(LedgerError):
    """Credential failure or frozen-account block"""
    status_code = 403


class InsufficientFunds(LedgerError):
    """Sender balance does not cover the transfer"""
    status_code = 400


class StorageError(Exception):
    """Persisted ledger state could not be read or written"""


class CorruptLedgerError(StorageError):
    """The persisted document is not a valid ledger document"""
