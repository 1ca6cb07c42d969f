"""
Error taxonomy for the data engine.

Repositories never let these escape to their callers: they are converted
into an OperationResult so the UI/API layer can show the message.

    NotFound                  lookup by id/phone/email failed
      UnknownOrg
    InvalidInput              missing field, bad enum value, bad quantity
      InvalidItem
    AccountDeactivated        login against a disabled account
    SelfDeactivationBlocked   admin disabling their own active session
    PersistenceFailure        serialization/storage I/O error
      StaleWrite              another writer saved first
"""

from dataclasses import dataclass
from typing import Any, Optional


class StoreError(Exception):
    code = "STORE_ERROR"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class NotFound(StoreError):
    code = "NOT_FOUND"


class UnknownOrg(NotFound):
    code = "UNKNOWN_ORG"


class InvalidInput(StoreError):
    code = "INVALID_INPUT"


class InvalidItem(InvalidInput):
    code = "INVALID_ITEM"


class AccountDeactivated(StoreError):
    code = "ACCOUNT_DEACTIVATED"


class SelfDeactivationBlocked(StoreError):
    code = "SELF_DEACTIVATION_BLOCKED"


class PersistenceFailure(StoreError):
    code = "PERSISTENCE_FAILURE"


class StaleWrite(PersistenceFailure):
    code = "STALE_WRITE"


@dataclass
class OperationResult:
    """Outcome of a repository/lifecycle operation."""
    success: bool
    data: Any = None
    error: Optional[str] = None
    message: Optional[str] = None
    exception: Optional[StoreError] = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: StoreError) -> "OperationResult":
        return cls(success=False, error=error.code, message=error.message, exception=error)
