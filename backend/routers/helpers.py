"""
Shared router plumbing: the engine dependency and result -> HTTP mapping.
"""

from fastapi import HTTPException, Request

from context import EngineContext
from store_errors import (
    AccountDeactivated, InvalidInput, NotFound, OperationResult, PersistenceFailure,
    SelfDeactivationBlocked, StaleWrite,
)

# First match wins, so subclasses come before their parents
STATUS_BY_ERROR = (
    (StaleWrite, 409),
    (PersistenceFailure, 503),
    (NotFound, 404),
    (InvalidInput, 400),
    (AccountDeactivated, 403),
    (SelfDeactivationBlocked, 409),
)


def get_context(request: Request) -> EngineContext:
    return request.app.state.context


def raise_for_result(result: OperationResult):
    """Return result.data, or raise the HTTPException matching the failure."""
    if result.success:
        return result.data
    status_code = next(
        (code for error_cls, code in STATUS_BY_ERROR if isinstance(result.exception, error_cls)),
        400,
    )
    raise HTTPException(status_code=status_code, detail={"error": result.error, "message": result.message})
