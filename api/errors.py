"""
業務異常 -> HTTP 狀態碼

NotFound 404；ValidationError 422；狀態機前置條件 400；其餘衝突 409
"""
from fastapi import HTTPException

from core.exceptions import (
    RoundEngineError,
    NotFound,
    ValidationError,
    InvalidState,
    NotJoinable,
    SessionNotFinished,
)

_STATUS_CODES = [
    (NotFound, 404),
    (ValidationError, 422),
    (InvalidState, 400),
    (NotJoinable, 400),
    (SessionNotFinished, 400),
]


def to_http_exception(error: RoundEngineError) -> HTTPException:
    status_code = 409
    for error_type, code in _STATUS_CODES:
        if isinstance(error, error_type):
            status_code = code
            break
    return HTTPException(
        status_code=status_code,
        detail={"error": type(error).__name__, "message": str(error)}
    )
