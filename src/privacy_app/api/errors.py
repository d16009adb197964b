"""Translation of domain errors into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ..errors import (
    InvalidRecord,
    MissingConfiguration,
    NoSession,
    OperationTimeout,
    PasswordPolicyError,
    PrivacyAppError,
    ReadFailure,
    StatusRegressionError,
    UnknownStatus,
    WriteFailure,
)
from ..schemas.onboarding import ErrorResponse

logger = logging.getLogger(__name__)


def _error(
    status_code: int,
    exc: Exception,
    *,
    retryable: bool = False,
    divergent: bool = False,
    indeterminate: bool = False,
    violations: list[str] | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        detail=str(exc),
        retryable=retryable,
        divergent=divergent,
        indeterminate=indeterminate,
        violations=violations or [],
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def handle_privacy_error(request: Request, exc: PrivacyAppError) -> JSONResponse:
    if isinstance(exc, NoSession):
        return _error(status.HTTP_401_UNAUTHORIZED, exc)
    if isinstance(exc, PasswordPolicyError):
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, exc, violations=exc.violations)
    if isinstance(exc, WriteFailure):
        logger.error(f"Write failed on {request.url.path}: {exc}")
        return _error(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            exc,
            retryable=exc.retryable,
            divergent=exc.divergent,
            indeterminate=exc.indeterminate,
        )
    if isinstance(exc, OperationTimeout):
        logger.warning(f"Timeout on {request.url.path}: {exc}")
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, exc, retryable=True)
    if isinstance(exc, ReadFailure):
        logger.error(f"Read failed on {request.url.path}: {exc}")
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, exc, retryable=True)
    if isinstance(exc, MissingConfiguration):
        logger.error(f"Missing configuration: {exc}")
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, exc)
    if isinstance(exc, (UnknownStatus, StatusRegressionError)):
        logger.error(f"Deindexing status anomaly on {request.url.path}: {exc}")
        return _error(status.HTTP_409_CONFLICT, exc)
    if isinstance(exc, InvalidRecord):
        logger.error(f"Invalid stored record: {exc}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, exc)
    logger.error(f"Unhandled application error on {request.url.path}: {exc}")
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, exc)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PrivacyAppError, handle_privacy_error)
