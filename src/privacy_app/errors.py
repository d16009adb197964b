"""Domain errors raised by the onboarding core."""

from __future__ import annotations


class PrivacyAppError(Exception):
    """Base class for errors surfaced to API callers."""


class NoSession(PrivacyAppError):
    """No authenticated customer is attached to the request."""

    def __init__(self, message: str = "No authenticated session.") -> None:
        super().__init__(message)


class MissingConfiguration(PrivacyAppError):
    """Required credentials or reference data are not configured."""


class ReadFailure(PrivacyAppError):
    """A persistence read could not be completed."""


class InvalidRecord(PrivacyAppError):
    """A stored row does not match the expected schema."""

    def __init__(self, table: str, message: str) -> None:
        super().__init__(f"Invalid '{table}' record: {message}")
        self.table = table


class WriteFailure(PrivacyAppError):
    """A persistence write was rejected or could not be confirmed.

    ``retryable`` tells callers whether offering a retry makes sense.
    ``divergent`` is set when a multi-record update left, or may have left,
    the records out of step with each other. ``indeterminate`` is set when a
    timed-out write could still land after the failure was reported.
    """

    def __init__(
        self,
        message: str,
        *,
        retryable: bool = True,
        divergent: bool = False,
        indeterminate: bool = False,
    ) -> None:
        super().__init__(message)
        self.retryable = retryable
        self.divergent = divergent
        self.indeterminate = indeterminate


class PasswordPolicyError(PrivacyAppError):
    """A new password does not meet the password requirements."""

    def __init__(self, violations: list[str]) -> None:
        super().__init__(f"Password does not meet the requirements: {', '.join(violations)}")
        self.violations = violations


class OperationTimeout(PrivacyAppError):
    """An external read or write did not finish within the configured timeout."""

    retryable = True

    def __init__(self, operation: str, timeout: float) -> None:
        super().__init__(f"{operation} timed out after {timeout:.1f}s")
        self.operation = operation
        self.timeout = timeout


class UnknownStatus(PrivacyAppError):
    """A deindexing URL carries a status outside the lifecycle steps."""

    def __init__(self, status: str, url_id: str | None = None) -> None:
        where = f" on incoming URL {url_id}" if url_id else ""
        super().__init__(f"Unknown deindexing status '{status}'{where}")
        self.status = status
        self.url_id = url_id


class StatusRegressionError(PrivacyAppError):
    """Status history moved backwards."""

    def __init__(self, url_id: str, regressions: list) -> None:
        super().__init__(f"Status history of incoming URL {url_id} moves backwards {len(regressions)} time(s)")
        self.url_id = url_id
        self.regressions = regressions
