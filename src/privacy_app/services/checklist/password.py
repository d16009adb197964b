"""Password requirements and password changes for the first checklist step."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

import httpx
from supabase import AuthError, AuthRetryableError, Client

from ...errors import PasswordPolicyError, WriteFailure

PASSWORD_MIN_LENGTH = 12
DIFFERENT_FROM_CURRENT = "different_from_current"

_LOWERCASE = re.compile(r"[a-z]")
_UPPERCASE = re.compile(r"[A-Z]")
_NUMBER_OR_SYMBOL = re.compile(r"[0-9!@#$%^&*(),.?\":{}|<>]")

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class PasswordRequirement:
    key: str
    check: Callable[[str], bool]


REQUIREMENTS: tuple[PasswordRequirement, ...] = (
    PasswordRequirement("min_length", lambda password: len(password) >= PASSWORD_MIN_LENGTH),
    PasswordRequirement("lowercase", lambda password: bool(_LOWERCASE.search(password))),
    PasswordRequirement("uppercase", lambda password: bool(_UPPERCASE.search(password))),
    PasswordRequirement("number_or_symbol", lambda password: bool(_NUMBER_OR_SYMBOL.search(password))),
)


def password_violations(new_password: str, current_password: Optional[str] = None) -> list[str]:
    """Keys of the requirements ``new_password`` fails, in display order."""
    violations = [requirement.key for requirement in REQUIREMENTS if not requirement.check(new_password)]
    if current_password is not None and new_password == current_password:
        violations.append(DIFFERENT_FROM_CURRENT)
    return violations


def validate_password(new_password: str, current_password: Optional[str] = None) -> None:
    violations = password_violations(new_password, current_password)
    if violations:
        raise PasswordPolicyError(violations)


class PasswordUpdater(Protocol):
    def update_password(self, user_id: str, new_password: str) -> None:
        """Change the password of ``user_id`` or raise."""
        ...


class SupabasePasswordUpdater:
    """Changes passwords through the Supabase auth admin API."""

    def __init__(self, client: Client) -> None:
        self.client = client

    def update_password(self, user_id: str, new_password: str) -> None:
        try:
            self.client.auth.admin.update_user_by_id(user_id, {"password": new_password})
        except (httpx.TimeoutException, httpx.NetworkError, AuthRetryableError) as exc:
            logger.error(f"Password update for user {user_id} failed: {exc}")
            raise WriteFailure(f"Password update failed: {exc}") from exc
        except AuthError as exc:
            if exc.code == "same_password":
                raise PasswordPolicyError([DIFFERENT_FROM_CURRENT]) from exc
            if exc.code == "weak_password":
                raise PasswordPolicyError(["weak_password"]) from exc
            logger.error(f"Password update for user {user_id} rejected: {exc}")
            raise WriteFailure(f"Password update was rejected: {exc}", retryable=False) from exc
