"""Onboarding checklist progress.

The checklist has four fixed steps, independent of the guide catalog size:

0. password set
1. people-search sites selected
2. URLs submitted for deindexing
3. identification (address and personal number) provided
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ...errors import MissingConfiguration, WriteFailure
from ...models.domain import ChecklistProgress
from ...persistence.records import RecordStore
from ..cache import CHECKLIST_PROGRESS, ViewCache
from ..percentages import to_percent
from ..session import SessionAccessor, require_user_id
from .password import PasswordUpdater, validate_password

TOTAL_STEPS = 4

logger = logging.getLogger(__name__)


def is_step_complete(index: int, progress: Optional[ChecklistProgress]) -> bool:
    if not 0 <= index < TOTAL_STEPS:
        raise ValueError(f"checklist step must be between 0 and {TOTAL_STEPS - 1}, got {index}")
    if progress is None:
        return False
    match index:
        case 0:
            return progress.password_updated
        case 1:
            return len(progress.selected_sites) > 0
        case 2:
            return len(progress.removal_urls) > 0
        case _:
            return progress.address is not None and progress.personal_number is not None


def completed_steps(progress: Optional[ChecklistProgress]) -> int:
    return sum(1 for index in range(TOTAL_STEPS) if is_step_complete(index, progress))


def overall_progress(progress: Optional[ChecklistProgress]) -> float:
    """Fraction of the checklist that is done, in [0, 1]."""
    return completed_steps(progress) / TOTAL_STEPS


def progress_percentage(progress: Optional[ChecklistProgress]) -> int:
    return to_percent(overall_progress(progress))


def next_step(progress: Optional[ChecklistProgress]) -> Optional[int]:
    """1-based number of the first incomplete step, or None when all are done."""
    for index in range(TOTAL_STEPS):
        if not is_step_complete(index, progress):
            return index + 1
    return None


@dataclass(slots=True, frozen=True)
class ChecklistNotification:
    """One notification-bell entry per checklist step; read once the step is done."""

    id: str
    step: int
    title_key: str
    completed: bool
    created_at: datetime

    @property
    def read(self) -> bool:
        return self.completed


def checklist_notifications(
    progress: Optional[ChecklistProgress],
    now: Optional[datetime] = None,
) -> list[ChecklistNotification]:
    """Pending steps first, then completed ones, each group in step order."""
    created_at = (progress.updated_at if progress else None) or now or datetime.now(timezone.utc)
    notifications = [
        ChecklistNotification(
            id=f"checklist-step-{index + 1}",
            step=index + 1,
            title_key=f"step.{index + 1}.title",
            completed=is_step_complete(index, progress),
            created_at=created_at,
        )
        for index in range(TOTAL_STEPS)
    ]
    return sorted(notifications, key=lambda item: (item.completed, item.step))


def unread_count(notifications: list[ChecklistNotification]) -> int:
    return sum(1 for item in notifications if not item.read)


class ChecklistProgressAggregator:
    """Completion vector over one checklist snapshot. Performs no writes."""

    total_steps = TOTAL_STEPS

    def __init__(self, progress: Optional[ChecklistProgress]) -> None:
        self.progress = progress

    def is_step_complete(self, index: int) -> bool:
        return is_step_complete(index, self.progress)

    def steps(self) -> list[bool]:
        return [self.is_step_complete(index) for index in range(TOTAL_STEPS)]

    def completed_steps(self) -> int:
        return completed_steps(self.progress)

    def overall_progress(self) -> float:
        return overall_progress(self.progress)

    def percentage(self) -> int:
        return progress_percentage(self.progress)

    def next_step(self) -> Optional[int]:
        return next_step(self.progress)


class ChecklistService:
    """Reads and lazily creates the per-customer checklist row."""

    def __init__(
        self,
        store: RecordStore,
        cache: ViewCache,
        passwords: Optional[PasswordUpdater] = None,
    ) -> None:
        self.store = store
        self.cache = cache
        self.passwords = passwords

    def get_progress(self, customer_id: str) -> Optional[ChecklistProgress]:
        return self.cache.get_or_load(
            customer_id,
            CHECKLIST_PROGRESS,
            lambda: self.store.get_checklist_progress(customer_id),
        )

    def ensure_progress(self, customer_id: str) -> ChecklistProgress:
        """Return the checklist row, creating it on the first checklist interaction."""
        progress = self.get_progress(customer_id)
        if progress is not None:
            return progress
        logger.info(f"Creating checklist progress for customer {customer_id}")
        progress = self.store.create_checklist_progress(customer_id)
        self.cache.invalidate(customer_id, CHECKLIST_PROGRESS)
        return progress

    def notifications(self, customer_id: str) -> list[ChecklistNotification]:
        return checklist_notifications(self.get_progress(customer_id))

    def update_password(
        self,
        session: SessionAccessor,
        new_password: str,
        current_password: Optional[str] = None,
    ) -> ChecklistProgress:
        """Change the customer's password, then mark the password step done.

        The step is only marked after the auth provider accepted the change.
        """
        customer_id = require_user_id(session)
        validate_password(new_password, current_password)
        if self.passwords is None:
            raise MissingConfiguration("Password updates are not configured")
        self.passwords.update_password(customer_id, new_password)
        logger.info(f"Password changed for customer {customer_id}")
        return self._mark_password_updated(customer_id)

    def _mark_password_updated(self, customer_id: str) -> ChecklistProgress:
        self.ensure_progress(customer_id)
        try:
            self.store.update_checklist_progress(customer_id, {"password_updated": True})
        except WriteFailure:
            logger.error(f"Failed to mark password updated for customer {customer_id}")
            raise
        self.cache.invalidate(customer_id, CHECKLIST_PROGRESS)
        progress = self.get_progress(customer_id)
        if progress is None:
            raise WriteFailure(f"Checklist progress for customer {customer_id} disappeared after update")
        return progress
