"""Completed-guide toggling.

The completed guide set lives on two records, the checklist progress row and
the customer row. Both are written through :class:`GuideToggleTransaction`
so a toggle either lands on both records or is reported as a failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from ...config import Settings, settings as default_settings
from ...errors import OperationTimeout, ReadFailure, WriteFailure
from ...persistence.records import RecordStore
from ..cache import CHECKLIST_PROGRESS, GUIDES, ViewCache
from ..checklist.progress import ChecklistService
from ..session import SessionAccessor, require_user_id

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class GuideToggleResult:
    customer_id: str
    guide_id: str
    completed: bool
    completed_guides: frozenset[str]


def toggled(current: frozenset[str], guide_id: str) -> frozenset[str]:
    """Remove ``guide_id`` if present, otherwise add it."""
    if guide_id in current:
        return current - {guide_id}
    return current | {guide_id}


def _as_column(guides: frozenset[str]) -> list[str]:
    return sorted(guides)


class GuideToggleTransaction(Protocol):
    def apply(self, customer_id: str, previous: frozenset[str], updated: frozenset[str]) -> None:
        """Persist ``updated`` to both guide records or raise :class:`WriteFailure`."""
        ...


class CompensatingGuideToggle:
    """Two writes with a compensating rollback.

    The checklist row is written first, then the customer row. Retries of
    timeouts and network errors happen inside the record store, so each write
    is attempted here once.

    A failure whose outcome is unknown (a timeout or a retryable network
    error) is checked by reading the row back. A write that landed anyway
    counts as success. A rejected customer write, or a network failure that
    the read-back shows did not land, restores the checklist row to
    ``previous``. A timed-out write that has not landed yet may still land
    later, so it is never compensated: the failure is reported as
    ``indeterminate`` and ``divergent`` instead.
    """

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def apply(self, customer_id: str, previous: frozenset[str], updated: frozenset[str]) -> None:
        try:
            self.store.update_checklist_progress(customer_id, {"completed_guides": _as_column(updated)})
        except (WriteFailure, OperationTimeout) as exc:
            if not self._progress_landed(customer_id, updated, exc):
                logger.error(f"Error updating checklist progress for customer {customer_id}: {exc}")
                self._raise_unless_settled(customer_id, exc, "checklist progress")
                raise WriteFailure(f"Could not update completed guides: {exc}", retryable=exc.retryable) from exc

        try:
            self.store.update_customer(customer_id, {"completed_guides": _as_column(updated)})
        except (WriteFailure, OperationTimeout) as exc:
            if self._customer_landed(customer_id, updated, exc):
                return
            logger.error(f"Error updating customer {customer_id}: {exc}")
            self._raise_unless_settled(customer_id, exc, "customer")
            self._compensate(customer_id, previous, exc)
            raise WriteFailure(
                f"Could not update completed guides on customer record: {exc}",
                retryable=exc.retryable,
            ) from exc

    def _progress_landed(self, customer_id: str, updated: frozenset[str], exc: Exception) -> bool:
        if not exc.retryable:
            return False
        try:
            progress = self.store.get_checklist_progress(customer_id)
        except (ReadFailure, OperationTimeout) as read_exc:
            logger.warning(f"Could not read back checklist progress for customer {customer_id}: {read_exc}")
            return False
        landed = progress is not None and progress.completed_guides == updated
        if landed:
            logger.info(f"Checklist progress write for customer {customer_id} landed despite {exc}")
        return landed

    def _customer_landed(self, customer_id: str, updated: frozenset[str], exc: Exception) -> bool:
        if not exc.retryable:
            return False
        try:
            customer = self.store.get_customer(customer_id)
        except (ReadFailure, OperationTimeout) as read_exc:
            logger.warning(f"Could not read back customer {customer_id}: {read_exc}")
            return False
        landed = customer is not None and customer.completed_guides == updated
        if landed:
            logger.info(f"Customer write for {customer_id} landed despite {exc}")
        return landed

    def _raise_unless_settled(self, customer_id: str, exc: Exception, record: str) -> None:
        """A timed-out write is still in flight; neither outcome can be assumed."""
        if not isinstance(exc, OperationTimeout):
            return
        logger.critical(
            f"Completed guides for customer {customer_id} may diverge: {record} write timed out and may still land"
        )
        raise WriteFailure(
            f"Completed guide update for customer {customer_id} timed out; the {record} record may still change",
            retryable=True,
            divergent=True,
            indeterminate=True,
        ) from exc

    def _compensate(self, customer_id: str, previous: frozenset[str], cause: Exception) -> None:
        try:
            self.store.update_checklist_progress(customer_id, {"completed_guides": _as_column(previous)})
        except (WriteFailure, OperationTimeout) as exc:
            logger.critical(
                f"Completed guides diverged for customer {customer_id}: rollback failed ({exc}) after {cause}"
            )
            raise WriteFailure(
                f"Completed guide records for customer {customer_id} are out of sync",
                retryable=True,
                divergent=True,
                indeterminate=isinstance(exc, OperationTimeout),
            ) from exc


class RpcGuideToggle:
    """Single database transaction through the ``apply_guide_toggle`` function."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def apply(self, customer_id: str, previous: frozenset[str], updated: frozenset[str]) -> None:
        try:
            self.store.replace_completed_guides(customer_id, _as_column(updated))
        except (WriteFailure, OperationTimeout) as exc:
            if isinstance(exc, OperationTimeout):
                try:
                    progress = self.store.get_checklist_progress(customer_id)
                except (ReadFailure, OperationTimeout):
                    progress = None
                if progress is not None and progress.completed_guides == updated:
                    logger.info(f"apply_guide_toggle for customer {customer_id} committed despite {exc}")
                    return
            logger.error(f"apply_guide_toggle failed for customer {customer_id}: {exc}")
            # both records change in one transaction, so a late commit cannot diverge them
            raise WriteFailure(
                f"Could not update completed guides: {exc}",
                retryable=exc.retryable,
                indeterminate=isinstance(exc, OperationTimeout),
            ) from exc


def build_toggle_transaction(store: RecordStore, config: Settings | None = None) -> GuideToggleTransaction:
    config = config or default_settings
    if config.guide_toggle_strategy == "rpc":
        return RpcGuideToggle(store)
    return CompensatingGuideToggle(store)


class GuideCompletionSet:
    """Idempotent per-customer toggle set of completed guide ids."""

    def __init__(
        self,
        checklist: ChecklistService,
        transaction: GuideToggleTransaction,
        cache: ViewCache,
    ) -> None:
        self.checklist = checklist
        self.transaction = transaction
        self.cache = cache

    def completed(self, customer_id: str) -> frozenset[str]:
        progress = self.checklist.get_progress(customer_id)
        return progress.completed_guides if progress else frozenset()

    def toggle(self, session: SessionAccessor, guide_id: str) -> GuideToggleResult:
        customer_id = require_user_id(session)
        return self.apply_guide_toggle(customer_id, guide_id)

    def apply_guide_toggle(self, customer_id: str, guide_id: str) -> GuideToggleResult:
        guide_id = guide_id.strip()
        if not guide_id:
            raise ValueError("guide_id must not be empty")

        previous = self.checklist.ensure_progress(customer_id).completed_guides
        updated = toggled(previous, guide_id)
        logger.info(f"Toggling guide {guide_id} for customer {customer_id}")

        try:
            self.transaction.apply(customer_id, previous, updated)
        finally:
            # a failed toggle may still have changed one of the records
            self.cache.invalidate(customer_id, CHECKLIST_PROGRESS, GUIDES)
        return GuideToggleResult(
            customer_id=customer_id,
            guide_id=guide_id,
            completed=guide_id in updated,
            completed_guides=updated,
        )
