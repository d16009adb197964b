"""Status lifecycle of URLs submitted for search-engine deindexing.

Status changes are written by the operations workflow; this module only
derives views from the persisted ``status`` and ``status_history``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Sequence

from ...config import settings
from ...errors import StatusRegressionError, UnknownStatus
from ...models.domain import IncomingUrl

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class StepView:
    """Layout slot for one lifecycle step.

    Every step gets a slot so the stepper grid stays stable; ``label`` and
    ``timestamp`` are only filled in for steps that have been reached.
    """

    index: int
    step: str
    active: bool
    current: bool
    label: Optional[str]
    timestamp: Optional[datetime]


@dataclass(slots=True, frozen=True)
class StatusRegression:
    url_id: str
    position: int
    from_step: str
    to_step: str
    at: datetime


class StatusLifecycleTracker:
    """Read-only accessors over the ordered deindexing steps."""

    def __init__(self, steps: Sequence[str] | None = None) -> None:
        self.steps: tuple[str, ...] = tuple(steps or settings.deindexing_status_steps)
        self._positions = {step: index for index, step in enumerate(self.steps)}

    @property
    def terminal_step(self) -> str:
        return self.steps[-1]

    def step_index(self, step: str, url_id: str | None = None) -> int:
        try:
            return self._positions[step]
        except KeyError:
            logger.error(f"Unknown deindexing status '{step}' on incoming URL {url_id}")
            raise UnknownStatus(step, url_id) from None

    def current_step_index(self, url: IncomingUrl) -> int:
        return self.step_index(url.status, url.id)

    def is_step_active(self, url: IncomingUrl, index: int) -> bool:
        return index <= self.current_step_index(url)

    def is_step_current(self, url: IncomingUrl, index: int) -> bool:
        return index == self.current_step_index(url)

    def is_removal_approved(self, url: IncomingUrl) -> bool:
        return url.status == self.terminal_step

    def timestamp_for(self, url: IncomingUrl, step: str) -> Optional[datetime]:
        """Time of the most recent history entry for ``step``, if it happened."""
        for entry in reversed(url.status_history):
            if entry.step == step:
                return entry.at
        return None

    def step_views(self, url: IncomingUrl) -> list[StepView]:
        current = self.current_step_index(url)
        views: list[StepView] = []
        for index, step in enumerate(self.steps):
            reached = index <= current
            views.append(
                StepView(
                    index=index,
                    step=step,
                    active=reached,
                    current=index == current,
                    label=step if reached else None,
                    timestamp=self.timestamp_for(url, step) if reached else None,
                )
            )
        return views

    def find_regressions(self, url: IncomingUrl) -> list[StatusRegression]:
        regressions: list[StatusRegression] = []
        previous: Optional[int] = None
        previous_step = ""
        for position, entry in enumerate(url.status_history):
            index = self.step_index(entry.step, url.id)
            if previous is not None and index < previous:
                regressions.append(
                    StatusRegression(
                        url_id=url.id,
                        position=position,
                        from_step=previous_step,
                        to_step=entry.step,
                        at=entry.at,
                    )
                )
            previous = index
            previous_step = entry.step
        if regressions:
            logger.error(
                f"Incoming URL {url.id} status history moves backwards: "
                + ", ".join(f"{r.from_step} -> {r.to_step}" for r in regressions)
            )
        return regressions

    def assert_monotonic(self, url: IncomingUrl) -> None:
        regressions = self.find_regressions(url)
        if regressions:
            raise StatusRegressionError(url.id, regressions)

    def count_approved(self, urls: Iterable[IncomingUrl]) -> int:
        """Number of URLs at the terminal step; raises UnknownStatus on unrecognised statuses."""
        terminal = len(self.steps) - 1
        return sum(1 for url in urls if self.current_step_index(url) == terminal)


def sort_newest_first(urls: Iterable[IncomingUrl]) -> list[IncomingUrl]:
    """Order incoming URLs by creation time, newest first; undated rows go last."""
    items = list(urls)
    dated = [url for url in items if url.created_at is not None]
    undated = [url for url in items if url.created_at is None]
    return sorted(dated, key=lambda url: url.created_at, reverse=True) + undated
