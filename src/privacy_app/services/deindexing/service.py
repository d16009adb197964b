"""Incoming URL listing with lifecycle views."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ...errors import UnknownStatus
from ...models.domain import IncomingUrl
from ...persistence.records import RecordStore
from ..cache import INCOMING_URLS, ViewCache
from .status import StatusLifecycleTracker, StatusRegression, StepView, sort_newest_first

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IncomingUrlView:
    url: IncomingUrl
    current_step_index: int
    steps: list[StepView]
    regressions: list[StatusRegression]


class IncomingUrlService:
    def __init__(self, store: RecordStore, cache: ViewCache, tracker: StatusLifecycleTracker) -> None:
        self.store = store
        self.cache = cache
        self.tracker = tracker

    def list_urls(self, customer_id: str) -> list[IncomingUrl]:
        urls = self.cache.get_or_load(
            customer_id, INCOMING_URLS, lambda: self.store.list_incoming_urls(customer_id)
        )
        return sort_newest_first(urls)

    def list_views(self, customer_id: str) -> list[IncomingUrlView]:
        """Newest-first URLs with step slots.

        Unknown statuses are not defaulted: the first one found is raised.
        Backward transitions are reported on the view rather than hidden.
        """
        views: list[IncomingUrlView] = []
        for url in self.list_urls(customer_id):
            try:
                current = self.tracker.current_step_index(url)
                regressions = self.tracker.find_regressions(url)
            except UnknownStatus:
                logger.error(f"Incoming URL {url.id} for customer {customer_id} has an unknown status")
                raise
            views.append(
                IncomingUrlView(
                    url=url,
                    current_step_index=current,
                    steps=self.tracker.step_views(url),
                    regressions=regressions,
                )
            )
        return views
