"""Wiring of the onboarding services around one record store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from ..config import Settings, settings as default_settings
from ..data.guides_repository import load_guides
from ..models.domain import Guide
from ..persistence.records import RecordStore
from .cache import ViewCache
from .checklist.password import PasswordUpdater
from .checklist.progress import ChecklistService
from .deindexing.service import IncomingUrlService
from .deindexing.status import StatusLifecycleTracker
from .guides.completion import GuideCompletionSet, build_toggle_transaction
from .scoring.privacy_score import PrivacyScoreCalculator

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ServiceContainer:
    store: RecordStore
    cache: ViewCache
    tracker: StatusLifecycleTracker
    checklist: ChecklistService
    guides: GuideCompletionSet
    incoming_urls: IncomingUrlService
    scores: PrivacyScoreCalculator
    guide_loader: Callable[[], Sequence[Guide]]

    def close(self) -> None:
        logger.info("Closing record store")
        self.store.close()


def build_services(
    store: RecordStore,
    config: Optional[Settings] = None,
    guide_loader: Optional[Callable[[], Sequence[Guide]]] = None,
    passwords: Optional[PasswordUpdater] = None,
) -> ServiceContainer:
    config = config or default_settings
    guide_loader = guide_loader or (lambda: load_guides())
    cache = ViewCache(ttl_seconds=config.view_cache_ttl_seconds)
    tracker = StatusLifecycleTracker(config.deindexing_status_steps)
    checklist = ChecklistService(store, cache, passwords)
    return ServiceContainer(
        store=store,
        cache=cache,
        tracker=tracker,
        checklist=checklist,
        guides=GuideCompletionSet(checklist, build_toggle_transaction(store, config), cache),
        incoming_urls=IncomingUrlService(store, cache, tracker),
        scores=PrivacyScoreCalculator(store, checklist, cache, guide_loader, tracker, config),
        guide_loader=guide_loader,
    )
