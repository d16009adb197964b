"""Privacy score: weighted guide, address and URL-removal completion."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from ...config import Settings, settings as default_settings
from ...errors import OperationTimeout
from ...models.domain import AddressRecord, ChecklistProgress, Guide, IncomingUrl, SubscriptionPlan
from ...persistence.records import RecordStore
from ..cache import ADDRESS, INCOMING_URLS, SUBSCRIPTION_PLAN, ViewCache
from ..checklist.progress import ChecklistService
from ..deindexing.status import StatusLifecycleTracker
from ..percentages import to_percent, round_half_up

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ScoreWeights:
    guides: float
    address: float
    urls: float

    @property
    def total(self) -> float:
        return self.guides + self.address + self.urls


@dataclass(slots=True, frozen=True)
class ComponentScores:
    guides: float
    address: float
    urls: float


@dataclass(slots=True, frozen=True)
class IndividualScores:
    guides: int
    address: int
    urls: int


@dataclass(slots=True, frozen=True)
class PrivacyScore:
    total: int
    individual: IndividualScores
    weights: ScoreWeights
    components: ComponentScores


ONE_MONTH_WEIGHTS = ScoreWeights(guides=0.5, address=0.5, urls=0.0)
DEFAULT_WEIGHTS = ScoreWeights(guides=1 / 3, address=1 / 3, urls=1 / 3)


def weights_for_plan(plan: SubscriptionPlan) -> ScoreWeights:
    # URL removal is not part of the shortest plan
    if plan is SubscriptionPlan.ONE_MONTH:
        return ONE_MONTH_WEIGHTS
    return DEFAULT_WEIGHTS


def guides_score(all_guides: Sequence[Guide], progress: Optional[ChecklistProgress]) -> float:
    if not all_guides:
        return 1.0
    completed = len(progress.completed_guides) if progress else 0
    return min(completed / len(all_guides), 1.0)


def address_score(address: Optional[AddressRecord]) -> float:
    return 1.0 if address is not None and address.is_active else 0.0


def urls_score(
    incoming_urls: Sequence[IncomingUrl],
    plan: SubscriptionPlan,
    tracker: StatusLifecycleTracker,
) -> float:
    if plan is SubscriptionPlan.ONE_MONTH:
        return 1.0
    if not incoming_urls:
        return 1.0
    return tracker.count_approved(incoming_urls) / len(incoming_urls)


def calculate_score(
    guides: Sequence[Guide],
    incoming_urls: Sequence[IncomingUrl],
    progress: Optional[ChecklistProgress],
    address: Optional[AddressRecord],
    plan: SubscriptionPlan,
    tracker: Optional[StatusLifecycleTracker] = None,
) -> PrivacyScore:
    """Combine the three component scores with plan-dependent weights.

    Pure: no reads beyond its arguments and no writes. Percentages are rounded
    half-up.
    """
    tracker = tracker or StatusLifecycleTracker()
    weights = weights_for_plan(plan)
    components = ComponentScores(
        guides=guides_score(guides, progress),
        address=address_score(address),
        urls=urls_score(incoming_urls, plan, tracker),
    )
    weighted = (
        weights.guides * components.guides
        + weights.address * components.address
        + weights.urls * components.urls
    )
    return PrivacyScore(
        total=round_half_up(100 * weighted),
        individual=IndividualScores(
            guides=to_percent(components.guides),
            address=to_percent(components.address),
            urls=to_percent(components.urls),
        ),
        weights=weights,
        components=components,
    )


class PrivacyScoreCalculator:
    """Fetches the score inputs for a customer in parallel and scores them."""

    def __init__(
        self,
        store: RecordStore,
        checklist: ChecklistService,
        cache: ViewCache,
        guide_loader: Callable[[], Sequence[Guide]],
        tracker: Optional[StatusLifecycleTracker] = None,
        config: Optional[Settings] = None,
    ) -> None:
        self.store = store
        self.checklist = checklist
        self.cache = cache
        self.guide_loader = guide_loader
        self.tracker = tracker or StatusLifecycleTracker()
        self.config = config or default_settings

    def _plan(self, customer_id: str) -> SubscriptionPlan:
        customer = self.store.get_customer(customer_id)
        return customer.subscription_plan if customer else SubscriptionPlan.NONE

    def score_for(self, customer_id: str) -> PrivacyScore:
        loaders = {
            "progress": lambda: self.checklist.get_progress(customer_id),
            "incoming_urls": lambda: self.cache.get_or_load(
                customer_id, INCOMING_URLS, lambda: self.store.list_incoming_urls(customer_id)
            ),
            "address": lambda: self.cache.get_or_load(
                customer_id, ADDRESS, lambda: self.store.get_address(customer_id)
            ),
            "plan": lambda: self.cache.get_or_load(
                customer_id, SUBSCRIPTION_PLAN, lambda: self._plan(customer_id)
            ),
        }
        timeout = self.config.request_timeout_seconds
        deadline = time.monotonic() + timeout
        results = {}
        executor = ThreadPoolExecutor(max_workers=min(len(loaders), self.config.max_parallel_requests))
        try:
            futures = {name: executor.submit(loader) for name, loader in loaders.items()}
            for name, future in futures.items():
                try:
                    results[name] = future.result(timeout=max(deadline - time.monotonic(), 0.0))
                except FutureTimeout as exc:
                    logger.warning(f"Score input '{name}' for customer {customer_id} timed out")
                    raise OperationTimeout(f"read {name}", timeout) from exc
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        guides = self.guide_loader()
        score = calculate_score(
            guides=guides,
            incoming_urls=results["incoming_urls"],
            progress=results["progress"],
            address=results["address"],
            plan=results["plan"],
            tracker=self.tracker,
        )
        logger.info(
            f"Privacy score for customer {customer_id}: total={score.total} "
            f"guides={score.individual.guides} address={score.individual.address} urls={score.individual.urls}"
        )
        return score
