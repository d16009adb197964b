"""Domain models for customers, checklist progress, addresses and deindexing URLs."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class SubscriptionPlan(str, Enum):
    ONE_MONTH = "1_month"
    SIX_MONTHS = "6_months"
    TWELVE_MONTHS = "12_months"
    NONE = "none"


@dataclass(slots=True, frozen=True)
class CustomerRecord:
    """Identity anchor carrying the plan and the mirrored guide set."""

    id: str
    subscription_plan: SubscriptionPlan = SubscriptionPlan.NONE
    completed_guides: frozenset[str] = frozenset()
    checklist_step: Optional[int] = None


@dataclass(slots=True, frozen=True)
class ChecklistProgress:
    """One row per customer tracking the four onboarding milestones."""

    customer_id: str
    password_updated: bool = False
    selected_sites: frozenset[str] = frozenset()
    removal_urls: frozenset[str] = frozenset()
    address: Optional[str] = None
    personal_number: Optional[str] = None
    completed_guides: frozenset[str] = frozenset()
    updated_at: Optional[datetime] = None


@dataclass(slots=True, frozen=True)
class StatusEntry:
    step: str
    at: datetime


@dataclass(slots=True, frozen=True)
class IncomingUrl:
    """A URL submitted for deindexing with its append-only status history."""

    id: str
    url: str
    status: str
    status_history: tuple[StatusEntry, ...] = ()
    created_at: Optional[datetime] = None


@dataclass(slots=True, frozen=True)
class AddressHistoryEntry:
    street_address: Optional[str] = None
    deleted_at: Optional[datetime] = None


@dataclass(slots=True, frozen=True)
class AddressRecord:
    street_address: Optional[str] = None
    deleted_at: Optional[datetime] = None
    address_history: tuple[AddressHistoryEntry, ...] = ()

    @property
    def is_active(self) -> bool:
        """True when the current address is set and not superseded or deleted."""
        if not self.street_address or self.deleted_at is not None:
            return False
        if not self.address_history:
            return True
        return self.address_history[-1].deleted_at is not None


@dataclass(slots=True, frozen=True)
class Guide:
    """Catalog entry describing how to hide oneself on a people-search site."""

    site_id: str
    site_name: str
    url: Optional[str] = None
    steps: tuple[str, ...] = field(default_factory=tuple)
