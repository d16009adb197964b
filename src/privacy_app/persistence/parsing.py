"""Parsing boundary turning raw Supabase rows into validated domain records.

Every row read from the record store passes through one of the ``parse_*``
helpers below. Rows that do not match the expected shape raise
:class:`~privacy_app.errors.InvalidRecord` instead of leaking ``None`` values
into the scoring math.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from pydantic import TypeAdapter, ValidationError

from ..errors import InvalidRecord
from ..models.domain import (
    AddressHistoryEntry,
    AddressRecord,
    ChecklistProgress,
    CustomerRecord,
    IncomingUrl,
    StatusEntry,
    SubscriptionPlan,
)

_datetime_adapter = TypeAdapter(datetime)


def _coerce_datetime(value: Any, table: str, field_name: str) -> Optional[datetime]:
    if value is None or value == "":
        return None
    try:
        return _datetime_adapter.validate_python(value)
    except ValidationError as exc:
        raise InvalidRecord(table, f"field '{field_name}' is not a timestamp: {value!r}") from exc


def _coerce_id_set(value: Any, table: str, field_name: str) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        raise InvalidRecord(table, f"field '{field_name}' must be a list, got {type(value).__name__}")
    items: set[str] = set()
    for item in value:
        if item is None:
            continue
        if isinstance(item, Mapping):
            # site selections are sometimes stored as objects
            item = item.get("id") or item.get("site_id") or item.get("url")
            if item is None:
                continue
        items.add(str(item))
    return frozenset(items)


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _require(row: Mapping[str, Any], key: str, table: str) -> Any:
    value = row.get(key)
    if value is None or value == "":
        raise InvalidRecord(table, f"missing required field '{key}'")
    return value


def parse_subscription_plan(value: Any) -> SubscriptionPlan:
    if value is None or value == "":
        return SubscriptionPlan.NONE
    try:
        return SubscriptionPlan(str(value))
    except ValueError as exc:
        raise InvalidRecord("customers", f"unknown subscription plan {value!r}") from exc


def parse_customer(row: Mapping[str, Any]) -> CustomerRecord:
    table = "customers"
    checklist_step = row.get("checklist_step")
    if checklist_step is not None:
        try:
            checklist_step = int(checklist_step)
        except (TypeError, ValueError) as exc:
            raise InvalidRecord(table, f"checklist_step is not an integer: {checklist_step!r}") from exc
    return CustomerRecord(
        id=str(_require(row, "id", table)),
        subscription_plan=parse_subscription_plan(row.get("subscription_plan")),
        completed_guides=_coerce_id_set(row.get("completed_guides"), table, "completed_guides"),
        checklist_step=checklist_step,
    )


def parse_checklist_progress(row: Mapping[str, Any]) -> ChecklistProgress:
    table = "customer_checklist_progress"
    password_updated = row.get("password_updated")
    if password_updated is not None and not isinstance(password_updated, bool):
        raise InvalidRecord(table, f"password_updated must be a boolean, got {password_updated!r}")
    return ChecklistProgress(
        customer_id=str(_require(row, "customer_id", table)),
        password_updated=bool(password_updated),
        selected_sites=_coerce_id_set(row.get("selected_sites"), table, "selected_sites"),
        removal_urls=_coerce_id_set(row.get("removal_urls"), table, "removal_urls"),
        address=_optional_text(row.get("address")),
        personal_number=_optional_text(row.get("personal_number")),
        completed_guides=_coerce_id_set(row.get("completed_guides"), table, "completed_guides"),
        updated_at=_coerce_datetime(row.get("updated_at"), table, "updated_at"),
    )


def parse_status_entry(entry: Any) -> StatusEntry:
    table = "incoming_urls"
    if not isinstance(entry, Mapping):
        raise InvalidRecord(table, f"status_history entry must be an object, got {entry!r}")
    step = entry.get("status") or entry.get("step")
    if not step:
        raise InvalidRecord(table, "status_history entry has no status")
    at = _coerce_datetime(entry.get("timestamp") or entry.get("at"), table, "status_history.timestamp")
    if at is None:
        raise InvalidRecord(table, f"status_history entry '{step}' has no timestamp")
    return StatusEntry(step=str(step), at=at)


def parse_incoming_url(row: Mapping[str, Any]) -> IncomingUrl:
    table = "incoming_urls"
    history_raw = row.get("status_history") or []
    if not isinstance(history_raw, list):
        raise InvalidRecord(table, "status_history must be a list")
    history = tuple(parse_status_entry(entry) for entry in history_raw)
    status = str(_require(row, "status", table))
    if history and history[-1].step != status:
        raise InvalidRecord(
            table,
            f"status '{status}' does not match the last history entry '{history[-1].step}'",
        )
    return IncomingUrl(
        id=str(_require(row, "id", table)),
        url=str(_require(row, "url", table)),
        status=status,
        status_history=history,
        created_at=_coerce_datetime(row.get("created_at"), table, "created_at"),
    )


def parse_address(row: Mapping[str, Any]) -> AddressRecord:
    table = "customer_addresses"
    history_raw = row.get("address_history") or []
    if not isinstance(history_raw, list):
        raise InvalidRecord(table, "address_history must be a list")
    history: list[AddressHistoryEntry] = []
    for entry in history_raw:
        if not isinstance(entry, Mapping):
            raise InvalidRecord(table, f"address_history entry must be an object, got {entry!r}")
        history.append(
            AddressHistoryEntry(
                street_address=_optional_text(entry.get("street_address")),
                deleted_at=_coerce_datetime(entry.get("deleted_at"), table, "address_history.deleted_at"),
            )
        )
    return AddressRecord(
        street_address=_optional_text(row.get("street_address")),
        deleted_at=_coerce_datetime(row.get("deleted_at"), table, "deleted_at"),
        address_history=tuple(history),
    )
