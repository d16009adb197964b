from __future__ import annotations

import copy
import time
from collections import defaultdict
from typing import Any, Sequence

import pytest

from src.privacy_app.config import Settings
from src.privacy_app.errors import WriteFailure
from src.privacy_app.models.domain import AddressRecord, ChecklistProgress, CustomerRecord, Guide, IncomingUrl
from src.privacy_app.persistence.parsing import (
    parse_address,
    parse_checklist_progress,
    parse_customer,
    parse_incoming_url,
)


class InMemoryRecordStore:
    """RecordStore over raw rows, parsed on read like the Supabase store."""

    def __init__(self) -> None:
        self.customers: dict[str, dict] = {}
        self.progress: dict[str, dict] = {}
        self.urls: dict[str, list[dict]] = defaultdict(list)
        self.addresses: dict[str, dict] = {}
        self.writes: list[tuple[str, str, dict]] = []
        self.reads: list[tuple[str, str]] = []
        self._failures: dict[str, list[Exception]] = defaultdict(list)
        self.closed = False

    def fail_next(self, operation: str, times: int = 1, exc: Exception | None = None) -> None:
        for _ in range(times):
            self._failures[operation].append(exc or WriteFailure(f"{operation} rejected"))

    def _maybe_fail(self, operation: str) -> None:
        if self._failures[operation]:
            raise self._failures[operation].pop(0)

    def get_customer(self, customer_id: str) -> CustomerRecord | None:
        self.reads.append(("customers", customer_id))
        row = self.customers.get(customer_id)
        return parse_customer(row) if row else None

    def update_customer(self, customer_id: str, fields: dict[str, Any]) -> None:
        self._maybe_fail("update_customer")
        if customer_id not in self.customers:
            raise WriteFailure("update customers matched no rows", retryable=False)
        self.customers[customer_id].update(copy.deepcopy(fields))
        self.writes.append(("customers", customer_id, fields))

    def get_checklist_progress(self, customer_id: str) -> ChecklistProgress | None:
        self.reads.append(("customer_checklist_progress", customer_id))
        row = self.progress.get(customer_id)
        return parse_checklist_progress(row) if row else None

    def create_checklist_progress(self, customer_id: str) -> ChecklistProgress:
        self._maybe_fail("create_checklist_progress")
        self.progress.setdefault(customer_id, {"customer_id": customer_id})
        self.writes.append(("customer_checklist_progress", customer_id, {"created": True}))
        return parse_checklist_progress(self.progress[customer_id])

    def update_checklist_progress(self, customer_id: str, fields: dict[str, Any]) -> None:
        self._maybe_fail("update_checklist_progress")
        if customer_id not in self.progress:
            raise WriteFailure("update customer_checklist_progress matched no rows", retryable=False)
        self.progress[customer_id].update(copy.deepcopy(fields))
        self.writes.append(("customer_checklist_progress", customer_id, fields))

    def list_incoming_urls(self, customer_id: str) -> list[IncomingUrl]:
        self.reads.append(("incoming_urls", customer_id))
        return [parse_incoming_url(row) for row in self.urls.get(customer_id, [])]

    def get_address(self, customer_id: str) -> AddressRecord | None:
        self.reads.append(("customer_addresses", customer_id))
        row = self.addresses.get(customer_id)
        return parse_address(row) if row else None

    def replace_completed_guides(self, customer_id: str, guides: Sequence[str]) -> None:
        self._maybe_fail("replace_completed_guides")
        if customer_id not in self.progress or customer_id not in self.customers:
            raise WriteFailure("apply_guide_toggle failed", retryable=False)
        self.progress[customer_id]["completed_guides"] = list(guides)
        self.customers[customer_id]["completed_guides"] = list(guides)
        self.writes.append(("rpc", customer_id, {"completed_guides": list(guides)}))

    def close(self) -> None:
        self.closed = True


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.action = "select"
        self.payload = None
        self.filters = {}

    def select(self, *_args, **_kwargs):
        self.action = "select"
        return self

    def update(self, payload):
        self.action = "update"
        self.payload = payload
        return self

    def upsert(self, payload, **kwargs):
        self.action = "upsert"
        self.payload = payload
        self.upsert_options = kwargs
        return self

    def eq(self, column, value):
        self.filters[column] = value
        return self

    def limit(self, _count):
        return self

    def execute(self):
        delay = self.client.delays.get((self.table, self.action), 0.0)
        if delay:
            # the request is slow but still applies once it gets through
            time.sleep(delay)
        self.client.calls.append((self.table, self.action, self.payload, dict(self.filters)))
        if self.client.errors:
            raise self.client.errors.pop(0)
        rows = self.client.rows.get(self.table, [])
        matching = [row for row in rows if all(row.get(k) == v for k, v in self.filters.items())]
        if self.action == "update":
            for row in matching:
                row.update(self.payload)
        if self.action == "upsert" and self.upsert_options.get("ignore_duplicates"):
            if any(row.get("customer_id") == self.payload["customer_id"] for row in rows):
                return FakeResponse([])
            self.client.rows.setdefault(self.table, []).append(dict(self.payload))
            return FakeResponse([dict(self.payload)])
        return FakeResponse(matching)


class FakeRpc:
    def __init__(self, client, name, params):
        self.client = client
        self.name = name
        self.params = params

    def execute(self):
        self.client.calls.append((self.name, "rpc", self.params, {}))
        if self.client.errors:
            raise self.client.errors.pop(0)
        return FakeResponse(None)


class FakeSupabaseClient:
    def __init__(self, rows=None):
        self.rows = rows or {}
        self.calls = []
        self.errors = []
        self.delays: dict[tuple[str, str], float] = {}

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params):
        return FakeRpc(self, name, params)


class FakePasswordUpdater:
    """Records password changes; raises ``error`` instead when set."""

    def __init__(self, error: Exception | None = None) -> None:
        self.changes: list[tuple[str, str]] = []
        self.error = error

    def update_password(self, user_id: str, new_password: str) -> None:
        if self.error is not None:
            raise self.error
        self.changes.append((user_id, new_password))


def url_row(url_id: str, steps: Sequence[str], *, created_at: str = "2024-03-01T10:00:00+00:00") -> dict:
    history = [
        {"status": step, "timestamp": f"2024-03-{index + 1:02d}T12:00:00+00:00"}
        for index, step in enumerate(steps)
    ]
    return {
        "id": url_id,
        "url": f"https://example.com/{url_id}",
        "status": steps[-1],
        "status_history": history,
        "created_at": created_at,
    }


def make_guides(count: int) -> tuple[Guide, ...]:
    return tuple(Guide(site_id=f"site{i}", site_name=f"Site {i}") for i in range(count))


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        supabase_url=None,
        supabase_key=None,
        guide_catalog_file=tmp_path / "guides.json",
        write_backoff_seconds=0.0,
        request_timeout_seconds=2.0,
        view_cache_ttl_seconds=60.0,
    )
