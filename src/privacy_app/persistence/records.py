"""Record store for customers, checklist progress, incoming URLs and addresses."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from datetime import datetime, timezone
from typing import Any, Callable, Protocol, Sequence

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from ..config import Settings, settings as default_settings
from ..errors import OperationTimeout, ReadFailure, WriteFailure
from ..models.domain import AddressRecord, ChecklistProgress, CustomerRecord, IncomingUrl
from .parsing import parse_address, parse_checklist_progress, parse_customer, parse_incoming_url

CUSTOMERS_TABLE = "customers"
CHECKLIST_PROGRESS_TABLE = "customer_checklist_progress"
INCOMING_URLS_TABLE = "incoming_urls"
ADDRESSES_TABLE = "customer_addresses"
GUIDE_TOGGLE_FUNCTION = "apply_guide_toggle"

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """Narrow persistence interface consumed by the onboarding services."""

    def get_customer(self, customer_id: str) -> CustomerRecord | None: ...

    def update_customer(self, customer_id: str, fields: dict[str, Any]) -> None: ...

    def get_checklist_progress(self, customer_id: str) -> ChecklistProgress | None: ...

    def create_checklist_progress(self, customer_id: str) -> ChecklistProgress: ...

    def update_checklist_progress(self, customer_id: str, fields: dict[str, Any]) -> None: ...

    def list_incoming_urls(self, customer_id: str) -> list[IncomingUrl]: ...

    def get_address(self, customer_id: str) -> AddressRecord | None: ...

    def replace_completed_guides(self, customer_id: str, guides: Sequence[str]) -> None:
        """Write both guide records inside one database transaction."""
        ...

    def close(self) -> None: ...


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SupabaseRecordStore:
    """Supabase-backed :class:`RecordStore`.

    Every call is bounded by ``request_timeout_seconds``. Timeouts and network
    errors are retried with exponential backoff; rejections from PostgREST are
    not.
    """

    def __init__(self, client: Client, config: Settings | None = None) -> None:
        self.client = client
        self.config = config or default_settings
        self.timeout = self.config.request_timeout_seconds
        self.max_retries = self.config.write_max_retries
        self.backoff_seconds = self.config.write_backoff_seconds
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_parallel_requests,
            thread_name_prefix="supabase-store",
        )

    def close(self) -> None:
        self._executor.shutdown(wait=False)

    # ------------------------------------------------------------------ reads

    def get_customer(self, customer_id: str) -> CustomerRecord | None:
        rows = self._read(
            f"read {CUSTOMERS_TABLE}",
            lambda: self.client.table(CUSTOMERS_TABLE)
            .select("id, subscription_plan, completed_guides, checklist_step")
            .eq("id", customer_id)
            .limit(1)
            .execute(),
        )
        return parse_customer(rows[0]) if rows else None

    def get_checklist_progress(self, customer_id: str) -> ChecklistProgress | None:
        rows = self._read(
            f"read {CHECKLIST_PROGRESS_TABLE}",
            lambda: self.client.table(CHECKLIST_PROGRESS_TABLE)
            .select("*")
            .eq("customer_id", customer_id)
            .limit(1)
            .execute(),
        )
        return parse_checklist_progress(rows[0]) if rows else None

    def list_incoming_urls(self, customer_id: str) -> list[IncomingUrl]:
        rows = self._read(
            f"read {INCOMING_URLS_TABLE}",
            lambda: self.client.table(INCOMING_URLS_TABLE)
            .select("id, url, status, status_history, created_at")
            .eq("customer_id", customer_id)
            .execute(),
        )
        return [parse_incoming_url(row) for row in rows]

    def get_address(self, customer_id: str) -> AddressRecord | None:
        rows = self._read(
            f"read {ADDRESSES_TABLE}",
            lambda: self.client.table(ADDRESSES_TABLE)
            .select("street_address, deleted_at, address_history")
            .eq("customer_id", customer_id)
            .limit(1)
            .execute(),
        )
        return parse_address(rows[0]) if rows else None

    # ----------------------------------------------------------------- writes

    def create_checklist_progress(self, customer_id: str) -> ChecklistProgress:
        rows = self._write(
            f"create {CHECKLIST_PROGRESS_TABLE}",
            lambda: self.client.table(CHECKLIST_PROGRESS_TABLE)
            .upsert(
                {"customer_id": customer_id, "updated_at": utc_now_iso()},
                on_conflict="customer_id",
                ignore_duplicates=True,
            )
            .execute(),
            require_rows=False,
        )
        if rows:
            return parse_checklist_progress(rows[0])
        # the row already existed; ignore_duplicates returns nothing
        existing = self.get_checklist_progress(customer_id)
        if existing is None:
            raise WriteFailure(f"Checklist progress for customer {customer_id} could not be created")
        return existing

    def update_checklist_progress(self, customer_id: str, fields: dict[str, Any]) -> None:
        payload = {**fields, "updated_at": utc_now_iso()}
        self._write(
            f"update {CHECKLIST_PROGRESS_TABLE}",
            lambda: self.client.table(CHECKLIST_PROGRESS_TABLE)
            .update(payload)
            .eq("customer_id", customer_id)
            .execute(),
        )

    def update_customer(self, customer_id: str, fields: dict[str, Any]) -> None:
        payload = {**fields, "updated_at": utc_now_iso()}
        self._write(
            f"update {CUSTOMERS_TABLE}",
            lambda: self.client.table(CUSTOMERS_TABLE).update(payload).eq("id", customer_id).execute(),
        )

    def replace_completed_guides(self, customer_id: str, guides: Sequence[str]) -> None:
        self._write(
            f"rpc {GUIDE_TOGGLE_FUNCTION}",
            lambda: self.client.rpc(
                GUIDE_TOGGLE_FUNCTION,
                {"p_customer_id": customer_id, "p_completed_guides": list(guides)},
            ).execute(),
            require_rows=False,
        )

    # ---------------------------------------------------------------- helpers

    def _read(self, operation: str, call: Callable[[], Any]) -> list[dict]:
        try:
            response = self._with_retries(operation, call)
        except APIError as exc:
            logger.error(f"{operation} rejected: {exc}")
            raise ReadFailure(f"{operation} failed: {exc}") from exc
        except (httpx.NetworkError, OSError) as exc:
            logger.error(f"{operation} failed after {self.max_retries} retries: {exc}")
            raise ReadFailure(f"{operation} failed: {exc}") from exc
        return list(response.data or [])

    def _write(self, operation: str, call: Callable[[], Any], *, require_rows: bool = True) -> list[dict]:
        try:
            response = self._with_retries(operation, call)
        except APIError as exc:
            logger.error(f"{operation} rejected: {exc}")
            raise WriteFailure(f"{operation} was rejected: {exc}", retryable=False) from exc
        except (httpx.NetworkError, OSError) as exc:
            logger.error(f"{operation} failed after {self.max_retries} retries: {exc}")
            raise WriteFailure(f"{operation} failed: {exc}") from exc
        rows = list(response.data or []) if isinstance(response.data, list) else []
        if require_rows and not rows:
            logger.error(f"{operation} matched no rows")
            raise WriteFailure(f"{operation} matched no rows", retryable=False)
        logger.info(f"{operation} succeeded")
        return rows

    def _with_retries(self, operation: str, call: Callable[[], Any]) -> Any:
        attempt = 0
        while True:
            try:
                return self._bounded(operation, call)
            except (OperationTimeout, httpx.TimeoutException, httpx.NetworkError, OSError) as exc:
                attempt += 1
                if attempt > self.max_retries:
                    if isinstance(exc, httpx.TimeoutException):
                        raise OperationTimeout(operation, self.timeout) from exc
                    raise
                wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                logger.warning(
                    f"{operation} failed ({exc}), retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})"
                )
                time.sleep(wait_time)

    def _bounded(self, operation: str, call: Callable[[], Any]) -> Any:
        future = self._executor.submit(call)
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeout as exc:
            future.cancel()
            raise OperationTimeout(operation, self.timeout) from exc
