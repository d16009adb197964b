import time

import pytest

from src.privacy_app.errors import NoSession, OperationTimeout, WriteFailure
from src.privacy_app.persistence.records import SupabaseRecordStore
from src.privacy_app.services.cache import CHECKLIST_PROGRESS, GUIDES, ViewCache
from src.privacy_app.services.checklist import ChecklistService
from src.privacy_app.services.guides import (
    CompensatingGuideToggle,
    GuideCompletionSet,
    RpcGuideToggle,
    build_toggle_transaction,
    toggled,
)
from src.privacy_app.services.session import StaticSession

from conftest import FakeSupabaseClient


def _seed(store, guides=()):
    store.customers["c1"] = {"id": "c1", "subscription_plan": "6_months", "completed_guides": list(guides)}
    store.progress["c1"] = {"customer_id": "c1", "completed_guides": list(guides)}


def _completion(store, transaction=None, cache=None):
    cache = cache or ViewCache()
    checklist = ChecklistService(store, cache)
    transaction = transaction or CompensatingGuideToggle(store)
    return GuideCompletionSet(checklist, transaction, cache)


def test_toggled_adds_and_removes():
    assert toggled(frozenset(), "eniro") == frozenset({"eniro"})
    assert toggled(frozenset({"eniro", "hitta"}), "eniro") == frozenset({"hitta"})


def test_toggle_adds_guide_to_both_records(store):
    _seed(store)
    completion = _completion(store)

    result = completion.toggle(StaticSession("c1"), "eniro")

    assert result.completed is True
    assert result.completed_guides == frozenset({"eniro"})
    assert store.progress["c1"]["completed_guides"] == ["eniro"]
    assert store.customers["c1"]["completed_guides"] == ["eniro"]


def test_toggle_twice_restores_original_set(store):
    _seed(store, guides=["hitta"])
    completion = _completion(store)
    session = StaticSession("c1")

    completion.toggle(session, "eniro")
    result = completion.toggle(session, "eniro")

    assert result.completed is False
    assert result.completed_guides == frozenset({"hitta"})
    assert store.progress["c1"]["completed_guides"] == ["hitta"]
    assert store.customers["c1"]["completed_guides"] == ["hitta"]


def test_duplicate_ids_in_stored_list_collapse(store):
    _seed(store, guides=["eniro", "eniro", "hitta"])
    completion = _completion(store)

    result = completion.toggle(StaticSession("c1"), "ratsit")

    assert store.progress["c1"]["completed_guides"] == ["eniro", "hitta", "ratsit"]
    assert len(result.completed_guides) == 3


def test_toggle_without_session_writes_nothing(store):
    _seed(store)
    completion = _completion(store)

    with pytest.raises(NoSession):
        completion.toggle(StaticSession(None), "eniro")
    assert store.writes == []


def test_empty_guide_id_is_rejected(store):
    _seed(store)

    with pytest.raises(ValueError):
        _completion(store).toggle(StaticSession("c1"), "   ")


def test_toggle_creates_progress_row_lazily(store):
    store.customers["c1"] = {"id": "c1"}
    completion = _completion(store)

    completion.toggle(StaticSession("c1"), "eniro")

    assert store.progress["c1"]["completed_guides"] == ["eniro"]


def test_first_write_failure_leaves_state_unchanged(store):
    _seed(store, guides=["hitta"])
    store.fail_next("update_checklist_progress")
    completion = _completion(store)

    with pytest.raises(WriteFailure) as excinfo:
        completion.toggle(StaticSession("c1"), "eniro")

    assert excinfo.value.divergent is False
    assert store.progress["c1"]["completed_guides"] == ["hitta"]
    assert store.customers["c1"]["completed_guides"] == ["hitta"]


def test_timed_out_customer_write_that_landed_counts_as_success(store):
    _seed(store)
    original_update = store.update_customer

    def update_then_time_out(customer_id, fields):
        original_update(customer_id, fields)
        raise OperationTimeout("update customers", 1.0)

    store.update_customer = update_then_time_out

    result = _completion(store).toggle(StaticSession("c1"), "eniro")

    assert result.completed is True
    assert store.progress["c1"]["completed_guides"] == ["eniro"]
    assert store.customers["c1"]["completed_guides"] == ["eniro"]


def test_network_failure_that_landed_is_not_rolled_back(store):
    _seed(store)
    original_update = store.update_customer

    def update_then_drop_connection(customer_id, fields):
        original_update(customer_id, fields)
        raise WriteFailure("connection reset after send")

    store.update_customer = update_then_drop_connection

    _completion(store).toggle(StaticSession("c1"), "eniro")

    assert store.progress["c1"]["completed_guides"] == ["eniro"]
    assert store.customers["c1"]["completed_guides"] == ["eniro"]


def test_second_write_failure_rolls_back_first(store):
    _seed(store, guides=["hitta"])
    store.fail_next("update_customer")
    completion = _completion(store)

    with pytest.raises(WriteFailure) as excinfo:
        completion.toggle(StaticSession("c1"), "eniro")

    assert excinfo.value.divergent is False
    assert store.progress["c1"]["completed_guides"] == ["hitta"]
    assert store.customers["c1"]["completed_guides"] == ["hitta"]


def test_non_retryable_second_write_is_not_retried(store):
    _seed(store)
    store.fail_next("update_customer", times=1, exc=WriteFailure("rejected", retryable=False))
    completion = _completion(store)

    with pytest.raises(WriteFailure) as excinfo:
        completion.toggle(StaticSession("c1"), "eniro")

    assert excinfo.value.retryable is False
    # one failed customer write, no retries
    assert [w[0] for w in store.writes] == ["customer_checklist_progress", "customer_checklist_progress"]


def test_failed_rollback_reports_divergence(store):
    _seed(store, guides=["hitta"])
    store.fail_next("update_customer")
    completion = _completion(store)
    original_update = store.update_checklist_progress
    calls = {"count": 0}

    def flaky_update(customer_id, fields):
        calls["count"] += 1
        if calls["count"] > 1:
            raise WriteFailure("rollback rejected")
        original_update(customer_id, fields)

    store.update_checklist_progress = flaky_update

    with pytest.raises(WriteFailure) as excinfo:
        completion.toggle(StaticSession("c1"), "eniro")

    assert excinfo.value.divergent is True
    assert store.progress["c1"]["completed_guides"] == ["eniro", "hitta"]
    assert store.customers["c1"]["completed_guides"] == ["hitta"]


def test_toggle_invalidates_progress_and_guide_views(store):
    _seed(store)
    cache = ViewCache()
    completion = _completion(store, cache=cache)
    cache.get_or_load("c1", GUIDES, lambda: ["stale"])
    completion.completed("c1")
    assert ("c1", CHECKLIST_PROGRESS) in cache

    completion.toggle(StaticSession("c1"), "eniro")

    assert ("c1", CHECKLIST_PROGRESS) not in cache
    assert ("c1", GUIDES) not in cache
    assert completion.completed("c1") == frozenset({"eniro"})


def test_rpc_strategy_writes_both_records_in_one_call(store):
    _seed(store)
    completion = _completion(store, transaction=RpcGuideToggle(store))

    completion.toggle(StaticSession("c1"), "eniro")

    assert [w[0] for w in store.writes] == ["rpc"]
    assert store.customers["c1"]["completed_guides"] == ["eniro"]
    assert store.progress["c1"]["completed_guides"] == ["eniro"]


def test_rpc_failure_is_reported(store):
    _seed(store)
    store.fail_next("replace_completed_guides")
    completion = _completion(store, transaction=RpcGuideToggle(store))

    with pytest.raises(WriteFailure):
        completion.toggle(StaticSession("c1"), "eniro")
    assert store.progress["c1"]["completed_guides"] == []


def test_build_toggle_transaction_follows_settings(store, test_settings):
    assert isinstance(build_toggle_transaction(store, test_settings), CompensatingGuideToggle)
    rpc_settings = test_settings.model_copy(update={"guide_toggle_strategy": "rpc"})
    assert isinstance(build_toggle_transaction(store, rpc_settings), RpcGuideToggle)


def test_concurrent_toggles_are_last_write_wins(store):
    """Two actors holding the same snapshot: the later write replaces the earlier one."""
    _seed(store)
    first = _completion(store)
    second = _completion(store)
    # both actors read the empty set before either writes
    first.completed("c1")
    second.completed("c1")

    first.toggle(StaticSession("c1"), "eniro")
    second.toggle(StaticSession("c1"), "hitta")

    assert store.progress["c1"]["completed_guides"] == ["hitta"]
    assert store.customers["c1"]["completed_guides"] == ["hitta"]


def test_rpc_timeout_that_committed_counts_as_success(store):
    _seed(store)
    original = store.replace_completed_guides

    def commit_then_time_out(customer_id, guides):
        original(customer_id, guides)
        raise OperationTimeout("rpc apply_guide_toggle", 1.0)

    store.replace_completed_guides = commit_then_time_out

    result = _completion(store, transaction=RpcGuideToggle(store)).toggle(StaticSession("c1"), "eniro")

    assert result.completed is True


def test_rpc_timeout_without_commit_is_indeterminate(store):
    _seed(store)
    store.fail_next("replace_completed_guides", exc=OperationTimeout("rpc apply_guide_toggle", 1.0))

    with pytest.raises(WriteFailure) as excinfo:
        _completion(store, transaction=RpcGuideToggle(store)).toggle(StaticSession("c1"), "eniro")

    assert excinfo.value.indeterminate is True
    assert excinfo.value.divergent is False


@pytest.fixture
def slow_supabase(test_settings):
    client = FakeSupabaseClient(
        {
            "customers": [{"id": "c1", "completed_guides": []}],
            "customer_checklist_progress": [{"customer_id": "c1", "completed_guides": []}],
        }
    )
    config = test_settings.model_copy(update={"request_timeout_seconds": 0.05, "write_max_retries": 0})
    record_store = SupabaseRecordStore(client, config)
    yield client, record_store
    record_store.close()


def test_customer_write_landing_after_timeout_is_reported_not_rolled_back(slow_supabase):
    client, record_store = slow_supabase
    client.delays[("customers", "update")] = 0.3

    with pytest.raises(WriteFailure) as excinfo:
        _completion(record_store).toggle(StaticSession("c1"), "eniro")

    assert excinfo.value.divergent is True
    assert excinfo.value.indeterminate is True
    # the checklist row is left as written so the late customer write can match it
    assert client.rows["customer_checklist_progress"][0]["completed_guides"] == ["eniro"]

    time.sleep(0.5)
    assert client.rows["customers"][0]["completed_guides"] == ["eniro"]
    assert client.rows["customer_checklist_progress"][0]["completed_guides"] == ["eniro"]


def test_checklist_write_timing_out_stops_before_customer_write(slow_supabase):
    client, record_store = slow_supabase
    client.delays[("customer_checklist_progress", "update")] = 0.3

    with pytest.raises(WriteFailure) as excinfo:
        _completion(record_store).toggle(StaticSession("c1"), "eniro")

    assert excinfo.value.indeterminate is True
    assert excinfo.value.divergent is True
    time.sleep(0.5)
    assert ("customers", "update") not in [(call[0], call[1]) for call in client.calls]
    assert client.rows["customers"][0]["completed_guides"] == []
