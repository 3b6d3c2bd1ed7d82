"""
Scheduler tests: concurrency limit, failure isolation, and stop behaviour.
"""

import threading
import time
from unittest.mock import MagicMock

import pytest

from redundancy_keeper.core.exceptions import FleetApiError, RuleStoreError
from redundancy_keeper.keeper.decision import ScaleDirection, ScalingDecision
from redundancy_keeper.keeper.scheduler import Scheduler
from redundancy_keeper.rules.store import StaticRuleStore

pytestmark = pytest.mark.concurrency


def _rules(make_rule, count):
    return [make_rule(service_name=f"svc-{index}", cluster_name=f"svc-{index}-main") for index in range(count)]


@pytest.fixture
def scheduler_factory():
    created = []

    def factory(rule_store, evaluator, **kwargs):
        scheduler = Scheduler(rule_store, evaluator, **kwargs)
        created.append(scheduler)
        return scheduler

    yield factory
    for scheduler in created:
        scheduler.stop(timeout=5)


class _TrackingEvaluator:
    """Records peak concurrency; each evaluation blocks until released."""

    def __init__(self):
        self.lock = threading.Lock()
        self.active = 0
        self.peak = 0
        self.calls = 0
        self.release = threading.Event()

    def evaluate(self, rule):
        with self.lock:
            self.active += 1
            self.calls += 1
            self.peak = max(self.peak, self.active)
        try:
            self.release.wait(timeout=5)
        finally:
            with self.lock:
                self.active -= 1
        return []


def test_concurrency_never_exceeds_limit(scheduler_factory, make_rule):
    evaluator = _TrackingEvaluator()
    scheduler = scheduler_factory(StaticRuleStore(_rules(make_rule, 8)), evaluator, rule_concurrency=3)

    ticker = threading.Thread(target=scheduler.tick)
    ticker.start()
    time.sleep(0.2)
    assert evaluator.active == 3
    assert ticker.is_alive()

    evaluator.release.set()
    ticker.join(timeout=5)
    assert scheduler.wait_idle(timeout=5)
    assert evaluator.calls == 8
    assert evaluator.peak == 3


def test_limit_holds_across_ticks(scheduler_factory, make_rule):
    evaluator = _TrackingEvaluator()
    scheduler = scheduler_factory(StaticRuleStore(_rules(make_rule, 2)), evaluator, rule_concurrency=2)

    assert scheduler.tick() == 2
    ticker = threading.Thread(target=scheduler.tick)
    ticker.start()
    time.sleep(0.2)
    assert evaluator.peak == 2
    assert ticker.is_alive()

    evaluator.release.set()
    ticker.join(timeout=5)
    assert scheduler.wait_idle(timeout=5)
    assert evaluator.calls == 4


def test_failing_rule_does_not_affect_others(scheduler_factory, make_rule):
    rules = _rules(make_rule, 3)
    evaluator = MagicMock()

    def evaluate(rule):
        if rule.service_name == "svc-1":
            raise FleetApiError(500, "internal")
        return [ScalingDecision(rule.cluster_name, ScaleDirection.NONE)]

    evaluator.evaluate.side_effect = evaluate
    scheduler = scheduler_factory(StaticRuleStore(rules), evaluator, rule_concurrency=1)

    assert scheduler.tick() == 3
    assert scheduler.wait_idle(timeout=5)
    evaluated = sorted(call.args[0].service_name for call in evaluator.evaluate.call_args_list)
    assert evaluated == ["svc-0", "svc-1", "svc-2"]


def test_failure_is_logged_with_service_and_cluster(scheduler_factory, make_rule, caplog):
    evaluator = MagicMock()
    evaluator.evaluate.side_effect = FleetApiError(500, "internal")
    scheduler = scheduler_factory(StaticRuleStore([make_rule()]), evaluator)

    with caplog.at_level("ERROR", logger="redundancy_keeper.keeper.scheduler"):
        scheduler.tick()
        assert scheduler.wait_idle(timeout=5)

    records = [record for record in caplog.records if record.getMessage() == "failed to schedule service"]
    assert records
    context = records[0].extra_context
    assert context["service"] == "checkout"
    assert context["cluster"] == "checkout-main"
    assert "http code:500" in context["error"]


def test_slot_is_released_after_failure(scheduler_factory, make_rule):
    evaluator = MagicMock()
    evaluator.evaluate.side_effect = RuntimeError("boom")
    scheduler = scheduler_factory(StaticRuleStore(_rules(make_rule, 5)), evaluator, rule_concurrency=1)

    done = threading.Event()

    def run_tick():
        scheduler.tick()
        done.set()

    threading.Thread(target=run_tick, daemon=True).start()
    assert done.wait(timeout=5)
    assert scheduler.wait_idle(timeout=5)
    assert evaluator.evaluate.call_count == 5


def test_rule_listing_failure_skips_tick(scheduler_factory):
    store = MagicMock()
    store.list_enabled_rules.side_effect = RuleStoreError("unreadable")
    evaluator = MagicMock()
    scheduler = scheduler_factory(store, evaluator)

    assert scheduler.tick() == 0
    evaluator.evaluate.assert_not_called()


def test_empty_rule_list_dispatches_nothing(scheduler_factory):
    evaluator = MagicMock()
    scheduler = scheduler_factory(StaticRuleStore([]), evaluator)
    assert scheduler.tick() == 0
    evaluator.evaluate.assert_not_called()


def test_disabled_rules_are_skipped(scheduler_factory, make_rule):
    store = MagicMock()
    store.list_enabled_rules.return_value = [make_rule(), make_rule(service_name="idle", status="disabled")]
    evaluator = MagicMock()
    evaluator.evaluate.return_value = []
    scheduler = scheduler_factory(store, evaluator)

    assert scheduler.tick() == 1
    assert scheduler.wait_idle(timeout=5)
    evaluator.evaluate.assert_called_once()
    assert evaluator.evaluate.call_args.args[0].service_name == "checkout"


def test_tick_stops_dispatching_once_stop_is_requested(scheduler_factory, make_rule):
    evaluator = MagicMock()
    scheduler = scheduler_factory(StaticRuleStore(_rules(make_rule, 4)), evaluator)
    stop_event = threading.Event()
    stop_event.set()

    assert scheduler.tick(stop_event) == 0
    evaluator.evaluate.assert_not_called()


def test_run_ticks_periodically_until_stopped(scheduler_factory, make_rule):
    evaluator = MagicMock()
    ticked = threading.Event()
    evaluator.evaluate.side_effect = lambda rule: ticked.set() or []
    scheduler = scheduler_factory(StaticRuleStore([make_rule()]), evaluator, interval=0.05)

    scheduler.start()
    assert ticked.wait(timeout=5)
    scheduler.stop(timeout=5)
    calls = evaluator.evaluate.call_count
    time.sleep(0.2)
    assert evaluator.evaluate.call_count == calls


def test_stop_before_first_interval_runs_nothing(scheduler_factory, make_rule):
    evaluator = MagicMock()
    scheduler = scheduler_factory(StaticRuleStore([make_rule()]), evaluator, interval=60)

    scheduler.start()
    scheduler.stop(timeout=5)
    evaluator.evaluate.assert_not_called()


def test_stop_waits_for_in_flight_evaluation(scheduler_factory, make_rule):
    started = threading.Event()
    finished = threading.Event()

    def evaluate(rule):
        started.set()
        time.sleep(0.2)
        finished.set()
        return []

    evaluator = MagicMock()
    evaluator.evaluate.side_effect = evaluate
    scheduler = scheduler_factory(StaticRuleStore([make_rule()]), evaluator)

    scheduler.tick()
    assert started.wait(timeout=5)
    scheduler.stop(timeout=5)
    assert finished.is_set()


@pytest.mark.parametrize("kwargs", [{"interval": 0}, {"rule_concurrency": 0}])
def test_invalid_settings_rejected(kwargs):
    with pytest.raises(ValueError):
        Scheduler(StaticRuleStore([]), MagicMock(), **kwargs)


class _GatedEvaluator:
    """Blocks the first evaluation until released and records every rule it sees."""

    def __init__(self):
        self.seen = []
        self.started = threading.Event()
        self.gate = threading.Event()

    def evaluate(self, rule):
        self.seen.append(rule.service_name)
        self.started.set()
        self.gate.wait(timeout=5)
        return []


def test_rule_waiting_for_slot_is_not_dispatched_after_cancel(scheduler_factory, make_rule):
    evaluator = _GatedEvaluator()
    store = StaticRuleStore([make_rule(service_name="a"), make_rule(service_name="b")])
    scheduler = scheduler_factory(store, evaluator, rule_concurrency=1)
    stop_event = threading.Event()
    dispatched = []

    ticker = threading.Thread(target=lambda: dispatched.append(scheduler.tick(stop_event)))
    ticker.start()
    assert evaluator.started.wait(timeout=5)

    stop_event.set()
    evaluator.gate.set()
    ticker.join(timeout=5)

    assert not ticker.is_alive()
    assert scheduler.wait_idle(timeout=5)
    assert evaluator.seen == ["a"]
    assert dispatched == [1]


def test_stop_during_blocked_tick_dispatches_nothing_more(scheduler_factory, make_rule):
    evaluator = _GatedEvaluator()
    store = StaticRuleStore([make_rule(service_name="a"), make_rule(service_name="b")])
    scheduler = scheduler_factory(store, evaluator, rule_concurrency=1)
    errors = []

    def run_tick():
        try:
            scheduler.tick()
        except Exception as exc:
            errors.append(exc)

    ticker = threading.Thread(target=run_tick)
    ticker.start()
    assert evaluator.started.wait(timeout=5)

    stopper = threading.Thread(target=scheduler.stop, kwargs={"timeout": 0.1})
    stopper.start()
    time.sleep(0.1)
    evaluator.gate.set()
    stopper.join(timeout=5)
    ticker.join(timeout=5)

    assert not ticker.is_alive()
    assert errors == []
    assert evaluator.seen == ["a"]
