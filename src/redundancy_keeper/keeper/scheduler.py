"""Periodic dispatch of rule evaluations under a concurrency limit."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import List, Optional, Set

from ..core.logging import get_logger, log_with_context, new_correlation_id
from ..rules.models import PredictRule
from ..rules.store import RuleStore
from ..utils.metrics import MetricsRegistry
from .evaluator import RedundancyEvaluator

LOGGER = get_logger(__name__)


class Scheduler:
    """Evaluates every enabled rule once per interval.

    At most ``rule_concurrency`` evaluations run at once, across ticks. When all
    slots are busy the tick loop blocks until one frees up, so later rules of a
    tick wait rather than being dropped. A failing evaluation is logged with its
    service and cluster and never reaches the loop or other rules.

    Stopping prevents new ticks and dispatches; evaluations already running are
    left to finish. A stopped scheduler cannot be restarted.
    """

    def __init__(
        self,
        rule_store: RuleStore,
        evaluator: RedundancyEvaluator,
        *,
        interval: float = 60.0,
        rule_concurrency: int = 10,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        if rule_concurrency < 1:
            raise ValueError("rule_concurrency must be >= 1")
        self.rule_store = rule_store
        self.evaluator = evaluator
        self.interval = interval
        self.rule_concurrency = rule_concurrency
        self._slots = threading.BoundedSemaphore(rule_concurrency)
        self._executor = ThreadPoolExecutor(max_workers=rule_concurrency, thread_name_prefix="rule-eval")
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._pending: Set[Future] = set()
        self._pending_lock = threading.Lock()

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self.run, args=(self._stop_event,), name="keeper-scheduler", daemon=True)
        self._thread.start()
        LOGGER.info("Scheduler started (interval=%ss, rule_concurrency=%d)", self.interval, self.rule_concurrency)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        self._executor.shutdown(wait=True)
        LOGGER.info("Scheduler stopped")

    def run(self, stop_event: Optional[threading.Event] = None) -> None:
        """Tick every ``interval`` seconds until ``stop_event`` is set.

        Missed ticks are dropped rather than replayed back to back.
        """
        stop_event = stop_event or self._stop_event
        next_tick = time.monotonic() + self.interval
        while not stop_event.wait(max(0.0, next_tick - time.monotonic())):
            self.tick(stop_event)
            next_tick += self.interval
            now = time.monotonic()
            while next_tick <= now:
                next_tick += self.interval

    def tick(self, stop_event: Optional[threading.Event] = None) -> int:
        """List enabled rules and dispatch one evaluation per rule. Returns the dispatch count."""
        try:
            rules = self.rule_store.list_enabled_rules()
        except Exception:
            MetricsRegistry.record_rule_listing_failure()
            LOGGER.exception("failed to list rules, retrying next tick")
            return 0

        dispatched = 0
        for rule in rules:
            if not rule.enabled:
                continue
            if self._stopping(stop_event) or not self._dispatch(rule, stop_event):
                break
            dispatched += 1
        LOGGER.debug("Tick dispatched %d of %d rules", dispatched, len(rules))
        return dispatched

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Wait for every dispatched evaluation to finish. False on timeout."""
        with self._pending_lock:
            pending: List[Future] = list(self._pending)
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def _stopping(self, stop_event: Optional[threading.Event]) -> bool:
        return self._stop_event.is_set() or (stop_event is not None and stop_event.is_set())

    def _dispatch(self, rule: PredictRule, stop_event: Optional[threading.Event] = None) -> bool:
        """Submit one evaluation once a slot is free. False when cancelled while waiting."""
        self._slots.acquire()
        if self._stopping(stop_event):
            self._slots.release()
            return False
        try:
            future = self._executor.submit(self._run_rule, rule)
        except RuntimeError:
            # executor already shut down by stop()
            self._slots.release()
            if self._stopping(stop_event):
                return False
            raise
        except BaseException:
            self._slots.release()
            raise
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return True

    def _forget(self, future: Future) -> None:
        with self._pending_lock:
            self._pending.discard(future)

    def _run_rule(self, rule: PredictRule) -> None:
        new_correlation_id()
        try:
            decisions = self.evaluator.evaluate(rule)
        except Exception as exc:
            MetricsRegistry.record_evaluation("failed")
            log_with_context(
                LOGGER, logging.ERROR, "failed to schedule service",
                exc_info=True, service=rule.service_name, cluster=rule.cluster_name, error=str(exc),
            )
        else:
            scaled = any(decision.should_scale for decision in decisions)
            MetricsRegistry.record_evaluation("scaled" if scaled else "skipped")
        finally:
            self._slots.release()
