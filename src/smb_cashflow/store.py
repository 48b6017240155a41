# SMB CashFlow - Cash-flow reconciliation & metrics for services SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Cash-flow store and explicit invalidation for SMB CashFlow.

The write path (recording an income, marking a payment as paid, ...) does
not reach into the read path. It publishes an invalidation message on an
``InvalidationBus``; the ``CashFlowStore`` subscribed to that bus re-fetches
its inputs and re-runs the pipeline.

Refreshes may overlap (a filter change while a fetch is in flight). Each
refresh takes a generation number and only a refresh newer than the report
currently held may replace it: a slow, older refresh completing late is
discarded. Fetch and reconciliation failures never raise out of the store;
they put it in the "failed" state with a user-visible notice and keep the
previous report.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Literal, Optional

from .engine import CashFlowFilter
from .pipeline import CashFlowReport, PipelineInputs, PipelineSettings, run_pipeline

logger = logging.getLogger(__name__)

Fetch = Callable[[], PipelineInputs]
Listener = Callable[[str], None]
StoreState = Literal["idle", "loading", "ready", "failed"]

PAYMENT_MARKED_PAID = "payment_marked_paid"
INCOME_RECORDED = "income_recorded"
EXPENSE_RECORDED = "expense_recorded"
FILTERS_CHANGED = "filters_changed"

INVALIDATION_EVENTS: frozenset[str] = frozenset(
    {PAYMENT_MARKED_PAID, INCOME_RECORDED, EXPENSE_RECORDED, FILTERS_CHANGED}
)


class InvalidationBus:
    """Synchronous publish/subscribe channel for invalidation messages."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def publish(self, event: str) -> None:
        """
        Deliver ``event`` to every listener, in subscription order.

        Raises:
            ValueError: if ``event`` is not a known invalidation message.
        """
        if event not in INVALIDATION_EVENTS:
            known = ", ".join(sorted(INVALIDATION_EVENTS))
            raise ValueError(f"Unknown invalidation event {event!r}. Expected one of: {known}.")

        with self._lock:
            listeners = list(self._listeners)

        logger.debug("Publishing %s to %d listener(s)", event, len(listeners))
        for listener in listeners:
            listener(event)


class CashFlowStore:
    """
    Holds the latest cash-flow report and refreshes it on invalidation.

    Args:
        fetch: Callable returning freshly fetched PipelineInputs. It may
            raise; failures are turned into the "failed" state.
        settings: Pipeline settings used for every refresh.
        bus: Optional InvalidationBus; every message published on it
            triggers a refresh.
    """

    def __init__(
        self,
        fetch: Fetch,
        settings: Optional[PipelineSettings] = None,
        bus: Optional[InvalidationBus] = None,
    ) -> None:
        self._fetch = fetch
        self._settings = settings or PipelineSettings()
        self._lock = threading.Lock()

        self._generation = 0
        self._published = 0
        self._report: Optional[CashFlowReport] = None
        self._filter: Optional[CashFlowFilter] = None
        self._state: StoreState = "idle"
        self._notice: Optional[str] = None

        self._unsubscribe = bus.subscribe(self._on_invalidated) if bus else None

    @property
    def report(self) -> Optional[CashFlowReport]:
        return self._report

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def notice(self) -> Optional[str]:
        """User-visible message describing the last failure, if any."""
        return self._notice

    @property
    def cash_filter(self) -> Optional[CashFlowFilter]:
        return self._filter

    def set_filter(self, cash_filter: Optional[CashFlowFilter]) -> Optional[CashFlowReport]:
        """Replace the active filter and refresh."""
        with self._lock:
            self._filter = cash_filter
        return self.refresh()

    def close(self) -> None:
        """Stop listening to the invalidation bus."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_invalidated(self, event: str) -> None:
        logger.info("Cash flow invalidated by %s, refreshing", event)
        self.refresh()

    def refresh(self) -> Optional[CashFlowReport]:
        """
        Fetch inputs, run the pipeline and publish the report.

        Returns:
            The new report, or None if the fetch or the pipeline failed, or
            if a more recent refresh already published its result.
        """
        with self._lock:
            self._generation += 1
            token = self._generation
            cash_filter = self._filter
            self._state = "loading"

        try:
            inputs = self._fetch()
            report = run_pipeline(inputs, self._settings, cash_filter)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Cash flow refresh %d failed: %s", token, exc)
            with self._lock:
                if token > self._published:
                    self._state = "failed"
                    self._notice = f"Could not load cash flow data: {exc}"
            return None

        with self._lock:
            if token < self._published:
                logger.info(
                    "Discarding stale cash flow refresh %d (refresh %d already published)",
                    token,
                    self._published,
                )
                return None
            self._published = token
            self._report = report
            self._notice = None
            self._state = "ready" if token == self._generation else "loading"

        return report
