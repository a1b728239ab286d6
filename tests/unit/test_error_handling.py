"""
Unit Tests for error classification, isolation context, logging
correlation and metrics.
"""

import logging

import pytest

from recallguard.observability.metrics import MatchingMetrics
from recallguard.utils.error_handling import (
    ErrorContext,
    ProviderUnavailableError,
    PushDeliveryError,
    TerminalSubscriptionError,
    TransientDeliveryError,
    classify_delivery_failure,
    classify_error,
)
from recallguard.utils.logging_context import CorrelationIdFilter, LoggingContext, item_scope


# ============================================================================
# Delivery failures
# ============================================================================

@pytest.mark.parametrize("status", [401, 404, 410])
def test_terminal_delivery_statuses(status):
    error = classify_delivery_failure(status)
    assert isinstance(error, TerminalSubscriptionError)
    assert error.is_terminal


@pytest.mark.parametrize("status", [None, 400, 413, 429, 500])
def test_transient_delivery_statuses(status):
    error = classify_delivery_failure(status)
    assert isinstance(error, TransientDeliveryError)
    assert not error.is_terminal


def test_classify_error():
    assert classify_error(ProviderUnavailableError("x")) == "provider"
    assert classify_error(PushDeliveryError("x", status_code=410)) == "terminal_delivery"
    assert classify_error(TimeoutError("request timeout")) == "timeout"
    assert classify_error(RuntimeError("???")) == "unknown"


# ============================================================================
# ErrorContext
# ============================================================================

@pytest.mark.asyncio
async def test_error_context_suppresses_and_records():
    async with ErrorContext("match_item:food:1", suppress=True) as ctx:
        raise ProviderUnavailableError("down")

    assert ctx.failed
    assert ctx.error_category == "provider"


@pytest.mark.asyncio
async def test_error_context_propagates_by_default():
    with pytest.raises(ValueError):
        async with ErrorContext("op"):
            raise ValueError("bad")


@pytest.mark.asyncio
async def test_error_context_success():
    async with ErrorContext("op", suppress=True) as ctx:
        pass

    assert not ctx.failed
    assert ctx.error is None


# ============================================================================
# Logging correlation
# ============================================================================

def test_correlation_filter_adds_ids():
    record = logging.LogRecord("t", logging.INFO, __file__, 1, "msg", None, None)
    LoggingContext.set_run_id("run-1")
    try:
        with item_scope("food", 42):
            CorrelationIdFilter().filter(record)
            assert LoggingContext.get_item_id() == "food:42"
        assert LoggingContext.get_item_id() == ""
    finally:
        LoggingContext.clear_context()

    assert record.run_id == "run-1"
    assert record.item_id == "food:42"


def test_generated_run_id():
    run_id = LoggingContext.set_run_id()
    try:
        assert run_id and LoggingContext.get_run_id() == run_id
    finally:
        LoggingContext.clear_context()


# ============================================================================
# Metrics
# ============================================================================

def test_metrics_instances_are_isolated():
    first, second = MatchingMetrics(), MatchingMetrics()

    first.record_alert("food", "HIGH")

    assert first.value("recallguard_alerts_created_total", {"category": "food", "urgency": "HIGH"}) == 1
    assert second.value("recallguard_alerts_created_total", {"category": "food", "urgency": "HIGH"}) == 0


def test_metrics_render():
    metrics = MatchingMetrics()
    metrics.record_delivery("delivered")
    metrics.set_index_size("food", "recalls", 3)

    text = metrics.render().decode()

    assert 'recallguard_push_deliveries_total{outcome="delivered"} 1.0' in text
    assert 'recallguard_vector_index_entries{category="food",partition="recalls"} 3.0' in text
