"""
Unit Tests for SubscriptionRegistry and ResultCache.

Test Coverage:
- Subscribe / unsubscribe bookkeeping and pruning of empty estimates
- Notification order and failure isolation
- Result cache replacement and deletion
"""

from datetime import datetime, timezone

import pytest

from livepricing.models.pricing import PricingResult
from livepricing.services.result_cache import ResultCache
from livepricing.services.subscription_registry import SubscriptionRegistry


@pytest.fixture
def registry():
    return SubscriptionRegistry()


@pytest.fixture
def result():
    return PricingResult(total_cost=100.0, last_updated=datetime(2025, 1, 1, tzinfo=timezone.utc))


class TestSubscribe:
    """Tests for subscribe and unsubscribe."""

    def test_subscribe_registers_callback(self, registry):
        callback = lambda result: None
        registry.subscribe("est-1", callback)

        assert "est-1" in registry
        assert registry.callbacks("est-1") == [callback]

    def test_unsubscribe_removes_only_that_subscription(self, registry):
        first = lambda result: None
        second = lambda result: None
        unsubscribe_first = registry.subscribe("est-1", first)
        registry.subscribe("est-1", second)

        unsubscribe_first()

        assert registry.callbacks("est-1") == [second]

    def test_same_callback_twice_unsubscribes_separately(self, registry):
        calls = []
        callback = calls.append
        unsubscribe_first = registry.subscribe("est-1", callback)
        registry.subscribe("est-1", callback)

        unsubscribe_first()

        assert registry.subscriber_count("est-1") == 1

    def test_last_unsubscribe_prunes_estimate(self, registry):
        unsubscribe = registry.subscribe("est-1", lambda result: None)

        unsubscribe()

        assert "est-1" not in registry
        assert len(registry) == 0

    def test_unsubscribe_is_idempotent(self, registry):
        unsubscribe = registry.subscribe("est-1", lambda result: None)
        registry.subscribe("est-1", lambda result: None)

        unsubscribe()
        unsubscribe()

        assert registry.subscriber_count("est-1") == 1

    def test_remove_all(self, registry):
        registry.subscribe("est-1", lambda result: None)
        registry.subscribe("est-1", lambda result: None)
        registry.subscribe("est-2", lambda result: None)

        assert registry.remove_all("est-1") == 2
        assert registry.total_subscriptions == 1
        assert registry.remove_all("est-1") == 0


class TestNotify:
    """Tests for notification delivery."""

    def test_notify_in_subscription_order(self, registry, result):
        calls = []
        registry.subscribe("est-1", lambda r: calls.append(("a", r)))
        registry.subscribe("est-1", lambda r: calls.append(("b", r)))

        delivered = registry.notify("est-1", result)

        assert delivered == 2
        assert calls == [("a", result), ("b", result)]

    def test_notify_other_estimate_untouched(self, registry, result):
        calls = []
        registry.subscribe("est-1", calls.append)

        assert registry.notify("est-2", result) == 0
        assert calls == []

    def test_failing_callback_isolated(self, registry, result):
        calls = []

        def broken(r):
            raise RuntimeError("boom")

        registry.subscribe("est-1", broken)
        registry.subscribe("est-1", calls.append)

        assert registry.notify("est-1", result) == 1
        assert calls == [result]

    def test_unsubscribe_during_notify(self, registry, result):
        calls = []
        unsubscribe_second = None

        def first(r):
            calls.append("first")
            unsubscribe_second()

        registry.subscribe("est-1", first)
        unsubscribe_second = registry.subscribe("est-1", lambda r: calls.append("second"))

        registry.notify("est-1", result)

        assert calls == ["first", "second"]
        assert registry.subscriber_count("est-1") == 1


class TestResultCache:
    """Tests for ResultCache."""

    def test_set_and_get(self, result):
        cache = ResultCache()
        cache.set("est-1", result)

        assert cache.get("est-1") is result
        assert "est-1" in cache

    def test_delete(self, result):
        cache = ResultCache()
        cache.set("est-1", result)

        assert cache.delete("est-1") is True
        assert cache.delete("est-1") is False
        assert cache.get("est-1") is None

    def test_clear(self, result):
        cache = ResultCache()
        cache.set("est-1", result)
        cache.set("est-2", result)

        cache.clear()

        assert len(cache) == 0
