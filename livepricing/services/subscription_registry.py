"""Per-estimate subscription registry.

Observer lists keyed by estimate id. ``subscribe`` returns an unsubscribe
closure that removes exactly that subscription; an estimate id whose list
becomes empty is dropped so abandoned estimates retain nothing.
"""

import itertools
from dataclasses import dataclass
from typing import Callable, Dict, List

import structlog

from livepricing.models.pricing import PricingResult

logger = structlog.get_logger()

PricingCallback = Callable[[PricingResult], None]
Unsubscribe = Callable[[], None]


@dataclass(frozen=True, eq=False)
class Subscription:
    """Handle for one registered callback."""

    id: int
    estimate_id: str
    callback: PricingCallback


class SubscriptionRegistry:
    """Ordered subscriber lists per estimate id."""

    def __init__(self):
        self._subscriptions: Dict[str, List[Subscription]] = {}
        self._ids = itertools.count(1)

    def __contains__(self, estimate_id: object) -> bool:
        return estimate_id in self._subscriptions

    def __len__(self) -> int:
        return len(self._subscriptions)

    @property
    def total_subscriptions(self) -> int:
        return sum(len(subs) for subs in self._subscriptions.values())

    def subscriber_count(self, estimate_id: str) -> int:
        return len(self._subscriptions.get(estimate_id, ()))

    def has_subscribers(self, estimate_id: str) -> bool:
        return estimate_id in self._subscriptions

    def callbacks(self, estimate_id: str) -> List[PricingCallback]:
        """Callbacks for an estimate, in subscription order."""
        return [sub.callback for sub in self._subscriptions.get(estimate_id, ())]

    def subscribe(self, estimate_id: str, callback: PricingCallback) -> Unsubscribe:
        """Register a callback for an estimate.

        Args:
            estimate_id: Estimate to listen to.
            callback: Called with each new PricingResult.

        Returns:
            Idempotent function removing this subscription.
        """
        subscription = Subscription(id=next(self._ids), estimate_id=estimate_id, callback=callback)
        self._subscriptions.setdefault(estimate_id, []).append(subscription)
        logger.debug(
            "pricing_subscribed",
            estimate_id=estimate_id,
            subscription_id=subscription.id,
            subscribers=self.subscriber_count(estimate_id),
        )

        def unsubscribe() -> None:
            self._remove(subscription)

        return unsubscribe

    def _remove(self, subscription: Subscription) -> None:
        subs = self._subscriptions.get(subscription.estimate_id)
        if not subs or subscription not in subs:
            return
        subs.remove(subscription)
        if not subs:
            del self._subscriptions[subscription.estimate_id]
        logger.debug(
            "pricing_unsubscribed",
            estimate_id=subscription.estimate_id,
            subscription_id=subscription.id,
            subscribers=len(subs),
        )

    def remove_all(self, estimate_id: str) -> int:
        """Drop every subscription for an estimate. Returns how many were removed."""
        return len(self._subscriptions.pop(estimate_id, ()))

    def clear(self) -> None:
        self._subscriptions.clear()

    def notify(self, estimate_id: str, result: PricingResult) -> int:
        """Invoke every current subscriber, in order, with ``result``.

        A failing subscriber is logged and does not stop the others.

        Returns:
            Number of callbacks that completed without raising.
        """
        delivered = 0
        for subscription in list(self._subscriptions.get(estimate_id, ())):
            try:
                subscription.callback(result)
                delivered += 1
            except Exception as e:
                logger.exception(
                    "pricing_subscriber_failed",
                    estimate_id=estimate_id,
                    subscription_id=subscription.id,
                    error=str(e),
                )
        return delivered
