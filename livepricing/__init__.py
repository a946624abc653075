"""Live Pricing - real-time estimate pricing for the guided estimation wizard.

This package recalculates an estimate's price while the user edits the
wizard, and pushes debounced results to subscribers.

Architecture:
- PricingEngine: facade (immediate pricing, debounced updates, subscriptions)
- PricingAggregator: per-service costs + adjustments -> PricingResult
- CompletionAnalyzer: missing data and confidence
- AdjustmentEngine: markup, discounts, height/rush/access premiums, overrides
- DebounceScheduler / SubscriptionRegistry / ResultCache: per-estimate state
"""

__version__ = "1.0.0"
