"""Live pricing configuration.

This package contains:
- settings: Environment variables and process-wide defaults
- pricing_config: Per-engine options and pricing policies
- errors: Custom exceptions and error codes
"""

from livepricing.config.settings import settings
from livepricing.config.errors import LivePricingError
from livepricing.config.pricing_config import (
    PricingEngineConfig,
    HeightRiskPolicy,
    SurchargePolicy,
    ConfidencePolicy,
)

__all__ = [
    "settings",
    "LivePricingError",
    "PricingEngineConfig",
    "HeightRiskPolicy",
    "SurchargePolicy",
    "ConfidencePolicy",
]
