"""Live pricing configuration settings.

Loads process-wide defaults from environment variables. Per-engine
options live in ``config.pricing_config`` and fall back to these values.
"""

import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load .env file for local overrides (debounce window, feature flags, etc.)
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    """Read a boolean flag from the environment."""
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    # Live update behaviour
    enable_live_updates: bool = field(
        default_factory=lambda: _env_bool("LIVE_PRICING_ENABLE_LIVE_UPDATES", "true")
    )
    debounce_ms: float = field(
        default_factory=lambda: float(os.getenv("LIVE_PRICING_DEBOUNCE_MS", "1000"))
    )
    skip_unrelated_steps: bool = field(
        default_factory=lambda: _env_bool("LIVE_PRICING_SKIP_UNRELATED_STEPS", "false")
    )

    # Adjustment policy
    include_risk_adjustments: bool = field(
        default_factory=lambda: _env_bool("LIVE_PRICING_INCLUDE_RISK_ADJUSTMENTS", "true")
    )
    high_rise_threshold_stories: int = field(
        default_factory=lambda: int(os.getenv("LIVE_PRICING_HIGH_RISE_STORIES", "20"))
    )

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))


# Singleton settings instance
settings = Settings()
