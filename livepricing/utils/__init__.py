"""Utility modules for the live pricing engine."""

from livepricing.utils.pricing_logger import (
    configure_logging,
    format_pricing_summary,
    log_pricing_result,
    log_pricing_notified,
)

__all__ = [
    "configure_logging",
    "format_pricing_summary",
    "log_pricing_result",
    "log_pricing_notified",
]
