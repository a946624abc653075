"""Pricing logger for the live pricing engine.

Structured logging setup plus helpers that log pricing events with
consistent keys, and a boxed console summary for local debugging.
"""

import logging
from typing import Optional

import structlog

from livepricing.config.settings import settings
from livepricing.models.pricing import PricingResult

logger = structlog.get_logger()

BANNER_WIDTH = 72
RESULT_BANNER_CHAR = "═"


def configure_logging(level: Optional[str] = None, json_output: bool = False) -> None:
    """Configure structlog for the pricing engine.

    Args:
        level: Log level name (defaults to settings.log_level).
        json_output: Render JSON lines instead of the console renderer.
    """
    level_name = (level or settings.log_level or "INFO").upper()
    level_no = getattr(logging, level_name, logging.INFO)
    if not isinstance(level_no, int):
        level_no = logging.INFO
    renderer = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_no),
    )


def _create_banner(char: str, text: str, width: int = BANNER_WIDTH) -> str:
    """Create a centered banner with given character."""
    text_with_spaces = f" {text} "
    padding = (width - len(text_with_spaces)) // 2
    return char * padding + text_with_spaces + char * (width - padding - len(text_with_spaces))


def format_pricing_summary(estimate_id: Optional[str], result: PricingResult) -> str:
    """Render a boxed, human-readable summary of a pricing result."""
    lines = [
        RESULT_BANNER_CHAR * BANNER_WIDTH,
        _create_banner(RESULT_BANNER_CHAR, f"LIVE PRICING: {estimate_id or 'ad hoc'}"),
        RESULT_BANNER_CHAR * BANNER_WIDTH,
        f"║ Total Cost   : ${result.total_cost:,.2f}",
        f"║ Total Hours  : {result.total_hours:,.2f}",
        f"║ Total Area   : {result.total_area:,.2f} sqft",
        f"║ Confidence   : {result.confidence}",
    ]
    for entry in result.service_breakdown:
        lines.append(f"║   {entry.service_name:<28} ${entry.cost:>12,.2f}")
    for adj in result.adjustments:
        lines.append(f"║   {adj.type:<10} {adj.reason[:17]:<17} ${adj.value:>12,.2f}")
    if result.missing_data:
        lines.append(f"║ Missing      : {', '.join(result.missing_data)}")
    lines.append(RESULT_BANNER_CHAR * BANNER_WIDTH)
    return "\n".join(lines)


def log_pricing_result(
    estimate_id: Optional[str],
    result: PricingResult,
    trigger: str,
    duration_ms: float = 0.0
) -> None:
    """Log a completed pricing calculation."""
    logger.info(
        "pricing_calculated",
        estimate_id=estimate_id,
        trigger=trigger,
        total_cost=result.total_cost,
        services=len(result.service_breakdown),
        adjustments=len(result.adjustments),
        confidence=result.confidence,
        missing=len(result.missing_data),
        duration_ms=round(duration_ms, 3),
    )
    logger.debug(
        "pricing_result_summary",
        estimate_id=estimate_id,
        summary=format_pricing_summary(estimate_id, result),
    )


def log_pricing_notified(estimate_id: str, delivered: int, subscribers: int) -> None:
    """Log delivery of a debounced result to subscribers."""
    log = logger.info if delivered == subscribers else logger.warning
    log(
        "pricing_subscribers_notified",
        estimate_id=estimate_id,
        delivered=delivered,
        subscribers=subscribers,
    )
