"""Pytest configuration and shared fixtures for live pricing tests."""

import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict

import pytest
from unittest.mock import MagicMock


# ============================================================================
# Ensure package imports work (livepricing.*)
# ============================================================================
#
# Tests import through the package (`from livepricing.services...`), so the
# repository root must be on sys.path when pytest is run from anywhere.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


FIXED_NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


# ============================================================================
# Calculator Mocks
# ============================================================================

@pytest.fixture
def mock_calculation() -> Dict[str, Any]:
    """Standard calculator output for one service."""
    return {
        "basePrice": 1000.0,
        "totalHours": 8.0,
        "area": 1000.0,
        "confidence": "high",
        "laborCost": 500.0,
        "materialCost": 300.0,
        "equipmentCost": 200.0,
    }


@pytest.fixture
def mock_calculator(mock_calculation):
    """Calculator returning the same output for every service."""
    calculator = MagicMock()
    calculator.calculate_service.return_value = mock_calculation
    calculator.get_service_display_name.side_effect = (
        lambda service: service.replace("_", " ").title()
    )
    return calculator


@pytest.fixture
def fixed_clock():
    """Clock returning a constant timestamp."""
    return lambda: FIXED_NOW


# ============================================================================
# Engine Fixtures
# ============================================================================

@pytest.fixture
def engine(mock_calculator, fixed_clock):
    """PricingEngine with a mock calculator and a short debounce window."""
    from livepricing.services.pricing_engine import PricingEngine

    engine = PricingEngine(
        config={"debounceMs": 50},
        calculator=mock_calculator,
        clock=fixed_clock,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def standard_engine(fixed_clock):
    """PricingEngine using the built-in StandardServiceCalculator."""
    from livepricing.services.pricing_engine import PricingEngine

    engine = PricingEngine(config={"debounceMs": 50}, clock=fixed_clock)
    yield engine
    engine.dispose()


@pytest.fixture(autouse=True)
def reset_engine_singleton():
    """Make sure no test leaks the process-wide engine into another."""
    yield
    from livepricing.services.pricing_engine import PricingEngine

    PricingEngine.reset_instance()
