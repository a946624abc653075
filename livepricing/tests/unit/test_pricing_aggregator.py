"""
Unit Tests for PricingAggregator.

Test Coverage:
- Short-circuit results for missing services or area data
- Per-service breakdown, ordering and totals
- Calculator failures and invalid calculator output
- Overall confidence lowered by failed or weak services
- Immutable result collections
- Measurement context handed to the calculator
"""

import pytest

from livepricing.config.errors import ErrorCode
from livepricing.models.flow_data import FlowDataModel
from livepricing.models.pricing import ConfidenceLevel
from livepricing.services.pricing_aggregator import PricingAggregator
from livepricing.tests.fixtures.mock_flow_data import (
    THREE_SERVICES,
    area_of_work,
    complete_flow,
    duration,
    flow_without_duration,
    scope_details,
)


def _flow(data):
    return FlowDataModel.model_validate(data)


@pytest.fixture
def aggregator(mock_calculator, fixed_clock):
    return PricingAggregator(
        calculator=mock_calculator,
        display_name_lookup=mock_calculator.get_service_display_name,
        clock=fixed_clock,
    )


class TestShortCircuit:
    """Tests for results computed without calling the calculator."""

    def test_no_services(self, aggregator, mock_calculator):
        data = complete_flow()
        data["scopeDetails"] = scope_details(services=[])

        result = aggregator.aggregate(_flow(data))

        assert result.total_cost == 0
        assert result.confidence == ConfidenceLevel.LOW
        assert "Selected services" in result.missing_data
        mock_calculator.calculate_service.assert_not_called()

    def test_no_area_data(self, aggregator, mock_calculator):
        data = complete_flow()
        data["areaOfWork"] = area_of_work(total_sqft=0, measured_area=None)

        result = aggregator.aggregate(_flow(data))

        assert result.total_cost == 0
        assert result.service_breakdown == ()
        mock_calculator.calculate_service.assert_not_called()

    def test_upstream_warnings_kept(self, aggregator):
        result = aggregator.aggregate(FlowDataModel(), warnings=["Invalid duration data ignored"])

        assert result.warnings == ("Invalid duration data ignored",)


class TestBreakdown:
    """Tests for per-service breakdown and totals."""

    def test_one_entry_per_service_in_order(self, aggregator):
        result = aggregator.aggregate(_flow(complete_flow(THREE_SERVICES)))

        assert [entry.service for entry in result.service_breakdown] == THREE_SERVICES
        assert result.service_breakdown[1].service_name == "Pressure Washing"

    def test_totals_sum_breakdown(self, aggregator):
        result = aggregator.aggregate(_flow(complete_flow(THREE_SERVICES)))

        assert result.subtotal == 3000.0
        assert result.total_hours == 24.0
        assert result.total_area == 3000.0
        assert result.total_cost == 3000.0

    def test_cost_components_carried(self, aggregator):
        entry = aggregator.aggregate(_flow(complete_flow())).service_breakdown[0]

        assert (entry.labor_cost, entry.material_cost, entry.equipment_cost) == (500.0, 300.0, 200.0)

    def test_last_updated_from_clock(self, aggregator, fixed_clock):
        result = aggregator.aggregate(_flow(complete_flow()))

        assert result.last_updated == fixed_clock()


class TestCalculatorFailures:
    """Tests for calculator errors and invalid output."""

    def test_raising_calculator_skips_service(self, aggregator, mock_calculator):
        mock_calculator.calculate_service.side_effect = ValueError("Unknown service type: gutters")

        result = aggregator.aggregate(_flow(complete_flow(["gutters"])))

        assert result.service_breakdown == ()
        assert result.total_cost == 0
        assert result.missing_data == ("Pricing unavailable for Gutters",)
        assert result.warnings == ("Failed to calculate Gutters: Unknown service type: gutters",)

    def test_invalid_output_skips_service(self, aggregator, mock_calculator):
        mock_calculator.calculate_service.return_value = {"basePrice": -5, "totalHours": 1, "area": 1}

        result = aggregator.aggregate(_flow(complete_flow()))

        assert result.service_breakdown == ()
        assert "Pricing unavailable for Window Cleaning" in result.missing_data

    def test_invalid_output_error_code(self, aggregator, mock_calculator):
        from livepricing.config.errors import CalculatorFailure

        mock_calculator.calculate_service.return_value = {"basePrice": float("nan"), "totalHours": 1, "area": 1}

        with pytest.raises(CalculatorFailure) as exc_info:
            aggregator._invoke_calculator("window_cleaning", _flow(complete_flow()))

        assert exc_info.value.code == ErrorCode.CALCULATOR_INVALID_OUTPUT
        assert exc_info.value.service_type == "window_cleaning"

    def test_failing_display_name_falls_back_to_service(self, mock_calculator, fixed_clock):
        def broken_lookup(service):
            raise KeyError(service)

        aggregator = PricingAggregator(mock_calculator, broken_lookup, clock=fixed_clock)

        result = aggregator.aggregate(_flow(complete_flow()))

        assert result.service_breakdown[0].service_name == "window_cleaning"


class TestConfidence:
    """Tests for how service results lower the overall confidence."""

    def test_complete_flow_is_high(self, aggregator):
        result = aggregator.aggregate(_flow(complete_flow(THREE_SERVICES)))

        assert result.confidence == ConfidenceLevel.HIGH

    def test_partial_failure_caps_at_medium(self, aggregator, mock_calculator, mock_calculation):
        def calculate(service_type, context):
            if service_type == "pressure_washing":
                raise RuntimeError("rate table unavailable")
            return mock_calculation

        mock_calculator.calculate_service.side_effect = calculate

        result = aggregator.aggregate(_flow(complete_flow(THREE_SERVICES)))

        assert result.confidence == ConfidenceLevel.MEDIUM
        assert len(result.service_breakdown) == 2
        assert result.missing_data == ("Pricing unavailable for Pressure Washing",)

    def test_all_services_failing_is_low(self, aggregator, mock_calculator):
        mock_calculator.calculate_service.side_effect = RuntimeError("rate table unavailable")

        result = aggregator.aggregate(_flow(complete_flow(THREE_SERVICES)))

        assert result.confidence == ConfidenceLevel.LOW
        assert result.total_cost == 0
        assert result.service_breakdown == ()

    def test_low_confidence_service_lowers_result(self, aggregator, mock_calculator, mock_calculation):
        mock_calculator.calculate_service.side_effect = [
            mock_calculation,
            {**mock_calculation, "confidence": "low"},
        ]

        result = aggregator.aggregate(_flow(complete_flow(["window_cleaning", "soft_washing"])))

        assert result.confidence == ConfidenceLevel.LOW

    def test_medium_confidence_service_caps_result(self, aggregator, mock_calculator, mock_calculation):
        mock_calculator.calculate_service.return_value = {**mock_calculation, "confidence": "medium"}

        result = aggregator.aggregate(_flow(complete_flow()))

        assert result.confidence == ConfidenceLevel.MEDIUM

    def test_service_confidence_never_raises_completion(self, aggregator):
        result = aggregator.aggregate(_flow(flow_without_duration()))

        assert result.confidence == ConfidenceLevel.MEDIUM


class TestResultImmutability:
    """Tests that a built result cannot be changed in place."""

    def test_collections_are_tuples(self, aggregator):
        result = aggregator.aggregate(_flow(complete_flow(THREE_SERVICES)), warnings=["note"])

        assert isinstance(result.service_breakdown, tuple)
        assert isinstance(result.missing_data, tuple)
        assert isinstance(result.adjustments, tuple)
        assert isinstance(result.warnings, tuple)

    def test_collections_reject_mutation(self, aggregator):
        result = aggregator.aggregate(_flow(complete_flow()))

        with pytest.raises(AttributeError):
            result.missing_data.append("tampered")
        with pytest.raises(AttributeError):
            result.service_breakdown.clear()


class TestMeasurementContext:
    """Tests for the context handed to the calculator."""

    def test_measured_area_preferred(self, aggregator):
        data = complete_flow()
        data["areaOfWork"] = area_of_work(stories=6, total_sqft=9000, measured_area=4000)
        data["duration"] = duration(urgency="urgent")

        context = aggregator.build_context("window_cleaning", _flow(data))

        assert context.area == 4000
        assert context.stories == 6
        assert context.access_difficulty == "difficult"
        assert context.access_type == "scaffold"
        assert context.building_type == "office"
        assert context.urgency == "urgent"

    def test_total_sqft_fallback(self, aggregator):
        data = complete_flow()
        data["areaOfWork"] = area_of_work(total_sqft=2500, measured_area=None)

        context = aggregator.build_context("window_cleaning", _flow(data))

        assert context.area == 2500

    def test_height_derived_from_stories(self, aggregator):
        data = complete_flow(stories=4)

        context = aggregator.build_context("window_cleaning", _flow(data))

        assert context.height_feet == 40.0

    def test_no_height_without_building_data(self, aggregator):
        context = aggregator.build_context("window_cleaning", FlowDataModel())

        assert context.height_feet is None
