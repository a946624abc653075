"""Pricing aggregation for live pricing.

Combines per-service calculator output, adjustments and completion
analysis into one PricingResult. For a fixed snapshot and a deterministic
calculator the result is identical on every call except ``last_updated``.
"""

from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

import structlog
from pydantic import ValidationError as PydanticValidationError

from livepricing.config.errors import CalculatorFailure, ErrorCode
from livepricing.models.flow_data import FlowDataModel
from livepricing.models.pricing import (
    ConfidenceLevel,
    PricingResult,
    ServiceBreakdownEntry,
    ServiceCalculation,
)
from livepricing.services.adjustment_engine import AdjustmentEngine
from livepricing.services.calculator_service import MeasurementContext, ServiceCostCalculator
from livepricing.services.completion_analyzer import CompletionAnalyzer

logger = structlog.get_logger()

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PricingAggregator:
    """Builds a PricingResult from a flow snapshot.

    Steps:
    1. Short-circuit to a zero, low-confidence result when no service is
       selected or there is no area/building data at all
    2. Call the calculator once per selected service, in selection order
    3. Add adjustments on top of the service subtotal
    4. Attach missing data and confidence from the completion analysis,
       lowered for failed or low-confidence services
    5. Stamp ``last_updated``
    """

    def __init__(
        self,
        calculator: ServiceCostCalculator,
        display_name_lookup: Callable[[str], str],
        analyzer: Optional[CompletionAnalyzer] = None,
        adjustment_engine: Optional[AdjustmentEngine] = None,
        clock: Optional[Clock] = None
    ):
        """Initialize PricingAggregator.

        Args:
            calculator: Per-service cost calculator.
            display_name_lookup: Maps a service type to its display name.
            analyzer: Completion analyzer (default policy if omitted).
            adjustment_engine: Adjustment engine (default policies if omitted).
            clock: Returns the timestamp for ``last_updated``.
        """
        self.calculator = calculator
        self.display_name_lookup = display_name_lookup
        self.analyzer = analyzer or CompletionAnalyzer()
        self.adjustments = adjustment_engine or AdjustmentEngine()
        self.clock = clock or utc_now

    def aggregate(self, flow: FlowDataModel, warnings: Optional[List[str]] = None) -> PricingResult:
        """Price a flow snapshot.

        Args:
            flow: Wizard snapshot (not modified).
            warnings: Warnings collected upstream (e.g. dropped steps).

        Returns:
            PricingResult. Never raises for missing or partial data.
        """
        report = self.analyzer.analyze(flow)
        warnings = list(warnings or [])
        services = flow.selected_services

        if not services or not self.analyzer.has_core_data(flow):
            logger.debug(
                "pricing_short_circuit",
                services=len(services),
                missing=len(report.missing_data),
            )
            return PricingResult(
                confidence=ConfidenceLevel.LOW,
                missing_data=report.missing_data,
                warnings=warnings,
                last_updated=self.clock(),
            )

        breakdown: List[ServiceBreakdownEntry] = []
        missing_data = list(report.missing_data)
        failed = 0
        for service_type in services:
            try:
                breakdown.append(self._price_service(service_type, flow))
            except CalculatorFailure as e:
                failed += 1
                name = self._display_name(service_type)
                missing_data.append(f"Pricing unavailable for {name}")
                warnings.append(f"Failed to calculate {name}: {e.message}")
                logger.warning("service_calculation_failed", **e.to_dict())

        confidence = self._overall_confidence(report.confidence, breakdown, failed)

        subtotal = round(sum(entry.cost for entry in breakdown), 2)
        total_hours = round(sum(entry.hours for entry in breakdown), 2)
        total_area = round(sum(entry.area for entry in breakdown), 2)

        adjustments = self.adjustments.calculate(flow, subtotal)
        total_cost = round(subtotal + sum(adj.value for adj in adjustments), 2)

        return PricingResult(
            total_cost=max(total_cost, 0.0),
            total_hours=total_hours,
            total_area=total_area,
            service_breakdown=breakdown,
            confidence=confidence,
            missing_data=missing_data,
            adjustments=adjustments,
            warnings=warnings,
            last_updated=self.clock(),
        )

    def build_context(self, service_type: str, flow: FlowDataModel) -> MeasurementContext:
        """Measurement context handed to the calculator for one service."""
        area_step = flow.area_of_work
        area = 0.0
        if area_step is not None:
            area = area_step.measured_area or float(area_step.total_sqft or 0.0)

        timeline = flow.duration.timeline if flow.duration is not None else None
        return MeasurementContext(
            service_type=service_type,
            area=area,
            stories=self.adjustments.building_stories(flow) or 1.0,
            height_feet=self.adjustments.building_height_feet(flow) or None,
            building_type=flow.project_setup.building_type if flow.project_setup else None,
            access_difficulty=self.adjustments.access_difficulty(flow),
            access_type=self.adjustments.access_type(flow),
            urgency=timeline.urgency if timeline is not None else None,
        )

    @staticmethod
    def _overall_confidence(
        completion: ConfidenceLevel,
        breakdown: List[ServiceBreakdownEntry],
        failed: int
    ) -> ConfidenceLevel:
        """Lower the completion confidence for weak or failed services.

        No priced service is low; any failure caps at medium; a low service
        makes the result low and a medium service caps it at medium.
        """
        if not breakdown:
            return ConfidenceLevel.LOW
        confidence = ConfidenceLevel(completion)
        if failed and confidence == ConfidenceLevel.HIGH:
            confidence = ConfidenceLevel.MEDIUM
        for entry in breakdown:
            if entry.confidence == ConfidenceLevel.LOW:
                return ConfidenceLevel.LOW
            if entry.confidence == ConfidenceLevel.MEDIUM and confidence == ConfidenceLevel.HIGH:
                confidence = ConfidenceLevel.MEDIUM
        return confidence

    def _display_name(self, service_type: str) -> str:
        try:
            return self.display_name_lookup(service_type) or str(service_type)
        except Exception as e:
            logger.warning("service_display_name_failed", service_type=service_type, error=str(e))
            return str(service_type)

    def _price_service(self, service_type: str, flow: FlowDataModel) -> ServiceBreakdownEntry:
        calculation, name = self._invoke_calculator(service_type, flow)
        return ServiceBreakdownEntry(
            service=service_type,
            service_name=name,
            cost=round(calculation.base_price, 2),
            hours=round(calculation.total_hours, 2),
            area=round(calculation.area, 2),
            confidence=calculation.confidence,
            labor_cost=calculation.labor_cost,
            material_cost=calculation.material_cost,
            equipment_cost=calculation.equipment_cost,
        )

    def _invoke_calculator(
        self,
        service_type: str,
        flow: FlowDataModel
    ) -> Tuple[ServiceCalculation, str]:
        """Call the calculator and validate its output.

        Raises:
            CalculatorFailure: If the calculator raises or returns invalid output.
        """
        context = self.build_context(service_type, flow)
        try:
            raw = self.calculator.calculate_service(service_type, context)
        except Exception as e:
            raise CalculatorFailure(
                message=str(e) or type(e).__name__,
                service_type=service_type,
                details={"error_type": type(e).__name__},
            ) from e

        try:
            if isinstance(raw, ServiceCalculation):
                calculation = raw
            else:
                calculation = ServiceCalculation.model_validate(raw)
        except PydanticValidationError as e:
            raise CalculatorFailure(
                message="Invalid calculator output",
                service_type=service_type,
                code=ErrorCode.CALCULATOR_INVALID_OUTPUT,
                details={"errors": [f"{err['loc']}: {err['msg']}" for err in e.errors()]},
            ) from e

        return calculation, self._display_name(service_type)
