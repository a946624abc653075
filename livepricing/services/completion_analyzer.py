"""Completion analysis for guided flow data.

Lists the required wizard fields that are still missing and derives the
confidence level of a pricing result from them. Missing data is never an
error: the engine always prices what it has.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import structlog

from livepricing.config.pricing_config import ConfidencePolicy
from livepricing.models.flow_data import FlowDataModel
from livepricing.models.pricing import ConfidenceLevel

logger = structlog.get_logger()


def _project_field(name: str) -> Callable[[FlowDataModel], bool]:
    def check(flow: FlowDataModel) -> bool:
        step = flow.project_setup
        return step is not None and bool((getattr(step, name) or "").strip())
    return check


def _has_height(flow: FlowDataModel) -> bool:
    area = flow.area_of_work
    return area is not None and bool(area.stories or area.height_feet)


def _has_total_sqft(flow: FlowDataModel) -> bool:
    area = flow.area_of_work
    return area is not None and bool(area.total_sqft)


def _has_measurements(flow: FlowDataModel) -> bool:
    area = flow.area_of_work
    return area is not None and len(area.measurements) > 0


def _has_services(flow: FlowDataModel) -> bool:
    return len(flow.selected_services) > 0


def _has_duration(flow: FlowDataModel) -> bool:
    return flow.duration is not None and bool(flow.duration.effective_hours)


# (field key, missing-data label, presence check), in wizard order
REQUIRED_FIELDS: Tuple[Tuple[str, str, Callable[[FlowDataModel], bool]], ...] = (
    ("projectSetup.customerName", "Customer name", _project_field("customer_name")),
    ("projectSetup.customerEmail", "Customer email", _project_field("customer_email")),
    ("projectSetup.customerPhone", "Customer phone", _project_field("customer_phone")),
    ("projectSetup.buildingType", "Building type", _project_field("building_type")),
    ("projectSetup.serviceType", "Service type", _project_field("service_type")),
    ("areaOfWork.height", "Building height", _has_height),
    ("areaOfWork.totalSqft", "Total square footage", _has_total_sqft),
    ("areaOfWork.measurements", "Area measurements", _has_measurements),
    ("scopeDetails.selectedServices", "Selected services", _has_services),
    ("duration.estimatedHours", "Estimated duration", _has_duration),
)

REQUIRED_STEPS: Tuple[str, ...] = ("project_setup", "area_of_work", "scope_details", "duration")


@dataclass
class CompletionReport:
    """Outcome of a completion analysis."""

    missing_data: List[str] = field(default_factory=list)
    missing_fields: List[str] = field(default_factory=list)
    populated_steps: List[str] = field(default_factory=list)
    confidence: ConfidenceLevel = ConfidenceLevel.LOW

    def is_present(self, field_key: str) -> bool:
        """Whether a known required field is filled in."""
        known = any(key == field_key for key, _, _ in REQUIRED_FIELDS)
        return known and field_key not in self.missing_fields


class CompletionAnalyzer:
    """Inspects flow data for unmet required fields."""

    def __init__(self, policy: Optional[ConfidencePolicy] = None):
        self.policy = policy or ConfidencePolicy()

    def analyze(self, flow: FlowDataModel) -> CompletionReport:
        """Analyze flow data completeness.

        Args:
            flow: Wizard snapshot.

        Returns:
            CompletionReport with missing labels, populated steps and confidence.
        """
        report = CompletionReport()
        for key, label, check in REQUIRED_FIELDS:
            if not check(flow):
                report.missing_fields.append(key)
                report.missing_data.append(label)

        report.populated_steps = [
            step for step in REQUIRED_STEPS if getattr(flow, step) is not None
        ]
        report.confidence = self._confidence(report)

        logger.debug(
            "completion_analyzed",
            missing=len(report.missing_data),
            populated_steps=report.populated_steps,
            confidence=report.confidence.value,
        )
        return report

    def _confidence(self, report: CompletionReport) -> ConfidenceLevel:
        if not report.missing_data:
            return ConfidenceLevel.HIGH
        if len(report.populated_steps) < self.policy.min_populated_steps:
            return ConfidenceLevel.LOW
        if all(report.is_present(key) for key in self.policy.medium_required_fields):
            return ConfidenceLevel.MEDIUM
        return ConfidenceLevel.LOW

    def has_core_data(self, flow: FlowDataModel) -> bool:
        """Whether there is enough area/building data to price anything."""
        area = flow.area_of_work
        if area is None:
            return False
        return area.measured_area > 0 or bool(area.total_sqft)
