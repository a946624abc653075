"""Pricing result models for live pricing.

This module defines the value objects produced by the pricing engine:
calculator output, per-service breakdown, adjustments, the aggregated
result and engine metrics.
"""

import math
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================


class ConfidenceLevel(str, Enum):
    """Coarse reliability of a pricing result."""

    HIGH = "high"       # All four wizard steps complete
    MEDIUM = "medium"   # Core data present, secondary step missing
    LOW = "low"         # Core data missing


class AdjustmentType(str, Enum):
    """Known adjustment types. The set is open: any string is accepted."""

    RISK = "risk"
    DISCOUNT = "discount"
    SURCHARGE = "surcharge"
    MARKUP = "markup"
    OVERRIDE = "override"
    FLOOR = "floor"


# =============================================================================
# CALCULATOR OUTPUT
# =============================================================================


class ServiceCalculation(BaseModel):
    """Validated output of ``ServiceCostCalculator.calculate_service``."""

    base_price: float = Field(..., ge=0, alias="basePrice")
    total_hours: float = Field(..., ge=0, alias="totalHours")
    area: float = Field(..., ge=0)
    confidence: ConfidenceLevel = Field(default=ConfidenceLevel.HIGH)
    labor_cost: float = Field(default=0.0, ge=0, alias="laborCost")
    material_cost: float = Field(default=0.0, ge=0, alias="materialCost")
    equipment_cost: float = Field(default=0.0, ge=0, alias="equipmentCost")

    class Config:
        populate_by_name = True
        extra = "ignore"

    @field_validator(
        "base_price", "total_hours", "area", "labor_cost", "material_cost", "equipment_cost"
    )
    @classmethod
    def validate_finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("must be a finite number")
        return value


# =============================================================================
# RESULT MODELS
# =============================================================================


class ServiceBreakdownEntry(BaseModel):
    """Cost summary for one selected service."""

    service: str = Field(..., description="Service type as selected")
    service_name: str = Field(..., alias="serviceName", description="Display name")
    cost: float = Field(..., ge=0)
    hours: float = Field(..., ge=0)
    area: float = Field(..., ge=0)
    confidence: ConfidenceLevel = Field(default=ConfidenceLevel.HIGH)
    labor_cost: float = Field(default=0.0, ge=0, alias="laborCost")
    material_cost: float = Field(default=0.0, ge=0, alias="materialCost")
    equipment_cost: float = Field(default=0.0, ge=0, alias="equipmentCost")

    class Config:
        populate_by_name = True
        use_enum_values = True
        frozen = True


class Adjustment(BaseModel):
    """Signed line item applied on top of the service subtotal.

    ``value`` is always an absolute amount; ``percentage`` records the rate
    it was derived from, when there was one.
    """

    type: str = Field(..., description="risk, discount, surcharge, markup, ...")
    value: float = Field(..., description="Signed amount added to total cost")
    reason: str = Field(default="")
    percentage: Optional[float] = Field(default=None)

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value: Any) -> Any:
        if isinstance(value, AdjustmentType):
            return value.value
        return value


class PricingResult(BaseModel):
    """Aggregated live pricing result.

    Invariant: ``total_cost`` equals the sum of breakdown costs plus the sum
    of adjustment values, rounded to cents.
    """

    total_cost: float = Field(default=0.0, ge=0, alias="totalCost")
    total_hours: float = Field(default=0.0, ge=0, alias="totalHours")
    total_area: float = Field(default=0.0, ge=0, alias="totalArea")
    service_breakdown: Tuple[ServiceBreakdownEntry, ...] = Field(
        default_factory=tuple, alias="serviceBreakdown"
    )
    confidence: ConfidenceLevel = Field(default=ConfidenceLevel.LOW)
    missing_data: Tuple[str, ...] = Field(default_factory=tuple, alias="missingData")
    adjustments: Tuple[Adjustment, ...] = Field(default_factory=tuple)
    warnings: Tuple[str, ...] = Field(default_factory=tuple)
    last_updated: datetime = Field(..., alias="lastUpdated")

    class Config:
        populate_by_name = True
        use_enum_values = True
        frozen = True

    @property
    def subtotal(self) -> float:
        """Sum of service costs before adjustments."""
        return round(sum(entry.cost for entry in self.service_breakdown), 2)

    def get_adjustments(self, adjustment_type: str) -> List[Adjustment]:
        return [adj for adj in self.adjustments if adj.type == adjustment_type]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary with camelCase keys."""
        return self.model_dump(by_alias=True, mode="json")


class PricingMetrics(BaseModel):
    """Engine activity counters."""

    calculations_performed: int = Field(default=0, ge=0, alias="calculationsPerformed")
    average_calculation_ms: float = Field(default=0.0, ge=0, alias="averageCalculationMs")
    last_calculation_ms: float = Field(default=0.0, ge=0, alias="lastCalculationMs")
    notifications_sent: int = Field(default=0, ge=0, alias="notificationsSent")
    active_subscriptions: int = Field(default=0, ge=0, alias="activeSubscriptions")
    pending_updates: int = Field(default=0, ge=0, alias="pendingUpdates")
    cached_results: int = Field(default=0, ge=0, alias="cachedResults")

    class Config:
        populate_by_name = True
