"""Guided flow data models for live pricing.

Pydantic models for the wizard's accumulated, partially-complete answers.
Every step is optional until the user completes it, and unknown keys sent
by the wizard are kept but ignored by the engine.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class FlowStep(BaseModel):
    """Base class for wizard step payloads."""

    class Config:
        populate_by_name = True
        extra = "allow"
        allow_inf_nan = False


# =============================================================================
# PROJECT SETUP
# =============================================================================


class ProjectSetup(FlowStep):
    """Customer and project identification step."""

    customer_name: Optional[str] = Field(default=None, alias="customerName")
    customer_email: Optional[str] = Field(default=None, alias="customerEmail")
    customer_phone: Optional[str] = Field(default=None, alias="customerPhone")
    company_name: Optional[str] = Field(default=None, alias="companyName")
    building_type: Optional[str] = Field(default=None, alias="buildingType")
    service_type: Optional[str] = Field(default=None, alias="serviceType")


# =============================================================================
# AREA OF WORK
# =============================================================================


class Measurement(FlowStep):
    """A single takeoff measurement."""

    type: str = Field(default="area", description="area, linear, count, ...")
    value: float = Field(default=0.0)
    unit: str = Field(default="sqft")
    label: Optional[str] = None


class BuildingDetails(FlowStep):
    """Structured building dimensions."""

    height: Optional[float] = Field(default=None, ge=0, description="Height in feet")
    stories: Optional[float] = Field(default=None, ge=0)


class AreaOfWork(FlowStep):
    """Building and measurement step."""

    building_name: Optional[str] = Field(default=None, alias="buildingName")
    building_address: Optional[str] = Field(default=None, alias="buildingAddress")
    building_height_stories: Optional[float] = Field(
        default=None, ge=0, alias="buildingHeightStories"
    )
    building_height_feet: Optional[float] = Field(
        default=None, ge=0, alias="buildingHeightFeet"
    )
    total_sqft: Optional[float] = Field(default=None, ge=0, alias="totalSqft")
    glass_area: Optional[float] = Field(default=None, ge=0, alias="glassArea")
    window_count: Optional[int] = Field(default=None, ge=0, alias="windowCount")
    building_details: Optional[BuildingDetails] = Field(default=None, alias="buildingDetails")
    measurements: List[Measurement] = Field(default_factory=list)

    @property
    def measured_area(self) -> float:
        """Sum of area-type measurements."""
        return sum(m.value for m in self.measurements if m.type == "area" and m.value > 0)

    @property
    def stories(self) -> Optional[float]:
        if self.building_height_stories:
            return self.building_height_stories
        if self.building_details and self.building_details.stories:
            return self.building_details.stories
        return None

    @property
    def height_feet(self) -> Optional[float]:
        if self.building_height_feet:
            return self.building_height_feet
        if self.building_details and self.building_details.height:
            return self.building_details.height
        return None


# =============================================================================
# SCOPE / DURATION / PRICING
# =============================================================================


class ScopeDetails(FlowStep):
    """Service selection step."""

    selected_services: List[str] = Field(default_factory=list, alias="selectedServices")
    frequency: Optional[str] = None
    special_requirements: List[str] = Field(default_factory=list, alias="specialRequirements")


class DurationTimeline(FlowStep):
    estimated_hours: Optional[float] = Field(default=None, ge=0, alias="estimatedHours")
    start_date: Optional[str] = Field(default=None, alias="startDate")
    end_date: Optional[str] = Field(default=None, alias="endDate")
    urgency: Optional[str] = Field(default=None, description="normal or urgent")


class DurationStep(FlowStep):
    """Schedule step."""

    estimated_hours: Optional[float] = Field(default=None, ge=0, alias="estimatedHours")
    crew_size: Optional[int] = Field(default=None, ge=0, alias="crewSize")
    timeline: Optional[DurationTimeline] = None

    @property
    def effective_hours(self) -> Optional[float]:
        """Estimated hours, set directly or on the timeline."""
        if self.estimated_hours:
            return self.estimated_hours
        if self.timeline and self.timeline.estimated_hours:
            return self.timeline.estimated_hours
        return None


class PricingStrategy(FlowStep):
    markup: Optional[float] = Field(default=None, description="Markup percentage")
    discount: Optional[float] = Field(default=None, ge=0, description="Discount percentage")


class PricingAdjustmentInput(FlowStep):
    """A manual line item entered on the pricing step."""

    type: str = Field(default="markup")
    description: Optional[str] = None
    value: float = Field(default=0.0)
    is_percentage: bool = Field(default=True, alias="isPercentage")


class ManualOverrides(FlowStep):
    total_price: Optional[float] = Field(default=None, ge=0, alias="totalPrice")
    reason: Optional[str] = None


class PricingStep(FlowStep):
    """Pricing strategy and manual override step."""

    selected_services: List[str] = Field(default_factory=list, alias="selectedServices")
    price_per_sqft: Optional[float] = Field(default=None, alias="pricePerSqft")
    total_price: Optional[float] = Field(default=None, alias="totalPrice")
    margin: Optional[float] = None
    strategy: Optional[PricingStrategy] = None
    adjustments: List[PricingAdjustmentInput] = Field(default_factory=list)
    manual_overrides: Optional[ManualOverrides] = Field(default=None, alias="manualOverrides")


# =============================================================================
# FLOW DATA
# =============================================================================


FLOW_STEP_FIELDS = ("project_setup", "area_of_work", "scope_details", "duration", "pricing")


class FlowDataModel(BaseModel):
    """Snapshot of the wizard's answers.

    Owned by the caller; the engine only reads it.
    """

    estimate_id: Optional[str] = Field(default=None, alias="estimateId")
    project_setup: Optional[ProjectSetup] = Field(default=None, alias="projectSetup")
    area_of_work: Optional[AreaOfWork] = Field(default=None, alias="areaOfWork")
    scope_details: Optional[ScopeDetails] = Field(default=None, alias="scopeDetails")
    duration: Optional[DurationStep] = None
    pricing: Optional[PricingStep] = None

    class Config:
        populate_by_name = True
        extra = "allow"
        allow_inf_nan = False

    @property
    def selected_services(self) -> List[str]:
        if self.scope_details is None:
            return []
        return list(self.scope_details.selected_services)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
