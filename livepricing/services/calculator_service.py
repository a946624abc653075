"""Service cost calculator for live pricing.

Defines the collaborator contract the pricing engine calls once per
selected service, and a standard table-driven implementation used when
the application does not supply its own calculator.

Labor hours come from per-service production rates (sqft/hour) scaled by
access difficulty and building height; cost is labor + marked-up
materials + equipment.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Protocol, Union

import structlog

from livepricing.models.pricing import ServiceCalculation

logger = structlog.get_logger()


# =============================================================================
# CONTRACT
# =============================================================================


@dataclass(frozen=True)
class MeasurementContext:
    """Inputs handed to the calculator for a single service."""

    service_type: str
    area: float
    stories: float = 1.0
    height_feet: Optional[float] = None
    building_type: Optional[str] = None
    access_difficulty: str = "easy"
    access_type: str = "ladder"
    urgency: Optional[str] = None


class ServiceCostCalculator(Protocol):
    """Per-service calculator supplied at engine construction.

    Implementations must be synchronous and side-effect free.
    """

    def calculate_service(
        self,
        service_type: str,
        context: MeasurementContext
    ) -> Union[ServiceCalculation, Mapping[str, Any]]:
        ...

    def get_service_display_name(self, service_type: str) -> str:
        ...


# =============================================================================
# SERVICE TABLES
# =============================================================================


SERVICE_CODES: Dict[str, str] = {
    "window_cleaning": "WC",
    "pressure_washing": "PW",
    "soft_washing": "SW",
    "biofilm_removal": "BF",
    "glass_restoration": "GR",
    "frame_restoration": "FR",
    "high_dusting": "HD",
    "final_clean": "FC",
    "granite_reconditioning": "GRC",
    "pressure_wash_seal": "PWS",
    "parking_deck": "PD",
}

DISPLAY_NAMES: Dict[str, str] = {
    "WC": "Window Cleaning",
    "PW": "Pressure Washing",
    "SW": "Soft Washing",
    "BF": "Biofilm Removal",
    "GR": "Glass Restoration",
    "FR": "Frame Restoration",
    "HD": "High Dusting",
    "FC": "Final Clean",
    "GRC": "Granite Reconditioning",
    "PWS": "Pressure Wash & Seal",
    "PD": "Parking Deck Cleaning",
}

# sqft per crew hour
PRODUCTION_RATES: Dict[str, float] = {
    "WC": 150, "PW": 800, "SW": 600, "BF": 200, "GR": 50, "FR": 30,
    "HD": 1200, "FC": 2000, "GRC": 100, "PWS": 400, "PD": 1500,
}

CREW_SIZES: Dict[str, int] = {
    "WC": 2, "PW": 2, "SW": 2, "BF": 2, "GR": 1, "FR": 1,
    "HD": 3, "FC": 4, "GRC": 2, "PWS": 3, "PD": 4,
}

# material cost per sqft, before markup
MATERIAL_RATES: Dict[str, float] = {
    "WC": 0.15, "PW": 0.08, "SW": 0.12, "BF": 0.25, "GR": 2.5, "FR": 1.8,
    "HD": 0.05, "FC": 0.10, "GRC": 0.45, "PWS": 0.35, "PD": 0.12,
}

EQUIPMENT_BASE_COSTS: Dict[str, float] = {
    "PW": 150, "SW": 150, "HD": 300, "PD": 400, "GR": 100, "FR": 100,
}

SETUP_HOURS: Dict[str, float] = {"PW": 1.0, "SW": 1.0, "HD": 1.5, "PD": 2.0}
RIG_HOURS: Dict[str, float] = {"PW": 0.5, "SW": 0.5, "HD": 0.75, "PD": 1.0}

ACCESS_DIFFICULTY_FACTORS: Dict[str, float] = {"easy": 1.0, "moderate": 1.3, "difficult": 1.8}


def normalize_service_type(service_type: str) -> Optional[str]:
    """Map a selected service to its short code.

    Accepts codes (``"WC"``) and names in snake, kebab or space form
    (``"window_cleaning"``, ``"window-cleaning"``).

    Returns:
        Service code, or None if the service is unknown.
    """
    if not isinstance(service_type, str):
        return None
    candidate = service_type.strip()
    if candidate.upper() in DISPLAY_NAMES:
        return candidate.upper()
    key = candidate.lower().replace("-", "_").replace(" ", "_")
    return SERVICE_CODES.get(key)


# =============================================================================
# STANDARD CALCULATOR
# =============================================================================


class StandardServiceCalculator:
    """Table-driven calculator for the exterior cleaning service catalog."""

    BASE_LABOR_RATE = 35.0      # per crew member hour
    BASE_MATERIAL_MARKUP = 1.3  # 30% markup
    MIN_LABOR_HOURS = 0.5

    def __init__(
        self,
        labor_rate: Optional[float] = None,
        material_markup: Optional[float] = None
    ):
        """Initialize StandardServiceCalculator.

        Args:
            labor_rate: Hourly rate per crew member (default 35.0).
            material_markup: Material markup multiplier (default 1.3).
        """
        self.labor_rate = labor_rate if labor_rate is not None else self.BASE_LABOR_RATE
        self.material_markup = (
            material_markup if material_markup is not None else self.BASE_MATERIAL_MARKUP
        )

    def get_service_display_name(self, service_type: str) -> str:
        code = normalize_service_type(service_type)
        if code is None:
            return str(service_type)
        return DISPLAY_NAMES[code]

    def calculate_service(
        self,
        service_type: str,
        context: MeasurementContext
    ) -> ServiceCalculation:
        """Calculate cost and time for one service.

        Args:
            service_type: Selected service (code or name).
            context: Measurement and building context.

        Returns:
            ServiceCalculation with price, hours and cost components.

        Raises:
            ValueError: If the service is unknown or the area is not positive.
        """
        code = normalize_service_type(service_type)
        if code is None:
            raise ValueError(f"Unknown service type: {service_type}")
        if context.area <= 0:
            raise ValueError("Area must be greater than 0")

        stories = max(context.stories or 1.0, 1.0)
        labor_hours = self._labor_hours(code, context.area, context.access_difficulty, stories)
        setup_hours = SETUP_HOURS.get(code, 0.5) * (1.3 if stories > 3 else 1.0)
        rig_hours = RIG_HOURS.get(code, 0.25) * (1.2 if stories > 3 else 1.0)
        total_hours = labor_hours + setup_hours + rig_hours

        crew_size = CREW_SIZES[code]
        labor_cost = total_hours * crew_size * self.labor_rate
        material_cost = self._material_cost(code, context.area)
        equipment_cost = self._equipment_cost(code, stories)

        return ServiceCalculation(
            base_price=round(labor_cost + material_cost + equipment_cost, 2),
            total_hours=round(total_hours, 2),
            area=round(context.area, 2),
            confidence="high" if context.height_feet else "medium",
            labor_cost=round(labor_cost, 2),
            material_cost=round(material_cost, 2),
            equipment_cost=round(equipment_cost, 2),
        )

    def _labor_hours(self, code: str, area: float, access_difficulty: str, stories: float) -> float:
        hours = area / PRODUCTION_RATES[code]
        hours *= ACCESS_DIFFICULTY_FACTORS.get(access_difficulty, 1.0)
        if stories > 3:
            hours *= 1 + (stories - 3) * 0.1

        if code == "WC":
            # ~20 sqft per window against a 50-window baseline
            hours *= max((area / 20) / 50, 0.5)
        elif code == "BF":
            hours *= 1.8

        return max(hours, self.MIN_LABOR_HOURS)

    def _material_cost(self, code: str, area: float) -> float:
        cost = area * MATERIAL_RATES[code]
        if code == "PWS":
            cost += area * 0.2  # sealer
        return cost * self.material_markup

    def _equipment_cost(self, code: str, stories: float) -> float:
        cost = EQUIPMENT_BASE_COSTS.get(code, 0.0)
        if code in ("PW", "SW") and stories > 2:
            cost += 200  # lift or scaffolding
        if stories > 5:
            cost += 500  # specialized access equipment
        return cost
