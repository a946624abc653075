"""Pricing adjustments for live pricing.

Produces signed line items on top of the raw service subtotal: pricing
step markup/discounts, height, rush and access premiums, the manual
override and a zero floor. Percentages are always taken against the raw
subtotal (they do not compound), and every value is an absolute amount,
so the total is simply subtotal + sum(values).
"""

from typing import List, Optional

import structlog

from livepricing.config.pricing_config import HeightRiskPolicy, SurchargePolicy
from livepricing.models.flow_data import FlowDataModel, PricingStep
from livepricing.models.pricing import Adjustment, AdjustmentType

logger = structlog.get_logger()


def _pct_of(subtotal: float, pct: float) -> float:
    return round(subtotal * pct / 100, 2)


class AdjustmentEngine:
    """Computes the adjustment line items for a flow snapshot."""

    def __init__(
        self,
        height_risk: Optional[HeightRiskPolicy] = None,
        surcharges: Optional[SurchargePolicy] = None,
        include_risk_adjustments: bool = True
    ):
        """Initialize AdjustmentEngine.

        Args:
            height_risk: High-rise premium policy.
            surcharges: Rush and access surcharge policy.
            include_risk_adjustments: When False, height, rush and access
                premiums are skipped.
        """
        self.height_risk = height_risk or HeightRiskPolicy()
        self.surcharges = surcharges or SurchargePolicy()
        self.include_risk_adjustments = include_risk_adjustments

    # -------------------------------------------------------------------------
    # Building helpers
    # -------------------------------------------------------------------------

    def building_stories(self, flow: FlowDataModel) -> float:
        """Stories from the area step, derived from feet when only height is known."""
        area = flow.area_of_work
        if area is None:
            return 0.0
        if area.stories:
            return float(area.stories)
        if area.height_feet:
            return area.height_feet / self.height_risk.feet_per_story
        return 0.0

    def building_height_feet(self, flow: FlowDataModel) -> float:
        area = flow.area_of_work
        if area is None:
            return 0.0
        if area.height_feet:
            return float(area.height_feet)
        if area.stories:
            return area.stories * self.height_risk.feet_per_story
        return 0.0

    def access_type(self, flow: FlowDataModel) -> str:
        return self.surcharges.access_type(self.building_height_feet(flow))

    def access_difficulty(self, flow: FlowDataModel) -> str:
        height = self.building_height_feet(flow)
        if height > 50:
            return "difficult"
        if height > 25:
            return "moderate"
        return "easy"

    # -------------------------------------------------------------------------
    # Adjustments
    # -------------------------------------------------------------------------

    def calculate(self, flow: FlowDataModel, subtotal: float) -> List[Adjustment]:
        """Compute adjustments for a snapshot.

        Args:
            flow: Wizard snapshot.
            subtotal: Sum of successful per-service costs.

        Returns:
            Ordered list of adjustments. May be empty.
        """
        adjustments: List[Adjustment] = []

        if flow.pricing is not None:
            adjustments.extend(self._pricing_step_adjustments(flow.pricing, subtotal))

        if self.include_risk_adjustments:
            adjustments.extend(self._risk_adjustments(flow, subtotal))

        running = subtotal + sum(adj.value for adj in adjustments)

        override = self._manual_override(flow.pricing, running)
        if override is not None:
            adjustments.append(override)
            running += override.value

        if running < 0:
            adjustments.append(Adjustment(
                type=AdjustmentType.FLOOR,
                value=round(-running, 2),
                reason="Total cannot be negative",
            ))

        logger.debug(
            "adjustments_calculated",
            count=len(adjustments),
            total=round(sum(adj.value for adj in adjustments), 2),
        )
        return adjustments

    def height_risk_adjustment(self, flow: FlowDataModel, subtotal: float) -> Optional[Adjustment]:
        """High-rise premium, or None below the threshold."""
        stories = self.building_stories(flow)
        value = self.height_risk.premium(subtotal, stories)
        if value <= 0:
            return None
        over = stories - self.height_risk.threshold_stories
        pct = min(
            self.height_risk.base_pct + self.height_risk.step_pct * over,
            self.height_risk.max_pct,
        )
        return Adjustment(
            type=AdjustmentType.RISK,
            value=value,
            reason=f"High-rise risk premium ({stories:g} stories)",
            percentage=pct,
        )

    def _risk_adjustments(self, flow: FlowDataModel, subtotal: float) -> List[Adjustment]:
        adjustments: List[Adjustment] = []

        height = self.height_risk_adjustment(flow, subtotal)
        if height is not None:
            adjustments.append(height)

        timeline = flow.duration.timeline if flow.duration is not None else None
        if timeline is not None and (timeline.urgency or "").lower() == "urgent":
            adjustments.append(Adjustment(
                type=AdjustmentType.RISK,
                value=_pct_of(subtotal, self.surcharges.rush_pct),
                reason="Rush job premium",
                percentage=self.surcharges.rush_pct,
            ))

        access = self.access_type(flow)
        access_pct = {
            "rope": self.surcharges.rope_pct,
            "scaffold": self.surcharges.scaffold_pct,
        }.get(access)
        if access_pct:
            adjustments.append(Adjustment(
                type=AdjustmentType.SURCHARGE,
                value=_pct_of(subtotal, access_pct),
                reason=f"{access.capitalize()} access premium",
                percentage=access_pct,
            ))

        return adjustments

    def _pricing_step_adjustments(self, pricing: PricingStep, subtotal: float) -> List[Adjustment]:
        adjustments: List[Adjustment] = []
        strategy = pricing.strategy

        if strategy is not None and strategy.markup:
            adjustments.append(Adjustment(
                type=AdjustmentType.MARKUP,
                value=_pct_of(subtotal, strategy.markup),
                reason="Profit margin",
                percentage=strategy.markup,
            ))

        if strategy is not None and strategy.discount:
            adjustments.append(Adjustment(
                type=AdjustmentType.DISCOUNT,
                value=-_pct_of(subtotal, strategy.discount),
                reason="Customer discount",
                percentage=-strategy.discount,
            ))

        for item in pricing.adjustments:
            if not item.value:
                continue
            value = _pct_of(subtotal, item.value) if item.is_percentage else round(item.value, 2)
            if item.type == AdjustmentType.DISCOUNT.value:
                value = -abs(value)
            adjustments.append(Adjustment(
                type=item.type,
                value=value,
                reason=item.description or "Pricing adjustment",
                percentage=item.value if item.is_percentage else None,
            ))

        return adjustments

    def _manual_override(self, pricing: Optional[PricingStep], running: float) -> Optional[Adjustment]:
        if pricing is None or pricing.manual_overrides is None:
            return None
        target = pricing.manual_overrides.total_price
        if target is None:
            return None
        delta = round(target - running, 2)
        if delta == 0:
            return None
        return Adjustment(
            type=AdjustmentType.OVERRIDE,
            value=delta,
            reason=pricing.manual_overrides.reason or "Manual price override",
        )
