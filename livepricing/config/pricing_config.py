"""Pricing engine configuration models.

Pydantic models for the per-engine options accepted by
``PricingEngine.get_instance(config)``. Invalid values never raise:
the engine is long-lived, so bad input is clamped to the default and logged.
"""

import math
from typing import Any, Dict, Mapping, Tuple, Union

import structlog
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from livepricing.config.errors import ConfigurationError, ErrorCode
from livepricing.config.settings import settings

logger = structlog.get_logger()

DEFAULT_DEBOUNCE_MS = 1000.0
DEFAULT_HIGH_RISE_STORIES = 20
_TRUE_STRINGS = ("1", "true", "yes", "on")
_FALSE_STRINGS = ("0", "false", "no", "off")


def _default_debounce_ms() -> float:
    if math.isfinite(settings.debounce_ms) and settings.debounce_ms >= 0:
        return float(settings.debounce_ms)
    return DEFAULT_DEBOUNCE_MS


def _default_threshold_stories() -> int:
    if settings.high_rise_threshold_stories >= 1:
        return settings.high_rise_threshold_stories
    return DEFAULT_HIGH_RISE_STORIES


def coerce_debounce_ms(value: Any) -> float:
    """Coerce a debounce duration to milliseconds.

    Raises:
        ConfigurationError: If the value is not a finite, non-negative number.
    """
    if isinstance(value, bool):
        raise ConfigurationError("debounceMs must be a number", option="debounce_ms", value=value)
    try:
        ms = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError("debounceMs must be a number", option="debounce_ms", value=value)
    if not math.isfinite(ms) or ms < 0:
        raise ConfigurationError(
            "debounceMs must be finite and >= 0", option="debounce_ms", value=value
        )
    return ms


def coerce_flag(value: Any, option: str) -> bool:
    """Coerce a boolean option.

    Raises:
        ConfigurationError: If the value cannot be read as a boolean.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ConfigurationError(f"{option} must be a boolean", option=option, value=value)


# =============================================================================
# POLICIES
# =============================================================================


class HeightRiskPolicy(BaseModel):
    """High-rise risk premium policy.

    Once a building reaches ``threshold_stories`` the premium is::

        subtotal * pct / 100 + per_story_fee * (stories - threshold + 1)
        pct = min(base_pct + step_pct * (stories - threshold), max_pct)

    The flat per-story fee keeps the premium strictly positive and strictly
    increasing with height even when the service subtotal is zero.
    """

    threshold_stories: int = Field(
        default_factory=_default_threshold_stories,
        ge=1,
        alias="thresholdStories",
        description="Stories at which the high-rise premium starts"
    )
    base_pct: float = Field(default=8.0, ge=0, alias="basePct")
    step_pct: float = Field(default=0.5, ge=0, alias="stepPct")
    max_pct: float = Field(default=30.0, ge=0, alias="maxPct")
    per_story_fee: float = Field(default=50.0, gt=0, alias="perStoryFee")
    feet_per_story: float = Field(
        default=10.0,
        gt=0,
        alias="feetPerStory",
        description="Used to derive stories when only height in feet is known"
    )

    class Config:
        populate_by_name = True
        frozen = True

    def premium(self, subtotal: float, stories: float) -> float:
        """Premium amount for a building height; 0.0 below the threshold."""
        if stories < self.threshold_stories:
            return 0.0
        over = stories - self.threshold_stories
        pct = min(self.base_pct + self.step_pct * over, self.max_pct)
        return round(max(subtotal, 0.0) * pct / 100 + self.per_story_fee * (over + 1), 2)


class SurchargePolicy(BaseModel):
    """Rush and access-equipment surcharges, as percentages of the subtotal."""

    rush_pct: float = Field(default=25.0, ge=0, alias="rushPct")
    scaffold_pct: float = Field(default=15.0, ge=0, alias="scaffoldPct")
    rope_pct: float = Field(default=30.0, ge=0, alias="ropePct")
    lift_above_ft: float = Field(default=20.0, ge=0, alias="liftAboveFt")
    scaffold_above_ft: float = Field(default=40.0, ge=0, alias="scaffoldAboveFt")
    rope_above_ft: float = Field(default=100.0, ge=0, alias="ropeAboveFt")

    class Config:
        populate_by_name = True
        frozen = True

    @model_validator(mode="after")
    def validate_order(self) -> "SurchargePolicy":
        """Ensure lift <= scaffold <= rope height thresholds."""
        if not (self.lift_above_ft <= self.scaffold_above_ft <= self.rope_above_ft):
            raise ValueError("Access thresholds must be lift <= scaffold <= rope")
        return self

    def access_type(self, height_ft: float) -> str:
        if height_ft > self.rope_above_ft:
            return "rope"
        if height_ft > self.scaffold_above_ft:
            return "scaffold"
        if height_ft > self.lift_above_ft:
            return "lift"
        return "ladder"


class ConfidencePolicy(BaseModel):
    """Boundary between medium and low confidence."""

    min_populated_steps: int = Field(
        default=2,
        ge=0,
        le=4,
        alias="minPopulatedSteps",
        description="Fewer populated steps than this is always low confidence"
    )
    medium_required_fields: Tuple[str, ...] = Field(
        default=(
            "projectSetup.buildingType",
            "areaOfWork.measurements",
            "scopeDetails.selectedServices",
        ),
        alias="mediumRequiredFields",
        description="Fields that must all be present for medium confidence"
    )

    class Config:
        populate_by_name = True
        frozen = True


# =============================================================================
# ENGINE CONFIG
# =============================================================================


class PricingEngineConfig(BaseModel):
    """Options recognised by the pricing engine."""

    enable_live_updates: bool = Field(
        default_factory=lambda: settings.enable_live_updates,
        alias="enableLiveUpdates",
        description="When false, update_pricing never schedules or notifies"
    )
    debounce_ms: float = Field(
        default_factory=_default_debounce_ms,
        alias="debounceMs",
        description="Coalescing window length in milliseconds"
    )
    include_risk_adjustments: bool = Field(
        default_factory=lambda: settings.include_risk_adjustments,
        alias="includeRiskAdjustments"
    )
    skip_unrelated_steps: bool = Field(
        default_factory=lambda: settings.skip_unrelated_steps,
        alias="skipUnrelatedSteps",
        description="Skip recomputation for steps not wired to pricing"
    )
    height_risk: HeightRiskPolicy = Field(default_factory=HeightRiskPolicy, alias="heightRisk")
    surcharges: SurchargePolicy = Field(default_factory=SurchargePolicy)
    confidence: ConfidencePolicy = Field(default_factory=ConfidencePolicy)

    class Config:
        populate_by_name = True
        frozen = True
        extra = "ignore"

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_keys(cls, data: Any) -> Any:
        """Accept ``updateInterval`` as a synonym for ``debounceMs``."""
        if isinstance(data, dict) and "updateInterval" in data:
            data = dict(data)
            legacy = data.pop("updateInterval")
            data.setdefault("debounceMs", legacy)
        return data

    @field_validator("debounce_ms", mode="before")
    @classmethod
    def clamp_debounce(cls, value: Any) -> float:
        try:
            return coerce_debounce_ms(value)
        except ConfigurationError as e:
            default = _default_debounce_ms()
            logger.warning("pricing_config_clamped", default=default, **e.to_dict())
            return default

    @field_validator("enable_live_updates", "include_risk_adjustments", "skip_unrelated_steps", mode="before")
    @classmethod
    def clamp_flag(cls, value: Any, info) -> bool:
        try:
            return coerce_flag(value, info.field_name)
        except ConfigurationError as e:
            default = cls.model_fields[info.field_name].get_default(call_default_factory=True)
            logger.warning("pricing_config_clamped", default=default, **e.to_dict())
            return default

    @field_validator("height_risk", "surcharges", "confidence", mode="wrap")
    @classmethod
    def clamp_policy(cls, value: Any, handler, info) -> Any:
        try:
            return handler(value)
        except ValidationError as e:
            logger.warning(
                "pricing_config_clamped",
                code=ErrorCode.CONFIGURATION_INVALID,
                option=info.field_name,
                errors=[f"{err['loc']}: {err['msg']}" for err in e.errors()],
            )
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)

    @classmethod
    def from_overrides(
        cls,
        overrides: Union[None, "PricingEngineConfig", Mapping[str, Any]] = None
    ) -> "PricingEngineConfig":
        """Build a config from caller overrides.

        Args:
            overrides: A config instance, a mapping of (camelCase or
                snake_case) options, or None for defaults.

        Returns:
            PricingEngineConfig with invalid values clamped to defaults.
        """
        if overrides is None:
            return cls()
        if isinstance(overrides, cls):
            return overrides
        if not isinstance(overrides, Mapping):
            logger.warning(
                "pricing_config_ignored",
                reason="config must be a mapping",
                received=type(overrides).__name__,
            )
            return cls()
        return cls.model_validate(dict(overrides))

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
