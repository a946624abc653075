"""Live pricing engine for the estimation wizard.

Keeps the wizard's "current price" up to date:

- ``calculate_real_time_pricing`` prices a snapshot immediately (first paint,
  on-demand queries)
- ``update_pricing`` debounces bursts of edits per estimate and pushes one
  result to subscribers once the estimate has been quiet for ``debounce_ms``
- ``subscribe`` registers observers per estimate id

Engines are plain objects owned by the application's composition root.
``PricingEngine.get_instance`` offers a process-wide instance for callers
that want one; ``reset()`` and ``dispose()`` clear engine state.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Dict, Mapping, Optional, Union

import structlog

from livepricing.config.errors import EngineStateError, ErrorCode
from livepricing.config.pricing_config import PricingEngineConfig
from livepricing.models.flow_data import FlowDataModel
from livepricing.models.pricing import ConfidenceLevel, PricingMetrics, PricingResult
from livepricing.services.adjustment_engine import AdjustmentEngine
from livepricing.services.calculator_service import ServiceCostCalculator, StandardServiceCalculator
from livepricing.services.completion_analyzer import CompletionAnalyzer
from livepricing.services.debounce_scheduler import DebounceScheduler
from livepricing.services.dependency_graph import NO_VALUE, DependencyGraph
from livepricing.services.pricing_aggregator import Clock, PricingAggregator
from livepricing.services.result_cache import ResultCache
from livepricing.services.subscription_registry import (
    PricingCallback,
    SubscriptionRegistry,
    Unsubscribe,
)
from livepricing.utils.pricing_logger import log_pricing_notified, log_pricing_result
from livepricing.validators.flow_data_validator import FlowDataParseResult, parse_flow_data

logger = structlog.get_logger()

FlowDataInput = Union[FlowDataModel, Mapping[str, Any], None]
ConfigInput = Union[PricingEngineConfig, Mapping[str, Any], None]

# Sample wizard state used by health_check()
HEALTH_CHECK_FLOW: Dict[str, Any] = {
    "projectSetup": {"buildingType": "office"},
    "areaOfWork": {
        "buildingHeightStories": 2,
        "totalSqft": 1000,
        "measurements": [{"type": "area", "value": 1000, "unit": "sqft"}],
    },
    "scopeDetails": {"selectedServices": ["window_cleaning"]},
}


@dataclass(frozen=True)
class PendingSnapshot:
    """Latest wizard state waiting on a debounce timer."""

    parsed: FlowDataParseResult
    changed_step: Optional[str] = None


class PricingEngine:
    """Real-time pricing engine facade."""

    _instance: ClassVar[Optional["PricingEngine"]] = None

    def __init__(
        self,
        config: ConfigInput = None,
        calculator: Optional[ServiceCostCalculator] = None,
        display_name_lookup: Optional[Callable[[str], str]] = None,
        dependency_graph: Optional[DependencyGraph] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        clock: Optional[Clock] = None
    ):
        """Initialize PricingEngine.

        Args:
            config: Engine options; invalid values are clamped to defaults.
            calculator: Per-service cost calculator. Defaults to
                StandardServiceCalculator.
            display_name_lookup: Service display names. Defaults to the
                calculator's ``get_service_display_name``.
            dependency_graph: Step dependency registry.
            loop: Event loop for debounce timers. Defaults to the loop
                running when ``update_pricing`` is called.
            clock: Timestamp source for ``last_updated``.
        """
        self.config = PricingEngineConfig.from_overrides(config)
        self.calculator = calculator or StandardServiceCalculator()
        if display_name_lookup is None:
            display_name_lookup = getattr(self.calculator, "get_service_display_name", None) or str

        self.dependency_graph = dependency_graph or DependencyGraph()
        self.analyzer = CompletionAnalyzer(self.config.confidence)
        self.adjustment_engine = AdjustmentEngine(
            height_risk=self.config.height_risk,
            surcharges=self.config.surcharges,
            include_risk_adjustments=self.config.include_risk_adjustments,
        )
        self.aggregator = PricingAggregator(
            calculator=self.calculator,
            display_name_lookup=display_name_lookup,
            analyzer=self.analyzer,
            adjustment_engine=self.adjustment_engine,
            clock=clock,
        )
        self.cache = ResultCache()
        self.subscriptions = SubscriptionRegistry()
        self.scheduler = DebounceScheduler(self.config.debounce_ms, loop=loop)

        self._disposed = False
        self._reset_metrics()

        logger.info(
            "pricing_engine_initialized",
            enable_live_updates=self.config.enable_live_updates,
            debounce_ms=self.config.debounce_ms,
            include_risk_adjustments=self.config.include_risk_adjustments,
            calculator=type(self.calculator).__name__,
        )

    # =========================================================================
    # Process-wide instance
    # =========================================================================

    @classmethod
    def get_instance(cls, config: ConfigInput = None) -> "PricingEngine":
        """Return the process-wide engine, creating it on first use.

        The first call fixes the configuration. Config passed to later calls
        is ignored (and logged) rather than mutating a live engine.
        """
        if cls._instance is None or cls._instance.is_disposed:
            cls._instance = cls(config=config)
        elif config is not None:
            logger.warning(
                "pricing_engine_config_ignored",
                code=ErrorCode.CONFIGURATION_IGNORED,
                reason="engine already initialized",
            )
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Dispose the process-wide engine so the next get_instance builds a new one."""
        if cls._instance is not None:
            cls._instance.dispose()
        cls._instance = None

    # =========================================================================
    # Public API
    # =========================================================================

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def subscribe(self, estimate_id: str, callback: PricingCallback) -> Unsubscribe:
        """Receive every debounced result for an estimate.

        Returns:
            Function that removes this subscription.
        """
        self._ensure_active()
        return self.subscriptions.subscribe(estimate_id, callback)

    def calculate_real_time_pricing(
        self,
        flow_data: FlowDataInput,
        estimate_id: Optional[str] = None
    ) -> PricingResult:
        """Price a snapshot immediately.

        Args:
            flow_data: Wizard snapshot (model or camelCase mapping).
            estimate_id: When given, the result replaces the cached one.

        Returns:
            PricingResult. Incomplete data lowers confidence, it never raises.
        """
        self._ensure_active()
        return self._calculate(parse_flow_data(flow_data), estimate_id, trigger="direct")

    def update_pricing(
        self,
        flow_data: FlowDataInput,
        estimate_id: str,
        changed_step: Optional[str] = None
    ) -> None:
        """Schedule a debounced recalculation for an estimate.

        Returns immediately. Repeated calls within ``debounce_ms`` collapse
        into one calculation using the latest snapshot, after which every
        subscriber of ``estimate_id`` is called with the result.

        Args:
            flow_data: Wizard snapshot; copied, so later caller edits do not leak in.
            estimate_id: Estimate being edited.
            changed_step: Wizard step that changed. Unknown or missing steps
                always trigger a recalculation.

        Raises:
            EngineStateError: If the engine is disposed or no event loop is available.
        """
        self._ensure_active()
        if not self.config.enable_live_updates:
            logger.debug("pricing_update_ignored", estimate_id=estimate_id, reason="live_updates_disabled")
            return

        if self.config.skip_unrelated_steps and self.dependency_graph.affects(changed_step) is False:
            logger.debug("pricing_update_skipped", estimate_id=estimate_id, changed_step=changed_step)
            return

        snapshot = PendingSnapshot(parsed=parse_flow_data(flow_data), changed_step=changed_step)
        self.scheduler.schedule(estimate_id, snapshot, self._on_debounce_fire)
        logger.debug(
            "pricing_update_scheduled",
            estimate_id=estimate_id,
            changed_step=changed_step,
            debounce_ms=self.config.debounce_ms,
        )

    def get_last_result(self, estimate_id: str) -> Optional[PricingResult]:
        self._ensure_active()
        return self.cache.get(estimate_id)

    def clear_pricing_data(self, estimate_id: str) -> None:
        """Forget an estimate: pending update, cached result and subscribers."""
        self._ensure_active()
        self.scheduler.cancel(estimate_id)
        self.cache.delete(estimate_id)
        removed = self.subscriptions.remove_all(estimate_id)
        logger.info("pricing_data_cleared", estimate_id=estimate_id, subscribers_removed=removed)

    def does_step_affect_pricing(
        self,
        step_id: str,
        changed_field: Optional[str] = None,
        value: object = NO_VALUE
    ) -> bool:
        self._ensure_active()
        return self.dependency_graph.does_step_affect_pricing(step_id, changed_field, value)

    def get_config(self) -> PricingEngineConfig:
        self._ensure_active()
        return self.config

    def get_metrics(self) -> PricingMetrics:
        count = self._calculations
        return PricingMetrics(
            calculations_performed=count,
            average_calculation_ms=round(self._total_calculation_ms / count, 3) if count else 0.0,
            last_calculation_ms=round(self._last_calculation_ms, 3),
            notifications_sent=self._notifications,
            active_subscriptions=self.subscriptions.total_subscriptions,
            pending_updates=self.scheduler.pending_count,
            cached_results=len(self.cache),
        )

    def health_check(self) -> Dict[str, Any]:
        """Run a sample calculation against sample data.

        Returns:
            Dict with ``status`` (healthy, warning or critical) and ``details``.
        """
        details: Dict[str, Any] = {
            "disposed": self._disposed,
            "config": self.config.to_dict(),
            "metrics": self.get_metrics().model_dump(by_alias=True),
        }
        if self._disposed:
            return {"status": "critical", "details": details}

        started = time.perf_counter()
        try:
            sample = self.aggregator.aggregate(parse_flow_data(HEALTH_CHECK_FLOW).flow_data)
        except Exception as e:
            logger.exception("pricing_health_check_failed", error=str(e))
            details["sample_calculation"] = {"success": False, "error": str(e)}
            return {"status": "critical", "details": details}

        response_ms = (time.perf_counter() - started) * 1000
        details["sample_calculation"] = {
            "success": True,
            "response_ms": round(response_ms, 3),
            "total_cost": sample.total_cost,
            "warnings": list(sample.warnings),
        }
        status = "warning" if sample.warnings or not sample.service_breakdown else "healthy"
        return {"status": status, "details": details}

    def reset(self) -> None:
        """Cancel pending updates and drop all subscribers, cached results and metrics."""
        cancelled = self.scheduler.cancel_all()
        self.subscriptions.clear()
        self.cache.clear()
        self._reset_metrics()
        logger.info("pricing_engine_reset", cancelled_updates=cancelled)

    def dispose(self) -> None:
        """Reset and retire the engine. Further calls raise EngineStateError."""
        if self._disposed:
            return
        self.reset()
        self._disposed = True
        if PricingEngine._instance is self:
            PricingEngine._instance = None
        logger.info("pricing_engine_disposed")

    # =========================================================================
    # Internals
    # =========================================================================

    def _ensure_active(self) -> None:
        if self._disposed:
            raise EngineStateError(
                code=ErrorCode.ENGINE_DISPOSED,
                message="PricingEngine has been disposed",
            )

    def _reset_metrics(self) -> None:
        self._calculations = 0
        self._total_calculation_ms = 0.0
        self._last_calculation_ms = 0.0
        self._notifications = 0

    def _calculate(
        self,
        parsed: FlowDataParseResult,
        estimate_id: Optional[str],
        trigger: str
    ) -> PricingResult:
        started = time.perf_counter()
        try:
            result = self.aggregator.aggregate(parsed.flow_data, warnings=parsed.warnings)
        except Exception as e:
            # Callers get a best-effort result, never an exception.
            logger.exception("pricing_calculation_failed", estimate_id=estimate_id, error=str(e))
            report = self.analyzer.analyze(parsed.flow_data)
            result = PricingResult(
                confidence=ConfidenceLevel.LOW,
                missing_data=report.missing_data,
                warnings=[*parsed.warnings, f"Pricing calculation failed: {e}"],
                last_updated=self.aggregator.clock(),
            )

        elapsed_ms = (time.perf_counter() - started) * 1000
        self._calculations += 1
        self._total_calculation_ms += elapsed_ms
        self._last_calculation_ms = elapsed_ms

        if estimate_id is not None:
            self.cache.set(estimate_id, result)

        log_pricing_result(estimate_id, result, trigger=trigger, duration_ms=elapsed_ms)
        return result

    def _on_debounce_fire(self, estimate_id: str, snapshot: PendingSnapshot) -> None:
        if self._disposed:
            return
        result = self._calculate(snapshot.parsed, estimate_id, trigger="debounce")
        subscribers = self.subscriptions.subscriber_count(estimate_id)
        delivered = self.subscriptions.notify(estimate_id, result)
        self._notifications += delivered
        log_pricing_notified(estimate_id, delivered=delivered, subscribers=subscribers)
