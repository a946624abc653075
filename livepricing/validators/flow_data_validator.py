"""Lenient parsing of guided flow data.

The wizard sends whatever the user has filled in so far. A step that does
not match its schema is dropped and reported as a warning, so it counts as
missing rather than failing the whole calculation.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Set

from pydantic import ValidationError as PydanticValidationError
import structlog

from livepricing.config.errors import ErrorCode
from livepricing.models.flow_data import FlowDataModel

logger = structlog.get_logger(__name__)


@dataclass
class FlowDataParseResult:
    """Result of lenient flow data parsing."""
    flow_data: FlowDataModel
    warnings: List[str] = field(default_factory=list)
    dropped_steps: List[str] = field(default_factory=list)


def _field_keys() -> Dict[str, Set[str]]:
    """Map every accepted top-level key (alias or name) to all its spellings."""
    keys: Dict[str, Set[str]] = {}
    for name, info in FlowDataModel.model_fields.items():
        spellings = {name}
        if info.alias:
            spellings.add(info.alias)
        for spelling in spellings:
            keys[spelling] = spellings
    return keys


def parse_flow_data(data: Any) -> FlowDataParseResult:
    """Parse wizard data into a FlowDataModel without raising.

    Args:
        data: FlowDataModel, mapping with camelCase or snake_case keys, or None.

    Returns:
        FlowDataParseResult. The returned model is a fresh object; the
        caller's data is never modified.
    """
    if data is None:
        return FlowDataParseResult(flow_data=FlowDataModel())

    if isinstance(data, FlowDataModel):
        return FlowDataParseResult(flow_data=data.model_copy(deep=True))

    if not isinstance(data, Mapping):
        logger.warning(
            "flow_data_rejected",
            code=ErrorCode.INVALID_FLOW_DATA,
            received=type(data).__name__,
        )
        return FlowDataParseResult(
            flow_data=FlowDataModel(),
            warnings=["Flow data must be a mapping; treated as empty"],
        )

    payload = dict(data)
    spellings = _field_keys()
    result = FlowDataParseResult(flow_data=FlowDataModel())

    # Each failed pass drops at least one key, so this terminates.
    for _ in range(len(payload) + 1):
        try:
            result.flow_data = FlowDataModel.model_validate(payload)
            return result
        except PydanticValidationError as e:
            bad_keys = {err["loc"][0] for err in e.errors() if err.get("loc")}
            dropped = False
            for key in sorted(str(k) for k in bad_keys):
                for spelling in spellings.get(key, {key}):
                    if spelling in payload:
                        del payload[spelling]
                        dropped = True
                result.dropped_steps.append(key)
                result.warnings.append(f"Invalid {key} data ignored")
            logger.warning(
                "flow_data_step_dropped",
                code=ErrorCode.INVALID_FLOW_DATA,
                steps=sorted(str(k) for k in bad_keys),
                errors=[f"{err['loc']}: {err['msg']}" for err in e.errors()][:10],
            )
            if not dropped:
                break

    result.flow_data = FlowDataModel()
    return result
