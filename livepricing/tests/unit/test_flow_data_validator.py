"""
Unit Tests for lenient flow data parsing.

Test Coverage:
- Accepted input shapes (None, model, camelCase and snake_case mappings)
- Invalid steps dropped with warnings
- Caller data never modified
"""

import copy

from livepricing.models.flow_data import FlowDataModel
from livepricing.tests.fixtures.mock_flow_data import complete_flow
from livepricing.validators.flow_data_validator import parse_flow_data


class TestAcceptedInput:
    """Tests for valid input shapes."""

    def test_none_is_empty_model(self):
        parsed = parse_flow_data(None)

        assert parsed.flow_data == FlowDataModel()
        assert parsed.warnings == []

    def test_camel_case_mapping(self):
        parsed = parse_flow_data(complete_flow())

        assert parsed.flow_data.project_setup.building_type == "office"
        assert parsed.flow_data.selected_services == ["window_cleaning"]

    def test_snake_case_mapping(self):
        parsed = parse_flow_data({"scope_details": {"selected_services": ["soft_washing"]}})

        assert parsed.flow_data.selected_services == ["soft_washing"]

    def test_model_is_copied(self):
        model = FlowDataModel.model_validate(complete_flow())

        parsed = parse_flow_data(model)

        assert parsed.flow_data == model
        assert parsed.flow_data is not model
        assert parsed.flow_data.scope_details is not model.scope_details

    def test_unknown_keys_kept(self):
        data = complete_flow()
        data["expenses"] = {"breakdown": [1, 2]}

        parsed = parse_flow_data(data)

        assert parsed.warnings == []
        assert parsed.flow_data.model_extra["expenses"] == {"breakdown": [1, 2]}


class TestInvalidInput:
    """Tests for invalid steps and shapes."""

    def test_non_mapping_is_empty_with_warning(self):
        parsed = parse_flow_data(["not", "a", "mapping"])

        assert parsed.flow_data == FlowDataModel()
        assert parsed.warnings == ["Flow data must be a mapping; treated as empty"]

    def test_invalid_step_dropped(self):
        data = complete_flow()
        data["duration"] = {"estimatedHours": "a while"}

        parsed = parse_flow_data(data)

        assert parsed.flow_data.duration is None
        assert parsed.flow_data.scope_details is not None
        assert parsed.dropped_steps == ["duration"]
        assert parsed.warnings == ["Invalid duration data ignored"]

    def test_several_invalid_steps_dropped(self):
        data = complete_flow()
        data["areaOfWork"] = {"totalSqft": -10}
        data["scopeDetails"] = "window cleaning please"

        parsed = parse_flow_data(data)

        assert parsed.flow_data.area_of_work is None
        assert parsed.flow_data.scope_details is None
        assert parsed.flow_data.project_setup is not None
        assert sorted(parsed.dropped_steps) == ["areaOfWork", "scopeDetails"]

    def test_non_finite_numbers_rejected(self):
        data = complete_flow()
        data["pricing"] = {"strategy": {"markup": float("inf")}}

        parsed = parse_flow_data(data)

        assert parsed.flow_data.pricing is None
        assert parsed.warnings == ["Invalid pricing data ignored"]

    def test_caller_data_not_modified(self):
        data = complete_flow()
        data["duration"] = {"estimatedHours": "a while"}
        before = copy.deepcopy(data)

        parse_flow_data(data)

        assert data == before
