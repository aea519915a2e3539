"""
Tests for template validation, compilation and caching.

Tests:
- Shape errors reported with JSON paths
- Cross-reference and bounds issues
- Warnings for questionable turn limits
- Formula pre-parsing
- Content-hash cache sharing
"""

import pytest

from ..engine_core.expression import ExpressionSyntaxError
from ..spec_schema import (
    GameTemplate,
    TemplateValidationError,
    check_template,
    validate_template,
)
from ..template_compiler import CompiledTemplate, TemplateCache, canonical_json, compile_template


class TestValidation:
    """Tests for validate_template() and check_template()."""

    def test_valid_document(self, ore_template_dict):
        template = validate_template(ore_template_dict)

        assert isinstance(template, GameTemplate)
        assert template.id == "ore-test"
        assert template.end_conditions[0].limit == 3

    def test_missing_field_reports_path(self, ore_template_dict):
        del ore_template_dict["scoring"]

        with pytest.raises(TemplateValidationError) as exc_info:
            validate_template(ore_template_dict)

        assert any(issue.startswith("/scoring") for issue in exc_info.value.issues)

    def test_bad_version(self, ore_template_dict):
        ore_template_dict["version"] = "v1"

        result = check_template(ore_template_dict)

        assert not result.valid
        assert any(issue.startswith("/version") for issue in result.errors)

    def test_unknown_key_rejected(self, ore_template_dict):
        ore_template_dict["colour"] = "red"

        assert not check_template(ore_template_dict).valid

    def test_dice_need_two_sides(self, ore_template_dict):
        ore_template_dict["dice"][0]["sides"] = 1

        assert not check_template(ore_template_dict).valid

    def test_empty_actions_rejected(self, ore_template_dict):
        ore_template_dict["actions"] = []

        assert not check_template(ore_template_dict).valid

    def test_missing_resource_reference(self, ore_template_dict):
        ore_template_dict["actions"][0]["effects"][0]["resource"] = "gold"

        with pytest.raises(TemplateValidationError) as exc_info:
            validate_template(ore_template_dict)

        assert exc_info.value.issues == ["Action 'gather' references missing resource 'gold'"]

    def test_missing_threshold_resource(self, ore_template_dict):
        ore_template_dict["endConditions"].append(
            {"type": "resourceThreshold", "resource": "gold", "comparison": ">=", "value": 5}
        )

        result = check_template(ore_template_dict)

        assert result.errors == ["End condition 1 references missing resource 'gold'"]

    def test_all_issues_collected(self, ore_template_dict):
        """Every violated constraint is reported, not just the first."""
        ore_template_dict["resources"].append(dict(ore_template_dict["resources"][0]))
        ore_template_dict["actions"][0]["effects"][0]["resource"] = "gold"

        result = check_template(ore_template_dict)

        assert "Resource 'ore' is defined more than once" in result.errors
        assert "Action 'gather' references missing resource 'gold'" in result.errors

    @pytest.mark.parametrize("resource,message", [
        ({"min": 5, "max": 1}, "has min greater than max"),
        ({"initial": -1}, "starts below its minimum"),
        ({"initial": 101}, "starts above its maximum"),
    ])
    def test_bounds(self, ore_template_dict, resource, message):
        ore_template_dict["resources"][0].update(resource)

        result = check_template(ore_template_dict)

        assert not result.valid
        assert result.errors == [f"Resource 'ore' {message}"]

    def test_warns_without_turn_limit(self, ore_template_dict):
        ore_template_dict["endConditions"] = [
            {"type": "resourceThreshold", "resource": "ore", "comparison": ">=", "value": 20}
        ]

        result = check_template(ore_template_dict)

        assert result.valid
        assert result.warnings == ["No turnLimit end condition defined - game may never end"]

    def test_warns_on_mismatched_turn_limit(self, ore_template_dict):
        ore_template_dict["turn"]["limit"] = 5

        result = check_template(ore_template_dict)

        assert result.valid
        assert result.warnings == ["turn.limit 5 does not match any turnLimit end condition"]

    def test_non_object_document(self):
        result = check_template(["not", "a", "template"])

        assert not result.valid


class TestCompiler:
    """Tests for compile_template()."""

    def test_formulas_parsed(self, ore_template):
        action = ore_template.get_action("gather")

        assert action.condition is None
        assert action.effects[0].source == "roll_total"
        assert ore_template.scoring.total.source == "ore"

    def test_metadata_properties(self, ore_template):
        assert ore_template.id == "ore-test"
        assert ore_template.version == "1.0.0"
        assert ore_template.turn_limit == 3
        assert [d.id for d in ore_template.dice] == ["d"]
        assert ore_template.resource_map["ore"].max == 100

    def test_blank_condition_is_absent(self, ore_template_dict):
        ore_template_dict["actions"][0]["condition"] = "  "

        compiled = compile_template(ore_template_dict)

        assert compiled.actions[0].condition is None

    def test_syntax_error_at_compile_time(self, ore_template_dict):
        ore_template_dict["actions"][0]["condition"] = "roll_total >="

        with pytest.raises(ExpressionSyntaxError):
            compile_template(ore_template_dict)

    def test_referenced_identifiers(self, meteor_template):
        identifiers = meteor_template.referenced_identifiers()

        assert {"ore", "crystal", "combo", "achievements", "roll_total", "roll_1"} <= identifiers

    def test_compiled_input_returned_unchanged(self, ore_template):
        assert compile_template(ore_template) is ore_template

    def test_round_trips_to_wire_form(self, ore_template, ore_template_dict):
        assert ore_template.to_dict() == ore_template_dict


class TestTemplateCache:
    """Tests for TemplateCache."""

    def test_identical_documents_share_instance(self, ore_template_dict):
        cache = TemplateCache()

        first = cache.get_or_compile(ore_template_dict)
        second = cache.get_or_compile(dict(ore_template_dict))

        assert isinstance(first, CompiledTemplate)
        assert first is second
        assert cache.hits == 1
        assert len(cache) == 1

    def test_key_order_does_not_matter(self, ore_template_dict):
        reordered = dict(reversed(list(ore_template_dict.items())))

        assert canonical_json(reordered) == canonical_json(ore_template_dict)

    def test_compiler_version_in_hash(self, ore_template_dict):
        assert (
            TemplateCache("1.0.0").content_hash(ore_template_dict)
            != TemplateCache("2.0.0").content_hash(ore_template_dict)
        )

    def test_eviction(self, ore_template_dict):
        cache = TemplateCache(max_entries=1)
        cache.get_or_compile(ore_template_dict)

        other = dict(ore_template_dict, id="other")
        cache.get_or_compile(other)

        assert len(cache) == 1
        assert cache.get(ore_template_dict) is None

    def test_invalidate_and_clear(self, ore_template_dict):
        cache = TemplateCache()
        cache.get_or_compile(ore_template_dict)

        cache.invalidate(ore_template_dict)
        assert cache.list_cached() == []

        cache.get_or_compile(ore_template_dict)
        cache.clear()
        assert len(cache) == 0
        assert cache.hits == 0
