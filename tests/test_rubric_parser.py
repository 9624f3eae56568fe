from __future__ import annotations

import asyncio
import json

import pytest

from tests.conftest import StubOracle
from webgrader.models import Rubric, RubricCriterion
from webgrader.rubric_parser import (
    format_rubric_for_llm,
    normalize_rubric,
    parse_criteria,
    strip_code_fence,
)

RUBRIC_TEXT = "Checkbox present - 2\nFooter has copyright - 1"

CRITERIA_PAYLOAD = [
    {
        "description": "Checkbox present",
        "weight": 2,
        "kind": "structural",
        "checks": [{"selector": "input[type=checkbox]"}],
    },
    {"description": "Footer has copyright", "weight": 1, "kind": "visual"},
]


@pytest.mark.parametrize(
    "wrapped",
    [
        "```json\n{payload}\n```",
        "```\n{payload}\n```",
        "Here is the rubric:\n```JSON\n{payload}\n```\nLet me know if you need changes.",
        "{payload}",
    ],
)
def test_fenced_payload_is_normalized(wrapped):
    oracle = StubOracle([wrapped.replace("{payload}", json.dumps(CRITERIA_PAYLOAD, indent=2))])

    rubric = asyncio.run(normalize_rubric(oracle, RUBRIC_TEXT))

    assert rubric.normalization_error is None
    assert [c.description for c in rubric.criteria] == ["Checkbox present", "Footer has copyright"]
    assert rubric.criteria[0].kind == "structural"
    assert rubric.criteria[0].checks[0].selector == "input[type=checkbox]"
    assert rubric.criteria[1].kind == "visual"
    assert rubric.criteria[1].checks == []
    assert rubric.total_points == 3
    assert RUBRIC_TEXT in oracle.calls[0]["prompt"]


def test_garbled_payload_degrades_to_empty_rubric():
    oracle = StubOracle(["Sorry, I can't help with that."])

    rubric = asyncio.run(normalize_rubric(oracle, RUBRIC_TEXT))

    assert rubric.criteria == []
    assert rubric.normalization_error
    assert rubric.raw_text == RUBRIC_TEXT


def test_schema_violation_degrades_to_empty_rubric():
    oracle = StubOracle(['[{"description": "Logo", "weight": 0, "kind": "visual"}]'])

    rubric = asyncio.run(normalize_rubric(oracle, RUBRIC_TEXT))

    assert rubric.criteria == []
    assert rubric.normalization_error


def test_legacy_field_names_and_kinds_are_accepted():
    raw = json.dumps([
        {"description": "Form fields", "weight": 1, "type": "dom", "checks": ["form input", "form select"]},
        {"description": "Button hover", "weight": 1, "type": "behavior",
         "checks": [{"selector": "button", "property": "backgroundColor"}]},
    ])

    criteria = parse_criteria(raw)

    assert [c.kind for c in criteria] == ["structural", "behavioral"]
    assert [c.selector for c in criteria[0].checks] == ["form input", "form select"]
    assert criteria[1].checks[0].style_property == "backgroundColor"


def test_object_wrapped_array_is_accepted():
    raw = json.dumps({"criteria": CRITERIA_PAYLOAD})

    assert len(parse_criteria(raw)) == 2


def test_non_array_payload_is_rejected():
    with pytest.raises(ValueError):
        parse_criteria('{"score": 3}')


def test_strip_code_fence_handles_unterminated_fence():
    assert strip_code_fence('```json\n[{"a": 1}]') == '[{"a": 1}]'


def test_format_rubric_lists_weights():
    rubric = Rubric(
        criteria=[RubricCriterion(description="Checkbox present", weight=2, kind="structural")],
        raw_text=RUBRIC_TEXT,
    )

    text = format_rubric_for_llm(rubric)

    assert "1. Checkbox present (2 points) [structural]" in text
    assert "Total: 2 points" in text


def test_format_rubric_falls_back_to_raw_text():
    rubric = Rubric(raw_text=RUBRIC_TEXT, normalization_error="bad json")

    assert format_rubric_for_llm(rubric) == RUBRIC_TEXT
