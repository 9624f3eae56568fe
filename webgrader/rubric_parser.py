"""
Rubric normalization for facilitator-written rubrics.

Facilitators write one criterion per line with a human weight annotation
(e.g. ``Footer has copyright - 1``). The oracle turns that text into typed,
weighted criteria with DOM checks; this module builds that request and
sanitizes the answer.
"""

import json
import re

from pydantic import TypeAdapter, ValidationError

from .config import RUBRIC_TEMPERATURE
from .models import Rubric, RubricCriterion
from .oracle import Oracle

_CRITERIA_ADAPTER = TypeAdapter(list[RubricCriterion])

NORMALIZE_SYSTEM_PROMPT = (
    "You convert web design grading rubrics into machine-readable JSON. "
    "You never add commentary."
)


def build_normalization_prompt(rubric_text: str) -> str:
    """
    Build the rubric-to-JSON request for the oracle.

    Args:
        rubric_text: Facilitator rubric, one criterion per line.

    Returns:
        Prompt string.
    """
    return f"""Convert the following plain-text web project rubric into a JSON array.
Each item must include:
- "description": the criterion text without the weight
- "weight": the points for the criterion (a number)
- "kind": one of "visual", "structural", "behavioral"
- "checks": a list of DOM checks, each {{"selector": "<css selector>"}}. For hover
  effects add "property" naming the computed style that should change on hover
  (e.g. {{"selector": "button", "property": "backgroundColor"}}). Use [] for
  purely visual criteria.

Rubric:
{rubric_text.strip()}

Return only the JSON array."""


def strip_code_fence(raw: str) -> str:
    """
    Remove informal wrapping around a JSON payload.

    Handles ```json fences, bare ``` fences and stray prose before or after
    the JSON value.

    Args:
        raw: Oracle response text.

    Returns:
        The text most likely to be the JSON payload.
    """
    cleaned = raw.strip()

    fenced = re.search(r"```(?:json|JSON)?\s*([\s\S]*?)\s*```", cleaned)
    if fenced:
        cleaned = fenced.group(1).strip()
    else:
        # Unterminated fence: drop the opening marker only
        cleaned = re.sub(r"^```(?:json|JSON)?", "", cleaned).strip()

    # Trim prose around the outermost array or object
    starts = [i for i in (cleaned.find("["), cleaned.find("{")) if i != -1]
    if starts:
        start = min(starts)
        end = max(cleaned.rfind("]"), cleaned.rfind("}"))
        if end > start:
            cleaned = cleaned[start:end + 1]

    return cleaned


def parse_criteria(raw: str) -> list[RubricCriterion]:
    """
    Parse the oracle's rubric payload into criteria.

    Args:
        raw: Oracle response text, possibly fenced.

    Returns:
        List of RubricCriterion objects.

    Raises:
        ValueError: If the payload is not valid JSON or not a criteria list.
        ValidationError: If a criterion is missing required fields.
    """
    data = json.loads(strip_code_fence(raw))

    if isinstance(data, dict):
        data = data.get("criteria", data.get("rubric"))
    if not isinstance(data, list):
        raise ValueError("Rubric payload is not a JSON array of criteria")

    return _CRITERIA_ADAPTER.validate_python(data)


async def normalize_rubric(oracle: Oracle, rubric_text: str) -> Rubric:
    """
    Turn free-text rubric into structured criteria using the oracle.

    A garbled answer does not abort the run: it yields an empty criteria list
    with ``normalization_error`` set, leaving everything to visual judgment.

    Args:
        oracle: Generative service used for the conversion.
        rubric_text: Facilitator rubric text.

    Returns:
        Rubric with criteria (possibly empty).
    """
    raw = await oracle.complete(
        build_normalization_prompt(rubric_text),
        system=NORMALIZE_SYSTEM_PROMPT,
        temperature=RUBRIC_TEMPERATURE,
    )

    try:
        criteria = parse_criteria(raw)
    except (ValueError, ValidationError) as e:
        # json.JSONDecodeError is a ValueError
        print(f"Failed to parse rubric JSON: {e}")
        return Rubric(criteria=[], raw_text=rubric_text, normalization_error=str(e))

    return Rubric(criteria=criteria, raw_text=rubric_text)


def format_rubric_for_llm(rubric: Rubric) -> str:
    """
    Format the rubric as a numbered list for the judgment prompt.

    Falls back to the raw facilitator text when normalization failed, so the
    oracle still sees what it is grading against.

    Args:
        rubric: Normalized rubric.

    Returns:
        Formatted string representation.
    """
    if not rubric.criteria:
        return rubric.raw_text.strip() or "No rubric provided."

    lines = []
    for i, criterion in enumerate(rubric.criteria, 1):
        lines.append(f"{i}. {criterion.description} ({criterion.weight:g} points) [{criterion.kind}]")
    lines.append(f"Total: {rubric.total_points:g} points")
    return "\n".join(lines)
