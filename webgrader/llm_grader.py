"""
Vision-based grading of rendered student pages.

Combines the rubric, the DOM check results and the page screenshot (plus an
optional reference-design screenshot) into one request for the oracle, then
extracts a score and manual-review signal from its free-form answer.
"""

import re

from .config import (
    MANUAL_CORRECTION_MARKER,
    SCORE_PATTERN,
    TOTAL_SCORE_PATTERN,
    VISUAL_DIFFERENCE_MARKER,
)
from .models import EvaluationResult, InspectionResult, Rubric, SubmissionState
from .oracle import Oracle
from .rubric_parser import format_rubric_for_llm

_TOTAL_SCORE_RE = re.compile(TOTAL_SCORE_PATTERN, re.IGNORECASE)
_SCORE_RE = re.compile(SCORE_PATTERN, re.IGNORECASE)


def parse_score(response: str) -> float:
    """
    Extract the total score from a judgment response.

    Policy: the first number on the same line after a "total score" marker;
    failing that, after the first "score" marker that has a number on its
    line. An "out of N" right after the marker is skipped, so both
    "Total Score: 5/6" and "Score out of 6: 5" give 5. Never raises.

    Args:
        response: Oracle response text.

    Returns:
        The score, or 0.0 if no marker is found.
    """
    if not response:
        return 0.0

    for pattern in (_TOTAL_SCORE_RE, _SCORE_RE):
        match = pattern.search(response)
        if match:
            try:
                return float(match.group(1))
            except ValueError:
                return 0.0
    return 0.0


def needs_manual_review(response: str, compared_with_reference: bool = False) -> bool:
    """
    Detect a manual-review recommendation in a judgment response.

    "manual correction" always counts; "different" only counts when a
    reference design was part of the request.

    Args:
        response: Oracle response text.
        compared_with_reference: Whether a reference image was sent.

    Returns:
        True if a human should re-review the submission.
    """
    lowered = (response or "").lower()
    if MANUAL_CORRECTION_MARKER in lowered:
        return True
    return compared_with_reference and VISUAL_DIFFERENCE_MARKER in lowered


class VisionGrader:
    """
    Grades a rendered page with a vision-capable oracle.
    """

    def __init__(self, oracle: Oracle) -> None:
        self.oracle = oracle

    async def grade(
        self,
        name: str,
        rubric: Rubric,
        inspection: InspectionResult,
        reference: InspectionResult | None = None,
    ) -> EvaluationResult:
        """
        Grade one submission.

        Oracle errors propagate; the orchestrator records them as failures.

        Args:
            name: Submission identifier.
            rubric: Normalized rubric.
            inspection: Screenshot and DOM check results for the submission.
            reference: Optional reference-design capture to compare against.

        Returns:
            EvaluationResult with the parsed score and verbatim feedback.
        """
        compare = reference is not None
        prompt = self.build_prompt(rubric, inspection.check_results, compare_with_reference=compare)

        images = [inspection.image]
        if reference is not None:
            images.append(reference.image)

        response = await self.oracle.complete(prompt, images, system=self._get_system_prompt())

        return EvaluationResult(
            name=name,
            score=parse_score(response),
            feedback=response,
            manual_correction=needs_manual_review(response, compared_with_reference=compare),
            status=SubmissionState.JUDGED,
            screenshot=inspection.screenshot_path,
        )

    def _get_system_prompt(self) -> str:
        """
        Get the system prompt for the grading LLM.

        Returns:
            System prompt string.
        """
        return """You are a fair grading assistant for an introductory HTML/CSS course.

Your role is to:
1. Evaluate the screenshot of a student's web page against the rubric
2. Use the DOM check results as ground truth for structure and interactivity
3. Provide constructive, specific feedback

Grading Guidelines:
- Award each criterion between 0 and its weight
- A failed DOM check means the element was not found: give little or no credit
  for that criterion unless the screenshot clearly shows it
- Judge visual criteria from the screenshot only
- Be specific about what is missing or incorrect and how to fix it"""

    def build_prompt(
        self,
        rubric: Rubric,
        check_results: dict[str, bool],
        compare_with_reference: bool = False,
    ) -> str:
        """
        Build the grading prompt for the LLM.

        Args:
            rubric: Normalized rubric.
            check_results: DOM/behavior check outcomes.
            compare_with_reference: Whether a reference screenshot follows the
                student's screenshot.

        Returns:
            Complete prompt string.
        """
        if compare_with_reference:
            images_note = (
                "The first image is the student's page. The second image is the "
                "expected design. Compare them."
            )
        else:
            images_note = "The image is a full-page screenshot of the student's page."

        prompt = f"""
# GRADING TASK

{images_note}

## Rubric
{format_rubric_for_llm(rubric)}

## DOM/Behavior Check Results
{self._format_check_results(check_results)}

## Instructions

Please provide:
- Total score, on its own line, as "Total Score: <number>"
- Score breakdown per rubric item
- Specific feedback and suggested improvements
"""
        if compare_with_reference:
            prompt += (
                '- If layout, spacing, color or structure differs significantly from the '
                'expected design, write "Manual correction needed" on its own line\n'
            )
        return prompt

    def _format_check_results(self, check_results: dict[str, bool]) -> str:
        if not check_results:
            return "No DOM checks were run."

        passed = sum(1 for ok in check_results.values() if ok)
        lines = [f"Total: {len(check_results)} checks, {passed} passed, {len(check_results) - passed} failed", ""]
        for key, ok in check_results.items():
            lines.append(f"- {key}: {'PASSED' if ok else 'FAILED'}")
        return "\n".join(lines)
