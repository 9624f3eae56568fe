"""
Pydantic models for the Web Grader system.

Defines structured data types for discovered submissions, oracle-normalized
rubrics, page inspection artifacts and per-submission grading results.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field, field_validator


class Submission(BaseModel):
    """
    One student's folder of web assets, as found by discovery.

    Attributes:
        name: Submission identifier (folder name).
        root: Absolute path to the submission directory.
        markup_files: HTML files found beneath the root, in traversal order.
        stylesheet_files: CSS files found beneath the root.
        flags: Discovery warnings such as "Missing HTML".
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Submission identifier (folder name)")
    root: str = Field(..., description="Path to submission directory")
    markup_files: list[str] = Field(default_factory=list, description="Discovered HTML files")
    stylesheet_files: list[str] = Field(default_factory=list, description="Discovered CSS files")
    flags: list[str] = Field(default_factory=list, description="Missing-file flags")

    @property
    def entry_point(self) -> str | None:
        """First markup file, used as the page to render."""
        return self.markup_files[0] if self.markup_files else None

    @property
    def is_renderable(self) -> bool:
        return not self.flags


class StructuralCheck(BaseModel):
    """
    A selector-based probe attached to a rubric criterion.

    Attributes:
        selector: CSS selector that must match at least one element.
        style_property: Computed-style property expected to change on hover.
        description: Optional note from the oracle about what is checked.
    """

    selector: str = Field(..., min_length=1, description="CSS selector")
    style_property: str | None = Field(
        default=None,
        validation_alias=AliasChoices("style_property", "property"),
        description="Style property compared across a hover",
    )
    description: str = Field(default="", description="What the check verifies")


CriterionKind = Literal["visual", "structural", "behavioral"]

_KIND_ALIASES: dict[str, str] = {
    "dom": "structural",
    "structure": "structural",
    "behavior": "behavioral",
    "behaviour": "behavioral",
    "interaction": "behavioral",
}


class RubricCriterion(BaseModel):
    """
    A single weighted rubric line item.

    Attributes:
        description: Criterion text as written by the facilitator.
        weight: Points available for this criterion.
        kind: How the criterion is verified (visual, structural, behavioral).
        checks: Selector probes run against the rendered page.
    """

    description: str = Field(..., min_length=1, description="Criterion text")
    weight: float = Field(..., gt=0, description="Points for this criterion")
    kind: CriterionKind = Field(
        default="visual",
        validation_alias=AliasChoices("kind", "type"),
        description="Verification kind",
    )
    checks: list[StructuralCheck] = Field(default_factory=list, description="DOM checks")

    @field_validator("kind", mode="before")
    @classmethod
    def _normalize_kind(cls, value: Any) -> Any:
        if isinstance(value, str):
            lowered = value.strip().lower()
            return _KIND_ALIASES.get(lowered, lowered)
        return value

    @field_validator("checks", mode="before")
    @classmethod
    def _coerce_checks(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [{"selector": item} if isinstance(item, str) else item for item in value]
        return value


class Rubric(BaseModel):
    """
    Rubric normalized from facilitator free text.

    Attributes:
        criteria: Structured criteria returned by the oracle.
        raw_text: Original rubric text.
        normalization_error: Why normalization produced no criteria, if it failed.
    """

    criteria: list[RubricCriterion] = Field(default_factory=list, description="Rubric criteria")
    raw_text: str = Field(default="", description="Original rubric text")
    normalization_error: str | None = Field(default=None, description="Normalization failure")

    @computed_field
    @property
    def total_points(self) -> float:
        return sum(c.weight for c in self.criteria)


class InspectionResult(BaseModel):
    """
    Artifacts captured from one rendered page.

    Attributes:
        screenshot_path: Where the full-page capture was written.
        image: PNG bytes of the capture.
        check_results: Pass/fail per "<criterion> :: <selector>" key.
    """

    screenshot_path: str = Field(..., description="Path to the full-page PNG")
    image: bytes = Field(default=b"", exclude=True, repr=False, description="PNG bytes")
    check_results: dict[str, bool] = Field(default_factory=dict, description="DOM check results")


class SubmissionState(str, Enum):
    """Processing states of one submission inside a batch."""

    DISCOVERED = "discovered"
    FLAGGED = "flagged"
    RENDERING = "rendering"
    RENDERED = "rendered"
    JUDGING = "judging"
    JUDGED = "judged"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SubmissionState.FLAGGED, SubmissionState.JUDGED, SubmissionState.FAILED)


class EvaluationResult(BaseModel):
    """
    Grading outcome for a single submission.

    Serialized with camelCase ``manualCorrection`` to keep the run output
    readable by the facilitator-facing tools.

    Attributes:
        name: Submission identifier.
        score: Total score extracted from the judgment (0 on failure).
        feedback: Oracle response text, verbatim.
        error: Error message for flagged or failed submissions.
        manual_correction: Whether a human should re-review this submission.
        status: Terminal processing state.
        screenshot: Path to the captured page, if one was taken.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Submission identifier")
    score: float = Field(default=0.0, ge=0, description="Total score")
    feedback: str = Field(default="", description="Narrative feedback")
    error: str | None = Field(default=None, description="Error message if grading failed")
    manual_correction: bool | None = Field(
        default=None, alias="manualCorrection", description="Needs human re-review"
    )
    status: SubmissionState = Field(default=SubmissionState.JUDGED, description="Terminal state")
    screenshot: str | None = Field(default=None, description="Path to captured screenshot")


class BatchReport(BaseModel):
    """
    Ordered results of one grading run plus run metadata.

    Attributes:
        timestamp: When the run started.
        rubric: The rubric every submission was graded against.
        reference_url: Reference design URL, if comparison was requested.
        reference_error: Why the reference design could not be captured.
        results: One result per discovered submission, in discovery order.
    """

    model_config = ConfigDict(populate_by_name=True)

    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())
    rubric: Rubric = Field(default_factory=Rubric)
    reference_url: str | None = Field(default=None)
    reference_error: str | None = Field(default=None)
    results: list[EvaluationResult] = Field(default_factory=list)
