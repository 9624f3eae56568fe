"""
Batch orchestration of the grading pipeline.

Normalizes the rubric once, then moves each submission through an explicit
state machine (discovered -> rendering -> rendered -> judging -> judged, or
flagged / failed) inside one shared headless browser session. Every
submission commits exactly one EvaluationResult, in discovery order.
"""

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Callable, Mapping

from playwright.async_api import BrowserContext, async_playwright

from .browser_runner import PageInspector
from .config import DEFAULT_SCREENSHOTS_DIR, NAVIGATION_TIMEOUT_MS, REFERENCE_TIMEOUT_MS, VIEWPORT
from .config_loader import GraderConfig
from .grades_aggregator import GradesAggregator
from .llm_grader import VisionGrader
from .models import BatchReport, EvaluationResult, InspectionResult, Rubric, Submission, SubmissionState
from .oracle import OpenAIOracle, Oracle
from .repo_fetcher import clone_repository
from .rubric_parser import normalize_rubric
from .scanner import build_submission_lookup, find_submissions


# Any non-terminal state may also fail
_TRANSITIONS: dict[SubmissionState, frozenset[SubmissionState]] = {
    SubmissionState.DISCOVERED: frozenset({SubmissionState.RENDERING, SubmissionState.FLAGGED}),
    SubmissionState.RENDERING: frozenset({SubmissionState.RENDERED}),
    SubmissionState.RENDERED: frozenset({SubmissionState.JUDGING}),
    SubmissionState.JUDGING: frozenset({SubmissionState.JUDGED}),
}


class SubmissionRun:
    """
    State of one submission while it moves through the pipeline.
    """

    def __init__(self, submission: Submission, verbose: bool = False) -> None:
        self.submission = submission
        self.state = SubmissionState.DISCOVERED
        self.verbose = verbose
        self.result: EvaluationResult | None = None

    def advance(self, state: SubmissionState) -> None:
        if self.state.is_terminal:
            raise RuntimeError(f"{self.submission.name} already finished as {self.state.value}")
        if state != SubmissionState.FAILED and state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"{self.submission.name} cannot move from {self.state.value} to {state.value}")
        self.state = state
        if self.verbose:
            print(f"    [{self.submission.name}] -> {state.value}")

    def commit(self, state: SubmissionState, result: EvaluationResult) -> EvaluationResult:
        """Enter a terminal state and record its result."""
        self.advance(state)
        result.status = state
        self.result = result
        return result


class BatchGrader:
    """
    Grades a batch of submissions sequentially in one browser session.
    """

    def __init__(
        self,
        oracle: Oracle,
        base_url: str,
        screenshots_dir: Path = DEFAULT_SCREENSHOTS_DIR,
        timeout_ms: int = NAVIGATION_TIMEOUT_MS,
        reference_timeout_ms: int = REFERENCE_TIMEOUT_MS,
        verbose: bool = False,
    ) -> None:
        """
        Initialize the batch grader.

        Args:
            oracle: Generative service for rubric normalization and judgment.
            base_url: Serving base URL for submissions.
            screenshots_dir: Where page captures are stored for this run.
            timeout_ms: Navigation timeout per submission.
            reference_timeout_ms: Navigation timeout for the reference design.
            verbose: Print state transitions.
        """
        self.oracle = oracle
        self.inspector = PageInspector(
            base_url=base_url,
            screenshots_dir=screenshots_dir,
            timeout_ms=timeout_ms,
            reference_timeout_ms=reference_timeout_ms,
        )
        self.grader = VisionGrader(oracle)
        self.verbose = verbose

    async def run(
        self,
        submissions: list[Submission],
        rubric_text: str,
        expected_url: str | None = None,
    ) -> BatchReport:
        """
        Run the full batch: normalize the rubric, render and judge everything.

        Args:
            submissions: Discovery output, in order.
            rubric_text: Facilitator rubric text.
            expected_url: Optional reference design URL.

        Returns:
            BatchReport with one result per submission.
        """
        print("Normalizing rubric...")
        rubric = await normalize_rubric(self.oracle, rubric_text)
        if rubric.normalization_error:
            print("Warning: rubric could not be structured; grading visually only.")
        else:
            print(f"Found {len(rubric.criteria)} criteria, {rubric.total_points:g} total points")

        if self.verbose:
            for criterion in rubric.criteria:
                print(f"  - [{criterion.kind}] {criterion.description}: {criterion.weight:g} pts")

        async with self._browser_context() as context:
            return await self.grade_all(context, submissions, rubric, expected_url)

    @asynccontextmanager
    async def _browser_context(self) -> AsyncIterator[BrowserContext]:
        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch()
            try:
                context = await browser.new_context(viewport=VIEWPORT)
                yield context
            finally:
                await browser.close()

    async def grade_all(
        self,
        context: BrowserContext,
        submissions: list[Submission],
        rubric: Rubric,
        expected_url: str | None = None,
    ) -> BatchReport:
        """
        Grade submissions one at a time with a shared browser context.

        Args:
            context: Browser context shared by all pages of the run.
            submissions: Discovery output, in order.
            rubric: Normalized rubric shared read-only by all submissions.
            expected_url: Optional reference design URL.

        Returns:
            BatchReport with results in discovery order.
        """
        report = BatchReport(rubric=rubric, reference_url=expected_url)

        reference: InspectionResult | None = None
        if expected_url:
            print(f"Capturing reference design from {expected_url}...")
            try:
                reference = await self.inspector.capture_reference(context, expected_url)
            except Exception as e:
                print(f"Warning: reference capture failed, grading without comparison: {e}")
                report.reference_error = str(e)

        for i, submission in enumerate(submissions, 1):
            print(f"\n[{i}/{len(submissions)}] Processing {submission.name}...")
            result = await self.grade_submission(context, submission, rubric, reference)
            report.results.append(result)
            print_result_summary(result)

        return report

    async def grade_submission(
        self,
        context: BrowserContext,
        submission: Submission,
        rubric: Rubric,
        reference: InspectionResult | None = None,
    ) -> EvaluationResult:
        """
        Move one submission to a terminal state and return its result.

        Flagged submissions never touch the browser. Any exception while
        rendering or judging ends in FAILED; it never escapes this method.
        """
        run = SubmissionRun(submission, verbose=self.verbose)

        if submission.flags:
            missing = ", ".join(submission.flags)
            print(f"  Skipping: {missing}")
            return run.commit(
                SubmissionState.FLAGGED,
                EvaluationResult(
                    name=submission.name,
                    score=0,
                    error=missing,
                    feedback=f"Missing files: {missing}",
                    manual_correction=True,
                ),
            )

        try:
            run.advance(SubmissionState.RENDERING)
            inspection = await self.inspector.inspect(context, submission, rubric)
            run.advance(SubmissionState.RENDERED)

            if inspection.check_results:
                passed = sum(1 for ok in inspection.check_results.values() if ok)
                print(f"  DOM checks: {passed}/{len(inspection.check_results)} passed")

            run.advance(SubmissionState.JUDGING)
            print("  Grading with LLM...")
            result = await self.grader.grade(submission.name, rubric, inspection, reference)
            return run.commit(SubmissionState.JUDGED, result)

        except Exception as e:
            print(f"  Error evaluating {submission.name} during {run.state.value}: {e}")
            return run.commit(
                SubmissionState.FAILED,
                EvaluationResult(
                    name=submission.name,
                    score=0,
                    error=str(e) or type(e).__name__,
                    manual_correction=True,
                ),
            )


def print_result_summary(result: EvaluationResult) -> None:
    """
    Print a one-line summary of a result to console.

    Args:
        result: EvaluationResult to summarize.
    """
    flag = " [MANUAL REVIEW]" if result.manual_correction else ""
    if result.error:
        print(f"  {result.status.value.upper()}: {result.error}{flag}")
    else:
        print(f"  Score: {result.score:g}{flag}")


def run_grading_pipeline(
    config: GraderConfig,
    rubric_text: str,
    repo_url: str | None = None,
    expected_url: str | None = None,
    oracle: Oracle | None = None,
    publish: Callable[[Mapping[str, Submission]], None] | None = None,
) -> BatchReport:
    """
    Run the complete grading pipeline for one batch.

    Setup failures (clone, unreadable submissions root, missing API key)
    propagate to the caller before any submission is processed.

    Args:
        config: Loaded grader configuration.
        rubric_text: Facilitator rubric text.
        repo_url: Optional repository to clone into config.submissions_dir.
        expected_url: Optional reference design URL.
        oracle: Oracle to use; an OpenAIOracle is created when None.
        publish: Receives the name -> submission lookup so the serving layer
            can expose pages before rendering starts.

    Returns:
        The saved BatchReport.
    """
    if repo_url:
        clone_repository(repo_url, config.submissions_dir)

    print(f"\nScanning {config.submissions_dir} for submissions...")
    submissions = find_submissions(config.submissions_dir)
    print(f"Found {len(submissions)} submissions")

    if publish is not None:
        publish(build_submission_lookup(submissions))

    if oracle is None:
        print("Initializing LLM grader...")
        oracle = OpenAIOracle(model=config.openai_model)

    grader = BatchGrader(
        oracle=oracle,
        base_url=config.base_url,
        screenshots_dir=config.screenshots_dir,
        timeout_ms=config.navigation_timeout_ms,
        reference_timeout_ms=config.reference_timeout_ms,
        verbose=config.verbose,
    )
    report = asyncio.run(grader.run(submissions, rubric_text, expected_url))

    print("\nSaving aggregated grades...")
    aggregator = GradesAggregator(output_dir=config.grades_dir, report=report)
    output_files = aggregator.save_all()
    print(f"  Final scores: {output_files.get('final_scores')}")
    print(f"  Summary CSV:  {output_files.get('summary_csv')}")

    return report
