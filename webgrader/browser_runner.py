"""
Headless-browser rendering and inspection of student pages.

Renders each submission in its own Playwright page, captures a full-page
screenshot and evaluates the rubric's DOM and hover checks.
"""

import re
from pathlib import Path
from urllib.parse import quote

from playwright.async_api import BrowserContext, Page

from .config import (
    DEFAULT_SCREENSHOTS_DIR,
    NAVIGATION_TIMEOUT_MS,
    REFERENCE_SCREENSHOT_FILENAME,
    REFERENCE_TIMEOUT_MS,
)
from .models import InspectionResult, Rubric, RubricCriterion, StructuralCheck, Submission

_COMPUTED_STYLE_JS = "(el, prop) => getComputedStyle(el)[prop]"

# Milliseconds allowed for a single hover before the check is failed
HOVER_TIMEOUT_MS: int = 2000


def submission_url(base_url: str, name: str) -> str:
    """URL where the serving layer exposes a submission's entry page."""
    return f"{base_url.rstrip('/')}/{quote(name, safe='')}/"


def screenshot_filename(name: str) -> str:
    return re.sub(r"\s+", "_", name) + ".png"


def check_key(criterion: RubricCriterion, check: StructuralCheck) -> str:
    return f"{criterion.description} :: {check.selector}"


class PageInspector:
    """
    Renders submissions and probes the resulting DOM.

    One inspector is shared across a batch; every call opens and closes its
    own page so no state leaks between submissions.
    """

    def __init__(
        self,
        base_url: str,
        screenshots_dir: Path = DEFAULT_SCREENSHOTS_DIR,
        timeout_ms: int = NAVIGATION_TIMEOUT_MS,
        reference_timeout_ms: int = REFERENCE_TIMEOUT_MS,
    ) -> None:
        """
        Initialize the page inspector.

        Args:
            base_url: Serving base, e.g. http://127.0.0.1:3000/student.
            screenshots_dir: Where full-page captures are written.
            timeout_ms: Bounded wait for a submission's load event.
            reference_timeout_ms: Bounded wait for the reference design.
        """
        self.base_url = base_url
        self.screenshots_dir = screenshots_dir
        self.timeout_ms = timeout_ms
        self.reference_timeout_ms = reference_timeout_ms
        # screenshot filename -> submission name, so distinct names never share a file
        self._screenshot_owners: dict[str, str] = {}

    async def inspect(
        self,
        context: BrowserContext,
        submission: Submission,
        rubric: Rubric,
    ) -> InspectionResult:
        """
        Render one submission, capture it and run the rubric's checks.

        Navigation and capture errors propagate to the caller; check errors
        are recorded as failed checks. The page is always closed.

        Args:
            context: Shared browser context.
            submission: A renderable submission.
            rubric: Normalized rubric with the checks to run.

        Returns:
            InspectionResult with the screenshot and check outcomes.
        """
        self.screenshots_dir.mkdir(parents=True, exist_ok=True)
        screenshot_path = self.screenshots_dir / self.screenshot_name(submission.name)

        page = await context.new_page()
        try:
            await page.goto(
                submission_url(self.base_url, submission.name),
                wait_until="load",
                timeout=self.timeout_ms,
            )
            image = await page.screenshot(path=str(screenshot_path), full_page=True)
            check_results = await self.run_checks(page, rubric)
        finally:
            await page.close()

        return InspectionResult(
            screenshot_path=str(screenshot_path),
            image=image,
            check_results=check_results,
        )

    def screenshot_name(self, name: str) -> str:
        """
        Pick the screenshot filename for a submission.

        Names that sanitize to the same file (e.g. "a b" and "a_b") get a
        numeric suffix; the same name always maps to the same file.
        """
        filename = screenshot_filename(name)
        stem = Path(filename).stem
        suffix = 2
        while self._screenshot_owners.get(filename, name) != name or filename == REFERENCE_SCREENSHOT_FILENAME:
            filename = f"{stem}-{suffix}.png"
            suffix += 1
        self._screenshot_owners[filename] = name
        return filename

    async def capture_reference(self, context: BrowserContext, url: str) -> InspectionResult:
        """
        Capture the reference design once per run.

        Args:
            context: Shared browser context.
            url: Where the expected design is hosted.

        Returns:
            InspectionResult holding the reference screenshot.
        """
        self.screenshots_dir.mkdir(parents=True, exist_ok=True)
        screenshot_path = self.screenshots_dir / REFERENCE_SCREENSHOT_FILENAME

        page = await context.new_page()
        try:
            await page.goto(url, wait_until="load", timeout=self.reference_timeout_ms)
            image = await page.screenshot(path=str(screenshot_path), full_page=True)
        finally:
            await page.close()

        return InspectionResult(screenshot_path=str(screenshot_path), image=image)

    async def run_checks(self, page: Page, rubric: Rubric) -> dict[str, bool]:
        """
        Evaluate structural and behavioral checks against a loaded page.

        Args:
            page: Page that finished loading.
            rubric: Rubric whose checks are evaluated.

        Returns:
            Mapping of "<criterion> :: <selector>" to pass/fail.
        """
        results: dict[str, bool] = {}
        for criterion in rubric.criteria:
            if criterion.kind == "visual":
                continue
            for check in criterion.checks:
                key = check_key(criterion, check)
                if criterion.kind == "behavioral" and check.style_property:
                    results[key] = await self._check_hover(page, check)
                else:
                    results[key] = await self._check_presence(page, check)
        return results

    async def _check_presence(self, page: Page, check: StructuralCheck) -> bool:
        try:
            return await page.query_selector(check.selector) is not None
        except Exception:
            # Malformed selector or detached frame
            return False

    async def _check_hover(self, page: Page, check: StructuralCheck) -> bool:
        """Hover the first matching element and compare a computed style."""
        try:
            # Park the pointer so an earlier hover check does not leak into "before"
            await page.mouse.move(0, 0)
            before = await page.eval_on_selector(check.selector, _COMPUTED_STYLE_JS, check.style_property)
            await page.hover(check.selector, timeout=HOVER_TIMEOUT_MS)
            after = await page.eval_on_selector(check.selector, _COMPUTED_STYLE_JS, check.style_property)
        except Exception:
            return False
        return before != after
