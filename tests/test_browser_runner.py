from __future__ import annotations

import asyncio

import pytest

from tests.conftest import PNG_BYTES, FakeContext
from webgrader.browser_runner import PageInspector, screenshot_filename, submission_url
from webgrader.models import Rubric, RubricCriterion, StructuralCheck, Submission

BASE_URL = "http://127.0.0.1:3000/student"


def _submission(name: str = "alice") -> Submission:
    return Submission(name=name, root=f"/tmp/{name}", markup_files=[f"/tmp/{name}/index.html"],
                      stylesheet_files=[f"/tmp/{name}/style.css"])


def _rubric() -> Rubric:
    return Rubric(criteria=[
        RubricCriterion(
            description="Checkbox present",
            weight=2,
            kind="structural",
            checks=[StructuralCheck(selector="input[type=checkbox]"), StructuralCheck(selector="footer")],
        ),
        RubricCriterion(
            description="Broken check",
            weight=1,
            kind="structural",
            checks=[StructuralCheck(selector="div[[oops")],
        ),
        RubricCriterion(
            description="Button hover",
            weight=1,
            kind="behavioral",
            checks=[StructuralCheck(selector="button", style_property="backgroundColor")],
        ),
        RubricCriterion(
            description="Hero image",
            weight=2,
            kind="visual",
            checks=[StructuralCheck(selector=".hero")],
        ),
    ])


def test_submission_url_encodes_name():
    assert submission_url(BASE_URL, "shiva test 3") == f"{BASE_URL}/shiva%20test%203/"
    assert submission_url(BASE_URL + "/", "a/b") == f"{BASE_URL}/a%2Fb/"


def test_screenshot_filename_replaces_whitespace():
    assert screenshot_filename("shiva test  3") == "shiva_test_3.png"


def test_inspect_records_checks_and_closes_page(tmp_path):
    context = FakeContext(
        selectors=["input[type=checkbox]", "button", ".hero"],
        styles={"button": {"backgroundColor": "rgb(0, 0, 255)"}},
        hover_styles={"button": {"backgroundColor": "rgb(255, 0, 0)"}},
    )
    inspector = PageInspector(BASE_URL, screenshots_dir=tmp_path / "shots")

    result = asyncio.run(inspector.inspect(context, _submission(), _rubric()))

    assert result.check_results == {
        "Checkbox present :: input[type=checkbox]": True,
        "Checkbox present :: footer": False,
        "Broken check :: div[[oops": False,
        "Button hover :: button": True,
    }
    assert result.image == PNG_BYTES
    assert (tmp_path / "shots" / "alice.png").read_bytes() == PNG_BYTES
    assert context.visited == [f"{BASE_URL}/alice/"]
    assert all(page.closed for page in context.pages)


def test_hover_without_style_change_fails(tmp_path):
    context = FakeContext(
        selectors=["button"],
        styles={"button": {"backgroundColor": "rgb(0, 0, 255)"}},
        hover_styles={"button": {"backgroundColor": "rgb(0, 0, 255)"}},
    )
    inspector = PageInspector(BASE_URL, screenshots_dir=tmp_path)

    result = asyncio.run(inspector.inspect(context, _submission(), _rubric()))

    assert result.check_results["Button hover :: button"] is False


def test_invalid_selector_never_raises(tmp_path):
    context = FakeContext()
    rubric = Rubric(criteria=[RubricCriterion(
        description="Bad", weight=1, kind="behavioral",
        checks=[StructuralCheck(selector="!!nope", style_property="color"), StructuralCheck(selector="a[")],
    )])

    result = asyncio.run(PageInspector(BASE_URL, screenshots_dir=tmp_path).inspect(context, _submission(), rubric))

    assert result.check_results == {"Bad :: !!nope": False, "Bad :: a[": False}


def test_navigation_failure_propagates_and_closes_page(tmp_path):
    context = FakeContext(goto_errors={"alice": TimeoutError("Timeout 15000ms exceeded.")})
    inspector = PageInspector(BASE_URL, screenshots_dir=tmp_path)

    with pytest.raises(TimeoutError):
        asyncio.run(inspector.inspect(context, _submission(), _rubric()))

    assert len(context.pages) == 1
    assert context.pages[0].closed


def test_capture_reference(tmp_path):
    context = FakeContext()
    inspector = PageInspector(BASE_URL, screenshots_dir=tmp_path)

    reference = asyncio.run(inspector.capture_reference(context, "https://expected.example.com"))

    assert reference.image == PNG_BYTES
    assert reference.screenshot_path.endswith("expected.png")
    assert context.visited == ["https://expected.example.com"]
    assert context.pages[0].closed


def test_consecutive_hover_checks_on_same_element(tmp_path):
    context = FakeContext(
        selectors=["button"],
        styles={"button": {"backgroundColor": "rgb(0, 0, 255)", "color": "rgb(0, 0, 0)"}},
        hover_styles={"button": {"backgroundColor": "rgb(255, 0, 0)", "color": "rgb(255, 255, 255)"}},
    )
    rubric = Rubric(criteria=[
        RubricCriterion(description="Hover background", weight=1, kind="behavioral",
                        checks=[StructuralCheck(selector="button", style_property="backgroundColor")]),
        RubricCriterion(description="Hover text", weight=1, kind="behavioral",
                        checks=[StructuralCheck(selector="button", style_property="color")]),
    ])

    result = asyncio.run(PageInspector(BASE_URL, screenshots_dir=tmp_path).inspect(context, _submission(), rubric))

    assert result.check_results == {"Hover background :: button": True, "Hover text :: button": True}
    assert context.pages[0].mouse.moves == [(0, 0), (0, 0)]


def test_colliding_names_get_distinct_screenshots(tmp_path):
    inspector = PageInspector(BASE_URL, screenshots_dir=tmp_path)

    first = asyncio.run(inspector.inspect(FakeContext(), _submission("a b"), Rubric()))
    second = asyncio.run(inspector.inspect(FakeContext(), _submission("a_b"), Rubric()))

    assert first.screenshot_path.endswith("a_b.png")
    assert second.screenshot_path.endswith("a_b-2.png")
    assert inspector.screenshot_name("a b") == "a_b.png"
    assert inspector.screenshot_name("a_b") == "a_b-2.png"
    assert inspector.screenshot_name("expected") == "expected-2.png"
