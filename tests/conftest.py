from __future__ import annotations

from pathlib import Path
from typing import Callable, Sequence

import pytest

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"


def write_files(root: Path, files: dict[str, str]) -> Path:
    """Create files (relative path -> content) under root."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


class StubOracle:
    """Deterministic oracle: replies from a list or a callable, records calls."""

    def __init__(self, replies: Sequence[str] | Callable[[str, Sequence[bytes]], str] = ()) -> None:
        self.replies = replies
        self.calls: list[dict] = []

    async def complete(self, prompt, images=(), *, system=None, temperature=None) -> str:
        self.calls.append({"prompt": prompt, "images": list(images), "system": system})
        if callable(self.replies):
            return self.replies(prompt, images)
        index = min(len(self.calls), len(self.replies)) - 1
        return self.replies[index]


class SelectorError(Exception):
    pass


class FakeMouse:
    """Moving the pointer anywhere un-hovers every element."""

    def __init__(self, page: "FakePage") -> None:
        self.page = page
        self.moves: list[tuple[float, float]] = []

    async def move(self, x, y, steps=1):
        self.moves.append((x, y))
        self.page.hovered.clear()


class FakePage:
    """Just enough of a Playwright page for inspection tests."""

    def __init__(self, context: "FakeContext") -> None:
        self.context = context
        self.url: str | None = None
        self.hovered: set[str] = set()
        self.mouse = FakeMouse(self)
        self.closed = False

    async def goto(self, url, wait_until=None, timeout=None):
        self.url = url
        self.context.visited.append(url)
        for fragment, error in self.context.goto_errors.items():
            if fragment in url:
                raise error

    async def screenshot(self, path=None, full_page=False):
        if path:
            Path(path).write_bytes(PNG_BYTES)
        return PNG_BYTES

    def _validate(self, selector: str) -> None:
        if "!!" in selector or selector.count("[") != selector.count("]"):
            raise SelectorError(f"Unexpected token in selector {selector!r}")

    async def query_selector(self, selector):
        self._validate(selector)
        return object() if selector in self.context.selectors else None

    async def eval_on_selector(self, selector, expression, arg=None):
        self._validate(selector)
        if selector not in self.context.selectors:
            raise SelectorError(f"No element matches {selector!r}")
        styles = self.context.hover_styles if selector in self.hovered else self.context.styles
        return styles.get(selector, {}).get(arg, "")

    async def hover(self, selector, timeout=None):
        self._validate(selector)
        self.hovered.add(selector)

    async def close(self):
        self.closed = True


class FakeContext:
    """Browser context handing out FakePages; records every navigation."""

    def __init__(
        self,
        selectors: Sequence[str] = (),
        styles: dict | None = None,
        hover_styles: dict | None = None,
        goto_errors: dict[str, Exception] | None = None,
    ) -> None:
        self.selectors = set(selectors)
        self.styles = styles or {}
        self.hover_styles = hover_styles or {}
        self.goto_errors = goto_errors or {}
        self.pages: list[FakePage] = []
        self.visited: list[str] = []

    async def new_page(self) -> FakePage:
        page = FakePage(self)
        self.pages.append(page)
        return page


@pytest.fixture
def stub_oracle() -> Callable[..., StubOracle]:
    return StubOracle


@pytest.fixture
def fake_context() -> Callable[..., FakeContext]:
    return FakeContext


@pytest.fixture
def submissions_root(tmp_path: Path) -> Path:
    """A class folder with a complete, an unstyled and an empty submission."""
    root = tmp_path / "students_project"
    write_files(root / "alice", {
        "index.html": "<html><body><input type='checkbox'></body></html>",
        "css/style.css": "body { color: red; }",
    })
    write_files(root / "bob", {"index.html": "<html></html>"})
    (root / "carol").mkdir(parents=True)
    write_files(root / "dave smith", {
        "site/index.html": "<html></html>",
        "site/main.css": "",
    })
    return root
