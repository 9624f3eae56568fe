"""
Configuration constants for the Web Grader system.
"""

from pathlib import Path

# Browser configuration
NAVIGATION_TIMEOUT_MS: int = 15000
REFERENCE_TIMEOUT_MS: int = 20000
VIEWPORT: dict[str, int] = {"width": 1280, "height": 800}

# Serving configuration
DEFAULT_HOST: str = "127.0.0.1"
DEFAULT_PORT: int = 3000
STUDENT_ROUTE: str = "/student"

# File patterns
MARKUP_EXTENSIONS: list[str] = [".html", ".htm"]
STYLESHEET_EXTENSIONS: list[str] = [".css"]
IGNORED_DIRS: tuple[str, ...] = ("__pycache__", "node_modules")
REFERENCE_SCREENSHOT_FILENAME: str = "expected.png"

# Discovery flags
MISSING_MARKUP_FLAG: str = "Missing HTML"
MISSING_STYLESHEET_FLAG: str = "Missing CSS"

# OpenAI configuration
# gpt-4o is needed for reliable screenshot reading; gpt-4o-mini is cheaper
OPENAI_MODEL: str = "gpt-4o"
MAX_TOKENS: int = 1000
RUBRIC_TEMPERATURE: float = 0.2

# Default paths (can be overridden via config)
DEFAULT_GRADES_DIR: Path = Path("grades")
DEFAULT_SCREENSHOTS_DIR: Path = Path("screenshots")
FINAL_SCORES_FILENAME: str = "final_scores.json"
GRADES_SUMMARY_FILENAME: str = "grades_summary.json"
GRADES_CSV_FILENAME: str = "grades_summary.csv"

# Judgment parsing
# Matches "Total Score: 7.5", "Score out of 6: 5", "Score (out of 6): 5", "score - 4/6"
_DENOMINATOR: str = r"(?:[\(\[]?\s*(?:out\s+of|/)\s*\d+(?:\.\d+)?\s*[\)\]]?)?"
TOTAL_SCORE_PATTERN: str = r"total\s+score\s*" + _DENOMINATOR + r"[^\d\n]*?(\d+(?:\.\d+)?)"
SCORE_PATTERN: str = r"score\s*" + _DENOMINATOR + r"[^\d\n]*?(\d+(?:\.\d+)?)"
MANUAL_CORRECTION_MARKER: str = "manual correction"
VISUAL_DIFFERENCE_MARKER: str = "different"
