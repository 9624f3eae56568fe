"""
Configuration loader for the Web Grader system.

Handles parsing and validation of YAML configuration files.
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, model_validator

from .config import (
    DEFAULT_GRADES_DIR,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_SCREENSHOTS_DIR,
    NAVIGATION_TIMEOUT_MS,
    OPENAI_MODEL,
    REFERENCE_TIMEOUT_MS,
    STUDENT_ROUTE,
)


class GraderConfig(BaseModel):
    """
    Configuration model for the grader.
    """
    submissions_dir: Path = Field(..., description="Path to directory containing student submissions")
    repo_url: Optional[str] = Field(None, description="Git repository to clone into submissions_dir before grading")
    rubric_path: Optional[Path] = Field(None, description="Path to a plain-text rubric, one criterion per line")
    rubric_text: Optional[str] = Field(None, description="Inline rubric text (used when rubric_path is not set)")
    expected_url: Optional[str] = Field(None, description="URL of the reference design to compare against")
    grades_dir: Optional[Path] = Field(None, description="Path to save aggregated grades")
    screenshots_dir: Optional[Path] = Field(None, description="Path to save page screenshots")

    # Serving and browser
    host: str = Field(DEFAULT_HOST, description="Host the submission server binds to")
    port: int = Field(DEFAULT_PORT, description="Port the submission server listens on")
    navigation_timeout_ms: int = Field(NAVIGATION_TIMEOUT_MS, gt=0, description="Page load timeout per submission")
    reference_timeout_ms: int = Field(REFERENCE_TIMEOUT_MS, gt=0, description="Page load timeout for the reference design")
    openai_model: str = Field(OPENAI_MODEL, description="Vision-capable OpenAI model")

    # Flags can also be configured
    only_dashboard: bool = Field(False, description="Launch dashboard with existing grades (skip grading)")
    launch_dashboard: bool = Field(False, description="Open the dashboard after grading")
    dashboard_port: int = Field(8050, description="Port for the dashboard")
    verbose: bool = Field(False, description="Enable verbose output")

    @model_validator(mode="after")
    def _fill_output_dirs(self) -> "GraderConfig":
        if self.grades_dir is None:
            self.grades_dir = DEFAULT_GRADES_DIR
        if self.screenshots_dir is None:
            self.screenshots_dir = DEFAULT_SCREENSHOTS_DIR
        return self

    @property
    def base_url(self) -> str:
        """Where the submission server exposes student pages."""
        return f"http://{self.host}:{self.port}{STUDENT_ROUTE}"

    def load_rubric_text(self) -> str:
        """
        Return the rubric text from rubric_path or rubric_text.

        Raises:
            FileNotFoundError: If rubric_path is set but missing.
            ValueError: If no rubric is configured.
        """
        if self.rubric_path is not None:
            if not self.rubric_path.exists():
                raise FileNotFoundError(f"Rubric not found: {self.rubric_path}")
            return self.rubric_path.read_text(encoding="utf-8")
        if self.rubric_text and self.rubric_text.strip():
            return self.rubric_text
        raise ValueError("Either rubric_path or rubric_text must be specified in the configuration file")


def load_config(config_path: Path) -> GraderConfig:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        GraderConfig object with loaded values.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        yaml.YAMLError: If config file is invalid YAML.
        ValidationError: If config data is invalid.
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config_data = yaml.safe_load(f) or {}

    # Resolve relative paths relative to the config file location
    config_dir = config_path.parent
    for path_field in ["submissions_dir", "rubric_path", "grades_dir", "screenshots_dir"]:
        if path_field in config_data and config_data[path_field]:
            path = Path(config_data[path_field])
            if not path.is_absolute():
                config_data[path_field] = config_dir / path

    return GraderConfig(**config_data)
