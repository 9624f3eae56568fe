"""
Grades aggregator for collecting and exporting a batch of evaluation results.

Saves the run output (final_scores.json) plus JSON and CSV summaries to a
centralized folder.
"""

import csv
import json
from pathlib import Path

from pydantic import TypeAdapter

from .config import (
    DEFAULT_GRADES_DIR,
    FINAL_SCORES_FILENAME,
    GRADES_CSV_FILENAME,
    GRADES_SUMMARY_FILENAME,
)
from .models import BatchReport, EvaluationResult, SubmissionState

_RESULTS_ADAPTER = TypeAdapter(list[EvaluationResult])


class GradesAggregator:
    """
    Aggregates results from one run and exports them to various formats.

    Results keep discovery order; nothing is re-sorted.
    """

    def __init__(self, output_dir: Path | None = None, report: BatchReport | None = None) -> None:
        """
        Initialize the grades aggregator.

        Args:
            output_dir: Directory to save aggregated grades. Defaults to ./grades/
            report: Batch report whose results and metadata are exported.
        """
        self.output_dir = output_dir or DEFAULT_GRADES_DIR
        self.report = report or BatchReport()

    @property
    def results(self) -> list[EvaluationResult]:
        return self.report.results

    def save_all(self) -> dict[str, Path]:
        """
        Save all results to the output directory.

        Creates:
        - final_scores.json with the ordered result array
        - Summary JSON with run metadata, rubric and statistics
        - Summary CSV for easy import to a gradebook

        Returns:
            Dictionary of output file paths.
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)

        output_files: dict[str, Path] = {}

        scores_path = self.output_dir / FINAL_SCORES_FILENAME
        save_results(scores_path, self.results)
        output_files["final_scores"] = scores_path

        summary_path = self.output_dir / GRADES_SUMMARY_FILENAME
        summary_data = {
            "timestamp": self.report.timestamp,
            "total_submissions": len(self.results),
            "reference_url": self.report.reference_url,
            "reference_error": self.report.reference_error,
            "statistics": self._calculate_statistics(),
            "rubric": self.report.rubric.model_dump(mode="json"),
            "results": [r.model_dump(mode="json", by_alias=True) for r in self.results],
        }
        with open(summary_path, "w", encoding="utf-8") as f:
            json.dump(summary_data, f, indent=2)
        output_files["summary_json"] = summary_path

        csv_path = self.output_dir / GRADES_CSV_FILENAME
        self._save_csv(csv_path)
        output_files["summary_csv"] = csv_path

        return output_files

    def _calculate_statistics(self) -> dict:
        """
        Calculate summary statistics for all results.

        Returns:
            Dictionary with statistics.
        """
        if not self.results:
            return {}

        scores = [r.score for r in self.results]
        judged = sum(1 for r in self.results if r.status == SubmissionState.JUDGED)
        flagged = sum(1 for r in self.results if r.status == SubmissionState.FLAGGED)
        failed = sum(1 for r in self.results if r.status == SubmissionState.FAILED)
        manual = sum(1 for r in self.results if r.manual_correction)

        return {
            "average_score": sum(scores) / len(scores),
            "max_possible": self.report.rubric.total_points,
            "highest_score": max(scores),
            "lowest_score": min(scores),
            "judged_count": judged,
            "flagged_count": flagged,
            "failed_count": failed,
            "manual_review_count": manual,
        }

    def _save_csv(self, csv_path: Path) -> None:
        """
        Save results as CSV file.

        Args:
            csv_path: Path to save CSV file.
        """
        if not self.results:
            return

        header = ["name", "score", "max_score", "status", "manual_correction", "error", "feedback"]

        with open(csv_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(header)

            for result in self.results:
                writer.writerow([
                    result.name,
                    result.score,
                    self.report.rubric.total_points,
                    result.status.value,
                    "Yes" if result.manual_correction else "No",
                    result.error or "",
                    result.feedback[:200],  # Truncate feedback
                ])


def save_results(path: Path, results: list[EvaluationResult]) -> None:
    """
    Write the ordered result array (the run output artifact).

    Args:
        path: Destination JSON file.
        results: Results in discovery order.
    """
    data = _RESULTS_ADAPTER.dump_json(results, indent=2, by_alias=True, exclude_none=True)
    path.write_bytes(data)


def load_results(path: Path) -> list[EvaluationResult]:
    """
    Read a result array written by save_results.

    Args:
        path: JSON file to read.

    Returns:
        Results in the stored order.
    """
    return _RESULTS_ADAPTER.validate_json(path.read_bytes())


def load_results_from_dir(grades_dir: Path) -> list[EvaluationResult]:
    """
    Load all results from a grades directory.

    Args:
        grades_dir: Path to the grades directory.

    Returns:
        List of EvaluationResult objects (empty if nothing was saved).
    """
    scores_path = grades_dir / FINAL_SCORES_FILENAME
    if scores_path.exists():
        return load_results(scores_path)

    # Fall back to the summary file
    summary_path = grades_dir / GRADES_SUMMARY_FILENAME
    if summary_path.exists():
        with open(summary_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return _RESULTS_ADAPTER.validate_python(data.get("results", []))

    return []
