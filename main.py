"""
Web Grader: Automated web page grading with Playwright + LLM

Usage:
  main.py [--config=PATH]
  main.py serve [--config=PATH]
  main.py dashboard [--config=PATH]
  main.py (-h | --help)

Options:
  --config=PATH  Path to YAML configuration file [default: grader_config.yml].
  -h --help      Show this screen.
"""

import os
import sys
import webbrowser
from pathlib import Path

from docopt import docopt

from webgrader.config_loader import GraderConfig, load_config
from webgrader.dashboard import create_dashboard
from webgrader.grades_aggregator import load_results_from_dir
from webgrader.models import EvaluationResult, SubmissionState
from webgrader.pipeline import run_grading_pipeline
from webgrader.server import ServerThread, create_app, publisher


def print_batch_summary(results: list[EvaluationResult]) -> None:
    """
    Print a summary of the batch to console.

    Args:
        results: Results in discovery order.
    """
    print("\n" + "=" * 60)
    print("GRADING COMPLETE")
    print("=" * 60)
    print(f"Total submissions processed: {len(results)}")

    if not results:
        return

    avg_score = sum(r.score for r in results) / len(results)
    print(f"Average score: {avg_score:.1f}")

    judged = sum(1 for r in results if r.status == SubmissionState.JUDGED)
    manual = sum(1 for r in results if r.manual_correction)
    print(f"Judged: {judged}/{len(results)}")
    print(f"Needs manual review: {manual}/{len(results)}")

    for result in results:
        status = "+" if result.status == SubmissionState.JUDGED else "-"
        suffix = f" ({result.error})" if result.error else ""
        print(f"  [{status}] {result.name}: {result.score:g}{suffix}")


def launch_dashboard(results: list[EvaluationResult], config: GraderConfig) -> int:
    try:
        # Only open browser on the main process, not the reloader
        if not os.environ.get("WERKZEUG_RUN_MAIN"):
            url = f"http://127.0.0.1:{config.dashboard_port}"
            print(f"Opening {url} in browser...")
            webbrowser.open(url)

        app = create_dashboard(results, screenshots_dir=config.screenshots_dir.resolve())
        app.run(debug=config.verbose, port=config.dashboard_port)
        return 0
    except Exception as e:
        print(f"Error launching dashboard: {e}")
        return 1


def run_batch(config: GraderConfig) -> int:
    """
    Grade every submission once: clone, serve, render, judge, save.

    Returns:
        Exit code.
    """
    try:
        rubric_text = config.load_rubric_text()
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    if not config.repo_url and not config.submissions_dir.exists():
        print(f"Error: Submissions directory not found: {config.submissions_dir}")
        return 1

    app = create_app(config)
    try:
        server = ServerThread(app, config.host, config.port)
    except (OSError, SystemExit) as e:
        # werkzeug exits instead of raising when the port is already taken
        print(f"Error: cannot serve submissions on {config.host}:{config.port}: {e}")
        return 1
    server.start()
    print(f"Serving submissions at {config.base_url}")

    try:
        report = run_grading_pipeline(
            config,
            rubric_text=rubric_text,
            repo_url=config.repo_url,
            expected_url=config.expected_url,
            publish=publisher(app),
        )
    except KeyboardInterrupt:
        print("\nGrading interrupted by user.")
        return 1
    except Exception as e:
        print(f"\nError: {e}")
        if config.verbose:
            import traceback
            traceback.print_exc()
        return 1
    finally:
        server.shutdown()

    print_batch_summary(report.results)

    if config.launch_dashboard and report.results:
        print("\nLaunching Dashboard...")
        print("Press Ctrl+C to stop the server.")
        return launch_dashboard(report.results, config)
    return 0


def main() -> int:
    """
    Main CLI entrypoint.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    arguments = docopt(__doc__)
    config_path = Path(arguments["--config"])

    if not config_path.exists():
        print(f"Error: Configuration file not found at {config_path}")
        return 1

    try:
        config = load_config(config_path)
        print(f"Loaded configuration from {config_path}")
    except Exception as e:
        print(f"Error loading config: {e}")
        return 1

    # Dashboard over existing grades
    if arguments["dashboard"] or config.only_dashboard:
        if not config.grades_dir.exists():
            print(f"Error: Grades directory not found: {config.grades_dir}")
            return 1

        print(f"Launching dashboard from {config.grades_dir}...")
        results = load_results_from_dir(config.grades_dir)
        if not results:
            print("No grades found.")
            return 1
        return launch_dashboard(results, config)

    # HTTP invocation surface: POST /evaluate
    if arguments["serve"]:
        app = create_app(config)
        print(f"Server running at http://{config.host}:{config.port}")
        app.run(host=config.host, port=config.port, threaded=True)
        return 0

    return run_batch(config)


if __name__ == "__main__":
    sys.exit(main())
