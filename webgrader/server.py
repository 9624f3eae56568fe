"""
HTTP surface for the grader.

Serves each renderable submission at ``/student/<name>/`` so the headless
browser can load it with its co-located assets, and exposes ``POST /evaluate``
to run a full grading batch from a repository URL and rubric text.
"""

import threading
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Mapping
from urllib.parse import quote

from flask import Flask, abort, current_app, jsonify, redirect, request, send_from_directory
from werkzeug.serving import make_server

from .config import STUDENT_ROUTE
from .config_loader import GraderConfig
from .models import BatchReport, Submission
from .oracle import Oracle
from .pipeline import run_grading_pipeline

EvaluateFn = Callable[..., BatchReport]


def create_app(
    config: GraderConfig,
    submissions: Mapping[str, Submission] | None = None,
    oracle: Oracle | None = None,
    evaluate: EvaluateFn = run_grading_pipeline,
) -> Flask:
    """
    Create the Flask app that serves submissions and runs evaluations.

    Args:
        config: Loaded grader configuration.
        submissions: Read-only name -> submission lookup to serve initially.
        oracle: Oracle passed to each evaluation (OpenAI when None).
        evaluate: Pipeline entry point, replaceable in tests.

    Returns:
        Configured Flask application.
    """
    app = Flask(__name__)
    app.config["GRADER_CONFIG"] = config
    app.config["SUBMISSIONS"] = submissions if submissions is not None else MappingProxyType({})
    app.config["ORACLE"] = oracle
    app.config["EVALUATE"] = evaluate
    app.config["EVALUATION_LOCK"] = threading.Lock()

    @app.get("/")
    def health():
        return "Web Grader backend is running"

    @app.get("/students")
    def list_students():
        return jsonify(sorted(_lookup()))

    @app.get(f"{STUDENT_ROUTE}/<name>/")
    def serve_entry(name: str):
        submission = _lookup().get(name)
        if submission is None or submission.entry_point is None:
            abort(404, description="Student folder not found or missing HTML.")

        root = Path(submission.root)
        entry = Path(submission.entry_point).relative_to(root)
        if len(entry.parts) > 1:
            # Nested entry page: redirect so relative asset links resolve
            return redirect(f"{STUDENT_ROUTE}/{quote(name, safe='')}/{entry.as_posix()}")
        return send_from_directory(root, entry.as_posix())

    @app.get(f"{STUDENT_ROUTE}/<name>/<path:asset>")
    def serve_asset(name: str, asset: str):
        submission = _lookup().get(name)
        if submission is None:
            abort(404, description="Student folder not found.")
        return send_from_directory(submission.root, asset)

    @app.post("/evaluate")
    def evaluate_batch():
        payload = request.get_json(silent=True) or {}
        repo_url = payload.get("repoUrl")
        rubric = payload.get("rubric")
        expected_url = payload.get("expectedUrl") or None

        if not repo_url or not rubric:
            return jsonify({"error": "Missing required fields: repoUrl and rubric"}), 400

        lock: threading.Lock = current_app.config["EVALUATION_LOCK"]
        if not lock.acquire(blocking=False):
            return jsonify({"error": "An evaluation is already running"}), 409

        try:
            report = current_app.config["EVALUATE"](
                current_app.config["GRADER_CONFIG"],
                rubric_text=rubric,
                repo_url=repo_url,
                expected_url=expected_url,
                oracle=current_app.config["ORACLE"],
                publish=publisher(current_app),
            )
        except Exception as e:
            print(f"Evaluation failed: {e}")
            return jsonify({"error": "Evaluation failed", "details": str(e)}), 500
        finally:
            lock.release()

        return jsonify({
            "success": True,
            "results": [r.model_dump(mode="json", by_alias=True, exclude_none=True) for r in report.results],
        })

    return app


def _lookup() -> Mapping[str, Submission]:
    return current_app.config["SUBMISSIONS"]


def publisher(app: Flask) -> Callable[[Mapping[str, Submission]], None]:
    """Return a callback that swaps in the lookup for a new run."""

    def publish(lookup: Mapping[str, Submission]) -> None:
        app.config["SUBMISSIONS"] = lookup
        config: GraderConfig = app.config["GRADER_CONFIG"]
        for name in lookup:
            print(f"  Serving {config.base_url}/{quote(name, safe='')}/")

    return publish


class ServerThread(threading.Thread):
    """
    Runs the Flask app in a background thread for the duration of a CLI run.
    """

    def __init__(self, app: Flask, host: str, port: int) -> None:
        super().__init__(daemon=True)
        self.server = make_server(host, port, app, threaded=True)

    def run(self) -> None:
        self.server.serve_forever()

    def shutdown(self) -> None:
        self.server.shutdown()
        self.join()
