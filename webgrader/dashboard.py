"""
Dash dashboard for reviewing a batch of web page grades.

Run with: python -m webgrader.dashboard --grades-dir ./grades
"""

import argparse
import sys
from pathlib import Path

from .config import DEFAULT_SCREENSHOTS_DIR
from .grades_aggregator import load_results_from_dir
from .models import EvaluationResult

CARD_STYLE = {"flex": "1", "textAlign": "center", "padding": "20px", "backgroundColor": "white", "borderRadius": "8px", "margin": "10px", "boxShadow": "0 2px 4px rgba(0,0,0,0.1)"}
PANEL_STYLE = {"padding": "20px", "backgroundColor": "white", "margin": "20px", "borderRadius": "8px", "boxShadow": "0 2px 4px rgba(0,0,0,0.1)"}
STATUS_COLORS = {"judged": "#27ae60", "flagged": "#e67e22", "failed": "#e74c3c"}


def results_frame(results: list[EvaluationResult]):
    """
    Convert results to a DataFrame for charts and the table.

    Args:
        results: Results in discovery order.

    Returns:
        pandas DataFrame with one row per submission.
    """
    import pandas as pd

    return pd.DataFrame([
        {
            "Student": r.name,
            "Score": r.score,
            "Status": r.status.value,
            "Manual Review": "Yes" if r.manual_correction else "No",
            "Error": r.error or "",
        }
        for r in results
    ])


def create_dashboard(results: list[EvaluationResult], screenshots_dir: Path | None = None):
    """
    Create a Dash dashboard to visualize results.

    Args:
        results: List of EvaluationResult objects.
        screenshots_dir: Directory holding the captured page screenshots.
    """
    from flask import send_from_directory
    try:
        import plotly.express as px
        from dash import Dash, dash_table, dcc, html
        from dash.dependencies import Input, Output
    except ImportError:
        print("Dashboard requires additional dependencies. Install with:")
        print("  pip install dash pandas plotly")
        sys.exit(1)

    if screenshots_dir is None:
        screenshots_dir = DEFAULT_SCREENSHOTS_DIR.resolve()

    df = results_frame(results)

    app = Dash(__name__, suppress_callback_exceptions=True)

    # Serve captured screenshots
    @app.server.route("/files/<path:path>")
    def serve_files(path):
        return send_from_directory(screenshots_dir, path)

    avg_score = df["Score"].mean() if not df.empty else 0
    max_score = df["Score"].max() if not df.empty else 0
    min_score = df["Score"].min() if not df.empty else 0
    manual_count = (df["Manual Review"] == "Yes").sum() if not df.empty else 0
    failed_count = (df["Status"] != "judged").sum() if not df.empty else 0

    def card(value: str, label: str, color: str):
        return html.Div([
            html.H3(value, style={"color": color, "margin": "0"}),
            html.P(label, style={"color": "#7f8c8d", "margin": "0"}),
        ], style=CARD_STYLE)

    app.layout = html.Div([
        # Header
        html.Div([
            html.H1("Web Grader Dashboard", style={"color": "#2c3e50", "marginBottom": "5px"}),
            html.P(f"Total Submissions: {len(results)}", style={"color": "#7f8c8d", "fontSize": "14px"}),
        ], style={"textAlign": "center", "padding": "20px", "backgroundColor": "#ecf0f1"}),

        # Statistics cards
        html.Div([
            card(f"{avg_score:.1f}", "Average Score", "#3498db"),
            card(f"{max_score:.1f}", "Highest Score", "#27ae60"),
            card(f"{min_score:.1f}", "Lowest Score", "#e74c3c"),
            card(f"{manual_count}/{len(results)}", "Manual Review", "#9b59b6"),
            card(f"{failed_count}", "Flagged or Failed", "#e67e22"),
        ], style={"display": "flex", "justifyContent": "center", "padding": "10px 20px"}),

        # Scores by student
        html.Div([
            dcc.Graph(
                id="scores-bar",
                figure=px.bar(
                    df,
                    x="Student",
                    y="Score",
                    color="Status",
                    color_discrete_map=STATUS_COLORS,
                    title="Scores by Student",
                ).update_layout(
                    xaxis_tickangle=-45,
                    plot_bgcolor="white",
                ) if not df.empty else {},
            )
        ], style={"padding": "10px 20px"}),

        # Results table
        html.Div([
            html.H3("Results", style={"color": "#2c3e50", "marginBottom": "10px"}),
            dash_table.DataTable(
                id="results-table",
                columns=[{"name": col, "id": col} for col in df.columns],
                data=df.round(2).to_dict("records"),
                sort_action="native",
                filter_action="native",
                style_table={"overflowX": "auto"},
                style_cell={"textAlign": "left", "padding": "10px", "fontSize": "14px"},
                style_header={"backgroundColor": "#3498db", "color": "white", "fontWeight": "bold"},
                style_data_conditional=[
                    {"if": {"filter_query": "{Status} != judged"}, "backgroundColor": "#fadbd8"},
                    {"if": {"filter_query": "{Manual Review} = Yes"}, "fontWeight": "bold"},
                ],
            ),
        ], style=PANEL_STYLE),

        # Per-submission feedback and screenshot
        html.Div([
            html.H3("Submission Feedback", style={"color": "#2c3e50", "marginBottom": "10px"}),
            dcc.Dropdown(
                id="student-dropdown",
                options=[{"label": r.name, "value": r.name} for r in results],
                value=results[0].name if results else None,
                style={"marginBottom": "10px"},
            ),
            html.Div(id="feedback-content"),
        ], style=PANEL_STYLE),
    ], style={"fontFamily": "Arial, sans-serif", "backgroundColor": "#f5f6fa", "minHeight": "100vh"})

    @app.callback(
        Output("feedback-content", "children"),
        Input("student-dropdown", "value"),
    )
    def update_feedback(name: str):
        if not name:
            return html.P("Select a submission to view feedback.")

        result = next((r for r in results if r.name == name), None)
        if result is None:
            return html.P("Result not found.")

        children = [
            html.H4(f"Score: {result.score:g} ({result.status.value})", style={"margin": "0 0 10px 0"}),
        ]
        if result.manual_correction:
            children.append(html.P("Manual review recommended", style={"color": "#9b59b6", "fontWeight": "bold"}))
        if result.error:
            children.append(html.P(f"Error: {result.error}", style={"color": "#e74c3c"}))
        children.append(dcc.Markdown(result.feedback or "_No feedback._", style={"padding": "20px", "border": "1px solid #eee", "borderRadius": "5px"}))

        if result.screenshot:
            children.append(html.Img(
                src=f"/files/{Path(result.screenshot).name}",
                style={"maxWidth": "100%", "border": "1px solid #ddd", "marginTop": "15px"},
            ))
        return html.Div(children)

    return app


def main() -> int:
    """
    Main entry point for the dashboard.

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(
        description="Web Grader Dashboard - Review web page grades"
    )
    parser.add_argument("--grades-dir", type=Path, default=Path("grades"), help="Path to the grades directory")
    parser.add_argument("--screenshots-dir", type=Path, default=DEFAULT_SCREENSHOTS_DIR, help="Path to the screenshots directory")
    parser.add_argument("--port", type=int, default=8050, help="Port to run the dashboard on")
    parser.add_argument("--debug", action="store_true", help="Run in debug mode")

    args = parser.parse_args()

    if not args.grades_dir.exists():
        print(f"Error: Grades directory not found: {args.grades_dir}")
        print("Run the grader first to generate grades.")
        return 1

    results = load_results_from_dir(args.grades_dir)
    if not results:
        print("No results found in the directory.")
        return 1

    print(f"Loaded {len(results)} results from {args.grades_dir}")
    print(f"Starting dashboard at http://localhost:{args.port}")

    app = create_dashboard(results, screenshots_dir=args.screenshots_dir.resolve())
    app.run(debug=args.debug, port=args.port)

    return 0


if __name__ == "__main__":
    sys.exit(main())
