"""
Report emitter for a grading run.

Saves the grading report as JSON and CSV, and lays out every student's
personal art on its own canvas in a plotly gallery.
"""

import csv
import math
from pathlib import Path

import plotly.graph_objects as go
from plotly.subplots import make_subplots

from .config import (
    DEFAULT_OUTPUT_DIR,
    GALLERY_CANVAS_SIZE,
    GALLERY_COLUMNS,
    GALLERY_FILENAME,
    GALLERY_LINE_WIDTH,
    GRADING_CSV_FILENAME,
    GRADING_REPORT_FILENAME,
)
from .models import GradingRecord, GradingReport, Segment


class ReportEmitter:
    """
    Writes the persisted outputs of a grading run.

    Every run regenerates all files from scratch.
    """

    def __init__(self, output_dir: Path | None = None) -> None:
        """
        Args:
            output_dir: Directory to save outputs. Defaults to ./grading_output/
        """
        self.output_dir = output_dir or DEFAULT_OUTPUT_DIR

    def save_all(self, report: GradingReport) -> dict[str, Path]:
        """
        Save the report, the CSV summary and the art gallery.

        Returns:
            Dictionary of output file paths.
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        return {
            "report_json": self.save_report(report),
            "summary_csv": self.save_csv(report),
            "gallery_html": self.save_gallery(report.records),
        }

    def save_report(self, report: GradingReport) -> Path:
        report_path = self.output_dir / GRADING_REPORT_FILENAME
        self.output_dir.mkdir(parents=True, exist_ok=True)
        with open(report_path, "w", encoding="utf-8") as f:
            f.write(report.model_dump_json(indent=2))
        return report_path

    def save_csv(self, report: GradingReport) -> Path:
        """
        Save one row per submission for gradebook import.

        Args:
            report: The grading report.

        Returns:
            Path of the CSV file.
        """
        csv_path = self.output_dir / GRADING_CSV_FILENAME
        self.output_dir.mkdir(parents=True, exist_ok=True)

        header = [
            "submission_id",
            "implementation_tests_passed",
            "implementation_tests",
            "student_tests_passed",
            "student_tests",
            "art_segments",
            "art_error",
            "llm_overall_score",
            "warnings",
        ]

        with open(csv_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(header)

            for record in report.records:
                impl, student = record.implementation_tests, record.student_tests
                warnings = [w for w in (impl.warning, student.warning) if w]
                writer.writerow(
                    [
                        record.submission_id,
                        "Yes" if impl.overall else "No",
                        f"{impl.passed_count}/{len(impl.details)}",
                        "Yes" if student.overall else "No",
                        f"{student.passed_count}/{len(student.details)}",
                        len(record.personal_art.segments),
                        (record.personal_art.error or "")[:200],
                        record.manual_grading.overall_score if record.manual_grading else "",
                        " | ".join(warnings),
                    ]
                )

        return csv_path

    def save_gallery(self, records: list[GradingRecord]) -> Path:
        gallery_path = self.output_dir / GALLERY_FILENAME
        self.output_dir.mkdir(parents=True, exist_ok=True)
        create_gallery_figure(records).write_html(str(gallery_path), include_plotlyjs=True)
        return gallery_path


def _line_trace(xs: list, ys: list, color: str, name: str) -> go.Scatter:
    line = {"width": GALLERY_LINE_WIDTH}
    try:
        return go.Scatter(x=xs, y=ys, mode="lines", line={**line, "color": color.strip().lower()},
                          name=name, hoverinfo="skip")
    except ValueError:
        # Unknown color names fall back to black instead of breaking the gallery
        return go.Scatter(x=xs, y=ys, mode="lines", line={**line, "color": "black"},
                          name=name, hoverinfo="skip")


def _segments_by_color(segments: list[Segment]) -> dict[str, tuple[list, list]]:
    """Group segments into one polyline per color, separated by gaps."""
    grouped: dict[str, tuple[list, list]] = {}
    for segment in segments:
        xs, ys = grouped.setdefault(segment.color, ([], []))
        xs.extend([segment.start.x, segment.end.x, None])
        ys.extend([segment.start.y, segment.end.y, None])
    return grouped


def create_gallery_figure(records: list[GradingRecord]) -> go.Figure:
    """
    Lay out each submission's art on an independent canvas.

    Submissions whose art carries an error are skipped. Canvases are centered
    on the turtle's origin with y growing downward, like the turtle's canvas.

    Args:
        records: Grading records in report order.

    Returns:
        Plotly figure with one subplot per usable artifact.
    """
    usable = []
    for record in records:
        if record.personal_art.usable:
            usable.append(record)
        else:
            print(f"  Skipping {record.submission_id} in gallery due to art generation error.")

    if not usable:
        fig = go.Figure()
        fig.update_layout(title="Student Art Gallery")
        fig.add_annotation(text="No personal art was generated successfully.", showarrow=False)
        return fig

    columns = min(GALLERY_COLUMNS, len(usable))
    rows = math.ceil(len(usable) / columns)
    fig = make_subplots(
        rows=rows,
        cols=columns,
        subplot_titles=[record.submission_id for record in usable],
    )

    half = GALLERY_CANVAS_SIZE / 2
    for index, record in enumerate(usable):
        row, col = index // columns + 1, index % columns + 1
        for color, (xs, ys) in _segments_by_color(record.personal_art.segments).items():
            fig.add_trace(_line_trace(xs, ys, color, record.submission_id), row=row, col=col)
        fig.update_xaxes(range=[-half, half], showticklabels=False, showgrid=False, row=row, col=col)
        fig.update_yaxes(range=[half, -half], showticklabels=False, showgrid=False, row=row, col=col)

    fig.update_layout(
        title="Student Art Gallery",
        showlegend=False,
        plot_bgcolor="#f0f0f0",
        width=columns * GALLERY_CANVAS_SIZE,
        height=rows * (GALLERY_CANVAS_SIZE + 60),
    )
    return fig
