"""
Export accessors for session results and history.

Produces the tabular data a host turns into PDFs or spreadsheets:
- result summary rows (metric/value) and domain breakdown rows
- one row per historical session, domains flattened to a string
- CSV via a pandas DataFrame, and Rich tables for terminal output
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import TextIO

import pandas as pd
from rich.table import Table

from certprep.core.models import SessionResult, percent
from certprep.core.modes import SessionMode
from certprep.study.analytics import passing_probability

HISTORY_FIELDS = [
    "Date",
    "Mode",
    "TotalQuestions",
    "CorrectAnswers",
    "Percentage",
    "TimeSpent",
    "Domains",
]


def mode_label(mode: SessionMode | str) -> str:
    """Display label for a stored or live mode, e.g. ``"Practice Incorrect"``."""
    return SessionMode(mode).label


def format_timestamp(timestamp: str) -> str:
    """Render an ISO timestamp for display; unparseable values pass through."""
    try:
        return datetime.fromisoformat(timestamp).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return timestamp


def flatten_domains(result: SessionResult) -> str:
    """Encode a domain breakdown as ``"Domain: c/t; Domain: c/t"``."""
    return "; ".join(
        f"{domain}: {tally.correct}/{tally.total}"
        for domain, tally in result.domain_breakdown.items()
    )


def result_summary_rows(result: SessionResult) -> list[tuple[str, str]]:
    """Metric/value pairs for one session."""
    return [
        ("Mode", mode_label(result.mode)),
        ("Total Questions", str(result.total_questions)),
        ("Correct Answers", str(result.correct_count)),
        ("Final Score", f"{result.percentage}%"),
        ("Passing Probability", passing_probability(result.percentage)),
    ]


def result_domain_rows(result: SessionResult) -> list[tuple[str, int, int, str]]:
    """(domain, correct, total, score) rows for one session."""
    return [
        (domain, tally.correct, tally.total, f"{percent(tally.correct, tally.total)}%")
        for domain, tally in result.domain_breakdown.items()
    ]


def result_question_time_rows(result: SessionResult) -> list[tuple[int, int]]:
    """(question id, seconds spent) rows for one session."""
    return list(result.per_question_elapsed.items())


def history_rows(history: Sequence[SessionResult]) -> list[dict[str, str | int]]:
    """One row per session, keyed by HISTORY_FIELDS."""
    return [
        {
            "Date": format_timestamp(result.timestamp),
            "Mode": mode_label(result.mode),
            "TotalQuestions": result.total_questions,
            "CorrectAnswers": result.correct_count,
            "Percentage": f"{result.percentage}%",
            "TimeSpent": f"{result.total_elapsed_minutes} min",
            "Domains": flatten_domains(result),
        }
        for result in history
    ]


def write_history_csv(history: Sequence[SessionResult], stream: TextIO) -> int:
    """
    Write session history as CSV.

    Returns:
        Number of data rows written
    """
    history_df = history_frame(history)
    history_df.to_csv(stream, index=False)
    return len(history_df)


def history_frame(history: Sequence[SessionResult]) -> pd.DataFrame:
    """Session history as a DataFrame with HISTORY_FIELDS columns."""
    return pd.DataFrame(history_rows(history), columns=HISTORY_FIELDS)


def result_table(result: SessionResult) -> Table:
    """Rich table with the summary and per-domain breakdown of one session."""
    table = Table(title="Session Results", show_header=True, header_style="bold cyan")
    table.add_column("Metric / Domain")
    table.add_column("Result", justify="right")

    for metric, value in result_summary_rows(result):
        table.add_row(metric, value)

    if result.domain_breakdown:
        table.add_section()
        for domain, correct, total, score in result_domain_rows(result):
            table.add_row(domain, f"{correct}/{total} ({score})")

    return table


def history_table(history: Sequence[SessionResult]) -> Table:
    """Rich table with one row per historical session."""
    table = Table(title="Session History", show_header=True, header_style="bold cyan")
    for column in ("Date", "Mode", "Score", "Questions", "Time", "Domains"):
        table.add_column(column)

    for row in history_rows(history):
        table.add_row(
            str(row["Date"]),
            str(row["Mode"]),
            str(row["Percentage"]),
            str(row["TotalQuestions"]),
            str(row["TimeSpent"]),
            str(row["Domains"]),
        )

    return table
