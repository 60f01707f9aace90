"""MLB Pythagorean expectation over MySportsFeeds team totals."""
from __future__ import annotations

from typing import Any, Iterable, List, Mapping

from ..constants import MLB_PYTHAGOREAN_EXPONENT
from ..domain.contracts import PythagoreanTeam
from .nba_stats import pythagorean_table

RUNS_SCORED_PATHS = [("batting", "runs"), ("runsScored",)]
RUNS_ALLOWED_PATHS = [("pitching", "runsAllowed"), ("runsAllowed",)]


def pythagorean_wins(entries: Iterable[Mapping[str, Any]]) -> List[PythagoreanTeam]:
    return pythagorean_table(
        entries,
        MLB_PYTHAGOREAN_EXPONENT,
        scored_path=RUNS_SCORED_PATHS,
        allowed_path=RUNS_ALLOWED_PATHS,
        scored_key="runsScored",
        allowed_key="runsAllowed",
    )
