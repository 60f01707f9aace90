"""Shared CSV loading for the file-backed stat handlers.

Every CSV handler follows the same contract:

* the file cannot be opened           -> 500 "Failed to open CSV file"
* the file cannot be parsed            -> 500 "Failed to parse CSV"
* fewer than two records (header+row)  -> 400 "CSV file is empty or invalid"
* a required header is absent          -> 400 "CSV does not contain required columns"

Columns are located by exact header match. Rows too short to hold the
requested columns are skipped rather than failing the request.
"""
from __future__ import annotations

import csv
import os
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Sequence

from . import settings
from .config import setup_logger
from .errors import BadRequest, DataSourceError

logger = setup_logger(__name__)

_TRUE_STRINGS = {"1", "t", "true", "yes", "y"}
_FALSE_STRINGS = {"0", "f", "false", "no", "n"}


def resolve_data_path(file_path: Optional[str], default_name: str) -> str:
    """Resolve a ``filePath`` query value inside the data directory."""

    data_dir = os.path.realpath(settings.DATA_DIR)
    candidate = (file_path or "").strip() or default_name
    # Accept "data/foo.csv" as well as "foo.csv"
    if not os.path.isabs(candidate):
        prefixed = os.path.normpath(candidate)
        data_dir_name = os.path.basename(data_dir)
        if prefixed.split(os.sep, 1)[0] == data_dir_name and os.sep in prefixed:
            candidate = prefixed.split(os.sep, 1)[1]
    resolved = os.path.realpath(os.path.join(data_dir, candidate))
    if os.path.commonpath([data_dir, resolved]) != data_dir:
        logger.warning("Rejected filePath outside data dir: %s", file_path)
        raise BadRequest("Invalid filePath")
    return resolved


@dataclass
class Table:
    """Header plus raw data rows of a CSV file."""

    header: List[str]
    rows: List[List[str]] = field(default_factory=list)
    path: str = ""

    def find(self, name: str) -> int:
        try:
            return self.header.index(name)
        except ValueError:
            return -1

    def has(self, name: str) -> bool:
        return self.find(name) != -1

    def require(self, *names: str) -> Dict[str, int]:
        """Map each required column to its index; missing columns raise a 400."""

        columns: Dict[str, int] = {}
        missing: List[str] = []
        for name in names:
            idx = self.find(name)
            if idx == -1:
                missing.append(name)
            else:
                columns[name] = idx
        if missing:
            logger.warning("CSV %s missing columns: %s", self.path, ", ".join(missing))
            raise DataSourceError("CSV does not contain required columns", 400, missing=missing)
        return columns

    def records(self, columns: Mapping[str, int]) -> Iterator[Dict[str, str]]:
        """Yield ``{column: value}`` for each row wide enough to hold every column."""

        if not columns:
            return
        width = max(columns.values()) + 1
        skipped = 0
        for row in self.rows:
            if len(row) < width:
                skipped += 1
                continue
            yield {name: row[idx] for name, idx in columns.items()}
        if skipped:
            logger.debug("Skipped %d short rows in %s", skipped, self.path)

    def full_width_rows(self) -> Iterator[Dict[str, str]]:
        """Yield complete rows keyed by header, skipping rows of the wrong width."""

        width = len(self.header)
        for row in self.rows:
            if len(row) == width:
                yield dict(zip(self.header, row))


def load_table(path: str) -> Table:
    try:
        handle = open(path, "r", newline="", encoding="utf-8-sig")
    except OSError as exc:
        logger.error("Failed to open CSV %s: %s", path, exc)
        raise DataSourceError("Failed to open CSV file", 500) from exc

    with handle:
        try:
            records = list(csv.reader(handle))
        except (csv.Error, UnicodeDecodeError) as exc:
            logger.error("Failed to parse CSV %s: %s", path, exc)
            raise DataSourceError("Failed to parse CSV", 500) from exc

    if len(records) < 2:
        raise DataSourceError("CSV file is empty or invalid", 400)

    header = [name.strip() for name in records[0]]
    return Table(header=header, rows=records[1:], path=path)


def load_source(file_path: Optional[str], default_name: str) -> Table:
    """Resolve ``filePath`` against the data directory and load it."""

    return load_table(resolve_data_path(file_path, default_name))


def parse_bool(value: Optional[str], default: Optional[bool] = False) -> Optional[bool]:
    """Parse truthy/falsy CSV cells; any other integer counts as true when nonzero."""

    if value is None:
        return default
    text = str(value).strip().lower()
    if not text:
        return default
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    try:
        return int(text) != 0
    except ValueError:
        return default


def parse_float(value: Optional[str], default: Optional[float] = 0.0) -> Optional[float]:
    if value is None or str(value).strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def parse_int(value: Optional[str], default: Optional[int] = 0) -> Optional[int]:
    if value is None or str(value).strip() == "":
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def require_any(table: Table, candidates: Sequence[str]) -> str:
    """Return the first header present from ``candidates``; 400 if none are."""

    for name in candidates:
        if table.has(name):
            return name
    raise DataSourceError("CSV does not contain required columns", 400, missing=[candidates[0]])
