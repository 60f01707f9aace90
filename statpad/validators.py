from datetime import date, datetime
from typing import List, Optional, Tuple

from .config import setup_logger
from .errors import BadRequest

logger = setup_logger(__name__)

PBPSTATS_LEAGUES = {"nba", "wnba", "gleague"}


class ValidationWarning(str):
    """Lightweight tag for soft validation warnings."""
    pass


def parse_compact_date(raw: Optional[str], default: Optional[date] = None) -> date:
    """Parse ``YYYYMMDD``; missing input falls back to ``default`` (or today)."""
    if raw is None or not str(raw).strip():
        return default or date.today()
    try:
        return datetime.strptime(str(raw).strip(), "%Y%m%d").date()
    except ValueError:
        logger.warning("date_invalid: %s", raw)
        raise BadRequest("Invalid date, expected YYYYMMDD")


def validate_league(raw: Optional[str]) -> Tuple[str, List[ValidationWarning]]:
    """Return (league, warnings). Unknown leagues soft-fail to nba."""
    if not raw:
        return "nba", []
    league = str(raw).strip().lower()
    if league in PBPSTATS_LEAGUES:
        return league, []
    logger.warning("league_unknown: %s", league)
    return "nba", [ValidationWarning(f"league_unknown:{league}")]


def validate_recent_days(raw: Optional[str], default: int = 30, min_v: int = 1, max_v: int = 120):
    """Coerce to int and clamp to [min_v,max_v]. Return (value, warnings)."""
    if raw is None:
        return default, []
    try:
        v = int(raw)
    except (TypeError, ValueError):
        logger.warning("recent_days_invalid: %s", raw)
        return default, [ValidationWarning("recent_days_invalid")]
    if v < min_v:
        logger.warning("recent_days_floor: %s -> %s", v, min_v)
        return min_v, [ValidationWarning("recent_days_floor")]
    if v > max_v:
        logger.warning("recent_days_cap: %s -> %s", v, max_v)
        return max_v, [ValidationWarning("recent_days_cap")]
    return v, []


def require_param(value: Optional[str], name: str) -> str:
    if value is None or not str(value).strip():
        raise BadRequest(f"Missing required parameter: {name}")
    return str(value).strip()
