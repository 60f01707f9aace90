import os
from dotenv import load_dotenv

# Load .env from repo root (dotenv auto-walks up from CWD)
load_dotenv()


def _get_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


def _get_list(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _read_secret_file(path: str | None) -> str | None:
    if not path:
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read().strip()
    except OSError:
        return None


# --- Server ---
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
DEBUG = _get_bool("FLASK_DEBUG", False)
CORS_ORIGINS = _get_list("CORS_ORIGINS", "http://www.localhost:3000,http://localhost:3000")

# --- Local CSV data ---
DATA_DIR = os.getenv("STATPAD_DATA_DIR", "data")

NHL_SEASON = os.getenv("NHL_SEASON", "2024")
NHL_GOALS_FILE = os.getenv("NHL_GOALS_FILE", "feb21shots.csv")
NHL_ASSISTS_FILE = os.getenv("NHL_ASSISTS_FILE", "shots_2024.csv")
NHL_GOALS_AGAINST_FILE = os.getenv("NHL_GOALS_AGAINST_FILE", "march3.csv")
NHL_GOAL_DIFF_FILE = os.getenv("NHL_GOAL_DIFF_FILE", "feb21shots.csv")
NHL_SCORE_TIME_FILE = os.getenv("NHL_SCORE_TIME_FILE", "shots_2024.csv")
NHL_SHOTS_TO_GOALS_FILE = os.getenv("NHL_SHOTS_TO_GOALS_FILE", "shotsfeb1.csv")
NHL_DANGER_ZONE_FILE = os.getenv("NHL_DANGER_ZONE_FILE", "shots_2024.csv")
NHL_TRENDLENS_FILE = os.getenv("NHL_TRENDLENS_FILE", "march3.csv")
NBA_POWER_METRIC_FILE = os.getenv("NBA_POWER_METRIC_FILE", "powermetric.csv")

# --- The Odds API ---
# ODDS_API_KEY is the primary key; numbered keys are rotated after it.
ODDS_API_KEYS = [
    key
    for key in [os.getenv("ODDS_API_KEY")]
    + [os.getenv(f"ODDS_API_KEY_{i}") for i in range(1, 9)]
    if key
]

# --- MySportsFeeds ---
MYSPORTSFEEDS_API_KEY = os.getenv("MYSPORTSFEEDS_API_KEY") or _read_secret_file(
    os.getenv("MYSPORTSFEEDS_API_KEY_FILE")
)
NBA_SEASON = os.getenv("NBA_SEASON", "2024-2025-regular")
MLB_SEASON = os.getenv("MLB_SEASON", "current")

# --- pbpstats ---
PBPSTATS_SEASON = os.getenv("PBPSTATS_SEASON", "2024-25")
PBPSTATS_SCATTER_SEASON = os.getenv("PBPSTATS_SCATTER_SEASON", "2023-24")

# --- Algolia (TrendLens sink) ---
ALGOLIA_APP_ID = os.getenv("ALGOLIA_APP_ID")
ALGOLIA_API_KEY = os.getenv("ALGOLIA_API_KEY") or _read_secret_file(os.getenv("ALGOLIA_API_KEY_FILE"))
ALGOLIA_INDEX_NAME = os.getenv("ALGOLIA_INDEX_NAME")
ALGOLIA_NHL_INDEX_NAME = os.getenv("ALGOLIA_NHL_INDEX_NAME")

TRENDLENS_RECENT_DAYS = int(os.getenv("TRENDLENS_RECENT_DAYS", "30"))
TRENDLENS_MIN_SHOTS = int(os.getenv("TRENDLENS_MIN_SHOTS", "5"))
