"""Centralized static constants for the statpad platform."""

# ---- Upstream base URLs ----
ODDS_API_BASE_URL = "https://api.the-odds-api.com/v4"
MYSPORTSFEEDS_BASE_URL = "https://api.mysportsfeeds.com/v2.1/pull"
PBPSTATS_BASE_URL = "https://api.pbpstats.com"
ALGOLIA_HOST_TEMPLATE = "https://{app_id}.algolia.net"

# ---- Odds API ----
ODDS_REGIONS = "us"
ODDS_MARKETS = "h2h,spreads"
ODDS_FORMAT = "american"
NHL_SPORT_KEY = "icehockey_nhl"
NBA_SPORT_KEY = "basketball_nba"

# Bookmaker keys kept by /nba/games-today (williamhill_us is Caesars)
PREFERRED_BOOKMAKERS = (
    "fanduel",
    "betmgm",
    "draftkings",
    "betrivers",
    "bovada",
    "williamhill_us",
)

# ---- NBA ----
NBA_TEAM_ABBREVIATIONS = (
    "ATL", "BOS", "BKN", "CHA", "CHI", "CLE", "DAL", "DEN", "DET", "GSW",
    "HOU", "IND", "LAC", "LAL", "MEM", "MIA", "MIL", "MIN", "NOP", "NYK",
    "OKC", "ORL", "PHI", "PHX", "POR", "SAC", "SAS", "TOR", "UTA", "WAS",
)

# pbpstats keys team lookups by nickname
PBPSTATS_TEAMS = (
    "Lakers", "Celtics", "Nets", "Warriors", "Bucks", "Heat", "Suns", "76ers",
    "Knicks", "Mavericks", "Timberwolves", "Nuggets", "Clippers", "Raptors",
    "Kings", "Pelicans", "Hawks", "Bulls", "Magic", "Hornets", "Cavaliers",
    "Pistons", "Pacers", "Thunder", "Wizards", "Spurs", "Jazz", "Rockets",
    "Grizzlies", "Trail Blazers",
)

PBPSTATS_SCATTER_DEFAULTS = {
    "x": "PtsPer100Poss",
    "y": "SecondsPerPoss",
    "x_type": "Team",
    "y_type": "Team",
}

NBA_PYTHAGOREAN_EXPONENT = 13.91
MLB_PYTHAGOREAN_EXPONENT = 2.0

EPM_POSITION_GROUPS = {
    "Backcourt": ("PG", "SG", "SF"),
    "Frontcourt": ("PF", "C"),
}
EPM_HIGH_THRESHOLD = 5.0
EPM_LOW_THRESHOLD = -5.0

# Blowout model: margin = net*NET + pyth*PYTH + HOME, logistic around MIDPOINT
BLOWOUT_NET_RATING_WEIGHT = 0.4
BLOWOUT_PYTH_WEIGHT = 15.0
BLOWOUT_HOME_ADVANTAGE = 3.0
BLOWOUT_STEEPNESS = 0.2
BLOWOUT_MIDPOINT = 14.0

POWER_METRIC_WEIGHTS = {
    "A4F": 0.3,
    "oEFF": 0.2,
    "dEFF": -0.2,
    "eDIFF": 0.2,
    "pDIFF": 0.1,
    "rSOS": -0.1,
    "CONS": -0.1,
}

POSITIONAL_DEFENSE_LIMIT = 10

# ---- NHL ----
GOAL_DIFF_CLAMP = 4

DANGER_ZONE_SHOT_TYPES = frozenset(
    {"shot", "deflection", "defl", "tip", "rebound", "wrist", "snap", "slap", "back", "wrap", "blocked"}
)
DEFLECTION_SHOT_TYPES = frozenset({"tip", "deflection", "defl"})
# (max distance ft, max |angle| deg) pairs; any match is high danger
DANGER_ZONE_AREAS = ((20.0, 45.0), (30.0, 35.0))
DEFLECTION_MAX_DISTANCE = 25.0
BLOCK_EFFECTIVENESS_WEIGHT = 0.5

TRENDLENS_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y",
    "%Y-%m-%d",
)
# Roughly one month of a season's shots when rows carry no usable date
TRENDLENS_RECENT_FRACTION_DIVISOR = 6.2
DEFAULT_SKATERS = 5
