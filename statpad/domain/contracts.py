from typing import Any, Dict, List, Optional, TypedDict


class Matchup(TypedDict):
    away: str
    home: str


class PythagoreanTeam(TypedDict, total=False):
    team: str
    abbreviation: str
    pointsPerGame: float
    pointsAgainstPerGame: float
    runsScored: float
    runsAllowed: float
    actualWinPct: float
    expectedWinPct: float
    expectedWins: float
    actualWins: int
    winDifference: float


class BlowoutFactors(TypedDict):
    netRating: float
    pythWinPct: float
    homeAdvantage: float


class BlowoutPrediction(TypedDict):
    homeTeam: str
    awayTeam: str
    favoredTeam: str
    predictedMargin: float
    blowoutProbability: float
    factors: BlowoutFactors


class MatchupInsight(TypedDict):
    home_team: str
    away_team: str
    home_off_eff: Optional[float]
    home_def_eff: Optional[float]
    away_off_eff: Optional[float]
    away_def_eff: Optional[float]
    home_shot_quality: Optional[float]
    away_shot_quality: Optional[float]


class TrendLensSummary(TypedDict, total=False):
    status: str
    playerCount: int
    gameCount: int
    recordsSaved: int
    taskID: Optional[int]
    date: str


IndexRecord = Dict[str, Any]
IndexRecords = List[IndexRecord]
