"""NBA TrendLens: season vs last-N-days player lines for the search index."""
from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..config import setup_logger
from ..utils import safe_div
from .nba_stats import stat

logger = setup_logger(__name__)


@dataclass
class PlayerLine:
    """Counting totals for one player over some span of games."""

    games_played: float = 0
    points: float = 0
    rebounds: float = 0
    assists: float = 0
    steals: float = 0
    blocks: float = 0
    turnovers: float = 0
    fg_made: float = 0
    fg_att: float = 0
    fg3_made: float = 0
    fg3_att: float = 0
    ft_made: float = 0
    ft_att: float = 0
    plus_minus: float = 0

    @classmethod
    def from_entry(cls, entry: Mapping[str, Any]) -> "PlayerLine":
        return cls(
            games_played=stat(entry, "gamesPlayed"),
            points=stat(entry, "offense", "pts"),
            rebounds=stat(entry, "rebounds", "reb"),
            assists=stat(entry, "offense", "ast"),
            steals=stat(entry, "defense", "stl"),
            blocks=stat(entry, "defense", "blk"),
            turnovers=stat(entry, "defense", "tov"),
            fg_made=stat(entry, "fieldGoals", "fgMade"),
            fg_att=stat(entry, "fieldGoals", "fgAtt"),
            fg3_made=stat(entry, "fieldGoals", "fg3PtMade"),
            fg3_att=stat(entry, "fieldGoals", "fg3PtAtt"),
            ft_made=stat(entry, "freeThrows", "ftMade"),
            ft_att=stat(entry, "freeThrows", "ftAtt"),
            plus_minus=stat(entry, "miscellaneous", "plusMinus"),
        )

    def minus(self, other: "PlayerLine") -> "PlayerLine":
        return PlayerLine(**{f.name: getattr(self, f.name) - getattr(other, f.name) for f in fields(self)})

    def per_game(self, value: float) -> float:
        return round(safe_div(value, self.games_played), 2)


def player_metrics(line: PlayerLine) -> Dict[str, float]:
    per = safe_div(
        line.points + line.rebounds + line.assists + line.steals + line.blocks - line.turnovers,
        line.games_played,
    )
    ts = safe_div(line.points, 2 * line.fg_att + 0.95 * line.ft_att) * 100
    efg = safe_div(line.fg_made + 0.5 * line.fg3_made, line.fg_att) * 100
    return {
        "simplifiedPER": round(per, 2),
        "tsPct": round(ts, 2),
        "eFGPct": round(efg, 2),
    }


def _player_id(entry: Mapping[str, Any]) -> Optional[int]:
    return (entry.get("player") or {}).get("id")


def _span_fields(prefix: str, line: PlayerLine) -> Dict[str, Any]:
    metrics = player_metrics(line)
    return {
        f"{prefix}GamesPlayed": int(line.games_played),
        f"{prefix}Points": line.points,
        f"{prefix}PointsPerGame": line.per_game(line.points),
        f"{prefix}Assists": line.assists,
        f"{prefix}AstPerGame": line.per_game(line.assists),
        f"{prefix}Rebounds": line.rebounds,
        f"{prefix}RebPerGame": line.per_game(line.rebounds),
        f"{prefix}BlkPerGame": line.per_game(line.blocks),
        f"{prefix}StlPerGame": line.per_game(line.steals),
        f"{prefix}TovPerGame": line.per_game(line.turnovers),
        f"{prefix}Fg3ptPct": round(safe_div(line.fg3_made, line.fg3_att) * 100, 2),
        f"{prefix}PlusMinus": line.plus_minus,
        f"{prefix}PlusMinusPerGame": line.per_game(line.plus_minus),
        f"{prefix}SimplifiedPER": metrics["simplifiedPER"],
        f"{prefix}TsPct": metrics["tsPct"],
        f"{prefix}EFGPct": metrics["eFGPct"],
    }


def build_player_record(
    season_entry: Mapping[str, Any],
    window_entry: Optional[Mapping[str, Any]],
    updated_at: datetime,
) -> Dict[str, Any]:
    player = season_entry.get("player") or {}
    team = player.get("currentTeam") or {}
    season = PlayerLine.from_entry(season_entry)
    metrics = player_metrics(season)

    record: Dict[str, Any] = {
        "objectID": f"player_{player.get('id')}",
        "playerID": player.get("id"),
        "firstName": player.get("firstName"),
        "lastName": player.get("lastName"),
        "fullName": f"{player.get('firstName', '')} {player.get('lastName', '')}".strip(),
        "position": player.get("primaryPosition"),
        "teamID": team.get("id"),
        "teamAbbrev": team.get("abbreviation"),
        "officialImageSrc": player.get("officialImageSrc"),
        "gamesPlayed": int(season.games_played),
        "points": season.points,
        "rebounds": season.rebounds,
        "assists": season.assists,
        "pointsPerGame": season.per_game(season.points),
        "rebPerGame": season.per_game(season.rebounds),
        "astPerGame": season.per_game(season.assists),
        "blkPerGame": season.per_game(season.blocks),
        "stlPerGame": season.per_game(season.steals),
        "tovPerGame": season.per_game(season.turnovers),
        "fg3ptPct": round(safe_div(season.fg3_made, season.fg3_att) * 100, 2),
        "plusMinus": season.plus_minus,
        "plusMinusPerGame": season.per_game(season.plus_minus),
        "lastUpdated": updated_at.isoformat(),
        **metrics,
    }

    if window_entry is None:
        return record
    recent = PlayerLine.from_entry(window_entry)
    if recent.games_played <= 0:
        return record
    record.update(_span_fields("recent", recent))

    earlier = season.minus(recent)
    if earlier.games_played > 0:
        earlier_metrics = player_metrics(earlier)
        recent_metrics = player_metrics(recent)
        record.update(
            {
                "earlierGamesPlayed": int(earlier.games_played),
                "earlierPointsPerGame": earlier.per_game(earlier.points),
                "earlierRebPerGame": earlier.per_game(earlier.rebounds),
                "earlierAstPerGame": earlier.per_game(earlier.assists),
                "earlierSimplifiedPER": earlier_metrics["simplifiedPER"],
                "ptsTrend": round(recent.per_game(recent.points) - earlier.per_game(earlier.points), 2),
                "rebTrend": round(recent.per_game(recent.rebounds) - earlier.per_game(earlier.rebounds), 2),
                "astTrend": round(recent.per_game(recent.assists) - earlier.per_game(earlier.assists), 2),
                "perTrend": round(recent_metrics["simplifiedPER"] - earlier_metrics["simplifiedPER"], 2),
            }
        )
    return record


def build_records(
    season_entries: Iterable[Mapping[str, Any]],
    window_entries: Iterable[Mapping[str, Any]],
    updated_at: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    updated_at = updated_at or datetime.now()
    window_by_id = {_player_id(e): e for e in window_entries if _player_id(e) is not None}
    records = [
        build_player_record(entry, window_by_id.get(_player_id(entry)), updated_at)
        for entry in season_entries
        if _player_id(entry) is not None
    ]
    logger.info("TrendLens NBA: %d records (%d with a recent window)", len(records), len(window_by_id))
    return records
