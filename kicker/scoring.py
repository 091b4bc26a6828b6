"""
Leaderboard computation for a tournament.

Everything here is pure: the leaderboard is rebuilt from the match list on
every read and nothing is cached or stored.

Two per-player stats shapes exist, selected per tournament:
- derived: goals/crossbars/black posts plus a host flag; points are computed
- precomputed: the same counters plus a points value supplied at write time
"""
import math
import unicodedata
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

GOAL_POINTS = 1
CROSSBAR_POINTS = 2
BLACK_POST_POINTS = 3
WIN_BONUS = 3
MAX_SPECIAL_PLAYERS = 2


class ScoringVariant(str, Enum):
    DERIVED = "derived"
    PRECOMPUTED = "precomputed"


@dataclass
class DerivedStats:
    goals: float = 0
    crossbars: float = 0
    black_posts: float = 0
    club: Optional[str] = None
    host: bool = False

    variant = ScoringVariant.DERIVED

    def to_dict(self) -> dict:
        data = {
            "goals": self.goals,
            "crossbars": self.crossbars,
            "black_posts": self.black_posts,
            "host": self.host,
        }
        if self.club:
            data["club"] = self.club
        return data


@dataclass
class PrecomputedStats:
    goals: float = 0
    crossbars: float = 0
    black_posts: float = 0
    points: float = 0

    variant = ScoringVariant.PRECOMPUTED

    def to_dict(self) -> dict:
        return {
            "goals": self.goals,
            "crossbars": self.crossbars,
            "black_posts": self.black_posts,
            "points": self.points,
        }


PlayerStats = Union[DerivedStats, PrecomputedStats]


def stats_from_dict(data: dict, variant: ScoringVariant) -> PlayerStats:
    """Rebuild a stored stats mapping as the variant's dataclass."""
    data = data or {}
    if ScoringVariant(variant) == ScoringVariant.PRECOMPUTED:
        return PrecomputedStats(
            goals=data.get("goals", 0) or 0,
            crossbars=data.get("crossbars", 0) or 0,
            black_posts=data.get("black_posts", 0) or 0,
            points=data.get("points", 0) or 0,
        )
    return DerivedStats(
        goals=data.get("goals", 0) or 0,
        crossbars=data.get("crossbars", 0) or 0,
        black_posts=data.get("black_posts", 0) or 0,
        club=data.get("club") or None,
        host=bool(data.get("host", False)),
    )


@dataclass
class MatchRecord:
    no: int
    players: Dict[str, PlayerStats] = field(default_factory=dict)
    winner: Optional[str] = None
    special_players: List[str] = field(default_factory=list)
    points_multiplier: float = 1
    special_text: Optional[str] = None
    id: Optional[int] = None

    @classmethod
    def from_model(cls, match, variant: ScoringVariant) -> "MatchRecord":
        return cls(
            id=match.id,
            no=match.match_no,
            winner=match.winner or None,
            special_text=match.special_text,
            special_players=list(match.special_players or []),
            points_multiplier=match.points_multiplier if match.points_multiplier is not None else 1,
            players={
                name: stats_from_dict(stats, variant)
                for name, stats in (match.players or {}).items()
            },
        )


@dataclass
class PlayerTotals:
    goals: float = 0
    crossbars: float = 0
    black_posts: float = 0
    wins: int = 0
    total_points: float = 0

    def to_dict(self) -> dict:
        return {
            "goals": self.goals,
            "crossbars": self.crossbars,
            "black_posts": self.black_posts,
            "wins": self.wins,
            "total_points": self.total_points,
        }


@dataclass
class Leaderboard:
    players: List[str]
    totals: Dict[str, PlayerTotals]
    overall: PlayerTotals
    matches: List[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "players": self.players,
            "totals": {name: t.to_dict() for name, t in self.totals.items()},
            "overall": self.overall.to_dict(),
            "matches": self.matches,
        }


def base_points(stats: PlayerStats, is_winner: bool) -> float:
    return (
        stats.goals * GOAL_POINTS
        + stats.crossbars * CROSSBAR_POINTS
        + stats.black_posts * BLACK_POST_POINTS
        + (WIN_BONUS if is_winner else 0)
    )


def effective_multiplier(value) -> float:
    """A missing, non-numeric, non-finite or <= 1 multiplier counts as 1."""
    try:
        multiplier = float(value)
    except (TypeError, ValueError):
        return 1
    if not math.isfinite(multiplier) or multiplier <= 1:
        return 1
    return multiplier


def player_multiplier(match: MatchRecord, player: str) -> float:
    """
    Multiplier applied to one player's points in a match.

    Only players listed in the match's special players get the match
    multiplier; everyone else stays at 1 even when the match carries one.
    """
    multiplier = effective_multiplier(match.points_multiplier)
    if multiplier == 1:
        return 1
    return multiplier if player in (match.special_players or []) else 1


def player_points(match: MatchRecord, player: str) -> float:
    stats = match.players[player]
    if isinstance(stats, PrecomputedStats):
        return stats.points
    return base_points(stats, match.winner == player) * player_multiplier(match, player)


def score_match(match: MatchRecord) -> Dict[str, dict]:
    """Per-player points breakdown for a single match."""
    breakdown = {}
    for player in match.players:
        multiplier = 1
        if not isinstance(match.players[player], PrecomputedStats):
            multiplier = player_multiplier(match, player)
        breakdown[player] = {
            "points": player_points(match, player),
            "multiplier": multiplier,
        }
    return breakdown


def aggregate_totals(matches: Iterable[MatchRecord]) -> Dict[str, PlayerTotals]:
    """
    Fold the match list into per-player totals.

    The declared winner is credited one win per match, whether or not they
    also appear in that match's stats.
    """
    totals: Dict[str, PlayerTotals] = {}

    for match in matches:
        if match.winner:
            totals.setdefault(match.winner, PlayerTotals()).wins += 1

        for player, stats in match.players.items():
            entry = totals.setdefault(player, PlayerTotals())
            entry.goals += stats.goals
            entry.crossbars += stats.crossbars
            entry.black_posts += stats.black_posts
            entry.total_points += player_points(match, player)

    return totals


def collation_key(name: str):
    """
    Locale-aware sort key: case-insensitive, accents fold onto their base
    letter, and the accented form sorts right after the plain one.
    """
    folded = unicodedata.normalize("NFKD", name.casefold())
    base = "".join(ch for ch in folded if not unicodedata.combining(ch))
    # Stroked letters do not decompose under NFKD
    base = base.translate(str.maketrans({"ł": "l", "ø": "o", "đ": "d"}))
    return (base, name.casefold(), name)


def resolve_roster(roster: Iterable[str], matches: Iterable[MatchRecord]) -> List[str]:
    """The stored roster, or for legacy data without one, every name seen in matches."""
    roster = list(roster or [])
    if roster:
        return roster

    names = set()
    for match in matches:
        names.update(match.players.keys())
        if match.winner:
            names.add(match.winner)
    return sorted(names, key=collation_key)


def overall_totals(players: Iterable[str], totals: Dict[str, PlayerTotals]) -> PlayerTotals:
    """Tournament-wide totals, folded over the display players."""
    overall = PlayerTotals()
    for player in players:
        entry = totals.get(player) or PlayerTotals()
        overall.goals += entry.goals
        overall.crossbars += entry.crossbars
        overall.black_posts += entry.black_posts
        overall.wins += entry.wins
        overall.total_points += entry.total_points
    return overall


def build_leaderboard(matches: List[MatchRecord], roster: Iterable[str]) -> Leaderboard:
    matches = sorted(matches, key=lambda m: m.no)
    players = resolve_roster(roster, matches)
    totals = aggregate_totals(matches)
    for player in players:
        totals.setdefault(player, PlayerTotals())

    return Leaderboard(
        players=players,
        totals=totals,
        overall=overall_totals(players, totals),
        matches=[
            {"id": m.id, "no": m.no, "winner": m.winner, "points": score_match(m)}
            for m in matches
        ],
    )
