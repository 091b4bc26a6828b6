import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .auth import normalize_username
from .errors import ValidationError
from .scoring import (
    MAX_SPECIAL_PLAYERS,
    DerivedStats,
    PlayerStats,
    PrecomputedStats,
    ScoringVariant,
)

MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6
MIN_ROSTER_SIZE = 2
# Match numbers live in a 32-bit INTEGER column
MAX_MATCH_NO = 2 ** 31 - 1


@dataclass
class MatchInput:
    """A match write that passed validation and is ready to persist."""
    no: Optional[int]
    players: Dict[str, PlayerStats] = field(default_factory=dict)
    winner: Optional[str] = None
    special_text: Optional[str] = None
    special_players: List[str] = field(default_factory=list)
    points_multiplier: float = 1

    def players_to_dict(self) -> dict:
        return {name: stats.to_dict() for name, stats in self.players.items()}


def coerce_number(value):
    """Like parse_number, but None for anything that is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.replace(',', '.').strip())
        except ValueError:
            return None
    else:
        return None

    try:
        if not math.isfinite(number):
            return None
    except OverflowError:
        # int beyond float range
        return None
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def parse_number(value):
    """
    Lenient numeric parse for form-style input.

    Numbers pass through, strings may use a decimal comma, anything else
    (including NaN, infinities and integers too large for a float) becomes 0.
    """
    number = coerce_number(value)
    return 0 if number is None else number


def is_encodable(value: str) -> bool:
    """False for strings with lone surrogates, which cannot be stored as UTF-8."""
    try:
        value.encode('utf-8')
    except UnicodeEncodeError:
        return False
    return True


def validate_registration(username: str, password: str, confirm: str) -> str:
    """Returns the normalized username."""
    username = normalize_username(username)
    password = password or ''

    if not is_encodable(username):
        raise ValidationError('Username contains invalid characters.')
    if len(username) < MIN_USERNAME_LENGTH:
        raise ValidationError(f'Username must be at least {MIN_USERNAME_LENGTH} characters.')
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters.')
    if password != (confirm or ''):
        raise ValidationError('Passwords do not match.')
    return username


def parse_scoring_variant(value) -> ScoringVariant:
    if value in (None, ''):
        return ScoringVariant.DERIVED
    try:
        return ScoringVariant(str(value).strip().lower())
    except ValueError:
        allowed = ', '.join(v.value for v in ScoringVariant)
        raise ValidationError(f'Unknown scoring variant: {value} (expected one of {allowed}).')


def validate_tournament_payload(data: dict) -> Tuple[str, List[str], ScoringVariant]:
    name = str(data.get('name') or '').strip()
    raw_players = data.get('players')
    if not isinstance(raw_players, list):
        raw_players = []
    players = [str(p).strip() for p in raw_players if p is not None]
    players = [p for p in players if p]

    if not name:
        raise ValidationError('Tournament name is required.')
    if len(players) < MIN_ROSTER_SIZE:
        raise ValidationError(f'Add at least {MIN_ROSTER_SIZE} players.')

    seen = set()
    for player in players:
        if player in seen:
            raise ValidationError(f'Duplicate player name: {player}')
        seen.add(player)

    return name, players, parse_scoring_variant(data.get('scoring'))


def parse_match_no(value, required: bool) -> Optional[int]:
    """
    Positive integer match number.

    When not required (new matches), a missing or unusable value yields None
    and the caller assigns the next free number.
    """
    if value in (None, ''):
        if required:
            raise ValidationError('Match number is required.')
        return None

    number = parse_number(value)
    if isinstance(number, int) and 0 < number <= MAX_MATCH_NO:
        return number
    if required:
        raise ValidationError(f'Match number must be an integer between 1 and {MAX_MATCH_NO}.')
    return None


def parse_multiplier(value) -> float:
    if value is None:
        return 1
    multiplier = parse_number(value)
    return multiplier if multiplier > 0 else 1


def _parse_stats(name: str, raw, variant: ScoringVariant) -> PlayerStats:
    raw = raw if isinstance(raw, dict) else {}
    goals = parse_number(raw.get('goals'))
    crossbars = parse_number(raw.get('crossbars'))
    black_posts = parse_number(raw.get('black_posts'))

    if variant == ScoringVariant.PRECOMPUTED:
        if raw.get('points') in (None, ''):
            raise ValidationError(f'Missing points for player: {name}')
        points = coerce_number(raw.get('points'))
        if points is None:
            raise ValidationError(f'Invalid points for player: {name}')
        return PrecomputedStats(
            goals=goals,
            crossbars=crossbars,
            black_posts=black_posts,
            points=points,
        )

    club = raw.get('club')
    club = club.strip() if isinstance(club, str) else ''
    return DerivedStats(
        goals=goals,
        crossbars=crossbars,
        black_posts=black_posts,
        club=club or None,
        host=bool(raw.get('host')),
    )


def validate_match_payload(
    data: dict,
    roster: Iterable[str],
    variant: ScoringVariant = ScoringVariant.DERIVED,
    require_no: bool = False
) -> MatchInput:
    """
    Validate a match write against the tournament roster.

    Raises:
        ValidationError: with a message naming the first problem found
    """
    roster = set(roster)
    variant = ScoringVariant(variant)

    no = parse_match_no(data.get('no'), required=require_no)

    raw_players = data.get('players')
    players: Dict[str, PlayerStats] = {}
    if isinstance(raw_players, dict):
        for raw_name, raw_stats in raw_players.items():
            name = str(raw_name).strip()
            if name:
                players[name] = _parse_stats(name, raw_stats, variant)

    if not players:
        raise ValidationError('Add at least one player.')

    if variant == ScoringVariant.DERIVED:
        host_count = sum(1 for stats in players.values() if stats.host)
        if host_count != 1:
            raise ValidationError('Select exactly one host.')

    for name in players:
        if name not in roster:
            raise ValidationError(f'Unknown player: {name}')

    winner = data.get('winner')
    winner = str(winner).strip() if winner else ''
    if winner and winner not in roster:
        raise ValidationError('Winner is not on the player list.')

    raw_special = data.get('special_players')
    special_players: List[str] = []
    if isinstance(raw_special, list):
        for raw_name in raw_special:
            name = str(raw_name).strip()
            if name and name not in special_players:
                special_players.append(name)
    for name in special_players:
        if name not in roster:
            raise ValidationError(f'Unknown special player: {name}')
    if len(special_players) > MAX_SPECIAL_PLAYERS:
        raise ValidationError(f'Select at most {MAX_SPECIAL_PLAYERS} special players.')

    special_text = data.get('special_text')
    special_text = str(special_text).strip() if special_text else ''

    return MatchInput(
        no=no,
        players=players,
        winner=winner or None,
        special_text=special_text or None,
        special_players=special_players,
        points_multiplier=parse_multiplier(data.get('points_multiplier')),
    )
