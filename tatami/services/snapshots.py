"""Typed, immutable view of a tournament snapshot.

A snapshot is the complete JSON document the service returns from
``GET /api/tournaments/<id>`` and pushes on ``tournament_update``. The
scoring core only ever sees these parsed records, never ORM rows, so the
same code runs for a REST fetch, a socket push, or a hand-built fixture.
"""
import math
from dataclasses import dataclass, field

from tatami.errors import PreconditionViolation
from tatami.time_utils import parse_iso_datetime

PLAYOFF = 'playoff'

_REQUIRED_MATCH_NUMBERS = ('player1_score', 'player2_score', 'elapsed_time', 'match_time')


@dataclass(frozen=True)
class Player:
    id: int
    first_name: str = ''
    last_name: str = ''


@dataclass(frozen=True)
class MatchSnapshot:
    id: int
    players: tuple
    player1_score: int
    player2_score: int
    elapsed_time: float
    match_time: float
    winner: object = None
    end_timestamp: object = None
    type: object = None
    time_keeper: object = None
    point_maker: object = None

    @property
    def player_ids(self):
        return tuple(player.id for player in self.players)

    @property
    def is_playoff(self):
        return self.type == PLAYOFF


@dataclass(frozen=True)
class TournamentSnapshot:
    id: int
    name: str
    players: tuple
    match_schedule: tuple
    start_date: object = None
    end_date: object = None
    location: str = ''
    max_players: int = 0
    creator: object = None
    revision: int = 0
    player_ids: frozenset = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'player_ids', frozenset(p.id for p in self.players))


def _require_mapping(raw, what):
    if not isinstance(raw, dict):
        raise PreconditionViolation(f'{what} must be an object')
    return raw


def _number(raw, key, match_id):
    value = raw.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PreconditionViolation(
            f'Match {match_id} is missing numeric field "{key}"'
        )
    if not math.isfinite(value):
        raise PreconditionViolation(
            f'Match {match_id} has non-finite value for "{key}"'
        )
    return value


def parse_player(raw):
    data = _require_mapping(raw, 'Player')
    if data.get('id') is None:
        raise PreconditionViolation('Player is missing "id"')
    return Player(
        id=data['id'],
        first_name=str(data.get('first_name') or ''),
        last_name=str(data.get('last_name') or ''),
    )


def parse_match(raw):
    data = _require_mapping(raw, 'Match')
    match_id = data.get('id')
    if match_id is None:
        raise PreconditionViolation('Match is missing "id"')

    players = tuple(parse_player(p) for p in (data.get('players') or []))
    if not 1 <= len(players) <= 2:
        raise PreconditionViolation(
            f'Match {match_id} must have one or two players, got {len(players)}'
        )

    numbers = {key: _number(data, key, match_id) for key in _REQUIRED_MATCH_NUMBERS}
    return MatchSnapshot(
        id=match_id,
        players=players,
        winner=data.get('winner'),
        end_timestamp=data.get('end_timestamp'),
        type=data.get('type'),
        time_keeper=data.get('time_keeper'),
        point_maker=data.get('point_maker'),
        **numbers,
    )


def parse_tournament(raw):
    """Parse a tournament snapshot dict; raise ``PreconditionViolation`` if malformed."""
    data = _require_mapping(raw, 'Tournament')
    if data.get('id') is None:
        raise PreconditionViolation('Tournament is missing "id"')

    creator = data.get('creator')
    return TournamentSnapshot(
        id=data['id'],
        name=str(data.get('name') or ''),
        start_date=parse_iso_datetime(data.get('start_date')),
        end_date=parse_iso_datetime(data.get('end_date')),
        location=str(data.get('location') or ''),
        max_players=int(data.get('max_players') or 0),
        creator=parse_player(creator) if creator else None,
        players=tuple(parse_player(p) for p in (data.get('players') or [])),
        match_schedule=tuple(parse_match(m) for m in (data.get('match_schedule') or [])),
        revision=int(data.get('revision') or 0),
    )
