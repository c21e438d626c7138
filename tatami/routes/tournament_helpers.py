"""Tournament helpers shared by the REST routes and the socket push."""
import math

from tatami.services.match_classifier import classify, missing_officials, navigable
from tatami.services.snapshots import PLAYOFF, parse_tournament
from tatami.services.standings import (
    SCOREBOARD_COLUMNS, aggregate, rank_standings, scoreboard_row,
)
from tatami.services.tournament_status import (
    display_name, have_same_names, tournament_card,
)
from tatami.time_utils import parse_iso_datetime, utcnow_naive

ALLOWED_MATCH_TYPES = {None, PLAYOFF}
_MIN_SCORE = 0
_MAX_SCORE = 99
_MAX_NAME_LEN = 200


def coerce_int(raw_value):
    if isinstance(raw_value, bool):
        return None
    try:
        return int(raw_value)
    except (TypeError, ValueError, OverflowError):
        return None


def coerce_seconds(raw_value):
    if isinstance(raw_value, bool):
        return None
    try:
        value = float(raw_value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return value


def valid_score(raw_value):
    value = coerce_int(raw_value)
    if value is None or value < _MIN_SCORE or value > _MAX_SCORE:
        return None
    return value


def parse_tournament_fields(data, config):
    """Validate a create payload; return ``(fields, error)``."""
    name = str(data.get('name') or '').strip()
    if not name:
        return None, 'Tournament name required'

    start_date = parse_iso_datetime(data.get('start_date'))
    end_date = parse_iso_datetime(data.get('end_date'))
    if not start_date or not end_date:
        return None, 'start_date and end_date must be valid ISO datetimes'
    if end_date < start_date:
        return None, 'end_date must not be before start_date'

    max_players = coerce_int(data.get('max_players', 16))
    limit = config.get('MAX_TOURNAMENT_PLAYERS', 64)
    if max_players is None or max_players < 2 or max_players > limit:
        return None, f'max_players must be between 2 and {limit}'

    return {
        'name': name[:_MAX_NAME_LEN],
        'location': str(data.get('location') or '').strip()[:_MAX_NAME_LEN],
        'start_date': start_date,
        'end_date': end_date,
        'max_players': max_players,
    }, None


def tournament_phase(tournament, now=None):
    now = now or utcnow_naive()
    if now < tournament.start_date:
        return 'upcoming'
    if now > tournament.end_date:
        return 'past'
    return 'ongoing'


def _match_view(raw_match, match, same_names, names_by_id):
    data = dict(raw_match)
    data['navigable'] = navigable(match)
    data['missing_officials'] = list(missing_officials(match))
    data['player_names'] = [names_by_id.get(pid, 'Unknown Player') for pid in match.player_ids]
    return data


def build_view(snapshot, raw_snapshot, user_id=None, now=None):
    """Presentation-ready derived state for one snapshot."""
    same_names = have_same_names(snapshot.players)
    names_by_id = {p.id: display_name(p, same_names) for p in snapshot.players}
    raw_matches = {m['id']: m for m in raw_snapshot.get('match_schedule') or []}
    buckets = classify(snapshot.match_schedule)

    standings = []
    for record in rank_standings(aggregate(snapshot)):
        row = record.to_dict()
        row['display_name'] = names_by_id.get(record.id, display_name(record, same_names))
        row['scoreboard'] = [list(pair) for pair in scoreboard_row(record)]
        standings.append(row)

    return {
        'matches': {
            bucket: [
                _match_view(raw_matches[match.id], match, same_names, names_by_id)
                for match in getattr(buckets, bucket)
            ]
            for bucket in buckets._fields
        },
        'standings': standings,
        'scoreboard_columns': list(SCOREBOARD_COLUMNS),
        'have_same_names': same_names,
        'card': tournament_card(snapshot, user_id, now),
    }


def serialize_tournament(tournament, user_id=None, *, include_view=True):
    raw = tournament.to_snapshot()
    data = {'tournament': raw}
    if include_view:
        data['view'] = build_view(parse_tournament(raw), raw, user_id)
    return data
