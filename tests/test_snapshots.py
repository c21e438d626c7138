"""Tests for snapshot parsing."""
from datetime import datetime

import pytest

from tatami.errors import PreconditionViolation
from tatami.services.snapshots import parse_match, parse_tournament

A = {'id': 1, 'first_name': 'Aiko', 'last_name': 'Sato'}
B = {'id': 2, 'first_name': 'Ben', 'last_name': 'Kim'}


def _raw_match(**overrides):
    data = {
        'id': 5,
        'players': [A, B],
        'player1_score': 1,
        'player2_score': 0,
        'elapsed_time': 40,
        'match_time': 180,
    }
    data.update(overrides)
    return data


def test_parse_tournament_builds_typed_snapshot():
    snapshot = parse_tournament({
        'id': 3,
        'name': 'Autumn Cup',
        'start_date': '2026-10-01T09:00:00',
        'end_date': '2026-10-01T18:00:00Z',
        'location': 'Dojo',
        'max_players': 8,
        'revision': 4,
        'creator': A,
        'players': [A, B],
        'match_schedule': [_raw_match()],
    })
    assert snapshot.start_date == datetime(2026, 10, 1, 9, 0)
    assert snapshot.end_date == datetime(2026, 10, 1, 18, 0)
    assert snapshot.creator.id == 1
    assert snapshot.player_ids == frozenset({1, 2})
    assert snapshot.match_schedule[0].player_ids == (1, 2)
    assert snapshot.revision == 4


def test_missing_elapsed_time_fails_loudly():
    raw = _raw_match()
    del raw['elapsed_time']
    with pytest.raises(PreconditionViolation, match='elapsed_time'):
        parse_match(raw)


def test_non_numeric_score_is_rejected():
    with pytest.raises(PreconditionViolation):
        parse_match(_raw_match(player1_score='3'))


def test_match_needs_one_or_two_players():
    with pytest.raises(PreconditionViolation):
        parse_match(_raw_match(players=[]))
    with pytest.raises(PreconditionViolation):
        parse_match(_raw_match(players=[A, B, {'id': 3}]))


def test_playoff_flag():
    assert parse_match(_raw_match(type='playoff')).is_playoff
    assert not parse_match(_raw_match()).is_playoff


def test_tournament_requires_id():
    with pytest.raises(PreconditionViolation):
        parse_tournament({'name': 'No id'})


@pytest.mark.parametrize('field', ['elapsed_time', 'match_time', 'player1_score'])
@pytest.mark.parametrize('value', [float('nan'), float('inf')])
def test_non_finite_numbers_are_rejected(field, value):
    with pytest.raises(PreconditionViolation, match=field):
        parse_match(_raw_match(**{field: value}))
