"""
Round-robin standings for a tournament snapshot.

Scoring rules:
- Win: +3 points and one win for the winner, one loss for the other player.
- Tie: no winner once the clock has run out (or the match was ended):
  +1 point and one tie for both players.
- Ippons: both players' scores are added to their ippon totals for every
  match, including ones still being played.
- Playoff matches and byes do not count towards the round-robin table.

Standings are rebuilt from zero for every snapshot. Earlier standings only
decide row order, so replaying the same snapshot, or an older one, can never
count a match twice.
"""
import logging
from dataclasses import dataclass, replace

from tatami.errors import PreconditionViolation

logger = logging.getLogger(__name__)

WIN_POINTS = 3
TIE_POINTS = 1

SCOREBOARD_COLUMNS = ('name', 'points', 'ippons', 'wins', 'losses', 'ties')
_STAT_COLUMNS = SCOREBOARD_COLUMNS[1:]


@dataclass
class TournamentPlayer:
    id: int
    first_name: str
    last_name: str
    points: int = 0
    ippons: int = 0
    wins: int = 0
    losses: int = 0
    ties: int = 0

    def to_dict(self):
        return {
            'id': self.id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'points': self.points,
            'ippons': self.ippons,
            'wins': self.wins,
            'losses': self.losses,
            'ties': self.ties,
        }


def ensure_players(players, prior_standings=()):
    """Append a zeroed record for every player not yet in ``prior_standings``.

    Existing records keep their position and values; nothing is removed.
    """
    standings = [replace(record) for record in prior_standings]
    known_ids = {record.id for record in standings}
    for player in players:
        if player.id in known_ids:
            continue
        standings.append(TournamentPlayer(
            id=player.id,
            first_name=player.first_name,
            last_name=player.last_name,
        ))
        known_ids.add(player.id)
    return standings


def _record_for(by_id, player_id, match_id):
    record = by_id.get(player_id)
    if record is None:
        raise PreconditionViolation(
            f'Match {match_id} references player {player_id} who is not in the tournament'
        )
    return record


def _is_tie(match):
    return match.winner is None and (
        match.end_timestamp is not None or match.elapsed_time >= match.match_time
    )


def apply_matches(matches, standings):
    """Fold ``matches`` into copies of ``standings``; each match id counts once."""
    updated = [replace(record) for record in standings]
    by_id = {record.id: record for record in updated}
    processed = set()

    for match in matches:
        if match.id in processed:
            continue
        if match.is_playoff:
            continue
        if len(match.players) < 2:
            logger.debug('Skipping bye match %s', match.id)
            processed.add(match.id)
            continue

        player1_id, player2_id = match.players[0].id, match.players[1].id
        player1 = _record_for(by_id, player1_id, match.id)
        player2 = _record_for(by_id, player2_id, match.id)

        if match.winner is not None:
            if match.winner == player1_id:
                winner, loser = player1, player2
            elif match.winner == player2_id:
                winner, loser = player2, player1
            else:
                raise PreconditionViolation(
                    f'Match {match.id} winner {match.winner} did not play in it'
                )
            winner.wins += 1
            winner.points += WIN_POINTS
            loser.losses += 1
        elif _is_tie(match):
            for record in (player1, player2):
                record.ties += 1
                record.points += TIE_POINTS

        player1.ippons += match.player1_score
        player2.ippons += match.player2_score
        processed.add(match.id)

    return updated


def _reset(record):
    return TournamentPlayer(
        id=record.id,
        first_name=record.first_name,
        last_name=record.last_name,
    )


def aggregate(tournament, prior_standings=()):
    """Recompute standings for ``tournament`` from scratch.

    ``prior_standings`` only contributes row order and players seen in earlier
    snapshots; their counters are discarded.
    """
    zeroed = [_reset(record) for record in prior_standings]
    standings = ensure_players(tournament.players, zeroed)
    return apply_matches(tournament.match_schedule, standings)


def rank_standings(standings):
    """Order by points, highest first. Equal points keep their current order."""
    return sorted(standings, key=lambda record: record.points, reverse=True)


def scoreboard_row(player):
    """Displayable ``(label, value)`` pairs for one scoreboard line, name excluded."""
    return [(column, getattr(player, column)) for column in _STAT_COLUMNS]
