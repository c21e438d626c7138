"""Card-level facts derived from a tournament snapshot."""
from tatami.services.match_classifier import classify, is_bye
from tatami.services.standings import aggregate, rank_standings
from tatami.time_utils import utcnow_naive

MIN_PLAYERS = 2


def has_started(tournament, now=None):
    if tournament.start_date is None:
        return False
    return (now or utcnow_naive()) >= tournament.start_date


def is_full(tournament):
    return tournament.max_players <= len(tournament.players)


def is_cancelled(tournament, now=None):
    """A tournament that started without enough players to hold a match."""
    return has_started(tournament, now) and len(tournament.players) < MIN_PLAYERS


def all_matches_played(tournament):
    scored = [m for m in tournament.match_schedule if not is_bye(m)]
    if not scored:
        return False
    past_ids = {m.id for m in classify(scored).past}
    return all(m.id in past_ids for m in scored)


def _player_by_id(tournament, player_id):
    return next((p for p in tournament.players if p.id == player_id), None)


def find_tournament_winner(tournament):
    """Return the winning ``Player`` once every match is played, else ``None``.

    A decided playoff match settles the tournament; the last one in the
    schedule is treated as the final. Otherwise the round-robin leader wins,
    and a shared lead on points has no winner.
    """
    if not all_matches_played(tournament):
        return None

    playoffs = [m for m in tournament.match_schedule if m.is_playoff and m.winner is not None]
    if playoffs:
        return _player_by_id(tournament, playoffs[-1].winner)

    ranked = rank_standings(aggregate(tournament))
    if not ranked:
        return None
    if len(ranked) > 1 and ranked[0].points == ranked[1].points:
        return None
    return _player_by_id(tournament, ranked[0].id)


def player_matches(tournament, user_id):
    return [m for m in tournament.match_schedule if user_id in m.player_ids]


def _name_key(player):
    return (player.first_name.strip().lower(), player.last_name.strip().lower())


def have_same_names(players):
    """True when two different players would render with the same name."""
    seen = {}
    for player in players:
        key = _name_key(player)
        if key in seen and seen[key] != player.id:
            return True
        seen[key] = player.id
    return False


def display_name(player, same_names=False):
    name = f'{player.first_name} {player.last_name}'.strip()
    if same_names:
        return f'{name} (#{player.id})'
    return name


def tournament_card(tournament, user_id=None, now=None):
    now = now or utcnow_naive()
    finished = all_matches_played(tournament)
    cancelled = is_cancelled(tournament, now)
    winner = find_tournament_winner(tournament) if finished and not cancelled else None
    return {
        'id': tournament.id,
        'name': tournament.name,
        'location': tournament.location,
        'start_date': tournament.start_date.isoformat() if tournament.start_date else None,
        'end_date': tournament.end_date.isoformat() if tournament.end_date else None,
        'player_count': len(tournament.players),
        'max_players': tournament.max_players,
        'has_started': has_started(tournament, now),
        'is_full': is_full(tournament),
        'is_cancelled': cancelled,
        'is_finished': finished,
        'winner': display_name(winner) if winner else None,
        'user_signed_up': user_id is not None and user_id in tournament.player_ids,
        'is_creator': (
            user_id is not None
            and tournament.creator is not None
            and tournament.creator.id == user_id
        ),
    }
