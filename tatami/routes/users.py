from flask import Blueprint, jsonify
from tatami.app import db
from tatami.models import User
from tatami.services.snapshots import parse_tournament
from tatami.services.tournament_status import display_name, have_same_names, player_matches

users_bp = Blueprint('users', __name__)


@users_bp.route('/<int:user_id>/matches', methods=['GET'])
def get_user_matches(user_id):
    """Every match a user has been scheduled in, grouped by tournament, newest first."""
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({'error': 'User not found'}), 404

    tournaments = sorted(
        (entry.tournament for entry in user.tournament_entries),
        key=lambda t: t.start_date,
        reverse=True,
    )
    history = []
    for tournament in tournaments:
        raw = tournament.to_snapshot()
        snapshot = parse_tournament(raw)
        same_names = have_same_names(snapshot.players)
        names = {p.id: display_name(p, same_names) for p in snapshot.players}
        raw_matches = {m['id']: m for m in raw['match_schedule']}
        matches = []
        for match in player_matches(snapshot, user_id):
            data = dict(raw_matches[match.id])
            data['player_names'] = [names.get(pid, 'Unknown Player') for pid in match.player_ids]
            matches.append(data)
        history.append({
            'tournament': {
                'id': tournament.id,
                'name': tournament.name,
                'start_date': raw['start_date'],
                'end_date': raw['end_date'],
            },
            'matches': matches,
        })
    return jsonify({'tournaments': history})
