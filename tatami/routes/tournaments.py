"""Tournament routes: listing, sign-up, match schedule and live scoring."""
from flask import Blueprint, request, jsonify, current_app
from tatami.app import db
from tatami.models import User, Tournament, TournamentPlayerEntry, Match
from tatami.auth_utils import login_required, optional_current_user_id
from tatami.routes.live import broadcast_tournament, forget_tournament
from tatami.routes.tournament_helpers import (
    ALLOWED_MATCH_TYPES,
    coerce_int,
    coerce_seconds,
    parse_tournament_fields,
    serialize_tournament,
    tournament_phase,
    valid_score,
)
from tatami.services.snapshots import parse_tournament
from tatami.services.tournament_status import player_matches, tournament_card
from tatami.time_utils import utcnow_naive

tournaments_bp = Blueprint('tournaments', __name__)

_ALLOWED_PHASES = {'upcoming', 'ongoing', 'past'}


def _load_tournament(tournament_id):
    return db.session.get(Tournament, tournament_id)


def _is_creator(tournament, user_id):
    return bool(tournament and int(tournament.creator_id) == int(user_id))


def _entry_for(tournament, user_id):
    return next((e for e in tournament.entries if e.user_id == user_id), None)


def _drop_player(tournament, user_id):
    """Remove a player and every match they were scheduled in."""
    entry = _entry_for(tournament, user_id)
    if entry is None:
        return False
    for match in list(tournament.matches):
        if user_id in (match.player1_id, match.player2_id):
            tournament.matches.remove(match)
    tournament.entries.remove(entry)
    return True


def _has_decided_match(tournament, user_id):
    return any(
        user_id in (match.player1_id, match.player2_id)
        and (match.end_timestamp is not None or match.winner_id is not None)
        for match in tournament.matches
    )


def _commit_and_push(tournament):
    tournament.touch()
    db.session.commit()
    broadcast_tournament(tournament)


@tournaments_bp.route('', methods=['GET'])
def get_tournaments():
    phase = (request.args.get('status') or '').strip().lower()
    if phase and phase not in _ALLOWED_PHASES:
        return jsonify({'error': 'Invalid status filter'}), 400

    user_id = optional_current_user_id()
    now = utcnow_naive()
    tournaments = Tournament.query.order_by(
        Tournament.start_date.desc(),
        Tournament.id.desc(),
    ).all()

    cards = []
    for tournament in tournaments:
        current_phase = tournament_phase(tournament, now)
        if phase and current_phase != phase:
            continue
        card = tournament_card(parse_tournament(tournament.to_snapshot()), user_id, now)
        card['phase'] = current_phase
        cards.append(card)

    payload = {'tournaments': cards}
    if not cards:
        payload['message'] = 'No tournaments found'
    return jsonify(payload)


@tournaments_bp.route('', methods=['POST'])
@login_required
def create_tournament():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid JSON payload'}), 400

    fields, error = parse_tournament_fields(data, current_app.config)
    if error:
        return jsonify({'error': error}), 400

    tournament = Tournament(creator_id=request.current_user.id, **fields)
    db.session.add(tournament)
    db.session.commit()
    current_app.logger.info(
        'User %s created tournament %s', request.current_user.id, tournament.id,
    )
    return jsonify(serialize_tournament(tournament, request.current_user.id)), 201


@tournaments_bp.route('/<int:tournament_id>', methods=['GET'])
def get_tournament(tournament_id):
    tournament = _load_tournament(tournament_id)
    if not tournament:
        return jsonify({'error': 'Tournament not found'}), 404
    return jsonify(serialize_tournament(tournament, optional_current_user_id()))


@tournaments_bp.route('/<int:tournament_id>', methods=['DELETE'])
@login_required
def delete_tournament(tournament_id):
    tournament = _load_tournament(tournament_id)
    if not tournament:
        return jsonify({'error': 'Tournament not found'}), 404
    if not _is_creator(tournament, request.current_user.id):
        return jsonify({'error': 'Only the creator can delete this tournament'}), 403

    db.session.delete(tournament)
    db.session.commit()
    forget_tournament(tournament_id)
    current_app.logger.info('Tournament %s deleted', tournament_id)
    return jsonify({'message': 'Tournament deleted'})


@tournaments_bp.route('/<int:tournament_id>/join', methods=['POST'])
@login_required
def join_tournament(tournament_id):
    tournament = _load_tournament(tournament_id)
    if not tournament:
        return jsonify({'error': 'Tournament not found'}), 404

    user = request.current_user
    if _entry_for(tournament, user.id):
        return jsonify({'error': 'Already signed up for this tournament'}), 409
    if len(tournament.entries) >= (tournament.max_players or 0):
        return jsonify({'error': 'Tournament is full'}), 409
    started = utcnow_naive() >= tournament.start_date
    if started and not current_app.config.get('ALLOW_LATE_JOIN', False):
        return jsonify({'error': 'Tournament has already started'}), 409

    tournament.entries.append(TournamentPlayerEntry(user_id=user.id))
    _commit_and_push(tournament)
    return jsonify(serialize_tournament(tournament, user.id))


@tournaments_bp.route('/<int:tournament_id>/leave', methods=['POST'])
@login_required
def leave_tournament(tournament_id):
    tournament = _load_tournament(tournament_id)
    if not tournament:
        return jsonify({'error': 'Tournament not found'}), 404
    if utcnow_naive() >= tournament.start_date:
        return jsonify({'error': 'Cannot leave a tournament that has started'}), 409

    user = request.current_user
    if not _drop_player(tournament, user.id):
        return jsonify({'error': 'Not signed up for this tournament'}), 404
    _commit_and_push(tournament)
    return jsonify(serialize_tournament(tournament, user.id))


@tournaments_bp.route('/<int:tournament_id>/players/<int:user_id>', methods=['DELETE'])
@login_required
def remove_player(tournament_id, user_id):
    tournament = _load_tournament(tournament_id)
    if not tournament:
        return jsonify({'error': 'Tournament not found'}), 404
    if not _is_creator(tournament, request.current_user.id):
        return jsonify({'error': 'Only the creator can remove players'}), 403
    if utcnow_naive() >= tournament.start_date or _has_decided_match(tournament, user_id):
        return jsonify({'error': 'Cannot remove a player once results are recorded'}), 409
    if not _drop_player(tournament, user_id):
        return jsonify({'error': 'Player not in tournament'}), 404

    _commit_and_push(tournament)
    current_app.logger.info('Removed player %s from tournament %s', user_id, tournament_id)
    return jsonify(serialize_tournament(tournament, request.current_user.id))


@tournaments_bp.route('/<int:tournament_id>/matches', methods=['POST'])
@login_required
def add_match(tournament_id):
    tournament = _load_tournament(tournament_id)
    if not tournament:
        return jsonify({'error': 'Tournament not found'}), 404
    if not _is_creator(tournament, request.current_user.id):
        return jsonify({'error': 'Only the creator can schedule matches'}), 403

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid JSON payload'}), 400

    raw_ids = data.get('player_ids')
    if not isinstance(raw_ids, list) or not 1 <= len(raw_ids) <= 2:
        return jsonify({'error': 'A match needs one or two player_ids'}), 400
    player_ids = [coerce_int(raw_id) for raw_id in raw_ids]
    if any(pid is None for pid in player_ids):
        return jsonify({'error': 'player_ids must be integers'}), 400
    if len(set(player_ids)) != len(player_ids):
        return jsonify({'error': 'A player cannot face themselves'}), 400
    signed_up = {entry.user_id for entry in tournament.entries}
    if not set(player_ids) <= signed_up:
        return jsonify({'error': 'Every player must be signed up for the tournament'}), 400

    match_type = data.get('type') or None
    if match_type not in ALLOWED_MATCH_TYPES:
        return jsonify({'error': 'Invalid match type'}), 400

    match_time = data.get('match_time')
    if match_time is None:
        match_time = current_app.config.get('DEFAULT_MATCH_TIME_SECONDS', 180)
    match_time = coerce_seconds(match_time)
    if not match_time:
        return jsonify({'error': 'match_time must be a positive number of seconds'}), 400

    match = Match(
        player1_id=player_ids[0],
        player2_id=player_ids[1] if len(player_ids) > 1 else None,
        match_time=match_time,
        match_type=match_type,
        player1_score=0,
        player2_score=0,
        elapsed_time=0,
    )
    tournament.matches.append(match)
    _commit_and_push(tournament)
    return jsonify({'match': match.to_dict()}), 201


def _apply_officials(match, data, user_id, is_creator):
    """Assign officials. Non-creators may only volunteer themselves for an open role."""
    for field, column in (('time_keeper', 'time_keeper_id'), ('point_maker', 'point_maker_id')):
        if field not in data:
            continue
        raw_value = data.get(field)
        value = None if raw_value is None else coerce_int(raw_value)
        if raw_value is not None and value is None:
            return f'{field} must be a user id or null', 400
        if value is not None and not db.session.get(User, value):
            return f'{field} user not found', 404
        if not is_creator:
            current = getattr(match, column)
            volunteering = value == user_id and current is None
            stepping_down = value is None and current == user_id
            if not (volunteering or stepping_down):
                return 'Only the creator can assign other officials', 403
        setattr(match, column, value)
    return None


def _apply_score(match, data):
    for field in ('player1_score', 'player2_score'):
        if field in data:
            value = valid_score(data.get(field))
            if value is None:
                return f'{field} must be an integer between 0 and 99'
            setattr(match, field, value)

    if 'elapsed_time' in data:
        value = coerce_seconds(data.get('elapsed_time'))
        if value is None:
            return 'elapsed_time must be a non-negative number of seconds'
        match.elapsed_time = value

    if 'winner' in data:
        raw_winner = data.get('winner')
        winner = None if raw_winner is None else coerce_int(raw_winner)
        if raw_winner is not None and winner not in (match.player1_id, match.player2_id):
            return 'Winner must be one of the match players'
        match.winner_id = winner

    if 'end' in data:
        match.end_timestamp = utcnow_naive() if data.get('end') else None
    return None


@tournaments_bp.route('/<int:tournament_id>/matches/<int:match_id>', methods=['PATCH'])
@login_required
def update_match(tournament_id, match_id):
    tournament = _load_tournament(tournament_id)
    if not tournament:
        return jsonify({'error': 'Tournament not found'}), 404
    match = db.session.get(Match, match_id)
    if not match or match.tournament_id != tournament.id:
        return jsonify({'error': 'Match not found'}), 404

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid JSON payload'}), 400

    user_id = request.current_user.id
    is_creator = _is_creator(tournament, user_id)
    officials_error = _apply_officials(match, data, user_id, is_creator)
    if officials_error:
        db.session.rollback()
        message, status = officials_error
        return jsonify({'error': message}), status

    scoring_fields = {'player1_score', 'player2_score', 'elapsed_time', 'winner', 'end'}
    if scoring_fields & set(data):
        if match.player2_id is None:
            db.session.rollback()
            return jsonify({'error': 'A bye cannot be scored'}), 400
        officials = {match.time_keeper_id, match.point_maker_id}
        if not is_creator and user_id not in officials:
            db.session.rollback()
            return jsonify({'error': 'Only the creator or match officials can score'}), 403
        error = _apply_score(match, data)
        if error:
            db.session.rollback()
            return jsonify({'error': error}), 400

    _commit_and_push(tournament)
    current_app.logger.debug('Match %s updated to revision %s', match.id, tournament.revision)
    return jsonify({'match': match.to_dict(), 'revision': tournament.revision})


@tournaments_bp.route('/<int:tournament_id>/players/<int:user_id>/matches', methods=['GET'])
def get_player_matches(tournament_id, user_id):
    tournament = _load_tournament(tournament_id)
    if not tournament:
        return jsonify({'error': 'Tournament not found'}), 404
    raw = tournament.to_snapshot()
    raw_matches = {m['id']: m for m in raw['match_schedule']}
    matches = player_matches(parse_tournament(raw), user_id)
    return jsonify({'matches': [raw_matches[match.id] for match in matches]})
