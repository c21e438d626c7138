"""Socket.IO push channel: one room per tournament, full snapshot per update."""
import logging

from flask import request
from flask_socketio import emit, join_room, leave_room
from sqlalchemy.exc import SQLAlchemyError
from tatami.app import db, socketio
from tatami.errors import TransportFailure
from tatami.models import Tournament
from tatami.routes.tournament_helpers import coerce_int, serialize_tournament
from tatami.services.live_view import SubscriptionRegistry, TournamentLiveView, room_for
from tatami.services.snapshots import parse_tournament

logger = logging.getLogger(__name__)

subscriptions = SubscriptionRegistry()
# Latest accepted snapshot per followed tournament; dropped when the room empties.
live_views = {}


def _accept_snapshot(tournament):
    """Feed the committed snapshot to the tournament's live view.

    Returns False when a newer revision has already been pushed.
    """
    snapshot = parse_tournament(tournament.to_snapshot())
    view = live_views.get(tournament.id)
    if view is None:
        view = live_views[tournament.id] = TournamentLiveView(tournament.id)
    return view.apply(snapshot).snapshot is snapshot


def forget_tournament(tournament_id):
    live_views.pop(tournament_id, None)


def _forget_if_unwatched(tournament_id):
    if not subscriptions.subscribers(tournament_id):
        forget_tournament(tournament_id)


def broadcast_tournament(tournament):
    """Push the committed snapshot to everyone following the tournament."""
    if not subscriptions.subscribers(tournament.id):
        logger.debug('No subscribers for tournament %s, skipping push', tournament.id)
        return
    if not _accept_snapshot(tournament):
        return
    socketio.emit(
        'tournament_update',
        serialize_tournament(tournament),
        room=room_for(tournament.id),
    )


def _tournament_id_from(data):
    payload = data if isinstance(data, dict) else {}
    return coerce_int(payload.get('tournament_id'))


# WebSocket event handlers
@socketio.on('join_tournament')
def on_join_tournament(data):
    tournament_id = _tournament_id_from(data)
    if not tournament_id:
        emit('status', {'error': 'tournament_id is required'})
        return

    try:
        tournament = db.session.get(Tournament, tournament_id)
    except SQLAlchemyError:
        logger.exception('Could not load tournament %s for subscription', tournament_id)
        failure = TransportFailure('Tournament is temporarily unavailable, try again')
        emit('status', {**failure.to_dict(), 'retryable': True})
        return
    if not tournament:
        emit('status', {'error': 'Tournament not found'})
        return

    join_room(room_for(tournament_id))
    subscriptions.subscribe(tournament_id, request.sid)
    _accept_snapshot(tournament)
    emit('status', {'message': f'Joined {room_for(tournament_id)}'})
    emit('tournament_update', serialize_tournament(tournament))


@socketio.on('leave_tournament')
def on_leave_tournament(data):
    tournament_id = _tournament_id_from(data)
    if not tournament_id:
        return
    leave_room(room_for(tournament_id))
    subscriptions.unsubscribe(tournament_id, request.sid)
    _forget_if_unwatched(tournament_id)


@socketio.on('disconnect')
def on_disconnect(*args):
    left = subscriptions.unsubscribe_all(request.sid)
    for tournament_id in left:
        _forget_if_unwatched(tournament_id)
    if left:
        logger.debug('Session %s left tournaments %s on disconnect', request.sid, left)
