"""Tests for the Socket.IO tournament subscription channel."""
import json
from datetime import timedelta

from tatami.app import db, socketio
from tatami.models import Tournament
from tatami.routes.live import broadcast_tournament, live_views, subscriptions
from tatami.time_utils import utcnow_naive


def _register(client, username, first_name):
    res = client.post('/api/auth/register', json={
        'username': username,
        'email': f'{username}@test.com',
        'password': 'password123',
        'first_name': first_name,
        'last_name': 'Tester',
    })
    data = json.loads(res.data)
    return data['token'], data['user']['id']


def _auth(token):
    return {'Authorization': f'Bearer {token}'}


def _events(socket_client, name):
    return [event['args'][0] for event in socket_client.get_received() if event['name'] == name]


def _tournament_with_match(client):
    host_token, _ = _register(client, 'host', 'Hana')
    p1_token, p1_id = _register(client, 'aiko', 'Aiko')
    p2_token, p2_id = _register(client, 'ben', 'Ben')
    start = utcnow_naive() + timedelta(days=1)
    created = client.post('/api/tournaments', json={
        'name': 'Live Cup',
        'start_date': start.isoformat(),
        'end_date': (start + timedelta(hours=4)).isoformat(),
    }, headers=_auth(host_token))
    tournament_id = json.loads(created.data)['tournament']['id']
    for token in (p1_token, p2_token):
        client.post(f'/api/tournaments/{tournament_id}/join', headers=_auth(token))
    res = client.post(f'/api/tournaments/{tournament_id}/matches', json={
        'player_ids': [p1_id, p2_id],
    }, headers=_auth(host_token))
    match_id = json.loads(res.data)['match']['id']
    return tournament_id, match_id, host_token, p1_id


def test_join_receives_current_snapshot(app, client):
    tournament_id, match_id, _, _ = _tournament_with_match(client)
    socket_client = socketio.test_client(app, flask_test_client=client)
    socket_client.emit('join_tournament', {'tournament_id': tournament_id})

    updates = _events(socket_client, 'tournament_update')
    assert len(updates) == 1
    assert updates[0]['tournament']['id'] == tournament_id
    assert updates[0]['view']['matches']['upcoming'][0]['id'] == match_id
    socket_client.disconnect()


def test_scoring_pushes_update_to_room(app, client):
    tournament_id, match_id, host_token, p1_id = _tournament_with_match(client)
    socket_client = socketio.test_client(app, flask_test_client=client)
    socket_client.emit('join_tournament', {'tournament_id': tournament_id})
    socket_client.get_received()

    client.patch(
        f'/api/tournaments/{tournament_id}/matches/{match_id}',
        json={'player1_score': 2, 'elapsed_time': 180, 'winner': p1_id, 'end': True},
        headers=_auth(host_token),
    )
    updates = _events(socket_client, 'tournament_update')
    assert len(updates) == 1
    leader = updates[0]['view']['standings'][0]
    assert leader['id'] == p1_id
    assert leader['points'] == 3
    socket_client.disconnect()


def test_leave_stops_updates(app, client):
    tournament_id, match_id, host_token, _ = _tournament_with_match(client)
    socket_client = socketio.test_client(app, flask_test_client=client)
    socket_client.emit('join_tournament', {'tournament_id': tournament_id})
    socket_client.emit('leave_tournament', {'tournament_id': tournament_id})
    socket_client.get_received()
    assert subscriptions.subscribers(tournament_id) == frozenset()

    client.patch(
        f'/api/tournaments/{tournament_id}/matches/{match_id}',
        json={'elapsed_time': 30},
        headers=_auth(host_token),
    )
    assert _events(socket_client, 'tournament_update') == []
    socket_client.disconnect()


def test_join_unknown_tournament_reports_error(app, client):
    socket_client = socketio.test_client(app, flask_test_client=client)
    socket_client.emit('join_tournament', {'tournament_id': 404})
    statuses = _events(socket_client, 'status')
    assert statuses == [{'error': 'Tournament not found'}]
    socket_client.disconnect()


def test_disconnect_clears_subscriptions(app, client):
    tournament_id, _, _, _ = _tournament_with_match(client)
    socket_client = socketio.test_client(app, flask_test_client=client)
    socket_client.emit('join_tournament', {'tournament_id': tournament_id})
    assert len(subscriptions.subscribers(tournament_id)) == 1
    socket_client.disconnect()
    assert subscriptions.subscribers(tournament_id) == frozenset()


def test_stale_revision_is_not_pushed(app, client):
    tournament_id, _, _, _ = _tournament_with_match(client)
    socket_client = socketio.test_client(app, flask_test_client=client)
    socket_client.emit('join_tournament', {'tournament_id': tournament_id})
    socket_client.get_received()
    accepted = live_views[tournament_id].revision

    tournament = db.session.get(Tournament, tournament_id)
    tournament.revision = accepted - 1
    broadcast_tournament(tournament)
    db.session.rollback()

    assert _events(socket_client, 'tournament_update') == []
    assert live_views[tournament_id].revision == accepted
    socket_client.disconnect()


def test_push_advances_live_view_revision(app, client):
    tournament_id, match_id, host_token, _ = _tournament_with_match(client)
    socket_client = socketio.test_client(app, flask_test_client=client)
    socket_client.emit('join_tournament', {'tournament_id': tournament_id})
    before = live_views[tournament_id].revision

    client.patch(
        f'/api/tournaments/{tournament_id}/matches/{match_id}',
        json={'elapsed_time': 45},
        headers=_auth(host_token),
    )
    view = live_views[tournament_id]
    assert view.revision == before + 1
    assert [m.id for m in view.state.buckets.ongoing] == [match_id]
    socket_client.disconnect()


def test_live_view_is_dropped_when_room_empties(app, client):
    tournament_id, _, _, _ = _tournament_with_match(client)
    assert tournament_id not in live_views
    socket_client = socketio.test_client(app, flask_test_client=client)
    socket_client.emit('join_tournament', {'tournament_id': tournament_id})
    assert tournament_id in live_views
    socket_client.emit('leave_tournament', {'tournament_id': tournament_id})
    assert tournament_id not in live_views
    socket_client.disconnect()
