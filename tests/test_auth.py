"""Tests for authentication routes."""
import json


def test_register(client):
    res = client.post('/api/auth/register', json={
        'username': 'testuser', 'email': 'Test@Test.com',
        'password': 'password123', 'first_name': 'Aiko', 'last_name': 'Sato',
    })
    assert res.status_code == 201
    data = json.loads(res.data)
    assert 'token' in data
    assert data['user']['username'] == 'testuser'
    assert data['user']['email'] == 'test@test.com'
    assert data['user']['first_name'] == 'Aiko'
    assert data['user']['last_name'] == 'Sato'


def test_register_missing_fields(client):
    res = client.post('/api/auth/register', json={'username': 'x'})
    assert res.status_code == 400


def test_register_duplicate_username(client):
    client.post('/api/auth/register', json={
        'username': 'dup', 'email': 'dup@test.com', 'password': 'password123',
    })
    res = client.post('/api/auth/register', json={
        'username': 'dup', 'email': 'dup2@test.com', 'password': 'password123',
    })
    assert res.status_code == 409


def test_register_rejects_weak_password(client):
    res = client.post('/api/auth/register', json={
        'username': 'weakpw',
        'email': 'weakpw@test.com',
        'password': 'abcdefg',
    })
    assert res.status_code == 400
    assert 'Password must' in json.loads(res.data)['error']


def test_login(client):
    client.post('/api/auth/register', json={
        'username': 'loginuser', 'email': 'login@test.com', 'password': 'password123',
    })
    res = client.post('/api/auth/login', json={
        'email': 'login@test.com', 'password': 'password123',
    })
    assert res.status_code == 200
    assert 'token' in json.loads(res.data)


def test_login_wrong_password(client):
    client.post('/api/auth/register', json={
        'username': 'loginuser', 'email': 'login@test.com', 'password': 'password123',
    })
    res = client.post('/api/auth/login', json={
        'email': 'login@test.com', 'password': 'wrongpass1',
    })
    assert res.status_code == 401


def test_profile_requires_token(client):
    assert client.get('/api/auth/profile').status_code == 401
    res = client.get('/api/auth/profile', headers={'Authorization': 'Bearer not-a-token'})
    assert res.status_code == 401


def test_profile_and_update(client, auth_headers):
    res = client.get('/api/auth/profile', headers=auth_headers)
    assert res.status_code == 200
    profile = json.loads(res.data)['user']
    assert profile['tournaments_joined'] == 0
    assert profile['tournaments_created'] == 0

    res = client.put('/api/auth/profile', json={'first_name': 'Kenji'}, headers=auth_headers)
    assert res.status_code == 200
    assert json.loads(res.data)['user']['first_name'] == 'Kenji'
    assert json.loads(res.data)['user']['last_name'] == 'User'
