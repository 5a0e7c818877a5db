def register(flask_app, username):
    c = flask_app.test_client()
    res = c.post('/register', json={'username': username, 'password': 'password'})
    assert res.status_code == 201
    return c, res.get_json()['id']


def test_register_login_and_me(flask_app, client):
    register(flask_app, 'alice')
    assert client.get('/me').status_code == 401
    assert client.post('/login', json={'username': 'alice', 'password': 'wrong'}).status_code == 401
    assert client.post('/login', json={'username': 'alice', 'password': 'password'}).status_code == 200
    assert client.get('/me').get_json()['username'] == 'alice'


def test_local_game_lifecycle(client):
    res = client.post('/api/uno/local', json={'player_count': 3, 'difficulty': 'hard'})
    assert res.status_code == 201
    game = res.get_json()
    assert len(game['players']) == 3
    assert len(game['hand']) == 7
    assert game['current_turn'] == 'You'

    drawn = client.post(f"/api/uno/local/{game['id']}/draw").get_json()
    # bots run inline in tests, so control is back with the human unless someone won
    assert drawn['current_turn'] == 'You' or drawn['status'] == 'finished'
    assert drawn['events'][0]['type'] == 'draw'

    restarted = client.post(f"/api/uno/local/{game['id']}/restart", json={'player_count': 4}).get_json()
    assert len(restarted['players']) == 4
    assert len(restarted['hand']) == 7


def test_local_game_rejects_bad_input(client):
    assert client.post('/api/uno/local', json={'player_count': 5}).status_code == 400
    assert client.post('/api/uno/local', json={'difficulty': 'impossible'}).status_code == 400
    missing = client.get('/api/uno/local/unknown')
    assert missing.status_code == 404
    assert missing.get_json()['error'] == 'Game not found'
    assert client.post('/api/uno/local/unknown/draw').get_json()['error'] == 'Game not found'

    game = client.post('/api/uno/local', json={}).get_json()
    res = client.post(f"/api/uno/local/{game['id']}/play", json={'card_id': 'not-in-hand'})
    assert res.status_code == 400
    assert 'error' in res.get_json()
    assert client.post(f"/api/uno/local/{game['id']}/play", json={}).status_code == 400


def test_finished_and_idle_local_games_are_evicted(flask_app, client):
    from unoreverse.api import uno as uno_api
    from unoreverse.services.uno.local import LocalStatus

    finished_id = client.post('/api/uno/local', json={}).get_json()['id']
    idle_id = client.post('/api/uno/local', json={}).get_json()['id']
    active_id = client.post('/api/uno/local', json={}).get_json()['id']

    uno_api._local_games[finished_id].status = LocalStatus.FINISHED
    uno_api._local_games[idle_id].last_active -= flask_app.config['LOCAL_GAME_IDLE_SEC'] + 60

    fresh_id = client.post('/api/uno/local', json={}).get_json()['id']
    assert set(uno_api._local_games) == {active_id, fresh_id}
    assert client.get(f'/api/uno/local/{idle_id}').status_code == 404


def test_rooms_require_login(client):
    assert client.post('/api/rooms/create', json={'guest_id': 2}).status_code == 401


def test_create_room_validates_guest(flask_app):
    host, host_id = register(flask_app, 'alice')
    assert host.post('/api/rooms/create', json={'guest_id': 999}).status_code == 404
    assert host.post('/api/rooms/create', json={'guest_id': host_id}).status_code == 400


def test_two_player_room_flow(flask_app):
    host, host_id = register(flask_app, 'alice')
    guest, guest_id = register(flask_app, 'bob')

    res = host.post('/api/rooms/create', json={'guest_id': guest_id})
    assert res.status_code == 201
    created = res.get_json()
    code = created['room_code']
    assert created['room']['status'] == 'waiting'

    inbox = guest.get('/messages').get_json()
    assert any(code in m['content'] for m in inbox)

    joined = guest.post('/api/rooms/join', json={'room_code': code}).get_json()
    assert joined['status'] == 'playing'
    assert len(joined['hand']) == 7
    assert joined['opponent_card_count'] == 7
    assert not joined['is_my_turn']

    host_view = host.get(f'/api/rooms/{code}/state').get_json()
    assert host_view['is_my_turn']
    assert {c['id'] for c in host_view['hand']}.isdisjoint({c['id'] for c in joined['hand']})

    assert guest.post(f'/api/rooms/{code}/draw').status_code == 409
    drew = host.post(f'/api/rooms/{code}/draw').get_json()
    assert len(drew['hand']) == 8
    assert guest.get(f'/api/rooms/{code}/state').get_json()['is_my_turn']


def test_outsider_cannot_join(flask_app):
    host, _ = register(flask_app, 'alice')
    _, guest_id = register(flask_app, 'bob')
    outsider, _ = register(flask_app, 'carol')
    code = host.post('/api/rooms/create', json={'guest_id': guest_id}).get_json()['room_code']
    assert outsider.post('/api/rooms/join', json={'room_code': code}).status_code == 403


def test_unknown_room_falls_back_to_single_player(flask_app):
    guest, _ = register(flask_app, 'bob')
    res = guest.post('/api/rooms/join', json={'room_code': 'does-not-exist'})
    assert res.status_code == 200
    data = res.get_json()
    assert data['fallback'] == 'local'
    assert data['message']
    assert data['game']['status'] == 'in_progress'
    assert guest.get('/api/rooms/does-not-exist/state').status_code == 404
