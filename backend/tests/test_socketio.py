def _names(packets):
    return [pkt['name'] for pkt in packets]


def test_socket_connect(sio_client):
    assert sio_client.is_connected('/ws')
    received = sio_client.get_received('/ws')
    assert 'connected' in _names(received)


def test_join_known_game_and_receive_state_updates(client, sio_client):
    res = client.post('/api/games/create')
    code = res.get_json()['game_code']
    sio_client.get_received('/ws')  # flush

    sio_client.emit('join_game', {'game_code': code.lower()}, namespace='/ws')
    received = sio_client.get_received('/ws')
    joined = [pkt for pkt in received if pkt['name'] == 'joined']
    assert joined and joined[0]['args'][0]['room'] == f'game:{code}'

    client.post('/api/games/join', json={'game_code': code, 'name': 'Alice'})
    updates = [pkt for pkt in sio_client.get_received('/ws') if pkt['name'] == 'state_update']
    assert updates and updates[0]['args'][0]['game_code'] == code


def test_join_unknown_game_reports_error(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('join_game', {'game_code': 'ZZZZZZ'}, namespace='/ws')
    assert 'error' in _names(sio_client.get_received('/ws'))


def test_ping_pong(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'pong' and pkt['args'][0] == {'n': 1} for pkt in received)
