def test_socket_connect_and_join(sio_client):
    # Ensure we are connected to /ws
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')

    # Flush any initial events
    try:
        sio_client.get_received('/ws')
    except Exception:
        pass

    sio_client.emit('join_story', {'story_id': 1}, namespace='/ws')
    received = sio_client.get_received('/ws')
    names = [pkt['name'] for pkt in received]
    assert 'joined' in names
    # Unknown story: the snapshot comes back as an error payload
    assert 'error' in names


def test_join_requires_story_id(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('join_story', {}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'error' for pkt in received)


def test_ping_pong(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'pong' and pkt['args'][0] == {'n': 1} for pkt in received)


def test_room_receives_blind_vote_and_reveal(sio_client, pm, dev1, voting_story_id):
    sio_client.emit('join_story', {'story_id': voting_story_id}, namespace='/ws')
    received = sio_client.get_received('/ws')
    snapshot = next(pkt['args'][0] for pkt in received if pkt['name'] == 'participant_status')
    assert snapshot['status'] == 'voting'
    assert snapshot['voted_count'] == 0

    dev1.post('/api/votes', json={'story_id': voting_story_id, 'value': 13})
    events = {pkt['name']: pkt['args'][0] for pkt in sio_client.get_received('/ws')}
    assert 'vote_cast' in events
    assert 'value' not in events['vote_cast']

    pm.post(f'/api/stories/{voting_story_id}/reveal')
    events = {pkt['name']: pkt['args'][0] for pkt in sio_client.get_received('/ws')}
    assert events['round_completed']['final_estimate'] == 13
    assert events['round_completed']['reason'] == 'revealed'


def test_leave_story(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('leave_story', {'story_id': 3}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'left' for pkt in received)
