def drain(sio_client):
    """Group everything received so far by event name."""
    grouped = {}
    for pkt in sio_client.get_received():
        grouped.setdefault(pkt['name'], []).append(pkt['args'][0] if pkt['args'] else None)
    return grouped


def open_room(make_sio_client):
    alice = make_sio_client()
    bob = make_sio_client()
    alice_id = drain(alice)['connected'][0]['participant_id']
    bob_id = drain(bob)['connected'][0]['participant_id']

    alice.emit('create-room', 'Alice')
    code = drain(alice)['room-created'][0]['room_code']
    bob.emit('join-room', {'roomCode': code, 'playerName': 'Bob'})
    return alice, bob, alice_id, bob_id, code


def test_socket_connect_assigns_participant(sio_client):
    assert sio_client.is_connected()
    received = drain(sio_client)
    assert received['connected'][0]['participant_id']


def test_create_and_join_broadcasts(make_sio_client):
    alice, bob, alice_id, bob_id, code = open_room(make_sio_client)

    bob_events = drain(bob)
    joined = bob_events['joined-room'][0]
    assert joined['room_code'] == code
    assert joined['player_id'] == bob_id
    assert bob_events['player-joined'][0]['player']['color'] == 'green'

    alice_events = drain(alice)
    assert 'joined-room' not in alice_events
    announced = alice_events['player-joined'][0]
    assert announced['player']['name'] == 'Bob'
    assert announced['game_state']['player_count'] == 2


def test_join_unknown_room_errors_only_to_requester(sio_client):
    drain(sio_client)
    sio_client.emit('join-room', {'room_code': 'NOPE00', 'player_name': 'Bob'})
    received = drain(sio_client)
    assert received['room-error'][0]['code'] == 'ROOM_NOT_FOUND'


def test_opening_six_and_extension(flask_app, make_sio_client, dice):
    flask_app.extensions['ludo_rooms'].turns.rng = dice
    alice, bob, alice_id, bob_id, code = open_room(make_sio_client)

    bob.emit('start-game', code)
    assert drain(bob)['game-error'][0]['code'] == 'NOT_AUTHORIZED'

    alice.emit('start-game', code)
    assert drain(bob)['game-started'][0]['game_state']['game_started'] is True
    drain(alice)

    bob.emit('roll-dice', code)
    assert drain(bob)['game-error'][0]['code'] == 'NOT_YOUR_TURN'
    assert drain(alice) == {}

    dice.push(6)
    alice.emit('roll-dice', {'room_code': code})
    rolled = drain(bob)['dice-rolled'][0]
    assert rolled['dice_value'] == 6
    assert rolled['movable_pieces'] == [0, 1, 2, 3]
    assert rolled['can_roll_again'] is True
    drain(alice)

    alice.emit('move-piece', {'roomCode': code, 'pieceIndex': 0})
    moved = drain(bob)['piece-moved'][0]
    assert moved['player_color'] == 'red'
    assert moved['new_position']['position'] == 1
    assert moved['another_turn'] is True
    assert moved['game_state']['current_player_id'] == alice_id
    drain(alice)

    dice.push(3)
    alice.emit('roll-dice', code)
    alice_events = drain(alice)
    assert alice_events['dice-rolled'][0]['movable_pieces'] == [0]
    assert 'turn-switched' not in alice_events


def test_forfeited_roll_switches_turn(flask_app, make_sio_client, dice):
    flask_app.extensions['ludo_rooms'].turns.rng = dice
    alice, bob, alice_id, bob_id, code = open_room(make_sio_client)
    alice.emit('start-game', code)
    drain(alice)
    drain(bob)

    dice.push(2)
    alice.emit('roll-dice', code)
    bob_events = drain(bob)
    assert bob_events['dice-rolled'][0]['dice_value'] == 2
    assert bob_events['turn-switched'][0]['current_player_id'] == bob_id


def test_bad_move_payload_is_rejected(flask_app, make_sio_client, dice):
    flask_app.extensions['ludo_rooms'].turns.rng = dice
    alice, bob, alice_id, bob_id, code = open_room(make_sio_client)
    alice.emit('start-game', code)
    dice.push(6)
    alice.emit('roll-dice', code)
    drain(alice)
    drain(bob)

    alice.emit('move-piece', {'roomCode': code, 'pieceIndex': 'zero'})
    assert drain(alice)['game-error'][0]['code'] == 'ILLEGAL_MOVE'
    assert drain(bob) == {}


def test_host_disconnect_migrates_host(make_sio_client):
    alice, bob, alice_id, bob_id, code = open_room(make_sio_client)
    drain(bob)

    alice.disconnect()
    left = drain(bob)['player-left'][0]
    assert left['player_id'] == alice_id
    assert left['host_id'] == bob_id
    assert left['game_state']['players'][0]['is_host'] is True


def test_last_disconnect_destroys_room(flask_app, make_sio_client, client):
    alice, bob, alice_id, bob_id, code = open_room(make_sio_client)
    alice.disconnect()
    assert client.get(f'/api/rooms/{code}/state').status_code == 200
    bob.disconnect()
    assert client.get(f'/api/rooms/{code}/state').status_code == 404


def test_explicit_leave_keeps_socket(make_sio_client):
    alice, bob, alice_id, bob_id, code = open_room(make_sio_client)
    drain(alice)
    bob.emit('leave-room')
    assert drain(alice)['player-left'][0]['player_id'] == bob_id
    assert bob.is_connected()
    drain(bob)
    # Bob is no longer subscribed to the room
    alice.emit('start-game', code)
    assert 'game-error' in drain(alice)
    assert drain(bob) == {}
