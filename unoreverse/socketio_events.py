from flask_socketio import join_room, leave_room, emit
from unoreverse.services.uno.store import room_store


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_join_room(data):
    """Subscribe this socket to pushed changes of one room record."""
    room_code = (data or {}).get('room_code')
    if not room_code:
        emit('error', {'message': 'room_code is required'})
        return
    channel = f"room:{room_code}"
    join_room(channel)
    emit('joined', {'room': channel})
    record = room_store.get(room_code)
    if record is not None:
        emit('room_update', record)


def handle_leave_room(data):
    room_code = (data or {}).get('room_code')
    if not room_code:
        emit('error', {'message': 'room_code is required'})
        return
    channel = f"room:{room_code}"
    leave_room(channel)
    emit('left', {'room': channel})


def handle_watch_local(data):
    """Receive toast-style notifications (skip, draw2, game over...) for a local game."""
    game_id = (data or {}).get('game_id')
    if not game_id:
        emit('error', {'message': 'game_id is required'})
        return
    channel = f"local:{game_id}"
    join_room(channel)
    emit('joined', {'room': channel})


def handle_ping(data):
    emit('pong', data or {})


HANDLERS = (
    ('connect', handle_connect),
    ('join_room', handle_join_room),
    ('leave_room', handle_leave_room),
    ('watch_local', handle_watch_local),
    ('ping', handle_ping),
)


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    from unoreverse import socketio

    for event, handler in HANDLERS:
        socketio.on_event(event, handler, namespace='/ws')
        if testing:
            socketio.on_event(event, handler, namespace='/')
