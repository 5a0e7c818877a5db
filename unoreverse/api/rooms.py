from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from typing import Dict, Tuple
from unoreverse import db
from unoreverse.models import User
from unoreverse.api.uno import new_local_game
from unoreverse.services.uno.errors import NotInRoom
from unoreverse.services.uno.rooms import RoomStatus, create_room, invite_link
from unoreverse.services.uno.store import room_store
from unoreverse.services.uno.sync import RoomSession


rooms = Blueprint('rooms', __name__)

# One sync controller per (room_code, player_id)
_sessions: Dict[Tuple[str, str], RoomSession] = {}


def _session_for(room_code: str, player_id) -> RoomSession:
    key = (room_code, str(player_id))
    session = _sessions.get(key)
    if session is None:
        cfg = current_app.config
        session = RoomSession(
            room_store,
            room_code,
            str(player_id),
            hand_size=int(cfg.get('UNO_HAND_SIZE', 7)),
            default_color=cfg.get('UNO_DEFAULT_COLOR', 'red'),
            conserve_deck=bool(cfg.get('UNO_CONSERVE_DECK', False)),
            max_retries=int(cfg.get('ROOM_WRITE_RETRIES', 3)),
        ).attach()
        _sessions[key] = session
    return session


def reset_sessions() -> None:
    for session in _sessions.values():
        session.detach()
    _sessions.clear()


@rooms.route('/create', methods=['POST'])
@login_required
def create():
    data = request.get_json(silent=True) or {}
    guest_id = data.get('guest_id')
    if guest_id is None:
        return jsonify({'error': 'guest_id is required'}), 400
    try:
        guest = db.session.get(User, int(guest_id))
    except (TypeError, ValueError):
        guest = None
    if guest is None:
        return jsonify({'error': 'Guest not found'}), 404
    if guest.id == current_user.id:
        return jsonify({'error': 'You cannot invite yourself'}), 400

    base_url = current_app.config.get('INVITE_BASE_URL', '')
    code = create_room(room_store, current_user.id, guest.id, base_url)
    session = _session_for(code, current_user.id)
    current_app.logger.info(f"[room-create] room={code} host={current_user.id} guest={guest.id}")
    return jsonify({
        'room_code': code,
        'invite_link': invite_link(code, base_url),
        'room': session.to_dict(),
    }), 201


@rooms.route('/join', methods=['POST'])
@login_required
def join():
    data = request.get_json(silent=True) or {}
    code = data.get('room_code')
    if not code:
        return jsonify({'error': 'room_code is required'}), 400

    record = room_store.get(code)
    if record is None:
        current_app.logger.info(f"[room-missing] room={code} user={current_user.id} falling back to single-player")
        game = new_local_game(2)
        return jsonify({
            'fallback': 'local',
            'message': 'Room not found. Starting a single-player game instead.',
            'game': game.to_dict(),
        })

    player_id = str(current_user.id)
    if player_id not in (record['host_id'], record['guest_id']):
        raise NotInRoom('You were not invited to this room')

    # The host's controller must be listening before the guest signals ready
    _session_for(code, record['host_id'])
    session = _session_for(code, player_id)
    if not session.is_host and session.status == RoomStatus.WAITING:
        session.signal_ready()
    return jsonify(session.to_dict())


@rooms.route('/<string:room_code>/state', methods=['GET'])
@login_required
def state(room_code):
    return jsonify(_session_for(room_code, current_user.id).to_dict())


@rooms.route('/<string:room_code>/play', methods=['POST'])
@login_required
def play(room_code):
    data = request.get_json(silent=True) or {}
    card_id = data.get('card_id')
    if card_id is None:
        return jsonify({'error': 'card_id is required'}), 400
    session = _session_for(room_code, current_user.id)
    events = session.play_card(str(card_id), data.get('color'))
    payload = session.to_dict()
    payload['events'] = events
    return jsonify(payload)


@rooms.route('/<string:room_code>/draw', methods=['POST'])
@login_required
def draw(room_code):
    session = _session_for(room_code, current_user.id)
    events = session.draw_card()
    payload = session.to_dict()
    payload['events'] = events
    return jsonify(payload)
