from flask import Blueprint, jsonify, request, current_app
from typing import Dict, Optional
import time
from unoreverse import socketio
from unoreverse.services.uno.bots import Difficulty
from unoreverse.services.uno.local import LocalGame, LocalStatus
from unoreverse.services.uno.scheduler import TurnScheduler


uno = Blueprint('uno', __name__)

# Single-player games live in memory only
_local_games: Dict[str, LocalGame] = {}


def _push_event(event: dict) -> None:
    socketio.emit('uno_event', event, to=f"local:{event['game_id']}", namespace='/ws')


def _make_scheduler(app) -> TurnScheduler:
    # Bot turns run inline in tests for deterministic control flow
    if app.config.get('TESTING'):
        return TurnScheduler()
    return TurnScheduler(
        delay=float(app.config.get('BOT_THINK_DELAY_SEC', 1.0)),
        start_task=socketio.start_background_task,
        sleep=socketio.sleep,
    )


def evict_stale_games(max_idle_sec: float, now: Optional[float] = None) -> int:
    """Drop finished games and games nobody has touched for ``max_idle_sec``."""
    now = time.time() if now is None else now
    stale = [
        gid for gid, g in _local_games.items()
        if g.status == LocalStatus.FINISHED or now - g.last_active > max_idle_sec
    ]
    for gid in stale:
        _local_games.pop(gid).scheduler.cancel_all()
    return len(stale)


def new_local_game(player_count=2, difficulty=None) -> LocalGame:
    app = current_app._get_current_object()
    cfg = app.config
    evicted = evict_stale_games(float(cfg.get('LOCAL_GAME_IDLE_SEC', 1800)))
    if evicted:
        app.logger.info(f"[local-evict] dropped {evicted} finished or idle game(s)")
    game = LocalGame(
        difficulty=Difficulty(difficulty or cfg.get('UNO_DEFAULT_DIFFICULTY', 'medium')),
        scheduler=_make_scheduler(app),
        notify=_push_event,
        hand_size=int(cfg.get('UNO_HAND_SIZE', 7)),
        default_color=cfg.get('UNO_DEFAULT_COLOR', 'red'),
        conserve_deck=bool(cfg.get('UNO_CONSERVE_DECK', False)),
    )
    game.start_game(player_count)
    _local_games[game.id] = game
    app.logger.info(f"[local-create] game={game.id} players={player_count} difficulty={game.difficulty.value}")
    return game


def _game_not_found():
    return jsonify({'error': 'Game not found'}), 404


@uno.route('/local', methods=['POST'])
def create_local_game():
    data = request.get_json(silent=True) or {}
    try:
        player_count = int(data.get('player_count', 2))
        game = new_local_game(player_count, data.get('difficulty'))
    except (TypeError, ValueError) as exc:
        return jsonify({'error': str(exc)}), 400
    return jsonify(game.to_dict()), 201


@uno.route('/local/<string:game_id>', methods=['GET'])
def get_local_game(game_id):
    game = _local_games.get(game_id)
    if game is None:
        return _game_not_found()
    return jsonify(game.to_dict())


@uno.route('/local/<string:game_id>/play', methods=['POST'])
def play_local_card(game_id):
    game = _local_games.get(game_id)
    if game is None:
        return _game_not_found()
    data = request.get_json(silent=True) or {}
    card_id = data.get('card_id')
    if card_id is None:
        return jsonify({'error': 'card_id is required'}), 400
    events = game.play_card(str(card_id), data.get('color'))
    payload = game.to_dict()
    payload['events'] = events
    return jsonify(payload)


@uno.route('/local/<string:game_id>/draw', methods=['POST'])
def draw_local_card(game_id):
    game = _local_games.get(game_id)
    if game is None:
        return _game_not_found()
    events = game.draw_card()
    payload = game.to_dict()
    payload['events'] = events
    return jsonify(payload)


@uno.route('/local/<string:game_id>/restart', methods=['POST'])
def restart_local_game(game_id):
    game = _local_games.get(game_id)
    if game is None:
        return _game_not_found()
    data = request.get_json(silent=True) or {}
    try:
        game.restart(int(data['player_count']) if data.get('player_count') else None)
    except (TypeError, ValueError) as exc:
        return jsonify({'error': str(exc)}), 400
    return jsonify(game.to_dict())
