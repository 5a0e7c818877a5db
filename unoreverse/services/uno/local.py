"""Single-device game: one human against one to three bots."""
import logging
import random
import threading
import time
import uuid
from enum import Enum
from typing import Callable, List, Optional

from . import rules
from .bots import Difficulty, play_bot_turn
from .cards import RED
from .errors import GameFinished, NotYourTurn
from .scheduler import TurnScheduler

logger = logging.getLogger(__name__)

HUMAN = 'You'
BOT_NAMES = ('Sarah', 'Brian', 'Maya')


class LocalStatus(str, Enum):
    DEALING = 'dealing'
    IN_PROGRESS = 'in_progress'
    FINISHED = 'finished'


class LocalGame:
    def __init__(self, game_id: Optional[str] = None, difficulty: Difficulty = Difficulty.MEDIUM,
                 scheduler: Optional[TurnScheduler] = None, notify: Optional[Callable[[dict], None]] = None,
                 hand_size: int = 7, default_color: str = RED, conserve_deck: bool = False,
                 rng: Optional[random.Random] = None):
        self.id = game_id or uuid.uuid4().hex[:8]
        self.difficulty = Difficulty(difficulty)
        self.scheduler = scheduler or TurnScheduler()
        self.notify = notify
        self.hand_size = hand_size
        self.default_color = default_color
        self.conserve_deck = conserve_deck
        self.rng = rng or random.Random()
        self.last_active = time.time()
        self.status = LocalStatus.DEALING
        self.state: Optional[rules.GameState] = None
        self.last_events: List[dict] = []
        self._lock = threading.RLock()

    @property
    def bots(self) -> List[str]:
        return self.state.players[1:] if self.state else []

    @property
    def winner(self) -> Optional[str]:
        return self.state.winner if self.state else None

    def start_game(self, player_count: int = 2) -> None:
        if not 2 <= int(player_count) <= 4:
            raise ValueError('player_count must be between 2 and 4')
        with self._lock:
            self.last_active = time.time()
            self.scheduler.cancel_all()
            self.status = LocalStatus.DEALING
            players = [HUMAN] + list(BOT_NAMES[:int(player_count) - 1])
            self.state = rules.deal(players, self.hand_size, self.default_color, self.conserve_deck, self.rng)
            self.last_events = []
            self.status = LocalStatus.IN_PROGRESS
            logger.info(f"[local-start] game={self.id} players={players} top={self.state.top_card}")

    def restart(self, player_count: Optional[int] = None) -> None:
        self.start_game(player_count or (self.state.player_count if self.state else 2))

    def play_card(self, card_id: str, chosen_color: Optional[str] = None) -> List[dict]:
        with self._lock:
            self._require_human_turn()
            self.last_active = time.time()
            card = next((c for c in self.state.hand_of(HUMAN) if c.id == card_id), None)
            if card is not None and card.is_wild and chosen_color is None:
                chosen_color = self.default_color
            events = rules.play_card(self.state, HUMAN, card_id, chosen_color, self.rng)
            self._after_move(events)
            return events

    def draw_card(self) -> List[dict]:
        with self._lock:
            self._require_human_turn()
            self.last_active = time.time()
            events = rules.draw_turn(self.state, HUMAN, self.rng)
            self._after_move(events)
            return events

    def _require_human_turn(self) -> None:
        if self.status != LocalStatus.IN_PROGRESS:
            raise GameFinished('The game is over; restart to play again')
        if self.state.current_player != HUMAN:
            raise NotYourTurn(f"Waiting for {self.state.current_player}")

    def _after_move(self, events: List[dict]) -> None:
        self.last_events = list(events)
        self._emit(events)
        if self.state.winner is not None:
            self.status = LocalStatus.FINISHED
            logger.info(f"[local-finish] game={self.id} winner={self.state.winner}")
            return
        self._schedule_bot_if_needed()

    def _schedule_bot_if_needed(self) -> None:
        bot_id = self.state.current_player
        if bot_id == HUMAN:
            return
        self.scheduler.schedule(f"game={self.id} bot={bot_id}", self._run_bot_turn, bot_id, self.state)

    def _run_bot_turn(self, bot_id: str, expected_state: rules.GameState) -> None:
        with self._lock:
            # a restart swaps the state object; a stale turn must not touch the new game
            if (self.status != LocalStatus.IN_PROGRESS or self.state is not expected_state
                    or self.state.current_player != bot_id):
                logger.info(f"[bot-abort] game={self.id} bot={bot_id} no longer to move")
                return
            events = play_bot_turn(self.state, bot_id, self.difficulty, self.rng)
            self.last_events.extend(events)
            self._emit(events)
            if self.state.winner is not None:
                self.status = LocalStatus.FINISHED
                logger.info(f"[local-finish] game={self.id} winner={self.state.winner}")
                return
            self._schedule_bot_if_needed()

    def _emit(self, events: List[dict]) -> None:
        if not self.notify:
            return
        for event in events:
            self.notify(dict(event, game_id=self.id))

    def to_dict(self) -> dict:
        state = self.state
        if state is None:
            return {'id': self.id, 'status': self.status.value, 'difficulty': self.difficulty.value}
        return {
            'id': self.id,
            'status': self.status.value,
            'difficulty': self.difficulty.value,
            'players': [
                {'id': pid, 'is_bot': pid != HUMAN, 'card_count': len(state.hand_of(pid))}
                for pid in state.players
            ],
            'hand': [c.to_dict() for c in state.hand_of(HUMAN)],
            'top_card': state.top_card.to_dict() if state.top_card else None,
            'current_color': state.current_color,
            'current_turn': state.current_player,
            'is_reversed': state.is_reversed,
            'winner': state.winner,
            'last_events': self.last_events,
        }
