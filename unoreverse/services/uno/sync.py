"""
Two-player synchronisation over a shared room record.

Each player owns a RoomSession holding a local mirror of the room's
game_state. A move is applied to the mirror first, then re-applied to a
freshly read record and written back with the version that was read. A
version mismatch forces a re-read and another attempt; a store failure is
logged and left for the next change notification to repair.
"""
import logging
import random
from typing import Callable, List, Optional

from . import rules
from .cards import RED
from .errors import (
    GameFinished, NotInRoom, NotYourTurn, RoomNotFound, StaleRecordError, StoreWriteError, UnoError,
)
from .rooms import RoomStatus, transition

logger = logging.getLogger(__name__)


class RoomSession:
    def __init__(self, store, room_code: str, player_id: str, hand_size: int = 7,
                 default_color: str = RED, conserve_deck: bool = False, max_retries: int = 3,
                 rng: Optional[random.Random] = None):
        self.store = store
        self.room_code = room_code
        self.player_id = str(player_id)
        self.hand_size = hand_size
        self.default_color = default_color
        self.conserve_deck = conserve_deck
        self.max_retries = max_retries
        self.rng = rng or random.Random()

        self.record: Optional[dict] = None
        self.version = -1
        self.status: Optional[RoomStatus] = None
        self.winner_id: Optional[str] = None
        self.mirror: Optional[rules.GameState] = None
        self.is_my_turn = False
        self.subscription = None

    # ---- subscription / reconciliation ----

    def attach(self) -> 'RoomSession':
        record = self.store.get(self.room_code)
        if record is None:
            raise RoomNotFound(f"Room {self.room_code} does not exist")
        if self.player_id not in (record['host_id'], record['guest_id']):
            raise NotInRoom(f"{self.player_id} is not part of room {self.room_code}")
        self.subscription = self.store.subscribe(self.room_code, self._on_change)
        self._on_change(record)
        return self

    def detach(self) -> None:
        if self.subscription is not None:
            self.subscription.unsubscribe()
            self.subscription = None

    @property
    def players(self) -> List[str]:
        return [self.record['host_id'], self.record['guest_id']]

    @property
    def is_host(self) -> bool:
        return self.record is not None and self.record['host_id'] == self.player_id

    @property
    def opponent_id(self) -> str:
        host, guest = self.players
        return guest if self.player_id == host else host

    def _on_change(self, record: dict) -> None:
        if not self.reconcile(record):
            return
        if self.is_host and self.status == RoomStatus.READY:
            self.deal()

    def reconcile(self, record: dict) -> bool:
        """Replace the mirror wholesale with a pushed record. Older versions are ignored."""
        if record['version'] <= self.version:
            return False
        self.record = record
        self.version = record['version']
        self.status = RoomStatus(record['status'])
        self.winner_id = record.get('winner_id')
        game_state = record.get('game_state')
        self.mirror = rules.GameState.from_record(game_state, self.players, self.winner_id) if game_state else None
        self.is_my_turn = (
            self.status == RoomStatus.PLAYING
            and self.mirror is not None
            and self.mirror.current_player == self.player_id
        )
        return True

    def resync(self) -> None:
        record = self.store.get(self.room_code)
        if record is not None:
            self.version = -1
            self.reconcile(record)

    # ---- handshake ----

    def signal_ready(self) -> Optional[dict]:
        """Guest announces arrival; the host deals once it sees ``ready``."""
        if self.is_host:
            raise NotInRoom('Only the guest signals ready')

        def build(fresh):
            if RoomStatus(fresh['status']) != RoomStatus.WAITING:
                return None
            return {'status': transition(fresh['status'], RoomStatus.READY).value}

        return self._write('ready', build)

    def deal(self) -> Optional[dict]:
        """Host-only: deal both hands and start play. Does nothing unless the room is ready."""
        if not self.is_host:
            raise NotInRoom('Only the host deals')

        def build(fresh):
            if RoomStatus(fresh['status']) != RoomStatus.READY:
                return None
            status = transition(fresh['status'], RoomStatus.PLAYING)
            state = rules.deal([fresh['host_id'], fresh['guest_id']], self.hand_size,
                               self.default_color, self.conserve_deck, self.rng)
            return {'status': status.value, 'game_state': state.to_record()}

        record = self._write('deal', build)
        if record is not None:
            logger.info(f"[room-deal] room={self.room_code} host={self.player_id} version={record['version']}")
        return record

    # ---- moves ----

    def play_card(self, card_id: str, chosen_color: Optional[str] = None) -> List[dict]:
        self._require_turn()
        card = next((c for c in self.mirror.hand_of(self.player_id) if c.id == card_id), None)
        if card is not None and card.is_wild and chosen_color is None:
            chosen_color = self.default_color
        return self._move('play', lambda state: rules.play_card(state, self.player_id, card_id, chosen_color, self.rng))

    def draw_card(self) -> List[dict]:
        self._require_turn()
        return self._move('draw', lambda state: rules.draw_turn(state, self.player_id, self.rng))

    def _require_turn(self) -> None:
        if self.status == RoomStatus.FINISHED:
            raise GameFinished(f"Room {self.room_code} is finished")
        if self.status != RoomStatus.PLAYING or self.mirror is None:
            raise NotYourTurn(f"Room {self.room_code} is not playing yet")
        if self.mirror.current_player != self.player_id:
            raise NotYourTurn(f"It is {self.mirror.current_player}'s turn")

    def _move(self, label: str, apply: Callable[[rules.GameState], List[dict]]) -> List[dict]:
        # Optimistic: the mirror changes first; invalid moves raise here untouched.
        events = apply(self.mirror)
        self.is_my_turn = False
        committed = {}

        def build(fresh):
            if not fresh.get('game_state'):
                raise NotYourTurn(f"Room {self.room_code} has no game in progress")
            state = rules.GameState.from_record(fresh['game_state'], [fresh['host_id'], fresh['guest_id']],
                                                fresh.get('winner_id'))
            committed['events'] = apply(state)
            fields = {'game_state': state.to_record()}
            if state.winner is not None:
                fields['status'] = transition(fresh['status'], RoomStatus.FINISHED).value
                fields['winner_id'] = state.winner
            return fields

        try:
            self._write(label, build)
        except UnoError:
            # the shared record disagreed with our mirror; take the record's word
            self.resync()
            raise
        return committed.get('events', events)

    def _write(self, label: str, build: Callable[[dict], Optional[dict]]) -> Optional[dict]:
        for attempt in range(1, self.max_retries + 2):
            fresh = self.store.get(self.room_code)
            if fresh is None:
                raise RoomNotFound(f"Room {self.room_code} does not exist")
            fields = build(fresh)
            if fields is None:
                return None
            try:
                return self.store.update(self.room_code, fields, expected_version=fresh['version'])
            except StaleRecordError:
                logger.info(f"[room-stale] room={self.room_code} player={self.player_id} op={label} attempt={attempt}")
            except StoreWriteError:
                logger.exception(f"[room-write-failed] room={self.room_code} player={self.player_id} op={label}")
                return None
        logger.warning(f"[room-write-abandoned] room={self.room_code} player={self.player_id} op={label}")
        return None

    def to_dict(self) -> dict:
        view = {
            'room_code': self.room_code,
            'player_id': self.player_id,
            'is_host': self.is_host,
            'status': self.status.value if self.status else None,
            'winner_id': self.winner_id,
            'version': self.version,
            'is_my_turn': self.is_my_turn,
        }
        if self.mirror is not None:
            view.update({
                'hand': [c.to_dict() for c in self.mirror.hand_of(self.player_id)],
                'opponent_card_count': len(self.mirror.hand_of(self.opponent_id)),
                'top_card': self.mirror.top_card.to_dict() if self.mirror.top_card else None,
                'current_color': self.mirror.current_color,
                'current_turn': self.mirror.current_player,
                'is_reversed': self.mirror.is_reversed,
            })
        return view
