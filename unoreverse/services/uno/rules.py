"""
Rule engine: legality, effect resolution and turn arithmetic.

All functions operate on a GameState in place and return a list of
notification dicts describing what happened, e.g.
``{'type': 'draw2', 'player': 'You', 'target': 'Sarah', 'count': 2}``.
"""
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .cards import (
    COLORS, DRAW2, RED, REVERSE, SKIP, WILD, WILD4,
    Card, build_deck, cards_from_dicts, cards_to_dicts, fresh_card, shuffle,
)
from .errors import GameFinished, IllegalMove, NotYourTurn

logger = logging.getLogger(__name__)

FORWARD = 1
REVERSED = -1

PENALTIES = {DRAW2: 2, WILD4: 4}


@dataclass
class GameState:
    players: List[str]
    hands: Dict[str, List[Card]]
    discard_pile: List[Card]
    current_color: str
    turn_index: int = 0
    direction: int = FORWARD
    deck: List[Card] = field(default_factory=list)
    conserve_deck: bool = False
    winner: Optional[str] = None

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def current_player(self) -> str:
        return self.players[self.turn_index]

    @property
    def top_card(self) -> Optional[Card]:
        return self.discard_pile[-1] if self.discard_pile else None

    @property
    def is_reversed(self) -> bool:
        return self.direction == REVERSED

    def hand_of(self, player_id: str) -> List[Card]:
        return self.hands.setdefault(player_id, [])

    def card_count(self) -> int:
        return len(self.deck) + sum(len(h) for h in self.hands.values()) + len(self.discard_pile)

    def to_record(self) -> dict:
        """Serialize to the ``game_state`` shape stored on a room record."""
        return {
            'deck': cards_to_dicts(self.deck),
            'playerHands': {pid: cards_to_dicts(self.hand_of(pid)) for pid in self.players},
            'discardPile': cards_to_dicts(self.discard_pile),
            'currentColor': self.current_color,
            'currentTurn': self.current_player,
            'isReversed': self.is_reversed,
            'conserveDeck': self.conserve_deck,
        }

    @classmethod
    def from_record(cls, game_state: dict, players: List[str], winner: Optional[str] = None) -> 'GameState':
        current = game_state.get('currentTurn')
        return cls(
            players=list(players),
            hands={pid: cards_from_dicts(game_state.get('playerHands', {}).get(pid)) for pid in players},
            discard_pile=cards_from_dicts(game_state.get('discardPile')),
            current_color=game_state.get('currentColor') or RED,
            turn_index=players.index(current) if current in players else 0,
            direction=REVERSED if game_state.get('isReversed') else FORWARD,
            deck=cards_from_dicts(game_state.get('deck')),
            conserve_deck=bool(game_state.get('conserveDeck')),
            winner=winner,
        )


def can_play(card: Card, top_card: Card, current_color: str) -> bool:
    if card.color == WILD:
        return True
    return card.color == current_color or card.value == top_card.value


def legal_cards(state: GameState, player_id: str) -> List[Card]:
    top = state.top_card
    return [c for c in state.hand_of(player_id) if can_play(c, top, state.current_color)]


def next_turn_index(current: int, direction: int, player_count: int) -> int:
    step = -1 if direction == REVERSED else 1
    return (current + step + player_count) % player_count


def advance_turn(state: GameState, steps: int = 1) -> None:
    for _ in range(steps):
        state.turn_index = next_turn_index(state.turn_index, state.direction, state.player_count)


def next_player(state: GameState) -> str:
    return state.players[next_turn_index(state.turn_index, state.direction, state.player_count)]


def deal(players: List[str], hand_size: int = 7, default_color: str = RED,
         conserve_deck: bool = False, rng: Optional[random.Random] = None) -> GameState:
    """Build and shuffle a deck, deal ``hand_size`` cards each and flip a starting card.

    A wild starting card takes ``default_color``; the starting card's own
    effect is never applied.
    """
    if not 2 <= len(players) <= 4:
        raise ValueError('UNO needs between 2 and 4 players')
    deck = build_deck(rng)
    hands = {}
    for pid in players:
        hands[pid] = deck[:hand_size]
        del deck[:hand_size]
    first = deck.pop()
    return GameState(
        players=list(players),
        hands=hands,
        discard_pile=[first],
        current_color=default_color if first.is_wild else first.color,
        deck=deck,
        conserve_deck=conserve_deck,
    )


def _recycle_discard(state: GameState, rng) -> None:
    top = state.discard_pile.pop()
    state.deck.extend(state.discard_pile)
    state.discard_pile = [top]
    shuffle(state.deck, rng)
    logger.info(f"[reshuffle] recycled {len(state.deck)} cards into the deck")


def draw_cards(state: GameState, player_id: str, count: int, rng: Optional[random.Random] = None) -> List[Card]:
    """Give ``count`` cards to a player.

    Without deck conservation every card is freshly manufactured; with it,
    cards come off the deck and the discard pile is recycled when it runs out.
    """
    drawn = []
    for _ in range(count):
        if not state.conserve_deck:
            drawn.append(fresh_card(rng))
            continue
        if not state.deck and len(state.discard_pile) > 1:
            _recycle_discard(state, rng)
        if not state.deck:
            break
        drawn.append(state.deck.pop())
    state.hand_of(player_id).extend(drawn)
    return drawn


def _check_turn(state: GameState, player_id: str) -> None:
    if state.winner is not None:
        raise GameFinished(f"{state.winner} already won this game")
    if state.current_player != player_id:
        raise NotYourTurn(f"It is {state.current_player}'s turn")


def resolve_effect(card: Card, state: GameState, player_id: str,
                   rng: Optional[random.Random] = None) -> List[dict]:
    """Apply the played card's effect and move the turn pointer."""
    events = []
    steps = 1
    if card.value == REVERSE:
        state.direction = -state.direction
        # With two players a reverse hands the turn straight back.
        if state.player_count == 2:
            steps = 2
        events.append({'type': 'reverse', 'player': player_id, 'reversed': state.is_reversed})
    elif card.value == SKIP:
        events.append({'type': 'skip', 'player': player_id, 'target': next_player(state)})
        steps = 2
    elif card.value in PENALTIES:
        target = next_player(state)
        count = PENALTIES[card.value]
        draw_cards(state, target, count, rng)
        event = {'type': card.value, 'player': player_id, 'target': target, 'count': count}
        if card.value == WILD4:
            event['color'] = state.current_color
        events.append(event)
        steps = 2
    elif card.value == WILD:
        events.append({'type': 'wild', 'player': player_id, 'color': state.current_color})
    advance_turn(state, steps)
    return events


def play_card(state: GameState, player_id: str, card_id: str, chosen_color: Optional[str] = None,
              rng: Optional[random.Random] = None) -> List[dict]:
    """Validate and apply a play. Rejected plays leave the state untouched."""
    _check_turn(state, player_id)
    hand = state.hand_of(player_id)
    card = next((c for c in hand if c.id == card_id), None)
    if card is None:
        raise IllegalMove(f"{player_id} does not hold card {card_id}")
    if not can_play(card, state.top_card, state.current_color):
        raise IllegalMove(f"{card} cannot be played on {state.top_card} ({state.current_color})")
    if card.is_wild and chosen_color not in COLORS:
        raise IllegalMove('A wild card needs a colour: one of ' + ', '.join(COLORS))

    hand.remove(card)
    state.discard_pile.append(card)
    state.current_color = chosen_color if card.is_wild else card.color

    if not hand:
        state.winner = player_id
        return [{'type': 'game_over', 'player': player_id, 'winner': player_id}]
    return resolve_effect(card, state, player_id, rng)


def draw_turn(state: GameState, player_id: str, rng: Optional[random.Random] = None) -> List[dict]:
    """Draw one card instead of playing; the turn passes."""
    _check_turn(state, player_id)
    drawn = draw_cards(state, player_id, 1, rng)
    advance_turn(state)
    return [{'type': 'draw', 'player': player_id, 'count': len(drawn)}]
