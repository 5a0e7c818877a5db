"""
Bot decision engine.

Three tiers share the same contract: given the legal cards (in hand order)
pick one, and when it is a wild pick a colour.
- easy: uniform random card and colour
- medium: first action card, else first legal card; colour = most held
- hard: wild4 with a big hand, draw2, skip, highest card in the current
  colour, any coloured card, finally a wild; colour = most held
"""
import logging
import random
from collections import Counter
from enum import Enum
from typing import List, Optional

from .cards import COLORS, DRAW2, SKIP, WILD4, Card
from . import rules

logger = logging.getLogger(__name__)


class Difficulty(str, Enum):
    EASY = 'easy'
    MEDIUM = 'medium'
    HARD = 'hard'


HARD_WILD4_HAND_SIZE = 5


def choose_card(legal: List[Card], hand: List[Card], difficulty: Difficulty,
                current_color: Optional[str] = None, rng: Optional[random.Random] = None) -> Optional[Card]:
    if not legal:
        return None
    rng = rng or random
    difficulty = Difficulty(difficulty)

    if difficulty == Difficulty.EASY:
        return rng.choice(legal)

    if difficulty == Difficulty.MEDIUM:
        for card in legal:
            if card.is_action:
                return card
        return legal[0]

    if len(hand) > HARD_WILD4_HAND_SIZE:
        for card in legal:
            if card.value == WILD4:
                return card
    for wanted in (DRAW2, SKIP):
        for card in legal:
            if card.value == wanted:
                return card
    same_color = [c for c in legal if c.color == current_color]
    if same_color:
        # max() keeps the first of equal ranks
        return max(same_color, key=lambda c: c.rank)
    for card in legal:
        if not card.is_wild:
            return card
    return legal[0]


def choose_wild_color(hand: List[Card], difficulty: Difficulty, rng: Optional[random.Random] = None) -> str:
    rng = rng or random
    if Difficulty(difficulty) == Difficulty.EASY:
        return rng.choice(COLORS)
    counts = Counter(c.color for c in hand if not c.is_wild)
    if not counts:
        return COLORS[0]
    return max(counts, key=counts.get)


def play_bot_turn(state: rules.GameState, bot_id: str, difficulty: Difficulty,
                  rng: Optional[random.Random] = None) -> List[dict]:
    """Run one complete bot turn: play a chosen card or draw one."""
    hand = state.hands.get(bot_id)
    if not hand:
        logger.warning(f"[bot-empty-hand] bot={bot_id} has no cards; passing turn")
        rules.advance_turn(state)
        return [{'type': 'pass', 'player': bot_id}]

    legal = rules.legal_cards(state, bot_id)
    card = choose_card(legal, hand, difficulty, state.current_color, rng)
    if card is None:
        return rules.draw_turn(state, bot_id, rng)

    color = None
    if card.is_wild:
        # the card being played does not count toward the colour choice
        color = choose_wild_color([c for c in hand if c.id != card.id], difficulty, rng)
    logger.info(f"[bot-turn] bot={bot_id} difficulty={Difficulty(difficulty).value} card={card} color={color}")
    return rules.play_card(state, bot_id, card.id, color, rng)
