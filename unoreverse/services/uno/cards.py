"""
Card and deck model.

A standard deck has 108 cards:
- per colour: one "0", two each of "1"-"9", skip, reverse and draw2
- four wild and four wild4
"""
import random
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional

RED = 'red'
BLUE = 'blue'
GREEN = 'green'
YELLOW = 'yellow'
WILD = 'wild'

COLORS = (RED, BLUE, GREEN, YELLOW)

NUMBERS = tuple(str(n) for n in range(10))
SKIP = 'skip'
REVERSE = 'reverse'
DRAW2 = 'draw2'
WILD4 = 'wild4'

COLORED_VALUES = NUMBERS + (SKIP, REVERSE, DRAW2)
ACTION_VALUES = (SKIP, REVERSE, DRAW2, WILD4)

DECK_SIZE = 108


@dataclass(frozen=True)
class Card:
    id: str
    color: str
    value: str

    @property
    def is_wild(self) -> bool:
        return self.color == WILD

    @property
    def is_action(self) -> bool:
        return self.value in ACTION_VALUES

    @property
    def rank(self) -> int:
        """Numeric face value; action and wild cards rank 0."""
        return int(self.value) if self.value in NUMBERS else 0

    def to_dict(self) -> Dict[str, str]:
        return {'id': self.id, 'color': self.color, 'value': self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> 'Card':
        return cls(id=str(data['id']), color=data['color'], value=data['value'])

    def __str__(self):
        return f"{self.color}:{self.value}"


def shuffle(cards: List[Card], rng: Optional[random.Random] = None) -> List[Card]:
    """Fisher-Yates shuffle, in place. Returns the same list."""
    rng = rng or random
    for i in range(len(cards) - 1, 0, -1):
        j = rng.randint(0, i)
        cards[i], cards[j] = cards[j], cards[i]
    return cards


def build_deck(rng: Optional[random.Random] = None) -> List[Card]:
    deck = []
    next_id = 0
    for color in COLORS:
        for value in COLORED_VALUES:
            copies = 1 if value == '0' else 2
            for _ in range(copies):
                deck.append(Card(str(next_id), color, value))
                next_id += 1
    for _ in range(4):
        deck.append(Card(str(next_id), WILD, WILD))
        deck.append(Card(str(next_id + 1), WILD, WILD4))
        next_id += 2
    return shuffle(deck, rng)


def fresh_card(rng: Optional[random.Random] = None) -> Card:
    """Manufacture a random coloured card that does not come from any deck."""
    rng = rng or random
    return Card(f"f-{uuid.uuid4().hex[:12]}", rng.choice(COLORS), rng.choice(COLORED_VALUES))


def cards_to_dicts(cards: List[Card]) -> List[Dict[str, str]]:
    return [c.to_dict() for c in cards]


def cards_from_dicts(items) -> List[Card]:
    return [Card.from_dict(c) for c in items or []]
