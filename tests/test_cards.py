import random
from collections import Counter

from unoreverse.services.uno.cards import (
    COLORS, COLORED_VALUES, DECK_SIZE, WILD, WILD4, Card, build_deck, fresh_card, shuffle,
)


def test_deck_has_108_cards():
    deck = build_deck()
    assert len(deck) == DECK_SIZE == 108
    assert len({c.id for c in deck}) == 108


def test_deck_multiplicities():
    counts = Counter((c.color, c.value) for c in build_deck())
    for color in COLORS:
        assert counts[(color, '0')] == 1
        for value in COLORED_VALUES[1:]:
            assert counts[(color, value)] == 2, (color, value)
    assert counts[(WILD, WILD)] == 4
    assert counts[(WILD, WILD4)] == 4


def test_seeded_shuffle_is_repeatable_and_a_permutation():
    a = build_deck(random.Random(7))
    b = build_deck(random.Random(7))
    assert [c.id for c in a] == [c.id for c in b]
    assert sorted(int(c.id) for c in a) == list(range(108))


def test_shuffle_is_in_place():
    cards = [Card(str(i), 'red', str(i % 10)) for i in range(10)]
    result = shuffle(cards, random.Random(1))
    assert result is cards
    assert sorted(c.id for c in cards) == sorted(str(i) for i in range(10))


def test_fresh_cards_are_never_wild():
    rng = random.Random(3)
    for _ in range(200):
        c = fresh_card(rng)
        assert c.color in COLORS
        assert c.value in COLORED_VALUES


def test_card_rank_and_round_trip():
    assert Card('1', 'blue', '9').rank == 9
    assert Card('2', 'blue', 'skip').rank == 0
    assert Card('3', WILD, WILD4).is_action
    c = Card('x', 'green', 'reverse')
    assert Card.from_dict(c.to_dict()) == c
