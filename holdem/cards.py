from __future__ import annotations

import random
from dataclasses import dataclass
from typing import List, Optional, Sequence

RANKS = "23456789TJQKA"
SUITS = "shcd"
DECK_SIZE = len(RANKS) * len(SUITS)


@dataclass(frozen=True)
class Card:
    rank: str
    suit: str

    def __post_init__(self) -> None:
        if self.rank not in RANKS:
            raise ValueError(f"Invalid rank: {self.rank}")
        if self.suit not in SUITS:
            raise ValueError(f"Invalid suit: {self.suit}")

    @property
    def label(self) -> str:
        return f"{self.rank}{self.suit}"

    def __str__(self) -> str:
        return self.label


def build_deck(seed: Optional[int] = None, rng: Optional[random.Random] = None) -> List[Card]:
    """Fresh 52-card deck, shuffled by `rng` (or a Random seeded with `seed`)."""
    deck = [Card(rank, suit) for suit in SUITS for rank in RANKS]
    (rng or random.Random(seed)).shuffle(deck)
    return deck


def deal(deck: List[Card], count: int) -> List[Card]:
    """Take `count` cards off the top of the deck."""
    if len(deck) < count:
        raise ValueError("Not enough cards left in deck")
    cards = deck[:count]
    del deck[:count]
    return cards


def burn(deck: List[Card]) -> Card:
    return deal(deck, 1)[0]


def deal_hole_cards(deck: List[Card], hands: Sequence[List[Card]], per_hand: int = 2) -> None:
    """Deal around the table one card at a time, `per_hand` passes in seat order."""
    if len(deck) < per_hand * len(hands):
        raise ValueError("Not enough cards left in deck")
    for _ in range(per_hand):
        for hand in hands:
            hand.extend(deal(deck, 1))


def cards_to_labels(cards: Sequence[Card]) -> List[str]:
    return [card.label for card in cards]


def parse_label(label: str) -> Card:
    if len(label) != 2:
        raise ValueError(f"Invalid card label: {label}")
    rank, suit = label
    return Card(rank, suit)
