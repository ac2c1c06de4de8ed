from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from .cards import RANKS, Card, parse_label

RANK_VALUE = {rank: idx for idx, rank in enumerate(RANKS, start=2)}

CATEGORY_NAMES = (
    "High Card",
    "Pair",
    "Two Pair",
    "Three of a Kind",
    "Straight",
    "Flush",
    "Full House",
    "Four of a Kind",
    "Straight Flush",
)

Score = Tuple[int, List[int]]


@dataclass(frozen=True)
class HandRank:
    """Comparable strength of a hand plus its display category."""

    score: Score
    name: str

    def __lt__(self, other: "HandRank") -> bool:
        return self.score < other.score

    def __gt__(self, other: "HandRank") -> bool:
        return self.score > other.score


HandEvaluator = Callable[[Sequence[Card]], HandRank]


def rank_hand(cards: Sequence[Card]) -> HandRank:
    score = evaluate_best(cards)
    return HandRank(score=score, name=describe_rank(score))


def describe_rank(score: Score) -> str:
    category, _ = score
    return CATEGORY_NAMES[category]


def evaluate_best(cards: Sequence[Card]) -> Score:
    """Return a strength tuple for 5 to 7 cards (Texas Hold'em). Higher is better."""
    if len(cards) < 5:
        raise ValueError(f"Need at least 5 cards, got {len(cards)}")
    best: Optional[Score] = None
    for combo in itertools.combinations(cards, 5):
        rank = _evaluate_five(combo)
        if best is None or rank > best:
            best = rank
    assert best is not None
    return best


def _evaluate_five(cards: Sequence[Card]) -> Score:
    ranks = sorted((RANK_VALUE[card.rank] for card in cards), reverse=True)
    is_flush = len({card.suit for card in cards}) == 1
    straight_high = _straight_high(cards)

    counts: dict = {}
    for card in cards:
        counts[card.rank] = counts.get(card.rank, 0) + 1

    ordered_counts = sorted(counts.items(), key=lambda x: (x[1], RANK_VALUE[x[0]]), reverse=True)
    count_values = sorted(counts.values(), reverse=True)

    if straight_high and is_flush:
        return (8, [straight_high])
    if count_values[0] == 4:
        four_rank = RANK_VALUE[ordered_counts[0][0]]
        kicker = RANK_VALUE[ordered_counts[1][0]]
        return (7, [four_rank, kicker])
    if count_values[0] == 3 and count_values[1] == 2:
        return (6, [RANK_VALUE[ordered_counts[0][0]], RANK_VALUE[ordered_counts[1][0]]])
    if is_flush:
        return (5, ranks)
    if straight_high:
        return (4, [straight_high])
    if count_values[0] == 3:
        return (3, [RANK_VALUE[r] for r, _ in ordered_counts])
    if count_values[0] == 2 and count_values[1] == 2:
        return (2, [RANK_VALUE[r] for r, _ in ordered_counts])
    if count_values[0] == 2:
        return (1, [RANK_VALUE[r] for r, _ in ordered_counts])
    return (0, ranks)


def _straight_high(cards: Iterable[Card]) -> Optional[int]:
    ranks = {RANK_VALUE[card.rank] for card in cards}
    if 14 in ranks:  # wheel
        ranks.add(1)
    ordered = sorted(ranks, reverse=True)
    for idx in range(len(ordered) - 4):
        window = ordered[idx : idx + 5]
        if window[0] - window[4] == 4:
            return window[0]
    return None


def parse_cards(labels: Sequence[str]) -> List[Card]:
    return [parse_label(label) for label in labels]
