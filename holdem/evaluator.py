from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .cards import Card

RANK_ORDER = "23456789TJQKA"
RANK_VALUE = {rank: idx for idx, rank in enumerate(RANK_ORDER, start=2)}
RANK_NAME = {
    2: "Twos", 3: "Threes", 4: "Fours", 5: "Fives", 6: "Sixes", 7: "Sevens", 8: "Eights",
    9: "Nines", 10: "Tens", 11: "Jacks", 12: "Queens", 13: "Kings", 14: "Aces",
}

HIGH_CARD, PAIR, TWO_PAIR, TRIPS, STRAIGHT, FLUSH, FULL_HOUSE, QUADS, STRAIGHT_FLUSH = range(9)

Score = Tuple[int, Tuple[int, ...]]


def evaluate_best(cards: Sequence[Card]) -> Score:
    """Return a strength tuple for the best 5 of up to 7 cards. Higher is better."""
    values = [RANK_VALUE[card.rank] for card in cards]

    suited: Dict[str, List[int]] = {}
    for card in cards:
        suited.setdefault(card.suit, []).append(RANK_VALUE[card.rank])
    flush_values = next((ranks for ranks in suited.values() if len(ranks) >= 5), None)

    if flush_values:
        straight_flush = _straight_high(flush_values)
        if straight_flush:
            return (STRAIGHT_FLUSH, (straight_flush,))

    counts = Counter(values)
    groups = sorted(counts.items(), key=lambda item: (item[1], item[0]), reverse=True)
    top_rank, top_count = groups[0]

    if top_count == 4:
        kicker = max((v for v in values if v != top_rank), default=0)
        return (QUADS, (top_rank, kicker))
    if top_count == 3 and len(groups) > 1 and groups[1][1] >= 2:
        return (FULL_HOUSE, (top_rank, groups[1][0]))
    if flush_values:
        return (FLUSH, tuple(sorted(flush_values, reverse=True)[:5]))
    straight = _straight_high(values)
    if straight:
        return (STRAIGHT, (straight,))
    if top_count == 3:
        kickers = [rank for rank, _ in groups[1:3]]
        return (TRIPS, (top_rank, *kickers))
    if top_count == 2 and len(groups) > 1 and groups[1][1] == 2:
        low_pair = groups[1][0]
        kicker = max((v for v in counts if v not in (top_rank, low_pair)), default=0)
        return (TWO_PAIR, (top_rank, low_pair, kicker))
    if top_count == 2:
        kickers = [rank for rank, _ in groups[1:4]]
        return (PAIR, (top_rank, *kickers))
    return (HIGH_CARD, tuple(sorted(values, reverse=True)[:5]))


def _straight_high(values: Iterable[int]) -> Optional[int]:
    ranks = set(values)
    if 14 in ranks:  # Ace low
        ranks.add(1)
    for high in range(14, 4, -1):
        if all(high - step in ranks for step in range(5)):
            return high
    return None


def describe_rank(score: Score) -> str:
    category, ranks = score
    lead = RANK_NAME.get(ranks[0], "") if ranks else ""
    if category == STRAIGHT_FLUSH:
        return "Royal Flush" if ranks[0] == 14 else f"Straight Flush, {_single(ranks[0])} high"
    if category == QUADS:
        return f"Four of a Kind, {lead}"
    if category == FULL_HOUSE:
        return f"Full House, {lead} full of {RANK_NAME[ranks[1]]}"
    if category == FLUSH:
        return f"Flush, {_single(ranks[0])} high"
    if category == STRAIGHT:
        return f"Straight, {_single(ranks[0])} high"
    if category == TRIPS:
        return f"Three of a Kind, {lead}"
    if category == TWO_PAIR:
        return f"Two Pair, {lead} and {RANK_NAME[ranks[1]]}"
    if category == PAIR:
        return f"Pair of {lead}"
    return f"{_single(ranks[0])} High" if ranks else "High Card"


def _single(value: int) -> str:
    name = RANK_NAME[value]
    return name[:-2] if name.endswith("xes") else name[:-1]


@dataclass(frozen=True)
class RankedHand:
    score: Score
    description: str


class HandRanker:
    """Gateway to hand ranking: comparable values, descriptions and co-equal winners."""

    def rank(self, cards: Sequence[Card]) -> RankedHand:
        score = evaluate_best(cards)
        return RankedHand(score=score, description=describe_rank(score))

    def winners(self, hands: Sequence[RankedHand]) -> List[int]:
        """Indices of every hand tied for best."""
        if not hands:
            return []
        best = max(hand.score for hand in hands)
        return [idx for idx, hand in enumerate(hands) if hand.score == best]

    def score(self, cards: Sequence[Card]) -> Score:
        """Comparable value only; used in tight simulation loops."""
        return evaluate_best(cards)
