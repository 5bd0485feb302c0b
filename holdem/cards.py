from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .errors import DeckExhausted

RANKS = "AKQJT98765432"
SUITS = "shcd"


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


def full_deck() -> List[Card]:
    return [Card(rank, suit) for rank in RANKS[::-1] for suit in SUITS]


def parse_label(label: str) -> Card:
    # "10h" is accepted as an alias of "Th".
    if label[:2] == "10":
        label = "T" + label[2:]
    if len(label) != 2:
        raise ValueError(f"Invalid card label: {label}")
    return Card(label[0].upper(), label[1].lower())


def parse_cards(labels: Iterable[str]) -> List[Card]:
    return [parse_label(label) for label in labels]


def cards_to_labels(cards: Sequence[Card]) -> List[str]:
    return [card.label for card in cards]


class Deck:
    """Shuffled 52-card source dealing one card at a time."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()
        self.cards: List[Card] = []
        self.reset()

    def reset(self) -> None:
        self.cards = full_deck()
        self.rng.shuffle(self.cards)

    def deal(self) -> Card:
        if not self.cards:
            raise DeckExhausted("No cards left in deck")
        return self.cards.pop()

    def deal_many(self, count: int) -> List[Card]:
        if len(self.cards) < count:
            raise DeckExhausted("Not enough cards left in deck")
        return [self.deal() for _ in range(count)]

    def __len__(self) -> int:
        return len(self.cards)


class RiggedDeck(Deck):
    """Deals a fixed sequence of labels in order; ``reset`` restores the sequence."""

    def __init__(self, labels: Sequence[str]) -> None:
        self.labels = list(labels)
        super().__init__(rng=random.Random(0))

    def reset(self) -> None:
        # pop() deals from the end
        self.cards = list(reversed(parse_cards(self.labels)))
