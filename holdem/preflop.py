from __future__ import annotations

import json
import logging
import random
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .cards import Card, RANKS, parse_cards
from .evaluator import RANK_VALUE, HandRanker

LOGGER = logging.getLogger("holdem.preflop")

MAX_OPPONENTS = 8
DEFAULT_TRIALS = 5_000


def hand_class(hole: Sequence[Union[str, Card]]) -> str:
    """Collapse two hole cards to their class: ``"AA"``, ``"AKs"`` or ``"T9o"``."""
    first, second = [card if isinstance(card, Card) else parse_cards([card])[0] for card in hole]
    high, low = sorted((first, second), key=lambda card: RANK_VALUE[card.rank], reverse=True)
    if high.rank == low.rank:
        return high.rank + low.rank
    return high.rank + low.rank + ("s" if high.suit == low.suit else "o")


def representative(cls: str) -> List[Card]:
    high, low = cls[0], cls[1]
    if len(cls) == 2 or cls[2] == "o":
        return [Card(high, "s"), Card(low, "h")]
    return [Card(high, "s"), Card(low, "s")]


def all_classes() -> List[str]:
    classes = []
    for i, high in enumerate(RANKS):
        for low in RANKS[i:]:
            if high == low:
                classes.append(high + low)
            else:
                classes.extend([high + low + "s", high + low + "o"])
    return classes


class PreflopTable:
    """Win percentage lookup keyed by (hand class, opponent count).

    Missing entries are simulated once from a canonical representative of the
    class with a seed derived from the key, so every table built with the same
    seed agrees. Tables can be warmed up front and saved as JSON.
    """

    def __init__(
        self,
        entries: Optional[Dict[Tuple[str, int], float]] = None,
        trials: int = DEFAULT_TRIALS,
        seed: int = 1,
        ranker: Optional[HandRanker] = None,
    ) -> None:
        self.entries: Dict[Tuple[str, int], float] = dict(entries or {})
        self.trials = trials
        self.seed = seed
        self.ranker = ranker or HandRanker()
        self._lock = threading.Lock()

    def lookup(self, hole: Sequence[Union[str, Card]], opponent_count: int) -> float:
        opponents = max(1, min(opponent_count, MAX_OPPONENTS))
        key = (hand_class(hole), opponents)
        with self._lock:
            cached = self.entries.get(key)
        if cached is not None:
            return cached
        from .equity import simulate_equity

        rng = random.Random(f"{key[0]}:{opponents}:{self.seed}")
        value = simulate_equity(representative(key[0]), [], opponents, self.trials, rng, self.ranker)
        with self._lock:
            self.entries.setdefault(key, value)
        LOGGER.debug("Preflop entry %s vs %s computed: %.1f%%", key[0], opponents, value)
        return value

    def warm(self, opponents: Iterable[int] = range(1, MAX_OPPONENTS + 1)) -> None:
        for count in opponents:
            for cls in all_classes():
                self.lookup(representative(cls), count)

    def dump(self, path: Union[str, Path]) -> None:
        with self._lock:
            payload = {f"{cls}:{count}": value for (cls, count), value in sorted(self.entries.items())}
        Path(path).write_text(json.dumps(payload, indent=2, sort_keys=True))

    @classmethod
    def load(cls, path: Union[str, Path], **kwargs: object) -> "PreflopTable":
        raw = json.loads(Path(path).read_text())
        entries: Dict[Tuple[str, int], float] = {}
        for key, value in raw.items():
            hand, _, count = key.partition(":")
            entries[(hand, int(count))] = float(value)
        LOGGER.info("Loaded %s preflop entries from %s", len(entries), path)
        return cls(entries=entries, **kwargs)  # type: ignore[arg-type]
