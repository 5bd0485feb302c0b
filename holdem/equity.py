from __future__ import annotations

import logging
import math
import random
from typing import Optional, Sequence

from .cards import Card, full_deck, parse_cards
from .evaluator import HandRanker
from .preflop import PreflopTable

LOGGER = logging.getLogger("holdem.equity")

SIMULATION_TRIALS = 5_000


def simulate_equity(
    hole: Sequence[Card],
    board: Sequence[Card],
    opponent_count: int,
    trials: int,
    rng: random.Random,
    ranker: HandRanker,
) -> float:
    """Monte Carlo win percentage of ``hole`` against random opponent hands.

    Each trial completes the board and deals two cards per opponent from the
    unseen cards. Ties credit ``1 / tied_winners``. Result is a percentage with
    one decimal.
    """
    known = set(hole) | set(board)
    unseen = [card for card in full_deck() if card not in known]
    missing = 5 - len(board)
    needed = missing + 2 * opponent_count
    if trials <= 0 or needed > len(unseen):
        return 0.0

    hero_cards = list(hole)
    credit = 0.0
    for _ in range(trials):
        draw = rng.sample(unseen, needed)
        sim_board = list(board) + draw[:missing]
        hero = ranker.score(hero_cards + sim_board)
        best = hero
        tied = 1
        for idx in range(opponent_count):
            start = missing + 2 * idx
            score = ranker.score(draw[start : start + 2] + sim_board)
            if score > best:
                best = score
                tied = 1
            elif score == best:
                tied += 1
        if best == hero:
            credit += 1.0 / tied
    return math.floor(credit / trials * 1000 + 0.5) / 10


def pot_odds(to_call: int, pot_total: int) -> float:
    """Share of the final pot the caller has to put in, as a percentage."""
    if to_call <= 0:
        return 0.0
    return round(to_call / (pot_total + to_call) * 100, 1)


class EquityEstimator:
    """Preflop lookup or postflop simulation, picked by whether a board exists."""

    def __init__(
        self,
        preflop: Optional[PreflopTable] = None,
        trials: int = SIMULATION_TRIALS,
        rng: Optional[random.Random] = None,
        ranker: Optional[HandRanker] = None,
    ) -> None:
        self.ranker = ranker or HandRanker()
        self.preflop = preflop or PreflopTable(trials=trials, ranker=self.ranker)
        self.trials = trials
        self.rng = rng or random.Random()

    def estimate(self, hole: Sequence[str], board: Sequence[str], opponent_count: int) -> float:
        if len(hole) != 2:
            return 0.0
        opponents = max(1, opponent_count)
        if not board:
            return self.preflop.lookup(hole, opponents)
        value = simulate_equity(parse_cards(hole), parse_cards(board), opponents, self.trials, self.rng, self.ranker)
        LOGGER.debug("Equity %s on %s vs %s: %.1f%%", hole, board, opponents, value)
        return value
