from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from holdem.equity import pot_odds
from holdem.game import Table
from holdem.models import ActionType

LOGGER = logging.getLogger("holdem.bots")

_RNG = random.Random()
_RANK_POINTS = {rank: idx for idx, rank in enumerate("23456789TJQKA", start=2)}

Decision = Tuple[ActionType, Optional[int]]


@dataclass
class BotView:
    """Everything the policy is allowed to see about the spot it is in."""

    equity: Optional[float]
    pot: int
    to_call: int
    stack: int
    table_bet: int
    player_bet: int
    min_raise: int
    hand: List[str] = field(default_factory=list)

    @classmethod
    def from_table(cls, table: Table, seat_idx: int) -> "BotView":
        player = table.seats[seat_idx]
        assert player is not None
        return cls(
            equity=player.equity,
            pot=table.pot_total(),
            to_call=max(0, table.current_bet - player.current_bet),
            stack=player.stack,
            table_bet=table.current_bet,
            player_bet=player.current_bet,
            min_raise=table.min_raise,
            hand=list(player.hand),
        )

    @property
    def max_total(self) -> int:
        return self.stack + self.player_bet


def _rough_equity(hole: List[str]) -> float:
    """Very rough stand-in for equity when no estimate has arrived yet."""
    if len(hole) < 2:
        return 0.0
    first, second = (_RANK_POINTS.get(card[0], 2) for card in hole[:2])
    if first == second:
        return 60.0 + first * 2
    return 40.0 + first + second


def _raise_target(view: BotView, pot_fraction: float) -> Decision:
    min_legal = view.table_bet + view.min_raise
    if view.table_bet < view.max_total < min_legal:
        return ActionType.RAISE, view.max_total
    target = max(view.table_bet + int(view.pot * pot_fraction), min_legal)
    return ActionType.RAISE, min(target, view.max_total)


def decide(view: BotView, rng: Optional[random.Random] = None) -> Decision:
    """Pick an action band by equity, mixing in traps and bluffs, then clamp it to legality."""
    rng = rng or _RNG
    equity = view.equity if view.equity is not None else _rough_equity(view.hand)
    odds = pot_odds(view.to_call, view.pot)
    roll = rng.random()
    facing_bet = view.to_call > 0

    decision: Decision
    if equity > 80:
        if roll < 0.20:
            # Trap
            decision = (ActionType.CALL if facing_bet else ActionType.CHECK, None)
        else:
            decision = _raise_target(view, 0.85)
    elif equity > 60:
        if facing_bet and roll < 0.70:
            decision = (ActionType.CALL, None)
        else:
            decision = _raise_target(view, 0.5)
    elif equity > 35:
        if equity >= odds:
            decision = _raise_target(view, 0.5) if roll < 0.20 else (ActionType.CALL, None)
        elif roll < 0.10 and view.to_call < view.stack * 0.1:
            # Float
            decision = (ActionType.CALL, None)
        else:
            decision = (ActionType.FOLD, None)
    else:
        if not facing_bet:
            decision = _raise_target(view, 0.33) if roll < 0.15 else (ActionType.CHECK, None)
        elif roll < 0.05 and view.to_call < view.stack * 0.2:
            decision = _raise_target(view, 0.75)
        else:
            decision = (ActionType.FOLD, None)

    LOGGER.debug("Bot eq=%.1f odds=%.1f roll=%.2f -> %s", equity, odds, roll, decision)
    return _clamp(view, decision)


def _clamp(view: BotView, decision: Decision) -> Decision:
    action, amount = decision
    if action == ActionType.CHECK and view.to_call > 0:
        action = ActionType.CALL
    if action in (ActionType.CALL, ActionType.FOLD) and view.to_call == 0:
        action = ActionType.CHECK
    if action == ActionType.RAISE:
        if view.max_total <= view.table_bet:
            # Cannot put in more than the bet already standing.
            return (ActionType.CALL, None) if view.to_call > 0 else (ActionType.CHECK, None)
        amount = min(amount if amount is not None else view.max_total, view.max_total)
        if view.table_bet == 0:
            action = ActionType.BET
        return action, amount
    return action, None


def bot_decision(table: Table, seat_idx: int, rng: Optional[random.Random] = None) -> Decision:
    return decide(BotView.from_table(table, seat_idx), rng)
