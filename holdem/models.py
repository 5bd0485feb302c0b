from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional


class Stage(str, Enum):
    PREFLOP = "preflop"
    FLOP = "flop"
    TURN = "turn"
    RIVER = "river"


class ActionType(str, Enum):
    FOLD = "FOLD"
    CHECK = "CHECK"
    CALL = "CALL"
    BET = "BET"
    RAISE = "RAISE"
    ALL_IN = "ALL_IN"


class PlayerState(str, Enum):
    WAITING = "WAITING"
    READY = "READY"
    IN_GAME = "IN_GAME"
    FOLDED = "FOLDED"
    SITTING_OUT = "SITTING_OUT"
    LEFT = "LEFT"
    OFFLINE = "OFFLINE"


@dataclass
class TableConfig:
    max_seats: int = 9
    starting_stack: int = 1_000
    sb: int = 5
    bb: int = 10
    turn_timeout_ms: int = 30_000
    settle_delay_ms: int = 2_000
    bot_delay_ms: int = 1_000
    equity_trials: int = 5_000
    auto_start: bool = False

    @classmethod
    def for_tests(cls, **overrides: object) -> "TableConfig":
        config = cls(settle_delay_ms=0, bot_delay_ms=0, equity_trials=300)
        return replace(config, **overrides)

    def apply_env(self) -> "TableConfig":
        # HOLDEM_TEST_MODE=1 removes every pacing delay.
        if os.environ.get("HOLDEM_TEST_MODE", "").strip() in ("1", "true", "yes"):
            return replace(self, settle_delay_ms=0, bot_delay_ms=0)
        return self


@dataclass
class Player:
    seat: int
    name: str
    stack: int
    state: PlayerState = PlayerState.READY
    current_bet: int = 0
    hand: List[str] = field(default_factory=list)
    is_all_in: bool = False
    acted_this_round: bool = False
    equity: Optional[float] = None
    pot_odds: float = 0.0
    is_bot: bool = False
    kick_pending: bool = False
    connected: bool = True
    hand_description: Optional[str] = None

    @property
    def can_act(self) -> bool:
        return self.state == PlayerState.IN_GAME and self.stack > 0 and not self.is_all_in

    @property
    def in_hand(self) -> bool:
        # Still contesting the pot: not folded and not departed.
        return self.state == PlayerState.IN_GAME

    def commit(self, amount: int) -> int:
        amount = max(0, min(amount, self.stack))
        self.stack -= amount
        self.current_bet += amount
        if self.stack == 0 and amount > 0:
            self.is_all_in = True
        return amount

    def reset_for_hand(self) -> None:
        self.current_bet = 0
        self.hand.clear()
        self.is_all_in = False
        self.acted_this_round = False
        self.equity = None
        self.pot_odds = 0.0
        self.hand_description = None

    def reset_for_round(self) -> None:
        self.current_bet = 0
        self.acted_this_round = False
        # The estimate belongs to the previous street.
        self.equity = None


@dataclass
class Pot:
    total: int = 0
    contributions: Dict[int, int] = field(default_factory=dict)

    def add(self, seat: int, amount: int) -> None:
        if amount <= 0:
            return
        self.contributions[seat] = self.contributions.get(seat, 0) + amount
        self.total += amount


@dataclass
class Event:
    ev: str
    data: Dict[str, object] = field(default_factory=dict)


@dataclass
class Payout:
    seat: int
    name: str
    amount: int
    description: Optional[str] = None


@dataclass
class LegalActions:
    legal: List[ActionType]
    call_amount: int
    min_raise_to: Optional[int]
    max_raise_to: Optional[int]
