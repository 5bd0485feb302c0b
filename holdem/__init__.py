"""Texas Hold'em table engine: rules, chip accounting, equity and turn pacing."""

from .cards import Card, Deck, RANKS, SUITS, RiggedDeck, parse_cards
from .equity import EquityEstimator, pot_odds, simulate_equity
from .errors import ActionRejected, DeckExhausted, HoldemError
from .evaluator import HandRanker, RankedHand, evaluate_best
from .events import EventBus
from .game import Table
from .models import ActionType, Event, Payout, Player, PlayerState, Pot, Stage, TableConfig
from .preflop import PreflopTable, hand_class
from .scheduler import TurnScheduler
from .timers import AsyncioTimers, InlineRunner, ManualTimers, ThreadRunner

__all__ = [
    "Card",
    "Deck",
    "RANKS",
    "SUITS",
    "RiggedDeck",
    "parse_cards",
    "EquityEstimator",
    "pot_odds",
    "simulate_equity",
    "ActionRejected",
    "DeckExhausted",
    "HoldemError",
    "HandRanker",
    "RankedHand",
    "evaluate_best",
    "EventBus",
    "Table",
    "ActionType",
    "Event",
    "Payout",
    "Player",
    "PlayerState",
    "Pot",
    "Stage",
    "TableConfig",
    "PreflopTable",
    "hand_class",
    "TurnScheduler",
    "AsyncioTimers",
    "InlineRunner",
    "ManualTimers",
    "ThreadRunner",
]
