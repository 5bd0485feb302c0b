from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

from holdem.cards import RiggedDeck
from holdem.game import Table
from holdem.models import ActionType, Event, TableConfig
from holdem.timers import InlineRunner


def rigged_labels(holes: Sequence[Sequence[str]], board: Sequence[str] = ()) -> List[str]:
    """Lay out a deck for hole cards given in deal order (left of the button first)."""
    labels = [hole[0] for hole in holes] + [hole[1] for hole in holes]
    return labels + list(board)


def create_table(
    names: Sequence[str] = ("Alice", "Bob"),
    *,
    stacks: Optional[Sequence[int]] = None,
    deck: Optional[Sequence[str]] = None,
    **config: object,
) -> Table:
    """Instantiate a table with zero pacing delays and inline equity, and seat the given players."""
    table = Table(
        TableConfig.for_tests(**config),
        deck=RiggedDeck(deck) if deck is not None else None,
        runner=InlineRunner(),
    )
    for idx, name in enumerate(names):
        stack = stacks[idx] if stacks is not None else None
        assert table.join(name, stack) is not None
    return table


def record_events(table: Table) -> List[Event]:
    events: List[Event] = []
    table.subscribe(events.append)
    return events


def event_names(events: Iterable[Event]) -> List[str]:
    return [event.ev for event in events if event.ev not in ("STATE", "EQUITY")]


def perform_actions(table: Table, actions: Iterable[Tuple[int, ActionType, Optional[int]]]) -> None:
    """Apply a scripted sequence of actions (seat, action, amount); each must be accepted."""
    for seat_idx, action, amount in actions:
        assert table.apply_action(seat_idx, action, amount), f"{action.value} from seat {seat_idx} rejected"


def passive_action(table: Table, seat_idx: int) -> ActionType:
    legal = table.legal_actions(seat_idx).legal
    return ActionType.CHECK if ActionType.CHECK in legal else ActionType.CALL


def auto_complete_hand(table: Table) -> None:
    """Check or call until the hand is settled."""
    while table.hand_in_progress:
        seat_idx = table.current_player_index
        assert seat_idx >= 0, "hand stalled without a player on turn"
        assert table.apply_action(seat_idx, passive_action(table, seat_idx))


class HeldStreets:
    """Street pacer that holds every advance until released by the test."""

    def __init__(self, table: Table) -> None:
        self.pending: List = []
        table.street_pacer = self.pending.append

    def release(self) -> None:
        self.pending.pop(0)()

    def release_all(self) -> None:
        while self.pending:
            self.release()
