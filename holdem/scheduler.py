from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Tuple

from .game import Table
from .models import ActionType, Event

LOGGER = logging.getLogger("holdem.scheduler")

BotPolicy = Callable[[Table, int], Tuple[ActionType, Optional[int]]]

# TurnScheduler owns every clock that touches the table: the turn timeout, the
# settle delay between streets, bot thinking time and the gap before the next
# hand. Each callback checks that the decision point it was armed for is still
# the current one before touching the table.


class TurnScheduler:
    def __init__(self, table: Table, timers: Any, bot_policy: Optional[BotPolicy] = None) -> None:
        self.table = table
        self.timers = timers
        self.bot_policy = bot_policy
        self._turn_handle: Any = None
        self._bot_handle: Any = None
        self._settle_handle: Any = None
        self._next_hand_handle: Any = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def turn_timeout_s(self) -> float:
        return self.table.config.turn_timeout_ms / 1000

    @property
    def settle_delay_s(self) -> float:
        return self.table.config.settle_delay_ms / 1000

    @property
    def bot_delay_s(self) -> float:
        return self.table.config.bot_delay_ms / 1000

    def attach(self) -> None:
        self._unsubscribe = self.table.subscribe(self._on_event)
        self.table.street_pacer = self._pace_street
        current = self.table.current_player()
        if current is not None:
            self._arm_turn(current.seat, self.table.turn_id)

    def detach(self) -> None:
        self._cancel_turn()
        self._settle_handle = _cancel(self._settle_handle)
        self._next_hand_handle = _cancel(self._next_hand_handle)
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        self.table.street_pacer = None

    # Event routing ---------------------------------------------------

    def _on_event(self, event: Event) -> None:
        if event.ev == "TURN":
            self._arm_turn(int(event.data["seat"]), int(event.data["turn_id"]))
        elif event.ev == "ACTION":
            self._cancel_turn()
        elif event.ev == "PLAYER_KICKED":
            current = self.table.current_player()
            if current is not None and current.seat == event.data["seat"]:
                self._arm_turn(current.seat, self.table.turn_id)
        elif event.ev in ("HAND_COMPLETE", "HAND_ABORTED"):
            self._cancel_turn()
            self._settle_handle = _cancel(self._settle_handle)
            if self.table.config.auto_start:
                self._arm_next_hand()

    # Turn clock ------------------------------------------------------

    def _arm_turn(self, seat: int, turn_id: int) -> None:
        self._cancel_turn()
        player = self.table.seats[seat]
        if player is None:
            return
        self._turn_handle = self.timers.call_later(self.turn_timeout_s, lambda: self._on_timeout(seat, turn_id))
        if player.kick_pending:
            self._bot_handle = self.timers.call_later(0, lambda: self._force_fold(seat, turn_id, "kicked"))
        elif player.is_bot and self.bot_policy is not None:
            self._bot_handle = self.timers.call_later(self.bot_delay_s, lambda: self._bot_move(seat, turn_id))

    def _cancel_turn(self) -> None:
        self._turn_handle = _cancel(self._turn_handle)
        self._bot_handle = _cancel(self._bot_handle)

    def _is_current(self, seat: int, turn_id: int) -> bool:
        return (
            self.table.hand_in_progress
            and self.table.turn_id == turn_id
            and self.table.current_player_index == seat
        )

    def _on_timeout(self, seat: int, turn_id: int) -> None:
        self._force_fold(seat, turn_id, "timed out")

    def _force_fold(self, seat: int, turn_id: int, reason: str) -> None:
        if not self._is_current(seat, turn_id):
            LOGGER.debug("Stale %s timer for seat %s ignored", reason, seat)
            return
        LOGGER.warning("Seat %s %s; folding", seat, reason)
        self.table.apply_action(seat, ActionType.FOLD)

    def _bot_move(self, seat: int, turn_id: int) -> None:
        if not self._is_current(seat, turn_id) or self.bot_policy is None:
            return
        action, amount = self.bot_policy(self.table, seat)
        if self.table.apply_action(seat, action, amount):
            return
        LOGGER.warning("Bot at seat %s chose illegal %s %s; falling back", seat, action.value, amount)
        # Matches the timeout preference: check > call > fold.
        legal = self.table.legal_actions(seat).legal
        for fallback in (ActionType.CHECK, ActionType.CALL, ActionType.FOLD):
            if fallback in legal:
                self.table.apply_action(seat, fallback)
                return

    # Street and hand pacing ------------------------------------------

    def _pace_street(self, advance: Callable[[], None]) -> None:
        self._settle_handle = _cancel(self._settle_handle)
        self._settle_handle = self.timers.call_later(self.settle_delay_s, advance)

    def _arm_next_hand(self) -> None:
        self._next_hand_handle = _cancel(self._next_hand_handle)
        self._next_hand_handle = self.timers.call_later(self.settle_delay_s, self._start_next_hand)

    def _start_next_hand(self) -> None:
        if self.table.hand_in_progress or not self.table.can_start_hand():
            return
        self.table.start_hand()


def _cancel(handle: Any) -> None:
    if handle is not None:
        handle.cancel()
    return None
