from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Optional, Union

from .cards import Card, Deck, cards_to_labels
from .equity import EquityEstimator, pot_odds
from .errors import ActionRejected, DeckExhausted
from .evaluator import HandRanker
from .events import EventBus, Listener
from .models import (
    ActionType,
    Event,
    LegalActions,
    Payout,
    Player,
    PlayerState,
    Pot,
    Stage,
    TableConfig,
)
from .pots import collect_round, refund_all, total_in_pots
from .showdown import resolve_showdown, settle_player_states, summarize_winners
from .snapshot import export_state, table_state
from .timers import ThreadRunner

LOGGER = logging.getLogger("holdem.table")

# Table keeps all game state in memory. No networking and no clocks live here:
# only poker rules, chip accounting and betting order. Pacing between streets is
# delegated to ``street_pacer`` when one is installed.

StreetPacer = Callable[[Callable[[], None]], None]
SeatRef = Union[int, str]

_STAGE_BY_BOARD = {0: Stage.PREFLOP, 3: Stage.FLOP, 4: Stage.TURN, 5: Stage.RIVER}


class Table:
    """No-Limit Texas Hold'em state machine for a single table."""

    def __init__(
        self,
        config: Optional[TableConfig] = None,
        deck: Optional[Deck] = None,
        ranker: Optional[HandRanker] = None,
        equity: Optional[EquityEstimator] = None,
        runner: Optional[object] = None,
    ) -> None:
        self.config = config or TableConfig()
        self.seats: List[Optional[Player]] = [None] * self.config.max_seats
        self.deck = deck if deck is not None else Deck()
        self.ranker = ranker or HandRanker()
        self.equity = equity or EquityEstimator(trials=self.config.equity_trials, ranker=self.ranker)
        self.runner = runner or ThreadRunner()
        self._equity_lock = threading.Lock()
        self.events = EventBus()
        self.street_pacer: Optional[StreetPacer] = None

        self.community: List[Card] = []
        self.pots: List[Pot] = []
        self.button: Optional[int] = None
        self.sb_seat: Optional[int] = None
        self.bb_seat: Optional[int] = None
        self.current_bet = 0
        self.min_raise = self.config.bb
        self.current_player_index = -1
        self.stage = Stage.PREFLOP
        self.hand_in_progress = False
        self.hand_number = 0
        self.turn_id = 0
        self.last_winners: List[Payout] = []
        self.game_over = False

    # Observers -------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.events.subscribe(listener)

    def _emit(self, ev: str, **data: object) -> None:
        self.events.publish(Event(ev, data))

    def _publish_state(self) -> None:
        self._emit("STATE", snapshot=self.snapshot())

    # Lookups ---------------------------------------------------------

    def players(self) -> List[Player]:
        return [player for player in self.seats if player is not None]

    def find(self, ref: SeatRef) -> Optional[Player]:
        if isinstance(ref, int):
            return self.seats[ref] if 0 <= ref < len(self.seats) else None
        key = ref.strip().casefold()
        for player in self.players():
            if player.name.casefold() == key:
                return player
        return None

    def in_hand(self) -> List[Player]:
        return [player for player in self.players() if player.in_hand]

    def actors(self) -> List[Player]:
        return [player for player in self.players() if player.can_act]

    def current_player(self) -> Optional[Player]:
        if self.current_player_index < 0:
            return None
        return self.seats[self.current_player_index]

    def pot_total(self) -> int:
        return total_in_pots(self.pots) + sum(player.current_bet for player in self.players())

    def chips_in_play(self) -> int:
        return sum(player.stack for player in self.players()) + self.pot_total()

    def _seat_after(self, start: int, predicate: Callable[[Player], bool]) -> Optional[int]:
        count = len(self.seats)
        for step in range(1, count + 1):
            idx = (start + step) % count
            player = self.seats[idx]
            if player is not None and predicate(player):
                return idx
        return None

    # Seat management -------------------------------------------------

    def join(self, name: str, stack: Optional[int] = None, is_bot: bool = False) -> Optional[Player]:
        display = name.strip()
        if not display:
            LOGGER.warning("Join rejected: name required")
            return None
        existing = self.find(display)
        if existing is not None and existing.state != PlayerState.LEFT:
            LOGGER.warning("Join rejected: %s is already seated at %s", display, existing.seat)
            return None
        chips = self.config.starting_stack if stack is None else int(stack)
        if chips < 0:
            LOGGER.warning("Join rejected: negative stack for %s", display)
            return None

        for idx, seat in enumerate(self.seats):
            if seat is None:
                break
        else:
            LOGGER.warning("Join rejected: table is full")
            return None

        if chips == 0:
            state = PlayerState.SITTING_OUT
        elif self.hand_in_progress:
            state = PlayerState.WAITING
        else:
            state = PlayerState.READY
        player = Player(seat=idx, name=display, stack=chips, state=state, is_bot=is_bot)
        self.seats[idx] = player
        LOGGER.info("Seat %s claimed by %s (stack=%s, state=%s)", idx, display, chips, state.value)
        self._emit("PLAYER_JOINED", seat=idx, name=display, stack=chips, is_bot=is_bot)
        self._publish_state()
        return player

    def leave(self, ref: SeatRef) -> bool:
        player = self.find(ref)
        if player is None or player.state == PlayerState.LEFT:
            return False

        if self.hand_in_progress and self.current_player_index == player.seat:
            self.apply_action(player.seat, ActionType.FOLD)
        still_contesting = self.hand_in_progress and player.in_hand
        player.state = PlayerState.LEFT
        LOGGER.info("%s left seat %s", player.name, player.seat)
        self._emit("PLAYER_LEFT", seat=player.seat, name=player.name)

        if still_contesting and len(self.in_hand()) < 2:
            self._settle_fold_out()
        if not self.hand_in_progress:
            self.seats[player.seat] = None
        self._publish_state()
        return True

    def kick(self, ref: SeatRef) -> bool:
        """Remove a player once the current hand is over."""
        player = self.find(ref)
        if player is None:
            return False
        if not self.hand_in_progress or player.state not in (PlayerState.IN_GAME, PlayerState.FOLDED):
            return self.leave(player.seat)
        player.kick_pending = True
        LOGGER.info("%s will be removed after hand %s", player.name, self.hand_number)
        self._emit("PLAYER_KICKED", seat=player.seat, name=player.name)
        self._publish_state()
        return True

    def set_connected(self, ref: SeatRef, connected: bool) -> None:
        player = self.find(ref)
        if player is None:
            return
        player.connected = connected
        if connected and player.state == PlayerState.OFFLINE:
            player.state = PlayerState.WAITING if self.hand_in_progress else PlayerState.READY
        elif not connected and not player.is_bot and player.state in (PlayerState.READY, PlayerState.WAITING):
            player.state = PlayerState.OFFLINE
        self._publish_state()

    def top_up(self, ref: SeatRef, amount: int) -> bool:
        player = self.find(ref)
        if player is None or amount <= 0 or player.state == PlayerState.LEFT:
            return False
        if self.hand_in_progress and player.state in (PlayerState.IN_GAME, PlayerState.FOLDED):
            LOGGER.warning("Top-up for %s refused during a hand", player.name)
            return False
        player.stack += amount
        if player.state == PlayerState.SITTING_OUT:
            player.state = PlayerState.WAITING if self.hand_in_progress else PlayerState.READY
        self._publish_state()
        return True

    def _purge(self) -> None:
        for idx, player in enumerate(self.seats):
            if player and (player.state == PlayerState.LEFT or player.kick_pending):
                LOGGER.info("Removing %s from seat %s", player.name, idx)
                self.seats[idx] = None

    # Hand lifecycle --------------------------------------------------

    def funded_players(self) -> List[Player]:
        return [player for player in self.players() if player.state == PlayerState.READY and player.stack > 0]

    def can_start_hand(self) -> bool:
        return not self.hand_in_progress and len(self._eligible_for_next_hand()) >= 2

    def _eligible_for_next_hand(self) -> List[Player]:
        return [
            player
            for player in self.players()
            if player.state in (PlayerState.READY, PlayerState.WAITING)
            and player.stack > 0
            and (player.connected or player.is_bot)
            and not player.kick_pending
        ]

    def start_hand(self) -> bool:
        if self.hand_in_progress:
            LOGGER.warning("Hand %s already in progress", self.hand_number)
            return False

        self._purge()
        for player in self.players():
            player.reset_for_hand()
            if player.state == PlayerState.WAITING:
                player.state = PlayerState.READY
            if player.state == PlayerState.READY and not (player.connected or player.is_bot):
                player.state = PlayerState.OFFLINE
            elif player.state == PlayerState.READY and player.stack == 0:
                player.state = PlayerState.SITTING_OUT

        funded = self.funded_players()
        if len(funded) < 2:
            self.game_over = True
            LOGGER.info("Game over: %s funded player(s) left", len(funded))
            self._emit("GAME_OVER", players=[{"seat": p.seat, "name": p.name, "stack": p.stack} for p in funded])
            self._publish_state()
            return False
        self.game_over = False

        funded_seats = {player.seat for player in funded}
        if self.button is None:
            self.button = funded[0].seat
        else:
            self.button = self._seat_after(self.button, lambda p: p.seat in funded_seats)

        self.deck.reset()
        self.hand_number += 1
        self.hand_in_progress = True
        self.community = []
        self.pots = []
        self.stage = Stage.PREFLOP
        self.current_bet = 0
        self.min_raise = self.config.bb
        self.current_player_index = -1
        for player in funded:
            player.state = PlayerState.IN_GAME

        self._post_blinds(len(funded) == 2)
        try:
            self._deal_hole_cards()
        except DeckExhausted as exc:
            LOGGER.error("Deck exhausted dealing hole cards: %s", exc)
            self._abort_hand(str(exc))
            return False

        LOGGER.info(
            "Hand %s started: button=%s players=%s",
            self.hand_number,
            self.button,
            [player.name for player in funded],
        )
        self._emit("HAND_STARTED", hand_number=self.hand_number, button=self.button)
        self._emit(
            "POST_BLINDS",
            sb_seat=self.sb_seat,
            bb_seat=self.bb_seat,
            sb=self.config.sb,
            bb=self.config.bb,
        )
        for player in self.in_hand():
            self._request_equity(player)

        assert self.bb_seat is not None
        if self._round_complete():
            self._complete_round()
        else:
            first = self._next_to_act(self.bb_seat)
            assert first is not None
            self._set_turn(first)
        self._publish_state()
        return True

    def _post_blinds(self, heads_up: bool) -> None:
        assert self.button is not None
        if heads_up:
            self.sb_seat = self.button
        else:
            self.sb_seat = self._seat_after(self.button, _dealt_in)
        assert self.sb_seat is not None
        self.bb_seat = self._seat_after(self.sb_seat, _dealt_in)
        sb_player = self.seats[self.sb_seat]
        bb_player = self.seats[self.bb_seat] if self.bb_seat is not None else None
        assert sb_player and bb_player

        sb_player.commit(self.config.sb)
        bb_player.commit(self.config.bb)
        self.current_bet = max(sb_player.current_bet, bb_player.current_bet)
        self.min_raise = self.config.bb

    def _deal_hole_cards(self) -> None:
        assert self.button is not None
        order = []
        seat = self.button
        for _ in range(len(self.seats)):
            seat = (seat + 1) % len(self.seats)
            player = self.seats[seat]
            if player is not None and player.state == PlayerState.IN_GAME:
                order.append(player)
        for _ in range(2):
            for player in order:
                player.hand.append(self.deck.deal().label)

    # Action handling -------------------------------------------------

    def legal_actions(self, seat_idx: int) -> LegalActions:
        player = self.find(seat_idx)
        if player is None or not player.can_act:
            raise ActionRejected("Seat not active")
        to_call = max(0, self.current_bet - player.current_bet)
        legal = [ActionType.FOLD, ActionType.CHECK if to_call == 0 else ActionType.CALL]
        max_total = player.current_bet + player.stack
        min_raise_to = max_raise_to = None
        if max_total > self.current_bet:
            legal.append(ActionType.BET if self.current_bet == 0 else ActionType.RAISE)
            min_raise_to = min(self.current_bet + self.min_raise, max_total)
            max_raise_to = max_total
        legal.append(ActionType.ALL_IN)
        return LegalActions(
            legal=legal,
            call_amount=min(to_call, player.stack),
            min_raise_to=min_raise_to,
            max_raise_to=max_raise_to,
        )

    def act(self, name: str, kind: Union[ActionType, str], amount: Optional[int] = None) -> bool:
        player = self.find(name)
        if player is None:
            LOGGER.warning("Rejected action from unknown player %s", name)
            return False
        return self.apply_action(player.seat, kind, amount)

    def apply_action(self, seat_idx: int, kind: Union[ActionType, str], amount: Optional[int] = None) -> bool:
        """Validate and apply one action. Rejections leave every piece of state untouched."""
        try:
            self._apply(seat_idx, kind, amount)
        except ActionRejected as exc:
            LOGGER.warning(
                "Rejected action seat=%s action=%s amount=%s reason=%s",
                seat_idx,
                kind,
                amount,
                exc,
            )
            return False
        self._publish_state()
        return True

    def _apply(self, seat_idx: int, kind: Union[ActionType, str], amount: Optional[int]) -> None:
        if not self.hand_in_progress:
            raise ActionRejected("No hand in progress")
        player = self.find(seat_idx)
        if player is None:
            raise ActionRejected("Seat empty")
        if seat_idx != self.current_player_index:
            raise ActionRejected("Not your turn")
        if not player.can_act:
            raise ActionRejected(f"Player cannot act in state {player.state.value}")
        action = _parse_kind(kind)
        to_call = self.current_bet - player.current_bet
        committed = 0

        if action == ActionType.FOLD:
            player.state = PlayerState.FOLDED
            player.acted_this_round = True
        elif action == ActionType.CHECK:
            if to_call > 0:
                raise ActionRejected("Cannot check when facing a bet")
            player.acted_this_round = True
        elif action == ActionType.CALL:
            if to_call <= 0:
                raise ActionRejected("Nothing to call")
            committed = player.commit(to_call)
            player.acted_this_round = True
        elif action in (ActionType.BET, ActionType.RAISE):
            target = _parse_amount(amount)
            if target <= self.current_bet:
                raise ActionRejected("Raise must exceed current bet")
            increment = target - player.current_bet
            if increment > player.stack:
                raise ActionRejected("Raise exceeds stack")
            if target < self.current_bet + self.min_raise and increment != player.stack:
                raise ActionRejected("Raise below minimum")
            committed = self._raise_to(player, target)
        else:
            target = player.current_bet + player.stack
            if target > self.current_bet:
                committed = self._raise_to(player, target)
            else:
                committed = player.commit(player.stack)
                player.acted_this_round = True

        LOGGER.debug(
            "Applied action hand=%s seat=%s action=%s committed=%s",
            self.hand_number,
            seat_idx,
            action.value,
            committed,
        )
        self._emit(
            "ACTION",
            seat=seat_idx,
            name=player.name,
            action=action.value,
            amount=committed,
            total_bet=player.current_bet,
            all_in=player.is_all_in,
        )
        if action == ActionType.FOLD and self.stage == Stage.PREFLOP and len(self.in_hand()) > 1:
            for other in self.in_hand():
                self._request_equity(other)
        self._after_action(seat_idx)

    def _raise_to(self, player: Player, target: int) -> int:
        previous = self.current_bet
        committed = player.commit(target - player.current_bet)
        self.current_bet = target
        self.min_raise = target - previous
        player.acted_this_round = True
        for other in self.in_hand():
            if other is not player and not other.is_all_in:
                other.acted_this_round = False
        return committed

    def _after_action(self, seat_idx: int) -> None:
        if len(self.in_hand()) < 2:
            self._settle_fold_out()
        elif self._round_complete():
            self._complete_round()
        else:
            next_seat = self._next_to_act(seat_idx)
            if next_seat is None:
                LOGGER.error("No player left to act in hand %s; closing the round", self.hand_number)
                self._complete_round()
                return
            self._set_turn(next_seat)

    def _next_to_act(self, after: int) -> Optional[int]:
        return self._seat_after(
            after,
            lambda p: p.can_act and (not p.acted_this_round or p.current_bet < self.current_bet),
        )

    def _round_complete(self) -> bool:
        actors = self.actors()
        if not actors:
            return True
        if len(actors) == 1 and actors[0].current_bet >= self.current_bet:
            # Nobody left to bet against.
            return True
        return all(p.acted_this_round and p.current_bet == self.current_bet for p in actors)

    def _set_turn(self, seat_idx: int) -> None:
        self.current_player_index = seat_idx
        self.turn_id += 1
        player = self.seats[seat_idx]
        assert player is not None
        if self.stage != Stage.PREFLOP:
            self._request_equity(player)
        self._emit("TURN", seat=seat_idx, name=player.name, turn_id=self.turn_id, is_bot=player.is_bot)

    # Streets ---------------------------------------------------------

    def _complete_round(self) -> None:
        refunds = collect_round(self.players(), self.pots)
        self.current_bet = 0
        self.min_raise = self.config.bb
        self.current_player_index = -1
        self.turn_id += 1
        for player in self.players():
            player.reset_for_round()
        self._emit(
            "ROUND_COMPLETE",
            stage=self.stage.value,
            pots=[pot.total for pot in self.pots],
            refunds=refunds,
        )
        self._schedule_advance()

    def _schedule_advance(self) -> None:
        hand_number = self.hand_number
        board_size = len(self.community)

        def advance() -> None:
            if (
                self.hand_in_progress
                and self.hand_number == hand_number
                and len(self.community) == board_size
                and self.current_player_index == -1
            ):
                self.advance_street()
            else:
                LOGGER.debug("Ignoring stale street advance for hand %s", hand_number)

        if self.street_pacer is not None:
            self.street_pacer(advance)
        else:
            advance()

    def advance_street(self) -> bool:
        """Deal the next street, or settle at showdown once the board is complete."""
        if not self.hand_in_progress or self.current_player_index != -1:
            return False
        if len(self.community) >= 5:
            self._showdown()
            self._publish_state()
            return True

        count = 3 if not self.community else 1
        try:
            cards = self.deck.deal_many(count)
        except DeckExhausted as exc:
            LOGGER.error("Deck exhausted dealing street in hand %s: %s", self.hand_number, exc)
            self._abort_hand(str(exc))
            return False
        self.community.extend(cards)
        self.stage = _STAGE_BY_BOARD[len(self.community)]
        LOGGER.info("Hand %s %s: %s", self.hand_number, self.stage.value, cards_to_labels(self.community))
        self._emit("BOARD", stage=self.stage.value, cards=cards_to_labels(cards), community=cards_to_labels(self.community))

        if len(self.actors()) <= 1:
            # Nobody left to bet: run the board out.
            self._publish_state()
            self._schedule_advance()
            return True

        assert self.button is not None
        first = self._next_to_act(self.button)
        assert first is not None
        self._set_turn(first)
        self._publish_state()
        return True

    # Settlement ------------------------------------------------------

    def _showdown(self) -> None:
        contenders = self.in_hand()
        payouts = resolve_showdown(self.pots, self.players(), self.community, self.ranker)
        self._emit(
            "SHOWDOWN",
            board=cards_to_labels(self.community),
            hands=[
                {"seat": p.seat, "name": p.name, "hand": list(p.hand), "description": p.hand_description}
                for p in contenders
            ],
        )
        self._end_hand(payouts)

    def _settle_fold_out(self) -> None:
        refunds = collect_round(self.players(), self.pots)
        self.current_bet = 0
        # The last player standing collects this street's layer as a refund.
        payouts: List[Payout] = []
        for seat, amount in refunds.items():
            player = self.seats[seat]
            if player is not None and player.in_hand:
                payouts.append(Payout(seat=seat, name=player.name, amount=amount))
        payouts += resolve_showdown(self.pots, self.players(), self.community, self.ranker)
        self._end_hand(payouts)

    def _end_hand(self, payouts: List[Payout]) -> None:
        for payout in payouts:
            self._emit("POT_AWARD", seat=payout.seat, name=payout.name, amount=payout.amount, description=payout.description)
        self.last_winners = summarize_winners(payouts)
        self._close_hand()
        LOGGER.info(
            "Hand %s finished; stacks=%s",
            self.hand_number,
            {player.name: player.stack for player in self.players()},
        )
        self._emit(
            "HAND_COMPLETE",
            hand_number=self.hand_number,
            winners=[{"seat": w.seat, "name": w.name, "amount": w.amount, "description": w.description} for w in self.last_winners],
        )

    def _abort_hand(self, reason: str) -> None:
        refund_all(self.players(), self.pots)
        self._close_hand()
        LOGGER.error("Hand %s aborted: %s", self.hand_number, reason)
        self._emit("HAND_ABORTED", hand_number=self.hand_number, reason=reason)
        self._publish_state()

    def _close_hand(self) -> None:
        self.hand_in_progress = False
        self.current_player_index = -1
        self.current_bet = 0
        self.turn_id += 1
        for player in self.players():
            player.reset_for_round()
        settle_player_states(self.players())

    # Equity ----------------------------------------------------------

    def _request_equity(self, player: Player) -> None:
        """Estimate equity off the action path; stale results are dropped."""
        if not player.in_hand or len(player.hand) != 2:
            return
        hole = list(player.hand)
        board = cards_to_labels(self.community)
        opponents = len(self.in_hand()) - 1
        seat, name, hand_number = player.seat, player.name, self.hand_number

        def job() -> float:
            return self.equity.estimate(hole, board, opponents)

        def done(value: float) -> None:
            self._apply_equity(seat, name, hand_number, len(board), value)

        self.runner.run_in_background(job, done)  # type: ignore[attr-defined]

    def _apply_equity(self, seat: int, name: str, hand_number: int, board_size: int, value: float) -> None:
        with self._equity_lock:
            player = self.seats[seat]
            if (
                player is None
                or player.name != name
                or not player.in_hand
                or hand_number != self.hand_number
                or board_size != len(self.community)
            ):
                LOGGER.debug("Discarding stale equity for seat %s", seat)
                return
            player.equity = value
        self._emit("EQUITY", seat=seat, name=name, equity=value)
        self._publish_state()

    def pot_odds_for(self, player: Player) -> float:
        to_call = min(max(0, self.current_bet - player.current_bet), player.stack)
        return pot_odds(to_call, self.pot_total())

    # Snapshots -------------------------------------------------------

    def snapshot(self) -> Dict[str, object]:
        return table_state(self)

    def export_snapshot(self) -> Dict[str, object]:
        return export_state(self)


def _dealt_in(player: Player) -> bool:
    return player.state == PlayerState.IN_GAME


def _parse_kind(kind: Union[ActionType, str]) -> ActionType:
    if isinstance(kind, ActionType):
        return kind
    if isinstance(kind, str):
        try:
            return ActionType(kind.strip().upper())
        except ValueError:
            pass
    raise ActionRejected(f"Unsupported action {kind!r}")


def _parse_amount(amount: object) -> int:
    if isinstance(amount, bool) or amount is None:
        raise ActionRejected("Raise requires amount")
    if isinstance(amount, int):
        return amount
    if isinstance(amount, float) and amount.is_integer():
        return int(amount)
    if isinstance(amount, str) and amount.strip().isdigit():
        return int(amount.strip())
    raise ActionRejected(f"Invalid amount {amount!r}")
