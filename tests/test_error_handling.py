import copy

import pytest

from holdem.errors import ActionRejected
from holdem.events import EventBus
from holdem.models import ActionType, Event, PlayerState

from .helpers import create_table, event_names, perform_actions, record_events


def _ledger(table):
    return (
        [(player.stack, player.current_bet, player.state, player.acted_this_round) for player in table.players()],
        [(pot.total, dict(pot.contributions)) for pot in table.pots],
        table.current_bet,
        table.min_raise,
        table.current_player_index,
        table.turn_id,
    )


@pytest.mark.parametrize(
    "seat,action,amount",
    [
        (0, ActionType.CHECK, None),  # facing the big blind
        (1, ActionType.CALL, None),  # out of turn
        (0, ActionType.RAISE, 15),  # below the minimum raise
        (0, ActionType.RAISE, 5_000),  # more than the stack
        (0, ActionType.RAISE, None),
        (0, ActionType.BET, "lots"),
        (0, "DANCE", None),
        (5, ActionType.FOLD, None),
    ],
)
def test_rejected_action_leaves_state_untouched(seat, action, amount):
    table = create_table()
    assert table.start_hand()
    before = copy.deepcopy(_ledger(table))
    snapshot = table.snapshot()

    assert not table.apply_action(seat, action, amount)
    assert _ledger(table) == before
    assert table.snapshot() == snapshot


def test_rejection_emits_no_events():
    table = create_table()
    assert table.start_hand()
    events = record_events(table)
    assert not table.apply_action(0, ActionType.CHECK)
    assert events == []


def test_actions_refused_between_hands():
    table = create_table()
    assert not table.apply_action(0, ActionType.CHECK)
    assert not table.act("Alice", "CALL")


def test_act_by_name_accepts_string_kinds():
    table = create_table()
    assert table.start_hand()
    assert table.act("alice", "raise", "40")
    assert table.current_bet == 40
    assert not table.act("Mallory", "fold")


def test_folded_player_cannot_act_again():
    table = create_table(("Alpha", "Beta", "Gamma"))
    assert table.start_hand()
    perform_actions(table, [(0, ActionType.FOLD, None)])
    table.current_player_index = 0
    assert not table.apply_action(0, ActionType.CALL)


def test_legal_actions_raise_for_inactive_seat():
    table = create_table()
    with pytest.raises(ActionRejected):
        table.legal_actions(0)


def test_deck_exhaustion_on_flop_aborts_and_refunds():
    table = create_table(deck=["Kh", "Ah", "Kd", "Ad"])
    events = record_events(table)
    assert table.start_hand()
    perform_actions(table, [(0, ActionType.CALL, None), (1, ActionType.CHECK, None)])

    assert not table.hand_in_progress
    assert [player.stack for player in table.players()] == [1_000, 1_000]
    assert table.pots == []
    assert table.community == []
    assert "HAND_ABORTED" in event_names(events)
    assert all(player.state == PlayerState.READY for player in table.players())


def test_deck_exhaustion_while_dealing_hole_cards():
    table = create_table(deck=["Kh", "Ah", "Kd"])
    assert not table.start_hand()
    assert not table.hand_in_progress
    assert [player.stack for player in table.players()] == [1_000, 1_000]
    assert [player.current_bet for player in table.players()] == [0, 0]


def test_failing_listener_does_not_break_the_table():
    table = create_table()

    def explode(event: Event) -> None:
        raise RuntimeError("observer bug")

    table.subscribe(explode)
    assert table.start_hand()
    perform_actions(table, [(0, ActionType.FOLD, None)])
    assert not table.hand_in_progress


def test_unsubscribe_stops_delivery():
    bus = EventBus()
    seen = []
    unsubscribe = bus.subscribe(seen.append)
    bus.publish(Event("PING"))
    unsubscribe()
    unsubscribe()
    bus.publish(Event("PING"))
    assert [event.ev for event in seen] == ["PING"]
