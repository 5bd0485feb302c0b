from holdem.models import ActionType, PlayerState, TableConfig

from .helpers import create_table, event_names, perform_actions, record_events


def test_join_assigns_seats_in_order():
    table = create_table(("Alpha", "Beta"))
    assert [(player.seat, player.name, player.state) for player in table.players()] == [
        (0, "Alpha", PlayerState.READY),
        (1, "Beta", PlayerState.READY),
    ]
    assert all(player.stack == 1_000 for player in table.players())


def test_join_rejects_duplicates_bad_stacks_and_full_table():
    table = create_table(("Alpha", "Beta"), max_seats=3)
    assert table.join("alpha") is None
    assert table.join("   ") is None
    assert table.join("Gamma", -5) is None
    assert table.join("Gamma") is not None
    assert table.join("Delta") is None


def test_join_mid_hand_waits_for_next_hand():
    table = create_table(("Alpha", "Beta"))
    assert table.start_hand()
    late = table.join("Gamma")
    assert late is not None
    assert late.state == PlayerState.WAITING
    assert late.hand == []

    perform_actions(table, [(0, ActionType.FOLD, None)])
    assert late.state == PlayerState.WAITING
    assert table.start_hand()
    assert late.state == PlayerState.IN_GAME
    assert len(late.hand) == 2


def test_zero_stack_join_sits_out_until_topped_up():
    table = create_table(("Alpha", "Beta"))
    broke = table.join("Gamma", 0)
    assert broke is not None
    assert broke.state == PlayerState.SITTING_OUT

    assert table.start_hand()
    assert broke.hand == []
    perform_actions(table, [(0, ActionType.FOLD, None)])

    assert table.top_up("Gamma", 500)
    assert broke.state == PlayerState.READY
    assert broke.stack == 500


def test_top_up_refused_for_player_in_hand():
    table = create_table(("Alpha", "Beta"))
    assert table.start_hand()
    assert not table.top_up(0, 100)
    assert table.seats[0].stack == 995


def test_leave_without_hand_frees_seat_immediately():
    table = create_table(("Alpha", "Beta", "Gamma"))
    events = record_events(table)
    assert table.leave("Beta")
    assert table.seats[1] is None
    assert event_names(events) == ["PLAYER_LEFT"]
    assert table.join("Delta").seat == 1


def test_leave_on_turn_folds_and_hand_continues():
    table = create_table(("Alpha", "Beta", "Gamma"))
    assert table.start_hand()
    assert table.current_player_index == 0

    assert table.leave(0)
    assert table.seats[0].state == PlayerState.LEFT
    assert table.hand_in_progress
    assert table.current_player_index == 1

    perform_actions(table, [(1, ActionType.FOLD, None)])
    assert not table.hand_in_progress
    assert table.start_hand()
    assert table.seats[0] is None
    assert len(table.in_hand()) == 2


def test_leave_heads_up_hands_the_pot_to_the_last_player():
    table = create_table(("Alpha", "Beta"))
    assert table.start_hand()
    assert table.leave("Beta")

    assert not table.hand_in_progress
    assert table.seats[1] is None
    assert table.seats[0].stack == 1_005
    assert [w.name for w in table.last_winners] == ["Alpha"]


def test_unknown_player_cannot_leave():
    table = create_table(("Alpha", "Beta"))
    assert not table.leave("Nobody")
    assert not table.leave(7)


def test_kick_during_hand_is_deferred():
    table = create_table(("Alpha", "Beta", "Gamma"))
    events = record_events(table)
    assert table.start_hand()

    assert table.kick(2)
    assert table.seats[2].kick_pending
    assert table.seats[2].state == PlayerState.IN_GAME
    assert "PLAYER_KICKED" in event_names(events)

    perform_actions(table, [(0, ActionType.FOLD, None), (1, ActionType.FOLD, None)])
    assert table.seats[2].state == PlayerState.LEFT
    assert table.start_hand()
    assert table.seats[2] is None


def test_kick_between_hands_removes_at_once():
    table = create_table(("Alpha", "Beta", "Gamma"))
    assert table.kick("Gamma")
    assert table.seats[2] is None


def test_disconnected_player_is_held_out_and_returns():
    table = create_table(("Alpha", "Beta", "Gamma"))
    table.set_connected("Gamma", False)
    assert table.seats[2].state == PlayerState.OFFLINE

    assert table.start_hand()
    assert table.seats[2].hand == []
    assert table.seats[2].state == PlayerState.OFFLINE
    perform_actions(table, [(0, ActionType.FOLD, None)])

    table.set_connected("Gamma", True)
    assert table.seats[2].state == PlayerState.READY
    assert table.start_hand()
    assert table.seats[2].state == PlayerState.IN_GAME


def test_start_hand_needs_two_funded_players():
    table = create_table(("Alpha",))
    events = record_events(table)
    assert not table.start_hand()
    assert table.game_over
    assert event_names(events) == ["GAME_OVER"]


def test_start_hand_refused_while_hand_running():
    table = create_table()
    assert table.start_hand()
    assert not table.start_hand()
    assert table.hand_number == 1


def test_test_mode_environment_zeroes_delays(monkeypatch):
    monkeypatch.setenv("HOLDEM_TEST_MODE", "1")
    config = TableConfig(settle_delay_ms=2_000, bot_delay_ms=1_000).apply_env()
    assert (config.settle_delay_ms, config.bot_delay_ms) == (0, 0)
    assert config.turn_timeout_ms == 30_000

    monkeypatch.delenv("HOLDEM_TEST_MODE")
    assert TableConfig().apply_env().settle_delay_ms == 2_000
