from holdem.models import ActionType, PlayerState, Stage

from .helpers import HeldStreets, create_table, event_names, perform_actions, record_events, rigged_labels


def test_re_raise_sequence_tracks_minimum_raise():
    table = create_table()
    assert table.start_hand()

    perform_actions(table, [(0, ActionType.RAISE, 40)])
    assert table.min_raise == 30
    # Re-raise must add at least the last raise size.
    assert not table.apply_action(1, ActionType.RAISE, 60)
    perform_actions(table, [(1, ActionType.RAISE, 120)])
    assert table.min_raise == 80
    perform_actions(table, [(0, ActionType.RAISE, 300)])
    assert table.min_raise == 180
    perform_actions(table, [(1, ActionType.CALL, None)])

    assert table.stage == Stage.FLOP
    assert table.pots[0].total == 600
    assert table.min_raise == table.config.bb


def test_short_all_in_reopens_action_and_sets_min_raise_to_its_increment():
    table = create_table(("Alpha", "Beta", "Gamma"), stacks=(1_000, 1_000, 150))
    assert table.start_hand()
    perform_actions(
        table,
        [
            (0, ActionType.RAISE, 100),
            (1, ActionType.CALL, None),
            (2, ActionType.ALL_IN, None),
        ],
    )

    assert table.current_bet == 150
    assert table.min_raise == 50
    assert table.seats[2].is_all_in
    assert table.current_player_index == 0
    assert table.legal_actions(0).min_raise_to == 200

    perform_actions(table, [(0, ActionType.CALL, None), (1, ActionType.CALL, None)])
    assert table.stage == Stage.FLOP
    assert table.pots[0].total == 450


def test_all_in_player_is_skipped_on_later_streets():
    table = create_table(("Alpha", "Beta", "Gamma"), stacks=(1_000, 1_000, 100))
    assert table.start_hand()
    perform_actions(
        table,
        [
            (0, ActionType.CALL, None),
            (1, ActionType.CALL, None),
            (2, ActionType.ALL_IN, None),
            (0, ActionType.CALL, None),
            (1, ActionType.CALL, None),
        ],
    )

    assert table.stage == Stage.FLOP
    assert table.current_player_index == 1
    perform_actions(table, [(1, ActionType.BET, 50), (0, ActionType.CALL, None)])
    assert [pot.total for pot in table.pots] == [300, 100]
    assert table.pots[1].contributions == {0: 50, 1: 50}


def test_all_in_and_call_runs_the_board_out():
    deck = rigged_labels([["Kh", "Kd"], ["Ah", "Ad"]], ["2c", "7d", "9h", "Js", "3c"])
    table = create_table(deck=deck)
    events = record_events(table)
    assert table.start_hand()
    perform_actions(table, [(0, ActionType.ALL_IN, None), (1, ActionType.CALL, None)])

    assert not table.hand_in_progress
    assert [card.label for card in table.community] == ["2c", "7d", "9h", "Js", "3c"]
    assert table.seats[0].stack == 2_000
    assert table.seats[1].stack == 0
    assert table.seats[1].state == PlayerState.LEFT
    assert [(w.name, w.amount, w.description) for w in table.last_winners] == [("Alice", 2_000, "Pair of Aces")]
    assert event_names(events).count("BOARD") == 3

    assert not table.start_hand()
    assert table.game_over
    assert table.seats[1] is None


def test_run_out_respects_street_pacer():
    table = create_table()
    streets = HeldStreets(table)
    assert table.start_hand()
    perform_actions(table, [(0, ActionType.ALL_IN, None), (1, ActionType.CALL, None)])

    assert table.hand_in_progress
    assert table.community == []
    streets.release()
    assert len(table.community) == 3
    streets.release()
    assert len(table.community) == 4
    streets.release_all()
    assert not table.hand_in_progress
    assert sum(player.stack for player in table.players()) == 2_000


def test_stale_street_advance_is_ignored():
    table = create_table()
    streets = HeldStreets(table)
    assert table.start_hand()
    perform_actions(table, [(0, ActionType.CALL, None), (1, ActionType.CHECK, None)])
    held = streets.pending.pop()
    held()
    assert len(table.community) == 3
    # Firing the same advance again must not deal the turn.
    held()
    assert len(table.community) == 3
    assert table.current_player_index == 1


def test_uncalled_raise_is_returned_when_caller_is_short():
    table = create_table(stacks=(1_000, 60))
    assert table.start_hand()
    perform_actions(table, [(0, ActionType.RAISE, 200), (1, ActionType.CALL, None)])

    assert not table.hand_in_progress
    assert sum(player.stack for player in table.players()) == 1_060
    assert table.last_winners
    assert sum(w.amount for w in table.last_winners) == 120
