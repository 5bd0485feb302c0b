import random

import pytest

from holdem.cards import Deck
from holdem.game import Table
from holdem.models import ActionType, TableConfig
from holdem.timers import InlineRunner

from .helpers import auto_complete_hand


def _random_action(table: Table, seat_idx: int, rng: random.Random):
    legal = table.legal_actions(seat_idx)
    roll = rng.random()
    raise_kind = next((kind for kind in (ActionType.BET, ActionType.RAISE) if kind in legal.legal), None)
    if raise_kind is not None and roll < 0.25:
        assert legal.min_raise_to is not None and legal.max_raise_to is not None
        return raise_kind, rng.randint(legal.min_raise_to, legal.max_raise_to)
    if roll < 0.30:
        return ActionType.ALL_IN, None
    if roll < 0.40 and ActionType.CALL in legal.legal:
        return ActionType.FOLD, None
    return (ActionType.CHECK if ActionType.CHECK in legal.legal else ActionType.CALL), None


@pytest.mark.parametrize("seed", [3, 11, 29])
def test_chips_are_conserved_across_random_hands(seed):
    rng = random.Random(seed)
    table = Table(TableConfig.for_tests(equity_trials=50), deck=Deck(random.Random(seed)), runner=InlineRunner())
    for idx in range(5):
        table.join(f"Stress{idx}")
    total = table.chips_in_play()

    hands_played = 0
    while table.can_start_hand() and hands_played < 60:
        assert table.start_hand()
        hands_played += 1
        while table.hand_in_progress:
            assert table.chips_in_play() == total
            seat_idx = table.current_player_index
            action, amount = _random_action(table, seat_idx, rng)
            assert table.apply_action(seat_idx, action, amount), (action, amount)
        assert sum(player.stack for player in table.players()) == total
        assert all(player.current_bet == 0 for player in table.players())
        assert table.pots == []

    assert hands_played > 0


def test_table_survives_many_passive_hands():
    table = Table(TableConfig.for_tests(equity_trials=20), deck=Deck(random.Random(5)), runner=InlineRunner())
    for idx in range(6):
        table.join(f"Calm{idx}", 500)

    for _ in range(40):
        if not table.can_start_hand():
            break
        assert table.start_hand()
        auto_complete_hand(table)

    assert sum(player.stack for player in table.players()) == 3_000
    assert table.hand_number >= 1
