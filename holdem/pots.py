from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Set

from .models import Player, Pot

LOGGER = logging.getLogger("holdem.pots")

# Side-pot construction. Bets sit on each Player.current_bet during a street and
# are carved into pot layers once the street closes.


def live_seats(players: Iterable[Player]) -> Set[int]:
    return {player.seat for player in players if player.in_hand}


def eligible_seats(pot: Pot, live: Set[int]) -> Set[int]:
    return {seat for seat in pot.contributions if seat in live}


def collect_round(players: Iterable[Player], pots: List[Pot]) -> Dict[int, int]:
    """Carve this street's bets into pot layers and reset every current bet.

    Each pass caps the layer at the smallest outstanding bet among live players.
    A layer contested by a single live player is uncalled and goes back to that
    player. Bets left over once no live player has anything outstanding were
    never matched and go back to whoever made them. Returns the chips handed
    back, keyed by seat.
    """
    players = list(players)
    by_seat = {player.seat: player for player in players}
    live = live_seats(players)
    remaining = {player.seat: player.current_bet for player in players if player.current_bet > 0}
    for player in players:
        player.current_bet = 0

    refunds: Dict[int, int] = {}
    while True:
        active = [seat for seat, amount in remaining.items() if amount > 0 and seat in live]
        if not active:
            break
        cap = min(remaining[seat] for seat in active)
        layer = Pot()
        for seat in sorted(remaining):
            take = min(remaining[seat], cap)
            if take > 0:
                layer.add(seat, take)
                remaining[seat] -= take
        if len(active) == 1:
            refunds[active[0]] = refunds.get(active[0], 0) + layer.total
        else:
            _append_layer(pots, layer, live)

    for seat, amount in remaining.items():
        if amount > 0:
            refunds[seat] = refunds.get(seat, 0) + amount

    for seat, amount in refunds.items():
        by_seat[seat].stack += amount
        LOGGER.info("Returned %s uncalled chips to %s", amount, by_seat[seat].name)
    return refunds


def _append_layer(pots: List[Pot], layer: Pot, live: Set[int]) -> None:
    # Consecutive layers with the same contestants are one pot.
    if pots and eligible_seats(pots[-1], live) == eligible_seats(layer, live):
        target = pots[-1]
        for seat, amount in layer.contributions.items():
            target.add(seat, amount)
        return
    pots.append(layer)


def refund_all(players: Iterable[Player], pots: List[Pot]) -> None:
    """Give every chip committed this hand back to its owner and empty the pots."""
    by_seat = {player.seat: player for player in players}
    for pot in pots:
        refund_pot(by_seat, pot)
    pots.clear()
    for player in by_seat.values():
        player.stack += player.current_bet
        player.current_bet = 0


def refund_pot(by_seat: Mapping[int, Player], pot: Pot) -> None:
    for seat, amount in pot.contributions.items():
        player = by_seat.get(seat)
        if player is None:
            LOGGER.error("Cannot refund %s chips to vacated seat %s", amount, seat)
            continue
        player.stack += amount
    pot.total = 0
    pot.contributions.clear()


def total_in_pots(pots: Iterable[Pot]) -> int:
    return sum(pot.total for pot in pots)
