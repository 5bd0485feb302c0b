from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Sequence

from .cards import Card, parse_cards
from .evaluator import HandRanker, RankedHand
from .models import Payout, Player, PlayerState, Pot
from .pots import refund_pot

LOGGER = logging.getLogger("holdem.showdown")


def resolve_showdown(
    pots: List[Pot],
    players: Sequence[Player],
    community: Sequence[Card],
    ranker: HandRanker,
) -> List[Payout]:
    """Award every pot to the best hand among the players who paid into it.

    Pots are settled independently, so a side pot can go to a different player
    than the main pot. Split pots hand out odd chips one at a time in seat order.
    The pot list is emptied.
    """
    by_seat = {player.seat: player for player in players}
    ranked: Dict[int, RankedHand] = {}
    payouts: List[Payout] = []

    for index, pot in enumerate(pots):
        if pot.total <= 0:
            continue
        contestants = sorted(
            seat for seat in pot.contributions if seat in by_seat and by_seat[seat].in_hand
        )
        if not contestants:
            LOGGER.error("Pot %s (%s chips) has no eligible contestants; refunding", index, pot.total)
            refund_pot(by_seat, pot)
            continue

        if len(contestants) == 1:
            winners = contestants
        else:
            for seat in contestants:
                if seat not in ranked:
                    cards = parse_cards(by_seat[seat].hand) + list(community)
                    ranked[seat] = ranker.rank(cards)
                    by_seat[seat].hand_description = ranked[seat].description
            best = ranker.winners([ranked[seat] for seat in contestants])
            winners = sorted(contestants[idx] for idx in best)

        share, remainder = divmod(pot.total, len(winners))
        for idx, seat in enumerate(winners):
            amount = share + (1 if idx < remainder else 0)
            player = by_seat[seat]
            player.stack += amount
            description = ranked[seat].description if seat in ranked else None
            payouts.append(Payout(seat=seat, name=player.name, amount=amount, description=description))
            LOGGER.info("Pot %s: %s wins %s%s", index, player.name, amount, f" with {description}" if description else "")
        pot.total = 0
        pot.contributions.clear()

    pots.clear()
    return payouts


def summarize_winners(payouts: Iterable[Payout]) -> List[Payout]:
    """Fold per-pot payouts into one entry per player, in order of first award."""
    merged: Dict[int, Payout] = {}
    for payout in payouts:
        if payout.seat in merged:
            merged[payout.seat].amount += payout.amount
        else:
            merged[payout.seat] = Payout(payout.seat, payout.name, payout.amount, payout.description)
    return list(merged.values())


def settle_player_states(players: Iterable[Player]) -> None:
    """Busted and kicked players leave; everyone else who played is ready again."""
    for player in players:
        if player.state in (PlayerState.LEFT, PlayerState.WAITING, PlayerState.OFFLINE, PlayerState.SITTING_OUT):
            continue
        if player.stack == 0 or player.kick_pending:
            player.state = PlayerState.LEFT
        else:
            player.state = PlayerState.READY
