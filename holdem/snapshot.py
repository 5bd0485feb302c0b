from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Dict, List, Optional

from .cards import cards_to_labels

if TYPE_CHECKING:
    from .game import Table


def table_state(table: "Table") -> Dict[str, object]:
    """Live view of the table pushed to observers after every mutation."""
    seats: List[Dict[str, object]] = []
    for player in table.players():
        seats.append(
            {
                "seat": player.seat,
                "name": player.name,
                "stack": player.stack,
                "hand": list(player.hand),
                "state": player.state.value,
                "currentBet": player.current_bet,
                "isAllIn": player.is_all_in,
                "actedThisRound": player.acted_this_round,
                "equity": player.equity,
                "potOdds": table.pot_odds_for(player) if player.in_hand else 0.0,
                "isBot": player.is_bot,
                "isButton": table.button == player.seat,
                "kickPending": player.kick_pending,
                "connected": player.connected,
                "handDescription": player.hand_description,
            }
        )
    return {
        "handNumber": table.hand_number,
        "players": seats,
        "communityCards": cards_to_labels(table.community),
        "pots": [{"total": pot.total, "contributions": dict(pot.contributions)} for pot in table.pots],
        "currentBet": table.current_bet,
        "minRaise": table.min_raise,
        "currentPlayerIndex": table.current_player_index,
        "buttonIndex": table.button if table.button is not None else -1,
        "stage": table.stage.value,
        "handInProgress": table.hand_in_progress,
        "blinds": {"small": table.config.sb, "big": table.config.bb},
        "lastWinners": [
            {"seat": w.seat, "name": w.name, "amount": w.amount, "description": w.description}
            for w in table.last_winners
        ],
        "gameOver": table.game_over,
    }


def export_state(table: "Table") -> Dict[str, object]:
    """Audit/reconnection snapshot: the live state plus a UTC timestamp."""
    state = table_state(table)
    state["timestamp"] = datetime.now(timezone.utc).isoformat()
    state["turnId"] = table.turn_id
    return state


def mask_hands(state: Dict[str, object], viewer_seat: Optional[int]) -> Dict[str, object]:
    """Hide hole cards the viewer should not see until they are shown down."""
    masked = dict(state)
    revealed = not state.get("handInProgress") and bool(state.get("lastWinners"))
    players = []
    for entry in state.get("players", []):  # type: ignore[union-attr]
        seat_view = dict(entry)
        shown = revealed and seat_view.get("handDescription") is not None
        if seat_view.get("seat") != viewer_seat and not shown:
            seat_view["hand"] = ["??"] * len(seat_view.get("hand", []))
            seat_view["equity"] = None
        players.append(seat_view)
    masked["players"] = players
    return masked
