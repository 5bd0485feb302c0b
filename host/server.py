from __future__ import annotations

import asyncio
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

import websockets
from websockets.asyncio.server import serve

from bots.policy import bot_decision
from holdem.equity import EquityEstimator
from holdem.game import Table
from holdem.models import Event, TableConfig
from holdem.preflop import PreflopTable
from holdem.scheduler import TurnScheduler
from holdem.snapshot import mask_hands
from holdem.timers import AsyncioTimers

LOGGER = logging.getLogger("holdem.host")

# HostServer glues the table engine to WebSocket clients. Every network concern
# lives here; the Table stays pure.

FORWARDED_EVENTS = {
    "HAND_STARTED",
    "POST_BLINDS",
    "ACTION",
    "TURN",
    "BOARD",
    "SHOWDOWN",
    "POT_AWARD",
    "HAND_COMPLETE",
    "HAND_ABORTED",
    "GAME_OVER",
    "PLAYER_JOINED",
    "PLAYER_LEFT",
    "PLAYER_KICKED",
    "ROUND_COMPLETE",
}


@dataclass
class ClientSession:
    websocket: Any
    seat: Optional[int] = None
    name: Optional[str] = None


class HostServer:
    def __init__(
        self,
        config: TableConfig,
        timers: Optional[Any] = None,
        preflop: Optional[PreflopTable] = None,
    ) -> None:
        equity = EquityEstimator(preflop=preflop, trials=config.equity_trials)
        self.table = Table(config, equity=equity)
        self.sessions: Dict[int, ClientSession] = {}
        self.lock = asyncio.Lock()
        self.scheduler: Optional[TurnScheduler] = None
        self._outbox: List[Dict[str, object]] = []
        self._state_dirty = False
        self._flush_scheduled = False
        self._flush_tasks: Set["asyncio.Task[None]"] = set()
        self._executor: Optional[ThreadPoolExecutor] = None
        self.table.subscribe(self._on_table_event)
        if timers is not None:
            self._wire(timers)

    def _wire(self, timers: Any) -> None:
        self.table.runner = timers
        self.scheduler = TurnScheduler(self.table, timers, bot_policy=bot_decision)
        self.scheduler.attach()

    async def start(self, host: str = "0.0.0.0", port: int = 8765) -> None:
        if self.scheduler is None:
            self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="equity")
            self._wire(AsyncioTimers(executor=self._executor))
        async with serve(self._handle_connection, host, port):
            LOGGER.info("Table host listening on %s:%s", host, port)
            await asyncio.Future()

    def add_bot(self, name: str, stack: Optional[int] = None) -> bool:
        return self.table.join(name, stack, is_bot=True) is not None

    # Connections -----------------------------------------------------

    async def _handle_connection(self, websocket: Any) -> None:
        session = ClientSession(websocket=websocket)
        await self._send_json(websocket, "welcome", {"config": self._config_payload()})
        await self._send_json(websocket, "state", mask_hands(self.table.snapshot(), None))
        try:
            async for raw in websocket:
                await self._handle_message(session, self._decode(raw))
        except websockets.ConnectionClosed:
            pass
        finally:
            if session.seat is not None and self.sessions.get(session.seat) is session:
                self.sessions.pop(session.seat, None)
                async with self.lock:
                    self.table.set_connected(session.seat, False)
                LOGGER.info("Seat %s (%s) disconnected", session.seat, session.name)
            await self.flush()

    async def _handle_message(self, session: ClientSession, message: Dict[str, object]) -> None:
        kind = message.get("type")
        handler = {
            "join": self._handle_join,
            "leave": self._handle_leave,
            "action": self._handle_action,
            "start_hand": self._handle_start_hand,
            "snapshot": self._handle_snapshot,
            "add_bot": self._handle_add_bot,
            "kick": self._handle_kick,
            "top_up": self._handle_top_up,
        }.get(kind)  # type: ignore[arg-type]
        if handler is None:
            await self._send_error(session.websocket, code="UNKNOWN_TYPE", msg="Unsupported message type")
            return
        await handler(session, message)
        await self.flush()

    async def _handle_join(self, session: ClientSession, message: Dict[str, object]) -> None:
        name = message.get("name")
        stack = message.get("stack")
        if not isinstance(name, str) or not name.strip():
            await self._send_error(session.websocket, code="BAD_SCHEMA", msg="name required")
            return
        if stack is not None and (isinstance(stack, bool) or not isinstance(stack, int)):
            await self._send_error(session.websocket, code="BAD_SCHEMA", msg="stack must be an integer")
            return

        async with self.lock:
            existing = self.table.find(name)
            if existing is not None and not existing.connected and existing.seat not in self.sessions:
                # Reconnection to a seat whose socket dropped.
                self.table.set_connected(existing.seat, True)
                player = existing
            else:
                player = self.table.join(name, stack)
        if player is None:
            await self._send_error(session.websocket, code="JOIN_REJECTED", msg="Seat claim rejected")
            return

        previous = self.sessions.get(player.seat)
        if previous and previous is not session:
            await previous.websocket.close(code=4000, reason="Replaced by new connection")
        session.seat = player.seat
        session.name = player.name
        self.sessions[player.seat] = session
        await self._send_json(session.websocket, "seated", {"seat": player.seat, "name": player.name})

    async def _handle_leave(self, session: ClientSession, message: Dict[str, object]) -> None:
        if session.seat is None:
            await self._send_error(session.websocket, code="NOT_SEATED", msg="Join first")
            return
        async with self.lock:
            self.table.leave(session.seat)
        self.sessions.pop(session.seat, None)
        session.seat = None

    async def _handle_action(self, session: ClientSession, message: Dict[str, object]) -> None:
        if session.seat is None:
            await self._send_error(session.websocket, code="NOT_SEATED", msg="Join first")
            return
        action = message.get("action")
        amount = message.get("amount")
        if not isinstance(action, str):
            await self._send_error(session.websocket, code="BAD_SCHEMA", msg="action required")
            return
        async with self.lock:
            if self.table.current_player_index != session.seat:
                accepted = False
                code, msg = "OUT_OF_TURN", "Not your turn"
            else:
                accepted = self.table.apply_action(session.seat, action, amount)  # type: ignore[arg-type]
                code, msg = "INVALID_ACTION", "Action rejected"
        if not accepted:
            await self._send_error(session.websocket, code=code, msg=msg)

    async def _handle_start_hand(self, session: ClientSession, message: Dict[str, object]) -> None:
        async with self.lock:
            started = self.table.start_hand()
        if not started:
            await self._send_error(session.websocket, code="NOT_ENOUGH_PLAYERS", msg="Need two funded players")

    async def _handle_add_bot(self, session: ClientSession, message: Dict[str, object]) -> None:
        name = message.get("name")
        if not isinstance(name, str) or not name.strip():
            await self._send_error(session.websocket, code="BAD_SCHEMA", msg="name required")
            return
        async with self.lock:
            added = self.add_bot(name)
        if not added:
            await self._send_error(session.websocket, code="JOIN_REJECTED", msg="Seat claim rejected")

    async def _handle_kick(self, session: ClientSession, message: Dict[str, object]) -> None:
        seat = message.get("seat")
        if isinstance(seat, bool) or not isinstance(seat, int):
            await self._send_error(session.websocket, code="BAD_SCHEMA", msg="seat must be an integer")
            return
        async with self.lock:
            removed = self.table.kick(seat)
        if not removed:
            await self._send_error(session.websocket, code="NOT_SEATED", msg="No player at that seat")

    async def _handle_top_up(self, session: ClientSession, message: Dict[str, object]) -> None:
        amount = message.get("amount")
        if session.seat is None:
            await self._send_error(session.websocket, code="NOT_SEATED", msg="Join first")
            return
        if isinstance(amount, bool) or not isinstance(amount, int):
            await self._send_error(session.websocket, code="BAD_SCHEMA", msg="amount must be an integer")
            return
        async with self.lock:
            accepted = self.table.top_up(session.seat, amount)
        if not accepted:
            await self._send_error(session.websocket, code="TOP_UP_REJECTED", msg="Top-up refused")

    async def _handle_snapshot(self, session: ClientSession, message: Dict[str, object]) -> None:
        async with self.lock:
            payload = mask_hands(self.table.export_snapshot(), session.seat)
        await self._send_json(session.websocket, "snapshot", payload)

    # Broadcasting ----------------------------------------------------

    def _on_table_event(self, event: Event) -> None:
        if event.ev == "STATE":
            self._state_dirty = True
        elif event.ev in FORWARDED_EVENTS:
            self._outbox.append({"ev": event.ev, **event.data})
        else:
            return
        self._schedule_flush()

    def _schedule_flush(self) -> None:
        # Timer-driven changes have no request to piggyback on.
        if self._flush_scheduled:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._flush_scheduled = True
        task = loop.create_task(self.flush())
        self._flush_tasks.add(task)
        task.add_done_callback(self._flush_tasks.discard)

    async def flush(self) -> None:
        self._flush_scheduled = False
        events, self._outbox = self._outbox, []
        for event in events:
            await self._broadcast("event", event)
        if self._state_dirty:
            self._state_dirty = False
            state = self.table.snapshot()
            await asyncio.gather(
                *(self._send_json(s.websocket, "state", mask_hands(state, seat)) for seat, s in list(self.sessions.items())),
                return_exceptions=True,
            )

    async def _broadcast(self, msg_type: str, payload: Dict[str, object]) -> None:
        targets = [session.websocket for session in self.sessions.values()]
        if not targets:
            return
        message = self._envelope(msg_type, payload)
        await asyncio.gather(*(socket.send(message) for socket in targets), return_exceptions=True)

    # Wire helpers ----------------------------------------------------

    def _config_payload(self) -> Dict[str, object]:
        config = self.table.config
        return {
            "max_seats": config.max_seats,
            "starting_stack": config.starting_stack,
            "sb": config.sb,
            "bb": config.bb,
            "turn_timeout_ms": config.turn_timeout_ms,
        }

    async def _send_json(self, websocket: Any, msg_type: str, payload: Dict[str, object]) -> None:
        try:
            await websocket.send(self._envelope(msg_type, payload))
        except websockets.ConnectionClosed:
            pass

    async def _send_error(self, websocket: Any, code: str, msg: str) -> None:
        await self._send_json(websocket, "error", {"code": code, "msg": msg})

    def _envelope(self, msg_type: str, payload: Dict[str, object]) -> str:
        body = {"type": msg_type, "v": 1, "ts": datetime.now(timezone.utc).isoformat()}
        body.update(payload)
        return json.dumps(body, default=str)

    def _decode(self, raw: Any) -> Dict[str, object]:
        try:
            message = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return {}
        return message if isinstance(message, dict) else {}
