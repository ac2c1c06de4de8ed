from __future__ import annotations

import asyncio
import json
import logging
import secrets
from typing import Dict, Optional
from urllib.parse import parse_qs, urlsplit
from uuid import uuid4

import websockets
from websockets.asyncio.server import ServerConnection

from holdem.models import SeatStatus, TableConfig
from holdem.table import Table
from holdem.timers import Scheduler, TaskScheduler
from holdem.transport import ERROR, JOINED, KICK_RESULT

from .channels import ClientSession, SessionTransport, envelope
from .registry import RoomRegistry

LOGGER = logging.getLogger("room_server")

DEFAULT_ROOM = "room1"

# RoomServer glues tables to websocket clients. Tables never see a socket:
# they talk to SessionTransport, which queues frames per connection.


class RoomServer:
    def __init__(
        self,
        config: TableConfig,
        default_room: str = DEFAULT_ROOM,
        scheduler: Optional[Scheduler] = None,
        registry: Optional[RoomRegistry] = None,
    ) -> None:
        self.config = config
        self.default_room = default_room
        self.scheduler = scheduler or TaskScheduler()
        self.transport = SessionTransport()
        self.registry = registry or RoomRegistry(self._create_table)
        # Reconnect tokens, handed out on join so a seat id alone is not enough.
        self.tokens: Dict[str, str] = {}

    def _create_table(self, room_id: str) -> Table:
        return Table(room_id, self.config, self.transport, self.scheduler, on_seat_removed=self._forget_seat)

    def _forget_seat(self, seat_id: str) -> None:
        self.tokens.pop(seat_id, None)

    async def start(self, host: str = "0.0.0.0", port: int = 3000) -> None:
        async with websockets.serve(self._handle_connection, host, port):
            LOGGER.info("Room server listening on %s:%s", host, port)
            await asyncio.Future()

    def room_for(self, path: str) -> str:
        query = parse_qs(urlsplit(path).query)
        values = query.get("room") or query.get("roomId")
        room = values[0].strip() if values else ""
        return room or self.default_room

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        session = ClientSession(
            connection_id=uuid4().hex,
            room_id=self.room_for(websocket.request.path),
            websocket=websocket,
        )
        self.open_session(session)
        writer = asyncio.create_task(session.pump())
        try:
            async for raw in websocket:
                self.handle_message(session, self._decode(raw))
        except websockets.ConnectionClosed:
            pass
        finally:
            self.close_session(session)
            writer.cancel()

    def open_session(self, session: ClientSession) -> Table:
        self.transport.attach(session)
        table = self.registry.get_or_create(session.room_id)
        LOGGER.info("Connection %s entered room %s", session.connection_id, session.room_id)
        return table

    def close_session(self, session: ClientSession) -> None:
        self.transport.detach(session)
        table = self.registry.get(session.room_id)
        if table is not None:
            table.disconnect(session.seat_id)
        LOGGER.info("Connection %s left room %s", session.connection_id, session.room_id)

    def handle_message(self, session: ClientSession, message: Dict[str, object]) -> None:
        if not message:
            return
        table = self.registry.get_or_create(session.room_id)
        msg_type = message.get("type")

        if msg_type == "join":
            self._handle_join(session, table, message)
        elif msg_type == "action":
            table.submit_action(session.seat_id, message.get("action"))
        elif msg_type == "kick":
            target = message.get("targetId", message.get("target_id"))
            result = table.kick(session.seat_id, target if isinstance(target, str) else "")
            session.enqueue(envelope(KICK_RESULT, result.as_payload()))
        elif msg_type == "reconnect":
            self._handle_reconnect(session, table, message)
        else:
            self._send_error(session, code="UNKNOWN_TYPE", msg="Unsupported message type")

    def _handle_join(self, session: ClientSession, table: Table, message: Dict[str, object]) -> None:
        if table.seat(session.seat_id) is not None:
            self._send_error(session, code="ALREADY_SEATED", msg="Already seated in this room")
            return
        if table.is_full:
            self._send_error(session, code="ROOM_FULL", msg="No seats available")
            return
        name = message.get("name")
        token = secrets.token_hex(16)
        self.tokens[session.seat_id] = token
        # Welcome goes out first so the client knows its seat id before any state.
        session.enqueue(envelope(JOINED, self._welcome(session, token)))
        table.join(session.seat_id, name if isinstance(name, str) else None)

    def _handle_reconnect(self, session: ClientSession, table: Table, message: Dict[str, object]) -> None:
        seat_id = message.get("seat_id")
        token = message.get("token")
        seat = table.seat(seat_id) if isinstance(seat_id, str) else None
        if (
            seat is None
            or seat.status != SeatStatus.DISCONNECTED
            or not isinstance(token, str)
            or not secrets.compare_digest(self.tokens.get(seat.seat_id, ""), token)
            or table.seat(session.seat_id) is not None
        ):
            self._send_error(session, code="RECONNECT_REJECTED", msg="No disconnected seat matches")
            return
        self.transport.bind(session, seat.seat_id)
        session.enqueue(envelope(JOINED, self._welcome(session, token)))
        table.reconnect(seat.seat_id)

    def _welcome(self, session: ClientSession, token: str) -> Dict[str, object]:
        return {
            "seat_id": session.seat_id,
            "token": token,
            "room_id": session.room_id,
            "config": self.config.as_payload(),
        }

    def _send_error(self, session: ClientSession, code: str, msg: str) -> None:
        session.enqueue(envelope(ERROR, {"code": code, "msg": msg}))

    def _decode(self, raw: object) -> Dict[str, object]:
        try:
            message = json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            return {}
        return message if isinstance(message, dict) else {}
