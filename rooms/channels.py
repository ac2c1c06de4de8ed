from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

import websockets
from websockets.asyncio.server import ServerConnection

LOGGER = logging.getLogger("room_channels")

KICK_CLOSE_CODE = 4001


def envelope(msg_type: str, payload: Dict[str, object]) -> str:
    body: Dict[str, object] = {"type": msg_type, "v": 1, "ts": datetime.now(timezone.utc).isoformat()}
    body.update(payload)
    return json.dumps(body)


@dataclass
class ClientSession:
    connection_id: str
    room_id: str
    websocket: ServerConnection
    seat_id: str = ""
    outbox: "asyncio.Queue[Optional[str]]" = field(default_factory=asyncio.Queue)

    def __post_init__(self) -> None:
        if not self.seat_id:
            self.seat_id = self.connection_id

    def enqueue(self, message: str) -> None:
        self.outbox.put_nowait(message)

    def close_later(self) -> None:
        self.outbox.put_nowait(None)

    async def pump(self) -> None:
        # Single writer per socket keeps messages in the order they were queued.
        while True:
            message = await self.outbox.get()
            if message is None:
                await self.websocket.close(code=KICK_CLOSE_CODE, reason="Removed from room")
                return
            try:
                await self.websocket.send(message)
            except websockets.ConnectionClosed:
                return


class SessionTransport:
    """Delivers table output to websocket sessions by seat id and by room."""

    def __init__(self) -> None:
        self._by_seat: Dict[str, ClientSession] = {}
        self._rooms: Dict[str, Dict[str, ClientSession]] = {}

    def attach(self, session: ClientSession) -> None:
        self._by_seat[session.seat_id] = session
        self._rooms.setdefault(session.room_id, {})[session.connection_id] = session

    def detach(self, session: ClientSession) -> None:
        if self._by_seat.get(session.seat_id) is session:
            del self._by_seat[session.seat_id]
        members = self._rooms.get(session.room_id)
        if members is not None:
            members.pop(session.connection_id, None)
            if not members:
                del self._rooms[session.room_id]

    def bind(self, session: ClientSession, seat_id: str) -> None:
        if self._by_seat.get(session.seat_id) is session:
            del self._by_seat[session.seat_id]
        session.seat_id = seat_id
        self._by_seat[seat_id] = session

    def session_for(self, seat_id: str) -> Optional[ClientSession]:
        return self._by_seat.get(seat_id)

    def send(self, seat_id: str, event: str, payload: Dict[str, object]) -> None:
        session = self._by_seat.get(seat_id)
        if session is None:
            LOGGER.debug("No session for seat %s; dropping %s", seat_id, event)
            return
        session.enqueue(envelope(event, payload))

    def broadcast(self, room_id: str, event: str, payload: Dict[str, object]) -> None:
        members = self._rooms.get(room_id)
        if not members:
            return
        message = envelope(event, payload)
        for session in members.values():
            session.enqueue(message)

    def disconnect(self, seat_id: str) -> None:
        session = self._by_seat.get(seat_id)
        if session is not None:
            session.close_later()
