from __future__ import annotations

from typing import Dict, Protocol

# Outbound event names shared by the engine and the websocket layer.
GAME_STATE = "game_state"
YOUR_TURN = "your_turn"
GAME_RESULT = "game_result"
KICKED = "kicked"
KICK_RESULT = "kick_result"
JOINED = "joined"
ERROR = "error"


class Transport(Protocol):
    """Where a table sends its messages.

    Calls must not block: the table emits while it is mid-transition and
    expects delivery to happen later, in call order.
    """

    def send(self, seat_id: str, event: str, payload: Dict[str, object]) -> None:
        ...

    def broadcast(self, room_id: str, event: str, payload: Dict[str, object]) -> None:
        ...

    def disconnect(self, seat_id: str) -> None:
        ...
