from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, Flag, auto
from typing import Dict, List

from .cards import Card


class Stage(str, Enum):
    WAITING = "waiting"
    PREFLOP = "preflop"
    FLOP = "flop"
    TURN = "turn"
    RIVER = "river"
    SHOWDOWN = "showdown"


BETTING_STAGES = (Stage.PREFLOP, Stage.FLOP, Stage.TURN, Stage.RIVER)


class ActionKind(str, Enum):
    FOLD = "fold"
    CHECK = "check"
    CALL = "call"
    RAISE = "raise"


class SeatStatus(str, Enum):
    ACTIVE = "active"
    FOLDED = "folded"
    SITOUT = "sitout"
    DISCONNECTED = "disconnected"


class Role(Flag):
    NONE = 0
    DEALER = auto()
    SMALL_BLIND = auto()
    BIG_BLIND = auto()
    HOST = auto()


@dataclass
class TableConfig:
    max_seats: int = 10
    starting_stack: int = 10_000
    sb: int = 50
    bb: int = 100
    turn_timeout: float = 10.0
    disconnect_retention: float = 300.0
    next_hand_delay: float = 5.0

    def as_payload(self) -> Dict[str, object]:
        return {
            "max_seats": self.max_seats,
            "starting_stack": self.starting_stack,
            "sb": self.sb,
            "bb": self.bb,
            "turn_timeout": self.turn_timeout,
        }


@dataclass
class Seat:
    seat_id: str
    name: str
    chips: int
    hand: List[Card] = field(default_factory=list)
    status: SeatStatus = SeatStatus.ACTIVE
    current_bet: int = 0
    last_active: float = 0.0
    # Status to restore if the seat reconnects during the same hand.
    resume_status: SeatStatus = SeatStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status == SeatStatus.ACTIVE

    @property
    def all_in(self) -> bool:
        return self.chips == 0

    def reset_for_hand(self) -> None:
        self.hand.clear()
        self.current_bet = 0

    def reset_for_round(self) -> None:
        self.current_bet = 0


@dataclass
class KickResult:
    success: bool
    message: str

    def as_payload(self) -> Dict[str, object]:
        return {"success": self.success, "message": self.message}
