from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence, Tuple

from holdem.cards import RANKS, SUITS, Card, parse_label
from holdem.evaluator import HandEvaluator, rank_hand
from holdem.models import Seat, TableConfig
from holdem.table import Table

ROOM = "room1"


class RecordingTransport:
    """Keeps every send/broadcast/disconnect in one ordered log."""

    def __init__(self) -> None:
        self.log: List[Tuple[str, str, str, Dict[str, object]]] = []
        self.disconnected: List[str] = []

    def send(self, seat_id: str, event: str, payload: Dict[str, object]) -> None:
        self.log.append(("send", seat_id, event, payload))

    def broadcast(self, room_id: str, event: str, payload: Dict[str, object]) -> None:
        self.log.append(("broadcast", room_id, event, payload))

    def disconnect(self, seat_id: str) -> None:
        self.disconnected.append(seat_id)
        self.log.append(("disconnect", seat_id, "", {}))

    def sent_to(self, seat_id: str, event: Optional[str] = None) -> List[Dict[str, object]]:
        return [
            payload
            for kind, target, name, payload in self.log
            if kind == "send" and target == seat_id and (event is None or name == event)
        ]

    def last_state(self) -> Dict[str, object]:
        for kind, _, name, payload in reversed(self.log):
            if kind == "broadcast" and name == "game_state":
                return payload
        raise AssertionError("no game_state broadcast yet")


class ManualHandle:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> bool:
        self.cancelled = True
        return True


class ManualScheduler:
    """Collects delayed callbacks so tests decide when they fire."""

    def __init__(self) -> None:
        self.handles: List[ManualHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(delay, callback)
        self.handles.append(handle)
        return handle

    def pending(self, delay: Optional[float] = None) -> List[ManualHandle]:
        return [
            handle
            for handle in self.handles
            if not handle.cancelled and not handle.fired and (delay is None or handle.delay == delay)
        ]

    def fire(self, handle: ManualHandle) -> None:
        handle.fired = True
        handle.callback()

    def fire_next(self, delay: Optional[float] = None) -> bool:
        pending = self.pending(delay)
        if not pending:
            return False
        self.fire(pending[0])
        return True


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TableHarness:
    def __init__(self, table: Table, transport: RecordingTransport, scheduler: ManualScheduler, clock: FakeClock):
        self.table = table
        self.transport = transport
        self.scheduler = scheduler
        self.clock = clock

    def fire_turn_timer(self) -> bool:
        return self.scheduler.fire_next(self.table.config.turn_timeout)

    def fire_next_hand(self) -> bool:
        return self.scheduler.fire_next(self.table.config.next_hand_delay)

    def act(self, action: str) -> bool:
        seat = self.table.current_seat()
        assert seat is not None, "no seat on turn"
        return self.table.submit_action(seat.seat_id, action)


def create_table(
    players: int = 2,
    *,
    max_seats: int = 10,
    starting_stack: int = 10_000,
    sb: int = 50,
    bb: int = 100,
    evaluator: HandEvaluator = rank_hand,
    deck: Optional[Sequence[Card]] = None,
) -> TableHarness:
    """Build a table with ids p0..pN-1, all seated before the first deal.

    With two or more seats the first hand is dealt at once, p0 on the button
    and host.
    """
    transport = RecordingTransport()
    scheduler = ManualScheduler()
    clock = FakeClock()
    config = TableConfig(
        max_seats=max_seats,
        starting_stack=starting_stack,
        sb=sb,
        bb=bb,
        turn_timeout=10.0,
        disconnect_retention=300.0,
        next_hand_delay=5.0,
    )
    table = Table(ROOM, config, transport, scheduler, evaluator=evaluator, clock=clock)
    harness = TableHarness(table, transport, scheduler, clock)
    if deck is not None:
        stack_deck(table, deck)
    for idx in range(players):
        table.seats.append(
            Seat(seat_id=f"p{idx}", name=f"Player{idx}", chips=starting_stack, last_active=clock())
        )
    if table.seats:
        table.host_id = table.seats[0].seat_id
    if players >= 2:
        table.start_hand()
    return harness


def stacked_deck(labels: Sequence[str]) -> List[Card]:
    """Deck whose top cards are `labels`, followed by the rest in a fixed order."""
    top = [parse_label(label) for label in labels]
    rest = [Card(rank, suit) for suit in SUITS for rank in RANKS if Card(rank, suit) not in top]
    return top + rest


def stack_deck(table: Table, cards: Sequence[Card]) -> None:
    # Every hand on this table draws from a fresh copy of `cards`.
    table.rng = _FixedShuffle(cards)  # type: ignore[assignment]


class _FixedShuffle:
    """Stand-in for random.Random whose shuffle lays out a fixed order."""

    def __init__(self, cards: Sequence[Card]) -> None:
        self.cards = list(cards)

    def shuffle(self, deck: List[Card]) -> None:
        deck[:] = list(self.cards)


def play_through(harness: TableHarness, action: str = "call", limit: int = 50) -> None:
    """Act with `action` for whoever is on turn until the hand leaves betting."""
    for _ in range(limit):
        if not harness.table.in_hand:
            return
        harness.act(action)
    raise AssertionError("hand did not finish")
