from __future__ import annotations

import logging
import random
import time
from typing import Callable, Dict, List, Optional, Set, Tuple

from . import projection
from .cards import Card, build_deck, burn, deal, deal_hole_cards
from .evaluator import HandEvaluator, HandRank, rank_hand
from .models import (
    BETTING_STAGES,
    ActionKind,
    KickResult,
    Role,
    Seat,
    SeatStatus,
    Stage,
    TableConfig,
)
from .timers import PendingTimer, Scheduler
from .transport import GAME_RESULT, GAME_STATE, KICKED, YOUR_TURN, Transport

LOGGER = logging.getLogger("holdem_table")

# Table keeps one room's game in memory. It never awaits: every public call
# finishes its transition before returning, and the only deferred work is the
# turn timer and the pause between hands, both handed to the scheduler.

NEXT_STREET = {
    Stage.PREFLOP: (Stage.FLOP, 3),
    Stage.FLOP: (Stage.TURN, 1),
    Stage.TURN: (Stage.RIVER, 1),
}


class Table:
    """Texas Hold'em table for a single room, driven by seat actions."""

    def __init__(
        self,
        room_id: str,
        config: TableConfig,
        transport: Transport,
        scheduler: Scheduler,
        evaluator: HandEvaluator = rank_hand,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
        on_seat_removed: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.room_id = room_id
        self.config = config
        self.transport = transport
        self.scheduler = scheduler
        self.evaluator = evaluator
        self.clock = clock
        self.rng = rng or random.Random()
        self.on_seat_removed = on_seat_removed

        self.seats: List[Seat] = []
        self.host_id: Optional[str] = None
        self.deck: List[Card] = []
        self.community: List[Card] = []
        self.pot = 0
        self.dealer_index = -1
        self.turn_index = 0
        self.small_blind_id: Optional[str] = None
        self.big_blind_id: Optional[str] = None
        self.stage = Stage.WAITING
        self.min_bet = config.bb
        self.last_aggressor: Optional[int] = None
        self.acted: Set[str] = set()
        self.generation = 0
        # Chips that left play: split remainders and abandoned stacks.
        self.forfeited = 0

        self._turn_timer: Optional[PendingTimer] = None
        self._next_hand_timer: Optional[PendingTimer] = None

    # Lookups ---------------------------------------------------------

    @property
    def in_hand(self) -> bool:
        return self.stage in BETTING_STAGES

    @property
    def is_full(self) -> bool:
        return len(self.seats) >= self.config.max_seats

    def seat(self, seat_id: str) -> Optional[Seat]:
        for seat in self.seats:
            if seat.seat_id == seat_id:
                return seat
        return None

    def index_of(self, seat_id: str) -> int:
        for idx, seat in enumerate(self.seats):
            if seat.seat_id == seat_id:
                return idx
        return -1

    def current_seat(self) -> Optional[Seat]:
        if not self.in_hand or not 0 <= self.turn_index < len(self.seats):
            return None
        return self.seats[self.turn_index]

    def active_seats(self) -> List[Seat]:
        return [seat for seat in self.seats if seat.is_active]

    def total_chips(self) -> int:
        return sum(seat.chips for seat in self.seats) + self.pot

    def role_of(self, index: int) -> Role:
        role = Role.NONE
        if not 0 <= index < len(self.seats):
            return role
        seat = self.seats[index]
        if self.stage != Stage.WAITING and index == self.dealer_index:
            role |= Role.DEALER
        if seat.seat_id == self.small_blind_id:
            role |= Role.SMALL_BLIND
        if seat.seat_id == self.big_blind_id:
            role |= Role.BIG_BLIND
        if seat.seat_id == self.host_id:
            role |= Role.HOST
        return role

    def state_payload(self) -> Dict[str, object]:
        return projection.game_state(self)

    # Seat management -------------------------------------------------

    def join(self, seat_id: str, name: Optional[str] = None) -> bool:
        if self.is_full:
            LOGGER.info("Room %s is full; turned away %s", self.room_id, seat_id)
            return False
        if self.seat(seat_id) is not None:
            return False

        display = (name or "").strip() or f"Player {len(self.seats) + 1}"
        seat = Seat(
            seat_id=seat_id,
            name=display,
            chips=self.config.starting_stack,
            # Anyone arriving mid-hand waits for the next deal.
            status=SeatStatus.SITOUT if self.in_hand else SeatStatus.ACTIVE,
            last_active=self.clock(),
        )
        self.seats.append(seat)
        if self.host_id is None:
            self.host_id = seat_id
            LOGGER.info("%s is now host of room %s", display, self.room_id)
        LOGGER.info("%s joined room %s (%s seated)", display, self.room_id, len(self.seats))

        self._broadcast_state()
        if self.stage == Stage.WAITING and self._can_start():
            self.start_hand()
        return True

    def kick(self, requester_id: str, target_id: str) -> KickResult:
        requester = self.seat(requester_id)
        target_index = self.index_of(target_id)
        if requester is None or target_index < 0:
            return KickResult(False, "Player not found")
        if requester_id != self.host_id:
            return KickResult(False, "Only the host can kick players")
        if requester_id == target_id:
            return KickResult(False, "You cannot kick yourself")

        target = self.seats[target_index]
        LOGGER.info("Host %s kicked %s from room %s", requester.name, target.name, self.room_id)
        self.transport.send(
            target_id,
            KICKED,
            {"reason": "Kicked by the room host", "kickerName": requester.name},
        )
        self.transport.disconnect(target_id)
        self._remove_seat(target_index)
        self._broadcast_state()
        return KickResult(True, "Player kicked")

    def disconnect(self, seat_id: str) -> bool:
        seat = self.seat(seat_id)
        if seat is None or seat.status == SeatStatus.DISCONNECTED:
            return False

        was_in_hand = self.in_hand and seat.is_active
        held_turn = was_in_hand and self.current_seat() is seat
        # Dropping while on turn folds the hand; otherwise the seat can pick it back up.
        seat.resume_status = SeatStatus.FOLDED if held_turn else seat.status
        seat.status = SeatStatus.DISCONNECTED
        seat.last_active = self.clock()
        LOGGER.info("%s disconnected from room %s", seat.name, self.room_id)

        # Contributed chips stay in the pot while the seat is away.
        if was_in_hand:
            self._after_departure(held_turn)
        self._broadcast_state()
        return True

    def reconnect(self, seat_id: str) -> bool:
        seat = self.seat(seat_id)
        if seat is None or seat.status != SeatStatus.DISCONNECTED:
            return False

        seat.last_active = self.clock()
        if self.in_hand:
            # Hole cards mean the seat was dealt into this hand.
            seat.status = seat.resume_status if seat.hand else SeatStatus.SITOUT
        else:
            seat.status = SeatStatus.ACTIVE if seat.chips > 0 else SeatStatus.SITOUT
        LOGGER.info("%s reconnected to room %s", seat.name, self.room_id)

        self._broadcast_state()
        if self.stage == Stage.WAITING and self._can_start():
            self.start_hand()
        return True

    def _remove_seat(self, index: int) -> None:
        was_in_hand = self.in_hand and self.seats[index].is_active
        held_turn = was_in_hand and index == self.turn_index
        seat = self.seats.pop(index)
        self.forfeited += seat.chips
        self.acted.discard(seat.seat_id)

        # Keep dealer and turn pointing at the same seats after the shift.
        if index <= self.dealer_index:
            self.dealer_index -= 1
        if index <= self.turn_index:
            self.turn_index -= 1
        if self.last_aggressor is not None:
            if index == self.last_aggressor:
                self.last_aggressor = None
            elif index < self.last_aggressor:
                self.last_aggressor -= 1

        if self.host_id == seat.seat_id:
            self.host_id = self.seats[0].seat_id if self.seats else None
            if self.host_id:
                LOGGER.info("Host of room %s passed to %s", self.room_id, self.seats[0].name)

        if self.on_seat_removed is not None:
            self.on_seat_removed(seat.seat_id)
        if was_in_hand:
            self._after_departure(held_turn)

    def _after_departure(self, held_turn: bool) -> None:
        if held_turn:
            self._cancel_turn_timer()
        if held_turn or len(self.active_seats()) <= 1:
            self._close_or_advance()

    def _sweep_disconnected(self) -> None:
        cutoff = self.clock() - self.config.disconnect_retention
        for seat in list(self.seats):
            if seat.status == SeatStatus.DISCONNECTED and seat.last_active < cutoff:
                # TODO: return the stack to a wallet once cash-out exists.
                LOGGER.info(
                    "Removing %s from room %s after retention window; %s chips abandoned",
                    seat.name,
                    self.room_id,
                    seat.chips,
                )
                self._remove_seat(self.index_of(seat.seat_id))

    # Hand lifecycle --------------------------------------------------

    def _can_start(self) -> bool:
        ready = [
            seat
            for seat in self.seats
            if seat.chips > 0 and seat.status != SeatStatus.DISCONNECTED
        ]
        return len(ready) >= 2

    def start_hand(self) -> bool:
        self._cancel_turn_timer()
        self._cancel_next_hand_timer()
        self.generation += 1
        self._sweep_disconnected()

        self.community = []
        self.pot = 0
        self.acted.clear()
        self.last_aggressor = None
        self.small_blind_id = None
        self.big_blind_id = None
        self.min_bet = self.config.bb
        for seat in self.seats:
            seat.reset_for_hand()
            if seat.status != SeatStatus.DISCONNECTED:
                seat.status = SeatStatus.ACTIVE if seat.chips > 0 else SeatStatus.SITOUT

        if len(self.active_seats()) < 2:
            self.stage = Stage.WAITING
            self.deck = []
            self.turn_index = next((idx for idx, seat in enumerate(self.seats) if seat.is_active), 0)
            LOGGER.info("Room %s waiting for players", self.room_id)
            self._broadcast_state()
            return False

        self.stage = Stage.PREFLOP
        self.deck = build_deck(rng=self.rng)

        self.dealer_index = self._next_active_index(self.dealer_index)
        sb_index = self._next_active_index(self.dealer_index)
        bb_index = self._next_active_index(sb_index)
        self.small_blind_id = self.seats[sb_index].seat_id
        self.big_blind_id = self.seats[bb_index].seat_id
        self._post_blind(self.seats[sb_index], self.config.sb)
        self._post_blind(self.seats[bb_index], self.config.bb)

        deal_hole_cards(self.deck, [seat.hand for seat in self.active_seats()])

        LOGGER.info(
            "Room %s hand %s started: dealer=%s sb=%s bb=%s",
            self.room_id,
            self.generation,
            self.seats[self.dealer_index].name,
            self.seats[sb_index].name,
            self.seats[bb_index].name,
        )
        self._begin_turn(self._next_active_index(bb_index))
        return True

    def _post_blind(self, seat: Seat, amount: int) -> None:
        self._commit(seat, min(amount, seat.chips))

    def _commit(self, seat: Seat, amount: int) -> None:
        seat.chips -= amount
        seat.current_bet += amount
        self.pot += amount

    def _next_active_index(self, start: int) -> Optional[int]:
        count = len(self.seats)
        for step in range(1, count + 1):
            idx = (start + step) % count
            if self.seats[idx].is_active:
                return idx
        return None

    # Action handling -------------------------------------------------

    def submit_action(self, seat_id: str, kind: object) -> bool:
        seat = self.current_seat()
        if seat is None or seat.seat_id != seat_id or not seat.is_active:
            LOGGER.debug("Ignoring out-of-turn action from %s in room %s", seat_id, self.room_id)
            return False
        try:
            action = ActionKind(kind)
        except ValueError:
            LOGGER.debug("Ignoring unknown action %r from %s", kind, seat_id)
            return False

        bb = self.config.bb
        if action == ActionKind.RAISE:
            # One big blind on top of the seat's own bet; it may never lower the table bet.
            if seat.chips < bb or seat.current_bet + bb < self.min_bet:
                LOGGER.debug("Ignoring raise from %s (bet=%s chips=%s)", seat.name, seat.current_bet, seat.chips)
                return False

        self._cancel_turn_timer()
        seat.last_active = self.clock()

        if action == ActionKind.FOLD:
            seat.status = SeatStatus.FOLDED
        elif action == ActionKind.RAISE:
            self._commit(seat, bb)
            self.min_bet = seat.current_bet
            self.last_aggressor = self.turn_index
        else:
            to_call = max(self.min_bet - seat.current_bet, 0)
            self._commit(seat, min(to_call, seat.chips))

        LOGGER.debug(
            "Room %s: %s %s (bet=%s pot=%s)",
            self.room_id,
            seat.name,
            action.value,
            seat.current_bet,
            self.pot,
        )
        self.acted.add(seat.seat_id)
        self._close_or_advance()
        return True

    def _round_closed(self, active: List[Seat]) -> bool:
        return all(
            seat.seat_id in self.acted and (seat.current_bet >= self.min_bet or seat.all_in)
            for seat in active
        )

    def _close_or_advance(self) -> None:
        active = self.active_seats()
        if len(active) == 1:
            self._settle_fold(active[0])
        elif not active:
            LOGGER.warning("Room %s has no active seats left; abandoning %s chips", self.room_id, self.pot)
            self.forfeited += self.pot
            self.pot = 0
            self.stage = Stage.SHOWDOWN
            self._schedule_next_hand()
        elif self._round_closed(active):
            self._advance_stage()
        else:
            self._advance_turn()

    def _advance_turn(self) -> None:
        next_index = self._next_active_index(self.turn_index)
        if next_index is None:
            LOGGER.warning("Room %s found no seat to act", self.room_id)
            return
        self._begin_turn(next_index)

    def _advance_stage(self) -> None:
        while True:
            for seat in self.seats:
                seat.reset_for_round()
            self.acted.clear()
            self.min_bet = 0
            self.last_aggressor = None

            if self.stage == Stage.RIVER:
                self.stage = Stage.SHOWDOWN
                self._settle_showdown()
                return

            next_stage, count = NEXT_STREET[self.stage]
            burn(self.deck)
            self.community.extend(deal(self.deck, count))
            self.stage = next_stage
            LOGGER.info("Room %s moves to %s", self.room_id, next_stage.value)

            # With fewer than two seats able to bet, run the board out.
            if len([seat for seat in self.active_seats() if seat.chips > 0]) >= 2:
                break

        self._begin_turn(self._next_active_index(self.dealer_index))

    def _begin_turn(self, index: int) -> None:
        self.turn_index = index
        seat = self.seats[index]
        self.transport.send(seat.seat_id, YOUR_TURN, {})
        self._broadcast_state()
        self._start_turn_timer(seat)

    # Timers ----------------------------------------------------------

    def _start_turn_timer(self, seat: Seat) -> None:
        self._cancel_turn_timer()
        pending = PendingTimer(seat_id=seat.seat_id, generation=self.generation)
        pending.handle = self.scheduler.call_later(
            self.config.turn_timeout, lambda: self._turn_timed_out(pending)
        )
        self._turn_timer = pending

    def _turn_timed_out(self, pending: PendingTimer) -> None:
        if pending is not self._turn_timer or pending.generation != self.generation:
            LOGGER.debug("Dropping stale turn timer for %s", pending.seat_id)
            return
        self._turn_timer = None
        seat = self.current_seat()
        if seat is None or seat.seat_id != pending.seat_id:
            return
        LOGGER.info("%s timed out in room %s; calling", seat.name, self.room_id)
        self.submit_action(seat.seat_id, ActionKind.CALL)

    def _cancel_turn_timer(self) -> None:
        if self._turn_timer is not None:
            self._turn_timer.cancel()
            self._turn_timer = None

    def _schedule_next_hand(self) -> None:
        self._cancel_next_hand_timer()
        pending = PendingTimer(seat_id=None, generation=self.generation)
        pending.handle = self.scheduler.call_later(
            self.config.next_hand_delay, lambda: self._next_hand_due(pending)
        )
        self._next_hand_timer = pending

    def _next_hand_due(self, pending: PendingTimer) -> None:
        if pending is not self._next_hand_timer:
            return
        self._next_hand_timer = None
        self.start_hand()

    def _cancel_next_hand_timer(self) -> None:
        if self._next_hand_timer is not None:
            self._next_hand_timer.cancel()
            self._next_hand_timer = None

    # Settlement ------------------------------------------------------

    def _settle_fold(self, winner: Seat) -> None:
        self._cancel_turn_timer()
        amount = self.pot
        winner.chips += amount
        self.pot = 0
        self.stage = Stage.SHOWDOWN
        LOGGER.info("Room %s: %s wins %s uncontested", self.room_id, winner.name, amount)
        self.transport.send(
            winner.seat_id,
            GAME_RESULT,
            {"message": f"Everyone else folded, you won {amount} chips", "amount": amount},
        )
        self._broadcast_state()
        self._schedule_next_hand()

    def _settle_showdown(self) -> None:
        best: Optional[HandRank] = None
        winners: List[Tuple[Seat, HandRank]] = []
        for seat in self.active_seats():
            try:
                rank = self.evaluator(seat.hand + self.community)
            except Exception:
                LOGGER.exception("Could not evaluate hand of %s; leaving it out of the showdown", seat.name)
                continue
            if best is None or rank > best:
                best = rank
                winners = [(seat, rank)]
            elif not rank < best:
                winners.append((seat, rank))

        pot = self.pot
        self.pot = 0
        if not winners:
            LOGGER.error("Room %s showdown had no rankable hands; %s chips unallocated", self.room_id, pot)
            self.forfeited += pot
        else:
            share, remainder = divmod(pot, len(winners))
            self.forfeited += remainder
            for seat, rank in winners:
                seat.chips += share
                self.transport.send(
                    seat.seat_id,
                    GAME_RESULT,
                    {
                        "message": f"You won {share} chips with {rank.name}",
                        "amount": share,
                        "handName": rank.name,
                    },
                )
            LOGGER.info(
                "Room %s showdown: %s split %s (%s unallocated)",
                self.room_id,
                ", ".join(seat.name for seat, _ in winners),
                pot,
                remainder,
            )

        self._broadcast_state()
        self._schedule_next_hand()

    # Broadcast -------------------------------------------------------

    def _broadcast_state(self) -> None:
        self.transport.broadcast(self.room_id, GAME_STATE, self.state_payload())
