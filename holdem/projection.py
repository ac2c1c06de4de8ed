from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List

from .cards import cards_to_labels
from .models import Role

if TYPE_CHECKING:
    from .table import Table


# The whole room receives every seat's hole cards. Clients are trusted to
# hide what their user should not see.


def game_state(table: "Table") -> Dict[str, object]:
    players: List[Dict[str, object]] = []
    for idx, seat in enumerate(table.seats):
        role = table.role_of(idx)
        players.append(
            {
                "id": seat.seat_id,
                "name": seat.name,
                "chips": seat.chips,
                "current_bet": seat.current_bet,
                "status": seat.status.value,
                "is_dealer": Role.DEALER in role,
                "is_small_blind": Role.SMALL_BLIND in role,
                "is_big_blind": Role.BIG_BLIND in role,
                "is_host": Role.HOST in role,
                "hand": cards_to_labels(seat.hand),
            }
        )
    return {
        "room_id": table.room_id,
        "stage": table.stage.value,
        "pot": table.pot,
        "community": cards_to_labels(table.community),
        "dealer_index": table.dealer_index,
        "turn_index": table.turn_index,
        "min_bet": table.min_bet,
        "players": players,
    }
