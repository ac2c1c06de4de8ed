"""Hold'em table engine shared by the room server."""

from .cards import Card, RANKS, SUITS, build_deck, burn, deal, deal_hole_cards
from .evaluator import HandRank, evaluate_best, parse_cards, rank_hand
from .models import ActionKind, KickResult, Role, Seat, SeatStatus, Stage, TableConfig
from .table import Table
from .timers import Scheduler, TaskScheduler
from .transport import Transport

__all__ = [
    "Card",
    "RANKS",
    "SUITS",
    "build_deck",
    "burn",
    "deal",
    "deal_hole_cards",
    "HandRank",
    "evaluate_best",
    "parse_cards",
    "rank_hand",
    "ActionKind",
    "KickResult",
    "Role",
    "Seat",
    "SeatStatus",
    "Stage",
    "TableConfig",
    "Table",
    "Scheduler",
    "TaskScheduler",
    "Transport",
]
