from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Optional

from holdem.table import Table

LOGGER = logging.getLogger("room_registry")


class RoomRegistry:
    """Maps room ids to their single Table, creating tables on first use.

    Tables are never evicted; an idle room keeps its Table for the life of
    the process.
    """

    def __init__(self, factory: Callable[[str], Table]) -> None:
        self._factory = factory
        self._tables: Dict[str, Table] = {}
        self._lock = threading.Lock()

    def get_or_create(self, room_id: str) -> Table:
        with self._lock:
            table = self._tables.get(room_id)
            if table is None:
                table = self._factory(room_id)
                self._tables[room_id] = table
                LOGGER.info("Opened room %s (%s rooms)", room_id, len(self._tables))
            return table

    def get(self, room_id: str) -> Optional[Table]:
        with self._lock:
            return self._tables.get(room_id)

    def room_ids(self) -> List[str]:
        with self._lock:
            return list(self._tables)

    def __contains__(self, room_id: object) -> bool:
        with self._lock:
            return room_id in self._tables

    def __len__(self) -> int:
        with self._lock:
            return len(self._tables)
