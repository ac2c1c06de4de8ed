"""Room host package: serves Hold'em tables over websockets."""

from .registry import RoomRegistry
from .server import RoomServer

__all__ = ["RoomRegistry", "RoomServer"]
