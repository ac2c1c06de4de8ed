import argparse
import asyncio
import logging

from holdem.models import TableConfig

from .server import DEFAULT_ROOM, RoomServer

logging.basicConfig(level=logging.INFO)


def main() -> None:
    parser = argparse.ArgumentParser(description="Hold'em room server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=3000)
    parser.add_argument("--default-room", default=DEFAULT_ROOM)
    parser.add_argument("--max-seats", type=int, default=10)
    parser.add_argument("--starting-stack", type=int, default=10_000)
    parser.add_argument("--sb", type=int, default=50)
    parser.add_argument("--bb", type=int, default=100)
    parser.add_argument("--turn-timeout", type=float, default=10.0, help="Seconds before an idle seat auto-calls")
    parser.add_argument(
        "--retention",
        type=float,
        default=300.0,
        help="Seconds a disconnected seat is kept before its stack is abandoned",
    )
    parser.add_argument("--next-hand-delay", type=float, default=5.0, help="Pause between hands in seconds")
    args = parser.parse_args()

    config = TableConfig(
        max_seats=args.max_seats,
        starting_stack=args.starting_stack,
        sb=args.sb,
        bb=args.bb,
        turn_timeout=args.turn_timeout,
        disconnect_retention=args.retention,
        next_hand_delay=args.next_hand_delay,
    )

    server = RoomServer(config, default_room=args.default_room)
    asyncio.run(server.start(host=args.host, port=args.port))


if __name__ == "__main__":
    main()
