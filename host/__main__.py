import argparse
import asyncio
import logging
from pathlib import Path

from holdem.models import TableConfig
from holdem.preflop import PreflopTable
from .server import HostServer

logging.basicConfig(level=logging.INFO)


def main() -> None:
    # CLI doubles as documentation for the table's pacing knobs.
    parser = argparse.ArgumentParser(description="Texas Hold'em table host")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8765)
    parser.add_argument("--seats", type=int, default=9)
    parser.add_argument("--starting-stack", type=int, default=1_000)
    parser.add_argument("--sb", type=int, default=5)
    parser.add_argument("--bb", type=int, default=10)
    parser.add_argument("--turn-timeout", type=int, default=30_000, help="Turn timeout in milliseconds")
    parser.add_argument(
        "--settle-delay",
        type=int,
        default=2_000,
        help="Pause between a finished betting round and the next street (milliseconds)",
    )
    parser.add_argument("--bot-delay", type=int, default=1_000, help="Bot thinking time in milliseconds")
    parser.add_argument("--auto-start", action="store_true", help="Deal the next hand automatically")
    parser.add_argument("--bots", type=int, default=0, help="Number of house bots to seat at startup")
    parser.add_argument(
        "--preflop-table",
        type=Path,
        default=None,
        help="JSON preflop lookup; missing entries are simulated and written back on exit",
    )
    args = parser.parse_args()

    config = TableConfig(
        max_seats=args.seats,
        starting_stack=args.starting_stack,
        sb=args.sb,
        bb=args.bb,
        turn_timeout_ms=args.turn_timeout,
        settle_delay_ms=args.settle_delay,
        bot_delay_ms=args.bot_delay,
        auto_start=args.auto_start,
    ).apply_env()

    preflop = None
    if args.preflop_table is not None and args.preflop_table.exists():
        preflop = PreflopTable.load(args.preflop_table, trials=config.equity_trials)
    elif args.preflop_table is not None:
        preflop = PreflopTable(trials=config.equity_trials)

    server = HostServer(config, preflop=preflop)
    for idx in range(args.bots):
        server.add_bot(f"Bot{idx + 1}")
    try:
        asyncio.run(server.start(host=args.host, port=args.port))
    except KeyboardInterrupt:
        pass
    finally:
        if preflop is not None:
            preflop.dump(args.preflop_table)


if __name__ == "__main__":
    main()
