"""
wagerline - Main Entry Point

Drives the engine end-to-end against the venue:
1. Authenticate and load the odds ladder
2. Build the market catalog and selection index
3. Place / cancel wagers, or poll wager state

Usage:
    python main.py --catalog                               # Build catalog, print summary
    python main.py --orders                                # One page of enriched wagers
    python main.py --watch                                 # Poll wagers until Ctrl+C
    python main.py --place LINE_ID --odds 2.1 --stake 5    # Place a wager
    python main.py --cancel WAGER_ID                       # Cancel a wager
"""

import argparse
import asyncio
import logging
import sys

from wagerline.config import ConfigLoader
from wagerline.desk import WagerDesk
from wagerline.exceptions import WagerlineError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def print_summary(desk: WagerDesk):
    """Print catalog counts."""
    summary = desk.summary()
    report = desk.last_report

    print("\n" + "=" * 60)
    print("  DATA SUMMARY")
    print("=" * 60)
    print(f"  Tournaments:     {summary['tournaments']}")
    print(f"  Events:          {summary['events']}")
    print(f"  Markets:         {summary['markets']}")
    print(f"  Wager-Eligible:  {summary['wager_eligible']}")
    print(f"  Without line_id: {summary['ineligible']}")
    if report and report.failures:
        print(f"  Skipped nodes:   {report.failures}")


def print_orders(desk: WagerDesk, orders):
    """Print enriched wagers."""
    print(f"\n  My Wagers ({len(orders)})")
    print(f"  {'-' * 56}")
    for item in desk.enrich(orders):
        order = item.order
        print(f"  {order.external_id}")
        print(f"    {item.wager_type} | {item.wager_market} | {item.selection_name}")
        print(f"    Status: {order.status} | Matching: {order.matching_status} | "
              f"Stake: {item.formatted_stake} | Odds: {item.formatted_odds}")


async def run(args) -> int:
    desk = WagerDesk(ConfigLoader(args.config_dir) if args.config_dir else None)

    async with desk:
        await desk.login()

        if args.catalog or args.place:
            await desk.load_catalog()
            print_summary(desk)

        if args.place:
            result = await desk.place_wager(args.place, args.odds, args.stake, wager_strategy=args.strategy)
            print(f"\n  Wager placed: {result}")

        elif args.cancel:
            result = await desk.cancel_wager(wager_id=args.cancel)
            print(f"\n  Wager cancelled: {result}")

        elif args.orders:
            page = await desk.fetch_wagers()
            print_orders(desk, page.wagers)

        elif args.watch:
            if not desk.tree:
                await desk.load_catalog()
            poller = desk.order_poller(event_id=args.event)
            await poller.start()
            try:
                while True:
                    await asyncio.sleep(poller.interval)
                    if poller.last_error:
                        print(f"\n  Error: {poller.last_error}")
                    print_orders(desk, poller.orders)
            finally:
                await poller.stop()

    return 0


def main():
    parser = argparse.ArgumentParser(
        description="wagerline - exchange catalog, selection index and wager tooling",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --catalog                              # Build catalog and index
  python main.py --orders                               # Show recent wagers
  python main.py --watch --event 10077934               # Poll one event's wagers
  python main.py --place 0b2c... --odds 2.1 --stake 5   # Place a wager
  python main.py --cancel 1741...                       # Cancel a wager
        """
    )

    # Mode selection
    mode_group = parser.add_mutually_exclusive_group(required=True)
    mode_group.add_argument("--catalog", action="store_true",
                            help="Build the catalog tree and selection index")
    mode_group.add_argument("--orders", action="store_true",
                            help="Fetch one page of wagers (last 7 days)")
    mode_group.add_argument("--watch", action="store_true",
                            help="Poll wagers until interrupted")
    mode_group.add_argument("--place", metavar="LINE_ID",
                            help="Place a wager on LINE_ID")
    mode_group.add_argument("--cancel", metavar="WAGER_ID",
                            help="Cancel a wager")

    # Wager options
    parser.add_argument("--odds", type=float, help="Decimal odds for --place")
    parser.add_argument("--stake", type=float, help="Stake for --place")
    parser.add_argument("--strategy", choices=["fillOrKill"], help="Optional wager strategy")
    parser.add_argument("--event", help="Event scope for --watch")
    parser.add_argument("--config-dir", help="Directory holding settings.yaml")

    args = parser.parse_args()
    if args.place and (args.odds is None or args.stake is None):
        parser.error("--place requires --odds and --stake")

    print("=" * 60)
    print("  WAGERLINE")
    print("=" * 60)

    try:
        code = asyncio.run(run(args))
    except WagerlineError as e:
        logger.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user.")
        sys.exit(1)

    print("\n" + "=" * 60)
    print("  COMPLETE")
    print("=" * 60 + "\n")
    sys.exit(code)


if __name__ == "__main__":
    main()
