"""
Main CLI entry point for the cricket player auction engine.
"""

import argparse
import logging
import sys
from pathlib import Path

from . import config
from .auction.transaction_engine import AuctionTransactionEngine
from .currency import format_lakhs


def setup_logging(verbose: bool = False):
    """
    Configure logging for the application.

    Args:
        verbose: Enable verbose (DEBUG) logging
    """
    level = logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL)
    logging.basicConfig(
        level=level,
        format=config.LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


def parse_arguments(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description='Cricket Player Auction Engine',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Import a roster into the default data directory
  python -m cricket_auction.main --import-players players.csv --default-pool "Marquee"

  # Add a team
  python -m cricket_auction.main --create-team "Mumbai Mavericks" --budget 9000 --color "#004BA0"

  # Run the API server
  python -m cricket_auction.main --serve --port 8000

  # Follow a running auction from another terminal
  python -m cricket_auction.main --watch http://127.0.0.1:8000

  # Export results
  python -m cricket_auction.main --export
        """
    )

    parser.add_argument(
        '--data-dir',
        type=str,
        default=config.AUCTION_DATA_DIR,
        help=f'Directory holding the checkpoint and auction log (default: {config.AUCTION_DATA_DIR})'
    )

    parser.add_argument(
        '--import-players',
        type=str,
        metavar='FILE',
        help='Import players from a CSV or Excel roster'
    )

    parser.add_argument(
        '--default-pool',
        type=str,
        help='Pool for imported players whose row names no pool'
    )

    parser.add_argument(
        '--create-team',
        type=str,
        metavar='NAME',
        help='Create a team'
    )

    parser.add_argument(
        '--budget',
        type=int,
        default=config.DEFAULT_TEAM_BUDGET,
        help=f'Budget in lakhs for --create-team (default: {config.DEFAULT_TEAM_BUDGET})'
    )

    parser.add_argument(
        '--color',
        type=str,
        default=config.DEFAULT_TEAM_COLOR,
        help='Colour theme (#RRGGBB) for --create-team'
    )

    parser.add_argument(
        '--export',
        action='store_true',
        help=f'Export results and auction log CSVs to {config.EXPORT_DIR}'
    )

    parser.add_argument(
        '--status',
        action='store_true',
        help='Print dashboard stats and the leaderboard'
    )

    parser.add_argument(
        '--serve',
        action='store_true',
        help='Run the HTTP API server'
    )

    parser.add_argument(
        '--host',
        type=str,
        default=config.API_HOST,
        help=f'Server host (default: {config.API_HOST})'
    )

    parser.add_argument(
        '--port',
        type=int,
        default=config.API_PORT,
        help=f'Server port (default: {config.API_PORT})'
    )

    parser.add_argument(
        '--watch',
        type=str,
        metavar='URL',
        help='Follow the live feed of a running server'
    )

    parser.add_argument(
        '--poll-interval',
        type=float,
        default=config.FRONTEND_AUTO_REFRESH_INTERVAL,
        help=f'Seconds between live feed polls (default: {config.FRONTEND_AUTO_REFRESH_INTERVAL})'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    return parser.parse_args(argv)


def print_status(engine: AuctionTransactionEngine) -> None:
    """Log dashboard stats, the leaderboard, team spending and the top buys."""
    from .auction.leaderboard import calculate_leaderboard, get_dashboard_stats, get_team_summary, top_buys

    logger = logging.getLogger(__name__)
    state = engine.snapshot()
    stats = get_dashboard_stats(state)

    logger.info("=" * 60)
    logger.info(f"Auction status: {stats['auction_status']}")
    logger.info("=" * 60)
    logger.info(
        f"Players: {stats['total_players']} total, {stats['players_sold']} sold, "
        f"{stats['players_unsold']} unsold, "
        f"{stats['available_players'] + stats['pooled_players']} remaining"
    )
    logger.info(
        f"Teams: {stats['total_teams']}, spent {format_lakhs(stats['total_spent'])} "
        f"of {format_lakhs(stats['total_budget'])}"
    )

    for row in calculate_leaderboard(state):
        logger.info(
            f"  {row['rank']:>2}. {row['team_name']:<25} {row['total_points']:>5} pts  "
            f"{row['players_count']:>3} players  {format_lakhs(row['remaining_budget'])} left"
        )

    summary = get_team_summary(state)
    if not summary.empty:
        logger.info("Team spending:")
        for line in summary.drop(columns=['team_id']).to_string(index=False).splitlines():
            logger.info(f"  {line}")

    buys = top_buys(state)
    if buys:
        logger.info("Top buys:")
        for buy in buys:
            logger.info(f"  {buy['player_name']:<25} {format_lakhs(buy['sold_price']):>8}  {buy['team_name']}")


def run_server(args, engine: AuctionTransactionEngine) -> None:
    """Run the API server against the engine's data directory."""
    import uvicorn
    from .auction.api_dependencies import set_engine
    from .auction.api_server import app

    logger = logging.getLogger(__name__)
    set_engine(engine)

    logger.info(f"Starting auction API on http://{args.host}:{args.port} (data: {args.data_dir})")
    uvicorn.run(app, host=args.host, port=args.port, log_level='debug' if args.verbose else 'info')


def run_watch(args) -> None:
    """Print the live feed of a running server until interrupted."""
    from .auction.live_feed_client import LiveFeedClient, format_feed

    logger = logging.getLogger(__name__)
    client = LiveFeedClient(args.watch)
    try:
        client.watch(lambda payload: logger.info("\n" + format_feed(payload)),
                     poll_interval=args.poll_interval)
    finally:
        client.close()


def main(argv=None):
    """Main execution function with mode branching."""
    # Parse arguments
    args = parse_arguments(argv)

    # Setup logging
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    if args.watch:
        run_watch(args)
        return

    try:
        engine = AuctionTransactionEngine.open(Path(args.data_dir))

        if args.import_players:
            from .roster_loader import import_players

            result = import_players(engine, args.import_players, default_pool=args.default_pool)
            logger.info(f"Import complete: {result.summary()}")
            for skipped in result.skipped:
                logger.info(f"  skipped row {skipped['row']} ({skipped['name']}): {skipped['reason']}")

        if args.create_team:
            team = engine.create_team(args.create_team, budget=args.budget, color_theme=args.color)
            logger.info(f"Created team {team.name} ({team.team_id}) with {format_lakhs(team.budget)}")

        if args.export:
            from .output_writer import write_results

            paths = write_results(engine.snapshot())
            for kind, path in paths.items():
                logger.info(f"Exported {kind}: {path}")

        if args.status:
            print_status(engine)

        if args.serve:
            run_server(args, engine)

    except KeyboardInterrupt:
        logger.info("\nInterrupted by user")
    except Exception as e:
        logger.exception(f"Error during execution: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
