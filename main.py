#!/usr/bin/env python3
"""
Live Player Auction - Main Launcher

Run the auction room server.
"""

import argparse
import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI

from shared.config import SERVER_HOST, SERVER_PORT, get_log_level


GAMES = {
    "live_auction": {
        "name": "Live Player Auction",
        "description": "Ascending-bid player auction for ten franchises, human and AI",
        "module": "games.live_auction"
    },
}


def list_games():
    """Print available games."""
    print("\nAvailable Games:")
    print("-" * 50)
    for game_id, info in GAMES.items():
        print(f"  {game_id:15} - {info['name']}")
        print(f"                    {info['description']}")
    print()


def configure_logging(level: str = None):
    logging.basicConfig(
        level=get_log_level(level),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


def create_app(catalog_path: str = None, seed: int = None) -> FastAPI:
    """Create the main FastAPI app with a status page and game routes."""
    from games.live_auction.server import LiveAuctionManager, create_app as create_auction_app

    auction_manager = LiveAuctionManager(catalog_path=catalog_path, seed=seed)

    # Mounted apps don't get lifespan events of their own
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        auction_manager.shutdown()

    app = FastAPI(title="Live Player Auction", lifespan=lifespan)
    app.mount("/games/live_auction", create_auction_app(auction_manager))

    @app.get("/")
    async def home():
        return {
            "status": "ok",
            "games": {
                game_id: {"name": info["name"], "path": f"/games/{game_id}"}
                for game_id, info in GAMES.items()
            },
        }

    return app


def run_app(host: str = SERVER_HOST, port: int = SERVER_PORT,
            catalog_path: str = None, seed: int = None):
    """Run the main app."""
    import uvicorn
    app = create_app(catalog_path=catalog_path, seed=seed)
    uvicorn.run(app, host=host, port=port)


def main():
    parser = argparse.ArgumentParser(
        description="Live Player Auction - run the auction room server"
    )
    parser.add_argument(
        "--list", "-l",
        action="store_true",
        help="List available games"
    )
    parser.add_argument(
        "--host",
        default=SERVER_HOST,
        help=f"Host to bind to (default: {SERVER_HOST})"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=SERVER_PORT,
        help=f"Port to run on (default: {SERVER_PORT})"
    )
    parser.add_argument(
        "--catalog",
        default=None,
        help="Path to a player catalog JSON file (default: bundled catalog)"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for room codes and AI behaviour (default: random)"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="DEBUG, INFO, WARNING or ERROR (default: AUCTION_LOG_LEVEL or INFO)"
    )

    args = parser.parse_args()

    if args.list:
        list_games()
        return

    try:
        configure_logging(args.log_level)
    except ValueError as e:
        parser.error(str(e))

    print("\nStarting Live Player Auction...")
    print(f"Server running at http://localhost:{args.port}")
    print("Press Ctrl+C to stop\n")
    run_app(host=args.host, port=args.port, catalog_path=args.catalog, seed=args.seed)


if __name__ == "__main__":
    sys.exit(main())
