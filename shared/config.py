"""
Configuration for the auction server, loaded from environment variables.
"""

import os
from typing import Optional

SERVER_HOST = os.environ.get("AUCTION_HOST", "0.0.0.0")
SERVER_PORT = int(os.environ.get("AUCTION_PORT", "8000"))
LOG_LEVEL = os.environ.get("AUCTION_LOG_LEVEL", "INFO")

# Empty means "use the catalog bundled with the game"
CATALOG_PATH = os.environ.get("AUCTION_CATALOG_PATH", "")

# Seed for room codes and AI behaviour; unset means fresh entropy per process
RNG_SEED = os.environ.get("AUCTION_RNG_SEED", "")

# How long a concluded room stays around for final-state requests
SESSION_RETENTION_SECONDS = float(os.environ.get("AUCTION_SESSION_RETENTION_SECONDS", "900"))

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def get_catalog_path() -> Optional[str]:
    """Catalog path override, or None for the bundled catalog."""
    return CATALOG_PATH or None


def get_rng_seed() -> Optional[int]:
    if not RNG_SEED:
        return None
    try:
        return int(RNG_SEED)
    except ValueError:
        raise ValueError(f"AUCTION_RNG_SEED must be an integer, got {RNG_SEED!r}")


def get_log_level(level: str = None) -> str:
    level = (level or LOG_LEVEL).upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"Unknown log level: {level}")
    return level
