"""
Shared components for the auction server.
"""

from .config import SERVER_HOST, SERVER_PORT, get_catalog_path, get_rng_seed
from .server_base import BaseGameManager, create_game_app, run_server

__all__ = [
    'BaseGameManager', 'create_game_app', 'run_server',
    'SERVER_HOST', 'SERVER_PORT', 'get_catalog_path', 'get_rng_seed'
]
