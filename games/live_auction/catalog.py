"""
Player catalog loading.

The catalog is a JSON array of player records. Each room gets its own fresh
list of Items so settlement in one room never leaks into another.
"""

import json
import logging
import os
from typing import Callable, List

from .errors import ResourceExhaustion
from .game import Item

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "data", "players.json")

CatalogLoader = Callable[[], List[Item]]


def parse_catalog(records: list) -> List[Item]:
    if not isinstance(records, list):
        raise ResourceExhaustion("player catalog must be a JSON array")
    try:
        items = [Item.from_dict(record) for record in records]
    except (KeyError, TypeError, ValueError) as e:
        raise ResourceExhaustion(f"malformed player record: {e}") from e
    if not items:
        raise ResourceExhaustion("player catalog is empty")
    return items


def load_catalog(path: str = DEFAULT_CATALOG_PATH) -> List[Item]:
    """Read and parse the catalog at path, raising ResourceExhaustion on any failure."""
    try:
        with open(path, encoding="utf-8") as f:
            records = json.load(f)
    except (OSError, ValueError) as e:
        # ValueError covers JSONDecodeError and UnicodeDecodeError
        logger.error("Could not load player catalog %s: %s", path, e)
        raise ResourceExhaustion(f"could not load player catalog: {e}") from e
    return parse_catalog(records)


def file_catalog(path: str = DEFAULT_CATALOG_PATH) -> CatalogLoader:
    """A loader that re-reads path every time a room starts."""
    return lambda: load_catalog(path)


def static_catalog(records: list) -> CatalogLoader:
    """A loader over in-memory records, parsed fresh per room."""
    return lambda: parse_catalog(records)
