"""
Live Player Auction Game Module

Ascending-bid auction rooms where human and AI franchises build squads
under purse and roster limits.
"""

from .server import run, create_app, LiveAuctionManager
from .game import (
    Tier, Personality, LotStatus, Item, Bidder, RosterEntry, LeagueRules, AuctionConfig,
    next_increment, can_act, check_eligibility, format_currency
)
from .registry import RoomRegistry
from .session import AuctionSession, SessionPhase, SessionStatus

__all__ = [
    "run", "create_app", "LiveAuctionManager",
    "Tier", "Personality", "LotStatus", "Item", "Bidder", "RosterEntry", "LeagueRules",
    "AuctionConfig", "next_increment", "can_act", "check_eligibility", "format_currency",
    "RoomRegistry", "AuctionSession", "SessionPhase", "SessionStatus"
]
