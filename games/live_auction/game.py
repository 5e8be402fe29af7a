"""
Live Auction - Domain Model and Bidding Rules

An ordered pool of players is auctioned one at a time to ten franchises.
Each franchise has a purse and must respect the league's squad limits.

Key concepts:
- Lot: the player currently on the block
- Increment rule: the only valid next bid is a fixed step above the current bid
- Eligibility: squad size, overseas quota and purse gate every bid
- Settlement: a lot is sold to the high bidder (or goes unsold) exactly once

Amounts are integers in lakhs. 100 lakhs = 1 crore, which only matters for
display.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .errors import CapacityViolation


class Tier(Enum):
    ELITE = "Elite"
    TIER_1 = "Tier 1"
    TIER_2 = "Tier 2"
    UNCAPPED = "Uncapped"
    UNRATED = "Unrated"

    @classmethod
    def _missing_(cls, value):
        return cls.UNRATED

    @property
    def is_competitive(self) -> bool:
        """Elite and Tier 1 lots get extra AI waves and countdown checkpoints."""
        return self in (Tier.ELITE, Tier.TIER_1)


class Personality(Enum):
    EXPERIENCED = "Experienced"
    STRATEGIC = "Strategic"
    STAR_HUNTER = "Star-Hunter"
    AGGRESSIVE = "Aggressive"
    SCOUT = "Scout"
    ANALYTICAL = "Analytical"
    VALUE_FOCUSED = "Value-Focused"
    BALANCED = "Balanced"
    OPPORTUNISTIC = "Opportunistic"
    MODERN = "Modern"


class LotStatus(Enum):
    PENDING = "pending"
    SOLD = "sold"
    UNSOLD = "unsold"


FACTION_CODES = ["CSK", "MI", "RCB", "KKR", "SRH", "DC", "PBKS", "RR", "GT", "LSG"]

FACTION_NAMES = {
    "CSK": "Chennai Super Kings",
    "MI": "Mumbai Indians",
    "RCB": "Royal Challengers Bengaluru",
    "KKR": "Kolkata Knight Riders",
    "SRH": "Sunrisers Hyderabad",
    "DC": "Delhi Capitals",
    "PBKS": "Punjab Kings",
    "RR": "Rajasthan Royals",
    "GT": "Gujarat Titans",
    "LSG": "Lucknow Super Giants",
}

FACTION_PERSONALITIES = {
    "CSK": Personality.EXPERIENCED,
    "MI": Personality.STRATEGIC,
    "RCB": Personality.STAR_HUNTER,
    "PBKS": Personality.AGGRESSIVE,
    "RR": Personality.SCOUT,
    "DC": Personality.ANALYTICAL,
    "SRH": Personality.VALUE_FOCUSED,
    "GT": Personality.BALANCED,
    "KKR": Personality.OPPORTUNISTIC,
    "LSG": Personality.MODERN,
}

# Default league parameters
DEFAULT_PURSE = 12500          # 125 Cr
DEFAULT_ROSTER_CAP = 25
DEFAULT_OVERSEAS_CAP = 8
DEFAULT_HOME_COUNTRY = "India"
DEFAULT_ROLE_TARGETS = {"Batsman": 4, "Bowler": 4, "All-Rounder": 2, "Wicket-Keeper": 1}


@dataclass
class LeagueRules:
    """Squad composition limits shared by every franchise in a room."""
    starting_purse: int = DEFAULT_PURSE
    roster_cap: int = DEFAULT_ROSTER_CAP
    overseas_cap: int = DEFAULT_OVERSEAS_CAP
    home_country: str = DEFAULT_HOME_COUNTRY
    role_targets: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_ROLE_TARGETS))

    def role_target(self, role: str) -> int:
        return self.role_targets.get(role, 1)


@dataclass
class AuctionConfig:
    """Timing knobs for a room. All durations are in seconds."""
    bid_window_ticks: int = 10
    tick_seconds: float = 1.0
    settle_delay: float = 2.5
    solo_start_delay: float = 2.0
    ai_wave_delays: Tuple[float, ...] = (1.5,)
    competitive_wave_delays: Tuple[float, ...] = (4.0, 7.0)
    # Remaining-tick checkpoints that re-trigger AI bidding on competitive lots
    ai_checkpoints: Tuple[int, ...] = (7, 4)
    checkpoint_delay: float = 0.2

    def __post_init__(self):
        if self.bid_window_ticks <= 0:
            raise ValueError("bid_window_ticks must be positive")
        self.bid_window_seconds = self.bid_window_ticks * self.tick_seconds


@dataclass
class Item:
    """A player in the pool. Identity fields never change after loading."""
    name: str
    country: str
    skill: str
    age: int
    base_price: int
    tier: Tier = Tier.UNRATED
    is_captain: bool = False
    status: LotStatus = LotStatus.PENDING
    final_price: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Item":
        """Build an item from a catalog record (camelCase keys)."""
        is_captain = data.get("isCaptain", False)
        if not isinstance(is_captain, bool):
            raise ValueError(f"isCaptain must be true or false, got {is_captain!r}")
        return cls(
            name=data["name"],
            country=data["country"],
            skill=data["skill"],
            age=int(data["age"]),
            base_price=int(data["basePrice"]),
            tier=Tier(data.get("tier", Tier.UNRATED.value)),
            is_captain=is_captain,
        )

    @property
    def is_settled(self) -> bool:
        return self.status is not LotStatus.PENDING

    def is_overseas(self, rules: LeagueRules) -> bool:
        return self.country != rules.home_country

    def mark_sold(self, price: int):
        if self.is_settled:
            raise ValueError(f"{self.name} is already {self.status.value}")
        self.status = LotStatus.SOLD
        self.final_price = price

    def mark_unsold(self):
        if self.is_settled:
            raise ValueError(f"{self.name} is already {self.status.value}")
        self.status = LotStatus.UNSOLD

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "country": self.country,
            "skill": self.skill,
            "age": self.age,
            "base_price": self.base_price,
            "tier": self.tier.value,
            "is_captain": self.is_captain,
            "status": self.status.value,
            "final_price": self.final_price,
        }


@dataclass
class RosterEntry:
    """A purchased player and the price paid for them."""
    item: Item
    price: int

    def to_dict(self) -> dict:
        data = self.item.to_dict()
        data["final_price"] = self.price
        return data


@dataclass
class AiState:
    """Per-lot bookkeeping for an automated bidder."""
    attempts: int = 0
    max_attempts: int = 2
    active: bool = True

    def reset(self, max_attempts: int):
        self.attempts = 0
        self.max_attempts = max_attempts
        self.active = True


@dataclass
class Bidder:
    """A franchise: purse, squad and (for AI) its behavior profile."""
    code: str
    name: str
    purse: int
    personality: Personality = Personality.BALANCED
    is_human: bool = False
    roster: List[RosterEntry] = field(default_factory=list)
    ai: AiState = field(default_factory=AiState)

    def overseas_count(self, rules: LeagueRules) -> int:
        return sum(1 for entry in self.roster if entry.item.is_overseas(rules))

    def role_count(self, role: str) -> int:
        return sum(1 for entry in self.roster if entry.item.skill == role)

    def open_slots(self, rules: LeagueRules) -> int:
        return rules.roster_cap - len(self.roster)

    def is_short_of(self, role: str, rules: LeagueRules) -> bool:
        return self.role_count(role) < rules.role_target(role)

    def to_dict(self, rules: LeagueRules) -> dict:
        return {
            "code": self.code,
            "name": self.name,
            "purse": self.purse,
            "personality": self.personality.value,
            "is_human": self.is_human,
            "roster": [entry.to_dict() for entry in self.roster],
            "overseas_count": self.overseas_count(rules),
        }


def next_increment(current_bid: int) -> int:
    """The only valid bid that can follow current_bid."""
    if current_bid < 100:
        return current_bid + 5
    if current_bid < 200:
        return current_bid + 10
    return current_bid + 20


def format_currency(amount: int) -> str:
    """Format lakhs as crores, e.g. 250 -> '₹2.50 Cr'."""
    return f"₹{amount / 100:.2f} Cr"


def check_eligibility(bidder: Bidder, item: Item, current_bid: int, rules: LeagueRules):
    """Raise CapacityViolation if bidder may not bid on item at current_bid."""
    if len(bidder.roster) >= rules.roster_cap:
        raise CapacityViolation(f"{bidder.code} squad is full ({rules.roster_cap})")
    if item.is_overseas(rules) and bidder.overseas_count(rules) >= rules.overseas_cap:
        raise CapacityViolation(f"{bidder.code} overseas quota is full ({rules.overseas_cap})")
    required = next_increment(current_bid)
    if bidder.purse < required:
        raise CapacityViolation(f"{bidder.code} purse {bidder.purse} cannot cover {required}")


def can_act(bidder: Bidder, item: Item, current_bid: int, rules: LeagueRules) -> bool:
    try:
        check_eligibility(bidder, item, current_bid, rules)
    except CapacityViolation:
        return False
    return True


def create_bidders(rules: LeagueRules, human_codes: Dict[str, str] = None) -> Dict[str, Bidder]:
    """
    Create one bidder per franchise.

    Args:
        rules: League rules providing the starting purse
        human_codes: faction code -> display name for human-controlled franchises

    Returns:
        Ordered mapping of faction code to Bidder
    """
    human_codes = human_codes or {}
    bidders = {}
    for code in FACTION_CODES:
        bidders[code] = Bidder(
            code=code,
            name=human_codes.get(code) or FACTION_NAMES[code],
            purse=rules.starting_purse,
            personality=FACTION_PERSONALITIES[code],
            is_human=code in human_codes,
        )
    return bidders
