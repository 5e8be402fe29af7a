"""
Auction room state machine.

    AwaitingParticipants -> Starting -> ItemOnBlock -> Settling -> ItemOnBlock ...
                                                              \\-> Concluded

Every method runs to completion on the event loop, so two bids for the same
room are always applied one after the other. Delayed work (countdown ticks,
AI decisions, the pause after a sale) goes through the room's Scheduler under
the room code, and concluding the room cancels all of it.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Set

from .ai import AiDecisionEngine
from .errors import IneligibleAction, InvalidSession, MalformedIncrement, ResourceExhaustion
from .game import (
    FACTION_CODES, FACTION_NAMES, AuctionConfig, Bidder, Item, LeagueRules, RosterEntry,
    check_eligibility, create_bidders, format_currency, next_increment,
)
from .scheduler import Scheduler
from .timer import BidWindow

logger = logging.getLogger(__name__)

# participant_id=None means "everyone in the room"
Emitter = Callable[[dict, Optional[str]], None]


class SessionStatus(Enum):
    LOBBY = "lobby"
    RUNNING = "running"
    CONCLUDED = "concluded"


class SessionPhase(Enum):
    AWAITING_PARTICIPANTS = "awaiting_participants"
    STARTING = "starting"
    ITEM_ON_BLOCK = "item_on_block"
    SETTLING = "settling"
    CONCLUDED = "concluded"

    @property
    def status(self) -> SessionStatus:
        if self is SessionPhase.AWAITING_PARTICIPANTS:
            return SessionStatus.LOBBY
        if self is SessionPhase.CONCLUDED:
            return SessionStatus.CONCLUDED
        return SessionStatus.RUNNING


@dataclass
class Member:
    """A participant in the room, human or solo-mode AI filler."""
    participant_id: str
    name: str
    is_host: bool = False
    faction: Optional[dict] = None
    connection_id: Optional[str] = None
    is_ai: bool = False

    @property
    def connected(self) -> bool:
        return self.connection_id is not None

    def to_dict(self) -> dict:
        return {
            "participant_id": self.participant_id,
            "name": self.name,
            "is_host": self.is_host,
            "faction": self.faction,
            "connected": self.connected,
            "is_ai": self.is_ai,
        }


class AuctionSession:
    """One auction room."""

    def __init__(self, code: str, host_id: str, scheduler: Scheduler, emit: Emitter,
                 config: AuctionConfig = None, rules: LeagueRules = None,
                 ai: AiDecisionEngine = None, solo: bool = False,
                 on_concluded: Callable[["AuctionSession"], None] = None):
        self.code = code
        self.host_id = host_id
        self.scheduler = scheduler
        self.config = config or AuctionConfig()
        self.rules = rules or LeagueRules()
        self.ai = ai or AiDecisionEngine()
        self.solo = solo
        self.on_concluded = on_concluded
        self._emit_fn = emit

        self.phase = SessionPhase.AWAITING_PARTICIPANTS
        self.members: Dict[str, Member] = {}
        self.participants: Dict[str, dict] = {}
        self.available_factions: List[dict] = [
            {"code": code, "name": FACTION_NAMES[code]} for code in FACTION_CODES
        ]
        self.bidders: Dict[str, Bidder] = {}
        self.items: List[Item] = []

        self.lot_index = -1
        self.current_bid = 0
        self.current_bidder: Optional[str] = None
        self.bid_count = 0
        self.declined: Set[str] = set()
        self.window = BidWindow(scheduler, code, self.config, self._on_tick, self.settle)

    # --- Properties ---

    @property
    def status(self) -> SessionStatus:
        return self.phase.status

    @property
    def is_on_block(self) -> bool:
        return self.phase is SessionPhase.ITEM_ON_BLOCK

    @property
    def current_item(self) -> Optional[Item]:
        if 0 <= self.lot_index < len(self.items):
            return self.items[self.lot_index]
        return None

    @property
    def pool_size(self) -> int:
        return len(self.items)

    # --- Messaging ---

    def emit(self, message: dict, participant_id: str = None):
        if "room_code" not in message:
            message["room_code"] = self.code
        self._emit_fn(message, participant_id)

    def lobby_state(self) -> dict:
        return {
            "type": "lobby_state",
            "participants": [m.to_dict() for m in self.members.values()],
            "available_factions": list(self.available_factions),
        }

    def factions_snapshot(self) -> dict:
        return {code: bidder.to_dict(self.rules) for code, bidder in self.bidders.items()}

    # --- Lobby ---

    def member(self, participant_id: str) -> Member:
        member = self.members.get(participant_id)
        if member is None:
            raise InvalidSession(f"{participant_id} is not in room {self.code}")
        return member

    def add_member(self, participant_id: str, connection_id: str = None,
                   name: str = None, is_ai: bool = False) -> Member:
        """Add a participant to the lobby. Re-adding an existing member rebinds it."""
        existing = self.members.get(participant_id)
        if existing is not None:
            existing.connection_id = connection_id
            return existing
        if self.status is not SessionStatus.LOBBY:
            raise IneligibleAction("Auction is already in progress.")
        member = Member(
            participant_id=participant_id,
            name=name or f"Player {len(self.members) + 1}",
            is_host=participant_id == self.host_id,
            connection_id=connection_id,
            is_ai=is_ai,
        )
        self.members[participant_id] = member
        return member

    def select_faction(self, participant_id: str, faction: dict):
        if self.status is not SessionStatus.LOBBY:
            raise IneligibleAction("factions are locked once the auction starts")
        member = self.member(participant_id)
        code = faction.get("code")
        if code not in FACTION_CODES:
            raise IneligibleAction(f"unknown faction {code}")
        self._claim_faction(member, code, faction.get("name"))
        self.emit(self.lobby_state())

    def _claim_faction(self, member: Member, code: str, name: str = None):
        """Give code to member, releasing whatever faction they held before."""
        for other in self.members.values():
            if other is not member and other.faction and other.faction["code"] == code:
                raise IneligibleAction(f"faction {code} is not available")
        if member.faction and member.faction["code"] != code:
            released = member.faction["code"]
            self.available_factions.append({"code": released, "name": FACTION_NAMES[released]})
        self.available_factions = [f for f in self.available_factions if f["code"] != code]
        member.faction = {"code": code, "name": name or FACTION_NAMES[code]}

    def request_start(self, participant_id: str):
        if participant_id != self.host_id:
            raise IneligibleAction(f"{participant_id} is not the host of {self.code}")
        if self.status is not SessionStatus.LOBBY:
            raise IneligibleAction("auction already started")
        self.emit({"type": "game_starting"})

    def register(self, participant_id: str, faction: dict) -> bool:
        """
        Record a participant's faction. Returns True once the room is ready to start.

        In solo rooms every other faction is filled with an AI member, so the
        room is ready as soon as the one human registers.
        """
        if self.status is not SessionStatus.LOBBY:
            raise IneligibleAction("auction already started")
        member = self.member(participant_id)
        code = faction.get("code")
        if code not in FACTION_CODES:
            raise IneligibleAction(f"unknown faction {code}")

        if self.solo:
            return self._register_solo(member, code, faction.get("name"))

        self._claim_faction(member, code, faction.get("name"))
        self.participants[participant_id] = member.faction
        return len(self.participants) == len(self.members)

    def _register_solo(self, member: Member, code: str, name: str = None) -> bool:
        for ai_id in [pid for pid, m in self.members.items() if m.is_ai]:
            del self.members[ai_id]
            self.participants.pop(ai_id, None)

        member.faction = {"code": code, "name": name or FACTION_NAMES[code]}
        self.participants[member.participant_id] = member.faction
        for other_code in FACTION_CODES:
            if other_code == code:
                continue
            ai_member = self.add_member(f"ai_{other_code}", name=f"AI {FACTION_NAMES[other_code]}", is_ai=True)
            ai_member.faction = {"code": other_code, "name": FACTION_NAMES[other_code]}
            self.participants[ai_member.participant_id] = ai_member.faction
        return True

    # --- Auction flow ---

    def start(self, items: List[Item]):
        """Set up the franchises and put the first lot on the block."""
        if self.status is not SessionStatus.LOBBY:
            raise IneligibleAction("auction already started")
        if not items:
            raise ResourceExhaustion("player catalog is empty")

        humans = {
            faction["code"]: faction["name"]
            for pid, faction in self.participants.items()
            if not self.members[pid].is_ai
        }
        self.bidders = create_bidders(self.rules, humans)
        self.items = list(items)
        self.phase = SessionPhase.STARTING
        logger.info("[Room %s] Auction starting with %d players, humans: %s",
                    self.code, len(self.items), ", ".join(sorted(humans)) or "none")

        if self.solo:
            self.emit({"type": "game_starting", "factions": self.factions_snapshot()})
            self.scheduler.call_later(self.code, self.config.solo_start_delay, self.advance)
        else:
            self.advance()

    def advance(self):
        """Present the next lot, or conclude when the pool is exhausted."""
        if self.phase is SessionPhase.CONCLUDED:
            return
        self.lot_index += 1
        if self.lot_index >= len(self.items):
            self.conclude()
            return

        item = self.current_item
        self.current_bid = item.base_price
        self.current_bidder = None
        self.bid_count = 0
        self.declined = set()
        self.phase = SessionPhase.ITEM_ON_BLOCK
        self.ai.reset_for_lot(self)

        self.emit({"type": "item_presented", "item": item.to_dict(), "lot_index": self.lot_index})
        self.emit({
            "type": "auction_update",
            "current_bid": self.current_bid,
            "current_bidder": None,
            "seconds_remaining": self.config.bid_window_ticks,
        })

        waves = list(self.config.ai_wave_delays)
        if item.tier.is_competitive:
            waves.extend(self.config.competitive_wave_delays)
        for delay in waves:
            self.scheduler.call_later(self.code, delay, self.ai.trigger, self)

        self.window.start()

    def place_bid(self, faction_code: str, amount: int, message: str = None):
        """Accept a bid or raise why it was refused."""
        if not self.is_on_block:
            raise IneligibleAction(f"no lot on the block in {self.code}")
        bidder = self.bidders.get(faction_code)
        if bidder is None:
            raise IneligibleAction(f"unknown faction {faction_code}")
        if faction_code in self.declined:
            raise IneligibleAction(f"{faction_code} passed on this lot")
        if faction_code == self.current_bidder:
            raise IneligibleAction(f"{faction_code} already holds the high bid")

        check_eligibility(bidder, self.current_item, self.current_bid, self.rules)
        expected = next_increment(self.current_bid)
        if amount != expected:
            raise MalformedIncrement(amount, expected)

        self.current_bid = amount
        self.current_bidder = faction_code
        self.bid_count += 1

        update = {
            "type": "auction_update",
            "current_bid": self.current_bid,
            "current_bidder": faction_code,
            "current_bidder_name": bidder.name,
            "seconds_remaining": self.config.bid_window_ticks,
        }
        if message:
            update["message"] = message
        self.emit(update)
        self.window.start()

    def decline(self, faction_code: str) -> bool:
        """Pass on the current lot. Returns False if already passed."""
        if not self.is_on_block:
            raise IneligibleAction(f"no lot on the block in {self.code}")
        if faction_code not in self.bidders:
            raise IneligibleAction(f"unknown faction {faction_code}")
        if faction_code in self.declined:
            return False
        self.declined.add(faction_code)
        return True

    def _on_tick(self, remaining: int):
        self.emit({"type": "auction_update", "seconds_remaining": remaining})
        item = self.current_item
        if item is not None and item.tier.is_competitive and remaining in self.config.ai_checkpoints:
            self.scheduler.call_later(self.code, self.config.checkpoint_delay, self.ai.trigger, self)

    def settle(self) -> bool:
        """Close the current lot. A lot that is already settled is left alone."""
        if not self.is_on_block:
            return False
        item = self.current_item
        if item.is_settled:
            return False

        self.window.cancel()
        self.phase = SessionPhase.SETTLING

        if self.current_bidder is None:
            item.mark_unsold()
            logger.info("[Room %s] %s unsold", self.code, item.name)
            self.emit({
                "type": "item_settled",
                "faction_code": None,
                "faction_name": "Unsold",
                "final_price": 0,
                "item": item.to_dict(),
            })
        else:
            winner = self.bidders[self.current_bidder]
            price = self.current_bid
            item.mark_sold(price)
            winner.purse -= price
            winner.roster.append(RosterEntry(item=item, price=price))
            logger.info("[Room %s] %s sold to %s for %s",
                        self.code, item.name, winner.code, format_currency(price))
            self.emit({
                "type": "item_settled",
                "faction_code": winner.code,
                "faction_name": winner.name,
                "final_price": price,
                "item": item.to_dict(),
            })

        self.emit({"type": "auction_update", "factions": self.factions_snapshot()})
        self.scheduler.call_later(self.code, self.config.settle_delay, self.advance)
        return True

    def conclude(self):
        if self.phase is SessionPhase.CONCLUDED:
            return
        self.phase = SessionPhase.CONCLUDED
        self.close()
        logger.info("[Room %s] Auction concluded", self.code)
        self.emit({"type": "session_concluded"})
        if self.on_concluded:
            self.on_concluded(self)

    def close(self):
        """Cancel every pending timer for this room."""
        self.window.cancel()
        self.scheduler.cancel_all(self.code)

    # --- Snapshots ---

    def full_state(self, participant_id: str) -> dict:
        self.member(participant_id)
        return {
            "type": "full_state",
            "room": {
                "phase": self.phase.value,
                "status": self.status.value,
                "factions": self.factions_snapshot(),
                "items": [item.to_dict() for item in self.items],
                "lot_index": self.lot_index,
                "current_bid": self.current_bid,
                "current_bidder": self.current_bidder,
                "declined": sorted(self.declined),
                "participants": dict(self.participants),
                "seconds_remaining": self.window.remaining,
            },
            "my_faction": self.participants.get(participant_id),
        }

    def final_state(self, participant_id: str) -> dict:
        faction = self.participants.get(participant_id)
        if faction is None:
            raise InvalidSession(f"{participant_id} has no faction in room {self.code}")
        return {
            "type": "final_state",
            "room": {
                "status": self.status.value,
                "factions": self.factions_snapshot(),
                "items": [item.to_dict() for item in self.items],
                "members": [m.to_dict() for m in self.members.values()],
                "participants": dict(self.participants),
            },
            "my_faction_code": faction["code"],
        }
