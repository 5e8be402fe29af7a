"""
Room registry: owns every live AuctionSession and routes actions to it.

The registry never touches sockets. It is handed a send(connection_id,
message) callable and resolves room-wide or per-participant messages to the
connections currently bound to those participants.

Lifecycle policy: rooms are created by an explicit create action and evicted
retention_seconds after they conclude (or on an explicit evict()).
"""

import logging
import random
import string
from functools import partial
from typing import Callable, Dict, List, Optional

from .ai import AiDecisionEngine
from .catalog import CatalogLoader, file_catalog
from .errors import IneligibleAction, InvalidSession, ResourceExhaustion
from .game import AuctionConfig, LeagueRules
from .scheduler import AsyncioScheduler, Scheduler
from .session import AuctionSession, SessionStatus

logger = logging.getLogger(__name__)

Sender = Callable[[str, dict], None]

ROOM_CODE_LENGTH = 5
ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
DEFAULT_RETENTION_SECONDS = 900.0


class RoomRegistry:
    """Maps room codes to sessions."""

    def __init__(self, send: Sender, catalog_loader: CatalogLoader = None,
                 scheduler: Scheduler = None, config: AuctionConfig = None,
                 rules: LeagueRules = None, seed: Optional[int] = None,
                 retention_seconds: float = DEFAULT_RETENTION_SECONDS):
        self.send = send
        self.catalog_loader = catalog_loader or file_catalog()
        self.scheduler = scheduler or AsyncioScheduler()
        self.config = config or AuctionConfig()
        self.rules = rules or LeagueRules()
        self.rng = random.Random(seed)
        self.retention_seconds = retention_seconds
        self.sessions: Dict[str, AuctionSession] = {}

    def __len__(self):
        return len(self.sessions)

    def __contains__(self, code: str):
        return code in self.sessions

    def get(self, code: str) -> AuctionSession:
        session = self.sessions.get(code)
        if session is None:
            raise InvalidSession(f"Room {code} not found")
        return session

    # --- Creation ---

    def _new_code(self) -> str:
        while True:
            code = "".join(self.rng.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))
            if code not in self.sessions:
                return code

    def _new_session(self, host_id: str, solo: bool) -> AuctionSession:
        code = self._new_code()
        session = AuctionSession(
            code=code,
            host_id=host_id,
            scheduler=self.scheduler,
            emit=partial(self._deliver, code),
            config=self.config,
            rules=self.rules,
            ai=AiDecisionEngine(random.Random(self.rng.getrandbits(64))),
            solo=solo,
            on_concluded=self._schedule_eviction,
        )
        self.sessions[code] = session
        return session

    def create_session(self, creator_id: str, connection_id: str = None) -> str:
        session = self._new_session(creator_id, solo=False)
        session.add_member(creator_id, connection_id)
        logger.info("[Room %s] Created by %s", session.code, creator_id)
        session.emit({"type": "session_created"}, creator_id)
        session.emit(session.lobby_state())
        return session.code

    def create_solo_session(self, creator_id: str, connection_id: str = None) -> str:
        session = self._new_session(creator_id, solo=True)
        session.add_member(creator_id, connection_id)
        logger.info("[Room %s] Single-player room created for %s", session.code, creator_id)
        session.emit({"type": "solo_session_created"}, creator_id)
        return session.code

    # --- Membership ---

    def join_session(self, code: str, participant_id: str, connection_id: str = None) -> bool:
        """Join a lobby. Rejections go back to the joining connection only."""
        session = self.sessions.get(code)
        if session is None:
            self._reject_join(connection_id, code, "Room not found.")
            return False
        if session.solo:
            self._reject_join(connection_id, code, "Room is single-player.")
            return False
        try:
            session.add_member(participant_id, connection_id)
        except IneligibleAction as e:
            self._reject_join(connection_id, code, str(e))
            return False
        session.emit({"type": "join_accepted"}, participant_id)
        session.emit(session.lobby_state())
        return True

    def _reject_join(self, connection_id: Optional[str], code: str, reason: str):
        logger.debug("Join to %s rejected: %s", code, reason)
        if connection_id is not None:
            self.send(connection_id, {"type": "join_rejected", "room_code": code, "reason": reason})

    def identify(self, code: str, participant_id: str, connection_id: str):
        """Rebind a returning participant to a new connection."""
        member = self.get(code).member(participant_id)
        member.connection_id = connection_id
        logger.info("[Room %s] %s re-identified", code, participant_id)

    def disconnect(self, connection_id: str) -> int:
        """Clear a dropped connection from every room. Membership is kept."""
        cleared = 0
        for session in self.sessions.values():
            for member in session.members.values():
                if member.connection_id == connection_id:
                    member.connection_id = None
                    cleared += 1
                    logger.info("[Room %s] %s disconnected", session.code, member.participant_id)
        return cleared

    # --- Lobby and start ---

    def select_faction(self, code: str, participant_id: str, faction: dict):
        self.get(code).select_faction(participant_id, faction)

    def request_start(self, code: str, participant_id: str):
        self.get(code).request_start(participant_id)

    def register_participant(self, code: str, participant_id: str, faction: dict) -> bool:
        """Register a faction. Starts the auction once every member has registered."""
        session = self.get(code)
        if not session.register(participant_id, faction):
            return False
        logger.info("[Room %s] All players have registered. Starting auction.", code)
        return self._start(session)

    def _start(self, session: AuctionSession) -> bool:
        try:
            session.start(self.catalog_loader())
        except ResourceExhaustion as e:
            logger.error("[Room %s] Could not start: %s", session.code, e)
            session.emit({"type": "start_failed", "reason": str(e)}, session.host_id)
            return False
        return True

    # --- Bidding ---

    def submit_bid(self, code: str, faction_code: str, amount: int):
        self.get(code).place_bid(faction_code, int(amount))

    def decline(self, code: str, faction_code: str) -> bool:
        return self.get(code).decline(faction_code)

    # --- Snapshots ---

    def request_full_state(self, code: str, participant_id: str):
        session = self.get(code)
        session.emit(session.full_state(participant_id), participant_id)

    def request_final_state(self, code: str, participant_id: str):
        session = self.get(code)
        session.emit(session.final_state(participant_id), participant_id)

    def rooms(self) -> List[dict]:
        return [
            {
                "room_code": code,
                "status": session.status.value,
                "solo": session.solo,
                "members": len(session.members),
                "lot_index": session.lot_index,
                "pool_size": session.pool_size,
            }
            for code, session in self.sessions.items()
        ]

    # --- Delivery and eviction ---

    def _deliver(self, code: str, message: dict, participant_id: str = None):
        session = self.sessions.get(code)
        if session is None:
            return
        if participant_id is None:
            members = list(session.members.values())
        else:
            member = session.members.get(participant_id)
            members = [member] if member is not None else []
        for member in members:
            if member.connected:
                self.send(member.connection_id, message)

    def _schedule_eviction(self, session: AuctionSession):
        self.scheduler.call_later(f"evict:{session.code}", self.retention_seconds,
                                  self.evict, session.code)

    def evict(self, code: str) -> bool:
        session = self.sessions.pop(code, None)
        if session is None:
            return False
        session.close()
        self.scheduler.cancel_all(f"evict:{code}")
        logger.info("[Room %s] Evicted (%s)", code, session.status.value)
        return True

    def evict_all(self):
        for code in list(self.sessions):
            self.evict(code)

    def active_codes(self, status: SessionStatus = None) -> List[str]:
        return [
            code for code, session in self.sessions.items()
            if status is None or session.status is status
        ]
