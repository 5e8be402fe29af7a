"""
Shared fixtures for the auction engine tests.

Everything runs on a VirtualScheduler, so "waiting ten seconds" is a call to
scheduler.advance(10).
"""

import random

import pytest

from games.live_auction.ai import AiDecisionEngine
from games.live_auction.game import AuctionConfig, Bidder, Item, LeagueRules, RosterEntry, Tier
from games.live_auction.scheduler import VirtualScheduler
from games.live_auction.session import AuctionSession


class Outbox:
    """Records (participant_id, message) pairs emitted by a session."""

    def __init__(self):
        self.messages = []

    def __call__(self, message, participant_id=None):
        self.messages.append((participant_id, dict(message)))

    def of_type(self, msg_type):
        return [m for _, m in self.messages if m["type"] == msg_type]

    def types(self):
        return [m["type"] for _, m in self.messages]


class ScriptedRandom(random.Random):
    """random() always returns value; shuffle keeps order."""

    def __init__(self, value=0.0):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value

    def shuffle(self, x):
        pass


class QuietAi(AiDecisionEngine):
    """AI engine that never bids, for tests driving humans only."""

    def trigger(self, session):
        return 0


class SpyAi(AiDecisionEngine):
    """Records the scheduler time of every trigger and never bids."""

    def __init__(self):
        super().__init__(ScriptedRandom())
        self.triggered_at = []

    def trigger(self, session):
        self.triggered_at.append(session.scheduler.now())
        return 0


def make_item(name="Test Player", country="India", skill="Batsman", age=28,
              base_price=50, tier=Tier.TIER_2, is_captain=False):
    return Item(name=name, country=country, skill=skill, age=age,
                base_price=base_price, tier=tier, is_captain=is_captain)


def fill_roster(bidder: Bidder, count: int, country="India", skill="Bowler", price=20):
    for i in range(count):
        item = make_item(name=f"{bidder.code} filler {i}", country=country, skill=skill)
        item.mark_sold(price)
        bidder.roster.append(RosterEntry(item=item, price=price))


@pytest.fixture
def rules():
    return LeagueRules()


@pytest.fixture
def config():
    return AuctionConfig()


@pytest.fixture
def scheduler():
    return VirtualScheduler()


@pytest.fixture
def outbox():
    return Outbox()


@pytest.fixture
def make_session(scheduler, outbox):
    """Start a room with the given human factions; every other faction is AI."""

    def factory(items, humans=("CSK", "MI"), ai=None, config=None, rules=None, code="ROOM1"):
        session = AuctionSession(code, "host", scheduler, outbox,
                                 config=config, rules=rules, ai=ai or QuietAi())
        for i, faction in enumerate(humans):
            participant_id = "host" if i == 0 else f"p{i}"
            session.add_member(participant_id, connection_id=f"conn-{i}")
            session.register(participant_id, {"code": faction})
        session.start(items)
        return session

    return factory
