"""
Computer-controlled franchises.

trigger() is called when a lot is presented and at the countdown checkpoints.
It picks the AI franchises that could still bid, rolls for each one, and
schedules a staggered decide() call. decide() looks at the room again when it
fires, since humans and other AIs may have moved the price in the meantime.
"""

import logging
import random

from .errors import AuctionError, CapacityViolation
from .game import (
    Bidder, Item, LeagueRules, Personality, Tier,
    check_eligibility, format_currency, next_increment,
)
from .valuation import value_item

logger = logging.getLogger(__name__)

TIER_BID_PROBABILITY = {
    Tier.ELITE: 0.95,
    Tier.TIER_1: 0.85,
    Tier.TIER_2: 0.70,
    Tier.UNCAPPED: 0.60,
    Tier.UNRATED: 0.50,
}

# decide() delay = position * STAGGER + U(0, SPREAD) + MIN_DELAY
DECISION_STAGGER = 0.8
DECISION_SPREAD = 1.2
DECISION_MIN_DELAY = 0.5

# Elite lots with few bids may go slightly over the ceiling
OVERSHOOT_BID_COUNT = 8
OVERSHOOT_CHANCE = 0.3
OVERSHOOT_FACTOR = 1.1


def bid_probability(item: Item, bidder: Bidder, rules: LeagueRules) -> float:
    """Chance that bidder shows interest in item on a given trigger."""
    probability = TIER_BID_PROBABILITY[item.tier]

    personality = bidder.personality
    if personality in (Personality.STAR_HUNTER, Personality.AGGRESSIVE):
        if item.tier in (Tier.ELITE, Tier.TIER_1):
            probability = min(1.0, probability + 0.15)
    elif personality is Personality.SCOUT:
        if item.tier is Tier.UNCAPPED or item.age < 25:
            probability += 0.20
    elif personality is Personality.VALUE_FOCUSED:
        probability *= 0.8

    if bidder.is_short_of(item.skill, rules):
        probability += 0.25

    return min(1.0, probability)


def attempt_cap(item: Item, personality: Personality) -> int:
    """How many bids an AI franchise may place on one lot."""
    if item.tier is Tier.ELITE:
        if personality in (Personality.STAR_HUNTER, Personality.AGGRESSIVE):
            return 5
        return 3
    if item.tier is Tier.TIER_1:
        return 3
    return 2


class AiDecisionEngine:
    """Schedules and makes bids for every non-human franchise in a room."""

    def __init__(self, rng: random.Random = None):
        self.rng = rng or random.Random()

    def reset_for_lot(self, session):
        item = session.current_item
        for bidder in session.bidders.values():
            bidder.ai.reset(attempt_cap(item, bidder.personality))

    def candidates(self, session):
        return [
            bidder for bidder in session.bidders.values()
            if not bidder.is_human
            and bidder.code != session.current_bidder
            and bidder.code not in session.declined
            and bidder.ai.active
        ]

    def trigger(self, session) -> int:
        """Roll for each eligible AI franchise. Returns how many decisions were scheduled."""
        if not session.is_on_block:
            return 0
        item = session.current_item
        bidders = self.candidates(session)
        self.rng.shuffle(bidders)

        scheduled = 0
        for position, bidder in enumerate(bidders):
            probability = bid_probability(item, bidder, session.rules)
            if self.rng.random() >= probability:
                continue
            if bidder.ai.attempts >= bidder.ai.max_attempts:
                continue
            delay = (position * DECISION_STAGGER
                     + self.rng.random() * DECISION_SPREAD
                     + DECISION_MIN_DELAY)
            session.scheduler.call_later(
                session.code, delay, self.decide, session, bidder.code, session.lot_index
            )
            scheduled += 1
        return scheduled

    def within_ceiling(self, item: Item, bid_count: int, amount: int, ceiling: int) -> bool:
        if amount <= ceiling:
            return True
        if item.tier is Tier.ELITE and bid_count < OVERSHOOT_BID_COUNT:
            return self.rng.random() < OVERSHOOT_CHANCE and amount <= ceiling * OVERSHOOT_FACTOR
        return False

    def decide(self, session, code: str, lot_index: int) -> bool:
        """Bid for franchise code if the lot is still open and the price is right."""
        if not session.is_on_block or session.lot_index != lot_index:
            return False
        bidder = session.bidders.get(code)
        if bidder is None or bidder.is_human or not bidder.ai.active:
            return False
        if session.current_bidder == code or code in session.declined:
            return False

        item = session.current_item
        try:
            check_eligibility(bidder, item, session.current_bid, session.rules)
        except CapacityViolation as exc:
            logger.debug("[Room %s] %s sits out %s: %s", session.code, code, item.name, exc)
            bidder.ai.active = False
            return False

        amount = next_increment(session.current_bid)
        ceiling = value_item(item, bidder, session.lot_index, session.pool_size,
                             session.rules, self.rng)
        if not self.within_ceiling(item, session.bid_count, amount, ceiling):
            return False

        bidder.ai.attempts += 1
        message = f"{bidder.name} bids {format_currency(amount)} for {item.name}"
        try:
            session.place_bid(code, amount, message=message)
        except AuctionError as exc:
            logger.debug("[Room %s] AI bid from %s rejected: %s", session.code, code, exc)
            return False
        return True
