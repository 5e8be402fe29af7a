"""
Valuation model for automated bidders.

A franchise's ceiling for a player is the product of independent multipliers:

    tier base x attributes x squad need x personality x phase x budget x jitter

Every factor is exposed as its own function so it can be checked in
isolation. The only source of nondeterminism is the injected RNG.
"""

import random
from typing import Dict

from .game import Bidder, Item, LeagueRules, Personality, Tier

TIER_MULTIPLIERS: Dict[Tier, float] = {
    Tier.ELITE: 12.0,
    Tier.TIER_1: 8.0,
    Tier.TIER_2: 4.0,
    Tier.UNCAPPED: 3.0,
    Tier.UNRATED: 2.5,
}

# Lots closer than this to either end of the pool get a phase adjustment
PHASE_WINDOW = 20

# Purse per open squad slot below/above which budget pressure kicks in
TIGHT_BUDGET_PER_SLOT = 50
LOOSE_BUDGET_PER_SLOT = 500

VALUE_GRANULARITY = 5


def tier_base(item: Item) -> float:
    return item.base_price * TIER_MULTIPLIERS[item.tier]


def attribute_bonus(item: Item) -> float:
    bonus = 1.0
    if item.is_captain:
        bonus += 0.3
    if item.age < 25:
        bonus += 0.2
    if item.age > 35:
        bonus -= 0.1
    return bonus


def need_factor(item: Item, bidder: Bidder, rules: LeagueRules) -> float:
    """Urgency of the player's role given the bidder's current squad."""
    current = bidder.role_count(item.skill)
    target = rules.role_target(item.skill)
    if current < target:
        return 1.8 - current * 0.2
    if current >= target + 2:
        return 0.6
    return 0.9


def personality_modifier(item: Item, bidder: Bidder, rules: LeagueRules,
                         rng: random.Random) -> float:
    personality = bidder.personality
    top_tier = item.tier in (Tier.ELITE, Tier.TIER_1)

    if personality is Personality.STAR_HUNTER:
        if item.tier is Tier.ELITE:
            return 1.5
        if item.tier is Tier.TIER_1:
            return 1.3
    elif personality is Personality.AGGRESSIVE:
        if top_tier:
            return 1.4
    elif personality is Personality.EXPERIENCED:
        if item.age > 28 and top_tier:
            return 1.3
    elif personality is Personality.SCOUT:
        if item.tier is Tier.UNCAPPED or item.age < 25:
            return 1.6
        return 0.9
    elif personality is Personality.VALUE_FOCUSED:
        return 0.9 if item.tier is Tier.ELITE else 0.85
    elif personality in (Personality.STRATEGIC, Personality.ANALYTICAL):
        if bidder.is_short_of(item.skill, rules):
            return 1.2
    elif personality is Personality.OPPORTUNISTIC:
        # Surprise bids
        if rng.random() < 0.3:
            return 1.3
    return 1.0


def phase_modifier(lot_index: int, pool_size: int) -> float:
    """More aggressive early in the pool, a little more careful near the end."""
    if lot_index < PHASE_WINDOW:
        return 1.2
    if lot_index > pool_size - PHASE_WINDOW:
        return 0.9
    return 1.0


def budget_modifier(bidder: Bidder, rules: LeagueRules) -> float:
    slots = bidder.open_slots(rules)
    if slots <= 0:
        return 1.0
    per_slot = bidder.purse / slots
    if per_slot < TIGHT_BUDGET_PER_SLOT:
        return 0.8
    if per_slot > LOOSE_BUDGET_PER_SLOT:
        return 1.2
    return 1.0


def jitter(item: Item, rng: random.Random) -> float:
    """Narrow multiplicative noise, tighter for elite players."""
    if item.tier is Tier.ELITE:
        return rng.uniform(0.9, 1.1)
    return rng.uniform(0.85, 1.15)


def value_item(item: Item, bidder: Bidder, lot_index: int, pool_size: int,
               rules: LeagueRules, rng: random.Random) -> int:
    """
    Maximum amount bidder is willing to pay for item.

    Args:
        item: The player on the block
        bidder: The franchise doing the valuation (not modified)
        lot_index: Zero-based position of the item in the pool
        pool_size: Total number of items in the pool
        rules: League rules (role targets, roster cap)
        rng: Random source for the personality and jitter terms

    Returns:
        Ceiling price rounded to the nearest multiple of 5
    """
    ceiling = (
        tier_base(item)
        * attribute_bonus(item)
        * need_factor(item, bidder, rules)
        * personality_modifier(item, bidder, rules, rng)
        * phase_modifier(lot_index, pool_size)
        * budget_modifier(bidder, rules)
        * jitter(item, rng)
    )
    return int(round(ceiling / VALUE_GRANULARITY)) * VALUE_GRANULARITY
