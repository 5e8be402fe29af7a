"""
Tests for the domain model and pure bidding rules.

Tests:
- Increment rule
- Eligibility (roster cap, overseas cap, purse)
- Item parsing and one-time settlement
- Franchise setup
"""

import pytest

from games.live_auction.errors import CapacityViolation
from games.live_auction.game import (
    FACTION_CODES, FACTION_NAMES, Bidder, Item, LotStatus, Personality, Tier,
    can_act, check_eligibility, create_bidders, format_currency, next_increment,
)
from conftest import fill_roster, make_item


class TestIncrementRule:
    """Next valid bid as a function of the current bid"""

    @pytest.mark.parametrize("current,expected", [
        (20, 25),
        (50, 55),
        (95, 100),
        (100, 110),
        (150, 160),
        (190, 200),
        (200, 220),
        (210, 230),
        (1000, 1020),
    ])
    def test_steps(self, current, expected):
        assert next_increment(current) == expected

    def test_sequence_crosses_bands(self):
        """Repeated increments from 90 cross both band boundaries"""
        amounts = [90]
        for _ in range(6):
            amounts.append(next_increment(amounts[-1]))
        assert amounts == [90, 95, 100, 110, 120, 130, 140]

    def test_format_currency(self):
        assert format_currency(250) == "₹2.50 Cr"
        assert format_currency(55) == "₹0.55 Cr"


class TestEligibility:
    """Roster cap, overseas cap and purse"""

    def make_bidder(self, rules, purse=None):
        return Bidder(code="CSK", name="Chennai Super Kings",
                      purse=rules.starting_purse if purse is None else purse)

    def test_fresh_bidder_can_act(self, rules):
        bidder = self.make_bidder(rules)
        assert can_act(bidder, make_item(), 50, rules)

    def test_full_roster_blocks(self, rules):
        bidder = self.make_bidder(rules)
        fill_roster(bidder, rules.roster_cap)

        with pytest.raises(CapacityViolation):
            check_eligibility(bidder, make_item(), 50, rules)
        assert not can_act(bidder, make_item(), 50, rules)

    def test_overseas_cap_blocks_foreign_item(self, rules):
        bidder = self.make_bidder(rules)
        fill_roster(bidder, rules.overseas_cap, country="Australia")

        assert not can_act(bidder, make_item(country="England"), 50, rules)

    def test_overseas_cap_ignores_home_item(self, rules):
        bidder = self.make_bidder(rules)
        fill_roster(bidder, rules.overseas_cap, country="Australia")

        assert can_act(bidder, make_item(country="India"), 50, rules)

    def test_purse_must_cover_next_increment(self, rules):
        bidder = self.make_bidder(rules, purse=54)
        assert not can_act(bidder, make_item(), 50, rules)

        bidder.purse = 55
        assert can_act(bidder, make_item(), 50, rules)


class TestItem:
    """Catalog parsing and settlement state"""

    def test_from_dict(self):
        item = Item.from_dict({
            "name": "Pat Cummins", "country": "Australia", "skill": "Bowler",
            "age": 31, "basePrice": 200, "tier": "Elite", "isCaptain": True,
        })

        assert item.tier is Tier.ELITE
        assert item.base_price == 200
        assert item.is_captain is True
        assert item.status is LotStatus.PENDING

    @pytest.mark.parametrize("flag", ["false", "true", 0, 1, None])
    def test_captain_flag_rejects_non_booleans(self, flag):
        with pytest.raises(ValueError):
            Item.from_dict({
                "name": "Pat Cummins", "country": "Australia", "skill": "Bowler",
                "age": 31, "basePrice": 200, "tier": "Elite", "isCaptain": flag,
            })

    def test_captain_flag_defaults_false(self):
        item = Item.from_dict({
            "name": "Pat Cummins", "country": "Australia", "skill": "Bowler",
            "age": 31, "basePrice": 200, "tier": "Elite",
        })
        assert item.is_captain is False

    def test_unknown_tier_is_unrated(self):
        assert Tier("Legend") is Tier.UNRATED

    def test_competitive_tiers(self):
        assert Tier.ELITE.is_competitive
        assert Tier.TIER_1.is_competitive
        assert not Tier.TIER_2.is_competitive
        assert not Tier.UNCAPPED.is_competitive

    def test_sold_once(self):
        item = make_item()
        item.mark_sold(65)

        assert item.status is LotStatus.SOLD
        assert item.final_price == 65
        with pytest.raises(ValueError):
            item.mark_sold(70)
        with pytest.raises(ValueError):
            item.mark_unsold()
        assert item.final_price == 65

    def test_unsold_once(self):
        item = make_item()
        item.mark_unsold()

        assert item.is_settled
        with pytest.raises(ValueError):
            item.mark_sold(55)


class TestCreateBidders:
    """Franchise setup at auction start"""

    def test_all_franchises_created(self, rules):
        bidders = create_bidders(rules)

        assert list(bidders) == FACTION_CODES
        assert all(b.purse == rules.starting_purse for b in bidders.values())
        assert not any(b.is_human for b in bidders.values())
        assert bidders["RCB"].personality is Personality.STAR_HUNTER

    def test_human_display_names(self, rules):
        bidders = create_bidders(rules, {"CSK": "Yellow Army", "MI": ""})

        assert bidders["CSK"].is_human
        assert bidders["CSK"].name == "Yellow Army"
        assert bidders["MI"].is_human
        assert bidders["MI"].name == FACTION_NAMES["MI"]
        assert not bidders["RR"].is_human
