"""
Tests for the AI decision engine.

Tests:
- Bid probability and attempt caps
- Candidate selection on trigger
- decide() re-validation, deactivation and bidding
- Slight overshoot on elite lots
"""

import pytest

from games.live_auction.ai import AiDecisionEngine, attempt_cap, bid_probability
from games.live_auction.game import Bidder, Personality, Tier
from conftest import ScriptedRandom, fill_roster, make_item


def make_bidder(personality=Personality.BALANCED):
    return Bidder(code="XX", name="XX", purse=12500, personality=personality)


class TestBidProbability:
    """Interest level per tier, personality and squad need"""

    def test_tier_ordering(self, rules):
        bidder = make_bidder()
        fill_roster(bidder, 4, skill="Batsman")  # not short of batsmen
        probs = [bid_probability(make_item(tier=t), bidder, rules)
                 for t in (Tier.ELITE, Tier.TIER_1, Tier.TIER_2, Tier.UNCAPPED, Tier.UNRATED)]
        assert probs == pytest.approx([0.95, 0.85, 0.70, 0.60, 0.50])

    def test_need_boost(self, rules):
        assert bid_probability(make_item(tier=Tier.TIER_2), make_bidder(), rules) == pytest.approx(0.95)

    def test_value_focused_discount(self, rules):
        bidder = make_bidder(Personality.VALUE_FOCUSED)
        fill_roster(bidder, 4, skill="Batsman")
        assert bid_probability(make_item(tier=Tier.TIER_2), bidder, rules) == pytest.approx(0.56)

    def test_scout_and_star_hunter(self, rules):
        scout = make_bidder(Personality.SCOUT)
        fill_roster(scout, 4, skill="Batsman")
        assert bid_probability(make_item(tier=Tier.UNCAPPED), scout, rules) == pytest.approx(0.8)

        hunter = make_bidder(Personality.STAR_HUNTER)
        fill_roster(hunter, 4, skill="Batsman")
        assert bid_probability(make_item(tier=Tier.TIER_1), hunter, rules) == pytest.approx(1.0)

    def test_capped_at_one(self, rules):
        assert bid_probability(make_item(tier=Tier.ELITE), make_bidder(Personality.AGGRESSIVE), rules) == 1.0


class TestAttemptCap:
    """Tier- and personality-dependent attempt limits"""

    def test_elite(self):
        elite = make_item(tier=Tier.ELITE)
        assert attempt_cap(elite, Personality.STAR_HUNTER) == 5
        assert attempt_cap(elite, Personality.AGGRESSIVE) == 5
        assert attempt_cap(elite, Personality.SCOUT) == 3

    def test_lower_tiers(self):
        assert attempt_cap(make_item(tier=Tier.TIER_1), Personality.STAR_HUNTER) == 3
        assert attempt_cap(make_item(tier=Tier.TIER_2), Personality.STAR_HUNTER) == 2
        assert attempt_cap(make_item(tier=Tier.UNCAPPED), Personality.SCOUT) == 2


class TestTrigger:
    """Who gets a decision scheduled"""

    def test_schedules_every_ai_franchise(self, make_session, scheduler):
        engine = AiDecisionEngine(ScriptedRandom(0.0))
        session = make_session([make_item()], humans=("CSK",), ai=engine)
        before = scheduler.pending_count(session.code)

        assert engine.trigger(session) == 9
        assert scheduler.pending_count(session.code) == before + 9

    def test_skips_humans_leader_decliners_and_inactive(self, make_session):
        engine = AiDecisionEngine(ScriptedRandom(0.0))
        session = make_session([make_item()], humans=("CSK",), ai=engine)
        session.place_bid("MI", 55)
        session.decline("RR")
        session.bidders["GT"].ai.active = False

        codes = {b.code for b in engine.candidates(session)}

        assert codes == {"RCB", "KKR", "SRH", "DC", "PBKS", "LSG"}
        assert engine.trigger(session) == 6

    def test_respects_attempt_cap(self, make_session):
        engine = AiDecisionEngine(ScriptedRandom(0.0))
        session = make_session([make_item()], humans=("CSK",), ai=engine)
        for bidder in session.bidders.values():
            bidder.ai.attempts = bidder.ai.max_attempts

        assert engine.trigger(session) == 0

    def test_failed_roll_schedules_nothing(self, make_session):
        engine = AiDecisionEngine(ScriptedRandom(0.999))
        session = make_session([make_item(tier=Tier.TIER_2)], humans=("CSK",), ai=engine)
        # Nobody is short of batsmen, so no probability reaches 1.0
        for bidder in session.bidders.values():
            fill_roster(bidder, 4, skill="Batsman")

        assert engine.trigger(session) == 0

    def test_decisions_are_staggered(self, make_session, scheduler):
        engine = AiDecisionEngine(ScriptedRandom(0.0))
        session = make_session([make_item()], humans=("CSK",), ai=engine)
        # Nothing else pending in the first half second except countdown ticks
        engine.trigger(session)

        scheduler.advance(0.5)
        assert session.bid_count == 1
        scheduler.advance(0.8)
        assert session.bid_count == 2

    def test_no_trigger_without_lot(self, make_session):
        engine = AiDecisionEngine(ScriptedRandom(0.0))
        session = make_session([make_item()], humans=("CSK",), ai=engine)
        session.settle()

        assert engine.trigger(session) == 0


class TestDecide:
    """The delayed bid decision"""

    def setup_session(self, make_session, item=None, value=0.0):
        engine = AiDecisionEngine(ScriptedRandom(value))
        session = make_session([item or make_item(), make_item(name="Next")],
                               humans=("CSK",), ai=engine)
        return engine, session

    def test_bids_next_increment(self, make_session, outbox):
        engine, session = self.setup_session(make_session)

        assert engine.decide(session, "GT", 0) is True
        assert session.current_bid == 55
        assert session.current_bidder == "GT"
        assert session.bidders["GT"].ai.attempts == 1
        update = outbox.of_type("auction_update")[-1]
        assert update["message"] == "Gujarat Titans bids ₹0.55 Cr for Test Player"

    def test_stale_lot_is_dropped(self, make_session):
        engine, session = self.setup_session(make_session)
        session.settle()

        assert engine.decide(session, "GT", 0) is False
        assert session.current_bidder is None

    def test_ignores_humans_and_leader(self, make_session):
        engine, session = self.setup_session(make_session)
        assert engine.decide(session, "CSK", 0) is False

        session.place_bid("GT", 55)
        assert engine.decide(session, "GT", 0) is False
        assert session.current_bid == 55

    def test_declined_franchise_does_not_bid(self, make_session):
        engine, session = self.setup_session(make_session)
        session.decline("GT")

        assert engine.decide(session, "GT", 0) is False

    def test_purse_shortfall_deactivates(self, make_session):
        engine, session = self.setup_session(make_session)
        session.bidders["GT"].purse = 50

        assert engine.decide(session, "GT", 0) is False
        assert session.bidders["GT"].ai.active is False
        assert engine.trigger(session) == 8

    def test_overseas_quota_deactivates(self, make_session, rules):
        engine, session = self.setup_session(make_session, make_item(country="Australia"))
        fill_roster(session.bidders["GT"], rules.overseas_cap, country="England")

        assert engine.decide(session, "GT", 0) is False
        assert session.bidders["GT"].ai.active is False
        assert session.current_bidder is None

    def test_over_ceiling_passes_but_stays_active(self, make_session):
        engine, session = self.setup_session(make_session)
        # Ceiling for this lot is 365 with the scripted RNG
        session.place_bid("MI", 55)
        session.current_bid = 400

        assert engine.decide(session, "GT", 0) is False
        assert session.current_bidder == "MI"
        assert session.bidders["GT"].ai.active is True

    def test_deactivation_resets_next_lot(self, make_session, scheduler):
        engine, session = self.setup_session(make_session)
        session.bidders["GT"].purse = 50
        engine.decide(session, "GT", 0)

        session.settle()
        scheduler.advance(session.config.settle_delay)

        assert session.lot_index == 1
        assert session.bidders["GT"].ai.active is True


class TestOvershoot:
    """Elite lots occasionally go a little past the ceiling"""

    def test_within_ceiling(self):
        engine = AiDecisionEngine(ScriptedRandom(0.9))
        assert engine.within_ceiling(make_item(), 0, 100, 100)
        assert not engine.within_ceiling(make_item(), 0, 105, 100)

    def test_elite_overshoot(self):
        engine = AiDecisionEngine(ScriptedRandom(0.1))
        elite = make_item(tier=Tier.ELITE)

        assert engine.within_ceiling(elite, 0, 110, 100)
        assert not engine.within_ceiling(elite, 0, 115, 100)
        assert not engine.within_ceiling(elite, 8, 105, 100)
        assert not engine.within_ceiling(make_item(tier=Tier.TIER_1), 0, 105, 100)

    def test_overshoot_needs_lucky_roll(self):
        engine = AiDecisionEngine(ScriptedRandom(0.5))
        assert not engine.within_ceiling(make_item(tier=Tier.ELITE), 0, 105, 100)
