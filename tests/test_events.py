"""
Unit tests for the event budget, milestones and session synthesis
"""

import pytest

from pltv_synth.config import MessRates
from pltv_synth.events import (
    EventBudget,
    EventSink,
    Milestones,
    emit_player_events,
    player_event_budget,
    schedule_sessions,
    week_one_summary,
)
from pltv_synth.players import draw_player, draw_profile
from pltv_synth.rng import SeededRandom
from pltv_synth.utils import date_to_ms

ROW = ("player_00001", "2024-10-01T00:00:00Z", "session_start", "s0_0", "")
NO_MESS = MessRates(dup_rate=0.0, drop_rate=0.0, ooo_rate=0.0)


class TestEventBudget:
    """Test the global cap and transport defects"""

    def test_write_once(self, scripted):
        """Test a clean write appends one row"""
        budget, sink = EventBudget(cap=10), EventSink()
        assert budget.write(sink, ROW, scripted(0.5), NO_MESS) == 1
        assert budget.written == 1
        assert len(sink) == 1

    def test_cap_blocks_writes(self, scripted):
        """Test nothing is written once the cap is reached"""
        budget, sink = EventBudget(cap=2), EventSink()
        for _ in range(5):
            budget.write(sink, ROW, scripted(0.5), NO_MESS)
        assert budget.written == 2
        assert budget.exhausted
        assert len(sink) == 2

    def test_drop_consumes_nothing(self, scripted):
        """Test dropped writes do not count against the cap"""
        budget, sink = EventBudget(cap=5), EventSink()
        assert budget.write(sink, ROW, scripted(0.0), MessRates(drop_rate=0.5)) == 0
        assert budget.written == 0
        assert budget.dropped == 1
        assert len(sink) == 0

    def test_duplicate_counts_twice(self, scripted):
        """Test a re-delivered row is written and counted twice"""
        budget, sink = EventBudget(cap=5), EventSink()
        mess = MessRates(dup_rate=0.5, drop_rate=0.5)
        assert budget.write(sink, ROW, scripted(0.9, 0.0), mess) == 2
        assert budget.written == 2
        assert budget.duplicated == 1
        assert sink.rows == [ROW, ROW]

    def test_duplicate_needs_capacity(self, scripted):
        """Test the duplicate is skipped when it would exceed the cap"""
        budget, sink = EventBudget(cap=1), EventSink()
        mess = MessRates(dup_rate=0.5, drop_rate=0.5)
        assert budget.write(sink, ROW, scripted(0.9, 0.0), mess) == 1
        assert budget.written == 1

    def test_fair_share_floor(self):
        """Test per-player share never drops below the floor"""
        budget = EventBudget(cap=1000, written=990)
        assert player_event_budget(budget, remaining_players=100, floor_=250) == 250
        assert player_event_budget(EventBudget(cap=100_000), remaining_players=10) == 10_000


class TestMilestones:
    """Test write-once milestone timestamps"""

    def test_write_once(self):
        """Test the first mark wins"""
        m = Milestones()
        assert m.mark("first_dungeon", 100)
        assert not m.mark("first_dungeon", 50)
        assert m.first_dungeon_ms == 100

    def test_unknown(self):
        """Test unknown milestone names raise KeyError"""
        with pytest.raises(KeyError):
            Milestones().mark("first_raid", 1)

    def test_slots(self):
        """Test only set milestones become purchase anchors"""
        m = Milestones()
        m.mark("first_guild", 7)
        assert m.slots() == [(7, "guild")]


class TestSessions:
    """Test session scheduling and the week-one summary"""

    def test_sessions_per_day(self, scripted):
        """Test 1 + floor(2.2 * engagement) sessions, plus one on a 15% draw"""
        assert schedule_sessions(scripted(0.9), [0, 3], engagement=0.5) == [0, 0, 3, 3]
        assert schedule_sessions(scripted(0.1), [2], engagement=0.5) == [2, 2, 2]

    def test_week_one(self):
        """Test only D0..D6 count toward the week-one summary"""
        s = week_one_summary([0, 3, 6, 7, 20], [0, 0, 3, 6, 7, 7, 20], max_level=18)
        assert (s.active_days_w7d, s.sessions_cnt_w7d, s.max_level_w7d) == (3, 4, 18)


class TestWorldEvents:
    """Test event emission across a generated world"""

    def test_budget_matches_clean_rows(self, world):
        """Test every counted write is a row in the clean events table"""
        assert world.budget.written == len(world.events_clean)
        assert world.budget.written <= world.budget.cap

    def test_session_ids_belong_to_player(self, world):
        """Test session ids are derived from the player index"""
        ev = world.events_clean
        idx = ev["game_user_id"].str.slice(7).astype(int) - 1
        prefix = ev["session_id"].str.split("_").str[0].str.slice(1).astype(int)
        assert (idx == prefix).all()


class TestMilestoneEmission:
    """Test milestones are only recorded for events that reach the sink"""

    MILESTONE_EVENTS = {"dungeon": "dungeon_clear", "level20": "level_up", "guild": "guild_join"}

    @staticmethod
    def _profile(seed: int, index: int):
        rng = SeededRandom(seed)
        player = draw_player(rng, index, base_ms=date_to_ms("2024-10-01"), install_window_days=30)
        return rng, draw_profile(rng, index, player)

    def test_unwritten_events_leave_milestones_unset(self):
        """Test a one-event player share writes only session_start and records nothing"""
        rng, profile = self._profile(42, 0)
        sink = EventSink()
        res = emit_player_events(
            rng, profile, [0, 0, 1, 2], EventBudget(cap=10_000), sink,
            player_budget=1, num_players=10, mess=NO_MESS,
        )
        assert [row[2] for row in sink.rows] == ["session_start"]
        assert res.milestones.slots() == []

    def test_recorded_milestones_have_written_events(self):
        """Test every recorded milestone is backed by a written event of its kind"""
        marked = 0
        for i in range(20):
            rng, profile = self._profile(100 + i, i)
            sink = EventSink()
            res = emit_player_events(
                rng, profile, [0, 0, 1, 1, 2, 3, 4, 5, 6], EventBudget(cap=100_000), sink,
                player_budget=100_000, num_players=20, mess=NO_MESS,
            )
            names = {row[2] for row in sink.rows}
            for _, kind in res.milestones.slots():
                assert self.MILESTONE_EVENTS[kind] in names
                marked += 1
        assert marked > 0
