"""Test WallClock and SimClock."""

from datetime import datetime, timedelta, timezone

from drill.core.clock import SimClock, WallClock


class TestWallClock:
    def test_now_returns_utc(self):
        now = WallClock().now()
        assert now.tzinfo == timezone.utc

    def test_now_is_recent(self):
        diff = abs((datetime.now(timezone.utc) - WallClock().now()).total_seconds())
        assert diff < 1.0


class TestSimClock:
    def test_default_start(self):
        assert SimClock().now() == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_advance(self, sim_clock):
        start = sim_clock.now()
        sim_clock.advance(90)
        assert sim_clock.now() - start == timedelta(seconds=90)

    def test_can_move_backwards(self, sim_clock):
        earlier = sim_clock.now() - timedelta(days=1)
        sim_clock.set_time(earlier)
        assert sim_clock.now() == earlier
