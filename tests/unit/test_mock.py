"""Test the synthetic history generator."""

from datetime import datetime, timedelta, timezone

from drill.core.enums import CommandStatus
from drill.mock import MOCK_SERVICES, generate_mock_data

NOW = datetime(2024, 6, 2, 12, tzinfo=timezone.utc)


class TestGenerateMockData:
    def test_counts(self):
        events, commands = generate_mock_data("agg-1", now=NOW)
        assert len(events) == 12
        assert len(commands) == 14

    def test_every_record_belongs_to_aggregate(self):
        events, commands = generate_mock_data("agg-1", now=NOW)
        assert {r.aggregate_id for r in events + commands} == {"agg-1"}

    def test_services_match_mock_endpoints(self):
        events, commands = generate_mock_data("agg-1", now=NOW)
        names = {s.name for s in MOCK_SERVICES}
        assert {r.service_name for r in events + commands} == names

    def test_four_correlation_chains(self):
        events, commands = generate_mock_data("agg-1", now=NOW)
        assert len({r.correlation_id for r in events + commands}) == 4

    def test_includes_failed_commands(self):
        _, commands = generate_mock_data("agg-1", now=NOW)
        failed = [c.command_alias for c in commands if c.command_status is CommandStatus.FAILED]
        assert sorted(failed) == ["CancelSubscription", "ProcessRefund", "SendSMS"]

    def test_timestamps_within_window(self):
        events, commands = generate_mock_data("agg-1", now=NOW)
        base = NOW - timedelta(hours=24)
        for r in events + commands:
            assert base <= r.persisted_at <= base + timedelta(hours=3)

    def test_ids_fresh_per_call(self):
        first, _ = generate_mock_data("agg-1", now=NOW)
        second, _ = generate_mock_data("agg-1", now=NOW)
        assert not {e.event_id for e in first} & {e.event_id for e in second}

    def test_ids_unique_within_call(self):
        events, commands = generate_mock_data("agg-1", now=NOW)
        assert len({e.event_id for e in events}) == len(events)
        assert len({c.command_id for c in commands}) == len(commands)
