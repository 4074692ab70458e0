"""Tests for clock implementations and UTC normalization."""

from datetime import datetime, timedelta, timezone

from expense_kernel.domain.clock import DeterministicClock, SystemClock, to_utc


class TestDeterministicClock:
    def test_fixed_until_advanced(self):
        clock = DeterministicClock(datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc))
        assert clock.now() == clock.now()

    def test_advance_seconds_and_hours(self):
        start = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
        clock = DeterministicClock(start)
        clock.advance(30)
        clock.advance(hours=2)
        assert clock.now() == start + timedelta(hours=2, seconds=30)

    def test_advance_hours_only(self):
        start = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
        clock = DeterministicClock(start)
        clock.advance(hours=24)
        assert clock.now() - start == timedelta(hours=24)

    def test_set_time_resets_offset(self):
        clock = DeterministicClock()
        clock.advance(hours=5)
        target = datetime(2025, 6, 1, tzinfo=timezone.utc)
        clock.set_time(target)
        assert clock.now() == target

    def test_tick(self):
        clock = DeterministicClock()
        before = clock.now()
        assert clock.tick() == before + timedelta(seconds=1)


class TestSystemClock:
    def test_now_is_utc(self):
        assert SystemClock().now().tzinfo == timezone.utc


class TestToUtc:
    def test_naive_taken_as_utc(self):
        assert to_utc(datetime(2024, 1, 15, 10, 0)) == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)

    def test_offset_converted(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        converted = to_utc(datetime(2024, 1, 15, 15, 30, tzinfo=ist))
        assert converted == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
        assert converted.tzinfo == timezone.utc
