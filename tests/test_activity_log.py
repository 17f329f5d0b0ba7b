"""
Tests for the activity feed and toasts.
"""

from datetime import datetime, timedelta

import pytest

from hexforge.observability.activity_log import ActivityLog, LogSeverity


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 5, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def activity(clock):
    return ActivityLog(clock=clock)


class TestActivityFeed:
    """Tests for message ordering."""

    def test_newest_first(self, activity):
        activity.add("first")
        activity.add("second")
        assert activity.texts() == ["second", "first"]
        assert activity.latest.text == "second"
        assert len(activity) == 2

    def test_entry_ids_unique(self, activity):
        a = activity.add("a")
        b = activity.add("b")
        assert a.entry_id != b.entry_id

    def test_timestamps_from_clock(self, activity, clock):
        entry = activity.add("stamped")
        assert entry.time == clock.now

    def test_empty_log(self, activity):
        assert activity.latest is None
        assert activity.entries == []

    def test_clear(self, activity):
        activity.add("oops", LogSeverity.ERROR)
        activity.clear()
        assert len(activity) == 0
        assert activity.active_toasts() == []


class TestToasts:
    """Tests for transient notifications."""

    @pytest.mark.parametrize("severity,toasted", [
        (LogSeverity.INFO, False),
        (LogSeverity.SUCCESS, False),
        (LogSeverity.ALERT, True),
        (LogSeverity.WARNING, True),
        (LogSeverity.ERROR, True),
    ])
    def test_only_important_severities_toast(self, activity, severity, toasted):
        activity.add("message", severity)
        assert bool(activity.active_toasts()) == toasted

    def test_toasts_expire(self, activity, clock):
        activity.add("Encounter!", LogSeverity.ALERT)
        clock.advance(3.9)
        assert len(activity.active_toasts()) == 1
        clock.advance(0.1)
        assert activity.active_toasts() == []
        assert activity.latest.text == "Encounter!"

    def test_dismiss_toast(self, activity):
        first = activity.add("one", LogSeverity.WARNING)
        activity.add("two", LogSeverity.ERROR)

        activity.dismiss_toast(first.entry_id)

        assert [t.text for t in activity.active_toasts()] == ["two"]
        assert len(activity) == 2
