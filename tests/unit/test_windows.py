"""
Unit Tests - Reporting Time Windows
"""
from datetime import datetime, timedelta

import pytest

from backoffice.reporting.windows import (
    Bucket,
    TimeFilter,
    TimeWindow,
    current_and_previous_month,
    recent_days,
    recent_months,
    resolve_window,
    shift_months,
)

NOW = datetime(2026, 10, 18, 12, 30, 0)


class TestTimeFilter:
    """Tests for filter parsing"""

    def test_missing_filter_uses_month(self):
        assert TimeFilter.parse(None) is TimeFilter.MONTH

    def test_missing_filter_uses_given_default(self):
        assert TimeFilter.parse(None, default=TimeFilter.WEEK) is TimeFilter.WEEK

    @pytest.mark.parametrize("value", ["", "   "])
    def test_blank_filter_uses_default(self, value):
        assert TimeFilter.parse(value) is TimeFilter.MONTH
        assert TimeFilter.parse(value, default=TimeFilter.WEEK) is TimeFilter.WEEK

    def test_known_values_are_normalized(self):
        assert TimeFilter.parse(" 3MONTHS ") is TimeFilter.THREE_MONTHS
        assert TimeFilter.parse("today") is TimeFilter.TODAY

    @pytest.mark.parametrize("value", ["yesterday", "12months", "<script>"])
    def test_unknown_values_widen_to_all(self, value):
        assert TimeFilter.parse(value) is TimeFilter.ALL


class TestResolveWindow:
    """Tests for filter to window resolution"""

    @pytest.mark.parametrize("time_filter", list(TimeFilter))
    def test_window_ends_now_and_is_ordered(self, time_filter):
        window = resolve_window(time_filter, NOW)

        assert window.end == NOW
        assert window.start <= window.end

    def test_today_starts_at_midnight(self):
        window = resolve_window(TimeFilter.TODAY, NOW)
        assert window.start == datetime(2026, 10, 18)

    def test_week_is_seven_days(self):
        window = resolve_window(TimeFilter.WEEK, NOW)
        assert window.end - window.start == timedelta(days=7)

    def test_month_keeps_time_of_day(self):
        window = resolve_window(TimeFilter.MONTH, NOW)
        assert window.start == datetime(2026, 9, 18, 12, 30)

    def test_month_clamps_short_months(self):
        window = resolve_window(TimeFilter.MONTH, datetime(2026, 3, 31, 8))
        assert window.start == datetime(2026, 2, 28, 8)

    def test_six_months_crosses_year(self):
        window = resolve_window(TimeFilter.SIX_MONTHS, datetime(2026, 2, 10))
        assert window.start == datetime(2025, 8, 10)

    def test_all_starts_at_epoch(self):
        window = resolve_window(TimeFilter.ALL, NOW, epoch=datetime(2021, 5, 1))
        assert window.start == datetime(2021, 5, 1)

    def test_future_epoch_is_clamped(self):
        window = resolve_window(TimeFilter.ALL, NOW, epoch=datetime(2030, 1, 1))
        assert window.start == window.end == NOW


class TestCalendarBuckets:
    """Tests for monthly and daily buckets"""

    def test_recent_months_labels_oldest_first(self):
        buckets = recent_months(datetime(2026, 1, 15), 3)
        assert [b.label for b in buckets] == ["Nov 2025", "Dec 2025", "Jan 2026"]

    def test_recent_months_are_contiguous(self):
        buckets = recent_months(NOW, 6)

        assert len(buckets) == 6
        for previous, current in zip(buckets, buckets[1:]):
            assert previous.end == current.start
        assert buckets[-1].start == datetime(2026, 10, 1)
        assert buckets[-1].end == datetime(2026, 11, 1)

    def test_buckets_are_half_open(self):
        assert Bucket.end_inclusive is False
        assert TimeWindow.end_inclusive is True

    def test_recent_days(self):
        buckets = recent_days(NOW, 30)

        assert len(buckets) == 30
        assert buckets[-1].start == datetime(2026, 10, 18)
        assert buckets[-1].label == "18 Oct"
        assert buckets[0].start == datetime(2026, 9, 19)

    def test_current_and_previous_month(self):
        current, previous = current_and_previous_month(datetime(2026, 1, 5))

        assert current.start == datetime(2026, 1, 1)
        assert previous.start == datetime(2025, 12, 1)
        assert previous.end == current.start

    def test_shift_months_clamps_day(self):
        assert shift_months(datetime(2026, 1, 31), 1) == datetime(2026, 2, 28)
        assert shift_months(datetime(2024, 3, 31), -1) == datetime(2024, 2, 29)
