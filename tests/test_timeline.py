"""Tests for timeline reconstruction."""

import pytest

from report.timeline import (
    FALLBACK_DURATION_SECONDS,
    UNKNOWN_DURATION,
    duration_weight,
    format_duration,
    reconstruct,
    total_duration_seconds,
)

from factories import click, typed


class TestTotalDuration:
    """Tests for total_duration_seconds."""

    def test_two_actions_rounded(self):
        """Test 1500ms between two actions rounds to 2 seconds."""
        assert total_duration_seconds([click(0), click(1500)]) == 2

    def test_rounds_down_below_half(self):
        """Test 1499ms rounds to 1 second."""
        assert total_duration_seconds([click(0), click(1499)]) == 1

    def test_half_rounds_up(self):
        """Test 2500ms rounds up to 3 seconds."""
        assert total_duration_seconds([click(0), click(2500)]) == 3

    def test_uses_first_and_last(self):
        """Test intermediate timestamps do not matter."""
        assert total_duration_seconds([click(0), click(50_000), click(10_000)]) == 10

    @pytest.mark.parametrize("count", [0, 1])
    def test_fallback_below_two_actions(self, count):
        """Test a single data point never claims a measured duration."""
        actions = [click(0)] * count
        assert total_duration_seconds(actions) == FALLBACK_DURATION_SECONDS == 30

    def test_out_of_order_total_not_negative(self):
        """Test a last action earlier than the first clamps to zero."""
        assert total_duration_seconds([click(5000), click(0)]) == 0


class TestFormatDuration:
    """Tests for format_duration."""

    @pytest.mark.parametrize("ms, expected", [
        (0, "0ms"),
        (999, "999ms"),
        (1000, "1.0s"),
        (1500, "1.5s"),
        (59_900, "59.9s"),
        (60_000, "1m 0s"),
        (65_000, "1m 5s"),
        (90_999, "1m 30s"),
        (3_600_000, "60m 0s"),
    ])
    def test_boundaries(self, ms, expected):
        """Test unit switch points and the floored minute/second split."""
        assert format_duration(ms) == expected


class TestDurationWeight:
    """Tests for the piecewise weight scale."""

    @pytest.mark.parametrize("ms, expected", [
        (0, 1.0),
        (500, 5.5),
        (1_000, 10.0),
        (3_000, 20.0),
        (5_000, 30.0),
        (10_000, 45.0),
        (15_000, 60.0),
        (22_500, 72.5),
        (30_000, 85.0),
        (45_000, 92.5),
        (60_000, 100.0),
    ])
    def test_breakpoints_and_midpoints(self, ms, expected):
        """Test each bucket maps linearly onto its weight range."""
        assert duration_weight(ms) == pytest.approx(expected)

    def test_capped_beyond_sixty_seconds(self):
        """Test durations past 60s stop growing."""
        assert duration_weight(61_000) == pytest.approx(100.0)
        assert duration_weight(10 * 60_000) == pytest.approx(100.0)

    def test_monotonic_and_bounded(self):
        """Test weight never decreases and stays within [1, 100]."""
        previous = duration_weight(0)
        for ms in range(0, 70_000, 250):
            w = duration_weight(ms)
            assert 1.0 <= w <= 100.0
            assert w >= previous
            previous = w


class TestReconstruct:
    """Tests for reconstruct."""

    def test_one_entry_per_adjacent_pair(self):
        """Test n actions give n-1 entries."""
        entries = reconstruct([click(0), typed("a", 999), click(2000), click(67_000)])

        assert [e.step_index for e in entries] == [1, 2, 3]
        assert [e.duration_ms for e in entries] == [999, 1001, 65_000]
        assert [e.duration_formatted for e in entries] == ["999ms", "1.0s", "1m 5s"]

    def test_weights_follow_scale(self):
        """Test each entry carries the scaled weight of its duration."""
        entries = reconstruct([click(0), click(1000), click(31_000)])

        assert entries[0].weight_percent == pytest.approx(10.0)
        assert entries[1].weight_percent == pytest.approx(duration_weight(30_000))

    @pytest.mark.parametrize("count", [0, 1])
    def test_empty_below_two_actions(self, count):
        """Test there are no pairs to measure."""
        assert reconstruct([click(0)] * count) == []

    def test_negative_duration_is_unknown(self):
        """Test out-of-order timestamps keep their slot but show no number."""
        entries = reconstruct([click(5000), click(2000), click(3000)])

        assert len(entries) == 2
        assert entries[0].duration_ms is None
        assert entries[0].known is False
        assert entries[0].duration_formatted == UNKNOWN_DURATION
        assert not entries[0].duration_formatted.startswith("-")
        assert 1.0 <= entries[0].weight_percent <= 100.0
        assert entries[1].duration_ms == 1000

    def test_zero_duration(self):
        """Test simultaneous actions are a known zero-length step."""
        entries = reconstruct([click(0), click(0)])

        assert entries[0].duration_ms == 0
        assert entries[0].duration_formatted == "0ms"
        assert entries[0].weight_percent == pytest.approx(1.0)
