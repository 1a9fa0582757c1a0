"""Test the cheapest-window search."""
from datetime import datetime, timedelta

import pytest

from homeassistant.util import dt as dt_util

from custom_components.smart_appliances.models import PricePoint
from custom_components.smart_appliances.window_finder import (
    average_price,
    find_cheapest_window,
    find_wash_dry_plan,
)

T0 = datetime(2026, 3, 10, 0, 0, tzinfo=dt_util.UTC)


def points(values: list[float], first: datetime = T0) -> list[PricePoint]:
    return [
        PricePoint(first + timedelta(hours=index), value)
        for index, value in enumerate(values)
    ]


def test_cheapest_window_spanning_two_hours():
    """A 90 minute run starts at the cheapest boundary."""
    prices = points([0.30, 0.10, 0.20, 0.40])

    window = find_cheapest_window(prices, 90, T0)

    assert window is not None
    assert window.start == T0 + timedelta(hours=1)
    assert window.end == T0 + timedelta(hours=2, minutes=30)
    assert window.avg_price == pytest.approx((60 * 0.10 + 30 * 0.20) / 90)
    assert window.duration_minutes == 90


def test_window_must_fit_inside_horizon():
    """A window reaching past the last price hour is not a candidate."""
    prices = points([0.30, 0.10])

    assert find_cheapest_window(prices, 121, T0) is None
    window = find_cheapest_window(prices, 120, T0)
    assert window is not None
    assert window.start == T0


def test_empty_prices_and_zero_duration():
    """No prices or a non-positive duration yields no window."""
    assert find_cheapest_window([], 60, T0) is None
    assert find_cheapest_window(points([0.1]), 0, T0) is None


def test_equal_averages_keep_earliest():
    """Ties are resolved in favour of the earliest start."""
    prices = points([0.20, 0.10, 0.20, 0.10, 0.20])

    window = find_cheapest_window(prices, 60, T0)

    assert window.start == T0 + timedelta(hours=1)


def test_not_before_is_a_candidate():
    """The earliest allowed instant is considered, truncated to the minute."""
    prices = points([0.10, 0.10, 0.50])
    now = T0 + timedelta(minutes=17, seconds=42)

    window = find_cheapest_window(prices, 60, now)

    assert window.start == T0 + timedelta(minutes=17)
    assert window.avg_price == pytest.approx(0.10)


def test_boundaries_before_not_before_are_skipped():
    """Past price hours are never proposed."""
    prices = points([0.01, 0.30, 0.20, 0.25])

    window = find_cheapest_window(prices, 60, T0 + timedelta(hours=1))

    assert window.start == T0 + timedelta(hours=2)


def test_point_is_valid_until_next_point():
    """A price holds until the following point, even across a missing hour."""
    prices = [
        PricePoint(T0, 0.10),
        PricePoint(T0 + timedelta(hours=1), 0.10),
        PricePoint(T0 + timedelta(hours=3), 0.50),
    ]

    window = find_cheapest_window(prices, 180, T0)
    assert window is not None
    assert window.avg_price == pytest.approx(0.10)


def test_average_price():
    """The average is time weighted over the overlapping segments."""
    prices = points([0.30, 0.10])

    assert average_price(prices, T0 + timedelta(minutes=30), 60) == pytest.approx(0.20)
    assert average_price(prices, T0 + timedelta(minutes=90), 60) is None
    assert average_price(prices, T0 - timedelta(minutes=1), 30) is None
    assert average_price(prices, T0, 0) is None


def test_wash_dry_plan_combined_block():
    """Back-to-back block when the cheap period fits wash, buffer and dryer."""
    prices = points([0.40, 0.10, 0.10, 0.10, 0.10, 0.40, 0.40])

    plan = find_wash_dry_plan(prices, 60, 120, 30, T0)

    assert plan.combined is True
    assert plan.wash.start == T0 + timedelta(hours=1)
    assert plan.dry.start == plan.wash.end + timedelta(minutes=30)
    assert plan.dry.end == plan.dry.start + timedelta(minutes=120)
    assert plan.avg_price == pytest.approx(0.10)


def test_wash_dry_plan_split_when_cheaper():
    """Separate windows win when the dryer finds a much cheaper slot later."""
    prices = points([0.10, 0.50, 0.50, 0.50, 0.05, 0.50])

    plan = find_wash_dry_plan(prices, 60, 60, 15, T0)

    assert plan.combined is False
    assert plan.wash.start == T0
    assert plan.dry.start == T0 + timedelta(hours=4)
    assert plan.avg_price == pytest.approx((0.10 + 0.05) / 2)


def test_wash_dry_plan_prefers_combined_on_tie():
    """Equal averages keep the single block."""
    prices = points([0.10, 0.10, 0.10, 0.10])

    plan = find_wash_dry_plan(prices, 60, 60, 0, T0)

    assert plan.combined is True
    assert plan.dry.start == plan.wash.end


def test_wash_dry_plan_without_room():
    """No plan when neither variant fits."""
    prices = points([0.10, 0.20])

    assert find_wash_dry_plan(prices, 60, 60, 30, T0) is None
    assert find_wash_dry_plan(prices, 0, 60, 0, T0) is None


def test_wash_dry_plan_ignores_buffer_price_on_tie():
    """An expensive transfer hour does not hide an equally cheap single block."""
    prices = points([0.10, 5.00, 0.10, 0.50, 0.50])

    plan = find_wash_dry_plan(prices, 60, 60, 60, T0)

    assert plan.combined is True
    assert plan.wash.start == T0
    assert plan.dry.start == T0 + timedelta(hours=2)
    assert plan.avg_price == pytest.approx(0.10)


def test_wash_dry_plan_block_scored_on_run_minutes():
    """The cheapest block is found even when its buffer hour is expensive."""
    prices = points([0.10, 5.00, 0.10, 0.50, 0.50, 0.05])

    plan = find_wash_dry_plan(prices, 60, 60, 60, T0)

    assert plan.combined is True
    assert plan.wash.start == T0
    assert plan.dry.start == T0 + timedelta(hours=2)
    assert plan.avg_price == pytest.approx(0.10)


def test_wash_dry_plan_block_aligned_on_dry_boundary():
    """A block may start off the hour so the dryer lands on a cheap hour."""
    prices = points([0.20, 0.20, 0.90, 0.01, 0.90])

    plan = find_wash_dry_plan(prices, 60, 60, 30, T0)

    assert plan.combined is True
    assert plan.wash.start == T0 + timedelta(hours=1, minutes=30)
    assert plan.dry.start == T0 + timedelta(hours=3)
    assert plan.avg_price == pytest.approx((0.5 * 0.20 + 0.5 * 0.90 + 0.01) / 2)
