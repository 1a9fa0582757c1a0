"""Cheapest-window search over an hourly price curve.

Pure functions, no Home Assistant dependencies. Prices are treated as a
piecewise-constant curve: point i is valid on [starts_at_i, starts_at_i+1),
the last point for one hour. Inside one price segment the cost of a window is
linear in its start offset, so the optimum always starts either at the
earliest allowed instant or on a price boundary; only those candidates are
evaluated.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from .models import PricePoint, PriceWindow, WashDryPlan

_LOGGER = logging.getLogger(__name__)

LAST_INTERVAL = timedelta(hours=1)


def _truncate_to_minute(value: datetime) -> datetime:
    return value.replace(second=0, microsecond=0)


def _intervals(prices: list[PricePoint]) -> list[tuple[datetime, datetime, float]]:
    """Build (start, end, price) intervals from consecutive price points."""
    intervals = []
    for index, point in enumerate(prices):
        if index + 1 < len(prices):
            end = prices[index + 1].starts_at
        else:
            end = point.starts_at + LAST_INTERVAL
        intervals.append((point.starts_at, end, point.unit_price))
    return intervals


def _window_average(
    intervals: list[tuple[datetime, datetime, float]],
    start: datetime,
    duration_minutes: int,
) -> float | None:
    """Time-weighted average over [start, start + duration), None if not fully covered."""
    end = start + timedelta(minutes=duration_minutes)
    if not intervals or start < intervals[0][0] or end > intervals[-1][1]:
        return None

    cost = 0.0
    covered = 0.0
    for seg_start, seg_end, price in intervals:
        overlap_start = max(seg_start, start)
        overlap_end = min(seg_end, end)
        if overlap_end <= overlap_start:
            continue
        minutes = (overlap_end - overlap_start).total_seconds() / 60
        cost += price * minutes
        covered += minutes

    # A gap in the feed leaves part of the window without a known price
    if covered + 1e-9 < duration_minutes:
        return None
    return cost / covered


def average_price(
    prices: list[PricePoint], start: datetime, duration_minutes: int
) -> float | None:
    """Return the time-weighted average price of a window, or None if uncovered."""
    if duration_minutes <= 0:
        return None
    return _window_average(_intervals(prices), start, duration_minutes)


def find_cheapest_window(
    prices: list[PricePoint],
    duration_minutes: int,
    not_before: datetime,
) -> PriceWindow | None:
    """Find the contiguous window with the lowest average price.

    Candidates are not_before and every price boundary at or after it,
    truncated to the minute. Windows reaching beyond the known prices are
    rejected. On equal averages the earliest candidate is kept.
    """
    if not prices or duration_minutes <= 0:
        return None

    intervals = _intervals(prices)
    candidates = {_truncate_to_minute(not_before)}
    candidates.update(
        _truncate_to_minute(seg_start)
        for seg_start, _, _ in intervals
        if seg_start >= not_before
    )

    best: PriceWindow | None = None
    for start in sorted(candidates):
        avg = _window_average(intervals, start, duration_minutes)
        if avg is None:
            continue
        if best is None or avg < best.avg_price:
            best = PriceWindow(
                start=start,
                end=start + timedelta(minutes=duration_minutes),
                avg_price=avg,
            )

    if best is None:
        _LOGGER.debug(
            "No fully covered %d min window after %s (horizon ends %s)",
            duration_minutes,
            not_before,
            intervals[-1][1],
        )
    return best


def _weighted(wash: PriceWindow, dry: PriceWindow) -> float:
    wash_minutes = wash.duration_minutes
    dry_minutes = dry.duration_minutes
    return (wash.avg_price * wash_minutes + dry.avg_price * dry_minutes) / (
        wash_minutes + dry_minutes
    )


def _combined_plan(
    prices: list[PricePoint],
    wash_minutes: int,
    dry_minutes: int,
    buffer_minutes: int,
    not_before: datetime,
) -> WashDryPlan | None:
    """Cheapest back-to-back block, scored on the wash and dry minutes only.

    The cost is piecewise linear in the block start, with kinks wherever the
    wash start, wash end, dry start or dry end crosses a price boundary, so
    those starts (plus not_before) are the only candidates.
    """
    intervals = _intervals(prices)
    if not intervals:
        return None

    dry_offset = wash_minutes + buffer_minutes
    offsets = (0, wash_minutes, dry_offset, dry_offset + dry_minutes)
    boundaries = {seg_start for seg_start, _, _ in intervals}
    boundaries.add(intervals[-1][1])

    candidates = {_truncate_to_minute(not_before)}
    for boundary in boundaries:
        for offset in offsets:
            start = _truncate_to_minute(boundary - timedelta(minutes=offset))
            if start >= not_before:
                candidates.add(start)

    best: WashDryPlan | None = None
    for start in sorted(candidates):
        wash_start = start
        wash_end = wash_start + timedelta(minutes=wash_minutes)
        dry_start = start + timedelta(minutes=dry_offset)
        wash_avg = _window_average(intervals, wash_start, wash_minutes)
        dry_avg = _window_average(intervals, dry_start, dry_minutes)
        if wash_avg is None or dry_avg is None:
            continue
        wash = PriceWindow(wash_start, wash_end, wash_avg)
        dry = PriceWindow(dry_start, dry_start + timedelta(minutes=dry_minutes), dry_avg)
        avg = _weighted(wash, dry)
        if best is None or avg < best.avg_price:
            best = WashDryPlan(wash=wash, dry=dry, avg_price=avg, combined=True)
    return best


def _split_plan(
    prices: list[PricePoint],
    wash_minutes: int,
    dry_minutes: int,
    buffer_minutes: int,
    not_before: datetime,
) -> WashDryPlan | None:
    wash = find_cheapest_window(prices, wash_minutes, not_before)
    if wash is None:
        return None
    dry = find_cheapest_window(
        prices, dry_minutes, wash.end + timedelta(minutes=buffer_minutes)
    )
    if dry is None:
        return None
    return WashDryPlan(wash=wash, dry=dry, avg_price=_weighted(wash, dry), combined=False)


def find_wash_dry_plan(
    prices: list[PricePoint],
    wash_minutes: int,
    dry_minutes: int,
    transfer_buffer_minutes: int,
    not_before: datetime,
) -> WashDryPlan | None:
    """Choose between one back-to-back block and two independent windows.

    Both variants are scored by the time-weighted average of the wash and dry
    windows. The split variant is only taken when it is strictly cheaper.
    """
    if wash_minutes <= 0 or dry_minutes <= 0:
        return None
    buffer_minutes = max(0, int(transfer_buffer_minutes))

    combined = _combined_plan(prices, wash_minutes, dry_minutes, buffer_minutes, not_before)
    split = _split_plan(prices, wash_minutes, dry_minutes, buffer_minutes, not_before)

    if combined is None:
        return split
    if split is None:
        return combined

    _LOGGER.debug(
        "Wash/dry comparison: combined %.4f vs split %.4f",
        combined.avg_price,
        split.avg_price,
    )
    if split.avg_price < combined.avg_price:
        return split
    return combined
