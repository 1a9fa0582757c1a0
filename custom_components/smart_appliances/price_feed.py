"""Price feed backed by a price sensor entity.

Reads the hourly prices that Tibber and Nordpool style sensors publish in
their attributes (``today``/``tomorrow`` or ``raw_today``/``raw_tomorrow``).
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

from homeassistant.const import STATE_UNAVAILABLE
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.util import dt as dt_util

from .models import PricePoint

_LOGGER = logging.getLogger(__name__)

TODAY_ATTRIBUTES = ("today", "raw_today", "prices_today")
TOMORROW_ATTRIBUTES = ("tomorrow", "raw_tomorrow", "prices_tomorrow")
START_KEYS = ("starts_at", "startsAt", "start", "time")
PRICE_KEYS = ("total", "value", "price")


class PriceDataUnavailable(HomeAssistantError):
    """Raised when no usable price data can be read."""


def _parse_instant(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        parsed = dt_util.parse_datetime(value)
    else:
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt_util.get_default_time_zone())
    return parsed


def _first(item: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if item.get(key) is not None:
            return item[key]
    return None


def parse_price_points(raw: Any) -> list[PricePoint]:
    """Convert a raw price list (or its JSON text) into ordered price points.

    Entries that cannot be parsed are skipped.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as err:
            raise PriceDataUnavailable(f"Failed to parse price data: {err}") from err
    if not raw:
        return []

    points: dict[datetime, PricePoint] = {}
    for item in raw:
        if not isinstance(item, dict):
            continue
        starts_at = _parse_instant(_first(item, START_KEYS))
        price = _first(item, PRICE_KEYS)
        if starts_at is None or price is None:
            _LOGGER.debug("Skipping unparseable price entry: %s", item)
            continue
        try:
            points[starts_at] = PricePoint(starts_at, float(price))
        except (TypeError, ValueError):
            _LOGGER.debug("Skipping price entry with invalid price: %s", item)
    return sorted(points.values(), key=lambda point: point.starts_at)


class EntityPriceFeed:
    """Supply price points from the attributes of a price sensor."""

    def __init__(self, hass: HomeAssistant, entity_id: str | None) -> None:
        """Initialize the feed."""
        self.hass = hass
        self._entity_id = entity_id

    @property
    def entity_id(self) -> str | None:
        """Return the price entity ID."""
        return self._entity_id

    async def async_fetch_prices(self) -> list[PricePoint]:
        """Return today's and tomorrow's prices in chronological order."""
        if not self._entity_id:
            raise PriceDataUnavailable("No price sensor configured")

        state = self.hass.states.get(self._entity_id)
        if state is None or state.state == STATE_UNAVAILABLE:
            raise PriceDataUnavailable(f"Price sensor {self._entity_id} not available")

        today = _first(dict(state.attributes), TODAY_ATTRIBUTES)
        if not today:
            raise PriceDataUnavailable("Price data for today not available")
        tomorrow = _first(dict(state.attributes), TOMORROW_ATTRIBUTES)

        points = parse_price_points([*_as_list(today), *_as_list(tomorrow)])
        if not points:
            raise PriceDataUnavailable("Price data could not be parsed")

        _LOGGER.debug(
            "Read %d price points from %s (%s - %s)",
            len(points),
            self._entity_id,
            points[0].starts_at,
            points[-1].starts_at,
        )
        return points


def _as_list(raw: Any) -> list[Any]:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as err:
            raise PriceDataUnavailable(f"Failed to parse price data: {err}") from err
    return list(raw or [])
