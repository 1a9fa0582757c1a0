"""Datetime platform for Smart Appliances."""
from __future__ import annotations

from datetime import datetime

from homeassistant.components.datetime import DateTimeEntity
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.util import dt as dt_util

from . import SmartAppliancesConfigEntry
from .const import KEY_START_TIME
from .coordinator import ApplianceController
from .entity import SmartApplianceEntity


async def async_setup_entry(
    hass: HomeAssistant,
    entry: SmartAppliancesConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up the planned start entity."""
    controller: ApplianceController = entry.runtime_data
    async_add_entities([PlannedStartDateTime(controller, entry, "start_time")])


class PlannedStartDateTime(SmartApplianceEntity, DateTimeEntity):
    """Planned start time, editable by the operator."""

    _attr_translation_key = "start_time"
    _attr_icon = "mdi:clock-edit-outline"

    @property
    def native_value(self) -> datetime | None:
        """Return the stored start time."""
        return self._controller.start_time

    async def async_set_value(self, value: datetime) -> None:
        """Request a new start time."""
        await self._controller.store.async_set(
            KEY_START_TIME, dt_util.as_utc(value).isoformat(), committed=False
        )
