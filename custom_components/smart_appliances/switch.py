"""Switch platform for Smart Appliances."""
from __future__ import annotations

from typing import Any

from homeassistant.components.switch import SwitchEntity
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from . import SmartAppliancesConfigEntry
from .const import KEY_SCHEDULED
from .coordinator import ApplianceController
from .entity import SmartApplianceEntity


async def async_setup_entry(
    hass: HomeAssistant,
    entry: SmartAppliancesConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up the scheduled start switch."""
    controller: ApplianceController = entry.runtime_data
    async_add_entities([ScheduledStartSwitch(controller, entry, "scheduled")])


class ScheduledStartSwitch(SmartApplianceEntity, SwitchEntity):
    """Arms or cancels the scheduled start at the planned start time.

    Turning it on or off is an operator request; the schedule manager decides
    whether it is accepted and writes the resulting state back.
    """

    _attr_translation_key = "scheduled_start"
    _attr_icon = "mdi:calendar-clock"

    @property
    def is_on(self) -> bool:
        """Return True if a start is scheduled."""
        return self._controller.is_scheduled

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Request a scheduled start."""
        await self._controller.store.async_set(KEY_SCHEDULED, True, committed=False)

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Request cancellation of the scheduled start."""
        await self._controller.store.async_set(KEY_SCHEDULED, False, committed=False)
