"""Button platform for Smart Appliances."""
from __future__ import annotations

from homeassistant.components.button import ButtonEntity
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from . import SmartAppliancesConfigEntry
from .coordinator import ApplianceController
from .entity import SmartApplianceEntity


async def async_setup_entry(
    hass: HomeAssistant,
    entry: SmartAppliancesConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up the plan button."""
    controller: ApplianceController = entry.runtime_data
    async_add_entities([PlanOptimalStartButton(controller, entry, "plan_optimal_start")])


class PlanOptimalStartButton(SmartApplianceEntity, ButtonEntity):
    """Plan the run at the cheapest upcoming window."""

    _attr_translation_key = "plan_optimal_start"
    _attr_icon = "mdi:cash-clock"

    async def async_press(self) -> None:
        """Handle the button press."""
        await self._controller.async_plan_optimal_start()
