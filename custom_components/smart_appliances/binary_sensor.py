"""Binary sensor platform for Smart Appliances."""
from __future__ import annotations

from homeassistant.components.binary_sensor import (
    BinarySensorDeviceClass,
    BinarySensorEntity,
)
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
    """Set up Smart Appliances binary sensors."""
    controller: ApplianceController = entry.runtime_data
    async_add_entities([
        ApplianceRunningBinarySensor(controller, entry, "running"),
        ManualStartBinarySensor(controller, entry, "manual_start_detected"),
    ])


class ApplianceRunningBinarySensor(SmartApplianceEntity, BinarySensorEntity):
    """Binary sensor indicating if the appliance is running."""

    _attr_translation_key = "appliance_running"
    _attr_device_class = BinarySensorDeviceClass.RUNNING
    _attr_icon = "mdi:play-circle"

    @property
    def is_on(self) -> bool:
        """Return True if the appliance is running."""
        return self._controller.is_running


class ManualStartBinarySensor(SmartApplianceEntity, BinarySensorEntity):
    """On while an intercepted manual start waits for its planned restart."""

    _attr_translation_key = "manual_start_detected"
    _attr_icon = "mdi:hand-back-right"

    @property
    def is_on(self) -> bool:
        """Return True if the last start attempt was intercepted."""
        return self._controller.manual_start_detected
