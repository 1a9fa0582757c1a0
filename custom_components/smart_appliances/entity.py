"""Base entity for Smart Appliances."""
from __future__ import annotations

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import callback
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.entity import Entity

from .const import CONF_APPLIANCE_NAME, CONF_APPLIANCE_TYPE, DOMAIN
from .coordinator import ApplianceController


class SmartApplianceEntity(Entity):
    """Base class for appliance entities with shared device info and update callback."""

    _attr_has_entity_name = True
    _attr_should_poll = False

    def __init__(
        self, controller: ApplianceController, entry: ConfigEntry, key: str
    ) -> None:
        """Initialize the entity."""
        self._controller = controller
        self._attr_unique_id = f"{entry.entry_id}_{key}"
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, entry.entry_id)},
            name=entry.data[CONF_APPLIANCE_NAME],
            manufacturer="Smart Appliances",
            model=entry.data[CONF_APPLIANCE_TYPE].replace("_", " ").title(),
        )

    async def async_added_to_hass(self) -> None:
        """Register update callback."""
        self._controller.register_update_callback(self._handle_update)

    async def async_will_remove_from_hass(self) -> None:
        """Unregister update callback."""
        self._controller.unregister_update_callback(self._handle_update)

    @callback
    def _handle_update(self) -> None:
        """Handle state update from the controller."""
        self.async_write_ha_state()
