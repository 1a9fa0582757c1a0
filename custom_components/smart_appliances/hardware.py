"""Outbound calls: notifications, switch actuation and task-list items."""
from __future__ import annotations

import logging

from homeassistant.core import HomeAssistant

_LOGGER = logging.getLogger(__name__)


class Notifier:
    """Send messages through a notify action; failures are logged and swallowed."""

    def __init__(self, hass: HomeAssistant, name: str, notify_service: str | None) -> None:
        """Initialize the notifier."""
        self.hass = hass
        self._name = name
        self._notify_service = notify_service

    async def async_notify(self, message: str) -> bool:
        """Send a message prefixed with the appliance name."""
        text = f"{self._name}: {message}"
        _LOGGER.info("Notification: %s", text)

        if not self._notify_service:
            _LOGGER.debug("%s: No notify service configured", self._name)
            return False
        if "." not in self._notify_service:
            _LOGGER.warning(
                "%s: Invalid notify service '%s'", self._name, self._notify_service
            )
            return False

        domain, service = self._notify_service.split(".", 1)
        try:
            await self.hass.services.async_call(
                domain, service, {"message": text}, blocking=True
            )
        except Exception as ex:  # noqa: BLE001
            _LOGGER.warning("%s: Failed to send notification: %s", self._name, ex)
            return False
        return True


class SwitchActuator:
    """Drive the appliance's power switch (switch or input_boolean) and optional start button."""

    def __init__(
        self,
        hass: HomeAssistant,
        name: str,
        switch_entity: str | None,
        press_entity: str | None = None,
    ) -> None:
        """Initialize the actuator."""
        self.hass = hass
        self._name = name
        self._switch_entity = switch_entity
        self._press_entity = press_entity

    @property
    def has_press(self) -> bool:
        """Return True if a start button entity is configured."""
        return bool(self._press_entity)

    async def async_set_switch(self, on: bool) -> bool:
        """Turn the switch on or off."""
        if not self._switch_entity:
            _LOGGER.debug("%s: No switch entity configured", self._name)
            return False

        domain = self._switch_entity.split(".", 1)[0]
        service = "turn_on" if on else "turn_off"
        try:
            await self.hass.services.async_call(
                domain, service, {"entity_id": self._switch_entity}, blocking=True
            )
        except Exception as ex:  # noqa: BLE001
            _LOGGER.warning(
                "%s: Failed to switch %s: %s", self._name, "on" if on else "off", ex
            )
            return False
        _LOGGER.debug("%s: Switch %s -> %s", self._name, self._switch_entity, service)
        return True

    async def async_press(self) -> bool:
        """Press the start button entity (button or switch domain)."""
        if not self._press_entity:
            return False

        domain = self._press_entity.split(".", 1)[0]
        service = "press" if domain == "button" else "turn_on"
        try:
            await self.hass.services.async_call(
                domain, service, {"entity_id": self._press_entity}, blocking=True
            )
        except Exception as ex:  # noqa: BLE001
            _LOGGER.warning("%s: Failed to press %s: %s", self._name, self._press_entity, ex)
            return False
        return True


class TaskList:
    """Create and complete items on a to-do list entity."""

    def __init__(self, hass: HomeAssistant, name: str, todo_entity: str | None) -> None:
        """Initialize the task list."""
        self.hass = hass
        self._name = name
        self._todo_entity = todo_entity

    @property
    def enabled(self) -> bool:
        """Return True if a to-do entity is configured."""
        return bool(self._todo_entity)

    async def async_add(self, item: str) -> bool:
        """Add an item to the list."""
        return await self._async_call("add_item", {"item": item})

    async def async_complete(self, item: str) -> bool:
        """Mark an item as completed."""
        return await self._async_call("update_item", {"item": item, "status": "completed"})

    async def _async_call(self, service: str, data: dict[str, str]) -> bool:
        if not self._todo_entity:
            _LOGGER.debug("%s: Task list disabled - skipping %s", self._name, service)
            return False
        try:
            await self.hass.services.async_call(
                "todo", service, {"entity_id": self._todo_entity, **data}, blocking=True
            )
        except Exception as ex:  # noqa: BLE001
            _LOGGER.warning("%s: Task list %s failed: %s", self._name, service, ex)
            return False
        return True
