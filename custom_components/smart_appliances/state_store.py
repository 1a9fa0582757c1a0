"""Persistent per-appliance key/value state."""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from homeassistant.core import HomeAssistant
from homeassistant.helpers.storage import Store

from .const import DOMAIN, STORAGE_VERSION
from .models import Origin, StateChange

_LOGGER = logging.getLogger(__name__)

StateListener = Callable[[StateChange], Awaitable[None]]


class DeviceStateStore:
    """Hierarchical key/value store scoped to one appliance.

    Keys are stored as "<appliance>.<field>". Committed writes are persisted
    and announced with Origin.SYSTEM. Uncommitted writes are operator requests:
    they are not persisted, only announced with Origin.OPERATOR so the owner
    of the field can validate and commit them.
    """

    def __init__(self, hass: HomeAssistant, entry_id: str, appliance_id: str) -> None:
        """Initialize the store."""
        self._appliance_id = appliance_id
        self._data: dict[str, Any] = {}
        self._listeners: list[StateListener] = []
        self._store: Store[dict[str, Any]] = Store(
            hass,
            STORAGE_VERSION,
            f"{DOMAIN}.{entry_id}",
        )

    def scoped(self, key: str) -> str:
        """Return the full hierarchical key for a field."""
        return f"{self._appliance_id}.{key}"

    async def async_load(self) -> None:
        """Load persisted values."""
        data = await self._store.async_load()
        if data is None:
            _LOGGER.debug("%s: No stored state to restore", self._appliance_id)
            return
        self._data = dict(data)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the last written value of a field."""
        return self._data.get(self.scoped(key), default)

    async def async_get(self, key: str, default: Any = None) -> Any:
        """Return the last written value of a field."""
        return self.get(key, default)

    async def async_set(self, key: str, value: Any, committed: bool = True) -> None:
        """Write a field and notify listeners."""
        if committed:
            self._data[self.scoped(key)] = value
            await self._store.async_save(dict(self._data))
            change = StateChange(key, value, Origin.SYSTEM)
        else:
            change = StateChange(key, value, Origin.OPERATOR)

        for listener in list(self._listeners):
            await listener(change)

    def add_listener(self, listener: StateListener) -> Callable[[], None]:
        """Register a change listener, returning a function that removes it."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove
