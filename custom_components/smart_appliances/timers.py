"""Per-appliance timer table."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable

from homeassistant.core import CALLBACK_TYPE, HassJob, HomeAssistant
from homeassistant.helpers.event import async_call_later

from .models import TimerPurpose

_LOGGER = logging.getLogger(__name__)


class TimerTable:
    """Owns at most one pending timer per purpose for a single appliance.

    Arming a purpose cancels whatever was armed for it before. A firing timer
    first checks that it is still the registered handle for its purpose and
    clears the slot before running, so a late cancel or a re-arm never touches
    a newer timer and cancelling a fired timer is a no-op.
    """

    def __init__(self, hass: HomeAssistant, name: str) -> None:
        """Initialize the table."""
        self.hass = hass
        self._name = name
        self._handles: dict[TimerPurpose, CALLBACK_TYPE] = {}

    def is_armed(self, purpose: TimerPurpose) -> bool:
        """Return True if a timer for this purpose is pending."""
        return purpose in self._handles

    @property
    def armed(self) -> list[TimerPurpose]:
        """Return the purposes with a pending timer."""
        return list(self._handles)

    def arm(
        self,
        purpose: TimerPurpose,
        delay: timedelta | float,
        action: Callable[[], Awaitable[None]],
    ) -> None:
        """Arm a timer for a purpose, replacing any pending one."""
        self.cancel(purpose)
        seconds = delay.total_seconds() if isinstance(delay, timedelta) else float(delay)
        token: list[CALLBACK_TYPE] = []

        async def _fire(_now: datetime) -> None:
            if not token or self._handles.get(purpose) is not token[0]:
                return
            del self._handles[purpose]
            try:
                await action()
            except Exception:  # noqa: BLE001
                _LOGGER.exception("%s: %s timer callback failed", self._name, purpose)

        unsub = async_call_later(
            self.hass, max(seconds, 0), HassJob(_fire, f"{self._name} {purpose}")
        )
        token.append(unsub)
        self._handles[purpose] = unsub
        _LOGGER.debug("%s: %s timer armed (%.0f s)", self._name, purpose, seconds)

    def cancel(self, purpose: TimerPurpose) -> bool:
        """Cancel the pending timer for a purpose, if any."""
        unsub = self._handles.pop(purpose, None)
        if unsub is None:
            return False
        unsub()
        _LOGGER.debug("%s: %s timer cancelled", self._name, purpose)
        return True

    def cancel_all(self) -> None:
        """Cancel every pending timer."""
        for purpose in list(self._handles):
            self.cancel(purpose)
