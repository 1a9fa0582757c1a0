"""Scheduled-start management with persistence and restart recovery."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable

from homeassistant.util import dt as dt_util

from .const import KEY_RUNNING, KEY_SCHEDULED, KEY_START_TIME, RESTORE_HORIZON
from .hardware import Notifier
from .models import Origin, TimerPurpose
from .state_store import DeviceStateStore
from .timers import TimerTable

_LOGGER = logging.getLogger(__name__)


def parse_instant(value: Any) -> datetime | None:
    """Parse a stored or entered start time; None if empty or invalid."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = dt_util.parse_datetime(value.strip())
        except ValueError:
            return None
    else:
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt_util.get_default_time_zone())
    return dt_util.as_utc(parsed)


class ScheduleManager:
    """Own the single scheduled-start timer of an appliance.

    The pair (scheduled, startTime) is persisted in the state store. At most
    one scheduled-start timer is armed at any time; every path that arms one
    goes through the timer table, which replaces the previous handle.
    """

    def __init__(
        self,
        name: str,
        store: DeviceStateStore,
        timers: TimerTable,
        notifier: Notifier,
        start_callback: Callable[[], Awaitable[None]],
        restore_horizon: timedelta = RESTORE_HORIZON,
    ) -> None:
        """Initialize the manager."""
        self._name = name
        self._store = store
        self._timers = timers
        self._notifier = notifier
        self._start_callback = start_callback
        self._restore_horizon = restore_horizon

    @property
    def scheduled(self) -> bool:
        """Return True if a scheduled start is pending."""
        return self._store.get(KEY_SCHEDULED, False) is True

    @property
    def start_time(self) -> datetime | None:
        """Return the stored start time."""
        return parse_instant(self._store.get(KEY_START_TIME))

    @property
    def timer_armed(self) -> bool:
        """Return True if the scheduled-start timer is pending."""
        return self._timers.is_armed(TimerPurpose.SCHEDULED)

    async def async_schedule_at(self, start: datetime) -> bool:
        """Persist and arm a scheduled start; returns False if rejected."""
        if self._store.get(KEY_RUNNING, False):
            _LOGGER.warning(
                "%s: Not scheduling a start while the device is running", self._name
            )
            return False

        start = dt_util.as_utc(start)
        await self._store.async_set(KEY_START_TIME, start.isoformat())
        await self._store.async_set(KEY_SCHEDULED, True)

        if start <= dt_util.utcnow():
            _LOGGER.info(
                "%s: Planned start time already past -> executing immediately", self._name
            )
            await self._async_execute()
        else:
            self._arm(start)
        return True

    async def async_cancel(self, notify: bool = True) -> None:
        """Cancel a pending scheduled start."""
        if not self.scheduled:
            return
        self._timers.cancel(TimerPurpose.SCHEDULED)
        await self._store.async_set(KEY_SCHEDULED, False)
        _LOGGER.info("%s: Scheduled start cancelled", self._name)
        if notify:
            await self._notifier.async_notify("Scheduled start cancelled")

    async def async_restore(self) -> None:
        """Re-arm, execute or drop a schedule persisted before a restart."""
        if not self.scheduled:
            return

        start = self.start_time
        if start is None:
            _LOGGER.warning("%s: Invalid stored startTime -> cancelling schedule", self._name)
            await self.async_cancel()
            return

        delay = start - dt_util.utcnow()
        if delay <= timedelta(0):
            _LOGGER.info("%s: Stored start time already passed -> executing now", self._name)
            await self._async_execute()
        elif delay >= self._restore_horizon:
            _LOGGER.warning(
                "%s: Stored start time more than %s away -> cancelling",
                self._name,
                self._restore_horizon,
            )
            await self.async_cancel()
        else:
            _LOGGER.info(
                "%s: Restoring scheduled start in %d minutes (%s)",
                self._name,
                round(delay.total_seconds() / 60),
                dt_util.as_local(start).isoformat(),
            )
            self._arm(start)
            await self._notifier.async_notify(
                f"Scheduled start restored: {round(delay.total_seconds() / 60)} minutes remaining"
            )

    async def async_on_manual_edit(self, key: str, value: Any, origin: Origin) -> None:
        """Reconcile an operator write of startTime or scheduled."""
        if origin is not Origin.OPERATOR:
            return
        if key == KEY_START_TIME:
            await self._async_manual_start_time(value)
        elif key == KEY_SCHEDULED:
            await self._async_manual_scheduled(value)

    async def _async_manual_start_time(self, value: Any) -> None:
        if value is None or value == "":
            return
        start = parse_instant(value)
        if start is None:
            _LOGGER.warning("%s: Invalid manual startTime '%s' ignored", self._name, value)
            return

        await self._store.async_set(KEY_START_TIME, start.isoformat())
        if not self.scheduled:
            _LOGGER.info("%s: Manual startTime stored (not scheduled yet)", self._name)
            return

        if start <= dt_util.utcnow():
            await self._async_execute()
        else:
            _LOGGER.info("%s: Manual startTime updated -> rescheduling", self._name)
            self._arm(start)

    async def _async_manual_scheduled(self, value: Any) -> None:
        if value is False:
            await self.async_cancel()
            return
        if value is not True:
            return

        if self._store.get(KEY_RUNNING, False):
            _LOGGER.warning("%s: Cannot enable scheduling while running", self._name)
            await self._store.async_set(KEY_SCHEDULED, False)
            return

        start = self.start_time
        if start is None:
            _LOGGER.warning(
                "%s: Cannot enable scheduling - startTime empty or invalid", self._name
            )
            await self._store.async_set(KEY_SCHEDULED, False)
            return

        await self._store.async_set(KEY_SCHEDULED, True)
        if start <= dt_util.utcnow():
            await self._async_execute()
        else:
            _LOGGER.info("%s: Scheduling enabled manually", self._name)
            self._arm(start)

    def _arm(self, start: datetime) -> None:
        delay = start - dt_util.utcnow()
        self._timers.arm(TimerPurpose.SCHEDULED, delay, self._async_execute)
        _LOGGER.info(
            "%s: Scheduled start in %d minutes (%s)",
            self._name,
            round(delay.total_seconds() / 60),
            dt_util.as_local(start).isoformat(),
        )

    async def _async_execute(self) -> None:
        self._timers.cancel(TimerPurpose.SCHEDULED)
        if not self.scheduled:
            _LOGGER.debug("%s: Scheduled start aborted (flag false)", self._name)
            return
        try:
            await self._notifier.async_notify("Executing scheduled start")
            await self._start_callback()
        except Exception as ex:  # noqa: BLE001
            _LOGGER.warning("%s: Scheduled start failed: %s", self._name, ex)
        finally:
            await self._store.async_set(KEY_SCHEDULED, False)

    def stop(self) -> None:
        """Cancel the scheduled-start timer."""
        self._timers.cancel(TimerPurpose.SCHEDULED)
