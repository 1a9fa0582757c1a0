"""Appliance-specific behaviour layered on the shared detection and scheduling."""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Protocol

from homeassistant.util import dt as dt_util

from .const import (
    APPLIANCE_DISHWASHER,
    APPLIANCE_DRYER,
    APPLIANCE_WASHING_MACHINE,
    KEY_TASK_ITEM,
    PRESS_DELAY,
    SUPPRESS_MANUAL_DETECTION,
)
from .models import TimerPurpose

if TYPE_CHECKING:
    from .coordinator import ApplianceController

_LOGGER = logging.getLogger(__name__)


class AppliancePolicy(Protocol):
    """Capabilities every appliance type provides."""

    async def async_perform_scheduled_start(self) -> None:
        """Switch the appliance on at its scheduled time."""

    async def async_on_start(self) -> None:
        """React to a confirmed run start."""

    async def async_on_finish(self, runtime: timedelta | None) -> None:
        """React to a confirmed run finish."""

    def stop(self) -> None:
        """Release policy-owned timers."""


async def async_commanded_start(controller: ApplianceController) -> None:
    """Switch on with manual-start detection suppressed, then press if configured."""
    controller.engine.suppress_manual_start(SUPPRESS_MANUAL_DETECTION)

    if not await controller.actuator.async_set_switch(True):
        _LOGGER.warning("%s: Scheduled start could not switch on", controller.name)

    if controller.actuator.has_press:

        async def _press() -> None:
            if await controller.actuator.async_press():
                _LOGGER.info("%s: Start button pressed", controller.name)

        controller.timers.arm(TimerPurpose.PRESS, PRESS_DELAY, _press)

    await controller.notifier.async_notify("Automatically started (price optimized)")


class DishwasherPolicy:
    """Dishwasher: reminds to unload once the dishes had time to dry."""

    def __init__(self, controller: ApplianceController) -> None:
        """Initialize the policy."""
        self._controller = controller

    async def async_perform_scheduled_start(self) -> None:
        """Switch the dishwasher on."""
        await async_commanded_start(self._controller)

    async def async_on_start(self) -> None:
        """Drop a pending dry reminder from the previous run."""
        self._controller.timers.cancel(TimerPurpose.DRY)

    async def async_on_finish(self, runtime: timedelta | None) -> None:
        """Arm the dry reminder."""
        controller = self._controller

        async def _remind() -> None:
            await controller.notifier.async_notify(
                "Dishes should be dry now - please unload"
            )

        controller.timers.arm(
            TimerPurpose.DRY, timedelta(minutes=controller.dry_reminder), _remind
        )

    def stop(self) -> None:
        """Cancel the dry reminder."""
        self._controller.timers.cancel(TimerPurpose.DRY)


class WashingMachinePolicy:
    """Washing machine: tracks each load as a to-do item."""

    def __init__(self, controller: ApplianceController) -> None:
        """Initialize the policy."""
        self._controller = controller

    async def async_perform_scheduled_start(self) -> None:
        """Switch the washing machine on."""
        await async_commanded_start(self._controller)

    async def async_on_start(self) -> None:
        """Create the laundry item."""
        controller = self._controller
        if not controller.task_list.enabled:
            return
        item = f"Laundry - {dt_util.now().strftime('%d.%m.%Y %H:%M')}"
        if await controller.task_list.async_add(item):
            await controller.store.async_set(KEY_TASK_ITEM, item)

    async def async_on_finish(self, runtime: timedelta | None) -> None:
        """Complete the laundry item of this run."""
        controller = self._controller
        item = controller.store.get(KEY_TASK_ITEM)
        if not item:
            _LOGGER.debug("%s: No open task item to complete", controller.name)
            return
        if await controller.task_list.async_complete(item):
            _LOGGER.info("%s: Completed task item '%s'", controller.name, item)
            await controller.store.async_set(KEY_TASK_ITEM, "")

    def stop(self) -> None:
        """Nothing to release."""


class DryerPolicy:
    """Dryer: plain commanded start, usually chained after the washer."""

    def __init__(self, controller: ApplianceController) -> None:
        """Initialize the policy."""
        self._controller = controller

    async def async_perform_scheduled_start(self) -> None:
        """Switch the dryer on."""
        await async_commanded_start(self._controller)

    async def async_on_start(self) -> None:
        """Nothing beyond the shared start handling."""

    async def async_on_finish(self, runtime: timedelta | None) -> None:
        """Nothing beyond the shared finish handling."""

    def stop(self) -> None:
        """Nothing to release."""


POLICIES: dict[str, type[DishwasherPolicy | WashingMachinePolicy | DryerPolicy]] = {
    APPLIANCE_DISHWASHER: DishwasherPolicy,
    APPLIANCE_WASHING_MACHINE: WashingMachinePolicy,
    APPLIANCE_DRYER: DryerPolicy,
}
