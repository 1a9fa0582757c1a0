"""Appliance run detection state machine."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Protocol

from homeassistant.util import dt as dt_util

from .const import (
    DEFAULT_COOLDOWN,
    DEFAULT_DETECT_TIME,
    DEFAULT_MIN_RUNTIME,
    DEFAULT_POST_CONFIRM,
    DEFAULT_POWER_THRESHOLD,
    DEFAULT_ZERO_GRACE,
    KEY_RUN_STARTED_AT,
    KEY_RUNNING,
    KEY_RUNTIME,
    KEY_SCHEDULED,
    KEY_START_DETECTED,
)
from .hardware import SwitchActuator
from .models import DetectionPhase, TimerPurpose
from .state_store import DeviceStateStore
from .timers import TimerTable

_LOGGER = logging.getLogger(__name__)


@dataclass
class DetectionSettings:
    """Tunables of the detection state machine.

    power_threshold is in watts, detect_time in seconds, all other durations in
    minutes.
    """

    power_threshold: float = DEFAULT_POWER_THRESHOLD
    detect_time: float = DEFAULT_DETECT_TIME
    min_runtime: float = DEFAULT_MIN_RUNTIME
    zero_grace: float = DEFAULT_ZERO_GRACE
    post_confirm: float = DEFAULT_POST_CONFIRM
    cooldown: float = DEFAULT_COOLDOWN
    intercept_manual_start: bool = True


class DetectionHooks(Protocol):
    """Callbacks the engine raises on transitions."""

    async def async_on_run_started(self) -> None:
        ...

    async def async_on_run_finished(self, runtime: timedelta | None) -> None:
        ...

    async def async_on_manual_start(self) -> None:
        ...


class DetectionEngine:
    """Translate power samples into running/idle transitions.

    Start side: a draw above the threshold sustained for detect_time confirms
    a start. When the start was commanded (schedule pending, automatic start
    in flight) or interception is disabled, the run is confirmed. Otherwise it
    is a manual start: the switch is turned off again and the controller is
    asked to plan the cheapest start instead.

    End side: only after min_runtime. A draw at or below the threshold arms
    the end grace timer; if nothing drew power for zero_grace when it fires,
    the post confirm timer is armed; if the draw is still low when that fires
    the run is finished. Any sample above the threshold cancels both.
    """

    def __init__(
        self,
        name: str,
        store: DeviceStateStore,
        timers: TimerTable,
        actuator: SwitchActuator,
        read_power: Callable[[], float | None],
        settings: DetectionSettings,
        hooks: DetectionHooks,
    ) -> None:
        """Initialize the engine."""
        self._name = name
        self._store = store
        self._timers = timers
        self._actuator = actuator
        self._read_power = read_power
        self.settings = settings
        self._hooks = hooks

        self.last_above_threshold_at: datetime | None = None
        self.last_finish_at: datetime | None = None
        self.automatic_start_in_progress = False

    @property
    def phase(self) -> DetectionPhase:
        """Return the current detection phase."""
        if self._store.get(KEY_RUNNING, False):
            if self._timers.is_armed(TimerPurpose.POST):
                return DetectionPhase.POST_CONFIRM
            if self._timers.is_armed(TimerPurpose.END):
                return DetectionPhase.END_GRACE
            return DetectionPhase.RUNNING
        if self._timers.is_armed(TimerPurpose.DETECTION) or self._timers.is_armed(
            TimerPurpose.START
        ):
            return DetectionPhase.CONFIRMING
        return DetectionPhase.IDLE

    @property
    def run_started_at(self) -> datetime | None:
        """Return when the current run started."""
        value = self._store.get(KEY_RUN_STARTED_AT)
        return dt_util.parse_datetime(value) if value else None

    def _above(self, power: float | None) -> bool:
        return power is not None and power > self.settings.power_threshold

    def _below(self, power: float | None) -> bool:
        return power is not None and power <= self.settings.power_threshold

    def _current_power(self) -> float | None:
        try:
            return self._read_power()
        except Exception as ex:  # noqa: BLE001
            _LOGGER.warning("%s: Could not read power: %s", self._name, ex)
            return None

    # --- Sample handling ---

    async def async_handle_sample(self, power: float | None) -> None:
        """Process one power sample; never raises."""
        if power is None:
            _LOGGER.debug("%s: No usable power sample", self._name)
            return
        try:
            await self._async_process(power)
        except Exception:  # noqa: BLE001
            _LOGGER.warning(
                "%s: Detection tick failed (power=%.1f W)",
                self._name,
                power,
                exc_info=True,
            )

    async def _async_process(self, power: float) -> None:
        now = dt_util.utcnow()
        running = bool(self._store.get(KEY_RUNNING, False))
        scheduled = bool(self._store.get(KEY_SCHEDULED, False))
        _LOGGER.debug(
            "%s: Power %.1f W (running=%s, scheduled=%s)",
            self._name,
            power,
            running,
            scheduled,
        )

        if self._above(power):
            self.last_above_threshold_at = now
            self._cancel_end_timers()

        if running:
            self._handle_end_detection(power, now)
        else:
            self._handle_start_detection(power, now, scheduled)

    def _handle_start_detection(self, power: float, now: datetime, scheduled: bool) -> None:
        if self.last_finish_at is not None and now - self.last_finish_at < timedelta(
            minutes=self.settings.cooldown
        ):
            return

        if not self._above(power):
            self._timers.cancel(TimerPurpose.DETECTION)
            self._timers.cancel(TimerPurpose.START)
            return

        delay = timedelta(seconds=self.settings.detect_time)
        commanded = (
            scheduled
            or self.automatic_start_in_progress
            or not self.settings.intercept_manual_start
        )
        if commanded:
            if not self._timers.is_armed(TimerPurpose.START):
                self._timers.arm(TimerPurpose.START, delay, self._async_confirm_start)
        elif not self._timers.is_armed(TimerPurpose.DETECTION):
            _LOGGER.debug("%s: Possible manual start detected", self._name)
            self._timers.arm(TimerPurpose.DETECTION, delay, self._async_confirm_manual)

    def _handle_end_detection(self, power: float, now: datetime) -> None:
        started = self.run_started_at
        if started is not None:
            run_time = now - started
            if run_time < timedelta(minutes=self.settings.min_runtime):
                _LOGGER.debug(
                    "%s: End detection not armed yet (runtime %d min, minimum %d min)",
                    self._name,
                    run_time.total_seconds() // 60,
                    self.settings.min_runtime,
                )
                return

        if (
            self._below(power)
            and not self._timers.is_armed(TimerPurpose.END)
            and not self._timers.is_armed(TimerPurpose.POST)
        ):
            _LOGGER.debug("%s: Zero power detected, starting end detection", self._name)
            self._timers.arm(
                TimerPurpose.END,
                timedelta(minutes=self.settings.zero_grace),
                self._async_end_grace_elapsed,
            )

    # --- Timer callbacks ---

    async def _async_confirm_start(self) -> None:
        power = self._current_power()
        if self._above(power) and not self._store.get(KEY_RUNNING, False):
            await self._async_start_run()

    async def _async_confirm_manual(self) -> None:
        power = self._current_power()
        if (
            self._above(power)
            and not self._store.get(KEY_RUNNING, False)
            and not self._store.get(KEY_SCHEDULED, False)
            and not self.automatic_start_in_progress
        ):
            await self._async_manual_start()

    async def _async_end_grace_elapsed(self) -> None:
        power = self._current_power()
        now = dt_util.utcnow()
        quiet = self.last_above_threshold_at is None or (
            now - self.last_above_threshold_at
            >= timedelta(minutes=self.settings.zero_grace)
        )
        if self._below(power) and quiet:
            self._timers.arm(
                TimerPurpose.POST,
                timedelta(minutes=self.settings.post_confirm),
                self._async_post_confirm_elapsed,
            )

    async def _async_post_confirm_elapsed(self) -> None:
        power = self._current_power()
        if self._below(power) and self._store.get(KEY_RUNNING, False):
            await self._async_finish_run()

    # --- Transitions ---

    async def _async_manual_start(self) -> None:
        _LOGGER.info(
            "%s: Manual start confirmed - switching off and planning optimal start",
            self._name,
        )
        await self._actuator.async_set_switch(False)
        await self._store.async_set(KEY_START_DETECTED, True)
        await self._hooks.async_on_manual_start()

    async def _async_start_run(self) -> None:
        now = dt_util.utcnow()
        _LOGGER.info("%s: Device started", self._name)

        self.last_above_threshold_at = now
        self.automatic_start_in_progress = False
        self._timers.cancel(TimerPurpose.SUPPRESS)
        self._timers.cancel(TimerPurpose.DETECTION)

        await self._store.async_set(KEY_RUN_STARTED_AT, now.isoformat())
        await self._store.async_set(KEY_RUNNING, True)
        await self._store.async_set(KEY_START_DETECTED, False)
        await self._hooks.async_on_run_started()

    async def _async_finish_run(self) -> None:
        now = dt_util.utcnow()
        started = self.run_started_at
        runtime = now - started if started is not None else None
        _LOGGER.info(
            "%s: Device finished (runtime: %s)",
            self._name,
            str(timedelta(seconds=int(runtime.total_seconds()))) if runtime else "unknown",
        )

        self.last_finish_at = now
        self._cancel_end_timers()
        self._timers.cancel(TimerPurpose.DETECTION)
        self._timers.cancel(TimerPurpose.START)

        await self._store.async_set(KEY_RUNNING, False)
        if runtime is not None:
            await self._store.async_set(KEY_RUNTIME, int(runtime.total_seconds()))
        await self._hooks.async_on_run_finished(runtime)

    # --- Suppression / lifecycle ---

    def suppress_manual_start(self, duration: timedelta) -> None:
        """Treat rising power as a commanded start for a bounded time."""
        self.automatic_start_in_progress = True
        self._timers.arm(TimerPurpose.SUPPRESS, duration, self._async_clear_suppression)

    async def _async_clear_suppression(self) -> None:
        self.automatic_start_in_progress = False
        _LOGGER.debug("%s: Automatic start flag cleared", self._name)

    def restore(self) -> bool:
        """Resume monitoring after a restart; return True if a run was in progress."""
        if not self._store.get(KEY_RUNNING, False):
            return False
        self.last_above_threshold_at = dt_util.utcnow()
        _LOGGER.info(
            "%s: Device was running before restart - resuming monitoring", self._name
        )
        return True

    def _cancel_end_timers(self) -> None:
        self._timers.cancel(TimerPurpose.END)
        self._timers.cancel(TimerPurpose.POST)

    def stop(self) -> None:
        """Cancel all detection timers."""
        for purpose in (
            TimerPurpose.DETECTION,
            TimerPurpose.START,
            TimerPurpose.END,
            TimerPurpose.POST,
            TimerPurpose.SUPPRESS,
        ):
            self._timers.cancel(purpose)
