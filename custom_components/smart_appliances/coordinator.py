"""Per-appliance controller wiring detection, scheduling and policy."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Callable

from homeassistant.config_entries import ConfigEntry, ConfigEntryState
from homeassistant.const import STATE_UNAVAILABLE, STATE_UNKNOWN
from homeassistant.core import CALLBACK_TYPE, Event, HomeAssistant, callback
from homeassistant.helpers.event import (
    async_track_state_change_event,
    async_track_time_interval,
)
from homeassistant.util import dt as dt_util

from .const import (
    APPLIANCE_DRYER,
    CONF_APPLIANCE_NAME,
    CONF_APPLIANCE_TYPE,
    CONF_INTERCEPT_MANUAL_START,
    CONF_NOTIFY_SERVICE,
    CONF_POWER_ENTITY,
    CONF_PRESS_ENTITY,
    CONF_PRICE_ENTITY,
    CONF_SWITCH_ENTITY,
    CONF_TODO_ENTITY,
    DEFAULT_COOLDOWN,
    DEFAULT_DETECT_TIME,
    DEFAULT_DRY_REMINDER,
    DEFAULT_DRYER_DURATION,
    DEFAULT_INTERCEPT,
    DEFAULT_MIN_RUNTIME,
    DEFAULT_POST_CONFIRM,
    DEFAULT_POWER_THRESHOLD,
    DEFAULT_PROGRAM_DURATION,
    DEFAULT_TRANSFER_BUFFER,
    DEFAULT_ZERO_GRACE,
    DOMAIN,
    EVENT_APPLIANCE_FINISHED,
    EVENT_MANUAL_START,
    KEY_AVG_PRICE,
    KEY_RUNNING,
    KEY_RUNTIME,
    KEY_SCHEDULED,
    KEY_START_DETECTED,
    KEY_START_TIME,
    MANUAL_RESTART_MARGIN,
    OPT_COOLDOWN,
    OPT_DETECT_TIME,
    OPT_DRY_REMINDER,
    OPT_DRYER_DURATION,
    OPT_MIN_RUNTIME,
    OPT_POST_CONFIRM,
    OPT_POWER_THRESHOLD,
    OPT_PROGRAM_DURATION,
    OPT_PROGRAMS,
    OPT_TRANSFER_BUFFER,
    OPT_ZERO_GRACE,
    PROGRAM_NAME,
    SAMPLE_INTERVAL,
    TYPE_DEFAULTS,
)
from .detection import DetectionEngine, DetectionSettings
from .hardware import Notifier, SwitchActuator, TaskList
from .models import DetectionPhase, PriceWindow, StateChange, WashDryPlan
from .policies import POLICIES, AppliancePolicy
from .price_feed import EntityPriceFeed, PriceDataUnavailable
from .schedule import ScheduleManager, parse_instant
from .state_store import DeviceStateStore
from .timers import TimerTable
from .window_finder import find_cheapest_window, find_wash_dry_plan

_LOGGER = logging.getLogger(__name__)

OPTION_DEFAULTS: dict[str, float] = {
    OPT_POWER_THRESHOLD: DEFAULT_POWER_THRESHOLD,
    OPT_DETECT_TIME: DEFAULT_DETECT_TIME,
    OPT_MIN_RUNTIME: DEFAULT_MIN_RUNTIME,
    OPT_ZERO_GRACE: DEFAULT_ZERO_GRACE,
    OPT_POST_CONFIRM: DEFAULT_POST_CONFIRM,
    OPT_COOLDOWN: DEFAULT_COOLDOWN,
    OPT_DRY_REMINDER: DEFAULT_DRY_REMINDER,
    OPT_PROGRAM_DURATION: DEFAULT_PROGRAM_DURATION,
    OPT_DRYER_DURATION: DEFAULT_DRYER_DURATION,
    OPT_TRANSFER_BUFFER: DEFAULT_TRANSFER_BUFFER,
}

# Option key -> DetectionSettings attribute
DETECTION_OPTIONS = {
    OPT_POWER_THRESHOLD: "power_threshold",
    OPT_DETECT_TIME: "detect_time",
    OPT_MIN_RUNTIME: "min_runtime",
    OPT_ZERO_GRACE: "zero_grace",
    OPT_POST_CONFIRM: "post_confirm",
    OPT_COOLDOWN: "cooldown",
}


def format_local(value: datetime) -> str:
    """Format an instant for notifications."""
    return dt_util.as_local(value).strftime("%d.%m.%Y %H:%M")


class ApplianceController:
    """Composition root for one appliance (one config entry)."""

    def __init__(self, hass: HomeAssistant, entry: ConfigEntry) -> None:
        """Initialize the controller."""
        self.hass = hass
        self.entry = entry

        self._appliance_name: str = entry.data[CONF_APPLIANCE_NAME]
        self._appliance_type: str = entry.data[CONF_APPLIANCE_TYPE]
        self._power_entity: str = entry.data[CONF_POWER_ENTITY]
        self._current_power: float | None = None

        self.store = DeviceStateStore(hass, entry.entry_id, self.slug)
        self.timers = TimerTable(hass, self._appliance_name)
        self.notifier = Notifier(
            hass, self._appliance_name, entry.data.get(CONF_NOTIFY_SERVICE)
        )
        self.actuator = SwitchActuator(
            hass,
            self._appliance_name,
            entry.data.get(CONF_SWITCH_ENTITY),
            entry.data.get(CONF_PRESS_ENTITY),
        )
        self.task_list = TaskList(
            hass, self._appliance_name, entry.data.get(CONF_TODO_ENTITY)
        )
        self.price_feed = EntityPriceFeed(hass, entry.data.get(CONF_PRICE_ENTITY))

        settings = DetectionSettings(
            intercept_manual_start=entry.data.get(
                CONF_INTERCEPT_MANUAL_START,
                DEFAULT_INTERCEPT.get(self._appliance_type, True),
            )
        )
        for key, attr in DETECTION_OPTIONS.items():
            setattr(settings, attr, self.option(key))
        self.dry_reminder: float = self.option(OPT_DRY_REMINDER)
        self.program_duration: float = self.option(OPT_PROGRAM_DURATION)
        self.dryer_duration: float = self.option(OPT_DRYER_DURATION)
        self.transfer_buffer: float = self.option(OPT_TRANSFER_BUFFER)

        self.engine = DetectionEngine(
            self._appliance_name,
            self.store,
            self.timers,
            self.actuator,
            self.read_power,
            settings,
            self,
        )
        self.policy: AppliancePolicy = POLICIES[self._appliance_type](self)
        self.schedule = ScheduleManager(
            self._appliance_name,
            self.store,
            self.timers,
            self.notifier,
            self.policy.async_perform_scheduled_start,
        )

        self._sample_lock = asyncio.Lock()
        self._unsub_state_change: CALLBACK_TYPE | None = None
        self._unsub_interval: CALLBACK_TYPE | None = None
        self._unsub_store: CALLBACK_TYPE | None = None
        self._update_callbacks: list[Callable[[], None]] = []

    # --- Properties ---

    @property
    def name(self) -> str:
        """Return the appliance name."""
        return self._appliance_name

    @property
    def appliance_type(self) -> str:
        """Return the appliance type."""
        return self._appliance_type

    @property
    def slug(self) -> str:
        """Return a slug of the appliance name."""
        return self._appliance_name.lower().replace(" ", "_").replace("-", "_")

    @property
    def power_entity(self) -> str:
        """Return the power entity ID."""
        return self._power_entity

    @property
    def current_power(self) -> float | None:
        """Return the last power reading."""
        return self._current_power

    @property
    def phase(self) -> DetectionPhase:
        """Return the detection phase."""
        return self.engine.phase

    @property
    def is_running(self) -> bool:
        """Return True if a run is in progress."""
        return bool(self.store.get(KEY_RUNNING, False))

    @property
    def is_scheduled(self) -> bool:
        """Return True if a scheduled start is pending."""
        return self.schedule.scheduled

    @property
    def start_time(self) -> datetime | None:
        """Return the planned start time."""
        return self.schedule.start_time

    @property
    def avg_price(self) -> float | None:
        """Return the average price of the planned run in ct/kWh."""
        return self.store.get(KEY_AVG_PRICE)

    @property
    def last_runtime(self) -> float | None:
        """Return the duration of the last run in seconds."""
        return self.store.get(KEY_RUNTIME)

    @property
    def manual_start_detected(self) -> bool:
        """Return True if the last start attempt was intercepted."""
        return bool(self.store.get(KEY_START_DETECTED, False))

    @property
    def run_started_at(self) -> datetime | None:
        """Return when the current run started."""
        return self.engine.run_started_at

    # --- Options (used by number entities) ---

    def option(self, key: str) -> float:
        """Return an option value, falling back to the type default."""
        default = TYPE_DEFAULTS.get(self._appliance_type, {}).get(
            key, OPTION_DEFAULTS[key]
        )
        return self.entry.options.get(key, default)

    def set_option(self, key: str, value: float) -> None:
        """Apply an option value."""
        if key in DETECTION_OPTIONS:
            setattr(self.engine.settings, DETECTION_OPTIONS[key], value)
        elif key == OPT_DRY_REMINDER:
            self.dry_reminder = value
        elif key == OPT_PROGRAM_DURATION:
            self.program_duration = value
        elif key == OPT_DRYER_DURATION:
            self.dryer_duration = value
        elif key == OPT_TRANSFER_BUFFER:
            self.transfer_buffer = value
        else:
            raise KeyError(key)
        _LOGGER.debug("%s: %s set to %s", self._appliance_name, key, value)

    @property
    def programs(self) -> list[dict[str, Any]]:
        """Return the configured washing programs."""
        return list(self.entry.options.get(OPT_PROGRAMS, []))

    def find_program(self, name: str) -> dict[str, Any] | None:
        """Return the washing program with this (case-insensitive) name."""
        wanted = name.strip().lower()
        for program in self.programs:
            if program[PROGRAM_NAME].lower() == wanted:
                return program
        return None

    # --- Callback registration ---

    def register_update_callback(self, callback_fn: Callable[[], None]) -> None:
        """Register a callback to be called when state changes."""
        self._update_callbacks.append(callback_fn)

    def unregister_update_callback(self, callback_fn: Callable[[], None]) -> None:
        """Unregister a previously registered callback."""
        if callback_fn in self._update_callbacks:
            self._update_callbacks.remove(callback_fn)

    def _notify_update(self) -> None:
        """Notify all registered callbacks about a state update."""
        for cb in self._update_callbacks:
            cb()

    # --- Start / Stop ---

    async def async_start(self) -> None:
        """Restore persisted state and start monitoring the power sensor."""
        await self.store.async_load()
        self._unsub_store = self.store.add_listener(self._async_state_changed)

        if self.engine.restore():
            await self.notifier.async_notify("Monitoring resumed after restart")
        await self.schedule.async_restore()

        self._unsub_state_change = async_track_state_change_event(
            self.hass, [self._power_entity], self._async_power_state_changed
        )
        self._unsub_interval = async_track_time_interval(
            self.hass, self._async_sample_tick, SAMPLE_INTERVAL
        )

        power = self.read_power()
        if power is not None:
            await self._async_feed(power)

        _LOGGER.info(
            "%s: Started monitoring %s (running: %s, scheduled: %s)",
            self._appliance_name,
            self._power_entity,
            self.is_running,
            self.is_scheduled,
        )

    @callback
    def async_stop(self) -> None:
        """Stop monitoring and release every timer."""
        for unsub in (self._unsub_state_change, self._unsub_interval, self._unsub_store):
            if unsub:
                unsub()
        self._unsub_state_change = None
        self._unsub_interval = None
        self._unsub_store = None

        self.engine.stop()
        self.schedule.stop()
        self.policy.stop()
        self.timers.cancel_all()
        _LOGGER.info("%s: Stopped monitoring", self._appliance_name)

    # --- Power samples ---

    def read_power(self) -> float | None:
        """Return the current power draw, None if unavailable."""
        state = self.hass.states.get(self._power_entity)
        if state is None or state.state in (STATE_UNAVAILABLE, STATE_UNKNOWN):
            return None
        try:
            return float(state.state)
        except (ValueError, TypeError):
            _LOGGER.debug(
                "%s: Could not parse power value: %s", self._appliance_name, state.state
            )
            return None

    async def _async_power_state_changed(self, event: Event) -> None:
        """Handle power sensor state changes."""
        new_state = event.data.get("new_state")
        if new_state is None or new_state.state in (STATE_UNAVAILABLE, STATE_UNKNOWN):
            return
        try:
            power = float(new_state.state)
        except (ValueError, TypeError):
            return
        await self._async_feed(power)

    async def _async_sample_tick(self, _now: datetime) -> None:
        """Re-feed the current reading; unchanged states produce no events."""
        power = self.read_power()
        if power is not None:
            await self._async_feed(power)

    async def _async_feed(self, power: float) -> None:
        # The lock is FIFO, so samples are processed in arrival order
        async with self._sample_lock:
            self._current_power = power
            await self.engine.async_handle_sample(power)
        self._notify_update()

    # --- State store changes ---

    async def _async_state_changed(self, change: StateChange) -> None:
        if change.key in (KEY_START_TIME, KEY_SCHEDULED):
            await self.schedule.async_on_manual_edit(change.key, change.value, change.origin)
        self._notify_update()

    # --- Detection hooks ---

    async def async_on_run_started(self) -> None:
        """Handle a confirmed start."""
        await self.schedule.async_cancel()
        await self.policy.async_on_start()
        await self.notifier.async_notify("Started")
        self._notify_update()

    async def async_on_run_finished(self, runtime: timedelta | None) -> None:
        """Handle a confirmed finish."""
        runtime_str = (
            str(timedelta(seconds=int(runtime.total_seconds()))) if runtime else "unknown"
        )
        await self.notifier.async_notify(f"Finished (runtime {runtime_str})")
        self.hass.bus.async_fire(
            EVENT_APPLIANCE_FINISHED,
            {
                "appliance_name": self._appliance_name,
                "appliance_type": self._appliance_type,
                "runtime": runtime.total_seconds() if runtime else None,
            },
        )
        await self.policy.async_on_finish(runtime)
        self._notify_update()

    async def async_on_manual_start(self) -> None:
        """Redirect a manual start to the cheapest start time."""
        self.hass.bus.async_fire(
            EVENT_MANUAL_START,
            {"appliance_name": self._appliance_name, "appliance_type": self._appliance_type},
        )
        await self.notifier.async_notify(
            "Manual start detected - planning optimal restart time"
        )
        # Never restart in the same minute the switch was turned off
        await self.async_plan_optimal_start(
            not_before=dt_util.utcnow() + MANUAL_RESTART_MARGIN
        )

    # --- Planning ---

    async def _async_fetch_prices(self) -> list | None:
        try:
            return await self.price_feed.async_fetch_prices()
        except PriceDataUnavailable as err:
            _LOGGER.error("%s: Price optimization failed: %s", self._appliance_name, err)
            await self.notifier.async_notify(f"Price optimization failed: {err}")
            return None

    async def async_plan_optimal_start(
        self, duration: float | None = None, not_before: datetime | None = None
    ) -> PriceWindow | None:
        """Schedule the appliance at the cheapest window from now (or not_before) on."""
        minutes = int(duration or self.program_duration)
        _LOGGER.info(
            "%s: Searching for optimal start time (%d min)", self._appliance_name, minutes
        )
        prices = await self._async_fetch_prices()
        if prices is None:
            return None

        window = find_cheapest_window(prices, minutes, not_before or dt_util.utcnow())
        if window is None:
            await self.notifier.async_notify(
                f"No price window of {minutes} minutes available"
            )
            return None

        if not await self.schedule.async_schedule_at(window.start):
            return None
        await self.store.async_set(KEY_AVG_PRICE, round(window.avg_price * 100, 2))
        await self.notifier.async_notify(
            "Optimal start planned:\n"
            f"Start: {format_local(window.start)}\n"
            f"Avg. price: {window.avg_price * 100:.2f} ct/kWh"
        )
        return window

    def find_dryer(self) -> ApplianceController | None:
        """Return the first loaded dryer."""
        for controller in async_get_controllers(self.hass):
            if controller.appliance_type == APPLIANCE_DRYER:
                return controller
        return None

    async def async_plan_program(
        self,
        duration: float | None = None,
        with_dryer: bool = False,
        dryer_duration: float | None = None,
        dryer: ApplianceController | None = None,
    ) -> WashDryPlan | PriceWindow | None:
        """Plan a program, optionally chaining the dryer after it."""
        if not with_dryer:
            return await self.async_plan_optimal_start(duration)

        dryer = dryer or self.find_dryer()
        if dryer is None:
            _LOGGER.warning("%s: No dryer configured for chaining", self._appliance_name)
            await self.notifier.async_notify("No dryer configured - planning washer only")
            return await self.async_plan_optimal_start(duration)

        wash_minutes = int(duration or self.program_duration)
        dry_minutes = int(dryer_duration or dryer.program_duration)
        prices = await self._async_fetch_prices()
        if prices is None:
            return None

        plan = find_wash_dry_plan(
            prices,
            wash_minutes,
            dry_minutes,
            int(self.transfer_buffer),
            dt_util.utcnow(),
        )
        if plan is None:
            await self.notifier.async_notify(
                f"No price window for {wash_minutes} + {dry_minutes} minutes available"
            )
            return None

        if not await self.schedule.async_schedule_at(plan.wash.start):
            return None
        await self.store.async_set(KEY_AVG_PRICE, round(plan.wash.avg_price * 100, 2))
        if await dryer.schedule.async_schedule_at(plan.dry.start):
            await dryer.store.async_set(KEY_AVG_PRICE, round(plan.dry.avg_price * 100, 2))

        await self.notifier.async_notify(
            f"Program planned ({'back-to-back' if plan.combined else 'separate windows'}):\n"
            f"Washer: {format_local(plan.wash.start)}\n"
            f"Dryer ({dryer.name}): {format_local(plan.dry.start)}\n"
            f"Avg. price: {plan.avg_price * 100:.2f} ct/kWh"
        )
        return plan

    async def async_set_start(self, start: datetime, schedule: bool = True) -> bool:
        """Set the start time, scheduling it unless told otherwise."""
        if schedule:
            return await self.schedule.async_schedule_at(start)
        await self.schedule.async_cancel(notify=False)
        await self.store.async_set(KEY_START_TIME, dt_util.as_utc(start).isoformat())
        return True

    def state_attributes(self) -> dict[str, Any]:
        """Return diagnostic attributes for the status sensor."""
        attrs: dict[str, Any] = {
            "power_entity": self._power_entity,
            "appliance_type": self._appliance_type,
            "scheduled": self.is_scheduled,
            "automatic_start_in_progress": self.engine.automatic_start_in_progress,
            "timers": [str(purpose) for purpose in self.timers.armed],
        }
        started = self.run_started_at
        if self.is_running and started:
            attrs["run_started_at"] = started.isoformat()
        if self.engine.last_finish_at:
            attrs["last_finished"] = self.engine.last_finish_at.isoformat()
        start = parse_instant(self.store.get(KEY_START_TIME))
        if start:
            attrs["start_time"] = start.isoformat()
        return attrs


def async_get_controllers(hass: HomeAssistant) -> list[ApplianceController]:
    """Return the controllers of all loaded appliance entries."""
    return [
        entry.runtime_data
        for entry in hass.config_entries.async_entries(DOMAIN)
        if entry.state is ConfigEntryState.LOADED
        and isinstance(getattr(entry, "runtime_data", None), ApplianceController)
    ]
