"""Sensor platform for Smart Appliances."""
from __future__ import annotations

from datetime import datetime

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorStateClass,
)
from homeassistant.const import UnitOfPower, UnitOfTime
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.util import dt as dt_util

from . import SmartAppliancesConfigEntry
from .coordinator import ApplianceController
from .entity import SmartApplianceEntity
from .models import DetectionPhase

STATUS_SCHEDULED = "scheduled"


async def async_setup_entry(
    hass: HomeAssistant,
    entry: SmartAppliancesConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Smart Appliances sensors."""
    controller: ApplianceController = entry.runtime_data
    async_add_entities([
        ApplianceStatusSensor(controller, entry, "status"),
        AppliancePowerSensor(controller, entry, "power"),
        PlannedStartSensor(controller, entry, "planned_start"),
        AveragePriceSensor(controller, entry, "average_price"),
        RuntimeSensor(controller, entry, "runtime"),
    ])


class ApplianceStatusSensor(SmartApplianceEntity, SensorEntity):
    """Sensor showing the current appliance status."""

    _attr_translation_key = "appliance_status"
    _attr_icon = "mdi:state-machine"
    _attr_device_class = SensorDeviceClass.ENUM
    _attr_options = [*(phase.value for phase in DetectionPhase), STATUS_SCHEDULED]

    @property
    def native_value(self) -> str:
        """Return the current status."""
        phase = self._controller.phase
        if phase is DetectionPhase.IDLE and self._controller.is_scheduled:
            return STATUS_SCHEDULED
        return phase.value

    @property
    def extra_state_attributes(self) -> dict:
        """Return additional attributes."""
        return self._controller.state_attributes()


class AppliancePowerSensor(SmartApplianceEntity, SensorEntity):
    """Sensor showing the current power consumption."""

    _attr_translation_key = "current_power"
    _attr_icon = "mdi:flash"
    _attr_device_class = SensorDeviceClass.POWER
    _attr_state_class = SensorStateClass.MEASUREMENT
    _attr_native_unit_of_measurement = UnitOfPower.WATT

    @property
    def native_value(self) -> float | None:
        """Return current power."""
        return self._controller.current_power


class PlannedStartSensor(SmartApplianceEntity, SensorEntity):
    """Sensor showing the pending scheduled start."""

    _attr_translation_key = "planned_start"
    _attr_icon = "mdi:clock-start"
    _attr_device_class = SensorDeviceClass.TIMESTAMP

    @property
    def native_value(self) -> datetime | None:
        """Return the scheduled start, None if nothing is scheduled."""
        if not self._controller.is_scheduled:
            return None
        return self._controller.start_time


class AveragePriceSensor(SmartApplianceEntity, SensorEntity):
    """Sensor showing the average price of the last planned window."""

    _attr_translation_key = "average_price"
    _attr_icon = "mdi:cash-clock"
    _attr_native_unit_of_measurement = "ct/kWh"
    _attr_suggested_display_precision = 2

    @property
    def native_value(self) -> float | None:
        """Return the average price in ct/kWh."""
        return self._controller.avg_price


class RuntimeSensor(SmartApplianceEntity, SensorEntity):
    """Sensor showing run duration: live elapsed time when running, last run otherwise."""

    _attr_translation_key = "runtime"
    _attr_icon = "mdi:timer-outline"
    _attr_native_unit_of_measurement = UnitOfTime.MINUTES
    _attr_device_class = SensorDeviceClass.DURATION
    _attr_state_class = SensorStateClass.MEASUREMENT

    @property
    def native_value(self) -> float | None:
        """Return live elapsed time when running, or the last runtime."""
        started = self._controller.run_started_at
        if self._controller.is_running and started is not None:
            elapsed = (dt_util.utcnow() - started).total_seconds()
            return round(elapsed / 60, 1)
        if self._controller.last_runtime is not None:
            return round(self._controller.last_runtime / 60, 1)
        return None
