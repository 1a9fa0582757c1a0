"""Number platform for Smart Appliances."""
from __future__ import annotations

from dataclasses import dataclass

from homeassistant.components.number import (
    NumberDeviceClass,
    NumberEntity,
    NumberEntityDescription,
    NumberMode,
)
from homeassistant.const import EntityCategory, UnitOfPower, UnitOfTime
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from . import SmartAppliancesConfigEntry
from .const import (
    APPLIANCE_DISHWASHER,
    APPLIANCE_WASHING_MACHINE,
    MAX_DETECT_TIME,
    MAX_DURATION_MINUTES,
    MAX_GRACE_MINUTES,
    MAX_POWER_THRESHOLD,
    MAX_RUNTIME_MINUTES,
    MIN_DETECT_TIME,
    MIN_DURATION_MINUTES,
    MIN_GRACE_MINUTES,
    MIN_POWER_THRESHOLD,
    MIN_RUNTIME_MINUTES,
    OPT_COOLDOWN,
    OPT_DETECT_TIME,
    OPT_DRY_REMINDER,
    OPT_DRYER_DURATION,
    OPT_MIN_RUNTIME,
    OPT_POST_CONFIRM,
    OPT_POWER_THRESHOLD,
    OPT_PROGRAM_DURATION,
    OPT_TRANSFER_BUFFER,
    OPT_ZERO_GRACE,
)
from .coordinator import ApplianceController
from .entity import SmartApplianceEntity


@dataclass(frozen=True)
class ApplianceNumberDescription(NumberEntityDescription):
    """Describe an appliance number entity."""

    # Empty means every appliance type
    appliance_types: tuple[str, ...] = ()


def _minutes(
    key: str,
    icon: str,
    min_value: float,
    max_value: float,
    step: float = 1,
    appliance_types: tuple[str, ...] = (),
) -> ApplianceNumberDescription:
    return ApplianceNumberDescription(
        key=key,
        translation_key=key,
        icon=icon,
        native_min_value=min_value,
        native_max_value=max_value,
        native_step=step,
        native_unit_of_measurement=UnitOfTime.MINUTES,
        mode=NumberMode.BOX,
        entity_category=EntityCategory.CONFIG,
        appliance_types=appliance_types,
    )


NUMBER_DESCRIPTIONS: tuple[ApplianceNumberDescription, ...] = (
    ApplianceNumberDescription(
        key=OPT_POWER_THRESHOLD,
        translation_key=OPT_POWER_THRESHOLD,
        icon="mdi:flash-alert-outline",
        native_min_value=MIN_POWER_THRESHOLD,
        native_max_value=MAX_POWER_THRESHOLD,
        native_step=0.1,
        native_unit_of_measurement=UnitOfPower.WATT,
        device_class=NumberDeviceClass.POWER,
        mode=NumberMode.BOX,
        entity_category=EntityCategory.CONFIG,
    ),
    ApplianceNumberDescription(
        key=OPT_DETECT_TIME,
        translation_key=OPT_DETECT_TIME,
        icon="mdi:timer-sand",
        native_min_value=MIN_DETECT_TIME,
        native_max_value=MAX_DETECT_TIME,
        native_step=1,
        native_unit_of_measurement=UnitOfTime.SECONDS,
        mode=NumberMode.BOX,
        entity_category=EntityCategory.CONFIG,
    ),
    _minutes(OPT_MIN_RUNTIME, "mdi:timer-lock", MIN_RUNTIME_MINUTES, MAX_RUNTIME_MINUTES),
    _minutes(OPT_ZERO_GRACE, "mdi:timer-check", MIN_GRACE_MINUTES, MAX_GRACE_MINUTES),
    _minutes(OPT_POST_CONFIRM, "mdi:timer-check-outline", MIN_GRACE_MINUTES, MAX_GRACE_MINUTES),
    _minutes(OPT_COOLDOWN, "mdi:timer-pause", MIN_GRACE_MINUTES, MAX_GRACE_MINUTES),
    _minutes(
        OPT_PROGRAM_DURATION,
        "mdi:timer-play",
        MIN_DURATION_MINUTES,
        MAX_DURATION_MINUTES,
        step=5,
    ),
    _minutes(
        OPT_DRY_REMINDER,
        "mdi:bell-ring",
        MIN_GRACE_MINUTES,
        MAX_RUNTIME_MINUTES,
        step=5,
        appliance_types=(APPLIANCE_DISHWASHER,),
    ),
    _minutes(
        OPT_DRYER_DURATION,
        "mdi:tumble-dryer",
        MIN_DURATION_MINUTES,
        MAX_DURATION_MINUTES,
        step=5,
        appliance_types=(APPLIANCE_WASHING_MACHINE,),
    ),
    _minutes(
        OPT_TRANSFER_BUFFER,
        "mdi:basket-unfill",
        MIN_GRACE_MINUTES,
        MAX_GRACE_MINUTES,
        step=5,
        appliance_types=(APPLIANCE_WASHING_MACHINE,),
    ),
)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: SmartAppliancesConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Smart Appliances number entities."""
    controller: ApplianceController = entry.runtime_data

    entities = [
        ApplianceNumberEntity(controller, entry, description)
        for description in NUMBER_DESCRIPTIONS
        if not description.appliance_types
        or controller.appliance_type in description.appliance_types
    ]
    async_add_entities(entities)


class ApplianceNumberEntity(SmartApplianceEntity, NumberEntity):
    """Number entity for tuning detection and planning."""

    entity_description: ApplianceNumberDescription

    def __init__(
        self,
        controller: ApplianceController,
        entry: SmartAppliancesConfigEntry,
        description: ApplianceNumberDescription,
    ) -> None:
        """Initialize the number entity."""
        super().__init__(controller, entry, description.key)
        self.entity_description = description

        # Options stored on the entry win over the type defaults
        self._attr_native_value = controller.option(description.key)

    async def async_set_native_value(self, value: float) -> None:
        """Update the value and apply it to the controller."""
        self._attr_native_value = value
        self._controller.set_option(self.entity_description.key, value)

        # Persist to config entry options
        entry = self._controller.entry
        new_options = dict(entry.options)
        new_options[self.entity_description.key] = value
        self.hass.config_entries.async_update_entry(entry, options=new_options)

        self.async_write_ha_state()
