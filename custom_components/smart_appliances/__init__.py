"""The Smart Appliances integration."""
from __future__ import annotations

import logging

import voluptuous as vol

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, ServiceCall
from homeassistant.exceptions import ServiceValidationError
from homeassistant.helpers import config_validation as cv

from .const import (
    APPLIANCE_WASHING_MACHINE,
    ATTR_APPLIANCE,
    ATTR_DRYER_DURATION,
    ATTR_DURATION,
    ATTR_PROGRAM,
    ATTR_SCHEDULE,
    ATTR_START,
    ATTR_WITH_DRYER,
    DOMAIN,
    PLATFORMS,
    PROGRAM_DURATION,
    PROGRAM_WITH_DRYER,
    SERVICE_CANCEL_SCHEDULE,
    SERVICE_PLAN_OPTIMAL_START,
    SERVICE_PLAN_PROGRAM,
    SERVICE_SET_START,
)
from .coordinator import ApplianceController, async_get_controllers
from .time_utils import parse_start_time

_LOGGER = logging.getLogger(__name__)

type SmartAppliancesConfigEntry = ConfigEntry[ApplianceController]

APPLIANCE_SCHEMA = vol.Schema({vol.Required(ATTR_APPLIANCE): cv.string})

SET_START_SCHEMA = APPLIANCE_SCHEMA.extend(
    {
        vol.Required(ATTR_START): cv.string,
        vol.Optional(ATTR_SCHEDULE, default=True): cv.boolean,
    }
)

PLAN_PROGRAM_SCHEMA = APPLIANCE_SCHEMA.extend(
    {
        vol.Exclusive(ATTR_PROGRAM, "program_length"): cv.string,
        vol.Exclusive(ATTR_DURATION, "program_length"): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
        vol.Optional(ATTR_WITH_DRYER): cv.boolean,
        vol.Optional(ATTR_DRYER_DURATION): vol.All(vol.Coerce(int), vol.Range(min=1)),
    }
)

PLAN_OPTIMAL_START_SCHEMA = APPLIANCE_SCHEMA.extend(
    {vol.Optional(ATTR_DURATION): vol.All(vol.Coerce(int), vol.Range(min=1))}
)


def _find_controller(hass: HomeAssistant, appliance: str) -> ApplianceController:
    """Find a loaded appliance by entry ID or (case-insensitive) name."""
    wanted = appliance.strip().lower()
    for controller in async_get_controllers(hass):
        if controller.entry.entry_id == appliance or controller.name.lower() == wanted:
            return controller
    raise ServiceValidationError(f"Appliance '{appliance}' not found")


def _async_register_services(hass: HomeAssistant) -> None:
    """Register the integration actions once."""
    if hass.services.has_service(DOMAIN, SERVICE_SET_START):
        return

    async def handle_set_start(call: ServiceCall) -> None:
        controller = _find_controller(hass, call.data[ATTR_APPLIANCE])
        start = parse_start_time(call.data[ATTR_START])
        if start is None:
            raise ServiceValidationError(
                f"Invalid start time '{call.data[ATTR_START]}' "
                "(expected HH:MM, dd.mm.yyyy HH:MM or ISO 8601)"
            )
        if not await controller.async_set_start(start, call.data[ATTR_SCHEDULE]):
            raise ServiceValidationError(
                f"{controller.name} is running - start time not scheduled"
            )
        _LOGGER.info(
            "Start time for %s set: %s (schedule=%s)",
            controller.name,
            start.isoformat(),
            call.data[ATTR_SCHEDULE],
        )

    async def handle_plan_optimal_start(call: ServiceCall) -> None:
        controller = _find_controller(hass, call.data[ATTR_APPLIANCE])
        await controller.async_plan_optimal_start(call.data.get(ATTR_DURATION))

    async def handle_plan_program(call: ServiceCall) -> None:
        controller = _find_controller(hass, call.data[ATTR_APPLIANCE])
        duration = call.data.get(ATTR_DURATION)
        with_dryer = call.data.get(ATTR_WITH_DRYER)

        name = call.data.get(ATTR_PROGRAM)
        if name is not None:
            program = controller.find_program(name)
            if program is None:
                raise ServiceValidationError(
                    f"Washing program '{name}' is not configured for {controller.name}"
                )
            duration = program[PROGRAM_DURATION]
            if with_dryer is None:
                with_dryer = program.get(PROGRAM_WITH_DRYER, False)
            _LOGGER.info(
                "Planning program '%s' for %s (%d min, dryer=%s)",
                name,
                controller.name,
                duration,
                with_dryer,
            )

        if with_dryer and controller.appliance_type != APPLIANCE_WASHING_MACHINE:
            raise ServiceValidationError(
                f"{controller.name} is not a washing machine - cannot chain a dryer"
            )
        await controller.async_plan_program(
            duration,
            bool(with_dryer),
            call.data.get(ATTR_DRYER_DURATION),
        )

    async def handle_cancel_schedule(call: ServiceCall) -> None:
        controller = _find_controller(hass, call.data[ATTR_APPLIANCE])
        await controller.schedule.async_cancel()

    hass.services.async_register(DOMAIN, SERVICE_SET_START, handle_set_start, SET_START_SCHEMA)
    hass.services.async_register(
        DOMAIN,
        SERVICE_PLAN_OPTIMAL_START,
        handle_plan_optimal_start,
        PLAN_OPTIMAL_START_SCHEMA,
    )
    hass.services.async_register(
        DOMAIN, SERVICE_PLAN_PROGRAM, handle_plan_program, PLAN_PROGRAM_SCHEMA
    )
    hass.services.async_register(
        DOMAIN, SERVICE_CANCEL_SCHEDULE, handle_cancel_schedule, APPLIANCE_SCHEMA
    )


async def async_setup_entry(
    hass: HomeAssistant, entry: SmartAppliancesConfigEntry
) -> bool:
    """Set up a Smart Appliances appliance from a config entry."""
    controller = ApplianceController(hass, entry)
    entry.runtime_data = controller

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    # Start monitoring after platforms are set up
    await controller.async_start()

    _async_register_services(hass)
    return True


async def async_unload_entry(
    hass: HomeAssistant, entry: SmartAppliancesConfigEntry
) -> bool:
    """Unload a config entry."""
    controller: ApplianceController = entry.runtime_data
    controller.async_stop()

    return await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
