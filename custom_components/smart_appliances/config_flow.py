"""Config flow for Smart Appliances."""
from __future__ import annotations

from typing import Any

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback
from homeassistant.helpers import selector

from .const import (
    APPLIANCE_TYPES,
    APPLIANCE_WASHING_MACHINE,
    CONF_APPLIANCE_NAME,
    CONF_APPLIANCE_TYPE,
    CONF_INTERCEPT_MANUAL_START,
    CONF_NOTIFY_SERVICE,
    CONF_POWER_ENTITY,
    CONF_PRESS_ENTITY,
    CONF_PRICE_ENTITY,
    CONF_SWITCH_ENTITY,
    CONF_TODO_ENTITY,
    DOMAIN,
    MAX_DURATION_MINUTES,
    MIN_DURATION_MINUTES,
    OPT_PROGRAMS,
    PROGRAM_DURATION,
    PROGRAM_NAME,
    PROGRAM_WITH_DRYER,
)

OPTIONAL_ENTITIES = (
    CONF_SWITCH_ENTITY,
    CONF_PRESS_ENTITY,
    CONF_PRICE_ENTITY,
    CONF_TODO_ENTITY,
)


class SmartAppliancesConfigFlow(
    config_entries.ConfigFlow, domain=DOMAIN
):
    """Handle a config flow for Smart Appliances."""

    VERSION = 1

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: config_entries.ConfigEntry,
    ) -> SmartAppliancesOptionsFlow:
        """Get the options flow for this handler."""
        return SmartAppliancesOptionsFlow()

    @classmethod
    @callback
    def async_supports_options_flow(
        cls, config_entry: config_entries.ConfigEntry
    ) -> bool:
        """Only washing machines have programs to manage."""
        return config_entry.data.get(CONF_APPLIANCE_TYPE) == APPLIANCE_WASHING_MACHINE

    async def async_step_user(
        self, user_input: dict | None = None
    ) -> config_entries.ConfigFlowResult:
        """Handle the initial step."""
        errors: dict[str, str] = {}

        if user_input is not None:
            # Validate that the configured entities exist
            for key in (CONF_POWER_ENTITY, *OPTIONAL_ENTITIES):
                entity_id = user_input.get(key)
                if entity_id and self.hass.states.get(entity_id) is None:
                    errors[key] = "entity_not_found"

            notify_service = user_input.get(CONF_NOTIFY_SERVICE)
            if notify_service and "." not in notify_service:
                errors[CONF_NOTIFY_SERVICE] = "invalid_notify_service"

            if not errors:
                # Check for duplicate entries with same power entity
                await self.async_set_unique_id(user_input[CONF_POWER_ENTITY])
                self._abort_if_unique_id_configured()

                name = user_input[CONF_APPLIANCE_NAME]
                return self.async_create_entry(
                    title=name,
                    data=user_input,
                )

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_APPLIANCE_NAME): str,
                    vol.Required(CONF_APPLIANCE_TYPE): selector.SelectSelector(
                        selector.SelectSelectorConfig(
                            options=APPLIANCE_TYPES,
                            translation_key=CONF_APPLIANCE_TYPE,
                            mode=selector.SelectSelectorMode.DROPDOWN,
                        ),
                    ),
                    vol.Required(CONF_POWER_ENTITY): selector.EntitySelector(
                        selector.EntitySelectorConfig(
                            domain="sensor",
                            device_class="power",
                            multiple=False,
                        ),
                    ),
                    vol.Optional(CONF_SWITCH_ENTITY): selector.EntitySelector(
                        selector.EntitySelectorConfig(domain=["switch", "input_boolean"]),
                    ),
                    vol.Optional(CONF_PRESS_ENTITY): selector.EntitySelector(
                        selector.EntitySelectorConfig(domain=["button", "switch", "script"]),
                    ),
                    vol.Optional(CONF_PRICE_ENTITY): selector.EntitySelector(
                        selector.EntitySelectorConfig(domain="sensor"),
                    ),
                    vol.Optional(CONF_NOTIFY_SERVICE): str,
                    vol.Optional(CONF_TODO_ENTITY): selector.EntitySelector(
                        selector.EntitySelectorConfig(domain="todo"),
                    ),
                    vol.Optional(CONF_INTERCEPT_MANUAL_START): bool,
                }
            ),
            errors=errors,
        )


class SmartAppliancesOptionsFlow(config_entries.OptionsFlow):
    """Manage the washing programs of a washing machine."""

    def _programs(self) -> list[dict[str, Any]]:
        return list(self.config_entry.options.get(OPT_PROGRAMS, []))

    def _async_save(
        self, programs: list[dict[str, Any]]
    ) -> config_entries.ConfigFlowResult:
        # Keep the values written by the number entities
        return self.async_create_entry(
            data={**self.config_entry.options, OPT_PROGRAMS: programs}
        )

    async def async_step_init(
        self, user_input: dict | None = None
    ) -> config_entries.ConfigFlowResult:
        """Choose whether to add or remove a program."""
        menu_options = ["add_program"]
        if self._programs():
            menu_options.append("remove_program")
        return self.async_show_menu(step_id="init", menu_options=menu_options)

    async def async_step_add_program(
        self, user_input: dict | None = None
    ) -> config_entries.ConfigFlowResult:
        """Add a named washing program."""
        errors: dict[str, str] = {}
        programs = self._programs()

        if user_input is not None:
            name = user_input[PROGRAM_NAME].strip()
            if not name:
                errors[PROGRAM_NAME] = "program_name_required"
            elif any(p[PROGRAM_NAME].lower() == name.lower() for p in programs):
                errors[PROGRAM_NAME] = "program_exists"
            else:
                programs.append(
                    {
                        PROGRAM_NAME: name,
                        PROGRAM_DURATION: int(user_input[PROGRAM_DURATION]),
                        PROGRAM_WITH_DRYER: user_input[PROGRAM_WITH_DRYER],
                    }
                )
                return self._async_save(programs)

        return self.async_show_form(
            step_id="add_program",
            data_schema=vol.Schema(
                {
                    vol.Required(PROGRAM_NAME): str,
                    vol.Required(PROGRAM_DURATION): selector.NumberSelector(
                        selector.NumberSelectorConfig(
                            min=MIN_DURATION_MINUTES,
                            max=MAX_DURATION_MINUTES,
                            step=5,
                            unit_of_measurement="min",
                            mode=selector.NumberSelectorMode.BOX,
                        ),
                    ),
                    vol.Required(PROGRAM_WITH_DRYER, default=False): bool,
                }
            ),
            errors=errors,
        )

    async def async_step_remove_program(
        self, user_input: dict | None = None
    ) -> config_entries.ConfigFlowResult:
        """Remove a washing program."""
        programs = self._programs()

        if user_input is not None:
            return self._async_save(
                [p for p in programs if p[PROGRAM_NAME] != user_input[PROGRAM_NAME]]
            )

        return self.async_show_form(
            step_id="remove_program",
            data_schema=vol.Schema(
                {
                    vol.Required(PROGRAM_NAME): selector.SelectSelector(
                        selector.SelectSelectorConfig(
                            options=[p[PROGRAM_NAME] for p in programs],
                            mode=selector.SelectSelectorMode.DROPDOWN,
                        ),
                    ),
                }
            ),
        )
