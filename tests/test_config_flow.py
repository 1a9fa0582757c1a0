"""Test the config flow."""
from unittest.mock import patch

import pytest
from pytest_homeassistant_custom_component.common import MockConfigEntry

from homeassistant import config_entries, data_entry_flow
from homeassistant.core import HomeAssistant

from custom_components.smart_appliances.config_flow import SmartAppliancesConfigFlow
from custom_components.smart_appliances.const import DOMAIN

POWER = "sensor.washer_plug_power"


@pytest.fixture
def power_sensor(hass: HomeAssistant) -> str:
    """A power sensor to monitor."""
    hass.states.async_set(POWER, "0.0", {"device_class": "power"})
    return POWER


async def test_form_step_user(hass: HomeAssistant):
    """Test we get the form."""
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )
    assert result["type"] == data_entry_flow.FlowResultType.FORM
    assert result["step_id"] == "user"
    assert result["errors"] == {}


async def test_create_entry(hass: HomeAssistant, power_sensor):
    """A valid appliance creates an entry titled with its name."""
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )

    with patch(
        "custom_components.smart_appliances.async_setup_entry",
        return_value=True,
    ) as mock_setup_entry:
        result2 = await hass.config_entries.flow.async_configure(
            result["flow_id"],
            {
                "appliance_name": "Washer",
                "appliance_type": "washing_machine",
                "power_entity": power_sensor,
                "notify_service": "notify.mobile_app_phone",
            },
        )
        await hass.async_block_till_done()

    assert result2["type"] == data_entry_flow.FlowResultType.CREATE_ENTRY
    assert result2["title"] == "Washer"
    assert result2["data"] == {
        "appliance_name": "Washer",
        "appliance_type": "washing_machine",
        "power_entity": POWER,
        "notify_service": "notify.mobile_app_phone",
    }
    assert result2["result"].unique_id == POWER
    assert len(mock_setup_entry.mock_calls) == 1


async def test_missing_entities_are_reported(hass: HomeAssistant, power_sensor):
    """Entities that do not exist are flagged per field."""
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )

    result2 = await hass.config_entries.flow.async_configure(
        result["flow_id"],
        {
            "appliance_name": "Washer",
            "appliance_type": "washing_machine",
            "power_entity": "sensor.does_not_exist",
            "switch_entity": "switch.does_not_exist",
            "notify_service": "mobile_app_phone",
        },
    )

    assert result2["type"] == data_entry_flow.FlowResultType.FORM
    assert result2["errors"] == {
        "power_entity": "entity_not_found",
        "switch_entity": "entity_not_found",
        "notify_service": "invalid_notify_service",
    }


async def test_duplicate_power_sensor_aborts(hass: HomeAssistant, power_sensor):
    """The same power sensor cannot be monitored twice."""
    MockConfigEntry(domain=DOMAIN, unique_id=POWER, data={}).add_to_hass(hass)
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )

    result2 = await hass.config_entries.flow.async_configure(
        result["flow_id"],
        {
            "appliance_name": "Washer",
            "appliance_type": "washing_machine",
            "power_entity": power_sensor,
        },
    )

    assert result2["type"] == data_entry_flow.FlowResultType.ABORT
    assert result2["reason"] == "already_configured"


@pytest.fixture
def washer_entry(hass: HomeAssistant) -> MockConfigEntry:
    """A washing machine entry with a tuned option and one program."""
    entry = MockConfigEntry(
        domain=DOMAIN,
        unique_id=POWER,
        data={
            "appliance_name": "Washer",
            "appliance_type": "washing_machine",
            "power_entity": POWER,
        },
        options={
            "min_runtime": 25,
            "programs": [{"name": "Quick 30", "duration": 30, "with_dryer": False}],
        },
    )
    entry.add_to_hass(hass)
    return entry


async def test_options_add_program(hass: HomeAssistant, washer_entry):
    """Programs are appended without touching the other options."""
    result = await hass.config_entries.options.async_init(washer_entry.entry_id)
    assert result["type"] == data_entry_flow.FlowResultType.MENU
    assert result["menu_options"] == ["add_program", "remove_program"]

    result = await hass.config_entries.options.async_configure(
        result["flow_id"], {"next_step_id": "add_program"}
    )
    assert result["type"] == data_entry_flow.FlowResultType.FORM

    result = await hass.config_entries.options.async_configure(
        result["flow_id"],
        {"name": "Cotton 60", "duration": 150, "with_dryer": True},
    )

    assert result["type"] == data_entry_flow.FlowResultType.CREATE_ENTRY
    assert washer_entry.options == {
        "min_runtime": 25,
        "programs": [
            {"name": "Quick 30", "duration": 30, "with_dryer": False},
            {"name": "Cotton 60", "duration": 150, "with_dryer": True},
        ],
    }


async def test_options_duplicate_program_name(hass: HomeAssistant, washer_entry):
    """Program names are unique, ignoring case."""
    result = await hass.config_entries.options.async_init(washer_entry.entry_id)
    result = await hass.config_entries.options.async_configure(
        result["flow_id"], {"next_step_id": "add_program"}
    )

    result = await hass.config_entries.options.async_configure(
        result["flow_id"],
        {"name": "quick 30", "duration": 45, "with_dryer": False},
    )

    assert result["type"] == data_entry_flow.FlowResultType.FORM
    assert result["errors"] == {"name": "program_exists"}


async def test_options_remove_program(hass: HomeAssistant, washer_entry):
    """A program can be removed by name."""
    result = await hass.config_entries.options.async_init(washer_entry.entry_id)
    result = await hass.config_entries.options.async_configure(
        result["flow_id"], {"next_step_id": "remove_program"}
    )

    result = await hass.config_entries.options.async_configure(
        result["flow_id"], {"name": "Quick 30"}
    )

    assert result["type"] == data_entry_flow.FlowResultType.CREATE_ENTRY
    assert washer_entry.options == {"min_runtime": 25, "programs": []}


async def test_options_only_for_washing_machines(hass: HomeAssistant, washer_entry):
    """Other appliance types have no programs to manage."""
    dryer_entry = MockConfigEntry(
        domain=DOMAIN,
        data={"appliance_name": "Dryer", "appliance_type": "dryer"},
    )

    assert SmartAppliancesConfigFlow.async_supports_options_flow(washer_entry)
    assert not SmartAppliancesConfigFlow.async_supports_options_flow(dryer_entry)
