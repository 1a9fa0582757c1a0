"""Fixtures for testing."""
from datetime import datetime, timedelta

import pytest
from pytest_homeassistant_custom_component.common import (
    MockConfigEntry,
    async_fire_time_changed,
    async_mock_service,
)

from homeassistant.core import HomeAssistant
from homeassistant.setup import async_setup_component
from homeassistant.util import dt as dt_util

from custom_components.smart_appliances.const import (
    APPLIANCE_DISHWASHER,
    CONF_APPLIANCE_NAME,
    CONF_APPLIANCE_TYPE,
    CONF_NOTIFY_SERVICE,
    CONF_POWER_ENTITY,
    CONF_PRICE_ENTITY,
    CONF_SWITCH_ENTITY,
    DOMAIN,
)

POWER_ENTITY = "sensor.dishwasher_plug_power"
SWITCH_ENTITY = "input_boolean.dishwasher_plug"
PRICE_ENTITY = "sensor.electricity_price"
NOTIFY_SERVICE = "notify.mobile_app_phone"
ENTRY_ID = "dishwasher_entry"

# Fixed "now" for timer-driven tests: 10:00 UTC
START = datetime(2026, 3, 10, 10, 0, tzinfo=dt_util.UTC)


def hourly_prices(first_hour: datetime, values: list[float]) -> list[dict]:
    """Build Tibber-style price entries, one per hour."""
    return [
        {
            "startsAt": (first_hour + timedelta(hours=index)).isoformat(),
            "total": value,
        }
        for index, value in enumerate(values)
    ]


def set_prices(hass: HomeAssistant, first_hour: datetime, values: list[float]) -> None:
    """Publish prices on the price sensor."""
    hass.states.async_set(
        PRICE_ENTITY,
        str(values[0]),
        {"today": hourly_prices(first_hour, values), "tomorrow": []},
    )


def set_power(hass: HomeAssistant, watts: float) -> None:
    """Publish a power reading."""
    hass.states.async_set(
        POWER_ENTITY, str(watts), {"unit_of_measurement": "W", "device_class": "power"}
    )


async def advance(hass: HomeAssistant, freezer, delta: timedelta) -> None:
    """Move the clock forward and run whatever became due."""
    freezer.tick(delta)
    async_fire_time_changed(hass)
    await hass.async_block_till_done()


def dishwasher_data(**overrides) -> dict:
    """Config entry data of the test dishwasher."""
    data = {
        CONF_APPLIANCE_NAME: "Dishwasher",
        CONF_APPLIANCE_TYPE: APPLIANCE_DISHWASHER,
        CONF_POWER_ENTITY: POWER_ENTITY,
        CONF_SWITCH_ENTITY: SWITCH_ENTITY,
        CONF_PRICE_ENTITY: PRICE_ENTITY,
        CONF_NOTIFY_SERVICE: NOTIFY_SERVICE,
    }
    data.update(overrides)
    return data


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations):
    """Enable custom integrations defined in the test dir."""
    yield


@pytest.fixture
def expected_lingering_timers() -> bool:
    """Allow timers armed by the components under test to outlive the test."""
    return True


@pytest.fixture
def notify_calls(hass: HomeAssistant):
    """Capture notifications."""
    return async_mock_service(hass, "notify", "mobile_app_phone")


@pytest.fixture
async def plug(hass: HomeAssistant):
    """Set up the smart plug the appliance is wired to (starts on)."""
    assert await async_setup_component(
        hass, "input_boolean", {"input_boolean": {"dishwasher_plug": {"initial": True}}}
    )
    await hass.async_block_till_done()
    return SWITCH_ENTITY


@pytest.fixture
def mock_config_entry() -> MockConfigEntry:
    """Mock a dishwasher config entry."""
    return MockConfigEntry(
        domain=DOMAIN,
        title="Dishwasher",
        data=dishwasher_data(),
        entry_id=ENTRY_ID,
        unique_id=POWER_ENTITY,
    )


@pytest.fixture
async def setup_integration(
    hass: HomeAssistant, freezer, plug, notify_calls, mock_config_entry
):
    """Set up the dishwasher at a fixed time with idle power and flat prices."""
    freezer.move_to(START)
    set_power(hass, 0.0)
    set_prices(hass, START, [0.30] * 24)

    mock_config_entry.add_to_hass(hass)
    assert await hass.config_entries.async_setup(mock_config_entry.entry_id)
    await hass.async_block_till_done()
    yield mock_config_entry

    await hass.config_entries.async_unload(mock_config_entry.entry_id)
    await hass.async_block_till_done()
