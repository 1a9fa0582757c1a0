"""Test the appliance entities."""
from datetime import timedelta

from homeassistant.const import STATE_OFF, STATE_ON
from homeassistant.core import HomeAssistant
from homeassistant.helpers import entity_registry as er

from custom_components.smart_appliances.const import DOMAIN

from .conftest import ENTRY_ID, START, set_power, set_prices

CHEAP_LATER = [0.30, 0.30, 0.30, 0.10, 0.10, 0.10] + [0.30] * 18


def _entity_id(hass: HomeAssistant, platform: str, key: str) -> str:
    entity_id = er.async_get(hass).async_get_entity_id(platform, DOMAIN, f"{ENTRY_ID}_{key}")
    assert entity_id is not None, f"{platform} {key} not created"
    return entity_id


async def test_entities_created(hass: HomeAssistant, setup_integration):
    """Every platform contributes its entities with their initial state."""
    assert hass.states.get(_entity_id(hass, "sensor", "status")).state == "idle"
    assert float(hass.states.get(_entity_id(hass, "sensor", "power")).state) == 0.0
    assert hass.states.get(_entity_id(hass, "binary_sensor", "running")).state == STATE_OFF
    assert (
        hass.states.get(_entity_id(hass, "binary_sensor", "manual_start_detected")).state
        == STATE_OFF
    )
    assert hass.states.get(_entity_id(hass, "switch", "scheduled")).state == STATE_OFF
    assert hass.states.get(_entity_id(hass, "button", "plan_optimal_start")) is not None
    assert hass.states.get(_entity_id(hass, "datetime", "start_time")) is not None
    assert float(hass.states.get(_entity_id(hass, "number", "power_threshold")).state) == 0.5


async def test_number_entities_follow_appliance_type(hass: HomeAssistant, setup_integration):
    """The dishwasher gets the dry reminder but no dryer settings."""
    registry = er.async_get(hass)

    assert registry.async_get_entity_id("number", DOMAIN, f"{ENTRY_ID}_dry_reminder")
    assert registry.async_get_entity_id("number", DOMAIN, f"{ENTRY_ID}_dryer_duration") is None
    assert registry.async_get_entity_id("number", DOMAIN, f"{ENTRY_ID}_transfer_buffer") is None


async def test_number_updates_controller_and_options(hass: HomeAssistant, setup_integration):
    """Changing a number applies it and persists it in the entry options."""
    controller = setup_integration.runtime_data
    entity_id = _entity_id(hass, "number", "power_threshold")

    await hass.services.async_call(
        "number", "set_value", {"entity_id": entity_id, "value": 2.5}, blocking=True
    )

    assert controller.engine.settings.power_threshold == 2.5
    assert setup_integration.options["power_threshold"] == 2.5
    assert float(hass.states.get(entity_id).state) == 2.5

    # 1 W is now below the threshold
    set_power(hass, 1.0)
    await hass.async_block_till_done()
    assert hass.states.get(_entity_id(hass, "sensor", "status")).state == "idle"


async def test_schedule_switch_needs_start_time(hass: HomeAssistant, setup_integration):
    """Turning on the switch without a start time is refused."""
    switch_id = _entity_id(hass, "switch", "scheduled")

    await hass.services.async_call(
        "switch", "turn_on", {"entity_id": switch_id}, blocking=True
    )
    await hass.async_block_till_done()

    assert hass.states.get(switch_id).state == STATE_OFF
    assert not setup_integration.runtime_data.is_scheduled


async def test_datetime_and_switch_schedule_a_start(hass: HomeAssistant, setup_integration):
    """Editing the start time and switching on arms the schedule."""
    controller = setup_integration.runtime_data
    datetime_id = _entity_id(hass, "datetime", "start_time")
    switch_id = _entity_id(hass, "switch", "scheduled")
    start = START + timedelta(hours=6)

    await hass.services.async_call(
        "datetime",
        "set_value",
        {"entity_id": datetime_id, "datetime": start.isoformat()},
        blocking=True,
    )
    await hass.async_block_till_done()

    assert controller.start_time == start
    assert not controller.is_scheduled
    assert hass.states.get(_entity_id(hass, "sensor", "planned_start")).state == "unknown"

    await hass.services.async_call(
        "switch", "turn_on", {"entity_id": switch_id}, blocking=True
    )
    await hass.async_block_till_done()

    assert controller.is_scheduled
    assert hass.states.get(switch_id).state == STATE_ON
    assert hass.states.get(_entity_id(hass, "sensor", "status")).state == "scheduled"
    assert hass.states.get(_entity_id(hass, "sensor", "planned_start")).state == start.isoformat()

    await hass.services.async_call(
        "switch", "turn_off", {"entity_id": switch_id}, blocking=True
    )
    await hass.async_block_till_done()

    assert not controller.is_scheduled
    assert not controller.timers.armed


async def test_plan_button(hass: HomeAssistant, setup_integration):
    """Pressing the button plans the cheapest start."""
    controller = setup_integration.runtime_data
    set_prices(hass, START, CHEAP_LATER)

    await hass.services.async_call(
        "button",
        "press",
        {"entity_id": _entity_id(hass, "button", "plan_optimal_start")},
        blocking=True,
    )
    await hass.async_block_till_done()

    assert controller.start_time == START + timedelta(hours=3)
    assert float(hass.states.get(_entity_id(hass, "sensor", "average_price")).state) == 10.0
