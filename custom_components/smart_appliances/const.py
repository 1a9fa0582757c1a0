"""Constants for the Smart Appliances integration."""

from datetime import timedelta

DOMAIN = "smart_appliances"

# Config entry keys
CONF_APPLIANCE_NAME = "appliance_name"
CONF_APPLIANCE_TYPE = "appliance_type"
CONF_POWER_ENTITY = "power_entity"
CONF_SWITCH_ENTITY = "switch_entity"
CONF_PRESS_ENTITY = "press_entity"
CONF_PRICE_ENTITY = "price_entity"
CONF_NOTIFY_SERVICE = "notify_service"
CONF_TODO_ENTITY = "todo_entity"
CONF_INTERCEPT_MANUAL_START = "intercept_manual_start"

# Appliance types
APPLIANCE_DISHWASHER = "dishwasher"
APPLIANCE_WASHING_MACHINE = "washing_machine"
APPLIANCE_DRYER = "dryer"
APPLIANCE_TYPES = [APPLIANCE_DISHWASHER, APPLIANCE_WASHING_MACHINE, APPLIANCE_DRYER]

# Tunable option keys (number entities, persisted in entry.options)
OPT_POWER_THRESHOLD = "power_threshold"
OPT_DETECT_TIME = "detect_time"
OPT_MIN_RUNTIME = "min_runtime"
OPT_ZERO_GRACE = "zero_grace"
OPT_POST_CONFIRM = "post_confirm"
OPT_COOLDOWN = "cooldown"
OPT_DRY_REMINDER = "dry_reminder"
OPT_PROGRAM_DURATION = "program_duration"
OPT_DRYER_DURATION = "dryer_duration"
OPT_TRANSFER_BUFFER = "transfer_buffer"

# Washing programs (list in entry.options, edited in the options flow)
OPT_PROGRAMS = "programs"
PROGRAM_NAME = "name"
PROGRAM_DURATION = "duration"
PROGRAM_WITH_DRYER = "with_dryer"

# Default values
DEFAULT_POWER_THRESHOLD = 0.5        # Watts
DEFAULT_DETECT_TIME = 10             # seconds
DEFAULT_MIN_RUNTIME = 110            # minutes
DEFAULT_ZERO_GRACE = 10              # minutes
DEFAULT_POST_CONFIRM = 2             # minutes
DEFAULT_COOLDOWN = 10                # minutes
DEFAULT_DRY_REMINDER = 45            # minutes
DEFAULT_PROGRAM_DURATION = 120       # minutes
DEFAULT_DRYER_DURATION = 180         # minutes
DEFAULT_TRANSFER_BUFFER = 15         # minutes

# Per-type overrides of the defaults above
TYPE_DEFAULTS: dict[str, dict[str, float]] = {
    APPLIANCE_DISHWASHER: {},
    APPLIANCE_WASHING_MACHINE: {
        OPT_MIN_RUNTIME: 20,
        OPT_ZERO_GRACE: 2,
        OPT_POST_CONFIRM: 1,
        OPT_PROGRAM_DURATION: 150,
    },
    APPLIANCE_DRYER: {
        OPT_MIN_RUNTIME: 30,
        OPT_ZERO_GRACE: 5,
        OPT_POST_CONFIRM: 1,
        OPT_PROGRAM_DURATION: DEFAULT_DRYER_DURATION,
    },
}

# Manual-start interception is only on by default for the dishwasher
DEFAULT_INTERCEPT = {
    APPLIANCE_DISHWASHER: True,
    APPLIANCE_WASHING_MACHINE: False,
    APPLIANCE_DRYER: False,
}

# Number entity limits
MIN_POWER_THRESHOLD = 0.1
MAX_POWER_THRESHOLD = 100.0
MIN_DETECT_TIME = 1
MAX_DETECT_TIME = 300
MIN_RUNTIME_MINUTES = 0
MAX_RUNTIME_MINUTES = 300
MIN_GRACE_MINUTES = 0
MAX_GRACE_MINUTES = 60
MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 600

# Fixed timings
SAMPLE_INTERVAL = timedelta(seconds=30)
SUPPRESS_MANUAL_DETECTION = timedelta(seconds=30)
PRESS_DELAY = timedelta(seconds=5)
MANUAL_RESTART_MARGIN = timedelta(minutes=1)
RESTORE_HORIZON = timedelta(hours=48)

# Persisted state keys (scoped per appliance as "<appliance>.<key>")
KEY_RUNNING = "running"
KEY_SCHEDULED = "scheduled"
KEY_START_TIME = "startTime"
KEY_RUN_STARTED_AT = "runStartedAt"
KEY_RUNTIME = "runtime"
KEY_AVG_PRICE = "avgPrice"
KEY_START_DETECTED = "startDetected"
KEY_TASK_ITEM = "taskItem"

STORAGE_VERSION = 1

# Integration actions
SERVICE_SET_START = "set_start"
SERVICE_PLAN_OPTIMAL_START = "plan_optimal_start"
SERVICE_PLAN_PROGRAM = "plan_program"
SERVICE_CANCEL_SCHEDULE = "cancel_schedule"

ATTR_APPLIANCE = "appliance"
ATTR_START = "start"
ATTR_SCHEDULE = "schedule"
ATTR_DURATION = "duration"
ATTR_WITH_DRYER = "with_dryer"
ATTR_DRYER_DURATION = "dryer_duration"
ATTR_PROGRAM = "program"

# Events
EVENT_MANUAL_START = "smart_appliances_manual_start"
EVENT_APPLIANCE_FINISHED = "smart_appliances_finished"

# Platform keys
PLATFORMS = ["sensor", "binary_sensor", "number", "switch", "datetime", "button"]
