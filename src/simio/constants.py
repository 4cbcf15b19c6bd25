"""
SimIO Constants - TigerStyle

All limits are explicit, named with units, big-endian naming convention.
Category comes first, specifics last: RETRY_DELAY_MS_BASE not BASE_RETRY_DELAY.
"""

# =============================================================================
# Retry Policy
# =============================================================================

RETRY_COUNT_MAX: int = 5  # Additional attempts after the first failure
RETRY_DELAY_MS_BASE: int = 10  # First backoff, doubled on every retry

# =============================================================================
# Pipeline
# =============================================================================

PIPELINE_VERIFY_EVERY_ITERATIONS: int = 5  # Read-back cadence
PIPELINE_VERIFY_ENTRIES_COUNT: int = 5  # Records compared on each read-back
PIPELINE_CONFIG_KEY: str = "config_key"
PIPELINE_RECORD_FORMAT: str = "Config: {config}, Message: {message}\n"

# =============================================================================
# External Endpoints (real mode defaults)
# =============================================================================

BROKER_GROUP_ID: str = "group_id"
BROKER_BOOTSTRAP_SERVERS: str = "localhost:9092"
BROKER_TOPIC: str = "dummy_topic"
BROKER_PARTITION: int = 0
BROKER_POLL_TIMEOUT_SECS: float = 1.0

KV_URL: str = "redis://127.0.0.1"

FILE_OUTPUT_PATH: str = "output.txt"

# =============================================================================
# File Limits
# =============================================================================

FILE_TAIL_CHUNK_BYTES: int = 1024  # Tail read granularity
FILE_SIZE_BYTES_MAX: int = 64 * 1024 * 1024  # Simulated file cap

# =============================================================================
# Simulation
# =============================================================================

SIM_FAULT_PROBABILITY_DEFAULT: float = 0.1
SIM_FAULT_PROBABILITY_MIN: float = 0.0
SIM_FAULT_PROBABILITY_MAX: float = 1.0

SIM_BROKER_FAILURES_MIN: int = 1  # Connect threshold drawn from [MIN, MAX)
SIM_BROKER_FAILURES_MAX: int = 5

SIM_BROKER_CONNECT_DELAY_MS: int = 50
SIM_BROKER_READ_DELAY_MS: int = 100
SIM_KV_CONNECT_DELAY_MS: int = 50
SIM_KV_READ_DELAY_MS: int = 100

SIM_BROKER_MESSAGES: tuple[str, ...] = (
    "simulated_message_1",
    "simulated_message_2",
    "simulated_message_3",
)
SIM_KV_DATA: tuple[tuple[str, str], ...] = (
    ("config_key", "simulated_config_value"),
)

SIM_SEED_MAX: int = 2**64 - 1  # Seeds are unsigned 64-bit

# =============================================================================
# Time Constants
# =============================================================================

TIME_EPOCH_MS: int = 0  # Simulation start time
TIME_ADVANCE_MS_MAX: int = 86_400_000  # Max advance = 1 day
