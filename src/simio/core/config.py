"""
SimIO Configuration

Loads configuration from environment variables and a .env file.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from simio.constants import (
    BROKER_BOOTSTRAP_SERVERS,
    BROKER_GROUP_ID,
    BROKER_PARTITION,
    BROKER_POLL_TIMEOUT_SECS,
    BROKER_TOPIC,
    FILE_OUTPUT_PATH,
    FILE_SIZE_BYTES_MAX,
    KV_URL,
    PIPELINE_CONFIG_KEY,
    PIPELINE_VERIFY_ENTRIES_COUNT,
    PIPELINE_VERIFY_EVERY_ITERATIONS,
    RETRY_COUNT_MAX,
    RETRY_DELAY_MS_BASE,
    SIM_FAULT_PROBABILITY_DEFAULT,
    SIM_SEED_MAX,
)


class Settings(BaseSettings):
    """SimIO settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SIMIO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Simulator seed, read from the bare SEED variable
    seed: Optional[int] = Field(default=None, validation_alias="SEED", ge=0, le=SIM_SEED_MAX)

    # Kafka
    group_id: str = BROKER_GROUP_ID
    broker: str = BROKER_BOOTSTRAP_SERVERS
    topic: str = BROKER_TOPIC
    partition: int = BROKER_PARTITION
    poll_timeout_secs: float = BROKER_POLL_TIMEOUT_SECS

    # Redis
    kv_url: str = KV_URL
    config_key: str = PIPELINE_CONFIG_KEY

    # Output file
    output_path: str = FILE_OUTPUT_PATH

    # Retry policy
    max_retries: int = Field(default=RETRY_COUNT_MAX, ge=0)
    base_delay_ms: int = Field(default=RETRY_DELAY_MS_BASE, ge=0)

    # Read-back verification
    verify_every: int = Field(default=PIPELINE_VERIFY_EVERY_ITERATIONS, gt=0)
    verify_entries: int = Field(default=PIPELINE_VERIFY_ENTRIES_COUNT, gt=0)

    # Simulator
    fault_probability: float = Field(default=SIM_FAULT_PROBABILITY_DEFAULT, ge=0.0, le=1.0)
    max_file_size_bytes: int = Field(default=FILE_SIZE_BYTES_MAX, ge=0)
    fsync_faults: bool = False

    # Logging
    log_level: str = "INFO"
    log_file: str = "simio.log"  # Used when the dashboard owns the terminal


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
