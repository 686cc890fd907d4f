"""Process-level settings for the emulator, read from the environment."""

import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from dc_emulator.runtime.orchestrator import DEFAULT_CONTAINER_SUFFIX


class EmulatorSettings(BaseModel):
    """Configuration settings for the run emulator."""

    # Profiles
    config_path: str = Field(default_factory=lambda: os.environ.get("DC_EMULATOR_CONFIG", "dc-emulator.yaml"))
    workdir: Optional[str] = Field(
        default_factory=lambda: os.environ.get("DC_EMULATOR_WORKDIR") or None,
        description="Directory relative build contexts, env files and volume host paths resolve against.",
    )

    # Container settings
    container_suffix: str = Field(
        default_factory=lambda: os.environ.get("DC_EMULATOR_CONTAINER_SUFFIX", DEFAULT_CONTAINER_SUFFIX)
    )
    wait_timeout_seconds: Optional[float] = Field(
        default_factory=lambda: os.environ.get("DC_EMULATOR_WAIT_TIMEOUT"),
        validate_default=True,
        description="Upper bound on how long a run may block waiting for its container; unbounded when unset.",
    )

    # Logging
    log_level: str = Field(default_factory=lambda: os.environ.get("DC_EMULATOR_LOG_LEVEL", "INFO"))

    @field_validator("wait_timeout_seconds", mode="before")
    @classmethod
    def _blank_timeout_is_unbounded(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value
