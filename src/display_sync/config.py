from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MAX_SIGNAL_BYTES = 1024


class DisplaySyncConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DISPLAY_SYNC_")

    target_host: str = "127.0.0.1"
    listen_host: str = "0.0.0.0"
    port: int = Field(default=12345, ge=1, le=65535)
    signal: str = "sleep_display"

    poll_interval_seconds: float = Field(default=1.0, gt=0)
    connect_timeout_seconds: float = Field(default=5.0, gt=0)
    read_chunk_size: int = Field(default=1024, ge=1)
    rebind_delay_seconds: float = Field(default=1.0, ge=0)

    display_backend: Literal["auto", "macos", "x11"] = "auto"
    command_timeout_seconds: float = Field(default=5.0, gt=0)

    log_file: str = ""

    @field_validator("signal")
    @classmethod
    def _check_signal(cls, value: str) -> str:
        if not value:
            raise ValueError("signal must not be empty")
        if len(value.encode("utf-8")) > MAX_SIGNAL_BYTES:
            raise ValueError(f"signal must be at most {MAX_SIGNAL_BYTES} bytes when UTF-8 encoded")
        return value
