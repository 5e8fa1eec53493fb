from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the exporter.

    Every field can be set through a ``DOMOTICZ_EXPORTER_*`` environment
    variable or a ``.env`` file; the command line flags override both.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOMOTICZ_EXPORTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    listen_address: str = ":9103"
    metrics_path: str = "/metrics"
    push_path: str = "/domoticz-post"
    staleness_window_seconds: float = Field(default=300.0, gt=0)
    sweep_interval_seconds: float = Field(default=60.0, gt=0)
    push_timeout_seconds: Optional[float] = Field(default=None, gt=0)
    export_process_metrics: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @field_validator("metrics_path", "push_path")
    @classmethod
    def _leading_slash(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith("/"):
            value = "/" + value
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @field_validator("listen_address")
    @classmethod
    def _check_address(cls, value: str) -> str:
        _split_address(value)
        return value

    @property
    def host(self) -> str:
        return _split_address(self.listen_address)[0]

    @property
    def port(self) -> int:
        return _split_address(self.listen_address)[1]

    @property
    def sample_lifetime_seconds(self) -> float:
        """How long a sample stays exportable after its last update."""
        return self.staleness_window_seconds * 2


def _split_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"listen address must look like 'host:port', got {address!r}")
    host = host.strip("[]") or "0.0.0.0"
    return host, int(port)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
