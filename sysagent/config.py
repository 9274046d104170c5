"""Agent configuration — loaded from environment / .env file, overridden by CLI flags."""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    """Immutable settings passed down to the engine, providers and server."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore", "frozen": True}

    # Sources
    config: str | None = None  # YAML file with services and volumes
    volumes: Annotated[list[str], NoDecode] = Field(default_factory=list)  # name:path
    services: Annotated[list[str], NoDecode] = Field(default_factory=list)  # name:url

    # Server
    listen: str = "localhost:8080"
    status_ok_code: int = 200
    status_fail_code: int = 503

    # Checks
    timeout: float = Field(5.0, gt=0)  # seconds, per check
    concurrency: int = Field(4, ge=1)
    volume_threshold: float = Field(90.0, gt=0, le=100)  # used percent

    # Logging
    debug: bool = False
    log_level: str = "INFO"

    @field_validator("volumes", "services", mode="before")
    @classmethod
    def _split_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("listen")
    @classmethod
    def _check_listen(cls, value: str) -> str:
        _, sep, port = value.rpartition(":")
        if not sep or not port.isdigit():
            raise ValueError(f"listen address must be host:port, got {value!r}")
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @property
    def host(self) -> str:
        host, _, _ = self.listen.rpartition(":")
        return host or "0.0.0.0"

    @property
    def port(self) -> int:
        _, _, port = self.listen.rpartition(":")
        return int(port)

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level
