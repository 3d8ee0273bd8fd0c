"""Application configuration for the signaling server."""
from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    addr: str = Field(default=":10011", description="Listen address as host:port")
    tls_cert: str = Field(default="")
    tls_key: str = Field(default="")

    grace_period_seconds: float = Field(default=5.0, ge=0)
    outbound_queue_size: int = Field(default=16, ge=1)

    static_dir: str = Field(default="")
    ice_servers: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["stun:stun.l.google.com:19302"])
    cors_allow_origins: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["*"])

    log_level: str = Field(default="info")

    @field_validator("ice_servers", "cors_allow_origins", mode="before")
    @classmethod
    def _split_list(cls, value: object) -> object:
        """Allow comma-separated env values for list settings."""

        if isinstance(value, str):
            parts = [item.strip() for item in value.split(",") if item.strip()]
            return parts
        return value

    @property
    def tls_enabled(self) -> bool:
        return bool(self.tls_cert and self.tls_key)

    def listen_address(self) -> tuple[str, int]:
        """Split ``addr`` into host and port; an empty host binds every interface."""

        host, sep, port = self.addr.strip().rpartition(":")
        if not sep or not port.isdigit():
            raise ValueError(f"invalid listen address: {self.addr!r}")
        host = host.strip("[]")
        return host or "0.0.0.0", int(port)


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()
