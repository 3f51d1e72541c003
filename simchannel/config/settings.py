"""Client configuration loading and validation."""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterable, Literal

import yaml
from pydantic import AliasChoices, AnyUrl, Field, PositiveFloat
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SERVER_URL = "wss://wokwi.com/api/ws/beta"

DEFAULT_CONFIG_LOCATIONS: tuple[Path, ...] = (
    Path("~/.config/simchannel/client.yaml").expanduser(),
    Path("~/.config/simchannel/client.yml").expanduser(),
    Path("./config/simchannel.yaml"),
    Path("./config/simchannel.yml"),
)


class ClientSettings(BaseSettings):
    """Validated settings for the simulation channel client."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="SIMCHANNEL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Connection + identity
    server_url: AnyUrl = Field(
        default=DEFAULT_SERVER_URL,
        validation_alias=AliasChoices("SIMCHANNEL_SERVER_URL", "WOKWI_CLI_SERVER", "server_url"),
        description="Simulation service WebSocket endpoint.",
    )
    token: str | None = Field(
        default=None,
        description="Bearer token presented in the upgrade request.",
        repr=False,
    )
    client_name: str = Field(
        default="wokwi-cli",
        description="Client name used as the User-Agent product token.",
    )
    transport: Literal["websocket", "memory"] = Field(
        default="websocket",
        description="Transport implementation to use.",
    )

    # Reliability
    retry_delays_seconds: list[float] = Field(
        default_factory=lambda: [1.0, 2.0, 5.0, 10.0, 20.0],
        description="Fixed backoff table consulted by attempt index on transient handshake failures.",
    )
    persist_retry_attempts: bool = Field(
        default=False,
        description="Keep consuming the backoff table across connect() calls instead of starting fresh.",
    )
    open_timeout_seconds: PositiveFloat | None = Field(
        default=10.0,
        description="Timeout for the opening handshake; None waits forever.",
    )
    close_timeout_seconds: PositiveFloat | None = Field(
        default=10.0,
        description="Timeout for the closing handshake before the socket is aborted.",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum log level for the client process.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        if isinstance(value, str):
            return value.upper()
        return value

    @field_validator("retry_delays_seconds")
    @classmethod
    def _validate_delays(cls, value: list[float]) -> list[float]:
        if any(delay < 0 for delay in value):
            raise ValueError("retry delays must be non-negative")
        return value

    config_path: Path | None = Field(
        default=None,
        description="Resolved path to the on-disk config that seeded the settings.",
        exclude=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[ClientSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            cls._file_settings_source,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    @staticmethod
    def _file_settings_source(settings_cls: type[ClientSettings] | None = None) -> Dict[str, Any]:
        for path in ClientSettings._resolve_candidate_paths():
            data = ClientSettings._load_file(path)
            if data is not None:
                data.setdefault("config_path", path)
                return data
        return {}

    @staticmethod
    def _resolve_candidate_paths() -> Iterable[Path]:
        explicit = os.getenv("SIMCHANNEL_CONFIG_FILE")
        if explicit:
            yield Path(explicit).expanduser()
        yield from DEFAULT_CONFIG_LOCATIONS

    @staticmethod
    def _load_file(path: Path) -> Dict[str, Any] | None:
        if not path.is_file():
            return None
        suffix = path.suffix.lower()
        try:
            with path.open("r", encoding="utf-8") as handle:
                if suffix in {".yaml", ".yml"}:
                    raw = yaml.safe_load(handle)
                elif suffix == ".json":
                    raw = json.load(handle)
                else:
                    return None
        except OSError as exc:
            raise RuntimeError(f"Failed to read client config file {path}") from exc
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ValueError(f"Invalid client config file {path}") from exc

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ValueError(f"Client config file {path} must contain a mapping at top level.")
        return raw


@lru_cache()
def get_settings() -> ClientSettings:
    """Return memoized client settings."""

    return ClientSettings()
