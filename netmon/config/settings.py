"""Network monitor configuration loading and validation."""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterable, Literal

import yaml
from pydantic import AnyUrl, Field, PositiveFloat, PositiveInt
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_LOCATIONS: tuple[Path, ...] = (
    Path("/etc/netmon/netmon.yaml"),
    Path("/etc/netmon/netmon.yml"),
    Path("./config/netmon.yaml"),
    Path("./config/netmon.yml"),
)


class MonitorSettings(BaseSettings):
    """Validated settings for a network monitor connection."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="NETMON_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Control plane + identity
    api_base_url: AnyUrl = Field(
        default="http://localhost:8080/api/v1",
        description="Control-plane REST base URL used for capture commands.",
    )
    api_token: str | None = Field(
        default=None,
        description="Bearer token attached to control-plane requests.",
        repr=False,
    )
    project_id: str = Field(
        default="default",
        description="Project owning the monitored instance.",
    )
    instance_id: str = Field(
        default="instance-local",
        description="Instance whose network monitor is attached.",
    )
    endpoint_url: str | None = Field(
        default=None,
        description="Fixed monitor WebSocket endpoint used by the static instance resolver.",
    )
    request_timeout_seconds: PositiveInt = Field(
        default=30,
        description="Timeout applied to control-plane HTTP calls.",
    )
    open_timeout_seconds: PositiveFloat = Field(
        default=10.0,
        description="Timeout for the transport open handshake.",
    )

    # Reconnect policy
    reconnect_delay_seconds: PositiveFloat = Field(
        default=1.0,
        description="Delay between reconnect attempts.",
    )
    reconnect_backoff_factor: float = Field(
        default=1.0,
        ge=1.0,
        description="Multiplier applied to the delay after each failed attempt (1.0 keeps it fixed).",
    )
    reconnect_max_delay_seconds: PositiveFloat = Field(
        default=30.0,
        description="Upper bound for the reconnect delay when a backoff factor is set.",
    )
    reconnect_max_attempts: PositiveInt | None = Field(
        default=None,
        description="Give up after this many failed attempts (unbounded when unset).",
    )

    # Heartbeat
    heartbeat_timeout_seconds: PositiveFloat = Field(
        default=10.0,
        description="Seconds to wait for a pong before the link is declared dead.",
    )
    heartbeat_interval_seconds: PositiveFloat = Field(
        default=10.0,
        description="Idle seconds between an acknowledged ping and the next one.",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum log level for the monitor process.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        if isinstance(value, str):
            return value.upper()
        return value

    config_path: Path | None = Field(
        default=None,
        description="Resolved path to the on-disk config that seeded the settings.",
        exclude=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[MonitorSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            cls._yaml_settings_source,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    @staticmethod
    def _yaml_settings_source(settings_cls: type[MonitorSettings] | None = None) -> Dict[str, Any]:
        candidates: Iterable[Path] = MonitorSettings._resolve_candidate_paths()

        for path in candidates:
            data = MonitorSettings._load_file(path)
            if data is not None:
                data.setdefault("config_path", path)
                return data
        return {}

    @staticmethod
    def _resolve_candidate_paths() -> Iterable[Path]:
        explicit = os.getenv("NETMON_CONFIG_FILE")
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
            raise RuntimeError(f"Failed to read netmon config file {path}") from exc
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ValueError(f"Invalid netmon config file {path}") from exc

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ValueError(f"Netmon config file {path} must contain a mapping at top level.")
        return raw


@lru_cache()
def get_settings() -> MonitorSettings:
    """Return memoized monitor settings."""

    return MonitorSettings()
