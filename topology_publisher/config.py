from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import (
    ConfigurationInvalidError,
    ConfigurationMissingError,
    UnsupportedNetworkTypeError,
)

DEFAULT_DISCOVERY_COMMAND = "/usr/local/bin/slurmibtopology.sh"

# logrus level names -> stdlib logging names
_LOG_LEVEL_ALIASES = {
    "trace": "DEBUG",
    "debug": "DEBUG",
    "info": "INFO",
    "warn": "WARNING",
    "warning": "WARNING",
    "error": "ERROR",
    "fatal": "CRITICAL",
    "panic": "CRITICAL",
    "critical": "CRITICAL",
}


class NetworkType(str, Enum):
    IB = "ib"
    ROCE = "roce"


class Settings(BaseSettings):
    """
    Job configuration loaded from environment variables.

    Variables are unprefixed so the job can be dropped into existing
    CronJob / Job manifests:

      NAMESPACE=slurm
      CONFIG_MAP_NAME=slurm-config
      SLURMIBTOPOLOGY_SH=/usr/local/bin/slurmibtopology.sh
      NETWORK_TYPE=ib

    Instances are frozen; build one with `load_settings()` and pass it down.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        # an empty variable leaves the default in place
        env_ignore_empty=True,
        frozen=True,
    )

    # Target ConfigMap
    namespace: str = Field(
        ...,
        min_length=1,
        description="Namespace of the ConfigMap to update.",
    )
    config_map_name: str = Field(
        ...,
        min_length=1,
        description="Name of the ConfigMap to update.",
    )
    topology_key: str = Field(
        "topology.conf",
        description=(
            "ConfigMap data key holding the base64 encoded topology. Slurm reads "
            "topology.conf; override only to publish under another name."
        ),
    )

    # Discovery
    discovery_command: str = Field(
        DEFAULT_DISCOVERY_COMMAND,
        validation_alias=AliasChoices("SLURMIBTOPOLOGY_SH", "discovery_command"),
        description="Command run through /bin/bash -c to produce the topology report.",
    )
    network_type: NetworkType = Field(
        NetworkType.IB,
        description="Fabric type: 'ib' (InfiniBand) or 'roce' (not implemented).",
    )
    discovery_timeout_seconds: float | None = Field(
        600.0,
        gt=0,
        description="Deadline for the discovery command. None disables it.",
    )
    allow_empty_topology: bool = Field(
        True,
        description="Publish an empty topology when no switch records are found.",
    )

    # Kubernetes API
    store_timeout_seconds: float | None = Field(
        30.0,
        gt=0,
        description="Deadline for each Kubernetes API request. None disables it.",
    )

    # Logging
    log_level: str = Field(
        "INFO",
        description="Log level (trace, debug, info, warn, error, fatal).",
    )
    log_format: Literal["json", "console"] = Field(
        "json",
        description="Render logs as JSON lines or human-readable console output.",
    )

    # Metrics
    pushgateway_url: str | None = Field(
        default=None,
        description="Prometheus Pushgateway address; metrics are not pushed if unset.",
    )

    @field_validator("network_type", mode="before")
    @classmethod
    def _normalize_network_type(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value):
        # Unknown levels keep the default, as the job always did.
        if not isinstance(value, str):
            return "INFO"
        return _LOG_LEVEL_ALIASES.get(value.strip().lower(), "INFO")


def load_settings(**overrides) -> Settings:
    """
    Build the settings object and translate validation failures into
    publisher errors.

    Missing or empty required values raise ConfigurationMissingError; a
    network type outside {ib, roce} raises UnsupportedNetworkTypeError and
    any other invalid value raises ConfigurationInvalidError.
    """
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        missing = set()
        for error in exc.errors():
            field = str(error["loc"][0]) if error["loc"] else "?"
            if field == "network_type":
                raise UnsupportedNetworkTypeError(error.get("input")) from exc
            if error["type"] in ("missing", "string_too_short"):
                missing.add(field)
        if missing:
            raise ConfigurationMissingError(missing) from exc
        raise ConfigurationInvalidError(
            "; ".join(
                f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}"
                for e in exc.errors()
            )
        ) from exc
