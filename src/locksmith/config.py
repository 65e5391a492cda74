"""
Configuration for Locksmith.

This module defines the configuration dataclass for the service, providing
a centralized place for all configurable parameters, and the loader that
builds it from a YAML file.

The top-level assembly code (CLI or tests) builds one LocksmithConfig and
passes it into every component; there is no global instance.

Usage:
    from locksmith.config import load_config

    config = load_config("/etc/locksmith/locksmith.yaml")
    config.EXPIRY_INTERVAL_SECONDS = 60
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from locksmith.models.enums import LogLevel, PeerMode
from locksmith.models.network import NetConfig
from locksmith.utils.logger import get_logger

logger = get_logger(__name__)


# =============================================================================
# Configuration Dataclass
# =============================================================================


@dataclass
class LocksmithConfig:
    """
    Service configuration.

    Attributes:
        BIND_IP: IP address the API server binds to.
        PORT: HTTP API port.
        STATE_IMPL: Registered name of the state store.
        DRIVER_IMPL: Registered name of the interface driver.
        EXPIRY_INTERVAL_SECONDS: Period of the expiration sweep.
        NETWORKS: Overlay networks, in configuration order.
    """

    # -------------------------------------------------------------------------
    # Network Configuration
    # -------------------------------------------------------------------------

    BIND_IP: str = "127.0.0.1"
    PORT: int = 8080

    # -------------------------------------------------------------------------
    # State Store Configuration
    # -------------------------------------------------------------------------

    STATE_IMPL: str = "JSON"
    STATE_DIR: str = "/var/lib/locksmith/state"
    DB_FILE: str = "/var/lib/locksmith/locksmith.db"

    # -------------------------------------------------------------------------
    # Interface Driver Configuration
    # -------------------------------------------------------------------------

    DRIVER_IMPL: str = "LOCAL"

    # Upper bound on interface syncs running at the same time
    SYNC_MAX_WORKERS: int = 4

    # Attempts after the first failure before a sync is recorded as failed
    SYNC_MAX_RETRIES: int = 3

    # First retry delay; doubles on every further attempt
    SYNC_RETRY_BACKOFF_SECONDS: float = 1.0

    # -------------------------------------------------------------------------
    # Timing Configuration
    # -------------------------------------------------------------------------

    EXPIRY_INTERVAL_SECONDS: float = 300

    # -------------------------------------------------------------------------
    # Logging Configuration
    # -------------------------------------------------------------------------

    LOG_LEVEL: LogLevel = LogLevel.INFO
    LOG_FILE: str = ""

    # -------------------------------------------------------------------------
    # Overlay Networks
    # -------------------------------------------------------------------------

    NETWORKS: list[NetConfig] = field(default_factory=list)

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def get_network(self, net_id: str) -> NetConfig | None:
        """Find a configured network by ID."""
        for net in self.NETWORKS:
            if net.id == net_id:
                return net
        return None

    def required_addressers(self) -> list[str]:
        """Addresser names required by any network, in first-use order."""
        names: list[str] = []
        for net in self.NETWORKS:
            for name in net.ipam:
                if name not in names:
                    names.append(name)
        return names

    def uses_expiry(self) -> bool:
        """Check if any network needs the expiration sweep."""
        return any(net.uses_expiry() for net in self.NETWORKS)


# =============================================================================
# File Schema
# =============================================================================


class NetworkDefinition(BaseModel):
    """One overlay network as written in the configuration file."""

    id: str = Field(..., min_length=1, description="Unique network identifier")
    name: str = Field(default="", description="Human readable name")
    approve_mode: PeerMode = Field(default=PeerMode.MANUAL)
    activate_mode: PeerMode = Field(default=PeerMode.MANUAL)
    approve_expiry: float = Field(
        default=0, ge=0, description="Approval lifetime in seconds, 0 = never"
    )
    activate_expiry: float = Field(
        default=0, ge=0, description="Activation lifetime in seconds, 0 = never"
    )
    pre_approve_hooks: list[str] = Field(default_factory=list)
    ipam: list[str] = Field(default_factory=list)
    address_pools: dict[str, str] = Field(default_factory=dict)

    @field_validator("approve_mode", "activate_mode", mode="before")
    @classmethod
    def _parse_mode(cls, value):
        return PeerMode.parse(value)

    def to_net_config(self) -> NetConfig:
        return NetConfig(
            id=self.id,
            name=self.name,
            approve_mode=self.approve_mode,
            activate_mode=self.activate_mode,
            approve_expiry=timedelta(seconds=self.approve_expiry),
            activate_expiry=timedelta(seconds=self.activate_expiry),
            pre_approve_hooks=tuple(self.pre_approve_hooks),
            ipam=tuple(self.ipam),
            address_pools=dict(self.address_pools),
        )


class ConfigFile(BaseModel):
    """Top-level layout of the YAML configuration file."""

    bind_ip: str = "127.0.0.1"
    port: int = Field(default=8080, ge=1, le=65535)
    state_impl: str = "JSON"
    state_dir: str = "/var/lib/locksmith/state"
    db_file: str = "/var/lib/locksmith/locksmith.db"
    driver_impl: str = "LOCAL"
    sync_max_workers: int = Field(default=4, ge=1)
    sync_max_retries: int = Field(default=3, ge=0)
    sync_retry_backoff_seconds: float = Field(default=1.0, ge=0)
    expiry_interval_seconds: float = Field(default=300, gt=0)
    log_level: LogLevel = LogLevel.INFO
    log_file: str = ""
    networks: list[NetworkDefinition] = Field(default_factory=list)

    @field_validator("networks")
    @classmethod
    def _unique_ids(cls, networks: list[NetworkDefinition]):
        seen = set()
        for net in networks:
            if net.id in seen:
                raise ValueError(f"Duplicate network id: {net.id}")
            seen.add(net.id)
        return networks

    def to_config(self) -> LocksmithConfig:
        return LocksmithConfig(
            BIND_IP=self.bind_ip,
            PORT=self.port,
            STATE_IMPL=self.state_impl.upper(),
            STATE_DIR=self.state_dir,
            DB_FILE=self.db_file,
            DRIVER_IMPL=self.driver_impl.upper(),
            SYNC_MAX_WORKERS=self.sync_max_workers,
            SYNC_MAX_RETRIES=self.sync_max_retries,
            SYNC_RETRY_BACKOFF_SECONDS=self.sync_retry_backoff_seconds,
            EXPIRY_INTERVAL_SECONDS=self.expiry_interval_seconds,
            LOG_LEVEL=self.log_level,
            LOG_FILE=self.log_file,
            NETWORKS=[net.to_net_config() for net in self.networks],
        )


# =============================================================================
# Loading
# =============================================================================


def parse_config(data: dict | None) -> LocksmithConfig:
    """
    Validate a raw configuration mapping.

    Raises:
        ValueError: If the mapping does not match the schema.
    """
    try:
        return ConfigFile(**(data or {})).to_config()
    except ValidationError as e:
        logger.error(f"Configuration validation failed: {e}")
        raise ValueError(f"Invalid configuration: {e}") from e


def load_config(path: str) -> LocksmithConfig:
    """
    Load configuration from a YAML file.

    Args:
        path: Path to the YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid YAML or fails validation.
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e

    config = parse_config(data)
    logger.info(f"Loaded config from {path}: {len(config.NETWORKS)} network(s)")
    return config
