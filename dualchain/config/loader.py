"""
Dualchain TOML Configuration Loader

Loads every section of dualchain.toml with environment variable overrides.

Environment variable mapping:
    [rpc] evm_url                → DUALCHAIN_EVM_RPC_URL
    [rpc] cosmos_rpc_url         → DUALCHAIN_COSMOS_RPC_URL
    [rpc] rest_url               → DUALCHAIN_REST_URL
    [rpc] timeout                → DUALCHAIN_RPC_TIMEOUT
    [rpc] chain_id               → DUALCHAIN_CHAIN_ID
    [alignment] max_attempts     → DUALCHAIN_MAX_ATTEMPTS
    [alignment] delay_seconds    → DUALCHAIN_DELAY_SECONDS
    [alignment] stagger_step     → DUALCHAIN_STAGGER_STEP
    [alignment] attempt_timeout  → DUALCHAIN_ATTEMPT_TIMEOUT
    [load] duration_seconds      → DUALCHAIN_LOAD_DURATION
    [load] block_time_seconds    → DUALCHAIN_BLOCK_TIME
    [logging] level              → DUALCHAIN_LOG_LEVEL

Private keys and mnemonics MUST come from env vars, never TOML.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .. import constants
from ..alignment.models import AlignmentPolicy
from ..exceptions import ConfigurationError
from ..logger import get_logger, set_log_level

logger = get_logger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_float(name: str) -> Optional[float]:
    v = os.environ.get(name)
    if not v:
        return None
    try:
        return float(v)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {v!r}") from None


def _env_int(name: str) -> Optional[int]:
    v = os.environ.get(name)
    if not v:
        return None
    try:
        return int(v)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {v!r}") from None


@dataclass
class RpcSectionConfig:
    """[rpc] section."""
    evm_url: str = str(constants.DUALCHAIN_EVM_RPC_URL)
    cosmos_rpc_url: str = str(constants.DUALCHAIN_COSMOS_RPC_URL)
    rest_url: str = str(constants.DUALCHAIN_REST_URL)
    timeout: float = constants.CONNECTION_TIMEOUT
    chain_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RpcSectionConfig":
        defaults = cls()
        return cls(
            evm_url=data.get("evm_url", defaults.evm_url),
            cosmos_rpc_url=data.get("cosmos_rpc_url", defaults.cosmos_rpc_url),
            rest_url=data.get("rest_url", defaults.rest_url),
            timeout=data.get("timeout", defaults.timeout),
            chain_id=data.get("chain_id"),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("DUALCHAIN_EVM_RPC_URL"):
            self.evm_url = v
        if v := os.environ.get("DUALCHAIN_COSMOS_RPC_URL"):
            self.cosmos_rpc_url = v
        if v := os.environ.get("DUALCHAIN_REST_URL"):
            self.rest_url = v
        if (v := _env_float("DUALCHAIN_RPC_TIMEOUT")) is not None:
            self.timeout = v
        if (v := _env_int("DUALCHAIN_CHAIN_ID")) is not None:
            self.chain_id = v


@dataclass
class AlignmentSectionConfig:
    """[alignment] section."""
    max_attempts: int = constants.DEFAULT_MAX_ATTEMPTS
    delay_seconds: float = constants.DEFAULT_DELAY_SECONDS
    stagger_step: float = constants.DEFAULT_STAGGER_STEP
    attempt_timeout: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AlignmentSectionConfig":
        return cls(
            max_attempts=data.get("max_attempts", constants.DEFAULT_MAX_ATTEMPTS),
            delay_seconds=data.get("delay_seconds", constants.DEFAULT_DELAY_SECONDS),
            stagger_step=data.get("stagger_step", constants.DEFAULT_STAGGER_STEP),
            attempt_timeout=data.get("attempt_timeout"),
        )

    def apply_env(self) -> None:
        if (v := _env_int("DUALCHAIN_MAX_ATTEMPTS")) is not None:
            self.max_attempts = v
        if (v := _env_float("DUALCHAIN_DELAY_SECONDS")) is not None:
            self.delay_seconds = v
        if (v := _env_float("DUALCHAIN_STAGGER_STEP")) is not None:
            self.stagger_step = v
        if (v := _env_float("DUALCHAIN_ATTEMPT_TIMEOUT")) is not None:
            self.attempt_timeout = v


@dataclass
class LoadSectionConfig:
    """[load] section."""
    duration_seconds: float = constants.DEFAULT_LOAD_DURATION
    block_time_seconds: float = constants.DEFAULT_BLOCK_TIME

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoadSectionConfig":
        return cls(
            duration_seconds=data.get("duration_seconds", constants.DEFAULT_LOAD_DURATION),
            block_time_seconds=data.get("block_time_seconds", constants.DEFAULT_BLOCK_TIME),
        )

    def apply_env(self) -> None:
        if (v := _env_float("DUALCHAIN_LOAD_DURATION")) is not None:
            self.duration_seconds = v
        if (v := _env_float("DUALCHAIN_BLOCK_TIME")) is not None:
            self.block_time_seconds = v


@dataclass
class LoggingSectionConfig:
    """[logging] section."""
    level: str = str(constants.LOG_LEVEL).upper()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingSectionConfig":
        return cls(level=str(data.get("level", constants.LOG_LEVEL)).upper())

    def apply_env(self) -> None:
        if v := os.environ.get("DUALCHAIN_LOG_LEVEL"):
            self.level = v.upper()


@dataclass
class HarnessConfig:
    """Complete harness configuration."""
    rpc: RpcSectionConfig = field(default_factory=RpcSectionConfig)
    alignment: AlignmentSectionConfig = field(default_factory=AlignmentSectionConfig)
    load: LoadSectionConfig = field(default_factory=LoadSectionConfig)
    logging: LoggingSectionConfig = field(default_factory=LoggingSectionConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HarnessConfig":
        return cls(
            rpc=RpcSectionConfig.from_dict(data.get("rpc", {})),
            alignment=AlignmentSectionConfig.from_dict(data.get("alignment", {})),
            load=LoadSectionConfig.from_dict(data.get("load", {})),
            logging=LoggingSectionConfig.from_dict(data.get("logging", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "HarnessConfig":
        """
        Load configuration from a TOML file.

        A missing file is not an error: defaults plus environment overrides
        are used instead.
        """
        path = Path(config_path)
        if not path.exists():
            logger.debug("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        try:
            with open(path, "rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.rpc.apply_env()
        self.alignment.apply_env()
        self.load.apply_env()
        self.logging.apply_env()

    def validate(self) -> bool:
        """
        Validate all sections.

        Raises:
            ConfigurationError: on invalid config
        """
        if not self.rpc.evm_url:
            raise ConfigurationError("rpc.evm_url must be set")
        if self.rpc.timeout <= 0:
            raise ConfigurationError("rpc.timeout must be > 0")
        if self.rpc.chain_id is not None and self.rpc.chain_id < 1:
            raise ConfigurationError("rpc.chain_id must be >= 1")
        if self.load.duration_seconds < 0:
            raise ConfigurationError("load.duration_seconds must be >= 0")
        if self.load.block_time_seconds < 0:
            raise ConfigurationError("load.block_time_seconds must be >= 0")
        if self.logging.level not in _LOG_LEVELS:
            raise ConfigurationError(f"Invalid logging.level: {self.logging.level}")
        self.alignment_policy()
        return True

    def alignment_policy(self) -> AlignmentPolicy:
        return AlignmentPolicy(
            max_attempts=self.alignment.max_attempts,
            delay_seconds=self.alignment.delay_seconds,
            stagger_step=self.alignment.stagger_step,
            attempt_timeout=self.alignment.attempt_timeout,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics)."""
        return {
            "rpc": {
                "evm_url": self.rpc.evm_url,
                "cosmos_rpc_url": self.rpc.cosmos_rpc_url,
                "rest_url": self.rpc.rest_url,
                "timeout": self.rpc.timeout,
                "chain_id": self.rpc.chain_id,
            },
            "alignment": {
                "max_attempts": self.alignment.max_attempts,
                "delay_seconds": self.alignment.delay_seconds,
                "stagger_step": self.alignment.stagger_step,
                "attempt_timeout": self.alignment.attempt_timeout,
            },
            "load": {
                "duration_seconds": self.load.duration_seconds,
                "block_time_seconds": self.load.block_time_seconds,
            },
            "logging": {
                "level": self.logging.level,
            },
        }


def load_config(path: Optional[str] = None) -> HarnessConfig:
    """
    Load harness configuration.

    Resolution order:
        1. Explicit *path* argument
        2. DUALCHAIN_CONFIG env var
        3. ./dualchain.toml in current directory
        4. Defaults (with env overrides)

    The resolved [logging] level is applied to the running logger.
    """
    if path is None:
        path = os.environ.get("DUALCHAIN_CONFIG", "dualchain.toml")

    cfg = HarnessConfig.from_file(path)
    if cfg.logging.level not in _LOG_LEVELS:
        raise ConfigurationError(f"Invalid logging.level: {cfg.logging.level}")
    set_log_level(cfg.logging.level)
    return cfg
