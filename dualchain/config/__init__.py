"""
Dualchain Unified Configuration

Loads dualchain.toml; environment variables override TOML values.
"""

from .loader import (
    AlignmentSectionConfig,
    HarnessConfig,
    LoadSectionConfig,
    LoggingSectionConfig,
    RpcSectionConfig,
    load_config,
)

__all__ = [
    "AlignmentSectionConfig",
    "HarnessConfig",
    "LoadSectionConfig",
    "LoggingSectionConfig",
    "RpcSectionConfig",
    "load_config",
]
