"""
BeamDAO Deployment Configuration

Loads every section of beamdao.toml. Environment variables override TOML
values.
"""

from .loader import (
    BeamDAOConfig,
    ChainConfig,
    TokenConfig,
    DAOConfig,
    MigratorConfig,
    ExplorerConfig,
    load_config,
    parse_amount,
)

__all__ = [
    "BeamDAOConfig",
    "ChainConfig",
    "TokenConfig",
    "DAOConfig",
    "MigratorConfig",
    "ExplorerConfig",
    "load_config",
    "parse_amount",
]
