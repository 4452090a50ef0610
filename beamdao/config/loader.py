"""
BeamDAO TOML Configuration Loader

Loads deployment parameters from a TOML file with environment variable
overrides. One dataclass per [section], each with from_dict + apply_env.

Environment variable mapping:
    [chain] accounts          → BEAMDAO_ACCOUNTS
    [token] name / symbol     → BEAMDAO_TOKEN_NAME / BEAMDAO_TOKEN_SYMBOL
    [dao] min_delay           → BEAMDAO_MIN_DELAY
    [explorer] api_url        → BEAMDAO_EXPLORER_API_URL
    [explorer] standard_json  → BEAMDAO_STANDARD_JSON
    ...

Sensitive values (the explorer API key) MUST come from env vars, never TOML.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..constants import (
    BEAMDAO_EXPLORER_API_URL,
    BEAMDAO_EXPLORER_CHAIN_ID,
    DEFAULT_ACCOUNT_COUNT,
    DEFAULT_BLOCK_TIME,
    DEFAULT_GENESIS_TIMESTAMP,
    DEFAULT_MIN_DELAY,
    DEFAULT_QUORUM_FRACTION,
    DEFAULT_TOKEN_NAME,
    DEFAULT_TOKEN_SYMBOL,
    DEFAULT_VOTING_DELAY,
    DEFAULT_VOTING_PERIOD,
    LOG_LEVEL,
    SCALE,
    VERIFY_DELAY,
)
from ..exceptions import ConfigurationError
from ..logger import get_logger

logger = get_logger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def parse_amount(value: Union[int, str]) -> int:
    """
    Parse a base-unit amount.

    TOML integers stop at 2**63, so large amounts may be given as strings,
    optionally with an exponent: "10000e18".
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid amount: {value!r}")
    if isinstance(value, int):
        return value
    text = str(value).strip().replace("_", "")
    try:
        if "e" in text.lower():
            mantissa, exponent = text.lower().split("e", 1)
            return int(mantissa) * 10 ** int(exponent)
        return int(text)
    except ValueError:
        raise ConfigurationError(f"Invalid amount: {value!r}") from None


def _env_int(name: str) -> Optional[int]:
    if v := os.environ.get(name):
        try:
            return int(v)
        except ValueError:
            raise ConfigurationError(f"{name} must be an integer, got {v!r}") from None
    return None


def _typed(data: Dict[str, Any], section: str, key: str, default: Any, kind: type) -> Any:
    # TOML values keep their own type; bool is an int subclass, so check it apart
    value = data.get(key, default)
    if isinstance(value, bool) != (kind is bool) or not isinstance(value, kind):
        name = f"{section}.{key}" if section else key
        raise ConfigurationError(f"{name} must be of type {kind.__name__}, got {value!r}")
    return value


def _int(data: Dict[str, Any], section: str, key: str, default: int) -> int:
    return _typed(data, section, key, default, int)


def _str(data: Dict[str, Any], section: str, key: str, default: str) -> str:
    return _typed(data, section, key, default, str)


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------


@dataclass
class ChainConfig:
    """[chain] section."""
    accounts: int = DEFAULT_ACCOUNT_COUNT
    genesis_timestamp: int = DEFAULT_GENESIS_TIMESTAMP
    block_time: int = DEFAULT_BLOCK_TIME

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChainConfig":
        return cls(
            accounts=_int(data, "chain", "accounts", DEFAULT_ACCOUNT_COUNT),
            genesis_timestamp=_int(data, "chain", "genesis_timestamp", DEFAULT_GENESIS_TIMESTAMP),
            block_time=_int(data, "chain", "block_time", DEFAULT_BLOCK_TIME),
        )

    def apply_env(self) -> None:
        if (v := _env_int("BEAMDAO_ACCOUNTS")) is not None:
            self.accounts = v
        if (v := _env_int("BEAMDAO_BLOCK_TIME")) is not None:
            self.block_time = v


@dataclass
class TokenConfig:
    """[token] section."""
    name: str = DEFAULT_TOKEN_NAME
    symbol: str = DEFAULT_TOKEN_SYMBOL
    initial_supply: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenConfig":
        return cls(
            name=_str(data, "token", "name", DEFAULT_TOKEN_NAME),
            symbol=_str(data, "token", "symbol", DEFAULT_TOKEN_SYMBOL),
            initial_supply=parse_amount(data.get("initial_supply", 0)),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("BEAMDAO_TOKEN_NAME"):
            self.name = v
        if v := os.environ.get("BEAMDAO_TOKEN_SYMBOL"):
            self.symbol = v
        if v := os.environ.get("BEAMDAO_INITIAL_SUPPLY"):
            self.initial_supply = parse_amount(v)


@dataclass
class DAOConfig:
    """[dao] section."""
    name: str = "Beam DAO"
    min_delay: int = DEFAULT_MIN_DELAY
    voting_delay: int = DEFAULT_VOTING_DELAY
    voting_period: int = DEFAULT_VOTING_PERIOD
    quorum_fraction: int = DEFAULT_QUORUM_FRACTION
    address: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DAOConfig":
        return cls(
            name=_str(data, "dao", "name", "Beam DAO"),
            min_delay=_int(data, "dao", "min_delay", DEFAULT_MIN_DELAY),
            voting_delay=_int(data, "dao", "voting_delay", DEFAULT_VOTING_DELAY),
            voting_period=_int(data, "dao", "voting_period", DEFAULT_VOTING_PERIOD),
            quorum_fraction=_int(data, "dao", "quorum_fraction", DEFAULT_QUORUM_FRACTION),
            address=_str(data, "dao", "address", ""),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("BEAMDAO_DAO_NAME"):
            self.name = v
        if (v := _env_int("BEAMDAO_MIN_DELAY")) is not None:
            self.min_delay = v
        if (v := _env_int("BEAMDAO_VOTING_DELAY")) is not None:
            self.voting_delay = v
        if (v := _env_int("BEAMDAO_VOTING_PERIOD")) is not None:
            self.voting_period = v
        if (v := _env_int("BEAMDAO_QUORUM_FRACTION")) is not None:
            self.quorum_fraction = v
        if v := os.environ.get("BEAMDAO_DAO_ADDRESS"):
            self.address = v


@dataclass
class MigratorConfig:
    """[migrator] section. `migration_rate` is 18-decimal fixed point."""
    source: str = ""
    destination: str = ""
    migration_rate: int = SCALE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigratorConfig":
        return cls(
            source=_str(data, "migrator", "source", ""),
            destination=_str(data, "migrator", "destination", ""),
            migration_rate=parse_amount(data.get("migration_rate", SCALE)),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("BEAMDAO_MIGRATION_RATE"):
            self.migration_rate = parse_amount(v)


@dataclass
class ExplorerConfig:
    """[explorer] section."""
    verify: bool = False
    api_url: str = str(BEAMDAO_EXPLORER_API_URL)
    chain_id: int = int(BEAMDAO_EXPLORER_CHAIN_ID)
    verify_delay: int = VERIFY_DELAY
    standard_json: str = ""
    compiler_version: str = ""
    api_key: str = field(default="", repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExplorerConfig":
        if "api_key" in data:
            raise ConfigurationError(
                "explorer.api_key must not be stored in TOML; set BEAMDAO_EXPLORER_API_KEY"
            )
        return cls(
            verify=_typed(data, "explorer", "verify", False, bool),
            api_url=_str(data, "explorer", "api_url", str(BEAMDAO_EXPLORER_API_URL)),
            chain_id=_int(data, "explorer", "chain_id", int(BEAMDAO_EXPLORER_CHAIN_ID)),
            verify_delay=_int(data, "explorer", "verify_delay", VERIFY_DELAY),
            standard_json=_str(data, "explorer", "standard_json", ""),
            compiler_version=_str(data, "explorer", "compiler_version", ""),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("BEAMDAO_EXPLORER_API_URL"):
            self.api_url = v
        if (v := _env_int("BEAMDAO_EXPLORER_CHAIN_ID")) is not None:
            self.chain_id = v
        if v := os.environ.get("BEAMDAO_STANDARD_JSON"):
            self.standard_json = v
        if v := os.environ.get("BEAMDAO_COMPILER_VERSION"):
            self.compiler_version = v
        if v := os.environ.get("BEAMDAO_EXPLORER_API_KEY"):
            self.api_key = v


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


@dataclass
class BeamDAOConfig:
    """
    Unified deployment configuration.

    Loads every section of the TOML file and applies environment variable
    overrides.
    """
    log_level: str = str(LOG_LEVEL)
    chain: ChainConfig = field(default_factory=ChainConfig)
    token: TokenConfig = field(default_factory=TokenConfig)
    dao: DAOConfig = field(default_factory=DAOConfig)
    migrator: MigratorConfig = field(default_factory=MigratorConfig)
    explorer: ExplorerConfig = field(default_factory=ExplorerConfig)

    # --- factories --------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BeamDAOConfig":
        """Create BeamDAOConfig from a parsed TOML dict."""
        return cls(
            log_level=_str(data, "", "log_level", str(LOG_LEVEL)),
            chain=ChainConfig.from_dict(data.get("chain", {})),
            token=TokenConfig.from_dict(data.get("token", {})),
            dao=DAOConfig.from_dict(data.get("dao", {})),
            migrator=MigratorConfig.from_dict(data.get("migrator", {})),
            explorer=ExplorerConfig.from_dict(data.get("explorer", {})),
        )

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "BeamDAOConfig":
        """
        Load configuration from a TOML file.

        A missing file falls back to defaults (with env overrides); a file
        that exists but does not parse raises ConfigurationError.
        """
        path = Path(config_path)
        if not path.exists():
            logger.debug(f"Config file not found: {config_path}, using defaults")
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
        logger.debug(f"Loaded configuration from {config_path}")
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        if v := os.environ.get("BEAMDAO_LOG_LEVEL"):
            self.log_level = v
        self.chain.apply_env()
        self.token.apply_env()
        self.dao.apply_env()
        self.migrator.apply_env()
        self.explorer.apply_env()

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ConfigurationError: on invalid config
        """
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigurationError(f"Invalid log_level: {self.log_level}")
        if self.chain.accounts < 1:
            raise ConfigurationError("chain.accounts must be >= 1")
        if self.chain.block_time < 1:
            raise ConfigurationError("chain.block_time must be >= 1")
        if not self.token.name or not self.token.symbol:
            raise ConfigurationError("token.name and token.symbol are required")
        if self.token.initial_supply < 0:
            raise ConfigurationError("token.initial_supply must be >= 0")
        if not 0 <= self.dao.quorum_fraction <= 100:
            raise ConfigurationError("dao.quorum_fraction must be between 0 and 100")
        if self.dao.voting_period < 1:
            raise ConfigurationError("dao.voting_period must be >= 1")
        if self.dao.min_delay < 0 or self.dao.voting_delay < 0:
            raise ConfigurationError("dao delays must be >= 0")
        if self.migrator.migration_rate < 0:
            raise ConfigurationError("migrator.migration_rate must be >= 0")
        if self.explorer.verify and not self.explorer.api_key:
            raise ConfigurationError(
                "explorer verification requires BEAMDAO_EXPLORER_API_KEY"
            )
        if self.explorer.verify and not (self.explorer.standard_json and self.explorer.compiler_version):
            raise ConfigurationError(
                "explorer verification requires explorer.standard_json and explorer.compiler_version"
            )
        return True

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics; the API key is never included)."""
        return {
            "log_level": self.log_level,
            "chain": {
                "accounts": self.chain.accounts,
                "genesis_timestamp": self.chain.genesis_timestamp,
                "block_time": self.chain.block_time,
            },
            "token": {
                "name": self.token.name,
                "symbol": self.token.symbol,
                "initial_supply": str(self.token.initial_supply),
            },
            "dao": {
                "name": self.dao.name,
                "min_delay": self.dao.min_delay,
                "voting_delay": self.dao.voting_delay,
                "voting_period": self.dao.voting_period,
                "quorum_fraction": self.dao.quorum_fraction,
            },
            "migrator": {
                "source": self.migrator.source,
                "destination": self.migrator.destination,
                "migration_rate": str(self.migrator.migration_rate),
            },
            "explorer": {
                "verify": self.explorer.verify,
                "api_url": self.explorer.api_url,
                "chain_id": self.explorer.chain_id,
                "verify_delay": self.explorer.verify_delay,
                "standard_json": self.explorer.standard_json,
                "compiler_version": self.explorer.compiler_version,
            },
        }


def load_config(path: Optional[Union[str, Path]] = None) -> BeamDAOConfig:
    """
    Load deployment configuration.

    Resolution order:
        1. Explicit *path* argument
        2. BEAMDAO_CONFIG env var
        3. ./beamdao.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("BEAMDAO_CONFIG", "beamdao.toml")

    return BeamDAOConfig.from_file(path)
