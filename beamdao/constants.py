"""
BeamDAO Constants

Protocol constants shared with the deployed contracts, defaults for the
deployment tooling, and the settings read from `.env`.

`.env` settings become module attributes of the same name. Each keeps its
built-in default reachable through `.default()`, so a bad value can fall back
without re-reading the table below.
"""

from dotenv import dotenv_values

# =============================================================================
# .env SETTINGS
# =============================================================================
_dotenv = dotenv_values(".env")

DEPLOYER_DEFAULTS = {
    'BEAMDAO_EXPLORER_API_URL':        'https://api.etherscan.io/v2/api',
    'BEAMDAO_EXPLORER_CHAIN_ID':       '1',
}

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024  # bytes per rotated file
LOG_BACKUP_COUNT = 5


# WARNING: THE VALUES BELOW MUST MATCH THE DEPLOYED CONTRACTS. ROLE IDENTIFIERS AND THE
# FIXED-POINT SCALE ARE SHARED WITH EXISTING LEDGERS; CHANGING THEM BREAKS ROLE GRANTS.

# ==================================================================================
# TOKEN PARAMETERS
# ==================================================================================
TOKEN_DECIMALS = 18
SCALE = 10 ** 18  # Fixed-point scale for migration rates
MAX_UINT256 = 2 ** 256 - 1


# ==================================================================================
# ADDRESSES & IDENTIFIERS
# ==================================================================================
ZERO_ADDRESS = '0x0000000000000000000000000000000000000000'
ZERO_BYTES32 = b'\x00' * 32

# Role names hashed with keccak256 into 32-byte identifiers
MINTER_ROLE_NAME = 'MINTER_ROLE'
BURNER_ROLE_NAME = 'BURNER_ROLE'
TIMELOCK_ADMIN_ROLE_NAME = 'TIMELOCK_ADMIN_ROLE'
PROPOSER_ROLE_NAME = 'PROPOSER_ROLE'
EXECUTOR_ROLE_NAME = 'EXECUTOR_ROLE'
CANCELLER_ROLE_NAME = 'CANCELLER_ROLE'


# ==================================================================================
# TIMELOCK PARAMETERS
# ==================================================================================
DONE_TIMESTAMP = 1  # Marks an executed operation


# ==================================================================================
# EXECUTION ENVIRONMENT
# ==================================================================================
DEFAULT_ACCOUNT_COUNT = 10
DEFAULT_GENESIS_TIMESTAMP = 1_700_000_000
DEFAULT_BLOCK_TIME = 12  # seconds


# ==================================================================================
# DEPLOYMENT DEFAULTS
# ==================================================================================
VERIFY_DELAY = 100  # seconds to wait before submitting explorer verification
VERIFY_POLL_ATTEMPTS = 10
VERIFY_POLL_INTERVAL = 5
DEFAULT_TOKEN_NAME = 'Beam'
DEFAULT_TOKEN_SYMBOL = 'BEAM'
DEFAULT_QUORUM_FRACTION = 4  # percent of supply
DEFAULT_VOTING_DELAY = 1  # blocks
DEFAULT_VOTING_PERIOD = 45818  # blocks, roughly one week
DEFAULT_MIN_DELAY = 2 * 86400  # seconds


# ==================================================================================
# .env VALUE WRAPPERS
# ==================================================================================
class ConfigString(str):
    """A `.env` string setting that remembers its built-in default."""

    def __new__(cls, value, default):
        setting = super().__new__(cls, value)
        setting._default = default
        return setting

    def default(self):
        return self._default


class ConfigBool(int):
    """A `.env` flag ("True" / "False"); truthy like a bool, remembers its default."""

    def __new__(cls, value, default):
        setting = super().__new__(cls, bool(value))
        setting._default = default
        return setting

    def default(self):
        return self._default

    def __eq__(self, other):
        return bool(self) == other

    __hash__ = int.__hash__

    def __repr__(self):
        return repr(bool(self))

    __str__ = __repr__


def parse_bool(value):
    """"true" / "false" in any case become bools; anything else is returned as is."""
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return value


def _load_settings(defaults):
    settings = {}
    for key, default in defaults.items():
        # a key present in .env without a value counts as unset
        raw = _dotenv.get(key)
        raw = default if raw is None else raw
        if isinstance(parse_bool(raw), bool):
            settings[key] = ConfigBool(parse_bool(raw), parse_bool(default))
        else:
            settings[key] = ConfigString(raw, default)
    return settings


DEFAULTS = DEPLOYER_DEFAULTS | LOGGER_DEFAULTS
globals().update(_load_settings(DEFAULTS))
