"""
BeamDAO Contracts

Provides:
  - BeamToken           : governance ledger with role-gated mint / burn
  - Migrator            : one-way proportional conversion between ledgers
  - TimelockController  : delay-enforcing execution gate
  - BeamDAO             : governor parameters trusted by the timelock
  - AccessControl       : role table shared by the token and the timelock
"""

from .base import (
    Contract,
    ContractError,
    InvalidAddressError,
    UnauthorizedError,
    UnknownSelectorError,
    external,
)
from .access_control import AccessControl, DEFAULT_ADMIN_ROLE
from .token import (
    BURNER_ROLE,
    MINTER_ROLE,
    BeamToken,
    InsufficientAllowanceError,
    InsufficientBalanceError,
    SelfTransferForbiddenError,
)
from .migrator import Migrator, NotAuthorizedError
from .timelock import (
    CANCELLER_ROLE,
    EXECUTOR_ROLE,
    PROPOSER_ROLE,
    TIMELOCK_ADMIN_ROLE,
    TimelockController,
    TimelockError,
)
from .dao import BeamDAO

__all__ = [
    # Base
    "Contract",
    "ContractError",
    "InvalidAddressError",
    "UnauthorizedError",
    "UnknownSelectorError",
    "external",
    # Access control
    "AccessControl",
    "DEFAULT_ADMIN_ROLE",
    # Token
    "BeamToken",
    "MINTER_ROLE",
    "BURNER_ROLE",
    "InsufficientBalanceError",
    "InsufficientAllowanceError",
    "SelfTransferForbiddenError",
    # Migrator
    "Migrator",
    "NotAuthorizedError",
    # Governance
    "TimelockController",
    "TimelockError",
    "TIMELOCK_ADMIN_ROLE",
    "PROPOSER_ROLE",
    "EXECUTOR_ROLE",
    "CANCELLER_ROLE",
    "BeamDAO",
]
