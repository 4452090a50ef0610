"""
BeamDAO Execution Environment

Provides:
  - Chain     : in-process chain with deploy / transact / snapshot / time travel
  - Receipt   : settlement record of a mined transaction
  - EventLog  : emitted contract event
"""

from .environment import (
    Chain,
    ChainError,
    EventLog,
    Receipt,
    derive_account,
)

__all__ = [
    "Chain",
    "ChainError",
    "EventLog",
    "Receipt",
    "derive_account",
]
