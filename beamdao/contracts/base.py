"""
Contract Base

Shared plumbing for in-process contracts:
  - ContractError and its common subclasses (reverts)
  - @external: marks state-mutating entry points reachable through calldata
  - Contract: address/chain binding, event emission, calldata encode/dispatch,
    state capture for transaction rollback
"""

import copy
from typing import TYPE_CHECKING, Any, Callable, Dict, Tuple

from ..constants import MAX_UINT256
from ..crypto import (
    compute_function_selector,
    decode_function_args,
    encode_function_call,
    normalize_address,
    split_function_call,
)

if TYPE_CHECKING:
    from ..chain import Chain


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class ContractError(Exception):
    """
    A contract call reverted.

    `reason` carries the revert string, matching what an EVM client reports.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class UnauthorizedError(ContractError):
    """Caller lacks the role required for a privileged operation."""


class InvalidAddressError(ContractError):
    """An address argument is malformed or not allowed (e.g. zero address)."""


class UnknownSelectorError(ContractError):
    """Calldata does not match any entry point of the target contract."""


# ══════════════════════════════════════════════════════════════════════
#  ENTRY POINTS
# ══════════════════════════════════════════════════════════════════════

def external(signature: str) -> Callable:
    """
    Register a coroutine method as an entry point under its ABI signature.

    The method must take the caller as its first argument after `self`,
    followed by the arguments listed in the signature.
    """
    def decorator(fn):
        fn.__abi_signature__ = signature
        return fn
    return decorator


def require_address(value: Any, label: str = "address") -> str:
    try:
        return normalize_address(value)
    except ValueError:
        raise InvalidAddressError(f"invalid {label}: {value!r}") from None


def require_uint(value: Any, label: str = "amount") -> int:
    """uint256 range check; bools are not amounts."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ContractError(f"{label} must be an integer, got {type(value).__name__}")
    if value < 0 or value > MAX_UINT256:
        raise ContractError(f"{label} out of uint256 range: {value}")
    return value


# ══════════════════════════════════════════════════════════════════════
#  CONTRACT
# ══════════════════════════════════════════════════════════════════════

class Contract:
    """
    Base class for contracts hosted by a `Chain`.

    Subclass constructors receive `(chain, address, deployer, *args)`; the
    chain assigns the address and runs the constructor inside the deploy
    transaction. Contracts refer to each other by address and resolve
    through `self.chain`.
    """

    # selector → (signature, attribute name); filled per subclass
    _abi: Dict[bytes, Tuple[str, str]] = {}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        abi: Dict[bytes, Tuple[str, str]] = {}
        for klass in reversed(cls.__mro__):
            for attr, member in vars(klass).items():
                signature = getattr(member, "__abi_signature__", None)
                if signature:
                    abi[compute_function_selector(signature)] = (signature, attr)
        cls._abi = abi

    def __init__(self, chain: "Chain", address: str, deployer: str):
        self.chain = chain
        self.address = address
        self.deployer = deployer

    # ── Events ────────────────────────────────────────────────────────

    def _emit(self, event: str, **args: Any) -> None:
        self.chain.record_log(self.address, event, args)

    # ── Calldata ──────────────────────────────────────────────────────

    @classmethod
    def signature_of(cls, method: str) -> str:
        for signature, attr in cls._abi.values():
            if attr == method:
                return signature
        raise AttributeError(f"{cls.__name__} has no external method {method!r}")

    def encode_call(self, method: str, *args: Any) -> bytes:
        """
        Encode calldata for an external method, like ethers' populateTransaction.

        >>> data = timelock.encode_call("update_delay", 3600)
        """
        return encode_function_call(self.signature_of(method), *args)

    async def dispatch(self, caller: str, data: bytes) -> Any:
        """Route encoded calldata to the matching entry point."""
        selector, encoded_args = split_function_call(data)
        entry = self._abi.get(selector)
        if entry is None:
            raise UnknownSelectorError(
                f"{type(self).__name__}: no entry point for selector 0x{selector.hex()}"
            )
        signature, attr = entry
        args = decode_function_args(signature, encoded_args)
        return await getattr(self, attr)(caller, *args)

    # ── Rollback support ──────────────────────────────────────────────

    def _capture_state(self) -> Dict[str, Any]:
        return copy.deepcopy({k: v for k, v in vars(self).items() if k != "chain"})

    def _restore_state(self, state: Dict[str, Any]) -> None:
        chain = self.chain
        self.__dict__.clear()
        self.__dict__.update(copy.deepcopy(state))
        self.chain = chain

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.address}>"
