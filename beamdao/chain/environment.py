"""
In-Process Execution Environment

A deterministic stand-in for an EVM chain client:
  - deploy / transact primitives with CREATE-style addresses and nonces
  - whole-transaction atomicity (state rolled back on any failure)
  - global serialization of transactions (one at a time)
  - event logs, receipts, snapshots and time travel for tests
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

import rlp
from eth_utils import keccak, to_canonical_address, to_checksum_address

from ..constants import (
    DEFAULT_ACCOUNT_COUNT,
    DEFAULT_BLOCK_TIME,
    DEFAULT_GENESIS_TIMESTAMP,
)
from ..contracts.base import Contract, ContractError
from ..crypto import generate_contract_address, normalize_address
from ..logger import get_logger

logger = get_logger(__name__)

C = TypeVar("C", bound=Contract)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class ChainError(Exception):
    """Misuse of the execution environment (not a contract revert)."""


# ══════════════════════════════════════════════════════════════════════
#  LOGS & RECEIPTS
# ══════════════════════════════════════════════════════════════════════

def _json_safe(value: Any) -> Any:
    if isinstance(value, bytes):
        return '0x' + value.hex()
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


@dataclass(frozen=True)
class EventLog:
    """A single emitted event."""
    address: str
    event: str
    args: Dict[str, Any]
    block_number: int
    log_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "event": self.event,
            "args": {k: _json_safe(v) for k, v in self.args.items()},
            "blockNumber": self.block_number,
            "logIndex": self.log_index,
        }


@dataclass
class Receipt:
    """Settlement record of a mined transaction."""
    tx_hash: bytes
    block_number: int
    timestamp: int
    sender: str
    to: Optional[str]
    logs: List[EventLog] = field(default_factory=list)
    return_value: Any = None
    contract_address: Optional[str] = None

    def events(self, name: str) -> List[EventLog]:
        return [log for log in self.logs if log.event == name]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transactionHash": '0x' + self.tx_hash.hex(),
            "blockNumber": self.block_number,
            "timestamp": self.timestamp,
            "from": self.sender,
            "to": self.to,
            "contractAddress": self.contract_address,
            "logs": [log.to_dict() for log in self.logs],
        }


# ══════════════════════════════════════════════════════════════════════
#  CHAIN
# ══════════════════════════════════════════════════════════════════════

def derive_account(index: int) -> str:
    """Deterministic signer address for test/dev accounts."""
    return to_checksum_address(keccak(text=f"beamdao:account:{index}")[-20:])


class Chain:
    """
    In-process chain.

    Every `deploy` and `transact` call is an indivisible unit: they are
    serialized by a lock and any exception rolls back contract state,
    nonces, logs and the clock to what they were before the call.
    """

    def __init__(
        self,
        accounts: int = DEFAULT_ACCOUNT_COUNT,
        genesis_timestamp: int = DEFAULT_GENESIS_TIMESTAMP,
        block_time: int = DEFAULT_BLOCK_TIME,
    ):
        if accounts < 1:
            raise ChainError("At least one account is required")
        if block_time < 1:
            raise ChainError("Block time must be positive")

        self.accounts: List[str] = [derive_account(i) for i in range(accounts)]
        self.block_time = block_time
        self.block_number = 0
        self.timestamp = genesis_timestamp

        self._contracts: Dict[str, Contract] = {}
        self._nonces: Dict[str, int] = {}
        self._logs: List[EventLog] = []
        self._pending_logs: Optional[List[EventLog]] = None
        self._snapshots: List[Dict[str, Any]] = []
        self._lock = asyncio.Lock()

    # ── Read-only views ───────────────────────────────────────────────

    @property
    def logs(self) -> List[EventLog]:
        return list(self._logs)

    def nonce_of(self, address: str) -> int:
        return self._nonces.get(normalize_address(address), 0)

    def is_contract(self, address: str) -> bool:
        return normalize_address(address) in self._contracts

    def get_contract(self, address: str) -> Contract:
        contract = self._contracts.get(normalize_address(address))
        if contract is None:
            raise ChainError(f"No contract deployed at {address}")
        return contract

    def get_logs(self, address: Optional[str] = None, event: Optional[str] = None) -> List[EventLog]:
        logs = self._logs
        if address is not None:
            address = normalize_address(address)
            logs = [log for log in logs if log.address == address]
        if event is not None:
            logs = [log for log in logs if log.event == event]
        return list(logs)

    # ── Events ────────────────────────────────────────────────────────

    def record_log(self, address: str, event: str, args: Dict[str, Any]) -> EventLog:
        """Append an event to the running transaction (or directly, outside one)."""
        target = self._pending_logs if self._pending_logs is not None else self._logs
        log = EventLog(
            address=address,
            event=event,
            args=dict(args),
            block_number=self.block_number,
            log_index=len(target),
        )
        target.append(log)
        return log

    # ── State capture ─────────────────────────────────────────────────

    def _capture(self) -> Dict[str, Any]:
        return {
            "contracts": dict(self._contracts),
            "states": {addr: c._capture_state() for addr, c in self._contracts.items()},
            "nonces": dict(self._nonces),
            "logs": list(self._logs),
            "block_number": self.block_number,
            "timestamp": self.timestamp,
        }

    def _restore(self, state: Dict[str, Any]) -> None:
        self._contracts = dict(state["contracts"])
        for addr, contract_state in state["states"].items():
            self._contracts[addr]._restore_state(contract_state)
        self._nonces = dict(state["nonces"])
        self._logs = list(state["logs"])
        self.block_number = state["block_number"]
        self.timestamp = state["timestamp"]

    def _open_block(self) -> None:
        self.block_number += 1
        self.timestamp += self.block_time

    def _tx_hash(self, sender: str, nonce: int, to: Optional[str], label: str) -> bytes:
        return keccak(rlp.encode([
            to_canonical_address(sender),
            nonce,
            to_canonical_address(to) if to else b'',
            label.encode(),
            self.block_number,
        ]))

    # ── Transactions ──────────────────────────────────────────────────

    async def deploy(self, sender: str, contract_cls: Type[C], *args: Any) -> C:
        """
        Deploy `contract_cls` from `sender`.

        The address follows CREATE semantics (sender, nonce). Constructor
        failures roll back like any other transaction.
        """
        sender = normalize_address(sender)
        async with self._lock:
            state = self._capture()
            self._pending_logs = []
            try:
                self._open_block()
                nonce = self._nonces.get(sender, 0)
                address = generate_contract_address(sender, nonce)
                contract = contract_cls(self, address, sender, *args)
                self._contracts[address] = contract
                self._nonces[sender] = nonce + 1
                self._logs.extend(self._pending_logs)
            except BaseException:
                self._restore(state)
                raise
            finally:
                self._pending_logs = None

        logger.debug(f"Deployed {contract_cls.__name__} at {address} (block {self.block_number})")
        return contract

    async def transact(self, sender: str, fn: Callable, *args: Any) -> Receipt:
        """
        Send a transaction calling the bound contract method `fn` as `sender`.

        Returns the receipt once the transaction has settled. Any exception
        raised by the call aborts it: state is restored and the exception
        propagates to the caller unchanged.
        """
        sender = normalize_address(sender)
        target = getattr(fn, "__self__", None)
        if not isinstance(target, Contract) or target.chain is not self:
            raise ChainError("transact() expects a method of a contract deployed on this chain")
        if not getattr(fn, "__abi_signature__", None):
            raise ChainError(f"{fn.__name__} is not an external entry point")

        async with self._lock:
            state = self._capture()
            self._pending_logs = []
            try:
                self._open_block()
                nonce = self._nonces.get(sender, 0)
                result = await fn(sender, *args)
                logs = self._pending_logs
                self._nonces[sender] = nonce + 1
                self._logs.extend(logs)
            except ContractError as e:
                self._restore(state)
                logger.debug(f"Transaction {fn.__name__} from {sender} reverted: {e.reason}")
                raise
            except BaseException:
                self._restore(state)
                raise
            finally:
                self._pending_logs = None

        return Receipt(
            tx_hash=self._tx_hash(sender, nonce, target.address, fn.__abi_signature__),
            block_number=self.block_number,
            timestamp=self.timestamp,
            sender=sender,
            to=target.address,
            logs=list(logs),
            return_value=result,
        )

    # ── Time travel ───────────────────────────────────────────────────

    def snapshot(self) -> int:
        """Record the full chain state; returns an id for `revert`."""
        self._snapshots.append(self._capture())
        return len(self._snapshots) - 1

    def revert(self, snapshot_id: int) -> None:
        """
        Restore the state recorded by `snapshot`.

        Snapshots taken after `snapshot_id` are discarded; `snapshot_id`
        itself stays valid so tests can revert to it before every case.
        """
        if snapshot_id < 0 or snapshot_id >= len(self._snapshots):
            raise ChainError(f"Invalid snapshot ID: {snapshot_id}")
        self._restore(self._snapshots[snapshot_id])
        self._snapshots = self._snapshots[:snapshot_id + 1]

    def increase_time(self, seconds: int) -> None:
        if seconds < 0:
            raise ChainError("Cannot move time backwards")
        self.timestamp += seconds

    def mine(self, blocks: int = 1) -> None:
        for _ in range(blocks):
            self._open_block()

    def __repr__(self) -> str:
        return (
            f"<Chain block={self.block_number} ts={self.timestamp} "
            f"contracts={len(self._contracts)}>"
        )
