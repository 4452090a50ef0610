"""
Timelock Controller — delay-enforcing execution gate

Operations are scheduled by PROPOSER_ROLE holders, become ready once
`min_delay` has elapsed and are then executed by EXECUTOR_ROLE holders (or
anyone, when the zero address holds EXECUTOR_ROLE). The timelock administers
itself: changing the delay is itself a timelocked operation.

Operation ids and revert strings follow OpenZeppelin TimelockController 4.9.
"""

from typing import Dict, List, Sequence, Union

from ..constants import (
    CANCELLER_ROLE_NAME,
    DONE_TIMESTAMP,
    EXECUTOR_ROLE_NAME,
    PROPOSER_ROLE_NAME,
    TIMELOCK_ADMIN_ROLE_NAME,
    ZERO_ADDRESS,
    ZERO_BYTES32,
)
from ..crypto import hash_operation, hash_operation_batch, role_id, to_bytes32
from ..logger import get_logger
from .access_control import AccessControl
from .base import ContractError, UnknownSelectorError, external, require_address, require_uint

logger = get_logger(__name__)

TIMELOCK_ADMIN_ROLE = role_id(TIMELOCK_ADMIN_ROLE_NAME)
PROPOSER_ROLE = role_id(PROPOSER_ROLE_NAME)
EXECUTOR_ROLE = role_id(EXECUTOR_ROLE_NAME)
CANCELLER_ROLE = role_id(CANCELLER_ROLE_NAME)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class TimelockError(ContractError):
    """Timelock-specific reverts (scheduling, readiness, dependencies)."""


# ══════════════════════════════════════════════════════════════════════
#  TIMELOCK CONTROLLER
# ══════════════════════════════════════════════════════════════════════

class TimelockController(AccessControl):
    """
    Events:
        CallScheduled(id, index, target, value, data, predecessor, delay)
        CallSalt(id, salt)
        CallExecuted(id, index, target, value, data)
        Cancelled(id)
        MinDelayChange(oldDuration, newDuration)
    """

    TIMELOCK_ADMIN_ROLE = TIMELOCK_ADMIN_ROLE
    PROPOSER_ROLE = PROPOSER_ROLE
    EXECUTOR_ROLE = EXECUTOR_ROLE
    CANCELLER_ROLE = CANCELLER_ROLE

    def __init__(
        self,
        chain,
        address: str,
        deployer: str,
        min_delay: int,
        proposers: Sequence[str],
        executors: Sequence[str],
        admin: str = ZERO_ADDRESS,
    ):
        super().__init__(chain, address, deployer)
        self._timestamps: Dict[bytes, int] = {}

        for role in (TIMELOCK_ADMIN_ROLE, PROPOSER_ROLE, EXECUTOR_ROLE, CANCELLER_ROLE):
            self._set_role_admin(role, TIMELOCK_ADMIN_ROLE)

        # self administration
        self._grant_role(TIMELOCK_ADMIN_ROLE, address, deployer)

        # optional admin for initial setup, expected to be renounced
        admin = require_address(admin, "admin")
        if admin != ZERO_ADDRESS:
            self._grant_role(TIMELOCK_ADMIN_ROLE, admin, deployer)

        for proposer in proposers:
            proposer = require_address(proposer, "proposer")
            self._grant_role(PROPOSER_ROLE, proposer, deployer)
            self._grant_role(CANCELLER_ROLE, proposer, deployer)

        for executor in executors:
            self._grant_role(EXECUTOR_ROLE, require_address(executor, "executor"), deployer)

        self._min_delay = require_uint(min_delay, "min delay")
        self._emit("MinDelayChange", oldDuration=0, newDuration=self._min_delay)
        logger.info(f"TimelockController deployed at {address}, min delay {self._min_delay}s")

    # ── Read-only views ───────────────────────────────────────────────

    @property
    def min_delay(self) -> int:
        return self._min_delay

    def get_timestamp(self, operation_id: Union[bytes, str]) -> int:
        return self._timestamps.get(to_bytes32(operation_id), 0)

    def is_operation(self, operation_id: Union[bytes, str]) -> bool:
        return self.get_timestamp(operation_id) > 0

    def is_operation_pending(self, operation_id: Union[bytes, str]) -> bool:
        return self.get_timestamp(operation_id) > DONE_TIMESTAMP

    def is_operation_ready(self, operation_id: Union[bytes, str]) -> bool:
        timestamp = self.get_timestamp(operation_id)
        return timestamp > DONE_TIMESTAMP and timestamp <= self.chain.timestamp

    def is_operation_done(self, operation_id: Union[bytes, str]) -> bool:
        return self.get_timestamp(operation_id) == DONE_TIMESTAMP

    def hash_operation(
        self,
        target: str,
        value: int,
        data: bytes,
        predecessor: bytes = ZERO_BYTES32,
        salt: bytes = ZERO_BYTES32,
    ) -> bytes:
        return hash_operation(require_address(target), value, data, predecessor, salt)

    def hash_operation_batch(
        self,
        targets: Sequence[str],
        values: Sequence[int],
        payloads: Sequence[bytes],
        predecessor: bytes = ZERO_BYTES32,
        salt: bytes = ZERO_BYTES32,
    ) -> bytes:
        return hash_operation_batch(
            [require_address(t) for t in targets], values, payloads, predecessor, salt
        )

    # ── Guards ────────────────────────────────────────────────────────

    def _only_role_or_open_role(self, role: bytes, caller: str) -> None:
        if not self.has_role(role, ZERO_ADDRESS):
            self._check_role(role, caller)

    # ── Scheduling ────────────────────────────────────────────────────

    @external("schedule(address,uint256,bytes,bytes32,bytes32,uint256)")
    async def schedule(
        self,
        caller: str,
        target: str,
        value: int,
        data: bytes,
        predecessor: bytes,
        salt: bytes,
        delay: int,
    ) -> bytes:
        self._check_role(PROPOSER_ROLE, caller)
        target = require_address(target, "target")
        predecessor, salt = to_bytes32(predecessor), to_bytes32(salt)
        operation_id = self.hash_operation(target, value, data, predecessor, salt)

        self._schedule(operation_id, require_uint(delay, "delay"))
        self._emit(
            "CallScheduled",
            id=operation_id, index=0, target=target, value=value,
            data=data, predecessor=predecessor, delay=delay,
        )
        if salt != ZERO_BYTES32:
            self._emit("CallSalt", id=operation_id, salt=salt)
        logger.info(f"Scheduled operation 0x{operation_id.hex()} on {target} (delay {delay}s)")
        return operation_id

    @external("scheduleBatch(address[],uint256[],bytes[],bytes32,bytes32,uint256)")
    async def schedule_batch(
        self,
        caller: str,
        targets: Sequence[str],
        values: Sequence[int],
        payloads: Sequence[bytes],
        predecessor: bytes,
        salt: bytes,
        delay: int,
    ) -> bytes:
        self._check_role(PROPOSER_ROLE, caller)
        if len(targets) != len(values) or len(targets) != len(payloads):
            raise TimelockError("TimelockController: length mismatch")
        targets = [require_address(t, "target") for t in targets]
        predecessor, salt = to_bytes32(predecessor), to_bytes32(salt)
        operation_id = self.hash_operation_batch(targets, values, payloads, predecessor, salt)

        self._schedule(operation_id, require_uint(delay, "delay"))
        for index, (target, value, payload) in enumerate(zip(targets, values, payloads)):
            self._emit(
                "CallScheduled",
                id=operation_id, index=index, target=target, value=value,
                data=payload, predecessor=predecessor, delay=delay,
            )
        if salt != ZERO_BYTES32:
            self._emit("CallSalt", id=operation_id, salt=salt)
        logger.info(f"Scheduled batch 0x{operation_id.hex()} with {len(targets)} calls (delay {delay}s)")
        return operation_id

    def _schedule(self, operation_id: bytes, delay: int) -> None:
        if self.is_operation(operation_id):
            raise TimelockError("TimelockController: operation already scheduled")
        if delay < self._min_delay:
            raise TimelockError("TimelockController: insufficient delay")
        self._timestamps[operation_id] = self.chain.timestamp + delay

    @external("cancel(bytes32)")
    async def cancel(self, caller: str, operation_id: bytes) -> None:
        self._check_role(CANCELLER_ROLE, caller)
        operation_id = to_bytes32(operation_id)
        if not self.is_operation_pending(operation_id):
            raise TimelockError("TimelockController: operation cannot be cancelled")
        del self._timestamps[operation_id]
        self._emit("Cancelled", id=operation_id)
        logger.warning(f"Cancelled operation 0x{operation_id.hex()}")

    # ── Execution ─────────────────────────────────────────────────────

    @external("execute(address,uint256,bytes,bytes32,bytes32)")
    async def execute(
        self,
        caller: str,
        target: str,
        value: int,
        payload: bytes,
        predecessor: bytes,
        salt: bytes,
    ) -> bytes:
        self._only_role_or_open_role(EXECUTOR_ROLE, caller)
        target = require_address(target, "target")
        predecessor, salt = to_bytes32(predecessor), to_bytes32(salt)
        operation_id = self.hash_operation(target, value, payload, predecessor, salt)

        self._before_call(operation_id, predecessor)
        await self._execute(target, value, payload)
        self._emit("CallExecuted", id=operation_id, index=0, target=target, value=value, data=payload)
        self._after_call(operation_id)
        logger.info(f"Executed operation 0x{operation_id.hex()} on {target}")
        return operation_id

    @external("executeBatch(address[],uint256[],bytes[],bytes32,bytes32)")
    async def execute_batch(
        self,
        caller: str,
        targets: Sequence[str],
        values: Sequence[int],
        payloads: Sequence[bytes],
        predecessor: bytes,
        salt: bytes,
    ) -> bytes:
        self._only_role_or_open_role(EXECUTOR_ROLE, caller)
        if len(targets) != len(values) or len(targets) != len(payloads):
            raise TimelockError("TimelockController: length mismatch")
        targets = [require_address(t, "target") for t in targets]
        predecessor, salt = to_bytes32(predecessor), to_bytes32(salt)
        operation_id = self.hash_operation_batch(targets, values, payloads, predecessor, salt)

        self._before_call(operation_id, predecessor)
        for index, (target, value, payload) in enumerate(zip(targets, values, payloads)):
            await self._execute(target, value, payload)
            self._emit(
                "CallExecuted", id=operation_id, index=index,
                target=target, value=value, data=payload,
            )
        self._after_call(operation_id)
        logger.info(f"Executed batch 0x{operation_id.hex()} ({len(targets)} calls)")
        return operation_id

    async def _execute(self, target: str, value: int, data: bytes) -> None:
        # The timelock holds no native balance, so value-bearing calls fail
        if value != 0:
            raise TimelockError("TimelockController: underlying transaction reverted")
        if not self.chain.is_contract(target):
            return
        try:
            await self.chain.get_contract(target).dispatch(self.address, data)
        except UnknownSelectorError as e:
            raise TimelockError("TimelockController: underlying transaction reverted") from e

    def _before_call(self, operation_id: bytes, predecessor: bytes) -> None:
        if not self.is_operation_ready(operation_id):
            raise TimelockError("TimelockController: operation is not ready")
        if predecessor != ZERO_BYTES32 and not self.is_operation_done(predecessor):
            raise TimelockError("TimelockController: missing dependency")

    def _after_call(self, operation_id: bytes) -> None:
        if not self.is_operation_ready(operation_id):
            raise TimelockError("TimelockController: operation is not ready")
        self._timestamps[operation_id] = DONE_TIMESTAMP

    # ── Self-administration ───────────────────────────────────────────

    @external("updateDelay(uint256)")
    async def update_delay(self, caller: str, new_delay: int) -> None:
        if require_address(caller) != self.address:
            raise TimelockError("TimelockController: caller must be timelock")
        new_delay = require_uint(new_delay, "delay")
        self._emit("MinDelayChange", oldDuration=self._min_delay, newDuration=new_delay)
        logger.info(f"Timelock {self.address} min delay {self._min_delay}s → {new_delay}s")
        self._min_delay = new_delay

    def pending_operations(self) -> List[bytes]:
        return [op for op, ts in self._timestamps.items() if ts > DONE_TIMESTAMP]

    def __repr__(self) -> str:
        return f"<TimelockController {self.address} min_delay={self._min_delay}>"
