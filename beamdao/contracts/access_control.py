"""
Role-Based Access Control

Capability table `role → set of accounts`, with each role administered by
another role (DEFAULT_ADMIN_ROLE unless changed). Mirrors OpenZeppelin
AccessControl, including revert strings, so tooling written against the
deployed contracts reads the same here.
"""

from typing import Dict, List, Set, Union

from ..constants import ZERO_BYTES32
from ..crypto import to_bytes32
from ..logger import get_logger
from .base import Contract, ContractError, UnauthorizedError, external, require_address

logger = get_logger(__name__)

DEFAULT_ADMIN_ROLE = ZERO_BYTES32


def _role(value: Union[bytes, str]) -> bytes:
    try:
        return to_bytes32(value)
    except ValueError as e:
        raise ContractError(f"AccessControl: invalid role {value!r}") from e


class AccessControl(Contract):
    """
    Role table shared by the token and the timelock.

    Events:
        RoleGranted(role, account, sender)
        RoleRevoked(role, account, sender)
        RoleAdminChanged(role, previousAdminRole, newAdminRole)
    """

    DEFAULT_ADMIN_ROLE = DEFAULT_ADMIN_ROLE

    def __init__(self, chain, address: str, deployer: str):
        super().__init__(chain, address, deployer)
        self._roles: Dict[bytes, Set[str]] = {}
        self._role_admins: Dict[bytes, bytes] = {}

    # ── Read-only views ───────────────────────────────────────────────

    def has_role(self, role: Union[bytes, str], account: str) -> bool:
        return require_address(account) in self._roles.get(_role(role), set())

    def get_role_admin(self, role: Union[bytes, str]) -> bytes:
        return self._role_admins.get(_role(role), DEFAULT_ADMIN_ROLE)

    def role_members(self, role: Union[bytes, str]) -> List[str]:
        return sorted(self._roles.get(_role(role), set()))

    # ── Guards ────────────────────────────────────────────────────────

    def _check_role(self, role: bytes, account: str) -> None:
        if not self.has_role(role, account):
            raise UnauthorizedError(
                f"AccessControl: account {account.lower()} is missing role 0x{role.hex()}"
            )

    # ── Mutations ─────────────────────────────────────────────────────

    @external("grantRole(bytes32,address)")
    async def grant_role(self, caller: str, role: Union[bytes, str], account: str) -> None:
        role = _role(role)
        self._check_role(self.get_role_admin(role), caller)
        self._grant_role(role, require_address(account), caller)

    @external("revokeRole(bytes32,address)")
    async def revoke_role(self, caller: str, role: Union[bytes, str], account: str) -> None:
        role = _role(role)
        self._check_role(self.get_role_admin(role), caller)
        self._revoke_role(role, require_address(account), caller)

    @external("renounceRole(bytes32,address)")
    async def renounce_role(self, caller: str, role: Union[bytes, str], account: str) -> None:
        """Drop one of the caller's own roles. A no-op when the role is not held."""
        if require_address(account) != require_address(caller):
            raise ContractError("AccessControl: can only renounce roles for self")
        self._revoke_role(_role(role), require_address(account), caller)

    # ── Internals ─────────────────────────────────────────────────────

    def _grant_role(self, role: bytes, account: str, sender: str) -> None:
        members = self._roles.setdefault(role, set())
        if account in members:
            return
        members.add(account)
        self._emit("RoleGranted", role=role, account=account, sender=sender)
        logger.debug(f"{type(self).__name__} {self.address}: granted 0x{role.hex()} to {account}")

    def _revoke_role(self, role: bytes, account: str, sender: str) -> None:
        members = self._roles.get(role)
        if not members or account not in members:
            return
        members.discard(account)
        self._emit("RoleRevoked", role=role, account=account, sender=sender)
        logger.debug(f"{type(self).__name__} {self.address}: revoked 0x{role.hex()} from {account}")

    def _set_role_admin(self, role: bytes, admin_role: bytes) -> None:
        previous = self.get_role_admin(role)
        self._role_admins[role] = admin_role
        self._emit(
            "RoleAdminChanged",
            role=role,
            previousAdminRole=previous,
            newAdminRole=admin_role,
        )
