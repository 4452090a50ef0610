"""
Beam Token — governance ledger

ERC-20 ledger with role-gated mint and burn:
  - MINTER_ROLE holders may mint to any account
  - BURNER_ROLE holders may burn from any account
  - transfers to the token's own address are always rejected
  - DEFAULT_ADMIN_ROLE (deployer at construction) administers the roles
"""

from typing import Dict, Tuple

from ..constants import (
    BURNER_ROLE_NAME,
    MAX_UINT256,
    MINTER_ROLE_NAME,
    TOKEN_DECIMALS,
    ZERO_ADDRESS,
)
from ..crypto import role_id
from ..logger import get_logger
from .access_control import DEFAULT_ADMIN_ROLE, AccessControl
from .base import (
    ContractError,
    InvalidAddressError,
    UnauthorizedError,
    external,
    require_address,
    require_uint,
)

logger = get_logger(__name__)

MINTER_ROLE = role_id(MINTER_ROLE_NAME)
BURNER_ROLE = role_id(BURNER_ROLE_NAME)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class InsufficientBalanceError(ContractError):
    """Raised when a burn or transfer exceeds the account balance."""


class InsufficientAllowanceError(ContractError):
    """Raised when spender allowance is too low."""


class SelfTransferForbiddenError(ContractError):
    """Raised when tokens are sent to the token contract itself."""


# ══════════════════════════════════════════════════════════════════════
#  BEAM TOKEN
# ══════════════════════════════════════════════════════════════════════

class BeamToken(AccessControl):
    """
    Beam governance token.

    Mirrors the deployed contract:
        - name / symbol / decimals / totalSupply / balanceOf / allowance
        - mint(to, amount)           onlyHasRole(MINTER_ROLE)
        - burn(from, amount)         onlyHasRole(BURNER_ROLE)
        - transfer / transferFrom    reject `to == address(this)`
        - approve / increaseAllowance / decreaseAllowance

    Events: Transfer(from, to, value), Approval(owner, spender, value),
    plus the AccessControl role events.
    """

    MINTER_ROLE = MINTER_ROLE
    BURNER_ROLE = BURNER_ROLE

    def __init__(
        self,
        chain,
        address: str,
        deployer: str,
        name: str,
        symbol: str,
        initial_supply: int = 0,
    ):
        super().__init__(chain, address, deployer)
        if not name:
            raise ContractError("BeamToken: name cannot be empty")
        if not symbol:
            raise ContractError("BeamToken: symbol cannot be empty")

        self.name = name
        self.symbol = symbol
        self.decimals = TOKEN_DECIMALS
        self._total_supply = 0
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}  # (owner, spender)

        self._grant_role(DEFAULT_ADMIN_ROLE, deployer, deployer)
        if require_uint(initial_supply, "initial supply") > 0:
            self._mint(deployer, initial_supply)

        logger.info(f"BeamToken deployed: {symbol} ({name}) at {address}, supply={initial_supply}")

    # ── Read-only views ───────────────────────────────────────────────

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances.get(require_address(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((require_address(owner), require_address(spender)), 0)

    # ── Guards ────────────────────────────────────────────────────────

    def _only_has_role(self, role: bytes, caller: str) -> None:
        if not self.has_role(role, caller):
            raise UnauthorizedError("BeamToken.onlyHasRole: msg.sender does not have role")

    # ── Role-gated supply changes ─────────────────────────────────────

    @external("mint(address,uint256)")
    async def mint(self, caller: str, to: str, amount: int) -> None:
        self._only_has_role(MINTER_ROLE, caller)
        self._mint(require_address(to), require_uint(amount))

    @external("burn(address,uint256)")
    async def burn(self, caller: str, account: str, amount: int) -> None:
        self._only_has_role(BURNER_ROLE, caller)
        self._burn(require_address(account), require_uint(amount))

    # ── ERC-20 operations ─────────────────────────────────────────────

    @external("transfer(address,uint256)")
    async def transfer(self, caller: str, to: str, amount: int) -> bool:
        self._transfer(require_address(caller), require_address(to), require_uint(amount))
        return True

    @external("approve(address,uint256)")
    async def approve(self, caller: str, spender: str, amount: int) -> bool:
        self._approve(require_address(caller), require_address(spender), require_uint(amount))
        return True

    @external("transferFrom(address,address,uint256)")
    async def transfer_from(self, caller: str, sender: str, to: str, amount: int) -> bool:
        caller = require_address(caller)
        sender = require_address(sender)
        amount = require_uint(amount)
        self._spend_allowance(sender, caller, amount)
        self._transfer(sender, require_address(to), amount)
        return True

    @external("increaseAllowance(address,uint256)")
    async def increase_allowance(self, caller: str, spender: str, added_value: int) -> bool:
        owner = require_address(caller)
        spender = require_address(spender)
        new_allowance = self.allowance(owner, spender) + require_uint(added_value)
        self._approve(owner, spender, require_uint(new_allowance, "allowance"))
        return True

    @external("decreaseAllowance(address,uint256)")
    async def decrease_allowance(self, caller: str, spender: str, subtracted_value: int) -> bool:
        owner = require_address(caller)
        spender = require_address(spender)
        current = self.allowance(owner, spender)
        if current < require_uint(subtracted_value):
            raise ContractError("ERC20: decreased allowance below zero")
        self._approve(owner, spender, current - subtracted_value)
        return True

    # ── Internals ─────────────────────────────────────────────────────

    def _transfer(self, sender: str, to: str, amount: int) -> None:
        if to == self.address:
            raise SelfTransferForbiddenError("BeamToken._transfer: transfer to self not allowed")
        if sender == ZERO_ADDRESS:
            raise InvalidAddressError("ERC20: transfer from the zero address")
        if to == ZERO_ADDRESS:
            raise InvalidAddressError("ERC20: transfer to the zero address")

        balance = self._balances.get(sender, 0)
        if balance < amount:
            raise InsufficientBalanceError("ERC20: transfer amount exceeds balance")

        self._balances[sender] = balance - amount
        self._balances[to] = self._balances.get(to, 0) + amount
        self._emit("Transfer", **{"from": sender, "to": to, "value": amount})

    def _mint(self, to: str, amount: int) -> None:
        if to == ZERO_ADDRESS:
            raise InvalidAddressError("ERC20: mint to the zero address")
        if self._total_supply + amount > MAX_UINT256:
            raise ContractError("ERC20: total supply overflow")

        self._total_supply += amount
        self._balances[to] = self._balances.get(to, 0) + amount
        self._emit("Transfer", **{"from": ZERO_ADDRESS, "to": to, "value": amount})
        logger.debug(f"Mint: {amount} {self.symbol} → {to}")

    def _burn(self, account: str, amount: int) -> None:
        if account == ZERO_ADDRESS:
            raise InvalidAddressError("ERC20: burn from the zero address")

        balance = self._balances.get(account, 0)
        if balance < amount:
            raise InsufficientBalanceError("ERC20: burn amount exceeds balance")

        self._balances[account] = balance - amount
        self._total_supply -= amount
        self._emit("Transfer", **{"from": account, "to": ZERO_ADDRESS, "value": amount})
        logger.debug(f"Burn: {amount} {self.symbol} from {account}")

    def _approve(self, owner: str, spender: str, amount: int) -> None:
        if spender == ZERO_ADDRESS:
            raise InvalidAddressError("ERC20: approve to the zero address")
        self._allowances[(owner, spender)] = amount
        self._emit("Approval", owner=owner, spender=spender, value=amount)

    def _spend_allowance(self, owner: str, spender: str, amount: int) -> None:
        current = self.allowance(owner, spender)
        if current == MAX_UINT256:
            return
        if current < amount:
            raise InsufficientAllowanceError("ERC20: insufficient allowance")
        self._allowances[(owner, spender)] = current - amount

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "totalSupply": str(self._total_supply),
            "holders": len([b for b in self._balances.values() if b > 0]),
        }

    def __repr__(self) -> str:
        return f"<BeamToken {self.symbol} {self.address} supply={self._total_supply}>"
