"""
Migrator — one-way conversion between two Beam ledgers

Burns the caller's balance on the source ledger and mints the converted
amount on the destination ledger:

    dest_amount = amount * migration_rate // 10**18

The Migrator needs BURNER_ROLE on the source and MINTER_ROLE on the
destination. Those grants are managed by the ledgers' admins.
"""

from ..constants import SCALE
from ..logger import get_logger
from .base import Contract, ContractError, external, require_address, require_uint
from .token import BURNER_ROLE, MINTER_ROLE, BeamToken

logger = get_logger(__name__)


class NotAuthorizedError(ContractError):
    """
    The Migrator lacks BURNER_ROLE on the source or MINTER_ROLE on the
    destination. Both cases share this error.
    """


class Migrator(Contract):
    """
    Events: Migrated(account, amount), where `amount` is the destination
    amount credited to `account`.
    """

    def __init__(
        self,
        chain,
        address: str,
        deployer: str,
        source: str,
        destination: str,
        migration_rate: int,
    ):
        super().__init__(chain, address, deployer)
        self._source = require_address(source, "source")
        self._destination = require_address(destination, "destination")
        self._migration_rate = require_uint(migration_rate, "migration rate")
        logger.info(
            f"Migrator deployed at {address}: {self._source} → {self._destination} "
            f"rate={self._migration_rate}"
        )

    # ── Read-only views ───────────────────────────────────────────────

    @property
    def source(self) -> str:
        return self._source

    @property
    def destination(self) -> str:
        return self._destination

    @property
    def migration_rate(self) -> int:
        return self._migration_rate

    def preview_migrate(self, amount: int) -> int:
        """Destination amount `migrate(amount)` would credit. Rounds down."""
        return require_uint(amount) * self._migration_rate // SCALE

    def _ledger(self, address: str) -> BeamToken:
        ledger = self.chain.get_contract(address)
        if not isinstance(ledger, BeamToken):
            raise ContractError(f"Migrator: {address} is not a Beam ledger")
        return ledger

    # ── Migration ─────────────────────────────────────────────────────

    @external("migrate(uint256)")
    async def migrate(self, caller: str, amount: int) -> int:
        source = self._ledger(self._source)
        destination = self._ledger(self._destination)

        if not source.has_role(BURNER_ROLE, self.address) or not destination.has_role(
            MINTER_ROLE, self.address
        ):
            raise NotAuthorizedError("NoRole()")

        dest_amount = self.preview_migrate(amount)

        await source.burn(self.address, caller, amount)
        await destination.mint(self.address, caller, dest_amount)

        self._emit("Migrated", account=caller, amount=dest_amount)
        logger.info(f"Migrated {amount} {source.symbol} → {dest_amount} {destination.symbol} for {caller}")
        return dest_amount
