"""
Beam DAO

Governor parameters bound to a token and a timelock. The DAO is the account
the timelock trusts as proposer; proposal creation, voting and tallying are
carried out by the deployed governor and are not reproduced here.
"""

from ..logger import get_logger
from .base import Contract, ContractError, require_address, require_uint

logger = get_logger(__name__)

QUORUM_DENOMINATOR = 100


class BeamDAO(Contract):
    """Read-only governor shell: token, timelock, name and voting parameters."""

    def __init__(
        self,
        chain,
        address: str,
        deployer: str,
        token: str,
        timelock: str,
        name: str,
        quorum_fraction: int,
        voting_delay: int,
        voting_period: int,
    ):
        super().__init__(chain, address, deployer)
        if not name:
            raise ContractError("BeamDAO: name cannot be empty")

        quorum_fraction = require_uint(quorum_fraction, "quorum fraction")
        if quorum_fraction > QUORUM_DENOMINATOR:
            raise ContractError(
                "GovernorVotesQuorumFraction: quorumNumerator over quorumDenominator"
            )
        if require_uint(voting_period, "voting period") == 0:
            raise ContractError("GovernorSettings: voting period too low")

        self._token = require_address(token, "token")
        self._timelock = require_address(timelock, "timelock")
        self.name = name
        self._quorum_numerator = quorum_fraction
        self._voting_delay = require_uint(voting_delay, "voting delay")
        self._voting_period = voting_period

        logger.info(
            f"BeamDAO '{name}' deployed at {address} "
            f"(token {self._token}, timelock {self._timelock})"
        )

    @property
    def token(self) -> str:
        return self._token

    @property
    def timelock(self) -> str:
        return self._timelock

    @property
    def quorum_numerator(self) -> int:
        return self._quorum_numerator

    @property
    def voting_delay(self) -> int:
        return self._voting_delay

    @property
    def voting_period(self) -> int:
        return self._voting_period

    def quorum(self, total_supply: int) -> int:
        """Votes required for a proposal to pass, given the token supply."""
        return require_uint(total_supply) * self._quorum_numerator // QUORUM_DENOMINATOR

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "name": self.name,
            "token": self._token,
            "timelock": self._timelock,
            "quorumNumerator": self._quorum_numerator,
            "votingDelay": self._voting_delay,
            "votingPeriod": self._voting_period,
        }
