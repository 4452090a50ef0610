"""
Deployment Tasks

    deploy_token         : governance token
    deploy_beam_dao      : token → timelock → DAO
    set_dao_permissions  : hand token and timelock over to governance
    deploy_migrator      : Migrator between two ledgers
    grant_migrator_roles : BURNER_ROLE on source, MINTER_ROLE on destination

Every task awaits each transaction's receipt before sending the next one.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from eth_abi import encode

from ..chain import Chain
from ..constants import ZERO_ADDRESS, ZERO_BYTES32
from ..contracts import (
    BURNER_ROLE,
    CANCELLER_ROLE,
    DEFAULT_ADMIN_ROLE,
    EXECUTOR_ROLE,
    MINTER_ROLE,
    PROPOSER_ROLE,
    TIMELOCK_ADMIN_ROLE,
    BeamDAO,
    BeamToken,
    Contract,
    Migrator,
    TimelockController,
)
from ..crypto import normalize_address
from ..exceptions import DeploymentError
from ..logger import get_logger
from .pipeline import Pipeline, StepResult
from .verify import ExplorerVerifier

logger = get_logger(__name__)

# Constructor ABI, used to encode arguments for explorer verification
CONSTRUCTOR_TYPES: Dict[str, List[str]] = {
    "BeamToken": ["string", "string", "uint256"],
    "TimelockController": ["uint256", "address[]", "address[]", "address"],
    "BeamDAO": ["address", "address", "string", "uint256", "uint256", "uint256"],
    "Migrator": ["address", "address", "uint256"],
}

TOKEN_ROLES = {
    DEFAULT_ADMIN_ROLE: "DEFAULT_ADMIN_ROLE",
    MINTER_ROLE: "MINTER_ROLE",
    BURNER_ROLE: "BURNER_ROLE",
}

TIMELOCK_ROLES = {
    TIMELOCK_ADMIN_ROLE: "TIMELOCK_ADMIN_ROLE",
    PROPOSER_ROLE: "PROPOSER_ROLE",
    EXECUTOR_ROLE: "EXECUTOR_ROLE",
    CANCELLER_ROLE: "CANCELLER_ROLE",
}


@dataclass
class DAODeployment:
    """Addresses produced by `deploy_beam_dao`."""
    token: str
    timelock: str
    dao: str

    def to_dict(self) -> Dict[str, str]:
        return {"token": self.token, "timelock": self.timelock, "DAO": self.dao}

    @classmethod
    def from_dao(cls, chain: Chain, dao_address: str) -> "DAODeployment":
        """Rebuild the deployment record from the DAO's own references."""
        dao = _contract(chain, dao_address, BeamDAO)
        return cls(token=dao.token, timelock=dao.timelock, dao=dao.address)


def _contract(chain: Chain, address: str, cls: type) -> Any:
    contract = chain.get_contract(address)
    if not isinstance(contract, cls):
        raise DeploymentError(
            f"load {cls.__name__}",
            f"{address} is a {type(contract).__name__}, not a {cls.__name__}",
        )
    return contract


async def _deploy(
    chain: Chain,
    deployer: str,
    contract_cls: type,
    args: Sequence[Any],
    verifier: Optional[ExplorerVerifier] = None,
) -> Contract:
    name = contract_cls.__name__
    logger.info(f"Deploying {name}")
    contract = await chain.deploy(deployer, contract_cls, *args)
    logger.info(f"{name} deployed at: {contract.address}")

    if verifier is not None:
        constructor_args = encode(CONSTRUCTOR_TYPES[name], list(args))
        await verifier.verify(contract.address, name, constructor_args)
    return contract


# ---------------------------------------------------------------------------
# Token / DAO / Migrator deployment
# ---------------------------------------------------------------------------


async def deploy_token(
    chain: Chain,
    deployer: str,
    name: str,
    symbol: str,
    initial_supply: int = 0,
    verifier: Optional[ExplorerVerifier] = None,
) -> BeamToken:
    return await _deploy(chain, deployer, BeamToken, [name, symbol, initial_supply], verifier)


async def deploy_beam_dao(
    chain: Chain,
    deployer: str,
    token_name: str,
    token_symbol: str,
    initial_supply: int,
    dao_name: str,
    quorum_fraction: int,
    voting_delay: int,
    voting_period: int,
    verifier: Optional[ExplorerVerifier] = None,
) -> DAODeployment:
    """
    Deploy token, timelock and DAO, in that order.

    The timelock starts with no delay and the deployer as proposer, executor
    and admin; `set_dao_permissions` hands those roles over afterwards.
    """
    deployer = normalize_address(deployer)

    token = await deploy_token(chain, deployer, token_name, token_symbol, initial_supply, verifier)
    timelock = await _deploy(
        chain, deployer, TimelockController, [0, [deployer], [deployer], deployer], verifier
    )
    dao = await _deploy(
        chain,
        deployer,
        BeamDAO,
        [token.address, timelock.address, dao_name, quorum_fraction, voting_delay, voting_period],
        verifier,
    )

    return DAODeployment(token=token.address, timelock=timelock.address, dao=dao.address)


async def deploy_migrator(
    chain: Chain,
    deployer: str,
    source: str,
    destination: str,
    migration_rate: int,
    verifier: Optional[ExplorerVerifier] = None,
) -> Migrator:
    _contract(chain, source, BeamToken)
    _contract(chain, destination, BeamToken)
    return await _deploy(chain, deployer, Migrator, [source, destination, migration_rate], verifier)


async def grant_migrator_roles(chain: Chain, admin: str, migrator_address: str) -> List[StepResult]:
    """Grant the Migrator its roles; `admin` must administer both ledgers."""
    migrator = _contract(chain, migrator_address, Migrator)
    source = _contract(chain, migrator.source, BeamToken)
    destination = _contract(chain, migrator.destination, BeamToken)

    pipeline = Pipeline("grant-migrator-roles")
    pipeline.add(
        "grant BURNER_ROLE on source",
        lambda: chain.transact(admin, source.grant_role, BURNER_ROLE, migrator.address),
        lambda: source.has_role(BURNER_ROLE, migrator.address),
    )
    pipeline.add(
        "grant MINTER_ROLE on destination",
        lambda: chain.transact(admin, destination.grant_role, MINTER_ROLE, migrator.address),
        lambda: destination.has_role(MINTER_ROLE, migrator.address),
    )
    return await pipeline.run()


# ---------------------------------------------------------------------------
# Governance bootstrap
# ---------------------------------------------------------------------------


def _renounce(chain: Chain, contract, role: bytes, account: str):
    return lambda: chain.transact(account, contract.renounce_role, role, account)


def _renounced(contract, role: bytes, account: str):
    return lambda: not contract.has_role(role, account)


async def set_dao_permissions(
    chain: Chain,
    deployer: str,
    dao_address: str,
    min_delay: int,
) -> List[StepResult]:
    """
    Wire token and timelock to the DAO, then drop every deployer role.

    Steps run in order and abort on the first failure. Renunciation comes
    last and is preceded by a check of the handoff, so a failed run leaves
    the deployer able to finish it.
    """
    deployer = normalize_address(deployer)
    if isinstance(min_delay, bool) or not isinstance(min_delay, int) or min_delay < 0:
        raise DeploymentError("validate min delay", f"min delay must be a non-negative integer, got {min_delay!r}")
    deployment = DAODeployment.from_dao(chain, dao_address)
    dao = _contract(chain, deployment.dao, BeamDAO)
    timelock = _contract(chain, deployment.timelock, TimelockController)
    token = _contract(chain, deployment.token, BeamToken)

    delay_data = timelock.encode_call("update_delay", min_delay)
    delay_op = timelock.hash_operation(timelock.address, 0, delay_data, ZERO_BYTES32, ZERO_BYTES32)

    async def verify_handoff():
        missing = []
        if not timelock.has_role(PROPOSER_ROLE, dao.address):
            missing.append("DAO proposer")
        if not timelock.has_role(EXECUTOR_ROLE, ZERO_ADDRESS):
            missing.append("open executor")
        if not token.has_role(DEFAULT_ADMIN_ROLE, timelock.address):
            missing.append("timelock token admin")
        if timelock.min_delay != min_delay:
            missing.append(f"min delay {min_delay}")
        if missing:
            raise DeploymentError("verify handoff", f"handoff incomplete: {', '.join(missing)}")

    pipeline = Pipeline("set-dao-permissions")

    # Set DAO as proposer (and canceller, as the timelock constructor does for proposers)
    pipeline.add(
        "grant PROPOSER_ROLE to DAO",
        lambda: chain.transact(deployer, timelock.grant_role, PROPOSER_ROLE, dao.address),
        lambda: timelock.has_role(PROPOSER_ROLE, dao.address),
    )
    pipeline.add(
        "grant CANCELLER_ROLE to DAO",
        lambda: chain.transact(deployer, timelock.grant_role, CANCELLER_ROLE, dao.address),
        lambda: timelock.has_role(CANCELLER_ROLE, dao.address),
    )
    # Allow anyone to execute
    pipeline.add(
        "grant EXECUTOR_ROLE to anyone",
        lambda: chain.transact(deployer, timelock.grant_role, EXECUTOR_ROLE, ZERO_ADDRESS),
        lambda: timelock.has_role(EXECUTOR_ROLE, ZERO_ADDRESS),
    )
    pipeline.add(
        "grant token DEFAULT_ADMIN_ROLE to timelock",
        lambda: chain.transact(deployer, token.grant_role, DEFAULT_ADMIN_ROLE, timelock.address),
        lambda: token.has_role(DEFAULT_ADMIN_ROLE, timelock.address),
    )

    pipeline.add(
        "schedule updateDelay",
        lambda: chain.transact(
            deployer, timelock.schedule,
            timelock.address, 0, delay_data, ZERO_BYTES32, ZERO_BYTES32, 0,
        ),
        lambda: timelock.is_operation(delay_op),
    )
    pipeline.add(
        "execute updateDelay",
        lambda: chain.transact(
            deployer, timelock.execute,
            timelock.address, 0, delay_data, ZERO_BYTES32, ZERO_BYTES32,
        ),
        lambda: timelock.is_operation_done(delay_op),
    )

    pipeline.add("verify handoff", verify_handoff)

    for role, role_name in TIMELOCK_ROLES.items():
        pipeline.add(
            f"renounce timelock {role_name}",
            _renounce(chain, timelock, role, deployer),
            _renounced(timelock, role, deployer),
        )
    pipeline.add(
        "renounce token DEFAULT_ADMIN_ROLE",
        _renounce(chain, token, DEFAULT_ADMIN_ROLE, deployer),
        _renounced(token, DEFAULT_ADMIN_ROLE, deployer),
    )

    results = await pipeline.run()
    logger.info(f"Governance handed over to DAO {dao.address}")
    return results


def audit_roles(chain: Chain, deployment: DAODeployment, account: str) -> Dict[str, List[str]]:
    """Privileged roles `account` holds on the token and the timelock."""
    token = _contract(chain, deployment.token, BeamToken)
    timelock = _contract(chain, deployment.timelock, TimelockController)
    return {
        "token": [name for role, name in TOKEN_ROLES.items() if token.has_role(role, account)],
        "timelock": [
            name for role, name in TIMELOCK_ROLES.items() if timelock.has_role(role, account)
        ],
    }
