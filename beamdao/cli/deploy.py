#!/usr/bin/env python3
"""
BeamDAO Deployment CLI

Deploys the governance token, timelock, DAO and migrator on an in-process
chain. Commands chain, and every command in one invocation shares the same
chain, so later commands can use earlier deployments.

Usage:
    beamdao deploy-token [--token-name NAME] [--token-symbol SYMBOL]
    beamdao deploy-beam-dao [--dao-name NAME] [--quorum-fraction N] ...
    beamdao deploy-beam-dao set-dao-permissions --min-delay SECONDS
    beamdao deploy-token --token-symbol OLD deploy-token \\
        deploy-migrator --source OLD --destination BEAM --migration-rate 100e18
"""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional

import click

from .. import __version__
from ..chain import Chain, ChainError
from ..config import BeamDAOConfig, load_config, parse_amount
from ..contracts import ContractError
from ..exceptions import BeamDAOException, ConfigurationError
from ..logger import get_logger, set_log_level
from ..deploy import (
    ExplorerVerifier,
    audit_roles,
    deploy_beam_dao,
    deploy_migrator,
    deploy_token,
    grant_migrator_roles,
    print_deployment_table,
    save_manifest,
    set_dao_permissions,
    DAODeployment,
)

logger = get_logger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

Task = Callable[["CLIState"], Awaitable[None]]


@dataclass
class CLIState:
    """State shared by the commands of one invocation."""
    config: BeamDAOConfig
    chain: Chain
    deployer: str
    verifier: Optional[ExplorerVerifier] = None
    manifest: Optional[Path] = None
    deployments: Dict[str, str] = field(default_factory=dict)
    dao: Optional[str] = None

    def record(self, entries: Dict[str, str]) -> None:
        self.deployments.update(entries)

    def resolve(self, value: str) -> str:
        """An address, or the name of a contract deployed earlier in this run."""
        return self.deployments.get(value, value)


def _amount(ctx, param, value):
    if value is None:
        return None
    try:
        return parse_amount(value)
    except ConfigurationError as e:
        raise click.BadParameter(str(e))


@click.group(chain=True)
@click.version_option(version=__version__, prog_name="beamdao")
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="TOML config file (default: $BEAMDAO_CONFIG or ./beamdao.toml)"
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Override the configured log level"
)
@click.option(
    "--manifest",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write deployed addresses to this JSON file"
)
@click.option(
    "--verify",
    is_flag=True,
    help="Verify contract sources on the explorer (needs BEAMDAO_EXPLORER_API_KEY and the [explorer] source settings)"
)
@click.pass_context
def cli(ctx, config_path: Optional[str], log_level: Optional[str], manifest: Optional[str], verify: bool):
    """BeamDAO deployment tooling

    Deploy the Beam token, timelock and DAO, hand governance over to the
    DAO, and deploy token migrators.
    """
    try:
        config = load_config(config_path)
        if log_level:
            config.log_level = log_level.upper()
        if verify:
            config.explorer.verify = True
        config.validate()
        verifier = ExplorerVerifier.from_config(config.explorer) if config.explorer.verify else None
    except BeamDAOException as e:
        raise click.ClickException(str(e))

    set_log_level(config.log_level)

    chain = Chain(
        accounts=config.chain.accounts,
        genesis_timestamp=config.chain.genesis_timestamp,
        block_time=config.chain.block_time,
    )
    ctx.obj = CLIState(
        config=config,
        chain=chain,
        deployer=chain.accounts[0],
        verifier=verifier,
        manifest=Path(manifest) if manifest else None,
    )


@cli.result_callback()
@click.pass_obj
def run_tasks(state: CLIState, tasks: List[Task], **_):
    """Run the chained commands in order, in one event loop."""

    async def run_all():
        for task in tasks:
            await task(state)

    try:
        asyncio.run(run_all())
    except (BeamDAOException, ContractError, ChainError) as e:
        raise click.ClickException(str(e))
    finally:
        if state.manifest and state.deployments:
            save_manifest(state.manifest, state.deployments)


@cli.command("deploy-token")
@click.option("--token-name", default=None, help="Name of the ERC-20 gov token")
@click.option("--token-symbol", default=None, help="Symbol of the ERC-20 gov token")
@click.option(
    "--initial-supply",
    callback=_amount,
    default=None,
    help="Initial supply in base units, minted to the deployer (e.g. 10000e18)"
)
def deploy_token_cmd(token_name: Optional[str], token_symbol: Optional[str], initial_supply: Optional[int]) -> Task:
    """Deploy the governance token.

    Examples:

        beamdao deploy-token

        beamdao deploy-token --token-name Beam --token-symbol BEAM --initial-supply 10000e18
    """
    async def task(state: CLIState) -> None:
        cfg = state.config.token
        symbol = token_symbol or cfg.symbol
        token = await deploy_token(
            state.chain,
            state.deployer,
            token_name or cfg.name,
            symbol,
            cfg.initial_supply if initial_supply is None else initial_supply,
            state.verifier,
        )
        state.record({"token": token.address, symbol: token.address})
        print_deployment_table({"token": token.address}, title="Gov token")

    return task


@cli.command("deploy-beam-dao")
@click.option("--token-name", default=None, help="Name of the ERC-20 gov token")
@click.option("--token-symbol", default=None, help="Symbol of the ERC-20 gov token")
@click.option("--initial-supply", callback=_amount, default=None, help="Initial supply of the gov token")
@click.option("--dao-name", default=None, help="Name of the DAO")
@click.option("--voting-delay", type=click.IntRange(min=0), default=None, help="Blocks between proposal and voting start")
@click.option("--voting-period", type=click.IntRange(min=1), default=None, help="Blocks a proposal is open for voting")
@click.option(
    "--quorum-fraction",
    type=click.IntRange(0, 100),
    default=None,
    help="Quorum. 4 == 4% need to vote in favor to pass a proposal"
)
def deploy_beam_dao_cmd(
    token_name: Optional[str],
    token_symbol: Optional[str],
    initial_supply: Optional[int],
    dao_name: Optional[str],
    voting_delay: Optional[int],
    voting_period: Optional[int],
    quorum_fraction: Optional[int],
) -> Task:
    """Deploy token, timelock and DAO.

    Examples:

        beamdao deploy-beam-dao --dao-name "Beam DAO" --quorum-fraction 4

        beamdao --manifest deployments/dao.json deploy-beam-dao set-dao-permissions
    """
    async def task(state: CLIState) -> None:
        token_cfg, dao_cfg = state.config.token, state.config.dao
        deployment = await deploy_beam_dao(
            state.chain,
            state.deployer,
            token_name=token_name or token_cfg.name,
            token_symbol=token_symbol or token_cfg.symbol,
            initial_supply=token_cfg.initial_supply if initial_supply is None else initial_supply,
            dao_name=dao_name or dao_cfg.name,
            quorum_fraction=dao_cfg.quorum_fraction if quorum_fraction is None else quorum_fraction,
            voting_delay=dao_cfg.voting_delay if voting_delay is None else voting_delay,
            voting_period=voting_period or dao_cfg.voting_period,
            verifier=state.verifier,
        )
        state.record(deployment.to_dict())
        state.dao = deployment.dao
        print_deployment_table(deployment, title="Beam DAO")

    return task


@cli.command("set-dao-permissions")
@click.option("--dao-address", default=None, help="DAO address (default: the DAO deployed in this run)")
@click.option("--min-delay", type=click.IntRange(min=0), default=None, help="Timelock delay in seconds")
def set_dao_permissions_cmd(dao_address: Optional[str], min_delay: Optional[int]) -> Task:
    """Hand token and timelock over to the DAO and renounce deployer roles.

    Examples:

        beamdao deploy-beam-dao set-dao-permissions --min-delay 172800
    """
    async def task(state: CLIState) -> None:
        address = dao_address or state.dao or state.config.dao.address
        if not address:
            raise click.UsageError("No DAO address given and no DAO deployed in this run")
        address = state.resolve(address)
        delay = state.config.dao.min_delay if min_delay is None else min_delay

        await set_dao_permissions(state.chain, state.deployer, address, delay)

        roles = audit_roles(state.chain, DAODeployment.from_dao(state.chain, address), state.deployer)
        held = roles["token"] + roles["timelock"]
        click.echo(click.style(f"✓ Roles handed over to DAO {address}", fg="green"))
        click.echo(f"  Deployer roles left: {', '.join(held) if held else 'none'}")

    return task


@cli.command("deploy-migrator")
@click.option("--source", default=None, help="Source ledger address or symbol deployed in this run")
@click.option("--destination", default=None, help="Destination ledger address or symbol deployed in this run")
@click.option("--migration-rate", callback=_amount, default=None, help="18-decimal fixed point rate (e.g. 100e18)")
@click.option("--grant-roles", is_flag=True, help="Grant BURNER_ROLE / MINTER_ROLE to the migrator as deployer")
def deploy_migrator_cmd(
    source: Optional[str],
    destination: Optional[str],
    migration_rate: Optional[int],
    grant_roles: bool,
) -> Task:
    """Deploy a Migrator between two ledgers.

    Examples:

        beamdao deploy-token --token-symbol OLD deploy-token --token-symbol BEAM \\
            deploy-migrator --source OLD --destination BEAM --migration-rate 100e18 --grant-roles
    """
    async def task(state: CLIState) -> None:
        cfg = state.config.migrator
        src = state.resolve(source or cfg.source)
        dst = state.resolve(destination or cfg.destination)
        if not src or not dst:
            raise click.UsageError("Both --source and --destination are required")

        migrator = await deploy_migrator(
            state.chain,
            state.deployer,
            src,
            dst,
            cfg.migration_rate if migration_rate is None else migration_rate,
            state.verifier,
        )
        if grant_roles:
            await grant_migrator_roles(state.chain, state.deployer, migrator.address)

        state.record({"migrator": migrator.address})
        print_deployment_table(
            {"source": src, "destination": dst, "migrator": migrator.address},
            title="Migrator",
        )

    return task


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
