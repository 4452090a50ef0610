"""
Execution Environment Test Suite

Coverage:
  - deterministic accounts, CREATE addresses and nonces
  - transact(): receipts, logs, block / clock advance
  - whole-transaction rollback on revert (state, logs, nonce)
  - global serialization of concurrent transactions
  - snapshot / revert (TimeTraveler), time travel
  - calldata dispatch through @external entry points
"""

import asyncio
import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from beamdao.chain import Chain, ChainError, derive_account
from beamdao.constants import DEFAULT_BLOCK_TIME, DEFAULT_GENESIS_TIMESTAMP
from beamdao.contracts import (
    BeamToken,
    ContractError,
    InsufficientBalanceError,
    MINTER_ROLE,
    UnknownSelectorError,
)
from beamdao.contracts.base import external
from beamdao.crypto import generate_contract_address


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

async def make_token(chain, supply=1_000, deployer=None):
    deployer = deployer or chain.accounts[0]
    return await chain.deploy(deployer, BeamToken, "NAME", "SYMBOL", supply)


class SlowMintToken(BeamToken):
    """Mints, then suspends before the transaction settles."""

    @external("slowMint(address,uint256)")
    async def slow_mint(self, caller: str, to: str, amount: int) -> None:
        self._mint(to, amount)
        await asyncio.sleep(3600)


class TestAccounts:

    def test_accounts_are_deterministic(self):
        assert Chain().accounts == Chain().accounts

    def test_account_count(self):
        assert len(Chain(accounts=3).accounts) == 3

    def test_accounts_are_checksummed(self):
        account = derive_account(0)
        assert account.startswith("0x") and len(account) == 42
        assert account != account.lower()

    def test_zero_accounts_raises(self):
        with pytest.raises(ChainError):
            Chain(accounts=0)

    def test_genesis_state(self):
        chain = Chain()
        assert chain.block_number == 0
        assert chain.timestamp == DEFAULT_GENESIS_TIMESTAMP
        assert chain.logs == []


class TestDeploy:

    @pytest.mark.asyncio
    async def test_create_address_and_nonce(self):
        chain = Chain()
        deployer = chain.accounts[0]
        token = await make_token(chain)
        assert token.address == generate_contract_address(deployer, 0)
        assert chain.nonce_of(deployer) == 1
        assert chain.is_contract(token.address)
        assert chain.get_contract(token.address) is token

    @pytest.mark.asyncio
    async def test_second_deploy_uses_next_nonce(self):
        chain = Chain()
        first = await make_token(chain)
        second = await make_token(chain)
        assert first.address != second.address
        assert second.address == generate_contract_address(chain.accounts[0], 1)

    @pytest.mark.asyncio
    async def test_failed_constructor_rolls_back(self):
        chain = Chain()
        with pytest.raises(ContractError, match="name cannot be empty"):
            await chain.deploy(chain.accounts[0], BeamToken, "", "SYMBOL")
        assert chain.nonce_of(chain.accounts[0]) == 0
        assert chain.block_number == 0
        assert chain.logs == []

    def test_unknown_contract(self):
        with pytest.raises(ChainError, match="No contract"):
            Chain().get_contract(derive_account(5))


class TestTransact:

    @pytest.mark.asyncio
    async def test_receipt(self):
        chain = Chain()
        alice, bob = chain.accounts[:2]
        token = await make_token(chain)
        block = chain.block_number

        receipt = await chain.transact(alice, token.transfer, bob, 10)

        assert receipt.sender == alice
        assert receipt.to == token.address
        assert receipt.block_number == block + 1
        assert receipt.return_value is True
        assert len(receipt.tx_hash) == 32
        [transfer] = receipt.events("Transfer")
        assert transfer.args == {"from": alice, "to": bob, "value": 10}

    @pytest.mark.asyncio
    async def test_block_and_clock_advance(self):
        chain = Chain()
        token = await make_token(chain)
        timestamp = chain.timestamp
        await chain.transact(chain.accounts[0], token.transfer, chain.accounts[1], 1)
        assert chain.timestamp == timestamp + DEFAULT_BLOCK_TIME

    @pytest.mark.asyncio
    async def test_revert_restores_everything(self):
        chain = Chain()
        alice, bob = chain.accounts[:2]
        token = await make_token(chain, supply=100)
        logs_before = chain.logs
        nonce_before = chain.nonce_of(alice)
        block_before = chain.block_number

        with pytest.raises(InsufficientBalanceError):
            await chain.transact(alice, token.transfer, bob, 101)

        assert token.balance_of(alice) == 100
        assert token.balance_of(bob) == 0
        assert chain.logs == logs_before
        assert chain.nonce_of(alice) == nonce_before
        assert chain.block_number == block_before

    @pytest.mark.asyncio
    async def test_cancelled_transaction_rolls_back(self):
        chain = Chain()
        alice, bob = chain.accounts[:2]
        token = await chain.deploy(alice, SlowMintToken, "NAME", "SYMBOL", 100)
        logs_before = chain.logs
        block_before = chain.block_number

        pending = asyncio.create_task(chain.transact(alice, token.slow_mint, bob, 5))
        while token.balance_of(bob) == 0:
            await asyncio.sleep(0)
        pending.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending

        assert token.balance_of(bob) == 0
        assert token.total_supply == 100
        assert chain.logs == logs_before
        assert chain.block_number == block_before
        assert chain.nonce_of(alice) == 1

        # lock released
        await chain.transact(alice, token.transfer, bob, 1)
        assert token.balance_of(bob) == 1

    @pytest.mark.asyncio
    async def test_rejects_plain_callable(self):
        chain = Chain()
        with pytest.raises(ChainError, match="expects a method"):
            await chain.transact(chain.accounts[0], lambda sender: None)

    @pytest.mark.asyncio
    async def test_rejects_non_entry_point(self):
        chain = Chain()
        token = await make_token(chain)
        with pytest.raises(ChainError, match="not an external entry point"):
            await chain.transact(chain.accounts[0], token.balance_of, chain.accounts[0])

    @pytest.mark.asyncio
    async def test_rejects_contract_from_other_chain(self):
        chain, other = Chain(), Chain()
        token = await make_token(other)
        with pytest.raises(ChainError):
            await chain.transact(chain.accounts[0], token.transfer, chain.accounts[1], 1)

    @pytest.mark.asyncio
    async def test_concurrent_transactions_are_serialized(self):
        chain = Chain()
        alice, bob = chain.accounts[:2]
        token = await make_token(chain, supply=10)

        results = await asyncio.gather(
            *[chain.transact(alice, token.transfer, bob, 1) for _ in range(10)]
        )

        assert token.balance_of(bob) == 10
        assert sorted(r.block_number for r in results) == list(range(2, 12))
        assert chain.nonce_of(alice) == 11

    @pytest.mark.asyncio
    async def test_get_logs_filters(self):
        chain = Chain()
        token = await make_token(chain)
        await chain.transact(chain.accounts[0], token.approve, chain.accounts[1], 5)
        assert len(chain.get_logs(token.address, "Approval")) == 1
        assert chain.get_logs(event="Migrated") == []


class TestDispatch:

    @pytest.mark.asyncio
    async def test_dispatch_calldata(self):
        chain = Chain()
        alice, bob = chain.accounts[:2]
        token = await make_token(chain)
        data = token.encode_call("transfer", bob, 7)
        await token.dispatch(alice, data)
        assert token.balance_of(bob) == 7

    @pytest.mark.asyncio
    async def test_dispatch_unknown_selector(self):
        chain = Chain()
        token = await make_token(chain)
        with pytest.raises(UnknownSelectorError):
            await token.dispatch(chain.accounts[0], b"\xde\xad\xbe\xef")

    def test_signature_of(self):
        assert BeamToken.signature_of("grant_role") == "grantRole(bytes32,address)"
        with pytest.raises(AttributeError):
            BeamToken.signature_of("balance_of")


class TestTimeTravel:

    @pytest.mark.asyncio
    async def test_snapshot_revert_is_repeatable(self):
        chain = Chain()
        alice, bob = chain.accounts[:2]
        token = await make_token(chain)
        await chain.transact(alice, token.grant_role, MINTER_ROLE, alice)
        snapshot = chain.snapshot()

        for _ in range(2):
            chain.revert(snapshot)
            await chain.transact(alice, token.mint, bob, 5)
            assert token.balance_of(bob) == 5

        chain.revert(snapshot)
        assert token.balance_of(bob) == 0
        assert token.has_role(MINTER_ROLE, alice)

    @pytest.mark.asyncio
    async def test_revert_drops_contracts_deployed_after_snapshot(self):
        chain = Chain()
        snapshot = chain.snapshot()
        token = await make_token(chain)
        chain.revert(snapshot)
        assert not chain.is_contract(token.address)

    def test_invalid_snapshot(self):
        with pytest.raises(ChainError, match="Invalid snapshot"):
            Chain().revert(3)

    def test_increase_time_and_mine(self):
        chain = Chain()
        chain.increase_time(100)
        chain.mine(3)
        assert chain.timestamp == DEFAULT_GENESIS_TIMESTAMP + 100 + 3 * DEFAULT_BLOCK_TIME
        assert chain.block_number == 3

    def test_time_cannot_go_backwards(self):
        with pytest.raises(ChainError):
            Chain().increase_time(-1)
