"""
Beam Token & Access Control Test Suite

Coverage:
  - constructor args, DEFAULT_ADMIN_ROLE to deployer
  - role-gated mint / burn (supply deltas, unauthorized callers)
  - transfer, including the self-transfer guard for any amount
  - allowances (approve / transferFrom / increase / decrease)
  - grantRole / revokeRole / renounceRole semantics and events
"""

import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from beamdao.chain import Chain
from beamdao.constants import MAX_UINT256, ZERO_ADDRESS, ZERO_BYTES32
from beamdao.contracts import (
    BURNER_ROLE,
    DEFAULT_ADMIN_ROLE,
    MINTER_ROLE,
    BeamToken,
    ContractError,
    InsufficientAllowanceError,
    InsufficientBalanceError,
    InvalidAddressError,
    SelfTransferForbiddenError,
    UnauthorizedError,
)


NAME = "NAME"
SYMBOL = "SYMBOL"
E18 = 10 ** 18
INITIAL_SUPPLY = 10_000 * E18


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

async def make_token(supply=INITIAL_SUPPLY):
    """
    Token deployed by accounts[0], with accounts[1] as minter and
    accounts[2] as burner.
    """
    chain = Chain()
    deployer, minter, burner = chain.accounts[:3]
    token = await chain.deploy(deployer, BeamToken, NAME, SYMBOL, supply)
    await chain.transact(deployer, token.grant_role, MINTER_ROLE, minter)
    await chain.transact(deployer, token.grant_role, BURNER_ROLE, burner)
    return chain, token


class TestConstructor:

    @pytest.mark.asyncio
    async def test_constructor_args(self):
        chain, token = await make_token()
        assert token.name == NAME
        assert token.symbol == SYMBOL
        assert token.decimals == 18
        assert token.total_supply == INITIAL_SUPPLY
        assert token.balance_of(chain.accounts[0]) == INITIAL_SUPPLY

    @pytest.mark.asyncio
    async def test_deployer_is_admin(self):
        chain, token = await make_token()
        assert token.has_role(DEFAULT_ADMIN_ROLE, chain.accounts[0])
        assert not token.has_role(MINTER_ROLE, chain.accounts[0])

    @pytest.mark.asyncio
    async def test_zero_supply(self):
        chain, token = await make_token(supply=0)
        assert token.total_supply == 0
        assert chain.get_logs(token.address, "Transfer") == []

    @pytest.mark.asyncio
    async def test_empty_symbol_raises(self):
        chain = Chain()
        with pytest.raises(ContractError, match="symbol cannot be empty"):
            await chain.deploy(chain.accounts[0], BeamToken, NAME, "")

    @pytest.mark.asyncio
    async def test_to_dict_and_repr(self):
        _, token = await make_token()
        d = token.to_dict()
        assert d["symbol"] == SYMBOL
        assert d["totalSupply"] == str(INITIAL_SUPPLY)
        assert d["holders"] == 1
        assert SYMBOL in repr(token)


class TestMint:

    @pytest.mark.asyncio
    async def test_mint_by_minter(self):
        chain, token = await make_token()
        minter, receiver = chain.accounts[1], chain.accounts[3]

        receipt = await chain.transact(minter, token.mint, receiver, 10 * E18)

        assert token.total_supply == INITIAL_SUPPLY + 10 * E18
        assert token.balance_of(receiver) == 10 * E18
        [event] = receipt.events("Transfer")
        assert event.args == {"from": ZERO_ADDRESS, "to": receiver, "value": 10 * E18}

    @pytest.mark.asyncio
    async def test_mint_without_role_reverts(self):
        chain, token = await make_token()
        with pytest.raises(UnauthorizedError, match="BeamToken.onlyHasRole: msg.sender does not have role"):
            await chain.transact(chain.accounts[0], token.mint, chain.accounts[3], E18)
        assert token.total_supply == INITIAL_SUPPLY

    @pytest.mark.asyncio
    async def test_mint_to_zero_address_reverts(self):
        chain, token = await make_token()
        with pytest.raises(InvalidAddressError, match="mint to the zero address"):
            await chain.transact(chain.accounts[1], token.mint, ZERO_ADDRESS, E18)

    @pytest.mark.asyncio
    async def test_mint_overflow_reverts(self):
        chain, token = await make_token()
        with pytest.raises(ContractError, match="overflow"):
            await chain.transact(chain.accounts[1], token.mint, chain.accounts[3], MAX_UINT256)

    @pytest.mark.asyncio
    async def test_negative_amount_rejected(self):
        chain, token = await make_token()
        with pytest.raises(ContractError, match="uint256"):
            await chain.transact(chain.accounts[1], token.mint, chain.accounts[3], -1)


class TestBurn:

    @pytest.mark.asyncio
    async def test_burn_by_burner(self):
        chain, token = await make_token()
        deployer, burner = chain.accounts[0], chain.accounts[2]

        await chain.transact(burner, token.burn, deployer, E18)

        assert token.total_supply == INITIAL_SUPPLY - E18
        assert token.balance_of(deployer) == INITIAL_SUPPLY - E18

    @pytest.mark.asyncio
    async def test_burn_without_role_reverts(self):
        chain, token = await make_token()
        with pytest.raises(UnauthorizedError, match="does not have role"):
            await chain.transact(chain.accounts[0], token.burn, chain.accounts[3], E18)

    @pytest.mark.asyncio
    async def test_burn_over_balance_reverts_unchanged(self):
        chain, token = await make_token()
        deployer, burner = chain.accounts[0], chain.accounts[2]

        with pytest.raises(InsufficientBalanceError, match="ERC20: burn amount exceeds balance"):
            await chain.transact(burner, token.burn, deployer, INITIAL_SUPPLY + 1)

        assert token.total_supply == INITIAL_SUPPLY
        assert token.balance_of(deployer) == INITIAL_SUPPLY


class TestTransfer:

    @pytest.mark.asyncio
    async def test_transfer(self):
        chain, token = await make_token()
        deployer, receiver = chain.accounts[0], chain.accounts[3]

        await chain.transact(deployer, token.transfer, receiver, E18)

        assert token.balance_of(deployer) == INITIAL_SUPPLY - E18
        assert token.balance_of(receiver) == E18
        assert token.total_supply == INITIAL_SUPPLY

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, 1, E18])
    async def test_transfer_to_token_reverts(self, amount):
        chain, token = await make_token()
        with pytest.raises(
            SelfTransferForbiddenError,
            match="BeamToken._transfer: transfer to self not allowed",
        ):
            await chain.transact(chain.accounts[0], token.transfer, token.address, amount)
        assert token.balance_of(token.address) == 0

    @pytest.mark.asyncio
    async def test_self_transfer_checked_before_balance(self):
        chain, token = await make_token()
        # accounts[5] holds nothing, the self-transfer guard still fires first
        with pytest.raises(SelfTransferForbiddenError):
            await chain.transact(chain.accounts[5], token.transfer, token.address, E18)

    @pytest.mark.asyncio
    async def test_transfer_over_balance_reverts(self):
        chain, token = await make_token()
        with pytest.raises(InsufficientBalanceError, match="transfer amount exceeds balance"):
            await chain.transact(chain.accounts[3], token.transfer, chain.accounts[4], 1)

    @pytest.mark.asyncio
    async def test_transfer_to_zero_address_reverts(self):
        chain, token = await make_token()
        with pytest.raises(InvalidAddressError, match="transfer to the zero address"):
            await chain.transact(chain.accounts[0], token.transfer, ZERO_ADDRESS, 1)


class TestAllowance:

    @pytest.mark.asyncio
    async def test_approve_and_transfer_from(self):
        chain, token = await make_token()
        owner, spender, receiver = chain.accounts[0], chain.accounts[3], chain.accounts[4]

        await chain.transact(owner, token.approve, spender, 5 * E18)
        await chain.transact(spender, token.transfer_from, owner, receiver, 2 * E18)

        assert token.allowance(owner, spender) == 3 * E18
        assert token.balance_of(receiver) == 2 * E18

    @pytest.mark.asyncio
    async def test_transfer_from_insufficient_allowance(self):
        chain, token = await make_token()
        owner, spender = chain.accounts[0], chain.accounts[3]
        with pytest.raises(InsufficientAllowanceError, match="insufficient allowance"):
            await chain.transact(spender, token.transfer_from, owner, spender, 1)

    @pytest.mark.asyncio
    async def test_transfer_from_to_token_reverts(self):
        chain, token = await make_token()
        owner, spender = chain.accounts[0], chain.accounts[3]
        await chain.transact(owner, token.approve, spender, E18)
        with pytest.raises(SelfTransferForbiddenError):
            await chain.transact(spender, token.transfer_from, owner, token.address, E18)
        assert token.allowance(owner, spender) == E18

    @pytest.mark.asyncio
    async def test_infinite_allowance_not_spent(self):
        chain, token = await make_token()
        owner, spender = chain.accounts[0], chain.accounts[3]
        await chain.transact(owner, token.approve, spender, MAX_UINT256)
        await chain.transact(spender, token.transfer_from, owner, spender, E18)
        assert token.allowance(owner, spender) == MAX_UINT256

    @pytest.mark.asyncio
    async def test_increase_and_decrease(self):
        chain, token = await make_token()
        owner, spender = chain.accounts[0], chain.accounts[3]
        await chain.transact(owner, token.increase_allowance, spender, 10)
        await chain.transact(owner, token.decrease_allowance, spender, 4)
        assert token.allowance(owner, spender) == 6
        with pytest.raises(ContractError, match="decreased allowance below zero"):
            await chain.transact(owner, token.decrease_allowance, spender, 7)


class TestRoles:

    @pytest.mark.asyncio
    async def test_grant_emits_once(self):
        chain, token = await make_token()
        deployer, account = chain.accounts[0], chain.accounts[4]

        first = await chain.transact(deployer, token.grant_role, MINTER_ROLE, account)
        second = await chain.transact(deployer, token.grant_role, MINTER_ROLE, account)

        assert len(first.events("RoleGranted")) == 1
        assert second.events("RoleGranted") == []
        assert token.has_role(MINTER_ROLE, account)

    @pytest.mark.asyncio
    async def test_grant_accepts_hex_role(self):
        chain, token = await make_token()
        await chain.transact(chain.accounts[0], token.grant_role, "0x" + MINTER_ROLE.hex(), chain.accounts[4])
        assert token.has_role(MINTER_ROLE, chain.accounts[4])

    @pytest.mark.asyncio
    async def test_grant_requires_admin(self):
        chain, token = await make_token()
        minter = chain.accounts[1]
        with pytest.raises(UnauthorizedError, match="is missing role 0x" + "00" * 32):
            await chain.transact(minter, token.grant_role, MINTER_ROLE, chain.accounts[4])

    @pytest.mark.asyncio
    async def test_revoke(self):
        chain, token = await make_token()
        deployer, minter = chain.accounts[0], chain.accounts[1]
        receipt = await chain.transact(deployer, token.revoke_role, MINTER_ROLE, minter)
        assert not token.has_role(MINTER_ROLE, minter)
        assert len(receipt.events("RoleRevoked")) == 1

    @pytest.mark.asyncio
    async def test_renounce_own_role(self):
        chain, token = await make_token()
        minter = chain.accounts[1]
        await chain.transact(minter, token.renounce_role, MINTER_ROLE, minter)
        assert not token.has_role(MINTER_ROLE, minter)

    @pytest.mark.asyncio
    async def test_renounce_role_not_held_succeeds(self):
        chain, token = await make_token()
        account = chain.accounts[6]
        receipt = await chain.transact(account, token.renounce_role, BURNER_ROLE, account)
        assert receipt.events("RoleRevoked") == []

    @pytest.mark.asyncio
    async def test_renounce_for_other_reverts(self):
        chain, token = await make_token()
        with pytest.raises(ContractError, match="can only renounce roles for self"):
            await chain.transact(chain.accounts[0], token.renounce_role, MINTER_ROLE, chain.accounts[1])

    @pytest.mark.asyncio
    async def test_role_admin_and_members(self):
        chain, token = await make_token()
        assert token.get_role_admin(MINTER_ROLE) == ZERO_BYTES32
        assert token.role_members(MINTER_ROLE) == [chain.accounts[1]]

    @pytest.mark.asyncio
    async def test_invalid_role_rejected(self):
        _, token = await make_token()
        with pytest.raises(ContractError, match="invalid role"):
            token.has_role(b"\x01", token.address)
