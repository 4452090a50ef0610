"""
BeamDAO Crypto Hashing Module

Provides the hash functions shared with the deployed contracts:
- keccak256: Ethereum standard hash for role identifiers and operation ids
- role_id: Solidity-compatible `keccak256("ROLE_NAME")`
"""

from typing import Union

from eth_utils import keccak

from ..constants import ZERO_BYTES32


def keccak256(data: Union[bytes, str]) -> bytes:
    """
    Compute Keccak-256 hash (Ethereum standard).

    Args:
        data: Input bytes or 0x-prefixed hex string

    Returns:
        32-byte hash
    """
    if isinstance(data, str):
        if data.startswith('0x') or data.startswith('0X'):
            data = bytes.fromhex(data[2:])
        else:
            data = bytes.fromhex(data)
    return keccak(data)


def keccak256_hex(data: Union[bytes, str]) -> str:
    """
    Compute Keccak-256 hash and return as hex string.

    Args:
        data: Input bytes or hex string

    Returns:
        Hex string with 0x prefix
    """
    return '0x' + keccak256(data).hex()


def role_id(name: str) -> bytes:
    """
    Derive a role identifier from its name.

    Matches `bytes32 public constant MINTER_ROLE = keccak256("MINTER_ROLE")`
    so grants interoperate with ledgers already deployed on-chain.
    """
    if not name:
        raise ValueError("Role name cannot be empty")
    return keccak(text=name)


def to_bytes32(value: Union[bytes, str]) -> bytes:
    """Normalize a 0x-hex string or raw bytes into a 32-byte value."""
    if isinstance(value, str):
        value = bytes.fromhex(value[2:] if value.lower().startswith('0x') else value)
    if len(value) != 32:
        raise ValueError(f"Expected 32 bytes, got {len(value)}")
    return value


def is_zero_bytes32(value: bytes) -> bool:
    return value == ZERO_BYTES32
