"""
Contract Addressing and Call Encoding

Ethereum-compatible contract address computation, function selectors and
calldata encoding for the in-process execution environment.
"""

from typing import Any, List, Sequence, Tuple

import rlp
from eth_abi import decode, encode
from eth_utils import is_address, keccak, to_canonical_address, to_checksum_address


def normalize_address(address: str) -> str:
    """
    Validate and checksum an address.

    Raises:
        ValueError: if the value is not a 20-byte hex address
    """
    if not isinstance(address, str) or not is_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    return to_checksum_address(address)


def generate_contract_address(sender: str, nonce: int) -> str:
    """
    Generate contract address using CREATE opcode logic.

    Address = keccak256(rlp([sender, nonce]))[-20:]

    Args:
        sender: Deployer address
        nonce: Deployer nonce at deployment time

    Returns:
        Contract address (Ethereum checksum format)
    """
    sender_bytes = to_canonical_address(sender)
    rlp_encoded = rlp.encode([sender_bytes, nonce])
    address_bytes = keccak(rlp_encoded)[-20:]
    return to_checksum_address(address_bytes)


def parse_function_signature(function_signature: str) -> Tuple[str, List[str]]:
    """
    Split a signature like "transfer(address,uint256)" into name and types.
    """
    if '(' not in function_signature or not function_signature.endswith(')'):
        raise ValueError(f"Malformed function signature: {function_signature}")
    args_start = function_signature.index('(')
    name = function_signature[:args_start]
    arg_types_str = function_signature[args_start + 1:-1]
    arg_types = [t.strip() for t in arg_types_str.split(',')] if arg_types_str else []
    return name, arg_types


def compute_function_selector(function_signature: str) -> bytes:
    """
    Compute Ethereum function selector (first 4 bytes of keccak256(sig)).

    Args:
        function_signature: Function signature like "transfer(address,uint256)"

    Returns:
        4-byte function selector
    """
    return keccak(text=function_signature)[:4]


def encode_function_call(function_signature: str, *args) -> bytes:
    """
    Encode function call data (selector + ABI-encoded arguments).

    Args:
        function_signature: Function signature
        *args: Function arguments

    Returns:
        Encoded call data
    """
    selector = compute_function_selector(function_signature)
    _, arg_types = parse_function_signature(function_signature)
    if len(arg_types) != len(args):
        raise ValueError(
            f"{function_signature} takes {len(arg_types)} arguments, got {len(args)}"
        )
    if not arg_types:
        return selector
    return selector + encode(arg_types, list(args))


def split_function_call(data: bytes) -> Tuple[bytes, bytes]:
    """
    Split call data into selector and encoded arguments.
    """
    if len(data) < 4:
        return b'', b''
    return data[:4], data[4:]


def decode_function_args(function_signature: str, encoded_args: bytes) -> Tuple[Any, ...]:
    """
    Decode ABI-encoded arguments for a known signature.

    Addresses come back checksummed.
    """
    _, arg_types = parse_function_signature(function_signature)
    if not arg_types:
        return ()
    values = decode(arg_types, encoded_args)
    return tuple(
        to_checksum_address(v) if t == 'address' else v
        for t, v in zip(arg_types, values)
    )


def hash_operation(
    target: str,
    value: int,
    data: bytes,
    predecessor: bytes,
    salt: bytes,
) -> bytes:
    """
    Timelock operation id: keccak256(abi.encode(target, value, data, predecessor, salt)).
    """
    return keccak(encode(
        ['address', 'uint256', 'bytes', 'bytes32', 'bytes32'],
        [target, value, data, predecessor, salt],
    ))


def hash_operation_batch(
    targets: Sequence[str],
    values: Sequence[int],
    payloads: Sequence[bytes],
    predecessor: bytes,
    salt: bytes,
) -> bytes:
    """
    Batch operation id: keccak256(abi.encode(targets, values, payloads, predecessor, salt)).
    """
    return keccak(encode(
        ['address[]', 'uint256[]', 'bytes[]', 'bytes32', 'bytes32'],
        [list(targets), list(values), list(payloads), predecessor, salt],
    ))
