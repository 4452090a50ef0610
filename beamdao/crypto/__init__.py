"""
BeamDAO Crypto Module

Hashing, role identifiers, contract addresses and calldata encoding.
"""

from .hashing import (
    keccak256,
    keccak256_hex,
    role_id,
    to_bytes32,
    is_zero_bytes32,
)
from .contract import (
    normalize_address,
    generate_contract_address,
    parse_function_signature,
    compute_function_selector,
    encode_function_call,
    split_function_call,
    decode_function_args,
    hash_operation,
    hash_operation_batch,
)

__all__ = [
    # Hashing
    'keccak256',
    'keccak256_hex',
    'role_id',
    'to_bytes32',
    'is_zero_bytes32',
    # Contracts
    'normalize_address',
    'generate_contract_address',
    'parse_function_signature',
    'compute_function_selector',
    'encode_function_call',
    'split_function_call',
    'decode_function_args',
    'hash_operation',
    'hash_operation_batch',
]
