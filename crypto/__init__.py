"""
Airdrop Commitment Builder - Cryptographic Operations Module

This module provides the cryptographic primitives of the airdrop commitment:
- Address decoding to scriptPubKeys (base58check, bech32, bech32m)
- Tagged-hash leaf derivation
- Merkle root and tree depth computation

Dependencies:
- base58: Base58Check decoding
- hashlib: SHA-256
"""

from .exceptions import (
    CryptoError,
    InvalidAddressError,
    ValueOutOfRangeError,
    EmptyTreeError,
)
from .address import (
    AddressDecoder,
    AddressFormat,
    DecodedAddress,
    encode_segwit_address,
)
from .keys import (
    KeyDeriver,
    tagged_hash,
    LEAF_SIZE,
    MAX_VALUE,
)
from .merkle import (
    MerkleHasher,
    MerkleRoot,
    compute_merkle_root,
    tree_depth,
)

__version__ = "0.1.0"
__all__ = [
    # Exceptions
    "CryptoError",
    "InvalidAddressError",
    "ValueOutOfRangeError",
    "EmptyTreeError",

    # Addresses
    "AddressDecoder",
    "AddressFormat",
    "DecodedAddress",
    "encode_segwit_address",

    # Leaves
    "KeyDeriver",
    "tagged_hash",
    "LEAF_SIZE",
    "MAX_VALUE",

    # Merkle
    "MerkleHasher",
    "MerkleRoot",
    "compute_merkle_root",
    "tree_depth",
]
