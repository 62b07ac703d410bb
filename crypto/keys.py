"""
Leaf Key Derivation for the Airdrop Commitment Builder

This module turns an entitlement (address, value, funding flag) into the
32-byte leaf committed in the airdrop tree.

Leaf format (BIP340-style tagged hash):
    tagged_hash(tag, flag || compact_size(len(spk)) || spk || u64_be(value))

where ``tag`` is ``AirdropLeaf/external`` or ``AirdropLeaf/internal`` and
``flag`` is 0x01 / 0x00. The two tags keep the derivation domains disjoint, so
one address and value never produce the same leaf for both kinds of funding.

References:
- BIP340: https://github.com/bitcoin/bips/blob/master/bip-0340.mediawiki
"""

import hashlib
import logging
import struct
from typing import Any

from .address import AddressDecoder
from .exceptions import ValueOutOfRangeError


LEAF_SIZE = 32
VALUE_BITS = 64
MAX_VALUE = (1 << VALUE_BITS) - 1

EXTERNAL_TAG = "AirdropLeaf/external"
INTERNAL_TAG = "AirdropLeaf/internal"


def tagged_hash(tag: str, data: bytes) -> bytes:
    """
    Compute BIP340/341 tagged hash: SHA256(SHA256(tag) + SHA256(tag) + data).

    Args:
        tag: Tag string for the hash
        data: Data to hash

    Returns:
        32-byte tagged hash
    """
    tag_bytes = tag.encode('utf-8')
    tag_hash = hashlib.sha256(tag_bytes).digest()
    return hashlib.sha256(tag_hash + tag_hash + data).digest()


def compact_size(n: int) -> bytes:
    """Encode a length as a Bitcoin CompactSize integer."""
    if n < 0xFD:
        return struct.pack('<B', n)
    elif n <= 0xFFFF:
        return b'\xfd' + struct.pack('<H', n)
    elif n <= 0xFFFFFFFF:
        return b'\xfe' + struct.pack('<I', n)
    return b'\xff' + struct.pack('<Q', n)


def check_value(value: Any) -> int:
    """
    Validate an entitlement value against the 64-bit value field.

    Raises:
        ValueOutOfRangeError: If value is not an int in [0, 2**64)
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueOutOfRangeError(value, f"Value must be an integer, got {type(value).__name__}")
    if value < 0:
        raise ValueOutOfRangeError(value, f"Value cannot be negative: {value}")
    if value > MAX_VALUE:
        raise ValueOutOfRangeError(value, f"Value {value} exceeds the {VALUE_BITS}-bit field")
    return value


class KeyDeriver:
    """Derives airdrop leaves from entitlement records."""

    def __init__(self, network: str = "mainnet"):
        """
        Initialize key deriver.

        Args:
            network: Network whose address encodings are accepted
        """
        self.network = network
        self.decoder = AddressDecoder(network)
        self.logger = logging.getLogger(__name__)

    def derive(self, address: str, value: int, is_external: bool) -> bytes:
        """
        Derive the leaf for one entitlement.

        Args:
            address: Claimant address
            value: Entitlement value in base units
            is_external: True for externally funded categories

        Returns:
            32-byte leaf

        Raises:
            InvalidAddressError: If the address cannot be decoded
            ValueOutOfRangeError: If value is negative or exceeds 64 bits
        """
        check_value(value)
        decoded = self.decoder.decode(address)

        script = decoded.script_pubkey
        preimage = (
            (b'\x01' if is_external else b'\x00')
            + compact_size(len(script))
            + script
            + struct.pack('>Q', value)
        )
        tag = EXTERNAL_TAG if is_external else INTERNAL_TAG
        return tagged_hash(tag, preimage)
