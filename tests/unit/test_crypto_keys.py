"""
Tests for leaf key derivation.
"""

import hashlib
import struct

import pytest

from crypto.address import encode_segwit_address
from crypto.exceptions import InvalidAddressError, ValueOutOfRangeError
from crypto.keys import (
    EXTERNAL_TAG,
    INTERNAL_TAG,
    MAX_VALUE,
    KeyDeriver,
    check_value,
    compact_size,
    tagged_hash,
)

from conftest import p2pkh_address


GENESIS_ADDRESS = "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa"


class TestTaggedHash:
    """Test BIP340 tagged hashing."""

    def test_tagged_hash_definition(self):
        """Test tagged hash matches SHA256(SHA256(tag) || SHA256(tag) || data)."""
        tag_hash = hashlib.sha256(b"AirdropLeaf/internal").digest()
        expected = hashlib.sha256(tag_hash + tag_hash + b"payload").digest()

        assert tagged_hash(INTERNAL_TAG, b"payload") == expected

    def test_compact_size(self):
        """Test CompactSize boundaries."""
        assert compact_size(0x19) == b'\x19'
        assert compact_size(0xFC) == b'\xfc'
        assert compact_size(0xFD) == b'\xfd\xfd\x00'
        assert compact_size(0x10000) == b'\xfe\x00\x00\x01\x00'


class TestKeyDeriver:
    """Test KeyDeriver leaf derivation."""

    def test_leaf_layout(self, deriver):
        """Test the leaf preimage layout for a P2PKH address."""
        script = b'\x76\xa9\x14' + bytes.fromhex("62e907b15cbf27d5425399ebf6f0fb50ebb88f18") + b'\x88\xac'
        preimage = b'\x01' + bytes([len(script)]) + script + struct.pack('>Q', 1234)

        leaf = deriver.derive(GENESIS_ADDRESS, 1234, True)

        assert leaf == tagged_hash(EXTERNAL_TAG, preimage)
        assert len(leaf) == 32

    def test_deterministic(self, deriver):
        """Test repeated derivation gives identical leaves."""
        address = p2pkh_address(42)
        assert deriver.derive(address, 500, False) == KeyDeriver().derive(address, 500, False)

    def test_external_flag_separates_domains(self, deriver):
        """Test the same address and value derive different leaves per funding kind."""
        address = p2pkh_address(42)
        assert deriver.derive(address, 500, True) != deriver.derive(address, 500, False)

    def test_value_changes_leaf(self, deriver):
        """Test value is committed."""
        address = p2pkh_address(42)
        assert deriver.derive(address, 500, True) != deriver.derive(address, 501, True)

    def test_bech32_case_variants_share_leaf(self, deriver):
        """Test upper- and lower-case spellings commit to the same script."""
        address = encode_segwit_address("bc", 0, bytes(range(20)))
        assert deriver.derive(address, 1, True) == deriver.derive(address.upper(), 1, True)

    def test_value_bounds(self, deriver):
        """Test the 64-bit value field boundaries."""
        address = p2pkh_address(1)

        deriver.derive(address, 0, True)
        deriver.derive(address, MAX_VALUE, True)

        with pytest.raises(ValueOutOfRangeError, match="negative"):
            deriver.derive(address, -1, True)
        with pytest.raises(ValueOutOfRangeError, match="64-bit"):
            deriver.derive(address, MAX_VALUE + 1, True)

    @pytest.mark.parametrize("value", [True, 1.5, "10", None])
    def test_non_integer_values_rejected(self, value):
        """Test non-integer values are out of range."""
        with pytest.raises(ValueOutOfRangeError, match="integer"):
            check_value(value)

    def test_invalid_address(self, deriver):
        """Test undecodable addresses raise InvalidAddressError."""
        with pytest.raises(InvalidAddressError) as exc_info:
            deriver.derive("not-an-address", 1, True)

        assert exc_info.value.address == "not-an-address"

    def test_network_specific(self):
        """Test a testnet deriver refuses mainnet addresses."""
        with pytest.raises(InvalidAddressError):
            KeyDeriver("testnet").derive(GENESIS_ADDRESS, 1, True)
