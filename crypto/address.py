"""
Airdrop Commitment Builder - Address Decoding

This module decodes claimant addresses into the scriptPubKey they pay to. Leaves
commit to the script rather than the address text, so every spelling of one
destination (e.g. upper- and lower-case bech32) reduces to the same bytes.

Supported encodings:
- Base58Check P2PKH / P2SH (legacy "1..." / "3..." on mainnet)
- Segwit v0 bech32 (BIP173) and v1+ bech32m (BIP350)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

import base58
import bech32

from .exceptions import InvalidAddressError


class AddressFormat(Enum):
    """Address formats accepted for claimants."""
    LEGACY = "legacy"        # P2PKH (1...)
    SEGWIT = "segwit"        # P2SH (3...)
    BECH32 = "bech32"        # P2WPKH / P2WSH (bc1q...)
    TAPROOT = "taproot"      # P2TR (bc1p...)
    WITNESS = "witness"      # witness v2..v16


@dataclass(frozen=True)
class NetworkParams:
    """Address prefixes for one Bitcoin network."""
    name: str
    hrp: str
    p2pkh_version: int
    p2sh_version: int


NETWORKS: Dict[str, NetworkParams] = {
    "mainnet": NetworkParams("mainnet", "bc", 0x00, 0x05),
    "testnet": NetworkParams("testnet", "tb", 0x6F, 0xC4),
    "regtest": NetworkParams("regtest", "bcrt", 0x6F, 0xC4),
}


@dataclass(frozen=True)
class DecodedAddress:
    """An address together with the output script it designates."""
    address: str
    format: AddressFormat
    script_pubkey: bytes


def encode_segwit_address(hrp: str, witness_version: int, program: bytes) -> str:
    """
    Encode a witness program as a segwit address (bech32 for v0, bech32m otherwise).

    Raises:
        ValueError: If the version and program do not form a valid address
    """
    address = bech32.encode(hrp, witness_version, program)
    if address is None:
        raise ValueError(f"cannot encode witness v{witness_version} program of {len(program)} bytes")
    return address


def decode_segwit_address(hrp: str, address: str) -> Tuple[int, bytes]:
    """
    Decode a segwit address into (witness_version, witness_program).

    The ``bech32`` package returns ``(None, None)`` for any invalid address; the
    string is split first so the error names the failing check.

    Raises:
        ValueError: If the address is not a valid segwit address for ``hrp``
    """
    got_hrp, data, encoding = bech32.bech32_decode(address)
    if got_hrp is None:
        raise ValueError("malformed bech32 string (bad character, mixed case, length or checksum)")
    if got_hrp != hrp:
        raise ValueError(f"expected prefix {hrp!r}, got {got_hrp!r}")

    witness_version, program = bech32.decode(hrp, address)
    if witness_version is not None:
        return witness_version, bytes(program)

    if not data or data[0] > 16:
        raise ValueError("invalid witness version")
    if (data[0] == 0) != (encoding == bech32.Encoding.BECH32):
        raise ValueError("checksum variant does not match witness version")
    raise ValueError("invalid witness program")


class AddressDecoder:
    """Decodes claimant addresses for one network into scriptPubKeys."""

    def __init__(self, network: str = "mainnet"):
        """
        Initialize address decoder.

        Args:
            network: One of ``mainnet``, ``testnet`` or ``regtest``
        """
        if network not in NETWORKS:
            raise ValueError(f"Unsupported network: {network}")
        self.params = NETWORKS[network]
        self.logger = logging.getLogger(__name__)

    def decode(self, address: str) -> DecodedAddress:
        """
        Decode an address.

        Args:
            address: Address string as it appears in the input file

        Returns:
            DecodedAddress with the output script

        Raises:
            InvalidAddressError: If the address is not valid on this network
        """
        if not isinstance(address, str) or not address.strip():
            raise InvalidAddressError(address, "address is empty")

        address = address.strip()
        if address.lower().startswith(self.params.hrp + '1'):
            return self._decode_segwit(address)
        return self._decode_base58(address)

    def _decode_segwit(self, address: str) -> DecodedAddress:
        try:
            witness_version, program = decode_segwit_address(self.params.hrp, address)
        except ValueError as e:
            raise InvalidAddressError(address, str(e)) from e

        if witness_version == 0:
            address_format = AddressFormat.BECH32
        elif witness_version == 1:
            address_format = AddressFormat.TAPROOT
        else:
            address_format = AddressFormat.WITNESS

        opcode = 0x50 + witness_version if witness_version else 0x00
        script = bytes([opcode, len(program)]) + program
        return DecodedAddress(address=address.lower(), format=address_format, script_pubkey=script)

    def _decode_base58(self, address: str) -> DecodedAddress:
        try:
            payload = base58.b58decode_check(address)
        except ValueError as e:
            raise InvalidAddressError(address, f"base58check decoding failed ({e})") from e

        if len(payload) != 21:
            raise InvalidAddressError(address, f"unexpected payload length {len(payload)}")

        version, key_hash = payload[0], payload[1:]
        if version == self.params.p2pkh_version:
            script = b'\x76\xa9\x14' + key_hash + b'\x88\xac'
            return DecodedAddress(address=address, format=AddressFormat.LEGACY, script_pubkey=script)
        if version == self.params.p2sh_version:
            script = b'\xa9\x14' + key_hash + b'\x87'
            return DecodedAddress(address=address, format=AddressFormat.SEGWIT, script_pubkey=script)

        raise InvalidAddressError(
            address, f"version byte 0x{version:02x} not valid on {self.params.name}"
        )
