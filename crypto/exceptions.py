"""
Cryptographic Exceptions for the Airdrop Commitment Builder

This module defines custom exceptions for leaf derivation and Merkle operations.
"""


class CryptoError(Exception):
    """Base exception for all cryptographic errors."""
    pass


class InvalidAddressError(CryptoError):
    """Raised when an address cannot be decoded for the configured network."""

    def __init__(self, address: str, reason: str = None):
        self.address = address
        self.reason = reason
        message = f"Invalid address {address!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ValueOutOfRangeError(CryptoError):
    """Raised when an entitlement value does not fit the commitment's value field."""

    def __init__(self, value, message: str = None):
        self.value = value
        if message is None:
            message = f"Value out of range: {value!r}"
        super().__init__(message)


class EmptyTreeError(CryptoError):
    """Raised when a Merkle root is requested over an empty leaf set."""
    pass
