"""
Airdrop Commitment Builder - Registry Exceptions

This module defines custom exceptions for ingestion, artifact and storage operations.
"""


class RegistryError(Exception):
    """Base exception for registry errors."""
    pass


class DuplicateLeafError(RegistryError):
    """Raised when a record derives a leaf that is already registered."""

    def __init__(self, leaf_hex: str, category: str = None, address: str = None,
                 first_category: str = None):
        self.leaf_hex = leaf_hex
        self.category = category
        self.address = address
        self.first_category = first_category

        message = f"Duplicate leaf {leaf_hex}"
        if category:
            message += f" in category {category}"
        if address:
            message += f" (address {address})"
        if first_category:
            message += f"; first registered by {first_category}"
        super().__init__(message)


class InputFileError(RegistryError):
    """Raised when a category input file is missing or malformed."""

    def __init__(self, path, message: str):
        self.path = str(path)
        super().__init__(f"{self.path}: {message}")


class ArtifactFormatError(RegistryError):
    """Raised when a tree or proof artifact cannot be parsed."""
    pass


class StorageError(RegistryError):
    """Raised when an artifact cannot be written to durable storage."""
    pass


class IntegrityError(StorageError):
    """Raised when a staged artifact no longer matches its checksum."""
    pass
