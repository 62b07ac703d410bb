"""
Airdrop Commitment Builder - Registry Schema Models

This module defines the Pydantic models for category input records, proof
entries, per-category statistics and build settings.
"""

from enum import Enum
from typing import Dict, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator


class CategoryName(str, Enum):
    """Airdrop categories in their fixed processing order."""
    SPONSORS = "sponsors"
    CREATORS = "creators"
    FOSS = "foss"
    NAMING = "naming"
    FAUCET = "faucet"


class ClaimRecord(BaseModel):
    """Entitlement record for sponsors, creators, FOSS contributors and naming participants."""

    model_config = ConfigDict(frozen=True, extra='ignore')

    address: str = Field(..., min_length=1, description="Claimant address")
    value: StrictInt = Field(..., description="Entitlement value in base units")

    @field_validator('address')
    @classmethod
    def strip_address(cls, v):
        """Strip surrounding whitespace from addresses."""
        return v.strip()


class FaucetRecord(BaseModel):
    """Faucet claim record; the value is derived from shares."""

    model_config = ConfigDict(frozen=True, extra='ignore')

    address: str = Field(..., min_length=1, description="Claimant address")
    shares: StrictInt = Field(..., ge=0, description="Number of faucet shares claimed")

    @field_validator('address')
    @classmethod
    def strip_address(cls, v):
        """Strip surrounding whitespace from addresses."""
        return v.strip()


class ProofEntry(BaseModel):
    """The fields needed to re-derive one leaf independently of its hash."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    address: str
    value: StrictInt = Field(..., ge=0)
    is_external: bool = Field(..., alias="isExternal")


class CategoryStats(BaseModel):
    """Running counters for one category."""

    count: int = Field(default=0, ge=0, description="Participants ingested")
    value: int = Field(default=0, ge=0, description="Sum of entitlement values")
    shares: int = Field(default=0, ge=0, description="Sum of faucet shares")


class Statistics(BaseModel):
    """Accumulated statistics over all categories."""

    categories: Dict[CategoryName, CategoryStats] = Field(
        default_factory=lambda: {name: CategoryStats() for name in CategoryName}
    )

    @property
    def external_total(self) -> int:
        """Sum of values over every category except the faucet."""
        return sum(
            stats.value for name, stats in self.categories.items()
            if name != CategoryName.FAUCET
        )

    @property
    def faucet_total(self) -> int:
        return self.categories[CategoryName.FAUCET].value

    @property
    def faucet_shares(self) -> int:
        return self.categories[CategoryName.FAUCET].shares

    @property
    def participant_count(self) -> int:
        return sum(stats.count for stats in self.categories.values())

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        """Per-category counters keyed by category name."""
        result = {}
        for name, stats in self.categories.items():
            entry = {"count": stats.count, "value": stats.value}
            if name == CategoryName.FAUCET:
                entry["shares"] = stats.shares
            result[name.value] = entry
        return result


class BuildSettings(BaseModel):
    """Settings for one airdrop build."""

    model_config = ConfigDict(frozen=True)

    network: Literal["mainnet", "testnet", "regtest"] = Field(default="mainnet")
    unit_reward: StrictInt = Field(default=1, ge=0, description="Value granted per faucet share")
    count_byte_order: Literal["big", "little"] = Field(default="big")
    derive_workers: int = Field(default=1, ge=1, description="Threads used for leaf derivation")
    tree_file: str = Field(default="tree.bin", min_length=1)
    proof_file: str = Field(default="proofs.json", min_length=1)
    summary_file: str = Field(default="summary.json", min_length=1)

    @field_validator('tree_file', 'proof_file', 'summary_file')
    @classmethod
    def validate_file_name(cls, v):
        """Output names are plain file names inside the output directory."""
        if '/' in v or '\\' in v or v in ('.', '..'):
            raise ValueError('Output file names must not contain path separators')
        return v
