"""
Airdrop Commitment Builder - Leaf Registry

This module ingests category records, derives their leaves, rejects duplicate
leaves across all categories and accumulates per-category statistics.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Sequence, Type, Union

from pydantic import BaseModel, ValidationError

from crypto.exceptions import CryptoError, ValueOutOfRangeError
from crypto.keys import KeyDeriver, check_value

from .exceptions import DuplicateLeafError, InputFileError, RegistryError
from .schema import (
    CategoryName, ClaimRecord, FaucetRecord, ProofEntry, Statistics
)


@dataclass(frozen=True)
class CategoryDescriptor:
    """Describes how records of one category become entitlements."""
    name: CategoryName
    file_name: str
    is_external: bool
    record_model: Type[BaseModel]
    value_of: Callable[[BaseModel, int], int]
    tracks_shares: bool = False


def _claim_value(record: ClaimRecord, unit_reward: int) -> int:
    return record.value


def _faucet_value(record: FaucetRecord, unit_reward: int) -> int:
    return record.shares * unit_reward


# Processing order is part of the proof artifact format
CATEGORIES = (
    CategoryDescriptor(CategoryName.SPONSORS, "sponsors.json", True, ClaimRecord, _claim_value),
    CategoryDescriptor(CategoryName.CREATORS, "creators.json", True, ClaimRecord, _claim_value),
    CategoryDescriptor(CategoryName.FOSS, "foss.json", True, ClaimRecord, _claim_value),
    CategoryDescriptor(CategoryName.NAMING, "naming.json", True, ClaimRecord, _claim_value),
    CategoryDescriptor(CategoryName.FAUCET, "faucet.json", False, FaucetRecord, _faucet_value,
                       tracks_shares=True),
)

CATEGORY_BY_NAME: Dict[CategoryName, CategoryDescriptor] = {c.name: c for c in CATEGORIES}


def get_category(category: Union[str, CategoryName, CategoryDescriptor]) -> CategoryDescriptor:
    """Resolve a category name or descriptor to its descriptor."""
    if isinstance(category, CategoryDescriptor):
        return category
    try:
        return CATEGORY_BY_NAME[CategoryName(category)]
    except ValueError:
        raise RegistryError(f"Unknown category: {category}") from None


class LeafRegistry:
    """
    Owns the leaf set, proof entries and statistics of one build.

    Categories must be ingested once each, in the order of ``CATEGORIES``.
    Create a new registry for every run.
    """

    def __init__(self, deriver: KeyDeriver = None, unit_reward: int = 1,
                 derive_workers: int = 1):
        """
        Initialize leaf registry.

        Args:
            deriver: Key deriver (defaults to mainnet)
            unit_reward: Value granted per faucet share
            derive_workers: Threads used to derive leaves within a category
        """
        self.deriver = deriver or KeyDeriver()
        self.unit_reward = check_value(unit_reward)
        self.derive_workers = max(1, derive_workers)
        self.logger = logging.getLogger(__name__)

        self._leaves: List[bytes] = []
        self._proof_entries: List[ProofEntry] = []
        self._seen: Dict[bytes, CategoryName] = {}
        self._statistics = Statistics()
        self._next_category = 0

    @property
    def leaves(self) -> List[bytes]:
        """Registered leaves in ingestion order."""
        return list(self._leaves)

    @property
    def proof_entries(self) -> List[ProofEntry]:
        """Proof entries in ingestion order."""
        return list(self._proof_entries)

    @property
    def statistics(self) -> Statistics:
        return self._statistics.model_copy(deep=True)

    @property
    def is_complete(self) -> bool:
        """True once every category has been ingested."""
        return self._next_category == len(CATEGORIES)

    def __len__(self) -> int:
        return len(self._leaves)

    def ingest(self, category: Union[str, CategoryName, CategoryDescriptor],
               records: Iterable[Union[BaseModel, dict]]) -> int:
        """
        Ingest every record of one category.

        Args:
            category: Category name or descriptor
            records: Records as models or plain dicts

        Returns:
            Number of records ingested

        Raises:
            RegistryError: If the category is ingested out of order
            InputFileError: If a plain dict record fails validation
            InvalidAddressError / ValueOutOfRangeError: From leaf derivation
            DuplicateLeafError: If a record derives an already registered leaf
        """
        descriptor = get_category(category)
        self._check_order(descriptor)

        validated = [self._validate_record(descriptor, i, r) for i, r in enumerate(records)]
        values = [self._record_value(descriptor, i, r) for i, r in enumerate(validated)]

        self.logger.info(f"Ingesting {len(validated)} {descriptor.name.value} records")

        leaves = self._derive_leaves(descriptor, validated, values)
        for index, (record, value, leaf) in enumerate(zip(validated, values, leaves)):
            self._register(descriptor, index, record, value, leaf)

        self._next_category += 1
        stats = self._statistics.categories[descriptor.name]
        self.logger.info(
            f"Ingested {descriptor.name.value}: {stats.count} participants, value {stats.value}"
        )
        return len(validated)

    def _check_order(self, descriptor: CategoryDescriptor) -> None:
        if self.is_complete:
            raise RegistryError(f"All categories already ingested; cannot ingest {descriptor.name.value}")

        expected = CATEGORIES[self._next_category]
        if descriptor.name != expected.name:
            raise RegistryError(
                f"Category {descriptor.name.value} ingested out of order; "
                f"expected {expected.name.value}"
            )

    def _validate_record(self, descriptor: CategoryDescriptor, index: int, record) -> BaseModel:
        if isinstance(record, descriptor.record_model):
            return record
        try:
            return descriptor.record_model.model_validate(record)
        except ValidationError as e:
            raise InputFileError(descriptor.file_name, f"record {index}: {e}") from e

    def _record_value(self, descriptor: CategoryDescriptor, index: int, record: BaseModel) -> int:
        value = descriptor.value_of(record, self.unit_reward)
        try:
            return check_value(value)
        except ValueOutOfRangeError:
            self.logger.error(
                f"{descriptor.name.value} record {index} ({record.address}) has invalid value {value}"
            )
            raise

    def _derive_one(self, descriptor: CategoryDescriptor, index: int,
                    record: BaseModel, value: int) -> bytes:
        try:
            return self.deriver.derive(record.address, value, descriptor.is_external)
        except CryptoError as e:
            self.logger.error(f"{descriptor.name.value} record {index}: {e}")
            raise

    def _derive_leaves(self, descriptor: CategoryDescriptor,
                       records: Sequence[BaseModel], values: Sequence[int]) -> Iterable[bytes]:
        indices = range(len(records))
        if self.derive_workers == 1 or len(records) < 2:
            return (self._derive_one(descriptor, i, records[i], values[i]) for i in indices)

        # Results are yielded in record order, so registration order is unchanged
        with ThreadPoolExecutor(max_workers=self.derive_workers) as executor:
            futures = [
                executor.submit(self._derive_one, descriptor, i, records[i], values[i])
                for i in indices
            ]
        return (future.result() for future in futures)

    def _register(self, descriptor: CategoryDescriptor, index: int,
                  record: BaseModel, value: int, leaf: bytes) -> None:
        first = self._seen.get(leaf)
        if first is not None:
            self.logger.error(
                f"Duplicate leaf {leaf.hex()} from {descriptor.name.value} record {index} "
                f"({record.address})"
            )
            raise DuplicateLeafError(
                leaf.hex(), descriptor.name.value, record.address, first.value
            )

        self._seen[leaf] = descriptor.name
        self._leaves.append(leaf)
        self._proof_entries.append(
            ProofEntry(address=record.address, value=value, is_external=descriptor.is_external)
        )

        stats = self._statistics.categories[descriptor.name]
        stats.count += 1
        stats.value += value
        if descriptor.tracks_shares:
            stats.shares += record.shares

        self.logger.debug(f"Registered {descriptor.name.value} leaf {leaf.hex()} for {record.address}")
