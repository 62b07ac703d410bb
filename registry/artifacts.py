"""
Airdrop Commitment Builder - Artifact Serialization

Tree artifact (binary):
    u32 leaf_count || leaf_0 || leaf_1 || ...   (leaves sorted ascending)

Proof artifact (JSON, newline-terminated):
    [{"address": ..., "value": ..., "isExternal": ...}, ...]   (ingestion order)

Both writers return the serialized bytes and their SHA-256 hex checksum. The
checksum identifies the artifact file and is unrelated to the Merkle root.
"""

import hashlib
import json
import logging
import struct
from typing import List, Optional, Sequence, Tuple

from pydantic import ValidationError

from crypto.keys import LEAF_SIZE

from .exceptions import ArtifactFormatError
from .schema import ProofEntry
from .storage import ArtifactStorage


COUNT_FORMATS = {
    "big": ">I",
    "little": "<I",
}
COUNT_SIZE = 4


def checksum(data: bytes) -> str:
    """SHA-256 hex digest of an artifact."""
    return hashlib.sha256(data).hexdigest()


def _count_format(byte_order: str) -> str:
    try:
        return COUNT_FORMATS[byte_order]
    except KeyError:
        raise ValueError(f"Unsupported byte order: {byte_order}") from None


class TreeWriter:
    """Serializes the sorted leaf set into the binary tree artifact."""

    def __init__(self, byte_order: str = "big", storage: Optional[ArtifactStorage] = None,
                 file_name: str = "tree.bin"):
        self.count_format = _count_format(byte_order)
        self.byte_order = byte_order
        self.storage = storage
        self.file_name = file_name
        self.logger = logging.getLogger(__name__)

    def serialize(self, leaves: Sequence[bytes]) -> bytes:
        for i, leaf in enumerate(leaves):
            if len(leaf) != LEAF_SIZE:
                raise ValueError(f"Leaf at index {i} is not {LEAF_SIZE} bytes")
        if len(leaves) > 0xFFFFFFFF:
            raise ValueError(f"Too many leaves for a 32-bit count: {len(leaves)}")

        ordered = sorted(leaves)
        return struct.pack(self.count_format, len(ordered)) + b''.join(ordered)

    def write(self, leaves: Sequence[bytes]) -> Tuple[bytes, str]:
        """
        Serialize leaves and stage the artifact when storage is attached.

        Args:
            leaves: Deduplicated leaves in any order

        Returns:
            Tuple of (artifact bytes, SHA-256 hex checksum)
        """
        data = self.serialize(leaves)
        digest = checksum(data)

        if self.storage is not None:
            self.storage.stage(self.file_name, data)

        self.logger.info(f"Tree artifact: {len(leaves)} leaves, {len(data)} bytes, sha256 {digest}")
        return data, digest


def read_tree_artifact(data: bytes, byte_order: str = "big") -> List[bytes]:
    """
    Parse a tree artifact back into its leaves.

    Raises:
        ArtifactFormatError: If the length does not match the count or the
            leaves are not in strictly ascending order
    """
    if len(data) < COUNT_SIZE:
        raise ArtifactFormatError("Tree artifact is shorter than its leaf count header")

    (count,) = struct.unpack(_count_format(byte_order), data[:COUNT_SIZE])
    expected = COUNT_SIZE + count * LEAF_SIZE
    if len(data) != expected:
        raise ArtifactFormatError(
            f"Tree artifact declares {count} leaves ({expected} bytes) but is {len(data)} bytes"
        )

    leaves = [
        data[offset:offset + LEAF_SIZE]
        for offset in range(COUNT_SIZE, expected, LEAF_SIZE)
    ]
    for i in range(1, len(leaves)):
        if leaves[i - 1] >= leaves[i]:
            raise ArtifactFormatError(f"Tree artifact leaves not strictly ascending at index {i}")
    return leaves


class ProofWriter:
    """Serializes proof entries, in ingestion order, into the proof artifact."""

    def __init__(self, storage: Optional[ArtifactStorage] = None,
                 file_name: str = "proofs.json"):
        self.storage = storage
        self.file_name = file_name
        self.logger = logging.getLogger(__name__)

    def serialize(self, entries: Sequence[ProofEntry]) -> bytes:
        document = [entry.model_dump(by_alias=True) for entry in entries]
        return (json.dumps(document, indent=2) + "\n").encode('utf-8')

    def write(self, entries: Sequence[ProofEntry]) -> Tuple[bytes, str]:
        """
        Serialize proof entries and stage the artifact when storage is attached.

        Returns:
            Tuple of (artifact bytes, SHA-256 hex checksum)
        """
        data = self.serialize(entries)
        digest = checksum(data)

        if self.storage is not None:
            self.storage.stage(self.file_name, data)

        self.logger.info(f"Proof artifact: {len(entries)} entries, {len(data)} bytes, sha256 {digest}")
        return data, digest


def read_proof_artifact(data: bytes) -> List[ProofEntry]:
    """
    Parse a proof artifact back into proof entries.

    Raises:
        ArtifactFormatError: If the document is not a JSON array of proof entries
    """
    try:
        document = json.loads(data.decode('utf-8'))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ArtifactFormatError(f"Proof artifact is not valid JSON: {e}") from e

    if not isinstance(document, list):
        raise ArtifactFormatError("Proof artifact must be a JSON array")

    entries = []
    for index, item in enumerate(document):
        try:
            entries.append(ProofEntry.model_validate(item))
        except ValidationError as e:
            raise ArtifactFormatError(f"Proof entry {index} is malformed: {e}") from e
    return entries
