"""
Airdrop Commitment Builder - Merkle Root Computation

This module computes the Merkle root over the sorted airdrop leaf set.

Conventions:
- Leaves are already 32-byte hashes and are used as level-0 nodes unchanged.
- Internal nodes are SHA256(0x01 || left || right).
- A level with an odd number of nodes pairs its last node with itself.
- A single leaf is its own root.
"""

import hashlib
import logging
from typing import List, Optional, Sequence

from .exceptions import EmptyTreeError


NODE_SIZE = 32
INTERNAL_PREFIX = b'\x01'


class MerkleHasher:
    """
    Handles hashing of internal Merkle nodes.

    Uses a 0x01 prefix so an internal node can never be confused with a leaf.
    """

    def hash_internal(self, left_hash: bytes, right_hash: bytes) -> bytes:
        """
        Hash internal node from children.

        Format: SHA256(0x01 || left_hash || right_hash)

        Args:
            left_hash: Hash of left child (32 bytes)
            right_hash: Hash of right child (32 bytes)

        Returns:
            32-byte hash
        """
        if len(left_hash) != NODE_SIZE or len(right_hash) != NODE_SIZE:
            raise ValueError("Child hashes must be 32 bytes")

        return hashlib.sha256(INTERNAL_PREFIX + left_hash + right_hash).digest()


class MerkleRoot:
    """Computes Merkle roots over sorted leaf sets."""

    def __init__(self, hasher: Optional[MerkleHasher] = None):
        self.hasher = hasher or MerkleHasher()
        self.logger = logging.getLogger(__name__)

    def build_levels(self, leaves: Sequence[bytes]) -> List[List[bytes]]:
        """
        Build every tree level bottom-up.

        Args:
            leaves: 32-byte leaves in any order; a sorted copy is used

        Returns:
            List of levels; level 0 holds the sorted leaves, the last holds the root

        Raises:
            EmptyTreeError: If there are no leaves
            ValueError: If a leaf is not 32 bytes
        """
        if not leaves:
            raise EmptyTreeError("Cannot compute a Merkle root over an empty leaf set")

        for i, leaf in enumerate(leaves):
            if len(leaf) != NODE_SIZE:
                raise ValueError(f"Leaf at index {i} is not 32 bytes")

        levels = [sorted(leaves)]
        while len(levels[-1]) > 1:
            nodes = levels[-1]
            next_level = []
            for i in range(0, len(nodes), 2):
                left = nodes[i]
                # Odd number of nodes - duplicate last node
                right = nodes[i + 1] if i + 1 < len(nodes) else left
                next_level.append(self.hasher.hash_internal(left, right))
            levels.append(next_level)

        self.logger.debug(f"Merkle tree built: {len(leaves)} leaves, {len(levels)} levels")
        return levels

    def compute(self, leaves: Sequence[bytes]) -> bytes:
        """
        Compute the Merkle root of a leaf set.

        Args:
            leaves: 32-byte leaves

        Returns:
            32-byte root hash
        """
        return self.build_levels(leaves)[-1][0]


def compute_merkle_root(leaves: Sequence[bytes]) -> bytes:
    """Convenience wrapper around ``MerkleRoot().compute``."""
    return MerkleRoot().compute(leaves)


def tree_depth(leaf_count: int) -> int:
    """
    Number of hashing levels above the leaves: ceil(log2(leaf_count)).

    Computed by repeated halving so no floating point is involved.
    ``tree_depth(0) == tree_depth(1) == 0``.
    """
    if leaf_count < 0:
        raise ValueError(f"Leaf count cannot be negative: {leaf_count}")

    depth = 0
    size = leaf_count
    while size > 1:
        depth += 1
        size = (size + 1) // 2
    return depth
