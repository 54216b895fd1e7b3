"""
Module 02 - Merkle Tree Implementation
Fixed-depth binary Merkle tree over field elements.

This module provides:
- MerkleEngine: build a tree of 2**depth leaves, keep every level,
  generate inclusion proofs
- MerkleProof: inclusion proof with sibling hashes and path flags
- verify_proof: replay a proof against a root
- compute_root: one-shot root computation

Canonical Commitment Rules (Hard Contracts):
1. Leaves are field elements; missing slots are padded with ZERO
2. Parent hashing: parent = field_hash(left, right)
3. Depth is fixed at construction; every proof has exactly `depth`
   siblings and `depth` flags
4. Flag convention: flag 1 means the running hash is the RIGHT operand
   (sibling on the left); flag 0 means the running hash is the LEFT operand
5. The tree is always rebuilt in full, never patched

Determinism Notes:
- Leaf order is defined by the catalog order upstream
- This module never sorts leaves - it trusts input order
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from core.crypto.field import ZERO, FieldHasher, ensure_field_element, field_hash
from core.errors import (
    CapacityExceededException,
    FieldOverflowException,
    IndexOutOfRangeException,
    TreeNotBuiltException,
)


MAX_DEPTH = 32


@dataclass(frozen=True)
class MerkleProof:
    """
    A Merkle inclusion proof for a single leaf.

    Attributes:
        leaf: The leaf value being proven
        index: The 0-based index of the leaf
        siblings: Sibling hashes from bottom to top of tree
        flags: Path flags from bottom to top (1 = running hash is right operand)
        root: The Merkle root this proof is against
    """
    leaf: int
    index: int
    siblings: list[int] = field(default_factory=list)
    flags: list[int] = field(default_factory=list)
    root: int = ZERO

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"Leaf index must be non-negative, got {self.index}")
        if len(self.siblings) != len(self.flags):
            raise ValueError(
                f"siblings ({len(self.siblings)}) and flags ({len(self.flags)}) "
                f"must have the same length"
            )

    @property
    def depth(self) -> int:
        return len(self.siblings)

    def verify(self, hasher: FieldHasher = field_hash) -> bool:
        """Verify this proof against its own root."""
        return verify_proof(self.leaf, self.siblings, self.flags, self.root, hasher)


def index_to_flags(index: int, depth: int) -> list[int]:
    """Path flags for a leaf index: bit i of the index, least significant first."""
    return [(index >> level) & 1 for level in range(depth)]


class MerkleEngine:
    """
    Fixed-depth Merkle tree.

    States: Empty -> Built. build() may be called any number of times; each
    call replaces every level.

    Example:
        >>> engine = MerkleEngine(depth=2)
        >>> engine.build([11, 22, 33])
        >>> proof = engine.proof(1)
        >>> verify_proof(proof.leaf, proof.siblings, proof.flags, engine.root)
        True
    """

    def __init__(self, depth: int, hasher: FieldHasher = field_hash) -> None:
        if not 1 <= depth <= MAX_DEPTH:
            raise ValueError(f"Tree depth must be between 1 and {MAX_DEPTH}, got {depth}")
        self.depth = depth
        self.hasher = hasher
        self._levels: list[list[int]] = []

    @property
    def capacity(self) -> int:
        """Number of leaf slots (2**depth)."""
        return 1 << self.depth

    @property
    def is_built(self) -> bool:
        return bool(self._levels)

    @property
    def root(self) -> int:
        self._require_built()
        return self._levels[-1][0]

    @property
    def leaves(self) -> list[int]:
        """Padded leaf level (a copy)."""
        self._require_built()
        return list(self._levels[0])

    def build(self, leaves: Sequence[int]) -> None:
        """
        Build the tree from leaf values.

        Pads to capacity with ZERO, then hashes adjacent pairs bottom-up,
        retaining every level.

        Raises:
            CapacityExceededException: More leaves than 2**depth
            FieldOverflowException: A leaf is not a field element
        """
        if len(leaves) > self.capacity:
            raise CapacityExceededException(len(leaves), self.capacity)

        current_level = [
            ensure_field_element(leaf, f"leaf[{i}]") for i, leaf in enumerate(leaves)
        ]
        current_level.extend([ZERO] * (self.capacity - len(current_level)))

        levels = [current_level]
        while len(current_level) > 1:
            current_level = [
                self.hasher(current_level[i], current_level[i + 1])
                for i in range(0, len(current_level), 2)
            ]
            levels.append(current_level)

        self._levels = levels

    def proof(self, index: int) -> MerkleProof:
        """
        Generate an inclusion proof for the leaf at index.

        Raises:
            IndexOutOfRangeException: index outside [0, capacity)
            TreeNotBuiltException: build() has not been called
        """
        self._require_built()
        if index < 0 or index >= self.capacity:
            raise IndexOutOfRangeException(index, self.capacity)

        siblings: list[int] = []
        flags: list[int] = []
        current_index = index
        for level in self._levels[:-1]:
            is_right = current_index & 1
            siblings.append(level[current_index ^ 1])
            flags.append(is_right)
            current_index >>= 1

        return MerkleProof(
            leaf=self._levels[0][index],
            index=index,
            siblings=siblings,
            flags=flags,
            root=self.root,
        )

    def _require_built(self) -> None:
        if not self._levels:
            raise TreeNotBuiltException()


def verify_proof(
    leaf: int,
    siblings: Sequence[int],
    flags: Sequence[int],
    root: int,
    hasher: FieldHasher = field_hash,
) -> bool:
    """
    Verify a Merkle inclusion proof.

    Replays pairwise hashing from the leaf, using each flag to fix operand
    order, and compares the result with root.

    Returns:
        True if the proof is valid, False otherwise (including malformed
        proofs: mismatched lengths, non-binary flags, out-of-field values)
    """
    if len(siblings) != len(flags):
        return False

    current_hash = leaf
    try:
        for sibling, flag in zip(siblings, flags):
            if flag == 1:
                current_hash = hasher(sibling, current_hash)
            elif flag == 0:
                current_hash = hasher(current_hash, sibling)
            else:
                return False
    except (FieldOverflowException, ValueError, TypeError):
        return False

    return current_hash == root


def compute_root(leaves: Sequence[int], depth: int, hasher: FieldHasher = field_hash) -> int:
    """Root of a depth-`depth` tree over leaves (padded with ZERO)."""
    engine = MerkleEngine(depth, hasher)
    engine.build(leaves)
    return engine.root


__all__ = [
    "MAX_DEPTH",
    "MerkleProof",
    "MerkleEngine",
    "index_to_flags",
    "verify_proof",
    "compute_root",
]
