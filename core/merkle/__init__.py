"""
Module 02 - Merkle Tree
Fixed-depth Merkle tree construction + proof generation/verification.

This module provides:
- MerkleEngine: build a padded tree, read root, generate proofs
- MerkleProof: sibling hashes plus left/right flags for one leaf
- verify_proof: verify a proof against a root
- compute_root: one-shot root for a leaf list

Usage:
    from core.merkle import MerkleEngine, verify_proof
    from core.crypto import product_hash, leaf_hash

    leaves = [leaf_hash(product_hash(pid), price) for pid, price in prices]

    engine = MerkleEngine(depth=4)
    engine.build(leaves)

    proof = engine.proof(2)
    assert verify_proof(proof.leaf, proof.siblings, proof.flags, engine.root)
"""
from .merkle_tree import (
    MAX_DEPTH,
    MerkleEngine,
    MerkleProof,
    compute_root,
    index_to_flags,
    verify_proof,
)


__all__ = [
    "MAX_DEPTH",
    "MerkleEngine",
    "MerkleProof",
    "compute_root",
    "index_to_flags",
    "verify_proof",
]
