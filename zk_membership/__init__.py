"""Public API for zk_membership.

Sparse Poseidon Merkle accumulator plus the membership relation that
replays its hashing inside a rank-1 constraint system.
"""
from __future__ import annotations

import logging

from .exceptions import (
    ConfigurationError,
    ConstraintSystemError,
    MalformedWitnessError,
    MembershipError,
    ParameterMismatchError,
    SerializationError,
)
from .identity import Identity, external_nullifier_from_context
from .merkle import SparseMerkleTree, compute_root, verify_path
from .poseidon import (
    PoseidonParameters,
    derive_parameters,
    get_canonical_parameters,
    poseidon_hash,
)
from .r1cs import ConstraintSystem
from .snark.membership import MembershipCircuit
from .types import MerklePath, PublicInputs

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "SparseMerkleTree",
    "compute_root",
    "verify_path",
    "MerklePath",
    "PublicInputs",
    "PoseidonParameters",
    "derive_parameters",
    "get_canonical_parameters",
    "poseidon_hash",
    "ConstraintSystem",
    "Identity",
    "external_nullifier_from_context",
    "MembershipCircuit",
    "MembershipError",
    "MalformedWitnessError",
    "ConstraintSystemError",
    "ParameterMismatchError",
    "ConfigurationError",
    "SerializationError",
]
