"""Membership circuit: the relation a proving backend attests to.

Public inputs: root, nullifier_hash, external_nullifier.
Private witness: secret, path_elements, path_indices.

Constraints:
    1. leaf = H(secret)
    2. for each level: left/right selected by the private direction bit,
       current = H(left, right)
    3. current == root
    4. H(secret, external_nullifier) == nullifier_hash

Wrong values do not raise here; they yield an unsatisfied constraint
system, which a proving backend then fails to prove.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence, Tuple

import cbor2

from ..config import MAX_TREE_DEPTH, SCHEMA_VERSION, STATEMENT_TYPE
from ..exceptions import (
    MalformedWitnessError,
    ParameterMismatchError,
    SerializationError,
)
from ..field import (
    field_from_bytes,
    field_to_bytes,
    is_field_element,
    require_field_element,
)
from ..identity import derive_nullifier, require_external_nullifier
from ..merkle import SparseMerkleTree
from ..poseidon import PoseidonParameters, poseidon_hash
from ..r1cs import ConstraintField, ConstraintSystem
from ..settings import get_max_constraints
from ..types import MerklePath, PublicInputs

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MembershipCircuit:
    """
    One membership statement, consumed once by ``generate_constraints``.

    Attributes:
        root: Public tree root
        nullifier_hash: Public nullifier
        external_nullifier: Public context value
        secret: Private identity secret
        path_elements: Private sibling values, leaf to root
        path_indices: Private direction bits (True = right child)
        params: Poseidon parameters; must equal the tree's
        depth: Expected path length; defaults to len(path_elements)

    Raises:
        MalformedWitnessError: If the path sequences are not both exactly
            ``depth`` long, a direction is not a bool, or a witness value
            is not a field element
        ValueError: If ``external_nullifier`` is zero
    """

    root: int
    nullifier_hash: int
    external_nullifier: int
    secret: int = field(repr=False)
    path_elements: Tuple[int, ...] = field(repr=False)
    path_indices: Tuple[bool, ...] = field(repr=False)
    params: PoseidonParameters = field(repr=False)
    depth: Optional[int] = None

    def __post_init__(self):
        require_field_element(self.root, "root")
        require_field_element(self.nullifier_hash, "nullifier_hash")
        require_external_nullifier(self.external_nullifier)
        if not isinstance(self.params, PoseidonParameters):
            raise TypeError("params must be PoseidonParameters")

        if not is_field_element(self.secret):
            raise MalformedWitnessError("secret must be a field element")

        try:
            path_elements = tuple(self.path_elements)
            path_indices = tuple(self.path_indices)
        except TypeError as exc:
            raise MalformedWitnessError(
                "path_elements and path_indices must be sequences"
            ) from exc

        depth = len(path_elements) if self.depth is None else self.depth
        if isinstance(depth, bool) or not isinstance(depth, int):
            raise MalformedWitnessError(f"depth must be an int, got {type(depth)}")
        if not 1 <= depth <= MAX_TREE_DEPTH:
            raise MalformedWitnessError(
                f"depth must be in [1, {MAX_TREE_DEPTH}], got {depth}"
            )
        if len(path_elements) != depth:
            raise MalformedWitnessError(
                f"path_elements has {len(path_elements)} entries, expected {depth}"
            )
        if len(path_indices) != depth:
            raise MalformedWitnessError(
                f"path_indices has {len(path_indices)} entries, expected {depth}"
            )

        for idx, (sibling, is_right) in enumerate(zip(path_elements, path_indices)):
            if not is_field_element(sibling):
                raise MalformedWitnessError(
                    f"path_elements[{idx}] must be a field element"
                )
            if not isinstance(is_right, bool):
                raise MalformedWitnessError(f"path_indices[{idx}] must be bool")

        object.__setattr__(self, "path_elements", path_elements)
        object.__setattr__(self, "path_indices", path_indices)
        object.__setattr__(self, "depth", depth)

    @classmethod
    def from_tree(
        cls,
        tree: SparseMerkleTree,
        index: int,
        secret: int,
        external_nullifier: int,
        params: Optional[PoseidonParameters] = None,
    ) -> "MembershipCircuit":
        """
        Build a statement against the tree's current root.

        Args:
            tree: Accumulator holding H(secret) at ``index``
            index: Leaf index
            secret: Identity secret
            external_nullifier: Public context value
            params: Optional parameters; must equal ``tree.params``

        Raises:
            ParameterMismatchError: If ``params`` differs from the tree's
            MalformedWitnessError: If ``secret`` is not a field element
            ValueError: If ``external_nullifier`` is zero or unreduced
        """
        if params is not None and params != tree.params:
            raise ParameterMismatchError(
                "Circuit parameters differ from the tree's hash parameters"
            )
        if not is_field_element(secret):
            raise MalformedWitnessError("secret must be a field element")

        path_elements, path_indices = tree.get_proof(index)
        return cls(
            root=tree.root,
            nullifier_hash=derive_nullifier(secret, external_nullifier, tree.params),
            external_nullifier=external_nullifier,
            secret=secret,
            path_elements=path_elements,
            path_indices=path_indices,
            params=tree.params,
            depth=tree.depth,
        )

    def public_inputs(self) -> PublicInputs:
        return PublicInputs(
            root=self.root,
            nullifier_hash=self.nullifier_hash,
            external_nullifier=self.external_nullifier,
        )

    def merkle_path(self) -> MerklePath:
        return MerklePath(self.path_elements, self.path_indices)

    def generate_constraints(self, cs: ConstraintSystem) -> None:
        """
        Record the membership relation in ``cs``.

        Raises:
            ConstraintSystemError: If the constraint system cannot allocate
                a variable or constraint (propagated unchanged)
        """
        # 1. Public inputs
        root_var = cs.new_input(self.root, "root")
        nullifier_hash_var = cs.new_input(self.nullifier_hash, "nullifier_hash")
        external_nullifier_var = cs.new_input(
            self.external_nullifier, "external_nullifier"
        )

        # 2. Private witness
        secret_var = cs.new_witness(self.secret, "secret")
        path_element_vars = [
            cs.new_witness(value, f"path_elements[{level}]")
            for level, value in enumerate(self.path_elements)
        ]
        path_index_vars = [
            cs.new_boolean_witness(flag, f"path_indices[{level}]")
            for level, flag in enumerate(self.path_indices)
        ]

        in_circuit = ConstraintField(cs)

        # 3. Leaf = H(secret)
        current = poseidon_hash(self.params, [secret_var], in_circuit)

        # 4. Path: the direction bit picks the order through constraints,
        # so the circuit shape is the same for every position
        for level, (sibling, is_right) in enumerate(
            zip(path_element_vars, path_index_vars)
        ):
            left = cs.conditionally_select(
                is_right, sibling, current, label=f"left[{level}]"
            )
            right = cs.conditionally_select(
                is_right, current, sibling, label=f"right[{level}]"
            )
            current = poseidon_hash(self.params, [left, right], in_circuit)

        cs.enforce_equal(current, root_var, label="root equality")

        # 5. Nullifier = H(secret, external_nullifier)
        computed_nullifier = poseidon_hash(
            self.params, [secret_var, external_nullifier_var], in_circuit
        )
        cs.enforce_equal(
            computed_nullifier, nullifier_hash_var, label="nullifier equality"
        )

        logger.debug(
            "Generated membership constraints: depth=%d constraints=%d witnesses=%d",
            self.depth,
            cs.num_constraints,
            cs.num_witness_variables,
        )

    def synthesize(self, max_constraints: Optional[int] = None) -> ConstraintSystem:
        """Generate constraints into a fresh reference constraint system."""
        cs = ConstraintSystem(max_constraints=get_max_constraints(max_constraints))
        self.generate_constraints(cs)
        return cs

    def is_satisfied(self, max_constraints: Optional[int] = None) -> bool:
        """Synthesize and report whether the assignment satisfies the relation."""
        return self.synthesize(max_constraints).is_satisfied()


# ============================================================================
# INSTANCE SERIALIZATION
# ============================================================================


def build_membership_instance_bytes(circuit: MembershipCircuit) -> Tuple[bytes, bytes]:
    """
    Encode a circuit for an external proving backend.

    Returns:
        (instance_bytes, public_inputs_bytes)

    Notes:
        - instance_bytes carries the private witness; treat it as secret.
        - The parameter fingerprint lets the consumer reject a statement
          built under different hash parameters.
    """
    instance = {
        "v": SCHEMA_VERSION,
        "t": STATEMENT_TYPE,
        "d": circuit.depth,
        "f": circuit.params.fingerprint(),
        "p": [field_to_bytes(value) for value in circuit.public_inputs().as_list()],
        "w": {
            "s": field_to_bytes(circuit.secret),
            "e": [field_to_bytes(value) for value in circuit.path_elements],
            "i": list(circuit.path_indices),
        },
    }
    return cbor2.dumps(instance), circuit.public_inputs().to_bytes()


def load_membership_instance(
    instance_bytes: bytes, params: PoseidonParameters
) -> MembershipCircuit:
    """
    Decode instance bytes produced by ``build_membership_instance_bytes``.

    Raises:
        SerializationError: If the payload is structurally invalid
        ParameterMismatchError: If it was built under other parameters
        MalformedWitnessError: If the witness shape is invalid
    """
    try:
        obj = cbor2.loads(bytes(instance_bytes))
    except Exception as e:
        raise SerializationError(f"Failed to decode membership instance: {e}") from e

    if not isinstance(obj, dict):
        raise SerializationError("Invalid membership instance: expected a map")
    if obj.get("v") != SCHEMA_VERSION:
        raise SerializationError(
            f"Unsupported instance version: {obj.get('v')} (expected {SCHEMA_VERSION})"
        )
    if obj.get("t") != STATEMENT_TYPE:
        raise SerializationError(f"Unexpected statement type: {obj.get('t')!r}")
    if obj.get("f") != params.fingerprint():
        raise ParameterMismatchError(
            "Instance was built with different hash parameters"
        )

    public = obj.get("p")
    witness = obj.get("w")
    if not isinstance(public, list) or len(public) != 3:
        raise SerializationError(
            "Invalid membership instance: expected 3 public values"
        )
    if not isinstance(witness, dict):
        raise SerializationError("Invalid membership instance: missing witness")

    elements = witness.get("e")
    indices = witness.get("i")
    if not isinstance(elements, list) or not isinstance(indices, list):
        raise SerializationError("Invalid membership instance: missing path")

    try:
        root, nullifier_hash, external_nullifier = (
            field_from_bytes(value, f"public[{i}]") for i, value in enumerate(public)
        )
        secret = field_from_bytes(witness.get("s"), "secret")
        path_elements = _decode_elements(elements)
    except (TypeError, ValueError) as e:
        raise SerializationError(str(e)) from e

    return MembershipCircuit(
        root=root,
        nullifier_hash=nullifier_hash,
        external_nullifier=external_nullifier,
        secret=secret,
        path_elements=path_elements,
        path_indices=tuple(indices),
        params=params,
        depth=obj.get("d"),
    )


def write_membership_instance_files(
    circuit: MembershipCircuit,
    instance_path: str | Path,
    public_inputs_path: str | Path,
) -> tuple[Path, Path]:
    """
    Write instance/public-input files for an external proving backend.
    """
    instance_bytes, public_inputs_bytes = build_membership_instance_bytes(circuit)
    instance_path = Path(instance_path)
    public_inputs_path = Path(public_inputs_path)

    instance_path.write_bytes(instance_bytes)
    public_inputs_path.write_bytes(public_inputs_bytes)

    return instance_path, public_inputs_path


def _decode_elements(values: Sequence[bytes]) -> Tuple[int, ...]:
    return tuple(
        field_from_bytes(value, f"path_elements[{i}]") for i, value in enumerate(values)
    )
