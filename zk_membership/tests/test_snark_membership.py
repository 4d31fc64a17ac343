"""Tests for the membership circuit and its instance helpers."""

from __future__ import annotations

import dataclasses
from pathlib import Path

import cbor2
import pytest

from zk_membership.config import FIELD_MODULUS, SCHEMA_VERSION
from zk_membership.exceptions import (
    ConstraintSystemError,
    MalformedWitnessError,
    ParameterMismatchError,
    SerializationError,
)
from zk_membership.identity import Identity, derive_nullifier
from zk_membership.merkle import SparseMerkleTree
from zk_membership.poseidon import derive_parameters
from zk_membership.r1cs import ConstraintSystem
from zk_membership.snark.membership import (
    MembershipCircuit,
    build_membership_instance_bytes,
    load_membership_instance,
    write_membership_instance_files,
)
from zk_membership.types import PublicInputs

EXTERNAL_NULLIFIER = 777


@pytest.fixture
def circuit(populated_tree, identities, params) -> MembershipCircuit:
    # identities[1] sits at index 3
    return MembershipCircuit.from_tree(
        populated_tree, 3, identities[1].secret, EXTERNAL_NULLIFIER, params
    )


def _flip(values, position):
    values = list(values)
    values[position] = not values[position]
    return tuple(values)


def _bump(values, position):
    values = list(values)
    values[position] = (values[position] + 1) % FIELD_MODULUS
    return tuple(values)


# ----------------------------------------------------------------------------
# Satisfiability
# ----------------------------------------------------------------------------


def test_valid_witness_satisfies(circuit: MembershipCircuit) -> None:
    cs = circuit.synthesize()
    assert cs.is_satisfied()
    assert cs.which_is_unsatisfied() is None
    assert circuit.is_satisfied()


def test_every_member_satisfies(populated_tree, identities) -> None:
    for index, ident in zip((0, 3, 6, 9, 15), identities):
        circuit = MembershipCircuit.from_tree(
            populated_tree, index, ident.secret, EXTERNAL_NULLIFIER
        )
        assert circuit.is_satisfied(), index


def test_public_inputs_allocated_first(circuit: MembershipCircuit) -> None:
    cs = circuit.synthesize()
    assert cs.num_instance_variables == 4
    assert cs.public_inputs == circuit.public_inputs().as_list()
    assert cs.public_inputs == [
        circuit.root,
        circuit.nullifier_hash,
        circuit.external_nullifier,
    ]


def test_nullifier_matches_native_derivation(circuit, identities, params) -> None:
    expected = derive_nullifier(identities[1].secret, EXTERNAL_NULLIFIER, params)
    assert circuit.nullifier_hash == expected


@pytest.mark.parametrize("level", [0, 2, 3])
def test_perturbed_sibling_unsatisfied(circuit, level) -> None:
    bad = dataclasses.replace(
        circuit, path_elements=_bump(circuit.path_elements, level)
    )
    cs = bad.synthesize()
    assert not cs.is_satisfied()
    assert cs.which_is_unsatisfied() == "root equality"


@pytest.mark.parametrize("level", [0, 1, 3])
def test_flipped_direction_unsatisfied(circuit, level) -> None:
    bad = dataclasses.replace(circuit, path_indices=_flip(circuit.path_indices, level))
    assert bad.synthesize().which_is_unsatisfied() == "root equality"


def test_wrong_secret_unsatisfied(circuit) -> None:
    bad = dataclasses.replace(circuit, secret=circuit.secret + 1)
    assert bad.synthesize().which_is_unsatisfied() == "root equality"


def test_wrong_root_unsatisfied(circuit) -> None:
    bad = dataclasses.replace(circuit, root=(circuit.root + 1) % FIELD_MODULUS)
    assert bad.synthesize().which_is_unsatisfied() == "root equality"


def test_wrong_external_nullifier_unsatisfied(circuit) -> None:
    bad = dataclasses.replace(circuit, external_nullifier=EXTERNAL_NULLIFIER + 1)
    assert bad.synthesize().which_is_unsatisfied() == "nullifier equality"


def test_wrong_nullifier_hash_unsatisfied(circuit) -> None:
    bad = dataclasses.replace(
        circuit, nullifier_hash=(circuit.nullifier_hash + 1) % FIELD_MODULUS
    )
    assert bad.synthesize().which_is_unsatisfied() == "nullifier equality"


def test_non_member_unsatisfied(populated_tree, params) -> None:
    # Index 1 is empty; an outsider's commitment does not hash to its leaf
    circuit = MembershipCircuit.from_tree(populated_tree, 1, 999, EXTERNAL_NULLIFIER)
    assert not circuit.is_satisfied()


def test_other_parameters_unsatisfied(circuit) -> None:
    bad = dataclasses.replace(circuit, params=derive_parameters(b"other seed"))
    assert bad.synthesize().which_is_unsatisfied() == "root equality"


def test_shape_independent_of_position(populated_tree, identities) -> None:
    """The constraint structure does not reveal which leaf is proven."""
    first = MembershipCircuit.from_tree(
        populated_tree, 0, identities[0].secret, EXTERNAL_NULLIFIER
    ).synthesize()
    last = MembershipCircuit.from_tree(
        populated_tree, 15, identities[4].secret, EXTERNAL_NULLIFIER
    ).synthesize()

    assert first.num_constraints == last.num_constraints
    assert first.num_witness_variables == last.num_witness_variables
    for a, b in zip(first.constraints, last.constraints):
        assert a.a.terms == b.a.terms
        assert a.b.terms == b.b.terms
        assert a.c.terms == b.c.terms
        assert a.label == b.label


def test_depth_one_tree(params) -> None:
    tree = SparseMerkleTree(1, params)
    ident = Identity(5)
    tree.insert(1, ident.commitment(params))
    circuit = MembershipCircuit.from_tree(tree, 1, ident.secret, 1)
    assert circuit.depth == 1
    assert circuit.path_indices == (True,)
    assert circuit.is_satisfied()


# ----------------------------------------------------------------------------
# Construction errors
# ----------------------------------------------------------------------------


def test_short_path_rejected(circuit) -> None:
    with pytest.raises(MalformedWitnessError, match="expected 4"):
        dataclasses.replace(circuit, path_elements=circuit.path_elements[:-1])


def test_path_length_mismatch_rejected(circuit) -> None:
    with pytest.raises(MalformedWitnessError, match="path_indices has 3"):
        dataclasses.replace(circuit, path_indices=circuit.path_indices[:-1])


def test_explicit_depth_mismatch_rejected(circuit) -> None:
    with pytest.raises(MalformedWitnessError, match="expected 5"):
        dataclasses.replace(circuit, depth=5)


def test_integer_direction_rejected(circuit) -> None:
    indices = (1,) + circuit.path_indices[1:]
    with pytest.raises(MalformedWitnessError, match=r"path_indices\[0\] must be bool"):
        dataclasses.replace(circuit, path_indices=indices)


def test_unreduced_sibling_rejected(circuit) -> None:
    elements = circuit.path_elements[:2] + (FIELD_MODULUS,) + circuit.path_elements[3:]
    with pytest.raises(MalformedWitnessError, match=r"path_elements\[2\]"):
        dataclasses.replace(circuit, path_elements=elements)


def test_unreduced_secret_rejected(circuit) -> None:
    with pytest.raises(MalformedWitnessError, match="secret"):
        dataclasses.replace(circuit, secret=FIELD_MODULUS)


def test_non_sequence_path_rejected(circuit) -> None:
    with pytest.raises(MalformedWitnessError, match="sequences"):
        dataclasses.replace(circuit, path_elements=None)


def test_empty_path_rejected(circuit) -> None:
    with pytest.raises(MalformedWitnessError, match="depth must be in"):
        dataclasses.replace(circuit, path_elements=(), path_indices=(), depth=None)


def test_unreduced_public_value_rejected(circuit) -> None:
    with pytest.raises(ValueError):
        dataclasses.replace(circuit, root=FIELD_MODULUS)


def test_zero_external_nullifier_rejected(circuit) -> None:
    # H(secret, 0) equals the leaf H(secret), exposing the proven leaf
    with pytest.raises(ValueError, match="non-zero"):
        dataclasses.replace(circuit, external_nullifier=0)


def test_from_tree_zero_external_nullifier_rejected(
    populated_tree, identities
) -> None:
    with pytest.raises(ValueError, match="non-zero"):
        MembershipCircuit.from_tree(populated_tree, 3, identities[1].secret, 0)


@pytest.mark.parametrize("secret", [FIELD_MODULUS, -1, "22"])
def test_from_tree_invalid_secret_rejected(populated_tree, secret) -> None:
    with pytest.raises(MalformedWitnessError, match="secret"):
        MembershipCircuit.from_tree(populated_tree, 3, secret, EXTERNAL_NULLIFIER)


def test_from_tree_parameter_mismatch(populated_tree, identities) -> None:
    with pytest.raises(ParameterMismatchError):
        MembershipCircuit.from_tree(
            populated_tree,
            3,
            identities[1].secret,
            EXTERNAL_NULLIFIER,
            derive_parameters(b"other seed"),
        )


def test_paths_normalized_to_tuples(circuit) -> None:
    rebuilt = dataclasses.replace(
        circuit,
        path_elements=list(circuit.path_elements),
        path_indices=list(circuit.path_indices),
    )
    assert rebuilt == circuit
    assert isinstance(rebuilt.path_elements, tuple)


def test_witness_not_in_repr(circuit) -> None:
    text = repr(circuit)
    assert "secret" not in text
    assert "path_elements" not in text


def test_merkle_path_matches_tree(circuit, populated_tree) -> None:
    assert circuit.merkle_path() == populated_tree.get_proof(3)


# ----------------------------------------------------------------------------
# Capacity
# ----------------------------------------------------------------------------


def test_constraint_capacity_exhausted(circuit) -> None:
    with pytest.raises(ConstraintSystemError, match="capacity"):
        circuit.synthesize(max_constraints=10)


def test_constraint_capacity_from_environment(circuit, monkeypatch) -> None:
    monkeypatch.setenv("ZK_MEMBERSHIP_MAX_CONSTRAINTS", "10")
    with pytest.raises(ConstraintSystemError):
        circuit.is_satisfied()


def test_variable_capacity_exhausted(circuit) -> None:
    cs = ConstraintSystem(max_variables=2)
    with pytest.raises(ConstraintSystemError, match="external_nullifier"):
        circuit.generate_constraints(cs)


def test_sufficient_capacity(circuit) -> None:
    needed = circuit.synthesize().num_constraints
    assert circuit.is_satisfied(max_constraints=needed)
    with pytest.raises(ConstraintSystemError):
        circuit.synthesize(max_constraints=needed - 1)


# ----------------------------------------------------------------------------
# Instance serialization
# ----------------------------------------------------------------------------


def test_build_membership_instance_bytes(circuit) -> None:
    instance_bytes, public_inputs_bytes = build_membership_instance_bytes(circuit)

    assert isinstance(instance_bytes, bytes)
    assert PublicInputs.from_bytes(public_inputs_bytes) == circuit.public_inputs()

    obj = cbor2.loads(instance_bytes)
    assert obj["v"] == SCHEMA_VERSION
    assert obj["t"] == "membership"
    assert obj["d"] == 4
    assert obj["f"] == circuit.params.fingerprint()


def test_instance_round_trip(circuit, params) -> None:
    instance_bytes, _ = build_membership_instance_bytes(circuit)
    loaded = load_membership_instance(instance_bytes, params)
    assert loaded == circuit
    assert loaded.is_satisfied()


def test_instance_parameter_mismatch(circuit) -> None:
    instance_bytes, _ = build_membership_instance_bytes(circuit)
    with pytest.raises(ParameterMismatchError):
        load_membership_instance(instance_bytes, derive_parameters(b"other seed"))


def test_instance_garbage_rejected(params) -> None:
    with pytest.raises(SerializationError):
        load_membership_instance(b"\xff\xff", params)


def test_instance_wrong_statement_type(circuit, params) -> None:
    obj = cbor2.loads(build_membership_instance_bytes(circuit)[0])
    obj["t"] = "continuity"
    with pytest.raises(SerializationError, match="statement type"):
        load_membership_instance(cbor2.dumps(obj), params)


def test_instance_integer_direction_rejected(circuit, params) -> None:
    obj = cbor2.loads(build_membership_instance_bytes(circuit)[0])
    obj["w"]["i"][0] = 1
    with pytest.raises(MalformedWitnessError):
        load_membership_instance(cbor2.dumps(obj), params)


def test_instance_truncated_public_values(circuit, params) -> None:
    obj = cbor2.loads(build_membership_instance_bytes(circuit)[0])
    obj["p"] = obj["p"][:2]
    with pytest.raises(SerializationError, match="3 public values"):
        load_membership_instance(cbor2.dumps(obj), params)


def test_write_membership_instance_files(circuit, tmp_path: Path) -> None:
    instance_path = tmp_path / "instance.bin"
    public_inputs_path = tmp_path / "public_inputs.bin"

    written = write_membership_instance_files(
        circuit, instance_path, str(public_inputs_path)
    )

    assert written == (instance_path, public_inputs_path)
    instance_bytes, public_inputs_bytes = build_membership_instance_bytes(circuit)
    assert instance_path.read_bytes() == instance_bytes
    assert public_inputs_path.read_bytes() == public_inputs_bytes


def test_package_exports_circuit() -> None:
    import zk_membership

    assert zk_membership.MembershipCircuit is MembershipCircuit
    assert "MembershipCircuit" in vars(zk_membership)
