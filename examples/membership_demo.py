"""
Anonymous Membership Example

This example registers a handful of identities in a sparse Merkle tree,
builds a membership statement for one of them, checks it against the
reference constraint system, and exports the instance files a proving
backend would consume.

Set ZK_MEMBERSHIP_LOG_LEVEL=DEBUG to see tree and circuit logging.
"""

import tempfile
from pathlib import Path

from zk_membership import (
    Identity,
    MembershipCircuit,
    SparseMerkleTree,
    external_nullifier_from_context,
    get_canonical_parameters,
    verify_path,
)
from zk_membership.settings import configure_logging
from zk_membership.snark import write_membership_instance_files

TREE_DEPTH = 16
MEMBER_INDICES = (0, 7, 42, 1000)
PROVER_INDEX = 42


def main():
    """Run the membership example."""
    configure_logging()

    print("\n" + "=" * 70)
    print("zk-membership - Anonymous Membership Example")
    print("=" * 70)

    print("\n1. Deriving Poseidon parameters...")
    params = get_canonical_parameters()
    print(f"   Fingerprint: {params.fingerprint().hex()[:16]}...")

    print(f"\n2. Registering {len(MEMBER_INDICES)} identities...")
    tree = SparseMerkleTree(TREE_DEPTH, params)
    members = {}
    for index in MEMBER_INDICES:
        members[index] = Identity.generate()
        tree.insert(index, members[index].commitment(params))
    print(f"   Root: 0x{tree.root:064x}")

    print(f"\n3. Fetching the inclusion path for index {PROVER_INDEX}...")
    member = members[PROVER_INDEX]
    path = tree.get_proof(PROVER_INDEX)
    ok = verify_path(member.commitment(params), path, tree.root, params)
    print(f"   Native path check: {'✓' if ok else '✗'}")

    print("\n4. Building the membership statement...")
    external = external_nullifier_from_context(b"example-poll")
    circuit = MembershipCircuit.from_tree(
        tree, PROVER_INDEX, member.secret, external
    )
    cs = circuit.synthesize()
    print(f"   Constraints: {cs.num_constraints}")
    print(f"   Public inputs: {cs.num_instance_variables - 1}")
    print(f"   Witness variables: {cs.num_witness_variables}")
    print(f"   Satisfied: {'✓' if cs.is_satisfied() else '✗'}")

    print("\n5. Tampering with one sibling...")
    forged = MembershipCircuit(
        root=circuit.root,
        nullifier_hash=circuit.nullifier_hash,
        external_nullifier=circuit.external_nullifier,
        secret=circuit.secret,
        path_elements=(circuit.path_elements[0] ^ 1,) + circuit.path_elements[1:],
        path_indices=circuit.path_indices,
        params=params,
    )
    print(f"   First failing constraint: {forged.synthesize().which_is_unsatisfied()}")

    print("\n6. Checking nullifier reuse...")
    again = MembershipCircuit.from_tree(tree, PROVER_INDEX, member.secret, external)
    other = external_nullifier_from_context(b"another-poll")
    elsewhere = MembershipCircuit.from_tree(tree, PROVER_INDEX, member.secret, other)
    reused = again.nullifier_hash == circuit.nullifier_hash
    fresh = elsewhere.nullifier_hash != circuit.nullifier_hash
    print(f"   Same context, same nullifier: {'✓' if reused else '✗'}")
    print(f"   New context, new nullifier: {'✓' if fresh else '✗'}")

    print("\n7. Exporting instance files...")
    with tempfile.TemporaryDirectory() as tmp:
        instance_path, public_path = write_membership_instance_files(
            circuit,
            Path(tmp) / "instance.bin",
            Path(tmp) / "public_inputs.bin",
        )
        print(f"   Instance: {instance_path.stat().st_size} bytes (keep private)")
        print(f"   Public inputs: {public_path.stat().st_size} bytes")

    print("\n" + "=" * 70)
    print("Done")
    print("=" * 70)


if __name__ == "__main__":
    main()
