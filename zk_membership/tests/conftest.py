"""Shared fixtures: one canonical parameter set for every test vector."""

import pytest

from zk_membership.identity import Identity
from zk_membership.merkle import SparseMerkleTree
from zk_membership.poseidon import get_canonical_parameters


@pytest.fixture(scope="session")
def params():
    return get_canonical_parameters()


@pytest.fixture
def identities():
    return [Identity(secret) for secret in (11, 22, 33, 44, 55)]


@pytest.fixture
def populated_tree(params, identities):
    """Depth-4 tree with identity commitments at scattered indices."""
    tree = SparseMerkleTree(4, params)
    for index, identity in zip((0, 3, 6, 9, 15), identities):
        tree.insert(index, identity.commitment(params))
    return tree
