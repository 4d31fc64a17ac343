"""
Sparse incremental Merkle tree over the Poseidon hash.

Only populated leaves and the internal nodes computed from them are stored.
Any node absent from ``nodes`` equals ``default_nodes[level]``, the root of
an empty subtree of that height, so an insertion rehashes exactly one
leaf-to-root path: ``depth`` hashes regardless of how many leaves exist.

Direction convention (shared with the membership circuit):
    an even index is a left child, an odd index is a right child, and
    ``path_indices[level]`` is True exactly when the node is a right child.

The tree has no internal locking. Callers sharing one instance across
threads must serialize ``insert`` against every other call.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .config import MAX_TREE_DEPTH
from .field import ZERO, field_to_bytes, require_field_element
from .poseidon import PoseidonParameters, get_canonical_parameters, poseidon_hash
from .security import constant_time_compare
from .settings import get_default_depth
from .types import MerklePath

logger = logging.getLogger(__name__)


def hash_node(params: PoseidonParameters, left: int, right: int) -> int:
    """
    Hash two child nodes.

    Note:
        Uses fixed left||right ordering (no sorting).
    """
    return poseidon_hash(params, (left, right))


class SparseMerkleTree:
    """
    Fixed-depth sparse Merkle accumulator.

    Attributes:
        depth: Number of levels above the leaves (fixed at construction)
        root: Current root value
        leaves: index -> leaf value, populated leaves only
        nodes: (level, index) -> value, every node computed so far
        default_nodes: Empty-subtree value per level, ``depth + 1`` entries
        params: Poseidon parameters used for every node hash

    Example:
        >>> tree = SparseMerkleTree(20, get_canonical_parameters())
        >>> tree.insert(3, leaf)
        >>> siblings, directions = tree.get_proof(3)
        >>> assert compute_root(leaf, siblings, directions, tree.params) == tree.root
    """

    def __init__(
        self,
        depth: Optional[int] = None,
        params: Optional[PoseidonParameters] = None,
    ):
        if depth is None:
            depth = get_default_depth()
        if isinstance(depth, bool) or not isinstance(depth, int):
            raise TypeError(f"depth must be an int, got {type(depth)}")
        if not 1 <= depth <= MAX_TREE_DEPTH:
            raise ValueError(f"depth must be in [1, {MAX_TREE_DEPTH}], got {depth}")
        if params is None:
            params = get_canonical_parameters()
        if not isinstance(params, PoseidonParameters):
            raise TypeError("params must be PoseidonParameters")

        self.depth = depth
        self.params = params

        # Level 0 = leaves (default 0), level i = H(level i-1, level i-1)
        default_nodes: List[int] = [ZERO]
        for _ in range(depth):
            child = default_nodes[-1]
            default_nodes.append(hash_node(params, child, child))
        self.default_nodes: Tuple[int, ...] = tuple(default_nodes)

        self.root: int = self.default_nodes[depth]
        self.leaves: Dict[int, int] = {}
        self.nodes: Dict[Tuple[int, int], int] = {}

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def insert(self, index: int, value: int) -> int:
        """
        Set the leaf at ``index`` and rehash its path to the root.

        Overwrites an occupied index without complaint; inserting the same
        value twice leaves the tree unchanged.

        Args:
            index: Leaf index in [0, 2**depth)
            value: Leaf value (field element)

        Returns:
            The new root
        """
        self._check_index(index)
        require_field_element(value, "value")

        self.leaves[index] = value
        self.nodes[(0, index)] = value

        current_index = index
        current_value = value
        for level in range(self.depth):
            sibling_value = self.get_node(level, current_index ^ 1)

            if current_index % 2 == 0:
                left, right = current_value, sibling_value
            else:
                left, right = sibling_value, current_value

            current_value = hash_node(self.params, left, right)
            current_index //= 2
            self.nodes[(level + 1, current_index)] = current_value

        self.root = current_value
        logger.debug("Inserted leaf at index %d (depth=%d)", index, self.depth)
        return self.root

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_node(self, level: int, index: int) -> int:
        """Node value at (level, index), defaulting to the empty subtree."""
        if not 0 <= level <= self.depth:
            raise ValueError(f"level must be in [0, {self.depth}], got {level}")
        if not 0 <= index < 1 << (self.depth - level):
            raise ValueError(f"index {index} out of range for level {level}")
        return self.nodes.get((level, index), self.default_nodes[level])

    def get_proof(self, index: int) -> MerklePath:
        """
        Inclusion witness for ``index``.

        Returns:
            MerklePath of ``depth`` sibling values and ``depth`` direction
            bits, ordered leaf to root
        """
        self._check_index(index)

        path_elements: List[int] = []
        path_indices: List[bool] = []

        current_index = index
        for level in range(self.depth):
            path_elements.append(self.get_node(level, current_index ^ 1))
            path_indices.append(current_index % 2 == 1)
            current_index //= 2

        logger.debug("Built inclusion path for index %d", index)
        return MerklePath(tuple(path_elements), tuple(path_indices))

    def leaf(self, index: int) -> int:
        """Leaf value at ``index`` (zero when unpopulated)."""
        return self.get_node(0, index)

    @property
    def capacity(self) -> int:
        return 1 << self.depth

    def __len__(self) -> int:
        return len(self.leaves)

    def __contains__(self, index) -> bool:
        return index in self.leaves

    def __repr__(self) -> str:
        return (
            f"SparseMerkleTree(depth={self.depth}, leaves={len(self.leaves)}, "
            f"root=0x{self.root:064x})"
        )

    def _check_index(self, index: int) -> None:
        if isinstance(index, bool) or not isinstance(index, int):
            raise TypeError(f"index must be an int, got {type(index)}")
        if not 0 <= index < self.capacity:
            raise ValueError(
                f"index must be in [0, {self.capacity}) for depth {self.depth}, "
                f"got {index}"
            )


def compute_root(
    leaf: int,
    path_elements: Sequence[int],
    path_indices: Sequence[bool],
    params: PoseidonParameters,
) -> int:
    """
    Recompute a root natively from a leaf and its inclusion path.

    Args:
        leaf: Leaf value
        path_elements: Sibling values, leaf to root
        path_indices: True where the current node is the right child
        params: Poseidon parameters

    Returns:
        Root value

    Raises:
        ValueError: If the two sequences differ in length
    """
    if len(path_elements) != len(path_indices):
        raise ValueError("path_elements and path_indices must have equal length")

    current = leaf
    for sibling, is_right in zip(path_elements, path_indices):
        if is_right:
            # Sibling is on left, current on right
            current = hash_node(params, sibling, current)
        else:
            # Sibling is on right, current on left
            current = hash_node(params, current, sibling)

    return current


def verify_path(
    leaf: int,
    path: MerklePath,
    root: int,
    params: PoseidonParameters,
) -> bool:
    """
    Verify an inclusion path natively.

    Returns:
        True if the path leads from ``leaf`` to ``root``
    """
    path_elements, path_indices = path
    try:
        computed = compute_root(leaf, path_elements, path_indices, params)
        return constant_time_compare(field_to_bytes(computed), field_to_bytes(root))
    except ValueError:
        return False
