"""
⚠️ DRAFT — requires crypto review before production use

Common value types for membership statements.

This module provides:
1. MerklePath - sibling values and direction bits, leaf to root
2. PublicInputs - the public side of a membership statement

Both serialize to versioned CBOR maps. Field elements are encoded as
32-byte big-endian strings.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, NamedTuple, Tuple

try:
    import cbor2
except ImportError:
    raise ImportError(
        "cbor2 is required for statement serialization. "
        "Install with: pip install cbor2"
    )

from .config import SCHEMA_VERSION
from .exceptions import SerializationError
from .field import field_from_bytes, field_to_bytes, require_field_element


def _loads_map(data: bytes, what: str) -> Dict[str, Any]:
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError(f"data must be bytes, got {type(data)}")
    try:
        obj = cbor2.loads(bytes(data))
    except Exception as e:
        raise SerializationError(f"Failed to decode {what}: {e}") from e

    if not isinstance(obj, dict):
        raise SerializationError(f"Invalid {what} format: expected a map")

    version = obj.get("v")
    if version != SCHEMA_VERSION:
        raise SerializationError(
            f"Unsupported {what} version: {version} (expected {SCHEMA_VERSION})"
        )
    return obj


def _decode_field(value: Any, label: str) -> int:
    try:
        return field_from_bytes(value, label)
    except (TypeError, ValueError) as e:
        raise SerializationError(str(e)) from e


# ============================================================================
# MERKLE PATH
# ============================================================================


class MerklePath(NamedTuple):
    """
    Inclusion witness for one leaf, ordered leaf to root.

    Unpacks as ``(path_elements, path_indices)``. ``path_indices[i]`` is
    True when the node at level i is the right child of its parent, so its
    sibling ``path_elements[i]`` is hashed on the left.

    Example:
        >>> siblings, directions = tree.get_proof(index)
    """

    path_elements: Tuple[int, ...]
    path_indices: Tuple[bool, ...]

    @property
    def depth(self) -> int:
        return len(self.path_elements)

    def entries(self) -> List[Tuple[int, bool]]:
        """Return ``[(sibling, is_right), ...]`` pairs."""
        return list(zip(self.path_elements, self.path_indices))

    def to_bytes(self) -> bytes:
        return cbor2.dumps(
            {
                "v": SCHEMA_VERSION,
                "e": [field_to_bytes(value) for value in self.path_elements],
                "i": [bool(flag) for flag in self.path_indices],
            }
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "MerklePath":
        obj = _loads_map(data, "merkle path")
        elements = obj.get("e")
        indices = obj.get("i")
        if not isinstance(elements, list) or not isinstance(indices, list):
            raise SerializationError("Invalid merkle path format: missing fields")
        if len(elements) != len(indices):
            raise SerializationError("Merkle path element/index length mismatch")
        if not all(isinstance(flag, bool) for flag in indices):
            raise SerializationError("Merkle path indices must be booleans")
        return cls(
            path_elements=tuple(
                _decode_field(value, f"path_elements[{i}]")
                for i, value in enumerate(elements)
            ),
            path_indices=tuple(indices),
        )


# ============================================================================
# PUBLIC INPUTS
# ============================================================================


@dataclass(frozen=True)
class PublicInputs:
    """
    Public values of a membership statement, in allocation order.

    Attributes:
        root: Tree root the leaf is proven against
        nullifier_hash: H(secret, external_nullifier)
        external_nullifier: Public context value
    """

    root: int
    nullifier_hash: int
    external_nullifier: int

    def __post_init__(self):
        require_field_element(self.root, "root")
        require_field_element(self.nullifier_hash, "nullifier_hash")
        require_field_element(self.external_nullifier, "external_nullifier")

    def as_list(self) -> List[int]:
        return [self.root, self.nullifier_hash, self.external_nullifier]

    def to_dict(self) -> dict:
        """Hex-encoded dictionary for JSON consumers."""
        return {
            "root": field_to_bytes(self.root).hex(),
            "nullifier_hash": field_to_bytes(self.nullifier_hash).hex(),
            "external_nullifier": field_to_bytes(self.external_nullifier).hex(),
        }

    def to_bytes(self) -> bytes:
        return cbor2.dumps(
            {
                "v": SCHEMA_VERSION,
                "p": [field_to_bytes(value) for value in self.as_list()],
            }
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "PublicInputs":
        obj = _loads_map(data, "public inputs")
        values = obj.get("p")
        if not isinstance(values, list) or len(values) != 3:
            raise SerializationError("Invalid public inputs format: expected 3 values")
        root, nullifier_hash, external_nullifier = (
            _decode_field(value, f"public_inputs[{i}]")
            for i, value in enumerate(values)
        )
        return cls(
            root=root,
            nullifier_hash=nullifier_hash,
            external_nullifier=external_nullifier,
        )
