"""Identity secrets and the values derived from them.

An identity is one secret field element. Its commitment ``H(secret)`` is
the leaf inserted into the tree; its nullifier for a context is
``H(secret, external_nullifier)``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .config import DOMAIN_SEPARATORS
from .field import from_be_bytes_mod_order, require_field_element
from .poseidon import PoseidonParameters, get_canonical_parameters, poseidon_hash
from .security import RandomnessSource, hash_to_field


def derive_leaf(secret: int, params: PoseidonParameters) -> int:
    """Leaf commitment H(secret)."""
    require_field_element(secret, "secret")
    return poseidon_hash(params, (secret,))


def require_external_nullifier(value: int) -> int:
    """
    Validate a context value.

    Zero is rejected: the sponge zero-pads a short chunk, so H(secret, 0)
    equals the leaf H(secret) and would reveal the proven leaf.

    Raises:
        TypeError: If value is not an int.
        ValueError: If value is zero or outside the field.
    """
    require_field_element(value, "external_nullifier")
    if value == 0:
        raise ValueError("external_nullifier must be non-zero")
    return value


def derive_nullifier(
    secret: int, external_nullifier: int, params: PoseidonParameters
) -> int:
    """Nullifier H(secret, external_nullifier), secret first."""
    require_field_element(secret, "secret")
    require_external_nullifier(external_nullifier)
    return poseidon_hash(params, (secret, external_nullifier))


def external_nullifier_from_context(context: bytes) -> int:
    """
    Map a context label (e.g. a poll or epoch identifier) to a field element.

    Example:
        >>> external = external_nullifier_from_context(b"poll-2026-10")
    """
    return hash_to_field(context, DOMAIN_SEPARATORS["external_nullifier"])


@dataclass(frozen=True)
class Identity:
    """
    Holder of one membership secret.

    Attributes:
        secret: Secret field element (never logged or serialized)
    """

    secret: int = field(repr=False)

    def __post_init__(self):
        require_field_element(self.secret, "secret")

    @classmethod
    def from_bytes(cls, data: bytes) -> "Identity":
        """Build an identity from key material, reduced modulo the field."""
        return cls(from_be_bytes_mod_order(data))

    @classmethod
    def generate(cls, rng: Optional[RandomnessSource] = None) -> "Identity":
        """Sample a fresh non-zero secret."""
        rng = rng or RandomnessSource()
        return cls(rng.get_random_field_element())

    def commitment(self, params: Optional[PoseidonParameters] = None) -> int:
        return derive_leaf(self.secret, params or get_canonical_parameters())

    def nullifier_hash(
        self,
        external_nullifier: int,
        params: Optional[PoseidonParameters] = None,
    ) -> int:
        return derive_nullifier(
            self.secret, external_nullifier, params or get_canonical_parameters()
        )
