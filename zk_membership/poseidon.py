"""
⚠️ DRAFT — requires crypto review before production use

Poseidon permutation hash over the BN254 scalar field.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

One routine serves both execution contexts. ``poseidon_hash`` takes a
``field`` operations object: ``NATIVE_FIELD`` computes plain integers,
``ConstraintField(cs)`` records the same computation as constraints. The
round structure, constants and sponge layout are shared, so the tree's
native hashes and the circuit's in-constraint hashes cannot diverge.

Sponge layout:
    state = [capacity lanes | rate lanes], initialised to zero
    absorb: inputs are added into the rate lanes, ``rate`` at a time,
            permuting between chunks
    squeeze: permute once, output state[capacity]

Permutation:
    full_rounds / 2 full rounds, partial_rounds partial rounds,
    full_rounds / 2 full rounds. Each round adds the round constants,
    applies x^alpha (every lane in full rounds, lane 0 in partial rounds)
    and multiplies by the MDS matrix.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from .config import (
    DOMAIN_SEPARATORS,
    FIELD_MODULUS,
    POSEIDON_ALPHA,
    POSEIDON_CAPACITY,
    POSEIDON_FULL_ROUNDS,
    POSEIDON_PARAMETER_SEED,
    POSEIDON_PARTIAL_ROUNDS,
    POSEIDON_RATE,
)
from .exceptions import ConfigurationError
from .field import NATIVE_FIELD, inverse, is_field_element
from .security import hash_to_field

logger = logging.getLogger(__name__)


# ============================================================================
# PARAMETERS
# ============================================================================


@dataclass(frozen=True)
class PoseidonParameters:
    """
    Immutable Poseidon configuration shared by every hash invocation.

    Attributes:
        full_rounds: Number of full rounds (even)
        partial_rounds: Number of partial rounds
        alpha: S-box exponent
        mds: width x width mixing matrix
        ark: (full_rounds + partial_rounds) x width round constants
        rate: Sponge rate
        capacity: Sponge capacity

    Security Properties:
        - A tree and every relation over it must use the identical value;
          mismatched parameters produce wrong roots with no other symptom
        - Values are never regenerated per proof
    """

    full_rounds: int
    partial_rounds: int
    alpha: int
    mds: Tuple[Tuple[int, ...], ...]
    ark: Tuple[Tuple[int, ...], ...]
    rate: int
    capacity: int

    def __post_init__(self):
        object.__setattr__(self, "mds", tuple(tuple(row) for row in self.mds))
        object.__setattr__(self, "ark", tuple(tuple(row) for row in self.ark))

        if self.rate < 1 or self.capacity < 1:
            raise ConfigurationError("rate and capacity must be positive")
        if self.full_rounds < 2 or self.full_rounds % 2:
            raise ConfigurationError("full_rounds must be a positive even number")
        if self.partial_rounds < 0:
            raise ConfigurationError("partial_rounds must be non-negative")
        if self.alpha < 3 or (FIELD_MODULUS - 1) % self.alpha == 0:
            raise ConfigurationError(
                f"alpha={self.alpha} does not define a permutation of the field"
            )

        width = self.width
        if len(self.mds) != width or any(len(row) != width for row in self.mds):
            raise ConfigurationError(f"mds must be a {width}x{width} matrix")
        if len(self.ark) != self.full_rounds + self.partial_rounds:
            raise ConfigurationError("ark must have one row per round")
        if any(len(row) != width for row in self.ark):
            raise ConfigurationError(f"every ark row must have {width} entries")
        for row in self.mds + self.ark:
            if not all(is_field_element(value) for value in row):
                raise ConfigurationError("parameters must be reduced field elements")

    @property
    def width(self) -> int:
        return self.rate + self.capacity

    @property
    def rounds(self) -> int:
        return self.full_rounds + self.partial_rounds

    def fingerprint(self) -> bytes:
        """SHA3-256 digest identifying this exact parameter set."""
        h = hashlib.sha3_256(DOMAIN_SEPARATORS["parameter_fingerprint"])
        for value in (
            self.full_rounds,
            self.partial_rounds,
            self.alpha,
            self.rate,
            self.capacity,
        ):
            h.update(value.to_bytes(4, "big"))
        for row in self.mds + self.ark:
            for value in row:
                h.update(value.to_bytes(32, "big"))
        return h.digest()


def derive_parameters(
    seed: bytes = POSEIDON_PARAMETER_SEED,
    *,
    full_rounds: int = POSEIDON_FULL_ROUNDS,
    partial_rounds: int = POSEIDON_PARTIAL_ROUNDS,
    alpha: int = POSEIDON_ALPHA,
    rate: int = POSEIDON_RATE,
    capacity: int = POSEIDON_CAPACITY,
) -> PoseidonParameters:
    """
    Derive a parameter set deterministically from a public seed.

    Round constants are hash-to-field outputs of (seed, round, lane), so
    nothing is hidden in them. The MDS matrix is the Cauchy matrix
    M[i][j] = 1 / (i + width + j), which is MDS because all x_i are distinct,
    all y_j are distinct, and no x_i + y_j is zero.

    Args:
        seed: Public seed bytes
        full_rounds: Number of full rounds
        partial_rounds: Number of partial rounds
        alpha: S-box exponent
        rate: Sponge rate
        capacity: Sponge capacity

    Returns:
        PoseidonParameters

    Raises:
        ConfigurationError: If the requested shape is invalid
    """
    if not isinstance(seed, bytes) or not seed:
        raise ConfigurationError("seed must be non-empty bytes")

    width = rate + capacity
    domain_sep = DOMAIN_SEPARATORS["poseidon_round_constant"]

    ark = tuple(
        tuple(
            hash_to_field(
                seed + round_index.to_bytes(4, "big") + lane.to_bytes(4, "big"),
                domain_sep,
            )
            for lane in range(width)
        )
        for round_index in range(full_rounds + partial_rounds)
    )
    mds = tuple(
        tuple(inverse(row + width + column) for column in range(width))
        for row in range(width)
    )

    return PoseidonParameters(
        full_rounds=full_rounds,
        partial_rounds=partial_rounds,
        alpha=alpha,
        mds=mds,
        ark=ark,
        rate=rate,
        capacity=capacity,
    )


# Global cache for canonical parameters
_CANONICAL_PARAMETERS: Optional[PoseidonParameters] = None
_CANONICAL_LOCK = threading.Lock()


def get_canonical_parameters() -> PoseidonParameters:
    """
    Get the canonical parameter set (thread-safe, computed once).

    Returns:
        PoseidonParameters derived from POSEIDON_PARAMETER_SEED
    """
    global _CANONICAL_PARAMETERS

    if _CANONICAL_PARAMETERS is not None:
        return _CANONICAL_PARAMETERS

    with _CANONICAL_LOCK:
        if _CANONICAL_PARAMETERS is None:
            _CANONICAL_PARAMETERS = derive_parameters()
            logger.debug(
                "Derived canonical Poseidon parameters (fingerprint %s)",
                _CANONICAL_PARAMETERS.fingerprint().hex()[:16],
            )

    return _CANONICAL_PARAMETERS


# ============================================================================
# PERMUTATION AND SPONGE
# ============================================================================


def _sbox(field, x, alpha: int):
    result = None
    base = x
    exponent = alpha
    while exponent:
        if exponent & 1:
            result = base if result is None else field.mul(result, base)
        exponent >>= 1
        if exponent:
            base = field.mul(base, base)
    return result


def _mix(field, state: List[Any], mds: Tuple[Tuple[int, ...], ...]) -> List[Any]:
    mixed = []
    for row in mds:
        acc = field.constant(0)
        for coefficient, lane in zip(row, state):
            acc = field.add(acc, field.scale(lane, coefficient))
        mixed.append(acc)
    return mixed


def permute(
    params: PoseidonParameters, state: Sequence[Any], field=NATIVE_FIELD
) -> List[Any]:
    """
    Apply the Poseidon permutation to a full-width state.

    Args:
        params: Hash parameters
        state: width elements in the representation ``field`` operates on
        field: NATIVE_FIELD or a ConstraintField

    Returns:
        New state (list of width elements)
    """
    if len(state) != params.width:
        raise ValueError(f"state must have {params.width} elements")

    half = params.full_rounds // 2
    state = list(state)

    for round_index in range(params.rounds):
        constants = params.ark[round_index]
        state = [field.add(lane, constants[i]) for i, lane in enumerate(state)]

        if round_index < half or round_index >= half + params.partial_rounds:
            state = [_sbox(field, lane, params.alpha) for lane in state]
        else:
            state[0] = _sbox(field, state[0], params.alpha)

        state = _mix(field, state, params.mds)

    return state


def poseidon_hash(
    params: PoseidonParameters, inputs: Iterable[Any], field=NATIVE_FIELD
) -> Any:
    """
    Hash an ordered sequence of field elements to one field element.

    Args:
        params: Hash parameters
        inputs: Elements in the representation ``field`` operates on
        field: NATIVE_FIELD (default) or a ConstraintField

    Returns:
        Digest in the same representation as the inputs

    Example:
        >>> params = get_canonical_parameters()
        >>> leaf = poseidon_hash(params, [secret])
        >>> node = poseidon_hash(params, [left, right])
    """
    elements = list(inputs)
    rate = params.rate
    capacity = params.capacity

    state = [field.constant(0) for _ in range(params.width)]
    for offset in range(0, len(elements), rate):
        if offset:
            state = permute(params, state, field)
        for i, element in enumerate(elements[offset:offset + rate]):
            state[capacity + i] = field.add(state[capacity + i], element)

    state = permute(params, state, field)
    return state[capacity]
