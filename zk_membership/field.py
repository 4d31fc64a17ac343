"""Field element helpers for the BN254 scalar field.

Field elements are plain integers in ``[0, FIELD_MODULUS)``. The same hash
routine runs over two element representations; ``NativeField`` is the one
for values computed outside a proof, ``zk_membership.r1cs.ConstraintField``
is the one for constraint-system variables.
"""

from __future__ import annotations

from .config import FIELD_ELEMENT_BYTES, FIELD_MODULUS

ZERO = 0
ONE = 1


def is_field_element(value) -> bool:
    """Return True if value is an int already reduced into the field."""
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and 0 <= value < FIELD_MODULUS
    )


def require_field_element(value, label: str = "value") -> int:
    """
    Validate a field element.

    Raises:
        TypeError: If value is not an int.
        ValueError: If value is outside [0, FIELD_MODULUS).
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{label} must be an int field element, got {type(value)}")
    if not 0 <= value < FIELD_MODULUS:
        raise ValueError(f"{label} must be in [0, FIELD_MODULUS)")
    return value


def from_be_bytes_mod_order(data: bytes | bytearray) -> int:
    """Interpret big-endian bytes as an integer reduced modulo the field."""
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError(f"data must be bytes, got {type(data)}")
    if not data:
        raise ValueError("data cannot be empty")
    return int.from_bytes(bytes(data), "big") % FIELD_MODULUS


def field_to_bytes(value: int) -> bytes:
    """Encode a field element as 32 big-endian bytes."""
    require_field_element(value)
    return value.to_bytes(FIELD_ELEMENT_BYTES, "big")


def field_from_bytes(data: bytes | bytearray, label: str = "value") -> int:
    """
    Decode a canonical 32-byte big-endian field element.

    Raises:
        ValueError: If the encoding is not exactly 32 bytes or not reduced.
    """
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError(f"{label} must be bytes, got {type(data)}")
    if len(data) != FIELD_ELEMENT_BYTES:
        raise ValueError(f"{label} must be exactly {FIELD_ELEMENT_BYTES} bytes")
    value = int.from_bytes(bytes(data), "big")
    if value >= FIELD_MODULUS:
        raise ValueError(f"{label} is not a canonical field encoding")
    return value


def inverse(value: int) -> int:
    """Multiplicative inverse modulo the field."""
    if value % FIELD_MODULUS == 0:
        raise ZeroDivisionError("zero has no inverse")
    return pow(value, -1, FIELD_MODULUS)


class NativeField:
    """Field operations on plain integers."""

    def constant(self, value: int) -> int:
        return value % FIELD_MODULUS

    def add(self, a: int, b: int) -> int:
        return (a + b) % FIELD_MODULUS

    def scale(self, a: int, coefficient: int) -> int:
        return a * coefficient % FIELD_MODULUS

    def mul(self, a: int, b: int) -> int:
        return a * b % FIELD_MODULUS


NATIVE_FIELD = NativeField()
