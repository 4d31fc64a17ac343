"""
⚠️ DRAFT — requires crypto review before production use

Security utilities for field-element operations.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.
"""

import os
import secrets
import hashlib
import hmac
from typing import Optional

from .config import FIELD_MODULUS, HASH_FUNCTION


# ============================================================================
# FIELD ORDER VALIDATION (Run at module import)
# ============================================================================


def _validate_field_modulus():
    """
    Validate FIELD_MODULUS is reasonable.

    Raises:
        ValueError: If FIELD_MODULUS is invalid
    """
    if FIELD_MODULUS <= 0:
        raise ValueError(f"Invalid FIELD_MODULUS: {FIELD_MODULUS}")

    if FIELD_MODULUS < 2**128:
        raise ValueError(f"FIELD_MODULUS too small (< 2^128): {FIELD_MODULUS}")

    # Fermat check with a few fixed bases
    for base in (2, 3, 5, 7):
        if pow(base, FIELD_MODULUS - 1, FIELD_MODULUS) != 1:
            raise ValueError(f"FIELD_MODULUS is not prime: {hex(FIELD_MODULUS)}")


# Validate FIELD_MODULUS on module import (fail fast)
_validate_field_modulus()


# ============================================================================
# RANDOMNESS SOURCE (Fork-Safe)
# ============================================================================


class RandomnessSource:
    """
    Cryptographically secure randomness with fork detection.

    Prevents catastrophic randomness reuse if process forks.

    Example:
        >>> rng = RandomnessSource()
        >>> secret = rng.get_random_field_element()
    """

    def __init__(self):
        """Initialize randomness source with fork detection."""
        self._pid = os.getpid()
        self._rng = secrets.SystemRandom()

    def get_random_scalar(self, max_value: int) -> int:
        """
        Get random scalar in [0, max_value).

        Args:
            max_value: Upper bound (exclusive)

        Returns:
            Random scalar in [0, max_value)
        """
        if os.getpid() != self._pid:
            self.__init__()
        return self._rng.randrange(0, max_value)

    def get_random_bytes(self, n: int) -> bytes:
        """Get n cryptographically secure random bytes."""
        if os.getpid() != self._pid:
            self.__init__()
        return secrets.token_bytes(n)

    def get_random_field_element(self) -> int:
        """
        Get a random non-zero field element.

        Returns:
            Random element in [1, FIELD_MODULUS)
        """
        return 1 + self.get_random_scalar(FIELD_MODULUS - 1)


# ============================================================================
# HASH FUNCTIONS
# ============================================================================


def hash_to_field(data: bytes, domain_sep: Optional[bytes] = None) -> int:
    """
    Hash data to a field element with domain separation.

    Args:
        data: Data to hash (must be non-empty)
        domain_sep: Optional domain separator

    Returns:
        Element in [0, FIELD_MODULUS)

    Raises:
        ValueError: If inputs are invalid
        TypeError: If inputs are wrong type

    Security Note:
        Reduces a 512-bit expansion modulo the field, so the bias is
        negligible (< 2^-250).
    """
    if not isinstance(data, bytes):
        raise TypeError(f"data must be bytes, got {type(data)}")

    if not data:
        raise ValueError("Data cannot be empty")

    prefix = b""
    if domain_sep:
        if not isinstance(domain_sep, bytes):
            raise TypeError(f"domain_sep must be bytes, got {type(domain_sep)}")
        prefix = len(domain_sep).to_bytes(4, "big") + domain_sep

    digest = b""
    for counter in range(2):
        if HASH_FUNCTION == "SHA3-256":
            h = hashlib.sha3_256()
        else:
            h = hashlib.sha256()
        h.update(prefix)
        h.update(counter.to_bytes(1, "big"))
        h.update(data)
        digest += h.digest()

    return int.from_bytes(digest, "big") % FIELD_MODULUS


# ============================================================================
# CONSTANT-TIME OPERATIONS
# ============================================================================


def constant_time_compare(a: bytes, b: bytes) -> bool:
    """
    Constant-time comparison to prevent timing attacks.

    Args:
        a: First byte string
        b: Second byte string

    Returns:
        True if a == b, False otherwise
    """
    return hmac.compare_digest(a, b)
