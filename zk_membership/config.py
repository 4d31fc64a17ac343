"""
⚠️ DRAFT — requires crypto review before production use

Cryptographic configuration for the membership toolkit.

This is a PROTOTYPE implementation for testing and validation.
DO NOT use in production without security audit.

All values, hash inputs/outputs and constraint-system variables live in the
BN254 scalar field.
"""

# ============================================================================
# FIELD SELECTION
# ============================================================================

# BN254 (alt_bn128) scalar field, the field native to Groth16 over BN254
FIELD_NAME = "bn254-fr"
FIELD_MODULUS = (
    21888242871839275222246405745257275088548364400416034343698204186575808495617
)
FIELD_MODULUS_BITS = 254
FIELD_ELEMENT_BYTES = 32  # Big-endian encoding width

# ============================================================================
# POSEIDON PARAMETERS
# ============================================================================

# Sponge geometry: two-element rate, one-element capacity (width 3)
POSEIDON_RATE = 2
POSEIDON_CAPACITY = 1
POSEIDON_WIDTH = POSEIDON_RATE + POSEIDON_CAPACITY

# S-box exponent (gcd(5, p - 1) == 1 for BN254 Fr)
POSEIDON_ALPHA = 5

# Round counts for width 3 at the 128-bit security level
POSEIDON_FULL_ROUNDS = 8
POSEIDON_PARTIAL_ROUNDS = 57

# Nothing-Up-My-Sleeve seed for round constants
POSEIDON_PARAMETER_SEED = b"ZK_MEMBERSHIP_V1_POSEIDON_BN254_T3"

# ============================================================================
# HASH FUNCTIONS
# ============================================================================

# Used only to derive parameters and context labels, never inside the tree
HASH_FUNCTION = "SHA3-256"
HASH_OUTPUT_BITS = 256

DOMAIN_SEPARATOR_PREFIX = b"ZK_MEMBERSHIP_V1_"

DOMAIN_SEPARATORS = {
    "poseidon_round_constant": DOMAIN_SEPARATOR_PREFIX + b"POSEIDON_ARK",
    "external_nullifier": DOMAIN_SEPARATOR_PREFIX + b"EXTERNAL_NULLIFIER",
    "parameter_fingerprint": DOMAIN_SEPARATOR_PREFIX + b"PARAMS_FINGERPRINT",
}

# ============================================================================
# TREE PARAMETERS
# ============================================================================

DEFAULT_TREE_DEPTH = 20
MAX_TREE_DEPTH = 64  # Leaf indices are 64-bit

# ============================================================================
# SERIALIZATION
# ============================================================================

SERIALIZATION_FORMAT = "CBOR"
SCHEMA_VERSION = 1  # Increment for breaking changes
STATEMENT_TYPE = "membership"

# ============================================================================
# VALIDATION
# ============================================================================


def validate_config() -> bool:
    """
    Validate configuration parameters.

    Returns:
        True if configuration is valid

    Raises:
        AssertionError: If configuration is invalid
    """
    assert FIELD_MODULUS.bit_length() == FIELD_MODULUS_BITS, "Field size mismatch"
    assert FIELD_MODULUS < 2 ** (8 * FIELD_ELEMENT_BYTES), "Encoding too narrow"
    assert POSEIDON_RATE >= 1, "Sponge rate must be positive"
    assert POSEIDON_CAPACITY >= 1, "Sponge capacity must be positive"
    assert POSEIDON_ALPHA in [3, 5, 7, 11, 17], "Invalid S-box exponent"
    assert (FIELD_MODULUS - 1) % POSEIDON_ALPHA != 0, "S-box is not a permutation"
    assert POSEIDON_FULL_ROUNDS % 2 == 0, "Full rounds must split evenly"
    assert POSEIDON_PARTIAL_ROUNDS >= 0, "Partial rounds must be non-negative"
    assert HASH_FUNCTION in ["SHA3-256", "SHA256"], "Invalid hash function"
    assert 1 <= DEFAULT_TREE_DEPTH <= MAX_TREE_DEPTH, "Invalid default depth"

    return True


# Auto-validate on import
validate_config()
