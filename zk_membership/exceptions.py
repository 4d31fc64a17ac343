"""
⚠️ DRAFT — requires crypto review before production use

Custom exceptions for the membership toolkit.

These exceptions provide structured error handling for tree, hash and
constraint-system operations.
"""


class MembershipError(Exception):
    """Base exception for membership toolkit errors."""

    pass


class MalformedWitnessError(MembershipError):
    """Witness does not have the shape the membership relation expects."""

    pass


class ConstraintSystemError(MembershipError):
    """The constraint system could not allocate a variable or constraint."""

    pass


class ParameterMismatchError(MembershipError):
    """Tree and relation were built from different hash parameters."""

    pass


class ConfigurationError(MembershipError):
    """Configuration error."""

    pass


class SerializationError(MembershipError):
    """Malformed serialized payload."""

    pass
