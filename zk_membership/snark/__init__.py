"""Constraint-system relations consumed by an external proving backend."""

from .membership import (
    MembershipCircuit,
    build_membership_instance_bytes,
    load_membership_instance,
    write_membership_instance_files,
)

__all__ = [
    "MembershipCircuit",
    "build_membership_instance_bytes",
    "load_membership_instance",
    "write_membership_instance_files",
]
