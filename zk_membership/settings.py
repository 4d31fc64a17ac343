"""
Runtime settings for the membership toolkit.

Values resolve in precedence order: explicit argument, in-memory override,
environment variable, built-in default.
"""

from __future__ import annotations

import logging
import os
from typing import Final

from .config import DEFAULT_TREE_DEPTH, MAX_TREE_DEPTH

_DEPTH_ENV_VAR: Final[str] = "ZK_MEMBERSHIP_TREE_DEPTH"
_MAX_CONSTRAINTS_ENV_VAR: Final[str] = "ZK_MEMBERSHIP_MAX_CONSTRAINTS"
_LOG_LEVEL_ENV_VAR: Final[str] = "ZK_MEMBERSHIP_LOG_LEVEL"

_VALID_LOG_LEVELS: Final[tuple[str, ...]] = (
    "DEBUG",
    "INFO",
    "WARNING",
    "ERROR",
    "CRITICAL",
)
_DEFAULT_LOG_LEVEL: Final[str] = "WARNING"

_depth_override: int | None = None
_max_constraints_override: int | None = None


def _parse_int(value, name: str) -> int | None:
    if value is None:
        return None

    if isinstance(value, str):
        if value.strip() == "":
            return None
        try:
            return int(value, 10)
        except ValueError:
            raise ValueError(f"Invalid {name}: {value!r}. Expected an integer")

    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Invalid {name}: {value!r}. Expected an integer")

    return value


def _normalize_depth(value) -> int | None:
    depth = _parse_int(value, "tree depth")
    if depth is None:
        return None
    if not 1 <= depth <= MAX_TREE_DEPTH:
        raise ValueError(
            f"Invalid tree depth: {depth}. Valid range: 1..{MAX_TREE_DEPTH}"
        )
    return depth


def _normalize_max_constraints(value) -> int | None:
    limit = _parse_int(value, "constraint limit")
    if limit is None:
        return None
    if limit <= 0:
        raise ValueError(f"Invalid constraint limit: {limit}. Must be positive")
    return limit


def get_default_depth(prefer: int | str | None = None) -> int:
    """
    Resolve the tree depth used when none is given explicitly.

    Args:
        prefer: Optional preferred depth.

    Returns:
        Tree depth in [1, MAX_TREE_DEPTH].

    Raises:
        ValueError: If a provided depth value is invalid.
    """
    preferred = _normalize_depth(prefer)
    if preferred is not None:
        return preferred

    if _depth_override is not None:
        return _depth_override

    env_depth = _normalize_depth(os.getenv(_DEPTH_ENV_VAR))
    if env_depth is not None:
        return env_depth

    return DEFAULT_TREE_DEPTH


def set_default_depth(value: int | None) -> None:
    """
    Set in-memory depth override (testing only).

    Args:
        value: Depth to force, or None to clear the override.

    Raises:
        ValueError: If the value is invalid.
    """
    global _depth_override
    _depth_override = _normalize_depth(value)


def get_max_constraints(prefer: int | str | None = None) -> int | None:
    """
    Resolve the constraint capacity of the reference constraint system.

    Returns:
        Maximum number of constraints, or None for unbounded.
    """
    preferred = _normalize_max_constraints(prefer)
    if preferred is not None:
        return preferred

    if _max_constraints_override is not None:
        return _max_constraints_override

    return _normalize_max_constraints(os.getenv(_MAX_CONSTRAINTS_ENV_VAR))


def set_max_constraints(value: int | None) -> None:
    """Set in-memory constraint capacity override (testing only)."""
    global _max_constraints_override
    _max_constraints_override = _normalize_max_constraints(value)


def get_log_level() -> str:
    """
    Resolve the package log level from the environment.

    Raises:
        ValueError: If the environment value is not a known level name.
    """
    value = os.getenv(_LOG_LEVEL_ENV_VAR)
    if value is None or value == "":
        return _DEFAULT_LOG_LEVEL

    level = value.upper()
    if level not in _VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid log level: {value!r}. "
            f"Valid options: {', '.join(_VALID_LOG_LEVELS)}"
        )
    return level


def configure_logging(level: str | None = None) -> logging.Logger:
    """
    Attach a stream handler to the package logger.

    Args:
        level: Level name; resolved from the environment when omitted.

    Returns:
        The package logger.
    """
    resolved = (level or get_log_level()).upper()
    if resolved not in _VALID_LOG_LEVELS:
        raise ValueError(f"Invalid log level: {level!r}")

    logger = logging.getLogger("zk_membership")
    if not any(
        isinstance(handler, logging.StreamHandler) for handler in logger.handlers
    ):
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(handler)
    logger.setLevel(resolved)
    return logger
