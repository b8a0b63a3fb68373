"""Plan snapshot cloning.

Expansion and sanitization never touch the caller's objects: they work on
a clone. A deep copy is attempted first; values that cannot be deep-copied
(e.g. objects holding locks or sockets) degrade to a shallow copy.
"""

import copy
from typing import TypeVar

from loguru import logger

T = TypeVar("T")


def clone_value(value: T) -> T:
    """Return an independent copy of ``value``.

    Args:
        value: Any value, typically a parsed JSON payload or a plan model

    Returns:
        A deep copy, or a shallow copy when deep copying fails
    """
    try:
        return copy.deepcopy(value)
    except (TypeError, copy.Error, RecursionError) as e:
        logger.warning(
            "clone_value: Deep copy failed, returning shallow copy",
            value_type=type(value).__name__,
            error=str(e),
        )
        return copy.copy(value)
