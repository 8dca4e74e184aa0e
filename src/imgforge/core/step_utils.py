"""
Shared helpers for wizard step validation and step-entry refreshes
"""

import logging
from typing import Any, Callable, List, Tuple, TypeVar

from .errors import ImgForgeError


T = TypeVar("T")

StepCheck = Tuple[bool, str]

PASS: StepCheck = (True, "")


def is_filled(value: Any) -> bool:
    """True for a non-blank string or any other non-empty value"""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) > 0
    return True


def require(condition: bool, reason: str) -> StepCheck:
    return (True, "") if condition else (False, reason)


def require_filled(value: Any, reason: str) -> StepCheck:
    return require(is_filled(value), reason)


def fetch_or_empty(fetch: Callable[[], List[T]], what: str, logger: logging.Logger) -> List[T]:
    """Run a collaborator fetch, substituting an empty list on failure

    Fetch failures never block navigation; they are logged and the operator
    can refresh or enter values by hand.
    """
    try:
        return list(fetch())
    except ImgForgeError as e:
        logger.warning(f"Failed to load {what}: {e}")
        return []
