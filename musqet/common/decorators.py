"""Decorators guarding the public surface of the identity client.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


def fail_soft(default: Any = False) -> Callable:
    """Decorator that turns any failure of a public operation into a return value.

    The wrapped method's instance must provide ``_record_error(operation, error)``,
    which stores the failure and broadcasts the error status.

    Args:
        default: Value returned when the operation fails

    Returns:
        Decorated method that never raises ``Exception`` subclasses
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            try:
                return func(self, *args, **kwargs)
            except Exception as err:  # noqa: BLE001
                self._record_error(func.__name__, err)
                return default

        return wrapper

    return decorator


def requires_session(func: Callable) -> Callable:
    """Decorator that makes sure the instance holds a valid session first.

    The instance must provide ``_ensure_session()``; if renewal fails the
    error propagates and the wrapped method is not run.
    """

    @wraps(func)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        self._ensure_session()
        return func(self, *args, **kwargs)

    return wrapper
