"""SQL toolkit factory.

Provides :func:`get_sql_toolkit`, the single entry point for consumer code.
The toolkit holds no per-batch state, so one lazily built instance is shared
by every caller and every thread.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from ._protocols import SqlToolkit

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_instance: SqlToolkit | None = None
_factory_fn: Callable[[], SqlToolkit] | None = None


def register_implementation(factory_fn: Callable[[], SqlToolkit]) -> None:
    """Register a factory function for creating :class:`SqlToolkit` instances.

    If never called, the sqlglot-backed implementation is used.
    """
    global _factory_fn, _instance
    with _lock:
        _factory_fn = factory_fn
        _instance = None  # rebuilt on next access


def get_sql_toolkit() -> SqlToolkit:
    """Return the active :class:`SqlToolkit` singleton.

    Thread-safe and lazily instantiated on first call.
    """
    global _instance
    if _instance is not None:
        return _instance

    with _lock:
        # Double-checked locking
        if _instance is not None:
            return _instance

        if _factory_fn is not None:
            _instance = _factory_fn()
            logger.debug("Using registered SQL toolkit %s", type(_instance).__name__)
        else:
            from .impl.sqlglot_impl import SqlGlotToolkit

            _instance = SqlGlotToolkit()

        return _instance


def reset_toolkit() -> None:
    """Reset the singleton.  **For testing only.**"""
    global _instance, _factory_fn
    with _lock:
        _instance = None
        _factory_fn = None
