"""
_context.py
===========
Context managers that change package state for the length of a block.

- ``suppress_logger`` / ``quiet``: raise a logger's level, e.g. to hide the
  warn-and-skip messages for labels that are not in the tree (``kirimo -q``).
- ``use_backend``: pick the ``distance_matrix`` backend without threading a
  ``backend=`` argument through every call.

The previous state comes back on exit, also when the block raises.
"""

import logging
from contextlib import contextmanager
from typing import Optional


# Backend chosen by the innermost active use_backend() block.
_backend_override = None


# ============================================================================ #
# Logging
# ============================================================================ #


@contextmanager
def suppress_logger(logger_name: str, level: int = logging.CRITICAL):
    """
    Set the level of logger *logger_name* to *level* inside the block.

    Examples
    --------
    >>> with suppress_logger('kirimo._topology'):
    ...     binarize(tree)      # no multifurcation warning
    """
    target = logging.getLogger(logger_name)
    saved = target.level
    target.setLevel(level)
    try:
        yield target
    finally:
        target.setLevel(saved)


@contextmanager
def quiet(level: int = logging.CRITICAL):
    """
    Silence the whole package below *level*.

    Module loggers all live under ``'kirimo'``, so one level change covers
    pruning, topology and analytics alike.

    Examples
    --------
    >>> with quiet():
    ...     restrict(tree, ['A', 'C', 'not-there'])

    >>> with quiet(logging.WARNING):
    ...     delete(tree, ['B'])   # missing labels are still reported
    """
    with suppress_logger("kirimo", level):
        yield


# ============================================================================ #
# Backend selection
# ============================================================================ #


@contextmanager
def use_backend(backend: str):
    """
    Route ``distance_matrix`` calls inside the block to *backend*.

    Parameters
    ----------
    backend : str
        ``'python'``, ``'cpu-parallel'`` or ``'best'``.

    Raises
    ------
    ValueError
        If *backend* is not one of the available backends.

    Examples
    --------
    >>> with use_backend('python'):
    ...     labels, matrix = distance_matrix(tree)

    Notes
    -----
    The override is module state and is not thread-safe; an explicit
    ``backend=`` argument to ``distance_matrix`` always wins over it.
    """
    global _backend_override

    from ._backend import get_available_backends

    available = get_available_backends()
    if backend != "best" and backend not in available:
        raise ValueError(
            f"Backend '{backend}' not available. "
            f"Available backends: {', '.join(available)}"
        )

    saved = _backend_override
    _backend_override = backend
    try:
        yield
    finally:
        _backend_override = saved


def get_backend_override() -> Optional[str]:
    """Backend set by the innermost active ``use_backend`` block, or None."""
    return _backend_override
