"""
_backend.py
===========
Backend selection for the pairwise distance computation.

Two execution backends exist:

- 'python'       : reference implementation, one ancestor walk per pair.
- 'cpu-parallel' : numba-compiled kernel, parallel over matrix rows.

Functions in this module have NO side effects - they only query state.
Logging is done by the calling code, not here.
"""

from typing import List


def get_available_backends() -> List[str]:
    """
    Get list of available execution backends.

    Returns
    -------
    list[str]
        Backends in preference order; the last entry is the fastest.

    Examples
    --------
    >>> get_available_backends()
    ['python', 'cpu-parallel']
    """
    return ["python", "cpu-parallel"]


def get_best_backend() -> str:
    """Return the most optimized available backend."""
    return get_available_backends()[-1]


def resolve_backend(backend: str) -> str:
    """
    Resolve a backend specification to an actual backend.

    Parameters
    ----------
    backend : str
        'best', 'python' or 'cpu-parallel'.  When a ``use_backend`` context
        is active and *backend* is 'best', the override wins.

    Returns
    -------
    str
        Resolved backend name.

    Raises
    ------
    ValueError
        If the requested backend is unknown.

    Examples
    --------
    >>> resolve_backend('best')
    'cpu-parallel'

    >>> resolve_backend('python')
    'python'
    """
    from kirimo._context import get_backend_override

    if backend == "best":
        override = get_backend_override()
        if override is not None and override != "best":
            return override
        return get_best_backend()

    available = get_available_backends()
    if backend not in available:
        raise ValueError(
            f"Backend '{backend}' not available. "
            f"Available backends: {', '.join(available)}"
        )
    return backend


def import_cpu_kernels():
    """Import and return the compiled pairwise distance kernel."""
    from kirimo._cpu_kernels import _pairwise_distance_njit

    return _pairwise_distance_njit


def get_backend_info() -> dict:
    """
    Get comprehensive backend information.

    Returns
    -------
    dict
        Keys 'backends', 'best_backend', 'numba_version' and 'num_threads'.

    Examples
    --------
    >>> info = get_backend_info()
    >>> info['best_backend']
    'cpu-parallel'
    """
    import numba

    return {
        "backends": get_available_backends(),
        "best_backend": get_best_backend(),
        "numba_version": numba.__version__,
        "num_threads": numba.get_num_threads(),
    }
