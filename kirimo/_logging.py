"""
_logging.py
===========
Logging functions for kirimo.

All functions in this module have NO side effects except logging. They take
computed data as parameters and format/emit log messages.

This separation ensures:
- Logging can be easily disabled/mocked in tests
- Computation is separate from presentation
- Clear boundaries between tree edits and reporting
"""

import logging
from typing import Iterable, List

logger = logging.getLogger(__name__)


# ============================================================================ #
# System and Kernel Logging
# ============================================================================ #


def log_kernel_status() -> None:
    """
    Log the numba version and threading configuration at INFO level.

    Called once, the first time the compiled distance kernel is used.
    """
    import os
    import platform

    import numba

    cpu_count = os.cpu_count() or 1
    logger.info(
        f"System: {platform.machine()} ({platform.system()}), "
        f"{cpu_count} CPU cores, Python {platform.python_version()}"
    )

    # Memory info (optional psutil)
    try:
        import psutil

        mem = psutil.virtual_memory()
        logger.info(
            f"Memory: {mem.total / (1024**3):.1f} GB total, "
            f"{mem.available / (1024**3):.1f} GB available"
        )
    except ImportError:
        pass  # psutil not required

    logger.info(f"Numba {numba.__version__} loaded successfully")
    try:
        import llvmlite

        logger.info(f"LLVM backend: llvmlite {llvmlite.__version__}")
    except (ImportError, AttributeError):
        pass  # LLVM version unavailable

    # The threading layer is only known after the first parallel launch.
    try:
        logger.info(
            f"Numba threading: {numba.threading_layer()} layer, "
            f"{numba.get_num_threads()} threads active"
        )
    except ValueError:
        logger.info(f"Numba threading: {numba.get_num_threads()} threads configured")


# ============================================================================ #
# Selection Logging
# ============================================================================ #


def log_skipped_items(kind: str, items: Iterable) -> None:
    """
    Emit one WARNING per item of a multi-item input that could not be
    resolved and was skipped.

    Parameters
    ----------
    kind : str
        What the items were meant to be (e.g. 'seed', 'label').
    items : Iterable
        The unresolved labels or IDs.
    """
    for item in items:
        logger.warning("Skipping %s %r: not found in tree.", kind, item)


def log_restrict_summary(n_seeds: int, n_removed: int, n_collapsed: int, n_leaves: int) -> None:
    """
    Summarise a pruning pass.

    Parameters
    ----------
    n_seeds : int
        Number of seed nodes that resolved.
    n_removed : int
        Nodes dropped because they were outside the keep-set.
    n_collapsed : int
        Single-child nodes merged into their child (root promotion included).
    n_leaves : int
        Leaves remaining afterwards.
    """
    logger.info(
        "Restricted tree to %d seed(s): %d node(s) removed, %d collapsed, "
        "%d leaves remain",
        n_seeds,
        n_removed,
        n_collapsed,
        n_leaves,
    )


# ============================================================================ #
# Topology Logging
# ============================================================================ #


def log_binarize_summary(n_inserted: int, multifurcating: List[int]) -> None:
    """
    Emit consolidated multifurcation warning.

    Parameters
    ----------
    n_inserted : int
        Number of zero-length internal nodes added.
    multifurcating : List[int]
        IDs of the nodes that had more than two children.
    """
    if n_inserted == 0:
        logger.info("Tree is already bifurcating; nothing to resolve.")
        return
    if len(multifurcating) <= 5:
        logger.warning(
            "%d multifurcation(s) resolved (node IDs: %s). "
            "%d zero-length branch(es) were added to enforce bifurcation.",
            len(multifurcating),
            ", ".join(map(str, multifurcating)),
            n_inserted,
        )
    else:
        logger.warning(
            "%d multifurcations resolved. "
            "%d zero-length branches were added to enforce bifurcation.",
            len(multifurcating),
            n_inserted,
        )


def log_reroot_summary(target: int, new_root: int, fraction: float, path_length: int) -> None:
    """
    Report a re-rooting.

    Parameters
    ----------
    target : int
        Node whose incoming branch was split.
    new_root : int
        ID of the inserted root node.
    fraction : float
        Position of the split, measured from the target.
    path_length : int
        Number of edges whose direction was inverted.
    """
    logger.info(
        "Rerooted on branch above node %d at fraction %.3f: new root %d, "
        "%d edge(s) inverted",
        target,
        fraction,
        new_root,
        path_length,
    )
