"""
conftest.py
===========
Session-level pytest configuration for the test suite.

Custom marks
------------
statistical
    Applied to tests that draw many random samples (with a fixed seed) and
    check a distribution rather than a single value.  They take a few
    seconds; deselect them with ``-m "not statistical"``.

    Registration here suppresses PytestUnknownMarkWarning and makes the mark
    visible in ``pytest --markers``.

Warning filters
---------------
NumbaPerformanceWarning messages are filtered out during tests.  The
parallel distance kernel has little to parallelise on the small test trees,
and the resulting warnings say nothing about correctness.
"""

import warnings

from numba.core.errors import NumbaPerformanceWarning


def pytest_configure(config):
    """
    Configure pytest before test collection begins.

    This runs before any test modules are imported, which matters for
    catching warnings raised while the numba kernel compiles.
    """
    config.addinivalue_line(
        "markers",
        "statistical: repeated random sampling with a fixed seed "
        "(deselect with -m 'not statistical')",
    )
    warnings.filterwarnings("ignore", category=NumbaPerformanceWarning)


def pytest_unconfigure(config):
    """Restore default warning behaviour."""
    warnings.resetwarnings()
