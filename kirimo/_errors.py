"""
_errors.py
==========
Exception hierarchy for kirimo.

Each class also derives from the built-in exception a caller would catch
without knowing about kirimo: a missing label is a ``KeyError``, a bad
argument a ``ValueError``, a corrupted tree a ``RuntimeError``.
"""


class KirimoError(Exception):
    """Base class for all kirimo errors."""


class NotFoundError(KirimoError, KeyError):
    """A label or node ID is not present in the tree."""

    def __str__(self) -> str:
        # KeyError.__str__ would quote the message.
        return str(self.args[0]) if self.args else ""


class InvalidArgumentError(KirimoError, ValueError):
    """An argument is out of range for the tree it is applied to."""


class StructuralInvariantError(KirimoError, RuntimeError):
    """The node graph is not a tree (cycle, shared child, orphan node)."""
