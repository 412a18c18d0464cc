"""
_report.py
==========
Tab-separated text reports for the analytics results.

Each ``format_*`` function takes the rows produced by ``kirimo._analytics``
and returns a single string, one record per line, with a trailing newline
when there is at least one record.  Floats use ``%.10g``.
"""

from typing import Iterable, List

from kirimo._utils import format_float


def _cell(value) -> str:
    if isinstance(value, float):
        return format_float(value)
    return str(value)


def _join(records: Iterable[Iterable]) -> str:
    lines = ["\t".join(_cell(v) for v in record) for record in records]
    return "".join(line + "\n" for line in lines)


def format_ltt(bins) -> str:
    """``index  count  lower  upper`` per bin."""
    return _join((b.index, b.count, b.lower, b.upper) for b in bins)


def format_walk(steps) -> str:
    """``label  total  count`` per leaf reached."""
    return _join((s.label, s.total, s.count) for s in steps)


def format_rows(rows) -> str:
    """Generic rows: pair distances, sister flags, support values."""
    return _join(rows)


def format_lines(items: List[str]) -> str:
    """One item per line (leaf labels)."""
    return "".join(f"{item}\n" for item in items)
