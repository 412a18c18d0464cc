"""
_utils.py
=========
General-purpose helpers shared by the pruning, analytics and CLI modules.
"""

from typing import Iterable, List

from kirimo._logging import log_skipped_items


def resolve_items(tree, items: Iterable, kind: str) -> List[int]:
    """
    Resolve labels / node IDs against *tree*, skipping the missing ones.

    Each item that cannot be found is logged at WARNING level (see
    ``log_skipped_items``) and left out; the remaining items are returned as
    node IDs in input order, duplicates removed.

    Parameters
    ----------
    tree : Tree
        Tree to resolve against.
    items : Iterable[int | str]
        Node IDs or labels.
    kind : str
        Noun used in the log message ('seed', 'label', 'node').

    Examples
    --------
    >>> resolve_items(tree, ['A', 'nope', 'A', 'C'], 'seed')
    [0, 2]
    """
    resolved = []
    missing = []
    seen = set()
    for item in items:
        try:
            u = tree._resolve_node(item)
        except KeyError:
            missing.append(item)
            continue
        if u not in seen:
            seen.add(u)
            resolved.append(u)
    log_skipped_items(kind, missing)
    return resolved


def split_labels(text: str) -> List[str]:
    """
    Split a comma-separated label list, dropping blanks.

    Examples
    --------
    >>> split_labels('SV1, B31,,N40')
    ['SV1', 'B31', 'N40']
    """
    return [part.strip() for part in text.split(",") if part.strip()]


def format_float(value: float, precision: int = 10) -> str:
    """
    Format *value* compactly for tab-separated reports.

    Examples
    --------
    >>> format_float(2.0)
    '2'
    >>> format_float(0.1 + 0.2)
    '0.3'
    """
    return f"{value:.{precision}g}"
