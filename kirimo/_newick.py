"""
_newick.py
==========
NEWICK reader and writer for the node arena used by ``Tree``.

The reader is an iterative, stack-based character scan (no recursion), so
arbitrarily deep caterpillar trees parse without touching the interpreter
recursion limit.  Multifurcations are kept as they are; resolving them is
the job of ``kirimo.binarize``.

Node-ID conventions produced by ``parse_newick``:
  Leaves   : 0 … n_leaves-1          (left-to-right in the NEWICK string)
  Internal : n_leaves … n_nodes-2    (post-order)
  Root     : n_nodes-1

Supported syntax: labels (bare or single-quoted, ``''`` escapes a quote),
``:length`` suffixes, internal-node labels or support values, bracketed
comments (skipped) and arbitrary whitespace.
"""

import numpy as np

_DELIMITERS = ":,);[ \t\r\n"
_WHITESPACE = " \t\r\n"
_QUOTE_TRIGGERS = " ():;,[]'\t\r\n"


def _skip(s: str, i: int, n_chars: int) -> int:
    """Advance past whitespace and bracketed comments."""
    while i < n_chars:
        c = s[i]
        if c in _WHITESPACE:
            i += 1
        elif c == "[":
            close = s.find("]", i + 1)
            if close == -1:
                raise ValueError(f"Unterminated comment starting at offset {i}.")
            i = close + 1
        else:
            break
    return i


def _read_label(s: str, i: int, n_chars: int):
    """Return ``(label, next_index)`` for a bare or quoted label at *i*."""
    if i < n_chars and s[i] == "'":
        buf = []
        j = i + 1
        while j < n_chars:
            if s[j] == "'":
                if j + 1 < n_chars and s[j + 1] == "'":
                    buf.append("'")
                    j += 2
                    continue
                return "".join(buf), j + 1
            buf.append(s[j])
            j += 1
        raise ValueError(f"Unterminated quoted label starting at offset {i}.")

    j = i
    while j < n_chars and s[j] not in _DELIMITERS and s[j] != "(":
        j += 1
    return s[i:j], j


def _read_length(s: str, i: int, n_chars: int):
    """Return ``(length, next_index)``; length is -1.0 when no ':' follows."""
    i = _skip(s, i, n_chars)
    if i >= n_chars or s[i] != ":":
        return -1.0, i
    i = _skip(s, i + 1, n_chars)
    j = i
    while j < n_chars and s[j] not in ",);[ \t\r\n":
        j += 1
    if j == i:
        raise ValueError(f"Missing branch length after ':' at offset {i - 1}.")
    try:
        length = float(s[i:j])
    except ValueError:
        raise ValueError(f"Invalid branch length '{s[i:j]}' at offset {i}.") from None
    if length < 0.0:
        raise ValueError(f"Negative branch length '{s[i:j]}' at offset {i}.")
    return length, j


def _count_nodes(s: str, n_chars: int):
    """Pass 1: count commas and open parens outside quotes and comments."""
    n_commas = 0
    n_parens = 0
    depth = 0
    in_quote = False
    in_comment = False
    for k in range(n_chars):
        c = s[k]
        if in_quote:
            if c == "'":
                in_quote = False
            continue
        if in_comment:
            if c == "]":
                in_comment = False
            continue
        if c == "'":
            in_quote = True
        elif c == "[":
            in_comment = True
        elif c == ",":
            n_commas += 1
        elif c == "(":
            n_parens += 1
            depth += 1
        elif c == ")":
            depth -= 1
            if depth < 0:
                raise ValueError("Unbalanced parentheses: unexpected ')'.")
    if depth != 0:
        raise ValueError(f"Unbalanced parentheses: {depth} unclosed '('.")
    return n_commas, n_parens


def parse_newick(newick_string: str):
    """
    Parse *newick_string* into arena arrays.

    Parameters
    ----------
    newick_string : str
        A NEWICK tree (trailing ';' optional).

    Returns
    -------
    dict
        Keys ``names``, ``parent``, ``distance``, ``support``, ``children``
        and ``root``.  ``distance`` and ``support`` use -1.0 for "absent".

    Raises
    ------
    ValueError
        On empty input, unbalanced parentheses or malformed lengths.
    """
    s = newick_string.strip()
    n_chars = len(s)
    if n_chars > 0 and s[n_chars - 1] == ";":
        n_chars -= 1
    if _skip(s, 0, n_chars) >= n_chars:
        raise ValueError("Empty NEWICK string.")

    n_commas, n_parens = _count_nodes(s, n_chars)
    n_leaves = n_commas + 1
    n_nodes = n_leaves + n_parens

    parent = np.full(n_nodes, -1, dtype=np.int32)
    distance = np.full(n_nodes, -1.0, dtype=np.float64)
    support = np.full(n_nodes, -1.0, dtype=np.float64)
    names = [""] * n_nodes
    children = [[] for _ in range(n_nodes)]

    OPEN_PAREN = -2
    stack = []
    leaf_id = 0
    internal_id = n_leaves
    # True right after '(' or ',' and at the start: the next item is a node.
    expect_node = True

    def new_leaf(label: str, length: float) -> None:
        nonlocal leaf_id
        if leaf_id >= n_leaves:
            raise ValueError("Malformed NEWICK string: more leaves than commas allow.")
        names[leaf_id] = label
        distance[leaf_id] = length
        stack.append(leaf_id)
        leaf_id += 1

    i = _skip(s, 0, n_chars)
    while i < n_chars:
        c = s[i]

        if c == "(":
            if not expect_node:
                raise ValueError(f"Unexpected '(' at offset {i}: missing ','?")
            stack.append(OPEN_PAREN)
            i = _skip(s, i + 1, n_chars)
            continue

        if c == ",":
            if expect_node:
                new_leaf("", -1.0)
            expect_node = True
            i = _skip(s, i + 1, n_chars)
            continue

        if c == ")":
            if expect_node:
                new_leaf("", -1.0)
            kids = []
            while stack and stack[-1] != OPEN_PAREN:
                kids.append(stack.pop())
            if not stack:
                raise ValueError(f"Unbalanced parentheses at offset {i}.")
            stack.pop()  # OPEN_PAREN
            kids.reverse()

            node_id = internal_id
            internal_id += 1
            children[node_id] = kids
            for kid in kids:
                parent[kid] = node_id

            i = _skip(s, i + 1, n_chars)
            token, i = _read_label(s, i, n_chars)
            if token:
                try:
                    support[node_id] = float(token)
                except ValueError:
                    names[node_id] = token
            distance[node_id], i = _read_length(s, i, n_chars)
            stack.append(node_id)
            expect_node = False
            i = _skip(s, i, n_chars)
            continue

        # Leaf
        if not expect_node:
            raise ValueError(f"Unexpected character '{c}' at offset {i}: missing ','?")
        label, i = _read_label(s, i, n_chars)
        length, i = _read_length(s, i, n_chars)
        new_leaf(label, length)
        expect_node = False
        i = _skip(s, i, n_chars)

    if len(stack) != 1:
        raise ValueError(
            f"Malformed NEWICK string: {len(stack)} top-level nodes "
            "(expected exactly one root)."
        )

    return {
        "names": names,
        "parent": parent,
        "distance": distance,
        "support": support,
        "children": children,
        "root": int(stack[0]),
    }


def split_newick(text: str) -> list:
    """
    Split *text* holding one or more ';'-terminated trees into NEWICK strings.

    Semicolons inside quoted labels or bracketed comments do not split.
    Trailing text without a ';' is returned as a last entry when it is not
    blank.

    Examples
    --------
    >>> split_newick("(A,B);\\n(C,'x;y');\\n")
    ['(A,B);', "(C,'x;y');"]
    """
    trees = []
    start = 0
    i = 0
    n_chars = len(text)
    while i < n_chars:
        c = text[i]
        if c == "'":
            _, i = _read_label(text, i, n_chars)
            continue
        if c == "[":
            i = _skip(text, i, n_chars)
            continue
        if c == ";":
            trees.append(text[start : i + 1].strip())
            start = i + 1
        i += 1
    tail = text[start:].strip()
    if tail:
        trees.append(tail)
    return trees


def quote_label(name: str) -> str:
    """Quote *name* if it contains NEWICK punctuation or whitespace."""
    if any(ch in _QUOTE_TRIGGERS for ch in name):
        return "'" + name.replace("'", "''") + "'"
    return name


def format_newick_tree(tree, precision: int = 10) -> str:
    """
    Serialise *tree* (a ``kirimo.Tree``) to a NEWICK string.

    Internal nodes are written with their label when they have one, else
    with their support value.  Absent branch lengths are omitted; the root's
    own branch length is written when present.
    """
    fmt = f"{{:.{precision}g}}"
    out = {}
    stack = [(tree.root, False)]
    while stack:
        u, expanded = stack.pop()
        kids = tree.children[u]
        if kids and not expanded:
            stack.append((u, True))
            for v in reversed(kids):
                stack.append((v, False))
            continue

        if kids:
            text = "(" + ",".join(out.pop(v) for v in kids) + ")"
            if tree.names[u]:
                text += quote_label(tree.names[u])
            elif tree.support[u] >= 0.0:
                text += fmt.format(float(tree.support[u]))
        else:
            text = quote_label(tree.names[u])
        if tree.distance[u] >= 0.0:
            text += ":" + fmt.format(float(tree.distance[u]))
        out[u] = text

    return out[tree.root] + ";"
