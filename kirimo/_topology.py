"""
_topology.py
============
Topology transformers: multifurcation resolution and re-rooting.

Both operations mutate the tree in place and only ever add nodes (plus, for
``reroot``, the removal of the former root and at most one unary node next
to it), so every leaf keeps its node ID.
"""

import logging

from kirimo._errors import InvalidArgumentError
from kirimo._logging import log_binarize_summary, log_reroot_summary
from kirimo._tree import Tree

logger = logging.getLogger(__name__)


def binarize(tree: Tree) -> int:
    """
    Resolve every multifurcation into a cascade of bifurcations.

    A node with children ``[c0, c1, …, ck]`` (k ≥ 2) keeps ``c0`` and gets
    one new zero-length internal node as its second child; ``c1 … ck`` are
    moved under the new node in their original order, and the new node is
    revisited until it too has at most two children:

        (A, B, C, D)  →  (A, (B, (C, D):0):0)

    Parameters
    ----------
    tree : Tree
        Tree to mutate.

    Returns
    -------
    int
        Number of internal nodes inserted (0 for a bifurcating tree).

    Notes
    -----
    Uses an explicit worklist, so stack depth does not grow with the tree.
    """
    n_inserted = 0
    multifurcating = {}
    worklist = [tree.root]
    while worklist:
        u = worklist.pop()
        kids = tree.children[u]
        if len(kids) > 2:
            multifurcating.setdefault(u, None)
            moved = kids[1:]
            for v in moved:
                tree.detach(v)
            w = tree.add_node(distance=0.0)
            tree.attach(w, u)
            for v in moved:
                tree.attach(v, w)
            n_inserted += 1
        worklist.extend(reversed(tree.children[u]))

    log_binarize_summary(n_inserted, list(multifurcating))
    return n_inserted


def reroot(tree: Tree, target, fraction: float = 0.5) -> int:
    """
    Root *tree* on the branch above *target*.

    A new node is inserted on the incoming branch of *target*, splitting its
    length ``L`` into ``fraction * L`` (new node to target) and
    ``(1 - fraction) * L`` (new node to the old parent).  The parent/child
    links on the path from the new node up to the old root are then inverted,
    each branch length and support value staying with its edge, and the new
    node becomes the root.  A former root left with a single child is merged
    into that child so that no single-child node remains; a former root that
    was already single-child is dropped with its edge.

    Parameters
    ----------
    tree : Tree
        Tree to mutate.
    target : int | str
        Node ID or label of the node whose incoming branch is split.
    fraction : float, default 0.5
        Split position measured from *target*; 0.5 is the midpoint.

    Returns
    -------
    int
        Node ID of the new root.

    Raises
    ------
    NotFoundError
        If *target* is not in the tree.
    InvalidArgumentError
        If *target* is the root or *fraction* is outside [0, 1].
    """
    t = tree._resolve_node(target)
    if t == tree.root:
        raise InvalidArgumentError(
            f"Cannot reroot above node {target!r}: it is already the root."
        )
    if not 0.0 <= fraction <= 1.0:
        raise InvalidArgumentError(f"fraction must lie in [0, 1], got {fraction}.")

    old_root = tree.root
    p = int(tree.parent[t])

    # Split the target's branch with the new node n.
    n = tree.add_node()
    pos = tree.detach(t)
    tree.attach(n, p, pos)
    if tree.distance[t] >= 0.0:
        length = float(tree.distance[t])
        tree.distance[t] = fraction * length
        tree.distance[n] = (1.0 - fraction) * length
    tree.support[n] = tree.support[t]
    tree.attach(t, n)

    # Path n -> old root; edge (path[i], path[i+1]) is stored on path[i].
    path = [n]
    path.extend(tree.ancestors(n))
    lengths = [float(tree.distance[x]) for x in path[:-1]]
    supports = [float(tree.support[x]) for x in path[:-1]]

    for x in path[:-1]:
        tree.detach(x)
    tree.set_root(n)
    for i in range(len(path) - 1):
        x, y = path[i], path[i + 1]
        tree.attach(y, x)
        tree.distance[y] = lengths[i]
        tree.support[y] = supports[i]
    tree.support[n] = -1.0

    # The old root lost the child on the path.  A root that was already
    # unary is now a dead end and goes away together with its edge.
    stale = old_root
    if not tree.children[old_root]:
        stale = int(tree.parent[old_root])
        tree.detach(old_root)
        tree.discard(old_root)
    if len(tree.children[stale]) == 1:
        _merge_into_child(tree, stale)

    log_reroot_summary(t, tree.root, fraction, len(path) - 1)
    return tree.root


def _merge_into_child(tree: Tree, u: int) -> None:
    """Remove the single-child node *u*, joining its two edges."""
    child = tree.children[u][0]
    if u == tree.root:
        tree.detach(child)
        tree.set_root(child)
        tree.discard(u)
        return
    if tree.distance[u] >= 0.0 or tree.distance[child] >= 0.0:
        tree.distance[child] = tree.branch_length(u) + tree.branch_length(child)
    if tree.support[child] < 0.0:
        tree.support[child] = tree.support[u]
    up = int(tree.parent[u])
    slot = tree.detach(u)
    tree.detach(child)
    tree.attach(child, up, slot)
    tree.discard(u)


def midpoint_root(tree: Tree) -> int:
    """
    Root *tree* at the midpoint of its longest leaf-to-leaf path.

    The two leaves farthest apart are found with two sweeps (farthest leaf
    from an arbitrary leaf, then farthest leaf from that one); the point
    halfway along their path is located and ``reroot`` is applied to the
    branch that contains it.

    Returns
    -------
    int
        Node ID of the new root.

    Raises
    ------
    InvalidArgumentError
        If the tree has fewer than two leaves or zero diameter.
    """
    leaves = tree.leaves()
    if len(leaves) < 2:
        raise InvalidArgumentError("Midpoint rooting needs at least two leaves.")

    a = _farthest_leaf(tree, leaves[0], leaves)
    b = _farthest_leaf(tree, a, leaves)
    diameter = tree.path_distance(a, b)
    if diameter <= 0.0:
        raise InvalidArgumentError("All leaves are at distance zero; no midpoint exists.")
    half = 0.5 * diameter
    logger.debug("midpoint: diameter %.6g between nodes %d and %d", diameter, a, b)

    w = tree.common_ancestor(a, b)
    # Walk from the deeper side of the path towards the common ancestor.
    start = a if tree.path_distance(a, w) >= half else b
    covered = 0.0
    x = start
    while x != w:
        length = tree.branch_length(x)
        if covered + length >= half and length > 0.0:
            return reroot(tree, x, fraction=(half - covered) / length)
        covered += length
        x = int(tree.parent[x])

    # Midpoint sits exactly on the common ancestor.
    child = tree.children[w][0]
    return reroot(tree, child, fraction=1.0)


def _farthest_leaf(tree: Tree, source: int, leaves: list) -> int:
    """Return the leaf at maximum path distance from *source* (first wins)."""
    best = source
    best_d = -1.0
    for leaf in leaves:
        d = tree.path_distance(source, leaf)
        if d > best_d:
            best, best_d = leaf, d
    return best
