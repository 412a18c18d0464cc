"""
_analytics.py
=============
Sampling and measurement on a rooted tree.

Public API
----------
  sample_leaves(tree, k=0, rng=None)      Reservoir sample of leaf IDs.
  subsample(tree, k=0, rng=None)          restrict(tree, sample_leaves(...)).
  ltt(tree, bin_count)                    Lineage-through-time bins.
  walk(tree, start)                       Outward walk with running totals.
  lca(tree, nodes)                        Common ancestor of several nodes.
  distance_matrix(tree, sort, backend)    Leaf-by-leaf path distances.
  half_matrix(tree, sort, backend)        Upper-triangle rows of the above.
  pairwise_distances(tree, labels)        Rows for the listed labels only.
  sister_pairs(tree, sort)                Same-parent flag per leaf pair.
  compare_sister_pairs(tree_a, tree_b)    Sister flags side by side.
  support_values(tree)                    Internal nodes carrying support.

None of these functions mutate the tree except ``subsample``.
"""

import logging
from typing import List, NamedTuple, Tuple

import numpy as np

from kirimo._backend import import_cpu_kernels, resolve_backend
from kirimo._errors import InvalidArgumentError
from kirimo._logging import log_kernel_status
from kirimo._prune import restrict
from kirimo._tree import Tree
from kirimo._utils import resolve_items

logger = logging.getLogger(__name__)

# Bin bounds closer to zero than this are reported as exactly 0.0; depths
# within this distance above a bin bound still count as inside the bin.
_EPSILON = 1e-10

# Compile-and-report happens once per session.
_kernel_first_call = True


class LTTBin(NamedTuple):
    """One lineage-through-time bin."""

    index: int
    count: int
    lower: float
    upper: float


class WalkStep(NamedTuple):
    """A leaf reached by ``walk``."""

    label: str
    distance: float  # path distance from the start node
    total: float  # sum of every edge entered so far
    count: int  # leaves reported so far, this one included


# ======================================================================== #
# Sampling                                                                  #
# ======================================================================== #


def sample_leaves(tree: Tree, k: int = 0, rng=None) -> List[int]:
    """
    Choose *k* leaves uniformly at random with reservoir sampling.

    Algorithm R over the leaves in pre-order: the reservoir starts as the
    first *k* leaves; the leaf at 1-based position ``i`` (``i > k``) draws
    ``j`` uniformly from ``[0, i)`` and replaces slot ``j`` when ``j < k``,
    i.e. with probability ``k / i``.

    Parameters
    ----------
    tree : Tree
    k : int, default 0
        Sample size.  0 means half the leaves, rounded down.
    rng : numpy.random.Generator | int | None
        Random source.  An ``int`` seeds a new generator; ``None`` creates a
        fresh, unseeded one.  The global numpy state is never used.

    Returns
    -------
    list[int]
        Node IDs of the sampled leaves, in reservoir-slot order.

    Raises
    ------
    InvalidArgumentError
        If *k* is negative or larger than the number of leaves.
    """
    leaves = tree.leaves()
    n = len(leaves)
    if k < 0:
        raise InvalidArgumentError(f"Sample size must be non-negative, got {k}.")
    if k > n:
        raise InvalidArgumentError(
            f"Sample size {k} exceeds the number of leaves ({n})."
        )
    if k == 0:
        k = n // 2

    rng = np.random.default_rng(rng)
    reservoir = leaves[:k]
    for i in range(k + 1, n + 1):
        j = int(rng.integers(0, i))
        if j < k:
            reservoir[j] = leaves[i - 1]
    return reservoir


def subsample(tree: Tree, k: int = 0, rng=None) -> Tree:
    """Restrict *tree* in place to a reservoir sample of *k* leaves."""
    return restrict(tree, sample_leaves(tree, k, rng))


# ======================================================================== #
# Lineage through time                                                      #
# ======================================================================== #


def ltt(tree: Tree, bin_count: int) -> List[LTTBin]:
    """
    Count branches in existence at the upper bound of equal-width depth bins.

    ``[0, height]`` is split into *bin_count* bins with bounds
    ``height * i / bin_count``.  For each upper bound ``u`` the count starts
    at 1 (the root lineage); walking down from the root, every child at depth
    ``<= u`` adds one and is descended into, and every such child that is an
    internal node gives back one for its own inbound branch.  The root gives
    back its implicit lineage once a leaf has been reached, so the count is
    the number of leaves at depth ``<= u``, never less than 1:

        ((A:1,B:1):1,(C:1,D:1):1):0;  two bins  ->  1, 4

    Parameters
    ----------
    tree : Tree
    bin_count : int
        Number of bins (> 0).

    Returns
    -------
    list[LTTBin]
        One entry per bin, ``index`` 1-based.

    Raises
    ------
    InvalidArgumentError
        If *bin_count* is not positive.
    """
    if bin_count <= 0:
        raise InvalidArgumentError(f"bin_count must be positive, got {bin_count}.")

    depths = tree.depths()
    height = max(depths.values())

    bins = []
    for i in range(1, bin_count + 1):
        lower = height * (i - 1) / bin_count
        upper = height * i / bin_count
        if abs(lower) < _EPSILON:
            lower = 0.0
        if abs(upper) < _EPSILON:
            upper = 0.0
        bins.append(LTTBin(i, _lineages_at(tree, depths, upper), lower, upper))
    return bins


def _lineages_at(tree: Tree, depths: dict, upper: float) -> int:
    """Branch count at depth *upper* (worklist, no recursion)."""
    count = 1
    leaf_reached = False
    worklist = [tree.root]
    while worklist:
        u = worklist.pop()
        for v in tree.children[u]:
            if depths[v] > upper + _EPSILON:
                continue
            count += 1
            if tree.children[v]:
                count -= 1
                worklist.append(v)
            else:
                leaf_reached = True
    if leaf_reached:
        count -= 1
    return count


# ======================================================================== #
# Walk                                                                      #
# ======================================================================== #


def walk(tree: Tree, start) -> List[WalkStep]:
    """
    Walk outward from *start*, reporting every other leaf once.

    The walk climbs from *start* to the root.  At each ancestor it first adds
    the branch just climbed to the running total, then visits, in pre-order,
    each child subtree not already on the climbed path.  Every edge is added
    to the running total exactly once, when it is first entered, so shared
    path segments are paid for once and amortised over all leaves beyond
    them.  When *start* is internal its own subtree is visited first.

    Parameters
    ----------
    tree : Tree
    start : int | str
        Node ID or label of the starting node.

    Returns
    -------
    list[WalkStep]
        One entry per leaf in discovery order (the start node excluded).

    Raises
    ------
    NotFoundError
        If *start* is not in the tree.
    """
    s = tree._resolve_node(start)
    steps = []
    state = {"total": 0.0, "count": 0}

    def fan_out(sub_roots, base: float) -> None:
        stack = [(v, base + tree.branch_length(v)) for v in reversed(sub_roots)]
        while stack:
            v, d = stack.pop()
            state["total"] += tree.branch_length(v)
            kids = tree.children[v]
            if kids:
                stack.extend((c, d + tree.branch_length(c)) for c in reversed(kids))
            else:
                state["count"] += 1
                steps.append(WalkStep(tree.names[v], d, state["total"], state["count"]))

    fan_out(tree.children[s], 0.0)

    prev = s
    climbed = 0.0
    for a in tree.ancestors(s):
        edge = tree.branch_length(prev)
        climbed += edge
        state["total"] += edge
        fan_out([c for c in tree.children[a] if c != prev], climbed)
        prev = a

    return steps


# ======================================================================== #
# Common ancestors                                                          #
# ======================================================================== #


def lca(tree: Tree, nodes) -> int:
    """
    Return the node ID of the lowest common ancestor of *nodes*.

    Items that cannot be resolved are logged and skipped.  The LCA of a
    single node is defined as its parent; otherwise the running LCA starts
    at the first node and is folded pairwise with
    ``Tree.common_ancestor``.

    Raises
    ------
    InvalidArgumentError
        If no item resolves, or a single node is given and it is the root.
    """
    ids = resolve_items(tree, nodes, "node")
    if not ids:
        raise InvalidArgumentError("lca needs at least one node present in the tree.")

    if len(ids) == 1:
        p = int(tree.parent[ids[0]])
        if p == -1:
            raise InvalidArgumentError(
                f"Node {ids[0]} is the root and has no ancestor."
            )
        return p

    running = ids[0]
    for u in ids[1:]:
        running = tree.common_ancestor(running, u)
    return running


# ======================================================================== #
# Distances                                                                 #
# ======================================================================== #


def _ordered_leaves(tree: Tree, sort: bool) -> List[int]:
    leaves = tree.leaves()
    if sort:
        leaves = sorted(leaves, key=lambda u: tree.names[u])
    return leaves


def distance_matrix(tree: Tree, sort: bool = True, backend: str = "best") -> Tuple[List[str], np.ndarray]:
    """
    Path distances between every pair of leaves.

    Parameters
    ----------
    tree : Tree
    sort : bool, default True
        Order leaves alphabetically by label; otherwise pre-order.
    backend : str, default 'best'
        'python', 'cpu-parallel' or 'best' (see ``kirimo.use_backend``).

    Returns
    -------
    (list[str], ndarray[float64, (m, m)])
        Leaf labels and the symmetric distance matrix.
    """
    global _kernel_first_call

    leaves = _ordered_leaves(tree, sort)
    labels = [tree.names[u] for u in leaves]
    m = len(leaves)
    out = np.zeros((m, m), dtype=np.float64)

    resolved = resolve_backend(backend)
    logger.debug("distance_matrix(%d leaves, backend=%r)", m, resolved)

    if resolved == "python":
        for i in range(m):
            for j in range(i + 1, m):
                d = tree.path_distance(leaves[i], leaves[j])
                out[i, j] = d
                out[j, i] = d
        return labels, out

    capacity = tree.parent.shape[0]
    edge_depth = np.zeros(capacity, dtype=np.int32)
    root_distance = np.zeros(capacity, dtype=np.float64)
    for u in tree.nodes():
        for v in tree.children[u]:
            edge_depth[v] = edge_depth[u] + 1
            root_distance[v] = root_distance[u] + tree.branch_length(v)

    kernel = import_cpu_kernels()
    kernel(
        np.asarray(leaves, dtype=np.int64),
        tree.parent,
        edge_depth,
        root_distance,
        out,
    )
    if _kernel_first_call:
        _kernel_first_call = False
        log_kernel_status()
    return labels, out


def half_matrix(tree: Tree, sort: bool = True, backend: str = "best") -> List[Tuple[str, str, float]]:
    """Rows ``(a, b, distance)`` for every leaf pair with ``a`` before ``b``."""
    labels, matrix = distance_matrix(tree, sort=sort, backend=backend)
    rows = []
    for i in range(len(labels)):
        for j in range(i + 1, len(labels)):
            rows.append((labels[i], labels[j], float(matrix[i, j])))
    return rows


def pairwise_distances(tree: Tree, labels) -> List[Tuple[str, str, float]]:
    """
    Rows ``(a, b, distance)`` for every pair among *labels*, in input order.

    Labels that are not found are logged and skipped.
    """
    ids = resolve_items(tree, labels, "label")
    rows = []
    for i in range(len(ids)):
        for j in range(i + 1, len(ids)):
            u, v = ids[i], ids[j]
            rows.append((tree.names[u], tree.names[v], tree.path_distance(u, v)))
    return rows


# ======================================================================== #
# Sister pairs                                                              #
# ======================================================================== #


def sister_pairs(tree: Tree, sort: bool = True) -> List[Tuple[str, str, int]]:
    """
    Rows ``(a, b, flag)`` for every unordered leaf pair.

    ``flag`` is 1 when both leaves hang from the very same parent node
    (compared by node ID, not by label), else 0.
    """
    leaves = _ordered_leaves(tree, sort)
    rows = []
    for i in range(len(leaves)):
        for j in range(i + 1, len(leaves)):
            u, v = leaves[i], leaves[j]
            flag = int(tree.parent[u] == tree.parent[v])
            rows.append((tree.names[u], tree.names[v], flag))
    return rows


def compare_sister_pairs(tree_a: Tree, tree_b: Tree) -> List[Tuple[str, str, int, int]]:
    """
    Sister flags of two trees side by side, over their shared leaf labels.

    Returns rows ``(a, b, flag_a, flag_b)`` with labels in alphabetical
    order; rows where the flags differ mark a topological disagreement.
    """
    shared = sorted(set(tree_a.leaf_labels()) & set(tree_b.leaf_labels()))
    ids_a = [tree_a.find_by_label(x) for x in shared]
    ids_b = [tree_b.find_by_label(x) for x in shared]
    rows = []
    for i in range(len(shared)):
        for j in range(i + 1, len(shared)):
            fa = int(tree_a.parent[ids_a[i]] == tree_a.parent[ids_a[j]])
            fb = int(tree_b.parent[ids_b[i]] == tree_b.parent[ids_b[j]])
            rows.append((shared[i], shared[j], fa, fb))
    return rows


def support_values(tree: Tree) -> List[Tuple[int, str, float]]:
    """Rows ``(node_id, label, support)`` for internal nodes carrying support."""
    return [
        (u, tree.names[u], float(tree.support[u]))
        for u in tree.nodes()
        if tree.children[u] and tree.support[u] >= 0.0
    ]
