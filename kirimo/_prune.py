"""
_prune.py
=========
Selection and pruning engine.

``restrict`` keeps a set of seed nodes together with everything above and
below them, removes the rest, and collapses the single-child nodes that the
removal leaves behind so that every retained leaf-to-leaf path keeps its
total branch length.  ``delete`` is the complement: keep every leaf except
the ones listed.
"""

import logging
from typing import Iterable

from kirimo._errors import InvalidArgumentError
from kirimo._logging import log_restrict_summary
from kirimo._tree import Tree
from kirimo._utils import resolve_items

logger = logging.getLogger(__name__)


def keep_set(tree: Tree, seeds: Iterable[int]) -> set:
    """Return seeds ∪ their descendants ∪ their ancestors, as node IDs."""
    keep = set()
    for s in seeds:
        keep.add(s)
        keep.update(tree.descendants(s))
        keep.update(tree.ancestors(s))
    return keep


def collapse_unary(tree: Tree) -> int:
    """
    Merge every non-root node that has exactly one child into that child.

    The child inherits the summed branch length (absent counts as 0) and
    the merged node's position in its parent's child list.  If the root is
    then left with a single child, that child becomes the root.

    Returns
    -------
    int
        Number of nodes removed.
    """
    n_collapsed = 0
    for u in tree.nodes():
        if u == tree.root or len(tree.children[u]) != 1:
            continue
        child = tree.children[u][0]
        if tree.distance[u] >= 0.0 or tree.distance[child] >= 0.0:
            tree.distance[child] = tree.branch_length(u) + tree.branch_length(child)
        p = int(tree.parent[u])
        pos = tree.detach(u)
        tree.detach(child)
        tree.attach(child, p, pos)
        tree.discard(u)
        n_collapsed += 1

    if len(tree.children[tree.root]) == 1:
        old_root = tree.root
        child = tree.children[old_root][0]
        tree.detach(child)
        tree.set_root(child)
        tree.discard(old_root)
        n_collapsed += 1

    return n_collapsed


def restrict(tree: Tree, seeds: Iterable) -> Tree:
    """
    Reduce *tree* in place to the subtree spanned by *seeds*.

    Parameters
    ----------
    tree : Tree
        Tree to mutate.
    seeds : Iterable[int | str]
        Node IDs or labels.  Items that are not found are logged at WARNING
        level and skipped.

    Returns
    -------
    Tree
        The same *tree*, for chaining.

    Raises
    ------
    InvalidArgumentError
        If none of the seeds is found.

    Notes
    -----
    Removal walks the tree in pre-order and cuts each node that is outside
    the keep-set but whose parent is inside it; the whole subtree below the
    cut goes with it.  The collapse pass then restores a tree with no
    single-child internal nodes.
    """
    seed_ids = resolve_items(tree, seeds, "seed")
    if not seed_ids:
        raise InvalidArgumentError("None of the requested seed nodes exist in the tree.")

    keep = keep_set(tree, seed_ids)
    logger.debug("keep-set: %d of %d nodes", len(keep), tree.n_nodes)

    n_removed = 0
    for u in tree.nodes():
        if u in keep or not tree.alive[u]:
            continue
        # Parent is kept: anything deeper was already removed with its cut.
        tree.detach(u)
        n_removed += tree.discard(u)

    n_collapsed = collapse_unary(tree)
    log_restrict_summary(len(seed_ids), n_removed, n_collapsed, tree.n_leaves)
    return tree


def delete(tree: Tree, labels: Iterable) -> Tree:
    """
    Remove the listed leaves: ``restrict(tree, all_leaves minus labels)``.

    Labels that are not found are logged and skipped.
    """
    drop = set(resolve_items(tree, labels, "label"))
    remaining = [u for u in tree.leaves() if u not in drop]
    if not remaining:
        raise InvalidArgumentError("Deleting these labels would remove every leaf.")
    return restrict(tree, remaining)

