"""
kirimo (キリモ)
===============

Pruning, rerooting and measurement of rooted phylogenetic trees.

*Kirimo* (from "kiri" 切り = cut + "mori" 森 = forest) keeps a tree as a
node arena addressed by integer IDs and edits it in place: restrict to a
subset of leaves, delete leaves, resolve multifurcations, reroot, sample.
On top of that it answers the usual questions about a tree: common
ancestors, leaf distances, lineage-through-time tables, sister pairs.

Main Classes
------------
Tree : Rooted tree with NEWICK parsing, traversal and in-place edits

Pruning and Topology
--------------------
restrict : Keep only the subtree spanning a set of seed nodes
delete : Remove leaves by label
collapse_unary : Merge single-child internal nodes into their child
binarize : Resolve multifurcations with zero-length internal branches
reroot : Reroot on a branch at a given fraction of its length
midpoint_root : Reroot halfway along the longest leaf-to-leaf path

Analytics
---------
sample_leaves, subsample : Uniform reservoir sampling of leaves
ltt : Lineage-through-time bins
walk : Outward walk with running edge totals
lca : Lowest common ancestor of several nodes
distance_matrix, half_matrix, pairwise_distances : Leaf path distances
sister_pairs, compare_sister_pairs : Same-parent flags per leaf pair
support_values : Internal support annotations

Context Managers
----------------
quiet : Suppress logging during operations
suppress_logger : Suppress specific logger
use_backend : Force the distance-matrix backend

Examples
--------
>>> from kirimo import Tree, restrict, lca
>>> tree = Tree('((A:1,B:1):1,(C:1,D:1):1):0;')
>>> tree.names[lca(tree, ['A', 'B'])]
''
>>> restrict(tree, ['A', 'C']).to_newick()
'(A:2,C:2):0;'

With context managers:

>>> from kirimo import quiet, use_backend, distance_matrix
>>> with quiet(), use_backend('python'):
...     labels, matrix = distance_matrix(tree)
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Main classes
from ._tree import Tree

# Errors
from ._errors import (
    KirimoError,
    NotFoundError,
    InvalidArgumentError,
    StructuralInvariantError,
)

# Tree edits
from ._prune import restrict, delete, collapse_unary, keep_set
from ._topology import binarize, reroot, midpoint_root

# Analytics
from ._analytics import (
    LTTBin,
    WalkStep,
    sample_leaves,
    subsample,
    ltt,
    walk,
    lca,
    distance_matrix,
    half_matrix,
    pairwise_distances,
    sister_pairs,
    compare_sister_pairs,
    support_values,
)

# NEWICK I/O
from ._newick import parse_newick, format_newick_tree, split_newick

# Context managers (user-facing utilities)
from ._context import (
    suppress_logger,
    quiet,
    use_backend,
)

# Backend information (useful for checking capabilities)
from ._backend import (
    get_available_backends,
    get_backend_info,
)

# Public API
__all__ = [
    # Main classes
    "Tree",
    # Errors
    "KirimoError",
    "NotFoundError",
    "InvalidArgumentError",
    "StructuralInvariantError",
    # Tree edits
    "restrict",
    "delete",
    "collapse_unary",
    "keep_set",
    "binarize",
    "reroot",
    "midpoint_root",
    # Analytics
    "LTTBin",
    "WalkStep",
    "sample_leaves",
    "subsample",
    "ltt",
    "walk",
    "lca",
    "distance_matrix",
    "half_matrix",
    "pairwise_distances",
    "sister_pairs",
    "compare_sister_pairs",
    "support_values",
    # NEWICK I/O
    "parse_newick",
    "format_newick_tree",
    "split_newick",
    # Context managers
    "suppress_logger",
    "quiet",
    "use_backend",
    # Backend information
    "get_available_backends",
    "get_backend_info",
    # Version info
    "__version__",
]
