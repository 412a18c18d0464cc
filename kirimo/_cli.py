"""
_cli.py
=======
Command-line driver: load one tree, run one operation, print the result.

Usage
-----
    python -m kirimo [OPTION] TREE_FILE

TREE_FILE may hold several ';'-terminated trees; only the first is used.
Pass '-' to read from standard input.  Options that edit the tree print the
result as NEWICK; the others print a tab-separated report.

Examples
--------
    python -m kirimo -s A,C trees/scenario.tree
    python -m kirimo -G 4 trees/scenario.tree
    python -m kirimo -U 10 --seed 7 big.tree
    python -m kirimo --sister-pairs --compare other.tree this.tree
"""

import argparse
import logging
import sys

from kirimo._analytics import (
    compare_sister_pairs,
    half_matrix,
    lca,
    ltt,
    pairwise_distances,
    sister_pairs,
    subsample,
    support_values,
    walk,
)
from kirimo._backend import get_available_backends
from kirimo._context import quiet, use_backend
from kirimo._errors import KirimoError
from kirimo._newick import split_newick
from kirimo._prune import delete, restrict
from kirimo._report import format_lines, format_ltt, format_rows, format_walk
from kirimo._topology import binarize, midpoint_root, reroot
from kirimo._tree import Tree
from kirimo._utils import format_float, split_labels

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kirimo",
        description="Prune, reshape and measure a rooted phylogenetic tree.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "LABELS are comma-separated, e.g. 'A,B,C'.  Labels that are not\n"
            "found are reported on stderr and skipped."
        ),
    )
    parser.add_argument("tree_file", metavar="TREE_FILE", help="NEWICK file, or '-' for stdin")

    ops = parser.add_mutually_exclusive_group(required=True)
    ops.add_argument("-s", "--subset", metavar="LABELS", help="keep only the subtree spanning LABELS")
    ops.add_argument("-d", "--delete", metavar="LABELS", help="remove the leaves LABELS")
    ops.add_argument("-b", "--binarize", action="store_true", help="resolve multifurcations")
    ops.add_argument("-r", "--reroot", metavar="NODE", help="reroot on the branch above NODE")
    ops.add_argument("-M", "--midpoint", action="store_true", help="midpoint-root the tree")
    ops.add_argument("-U", "--sample", metavar="K", type=int, help="keep K random leaves (0: half)")
    ops.add_argument("-G", "--ltt", metavar="BINS", type=int, help="lineage-through-time table")
    ops.add_argument("-W", "--walk", metavar="NODE", help="walk outward from NODE")
    ops.add_argument("-A", "--ancestor", metavar="LABELS", help="lowest common ancestor of LABELS")
    ops.add_argument("-D", "--dist-matrix", action="store_true", help="leaf distance half-matrix")
    ops.add_argument("-P", "--pairwise", metavar="LABELS", help="distances among LABELS")
    ops.add_argument("--sister-pairs", action="store_true", help="sister flag for every leaf pair")
    ops.add_argument("-l", "--labels", action="store_true", help="list leaf labels")
    ops.add_argument("-n", "--num-leaves", action="store_true", help="print the number of leaves")
    ops.add_argument("-L", "--length", action="store_true", help="print the total branch length")
    ops.add_argument("-u", "--strip-lengths", action="store_true", help="drop all branch lengths")
    ops.add_argument("-B", "--supports", action="store_true", help="list internal support values")

    parser.add_argument(
        "--compare",
        metavar="OTHER_FILE",
        help="with --sister-pairs: also flag the pairs in the first tree of OTHER_FILE",
    )
    parser.add_argument(
        "--fraction",
        type=float,
        default=0.5,
        help="with -r: position of the new root along the branch, from NODE (default 0.5)",
    )
    parser.add_argument("--seed", type=int, default=None, help="random seed for -U")
    parser.add_argument(
        "--backend",
        default="best",
        choices=["best"] + get_available_backends(),
        help="distance-matrix backend for -D (default: best)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="log progress at INFO level")
    parser.add_argument("-q", "--quiet", action="store_true", help="log errors only")
    return parser


def _read_first_tree(path: str) -> Tree:
    if path == "-":
        text = sys.stdin.read()
    else:
        with open(path) as fh:
            text = fh.read()
    trees = split_newick(text)
    if not trees:
        raise ValueError(f"No tree found in '{path}'.")
    if len(trees) > 1:
        logger.info(f"{path}: {len(trees)} trees found, using the first")
    return Tree(trees[0])


def _node_name(tree: Tree, u: int) -> str:
    return tree.names[u] or str(u)


def _run(args, tree: Tree) -> str:
    if args.subset is not None:
        restrict(tree, split_labels(args.subset))
    elif args.delete is not None:
        delete(tree, split_labels(args.delete))
    elif args.binarize:
        binarize(tree)
    elif args.reroot is not None:
        reroot(tree, args.reroot, args.fraction)
    elif args.midpoint:
        midpoint_root(tree)
    elif args.sample is not None:
        subsample(tree, args.sample, args.seed)
    elif args.strip_lengths:
        tree.strip_branch_lengths()
    elif args.ltt is not None:
        return format_ltt(ltt(tree, args.ltt))
    elif args.walk is not None:
        return format_walk(walk(tree, args.walk))
    elif args.ancestor is not None:
        u = lca(tree, split_labels(args.ancestor))
        return format_rows([(u, _node_name(tree, u))])
    elif args.dist_matrix:
        with use_backend(args.backend):
            return format_rows(half_matrix(tree))
    elif args.pairwise is not None:
        return format_rows(pairwise_distances(tree, split_labels(args.pairwise)))
    elif args.sister_pairs:
        if args.compare is not None:
            return format_rows(compare_sister_pairs(tree, _read_first_tree(args.compare)))
        return format_rows(sister_pairs(tree))
    elif args.labels:
        return format_lines(tree.leaf_labels())
    elif args.num_leaves:
        return f"{tree.n_leaves}\n"
    elif args.length:
        return format_float(tree.total_length()) + "\n"
    elif args.supports:
        return format_rows(support_values(tree))

    return tree.to_newick() + "\n"


def main(argv=None) -> int:
    """Entry point for ``python -m kirimo`` and the ``kirimo`` script."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.compare is not None and not args.sister_pairs:
        parser.error("--compare requires --sister-pairs")

    level = logging.INFO if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s", stream=sys.stderr)
    logging.getLogger("kirimo").setLevel(level)

    try:
        if args.quiet:
            with quiet(logging.ERROR):
                text = _run(args, _read_first_tree(args.tree_file))
        else:
            text = _run(args, _read_first_tree(args.tree_file))
        sys.stdout.write(text)
    except (KirimoError, ValueError, OSError) as exc:
        print(f"kirimo: error: {exc}", file=sys.stderr)
        return 1
    return 0
