"""
tests/test_tree.py
==================
Pytest test suite for the Tree class.

Tree fixtures
-------------
Reference trees are loaded from .tree files in tests/trees/:

  scenario_4leaf.tree
      ((A:1,B:1):1,(C:1,D:1):1):0;

      Node IDs (parse_newick left-to-right leaf order, then post-order internals):
        A=0  B=1  C=2  D=3  AB=4  CD=5  root=6

      depth: A=2 B=2 C=2 D=2 AB=1 CD=1 root=0

  balanced_4leaf.tree
      ((A:0.1,B:0.2)0.95:0.5,(C:0.3,D:0.4)0.87:0.6);

      Node IDs: A=0  B=1  C=2  D=3  AB=4  CD=5  root=6

      depth: A=0.6 B=0.7 C=0.9 D=1.0 AB=0.5 CD=0.6 root=0.0

  two_leaf.tree
      (Alpha:1.0,Beta:2.0)0.99;

      Node IDs: Alpha=0  Beta=1  root=2

  caterpillar_5leaf.tree
      (A:1,(B:1,(C:1,(D:1,E:1):1):1):1);

      Node IDs: A=0 B=1 C=2 D=3 E=4  DE=5 CDE=6 BCDE=7 root=8

      depth: A=1 B=2 C=3 D=4 E=4
             DE=3 CDE=2 BCDE=1 root=0
"""

import os
import math
import itertools
import pytest
import numpy as np

# Locate the tree files relative to this test file so the tests can be
# run from any working directory.
_TREES_DIR = os.path.join(os.path.dirname(__file__), "trees")

# Add parent directory to path so Tree can be imported regardless of
# whether the package has been installed.
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from kirimo._errors import NotFoundError, StructuralInvariantError
from kirimo._tree import Tree


# ======================================================================== #
# Helper                                                                    #
# ======================================================================== #


def load_tree(filename: str) -> Tree:
    """
    Load a NEWICK string from *filename* (inside tests/trees/) and return a
    fully constructed Tree.  Strips trailing whitespace and newlines.
    """
    path = os.path.join(_TREES_DIR, filename)
    with open(path) as fh:
        newick = fh.read().strip()
    return Tree(newick)


# ======================================================================== #
# Fixtures                                                                  #
# ======================================================================== #


@pytest.fixture(scope="module")
def scenario():
    """4-leaf unit tree: ((A:1,B:1):1,(C:1,D:1):1):0"""
    return load_tree("scenario_4leaf.tree")


@pytest.fixture(scope="module")
def balanced():
    """4-leaf balanced tree: ((A:0.1,B:0.2)0.95:0.5,(C:0.3,D:0.4)0.87:0.6)"""
    return load_tree("balanced_4leaf.tree")


@pytest.fixture(scope="module")
def two_leaf():
    """2-leaf tree: (Alpha:1.0,Beta:2.0)0.99"""
    return load_tree("two_leaf.tree")


@pytest.fixture(scope="module")
def caterpillar():
    """5-leaf caterpillar: (A:1,(B:1,(C:1,(D:1,E:1):1):1):1)"""
    return load_tree("caterpillar_5leaf.tree")


# ======================================================================== #
# 1. Construction and derived views                                         #
# ======================================================================== #


class TestConstruction:
    def test_counts(self, scenario):
        assert scenario.n_nodes == 7
        assert scenario.n_leaves == 4
        assert len(scenario) == 7

    def test_root(self, scenario):
        assert scenario.root == 6
        assert scenario.parent[6] == -1

    def test_preorder(self, scenario):
        assert scenario.nodes() == [6, 4, 0, 1, 5, 2, 3]

    def test_leaves_preorder(self, caterpillar):
        assert caterpillar.leaves() == [0, 1, 2, 3, 4]

    def test_leaf_labels(self, two_leaf):
        assert two_leaf.leaf_labels() == ["Alpha", "Beta"]

    def test_is_leaf(self, scenario):
        assert scenario.is_leaf("A")
        assert not scenario.is_leaf(4)

    def test_root_support(self, two_leaf):
        assert two_leaf.support[2] == pytest.approx(0.99)

    def test_all_alive(self, balanced):
        assert balanced.alive.all()

    def test_repr(self, scenario):
        assert repr(scenario) == "Tree(n_nodes=7, n_leaves=4, root=6)"

    def test_validate_passes(self, balanced, caterpillar, two_leaf):
        for tree in (balanced, caterpillar, two_leaf):
            tree.validate()


class TestFromArrays:
    def test_builds_scenario(self, scenario):
        tree = Tree.from_arrays(
            [4, 4, 5, 5, 6, 6, -1],
            distance=[1, 1, 1, 1, 1, 1, 0],
            names=["A", "B", "C", "D", "", "", ""],
        )
        assert tree.to_newick() == scenario.to_newick()

    def test_none_distance_is_absent(self):
        tree = Tree.from_arrays([2, 2, -1], distance=[None, 1.5, None], names=["x", "y", ""])
        assert tree.to_newick() == "(x,y:1.5);"

    def test_two_roots(self):
        with pytest.raises(StructuralInvariantError):
            Tree.from_arrays([-1, -1])

    def test_no_root(self):
        with pytest.raises(StructuralInvariantError):
            Tree.from_arrays([1, 0])

    def test_cycle_below_root(self):
        # 0 is the root; 1 and 2 point at each other.
        with pytest.raises(StructuralInvariantError):
            Tree.from_arrays([-1, 2, 1])

    def test_out_of_range_parent(self):
        with pytest.raises(StructuralInvariantError):
            Tree.from_arrays([-1, 7])

    def test_self_parent(self):
        with pytest.raises(StructuralInvariantError):
            Tree.from_arrays([-1, 1])

    def test_negative_length(self):
        with pytest.raises(StructuralInvariantError):
            Tree.from_arrays([-1, 0], distance=[None, -2.0])

    def test_length_mismatch(self):
        with pytest.raises(StructuralInvariantError):
            Tree.from_arrays([-1, 0], names=["a"])

    def test_empty(self):
        with pytest.raises(StructuralInvariantError):
            Tree.from_arrays([])


# ======================================================================== #
# 2. Traversal and measurement                                              #
# ======================================================================== #


class TestTraversal:
    def test_ancestors(self, caterpillar):
        assert caterpillar.ancestors("E") == [5, 6, 7, 8]

    def test_ancestors_of_root(self, caterpillar):
        assert caterpillar.ancestors(8) == []

    def test_descendants(self, caterpillar):
        assert caterpillar.descendants(6) == [2, 5, 3, 4]

    def test_descendants_of_leaf(self, scenario):
        assert scenario.descendants("A") == []


class TestDepth:
    @pytest.mark.parametrize(
        "node,expected",
        [("A", 0.6), ("B", 0.7), ("C", 0.9), ("D", 1.0), (4, 0.5), (5, 0.6), (6, 0.0)],
    )
    def test_depth(self, balanced, node, expected):
        assert balanced.depth(node) == pytest.approx(expected)

    def test_depths_match_depth(self, caterpillar):
        depths = caterpillar.depths()
        for u in caterpillar.nodes():
            assert depths[u] == pytest.approx(caterpillar.depth(u))

    def test_height(self, caterpillar):
        assert caterpillar.height() == pytest.approx(4.0)

    def test_root_length_not_counted(self, scenario):
        assert scenario.depth(6) == 0.0
        assert scenario.height() == pytest.approx(2.0)

    def test_absent_lengths_count_as_zero(self):
        tree = Tree("((A,B:2):1,C);")
        assert tree.depth("A") == pytest.approx(1.0)
        assert tree.depth("B") == pytest.approx(3.0)
        assert tree.depth("C") == 0.0


class TestCommonAncestor:
    def test_sisters(self, scenario):
        assert scenario.common_ancestor("A", "B") == 4

    def test_across_root(self, scenario):
        assert scenario.common_ancestor("A", "D") == 6

    def test_node_is_own_ancestor(self, caterpillar):
        assert caterpillar.common_ancestor(6, "E") == 6
        assert caterpillar.common_ancestor("E", 6) == 6

    def test_same_node(self, scenario):
        assert scenario.common_ancestor("C", "C") == 2


class TestPathDistance:
    def test_same_node(self, balanced):
        assert balanced.path_distance("A", "A") == 0.0

    def test_sisters(self, balanced):
        assert balanced.path_distance("A", "B") == pytest.approx(0.3)

    def test_across_root(self, balanced):
        assert balanced.path_distance("A", "D") == pytest.approx(0.1 + 0.5 + 0.6 + 0.4)

    def test_symmetry(self, caterpillar):
        for a, b in itertools.combinations(caterpillar.leaf_labels(), 2):
            assert caterpillar.path_distance(a, b) == caterpillar.path_distance(b, a)

    def test_caterpillar_extremes(self, caterpillar):
        assert caterpillar.path_distance("A", "E") == pytest.approx(5.0)
        assert caterpillar.path_distance("D", "E") == pytest.approx(2.0)

    def test_triangle_inequality(self, balanced):
        labels = balanced.leaf_labels()
        for a, b, c in itertools.permutations(labels, 3):
            ab = balanced.path_distance(a, b)
            bc = balanced.path_distance(b, c)
            ac = balanced.path_distance(a, c)
            assert ac <= ab + bc + 1e-12


class TestTotalLength:
    def test_scenario(self, scenario):
        assert scenario.total_length() == pytest.approx(6.0)

    def test_balanced(self, balanced):
        assert math.isclose(balanced.total_length(), 2.1)

    def test_strip_branch_lengths(self, balanced):
        tree = balanced.copy()
        tree.strip_branch_lengths()
        assert tree.total_length() == 0.0
        assert tree.to_newick() == "((A,B)0.95,(C,D)0.87);"


# ======================================================================== #
# 3. Lookup                                                                 #
# ======================================================================== #


class TestLookup:
    def test_find_by_label(self, scenario):
        assert scenario.find_by_label("C") == 2

    def test_missing_label(self, scenario):
        with pytest.raises(NotFoundError, match="'Z'"):
            scenario.find_by_label("Z")

    def test_not_found_is_key_error(self, scenario):
        with pytest.raises(KeyError):
            scenario.find_by_label("Z")

    def test_first_match_in_preorder(self):
        tree = Tree("((X:1,Y:1):1,X:5);")
        # Pre-order visits the first X (ID 0) before the second (ID 2).
        assert tree.find_by_label("X") == 0

    def test_find_by_stable_id(self, scenario):
        assert scenario.find_by_stable_id(5) == 5
        assert scenario.find_by_stable_id(np.int64(3)) == 3

    @pytest.mark.parametrize("bad", [-1, 7, 100])
    def test_missing_id(self, scenario, bad):
        with pytest.raises(NotFoundError):
            scenario.find_by_stable_id(bad)

    def test_removed_id(self, scenario):
        tree = scenario.copy()
        tree.detach(1)
        tree.discard(1)
        with pytest.raises(NotFoundError):
            tree.find_by_stable_id(1)


# ======================================================================== #
# 4. Mutation primitives                                                    #
# ======================================================================== #


class TestMutation:
    def test_add_node_grows_capacity(self, scenario):
        tree = scenario.copy()
        ids = [tree.add_node(name=f"n{i}") for i in range(20)]
        assert ids == list(range(7, 27))
        assert tree.parent.shape[0] >= 27
        assert tree.names[26] == "n19"

    def test_ids_never_reused(self, scenario):
        tree = scenario.copy()
        tree.detach(3)
        tree.discard(3)
        assert tree.add_node() == 7

    def test_attach_detach_position(self, scenario):
        tree = scenario.copy()
        pos = tree.detach(0)
        assert pos == 0
        assert tree.children[4] == [1]
        tree.attach(0, 4, pos)
        assert tree.children[4] == [0, 1]
        tree.validate()

    def test_attach_requires_detached(self, scenario):
        tree = scenario.copy()
        with pytest.raises(StructuralInvariantError):
            tree.attach(0, 5)

    def test_attach_root_rejected(self, scenario):
        tree = scenario.copy()
        with pytest.raises(StructuralInvariantError):
            tree.attach(tree.root, 0)

    def test_detach_root_rejected(self, scenario):
        tree = scenario.copy()
        with pytest.raises(StructuralInvariantError):
            tree.detach(tree.root)

    def test_discard_subtree(self, scenario):
        tree = scenario.copy()
        tree.detach(5)
        assert tree.discard(5) == 3
        assert not tree.alive[[2, 3, 5]].any()
        assert tree.leaf_labels() == ["A", "B"]

    def test_discard_attached_rejected(self, scenario):
        tree = scenario.copy()
        with pytest.raises(StructuralInvariantError):
            tree.discard(5)

    def test_set_root_drops_length(self, scenario):
        tree = scenario.copy()
        tree.detach(4)
        tree.discard(tree.root)
        tree.set_root(4)
        assert tree.root == 4
        assert tree.to_newick() == "(A:1,B:1);"

    def test_validate_detects_orphan(self, scenario):
        tree = scenario.copy()
        tree.detach(0)
        with pytest.raises(StructuralInvariantError, match="unreachable"):
            tree.validate()

    def test_validate_detects_shared_child(self, scenario):
        tree = scenario.copy()
        tree.children[5].append(0)
        with pytest.raises(StructuralInvariantError):
            tree.validate()


class TestCopy:
    def test_independent(self, scenario):
        tree = scenario.copy()
        tree.detach(0)
        tree.discard(0)
        assert scenario.n_leaves == 4
        assert scenario.children[4] == [0, 1]

    def test_preserves_ids(self, balanced):
        tree = balanced.copy()
        assert tree.nodes() == balanced.nodes()
        assert tree.names == balanced.names
