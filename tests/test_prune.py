"""
tests/test_prune.py
===================
Pytest test suite for restrict / delete / collapse_unary.

Scenario tree (tests/trees/scenario_4leaf.tree)
-----------------------------------------------
    ((A:1,B:1):1,(C:1,D:1):1):0;

    Node IDs: A=0  B=1  C=2  D=3  AB=4  CD=5  root=6

Properties checked
------------------
* After restrict, the leaves are exactly the seed leaves plus every leaf
  below an internal seed.
* Every pair of retained leaves keeps its path distance.
* No non-root node is left with a single child.
* collapse_unary is idempotent.
"""

import itertools
import logging
import os
import sys

import pytest

_TREES_DIR = os.path.join(os.path.dirname(__file__), "trees")

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from kirimo._errors import InvalidArgumentError
from kirimo._prune import collapse_unary, delete, keep_set, restrict
from kirimo._tree import Tree


def load_tree(filename: str) -> Tree:
    with open(os.path.join(_TREES_DIR, filename)) as fh:
        return Tree(fh.read().strip())


def leaf_distances(tree: Tree) -> dict:
    """``{(label_a, label_b): distance}`` over all leaf pairs."""
    labels = tree.leaf_labels()
    return {
        (a, b): tree.path_distance(a, b)
        for a, b in itertools.combinations(sorted(labels), 2)
    }


def assert_no_unary(tree: Tree) -> None:
    for u in tree.nodes():
        if u != tree.root:
            assert len(tree.children[u]) != 1, f"node {u} has a single child"


# Trees re-read for every test: restrict mutates in place.
@pytest.fixture
def scenario():
    return load_tree("scenario_4leaf.tree")


@pytest.fixture
def multifurcating():
    """((A:1,B:2,C:3,D:4)X:1,(E:1,F:1,G:1):2,H:5)"""
    return load_tree("multifurcating_8leaf.tree")


@pytest.fixture
def caterpillar():
    return load_tree("caterpillar_5leaf.tree")


# ======================================================================== #
# keep_set                                                                  #
# ======================================================================== #


class TestKeepSet:
    def test_leaf_seed(self, scenario):
        assert keep_set(scenario, [0]) == {0, 4, 6}

    def test_internal_seed(self, scenario):
        assert keep_set(scenario, [5]) == {5, 2, 3, 6}

    def test_union(self, scenario):
        assert keep_set(scenario, [0, 2]) == {0, 2, 4, 5, 6}

    def test_seed_below_another_seed(self, scenario):
        assert keep_set(scenario, [0, 4]) == {0, 1, 4, 6}


# ======================================================================== #
# restrict                                                                  #
# ======================================================================== #


class TestRestrict:
    def test_scenario_a_c(self, scenario):
        restrict(scenario, ["A", "C"])
        assert scenario.to_newick() == "(A:2,C:2):0;"

    def test_returns_same_tree(self, scenario):
        assert restrict(scenario, ["A", "B"]) is scenario

    def test_sister_pair_drops_other_clade(self, scenario):
        restrict(scenario, ["A", "B"])
        # Root lost CD and was left unary; AB takes its place and its length
        # is dropped.
        assert scenario.to_newick() == "(A:1,B:1);"
        assert scenario.root == 4

    def test_internal_seed_keeps_subtree(self, multifurcating):
        restrict(multifurcating, ["X", "H"])
        assert sorted(multifurcating.leaf_labels()) == ["A", "B", "C", "D", "H"]

    def test_single_leaf(self, scenario):
        restrict(scenario, ["D"])
        assert scenario.to_newick() == "D;"
        assert scenario.n_nodes == 1

    def test_leaf_ids_stable(self, caterpillar):
        restrict(caterpillar, ["B", "E"])
        assert caterpillar.find_by_label("B") == 1
        assert caterpillar.find_by_label("E") == 4

    def test_by_node_id(self, scenario):
        restrict(scenario, [0, 3])
        assert scenario.leaf_labels() == ["A", "D"]

    @pytest.mark.parametrize(
        "seeds",
        [
            ["A", "C"],
            ["B", "E", "H"],
            ["A", "D", "G"],
            ["E", "F"],
            ["C", "H", "F", "A"],
        ],
    )
    def test_distances_preserved(self, multifurcating, seeds):
        before = leaf_distances(multifurcating)
        restrict(multifurcating, seeds)
        after = leaf_distances(multifurcating)
        assert set(multifurcating.leaf_labels()) == set(seeds)
        for pair, d in after.items():
            assert d == pytest.approx(before[pair])

    def test_no_unary_nodes_left(self, caterpillar):
        restrict(caterpillar, ["A", "C", "E"])
        assert_no_unary(caterpillar)
        caterpillar.validate()

    def test_missing_seed_is_skipped(self, scenario, caplog):
        with caplog.at_level(logging.WARNING, logger="kirimo"):
            restrict(scenario, ["A", "nope", "C"])
        assert scenario.to_newick() == "(A:2,C:2):0;"
        assert "nope" in caplog.text

    def test_no_seed_found(self, scenario):
        with pytest.raises(InvalidArgumentError):
            restrict(scenario, ["x", "y"])

    def test_absent_lengths_stay_absent(self):
        tree = Tree("((A,B),(C,D));")
        restrict(tree, ["A", "C"])
        assert tree.to_newick() == "(A,C);"


# ======================================================================== #
# delete                                                                    #
# ======================================================================== #


class TestDelete:
    def test_delete_one(self, scenario):
        delete(scenario, ["B"])
        assert scenario.to_newick() == "(A:2,(C:1,D:1):1):0;"

    def test_delete_clade(self, scenario):
        delete(scenario, ["C", "D"])
        assert scenario.to_newick() == "(A:1,B:1);"

    def test_delete_missing_label(self, scenario, caplog):
        with caplog.at_level(logging.WARNING, logger="kirimo"):
            delete(scenario, ["Q"])
        assert scenario.n_leaves == 4
        assert "Q" in caplog.text

    def test_delete_everything(self, scenario):
        with pytest.raises(InvalidArgumentError):
            delete(scenario, ["A", "B", "C", "D"])


# ======================================================================== #
# collapse_unary                                                            #
# ======================================================================== #


class TestCollapseUnary:
    def test_chain_merged(self):
        tree = Tree("(((A:1):2):3,B:1);")
        assert collapse_unary(tree) == 2
        assert tree.to_newick() == "(A:6,B:1);"

    def test_unary_root_promoted(self):
        tree = Tree("((A:1,B:1):4);")
        assert collapse_unary(tree) == 1
        assert tree.to_newick() == "(A:1,B:1);"

    def test_idempotent(self, multifurcating):
        restrict(multifurcating, ["A", "E", "H"])
        snapshot = multifurcating.to_newick()
        assert collapse_unary(multifurcating) == 0
        assert multifurcating.to_newick() == snapshot

    def test_bifurcating_untouched(self, scenario):
        assert collapse_unary(scenario) == 0
        assert scenario.to_newick() == "((A:1,B:1):1,(C:1,D:1):1):0;"
