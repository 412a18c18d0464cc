"""
_tree.py
========
A single rooted phylogenetic tree stored as an arena of nodes: parallel
numpy arrays indexed by integer node ID, plus one Python list of child IDs
per node.

Public API
----------
  Tree(newick_string)
      Constructor.  Parses the NEWICK string and builds the arena.
  Tree.from_arrays(parent, distance=None, names=None, support=None)
      Build from a parent array, checking the tree invariants.

  .nodes() / .leaves() / .is_leaf(u)
  .ancestors(u) / .descendants(u)
  .depth(u) / .height() / .path_distance(u, v) / .common_ancestor(u, v)
  .find_by_label(name) / .find_by_stable_id(i)
  .leaf_labels() / .total_length() / .strip_branch_lengths()
  .validate() / .copy() / .to_newick(precision=10)

Arena notes
-----------
* A node ID is assigned once, when the node is created, and never reused.
  It is the stable identity of the node across every mutation; labels are
  not (they may repeat or be empty).
* Removing a node only clears its ``alive`` flag and its links.  The array
  slots stay in place so the IDs of the surviving nodes do not shift.
* Structural edits (``attach``, ``detach``, ``discard``) are index
  rewrites; nothing holds a Python reference to another node.
* Derived views (``nodes()``, ``leaves()``, ``n_nodes``, ``n_leaves``) are
  recomputed from the root on every call; none of them is cached, because
  the pruning and topology operations change the shape in place.
* Every traversal is an explicit stack loop, so very unbalanced trees do
  not hit the interpreter recursion limit.
"""

import logging

import numpy as np

from kirimo._errors import NotFoundError, StructuralInvariantError
from kirimo._newick import parse_newick, format_newick_tree

logger = logging.getLogger(__name__)


class Tree:
    """
    A rooted phylogenetic tree with ordered, possibly multifurcating children.

    Attributes
    ----------
    root     : int         Node ID of the root.
    names    : list[str]   Label for each node ID; '' when unset.
    children : list[list[int]]  Owned child IDs for each node ID.

    Arrays (indexed by node ID, length = capacity)
    ----------------------------------------------
    parent   : int32   Parent ID; -1 for the root and for removed nodes.
    distance : float64 Branch length to parent; -1.0 means absent.
    support  : float64 Support value; -1.0 means absent.
    alive    : bool    False once a node has been removed.
    """

    # ================================================================== #
    # Construction                                                         #
    # ================================================================== #

    def __init__(self, newick_string: str) -> None:
        """
        Parse *newick_string* and build the node arena.

        Parameters
        ----------
        newick_string : str
            A NEWICK-formatted tree string (trailing ';' optional).
        """
        parsed = parse_newick(newick_string)
        self._set_arrays(
            parsed["parent"],
            parsed["distance"],
            parsed["support"],
            parsed["names"],
            parsed["children"],
            parsed["root"],
        )

    @classmethod
    def from_arrays(cls, parent, distance=None, names=None, support=None):
        """
        Build a tree from a parent array.

        Parameters
        ----------
        parent   : sequence of int      Parent ID per node, -1 for the root.
        distance : sequence of float    Branch lengths; -1.0 or None = absent.
        names    : sequence of str      Labels; defaults to ''.
        support  : sequence of float    Support values; -1.0 = absent.

        Raises
        ------
        StructuralInvariantError
            If there is not exactly one root, a parent ID is out of range,
            or the parent links contain a cycle.
        """
        parent = np.asarray(parent, dtype=np.int32)
        n = int(parent.shape[0])
        if n == 0:
            raise StructuralInvariantError("A tree needs at least one node.")

        if distance is None:
            distance = np.full(n, -1.0, dtype=np.float64)
        else:
            distance = np.array(
                [-1.0 if d is None else float(d) for d in distance],
                dtype=np.float64,
            )
        if support is None:
            support = np.full(n, -1.0, dtype=np.float64)
        else:
            support = np.asarray(support, dtype=np.float64).copy()
        names = [""] * n if names is None else [str(x) for x in names]

        if distance.shape[0] != n or support.shape[0] != n or len(names) != n:
            raise StructuralInvariantError(
                "parent, distance, names and support must have the same length."
            )
        if np.any((distance < 0.0) & (distance != -1.0)):
            bad = int(np.flatnonzero((distance < 0.0) & (distance != -1.0))[0])
            raise StructuralInvariantError(
                f"Negative branch length {distance[bad]} at node {bad}."
            )

        roots = np.flatnonzero(parent == -1)
        if roots.shape[0] != 1:
            raise StructuralInvariantError(
                f"Expected exactly one root, found {roots.shape[0]}."
            )
        children = [[] for _ in range(n)]
        for u in range(n):
            p = int(parent[u])
            if p == -1:
                continue
            if p < 0 or p >= n or p == u:
                raise StructuralInvariantError(
                    f"Node {u} has invalid parent ID {p}."
                )
            children[p].append(u)

        tree = cls.__new__(cls)
        tree._set_arrays(parent, distance, support, names, children, int(roots[0]))
        tree.validate()
        return tree

    def _set_arrays(self, parent, distance, support, names, children, root) -> None:
        """**Private.**  Install arena arrays (all nodes live)."""
        n = int(parent.shape[0])
        self.parent = parent
        self.distance = distance
        self.support = support
        self.names = names
        self.children = children
        self.alive = np.ones(n, dtype=bool)
        self.root = root
        self._n_alloc = n

    # ================================================================== #
    # Derived views                                                        #
    # ================================================================== #

    def nodes(self) -> list:
        """Return every live node ID in pre-order (root first)."""
        order = []
        stack = [self.root]
        while stack:
            u = stack.pop()
            order.append(u)
            stack.extend(reversed(self.children[u]))
        return order

    def leaves(self) -> list:
        """Return the leaf node IDs in pre-order."""
        return [u for u in self.nodes() if not self.children[u]]

    def is_leaf(self, u) -> bool:
        return not self.children[self._resolve_node(u)]

    @property
    def n_nodes(self) -> int:
        return len(self.nodes())

    @property
    def n_leaves(self) -> int:
        return len(self.leaves())

    def leaf_labels(self) -> list:
        """Return leaf labels in pre-order."""
        return [self.names[u] for u in self.leaves()]

    def __len__(self) -> int:
        return self.n_nodes

    def __repr__(self) -> str:
        return f"Tree(n_nodes={self.n_nodes}, n_leaves={self.n_leaves}, root={self.root})"

    # ================================================================== #
    # Primitive traversals and measurements                                #
    # ================================================================== #

    def ancestors(self, u) -> list:
        """Return ancestors of *u* ordered from its parent up to the root."""
        u = self._resolve_node(u)
        out = []
        p = int(self.parent[u])
        while p != -1:
            out.append(p)
            p = int(self.parent[p])
        return out

    def descendants(self, u) -> list:
        """Return every node below *u* (excluding *u*) in pre-order."""
        u = self._resolve_node(u)
        out = []
        stack = list(reversed(self.children[u]))
        while stack:
            v = stack.pop()
            out.append(v)
            stack.extend(reversed(self.children[v]))
        return out

    def branch_length(self, u) -> float:
        """Branch length from *u* to its parent, absent counted as 0.0."""
        d = float(self.distance[u])
        return d if d > 0.0 else 0.0

    def depth(self, u) -> float:
        """Sum of branch lengths from the root down to *u*."""
        u = self._resolve_node(u)
        total = 0.0
        while u != self.root:
            total += self.branch_length(u)
            u = int(self.parent[u])
        return total

    def depths(self) -> dict:
        """Return ``{node_id: depth}`` for every live node in one pass."""
        out = {self.root: 0.0}
        for u in self.nodes():
            for v in self.children[u]:
                out[v] = out[u] + self.branch_length(v)
        return out

    def height(self) -> float:
        """Maximum depth over all nodes."""
        return max(self.depths().values())

    def common_ancestor(self, u, v) -> int:
        """
        Return the nearest node that is an ancestor of (or equal to) both
        *u* and *v*.

        The ancestor chain of *u* is collected into a set; the chain of *v*
        is then walked upward until it reaches a member of that set.
        """
        u = self._resolve_node(u)
        v = self._resolve_node(v)
        seen = {u}
        seen.update(self.ancestors(u))
        w = v
        while w not in seen:
            w = int(self.parent[w])
            if w == -1:
                raise StructuralInvariantError(
                    f"Nodes {u} and {v} do not share a root."
                )
        return w

    def path_distance(self, u, v) -> float:
        """Sum of branch lengths on the path between *u* and *v*."""
        u = self._resolve_node(u)
        v = self._resolve_node(v)
        if u == v:
            return 0.0
        w = self.common_ancestor(u, v)
        total = 0.0
        for x in (u, v):
            while x != w:
                total += self.branch_length(x)
                x = int(self.parent[x])
        return total

    def total_length(self) -> float:
        """Sum of all branch lengths (the root's own length excluded)."""
        return sum(self.branch_length(u) for u in self.nodes() if u != self.root)

    # ================================================================== #
    # Lookup                                                               #
    # ================================================================== #

    def find_by_label(self, name: str) -> int:
        """
        Return the first node in pre-order whose label is *name*.

        Labels are not required to be unique; later matches are ignored.

        Raises
        ------
        NotFoundError   if no live node carries the label.
        """
        for u in self.nodes():
            if self.names[u] == name:
                return u
        raise NotFoundError(f"No node with label '{name}' found in tree.")

    def find_by_stable_id(self, node_id) -> int:
        """
        Return *node_id* if it names a live node.

        Raises
        ------
        NotFoundError   if the ID was never allocated or has been removed.
        """
        i = int(node_id)
        if i < 0 or i >= self._n_alloc or not self.alive[i]:
            raise NotFoundError(f"No live node with ID {i} in tree.")
        return i

    def _resolve_node(self, node) -> int:
        """
        **Private.**  Return the integer node ID for *node*.

        Integers (including numpy integers) are checked with
        ``find_by_stable_id``; strings go through ``find_by_label``.
        """
        if isinstance(node, (int, np.integer)):
            return self.find_by_stable_id(node)
        return self.find_by_label(node)

    # ================================================================== #
    # Mutation primitives                                                  #
    # ================================================================== #

    def add_node(self, name: str = "", distance: float = -1.0, support: float = -1.0) -> int:
        """
        Allocate a new, detached node and return its ID.

        The arrays grow geometrically; existing IDs are unaffected.
        """
        if self._n_alloc == self.parent.shape[0]:
            self._grow(max(8, self._n_alloc))
        u = self._n_alloc
        self._n_alloc += 1
        self.parent[u] = -1
        self.distance[u] = distance
        self.support[u] = support
        self.alive[u] = True
        self.names.append(name)
        self.children.append([])
        return u

    def _grow(self, extra: int) -> None:
        """**Private.**  Extend every per-node array by *extra* slots."""
        self.parent = np.concatenate(
            [self.parent, np.full(extra, -1, dtype=np.int32)]
        )
        self.distance = np.concatenate(
            [self.distance, np.full(extra, -1.0, dtype=np.float64)]
        )
        self.support = np.concatenate(
            [self.support, np.full(extra, -1.0, dtype=np.float64)]
        )
        self.alive = np.concatenate([self.alive, np.zeros(extra, dtype=bool)])
        # names and children are lists of length _n_alloc; add_node appends.

    def attach(self, child: int, parent: int, position: int = None) -> None:
        """Make *child* (currently detached) a child of *parent*."""
        if self.parent[child] != -1 or child == self.root:
            raise StructuralInvariantError(
                f"Node {child} is still attached; detach it first."
            )
        kids = self.children[parent]
        if position is None:
            kids.append(child)
        else:
            kids.insert(position, child)
        self.parent[child] = parent

    def detach(self, u: int) -> int:
        """
        Unlink *u* from its parent and return the position it occupied in
        the parent's child list.
        """
        p = int(self.parent[u])
        if p == -1:
            raise StructuralInvariantError(f"Node {u} has no parent to detach from.")
        pos = self.children[p].index(u)
        del self.children[p][pos]
        self.parent[u] = -1
        return pos

    def discard(self, u: int) -> int:
        """
        Mark *u* and its whole subtree as removed.  *u* must already be
        detached.  Returns the number of nodes removed.
        """
        if self.parent[u] != -1:
            raise StructuralInvariantError(f"Node {u} must be detached before discard.")
        stack = [u]
        count = 0
        while stack:
            v = stack.pop()
            stack.extend(self.children[v])
            self.children[v] = []
            self.parent[v] = -1
            self.alive[v] = False
            count += 1
        return count

    def set_root(self, u: int) -> None:
        """Make the detached node *u* the root; its branch length is dropped."""
        if self.parent[u] != -1:
            raise StructuralInvariantError(f"Node {u} is attached and cannot be the root.")
        self.root = u
        self.distance[u] = -1.0

    def strip_branch_lengths(self) -> None:
        """Mark every branch length as absent."""
        self.distance[: self._n_alloc] = -1.0

    # ================================================================== #
    # Integrity, copying, output                                           #
    # ================================================================== #

    def validate(self) -> None:
        """
        Check that the live nodes form a single tree rooted at ``root``.

        Raises
        ------
        StructuralInvariantError
            On a cycle, a shared child, a parent/child link mismatch, a
            negative branch length or a live node unreachable from the root.
        """
        if self.parent[self.root] != -1:
            raise StructuralInvariantError(f"Root {self.root} has a parent.")
        seen = np.zeros(self._n_alloc, dtype=bool)
        stack = [self.root]
        while stack:
            u = stack.pop()
            if seen[u]:
                raise StructuralInvariantError(
                    f"Node {u} is reached twice (cycle or shared child)."
                )
            seen[u] = True
            if not self.alive[u]:
                raise StructuralInvariantError(f"Removed node {u} is still linked.")
            for v in self.children[u]:
                if self.parent[v] != u:
                    raise StructuralInvariantError(
                        f"Node {v} is listed under {u} but its parent is "
                        f"{self.parent[v]}."
                    )
                if self.distance[v] < 0.0 and self.distance[v] != -1.0:
                    raise StructuralInvariantError(
                        f"Negative branch length at node {v}."
                    )
                stack.append(v)
        orphans = np.flatnonzero(self.alive[: self._n_alloc] & ~seen)
        if orphans.shape[0] > 0:
            raise StructuralInvariantError(
                f"{orphans.shape[0]} node(s) unreachable from the root "
                f"(first: {int(orphans[0])})."
            )

    def copy(self) -> "Tree":
        """Return an independent copy; node IDs are preserved."""
        other = Tree.__new__(Tree)
        other.parent = self.parent.copy()
        other.distance = self.distance.copy()
        other.support = self.support.copy()
        other.alive = self.alive.copy()
        other.names = list(self.names)
        other.children = [list(kids) for kids in self.children]
        other.root = self.root
        other._n_alloc = self._n_alloc
        return other

    def to_newick(self, precision: int = 10) -> str:
        """Serialise to a NEWICK string (see ``format_newick_tree``)."""
        return format_newick_tree(self, precision=precision)
