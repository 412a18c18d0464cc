"""
_cpu_kernels.py
===============
CPU-accelerated pairwise leaf distance kernel using Numba.

This module contains ONLY numba-accelerated code and should not import other
project modules to avoid import-time complications.

Exported Functions
------------------
_pairwise_distance_njit : njit function
    Parallel half-matrix of leaf-to-leaf path distances.

Notes
-----
- The outer loop runs in parallel via prange.
- cache=True persists the compiled binary to disk for faster subsequent runs.
"""

from numba import njit, prange


@njit(parallel=True, cache=True)
def _pairwise_distance_njit(leaf_ids, parent, edge_depth, root_distance, out):
    """
    Fill *out* with path distances between every pair of *leaf_ids*.

    The common ancestor of a pair is found by first lifting the deeper node
    to the edge depth of the shallower one, then lifting both together until
    they meet.  The distance follows from the root-distance identity:

        dist(u, v) = rd[u] + rd[v] - 2 * rd[LCA(u, v)]

    Parameters
    ----------
    leaf_ids : int64[m]
        Arena node IDs of the leaves, in output order.
    parent : int32[capacity]
        Arena parent array (-1 for the root).
    edge_depth : int32[capacity]
        Number of edges from the root to each node.
    root_distance : float64[capacity]
        Sum of branch lengths from the root to each node.
    out : float64[m, m]
        Output matrix; written symmetrically, diagonal set to 0.

    Notes
    -----
    Thread ``i`` writes cells ``(i, j)`` and ``(j, i)`` for ``j > i`` only,
    so no two threads touch the same cell and no atomics are needed.
    """
    m = leaf_ids.shape[0]
    for i in prange(m):
        a = leaf_ids[i]
        out[i, i] = 0.0
        for j in range(i + 1, m):
            b = leaf_ids[j]
            u = a
            v = b
            while edge_depth[u] > edge_depth[v]:
                u = parent[u]
            while edge_depth[v] > edge_depth[u]:
                v = parent[v]
            while u != v:
                u = parent[u]
                v = parent[v]
            d = root_distance[a] + root_distance[b] - 2.0 * root_distance[u]
            out[i, j] = d
            out[j, i] = d
