# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Science Solutions International Laboratory, Inc.
from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import meshio

# Topological dimension of meshio cell types
MESHIO_CELL_DIMENSION: Dict[str, int] = {
    "vertex": 0,
    "line": 1,
    "line3": 1,
    "triangle": 2,
    "triangle6": 2,
    "quad": 2,
    "quad8": 2,
    "tetra": 3,
    "tetra10": 3,
    "pyramid": 3,
    "pyramid13": 3,
    "wedge": 3,
    "wedge15": 3,
    "hexahedron": 3,
    "hexahedron20": 3,
}

# meshio orders the two end nodes first, so local nodes 0/1 are the element ends
LINE_TYPES = ("line", "line3")


class Edge:
    """Line element of a :class:`Mesh1D`, oriented so local node 0 is its left end."""

    def __init__(self, mesh: Mesh1D, index: int, nodes: Tuple[int, ...]):
        self._mesh = mesh
        self.index = index
        self.nodes = nodes

    def neighbor(self, side: int) -> Optional[Edge]:
        if side not in (0, 1):
            raise ValueError(f"A line element has sides 0 and 1, got {side}")
        return self._mesh._neighbor(self.index, side)

    def node_count(self) -> int:
        return len(self.nodes)

    def local_to_global_node_id(self, local_index: int) -> int:
        return self.nodes[local_index]

    def __repr__(self) -> str:
        return f"Edge({self.index}, nodes={self.nodes})"


class Mesh1D:
    """1D view of a ``meshio.Mesh`` made of ``line``/``line3`` cells.

    Coordinates are taken from the first column of ``mesh.points``. A cell_data
    array named ``active`` marks refined-away cells with 0; without it every
    cell is active. Elements are iterated in the mesh's own cell order.
    """

    def __init__(self, mesh: meshio.Mesh):
        self.mesh = mesh
        points = np.asarray(mesh.points, dtype=float)
        if points.ndim == 1:
            points = points.reshape(-1, 1)
        self._x = points[:, 0]

        # Normalize cells to list of (type, data)
        cells: List[Tuple[str, np.ndarray]] = []
        for block in mesh.cells:
            try:
                ctype = block.type
                cdata = block.data
            except AttributeError:
                ctype, cdata = block
            cells.append((ctype, np.asarray(cdata, dtype=int)))

        self._dimension = max((MESHIO_CELL_DIMENSION.get(ctype, 3) for ctype, _ in cells), default=1)

        # A line mesh is read along x only; y and z must not vary
        if self._dimension <= 1 and len(points) > 0:
            spread = np.ptp(points[:, 1:], axis=0) if points.shape[1] > 1 else np.zeros(0)
            if np.any(spread != 0):
                raise ValueError(
                    f"Line mesh varies along axes other than x (extent {spread.tolist()}); "
                    "only meshes laid out along x are supported"
                )

        active_blocks: List[np.ndarray] = []
        if isinstance(getattr(mesh, "cell_data", None), dict) and "active" in mesh.cell_data:
            active_blocks = [np.asarray(a).reshape(-1) for a in mesh.cell_data["active"]]

        self._elements: List[Edge] = []
        for bidx, (ctype, conn) in enumerate(cells):
            if ctype not in LINE_TYPES:
                continue
            flags = active_blocks[bidx] if bidx < len(active_blocks) else None
            if flags is not None and flags.size != len(conn):
                raise ValueError(f"cell_data 'active' of block {bidx} has {flags.size} entries for {len(conn)} cells")
            for eidx, e in enumerate(conn):
                if flags is not None and not flags[eidx]:
                    continue
                nodes = [int(n) for n in e]
                for n in nodes:
                    self._check_node(n)
                if self._x[nodes[0]] > self._x[nodes[1]]:
                    nodes[0], nodes[1] = nodes[1], nodes[0]
                self._elements.append(Edge(self, len(self._elements), tuple(nodes)))

        self._lower, self._upper = self._find_neighbors()

    def _check_node(self, node_id: int) -> None:
        if not 0 <= node_id < len(self._x):
            raise IndexError(f"Node id {node_id} out of range for {len(self._x)} points")

    def _find_neighbors(self) -> Tuple[List[Optional[int]], List[Optional[int]]]:
        # node id -> element having it as left / right end
        left_of: Dict[int, int] = {}
        right_of: Dict[int, int] = {}
        for elem in self._elements:
            left, right = elem.nodes[0], elem.nodes[1]
            if left in left_of or right in right_of:
                raise ValueError(
                    f"Element {elem.index} overlaps another element at node {left if left in left_of else right}; "
                    "non-conforming 1D meshes are not supported"
                )
            left_of[left] = elem.index
            right_of[right] = elem.index

        lower = [right_of.get(elem.nodes[0]) for elem in self._elements]
        upper = [left_of.get(elem.nodes[1]) for elem in self._elements]
        return lower, upper

    def _neighbor(self, index: int, side: int) -> Optional[Edge]:
        other = self._lower[index] if side == 0 else self._upper[index]
        return None if other is None else self._elements[other]

    def dimension(self) -> int:
        return self._dimension

    def active_element_count(self) -> int:
        return len(self._elements)

    def active_elements(self) -> Iterator[Edge]:
        return iter(self._elements)

    @property
    def n_nodes(self) -> int:
        return len(self._x)

    def coordinate(self, node_id: int) -> float:
        self._check_node(node_id)
        return float(self._x[node_id])

    def point_data_columns(self, names: Sequence[str] | None = None) -> Tuple[np.ndarray, List[str]]:
        """Pack point_data arrays into a flat node-major solution and its column names.

        Without ``names`` every point_data array except the node ``id`` is used,
        sorted by name. Multi-component arrays give one column per component,
        named ``<name>_<component>``.
        """
        point_data = dict(getattr(self.mesh, "point_data", None) or {})
        if names is None:
            names = sorted(k for k in point_data if k != "id")

        columns: List[np.ndarray] = []
        column_names: List[str] = []
        for name in names:
            if name not in point_data:
                raise KeyError(f"No point_data named {name!r}; available: {sorted(point_data)}")
            arr = np.asarray(point_data[name])
            if arr.shape[0] != self.n_nodes:
                raise ValueError(f"point_data {name!r} has {arr.shape[0]} rows for {self.n_nodes} points")
            arr = arr.reshape(self.n_nodes, -1)
            if arr.shape[1] == 1:
                columns.append(arr[:, 0])
                column_names.append(name)
            else:
                for c in range(arr.shape[1]):
                    columns.append(arr[:, c])
                    column_names.append(f"{name}_{c}")

        if not columns:
            return np.empty(0, dtype=float), []
        return np.column_stack(columns).reshape(-1), column_names

    @classmethod
    def from_coordinates(cls, xs: Sequence[float], point_data: Dict[str, Sequence] | None = None) -> Mesh1D:
        """Chain of linear elements through ``xs`` in the given order."""
        xs = np.asarray(xs, dtype=float).reshape(-1)
        points = np.zeros((xs.size, 3), dtype=float)
        points[:, 0] = xs
        cells = []
        if xs.size > 1:
            cells.append(("line", np.array([[i, i + 1] for i in range(xs.size - 1)], dtype=int)))
        point_data = {k: np.asarray(v) for k, v in (point_data or {}).items()}
        return cls(meshio.Mesh(points=points, cells=cells, point_data=point_data))
