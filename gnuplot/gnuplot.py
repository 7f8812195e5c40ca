# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Science Solutions International Laboratory, Inc.
from __future__ import annotations

import enum
import logging
import os
import time
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

import numpy as np

# gnuplot script + tab separated data file writer for 1D meshes and nodal solutions.
# Only the coordinating process writes; every process runs the mesh traversal.

logger = logging.getLogger(__name__)

DATA_SUFFIX = "_data"
PNG_SUFFIX = ".png"
DEFAULT_PRECISION = 6


class GnuPlotOption(enum.IntFlag):
    NONE = 0
    GRID_ON = 1  # x2tics at element boundaries plus a grid
    PNG_OUTPUT = 2  # png terminal instead of the interactive one


class GnuPlotError(Exception):
    """Base class of every error raised while exporting to gnuplot."""


class UnsupportedGeometryError(GnuPlotError, ValueError):
    pass


class MissingDataError(GnuPlotError, ValueError):
    pass


class EmptyMeshError(GnuPlotError, ValueError):
    pass


class DisconnectedMeshError(GnuPlotError, ValueError):
    pass


class SolutionIndexError(GnuPlotError, IndexError):
    pass


class GnuPlotFileError(GnuPlotError, OSError):
    pass


class ElementLike(Protocol):
    def neighbor(self, side: int) -> Optional["ElementLike"]: ...

    def node_count(self) -> int: ...

    def local_to_global_node_id(self, local_index: int) -> int: ...


class Mesh1DLike(Protocol):
    def dimension(self) -> int: ...

    def active_element_count(self) -> int: ...

    def active_elements(self) -> Iterable[ElementLike]: ...

    def coordinate(self, node_id: int) -> float: ...


class NodalSolution:
    """Flat nodal solution laid out as ``values[node_id * n_vars + var]``.

    Every access is bounds checked and raises :class:`SolutionIndexError`
    instead of reading past the end of the buffer.
    """

    def __init__(self, values: Sequence[complex] | np.ndarray, n_vars: int):
        if n_vars < 1:
            raise MissingDataError(f"A nodal solution needs at least one variable, got n_vars={n_vars}")
        self.values = np.asarray(values).reshape(-1)
        self.n_vars = int(n_vars)

    def __len__(self) -> int:
        return int(self.values.size)

    @property
    def n_nodes(self) -> int:
        return len(self) // self.n_vars

    def _offset(self, node_id: int, var: int) -> int:
        if not 0 <= var < self.n_vars:
            raise SolutionIndexError(f"Variable index {var} out of range for {self.n_vars} variable(s)")
        if node_id < 0:
            raise SolutionIndexError(f"Negative node id {node_id}")
        offset = node_id * self.n_vars + var
        if offset >= len(self):
            raise SolutionIndexError(
                f"Node {node_id}, variable {var} addresses entry {offset} "
                f"but the solution only holds {len(self)} values"
            )
        return offset

    def value_at(self, node_id: int, var: int):
        return self.values[self._offset(node_id, var)]

    def node_values(self, node_id: int) -> np.ndarray:
        start = self._offset(node_id, 0)
        self._offset(node_id, self.n_vars - 1)
        return self.values[start : start + self.n_vars]


def format_number(v, precision: int = DEFAULT_PRECISION) -> str:
    # Same text a default C++ ostream produces: %g, complex as (re,im)
    if np.iscomplexobj(v):
        return f"({format_number(v.real, precision)},{format_number(v.imag, precision)})"
    return f"{float(v):.{precision}g}"


def _quote(s: str) -> str:
    return '"' + str(s).replace("\\", "\\\\").replace('"', '\\"') + '"'


def scan_bounds(mesh: Mesh1DLike, precision: int = DEFAULT_PRECISION) -> Tuple[float, float, List[str]]:
    """First pass: domain extents and the x2tics entries at element boundaries.

    Extents are reduced over every boundary element, so the traversal order of
    the mesh does not matter. Tick entries follow traversal order.
    """
    lefts: List[float] = []
    rights: List[float] = []
    ticks: List[str] = []
    n_elem = 0
    for elem in mesh.active_elements():
        n_elem += 1
        x_right = float(mesh.coordinate(elem.local_to_global_node_id(1)))
        if elem.neighbor(0) is None:
            x_left = float(mesh.coordinate(elem.local_to_global_node_id(0)))
            lefts.append(x_left)
            ticks.append(f'"" {format_number(x_left, precision)}')
        if elem.neighbor(1) is None:
            rights.append(x_right)
        ticks.append(f'"" {format_number(x_right, precision)}')

    if n_elem != mesh.active_element_count():
        raise GnuPlotError(
            f"Traversed {n_elem} active elements but the mesh reports {mesh.active_element_count()}"
        )
    if n_elem == 0:
        raise EmptyMeshError("Mesh has no active elements; the plot range would be degenerate")
    if len(lefts) != 1 or len(rights) != 1:
        raise DisconnectedMeshError(
            f"Expected one left and one right boundary element, found {len(lefts)} and {len(rights)}"
        )

    x_min = min(lefts)
    x_max = max(rights)
    if not (np.isfinite(x_min) and np.isfinite(x_max)):
        raise UnsupportedGeometryError(f"Domain bounds are not finite: [{x_min}:{x_max}]")
    if not x_min < x_max:
        raise EmptyMeshError(f"Degenerate plot range [{x_min}:{x_max}]; the mesh has zero length in x")
    return x_min, x_max, ticks


def collect_nodal_values(mesh: Mesh1DLike, solution: NodalSolution) -> List[Tuple[float, int, np.ndarray]]:
    """Second pass: one (x, node id, values) entry per distinct node, ascending in x.

    Shared nodes are deduplicated by global node id; the coordinate only
    orders the rows.
    """
    table: Dict[int, np.ndarray] = {}
    for elem in mesh.active_elements():
        for i in range(elem.node_count()):
            nid = int(elem.local_to_global_node_id(i))
            table[nid] = solution.node_values(nid)

    rows = sorted((float(mesh.coordinate(nid)), nid, vals) for nid, vals in table.items())
    for (xa, ida, _), (xb, idb, _) in zip(rows, rows[1:]):
        if xa == xb:
            logger.warning(f"Distinct nodes {ida} and {idb} share coordinate x={xa}; both are written")
    return rows


class GnuPlotIO:
    """Write a 1D mesh and its nodal data as a gnuplot script plus data file.

    ``write_nodal_data("out.gp", soln, ["u"])`` creates ``out.gp`` and
    ``out.gp_data``; load the script in gnuplot with ``call 'out.gp'``.

    All processes of a distributed run must call the writer together since
    each of them traverses the mesh. Only the process for which
    ``is_coordinator()`` is true touches the file system.
    """

    def __init__(
        self,
        mesh: Mesh1DLike,
        title: str = "",
        options: GnuPlotOption | int = GnuPlotOption.NONE,
        is_coordinator: Optional[Callable[[], bool]] = None,
        precision: int = DEFAULT_PRECISION,
    ):
        self.mesh = mesh
        self.title = title
        options = GnuPlotOption(options)
        self.grid = bool(options & GnuPlotOption.GRID_ON)
        self.png_output = bool(options & GnuPlotOption.PNG_OUTPUT)
        self.is_coordinator = is_coordinator or (lambda: True)
        self.precision = precision

    def write(self, path: str | Path) -> None:
        """Geometry only: the script gets axes and ticks but no plot command, no data file is written."""
        self._write_solution(path)

    def write_nodal_data(
        self,
        path: str | Path,
        solution: NodalSolution | Sequence[complex] | np.ndarray | None,
        names: Sequence[str] | None,
    ) -> None:
        t0 = time.perf_counter()
        if names is None or len(names) == 0:
            raise MissingDataError("No variable names given for the nodal data export")
        if solution is None or len(solution) == 0:
            raise MissingDataError("No solution values given for the nodal data export")
        if not isinstance(solution, NodalSolution):
            solution = NodalSolution(solution, len(names))
        elif solution.n_vars != len(names):
            raise MissingDataError(f"Solution has {solution.n_vars} variable(s) but {len(names)} name(s) were given")

        self._write_solution(path, solution, list(names))
        logger.debug(f"write_nodal_data() took {time.perf_counter() - t0:.6f} s")

    def _write_solution(
        self,
        path: str | Path,
        solution: NodalSolution | None = None,
        names: List[str] | None = None,
    ) -> None:
        dim = self.mesh.dimension()
        if dim != 1:
            raise UnsupportedGeometryError(f"gnuplot export supports 1D meshes only, got dimension {dim}")

        x_min, x_max, ticks = scan_bounds(self.mesh, self.precision)
        rows = collect_nodal_values(self.mesh, solution) if solution is not None else None
        logger.debug(f"Domain [{x_min}:{x_max}], {len(ticks)} tick(s), {len(rows or ())} data row(s)")

        if not self.is_coordinator():
            logger.debug("Not the coordinating process; skipping gnuplot output")
            return

        fname = os.fspath(path)
        data_fname = fname + DATA_SUFFIX
        script = self._script(fname, data_fname, x_min, x_max, ticks, names)
        _write_text(Path(fname), script)
        if rows is not None:
            _write_text(Path(data_fname), self._data(rows))

    def _script(
        self,
        fname: str,
        data_fname: str,
        x_min: float,
        x_max: float,
        ticks: List[str],
        names: List[str] | None,
    ) -> str:
        out: List[str] = []
        out.append("# This file was generated by gnuplot_io\n")
        out.append("# Stores 1D solution data in GNUplot format\n")
        out.append(f"# Execute this by loading gnuplot and typing \"call '{fname}'\"\n")
        out.append("reset\n")
        out.append(f"set title {_quote(self.title)}\n")
        out.append('set xlabel "x"\n')
        out.append("set xtics nomirror\n")
        out.append(f"set xrange [{format_number(x_min, self.precision)}:{format_number(x_max, self.precision)}]\n")

        if self.grid:
            out.append("set x2tics (" + ", \\\n".join(ticks) + ")\n")
            out.append("set grid noxtics noytics x2tics\n")

        if self.png_output:
            out.append("set terminal png\n")
            out.append(f"set output {_quote(fname + PNG_SUFFIX)}\n")

        if names:
            clauses = [
                f"{_quote(data_fname)} using 1:{col} title {_quote(name)} with lines"
                for col, name in enumerate(names, start=2)
            ]
            out.append("plot " + ", \\\n".join(clauses) + "\n")
        return "".join(out)

    def _data(self, rows: List[Tuple[float, int, np.ndarray]]) -> str:
        out: List[str] = []
        for x, _, vals in rows:
            fields = [format_number(x, self.precision)]
            fields.extend(format_number(v, self.precision) for v in vals)
            out.append("\t".join(fields) + "\n")
        return "".join(out)


def _write_text(path: Path, text: str) -> None:
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise GnuPlotFileError(f"Could not write gnuplot file {path}: {e}") from e
    logger.info(f"Wrote {path}")


def write_gnuplot(
    path: str | Path,
    mesh: Mesh1DLike,
    solution: NodalSolution | Sequence[complex] | np.ndarray | None = None,
    names: Sequence[str] | None = None,
    title: str = "",
    options: GnuPlotOption | int = GnuPlotOption.NONE,
    is_coordinator: Optional[Callable[[], bool]] = None,
    precision: int = DEFAULT_PRECISION,
) -> None:
    """One-shot helper: nodal data export when ``names`` are given, geometry only otherwise."""
    writer = GnuPlotIO(mesh, title=title, options=options, is_coordinator=is_coordinator, precision=precision)
    if names is None and solution is None:
        writer.write(path)
    else:
        writer.write_nodal_data(path, solution, names)
