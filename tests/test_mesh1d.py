from pathlib import Path

import numpy as np
import meshio
import pytest

from mesh1d.mesh1d import Mesh1D


def test_from_coordinates_chain():
    mesh = Mesh1D.from_coordinates([0.0, 0.5, 2.0])
    assert mesh.dimension() == 1
    assert mesh.active_element_count() == 2
    assert mesh.n_nodes == 3

    first, second = list(mesh.active_elements())
    assert first.neighbor(0) is None
    assert first.neighbor(1) is second
    assert second.neighbor(0) is first
    assert second.neighbor(1) is None
    assert [second.local_to_global_node_id(i) for i in range(second.node_count())] == [1, 2]
    assert mesh.coordinate(2) == 2.0


def test_reversed_cells_are_oriented_left_to_right():
    points = np.array([[0.0, 0, 0], [1.0, 0, 0], [2.0, 0, 0]])
    mesh = Mesh1D(meshio.Mesh(points=points, cells=[("line", np.array([[2, 1], [1, 0]]))]))

    upper, lower = list(mesh.active_elements())
    assert upper.nodes == (1, 2)
    assert lower.nodes == (0, 1)
    assert upper.neighbor(0) is lower
    assert lower.neighbor(1) is upper


def test_inactive_cells_are_skipped():
    # parent cell [0, 2] refined into [0, 1] and [1, 2]
    points = np.array([[0.0, 0, 0], [2.0, 0, 0], [1.0, 0, 0]])
    cells = [("line", np.array([[0, 1], [0, 2], [2, 1]]))]
    mesh = Mesh1D(meshio.Mesh(points=points, cells=cells, cell_data={"active": [np.array([0, 1, 1])]}))

    assert mesh.active_element_count() == 2
    assert [e.nodes for e in mesh.active_elements()] == [(0, 2), (2, 1)]


def test_quadratic_line_keeps_midpoint():
    points = np.array([[0.0, 0, 0], [0.5, 0, 0], [1.0, 0, 0]])
    mesh = Mesh1D(meshio.Mesh(points=points, cells=[("line3", np.array([[2, 0, 1]]))]))

    (elem,) = list(mesh.active_elements())
    assert elem.node_count() == 3
    assert elem.nodes == (0, 2, 1)


def test_overlapping_cells_rejected():
    points = np.array([[0.0, 0, 0], [1.0, 0, 0], [2.0, 0, 0]])
    with pytest.raises(ValueError, match="non-conforming"):
        Mesh1D(meshio.Mesh(points=points, cells=[("line", np.array([[0, 1], [1, 2], [2, 0]]))]))


def test_dimension_from_cell_types():
    points = np.array([[0.0, 0, 0], [1.0, 0, 0], [0.0, 1.0, 0]])
    cells = [("line", np.array([[0, 1]])), ("triangle", np.array([[0, 1, 2]]))]
    mesh = Mesh1D(meshio.Mesh(points=points, cells=cells))
    assert mesh.dimension() == 2
    assert mesh.active_element_count() == 1


def test_coordinate_out_of_range():
    mesh = Mesh1D.from_coordinates([0.0, 1.0])
    with pytest.raises(IndexError):
        mesh.coordinate(2)
    with pytest.raises(IndexError):
        mesh.coordinate(-1)


def test_point_data_columns():
    mesh = Mesh1D.from_coordinates(
        [0.0, 1.0],
        point_data={
            "u": [1.0, 2.0],
            "id": [10, 11],
            "flux": [[0.1, 0.2], [0.3, 0.4]],
        },
    )
    values, names = mesh.point_data_columns()
    assert names == ["flux_0", "flux_1", "u"]
    np.testing.assert_allclose(values, [0.1, 0.2, 1.0, 0.3, 0.4, 2.0])

    values, names = mesh.point_data_columns(["u"])
    assert names == ["u"]
    np.testing.assert_allclose(values, [1.0, 2.0])

    with pytest.raises(KeyError):
        mesh.point_data_columns(["T"])


def test_mesh_from_file(tmp_path: Path):
    path = tmp_path / "bar.vtu"
    points = np.array([[1.0, 0, 0], [0.0, 0, 0], [2.0, 0, 0]])
    meshio.write(path, meshio.Mesh(points=points, cells=[("line", np.array([[1, 0], [0, 2]]))]))

    mesh = Mesh1D(meshio.read(path))
    assert mesh.dimension() == 1
    assert [e.nodes for e in mesh.active_elements()] == [(1, 0), (0, 2)]


def test_line_mesh_along_y_rejected():
    points = np.array([[0.0, 0.0, 0], [0.0, 1.0, 0], [0.0, 2.0, 0]])
    with pytest.raises(ValueError, match="other than x"):
        Mesh1D(meshio.Mesh(points=points, cells=[("line", np.array([[0, 1], [1, 2]]))]))


def test_constant_offset_in_y_accepted():
    points = np.array([[0.0, 5.0, -1.0], [1.0, 5.0, -1.0]])
    mesh = Mesh1D(meshio.Mesh(points=points, cells=[("line", np.array([[0, 1]]))]))
    assert mesh.active_element_count() == 1
    assert mesh.coordinate(1) == 1.0
