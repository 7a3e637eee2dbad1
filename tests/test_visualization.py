import plotly.graph_objects as go

from loadplan.placement import build_container, generate_grid_placement
from loadplan.visualization import box_vertices, build_cargo_figure


def test_box_vertices_maps_renderer_axes_to_plotly():
    vertices = box_vertices((0, 0, 0), (2, 4, 6))

    assert len(vertices) == 8
    xs, ys, zs = zip(*vertices)
    assert (min(xs), max(xs)) == (-3, 3)
    assert (min(ys), max(ys)) == (-1, 1)
    assert (min(zs), max(zs)) == (-2, 2)


def test_build_cargo_figure_draws_sections_and_placed_containers_only():
    placement = generate_grid_placement(
        [build_container("LD3", 0, weight=1500), build_container("LD3", 1, weight=900)],
        "Boeing 737-800",
    )

    fig = build_cargo_figure(placement)

    meshes = [trace for trace in fig.data if isinstance(trace, go.Mesh3d)]
    assert [mesh.name for mesh in meshes] == ["Forward Hold", "Aft Hold", "LD3 Container #1 (fwd)"]
