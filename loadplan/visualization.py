"""Plotly 3D scene of the cargo hold and placed containers.

Renderer coordinates are y-up with z running fore-aft; plotly's z is up, so
the scene maps renderer ``(x, y, z)`` to plotly ``(y, z, x)``.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

import plotly.graph_objects as go

from .aircraft import SCALE_FACTOR, get_aircraft_model
from .placement import container_color_for_weight
from .schemas import PlacedContainer, PlacementResult, Section

# Containers are drawn smaller than life so a full grid stays readable.
CONTAINER_DISPLAY_SCALE = 0.18

_BOX_EDGES = [(0, 1), (1, 2), (2, 3), (3, 0), (4, 5), (5, 6), (6, 7), (7, 4), (0, 4), (1, 5), (2, 6), (3, 7)]
_BOX_FACES = [
    (0, 1, 2), (0, 2, 3), (4, 5, 6), (4, 6, 7),
    (0, 1, 5), (0, 5, 4), (1, 2, 6), (1, 6, 5),
    (2, 3, 7), (2, 7, 6), (3, 0, 4), (3, 4, 7),
]

Vertex = Tuple[float, float, float]


def box_vertices(center: Vertex, size: Vertex) -> List[Vertex]:
    """Eight corners of an axis-aligned box in plotly axes.

    ``center`` and ``size`` are renderer-frame ``(x, y, z)`` tuples.
    """

    cx, cy, cz = center
    sx, sy, sz = (value / 2 for value in size)
    corners = []
    for dy in (-sy, sy):
        for dx, dz in ((-sx, -sz), (sx, -sz), (sx, sz), (-sx, sz)):
            corners.append((cz + dz, cx + dx, cy + dy))
    return corners


def _edge_trace(vertices: Sequence[Vertex], color: str, width: int = 2) -> go.Scatter3d:
    xs: List[object] = []
    ys: List[object] = []
    zs: List[object] = []
    for start, end in _BOX_EDGES:
        xs += [vertices[start][0], vertices[end][0], None]
        ys += [vertices[start][1], vertices[end][1], None]
        zs += [vertices[start][2], vertices[end][2], None]
    return go.Scatter3d(x=xs, y=ys, z=zs, mode="lines", line=dict(color=color, width=width), showlegend=False, hoverinfo="skip")


def _section_traces(section: Section) -> list:
    center = (
        section.position.x * SCALE_FACTOR,
        section.position.y * SCALE_FACTOR,
        section.position.z * SCALE_FACTOR,
    )
    size = (
        section.dimensions.width * SCALE_FACTOR,
        section.dimensions.height * SCALE_FACTOR,
        section.dimensions.depth * SCALE_FACTOR,
    )
    vertices = box_vertices(center, size)
    x, y, z = zip(*vertices)
    i, j, k = zip(*_BOX_FACES)
    return [
        go.Mesh3d(
            x=x, y=y, z=z, i=i, j=j, k=k,
            color=section.color or "lightblue",
            opacity=0.08,
            name=section.name,
            hovertext=f"{section.name} (max {section.max_weight:,.0f} kg)",
            hoverinfo="text",
        ),
        _edge_trace(vertices, section.color or "gray"),
    ]


def _container_traces(item: PlacedContainer) -> list:
    container = item.container
    center = (item.position.x, item.position.y, item.position.z)
    size = (
        container.width * CONTAINER_DISPLAY_SCALE,
        container.height * CONTAINER_DISPLAY_SCALE,
        container.depth * CONTAINER_DISPLAY_SCALE,
    )
    vertices = box_vertices(center, size)
    x, y, z = zip(*vertices)
    i, j, k = zip(*_BOX_FACES)
    color = container.color or container_color_for_weight(container.weight)
    return [
        go.Mesh3d(
            x=x, y=y, z=z, i=i, j=j, k=k,
            color=color,
            opacity=0.7,
            flatshading=True,
            lighting=dict(ambient=0.4, diffuse=0.6, specular=0.2, roughness=0.9),
            name=f"{container.name} ({item.section})",
            hovertext=f"{container.name}<br>{container.weight:,.0f} kg · {item.section}",
            hoverinfo="text",
        ),
        _edge_trace(vertices, "rgba(0,0,0,0.6)"),
    ]


def build_cargo_figure(placement: PlacementResult) -> go.Figure:
    """Hold sections as translucent boxes plus every placed container."""

    model = get_aircraft_model(placement.aircraft_type)
    fig = go.Figure()
    for section in model.sections:
        for trace in _section_traces(section):
            fig.add_trace(trace)
    for item in placement.placed_containers:
        for trace in _container_traces(item):
            fig.add_trace(trace)

    fig.update_layout(
        scene=dict(
            xaxis_title="Fore-aft",
            yaxis_title="Width",
            zaxis_title="Height",
            aspectmode="data",
        ),
        margin=dict(l=0, r=0, b=0, t=0),
        showlegend=False,
    )
    return fig
