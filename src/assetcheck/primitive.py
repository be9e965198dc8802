"""One analysis pass over a single drawable primitive."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from assetcheck.config import AnalysisConfig
from assetcheck.errors import InputShapeError
from assetcheck.islands import UvIsland, group_islands
from assetcheck.overlap import GutterProbe, detect_overlaps, probe_gutter
from assetcheck.topology import (
    Edge,
    MeshTriangle,
    UvTriangle,
    VertexStore,
    annotate_uv_edges,
    build_edges,
    classify_edges,
)


@dataclass
class PrimitiveBuffers:
    """Already-decoded buffers for one primitive.

    ``positions`` and ``uvs`` may be flat or shaped; they are normalized to
    ``(N, 3)`` and ``(N, 2)`` float64 arrays. ``indices`` is flattened to int64.

    Raises:
        InputShapeError: When the buffers are inconsistent with each other.
    """

    name: str
    indices: np.ndarray
    positions: np.ndarray
    uvs: np.ndarray | None = None

    def __post_init__(self) -> None:
        self.indices = np.asarray(self.indices).reshape(-1)
        if self.indices.size and not np.issubdtype(self.indices.dtype, np.integer):
            raise InputShapeError(f"Primitive {self.name!r}: indices must be integers")
        self.indices = self.indices.astype(np.int64)
        self.positions = _as_points(self.positions, 3, "positions", self.name)
        if self.uvs is not None:
            self.uvs = _as_points(self.uvs, 2, "uvs", self.name)
            if len(self.uvs) != len(self.positions):
                raise InputShapeError(
                    f"Primitive {self.name!r}: {len(self.uvs)} UVs for "
                    f"{len(self.positions)} positions"
                )

        if self.indices.size % 3 != 0:
            raise InputShapeError(
                f"Primitive {self.name!r}: index count {self.indices.size} is not a multiple of 3"
            )
        if self.indices.size:
            low = int(self.indices.min())
            high = int(self.indices.max())
            if low < 0 or high >= len(self.positions):
                raise InputShapeError(
                    f"Primitive {self.name!r}: indices span [{low}, {high}] "
                    f"but only {len(self.positions)} vertices exist"
                )

    @property
    def triangle_count(self) -> int:
        return self.indices.size // 3

    @property
    def has_uvs(self) -> bool:
        return self.uvs is not None


def _as_points(data, dim: int, label: str, name: str) -> np.ndarray:
    arr = np.asarray(data, dtype=np.float64)
    if arr.ndim == 1:
        if arr.size % dim != 0:
            raise InputShapeError(
                f"Primitive {name!r}: {label} length {arr.size} is not a multiple of {dim}"
            )
        arr = arr.reshape(-1, dim)
    elif arr.ndim != 2 or arr.shape[1] != dim:
        raise InputShapeError(f"Primitive {name!r}: {label} must have shape (N, {dim})")
    if not np.all(np.isfinite(arr)):
        raise InputShapeError(f"Primitive {name!r}: {label} contain NaN or infinite values")
    return arr


@dataclass
class PrimitiveAnalysis:
    """Topology and aggregates of one primitive."""

    name: str
    positions: VertexStore
    uv_vertices: VertexStore | None
    mesh_triangles: list[MeshTriangle]
    mesh_edges: list[Edge]
    uv_triangles: list[UvTriangle] = field(default_factory=list)
    uv_edges: list[Edge] = field(default_factory=list)
    islands: list[UvIsland] = field(default_factory=list)
    non_manifold_count: int = 0
    hard_edge_count: int = 0
    degenerate_count: int = 0
    inverted_count: int | None = None
    overlap_count: int | None = None
    min_density: float | None = None
    max_density: float | None = None
    min_u: float | None = None
    max_u: float | None = None
    min_v: float | None = None
    max_v: float | None = None

    @property
    def triangle_count(self) -> int:
        return len(self.mesh_triangles)

    @property
    def island_count(self) -> int:
        return len(self.islands)

    @property
    def has_uvs(self) -> bool:
        return self.uv_vertices is not None

    def uv_in_unit_range(self) -> bool | None:
        if self.min_u is None:
            return None
        return self.min_u >= 0 and self.max_u <= 1 and self.min_v >= 0 and self.max_v <= 1

    def probe_gutter(self, resolution: int) -> GutterProbe:
        """Probe island margins at ``resolution`` pixels per side."""
        return probe_gutter(self.uv_triangles, resolution)


def analyze_primitive(
    buffers: PrimitiveBuffers, config: AnalysisConfig | None = None
) -> PrimitiveAnalysis:
    """Run geometry, edge-graph, manifold, overlap and island stages in order."""
    if config is None:
        config = AnalysisConfig()

    positions = VertexStore(3, config.position_scale)
    uv_store = VertexStore(2, config.uv_scale) if buffers.has_uvs else None

    faces = buffers.indices.reshape(-1, 3)
    mesh_triangles: list[MeshTriangle] = []
    uv_triangles: list[UvTriangle] = []

    for tri_index, (ia, ib, ic) in enumerate(faces.tolist()):
        pa, pb, pc = buffers.positions[ia], buffers.positions[ib], buffers.positions[ic]
        ids = (positions.add(pa), positions.add(pb), positions.add(pc))
        mesh_triangle = MeshTriangle.build(tri_index, ids, pa, pb, pc)
        mesh_triangles.append(mesh_triangle)

        if uv_store is not None:
            ua, ub, uc = buffers.uvs[ia], buffers.uvs[ib], buffers.uvs[ic]
            uv_ids = (uv_store.add(ua), uv_store.add(ub), uv_store.add(uc))
            uv_triangle = UvTriangle.build(tri_index, uv_ids, ua, ub, uc)
            uv_triangle.mesh_area = mesh_triangle.area
            mesh_triangle.uv_triangle = tri_index
            uv_triangles.append(uv_triangle)

    mesh_edges = build_edges([t.vertices for t in mesh_triangles])
    classify_edges(mesh_edges, mesh_triangles)

    analysis = PrimitiveAnalysis(
        name=buffers.name,
        positions=positions,
        uv_vertices=uv_store,
        mesh_triangles=mesh_triangles,
        mesh_edges=mesh_edges,
        non_manifold_count=sum(1 for e in mesh_edges if e.non_manifold),
        hard_edge_count=sum(
            1
            for e in mesh_edges
            if e.face_angle is not None and e.face_angle >= config.hard_edge_angle
        ),
        degenerate_count=sum(1 for t in mesh_triangles if t.degenerate),
    )

    if uv_store is not None:
        analysis.uv_triangles = uv_triangles
        analysis.uv_edges = build_edges([t.vertices for t in uv_triangles])
        annotate_uv_edges(analysis.uv_edges)
        analysis.islands = group_islands(uv_triangles, analysis.uv_edges)
        analysis.inverted_count = sum(1 for t in uv_triangles if t.inverted)
        if config.detect_overlaps:
            analysis.overlap_count = detect_overlaps(uv_triangles, config.overlap_grid_size)
        _aggregate_uv(analysis)

    return analysis


def _aggregate_uv(analysis: PrimitiveAnalysis) -> None:
    """Model-facing min/max density and UV extents."""
    triangles = analysis.uv_triangles
    if not triangles:
        return
    densities = [t.density for t in triangles]
    analysis.min_density = min(densities)
    analysis.max_density = max(densities)
    analysis.min_u = min(t.min_u for t in triangles)
    analysis.max_u = max(t.max_u for t in triangles)
    analysis.min_v = min(t.min_v for t in triangles)
    analysis.max_v = max(t.max_v for t in triangles)
