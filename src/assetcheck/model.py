"""Model-wide aggregation over every analyzed primitive of a loaded glTF."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from assetcheck.config import AnalysisConfig
from assetcheck.loader import LoadedModel
from assetcheck.overlap import GutterProbe
from assetcheck.primitive import PrimitiveAnalysis, analyze_primitive
from assetcheck.warning_policy import WarningPolicy, emit_warning


@dataclass(frozen=True)
class Dimensions:
    """World-space extents: ``length`` on X, ``height`` on Y, ``width`` on Z."""

    length: float
    width: float
    height: float

    def as_dict(self) -> dict[str, float]:
        return {"length": self.length, "width": self.width, "height": self.height}


@dataclass
class ModelAnalysis:
    path: Path
    file_size_kb: int
    mesh_count: int
    node_count: int
    material_count: int
    primitives: list[PrimitiveAnalysis] = field(default_factory=list)
    dimensions: Dimensions = field(default_factory=lambda: Dimensions(0.0, 0.0, 0.0))
    root_translation: tuple[float, float, float] = (0.0, 0.0, 0.0)
    root_rotation: tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)
    root_scale: tuple[float, float, float] = (1.0, 1.0, 1.0)

    @property
    def primitive_count(self) -> int:
        return len(self.primitives)

    @property
    def triangle_count(self) -> int:
        return sum(p.triangle_count for p in self.primitives)

    @property
    def uv_primitives(self) -> list[PrimitiveAnalysis]:
        return [p for p in self.primitives if p.has_uvs and p.uv_triangles]

    @property
    def has_uvs(self) -> bool:
        return bool(self.uv_primitives)

    @property
    def non_manifold_count(self) -> int:
        return sum(p.non_manifold_count for p in self.primitives)

    @property
    def hard_edge_count(self) -> int:
        return sum(p.hard_edge_count for p in self.primitives)

    @property
    def inverted_count(self) -> int | None:
        if not self.has_uvs:
            return None
        return sum(p.inverted_count or 0 for p in self.uv_primitives)

    @property
    def overlap_count(self) -> int | None:
        counts = [p.overlap_count for p in self.uv_primitives if p.overlap_count is not None]
        if not counts:
            return None
        return sum(counts)

    @property
    def island_count(self) -> int:
        return sum(p.island_count for p in self.uv_primitives)

    def uv_range(self) -> tuple[float, float, float, float] | None:
        """Model-wide ``(min_u, max_u, min_v, max_v)``, or None without UVs."""
        prims = self.uv_primitives
        if not prims:
            return None
        return (
            min(p.min_u for p in prims),
            max(p.max_u for p in prims),
            min(p.min_v for p in prims),
            max(p.max_v for p in prims),
        )

    def uv_in_unit_range(self) -> bool | None:
        bounds = self.uv_range()
        if bounds is None:
            return None
        min_u, max_u, min_v, max_v = bounds
        return min_u >= 0 and max_u <= 1 and min_v >= 0 and max_v <= 1

    def density_range(self) -> tuple[float, float] | None:
        prims = self.uv_primitives
        if not prims:
            return None
        return (min(p.min_density for p in prims), max(p.max_density for p in prims))

    def probe_gutters(self, resolution: int) -> dict[str, GutterProbe]:
        """Gutter probe of every primitive with UVs, keyed by primitive name."""
        return {p.name: p.probe_gutter(resolution) for p in self.uv_primitives}

    def attributes(self) -> list[tuple[str, object]]:
        """Label/value pairs for display, in a stable order."""
        uv_bounds = self.uv_range()
        densities = self.density_range()
        return [
            ("File Size (Kb)", self.file_size_kb),
            ("Triangle Count", self.triangle_count),
            ("Mesh Count", self.mesh_count),
            ("Node Count", self.node_count),
            ("Material Count", self.material_count),
            ("Primitive Count", self.primitive_count),
            ("Length (x)", self.dimensions.length),
            ("Height (y)", self.dimensions.height),
            ("Width (z)", self.dimensions.width),
            ("Root Node Translation", list(self.root_translation)),
            ("Root Node Rotation", list(self.root_rotation)),
            ("Root Node Scale", list(self.root_scale)),
            ("Non-Manifold Edges", self.non_manifold_count),
            ("Hard Edges", self.hard_edge_count),
            ("UV Islands", self.island_count if self.has_uvs else None),
            ("Inverted UVs", self.inverted_count),
            ("Overlapping UVs", self.overlap_count),
            ("UV Range U", None if uv_bounds is None else [uv_bounds[0], uv_bounds[1]]),
            ("UV Range V", None if uv_bounds is None else [uv_bounds[2], uv_bounds[3]]),
            ("UV Density", None if densities is None else list(densities)),
        ]


def analyze_model(
    loaded: LoadedModel,
    config: AnalysisConfig | None = None,
    warning_policy: WarningPolicy | None = None,
) -> ModelAnalysis:
    """Analyze each loaded primitive once and aggregate model-wide values."""
    if config is None:
        config = AnalysisConfig()
    gltf = loaded.gltf

    analyses: list[PrimitiveAnalysis] = []
    for loaded_primitive in loaded.primitives:
        analysis = analyze_primitive(loaded_primitive.buffers, config)
        if analysis.degenerate_count:
            emit_warning(
                "W03",
                f"Primitive {analysis.name!r} has {analysis.degenerate_count} "
                "degenerate triangle(s)",
                policy=warning_policy,
            )
        analyses.append(analysis)

    model = ModelAnalysis(
        path=loaded.path,
        file_size_kb=loaded.file_size_kb,
        mesh_count=len(gltf.meshes),
        node_count=len(gltf.nodes),
        material_count=len(gltf.materials),
        primitives=analyses,
        dimensions=_dimensions(loaded),
    )

    if loaded.root_nodes:
        root = gltf.nodes[loaded.root_nodes[0]]
        if root.translation is not None:
            model.root_translation = tuple(float(v) for v in root.translation)
        if root.rotation is not None:
            model.root_rotation = tuple(float(v) for v in root.rotation)
        if root.scale is not None:
            model.root_scale = tuple(float(v) for v in root.scale)
    return model


def _dimensions(loaded: LoadedModel) -> Dimensions:
    """Bounding box of every instanced primitive in world space.

    Documents with no scene nodes placing meshes fall back to the raw
    primitive positions.
    """
    by_mesh: dict[int, list[np.ndarray]] = {}
    for loaded_primitive in loaded.primitives:
        by_mesh.setdefault(loaded_primitive.mesh_index, []).append(
            loaded_primitive.buffers.positions
        )

    point_sets: list[np.ndarray] = []
    if loaded.instances:
        for instance in loaded.instances:
            for positions in by_mesh.get(instance.mesh_index, []):
                if len(positions) == 0:
                    continue
                homogeneous = np.hstack([positions, np.ones((len(positions), 1))])
                point_sets.append((homogeneous @ instance.matrix.T)[:, :3])
    else:
        point_sets = [
            positions for group in by_mesh.values() for positions in group if len(positions)
        ]

    if not point_sets:
        return Dimensions(0.0, 0.0, 0.0)
    points = np.vstack(point_sets)
    extents = points.max(axis=0) - points.min(axis=0)
    return Dimensions(
        length=round(float(extents[0]), 6),
        width=round(float(extents[2]), 6),
        height=round(float(extents[1]), 6),
    )
