"""Pass/fail report of a model against a validation schema."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from assetcheck.errors import ReportError
from assetcheck.model import ModelAnalysis
from assetcheck.primitive import PrimitiveAnalysis
from assetcheck.schema import ProductInfo, ValidationSchema

GUIDELINES_URL = (
    "https://github.com/KhronosGroup/3DC-Asset-Creation/blob/main/"
    "asset-creation-guidelines/RealtimeAssetCreationGuidelines.md"
)

_AXES = ("length", "width", "height")


@dataclass
class ReportItem:
    """One named check. Untested items carry a message saying why."""

    name: str
    guidelines_url: str = GUIDELINES_URL
    pass_: bool = False
    tested: bool = False
    message: str = ""

    def test(self, passed: bool, message: str = "") -> None:
        self.pass_ = passed
        self.tested = True
        self.message = message

    def skip(self, message: str) -> None:
        self.pass_ = False
        self.tested = False
        self.message = message

    def as_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "tested": self.tested,
            "pass": self.pass_ if self.tested else None,
            "message": self.message,
            "guidelines_url": self.guidelines_url,
        }


@dataclass
class Report:
    file_size: ReportItem = field(default_factory=lambda: ReportItem("File Size"))
    triangle_count: ReportItem = field(default_factory=lambda: ReportItem("Triangle Count"))
    material_count: ReportItem = field(default_factory=lambda: ReportItem("Material Count"))
    dimensions_max: ReportItem = field(default_factory=lambda: ReportItem("Dimensions Not Too Big"))
    dimensions_min: ReportItem = field(
        default_factory=lambda: ReportItem("Dimensions Not Too Small")
    )
    product_dimensions: ReportItem = field(
        default_factory=lambda: ReportItem("Dimensions Match Product")
    )
    uv_range: ReportItem = field(default_factory=lambda: ReportItem("UVs in 0 to 1 Range"))
    inverted_uvs: ReportItem = field(default_factory=lambda: ReportItem("Inverted UVs"))
    overlapping_uvs: ReportItem = field(default_factory=lambda: ReportItem("Overlapping UVs"))
    non_manifold_edges: ReportItem = field(
        default_factory=lambda: ReportItem("Non-Manifold Edges")
    )
    hard_edges: ReportItem = field(default_factory=lambda: ReportItem("Hard Edges"))
    texel_density: ReportItem = field(default_factory=lambda: ReportItem("Texel Density"))
    gutter_width: ReportItem = field(default_factory=lambda: ReportItem("UV Gutter Width"))

    def items(self) -> list[ReportItem]:
        return [
            self.file_size,
            self.triangle_count,
            self.material_count,
            self.dimensions_max,
            self.dimensions_min,
            self.product_dimensions,
            self.uv_range,
            self.inverted_uvs,
            self.overlapping_uvs,
            self.non_manifold_edges,
            self.hard_edges,
            self.texel_density,
            self.gutter_width,
        ]

    @property
    def passed(self) -> bool:
        """True when every tested item passes."""
        return all(item.pass_ for item in self.items() if item.tested)


def build_report(
    model: ModelAnalysis, schema: ValidationSchema | None, product: ProductInfo | None = None
) -> Report:
    """Run every check the schema enables against an analyzed model."""
    if schema is None:
        raise ReportError("A validation schema is required to build a report")
    report = Report()
    _check_file_size(report.file_size, model, schema)
    _check_max(report.triangle_count, model.triangle_count, schema.max_triangle_count, "triangles")
    _check_max(report.material_count, model.material_count, schema.max_material_count, "materials")
    _check_dimensions_max(report.dimensions_max, model, schema)
    _check_dimensions_min(report.dimensions_min, model, schema)
    _check_product_dimensions(report.product_dimensions, model, schema, product)
    _check_max(
        report.non_manifold_edges,
        model.non_manifold_count,
        schema.max_non_manifold_edges,
        "non-manifold edges",
    )
    _check_max(report.hard_edges, model.hard_edge_count, schema.max_hard_edges, "hard edges")

    uvs = schema.uvs
    uv_items = (
        report.uv_range,
        report.inverted_uvs,
        report.overlapping_uvs,
        report.texel_density,
        report.gutter_width,
    )
    if uvs is None:
        for item in uv_items:
            item.skip("No UV requirements in schema")
        return report
    if not model.has_uvs:
        for item in uv_items:
            item.skip("Model has no UVs")
        return report

    if uvs.require_range_zero_to_one:
        min_u, max_u, min_v, max_v = model.uv_range()
        report.uv_range.test(
            bool(model.uv_in_unit_range()),
            f"u: {min_u:.4g} to {max_u:.4g}, v: {min_v:.4g} to {max_v:.4g}",
        )
    else:
        report.uv_range.skip("Not required")

    _check_max(
        report.inverted_uvs, model.inverted_count, uvs.max_inverted_triangles, "inverted triangles"
    )
    if model.overlap_count is None and uvs.max_overlapping_triangles is not None:
        report.overlapping_uvs.skip("Overlap detection disabled")
    else:
        _check_max(
            report.overlapping_uvs,
            model.overlap_count,
            uvs.max_overlapping_triangles,
            "overlapping triangles",
        )
    _check_texel_density(report.texel_density, model, schema)
    _check_gutter(report.gutter_width, model, schema)
    return report


def _check_max(item: ReportItem, value: int | None, limit: int | None, label: str) -> None:
    if limit is None:
        item.skip("No limit in schema")
        return
    item.test(value <= limit, f"{value} {label} (max {limit})")


def _check_file_size(item: ReportItem, model: ModelAnalysis, schema: ValidationSchema) -> None:
    bounds = schema.file_size_kb
    if bounds.min is None and bounds.max is None:
        item.skip("No file size limits in schema")
        return
    size = model.file_size_kb
    passed = (bounds.min is None or size >= bounds.min) and (
        bounds.max is None or size <= bounds.max
    )
    item.test(passed, f"{size}kb (min {_fmt_bound(bounds.min)}, max {_fmt_bound(bounds.max)})")


def _check_dimensions_max(item: ReportItem, model: ModelAnalysis, schema: ValidationSchema) -> None:
    limits = schema.dimensions.maximum
    checked = [(axis, getattr(limits, axis)) for axis in _AXES if getattr(limits, axis) is not None]
    if not checked:
        item.skip("No maximum dimensions in schema")
        return
    too_big = [axis for axis, limit in checked if getattr(model.dimensions, axis) > limit]
    item.test(not too_big, _dimension_message(model, too_big, "exceeds maximum"))


def _check_dimensions_min(item: ReportItem, model: ModelAnalysis, schema: ValidationSchema) -> None:
    limits = schema.dimensions.minimum
    checked = [(axis, getattr(limits, axis)) for axis in _AXES if getattr(limits, axis) is not None]
    if not checked:
        item.skip("No minimum dimensions in schema")
        return
    too_small = [axis for axis, limit in checked if getattr(model.dimensions, axis) < limit]
    item.test(not too_small, _dimension_message(model, too_small, "below minimum"))


def _check_product_dimensions(
    item: ReportItem,
    model: ModelAnalysis,
    schema: ValidationSchema,
    product: ProductInfo | None,
) -> None:
    if product is None:
        item.skip("No product info loaded")
        return
    tolerance = schema.dimensions.percent_tolerance
    checked = [axis for axis in _AXES if getattr(tolerance, axis) is not None]
    if not checked:
        item.skip("No percent tolerance in schema")
        return
    mismatched = []
    for axis in checked:
        expected = getattr(product.dimensions, axis)
        allowed = expected * getattr(tolerance, axis) / 100.0
        if abs(getattr(model.dimensions, axis) - expected) > allowed:
            mismatched.append(axis)
    item.test(not mismatched, _dimension_message(model, mismatched, "outside product tolerance"))


def _dimension_message(model: ModelAnalysis, failing: list[str], reason: str) -> str:
    dims = model.dimensions
    message = f"L:{dims.length:.4g} x W:{dims.width:.4g} x H:{dims.height:.4g}"
    if failing:
        message += f" ({', '.join(failing)} {reason})"
    return message


def pixels_per_meter(density: float, texture_resolution: int) -> float:
    """Texel density in pixels per meter for a UV-area/3D-area ratio."""
    return math.sqrt(density) * texture_resolution


def _check_texel_density(item: ReportItem, model: ModelAnalysis, schema: ValidationSchema) -> None:
    uvs = schema.uvs
    bounds = uvs.pixels_per_meter
    if bounds.min is None and bounds.max is None:
        item.skip("No pixels per meter limits in schema")
        return
    if uvs.texture_resolution is None:
        item.skip("No texture resolution in schema")
        return
    low_density, high_density = model.density_range()
    low = pixels_per_meter(low_density, uvs.texture_resolution)
    high = pixels_per_meter(high_density, uvs.texture_resolution)
    passed = (bounds.min is None or low >= bounds.min) and (
        bounds.max is None or high <= bounds.max
    )
    item.test(passed, f"{low:.4g} to {high:.4g} pixels per meter")


def _check_gutter(item: ReportItem, model: ModelAnalysis, schema: ValidationSchema) -> None:
    resolution = schema.uvs.gutter_resolution
    if resolution is None:
        item.skip("No gutter resolution in schema")
        return
    probes = model.probe_gutters(resolution)
    colliding = {name: probe.overlap_count for name, probe in probes.items() if not probe.passed}
    if colliding:
        detail = ", ".join(f"{name}: {count}" for name, count in colliding.items())
        item.test(False, f"Islands closer than one pixel at {resolution}px ({detail})")
    else:
        item.test(True, f"All islands separated at {resolution}px")


def _fmt_bound(value: float | None) -> str:
    return "none" if value is None else f"{value:g}"


def report_payload(model: ModelAnalysis, report: Report | None = None) -> dict[str, object]:
    """JSON-ready description of a model analysis and, optionally, its report."""
    payload: dict[str, object] = {
        "report_schema_version": 1,
        "model": {
            "path": str(model.path),
            "attributes": [
                {"label": label, "value": value} for label, value in model.attributes()
            ],
        },
        "primitives": [_primitive_payload(p) for p in model.primitives],
    }
    if report is not None:
        payload["report"] = {
            "passed": report.passed,
            "items": [item.as_dict() for item in report.items()],
        }
    return payload


def _primitive_payload(analysis: PrimitiveAnalysis) -> dict[str, object]:
    uv: dict[str, object] | None = None
    if analysis.has_uvs:
        uv = {
            "vertex_count": len(analysis.uv_vertices),
            "islands": analysis.island_count,
            "inverted_triangles": analysis.inverted_count,
            "overlapping_triangles": analysis.overlap_count,
            "range": {
                "u": [analysis.min_u, analysis.max_u],
                "v": [analysis.min_v, analysis.max_v],
            },
            "density": [analysis.min_density, analysis.max_density],
        }
    return {
        "name": analysis.name,
        "triangle_count": analysis.triangle_count,
        "vertex_count": len(analysis.positions),
        "edge_count": len(analysis.mesh_edges),
        "non_manifold_edges": analysis.non_manifold_count,
        "hard_edges": analysis.hard_edge_count,
        "degenerate_triangles": analysis.degenerate_count,
        "uv": uv,
    }


def render_text(payload: dict[str, object]) -> str:
    """Render human-readable text output for a report payload."""
    lines: list[str] = []
    model = payload["model"]
    lines.append(f"model: {model['path']}")
    for attribute in model["attributes"]:
        lines.append(f"  {attribute['label']}: {_fmt_value(attribute['value'])}")

    lines.append("primitives:")
    primitives = payload.get("primitives", [])
    if isinstance(primitives, list) and primitives:
        for primitive in primitives:
            lines.append(f"  - name: {primitive['name']}")
            lines.append(f"    triangles: {primitive['triangle_count']}")
            lines.append(f"    vertices: {primitive['vertex_count']}")
            lines.append(f"    non_manifold_edges: {primitive['non_manifold_edges']}")
            lines.append(f"    hard_edges: {primitive['hard_edges']}")
            lines.append(f"    degenerate_triangles: {primitive['degenerate_triangles']}")
            uv = primitive["uv"]
            if uv is None:
                lines.append("    uv: none")
                continue
            lines.append(f"    uv.islands: {uv['islands']}")
            lines.append(f"    uv.inverted: {uv['inverted_triangles']}")
            lines.append(f"    uv.overlapping: {_fmt_value(uv['overlapping_triangles'])}")
            lines.append(f"    uv.range.u: {_fmt_value(uv['range']['u'])}")
            lines.append(f"    uv.range.v: {_fmt_value(uv['range']['v'])}")
    else:
        lines.append("  []")

    report = payload.get("report")
    if isinstance(report, dict):
        lines.append(f"report: {'PASS' if report['passed'] else 'FAIL'}")
        for item in report["items"]:
            if not item["tested"]:
                status = "SKIP"
            elif item["pass"]:
                status = "PASS"
            else:
                status = "FAIL"
            message = f" - {item['message']}" if item["message"] else ""
            lines.append(f"  [{status}] {item['name']}{message}")

    return "\n".join(lines) + "\n"


def _fmt_value(value: object) -> str:
    if value is None:
        return "n/a"
    if isinstance(value, float):
        return f"{value:.6g}"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_fmt_value(v) for v in value) + "]"
    return str(value)
