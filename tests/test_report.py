"""Tests for report building and rendering."""

import json
from pathlib import Path

import numpy as np
import pytest

from assetcheck.errors import ReportError
from assetcheck.model import Dimensions, ModelAnalysis
from assetcheck.primitive import PrimitiveBuffers, analyze_primitive
from assetcheck.report import (
    ReportItem,
    build_report,
    pixels_per_meter,
    render_text,
    report_payload,
)
from assetcheck.schema import load_product_info, load_schema


def _model(buffers_list, dimensions=Dimensions(1.0, 1.0, 1.0), file_size_kb=10, materials=1):
    return ModelAnalysis(
        path=Path("asset.glb"),
        file_size_kb=file_size_kb,
        mesh_count=len(buffers_list),
        node_count=len(buffers_list),
        material_count=materials,
        primitives=[analyze_primitive(b) for b in buffers_list],
        dimensions=dimensions,
    )


def _two_islands(gap: float) -> PrimitiveBuffers:
    """Two UV triangles on separate islands, ``gap`` apart along U."""
    positions = np.array(
        [[0, 0, 0], [1, 0, 0], [0, 1, 0], [2, 0, 0], [3, 0, 0], [2, 1, 0]], dtype=np.float64
    )
    right = 0.45 + gap
    uvs = np.array(
        [[0.1, 0.1], [0.45, 0.1], [0.1, 0.8], [right, 0.1], [right + 0.4, 0.1], [right, 0.8]],
        dtype=np.float64,
    )
    return PrimitiveBuffers(name="pair", indices=np.arange(6), positions=positions, uvs=uvs)


def _items(report):
    return {item.name: item for item in report.items()}


class TestReportItem:
    def test_test_and_skip(self):
        item = ReportItem("Thing")
        assert not item.tested
        item.test(True, "ok")
        assert item.tested and item.pass_ and item.message == "ok"
        item.skip("not configured")
        assert not item.tested and not item.pass_
        assert item.as_dict()["pass"] is None

    def test_default_guidelines_url(self):
        assert ReportItem("Thing").guidelines_url.startswith("https://")


class TestBuildReport:
    def test_passing_model(self, unit_quad, schema_yaml):
        report = build_report(_model([unit_quad]), load_schema(schema_yaml))
        items = _items(report)
        assert report.passed
        assert items["File Size"].pass_
        assert items["Triangle Count"].pass_
        assert items["UVs in 0 to 1 Range"].pass_
        assert items["Texel Density"].pass_
        assert items["UV Gutter Width"].pass_
        assert not items["Dimensions Match Product"].tested

    def test_requires_schema(self, unit_quad):
        with pytest.raises(ReportError):
            build_report(_model([unit_quad]), None)

    def test_limits_absent_are_not_tested(self, unit_quad):
        report = build_report(_model([unit_quad]), load_schema("version: 1\n"))
        assert not any(item.tested for item in report.items())
        assert report.passed

    def test_file_size_bounds(self, unit_quad):
        schema = load_schema("version: 1\nfile_size_kb: {min: 20, max: 100}\n")
        assert not build_report(_model([unit_quad], file_size_kb=10), schema).file_size.pass_
        assert build_report(_model([unit_quad], file_size_kb=20), schema).file_size.pass_
        assert not build_report(_model([unit_quad], file_size_kb=101), schema).file_size.pass_

    def test_triangle_and_material_counts(self, unit_quad):
        schema = load_schema("version: 1\nmax_triangle_count: 1\nmax_material_count: 1\n")
        report = build_report(_model([unit_quad], materials=1), schema)
        assert not report.triangle_count.pass_
        assert report.material_count.pass_
        assert not report.passed

    def test_dimensions(self, unit_quad):
        schema = load_schema(
            "version: 1\n"
            "dimensions:\n"
            "  maximum: {length: 2, width: 2, height: 2}\n"
            "  minimum: {length: 0.5, height: 0.5}\n"
        )
        fits = build_report(_model([unit_quad], dimensions=Dimensions(1.0, 0.1, 1.0)), schema)
        assert fits.dimensions_max.pass_ and fits.dimensions_min.pass_

        big = build_report(_model([unit_quad], dimensions=Dimensions(3.0, 0.1, 1.0)), schema)
        assert not big.dimensions_max.pass_
        assert "length" in big.dimensions_max.message

        small = build_report(_model([unit_quad], dimensions=Dimensions(1.0, 0.1, 0.2)), schema)
        assert not small.dimensions_min.pass_
        assert "height" in small.dimensions_min.message

    def test_product_tolerance(self, unit_quad):
        schema = load_schema(
            "version: 1\ndimensions:\n  percent_tolerance: {length: 10, width: 10, height: 10}\n"
        )
        product = load_product_info("dimensions: {length: 1.05, width: 1.0, height: 0.95}\n")
        model = _model([unit_quad], dimensions=Dimensions(1.0, 1.0, 1.0))
        assert build_report(model, schema, product).product_dimensions.pass_

        far = load_product_info("dimensions: {length: 1.5, width: 1.0, height: 1.0}\n")
        report = build_report(model, schema, far)
        assert not report.product_dimensions.pass_
        assert "length" in report.product_dimensions.message

    def test_uv_range(self):
        buffers = PrimitiveBuffers(
            name="tiled", indices=[0, 1, 2], positions=np.eye(3), uvs=[[0, 0], [2, 0], [0, 1]]
        )
        schema = load_schema("version: 1\nuvs: {require_range_zero_to_one: true}\n")
        assert not build_report(_model([buffers]), schema).uv_range.pass_

    def test_inverted_and_overlapping(self):
        positions = np.array(
            [[0, 0, 0], [1, 0, 0], [0, 1, 0], [0, 0, 1], [1, 0, 1], [0, 1, 1]], dtype=np.float64
        )
        uvs = np.array([[0, 0], [1, 0], [0, 1], [0, 0], [0, 1], [1, 0]], dtype=np.float64)
        buffers = PrimitiveBuffers(name="m", indices=np.arange(6), positions=positions, uvs=uvs)
        schema = load_schema(
            "version: 1\nuvs: {max_inverted_triangles: 0, max_overlapping_triangles: 1}\n"
        )
        report = build_report(_model([buffers]), schema)
        assert not report.inverted_uvs.pass_
        assert report.inverted_uvs.message.startswith("1 inverted")
        assert not report.overlapping_uvs.pass_

    def test_uv_checks_skipped_without_uvs(self, tetrahedron):
        schema = load_schema("version: 1\nuvs: {max_inverted_triangles: 0}\n")
        report = build_report(_model([tetrahedron]), schema)
        assert not report.inverted_uvs.tested
        assert report.inverted_uvs.message == "Model has no UVs"

    def test_non_manifold_and_hard_edges(self, tetrahedron):
        schema = load_schema("version: 1\nmax_non_manifold_edges: 0\nmax_hard_edges: 5\n")
        report = build_report(_model([tetrahedron]), schema)
        assert report.non_manifold_edges.pass_
        assert not report.hard_edges.pass_

    def test_texel_density(self, unit_quad):
        assert pixels_per_meter(1.0, 1024) == 1024.0
        assert pixels_per_meter(0.25, 1024) == 512.0
        low = load_schema(
            "version: 1\nuvs: {texture_resolution: 1024, pixels_per_meter: {min: 2000}}\n"
        )
        assert not build_report(_model([unit_quad]), low).texel_density.pass_
        high = load_schema(
            "version: 1\nuvs: {texture_resolution: 1024, pixels_per_meter: {max: 1000}}\n"
        )
        assert not build_report(_model([unit_quad]), high).texel_density.pass_

    def test_texel_density_needs_texture_resolution(self, unit_quad):
        schema = load_schema("version: 1\nuvs: {pixels_per_meter: {min: 10}}\n")
        assert not build_report(_model([unit_quad]), schema).texel_density.tested

    def test_gutter_width(self):
        schema = load_schema("version: 1\nuvs: {gutter_resolution: 16}\n")
        tight = build_report(_model([_two_islands(0.05)]), schema)
        assert not tight.gutter_width.pass_
        assert "pair" in tight.gutter_width.message
        wide = build_report(_model([_two_islands(0.3)]), schema)
        assert wide.gutter_width.pass_


class TestPayload:
    def test_json_ready(self, unit_quad, schema_yaml):
        model = _model([unit_quad])
        report = build_report(model, load_schema(schema_yaml))
        payload = report_payload(model, report)
        decoded = json.loads(json.dumps(payload))
        assert decoded["report"]["passed"] is True
        assert decoded["primitives"][0]["name"] == "quad"
        assert decoded["primitives"][0]["uv"]["islands"] == 1
        assert len(decoded["report"]["items"]) == len(report.items())

    def test_without_report(self, tetrahedron):
        payload = report_payload(_model([tetrahedron]))
        assert "report" not in payload
        assert payload["primitives"][0]["uv"] is None

    def test_render_text(self, unit_quad, schema_yaml):
        model = _model([unit_quad])
        text = render_text(report_payload(model, build_report(model, load_schema(schema_yaml))))
        assert text.startswith("model: asset.glb\n")
        assert "  Triangle Count: 2\n" in text
        assert "  - name: quad\n" in text
        assert "report: PASS" in text
        assert "[PASS] File Size" in text
        assert "[SKIP] Dimensions Match Product" in text
        assert text.endswith("\n")
