"""Click CLI entry point for assetcheck."""

from __future__ import annotations

import json
import re
from pathlib import Path

import click

from assetcheck import __version__
from assetcheck.config import AnalysisConfig
from assetcheck.errors import AssetCheckError
from assetcheck.loader import load_gltf
from assetcheck.model import ModelAnalysis, analyze_model
from assetcheck.report import build_report, render_text, report_payload
from assetcheck.schema import load_product_info, load_schema
from assetcheck.svg import gutter_svg, inverted_svg, islands_svg, layout_svg
from assetcheck.warning_policy import WarningPolicy, parse_code_list

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def _build_warning_policy(
    warn_as_error: str | None, suppress_warning: str | None
) -> WarningPolicy | None:
    """Parse CLI warning options into a WarningPolicy, or None if unset."""
    if warn_as_error is None and suppress_warning is None:
        return None
    try:
        wae = parse_code_list(warn_as_error) if warn_as_error else frozenset()
        sup = parse_code_list(suppress_warning) if suppress_warning else frozenset()
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    return WarningPolicy(warn_as_error=wae, suppress=sup)


def _safe_filename(name: str) -> str:
    return _UNSAFE_FILENAME_CHARS.sub("_", name).strip("._") or "primitive"


def _write_svgs(model: ModelAnalysis, svg_dir: Path, gutter_resolution: int | None) -> list[Path]:
    """Write the diagnostic SVGs of every primitive with UVs."""
    try:
        svg_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise click.ClickException(f"Cannot create SVG directory {svg_dir}: {e}") from e

    written: list[Path] = []
    for analysis in model.uv_primitives:
        stem = _safe_filename(analysis.name)
        documents = [
            (f"{stem}-uvs.svg", layout_svg(analysis)),
            (f"{stem}-uvs-inverted.svg", inverted_svg(analysis)),
            (f"{stem}-islands.svg", islands_svg(analysis)),
        ]
        if gutter_resolution is not None:
            probe = analysis.probe_gutter(gutter_resolution)
            documents.append((f"{stem}-gutter.svg", gutter_svg(probe, f"{analysis.name}-gutter")))
        for filename, svg in documents:
            path = svg_dir / filename
            try:
                path.write_text(svg.render(), encoding="utf-8")
            except OSError as e:
                raise click.ClickException(f"Cannot write SVG to {path}: {e}") from e
            written.append(path)
    return written


@click.group()
@click.version_option(version=__version__, prog_name="assetcheck")
def main() -> None:
    """assetcheck: mesh and UV topology checks for glTF assets."""


@main.command()
@click.argument("model_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--schema",
    "schema_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Validation schema (YAML or JSON) to build a pass/fail report.",
)
@click.option(
    "--product-info",
    "product_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Product dimensions to compare against. Requires --schema.",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
    help="Output format.",
)
@click.option(
    "--svg-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Write UV layout, inverted, island and gutter SVGs to this directory.",
)
@click.option(
    "--gutter-resolution",
    type=click.IntRange(min=1),
    default=None,
    help="Pixel resolution for the gutter SVG. Defaults to the schema's value.",
)
@click.option(
    "--match-mode",
    type=click.Choice(["decimal", "legacy_xor"]),
    default="decimal",
    show_default=True,
    help="How vertex coordinates are rounded before matching.",
)
@click.option(
    "--warn-as-error",
    "warn_as_error",
    type=str,
    default=None,
    help="Comma-separated W-codes to treat as errors (e.g. W01,W02).",
)
@click.option(
    "--suppress-warning",
    "suppress_warning",
    type=str,
    default=None,
    help="Comma-separated W-codes to suppress (e.g. W03).",
)
@click.option(
    "--fail-on-report",
    is_flag=True,
    default=False,
    help="Exit with code 3 if any tested report item fails.",
)
def inspect(
    model_file: Path,
    schema_file: Path | None = None,
    product_file: Path | None = None,
    output_format: str = "text",
    svg_dir: Path | None = None,
    gutter_resolution: int | None = None,
    match_mode: str = "decimal",
    warn_as_error: str | None = None,
    suppress_warning: str | None = None,
    fail_on_report: bool = False,
) -> None:
    """Analyze a .glb/.gltf model and optionally check it against a schema."""
    warning_policy = _build_warning_policy(warn_as_error, suppress_warning)

    if product_file is not None and schema_file is None:
        raise click.UsageError("--product-info requires --schema")
    if fail_on_report and schema_file is None:
        raise click.UsageError("--fail-on-report requires --schema")

    try:
        schema = load_schema(schema_file) if schema_file is not None else None
        product = load_product_info(product_file) if product_file is not None else None

        loaded = load_gltf(model_file, warning_policy=warning_policy)
        config = AnalysisConfig(match_mode=match_mode)
        model = analyze_model(loaded, config, warning_policy)

        report = build_report(model, schema, product) if schema is not None else None
        payload = report_payload(model, report)

        if svg_dir is not None:
            if gutter_resolution is None and schema is not None and schema.uvs is not None:
                gutter_resolution = schema.uvs.gutter_resolution
            written = _write_svgs(model, svg_dir, gutter_resolution)
            payload["svg_files"] = [str(path) for path in written]

        if output_format == "json":
            click.echo(json.dumps(payload, indent=2))
        else:
            click.echo(render_text(payload), nl=False)

        if fail_on_report and report is not None and not report.passed:
            raise click.exceptions.Exit(3)
    except AssetCheckError as e:
        raise click.ClickException(str(e))
