"""Validation schema and product-info documents.

Both documents are YAML (JSON is accepted too). Keys are snake_case; any
limit left out of a schema disables the corresponding report check.
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from assetcheck.errors import SchemaError

SUPPORTED_SCHEMA_VERSIONS: frozenset[str] = frozenset({"1"})


class Range(BaseModel):
    model_config = ConfigDict(extra="forbid")

    min: float | None = None
    max: float | None = None

    @model_validator(mode="after")
    def min_not_above_max(self) -> Range:
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"min ({self.min}) must not exceed max ({self.max})")
        return self


class Extents(BaseModel):
    """Per-axis values; ``length`` is X, ``height`` is Y, ``width`` is Z."""

    model_config = ConfigDict(extra="forbid")

    length: float | None = Field(default=None, ge=0.0)
    width: float | None = Field(default=None, ge=0.0)
    height: float | None = Field(default=None, ge=0.0)


class DimensionLimits(BaseModel):
    model_config = ConfigDict(extra="forbid")

    maximum: Extents = Field(default_factory=Extents)
    minimum: Extents = Field(default_factory=Extents)
    percent_tolerance: Extents = Field(default_factory=Extents)


class UvRequirements(BaseModel):
    model_config = ConfigDict(extra="forbid")

    require_range_zero_to_one: bool = False
    max_inverted_triangles: int | None = Field(default=None, ge=0)
    max_overlapping_triangles: int | None = Field(default=None, ge=0)
    gutter_resolution: int | None = Field(default=None, ge=1)
    texture_resolution: int | None = Field(default=None, ge=1)
    pixels_per_meter: Range = Field(default_factory=Range)


class ValidationSchema(BaseModel):
    """Limits a model is checked against."""

    model_config = ConfigDict(extra="forbid")

    version: str
    file_size_kb: Range = Field(default_factory=Range)
    max_triangle_count: int | None = Field(default=None, ge=0)
    max_material_count: int | None = Field(default=None, ge=0)
    dimensions: DimensionLimits = Field(default_factory=DimensionLimits)
    uvs: UvRequirements | None = None
    max_non_manifold_edges: int | None = Field(default=None, ge=0)
    max_hard_edges: int | None = Field(default=None, ge=0)

    @field_validator("version", mode="before")
    @classmethod
    def version_as_string(cls, v: object) -> object:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("version")
    @classmethod
    def version_supported(cls, v: str) -> str:
        if v not in SUPPORTED_SCHEMA_VERSIONS:
            raise ValueError(
                f"Unsupported schema version {v!r} (supported: {sorted(SUPPORTED_SCHEMA_VERSIONS)})"
            )
        return v


class ProductDimensions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    length: float = Field(gt=0.0)
    width: float = Field(gt=0.0)
    height: float = Field(gt=0.0)


class ProductInfo(BaseModel):
    """Real-world dimensions of the product a model represents."""

    model_config = ConfigDict(extra="forbid")

    dimensions: ProductDimensions


def _read_source_text(source: str | Path) -> str:
    """Read document content from a path, or treat the input as raw text."""
    if isinstance(source, Path):
        try:
            return source.read_text(encoding="utf-8")
        except OSError as e:
            raise SchemaError(f"Cannot read file: {e}") from e
    return source


def load_schema(source: str | Path) -> ValidationSchema:
    """Parse and validate a schema document.

    Args:
        source: YAML text or path to a schema file.

    Returns:
        Validated ValidationSchema.

    Raises:
        SchemaError: On YAML syntax errors, duplicate keys or schema violations.
    """
    text = _read_source_text(source)
    yml = YAML(typ="safe")
    yml.allow_duplicate_keys = False
    try:
        data = yml.load(text)
    except YAMLError as e:
        raise SchemaError(f"Invalid YAML in schema: {e}") from e

    if not isinstance(data, dict):
        raise SchemaError("Schema top-level YAML value must be a mapping")
    if "version" not in data:
        raise SchemaError("Missing required field: version")

    try:
        return ValidationSchema(**data)
    except PydanticValidationError as e:
        raise SchemaError(f"Schema validation failed:\n{e}") from e


def load_product_info(source: str | Path) -> ProductInfo:
    """Parse a product-info document.

    Raises:
        SchemaError: On parse or validation errors.
    """
    text = _read_source_text(source)
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SchemaError(f"Invalid YAML in product info: {e}") from e

    if not isinstance(data, dict):
        raise SchemaError("Product info top-level YAML value must be a mapping")

    try:
        return ProductInfo(**data)
    except PydanticValidationError as e:
        raise SchemaError(f"Product info validation failed:\n{e}") from e
