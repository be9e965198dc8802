"""Analysis configuration."""

from __future__ import annotations

import math
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

MatchMode = Literal["decimal", "legacy_xor"]

DEFAULT_PRECISION = 6


def match_scale(precision: int, mode: MatchMode = "decimal") -> int:
    """Return the factor coordinates are multiplied by before rounding.

    ``"decimal"`` shifts by ``precision`` decimal places. ``"legacy_xor"``
    reproduces historical output where the scale was computed with a bitwise
    XOR (``10 ^ 6 == 12``), i.e. coordinates are snapped to twelfths.
    """
    if mode == "legacy_xor":
        return 10 ^ precision
    return 10**precision


class AnalysisConfig(BaseModel):
    """Tunables for a single analysis pass."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    position_precision: int = Field(default=DEFAULT_PRECISION, ge=0, le=12)
    uv_precision: int = Field(default=DEFAULT_PRECISION, ge=0, le=12)
    match_mode: MatchMode = "decimal"
    hard_edge_angle: float = Field(default=math.pi / 2, gt=0.0, le=math.pi)
    overlap_grid_size: int = Field(default=32, ge=1)
    detect_overlaps: bool = True

    @property
    def position_scale(self) -> int:
        return match_scale(self.position_precision, self.match_mode)

    @property
    def uv_scale(self) -> int:
        return match_scale(self.uv_precision, self.match_mode)
