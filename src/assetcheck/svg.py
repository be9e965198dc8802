"""SVG line-art for visual UV diagnostics.

UV coordinates are scaled by 1000 into a ``1000 x 1000`` view box. Paths are
plain filled polygons so documents can be concatenated or diffed as text.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from assetcheck.overlap import GutterProbe, Square
from assetcheck.primitive import PrimitiveAnalysis
from assetcheck.topology import UvTriangle

SCALE = 1000
LAYOUT_COLOR = "#000"
INVERTED_COLOR = "#f00"
EMPTY_PIXEL_COLOR = "#eeeeee"
OVERLAP_PIXEL_COLOR = "#ff0000"


@dataclass
class Svg:
    """An SVG document under construction."""

    id: str
    width: int = 1024
    height: int = 1024
    version: str = "1.1"
    paths: list[str] = field(default_factory=list)
    min_x: float | None = None
    max_x: float | None = None
    min_y: float | None = None
    max_y: float | None = None

    @property
    def path_count(self) -> int:
        return len(self.paths)

    def add_polygon(self, points, color: str) -> None:
        """Append a closed filled polygon given UV-space points."""
        scaled = [(SCALE * float(p[0]), SCALE * float(p[1])) for p in points]
        for x, y in scaled:
            self._adjust_extents(x, y)
        head, *rest = scaled
        data = f"m {head[0]:.3f} {head[1]:.3f} L " + " ".join(f"{x:.3f} {y:.3f}" for x, y in rest)
        self.paths.append(f'<path fill="{color}" d="{data}Z"/>')

    def _adjust_extents(self, x: float, y: float) -> None:
        self.min_x = x if self.min_x is None else min(self.min_x, x)
        self.max_x = x if self.max_x is None else max(self.max_x, x)
        self.min_y = y if self.min_y is None else min(self.min_y, y)
        self.max_y = y if self.max_y is None else max(self.max_y, y)

    def render(self, zoom_to_extents: bool = False) -> str:
        view_box = f"0 0 {SCALE} {SCALE}"
        if zoom_to_extents and self.min_x is not None:
            view_box = (
                f"{self.min_x:g} {self.min_y:g} "
                f"{self.max_x - self.min_x:g} {self.max_y - self.min_y:g}"
            )
        return (
            f'<svg version="{self.version}" id="{self.id}" width="{self.width}" '
            f'height="{self.height}" viewBox="{view_box}" '
            'xmlns="http://www.w3.org/2000/svg" xmlns:svg="http://www.w3.org/2000/svg">'
            + "".join(self.paths)
            + "</svg>"
        )


def triangle_outline(triangle: UvTriangle) -> list[np.ndarray]:
    return list(triangle.points)


def square_outline(square: Square) -> list[np.ndarray]:
    """Square inset by a third of its size on each side, so neighbours stay apart."""
    inset = square.size / 3.0
    return [
        square.a + np.array([inset, inset]),
        square.b + np.array([-inset, inset]),
        square.d + np.array([-inset, -inset]),
        square.c + np.array([inset, -inset]),
    ]


def island_color(island_index: int) -> str:
    """A stable color per island, with the red channel cleared so overlaps stand out."""
    value = ((island_index + 1) * 100000) % 16777215
    hex_value = f"{value:06x}"
    return "#00" + hex_value[2:6]


def layout_svg(analysis: PrimitiveAnalysis) -> Svg:
    svg = Svg(f"{analysis.name}-uvs")
    for triangle in analysis.uv_triangles:
        svg.add_polygon(triangle_outline(triangle), LAYOUT_COLOR)
    return svg


def inverted_svg(analysis: PrimitiveAnalysis) -> Svg:
    svg = Svg(f"{analysis.name}-uvs-inverted")
    for triangle in analysis.uv_triangles:
        if triangle.inverted:
            svg.add_polygon(triangle_outline(triangle), INVERTED_COLOR)
    return svg


def islands_svg(analysis: PrimitiveAnalysis) -> Svg:
    svg = Svg(f"{analysis.name}-islands")
    for island in analysis.islands:
        color = island_color(island.index)
        for tri_index in island.triangles:
            svg.add_polygon(triangle_outline(analysis.uv_triangles[tri_index]), color)
    return svg


def gutter_svg(probe: GutterProbe, name: str = "gutter-overlaps") -> Svg:
    """One inset square per pixel: grey when empty, island color, or red on collision."""
    svg = Svg(name)
    pixel = 1.0 / probe.resolution
    for i in range(probe.resolution):
        for j in range(probe.resolution):
            if probe.overlaps[i, j]:
                color = OVERLAP_PIXEL_COLOR
            elif probe.islands[i, j] >= 0:
                color = island_color(int(probe.islands[i, j]))
            else:
                color = EMPTY_PIXEL_COLOR
            square = Square(i * pixel + pixel / 2.0, j * pixel + pixel / 2.0, pixel * 2.0)
            svg.add_polygon(square_outline(square), color)
    return svg
