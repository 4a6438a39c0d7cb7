from __future__ import annotations

from dataclasses import dataclass
from typing import Any

ACTIVE_COLOR = "#a855f7"
ACTIVE_COLOR_TRANSPARENT = "rgba(168, 85, 247, 0)"
PUBLIC_COLOR = "#6366f1"
DRIVING_COLOR = "#ef4444"

LINE_LAYOUT: dict[str, Any] = {"line-join": "round", "line-cap": "round"}


@dataclass(frozen=True)
class OverlayStyle:
    """
    Paint hints for one route's overlay resources.

    `gradient` switches the foreground line to a progress gradient (active route).
    """

    color: str
    line_width: float
    line_opacity: float
    background_opacity: float
    point_radius: float
    point_opacity: float
    point_stroke_width: float = 0.0
    point_stroke_opacity: float = 0.0
    gradient: bool = False
    driving_color: str = DRIVING_COLOR
    driving_opacity: float = 0.75


ACTIVE_STYLE = OverlayStyle(
    color=ACTIVE_COLOR,
    line_width=1.5,
    line_opacity=1.0,
    background_opacity=0.2,
    point_radius=4.0,
    point_opacity=0.8,
    gradient=True,
)

PUBLIC_STYLE = OverlayStyle(
    color=PUBLIC_COLOR,
    line_width=2.0,
    line_opacity=0.3,
    background_opacity=0.1,
    point_radius=2.5,
    point_opacity=0.5,
    point_stroke_width=1.0,
    point_stroke_opacity=0.2,
)

# Zoomed-out maps get thinner lines; never below half, never above the base size.
ZOOM_FACTOR_MIN = 0.5
ZOOM_FACTOR_MAX = 1.0
ZOOM_FACTOR_REFERENCE = 8.0
ZOOM_LINE_WIDTH = 1.5
ZOOM_POINT_RADIUS = 3.0


def zoom_factor(zoom: float) -> float:
    return max(ZOOM_FACTOR_MIN, min(ZOOM_FACTOR_MAX, float(zoom) / ZOOM_FACTOR_REFERENCE))


def progress_gradient(style: OverlayStyle, t: float) -> list[Any]:
    """
    `line-gradient` expression showing only the travelled part of the line.
    """
    t = max(0.0, min(1.0, float(t)))
    head = t - 0.01
    # Interpolation stops must be strictly ascending.
    tail = max(t, 0.01)
    expr: list[Any] = ["interpolate", ["linear"], ["line-progress"], 0, style.color]
    if 0.0 < head < tail:
        expr += [head, style.color]
    expr += [tail, ACTIVE_COLOR_TRANSPARENT]
    return expr


def line_paint(style: OverlayStyle) -> dict[str, Any]:
    paint: dict[str, Any] = {
        "line-width": style.line_width,
        "line-opacity": style.line_opacity,
    }
    if style.gradient:
        paint["line-gradient"] = progress_gradient(style, 0.02)
    else:
        paint["line-color"] = style.color
    return paint


def background_paint(style: OverlayStyle) -> dict[str, Any]:
    return {
        "line-color": style.color,
        "line-width": style.line_width,
        "line-opacity": style.background_opacity,
    }


def point_paint(style: OverlayStyle) -> dict[str, Any]:
    paint: dict[str, Any] = {
        "circle-radius": style.point_radius,
        "circle-color": style.color,
        "circle-opacity": style.point_opacity,
    }
    if style.point_stroke_width:
        paint["circle-stroke-width"] = style.point_stroke_width
        paint["circle-stroke-color"] = style.color
        paint["circle-stroke-opacity"] = style.point_stroke_opacity
    return paint


def driving_paint(style: OverlayStyle) -> dict[str, Any]:
    return {
        "line-color": style.driving_color,
        "line-width": style.line_width,
        "line-opacity": style.driving_opacity,
    }
