from __future__ import annotations

from typing import Any

from overlay.surface import InMemorySurface


def _line_coords(source: dict[str, Any]) -> list[tuple[float, float]]:
    geom = source.get("geometry") or {}
    if geom.get("type") != "LineString":
        return []
    return [(float(c[0]), float(c[1])) for c in geom.get("coordinates") or []]


def _point_coords(source: dict[str, Any]) -> list[tuple[float, float]]:
    out: list[tuple[float, float]] = []
    for f in source.get("features") or []:
        geom = f.get("geometry") or {}
        if geom.get("type") == "Point":
            c = geom.get("coordinates") or []
            out.append((float(c[0]), float(c[1])))
    return out


def _line_color(paint: dict[str, Any]) -> str:
    color = paint.get("line-color")
    if color:
        return str(color)
    gradient = paint.get("line-gradient")
    # ["interpolate", ["linear"], ["line-progress"], 0, <color>, ...]
    if isinstance(gradient, list) and len(gradient) > 4:
        return str(gradient[4])
    return "rgba(67, 160, 71, 0.9)"


def trace_line_layer(layer: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
    coords = _line_coords(source)
    paint = layer.get("paint") or {}
    return {
        "type": "scattermapbox",
        "name": layer["id"],
        "lon": [c[0] for c in coords],
        "lat": [c[1] for c in coords],
        "mode": "lines",
        "opacity": float(paint.get("line-opacity", 1.0)),
        "line": {
            "color": _line_color(paint),
            "width": float(paint.get("line-width", 2.0)),
        },
        "hoverinfo": "skip",
        "showlegend": False,
    }


def trace_circle_layer(layer: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
    coords = _point_coords(source)
    paint = layer.get("paint") or {}
    return {
        "type": "scattermapbox",
        "name": layer["id"],
        "lon": [c[0] for c in coords],
        "lat": [c[1] for c in coords],
        "mode": "markers",
        "marker": {
            "size": float(paint.get("circle-radius", 3.0)) * 2.0,
            "color": paint.get("circle-color") or "rgba(255, 193, 7, 0.75)",
            "opacity": float(paint.get("circle-opacity", 1.0)),
        },
        "hoverinfo": "skip",
        "showlegend": False,
    }


def trace_markers(surface: InMemorySurface) -> dict[str, Any]:
    markers = list(surface.markers.values())
    return {
        "type": "scattermapbox",
        "name": "eVTOL",
        "lon": [m.position.lng for m in markers],
        "lat": [m.position.lat for m in markers],
        "mode": "markers",
        "text": [m.id for m in markers],
        "marker": {
            "size": 14,
            "symbol": "airport",
            "angle": [m.rotation for m in markers],
            "allowoverlap": True,
        },
        "hovertemplate": "%{text}<extra></extra>",
    }


def build_surface_plot(surface: InMemorySurface) -> dict[str, Any]:
    """
    Plotly figure for everything currently drawn on an in-memory surface.

    Layers are emitted in insertion order (what a GL map would stack), markers last.
    """
    traces: list[dict[str, Any]] = []
    for layer in surface.layers.values():
        source = surface.sources.get(layer.get("source")) or {}
        if layer.get("type") == "line":
            traces.append(trace_line_layer(layer, source))
        elif layer.get("type") == "circle":
            traces.append(trace_circle_layer(layer, source))
    if surface.markers:
        traces.append(trace_markers(surface))

    return {
        "data": traces,
        "layout": {
            "mapbox": {
                "center": {"lat": surface.center.lat, "lon": surface.center.lng},
                "zoom": surface.zoom,
                "style": "carto-darkmatter",
            },
            "margin": {"l": 0, "r": 0, "t": 0, "b": 0},
            "meta": {
                "stats": {
                    "layers": len(surface.layers),
                    "sources": len(surface.sources),
                    "markers": len(surface.markers),
                }
            },
        },
    }
