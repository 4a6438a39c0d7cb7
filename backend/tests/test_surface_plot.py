from geo.path import PathMode, generate_path
from geo.types import GeoPoint
from overlay.manager import OverlayLayerManager, OverlayNamespace, overlay_id
from overlay.plot import build_surface_plot
from overlay.styles import ACTIVE_STYLE, PUBLIC_STYLE, progress_gradient, zoom_factor
from overlay.surface import InMemorySurface

A = GeoPoint(lat=12.9716, lng=77.5946)
B = GeoPoint(lat=13.1986, lng=77.7066)


def test_plot_has_one_trace_per_layer_plus_markers():
    surface = InMemorySurface()
    mgr = OverlayLayerManager(surface)
    mgr.add_route(
        overlay_id(OverlayNamespace.active, "a"),
        generate_path(A, B),
        ACTIVE_STYLE,
        with_marker=True,
    )
    mgr.add_route(
        overlay_id(OverlayNamespace.public, "p"),
        generate_path(B, A, PathMode.cubic),
        PUBLIC_STYLE,
    )

    payload = build_surface_plot(surface)

    assert len(payload["data"]) == 6 + 1
    assert payload["layout"]["meta"]["stats"] == {"layers": 6, "sources": 4, "markers": 1}
    lines = [t for t in payload["data"] if t["mode"] == "lines"]
    assert all(len(t["lon"]) == len(t["lat"]) > 0 for t in lines)
    active_fg = next(t for t in lines if t["name"] == "active:a:line")
    assert active_fg["line"]["color"] == ACTIVE_STYLE.color
    marker_trace = payload["data"][-1]
    assert marker_trace["marker"]["symbol"] == "airport"
    assert marker_trace["lon"] == [A.lng]


def test_empty_surface_plot():
    payload = build_surface_plot(InMemorySurface())
    assert payload["data"] == []
    assert payload["layout"]["mapbox"]["zoom"] == 1.0


def test_progress_gradient_stops_are_strictly_ascending():
    for t in (0.0, 0.005, 0.01, 0.011, 0.5, 0.99, 1.0):
        expr = progress_gradient(ACTIVE_STYLE, t)
        stops = expr[3::2]
        assert stops[0] == 0
        assert all(a < b for a, b in zip(stops, stops[1:])), (t, stops)


def test_zoom_factor_is_clamped():
    assert zoom_factor(0.0) == 0.5
    assert zoom_factor(6.0) == 0.75
    assert zoom_factor(20.0) == 1.0
