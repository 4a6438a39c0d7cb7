from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

from shapely.geometry import LineString, Point, mapping

from geo.path import PathSegment
from geo.types import GeoPoint
from overlay.styles import (
    LINE_LAYOUT,
    ZOOM_LINE_WIDTH,
    ZOOM_POINT_RADIUS,
    OverlayStyle,
    background_paint,
    driving_paint,
    line_paint,
    point_paint,
    progress_gradient,
    zoom_factor,
)
from overlay.surface import Marker, RenderSurface

logger = logging.getLogger(__name__)


class OverlayNamespace(str, Enum):
    active = "active"
    public = "public"


class OverlayError(RuntimeError):
    pass


class DuplicateResourceError(OverlayError):
    pass


class MarkerNotFoundError(OverlayError):
    pass


def overlay_id(namespace: OverlayNamespace, route_key: str) -> str:
    return f"{OverlayNamespace(namespace).value}:{route_key}"


def split_overlay_id(oid: str) -> tuple[OverlayNamespace, str]:
    ns, _, key = oid.partition(":")
    return OverlayNamespace(ns), key


@dataclass
class OverlayEntry:
    """
    Render-surface resources owned by one route.

    Layer ids are listed in removal order; layers always go before sources.
    """

    overlay_id: str
    style: OverlayStyle
    line_source: str
    points_source: str
    foreground_layer: str
    background_layer: str
    points_layer: str
    driving_source: str | None = None
    driving_layer: str | None = None
    marker_id: str | None = None
    marker: Marker | None = field(default=None, repr=False)

    def layer_ids(self) -> list[str]:
        out = [self.foreground_layer, self.background_layer]
        if self.driving_layer:
            out.append(self.driving_layer)
        out.append(self.points_layer)
        return out

    def source_ids(self) -> list[str]:
        out = [self.line_source]
        if self.driving_source:
            out.append(self.driving_source)
        out.append(self.points_source)
        return out

    def resource_ids(self) -> set[str]:
        ids = set(self.layer_ids()) | set(self.source_ids())
        if self.marker_id:
            ids.add(self.marker_id)
        return ids


def _endpoints_feature_collection(path: PathSegment) -> dict[str, Any]:
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": mapping(Point(path.first.lnglat())),
                "properties": {"point": "start"},
            },
            {
                "type": "Feature",
                "geometry": mapping(Point(path.last.lnglat())),
                "properties": {"point": "end"},
            },
        ],
    }


def _line_feature(coords: list[tuple[float, float]]) -> dict[str, Any]:
    return {
        "type": "Feature",
        "properties": {},
        "geometry": mapping(LineString(coords)),
    }


class OverlayLayerManager:
    """
    Owns the OverlaySet: overlay id -> resources drawn for that route.

    Both the active-route session and the public-route refresher draw through one
    manager; their overlay ids live in separate namespaces so resource ids never
    collide.
    """

    def __init__(self, surface: RenderSurface, *, strict: bool = True) -> None:
        self._surface = surface
        self._entries: dict[str, OverlayEntry] = {}
        self.strict = strict

    def __contains__(self, oid: str) -> bool:
        return oid in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, oid: str) -> OverlayEntry | None:
        return self._entries.get(oid)

    def route_keys(self, namespace: OverlayNamespace) -> set[str]:
        ns = OverlayNamespace(namespace)
        out: set[str] = set()
        for oid in self._entries:
            entry_ns, key = split_overlay_id(oid)
            if entry_ns is ns:
                out.add(key)
        return out

    def resource_count(self) -> int:
        return sum(len(e.resource_ids()) for e in self._entries.values())

    def owned_resource_ids(self) -> set[str]:
        out: set[str] = set()
        for e in self._entries.values():
            out |= e.resource_ids()
        return out

    def add_route(
        self,
        oid: str,
        path: PathSegment,
        style: OverlayStyle,
        *,
        with_marker: bool = False,
        driving_path: list[GeoPoint] | None = None,
    ) -> OverlayEntry:
        if oid in self._entries:
            if self.strict:
                raise DuplicateResourceError(f"Overlay {oid!r} already exists; remove it first")
            logger.warning("Overlay %s already exists; replacing it", oid)
            self.remove_route(oid)

        has_driving = bool(driving_path) and len(driving_path or []) >= 2
        entry = OverlayEntry(
            overlay_id=oid,
            style=style,
            line_source=f"{oid}:line-src",
            points_source=f"{oid}:points-src",
            foreground_layer=f"{oid}:line",
            background_layer=f"{oid}:line-bg",
            points_layer=f"{oid}:points",
            driving_source=f"{oid}:driving-src" if has_driving else None,
            driving_layer=f"{oid}:driving" if has_driving else None,
            marker_id=f"{oid}:marker" if with_marker else None,
        )
        clash = entry.resource_ids() & self.owned_resource_ids()
        if clash:
            raise DuplicateResourceError(f"Resource ids already owned: {sorted(clash)}")

        # Register before touching the surface so a partial failure can be rolled back
        # through the normal removal path.
        self._entries[oid] = entry
        try:
            self._draw(entry, path, style, driving_path if has_driving else None)
        except Exception:
            logger.exception("Failed to draw overlay %s; rolling back", oid)
            self._remove_entry(entry, tolerate_missing=True)
            self._entries.pop(oid, None)
            raise
        logger.debug("Added overlay %s (%d resources)", oid, len(entry.resource_ids()))
        return entry

    def _draw(
        self,
        entry: OverlayEntry,
        path: PathSegment,
        style: OverlayStyle,
        driving_path: list[GeoPoint] | None,
    ) -> None:
        s = self._surface
        line_data = path.to_geojson()
        s.add_source(entry.line_source, line_data)
        s.add_source(entry.points_source, _endpoints_feature_collection(path))

        s.add_layer(
            {
                "id": entry.points_layer,
                "type": "circle",
                "source": entry.points_source,
                "paint": point_paint(style),
            }
        )
        s.add_layer(
            {
                "id": entry.background_layer,
                "type": "line",
                "source": entry.line_source,
                "layout": dict(LINE_LAYOUT),
                "paint": background_paint(style),
            }
        )
        s.add_layer(
            {
                "id": entry.foreground_layer,
                "type": "line",
                "source": entry.line_source,
                "layout": dict(LINE_LAYOUT),
                "paint": line_paint(style),
            }
        )
        if driving_path and entry.driving_source and entry.driving_layer:
            s.add_source(
                entry.driving_source, _line_feature([p.lnglat() for p in driving_path])
            )
            s.add_layer(
                {
                    "id": entry.driving_layer,
                    "type": "line",
                    "source": entry.driving_source,
                    "layout": dict(LINE_LAYOUT),
                    "paint": driving_paint(style),
                }
            )
        if entry.marker_id:
            entry.marker = s.create_marker(entry.marker_id, path.first)

    def remove_route(self, oid: str) -> bool:
        """
        Remove every resource of `oid`. Unknown ids are a no-op (returns False).
        """
        entry = self._entries.pop(oid, None)
        if entry is None:
            return False
        self._remove_entry(entry, tolerate_missing=False)
        logger.debug("Removed overlay %s", oid)
        return True

    def _remove_entry(self, entry: OverlayEntry, *, tolerate_missing: bool) -> None:
        s = self._surface
        # Order matters: layers before the sources they reference.
        for layer_id in entry.layer_ids():
            self._call(s.remove_layer, layer_id, tolerate_missing)
        if entry.marker is not None:
            entry.marker.remove()
            entry.marker = None
        for source_id in entry.source_ids():
            self._call(s.remove_source, source_id, tolerate_missing)

    @staticmethod
    def _call(fn, resource_id: str, tolerate_missing: bool) -> None:
        if not tolerate_missing:
            fn(resource_id)
            return
        try:
            fn(resource_id)
        except Exception:
            # Rollback of a half-drawn overlay: some resources were never created.
            logger.debug("Skipping missing resource %s during rollback", resource_id)

    def clear(self, namespace: OverlayNamespace | None = None) -> int:
        removed = 0
        for oid in list(self._entries):
            if namespace is not None and split_overlay_id(oid)[0] is not OverlayNamespace(namespace):
                continue
            if self.remove_route(oid):
                removed += 1
        return removed

    def update_marker_pose(self, oid: str, point: GeoPoint, bearing_deg: float) -> None:
        entry = self._entries.get(oid)
        if entry is None or entry.marker is None:
            raise MarkerNotFoundError(f"No marker for overlay {oid!r}")
        entry.marker.set_position(point)
        entry.marker.set_rotation(bearing_deg)

    def set_progress(self, oid: str, t: float) -> None:
        entry = self._entries.get(oid)
        if entry is None or not entry.style.gradient:
            return
        self._surface.set_paint_property(
            entry.foreground_layer, "line-gradient", progress_gradient(entry.style, t)
        )

    def apply_zoom(
        self, zoom: float, namespace: OverlayNamespace = OverlayNamespace.active
    ) -> float:
        factor = zoom_factor(zoom)
        width = ZOOM_LINE_WIDTH * factor
        ns = OverlayNamespace(namespace)
        for oid, entry in self._entries.items():
            if split_overlay_id(oid)[0] is not ns:
                continue
            for layer_id in (entry.foreground_layer, entry.background_layer, entry.driving_layer):
                if layer_id:
                    self._surface.set_paint_property(layer_id, "line-width", width)
            self._surface.set_paint_property(
                entry.points_layer, "circle-radius", ZOOM_POINT_RADIUS * factor
            )
        return factor
