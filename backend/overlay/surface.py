from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from geo.types import GeoPoint

EventHandler = Callable[[dict[str, Any]], None]


class SurfaceError(RuntimeError):
    pass


class Marker(Protocol):
    def set_position(self, point: GeoPoint) -> None: ...

    def set_rotation(self, degrees: float) -> None: ...

    def remove(self) -> None: ...


class RenderSurface(Protocol):
    """
    Map capability set the overlay code draws on.

    Layer specs follow the Mapbox GL style shape:
    {"id", "type": "line"|"circle", "source", "layout"?, "paint"?}.
    """

    def add_source(self, source_id: str, data: dict[str, Any]) -> None: ...

    def remove_source(self, source_id: str) -> None: ...

    def add_layer(self, layer: dict[str, Any]) -> None: ...

    def remove_layer(self, layer_id: str) -> None: ...

    def set_paint_property(self, layer_id: str, name: str, value: Any) -> None: ...

    def create_marker(self, marker_id: str, point: GeoPoint) -> Marker: ...

    def on(self, event: str, handler: EventHandler) -> None: ...

    def off(self, event: str, handler: EventHandler) -> None: ...


@dataclass
class InMemoryMarker:
    id: str
    position: GeoPoint
    rotation: float = 0.0
    removed: bool = False
    _surface: "InMemorySurface | None" = field(default=None, repr=False)

    def set_position(self, point: GeoPoint) -> None:
        if self.removed:
            raise SurfaceError(f"Marker {self.id!r} was removed")
        self.position = point

    def set_rotation(self, degrees: float) -> None:
        if self.removed:
            raise SurfaceError(f"Marker {self.id!r} was removed")
        self.rotation = float(degrees)

    def remove(self) -> None:
        if self.removed:
            return
        self.removed = True
        if self._surface is not None:
            self._surface.markers.pop(self.id, None)


@dataclass
class InMemorySurface:
    """
    Recording render surface.

    Holds sources/layers/markers the way a GL map would and enforces the same rules:
    unique ids, layers must reference an existing source, and a source cannot be
    removed while a layer still uses it.
    """

    sources: dict[str, dict[str, Any]] = field(default_factory=dict)
    layers: dict[str, dict[str, Any]] = field(default_factory=dict)
    markers: dict[str, InMemoryMarker] = field(default_factory=dict)
    zoom: float = 1.0
    center: GeoPoint = field(default_factory=lambda: GeoPoint(lat=20.5937, lng=78.9629))
    _handlers: dict[str, list[EventHandler]] = field(default_factory=dict, repr=False)

    def add_source(self, source_id: str, data: dict[str, Any]) -> None:
        if source_id in self.sources:
            raise SurfaceError(f"Source already exists: {source_id}")
        self.sources[source_id] = copy.deepcopy(data)

    def remove_source(self, source_id: str) -> None:
        if source_id not in self.sources:
            raise SurfaceError(f"Unknown source: {source_id}")
        users = [lid for lid, spec in self.layers.items() if spec.get("source") == source_id]
        if users:
            raise SurfaceError(f"Source {source_id} is still used by layers {users}")
        del self.sources[source_id]

    def add_layer(self, layer: dict[str, Any]) -> None:
        layer_id = str(layer.get("id") or "")
        if not layer_id:
            raise SurfaceError("Layer spec is missing an id")
        if layer_id in self.layers:
            raise SurfaceError(f"Layer already exists: {layer_id}")
        if layer.get("source") not in self.sources:
            raise SurfaceError(f"Layer {layer_id} references unknown source {layer.get('source')}")
        self.layers[layer_id] = copy.deepcopy(layer)

    def remove_layer(self, layer_id: str) -> None:
        if layer_id not in self.layers:
            raise SurfaceError(f"Unknown layer: {layer_id}")
        del self.layers[layer_id]

    def set_paint_property(self, layer_id: str, name: str, value: Any) -> None:
        spec = self.layers.get(layer_id)
        if spec is None:
            raise SurfaceError(f"Unknown layer: {layer_id}")
        spec.setdefault("paint", {})[name] = value

    def create_marker(self, marker_id: str, point: GeoPoint) -> InMemoryMarker:
        if marker_id in self.markers:
            raise SurfaceError(f"Marker already exists: {marker_id}")
        marker = InMemoryMarker(id=marker_id, position=point, _surface=self)
        self.markers[marker_id] = marker
        return marker

    def on(self, event: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def off(self, event: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event) or []
        if handler in handlers:
            handlers.remove(handler)

    def subscriber_count(self, event: str | None = None) -> int:
        if event is not None:
            return len(self._handlers.get(event) or [])
        return sum(len(h) for h in self._handlers.values())

    def emit(self, event: str, payload: dict[str, Any] | None = None) -> None:
        for handler in list(self._handlers.get(event) or []):
            handler(payload or {})

    def set_zoom(self, zoom: float) -> None:
        self.zoom = float(zoom)
        self.emit("zoom", {"zoom": self.zoom})

    def resource_ids(self) -> set[str]:
        return set(self.sources) | set(self.layers) | set(self.markers)

    def is_empty(self) -> bool:
        return not self.sources and not self.layers and not self.markers
