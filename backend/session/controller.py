from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable

from animation.clock import AsyncioFrameClock, FrameClock
from animation.scheduler import AnimationScheduler, MarkerPose
from geo.path import PathMode, generate_path
from geo.types import GeoPoint
from overlay.manager import (
    MarkerNotFoundError,
    OverlayLayerManager,
    OverlayNamespace,
    overlay_id,
)
from overlay.styles import ACTIVE_STYLE
from overlay.surface import RenderSurface
from planning.directions import DirectionsService
from planning.timing import TimeComparison, compare_from_directions, fetch_directions
from routes.reconcile import ReconcileDiff
from routes.store import RoutesStore
from routes.types import Route
from session.refresh import PublicRouteRefresher

logger = logging.getLogger(__name__)

PoseListener = Callable[[MarkerPose], None]


class FlightMapController:
    """
    One map session: the surface, its overlays, the active route animation and the
    public-route refresh loop.

    Everything that has to outlive a single call (marker handle, animation task,
    refresh task, event subscriptions) is a field here and is released by `aclose()`.
    """

    def __init__(
        self,
        surface: RenderSurface,
        store: RoutesStore,
        *,
        directions: DirectionsService | None = None,
        clock: FrameClock | None = None,
        duration_ms: float = 10_000.0,
        refresh_interval_s: float = 10.0,
        refresh_limit: int | None = None,
        strict_overlays: bool = True,
    ) -> None:
        self.surface = surface
        self.store = store
        self.directions = directions
        self.overlays = OverlayLayerManager(surface, strict=strict_overlays)
        self.duration_ms = float(duration_ms)
        self.refresh_interval_s = float(refresh_interval_s)

        self._clock: FrameClock = clock or AsyncioFrameClock()
        self._lock = asyncio.Lock()
        self._active: Route | None = None
        self._active_times: TimeComparison | None = None
        self._scheduler: AnimationScheduler | None = None
        self._refresh_task: asyncio.Task | None = None
        self._pose_listeners: list[PoseListener] = []
        self._subscriptions: list[tuple[str, Callable[[dict[str, Any]], None]]] = []
        self._closed = False

        self.refresher = PublicRouteRefresher(
            store,
            self.overlays,
            self._lock,
            lambda: self._active,
            limit=refresh_limit,
        )
        self._subscribe("zoom", self._on_zoom)

    @property
    def active_route(self) -> Route | None:
        return self._active

    @property
    def active_times(self) -> TimeComparison | None:
        return self._active_times

    @property
    def scheduler(self) -> AnimationScheduler | None:
        return self._scheduler

    @property
    def closed(self) -> bool:
        return self._closed

    def active_overlay_id(self) -> str | None:
        if self._active is None:
            return None
        return overlay_id(OverlayNamespace.active, self._active.key)

    async def set_active_route(
        self,
        route: Route | None,
        *,
        driving_path: list[GeoPoint] | None = None,
        times: TimeComparison | None = None,
        refresh: bool = True,
    ) -> None:
        """
        Switch the animated route (None clears it).

        The previous animation and overlay are fully gone before the new ones are set
        up; the refresher cannot run in between. Directions are fetched before the
        overlay lock is taken, so the old route stays on screen during the lookup.
        """
        if self._closed:
            raise RuntimeError("Map session is closed")

        if route is not None and driving_path is None and times is None:
            if self.directions is not None:
                result = await fetch_directions(route.origin, route.destination, self.directions)
                times = compare_from_directions(route.origin, route.destination, result)
                if result is not None and len(result.path) >= 2:
                    driving_path = list(result.path)

        async with self._lock:
            if self._closed:
                raise RuntimeError("Map session is closed")
            self._teardown_active()
            if route is not None:
                self._setup_active(route, driving_path)
                self._active_times = times

        if refresh:
            # Public routes that duplicate the new active route (or the old one) change.
            await self.refresher.refresh()

    async def clear_active_route(self) -> None:
        await self.set_active_route(None)

    def _teardown_active(self) -> None:
        if self._scheduler is not None:
            self._scheduler.cancel()
            self._scheduler = None
        oid = self.active_overlay_id()
        if oid is not None:
            self.overlays.remove_route(oid)
        self._active = None
        self._active_times = None

    def _setup_active(self, route: Route, driving_path: list[GeoPoint] | None) -> None:
        oid = overlay_id(OverlayNamespace.active, route.key)
        path = generate_path(route.origin, route.destination, PathMode.quadratic)
        self.overlays.add_route(
            oid,
            path,
            ACTIVE_STYLE,
            with_marker=True,
            driving_path=driving_path,
        )
        self.overlays.apply_zoom(getattr(self.surface, "zoom", 8.0))
        self._active = route

        scheduler = AnimationScheduler(self._clock, self._on_pose)
        self._scheduler = scheduler
        scheduler.start(route, self.duration_ms)
        logger.info(
            "Active route %s -> %s (%s)",
            route.origin.short_name or route.origin.lnglat(),
            route.destination.short_name or route.destination.lnglat(),
            route.key,
        )

    def _on_pose(self, pose: MarkerPose) -> None:
        oid = self.active_overlay_id()
        try:
            if oid is None:
                raise MarkerNotFoundError("No active route")
            self.overlays.update_marker_pose(oid, pose.point, pose.bearing_deg)
        except MarkerNotFoundError:
            # Route went away mid-animation: same as an explicit cancel.
            if self._scheduler is not None:
                self._scheduler.cancel()
            return
        self.overlays.set_progress(oid, pose.progress)
        for listener in list(self._pose_listeners):
            listener(pose)

    def add_pose_listener(self, listener: PoseListener) -> Callable[[], None]:
        self._pose_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._pose_listeners:
                self._pose_listeners.remove(listener)

        return unsubscribe

    async def refresh_public_routes(self) -> ReconcileDiff | None:
        return await self.refresher.refresh()

    def start_refresh_loop(self) -> None:
        if self._refresh_task is not None and not self._refresh_task.done():
            return
        self._refresh_task = asyncio.get_running_loop().create_task(
            self.refresher.run_forever(self.refresh_interval_s),
            name="public-route-refresh",
        )

    async def _stop_refresh_loop(self) -> None:
        task = self._refresh_task
        self._refresh_task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _subscribe(self, event: str, handler: Callable[[dict[str, Any]], None]) -> None:
        self.surface.on(event, handler)
        self._subscriptions.append((event, handler))

    def _unsubscribe_all(self) -> None:
        while self._subscriptions:
            event, handler = self._subscriptions.pop()
            self.surface.off(event, handler)

    def _on_zoom(self, payload: dict[str, Any]) -> None:
        zoom = payload.get("zoom")
        if zoom is None or self._active is None:
            return
        self.overlays.apply_zoom(float(zoom))

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._stop_refresh_loop()
        async with self._lock:
            self._teardown_active()
            self._unsubscribe_all()
            removed = self.overlays.clear()
        self._pose_listeners.clear()
        logger.info("Map session closed (%d overlays removed)", removed)

    async def __aenter__(self) -> "FlightMapController":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()


@asynccontextmanager
async def open_session(
    surface: RenderSurface,
    store: RoutesStore,
    *,
    start_refresh: bool = True,
    **kwargs: Any,
) -> AsyncIterator[FlightMapController]:
    """
    Scoped map session: initial public-route fetch, periodic refresh, guaranteed teardown.
    """
    controller = FlightMapController(surface, store, **kwargs)
    try:
        if start_refresh:
            controller.start_refresh_loop()
        else:
            await controller.refresh_public_routes()
        yield controller
    finally:
        await controller.aclose()
