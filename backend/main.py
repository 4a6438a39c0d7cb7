from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from animation.clock import AsyncioFrameClock
from api.pose_stream import stream_poses
from geo.types import NamedPoint
from overlay.plot import build_surface_plot
from overlay.surface import InMemorySurface
from planning.directions import DirectionsService, MapboxDirectionsClient
from planning.plan import plan_route
from routes.demo import demo_routes
from routes.duckdb_store import DuckDBRoutesStore
from routes.listings import leaderboard, public_wall
from routes.store import InMemoryRoutesStore, RoutesStore
from session.controller import FlightMapController, open_session
from settings.config import SkyhopSettings, get_settings
from settings.logging_config import configure as configure_logging


def build_store(settings: SkyhopSettings) -> RoutesStore:
    if settings.store.kind == "duckdb":
        store: RoutesStore = DuckDBRoutesStore.open(settings.duckdb_path())
    else:
        store = InMemoryRoutesStore()
    if settings.store.seed_demo_routes and not store.list_routes(limit=1):
        for route in demo_routes():
            store.save_route(route)
    return store


def build_directions(settings: SkyhopSettings) -> DirectionsService | None:
    cfg = settings.directions
    if cfg.provider != "mapbox" or not cfg.mapbox_token:
        return None
    return MapboxDirectionsClient(access_token=cfg.mapbox_token, timeout_s=cfg.timeout_s)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.logging.level)
    store = build_store(settings)
    app.state.store = store
    app.state.directions = build_directions(settings)
    async with open_session(
        InMemorySurface(),
        store,
        directions=app.state.directions,
        clock=AsyncioFrameClock(settings.animation.fps),
        duration_ms=settings.animation.duration_ms,
        refresh_interval_s=settings.refresh.interval_s,
        refresh_limit=settings.refresh.limit,
        strict_overlays=settings.overlays.strict,
    ) as controller:
        app.state.controller = controller
        yield
    if isinstance(store, DuckDBRoutesStore):
        store.close()


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ApiPoint(BaseModel):
    name: str = ""
    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)

    def to_named_point(self) -> NamedPoint:
        return NamedPoint(lat=self.lat, lng=self.lng, name=self.name)


class ApiPlanRequest(BaseModel):
    origin: ApiPoint = Field(alias="from")
    destination: ApiPoint = Field(alias="to")
    publish: bool = True
    activate: bool = True


class ApiActiveRequest(BaseModel):
    routeId: str


class ApiZoomRequest(BaseModel):
    zoom: float = Field(ge=0.0, le=24.0)


def _controller(request: Request) -> FlightMapController:
    return request.app.state.controller


def _store(request: Request) -> RoutesStore:
    return request.app.state.store


def _session_summary(controller: FlightMapController) -> dict:
    active = controller.active_route
    times = controller.active_times
    return {
        "activeRoute": active.to_dict() if active is not None else None,
        "times": times.to_dict() if times is not None else None,
        "overlays": len(controller.overlays),
        "resources": controller.overlays.resource_count(),
    }


@app.post("/plan")
async def plan(body: ApiPlanRequest, request: Request):
    controller = _controller(request)
    result = await plan_route(
        body.origin.to_named_point(),
        body.destination.to_named_point(),
        directions=request.app.state.directions,
    )
    if body.publish:
        _store(request).save_route(result.route)
    if body.activate:
        await controller.set_active_route(
            result.route, driving_path=result.driving_path, times=result.times
        )
    return result.to_dict()


@app.get("/routes/recent")
def routes_recent(request: Request, limit: int = 4):
    return {"routes": public_wall(_store(request), limit=max(1, min(50, limit)))}


@app.get("/routes/leaderboard")
def routes_leaderboard(request: Request, limit: int = 3):
    routes = leaderboard(_store(request), limit=max(1, min(50, limit)))
    return {"routes": [r.to_dict() for r in routes]}


@app.post("/routes/{route_id}/select")
async def routes_select(route_id: str, request: Request):
    route = _store(request).increment_popularity(route_id)
    if route is None:
        raise HTTPException(status_code=404, detail=f"Unknown route: {route_id}")
    controller = _controller(request)
    await controller.set_active_route(route)
    return _session_summary(controller)


@app.post("/session/active")
async def session_set_active(body: ApiActiveRequest, request: Request):
    route = _store(request).get_route(body.routeId)
    if route is None:
        raise HTTPException(status_code=404, detail=f"Unknown route: {body.routeId}")
    controller = _controller(request)
    await controller.set_active_route(route)
    return _session_summary(controller)


@app.delete("/session/active")
async def session_clear_active(request: Request):
    controller = _controller(request)
    await controller.clear_active_route()
    return _session_summary(controller)


@app.post("/session/refresh")
async def session_refresh(request: Request):
    controller = _controller(request)
    diff = await controller.refresh_public_routes()
    return {
        "ok": diff is not None,
        "error": controller.refresher.last_error,
        "added": [r.key for r in diff.to_add] if diff is not None else [],
        "removed": list(diff.to_remove) if diff is not None else [],
        **_session_summary(controller),
    }


@app.post("/session/zoom")
async def session_zoom(body: ApiZoomRequest, request: Request):
    controller = _controller(request)
    surface = controller.surface
    if not isinstance(surface, InMemorySurface):
        raise HTTPException(status_code=409, detail="Surface does not support zoom")
    surface.set_zoom(body.zoom)
    return {"zoom": surface.zoom}


@app.get("/session/plot")
async def session_plot(request: Request):
    controller = _controller(request)
    surface = controller.surface
    if not isinstance(surface, InMemorySurface):
        raise HTTPException(status_code=409, detail="Surface cannot be exported")
    payload = build_surface_plot(surface)
    payload["layout"]["meta"]["session"] = _session_summary(controller)
    return payload


@app.get("/session/stream")
def session_stream(request: Request, frames: int = 120):
    return StreamingResponse(
        stream_poses(_controller(request), max_frames=max(1, min(10_000, frames))),
        media_type="text/event-stream",
    )
