import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest


# Ensure `backend/` is on sys.path so tests can import local modules
# like `geo.*`, `overlay.*`, and `main`.
BACKEND_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_ROOT))

from geo.types import NamedPoint  # noqa: E402
from routes.types import Route  # noqa: E402


class ManualFrameClock:
    """
    Frame clock driven by the test: every waiter resumes on `emit(ts)`.
    """

    def __init__(self) -> None:
        self._waiters: list[asyncio.Future] = []

    async def next_frame(self) -> float:
        fut = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        return await fut

    @property
    def waiting(self) -> int:
        return sum(1 for w in self._waiters if not w.done())

    def emit(self, ts_ms: float) -> int:
        waiters, self._waiters = self._waiters, []
        n = 0
        for w in waiters:
            if not w.done():
                w.set_result(float(ts_ms))
                n += 1
        return n


async def settle(n: int = 5) -> None:
    for _ in range(n):
        await asyncio.sleep(0)


_BASE_TS = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def make_route(
    rid: str,
    origin: tuple[float, float],
    destination: tuple[float, float],
    *,
    minutes_ago: int = 0,
    popularity: int = 0,
    duration_minutes: int = 10,
) -> Route:
    return Route(
        id=rid,
        origin=NamedPoint(lat=origin[0], lng=origin[1], name=f"{rid} from, City"),
        destination=NamedPoint(lat=destination[0], lng=destination[1], name=f"{rid} to, City"),
        created_at=_BASE_TS - timedelta(minutes=minutes_ago),
        duration_minutes=duration_minutes,
        popularity=popularity,
    )


@pytest.fixture
def frame_clock() -> ManualFrameClock:
    return ManualFrameClock()


@pytest.fixture
def route_factory():
    return make_route


@pytest.fixture
def settle_loop():
    return settle


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path):
    # Never pick up a developer's config or tokens.
    from settings.config import clear_settings_cache

    for var in (
        "SKYHOP_CONFIG",
        "SKYHOP_STORE",
        "SKYHOP_DB_PATH",
        "SKYHOP_MAPBOX_TOKEN",
        "SKYHOP_STRICT_OVERLAYS",
        "SKYHOP_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("SKYHOP_CONFIG", str(tmp_path / "missing.yaml"))
    clear_settings_cache()
    yield
    clear_settings_cache()
