from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field


def _repo_root() -> Path:
    # .../backend/settings/config.py -> repo root is 2 levels up
    return Path(__file__).resolve().parents[2]


class StoreSettings(BaseModel):
    kind: Literal["memory", "duckdb"] = "memory"
    duckdb_path: str = "data/routes.duckdb"
    seed_demo_routes: bool = True


class AnimationSettings(BaseModel):
    duration_ms: float = Field(default=10_000.0, gt=0.0)
    fps: float = Field(default=60.0, gt=0.0, le=240.0)


class RefreshSettings(BaseModel):
    interval_s: float = Field(default=10.0, gt=0.0)
    limit: int | None = Field(default=None, ge=1)


class OverlaySettings(BaseModel):
    strict: bool = True


class DirectionsSettings(BaseModel):
    provider: Literal["mapbox", "none"] = "mapbox"
    mapbox_token: str | None = None
    timeout_s: float = Field(default=5.0, gt=0.0)


class LoggingSettings(BaseModel):
    level: str = "INFO"


class SkyhopSettings(BaseModel):
    store: StoreSettings = Field(default_factory=StoreSettings)
    animation: AnimationSettings = Field(default_factory=AnimationSettings)
    refresh: RefreshSettings = Field(default_factory=RefreshSettings)
    overlays: OverlaySettings = Field(default_factory=OverlaySettings)
    directions: DirectionsSettings = Field(default_factory=DirectionsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def duckdb_path(self) -> Path:
        p = Path(self.store.duckdb_path)
        return p if p.is_absolute() else _repo_root() / p


def config_path() -> Path:
    return Path(os.getenv("SKYHOP_CONFIG") or (_repo_root() / "config" / "skyhop.yaml"))


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config yaml root: {path}")
    return data


def _env_flag(raw: str) -> bool:
    return raw.strip().lower() not in {"0", "false", "no", "off"}


def _apply_env_overrides(data: dict) -> dict:
    store = dict(data.get("store") or {})
    overlays = dict(data.get("overlays") or {})
    directions = dict(data.get("directions") or {})
    logging_cfg = dict(data.get("logging") or {})

    if v := (os.getenv("SKYHOP_STORE") or "").strip().lower():
        store["kind"] = v
    if v := (os.getenv("SKYHOP_DB_PATH") or "").strip():
        store["duckdb_path"] = v
    if v := (os.getenv("SKYHOP_MAPBOX_TOKEN") or "").strip():
        directions["mapbox_token"] = v
    if v := (os.getenv("SKYHOP_STRICT_OVERLAYS") or "").strip():
        overlays["strict"] = _env_flag(v)
    if v := (os.getenv("SKYHOP_LOG_LEVEL") or "").strip():
        logging_cfg["level"] = v

    return {
        **data,
        "store": store,
        "overlays": overlays,
        "directions": directions,
        "logging": logging_cfg,
    }


@lru_cache(maxsize=1)
def get_settings() -> SkyhopSettings:
    raw = _load_yaml(config_path())
    return SkyhopSettings.model_validate(_apply_env_overrides(raw))


def clear_settings_cache() -> None:
    """
    Forget cached settings (tests flip env vars between cases).
    """
    get_settings.cache_clear()
