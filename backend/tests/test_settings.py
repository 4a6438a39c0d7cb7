import pytest

from settings.config import clear_settings_cache, get_settings


def test_defaults_when_config_file_is_missing():
    s = get_settings()
    assert s.store.kind == "memory"
    assert s.animation.duration_ms == 10_000
    assert s.refresh.interval_s == 10
    assert s.refresh.limit is None
    assert s.overlays.strict is True
    assert s.directions.mapbox_token is None


def test_yaml_values_and_env_overrides(monkeypatch, tmp_path):
    cfg = tmp_path / "skyhop.yaml"
    cfg.write_text(
        "store:\n"
        "  kind: memory\n"
        "  duckdb_path: db/routes.duckdb\n"
        "animation:\n"
        "  duration_ms: 4000\n"
        "refresh:\n"
        "  interval_s: 2\n"
        "  limit: 12\n"
        "overlays:\n"
        "  strict: true\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("SKYHOP_CONFIG", str(cfg))
    monkeypatch.setenv("SKYHOP_STORE", "DuckDB")
    monkeypatch.setenv("SKYHOP_STRICT_OVERLAYS", "false")
    monkeypatch.setenv("SKYHOP_MAPBOX_TOKEN", "pk.abc")
    clear_settings_cache()

    s = get_settings()

    assert s.store.kind == "duckdb"
    assert s.duckdb_path().parts[-2:] == ("db", "routes.duckdb")
    assert s.duckdb_path().is_absolute()
    assert s.animation.duration_ms == 4000
    assert s.refresh.limit == 12
    assert s.overlays.strict is False
    assert s.directions.mapbox_token == "pk.abc"
    assert get_settings() is s


def test_invalid_yaml_root_is_rejected(monkeypatch, tmp_path):
    cfg = tmp_path / "skyhop.yaml"
    cfg.write_text("- just\n- a list\n", encoding="utf-8")
    monkeypatch.setenv("SKYHOP_CONFIG", str(cfg))
    clear_settings_cache()

    with pytest.raises(ValueError):
        get_settings()


def test_invalid_values_fail_validation(monkeypatch, tmp_path):
    cfg = tmp_path / "skyhop.yaml"
    cfg.write_text("animation:\n  duration_ms: 0\n", encoding="utf-8")
    monkeypatch.setenv("SKYHOP_CONFIG", str(cfg))
    clear_settings_cache()

    with pytest.raises(ValueError):
        get_settings()
