"""TOML config: defaults, profile overlay, environment secrets."""

from venuepredict.config import get_settings, load_config


def test_profile_overlay_deep_merges(tmp_path):
    (tmp_path / "default.toml").write_text(
        '[quota]\ntrivia_limit = 10\npredictions_limit = 10\n[storage]\ndb_path = "a.duckdb"\n'
    )
    (tmp_path / "dev.toml").write_text("[quota]\npredictions_limit = 3\n")
    raw = load_config("dev", tmp_path)
    assert raw["quota"] == {"trivia_limit": 10, "predictions_limit": 3}
    settings = get_settings("dev", tmp_path)
    assert settings.predictions_limit == 3
    assert settings.trivia_limit == 10
    assert settings.db_path == "a.duckdb"
    assert settings.quota_window_sec == 3600
    assert settings.auto_win_threshold == 99.5


def test_missing_config_dir_gives_defaults(tmp_path):
    settings = get_settings(None, tmp_path)
    assert settings.catalog_ttl_sec == 30
    assert settings.install_procedures is True


def test_secrets_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("CRON_SECRET", "from-env")
    monkeypatch.setenv("POLYMARKET_API_KEY", "key")
    settings = get_settings(None, tmp_path)
    assert settings.cron_secret == "from-env"
    assert settings.polymarket_api_key == "key"
    monkeypatch.setenv("CRON_SECRET", "  ")
    assert get_settings(None, tmp_path).cron_secret is None
