import tomllib

from pomodoro_app.pomodoro.controllers import AppConfig, ConfigManager


def test_to_toml_roundtrip():
    cfg = AppConfig(
        api_base_url="http://tomato:9000",
        recheck_interval_seconds=0.0,
        work_minutes=50,
        export_path="out.xlsx",
        last_window_width=1000,
    )
    parsed = AppConfig.from_toml(tomllib.loads(cfg.to_toml()))
    assert parsed == cfg


def test_from_toml_falls_back_on_bad_values():
    parsed = AppConfig.from_toml(
        {
            "api_base_url": "",
            "status_timeout_seconds": "soon",
            "poll_interval_seconds": -1,
            "work_minutes": 0,
            "long_break_interval": "four",
        }
    )
    defaults = AppConfig()
    assert parsed.api_base_url == defaults.api_base_url
    assert parsed.status_timeout_seconds == 2.0
    assert parsed.poll_interval_seconds == 1.0
    assert parsed.work_minutes == 25
    assert parsed.long_break_interval == 4


def test_timer_settings_from_config():
    settings = AppConfig(work_minutes=40, short_break_minutes=7, long_break_minutes=20).timer_settings()
    assert settings.work_duration_seconds == 2400
    assert settings.short_break_duration_seconds == 420
    assert AppConfig(work_minutes=500).timer_settings().work_duration_seconds == 1500


def test_config_manager_writes_defaults(tmp_path):
    manager = ConfigManager(tmp_path)
    assert manager.config_file.exists()
    assert manager.config.api_base_url == "http://localhost:8080"
    assert manager.config.recheck_interval_seconds == 60.0

    manager.config.work_minutes = 45
    manager.save()
    assert ConfigManager(tmp_path).config.work_minutes == 45


def test_database_path_defaults_to_config_dir(tmp_path):
    cfg = AppConfig()
    assert cfg.resolved_database_path(tmp_path) == tmp_path / "sessions.db"
    cfg.database_path = str(tmp_path / "custom.db")
    assert cfg.resolved_database_path(tmp_path) == tmp_path / "custom.db"
