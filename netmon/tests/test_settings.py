import json

import pytest

from netmon.config import MonitorSettings


def test_defaults_match_monitor_timings(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("NETMON_CONFIG_FILE", raising=False)

    settings = MonitorSettings()

    assert settings.reconnect_delay_seconds == 1.0
    assert settings.reconnect_backoff_factor == 1.0
    assert settings.reconnect_max_attempts is None
    assert settings.heartbeat_timeout_seconds == 10.0
    assert settings.heartbeat_interval_seconds == 10.0
    assert settings.config_path is None


def test_yaml_file_and_env_are_merged(monkeypatch, tmp_path):
    config = tmp_path / "netmon.yaml"
    config.write_text("instance_id: inst-yaml\nheartbeat_timeout_seconds: 3\nlog_level: debug\n", encoding="utf-8")
    monkeypatch.setenv("NETMON_CONFIG_FILE", str(config))
    monkeypatch.setenv("NETMON_ENDPOINT_URL", "ws://monitor.local/netmon")

    settings = MonitorSettings()

    assert settings.instance_id == "inst-yaml"
    assert settings.heartbeat_timeout_seconds == 3
    assert settings.log_level == "DEBUG"
    assert settings.endpoint_url == "ws://monitor.local/netmon"
    assert settings.config_path == config


def test_json_config_file_is_supported(monkeypatch, tmp_path):
    config = tmp_path / "netmon.json"
    config.write_text(json.dumps({"project_id": "proj-json"}), encoding="utf-8")
    monkeypatch.setenv("NETMON_CONFIG_FILE", str(config))

    assert MonitorSettings().project_id == "proj-json"


def test_non_mapping_config_file_is_rejected(monkeypatch, tmp_path):
    config = tmp_path / "netmon.yaml"
    config.write_text("- just\n- a list\n", encoding="utf-8")
    monkeypatch.setenv("NETMON_CONFIG_FILE", str(config))

    with pytest.raises(ValueError):
        MonitorSettings()


def test_backoff_factor_below_one_is_rejected():
    with pytest.raises(ValueError):
        MonitorSettings(reconnect_backoff_factor=0.5)
