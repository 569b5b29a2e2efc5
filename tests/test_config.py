import json

import pytest

from hellofn.config import SettingsError, load_settings, read_local_settings, write_local_settings


def test_defaults(tmp_path):
    settings = load_settings(environ={}, settings_path=tmp_path / "missing.json")
    assert settings.fallback_name is None
    assert settings.route_prefix == ""
    assert settings.invocation_logs is True
    assert settings.home.name == ".hellofn"


def test_environment_values(tmp_path):
    env = {
        "EXAMPLE_1": "Grace",
        "HELLOFN_HOME": str(tmp_path / "home"),
        "HELLOFN_ROUTE_PREFIX": "/api/",
        "HELLOFN_INVOCATION_LOGS": "off",
    }
    settings = load_settings(environ=env, settings_path=tmp_path / "missing.json")
    assert settings.fallback_name == "Grace"
    assert settings.home == tmp_path / "home"
    assert settings.route_prefix == "api"
    assert settings.invocation_logs is False


def test_empty_fallback_is_absent(tmp_path):
    settings = load_settings(environ={"EXAMPLE_1": ""}, settings_path=tmp_path / "missing.json")
    assert settings.fallback_name is None


def test_environment_wins_over_settings_file(tmp_path):
    path = tmp_path / "local.settings.json"
    write_local_settings(path, {"EXAMPLE_1": "FromFile", "HELLOFN_ROUTE_PREFIX": "api"})

    settings = load_settings(environ={"EXAMPLE_1": "FromEnv"}, settings_path=path)
    assert settings.fallback_name == "FromEnv"
    assert settings.route_prefix == "api"


def test_reads_process_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("EXAMPLE_1", "Linus")
    settings = load_settings(settings_path=tmp_path / "missing.json")
    assert settings.fallback_name == "Linus"


def test_settings_file_format(tmp_path):
    path = tmp_path / "local.settings.json"
    write_local_settings(path, {"EXAMPLE_1": "Grace"})
    assert json.loads(path.read_text(encoding="utf-8")) == {"IsEncrypted": False, "Values": {"EXAMPLE_1": "Grace"}}
    assert read_local_settings(path) == {"EXAMPLE_1": "Grace"}


@pytest.mark.parametrize("content", ["{not json", "[]", '{"Values": ["x"]}'])
def test_broken_settings_file(tmp_path, content):
    path = tmp_path / "local.settings.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(SettingsError):
        load_settings(environ={}, settings_path=path)
