"""
Tests for configuration loading and command-line overrides
"""

import json

import pytest

from fontsync.managers import DEFAULT_CONFIG, ConfigManager, get_user_font_folder
from fontsync.managers import font_folder


def test_missing_file_writes_defaults(tmp_path):
    config_file = tmp_path / "fontsync.json"
    manager = ConfigManager(config_file)

    config = manager.load_config()

    assert config == DEFAULT_CONFIG
    assert json.loads(config_file.read_text(encoding="utf-8")) == DEFAULT_CONFIG


def test_missing_file_without_create(tmp_path):
    config_file = tmp_path / "fontsync.json"

    ConfigManager(config_file).load_config(create_if_missing=False)

    assert not config_file.exists()


def test_file_values_merge_with_defaults(tmp_path):
    config_file = tmp_path / "fontsync.json"
    config_file.write_text(json.dumps({"port": 9000, "font_dir": "/srv/fonts"}), encoding="utf-8")
    manager = ConfigManager(config_file)

    manager.load_config()

    assert manager.get("port") == 9000
    assert manager.get("font_dir") == "/srv/fonts"
    assert manager.get("watch_mode") == DEFAULT_CONFIG["watch_mode"]


def test_non_object_file_is_rejected(tmp_path):
    config_file = tmp_path / "fontsync.json"
    config_file.write_text("[1, 2, 3]", encoding="utf-8")

    with pytest.raises(ValueError):
        ConfigManager(config_file).load_config()


def test_invalid_json_is_rejected(tmp_path):
    config_file = tmp_path / "fontsync.json"
    config_file.write_text("{not json", encoding="utf-8")

    with pytest.raises(ValueError):
        ConfigManager(config_file).load_config()


def test_overrides_are_not_persisted(tmp_path):
    """Test that command-line values win for this run but never reach the file"""
    config_file = tmp_path / "fontsync.json"
    manager = ConfigManager(config_file)
    manager.load_config()

    manager.apply_overrides({"port": 9999, "host": None, "strict": True})

    assert manager.get("port") == 9999
    assert manager.get("host") == DEFAULT_CONFIG["host"]
    assert manager.as_dict()["strict"] is True

    manager.set("local_dir", "/tmp/fonts")
    saved = json.loads(config_file.read_text(encoding="utf-8"))
    assert saved["port"] == DEFAULT_CONFIG["port"]
    assert saved["local_dir"] == "/tmp/fonts"


def test_get_default_for_unknown_key(tmp_path):
    manager = ConfigManager(tmp_path / "fontsync.json")

    assert manager.get("no_such_key", "fallback") == "fallback"


def test_local_dir_defaults_to_user_font_folder():
    assert DEFAULT_CONFIG["local_dir"] is None


@pytest.mark.parametrize("system, env, expected", [
    ("Linux", {}, "home/.local/share/fonts"),
    ("Linux", {"XDG_DATA_HOME": "xdg"}, "xdg/fonts"),
    ("Darwin", {}, "home/Library/Fonts"),
    ("Windows", {"LOCALAPPDATA": "appdata"}, "appdata/Microsoft/Windows/Fonts"),
    ("Windows", {}, "home/AppData/Local/Microsoft/Windows/Fonts"),
])
def test_user_font_folder_per_platform(monkeypatch, tmp_path, system, env, expected):
    monkeypatch.setattr(font_folder.platform, "system", lambda: system)
    monkeypatch.setattr(font_folder.Path, "home", staticmethod(lambda: tmp_path / "home"))
    for name in ("XDG_DATA_HOME", "LOCALAPPDATA"):
        monkeypatch.delenv(name, raising=False)
    for name, value in env.items():
        monkeypatch.setenv(name, str(tmp_path / value))

    assert get_user_font_folder() == tmp_path / expected
