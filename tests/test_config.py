import json

import pytest

from ewscope.config import ConfigError, ConfigManager, EnvProvider, FileProvider, load_config


def test_layering(tmp_path, monkeypatch):
    path = tmp_path / "ewscope.toml"
    path.write_text('[analysis]\nwindow = 3\nmax_scenarios = 4\n\n[logging]\nlevel = "debug"\n', encoding="utf-8")
    monkeypatch.setenv("EWSCOPE_ANALYSIS__MAX_SCENARIOS", "2")
    defaults = {"analysis": {"window": 2, "min_confidence": 0.2}}
    cfg = load_config(defaults, str(path))
    assert cfg["analysis"] == {"window": 3, "max_scenarios": 2, "min_confidence": 0.2}
    assert cfg["logging"]["level"] == "debug"
    assert defaults == {"analysis": {"window": 2, "min_confidence": 0.2}}


def test_env_can_be_disabled(monkeypatch):
    monkeypatch.setenv("EWSCOPE_ANALYSIS__WINDOW", "4")
    assert load_config({})["analysis"]["window"] == 4
    assert load_config({}, use_env=False) == {}


def test_json_file(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"analysis": {"degree": "minute"}}), encoding="utf-8")
    assert FileProvider(str(path)).load() == {"analysis": {"degree": "minute"}}


def test_file_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config({}, str(tmp_path / "missing.toml"))
    assert FileProvider("").load() == {}
    bad = tmp_path / "cfg.yaml"
    bad.write_text("a: 1", encoding="utf-8")
    with pytest.raises(ConfigError):
        FileProvider(str(bad)).load()
    broken = tmp_path / "cfg.toml"
    broken.write_text("[analysis\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        FileProvider(str(broken)).load()
    listing = tmp_path / "cfg.json"
    listing.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ConfigError):
        FileProvider(str(listing)).load()


def test_env_values(monkeypatch):
    monkeypatch.setenv("EWSCOPE_ANALYSIS__MIN_CONFIDENCE", "0.25")
    monkeypatch.setenv("EWSCOPE_ANALYSIS__MAX_SCENARIOS", "3")
    monkeypatch.setenv("EWSCOPE_LOGGING__JSON", "true")
    monkeypatch.setenv("EWSCOPE_LOGGING__UTC", "off")
    monkeypatch.setenv("EWSCOPE_ANALYSIS__PATTERNS", '["impulse", "zigzag"]')
    monkeypatch.setenv("EWSCOPE_ANALYSIS__DEGREE", "minor")
    monkeypatch.setenv("EWSCOPE_CONFIG", "ignored.toml")
    cfg = EnvProvider().load()
    assert cfg["analysis"]["min_confidence"] == 0.25
    assert cfg["analysis"]["max_scenarios"] == 3
    assert cfg["analysis"]["patterns"] == ["impulse", "zigzag"]
    assert cfg["analysis"]["degree"] == "minor"
    assert cfg["logging"]["json"] is True
    assert cfg["logging"]["utc"] is False
    assert "config" not in cfg


class _Layer:
    def __init__(self, name, data):
        self.name = name
        self.data = data

    def load(self):
        return self.data


def test_manager_merges_nested_tables():
    m = ConfigManager([_Layer("a", {"a": {"y": 3}}), _Layer("b", {"b": 1})], defaults={"a": {"x": 1, "y": 2}})
    assert m.load() == {"a": {"x": 1, "y": 3}, "b": 1}
