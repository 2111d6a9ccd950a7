import pytest

from ewscope.ew.core.model import Degree, ScenarioType
from ewscope.ew.core.options import WaveOptions


def test_defaults():
    opts = WaveOptions()
    assert opts.degree is Degree.MINOR
    assert opts.forward == 2
    assert opts.min_confidence == 0.15
    assert opts.max_scenarios == 5


def test_from_config():
    opts = WaveOptions.from_config({
        "analysis": {
            "degree": "intermediate",
            "window": 3,
            "lookforward": 1,
            "patterns": ["impulse", "zigzag"],
            "weights": {"fibonacci": 0.4, "time": 0.2, "alternation": 0.1, "channel": 0.15, "completeness": 0.15},
            "min_confidence": "0.3",
        },
        "logging": {"level": "debug"},
    })
    assert opts.degree is Degree.INTERMEDIATE
    assert opts.window == 3
    assert opts.forward == 1
    assert opts.patterns == (ScenarioType.IMPULSE, ScenarioType.CORRECTIVE_ZIGZAG)
    assert opts.weights.fibonacci == 0.4
    assert opts.min_confidence == 0.3


def test_from_config_without_section():
    assert WaveOptions.from_config({}) == WaveOptions()


def test_unknown_keys_rejected():
    with pytest.raises(ValueError, match="unknown"):
        WaveOptions.from_config({"analysis": {"zigzag_pct": 1.0}})


def test_with_overrides_skips_none():
    opts = WaveOptions().with_overrides(window=4, max_scenarios=None)
    assert opts.window == 4
    assert opts.max_scenarios == 5


def test_validation():
    with pytest.raises(ValueError):
        WaveOptions(window=0)
    with pytest.raises(ValueError):
        WaveOptions(min_confidence=1.5)
    with pytest.raises(ValueError):
        WaveOptions(max_scenarios=0)
    with pytest.raises(ValueError):
        WaveOptions(higher_degrees=-1)
