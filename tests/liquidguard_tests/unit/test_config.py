"""
Engine configuration tests: defaults, validation, env and YAML loaders.
"""

import pytest

from liquidguard.core.config import DEFAULT_CONFIG, WAD, EngineConfig
from liquidguard.core.exceptions import ConfigurationError

pytestmark = pytest.mark.unit


class TestDefaults:
    """Production calibration."""

    def test_default_values(self):
        config = EngineConfig()
        assert config.history_capacity == 100
        assert config.min_volatility_samples == 10
        assert config.volatility_window == 50
        assert config.default_volatility == 50
        assert config.stddev_cap_ticks == 200
        assert config.tick_spacing == 60
        assert config.lower_range_factor == 2000
        assert config.upper_range_factor == 1200
        assert config.rebalance_threshold_bps == 500
        assert config.boundary_proximity_bps == 1000
        assert (config.min_half_width, config.max_half_width) == (200, 2000)

    def test_collected_as_unit(self, request):
        assert request.node.get_closest_marker("unit") is not None

    def test_health_sentinels(self):
        assert DEFAULT_CONFIG.liquidatable_health == 950000000000000000
        assert DEFAULT_CONFIG.undercollateralized_health == 990000000000000000
        assert DEFAULT_CONFIG.healthy_health == 12 * WAD // 10

    def test_to_dict_round_trips_through_from_mapping(self):
        assert EngineConfig.from_mapping(DEFAULT_CONFIG.to_dict()) == DEFAULT_CONFIG


class TestValidation:
    """Invalid calibrations are rejected at construction."""

    @pytest.mark.parametrize("overrides", [
        {"tick_spacing": 0},
        {"history_capacity": 5},
        {"min_volatility_samples": 1},
        {"stddev_cap_ticks": 0},
        {"min_half_width": 3000},
        {"default_volatility": 101},
        {"lower_range_factor": -1},
        {"liquidatable_health": 2 * WAD},
    ])
    def test_rejects_invalid_values(self, overrides):
        with pytest.raises(ConfigurationError):
            EngineConfig(**overrides)

    def test_rejects_non_integer(self):
        with pytest.raises(ConfigurationError, match="must be an integer"):
            EngineConfig(tick_spacing=1.5)

    def test_rejects_bool(self):
        with pytest.raises(ConfigurationError):
            EngineConfig(tick_spacing=True)


class TestFromMapping:
    """Mapping overrides."""

    def test_overrides_and_coerces(self):
        config = EngineConfig.from_mapping({"tick_spacing": "10", "min_half_width": 100})
        assert config.tick_spacing == 10
        assert config.min_half_width == 100
        assert config.max_half_width == DEFAULT_CONFIG.max_half_width

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError, match="Unknown configuration keys"):
            EngineConfig.from_mapping({"tick_spacnig": 10})

    def test_non_numeric_value(self):
        with pytest.raises(ConfigurationError):
            EngineConfig.from_mapping({"tick_spacing": "sixty"})


class TestFromEnv:
    """LIQUIDGUARD_* environment overrides."""

    def test_reads_prefixed_variables(self):
        config = EngineConfig.from_env({
            "LIQUIDGUARD_TICK_SPACING": "10",
            "LIQUIDGUARD_HISTORY_CAPACITY": "200",
            "UNRELATED": "1",
        })
        assert config.tick_spacing == 10
        assert config.history_capacity == 200

    def test_blank_values_ignored(self):
        assert EngineConfig.from_env({"LIQUIDGUARD_TICK_SPACING": "  "}) == DEFAULT_CONFIG

    def test_uses_process_environment(self, monkeypatch):
        monkeypatch.setenv("LIQUIDGUARD_DEFAULT_VOLATILITY", "40")
        assert EngineConfig.from_env().default_volatility == 40

    def test_invalid_value(self):
        with pytest.raises(ConfigurationError):
            EngineConfig.from_env({"LIQUIDGUARD_TICK_SPACING": "-5"})


class TestFromYaml:
    """YAML file overrides."""

    def test_flat_mapping(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("tick_spacing: 10\nvolatility_window: 30\n")
        config = EngineConfig.from_yaml(path)
        assert config.tick_spacing == 10
        assert config.volatility_window == 30

    def test_engine_section(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("engine:\n  max_half_width: 4000\n")
        assert EngineConfig.from_yaml(str(path)).max_half_width == 4000

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("")
        assert EngineConfig.from_yaml(path) == DEFAULT_CONFIG

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Cannot read"):
            EngineConfig.from_yaml(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("tick_spacing: [10\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            EngineConfig.from_yaml(path)

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigurationError):
            EngineConfig.from_yaml(path)
