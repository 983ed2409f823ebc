"""
Tests for policy configuration (CF1)
"""
from inventory_intel.config import PolicyConfig, get_supply_coefficient


class TestCF1_PolicyConfig:
    """CF1: Defaults, overrides and environment."""

    def test_defaults(self):
        """CF1.1: Documented defaults."""
        config = PolicyConfig()
        assert config.target_service_level == 0.95
        assert config.holding_cost_rate == 0.25
        assert config.ordering_cost == 50.0
        assert config.target_days_of_inventory == 30
        assert config.simulation_trials == 10000

    def test_from_env(self, monkeypatch):
        """CF1.2: INVENTORY_INTEL_* variables override defaults."""
        monkeypatch.setenv("INVENTORY_INTEL_SERVICE_LEVEL", "0.98")
        monkeypatch.setenv("INVENTORY_INTEL_SIMULATION_TRIALS", "500")
        config = PolicyConfig.from_env()
        assert config.target_service_level == 0.98
        assert config.simulation_trials == 500

    def test_invalid_env_value_ignored(self, monkeypatch):
        """CF1.3: Unparseable values fall back to the default."""
        monkeypatch.setenv("INVENTORY_INTEL_ORDERING_COST", "lots")
        assert PolicyConfig.from_env().ordering_cost == 50.0

    def test_with_overrides(self):
        """CF1.4: None overrides are ignored."""
        config = PolicyConfig().with_overrides(sma_window=5, ordering_cost=None)
        assert config.sma_window == 5
        assert config.ordering_cost == 50.0

    def test_missing_grade_coefficient(self):
        """CF1.5: Unknown grade gets coefficient 1.0."""
        config = PolicyConfig()
        assert config.coefficient_for("C", "Z") == 0.65
        assert config.coefficient_for(None, "Z") == 1.0
        assert get_supply_coefficient({}, "A", "X") == 1.0

    def test_cross_validate_flag_from_env(self, monkeypatch):
        """CF1.6: Boolean flags accept true/false words, junk keeps the default."""
        monkeypatch.setenv("INVENTORY_INTEL_CROSS_VALIDATE", "yes")
        assert PolicyConfig.from_env().cross_validate_selection is True
        monkeypatch.setenv("INVENTORY_INTEL_CROSS_VALIDATE", "maybe")
        assert PolicyConfig.from_env().cross_validate_selection is False

    def test_fmr_thresholds_in_dict(self):
        """CF1.7: FMR cut points are part of the exported config."""
        assert PolicyConfig().to_dict()["fmr_thresholds"] == [0.80, 0.95]
