"""
Tests for ModelConfig and PowerFlowSettings.

Date: 2026-10-19
"""

import pytest

from core.config import Factorisation, ModelConfig, PowerFlowSettings


class TestModelConfig:
    """Test cases for ModelConfig."""

    def test_defaults(self):
        """Test the default base quantities."""
        config = ModelConfig()
        assert config.base_power_mva == 100.0
        assert config.base_voltage_kv == 138.0
        assert config.default_magnitude == 1.0

    def test_frozen(self):
        """Test that the configuration cannot be mutated."""
        config = ModelConfig()
        with pytest.raises(AttributeError):
            config.base_power_mva = 10.0

    @pytest.mark.parametrize("field", ["base_power_mva", "base_voltage_kv", "default_magnitude",
                                       "default_generator_magnitude"])
    def test_non_positive_rejected(self, field):
        """Test that non-positive values are rejected."""
        with pytest.raises(ValueError, match=field):
            ModelConfig(**{field: 0.0})


class TestPowerFlowSettings:
    """Test cases for PowerFlowSettings."""

    def test_defaults(self):
        settings = PowerFlowSettings()
        assert settings.tolerance == 1e-8
        assert settings.max_iterations == 100
        assert settings.flat_start is False
        assert settings.factorisation is Factorisation.LU

    def test_factorisation_from_string(self):
        """Test that the factorisation can be given by name."""
        settings = PowerFlowSettings(factorisation="umfpack")
        assert settings.factorisation is Factorisation.UMFPACK

    def test_unknown_factorisation(self):
        with pytest.raises(ValueError):
            PowerFlowSettings(factorisation="qr")

    def test_invalid_tolerance(self):
        with pytest.raises(ValueError, match="tolerance"):
            PowerFlowSettings(tolerance=0.0)

    def test_invalid_iterations(self):
        with pytest.raises(ValueError, match="max_iterations"):
            PowerFlowSettings(max_iterations=-1)
        with pytest.raises(ValueError, match="max_reactive_loops"):
            PowerFlowSettings(max_reactive_loops=0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
