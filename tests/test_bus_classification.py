"""
Tests for bus classification.

Date: 2026-10-19
"""

import numpy as np
import pytest
from numpy.testing import assert_array_equal

from core.bus_classification import BusClassification, BusType, classify_buses
from core.config import ModelConfig
from core.exceptions import ConfigurationError, ModelingWarning
from core.power_system import PowerSystem


class TestClassifyBuses:
    """Test cases for classify_buses."""

    def test_five_bus_sets(self, five_bus_system):
        classification = classify_buses(five_bus_system)
        assert classification.slack_index == 0
        assert_array_equal(classification.pv, [1])
        assert_array_equal(classification.pq, [2, 3, 4])
        assert_array_equal(classification.pvpq, [1, 2, 3, 4])
        assert classification.n_pq == 3
        assert classification.n_pvpq == 4

    def test_generator_bus_without_generator_is_load(self, five_bus_system):
        five_bus_system.update_generator(2, in_service=False)
        classification = classify_buses(five_bus_system)
        assert classification.bus_types[1] == BusType.LOAD
        # stored type is unchanged
        assert five_bus_system.buses[1].bus_type == BusType.GENERATOR

    def test_missing_slack_uses_first_bus(self):
        system = PowerSystem(ModelConfig())
        system.add_bus(label=10, base_kv=110.0)
        system.add_bus(label=20, base_kv=110.0)
        system.add_generator(bus=10)
        with pytest.warns(ModelingWarning, match="No slack bus"):
            classification = classify_buses(system)
        assert classification.slack_index == 0

    def test_slack_without_generator_relocated(self, five_bus_system):
        five_bus_system.update_generator(1, in_service=False)
        with pytest.warns(ModelingWarning, match="no in-service generator"):
            classification = classify_buses(five_bus_system)
        assert classification.slack_index == 1
        assert classification.bus_types[0] == BusType.LOAD
        assert len(classification.pv) == 0

    def test_slack_without_generator_kept_when_no_alternative(self):
        system = PowerSystem(ModelConfig())
        system.add_bus(label=1, bus_type=3, base_kv=110.0)
        system.add_bus(label=2, base_kv=110.0)
        classification = classify_buses(system)
        assert classification.slack_index == 0

    def test_empty_system(self):
        with pytest.raises(ConfigurationError, match="no buses"):
            classify_buses(PowerSystem(ModelConfig()))


class TestBusClassification:
    """Test cases for the BusClassification snapshot."""

    def test_types_are_read_only(self, two_bus_system):
        classification = classify_buses(two_bus_system)
        with pytest.raises(ValueError):
            classification.bus_types[1] = BusType.SLACK

    def test_requires_single_slack(self):
        with pytest.raises(ConfigurationError):
            BusClassification(np.array([3, 3, 1]), 0)
        with pytest.raises(ConfigurationError):
            BusClassification(np.array([1, 3, 1]), 0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
