"""
Tests for the PowerSystem container.

Date: 2026-10-19

Test Strategy
-------------
1. Build small systems with the add operations.
2. Verify label handling, validation errors and per-bus aggregates.
3. Verify that edits made after the models exist are patched into them.
"""

import warnings

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from core.bus_classification import classify_buses
from core.config import ModelConfig
from core.exceptions import ConfigurationError, ModelingWarning
from core.power_system import PowerSystem


class TestLabels:
    """Test cases for label assignment and lookup."""

    def test_automatic_labels(self):
        system = PowerSystem(ModelConfig())
        a = system.add_bus(base_kv=110.0)
        b = system.add_bus(base_kv=110.0)
        assert (a.label, b.label) == (1, 2)
        assert system.bus_index(2) == 1

    def test_string_labels(self):
        system = PowerSystem(ModelConfig())
        system.add_bus(label="North", base_kv=110.0)
        system.add_bus(label="South", base_kv=110.0)
        branch = system.add_branch("North", "South", x_pu=0.1)
        assert branch.from_bus == 0
        assert branch.to_bus == 1
        assert branch.label == 1

    def test_duplicate_label(self):
        system = PowerSystem(ModelConfig())
        system.add_bus(label=1, base_kv=110.0)
        with pytest.raises(ConfigurationError, match="not unique"):
            system.add_bus(label=1, base_kv=110.0)

    @pytest.mark.parametrize("label", [0, -3, "", True, 1.5])
    def test_invalid_label(self, label):
        system = PowerSystem(ModelConfig())
        with pytest.raises(ConfigurationError):
            system.add_bus(label=label, base_kv=110.0)

    def test_unknown_label(self, two_bus_system):
        with pytest.raises(ConfigurationError, match="does not exist"):
            two_bus_system.bus_index(99)
        with pytest.raises(ConfigurationError, match="does not exist"):
            two_bus_system.add_branch(from_bus=1, to_bus=99, x_pu=0.1)
        with pytest.raises(ConfigurationError, match="does not exist"):
            two_bus_system.update_generator(7, p_pu=0.1)


class TestValidation:
    """Test cases for rejected network data."""

    def test_zero_impedance_branch(self, two_bus_system):
        with pytest.raises(ConfigurationError, match="zero resistance and reactance"):
            two_bus_system.add_branch(from_bus=1, to_bus=2)

    def test_zero_impedance_out_of_service_accepted(self, two_bus_system):
        branch = two_bus_system.add_branch(from_bus=1, to_bus=2, in_service=False)
        with pytest.raises(ConfigurationError, match="zero resistance and reactance"):
            two_bus_system.update_branch(branch.label, in_service=True)

    def test_second_slack(self, two_bus_system):
        with pytest.raises(ConfigurationError, match="already the slack bus"):
            two_bus_system.add_bus(label=3, bus_type=3, base_kv=110.0)
        with pytest.raises(ConfigurationError, match="already the slack bus"):
            two_bus_system.update_bus(2, bus_type=3)

    def test_illegal_bus_type(self):
        system = PowerSystem(ModelConfig())
        with pytest.raises(ConfigurationError, match="illegal"):
            system.add_bus(bus_type=4, base_kv=110.0)

    def test_illegal_status(self, two_bus_system):
        with pytest.raises(ConfigurationError, match="status"):
            two_bus_system.update_branch(1, in_service=2)

    def test_self_loop(self, two_bus_system):
        with pytest.raises(ConfigurationError, match="itself"):
            two_bus_system.add_branch(from_bus=1, to_bus=1, x_pu=0.1)

    def test_unknown_parameter(self, two_bus_system):
        with pytest.raises(ConfigurationError, match="Unknown branch parameter"):
            two_bus_system.update_branch(1, length_km=3.0)

    def test_zero_tap_read_as_nominal(self, two_bus_system):
        branch = two_bus_system.add_branch(from_bus=1, to_bus=2, x_pu=0.2, tap_ratio=0.0)
        assert branch.tap_ratio == 1.0


class TestDefaults:
    """Test cases for defaulted values and their warnings."""

    def test_missing_config_warns(self):
        with pytest.warns(ModelingWarning, match="base power"):
            system = PowerSystem()
        assert system.config.base_power_mva == 100.0

    def test_missing_base_voltage_warns_once(self):
        system = PowerSystem(ModelConfig(base_voltage_kv=220.0))
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            system.add_bus()
            system.add_bus()
        messages = [w for w in caught if issubclass(w.category, ModelingWarning)]
        assert len(messages) == 1
        assert system.buses[1].base_kv == 220.0

    def test_generator_setpoint_default(self):
        system = PowerSystem(ModelConfig(default_generator_magnitude=1.04))
        system.add_bus(base_kv=110.0)
        generator = system.add_generator(bus=1)
        assert generator.vm_setpoint_pu == 1.04
        assert generator.q_min_pu == -np.inf


class TestAggregates:
    """Test cases for the per-bus vectors."""

    def test_supply_sums_in_service_generators(self, five_bus_system):
        five_bus_system.add_generator(label=3, bus=2, p_pu=0.1, q_pu=0.05)
        five_bus_system.add_generator(label=4, bus=2, p_pu=0.7, in_service=False)
        p, q = five_bus_system.supply()
        assert_allclose(p, [0.0, 0.5, 0.0, 0.0, 0.0])
        assert_allclose(q, [0.0, 0.05, 0.0, 0.0, 0.0])

    def test_specified_power(self, five_bus_system):
        s = five_bus_system.specified_power()
        assert_allclose(s.real, [0.0, 0.2, -0.45, -0.4, -0.6])
        assert_allclose(s.imag, [0.0, -0.1, -0.15, -0.05, -0.1])

    def test_generators_at(self, five_bus_system):
        five_bus_system.add_generator(label=3, bus=2)
        assert five_bus_system.generators_at(1) == [1, 2]
        five_bus_system.update_generator(2, in_service=False)
        assert five_bus_system.generators_at(1) == [2]


class TestModelLifecycle:
    """Test cases for the lazily built network models."""

    def test_models_built_on_access(self, two_bus_system):
        assert not two_bus_system.has_ac_model
        two_bus_system.ac_model
        assert two_bus_system.has_ac_model
        assert not two_bus_system.has_dc_model

    def test_add_bus_discards_models(self, two_bus_system):
        two_bus_system.ac_model
        two_bus_system.dc_model
        two_bus_system.add_bus(label=3, base_kv=110.0)
        assert not two_bus_system.has_ac_model
        assert not two_bus_system.has_dc_model
        assert two_bus_system.ac_model.nodal_matrix.shape == (3, 3)

    def test_shunt_update_patches_diagonal(self, two_bus_system):
        model = two_bus_system.ac_model
        before = model.nodal_matrix[1, 1]
        counter = model.model
        two_bus_system.update_bus(2, g_shunt_pu=0.01, b_shunt_pu=0.2)
        assert model.nodal_matrix[1, 1] == pytest.approx(before + 0.01 + 0.2j)
        assert model.model == counter + 1

    def test_demand_update_leaves_model(self, two_bus_system):
        model = two_bus_system.ac_model
        counter = model.model
        two_bus_system.update_bus(2, p_demand_pu=0.7)
        assert model.model == counter
        assert two_bus_system.buses[1].p_demand_pu == 0.7

    def test_set_slack(self, five_bus_system):
        five_bus_system.set_slack(2)
        assert five_bus_system.slack_index == 1
        assert five_bus_system.buses[0].bus_type == 2
        assert five_bus_system.buses[1].bus_type == 3
        assert_array_equal(classify_buses(five_bus_system).bus_types, [2, 3, 1, 1, 1])

    def test_set_slack_without_generator_demotes_to_load(self, two_bus_system):
        two_bus_system.set_slack(2)
        assert two_bus_system.buses[0].bus_type == 2
        two_bus_system.set_slack(1)
        assert two_bus_system.buses[1].bus_type == 1
        assert two_bus_system.buses[0].bus_type == 3

    def test_zero_reactance_rejected_with_dc_model(self, five_bus_system):
        model = five_bus_system.dc_model
        matrix = model.nodal_matrix.toarray()
        counter = model.model
        with pytest.raises(ConfigurationError, match="zero reactance"):
            five_bus_system.update_branch(1, x_pu=0.0)

        branch = five_bus_system.branches[0]
        assert branch.x_pu == 0.06
        assert branch.in_service
        assert model.admittance[0] == pytest.approx(1.0 / 0.06)
        assert model.model == counter
        assert_allclose(model.nodal_matrix.toarray(), matrix)

    def test_zero_reactance_branch_not_added_with_dc_model(self, five_bus_system):
        five_bus_system.dc_model
        with pytest.raises(ConfigurationError, match="zero reactance"):
            five_bus_system.add_branch(from_bus=3, to_bus=5, r_pu=0.05)
        assert five_bus_system.n_branches == 7

    def test_zero_reactance_accepted_without_dc_model(self, five_bus_system):
        five_bus_system.ac_model
        five_bus_system.update_branch(1, x_pu=0.0)
        assert five_bus_system.branches[0].x_pu == 0.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
