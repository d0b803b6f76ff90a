"""
Tests for the AC and DC network models.

This module tests the assembly of the nodal matrices and the incremental
patching applied when branches change.

Date: 2026-10-19

Test Strategy
-------------
1. Check matrix entries of small cases against hand-derived values.
2. Apply branch edits to a built model and compare with a fresh build.
3. Check the value and pattern counters.
"""

import numpy as np
import pytest
import scipy.sparse as sp
from numpy.testing import assert_allclose

from core.exceptions import ConfigurationError
from network.ac_model import ACModel, add_to_entries
from network.dc_model import DCModel


class TestAddToEntries:
    """Test cases for the CSR patch helper."""

    def test_existing_entries_updated_in_place(self):
        matrix = sp.csr_matrix(np.array([[1.0, 2.0], [0.0, 3.0]]))
        matrix.sort_indices()
        result, grown = add_to_entries(matrix, [0, 1], [1, 1], [1.0, -3.0])
        assert result is matrix
        assert not grown
        assert_allclose(result.toarray(), [[1.0, 3.0], [0.0, 0.0]])

    def test_missing_entry_grows_pattern(self):
        matrix = sp.csr_matrix(np.array([[1.0, 0.0], [0.0, 1.0]]))
        result, grown = add_to_entries(matrix, [1], [0], [5.0])
        assert grown
        assert_allclose(result.toarray(), [[1.0, 0.0], [5.0, 1.0]])


class TestACModel:
    """Test cases for the admittance matrix."""

    def test_two_bus_matrix(self, two_bus_system):
        Y = two_bus_system.ac_model.nodal_matrix.toarray()
        assert_allclose(Y, [[-10j, 10j], [10j, -10j]])

    def test_transformer_quadrants(self, two_bus_system):
        two_bus_system.update_branch(1, r_pu=0.01, b_pu=0.04, tap_ratio=0.95, shift_rad=0.1)
        model = two_bus_system.ac_model
        y = 1 / complex(0.01, 0.1)
        to_to = y + 0.02j
        assert model.to_to[0] == pytest.approx(to_to)
        assert model.from_from[0] == pytest.approx(to_to / 0.95 ** 2)
        assert model.from_to[0] == pytest.approx(-y / (0.95 * np.exp(-0.1j)))
        assert model.to_from[0] == pytest.approx(-y / (0.95 * np.exp(0.1j)))

    def test_symmetric_without_phase_shift(self, five_bus_system):
        five_bus_system.update_branch(7, shift_rad=0.0)
        Y = five_bus_system.ac_model.nodal_matrix.toarray()
        assert_allclose(Y, Y.T, atol=1e-14)

    def test_bus_shunt_on_diagonal(self, five_bus_system):
        Y = five_bus_system.ac_model.nodal_matrix
        model = five_bus_system.ac_model
        # bus 3: to end of branches 2 and 3, from end of branch 6
        expected = model.to_to[1] + model.to_to[2] + model.from_from[5] + 0.05j
        assert Y[2, 2] == pytest.approx(expected)

    def test_zero_impedance_rejected(self, two_bus_system):
        two_bus_system.branches[0].x_pu = 0.0
        with pytest.raises(ConfigurationError, match="zero resistance and reactance"):
            ACModel(two_bus_system)

    def test_sorted_indices(self, five_bus_system):
        assert five_bus_system.ac_model.nodal_matrix.has_sorted_indices


class TestACModelPatching:
    """Test cases for incremental updates of the admittance matrix."""

    def test_status_and_parameter_change_equals_rebuild(self, five_bus_system):
        model = five_bus_system.ac_model
        five_bus_system.update_branch(3, in_service=False)
        five_bus_system.update_branch(6, r_pu=0.02, x_pu=0.05, tap_ratio=1.03)
        five_bus_system.update_branch(7, shift_rad=-0.05)
        five_bus_system.update_branch(3, in_service=True, b_pu=0.1)
        rebuilt = ACModel(five_bus_system)
        assert_allclose(model.nodal_matrix.toarray(), rebuilt.nodal_matrix.toarray(), atol=1e-12)

    def test_removal_clears_quadrants(self, five_bus_system):
        model = five_bus_system.ac_model
        five_bus_system.update_branch(2, in_service=False)
        assert model.admittance[1] == 0
        assert model.from_to[1] == 0
        assert model.nodal_matrix[0, 2] == pytest.approx(0)

    def test_counters(self, five_bus_system):
        model = five_bus_system.ac_model
        assert (model.model, model.pattern) == (1, 1)
        five_bus_system.update_branch(4, in_service=False)
        five_bus_system.update_branch(4, in_service=True)
        assert model.model == 3
        assert model.pattern == 1

    def test_new_connection_grows_pattern(self, five_bus_system):
        model = five_bus_system.ac_model
        five_bus_system.add_branch(label=8, from_bus=1, to_bus=5, r_pu=0.05, x_pu=0.2)
        assert model.pattern == 2
        rebuilt = ACModel(five_bus_system)
        assert_allclose(model.nodal_matrix.toarray(), rebuilt.nodal_matrix.toarray(), atol=1e-12)
        assert len(model.admittance) == 8

    def test_unchanged_update_keeps_model(self, five_bus_system):
        model = five_bus_system.ac_model
        five_bus_system.update_branch(1, in_service=True)
        assert model.model == 1


class TestDCModel:
    """Test cases for the DC susceptance matrix."""

    def test_two_bus_matrix(self, two_bus_system):
        B = two_bus_system.dc_model.nodal_matrix.toarray()
        assert_allclose(B, [[10.0, -10.0], [-10.0, 10.0]])

    def test_tap_and_shift(self, two_bus_system):
        two_bus_system.update_branch(1, tap_ratio=1.25, shift_rad=0.1)
        model = two_bus_system.dc_model
        a = 1 / (1.25 * 0.1)
        assert model.admittance[0] == pytest.approx(a)
        assert_allclose(model.shift_injection, [-0.1 * a, 0.1 * a])

    def test_zero_row_sums(self, five_bus_system):
        B = five_bus_system.dc_model.nodal_matrix.toarray()
        assert_allclose(B.sum(axis=1), 0.0, atol=1e-12)

    def test_patch_equals_rebuild(self, five_bus_system):
        model = five_bus_system.dc_model
        five_bus_system.update_branch(7, in_service=False)
        five_bus_system.update_branch(6, x_pu=0.05, tap_ratio=1.05)
        five_bus_system.update_branch(7, in_service=True, shift_rad=0.08)
        rebuilt = DCModel(five_bus_system)
        assert_allclose(model.nodal_matrix.toarray(), rebuilt.nodal_matrix.toarray(), atol=1e-12)
        assert_allclose(model.shift_injection, rebuilt.shift_injection, atol=1e-12)

    def test_resistance_change_leaves_model(self, five_bus_system):
        model = five_bus_system.dc_model
        five_bus_system.update_branch(1, r_pu=0.05)
        assert model.model == 1

    def test_zero_reactance_rejected(self, two_bus_system):
        two_bus_system.update_branch(1, r_pu=0.1, x_pu=0.0)
        with pytest.raises(ConfigurationError, match="zero reactance"):
            two_bus_system.dc_model


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
