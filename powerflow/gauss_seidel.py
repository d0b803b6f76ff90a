"""
Gauss-Seidel Power Flow Module
==============================

This module implements the Gauss-Seidel AC power flow on complex bus
voltages. One step is a single sweep over the buses in index order; every
update uses the voltages already updated in the same sweep.

Load bus i:
    V_i += ((P_i - jQ_i) / conj(V_i) - sum_j Y_ij V_j) / Y_ii

Voltage-controlled bus i:
    the reactive injection is replaced by the value implied by the current
    voltages, Q_i = -Im(conj(V_i) sum_j Y_ij V_j), the same update is
    applied and V_i is scaled back to the setpoint magnitude.

Date: 2026-10-19
"""

import numpy as np

from core.bus_classification import BusType
from powerflow.base import ACPowerFlow


class GaussSeidel(ACPowerFlow):
    """Gauss-Seidel AC power flow solver."""

    method = "Gauss-Seidel"

    def step(self) -> None:
        """Perform one sweep over all non-slack buses."""
        Y = self.nodal_matrix()
        indptr, indices, data = Y.indptr, Y.indices, Y.data
        diagonal = Y.diagonal()
        specified = self.system.specified_power()
        types = self.classification.bus_types
        v = self.voltage

        for i in self.classification.pvpq:
            row = slice(indptr[i], indptr[i + 1])
            current = data[row] @ v[indices[row]]
            if types[i] == BusType.GENERATOR:
                injection = specified[i].real + 1j * np.imag(np.conj(v[i]) * current)
            else:
                injection = np.conj(specified[i])
            v[i] += (injection / np.conj(v[i]) - current) / diagonal[i]
            if types[i] == BusType.GENERATOR:
                v[i] *= self.magnitude[i] / np.abs(v[i])

        self.magnitude = np.abs(v)
        self.angle = np.angle(v)
