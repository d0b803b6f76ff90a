"""
Fast Newton-Raphson Power Flow Module
=====================================

This module implements the fast decoupled AC power flow with constant
matrices B1 (angle subproblem, size pvpq) and B2 (magnitude subproblem,
size pq). Each step performs one half-iteration of each subproblem:

    theta(pvpq) += B1^-1 (P_calc - P_spec) / V
    V(pq)       += B2^-1 (Q_calc - Q_spec) / V

where the reactive mismatch is evaluated with the updated angles.

Variants
--------
XB  B1 uses b = -1/x and ignores resistance,
    B2 uses the series susceptance b = -x / (r^2 + x^2).
BX  B1 uses the full series admittance g + jb,
    B2 uses b = -1/x and ignores resistance.

B1 ignores tap magnitudes, charging and shunts and keeps phase shifts.
B2 uses tap magnitudes, charging and bus shunts and ignores phase shifts.

The matrices are reassembled when the AC model counter of the power
system moves; only a matrix whose values changed is refactorised.

Date: 2026-10-19
"""

from abc import abstractmethod
from typing import Tuple

import numpy as np
import scipy.sparse as sp

from core.config import Factorisation
from core.exceptions import ConfigurationError
from powerflow.base import ACPowerFlow, check_bus_count
from powerflow.factorisation import factorise


class FastDecoupled(ACPowerFlow):
    """
    Fast decoupled AC power flow solver.

    Use one of the concrete variants ``FastDecoupledXB`` or
    ``FastDecoupledBX``.

    Attributes
    ----------
    active_matrix : sp.csc_matrix
        B1, indexed by ``classification.pvpq``.
    reactive_matrix : sp.csc_matrix
        B2, indexed by ``classification.pq``.
    factorisation : Factorisation
        Backend used to factorise B1 and B2.
    """

    method = "fast Newton-Raphson"

    def __init__(self, system, flat_start: bool = False,
                 factorisation: Factorisation = Factorisation.LU) -> None:
        super().__init__(system, flat_start)
        self.factorisation = Factorisation(factorisation)
        self.active_matrix = None
        self.reactive_matrix = None
        self._active_factor = None
        self._reactive_factor = None
        self._model = None
        self._model_version = None
        self.refresh()

    @abstractmethod
    def _active_coefficients(self, r: float, x: float) -> Tuple[float, float]:
        """Return (g, b) of a branch in B1."""

    @abstractmethod
    def _reactive_coefficient(self, r: float, x: float) -> float:
        """Return the series susceptance of a branch in B2."""

    def assemble(self) -> Tuple[sp.csc_matrix, sp.csc_matrix]:
        """
        Assemble B1 and B2 from the branch and bus records.

        Returns
        -------
        active_matrix, reactive_matrix : sp.csc_matrix
            B1 (pvpq x pvpq) and B2 (pq x pq).
        """
        system = self.system
        n = system.n_buses
        pvpq = self.classification.pvpq
        pq = self.classification.pq

        pvpq_position = np.full(n, -1, dtype=np.int64)
        pvpq_position[pvpq] = np.arange(len(pvpq))
        pq_position = np.full(n, -1, dtype=np.int64)
        pq_position[pq] = np.arange(len(pq))

        rows1, cols1, data1 = [], [], []
        rows2, cols2, data2 = [], [], []

        for branch in system.branches:
            if not branch.in_service:
                continue
            r, x = branch.r_pu, branch.x_pu
            if x == 0:
                raise ConfigurationError(
                    f"Branch {branch.label!r} has zero reactance and cannot be used by the "
                    f"{self.method} method."
                )
            i, j = branch.from_bus, branch.to_bus

            # B1: angle subproblem
            g, b = self._active_coefficients(r, x)
            sin_phi, cos_phi = np.sin(branch.shift_rad), np.cos(branch.shift_rad)
            m, k = pvpq_position[i], pvpq_position[j]
            if m >= 0 and k >= 0:
                rows1 += [m, k]
                cols1 += [k, m]
                data1 += [-g * sin_phi - b * cos_phi, g * sin_phi - b * cos_phi]
            if m >= 0:
                rows1.append(m)
                cols1.append(m)
                data1.append(b)
            if k >= 0:
                rows1.append(k)
                cols1.append(k)
                data1.append(b)

            # B2: magnitude subproblem
            b = self._reactive_coefficient(r, x)
            tap = branch.tap_ratio if branch.tap_ratio != 0 else 1.0
            m, k = pq_position[i], pq_position[j]
            if m >= 0 and k >= 0:
                rows2 += [m, k]
                cols2 += [k, m]
                data2 += [-b / tap, -b / tap]
            if m >= 0:
                rows2.append(m)
                cols2.append(m)
                data2.append((b + 0.5 * branch.b_pu) / tap ** 2)
            if k >= 0:
                rows2.append(k)
                cols2.append(k)
                data2.append(b + 0.5 * branch.b_pu)

        for bus in pq:
            rows2.append(pq_position[bus])
            cols2.append(pq_position[bus])
            data2.append(system.buses[bus].b_shunt_pu)

        active = sp.csc_matrix(
            (np.asarray(data1, dtype=np.float64), (rows1, cols1)), shape=(len(pvpq), len(pvpq))
        )
        reactive = sp.csc_matrix(
            (np.asarray(data2, dtype=np.float64), (rows2, cols2)), shape=(len(pq), len(pq))
        )
        active.sum_duplicates()
        reactive.sum_duplicates()
        return active, reactive

    def refresh(self) -> None:
        """Reassemble and refactorise B1/B2 if the AC model changed since the last call."""
        check_bus_count(self.system, self.classification, self.method)
        model = self.system.ac_model
        # a rebuilt model restarts its counter
        if model is self._model and model.model == self._model_version:
            return
        active, reactive = self.assemble()
        if self.active_matrix is None or _differs(active, self.active_matrix):
            self.active_matrix = active
            self._active_factor = factorise(active, self.factorisation, "fast decoupled B1 matrix")
        if self.reactive_matrix is None or _differs(reactive, self.reactive_matrix):
            self.reactive_matrix = reactive
            self._reactive_factor = factorise(reactive, self.factorisation, "fast decoupled B2 matrix")
        self._model = model
        self._model_version = model.model

    def step(self) -> None:
        """Perform one angle and one magnitude half-iteration."""
        self.refresh()
        pvpq = self.classification.pvpq
        pq = self.classification.pq
        specified = self.system.specified_power()

        if len(pvpq):
            active = (self.calculated_power() - specified).real[pvpq] / self.magnitude[pvpq]
            self.angle[pvpq] += self._active_factor.solve(active)

        if len(pq):
            reactive = (self.calculated_power() - specified).imag[pq] / self.magnitude[pq]
            self.magnitude[pq] += self._reactive_factor.solve(reactive)


class FastDecoupledXB(FastDecoupled):
    """Fast decoupled solver, XB variant (resistance ignored in B1)."""

    method = "fast Newton-Raphson XB"

    def _active_coefficients(self, r: float, x: float) -> Tuple[float, float]:
        return 0.0, -1.0 / x

    def _reactive_coefficient(self, r: float, x: float) -> float:
        return -x / (r ** 2 + x ** 2)


class FastDecoupledBX(FastDecoupled):
    """Fast decoupled solver, BX variant (resistance ignored in B2)."""

    method = "fast Newton-Raphson BX"

    def _active_coefficients(self, r: float, x: float) -> Tuple[float, float]:
        z = r ** 2 + x ** 2
        return r / z, -x / z

    def _reactive_coefficient(self, r: float, x: float) -> float:
        return -1.0 / x


def _differs(a: sp.spmatrix, b: sp.spmatrix) -> bool:
    return (a - b).count_nonzero() != 0
