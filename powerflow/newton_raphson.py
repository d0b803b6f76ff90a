"""
Newton-Raphson Power Flow Module
================================

This module implements the Newton-Raphson AC power flow in polar
coordinates.

State vector
------------
x = [theta(pvpq); V(pq)]

Iteration
---------
Solve J dx = -f with f = [P_calc - P_spec (pvpq); Q_calc - Q_spec (pq)]
and update x += dx. The Jacobian blocks are the partial derivatives of the
complex injection with respect to angle and magnitude:

    dS/dtheta = j diag(V) conj(diag(I) - Y diag(V))
    dS/dV     = diag(V) conj(Y diag(V/|V|)) + conj(diag(I)) diag(V/|V|)

with I = Y V.

Date: 2026-10-19
"""

import numpy as np
import scipy.sparse as sp

from core.config import Factorisation
from powerflow.base import ACPowerFlow
from powerflow.factorisation import factorise


class NewtonRaphson(ACPowerFlow):
    """
    Newton-Raphson AC power flow solver.

    Attributes
    ----------
    factorisation : Factorisation
        Backend used to factorise the Jacobian.
    jacobian : sp.csc_matrix or None
        Jacobian of the most recent step.
    """

    method = "Newton-Raphson"

    def __init__(self, system, flat_start: bool = False,
                 factorisation: Factorisation = Factorisation.LU) -> None:
        super().__init__(system, flat_start)
        self.factorisation = Factorisation(factorisation)
        self.jacobian = None

    def jacobian_matrix(self) -> sp.csc_matrix:
        """
        Return the Jacobian at the current state.

        Rows follow [P(pvpq); Q(pq)], columns follow [theta(pvpq); V(pq)].
        """
        Y = self.nodal_matrix()
        v = self.voltage
        current = Y @ v

        diag_v = sp.diags(v)
        diag_i = sp.diags(current)
        diag_v_norm = sp.diags(v / np.abs(v))

        ds_dva = (1j * diag_v @ (diag_i - Y @ diag_v).conj()).tocsr()
        ds_dvm = (diag_v @ (Y @ diag_v_norm).conj() + diag_i.conj() @ diag_v_norm).tocsr()

        pvpq = self.classification.pvpq
        pq = self.classification.pq

        j11 = ds_dva[pvpq][:, pvpq].real
        if len(pq) == 0:
            return sp.csc_matrix(j11)
        j12 = ds_dvm[pvpq][:, pq].real
        j21 = ds_dva[pq][:, pvpq].imag
        j22 = ds_dvm[pq][:, pq].imag
        return sp.bmat([[j11, j12], [j21, j22]], format="csc")

    def step(self) -> None:
        """Solve J dx = -f at the current state and apply dx."""
        pvpq = self.classification.pvpq
        pq = self.classification.pq
        if len(pvpq) == 0:
            return

        active, reactive = self.mismatch_vectors()
        self.jacobian = self.jacobian_matrix()
        dx = factorise(self.jacobian, self.factorisation, "Jacobian").solve(
            -np.concatenate([active, reactive])
        )

        self.angle[pvpq] += dx[:len(pvpq)]
        self.magnitude[pq] += dx[len(pvpq):]
