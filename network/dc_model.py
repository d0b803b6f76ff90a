"""
DC Network Model Module
=======================

This module builds the nodal susceptance matrix B' of the DC power flow
approximation and the bus injections caused by phase shifting
transformers.

For each in-service branch the DC admittance is a = 1 / (tau * x). It
enters B' as +a on both diagonal entries and -a on both off-diagonal
entries. A phase shift phi adds -phi * a at the from bus and +phi * a at
the to bus of the shift injection vector, which is subtracted from the
specified injections before solving.

Date: 2026-10-19
"""

import numpy as np
import scipy.sparse as sp

from core.exceptions import ConfigurationError
from network.ac_model import add_to_entries


class DCModel:
    """
    DC nodal susceptance matrix with per-branch admittances.

    Attributes
    ----------
    nodal_matrix : sp.csr_matrix
        Real n x n matrix B' with sorted indices.
    admittance : NDArray[np.float64]
        DC admittance 1 / (tau * x) per branch (0 for out-of-service branches).
    shift_power : NDArray[np.float64]
        phi * admittance per branch.
    shift_injection : NDArray[np.float64]
        Per-bus injection caused by phase shifts.
    model : int
        Value-change counter.
    pattern : int
        Pattern-change counter.
    """

    def __init__(self, system) -> None:
        self.system = system
        self.model = 0
        self.pattern = 0
        self.build()

    def build(self) -> None:
        """Assemble B' and the shift injections from scratch."""
        system = self.system
        n = system.n_buses
        m = system.n_branches

        self.admittance = np.zeros(m, dtype=np.float64)
        self.shift_power = np.zeros(m, dtype=np.float64)
        for branch in system.branches:
            if branch.in_service:
                self._set_branch(branch.index)

        f = np.array([br.from_bus for br in system.branches], dtype=np.int64)
        t = np.array([br.to_bus for br in system.branches], dtype=np.int64)

        diagonal = np.zeros(n, dtype=np.float64)
        np.add.at(diagonal, f, self.admittance)
        np.add.at(diagonal, t, self.admittance)

        self.shift_injection = np.zeros(n, dtype=np.float64)
        np.add.at(self.shift_injection, f, -self.shift_power)
        np.add.at(self.shift_injection, t, self.shift_power)

        rows = np.concatenate([np.arange(n), f, t])
        cols = np.concatenate([np.arange(n), t, f])
        data = np.concatenate([diagonal, -self.admittance, -self.admittance])
        matrix = sp.csr_matrix((data, (rows, cols)), shape=(n, n), dtype=np.float64)
        matrix.sum_duplicates()

        self.nodal_matrix = matrix
        self.model += 1
        self.pattern += 1

    def _set_branch(self, k: int) -> None:
        branch = self.system.branches[k]
        if branch.x_pu == 0:
            raise ConfigurationError(
                f"Branch {branch.label!r} has zero reactance and cannot be used in the DC model."
            )
        a = 1.0 / (branch.tap_ratio * branch.x_pu)
        self.admittance[k] = a
        self.shift_power[k] = branch.shift_rad * a

    def patch_branch(self, k: int, sign: int) -> None:
        """Add (sign = +1) or subtract (sign = -1) the contribution of branch k."""
        if sign > 0:
            self._set_branch(k)
        branch = self.system.branches[k]
        f, t = branch.from_bus, branch.to_bus
        a = self.admittance[k]
        self.nodal_matrix, grown = add_to_entries(
            self.nodal_matrix, [f, t, f, t], [f, t, t, f], sign * np.array([a, a, -a, -a])
        )
        self.shift_injection[f] -= sign * self.shift_power[k]
        self.shift_injection[t] += sign * self.shift_power[k]
        if grown:
            self.pattern += 1
        self.model += 1

        if sign < 0:
            self.admittance[k] = 0.0
            self.shift_power[k] = 0.0

    def append_branch(self, k: int) -> None:
        """Extend the per-branch arrays for a newly added branch and patch it in."""
        self.admittance = np.append(self.admittance, 0.0)
        self.shift_power = np.append(self.shift_power, 0.0)
        if self.system.branches[k].in_service:
            self.patch_branch(k, +1)
