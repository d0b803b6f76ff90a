"""
AC Network Model Module
=======================

This module builds the complex nodal admittance matrix Y of a power system
and keeps it consistent with branch and shunt edits by patching.

Branch model
------------
Every branch is a unified pi model with series admittance y = 1/(r + jx),
charging g + jb split equally between both ends and an ideal transformer
with ratio tau * exp(j phi) on the from side:

    y_tt = y + (g + jb) / 2
    y_ff = y_tt / tau^2
    y_ft = -y / (tau * exp(-j phi))
    y_tf = -y / (tau * exp(+j phi))

The four values are added to Y[f, f], Y[t, t], Y[f, t] and Y[t, f]; the
bus shunt G + jB is added to the diagonal. Out-of-service branches keep
their (zero valued) entries in the sparsity pattern, so toggling them back
does not grow the matrix.

Counters
--------
model
    Incremented on every change of matrix values.
pattern
    Incremented on every change of the sparsity pattern.

Solvers compare these counters with the values they saw last to decide
whether derived data (Jacobian pattern, decoupled matrices) must be rebuilt.

Date: 2026-10-19
"""

from typing import Sequence, Tuple

import numpy as np
import scipy.sparse as sp
from numpy.typing import NDArray

from core.exceptions import ConfigurationError


def add_to_entries(
    matrix: sp.csr_matrix,
    rows: Sequence[int],
    cols: Sequence[int],
    values: Sequence,
) -> Tuple[sp.csr_matrix, bool]:
    """
    Add values to existing entries of a CSR matrix.

    Entries already in the sparsity pattern are updated in place. Missing
    entries are inserted, which returns a new matrix.

    Parameters
    ----------
    matrix : sp.csr_matrix
        Matrix with sorted indices.
    rows, cols : sequence of int
        Entry positions.
    values : sequence
        Values to add.

    Returns
    -------
    matrix : sp.csr_matrix
        The updated matrix (the same object unless entries were inserted).
    grown : bool
        True if the sparsity pattern changed.
    """
    indptr, indices, data = matrix.indptr, matrix.indices, matrix.data
    missing_rows, missing_cols, missing_values = [], [], []
    for r, c, v in zip(rows, cols, values):
        start, stop = indptr[r], indptr[r + 1]
        pos = start + np.searchsorted(indices[start:stop], c)
        if pos < stop and indices[pos] == c:
            data[pos] += v
        else:
            missing_rows.append(r)
            missing_cols.append(c)
            missing_values.append(v)

    if not missing_rows:
        return matrix, False

    extra = sp.csr_matrix(
        (np.asarray(missing_values, dtype=data.dtype), (missing_rows, missing_cols)),
        shape=matrix.shape,
    )
    matrix = (matrix + extra).tocsr()
    matrix.sort_indices()
    return matrix, True


class ACModel:
    """
    Nodal admittance matrix with per-branch pi-model quadrants.

    Attributes
    ----------
    nodal_matrix : sp.csr_matrix
        Complex n x n admittance matrix Y with sorted indices.
    admittance : NDArray[np.complex128]
        Series admittance per branch (0 for out-of-service branches).
    from_from, from_to, to_from, to_to : NDArray[np.complex128]
        Pi-model quadrants per branch (0 for out-of-service branches).
    model : int
        Value-change counter.
    pattern : int
        Pattern-change counter.
    """

    def __init__(self, system) -> None:
        """
        Build the AC model of a power system.

        Parameters
        ----------
        system : PowerSystem
            Source of the bus and branch records.

        Raises
        ------
        ConfigurationError
            If an in-service branch has zero series impedance.
        """
        self.system = system
        self.model = 0
        self.pattern = 0
        self.build()

    def build(self) -> None:
        """Assemble Y from scratch."""
        system = self.system
        n = system.n_buses
        m = system.n_branches

        self.admittance = np.zeros(m, dtype=np.complex128)
        self.from_from = np.zeros(m, dtype=np.complex128)
        self.from_to = np.zeros(m, dtype=np.complex128)
        self.to_from = np.zeros(m, dtype=np.complex128)
        self.to_to = np.zeros(m, dtype=np.complex128)
        for branch in system.branches:
            if branch.in_service:
                self._set_branch(branch.index)

        f = np.array([br.from_bus for br in system.branches], dtype=np.int64)
        t = np.array([br.to_bus for br in system.branches], dtype=np.int64)

        g, b = system.shunt()
        diagonal = (g + 1j * b).astype(np.complex128)
        np.add.at(diagonal, f, self.from_from)
        np.add.at(diagonal, t, self.to_to)

        rows = np.concatenate([np.arange(n), f, t])
        cols = np.concatenate([np.arange(n), t, f])
        data = np.concatenate([diagonal, self.from_to, self.to_from])
        matrix = sp.csr_matrix((data, (rows, cols)), shape=(n, n), dtype=np.complex128)
        matrix.sum_duplicates()

        self.nodal_matrix = matrix
        self.model += 1
        self.pattern += 1

    def _set_branch(self, k: int) -> None:
        branch = self.system.branches[k]
        if branch.r_pu == 0 and branch.x_pu == 0:
            raise ConfigurationError(
                f"Branch {branch.label!r} has zero resistance and reactance."
            )
        y = branch.series_admittance
        ratio = np.exp(-1j * branch.shift_rad) / branch.tap_ratio
        to_to = y + 0.5 * complex(branch.g_pu, branch.b_pu)

        self.admittance[k] = y
        self.to_to[k] = to_to
        self.from_from[k] = to_to / branch.tap_ratio ** 2
        self.from_to[k] = -np.conj(ratio) * y
        self.to_from[k] = -ratio * y

    def patch_branch(self, k: int, sign: int) -> None:
        """
        Add (sign = +1) or subtract (sign = -1) the contribution of branch k.

        Adding recomputes the quadrants from the current branch record.
        Subtracting removes the stored quadrants and clears them, so a
        subtract followed by an add with new parameters equals a rebuild.
        """
        if sign > 0:
            self._set_branch(k)
        branch = self.system.branches[k]
        f, t = branch.from_bus, branch.to_bus
        values = sign * np.array(
            [self.from_from[k], self.to_to[k], self.from_to[k], self.to_from[k]]
        )
        self.nodal_matrix, grown = add_to_entries(
            self.nodal_matrix, [f, t, f, t], [f, t, t, f], values
        )
        if grown:
            self.pattern += 1
        self.model += 1

        if sign < 0:
            self.admittance[k] = 0
            self.from_from[k] = 0
            self.from_to[k] = 0
            self.to_from[k] = 0
            self.to_to[k] = 0

    def append_branch(self, k: int) -> None:
        """Extend the per-branch arrays for a newly added branch and patch it in."""
        for name in ("admittance", "from_from", "from_to", "to_from", "to_to"):
            setattr(self, name, np.append(getattr(self, name), 0j))
        if self.system.branches[k].in_service:
            self.patch_branch(k, +1)

    def patch_shunt(self, i: int, delta: complex) -> None:
        """Add a shunt admittance change to the diagonal entry of bus i."""
        self.nodal_matrix, grown = add_to_entries(self.nodal_matrix, [i], [i], [delta])
        if grown:
            self.pattern += 1
        self.model += 1

    def branch_quadrants(self) -> Tuple[NDArray[np.complex128], ...]:
        """Return (from_from, from_to, to_from, to_to) for all branches."""
        return self.from_from, self.from_to, self.to_from, self.to_to
