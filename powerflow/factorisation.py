"""
Sparse Factorisation Module
===========================

This module wraps the scipy sparse direct solvers behind a single
``factorise`` call so that every solver factorises its matrices the same
way and reports singular systems with the same error.

Date: 2026-10-19
"""

import numpy as np
import scipy.sparse as sp
from numpy.typing import NDArray
from scipy.sparse.linalg import factorized, splu

from core.config import Factorisation
from core.exceptions import SingularMatrixError


class SparseFactor:
    """
    Factorised sparse matrix.

    Attributes
    ----------
    name : str
        Name of the factorised matrix, used in error messages.
    shape : tuple of int
        Matrix shape.
    """

    def __init__(self, solve, name: str, shape) -> None:
        self._solve = solve
        self.name = name
        self.shape = shape

    def solve(self, rhs: NDArray) -> NDArray:
        """
        Solve A x = rhs.

        Raises
        ------
        SingularMatrixError
            If the solution is not finite.
        """
        if self.shape[0] == 0:
            return np.zeros(0, dtype=np.float64)
        x = self._solve(np.asarray(rhs))
        if not np.all(np.isfinite(x)):
            raise SingularMatrixError(f"The {self.name} is singular, the solution is not finite.")
        return x


def factorise(matrix, method: Factorisation = Factorisation.LU, name: str = "matrix") -> SparseFactor:
    """
    Factorise a square sparse matrix.

    Parameters
    ----------
    matrix : sparse matrix
        Square matrix to factorise.
    method : Factorisation
        Backend: SuperLU (``LU``) or ``scipy.sparse.linalg.factorized``
        (``UMFPACK``).
    name : str
        Name used in error messages (e.g. "Jacobian").

    Returns
    -------
    factor : SparseFactor
        Object whose ``solve`` method reuses the factorisation.

    Raises
    ------
    SingularMatrixError
        If the matrix is exactly singular.
    """
    matrix = sp.csc_matrix(matrix)
    if matrix.shape[0] != matrix.shape[1]:
        raise ValueError(f"The {name} must be square, got shape {matrix.shape}")
    if matrix.shape[0] == 0:
        return SparseFactor(None, name, matrix.shape)

    method = Factorisation(method)
    try:
        if method is Factorisation.LU:
            solve = splu(matrix).solve
        else:
            solve = factorized(matrix)
    except RuntimeError as exc:
        raise SingularMatrixError(f"The {name} is singular and cannot be factorised: {exc}") from exc
    return SparseFactor(solve, name, matrix.shape)
