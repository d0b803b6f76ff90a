"""
DC Power Flow Module
====================

This module solves the linear DC power flow B' theta = P for the bus
voltage angles. The slack row and column are removed, the reduced system
is solved with the factorised matrix and the slack angle is added to all
angles afterwards.

    P = P_G - P_D - G_shunt - P_shift

The factorisation is kept and reused until the DC model counter of the
power system moves.

Date: 2026-10-19
"""

from typing import Optional

import numpy as np
from numpy.typing import NDArray

from core.bus_classification import classify_buses
from core.config import Factorisation
from powerflow.base import check_bus_count
from powerflow.factorisation import factorise


class DCPowerFlow:
    """
    DC power flow solver.

    Attributes
    ----------
    system : PowerSystem
        The solved power system.
    classification : BusClassification
        Bus types at construction; only the slack index is used.
    angle : NDArray[np.float64] or None
        Bus voltage angles of the last solve.
    factorisation : Factorisation
        Backend used to factorise the reduced matrix.
    """

    method = "DC power flow"

    def __init__(self, system, factorisation: Factorisation = Factorisation.LU) -> None:
        self.system = system
        self.classification = classify_buses(system)
        self.factorisation = Factorisation(factorisation)
        self.angle: Optional[NDArray[np.float64]] = None
        self._factor = None
        self._model = None
        self._model_version = None

    def injection(self) -> NDArray[np.float64]:
        """Return the right-hand side P of the DC equations."""
        system = self.system
        p_supply, _ = system.supply()
        p_demand, _ = system.demand()
        g_shunt, _ = system.shunt()
        return p_supply - p_demand - g_shunt - system.dc_model.shift_injection

    def solve(self) -> NDArray[np.float64]:
        """
        Solve for the bus voltage angles.

        Returns
        -------
        angle : NDArray[np.float64]
            Angles in radians; the slack bus holds its specified angle.

        Raises
        ------
        ConfigurationError
            If buses were added after the solver was created.
        SingularMatrixError
            If the reduced matrix is singular (e.g. an island without slack).
        """
        system = self.system
        check_bus_count(system, self.classification, self.method)
        dc_model = system.dc_model
        slack = self.classification.slack_index
        keep = np.flatnonzero(np.arange(system.n_buses) != slack)

        if dc_model is not self._model or dc_model.model != self._model_version:
            reduced = dc_model.nodal_matrix[keep][:, keep]
            self._factor = factorise(
                reduced,
                self.factorisation,
                f"DC nodal matrix reduced at slack bus {system.buses[slack].label!r}",
            )
            self._model = dc_model
            self._model_version = dc_model.model

        angle = np.zeros(system.n_buses, dtype=np.float64)
        angle[keep] = self._factor.solve(self.injection()[keep])
        angle += system.buses[slack].va_rad
        self.angle = angle
        return angle
