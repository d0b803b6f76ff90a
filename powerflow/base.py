"""
AC Power Flow Base Module
=========================

This module defines the interface shared by all AC power flow solvers and
the caller-side loop that runs a solver to convergence.

A solver holds its own voltage state (``magnitude``, ``angle``) and exposes
two operations:

    - mismatch(): maximum absolute active and reactive power mismatch at
      the current state; does not change the state
    - step(): one solver iteration; updates the state

Mismatches are calculated minus specified injections, taken over all
non-slack buses for active power and over load buses for reactive power.
The bus records keep their specified values; solver results live on the
solver object only.

Date: 2026-10-19
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from core.bus_classification import BusClassification, BusType, classify_buses
from core.config import PowerFlowSettings
from core.exceptions import ConfigurationError


@dataclass
class PowerFlowResult:
    """
    Outcome of ``run_power_flow``.

    Attributes
    ----------
    converged : bool
        True if both mismatches fell below the tolerance.
    iterations : int
        Number of ``step`` calls performed.
    active_mismatch : float
        Final maximum absolute active power mismatch (pu).
    reactive_mismatch : float
        Final maximum absolute reactive power mismatch (pu).
    """
    converged: bool
    iterations: int
    active_mismatch: float
    reactive_mismatch: float


def check_bus_count(system, classification: BusClassification, method: str) -> None:
    """Raise ConfigurationError if the system no longer matches a solver snapshot."""
    if system.n_buses != classification.n_buses:
        raise ConfigurationError(
            f"The {method} analysis was created for {classification.n_buses} buses, the power "
            f"system now has {system.n_buses}; create a new solver."
        )


def initialise_voltage(
    system,
    classification: BusClassification,
    flat_start: bool = False,
) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Build the initial voltage magnitudes and angles.

    Load buses start from the stored bus voltage (or 1 pu with a flat
    start). Voltage-controlled and slack buses start from the setpoint of
    their first in-service generator. A flat start sets every angle to the
    slack angle.

    Returns
    -------
    magnitude, angle : NDArray[np.float64]
        Initial voltage in polar form.
    """
    magnitude = np.array([bus.vm_pu for bus in system.buses], dtype=np.float64)
    angle = np.array([bus.va_rad for bus in system.buses], dtype=np.float64)
    if flat_start:
        magnitude[:] = 1.0
        angle[:] = system.buses[classification.slack_index].va_rad

    seen = set()
    for generator in system.generators:
        if not generator.in_service or generator.bus in seen:
            continue
        seen.add(generator.bus)
        if classification.bus_types[generator.bus] != BusType.LOAD:
            magnitude[generator.bus] = generator.vm_setpoint_pu
    return magnitude, angle


class ACPowerFlow(ABC):
    """
    Base class of the AC power flow solvers.

    Attributes
    ----------
    system : PowerSystem
        The solved power system. Its AC model is built on construction.
    classification : BusClassification
        Bus types fixed at construction.
    magnitude : NDArray[np.float64]
        Current voltage magnitudes.
    angle : NDArray[np.float64]
        Current voltage angles in radians.
    """

    method = "AC power flow"

    def __init__(self, system, flat_start: bool = False) -> None:
        self.system = system
        self.classification = classify_buses(system)
        # build the model before the first step so that counter snapshots are valid
        system.ac_model
        self.magnitude, self.angle = initialise_voltage(system, self.classification, flat_start)

    @property
    def voltage(self) -> NDArray[np.complex128]:
        """Return the complex bus voltages."""
        return self.magnitude * np.exp(1j * self.angle)

    def nodal_matrix(self):
        """
        Return the current nodal admittance matrix of the power system.

        Raises
        ------
        ConfigurationError
            If buses were added after the solver was created.
        """
        check_bus_count(self.system, self.classification, self.method)
        return self.system.ac_model.nodal_matrix

    def calculated_power(self) -> NDArray[np.complex128]:
        """Return the complex power injection S = V * conj(Y V) at the current state."""
        v = self.voltage
        return v * np.conj(self.nodal_matrix() @ v)

    def mismatch_vectors(self) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        """
        Return the active (non-slack buses) and reactive (load buses) mismatch.

        Returns
        -------
        active : NDArray[np.float64]
            P_calc - P_spec ordered like ``classification.pvpq``.
        reactive : NDArray[np.float64]
            Q_calc - Q_spec ordered like ``classification.pq``.
        """
        difference = self.calculated_power() - self.system.specified_power()
        return difference.real[self.classification.pvpq], difference.imag[self.classification.pq]

    def mismatch(self) -> Tuple[float, float]:
        """
        Return the maximum absolute active and reactive power mismatch.

        Both values are 0 when the corresponding set of buses is empty.
        """
        active, reactive = self.mismatch_vectors()
        p = float(np.max(np.abs(active))) if active.size else 0.0
        q = float(np.max(np.abs(reactive))) if reactive.size else 0.0
        return p, q

    @abstractmethod
    def step(self) -> None:
        """Perform one iteration and update ``magnitude`` and ``angle``."""

    def update_generator(self, label, **changes) -> None:
        """
        Update a generator and keep this solver consistent with the change.

        A new voltage setpoint or a change of the first in-service generator
        at a voltage-controlled or slack bus updates the magnitude held by
        the solver.

        Raises
        ------
        ConfigurationError
            If the change takes the last in-service generator off a
            voltage-controlled or slack bus, since the bus would change type.
        """
        system = self.system
        idx = system.generator_index(label)
        generator = system.generators[idx]
        bus = generator.bus
        controlled = self.classification.bus_types[bus] != BusType.LOAD

        if controlled and "in_service" in changes and not changes["in_service"]:
            others = [k for k in system.generators_at(bus) if k != idx]
            if generator.in_service and not others:
                raise ConfigurationError(
                    f"The {self.method} analysis cannot be reused due to required bus type "
                    f"conversion at bus {system.buses[bus].label!r}."
                )

        system.update_generator(label, **changes)
        active = system.generators_at(bus)
        if controlled and active:
            self.magnitude[bus] = system.generators[active[0]].vm_setpoint_pu


def run_power_flow(analysis: ACPowerFlow, settings: Optional[PowerFlowSettings] = None) -> PowerFlowResult:
    """
    Iterate a solver until convergence or the iteration limit.

    Parameters
    ----------
    analysis : ACPowerFlow
        Solver to iterate.
    settings : PowerFlowSettings, optional
        Tolerance and iteration limit.

    Returns
    -------
    result : PowerFlowResult
        Convergence flag, step count and final mismatches.
    """
    if settings is None:
        settings = PowerFlowSettings()

    iterations = 0
    while True:
        active, reactive = analysis.mismatch()
        if active < settings.tolerance and reactive < settings.tolerance:
            return PowerFlowResult(True, iterations, active, reactive)
        if iterations >= settings.max_iterations or not np.isfinite(active + reactive):
            return PowerFlowResult(False, iterations, active, reactive)
        analysis.step()
        iterations += 1
