"""
Bus Classification Module
=========================

This module assigns every bus its role in the power flow equations and
stores the result as an immutable snapshot used by the solvers.

    - slack (3): voltage magnitude and angle fixed
    - voltage-controlled (2): active injection and voltage magnitude fixed
    - load (1): active and reactive injection fixed

Rules
-----
- a bus declared as type 3 is the slack bus (only one is allowed)
- a bus declared as type 2 is voltage-controlled if it hosts at least one
  in-service generator, otherwise it is solved as a load bus; the stored
  type is not overwritten
- a bus declared as type 1 is a load bus
- without a declared slack the first bus is used
- a slack bus without an in-service generator hands its role to the first
  voltage-controlled bus, when there is one

The snapshot is taken when a solver is constructed. A change in generator
status that alters these rules requires a new solver.

Date: 2026-10-19
"""

import warnings
from enum import IntEnum

import numpy as np
from numpy.typing import NDArray

from core.exceptions import ConfigurationError, ModelingWarning


class BusType(IntEnum):
    """Role of a bus in the power flow equations."""
    LOAD = 1
    GENERATOR = 2
    SLACK = 3


class BusClassification:
    """
    Snapshot of the bus types used by a solver.

    Attributes
    ----------
    bus_types : NDArray[np.int64]
        Effective type of every bus (values of BusType).
    slack_index : int
        Index of the slack bus.
    pq : NDArray[np.int64]
        Indices of load buses in ascending order.
    pv : NDArray[np.int64]
        Indices of voltage-controlled buses in ascending order.
    pvpq : NDArray[np.int64]
        Indices of all non-slack buses in ascending order. The angle part
        of the state vector follows this order, the magnitude part follows
        ``pq``.
    """

    def __init__(self, bus_types: NDArray[np.int64], slack_index: int) -> None:
        """
        Initialise a BusClassification.

        Parameters
        ----------
        bus_types : NDArray[np.int64]
            Effective bus types.
        slack_index : int
            Index of the slack bus; must be the only entry of type 3.
        """
        bus_types = np.asarray(bus_types, dtype=np.int64).copy()
        if np.count_nonzero(bus_types == BusType.SLACK) != 1 or bus_types[slack_index] != BusType.SLACK:
            raise ConfigurationError("Exactly one slack bus is required.")
        bus_types.setflags(write=False)

        self.bus_types = bus_types
        self.slack_index = int(slack_index)
        self.pq = np.flatnonzero(bus_types == BusType.LOAD)
        self.pv = np.flatnonzero(bus_types == BusType.GENERATOR)
        self.pvpq = np.flatnonzero(bus_types != BusType.SLACK)

    @property
    def n_buses(self) -> int:
        """Return the number of buses."""
        return len(self.bus_types)

    @property
    def n_pq(self) -> int:
        """Return the number of load buses."""
        return len(self.pq)

    @property
    def n_pvpq(self) -> int:
        """Return the number of non-slack buses."""
        return len(self.pvpq)


def classify_buses(system) -> BusClassification:
    """
    Classify the buses of a power system.

    Parameters
    ----------
    system : PowerSystem
        The power system.

    Returns
    -------
    classification : BusClassification
        Effective bus types and index sets.

    Raises
    ------
    ConfigurationError
        If the system has no buses or declares more than one slack bus.
    """
    n = system.n_buses
    if n == 0:
        raise ConfigurationError("The power system has no buses.")

    has_generator = np.zeros(n, dtype=bool)
    for generator in system.generators:
        if generator.in_service:
            has_generator[generator.bus] = True

    bus_types = np.full(n, BusType.LOAD, dtype=np.int64)
    slack = None
    for bus in system.buses:
        if bus.bus_type == BusType.SLACK:
            if slack is not None:
                raise ConfigurationError(
                    f"Buses {system.buses[slack].label!r} and {bus.label!r} are both "
                    f"declared as slack bus."
                )
            slack = bus.index
            bus_types[bus.index] = BusType.SLACK
        elif bus.bus_type == BusType.GENERATOR and has_generator[bus.index]:
            bus_types[bus.index] = BusType.GENERATOR

    if slack is None:
        slack = 0
        warnings.warn(
            f"No slack bus is defined, bus {system.buses[0].label!r} is used as slack bus.",
            ModelingWarning,
        )
        bus_types[slack] = BusType.SLACK

    if not has_generator[slack]:
        candidates = np.flatnonzero(bus_types == BusType.GENERATOR)
        if len(candidates):
            new_slack = int(candidates[0])
            warnings.warn(
                f"The slack bus {system.buses[slack].label!r} has no in-service generator, "
                f"bus {system.buses[new_slack].label!r} is used as slack bus.",
                ModelingWarning,
            )
            bus_types[slack] = BusType.LOAD
            bus_types[new_slack] = BusType.SLACK
            slack = new_slack

    return BusClassification(bus_types, slack)
