"""
Reactive Power Limits Module
============================

This module enforces generator reactive power limits after an AC power
flow and re-references voltage angles.

reactive_power_limit
    Compare every generator's reactive output with its limits. For each
    violating generator at a voltage-controlled or slack bus, fix the
    reactive outputs at that bus (the violator at its limit) and convert
    the bus to a load bus. A converted slack bus hands its role to the
    first remaining voltage-controlled bus.
solve_with_reactive_limits
    Outer loop: solve, enforce one violation (the largest), rebuild the
    solver and solve again until no generator violates its limits.
adjust_voltage_angle
    Shift all angles so that a chosen bus holds its specified angle.

Converted buses stay type 1 in the power system records, so a second
call of reactive_power_limit on the same state reports nothing new.

Date: 2026-10-19
"""

import warnings
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import numpy as np
from numpy.typing import NDArray

from core.bus_classification import BusType
from core.config import PowerFlowSettings
from core.exceptions import ConfigurationError, ModelingWarning
from powerflow.analysis import generator_power
from powerflow.base import ACPowerFlow, PowerFlowResult, run_power_flow
from powerflow.newton_raphson import NewtonRaphson


@dataclass
class ReactiveLimitResult:
    """
    Outcome of ``solve_with_reactive_limits``.

    Attributes
    ----------
    analysis : ACPowerFlow
        Solver holding the final state.
    result : PowerFlowResult
        Convergence data of the final solve.
    loops : int
        Number of power flow solves.
    converted : list
        Labels of the generators pinned at a limit, in conversion order.
    limits_enforced : bool
        False if violations remained when the loop limit was reached.
    """
    analysis: ACPowerFlow
    result: PowerFlowResult
    loops: int
    converted: List = field(default_factory=list)
    limits_enforced: bool = True


def find_reactive_violations(analysis: ACPowerFlow) -> NDArray[np.int64]:
    """
    Return the limit violation of every generator without changing anything.

    Only in-service generators with q_min <= q_max at buses solved as
    voltage-controlled or slack are checked.

    Returns
    -------
    violation : NDArray[np.int64]
        -1 below the minimum, +1 above the maximum, 0 otherwise.
    """
    system = analysis.system
    types = analysis.classification.bus_types
    _, q = generator_power(analysis)

    violation = np.zeros(system.n_generators, dtype=np.int64)
    for generator in system.generators:
        if not generator.in_service or generator.q_min_pu > generator.q_max_pu:
            continue
        bus = generator.bus
        if types[bus] == BusType.LOAD or system.buses[bus].bus_type == BusType.LOAD:
            continue
        if q[generator.index] < generator.q_min_pu:
            violation[generator.index] = -1
        elif q[generator.index] > generator.q_max_pu:
            violation[generator.index] = 1
    return violation


def reactive_power_limit(analysis: ACPowerFlow, single: bool = False) -> NDArray[np.int64]:
    """
    Enforce generator reactive limits on the power system of a solved analysis.

    For each violating generator (only the largest violation if ``single``)
    the reactive outputs of all in-service generators at its bus are set to
    their computed shares, the violator is pinned at the violated limit and
    the bus type is set to 1. Active outputs are updated from the solution
    so that a following solve starts from consistent specified values.

    Parameters
    ----------
    analysis : ACPowerFlow
        Solver holding a converged state. It must be rebuilt afterwards.
    single : bool
        Convert only the generator with the largest violation.

    Returns
    -------
    violation : NDArray[np.int64]
        -1 / +1 for each converted generator, 0 otherwise.

    Raises
    ------
    ConfigurationError
        If the slack bus is converted and no voltage-controlled bus is left
        to take its role.
    """
    system = analysis.system
    classification = analysis.classification
    violation = find_reactive_violations(analysis)
    if not violation.any():
        return violation

    p, q = generator_power(analysis)

    if single:
        excess = np.zeros(system.n_generators, dtype=np.float64)
        for k in np.flatnonzero(violation):
            generator = system.generators[k]
            limit = generator.q_min_pu if violation[k] < 0 else generator.q_max_pu
            excess[k] = abs(q[k] - limit)
        keep = int(np.argmax(excess))
        selected = np.zeros_like(violation)
        selected[keep] = violation[keep]
        violation = selected

    for generator in system.generators:
        if generator.in_service:
            generator.p_pu = float(p[generator.index])

    slack_converted = False
    for k in np.flatnonzero(violation):
        generator = system.generators[k]
        bus = system.buses[generator.bus]
        if bus.bus_type == BusType.LOAD:
            violation[k] = 0
            continue
        for other in system.generators_at(generator.bus):
            system.generators[other].q_pu = float(q[other])
        generator.q_pu = generator.q_min_pu if violation[k] < 0 else generator.q_max_pu

        bus.bus_type = BusType.LOAD
        if system.slack_index == generator.bus:
            system.slack_index = None
            slack_converted = True

    if slack_converted:
        types = classification.bus_types
        for candidate in system.buses:
            if types[candidate.index] == BusType.GENERATOR and candidate.bus_type == BusType.GENERATOR:
                old = classification.slack_index
                candidate.bus_type = BusType.SLACK
                system.slack_index = candidate.index
                warnings.warn(
                    f"The slack bus {system.buses[old].label!r} is converted to a load bus, "
                    f"bus {candidate.label!r} is the new slack bus.",
                    ModelingWarning,
                )
                break
        else:
            raise ConfigurationError(
                "The slack bus is converted to a load bus and no voltage-controlled bus "
                "is left to take its role."
            )

    return violation


def adjust_voltage_angle(analysis, label=None) -> None:
    """
    Shift all voltage angles so that a bus holds its specified angle.

    Parameters
    ----------
    analysis : ACPowerFlow or DCPowerFlow
        Solver whose ``angle`` array is shifted in place.
    label : int or str, optional
        Reference bus; the bus initially declared as slack by default.
    """
    system = analysis.system
    if label is None:
        index = analysis.classification.slack_index
    else:
        index = system.bus_index(label)
    analysis.angle += system.buses[index].va_rad - analysis.angle[index]


def solve_with_reactive_limits(
    system,
    settings: Optional[PowerFlowSettings] = None,
    solver: Optional[Callable] = None,
) -> ReactiveLimitResult:
    """
    Solve an AC power flow with generator reactive limits enforced.

    Parameters
    ----------
    system : PowerSystem
        Power system; converted buses and pinned generators are written to
        its records.
    settings : PowerFlowSettings, optional
        Tolerance, iteration limits, flat start and factorisation.
    solver : callable, optional
        Factory ``solver(system) -> ACPowerFlow``. Newton-Raphson with the
        given settings by default.

    Returns
    -------
    outcome : ReactiveLimitResult
        Final solver, convergence data and converted generators. If the
        slack bus was relocated, angles are referenced to the original
        slack bus.
    """
    if settings is None:
        settings = PowerFlowSettings()
    if solver is None:
        def solver(power_system):
            return NewtonRaphson(
                power_system,
                flat_start=settings.flat_start,
                factorisation=settings.factorisation,
            )

    reference = None
    converted = []
    analysis = None
    result = None
    limits_enforced = True

    for loop in range(1, settings.max_reactive_loops + 1):
        analysis = solver(system)
        if reference is None:
            reference = system.buses[analysis.classification.slack_index].label
        result = run_power_flow(analysis, settings)
        if not result.converged:
            break

        if loop == settings.max_reactive_loops:
            limits_enforced = not find_reactive_violations(analysis).any()
            break
        violation = reactive_power_limit(analysis, single=True)
        if not violation.any():
            break
        converted.extend(system.generators[k].label for k in np.flatnonzero(violation))

    if system.bus_index(reference) != analysis.classification.slack_index:
        adjust_voltage_angle(analysis, reference)

    return ReactiveLimitResult(
        analysis=analysis,
        result=result,
        loops=loop,
        converted=converted,
        limits_enforced=limits_enforced,
    )
