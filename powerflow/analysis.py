"""
Power Flow Analysis Module
==========================

This module derives bus, branch and generator powers from a solved AC or
DC power flow. The functions read the voltage state held by the solver
object and the element records of its power system; they never modify
either.

Generator reactive sharing
--------------------------
When several in-service generators share a bus, the bus reactive output
Q_bus is split in proportion to their capability ranges:

    Q_k = Qmin_k + (Q_bus - sum Qmin) / (sum Qmax - sum Qmin) * (Qmax_k - Qmin_k)

Infinite limits are replaced by +-(|Q_bus| + |sum of finite Qmin| +
|sum of finite Qmax|). If the total range is numerically zero the output is
split equally above the minima. At the slack bus the first in-service
generator takes the active power balance; the others keep their setpoints.

Date: 2026-10-19
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np
from numpy.typing import NDArray


@dataclass
class BusPower:
    """
    Per-bus AC powers (pu).

    Attributes
    ----------
    injection : NDArray[np.complex128]
        Net injection S = V conj(Y V).
    supply : NDArray[np.complex128]
        Injection plus demand, i.e. the power delivered by the generators.
    shunt : NDArray[np.complex128]
        Power consumed by the bus shunt, |V|^2 (G - jB).
    current : NDArray[np.complex128]
        Net injected current Y V.
    """
    injection: NDArray[np.complex128]
    supply: NDArray[np.complex128]
    shunt: NDArray[np.complex128]
    current: NDArray[np.complex128]


@dataclass
class BranchPower:
    """
    Per-branch AC powers (pu); zero for out-of-service branches.

    Attributes
    ----------
    from_power, to_power : NDArray[np.complex128]
        Complex power entering the branch at each end.
    charging : NDArray[np.complex128]
        Power supplied by the charging admittance (g + jb)/2 at both ends.
    series_loss : NDArray[np.complex128]
        Power consumed by the series impedance, |I_s|^2 (r + jx).
    series_current : NDArray[np.complex128]
        Current through the series impedance, from the from side.
    """
    from_power: NDArray[np.complex128]
    to_power: NDArray[np.complex128]
    charging: NDArray[np.complex128]
    series_loss: NDArray[np.complex128]
    series_current: NDArray[np.complex128]


def _branch_arrays(system) -> Tuple[NDArray[np.int64], NDArray[np.int64]]:
    f = np.array([br.from_bus for br in system.branches], dtype=np.int64)
    t = np.array([br.to_bus for br in system.branches], dtype=np.int64)
    return f, t


def _generators_by_bus(system) -> Dict[int, List[int]]:
    groups: Dict[int, List[int]] = {}
    for generator in system.generators:
        if generator.in_service:
            groups.setdefault(generator.bus, []).append(generator.index)
    return groups


# =============================================================================
# AC
# =============================================================================

def bus_power(analysis) -> BusPower:
    """Return the per-bus powers of a solved AC power flow."""
    system = analysis.system
    v = analysis.voltage
    current = system.ac_model.nodal_matrix @ v
    injection = v * np.conj(current)
    p_demand, q_demand = system.demand()
    g_shunt, b_shunt = system.shunt()
    return BusPower(
        injection=injection,
        supply=injection + p_demand + 1j * q_demand,
        shunt=np.abs(v) ** 2 * (g_shunt - 1j * b_shunt),
        current=current,
    )


def branch_power(analysis) -> BranchPower:
    """Return the per-branch powers of a solved AC power flow."""
    system = analysis.system
    model = system.ac_model
    v = analysis.voltage
    f, t = _branch_arrays(system)
    v_from, v_to = v[f], v[t]

    from_power = v_from * np.conj(model.from_from * v_from + model.from_to * v_to)
    to_power = v_to * np.conj(model.to_from * v_from + model.to_to * v_to)

    in_service = np.array([br.in_service for br in system.branches], dtype=bool)
    tap = np.array([br.tap_ratio for br in system.branches], dtype=np.float64)
    shift = np.array([br.shift_rad for br in system.branches], dtype=np.float64)
    r = np.array([br.r_pu for br in system.branches], dtype=np.float64)
    x = np.array([br.x_pu for br in system.branches], dtype=np.float64)
    g = np.array([br.g_pu for br in system.branches], dtype=np.float64)
    b = np.array([br.b_pu for br in system.branches], dtype=np.float64)

    series_current = model.admittance * (v_from * np.exp(-1j * shift) / tap - v_to)
    charging = 0.5 * (g + 1j * b) * (np.abs(v_from / tap) ** 2 + np.abs(v_to) ** 2)
    charging = np.where(in_service, charging, 0)
    series_loss = np.abs(series_current) ** 2 * (r + 1j * x)

    return BranchPower(
        from_power=from_power,
        to_power=to_power,
        charging=charging,
        series_loss=series_loss,
        series_current=series_current,
    )


def generator_power(analysis) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Return the active and reactive output of every generator.

    Out-of-service generators report zero. Generators away from the slack
    bus keep their active setpoint.

    Returns
    -------
    p, q : NDArray[np.float64]
        Output per generator, in generator order.
    """
    system = analysis.system
    base_power = system.config.base_power_mva
    slack = analysis.classification.slack_index

    supply = bus_power(analysis).supply
    p = np.array([g.p_pu if g.in_service else 0.0 for g in system.generators], dtype=np.float64)
    q = np.zeros(system.n_generators, dtype=np.float64)

    for bus, members in _generators_by_bus(system).items():
        members = np.asarray(members)
        total = supply[bus].imag
        q_min = np.array([system.generators[k].q_min_pu for k in members], dtype=np.float64)
        q_max = np.array([system.generators[k].q_max_pu for k in members], dtype=np.float64)

        bound = (abs(total) + abs(q_min[np.isfinite(q_min)].sum())
                 + abs(q_max[np.isfinite(q_max)].sum()))
        q_min = np.where(np.isfinite(q_min), q_min, -bound)
        q_max = np.where(np.isfinite(q_max), q_max, bound)
        min_total, max_total = q_min.sum(), q_max.sum()

        if base_power * abs(min_total - max_total) > 10 * np.finfo(float).eps:
            q[members] = q_min + (total - min_total) / (max_total - min_total) * (q_max - q_min)
        else:
            q[members] = q_min + (total - min_total) / len(members)

        if bus == slack:
            p[members[0]] = supply[bus].real - p[members[1:]].sum()

    return p, q


# =============================================================================
# DC
# =============================================================================

def dc_bus_power(analysis) -> NDArray[np.float64]:
    """Return the active power delivered by the generators at each bus (DC)."""
    system = analysis.system
    model = system.dc_model
    p_demand, _ = system.demand()
    g_shunt, _ = system.shunt()
    injection = model.nodal_matrix @ analysis.angle + model.shift_injection
    return injection + p_demand + g_shunt


def dc_branch_power(analysis) -> NDArray[np.float64]:
    """Return the active power flow at the from end of every branch (DC)."""
    system = analysis.system
    model = system.dc_model
    f, t = _branch_arrays(system)
    shift = np.array([br.shift_rad for br in system.branches], dtype=np.float64)
    return model.admittance * (analysis.angle[f] - analysis.angle[t] - shift)


def dc_generator_power(analysis) -> NDArray[np.float64]:
    """Return the active output of every generator (DC); the slack generator balances."""
    system = analysis.system
    slack = analysis.classification.slack_index
    supply = dc_bus_power(analysis)
    p = np.array([g.p_pu if g.in_service else 0.0 for g in system.generators], dtype=np.float64)
    members = system.generators_at(slack)
    if members:
        p[members[0]] = supply[slack] - p[members[1:]].sum()
    return p
