"""
Power Flow Module
=================

Provides the iterative AC solvers, the DC solver, post-processing and
reactive limit handling.

Classes
-------
ACPowerFlow
    Interface of the AC solvers (mismatch / step).
NewtonRaphson
    Newton-Raphson solver in polar coordinates.
FastDecoupledXB, FastDecoupledBX
    Fast decoupled solvers.
GaussSeidel
    Gauss-Seidel solver.
DCPowerFlow
    Linear DC power flow.

Functions
---------
run_power_flow
    Iterate an AC solver until convergence.
reactive_power_limit
    Convert generator buses violating reactive limits.
solve_with_reactive_limits
    Outer loop with reactive limits enforced.
adjust_voltage_angle
    Re-reference voltage angles.
"""

from powerflow.base import ACPowerFlow, PowerFlowResult, initialise_voltage, run_power_flow
from powerflow.factorisation import SparseFactor, factorise
from powerflow.newton_raphson import NewtonRaphson
from powerflow.fast_decoupled import FastDecoupled, FastDecoupledXB, FastDecoupledBX
from powerflow.gauss_seidel import GaussSeidel
from powerflow.dc import DCPowerFlow
from powerflow.analysis import (
    BusPower,
    BranchPower,
    bus_power,
    branch_power,
    generator_power,
    dc_bus_power,
    dc_branch_power,
    dc_generator_power,
)
from powerflow.reactive_limits import (
    ReactiveLimitResult,
    find_reactive_violations,
    reactive_power_limit,
    solve_with_reactive_limits,
    adjust_voltage_angle,
)

__all__ = [
    "ACPowerFlow",
    "PowerFlowResult",
    "initialise_voltage",
    "run_power_flow",
    "SparseFactor",
    "factorise",
    "NewtonRaphson",
    "FastDecoupled",
    "FastDecoupledXB",
    "FastDecoupledBX",
    "GaussSeidel",
    "DCPowerFlow",
    "BusPower",
    "BranchPower",
    "bus_power",
    "branch_power",
    "generator_power",
    "dc_bus_power",
    "dc_branch_power",
    "dc_generator_power",
    "ReactiveLimitResult",
    "find_reactive_violations",
    "reactive_power_limit",
    "solve_with_reactive_limits",
    "adjust_voltage_angle",
]
