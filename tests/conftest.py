"""
Shared test networks.

Date: 2026-10-19
"""

import numpy as np
import pytest

from core.config import ModelConfig
from core.power_system import PowerSystem


def build_two_bus_system() -> PowerSystem:
    """
    Create the two-bus reference case.

    Topology:
        Bus 1 (Slack, V = 1 pu) --- x = 0.1 pu --- Bus 2 (PQ, P_D = 0.5 pu)

    The AC solution is known in closed form: sin(2 theta_2) = -0.1 and
    V_2 = cos(theta_2). The DC solution is theta_2 = -0.05 rad.
    """
    system = PowerSystem(ModelConfig())
    system.add_bus(label=1, bus_type=3, base_kv=110.0)
    system.add_bus(label=2, bus_type=1, p_demand_pu=0.5, base_kv=110.0)
    system.add_branch(label=1, from_bus=1, to_bus=2, x_pu=0.1)
    system.add_generator(label=1, bus=1, vm_setpoint_pu=1.0)
    return system


def build_five_bus_system() -> PowerSystem:
    """
    Create a meshed five-bus test network.

    Topology:
        Bus 1 (Slack) ---- Bus 2 (PV) ---- Bus 5 (PQ)
           |             /    |              |
           |           /      |              |
        Bus 3 (PQ) ------- Bus 4 (PQ) -------+

    Branch 3-4 is a transformer with off-nominal tap, branch 4-5 a phase
    shifter. Bus 3 carries a capacitive shunt.
    """
    system = PowerSystem(ModelConfig())
    system.add_bus(label=1, bus_type=3, base_kv=110.0)
    system.add_bus(label=2, bus_type=2, p_demand_pu=0.2, q_demand_pu=0.1, base_kv=110.0)
    system.add_bus(label=3, bus_type=1, p_demand_pu=0.45, q_demand_pu=0.15, b_shunt_pu=0.05,
                   base_kv=110.0)
    system.add_bus(label=4, bus_type=1, p_demand_pu=0.4, q_demand_pu=0.05, base_kv=110.0)
    system.add_bus(label=5, bus_type=1, p_demand_pu=0.6, q_demand_pu=0.1, base_kv=110.0)

    system.add_branch(label=1, from_bus=1, to_bus=2, r_pu=0.02, x_pu=0.06, b_pu=0.06)
    system.add_branch(label=2, from_bus=1, to_bus=3, r_pu=0.08, x_pu=0.24, b_pu=0.05)
    system.add_branch(label=3, from_bus=2, to_bus=3, r_pu=0.06, x_pu=0.18, b_pu=0.04)
    system.add_branch(label=4, from_bus=2, to_bus=4, r_pu=0.06, x_pu=0.18, b_pu=0.04)
    system.add_branch(label=5, from_bus=2, to_bus=5, r_pu=0.04, x_pu=0.12, b_pu=0.03)
    system.add_branch(label=6, from_bus=3, to_bus=4, r_pu=0.01, x_pu=0.03, b_pu=0.02,
                      tap_ratio=0.98)
    system.add_branch(label=7, from_bus=4, to_bus=5, r_pu=0.08, x_pu=0.24, b_pu=0.05,
                      shift_rad=np.deg2rad(2.0))

    system.add_generator(label=1, bus=1, vm_setpoint_pu=1.02)
    system.add_generator(label=2, bus=2, p_pu=0.4, vm_setpoint_pu=1.01)
    return system


@pytest.fixture
def two_bus_system() -> PowerSystem:
    return build_two_bus_system()


@pytest.fixture
def five_bus_system() -> PowerSystem:
    return build_five_bus_system()
