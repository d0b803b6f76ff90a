"""
Case Import Module
==================

This module builds a PowerSystem from MATPOWER-style case data (the ppc
dictionary used by pypower and pandapower) or directly from a pandapower
network.

Conversions
-----------
- powers and shunts in MW / MVAr are divided by baseMVA
- angles in degrees are converted to radians
- a tap ratio of 0 is read as 1
- bus numbers starting at 0 are shifted by one to obtain positive labels
- buses of type 4 (isolated) are skipped together with the branches and
  generators connected to them
- missing (NaN) reactive limits become infinite

Date: 2026-10-19
"""

# imports
from typing import Dict, Optional, Tuple

import numpy as np
import pandapower as pp
from pandapower.converter.pypower import to_ppc
from pandapower.pypower.idx_brch import BR_B, BR_R, BR_STATUS, BR_X, F_BUS, SHIFT, T_BUS, TAP
from pandapower.pypower.idx_bus import (BASE_KV, BS, BUS_I, BUS_TYPE, GS, PD, QD, VA, VM,
                                        VMAX, VMIN)
from pandapower.pypower.idx_gen import GEN_BUS, GEN_STATUS, PG, QG, QMAX, QMIN, VG

from core.config import ModelConfig
from core.exceptions import ConfigurationError
from core.power_system import PowerSystem

ISOLATED_BUS = 4


def from_ppc(ppc: Dict, config: Optional[ModelConfig] = None) -> PowerSystem:
    """
    Build a power system from a MATPOWER-style case dictionary.

    Parameters
    ----------
    ppc : dict
        Case with keys ``baseMVA``, ``bus``, ``branch`` and ``gen``
        (pypower column layout).
    config : ModelConfig, optional
        Overrides the base power taken from the case.

    Returns
    -------
    system : PowerSystem
        Bus labels are the case bus numbers (shifted by one if the
        numbering starts at 0).

    Raises
    ------
    ConfigurationError
        If a required key is missing or the data is inconsistent.
    """
    for key in ("baseMVA", "bus", "branch", "gen"):
        if key not in ppc:
            raise ConfigurationError(f"The case data has no '{key}' entry.")

    base_mva = float(ppc["baseMVA"])
    if config is None:
        config = ModelConfig(base_power_mva=base_mva)
    bus_data = np.atleast_2d(np.asarray(ppc["bus"], dtype=np.float64))
    branch_data = np.atleast_2d(np.asarray(ppc["branch"], dtype=np.float64))
    gen_data = np.atleast_2d(np.asarray(ppc["gen"], dtype=np.float64))

    system = PowerSystem(config)
    offset = 1 if bus_data.size and bus_data[:, BUS_I].min() == 0 else 0
    number_to_label: Dict[int, int] = {}

    for row in bus_data:
        if int(row[BUS_TYPE]) == ISOLATED_BUS:
            continue
        label = int(row[BUS_I]) + offset
        number_to_label[int(row[BUS_I])] = label
        system.add_bus(
            label=label,
            bus_type=int(row[BUS_TYPE]),
            p_demand_pu=row[PD] / base_mva,
            q_demand_pu=row[QD] / base_mva,
            g_shunt_pu=row[GS] / base_mva,
            b_shunt_pu=row[BS] / base_mva,
            vm_pu=row[VM],
            va_rad=np.deg2rad(row[VA]),
            vm_min_pu=row[VMIN],
            vm_max_pu=row[VMAX],
            base_kv=row[BASE_KV] if row[BASE_KV] > 0 else config.base_voltage_kv,
        )

    for row in branch_data:
        f, t = int(row[F_BUS]), int(row[T_BUS])
        if f not in number_to_label or t not in number_to_label:
            continue
        system.add_branch(
            from_bus=number_to_label[f],
            to_bus=number_to_label[t],
            r_pu=row[BR_R],
            x_pu=row[BR_X],
            b_pu=row[BR_B],
            tap_ratio=row[TAP] if row[TAP] != 0 else 1.0,
            shift_rad=np.deg2rad(row[SHIFT]),
            in_service=row[BR_STATUS] > 0,
        )

    for row in gen_data:
        bus = int(row[GEN_BUS])
        if bus not in number_to_label:
            continue
        q_max = row[QMAX] / base_mva if np.isfinite(row[QMAX]) else np.inf
        q_min = row[QMIN] / base_mva if np.isfinite(row[QMIN]) else -np.inf
        system.add_generator(
            bus=number_to_label[bus],
            p_pu=row[PG] / base_mva,
            q_pu=row[QG] / base_mva,
            vm_setpoint_pu=row[VG],
            q_min_pu=q_min,
            q_max_pu=q_max,
            in_service=row[GEN_STATUS] > 0,
        )

    return system


def from_pandapower(net: pp.pandapowerNet) -> Tuple[PowerSystem, Dict[int, int]]:
    """
    Build a power system from a pandapower network.

    The network is converted with ``pandapower.converter.to_ppc`` using a
    flat initialisation and phase shifts enabled.

    Parameters
    ----------
    net : pp.pandapowerNet
        Pandapower network.

    Returns
    -------
    system : PowerSystem
        Converted power system.
    bus_labels : dict
        Map from pandapower bus index to the bus label in ``system``. Buses
        that were merged or isolated by the conversion are omitted.
    """
    ppc = to_ppc(net, calculate_voltage_angles=True, init="flat")
    system = from_ppc(ppc)

    offset = 1 if len(ppc["bus"]) and ppc["bus"][:, BUS_I].min() == 0 else 0
    lookup = net._pd2ppc_lookups["bus"]
    bus_labels = {}
    for pp_bus in net.bus.index:
        if pp_bus >= len(lookup) or lookup[pp_bus] < 0:
            continue
        label = int(ppc["bus"][lookup[pp_bus], BUS_I]) + offset
        if label in system.bus_lookup:
            bus_labels[int(pp_bus)] = label
    return system, bus_labels
