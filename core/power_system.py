"""
Power System Module
===================

This module defines the records describing a transmission network and the
PowerSystem container that owns them.

All quantities are in per-unit on the system base (angles in radians). The
container keeps the AC and DC network models it has built and patches them
in place whenever a branch or a bus shunt is edited, so that solvers built
on top of the models never need a full rebuild after a single change.

Classes
-------
Bus
    Bus record (type, demand, shunt, voltage, limits, base voltage).
Branch
    Pi-model branch record (series impedance, charging, tap, phase shift).
Generator
    Generator record (output, voltage setpoint, reactive capability).
PowerSystem
    Label-indexed container with add/update operations.

Date: 2026-10-19
"""

import warnings
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from core.config import ModelConfig
from core.exceptions import ConfigurationError, ModelingWarning

Label = Union[int, str]

LOAD_BUS = 1
GENERATOR_BUS = 2
SLACK_BUS = 3

_BRANCH_PARAMETERS = ("r_pu", "x_pu", "b_pu", "g_pu", "tap_ratio", "shift_rad")
_DC_PARAMETERS = ("x_pu", "tap_ratio", "shift_rad")


@dataclass
class Bus:
    """
    Bus record.

    Attributes
    ----------
    label : int or str
        Unique user-facing label.
    index : int
        Position of the bus in the system (row of the nodal matrices).
    bus_type : int
        Declared type: 1 = load, 2 = voltage-controlled, 3 = slack.
    p_demand_pu, q_demand_pu : float
        Active and reactive power demand.
    g_shunt_pu, b_shunt_pu : float
        Shunt conductance and susceptance (injection at 1 pu voltage).
    vm_pu, va_rad : float
        Voltage magnitude and angle. Used as the initial point of the AC
        solvers; the slack angle is the reference angle.
    vm_min_pu, vm_max_pu : float
        Voltage magnitude bounds.
    base_kv : float
        Base voltage in kV.
    """
    label: Label
    index: int
    bus_type: int = LOAD_BUS
    p_demand_pu: float = 0.0
    q_demand_pu: float = 0.0
    g_shunt_pu: float = 0.0
    b_shunt_pu: float = 0.0
    vm_pu: float = 1.0
    va_rad: float = 0.0
    vm_min_pu: float = 0.9
    vm_max_pu: float = 1.1
    base_kv: float = 138.0


@dataclass
class Branch:
    """
    Branch record (unified pi model of lines and transformers).

    Attributes
    ----------
    label : int or str
        Unique user-facing label.
    index : int
        Position of the branch in the system.
    from_bus, to_bus : int
        Bus indices (not labels) of the terminals. The tap is on the from side.
    r_pu, x_pu : float
        Series resistance and reactance.
    b_pu, g_pu : float
        Total charging susceptance and conductance, split equally between
        both ends.
    tap_ratio : float
        Off-nominal turns ratio magnitude.
    shift_rad : float
        Phase shift angle in radians.
    in_service : bool
        Operating status.
    """
    label: Label
    index: int
    from_bus: int
    to_bus: int
    r_pu: float = 0.0
    x_pu: float = 0.0
    b_pu: float = 0.0
    g_pu: float = 0.0
    tap_ratio: float = 1.0
    shift_rad: float = 0.0
    in_service: bool = True

    @property
    def series_admittance(self) -> complex:
        """Return y = 1 / (r + jx)."""
        return 1.0 / complex(self.r_pu, self.x_pu)


@dataclass
class Generator:
    """
    Generator record.

    Attributes
    ----------
    label : int or str
        Unique user-facing label.
    index : int
        Position of the generator in the system.
    bus : int
        Index of the host bus.
    p_pu, q_pu : float
        Active and reactive power output.
    vm_setpoint_pu : float
        Voltage magnitude setpoint of the host bus.
    q_min_pu, q_max_pu : float
        Reactive capability; may be infinite.
    in_service : bool
        Operating status.
    """
    label: Label
    index: int
    bus: int
    p_pu: float = 0.0
    q_pu: float = 0.0
    vm_setpoint_pu: float = 1.0
    q_min_pu: float = -np.inf
    q_max_pu: float = np.inf
    in_service: bool = True


def _check_label(label: Label, kind: str) -> Label:
    """Validate a user label: positive int or non-empty string."""
    if isinstance(label, (bool, np.bool_)):
        raise ConfigurationError(f"The {kind} label {label!r} must be a positive integer or a string.")
    if isinstance(label, (int, np.integer)):
        if label <= 0:
            raise ConfigurationError(f"The {kind} label {label} must be a positive integer.")
        return int(label)
    if isinstance(label, str):
        if not label:
            raise ConfigurationError(f"The {kind} label must be a non-empty string.")
        return label
    raise ConfigurationError(f"The {kind} label {label!r} must be a positive integer or a string.")


def _check_status(status) -> bool:
    if status in (0, 1) or isinstance(status, (bool, np.bool_)):
        return bool(status)
    raise ConfigurationError(
        f"The status {status!r} is illegal, it can be in-service (1) or out-of-service (0)."
    )


class PowerSystem:
    """
    Container of buses, branches and generators with label lookup.

    The AC and DC network models are built lazily on first access of
    ``ac_model`` / ``dc_model``. Once built, every branch or shunt edit made
    through ``update_branch`` / ``update_bus`` / ``add_branch`` is applied to
    them as an incremental patch. Adding a bus discards the models because
    the matrix dimension changes.

    Attributes
    ----------
    config : ModelConfig
        Base quantities and defaults.
    buses, branches, generators : list
        Element records in insertion order; ``record.index`` equals the
        position in the list.
    slack_index : int or None
        Index of the bus declared as slack (type 3), if any.
    """

    def __init__(self, config: Optional[ModelConfig] = None) -> None:
        """
        Initialise an empty power system.

        Parameters
        ----------
        config : ModelConfig, optional
            Base quantities. When omitted, ``ModelConfig()`` is used and a
            ModelingWarning reports the default base power.
        """
        if config is None:
            config = ModelConfig()
            warnings.warn(
                f"No model configuration given, the base power defaults to "
                f"{config.base_power_mva} MVA.",
                ModelingWarning,
            )
        self.config = config

        self.buses: List[Bus] = []
        self.branches: List[Branch] = []
        self.generators: List[Generator] = []

        self.bus_lookup: Dict[Label, int] = {}
        self.branch_lookup: Dict[Label, int] = {}
        self.generator_lookup: Dict[Label, int] = {}

        self.slack_index: Optional[int] = None

        self._ac = None
        self._dc = None
        self._base_voltage_warned = False

    # =========================================================================
    # Dimensions and lookup
    # =========================================================================

    @property
    def n_buses(self) -> int:
        """Return the number of buses."""
        return len(self.buses)

    @property
    def n_branches(self) -> int:
        """Return the number of branches."""
        return len(self.branches)

    @property
    def n_generators(self) -> int:
        """Return the number of generators."""
        return len(self.generators)

    def bus_index(self, label: Label) -> int:
        """Return the index of the bus with the given label."""
        try:
            return self.bus_lookup[label]
        except KeyError:
            raise ConfigurationError(f"The bus label {label!r} does not exist.") from None

    def branch_index(self, label: Label) -> int:
        """Return the index of the branch with the given label."""
        try:
            return self.branch_lookup[label]
        except KeyError:
            raise ConfigurationError(f"The branch label {label!r} does not exist.") from None

    def generator_index(self, label: Label) -> int:
        """Return the index of the generator with the given label."""
        try:
            return self.generator_lookup[label]
        except KeyError:
            raise ConfigurationError(f"The generator label {label!r} does not exist.") from None

    @staticmethod
    def _new_label(label: Optional[Label], lookup: Dict[Label, int], kind: str) -> Label:
        if label is None:
            label = len(lookup) + 1
            while label in lookup:
                label += 1
            return label
        label = _check_label(label, kind)
        if label in lookup:
            raise ConfigurationError(f"The {kind} label {label!r} is not unique.")
        return label

    # =========================================================================
    # Network models
    # =========================================================================

    @property
    def ac_model(self):
        """Return the AC network model, building it on first access."""
        if self._ac is None:
            from network.ac_model import ACModel
            self._ac = ACModel(self)
        return self._ac

    @property
    def dc_model(self):
        """Return the DC network model, building it on first access."""
        if self._dc is None:
            from network.dc_model import DCModel
            self._dc = DCModel(self)
        return self._dc

    @property
    def has_ac_model(self) -> bool:
        return self._ac is not None

    @property
    def has_dc_model(self) -> bool:
        return self._dc is not None

    # =========================================================================
    # Buses
    # =========================================================================

    def add_bus(
        self,
        label: Optional[Label] = None,
        bus_type: int = LOAD_BUS,
        p_demand_pu: float = 0.0,
        q_demand_pu: float = 0.0,
        g_shunt_pu: float = 0.0,
        b_shunt_pu: float = 0.0,
        vm_pu: Optional[float] = None,
        va_rad: float = 0.0,
        vm_min_pu: float = 0.9,
        vm_max_pu: float = 1.1,
        base_kv: Optional[float] = None,
    ) -> Bus:
        """
        Add a bus.

        Parameters
        ----------
        label : int or str, optional
            Unique label; the next free integer is used when omitted.
        bus_type : int
            1 = load, 2 = voltage-controlled, 3 = slack.
        p_demand_pu, q_demand_pu : float
            Demand.
        g_shunt_pu, b_shunt_pu : float
            Shunt admittance.
        vm_pu, va_rad : float
            Initial voltage magnitude and angle.
        vm_min_pu, vm_max_pu : float
            Magnitude bounds.
        base_kv : float, optional
            Base voltage; the configured default is used when omitted.

        Returns
        -------
        bus : Bus
            The created record.

        Raises
        ------
        ConfigurationError
            If the label is invalid or taken, the type is unknown, or a
            second slack bus is declared.
        """
        label = self._new_label(label, self.bus_lookup, "bus")
        if bus_type not in (LOAD_BUS, GENERATOR_BUS, SLACK_BUS):
            raise ConfigurationError(f"The bus type {bus_type} of bus {label!r} is illegal.")
        if bus_type == SLACK_BUS and self.slack_index is not None:
            raise ConfigurationError(
                f"Bus {label!r} cannot be a slack bus, bus "
                f"{self.buses[self.slack_index].label!r} is already the slack bus."
            )
        if base_kv is None:
            base_kv = self.config.base_voltage_kv
            if not self._base_voltage_warned:
                warnings.warn(
                    f"Buses without base voltage default to {base_kv} kV.",
                    ModelingWarning,
                )
                self._base_voltage_warned = True
        if vm_pu is None:
            vm_pu = self.config.default_magnitude

        bus = Bus(
            label=label,
            index=len(self.buses),
            bus_type=int(bus_type),
            p_demand_pu=float(p_demand_pu),
            q_demand_pu=float(q_demand_pu),
            g_shunt_pu=float(g_shunt_pu),
            b_shunt_pu=float(b_shunt_pu),
            vm_pu=float(vm_pu),
            va_rad=float(va_rad),
            vm_min_pu=float(vm_min_pu),
            vm_max_pu=float(vm_max_pu),
            base_kv=float(base_kv),
        )
        self.buses.append(bus)
        self.bus_lookup[label] = bus.index
        if bus_type == SLACK_BUS:
            self.slack_index = bus.index

        # Matrix dimension changed
        self._ac = None
        self._dc = None
        return bus

    def update_bus(self, label: Label, **changes) -> Bus:
        """
        Update bus data.

        Accepted keywords are the ``Bus`` attributes ``bus_type``,
        ``p_demand_pu``, ``q_demand_pu``, ``g_shunt_pu``, ``b_shunt_pu``,
        ``vm_pu``, ``va_rad``, ``vm_min_pu``, ``vm_max_pu`` and ``base_kv``.
        A shunt change is patched into the AC model diagonal.

        Raises
        ------
        ConfigurationError
            If the label is unknown, a keyword is not a bus attribute, or
            the type change would create a second slack bus.
        """
        idx = self.bus_index(label)
        bus = self.buses[idx]
        allowed = ("bus_type", "p_demand_pu", "q_demand_pu", "g_shunt_pu", "b_shunt_pu",
                   "vm_pu", "va_rad", "vm_min_pu", "vm_max_pu", "base_kv")
        for key in changes:
            if key not in allowed:
                raise ConfigurationError(f"Unknown bus attribute {key!r}.")

        if "bus_type" in changes:
            bus_type = changes["bus_type"]
            if bus_type not in (LOAD_BUS, GENERATOR_BUS, SLACK_BUS):
                raise ConfigurationError(f"The bus type {bus_type} of bus {label!r} is illegal.")
            if bus_type == SLACK_BUS and self.slack_index not in (None, idx):
                raise ConfigurationError(
                    f"Bus {label!r} cannot be a slack bus, bus "
                    f"{self.buses[self.slack_index].label!r} is already the slack bus."
                )
            if bus_type == SLACK_BUS:
                self.slack_index = idx
            elif self.slack_index == idx:
                self.slack_index = None
            bus.bus_type = int(bus_type)

        g_old, b_old = bus.g_shunt_pu, bus.b_shunt_pu
        for key, value in changes.items():
            if key != "bus_type":
                setattr(bus, key, float(value))

        delta = complex(bus.g_shunt_pu - g_old, bus.b_shunt_pu - b_old)
        if self._ac is not None and delta != 0:
            self._ac.patch_shunt(idx, delta)
        return bus

    def set_slack(self, label: Label) -> None:
        """
        Make the given bus the slack bus.

        The previous slack bus becomes voltage-controlled if it hosts an
        in-service generator and a load bus otherwise.
        """
        idx = self.bus_index(label)
        old = self.slack_index
        if old is not None and old != idx:
            self.buses[old].bus_type = GENERATOR_BUS if self.generators_at(old) else LOAD_BUS
        self.buses[idx].bus_type = SLACK_BUS
        self.slack_index = idx

    # =========================================================================
    # Branches
    # =========================================================================

    def add_branch(
        self,
        from_bus: Label,
        to_bus: Label,
        label: Optional[Label] = None,
        r_pu: float = 0.0,
        x_pu: float = 0.0,
        b_pu: float = 0.0,
        g_pu: float = 0.0,
        tap_ratio: float = 1.0,
        shift_rad: float = 0.0,
        in_service: bool = True,
    ) -> Branch:
        """
        Add a branch between two existing buses.

        A tap ratio of 0 is read as 1 (nominal), as in MATPOWER case data.

        Raises
        ------
        ConfigurationError
            If a bus label is unknown, both terminals are the same bus, the
            tap ratio is negative, or an in-service branch has zero series
            impedance or, with the DC model built, zero reactance.
        """
        label = self._new_label(label, self.branch_lookup, "branch")
        i = self.bus_index(from_bus)
        j = self.bus_index(to_bus)
        if i == j:
            raise ConfigurationError(f"Branch {label!r} connects bus {from_bus!r} to itself.")
        if tap_ratio == 0:
            tap_ratio = 1.0
        if tap_ratio < 0:
            raise ConfigurationError(f"Branch {label!r} has a negative tap ratio {tap_ratio}.")
        in_service = _check_status(in_service)
        if in_service and r_pu == 0 and x_pu == 0:
            raise ConfigurationError(
                f"Branch {label!r} has zero resistance and reactance."
            )
        self._check_dc_reactance(label, in_service, x_pu)

        branch = Branch(
            label=label,
            index=len(self.branches),
            from_bus=i,
            to_bus=j,
            r_pu=float(r_pu),
            x_pu=float(x_pu),
            b_pu=float(b_pu),
            g_pu=float(g_pu),
            tap_ratio=float(tap_ratio),
            shift_rad=float(shift_rad),
            in_service=in_service,
        )
        self.branches.append(branch)
        self.branch_lookup[label] = branch.index

        if self._ac is not None:
            self._ac.append_branch(branch.index)
        if self._dc is not None:
            self._dc.append_branch(branch.index)
        return branch

    def update_branch(self, label: Label, **changes) -> Branch:
        """
        Update the status and/or parameters of a branch.

        Accepted keywords: ``in_service``, ``r_pu``, ``x_pu``, ``b_pu``,
        ``g_pu``, ``tap_ratio``, ``shift_rad``. Omitted parameters keep their
        value. If the network models exist, the old contribution of the
        branch is subtracted and the new one added; nothing is rebuilt.

        Raises
        ------
        ConfigurationError
            If the label is unknown, a keyword is not a branch parameter,
            the status is illegal, or the branch would be in service with
            zero series impedance (zero reactance once the DC model is built).
            Nothing is changed when an error is raised.
        """
        idx = self.branch_index(label)
        branch = self.branches[idx]
        for key in changes:
            if key != "in_service" and key not in _BRANCH_PARAMETERS:
                raise ConfigurationError(f"Unknown branch parameter {key!r}.")

        status_old = branch.in_service
        status_new = _check_status(changes.get("in_service", status_old))
        parameters = {k: float(v) for k, v in changes.items() if k in _BRANCH_PARAMETERS}
        if parameters.get("tap_ratio") == 0:
            parameters["tap_ratio"] = 1.0
        if parameters.get("tap_ratio", 1.0) < 0:
            raise ConfigurationError(f"Branch {label!r} has a negative tap ratio.")

        r_new = parameters.get("r_pu", branch.r_pu)
        x_new = parameters.get("x_pu", branch.x_pu)
        if status_new and r_new == 0 and x_new == 0:
            raise ConfigurationError(f"Branch {label!r} has zero resistance and reactance.")
        self._check_dc_reactance(label, status_new, x_new)

        pi_model = bool(parameters)
        dc_change = any(k in parameters for k in _DC_PARAMETERS)

        # remove old contribution
        if status_old:
            if self._ac is not None and (not status_new or pi_model):
                self._ac.patch_branch(idx, -1)
            if self._dc is not None and (not status_new or dc_change):
                self._dc.patch_branch(idx, -1)

        for key, value in parameters.items():
            setattr(branch, key, value)
        branch.in_service = status_new

        # add new contribution
        if status_new:
            if self._ac is not None and (not status_old or pi_model):
                self._ac.patch_branch(idx, +1)
            if self._dc is not None and (not status_old or dc_change):
                self._dc.patch_branch(idx, +1)
        return branch

    def _check_dc_reactance(self, label: Label, in_service: bool, x_pu: float) -> None:
        # checked before any record or model is touched
        if self._dc is not None and in_service and x_pu == 0:
            raise ConfigurationError(
                f"Branch {label!r} has zero reactance and cannot be used in the DC model."
            )

    # =========================================================================
    # Generators
    # =========================================================================

    def add_generator(
        self,
        bus: Label,
        label: Optional[Label] = None,
        p_pu: float = 0.0,
        q_pu: float = 0.0,
        vm_setpoint_pu: Optional[float] = None,
        q_min_pu: float = -np.inf,
        q_max_pu: float = np.inf,
        in_service: bool = True,
    ) -> Generator:
        """
        Add a generator to an existing bus.

        Raises
        ------
        ConfigurationError
            If the label is invalid or taken, or the bus label is unknown.
        """
        label = self._new_label(label, self.generator_lookup, "generator")
        bus_idx = self.bus_index(bus)
        if vm_setpoint_pu is None:
            vm_setpoint_pu = self.config.default_generator_magnitude
        generator = Generator(
            label=label,
            index=len(self.generators),
            bus=bus_idx,
            p_pu=float(p_pu),
            q_pu=float(q_pu),
            vm_setpoint_pu=float(vm_setpoint_pu),
            q_min_pu=float(q_min_pu),
            q_max_pu=float(q_max_pu),
            in_service=_check_status(in_service),
        )
        self.generators.append(generator)
        self.generator_lookup[label] = generator.index
        return generator

    def update_generator(self, label: Label, **changes) -> Generator:
        """
        Update generator data.

        Accepted keywords: ``in_service``, ``p_pu``, ``q_pu``,
        ``vm_setpoint_pu``, ``q_min_pu``, ``q_max_pu``.
        """
        idx = self.generator_index(label)
        generator = self.generators[idx]
        allowed = ("in_service", "p_pu", "q_pu", "vm_setpoint_pu", "q_min_pu", "q_max_pu")
        for key, value in changes.items():
            if key not in allowed:
                raise ConfigurationError(f"Unknown generator attribute {key!r}.")
            if key == "in_service":
                generator.in_service = _check_status(value)
            else:
                setattr(generator, key, float(value))
        return generator

    def generators_at(self, bus_index: int) -> List[int]:
        """Return indices of the in-service generators at a bus, in insertion order."""
        return [g.index for g in self.generators if g.bus == bus_index and g.in_service]

    # =========================================================================
    # Per-bus vectors
    # =========================================================================

    def demand(self) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Return (active, reactive) demand per bus."""
        p = np.array([b.p_demand_pu for b in self.buses], dtype=np.float64)
        q = np.array([b.q_demand_pu for b in self.buses], dtype=np.float64)
        return p, q

    def supply(self) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Return (active, reactive) output of in-service generators per bus."""
        p = np.zeros(self.n_buses, dtype=np.float64)
        q = np.zeros(self.n_buses, dtype=np.float64)
        for g in self.generators:
            if g.in_service:
                p[g.bus] += g.p_pu
                q[g.bus] += g.q_pu
        return p, q

    def shunt(self) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Return (conductance, susceptance) of the bus shunts."""
        g = np.array([b.g_shunt_pu for b in self.buses], dtype=np.float64)
        b = np.array([b.b_shunt_pu for b in self.buses], dtype=np.float64)
        return g, b

    def specified_power(self) -> NDArray[np.complex128]:
        """Return the specified net complex injection S = (P_G - P_D) + j(Q_G - Q_D)."""
        p_supply, q_supply = self.supply()
        p_demand, q_demand = self.demand()
        return (p_supply - p_demand) + 1j * (q_supply - q_demand)
