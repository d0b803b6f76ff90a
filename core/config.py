"""
Configuration Module
====================

This module defines the immutable configuration objects passed explicitly
to the power system container and to the power flow drivers.

ModelConfig
    Base quantities and default values used when building a PowerSystem.
PowerFlowSettings
    Stopping criteria and numerical options for the iterative solvers.

Date: 2026-10-19
"""

from dataclasses import dataclass
from enum import Enum


class Factorisation(str, Enum):
    """
    Sparse factorisation backend used by the linear solves.

    LU
        SuperLU via ``scipy.sparse.linalg.splu``.
    UMFPACK
        ``scipy.sparse.linalg.factorized``, which uses UMFPACK when
        scikit-umfpack is installed and SuperLU otherwise.
    """
    LU = "lu"
    UMFPACK = "umfpack"


@dataclass(frozen=True)
class ModelConfig:
    """
    Base quantities and defaults for a power system model.

    All bus, branch and generator quantities handed to the engine are in
    per-unit on these bases; the configuration only records them and
    supplies defaults for missing values.

    Attributes
    ----------
    base_power_mva : float
        System base power in MVA.
    base_voltage_kv : float
        Base voltage in kV assigned to buses that do not declare one.
    default_magnitude : float
        Initial bus voltage magnitude in per-unit.
    default_generator_magnitude : float
        Generator voltage setpoint in per-unit when none is given.
    """
    base_power_mva: float = 100.0
    base_voltage_kv: float = 138.0
    default_magnitude: float = 1.0
    default_generator_magnitude: float = 1.0

    def __post_init__(self) -> None:
        """Validate parameters after initialisation."""
        if self.base_power_mva <= 0:
            raise ValueError(f"base_power_mva must be positive, got {self.base_power_mva}")
        if self.base_voltage_kv <= 0:
            raise ValueError(f"base_voltage_kv must be positive, got {self.base_voltage_kv}")
        if self.default_magnitude <= 0:
            raise ValueError(f"default_magnitude must be positive, got {self.default_magnitude}")
        if self.default_generator_magnitude <= 0:
            raise ValueError(
                f"default_generator_magnitude must be positive, got {self.default_generator_magnitude}"
            )


@dataclass(frozen=True)
class PowerFlowSettings:
    """
    Numerical settings for running a power flow to convergence.

    The solvers themselves never iterate on their own; these settings are
    consumed by the caller-side loops in ``powerflow.base.run_power_flow``
    and ``powerflow.reactive_limits.solve_with_reactive_limits``.

    Attributes
    ----------
    tolerance : float
        Convergence threshold on the maximum absolute active and reactive
        power mismatch in per-unit.
    max_iterations : int
        Maximum number of solver steps per power flow run.
    max_reactive_loops : int
        Maximum number of re-solves in the reactive limit outer loop.
    flat_start : bool
        Start from 1 pu / slack angle instead of the stored bus voltages.
    factorisation : Factorisation
        Sparse factorisation backend.
    """
    tolerance: float = 1e-8
    max_iterations: int = 100
    max_reactive_loops: int = 10
    flat_start: bool = False
    factorisation: Factorisation = Factorisation.LU

    def __post_init__(self) -> None:
        """Validate parameters after initialisation."""
        if self.tolerance <= 0:
            raise ValueError(f"tolerance must be positive, got {self.tolerance}")
        if self.max_iterations < 0:
            raise ValueError(f"max_iterations must be non-negative, got {self.max_iterations}")
        if self.max_reactive_loops < 1:
            raise ValueError(f"max_reactive_loops must be at least 1, got {self.max_reactive_loops}")
        if not isinstance(self.factorisation, Factorisation):
            object.__setattr__(self, "factorisation", Factorisation(self.factorisation))
