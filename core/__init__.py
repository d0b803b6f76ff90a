"""
Core Module
============

This module provides the core data structures of the power flow engine.

Classes
-------
PowerSystem
    Label-indexed container of buses, branches and generators.
Bus, Branch, Generator
    Element records.
BusType
    Role of a bus in the power flow equations.
BusClassification
    Snapshot of the bus types and index sets used by a solver.
ModelConfig
    Base quantities and defaults of a power system.
PowerFlowSettings
    Stopping criteria and numerical options.
Factorisation
    Sparse factorisation backend.

Functions
---------
classify_buses
    Derive the effective bus types of a power system.
"""

from core.config import Factorisation, ModelConfig, PowerFlowSettings
from core.exceptions import (
    PowerFlowError,
    ConfigurationError,
    SingularMatrixError,
    ModelingWarning,
)
from core.power_system import Bus, Branch, Generator, PowerSystem
from core.bus_classification import BusType, BusClassification, classify_buses

__all__ = [
    "Factorisation",
    "ModelConfig",
    "PowerFlowSettings",
    "PowerFlowError",
    "ConfigurationError",
    "SingularMatrixError",
    "ModelingWarning",
    "Bus",
    "Branch",
    "Generator",
    "PowerSystem",
    "BusType",
    "BusClassification",
    "classify_buses",
]
