"""
Exceptions Module
=================

This module defines the error and warning classes raised by the power flow
engine.

Two kinds of failure are distinguished:

    - ConfigurationError: the network data cannot be solved as given
      (zero series impedance, duplicate slack bus, unknown label, ...)
    - SingularMatrixError: a nodal matrix or Jacobian could not be
      factorised, usually because the network contains an island

Both derive from ValueError so that callers which only catch ValueError
keep working. Non-convergence is not an error: it is reported through the
mismatch values returned by the solvers.

Date: 2026-10-19
"""


class PowerFlowError(Exception):
    """Base class for all errors raised by the power flow engine."""


class ConfigurationError(PowerFlowError, ValueError):
    """Raised when the network data or an update request is invalid."""


class SingularMatrixError(PowerFlowError, ValueError):
    """Raised when a sparse factorisation or linear solve is singular."""


class ModelingWarning(UserWarning):
    """Non-fatal modelling condition (defaults applied, slack relocated)."""
