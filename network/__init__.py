"""
Network Module
==============

Provides the AC and DC network models and the case importers.

Classes
-------
ACModel
    Complex nodal admittance matrix with incremental branch patching.
DCModel
    DC nodal susceptance matrix with phase shift injections.

Functions
---------
from_ppc
    Build a PowerSystem from MATPOWER-style case data.
from_pandapower
    Build a PowerSystem from a pandapower network.
"""

from network.ac_model import ACModel, add_to_entries
from network.dc_model import DCModel
from network.case_import import from_ppc, from_pandapower

__all__ = [
    "ACModel",
    "add_to_entries",
    "DCModel",
    "from_ppc",
    "from_pandapower",
]
