"""Simulation oracles."""

from simeval.oracle.base import SimulationOracle
from simeval.oracle.replication import ReplicationFunction, ReplicationOracle
from simeval.oracle.results import OracleFailure, OracleResult, OracleSuccess

__all__ = [
    "OracleFailure",
    "OracleResult",
    "OracleSuccess",
    "ReplicationFunction",
    "ReplicationOracle",
    "SimulationOracle",
]
