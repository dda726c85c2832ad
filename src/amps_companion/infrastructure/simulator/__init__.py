"""In-process controller simulator."""

from amps_companion.infrastructure.simulator.catalog import DemoCatalog
from amps_companion.infrastructure.simulator.controller import ControllerSimulator, RequestContext
from amps_companion.infrastructure.simulator.routes import SimulatorRouter
from amps_companion.infrastructure.simulator.session_table import InMemorySessionTable
from amps_companion.infrastructure.simulator.ticker import ProgressionTicker

__all__ = [
    "ControllerSimulator",
    "RequestContext",
    "SimulatorRouter",
    "InMemorySessionTable",
    "DemoCatalog",
    "ProgressionTicker",
]
