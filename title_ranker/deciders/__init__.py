"""
Decider implementations.
"""

from .console_decider import ConsoleDecider
from .dummy_decider import DummyDecider
from .sim_decider import SimulatedDecider

__all__ = [
    "ConsoleDecider",
    "DummyDecider",
    "SimulatedDecider",
]
