# aulab/__init__.py
from .core import Mode, SimConfig, SimulationIOError, Unit, HEADER_LENGTH
from .pipeline import apply_loss_file, simulate_stream

__all__ = [
    "Mode", "SimConfig", "SimulationIOError", "Unit", "HEADER_LENGTH",
    "apply_loss_file", "simulate_stream",
]
