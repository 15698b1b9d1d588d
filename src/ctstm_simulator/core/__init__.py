"""Core simulation data structures."""

from .data_structures import (SimulationUnit, TransitionRecord, Trajectory,
                              UnitCursor, UnitStatus)

__all__ = ["SimulationUnit", "TransitionRecord", "Trajectory", "UnitCursor",
           "UnitStatus"]
