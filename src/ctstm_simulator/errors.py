"""Exceptions raised by the simulation core."""


class SimulationError(Exception):
    """Base class for all simulation faults."""
    pass


class ConfigurationError(SimulationError, ValueError):
    """Raised before simulation starts when the model set-up is invalid."""
    pass


class DistributionError(SimulationError, ValueError):
    """Raised when a hazard model produces an invalid value."""
    pass
