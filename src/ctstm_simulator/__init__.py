"""Continuous time individual-level multi-state disease progression simulator."""

from typing import List

from .errors import ConfigurationError, DistributionError, SimulationError
from .distributions import (
    Family,
    HazardModel,
    IntegrationConfig,
    create_hazard_model,
    rpwexp
)
from .parameters import SurvParams, sample_from_posterior
from .sampler import SurvivalSampler
from .core.data_structures import (
    SimulationUnit,
    TransitionRecord,
    Trajectory,
    UnitStatus
)
from .transition_model import (
    TransitionMatrix,
    TransitionModel,
    ParameterizedTransitionModel
)
from .simulator import (
    DiseaseProgressionSimulator,
    clock_for_states,
    make_units,
    trajectories_to_frame,
    unit_rng
)
from .state_probabilities import StateProbabilityEstimator
from .core.temporal_engine import SimulationEngine, SimulationOutput
from .config import load_config

__version__ = "0.1.0"

__all__: List[str] = [
    # Errors
    "SimulationError",
    "ConfigurationError",
    "DistributionError",
    # Hazard models
    "Family",
    "HazardModel",
    "IntegrationConfig",
    "create_hazard_model",
    "rpwexp",
    # Parameters
    "SurvParams",
    "sample_from_posterior",
    # Sampling
    "SurvivalSampler",
    # Data structures
    "SimulationUnit",
    "TransitionRecord",
    "Trajectory",
    "UnitStatus",
    # Transition structure
    "TransitionMatrix",
    "TransitionModel",
    "ParameterizedTransitionModel",
    # Simulation
    "DiseaseProgressionSimulator",
    "clock_for_states",
    "make_units",
    "trajectories_to_frame",
    "unit_rng",
    "StateProbabilityEstimator",
    # Configured runs
    "SimulationEngine",
    "SimulationOutput",
    "load_config",
]
