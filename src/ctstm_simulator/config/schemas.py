from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class IntegrationSettings:
    method: str = "quad"
    step: float = 1 / 12
    rel_tol: float = 1e-6
    abs_tol: float = 1e-10
    limit: int = 200


@dataclass
class SamplerSettings:
    method: str = "discrete"
    step: float = 1 / 12
    max_horizon: float = 1000.0
    use_closed_form: bool = True
    xtol: float = 1e-10
    rtol: float = 1e-10
    integration: IntegrationSettings = field(default_factory=IntegrationSettings)


@dataclass
class SimulationSettings:
    clock: str = "reset"
    reset_states: Optional[List[int]] = None
    max_t: float = float("inf")
    max_age: float = float("inf")
    start_age: float = 0.0
    start_state: int = 0
    start_time: float = 0.0
    n_patients: int = 1000
    n_samples: Optional[int] = None
    n_jobs: int = 1
    times: List[float] = field(default_factory=lambda: [0.0])


@dataclass
class ExperimentSettings:
    name: str = "ctstm"
    seed: Optional[int] = None
    output_dir: str = "outputs"


@dataclass
class Settings:
    simulation: SimulationSettings = field(default_factory=SimulationSettings)
    sampler: SamplerSettings = field(default_factory=SamplerSettings)
    experiment: ExperimentSettings = field(default_factory=ExperimentSettings)
