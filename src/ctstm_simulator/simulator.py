"""
Individual-level continuous time simulation of disease progression.

Each simulation unit (strategy, patient, parameter sample) moves through the
states of a ``TransitionMatrix``. From the current state a latent event time is
drawn for every outgoing edge and the earliest one wins (competing risks).
The unit stops when it reaches an absorbing state or when no event occurs
before the horizon, in which case a final censored record is written.

Two clock conventions are supported per edge:

- ``reset`` (semi-Markov): the hazard clock restarts at 0 on entry to a state
  and the drawn time is the sojourn itself.
- ``forward`` (time-inhomogeneous Markov): the hazard clock is the time since
  the unit started, so the draw is left-truncated at the current time.
"""

import logging
import math
from concurrent.futures import ProcessPoolExecutor
from itertools import repeat
from typing import (Dict, Iterable, List, Mapping, Optional, Sequence, Union)

import numpy as np
import pandas as pd

from .core.data_structures import (SimulationUnit, TransitionRecord,
                                   Trajectory, UnitCursor, UnitStatus)
from .errors import ConfigurationError
from .sampler import SurvivalSampler
from .transition_model import (ModelSource, ParameterizedTransitionModel,
                               TransitionMatrix, TransitionModel)
from .utils.logging import log_call

logger = logging.getLogger(__name__)

CLOCKS = ("reset", "forward")

DISPROG_COLUMNS = ["sample", "strategy_id", "patient_id", "from", "to",
                   "final", "censored", "time_start", "time_stop"]

PerPatient = Union[float, Mapping[int, float]]


@log_call
def unit_rng(seed: int, unit: SimulationUnit) -> np.random.Generator:
    """
    Independent random stream of one unit.

    The stream depends only on ``seed`` and the unit's ids, so results do
    not depend on the order in which units are simulated.
    """
    entropy = [int(seed), int(unit.strategy_id), int(unit.patient_id),
               int(unit.sample)]
    if any(v < 0 for v in entropy):
        raise ConfigurationError(
            f"Seed and unit ids must be non-negative, got {entropy}")
    return np.random.default_rng(np.random.SeedSequence(entropy))


@log_call
def make_units(
    n_patients: int,
    n_strategies: int = 1,
    n_samples: int = 1
) -> List[SimulationUnit]:
    """
    Units for every (sample, strategy, patient) combination.

    Strategy and patient ids start at 1; samples are indexed from 0.
    """
    if min(n_patients, n_strategies, n_samples) < 1:
        raise ConfigurationError("Unit counts must be positive")
    return [SimulationUnit(strategy_id, patient_id, sample)
            for sample in range(n_samples)
            for strategy_id in range(1, n_strategies + 1)
            for patient_id in range(1, n_patients + 1)]


@log_call
def clock_for_states(
    trans_mat: TransitionMatrix,
    reset_states: Sequence[int]
) -> Dict[int, str]:
    """
    Per-edge clocks: ``reset`` for edges leaving ``reset_states`` and
    ``forward`` for all other edges.
    """
    unknown = [s for s in reset_states if not 0 <= s < trans_mat.n_states]
    if unknown:
        raise ConfigurationError(f"Unknown reset states {unknown}")
    reset = set(reset_states)
    return {edge_id: "reset" if trans_mat.edge(edge_id)[0] in reset
            else "forward"
            for edge_id in trans_mat.edge_ids}


@log_call
def trajectories_to_frame(trajectories: Iterable[Trajectory]) -> pd.DataFrame:
    """Flat table of transition records (one row per record)."""
    rows = []
    for trajectory in trajectories:
        rows.extend(trajectory.to_rows())
    return pd.DataFrame(rows, columns=DISPROG_COLUMNS)


def _simulate_chunk(simulator: "DiseaseProgressionSimulator",
                    units: List[SimulationUnit]) -> List[Trajectory]:
    return [simulator.simulate_unit(unit) for unit in units]


class DiseaseProgressionSimulator:
    """
    Competing-risks trajectory simulator.

    Parameters
    ----------
    model : TransitionModel or ParameterizedTransitionModel
        Either one model shared by every unit or a parameterized model that
        builds each unit's hazards from its covariates and parameter sample
    sampler : SurvivalSampler, optional
        Event-time sampler (discrete inversion by default)
    clock : str or mapping of int to str, default='reset'
        'reset', 'forward', or a clock for every edge id
    max_t : float, default=inf
        Maximum time since the unit started
    max_age : float, default=inf
        Maximum age; the horizon is ``max_age - start_age``
    start_age : float or mapping, default=0.0
        Age at start, globally or per patient id
    start_state : int or mapping, default=0
        Initial state, globally or per patient id
    start_time : float, default=0.0
        Value of the clock-forward hazard clock when a unit starts
    seed : int, optional
        Root seed of the per-unit random streams

    Raises
    ------
    ConfigurationError
        On an unknown clock, incomplete per-edge clocks, a non-positive
        horizon or an invalid start state.

    Examples
    --------
    >>> tmat = TransitionMatrix.from_array([[None, 1], [None, None]])
    >>> from ctstm_simulator.distributions import create_hazard_model
    >>> model = TransitionModel(tmat, {1: create_hazard_model("exp", rate=0.2)})
    >>> sim = DiseaseProgressionSimulator(model, max_t=10, seed=1)
    >>> trajectories = sim.simulate(make_units(5))
    >>> len(trajectories)
    5
    """

    def __init__(
        self,
        model: ModelSource,
        sampler: Optional[SurvivalSampler] = None,
        clock: Union[str, Mapping[int, str]] = "reset",
        max_t: float = math.inf,
        max_age: float = math.inf,
        start_age: PerPatient = 0.0,
        start_state: Union[int, Mapping[int, int]] = 0,
        start_time: float = 0.0,
        seed: Optional[int] = None
    ):
        self.model = model
        self.trans_mat = model.trans_mat
        self.sampler = sampler if sampler is not None else SurvivalSampler()
        self.clock = self._resolve_clock(clock)
        if not max_t > 0:
            raise ConfigurationError(f"max_t must be positive, got {max_t}")
        if not (math.isfinite(start_time) and start_time >= 0):
            raise ConfigurationError(
                f"start_time must be finite and >= 0, got {start_time}")
        self.max_t = float(max_t)
        self.max_age = float(max_age)
        self.start_age = start_age
        self.start_state = start_state
        self.start_time = float(start_time)

        ages = (start_age.values() if isinstance(start_age, Mapping)
                else [start_age])
        for age in ages:
            self._horizon(float(age))
        states = (start_state.values() if isinstance(start_state, Mapping)
                  else [start_state])
        for state in states:
            if not 0 <= int(state) < self.trans_mat.n_states:
                raise ConfigurationError(f"Unknown start state {state}")

        if seed is None:
            seed = int(np.random.SeedSequence().generate_state(1)[0])
        self.seed = int(seed)
        logger.debug("Clocks by edge: %s; seed %d", self.clock, self.seed)

    def _resolve_clock(self, clock) -> Dict[int, str]:
        edge_ids = self.trans_mat.edge_ids
        if isinstance(clock, str):
            if clock not in CLOCKS:
                raise ConfigurationError(
                    f"clock must be one of {CLOCKS} or a per-edge mapping, "
                    f"got {clock!r}")
            return {edge_id: clock for edge_id in edge_ids}
        mapping = dict(clock)
        missing = [e for e in edge_ids if e not in mapping]
        extra = [e for e in mapping if e not in edge_ids]
        bad = {e: c for e, c in mapping.items() if c not in CLOCKS}
        if missing or extra or bad:
            raise ConfigurationError(
                f"Per-edge clocks must give 'reset' or 'forward' for edges "
                f"{edge_ids}; missing {missing}, unexpected {extra}, "
                f"invalid {bad}")
        return mapping

    def _horizon(self, start_age: float) -> float:
        horizon = min(self.max_t, self.max_age - start_age,
                      self.sampler.max_horizon)
        if not horizon > 0:
            raise ConfigurationError(
                f"Start age {start_age} leaves no time before max_age "
                f"{self.max_age}")
        return horizon

    @staticmethod
    def _for_patient(value, patient_id: int):
        if isinstance(value, Mapping):
            if patient_id not in value:
                raise ConfigurationError(
                    f"No start value given for patient {patient_id}")
            return value[patient_id]
        return value

    def _model_for(self, unit: SimulationUnit) -> TransitionModel:
        if isinstance(self.model, TransitionModel):
            return self.model
        return self.model.build(unit)

    def horizon_for(self, unit: SimulationUnit) -> float:
        """Time since start at which ``unit`` is censored."""
        return self._horizon(
            float(self._for_patient(self.start_age, unit.patient_id)))

    def simulate_unit(
        self,
        unit: SimulationUnit,
        model: Optional[TransitionModel] = None,
        rng: Optional[np.random.Generator] = None
    ) -> Trajectory:
        """Simulate one unit until absorption or the horizon."""
        model = model if model is not None else self._model_for(unit)
        rng = rng if rng is not None else unit_rng(self.seed, unit)
        initial = int(self._for_patient(self.start_state, unit.patient_id))
        start_age = float(self._for_patient(self.start_age, unit.patient_id))
        horizon = self._horizon(start_age)

        cursor = UnitCursor(state=initial, start_age=start_age)
        records: List[TransitionRecord] = []
        while cursor.status is UnitStatus.ACTIVE:
            edges = model.reachable(cursor.state)
            if not edges:
                cursor.status = UnitStatus.ABSORBED
                break

            best = None
            for edge_id, to_state, hazard in edges:
                if self.clock[edge_id] == "reset":
                    drawn = self.sampler.sample(
                        hazard, 0.0, horizon - cursor.time, rng)
                    sojourn = drawn
                else:
                    clock_now = self.start_time + cursor.time
                    drawn = self.sampler.sample(
                        hazard, clock_now, self.start_time + horizon, rng)
                    sojourn = None if drawn is None else drawn - clock_now
                # Zero-length sojourns count as no event; strict comparison
                # keeps the lowest edge id on ties
                if sojourn is not None and cursor.time + sojourn > cursor.time \
                        and (best is None or sojourn < best[0]):
                    best = (sojourn, to_state)

            new_time = None if best is None else cursor.time + best[0]
            if new_time is None or not new_time < horizon:
                records.append(TransitionRecord(
                    unit, cursor.state, cursor.state, cursor.time, horizon,
                    censored=True))
                cursor.status = UnitStatus.CENSORED
                break

            records.append(TransitionRecord(
                unit, cursor.state, best[1], cursor.time, new_time))
            cursor.advance(best[1], new_time)

        return Trajectory(unit=unit, initial_state=initial,
                          records=tuple(records))

    def default_units(self) -> List[SimulationUnit]:
        """All units of a parameterized model."""
        if isinstance(self.model, ParameterizedTransitionModel):
            return list(self.model.units())
        raise ConfigurationError(
            "Units must be given explicitly for a shared TransitionModel; "
            "see make_units()")

    def simulate(
        self,
        units: Optional[Iterable[SimulationUnit]] = None,
        n_jobs: int = 1,
        chunk_size: Optional[int] = None
    ) -> List[Trajectory]:
        """
        Simulate many units, optionally across worker processes.

        Parameters
        ----------
        units : iterable of SimulationUnit, optional
            Units to simulate; defaults to every unit of a parameterized model
        n_jobs : int, default=1
            Number of worker processes
        chunk_size : int, optional
            Units per task sent to a worker

        Returns
        -------
        trajectories : list of Trajectory
            In the same order as ``units``; identical for any ``n_jobs``
        """
        units = list(units) if units is not None else self.default_units()
        if n_jobs < 1:
            raise ConfigurationError(f"n_jobs must be >= 1, got {n_jobs}")

        if n_jobs == 1 or len(units) < 2:
            trajectories = _simulate_chunk(self, units)
        else:
            size = chunk_size or max(1, math.ceil(len(units) / (4 * n_jobs)))
            chunks = [units[i:i + size] for i in range(0, len(units), size)]
            with ProcessPoolExecutor(max_workers=n_jobs) as executor:
                results = executor.map(_simulate_chunk, repeat(self), chunks)
                trajectories = [t for chunk in results for t in chunk]

        n_censored = sum(t.censored for t in trajectories)
        logger.info("Simulated %d units: %d absorbed, %d censored",
                    len(trajectories), len(trajectories) - n_censored,
                    n_censored)
        return trajectories

    def simulate_disease(
        self,
        units: Optional[Iterable[SimulationUnit]] = None,
        n_jobs: int = 1
    ) -> pd.DataFrame:
        """Simulate and return the flat table of transition records."""
        return trajectories_to_frame(self.simulate(units, n_jobs=n_jobs))
