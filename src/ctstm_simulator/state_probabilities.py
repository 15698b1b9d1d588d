"""
State occupancy probabilities from simulated trajectories.
"""

import logging
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .core.data_structures import Trajectory

logger = logging.getLogger(__name__)

STATEPROBS_COLUMNS = ["sample", "strategy_id", "state_id", "t", "prob"]


class StateProbabilityEstimator:
    """
    Empirical (optionally weighted) fraction of units occupying each state.

    Probabilities are computed separately for every (parameter sample,
    strategy) group over all of its patients.

    Parameters
    ----------
    n_states : int
        Number of states in the transition matrix

    Examples
    --------
    >>> estimator = StateProbabilityEstimator(n_states=3)
    >>> probs = estimator.estimate(trajectories, times=[0, 5, 10])
    >>> probs.groupby(["sample", "strategy_id", "t"])["prob"].sum()
    """

    def __init__(self, n_states: int):
        if n_states < 1:
            raise ValueError(f"n_states must be positive, got {n_states}")
        self.n_states = n_states

    @staticmethod
    def occupancy(trajectory: Trajectory, times: np.ndarray) -> np.ndarray:
        """
        State occupied by one unit at each of ``times``.

        A query inside ``[time_start, time_stop)`` of a record gives its
        from-state; a query at or beyond the last ``time_stop`` gives the
        final (absorbing or last known) state.
        """
        if not trajectory.records:
            return np.full(len(times), trajectory.initial_state, dtype=int)
        starts = np.array([r.time_start for r in trajectory.records])
        from_states = np.array([r.from_state for r in trajectory.records])
        idx = np.searchsorted(starts, times, side="right") - 1
        states = from_states[np.clip(idx, 0, None)]
        return np.where(times >= trajectory.end_time,
                        trajectory.final_state, states)

    def estimate(
        self,
        trajectories: Iterable[Trajectory],
        times: Sequence[float],
        weights: Optional[Mapping[int, float]] = None
    ) -> pd.DataFrame:
        """
        Occupancy probabilities on a grid of query times.

        Parameters
        ----------
        trajectories : iterable of Trajectory
            Simulated trajectories
        times : sequence of float
            Non-negative query times
        weights : mapping of int to float, optional
            Weight of each patient id; every patient weighs 1 by default

        Returns
        -------
        stateprobs : pd.DataFrame
            Columns sample, strategy_id, state_id, t and prob; every state
            appears for every (sample, strategy, t), zeros included
        """
        times = np.asarray(times, dtype=float).ravel()
        if times.size == 0:
            raise ValueError("At least one query time is required")
        if not np.all(np.isfinite(times)) or np.any(times < 0):
            raise ValueError("Query times must be finite and non-negative")

        counts: Dict[Tuple[int, int], np.ndarray] = {}
        totals: Dict[Tuple[int, int], float] = {}
        rows = np.arange(times.size)
        for trajectory in trajectories:
            unit = trajectory.unit
            w = self._weight(weights, unit.patient_id)
            states = self.occupancy(trajectory, times)
            if np.any(states >= self.n_states):
                raise ValueError(
                    f"{unit} occupies a state outside 0..{self.n_states - 1}")
            key = (unit.sample, unit.strategy_id)
            if key not in counts:
                counts[key] = np.zeros((times.size, self.n_states))
                totals[key] = 0.0
            np.add.at(counts[key], (rows, states), w)
            totals[key] += w

        frames = []
        for key in sorted(counts):
            if not totals[key] > 0:
                raise ValueError(f"Total weight of group {key} is zero")
            prob = counts[key] / totals[key]
            sample, strategy_id = key
            frames.append(pd.DataFrame({
                "sample": sample,
                "strategy_id": strategy_id,
                "state_id": np.repeat(np.arange(self.n_states), times.size),
                "t": np.tile(times, self.n_states),
                "prob": prob.T.ravel(),
            }))
        logger.debug("Estimated state probabilities for %d groups at %d times",
                     len(frames), times.size)
        if not frames:
            return pd.DataFrame(columns=STATEPROBS_COLUMNS)
        return pd.concat(frames, ignore_index=True)[STATEPROBS_COLUMNS]

    @staticmethod
    def _weight(weights: Optional[Mapping[int, float]], patient_id: int) -> float:
        if weights is None:
            return 1.0
        if patient_id not in weights:
            raise ValueError(f"No weight given for patient {patient_id}")
        w = float(weights[patient_id])
        if not (np.isfinite(w) and w >= 0):
            raise ValueError(
                f"Weight of patient {patient_id} must be non-negative, got {w}")
        return w
