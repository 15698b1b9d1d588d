"""
Transition structure and per-edge hazard bindings of a multi-state model.

A ``TransitionMatrix`` records which states can reach which, with one edge
(transition) id per directed edge. A ``TransitionModel`` binds one
``HazardModel`` to every edge. A ``ParameterizedTransitionModel`` holds the
per-edge parameter stores and covariate table and produces the
``TransitionModel`` of each simulation unit on demand.
"""

import math
from typing import (Dict, Iterator, List, Mapping, Optional, Sequence, Tuple,
                    Union)

import numpy as np
import pandas as pd

from .core.data_structures import SimulationUnit
from .distributions import HazardModel, IntegrationConfig
from .errors import ConfigurationError
from .parameters import SurvParams, sample_from_posterior

Edge = Tuple[int, int, HazardModel]


def _is_missing(value) -> bool:
    if value is None:
        return True
    try:
        return math.isnan(value) or value == 0
    except TypeError:
        raise ConfigurationError(
            f"Transition matrix entries must be numbers or None, got {value!r}"
        ) from None


class TransitionMatrix:
    """
    Square matrix of edge ids over ``n_states`` states.

    Entry (r, s) is 0 when there is no transition from r to s and otherwise a
    unique edge id. Edge ids must be exactly 1..E. States are indexed from 0.

    Parameters
    ----------
    ids : np.ndarray
        Integer matrix of edge ids (0 for no transition)
    state_names : sequence of str, optional
        Labels of the states

    Raises
    ------
    ConfigurationError
        If the matrix is not square, has a self transition, or its edge ids
        are not a bijection onto 1..E.
    """

    def __init__(self, ids: np.ndarray,
                 state_names: Optional[Sequence[str]] = None):
        ids = np.asarray(ids)
        if ids.ndim != 2 or ids.shape[0] != ids.shape[1]:
            raise ConfigurationError(
                f"Transition matrix must be square, got shape {ids.shape}")
        if ids.shape[0] < 1:
            raise ConfigurationError("Transition matrix has no states")
        if not np.issubdtype(ids.dtype, np.integer):
            raise ConfigurationError("Transition matrix ids must be integers")
        if np.any(ids < 0):
            raise ConfigurationError("Transition matrix ids must be >= 0")
        if np.any(np.diag(ids) != 0):
            raise ConfigurationError(
                "Transition matrix diagonal must be 'no transition'")
        present = np.sort(ids[ids > 0])
        if not np.array_equal(present, np.arange(1, present.size + 1)):
            raise ConfigurationError(
                f"Edge ids must be exactly 1..{present.size}, got "
                f"{present.tolist()}")
        n_states = ids.shape[0]
        if state_names is None:
            state_names = [f"State {i}" for i in range(n_states)]
        if len(state_names) != n_states:
            raise ConfigurationError(
                f"Got {len(state_names)} state names for {n_states} states")

        self.ids = ids.astype(int)
        self.ids.setflags(write=False)
        self.state_names = list(state_names)
        self._edges: Dict[int, Tuple[int, int]] = {}
        self._outgoing: Dict[int, Tuple[Tuple[int, int], ...]] = {}
        for r in range(n_states):
            out = []
            for s in range(n_states):
                if self.ids[r, s] > 0:
                    self._edges[int(self.ids[r, s])] = (r, s)
                    out.append((int(self.ids[r, s]), s))
            self._outgoing[r] = tuple(sorted(out))

    @classmethod
    def from_array(
        cls,
        rows: Sequence[Sequence[Optional[float]]],
        state_names: Optional[Sequence[str]] = None
    ) -> "TransitionMatrix":
        """
        Build from nested sequences where ``None``, ``NaN`` or 0 mean
        "no transition".

        Examples
        --------
        >>> tmat = TransitionMatrix.from_array([[None, 1, 2],
        ...                                     [3, None, 4],
        ...                                     [None, None, None]])
        >>> tmat.absorbing
        (2,)
        """
        converted = []
        for row in rows:
            converted.append([0 if _is_missing(v) else int(v) for v in row])
        return cls(np.array(converted, dtype=int), state_names=state_names)

    @property
    def n_states(self) -> int:
        return self.ids.shape[0]

    @property
    def n_transitions(self) -> int:
        return len(self._edges)

    @property
    def edge_ids(self) -> List[int]:
        return sorted(self._edges)

    @property
    def absorbing(self) -> Tuple[int, ...]:
        return tuple(r for r, out in self._outgoing.items() if not out)

    def is_absorbing(self, state: int) -> bool:
        return not self._outgoing[state]

    def transitions(self, state: int) -> Tuple[Tuple[int, int], ...]:
        """Outgoing (edge id, to-state) pairs of ``state``, by edge id."""
        if state not in self._outgoing:
            raise IndexError(f"State {state} is not in the transition matrix")
        return self._outgoing[state]

    def edge(self, edge_id: int) -> Tuple[int, int]:
        """(from-state, to-state) of an edge."""
        return self._edges[edge_id]

    def to_frame(self) -> pd.DataFrame:
        """One row per transition: id, from/to states and their names."""
        rows = []
        for edge_id in self.edge_ids:
            r, s = self._edges[edge_id]
            rows.append({
                "transition_id": edge_id,
                "from": r,
                "to": s,
                "from_name": self.state_names[r],
                "to_name": self.state_names[s],
            })
        return pd.DataFrame(rows, columns=["transition_id", "from", "to",
                                           "from_name", "to_name"])

    def __repr__(self) -> str:
        return (f"TransitionMatrix(n_states={self.n_states}, "
                f"n_transitions={self.n_transitions})")


class TransitionModel:
    """
    One ``HazardModel`` per edge of a ``TransitionMatrix``.

    Instances are read-only once built and can be shared by any number of
    simulation units.

    Parameters
    ----------
    trans_mat : TransitionMatrix
        Transition structure
    hazards : mapping of int to HazardModel
        Hazard model of every edge id
    """

    def __init__(self, trans_mat: TransitionMatrix,
                 hazards: Mapping[int, HazardModel]):
        missing = [e for e in trans_mat.edge_ids if e not in hazards]
        extra = [e for e in hazards if e not in trans_mat.edge_ids]
        if missing:
            raise ConfigurationError(f"No hazard model bound to edges {missing}")
        if extra:
            raise ConfigurationError(
                f"Hazard models given for edges {extra} that are not in the "
                f"transition matrix")
        self.trans_mat = trans_mat
        self.hazards = dict(hazards)
        self._reachable = {
            state: tuple((edge_id, to_state, self.hazards[edge_id])
                         for edge_id, to_state in trans_mat.transitions(state))
            for state in range(trans_mat.n_states)
        }

    @property
    def n_states(self) -> int:
        return self.trans_mat.n_states

    def reachable(self, state: int) -> Tuple[Edge, ...]:
        """(edge id, to-state, hazard model) of every edge leaving ``state``."""
        return self._reachable[state]

    def hazard(self, state: int, t: float) -> np.ndarray:
        """Hazards of the edges leaving ``state`` at time ``t``."""
        return np.array([model.hazard(t) for _, _, model in self._reachable[state]])

    def cumhazard(self, state: int, t0: float, t1: float) -> np.ndarray:
        """Cumulative hazards over ``[t0, t1]`` of the edges leaving ``state``."""
        return np.array([model.cumhazard(t0, t1)
                         for _, _, model in self._reachable[state]])


class ParameterizedTransitionModel:
    """
    Per-edge parameter stores bound to a covariate table.

    Parameters
    ----------
    trans_mat : TransitionMatrix
        Transition structure
    params : mapping of int to SurvParams
        Parameter store of every edge id. All stores must hold the same
        number of parameter samples.
    input_data : pd.DataFrame
        Columns ``strategy_id`` and ``patient_id``, optionally
        ``transition_id`` (one row per edge), optionally ``patient_wt``, and
        the covariates used by the coefficient tables.
    n_samples : int, optional
        Number of parameter samples to simulate. Defaults to every stored
        sample; otherwise samples are drawn with ``sample_from_posterior``.
    integration : IntegrationConfig, optional
        Overrides the integration config of every edge.
    seed : int, optional
        Seed used when drawing parameter samples.
    """

    def __init__(
        self,
        trans_mat: TransitionMatrix,
        params: Mapping[int, SurvParams],
        input_data: pd.DataFrame,
        n_samples: Optional[int] = None,
        integration: Optional[IntegrationConfig] = None,
        seed: Optional[int] = None
    ):
        missing = [e for e in trans_mat.edge_ids if e not in params]
        extra = [e for e in params if e not in trans_mat.edge_ids]
        if missing or extra:
            raise ConfigurationError(
                f"Parameters must cover exactly the edges "
                f"{trans_mat.edge_ids}; missing {missing}, unexpected {extra}")
        stored = {p.n_samples for p in params.values()}
        if len(stored) != 1:
            raise ConfigurationError(
                f"All edges must have the same number of parameter samples, "
                f"got {sorted(stored)}")
        for col in ("strategy_id", "patient_id"):
            if col not in input_data.columns:
                raise ConfigurationError(f"input_data is missing {col!r}")

        self.trans_mat = trans_mat
        self.params = dict(params)
        self.integration = integration
        n_stored = stored.pop()
        if n_samples is None or n_samples == n_stored:
            self._sample_rows = np.arange(n_stored)
        else:
            self._sample_rows = sample_from_posterior(
                n_samples, n_stored, np.random.default_rng(seed))

        keys = ["strategy_id", "patient_id"]
        self._pairs: List[Tuple[int, int]] = list(dict.fromkeys(
            zip(input_data["strategy_id"].astype(int),
                input_data["patient_id"].astype(int))))
        self._pair_pos = {pair: i for i, pair in enumerate(self._pairs)}
        index = pd.MultiIndex.from_tuples(self._pairs, names=keys)

        self._design: Dict[int, Dict[str, np.ndarray]] = {}
        for edge_id in trans_mat.edge_ids:
            if "transition_id" in input_data.columns:
                rows = input_data[input_data["transition_id"] == edge_id]
            else:
                rows = input_data
            rows = rows.assign(strategy_id=rows["strategy_id"].astype(int),
                               patient_id=rows["patient_id"].astype(int))
            if rows.duplicated(keys).any():
                raise ConfigurationError(
                    f"input_data has duplicate (strategy_id, patient_id) rows "
                    f"for edge {edge_id}")
            present = set(zip(rows["strategy_id"], rows["patient_id"]))
            absent = [pair for pair in self._pairs if pair not in present]
            if absent:
                raise ConfigurationError(
                    f"input_data has no row for units {absent[:5]} on edge "
                    f"{edge_id}")
            aligned = rows.set_index(keys).reindex(index)
            self._design[edge_id] = self.params[edge_id].design(
                aligned.reset_index())

        self._weights: Dict[int, float] = {}
        if "patient_wt" in input_data.columns:
            for pid, wt in zip(input_data["patient_id"].astype(int),
                               input_data["patient_wt"].astype(float)):
                self._weights.setdefault(pid, wt)

    @property
    def n_samples(self) -> int:
        return len(self._sample_rows)

    @property
    def pairs(self) -> List[Tuple[int, int]]:
        """(strategy_id, patient_id) pairs in input order."""
        return list(self._pairs)

    def units(self) -> Iterator[SimulationUnit]:
        """Every simulation unit, ordered by sample, strategy and patient."""
        for sample in range(self.n_samples):
            for strategy_id, patient_id in self._pairs:
                yield SimulationUnit(strategy_id, patient_id, sample)

    def build(self, unit: SimulationUnit) -> TransitionModel:
        """``TransitionModel`` of one unit."""
        pos = self._pair_pos.get((unit.strategy_id, unit.patient_id))
        if pos is None:
            raise KeyError(f"No input data for {unit}")
        row = int(self._sample_rows[unit.sample])
        hazards = {}
        for edge_id, design in self._design.items():
            x = {name: matrix[pos] for name, matrix in design.items()}
            hazards[edge_id] = self.params[edge_id].hazard_model(
                row, x, self.integration)
        return TransitionModel(self.trans_mat, hazards)

    def patient_weights(self) -> Optional[Dict[int, float]]:
        """Population weight of each patient, if ``patient_wt`` was given."""
        return dict(self._weights) if self._weights else None


ModelSource = Union[TransitionModel, ParameterizedTransitionModel]
