"""
Shared test fixtures.

Session-scoped models are read-only, so they can be reused across test
modules without rebuilding transition matrices and parameter stores.
"""

import os
import sys

import numpy as np
import pandas as pd
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from ctstm_simulator.distributions import create_hazard_model  # noqa: E402
from ctstm_simulator.parameters import SurvParams  # noqa: E402
from ctstm_simulator.transition_model import (  # noqa: E402
    ParameterizedTransitionModel,
    TransitionMatrix,
    TransitionModel
)

# Illness-death rates: Healthy->Sick, Healthy->Dead, Sick->Healthy, Sick->Dead
ILLNESS_DEATH_RATES = {1: 0.1, 2: 0.05, 3: 0.2, 4: 0.3}


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: slow Monte Carlo checks")


@pytest.fixture(scope="session")
def illness_death_tmat():
    """Healthy (0), Sick (1), Dead (2)."""
    return TransitionMatrix.from_array(
        [[None, 1, 2],
         [3, None, 4],
         [None, None, None]],
        state_names=["Healthy", "Sick", "Dead"]
    )


@pytest.fixture(scope="session")
def illness_death_model(illness_death_tmat):
    """Constant-hazard illness-death model."""
    return TransitionModel(illness_death_tmat, {
        edge_id: create_hazard_model("exp", rate=rate)
        for edge_id, rate in ILLNESS_DEATH_RATES.items()
    })


@pytest.fixture(scope="session")
def weibull_illness_death_model(illness_death_tmat):
    """Time-varying illness-death model."""
    return TransitionModel(illness_death_tmat, {
        1: create_hazard_model("weibull", shape=1.3, scale=12.0),
        2: create_hazard_model("gompertz", shape=0.05, rate=0.02),
        3: create_hazard_model("weibull_ph", shape=0.9, scale=0.25),
        4: create_hazard_model("exp", rate=0.3),
    })


@pytest.fixture(scope="session")
def patient_data():
    """Two strategies, three patients, with age and a population weight."""
    return pd.DataFrame({
        "strategy_id": np.repeat([1, 2], 3),
        "patient_id": np.tile([1, 2, 3], 2),
        "age": np.tile([50.0, 60.0, 70.0], 2),
        "treated": np.repeat([0.0, 1.0], 3),
        "patient_wt": np.tile([0.5, 0.3, 0.2], 2),
    })


@pytest.fixture(scope="session")
def illness_death_params():
    """Two-sample exponential stores with a treatment effect on edge 1."""
    rng = np.random.default_rng(7)
    params = {}
    for edge_id, rate in ILLNESS_DEATH_RATES.items():
        coefs = {"rate": pd.DataFrame({
            "intercept": np.log(rate) + rng.normal(0, 0.05, size=2),
            "treated": [-0.5, -0.4] if edge_id == 1 else [0.0, 0.0],
        })}
        params[edge_id] = SurvParams("exp", coefs)
    return params


@pytest.fixture(scope="session")
def parameterized_model(illness_death_tmat, illness_death_params, patient_data):
    return ParameterizedTransitionModel(
        illness_death_tmat, illness_death_params, patient_data)
