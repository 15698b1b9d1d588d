"""
Tests for transition matrices and per-edge hazard bindings.
"""

import unittest

import numpy as np
import pandas as pd
import pytest

from ctstm_simulator.core.data_structures import SimulationUnit
from ctstm_simulator.distributions import IntegrationConfig, create_hazard_model
from ctstm_simulator.errors import ConfigurationError
from ctstm_simulator.parameters import SurvParams
from ctstm_simulator.transition_model import (
    ParameterizedTransitionModel,
    TransitionMatrix,
    TransitionModel
)


class TestTransitionMatrix(unittest.TestCase):

    def setUp(self):
        self.tmat = TransitionMatrix.from_array(
            [[None, 1, 2], [3, None, 4], [None, None, None]])

    def test_structure(self):
        self.assertEqual(self.tmat.n_states, 3)
        self.assertEqual(self.tmat.n_transitions, 4)
        self.assertEqual(self.tmat.edge_ids, [1, 2, 3, 4])
        self.assertEqual(self.tmat.absorbing, (2,))
        self.assertEqual(self.tmat.transitions(0), ((1, 1), (2, 2)))
        self.assertEqual(self.tmat.transitions(2), ())
        self.assertEqual(self.tmat.edge(3), (1, 0))

    def test_missing_markers(self):
        tmat = TransitionMatrix.from_array([[0, 1], [np.nan, None]])
        self.assertEqual(tmat.absorbing, (1,))

    def test_outgoing_edges_sorted_by_id(self):
        tmat = TransitionMatrix.from_array(
            [[None, 2, 1], [None, None, None], [None, None, None]])
        self.assertEqual(tmat.transitions(0), ((1, 2), (2, 1)))

    def test_to_frame(self):
        frame = TransitionMatrix.from_array(
            [[None, 1], [None, None]], state_names=["Alive", "Dead"]).to_frame()
        self.assertEqual(frame.loc[0, "from_name"], "Alive")
        self.assertEqual(frame.loc[0, "to"], 1)

    def test_invalid_matrices(self):
        with self.assertRaises(ConfigurationError):
            TransitionMatrix(np.zeros((2, 3), dtype=int))
        with self.assertRaises(ConfigurationError):
            TransitionMatrix(np.array([[1, 0], [0, 0]]))
        with self.assertRaises(ConfigurationError):
            TransitionMatrix(np.array([[0, 1], [3, 0]]))
        with self.assertRaises(ConfigurationError):
            TransitionMatrix(np.array([[0, 1], [1, 0]]))
        with self.assertRaises(ConfigurationError):
            TransitionMatrix.from_array([[None, "a"], [None, None]])

    def test_ids_are_read_only(self):
        with self.assertRaises(ValueError):
            self.tmat.ids[0, 1] = 5


class TestTransitionModel(unittest.TestCase):

    def setUp(self):
        self.tmat = TransitionMatrix.from_array(
            [[None, 1, 2], [None, None, 3], [None, None, None]])
        self.hazards = {
            1: create_hazard_model("exp", rate=0.1),
            2: create_hazard_model("exp", rate=0.02),
            3: create_hazard_model("weibull", shape=2.0, scale=10.0),
        }

    def test_reachable(self):
        model = TransitionModel(self.tmat, self.hazards)
        reachable = model.reachable(0)
        self.assertEqual([(e, s) for e, s, _ in reachable], [(1, 1), (2, 2)])
        self.assertEqual(model.reachable(2), ())

    def test_hazard_vectors(self):
        model = TransitionModel(self.tmat, self.hazards)
        np.testing.assert_allclose(model.hazard(0, 1.0), [0.1, 0.02])
        np.testing.assert_allclose(model.cumhazard(1, 0.0, 10.0), [1.0])

    def test_every_edge_needs_a_hazard(self):
        with self.assertRaises(ConfigurationError):
            TransitionModel(self.tmat, {1: self.hazards[1]})
        extra = dict(self.hazards)
        extra[4] = self.hazards[1]
        with self.assertRaises(ConfigurationError):
            TransitionModel(self.tmat, extra)


class TestParameterizedTransitionModel:

    def test_units(self, parameterized_model):
        units = list(parameterized_model.units())
        assert len(units) == 2 * 2 * 3
        assert units[0] == SimulationUnit(1, 1, 0)
        assert units[-1] == SimulationUnit(2, 3, 1)

    def test_build_applies_covariates(self, parameterized_model,
                                      illness_death_params):
        control = parameterized_model.build(SimulationUnit(1, 1, 0))
        treated = parameterized_model.build(SimulationUnit(2, 1, 0))
        intercept = illness_death_params[1].coefs["rate"].loc[0, "intercept"]
        assert control.hazards[1].hazard(1.0) == pytest.approx(
            np.exp(intercept))
        assert treated.hazards[1].hazard(1.0) == pytest.approx(
            np.exp(intercept - 0.5))
        assert control.hazards[4].hazard(1.0) == pytest.approx(
            treated.hazards[4].hazard(1.0))

    def test_patient_weights(self, parameterized_model):
        assert parameterized_model.patient_weights() == {1: 0.5, 2: 0.3,
                                                         3: 0.2}

    def test_unknown_unit(self, parameterized_model):
        with pytest.raises(KeyError):
            parameterized_model.build(SimulationUnit(3, 1, 0))

    def test_missing_covariate(self, illness_death_tmat, illness_death_params,
                               patient_data):
        with pytest.raises(ConfigurationError):
            ParameterizedTransitionModel(
                illness_death_tmat, illness_death_params,
                patient_data.drop(columns="treated"))

    def test_edge_specific_rows(self, illness_death_tmat):
        params = {e: SurvParams.point_estimate("exp", rate=0.1)
                  for e in illness_death_tmat.edge_ids}
        params[1] = SurvParams("exp", {"rate": pd.DataFrame(
            {"intercept": [np.log(0.1)], "x": [1.0]})})
        data = pd.DataFrame({
            "strategy_id": 1,
            "patient_id": 1,
            "transition_id": [1, 2, 3, 4],
            "x": [0.0, 9.0, 9.0, 9.0],
        })
        model = ParameterizedTransitionModel(illness_death_tmat, params, data)
        built = model.build(SimulationUnit(1, 1, 0))
        assert built.hazards[1].hazard(1.0) == pytest.approx(0.1)

        with pytest.raises(ConfigurationError):
            ParameterizedTransitionModel(illness_death_tmat, params,
                                         data[data["transition_id"] != 4])

    def test_mismatched_sample_counts(self, illness_death_tmat, patient_data):
        params = {e: SurvParams("exp", {"rate": np.log([0.1, 0.2])})
                  for e in illness_death_tmat.edge_ids}
        params[4] = SurvParams.point_estimate("exp", rate=0.1)
        with pytest.raises(ConfigurationError):
            ParameterizedTransitionModel(illness_death_tmat, params,
                                         patient_data)

    def test_resampled_parameters(self, illness_death_tmat,
                                  illness_death_params, patient_data):
        model = ParameterizedTransitionModel(
            illness_death_tmat, illness_death_params, patient_data,
            n_samples=1, seed=3)
        assert model.n_samples == 1
        assert len(list(model.units())) == 6

    def test_integration_override(self, illness_death_tmat, patient_data):
        params = {e: SurvParams.point_estimate(
                      "fracpoly", aux={"powers": [0]}, gamma=[-2.0, 0.0])
                  for e in illness_death_tmat.edge_ids}
        model = ParameterizedTransitionModel(
            illness_death_tmat, params, patient_data,
            integration=IntegrationConfig(method="riemann", step=0.05))
        built = model.build(SimulationUnit(1, 2, 0))
        assert built.hazards[2].integration.method == "riemann"
