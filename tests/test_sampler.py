"""
Tests for event-time sampling.

Empirical distribution checks compare sampled event times against the
analytic survival function with a Kolmogorov-Smirnov style bound.
"""

import unittest

import numpy as np
import pytest

from ctstm_simulator.distributions import IntegrationConfig, create_hazard_model
from ctstm_simulator.errors import ConfigurationError
from ctstm_simulator.sampler import SurvivalSampler

RATE = 0.4
GRID = np.array([0.25, 0.5, 1.0, 2.0, 3.0, 5.0, 8.0])


def max_survival_gap(times, events, survival):
    """Largest gap between the empirical and the expected survival curve."""
    observed = np.where(events, times, np.inf)
    empirical = np.array([np.mean(observed > t) for t in GRID])
    return np.max(np.abs(empirical - survival(GRID)))


class TestExponentialSampling(unittest.TestCase):
    """Every sampling path draws from exp(-rate t)."""

    def setUp(self):
        self.model = create_hazard_model("exp", rate=RATE)
        self.survival = lambda t: np.exp(-RATE * t)

    def test_closed_form(self):
        sampler = SurvivalSampler()
        times, events = sampler.sample_many(self.model, 20000,
                                            rng=np.random.default_rng(1))
        self.assertTrue(np.all(events))
        self.assertLess(max_survival_gap(times, events, self.survival), 0.015)

    def test_discrete_inversion(self):
        sampler = SurvivalSampler(method="discrete", use_closed_form=False)
        times, events = sampler.sample_many(self.model, 10000,
                                            rng=np.random.default_rng(2))
        self.assertLess(max_survival_gap(times, events, self.survival), 0.02)

    @pytest.mark.integration
    def test_continuous_inverse_cdf(self):
        sampler = SurvivalSampler(method="invcdf", use_closed_form=False)
        times, events = sampler.sample_many(self.model, 10000,
                                            rng=np.random.default_rng(3))
        self.assertLess(max_survival_gap(times, events, self.survival), 0.02)

    def test_inverse_cdf_solves_cumulative_hazard(self):
        sampler = SurvivalSampler(method="invcdf", use_closed_form=False)
        t = sampler.invert(self.model, 1.0, 0.0, 100.0)
        self.assertAlmostEqual(t, 1.0 / RATE, places=8)

    def test_discrete_interpolates_on_grid(self):
        sampler = SurvivalSampler(method="discrete", use_closed_form=False,
                                  step=0.5)
        # H is linear, so interpolation between grid points is exact
        self.assertAlmostEqual(sampler.invert(self.model, 1.3, 0.0, 100.0),
                               1.3 / RATE)


class TestLeftTruncation(unittest.TestCase):
    """Piecewise exponential draws conditional on survival to time 8."""

    rates = np.array([0.5, 0.8, 1.2, 1.5])
    breaks = np.array([0.0, 5.0, 10.0, 15.0])
    lower = 8.0

    def truncated_survival(self, t):
        model = create_hazard_model("pwexp", rate=self.rates,
                                    aux={"time": self.breaks})
        return np.exp(-np.asarray(model.cumhazard(self.lower, t)))

    def check(self, sampler, n, tolerance):
        model = create_hazard_model("pwexp", rate=self.rates,
                                    aux={"time": self.breaks})
        times, events = sampler.sample_many(model, n, lower=self.lower,
                                            rng=np.random.default_rng(11))
        self.assertTrue(np.all(events))
        self.assertTrue(np.all(times >= self.lower))
        grid = self.lower + np.array([0.1, 0.3, 0.6, 1.0, 1.5, 2.5, 4.0])
        empirical = np.array([np.mean(times > t) for t in grid])
        gap = np.max(np.abs(empirical - self.truncated_survival(grid)))
        self.assertLess(gap, tolerance)

    def test_closed_form(self):
        self.check(SurvivalSampler(), 20000, 0.015)

    def test_discrete_inversion(self):
        self.check(SurvivalSampler(use_closed_form=False, step=0.01),
                   10000, 0.02)

    @pytest.mark.integration
    def test_continuous_inverse_cdf(self):
        self.check(SurvivalSampler(method="invcdf", use_closed_form=False),
                   10000, 0.02)


def weibull_spline(method="quad", step=1 / 12):
    """Spline with log H = log(0.05) + 1.5 log t, i.e. H = 0.05 t^1.5."""
    return create_hazard_model(
        "survspline", gamma=[np.log(0.05), 1.5, 0.0],
        aux={"knots": np.log([0.5, 3.0, 20.0])},
        integration=IntegrationConfig(method=method, step=step))


def weibull_survival(t):
    return np.exp(-0.05 * t ** 1.5)


class TestFlexibleSampling(unittest.TestCase):
    """A linear log cumulative hazard spline is a Weibull distribution."""

    def test_discrete_inversion(self):
        sampler = SurvivalSampler(step=0.01)
        times, events = sampler.sample_many(weibull_spline("riemann", 0.01),
                                            5000, upper=50.0,
                                            rng=np.random.default_rng(5))
        self.assertLess(max_survival_gap(times, events, weibull_survival),
                        0.025)

    def test_inverse_cdf_ignores_riemann_config(self):
        sampler = SurvivalSampler(method="invcdf", use_closed_form=False)
        exact = 20.0 ** (2 / 3)
        for model in (weibull_spline("quad"), weibull_spline("riemann", 1.0)):
            with self.subTest(method=model.integration.method):
                self.assertAlmostEqual(sampler.invert(model, 1.0, 0.0, 100.0),
                                       exact, places=4)

    def test_inverse_cdf_left_truncated(self):
        sampler = SurvivalSampler(method="invcdf", use_closed_form=False)
        model = weibull_spline("riemann", 0.5)
        # H(2, T) = 0.05 (T^1.5 - 2^1.5)
        exact = (0.5 / 0.05 + 2.0 ** 1.5) ** (2 / 3)
        self.assertAlmostEqual(sampler.invert(model, 0.5, 2.0, 100.0),
                               exact, places=4)

    def test_discrete_and_inverse_cdf_agree(self):
        model = weibull_spline("riemann", 0.01)
        discrete = SurvivalSampler(step=0.01, use_closed_form=False)
        invcdf = SurvivalSampler(method="invcdf", use_closed_form=False)
        for target in (0.2, 1.0, 2.5):
            with self.subTest(target=target):
                self.assertAlmostEqual(
                    discrete.invert(model, target, 0.0, 100.0),
                    invcdf.invert(model, target, 0.0, 100.0), delta=0.02)

    def test_inverse_cdf_riemann_model(self):
        sampler = SurvivalSampler(method="invcdf", use_closed_form=False)
        times, events = sampler.sample_many(weibull_spline("riemann", 1.0),
                                            1000, upper=50.0,
                                            rng=np.random.default_rng(6))
        self.assertLess(max_survival_gap(times, events, weibull_survival),
                        0.05)

    @pytest.mark.integration
    def test_inverse_cdf_quad_model(self):
        sampler = SurvivalSampler(method="invcdf", use_closed_form=False)
        times, events = sampler.sample_many(weibull_spline("quad"), 2000,
                                            upper=50.0,
                                            rng=np.random.default_rng(7))
        self.assertLess(max_survival_gap(times, events, weibull_survival),
                        0.035)

    def test_discrete_grid_starts_at_lower_bound(self):
        """Riemann sums use the sampler step on a grid anchored at lower."""
        # h(t) = 0.3 t with a finer integration step than the sampler's
        model = create_hazard_model(
            "fracpoly", gamma=[np.log(0.3), 1.0], aux={"powers": [0]},
            integration=IntegrationConfig(method="riemann", step=0.25))
        sampler = SurvivalSampler(step=0.5, use_closed_form=False)
        # cells from 1.0 add 0.5 * h(right end): 0.225, 0.3, 0.375, 0.45
        self.assertAlmostEqual(sampler.invert(model, 1.0, 1.0, 10.0),
                               2.5 + 0.5 * 0.1 / 0.45)

class TestBoundsAndSentinel(unittest.TestCase):

    def setUp(self):
        self.model = create_hazard_model("exp", rate=0.01)

    def test_no_event_before_upper_bound(self):
        sampler = SurvivalSampler()
        draws = [sampler.sample(self.model, 0.0, 1.0,
                                np.random.default_rng(seed))
                 for seed in range(200)]
        missing = sum(d is None for d in draws)
        # P(T > 1) = exp(-0.01)
        self.assertGreater(missing, 180)
        self.assertTrue(all(d is None or 0.0 <= d < 1.0 for d in draws))

    def test_sentinel_on_every_path(self):
        for sampler in (SurvivalSampler(),
                        SurvivalSampler(use_closed_form=False),
                        SurvivalSampler(method="invcdf",
                                        use_closed_form=False)):
            with self.subTest(method=sampler.method):
                self.assertIsNone(sampler.invert(self.model, 5.0, 0.0, 10.0))

    def test_unbounded_upper_uses_max_horizon(self):
        sampler = SurvivalSampler(max_horizon=50.0)
        self.assertEqual(sampler.bounds(0.0, np.inf), (0.0, 50.0))
        self.assertEqual(sampler.bounds(0.0, None), (0.0, 50.0))
        self.assertIsNone(sampler.invert(self.model, 1.0, 0.0, 50.0))

    def test_invalid_bounds(self):
        sampler = SurvivalSampler()
        with self.assertRaises(ConfigurationError):
            sampler.sample(self.model, -1.0, 5.0)
        with self.assertRaises(ConfigurationError):
            sampler.sample(self.model, 5.0, 5.0)
        with self.assertRaises(ConfigurationError):
            sampler.sample(self.model, 6.0, 5.0)

    def test_invalid_sampler(self):
        with self.assertRaises(ConfigurationError):
            SurvivalSampler(method="rejection")
        with self.assertRaises(ConfigurationError):
            SurvivalSampler(step=0.0)
        with self.assertRaises(ConfigurationError):
            SurvivalSampler(max_horizon=np.inf)

    def test_reproducible_with_seeded_generator(self):
        sampler = SurvivalSampler(use_closed_form=False)
        first = sampler.sample(self.model, rng=np.random.default_rng(9))
        second = sampler.sample(self.model, rng=np.random.default_rng(9))
        self.assertEqual(first, second)


if __name__ == "__main__":
    unittest.main()
