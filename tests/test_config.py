from itertools import product

import pytest
from omegaconf import OmegaConf

from ctstm_simulator.config import load_config
from ctstm_simulator.errors import ConfigurationError
from ctstm_simulator.utils.validation import validate_config
from tests.fixtures.sample_configs import make_invalid_config


@pytest.mark.parametrize(
    "overrides",
    [
        [f"simulation={s}", f"sampler={z}"]
        for s, z in product(["lifetime", "short"], ["discrete", "invcdf"])
    ],
)
def test_all_configs_load(overrides):
    cfg = load_config(overrides)
    assert cfg is not None
    assert cfg.sampler.method in ("discrete", "invcdf")


def test_default_config():
    cfg = load_config()
    assert cfg.simulation.clock == "reset"
    assert cfg.simulation.max_age == 100.0
    assert cfg.sampler.integration.method == "riemann"
    assert cfg.experiment.seed == 20240501


def test_value_overrides():
    cfg = load_config(["simulation.n_jobs=2", "sampler.step=0.01"])
    assert cfg.simulation.n_jobs == 2
    assert cfg.sampler.step == 0.01


def test_validation_fails_on_invalid():
    cfg = make_invalid_config()
    with pytest.raises(ValueError):
        validate_config(cfg)


@pytest.mark.parametrize(
    "section, key, value",
    [
        ("simulation", "clock", "sideways"),
        ("simulation", "max_t", 0.0),
        ("simulation", "n_jobs", 0),
        ("simulation", "times", [-1.0]),
        ("sampler", "method", "rejection"),
        ("sampler", "step", 0.0),
    ],
)
def test_validation_rejects_bad_values(section, key, value):
    cfg = OmegaConf.create({section: {key: value}})
    with pytest.raises(ConfigurationError):
        validate_config(cfg)


def test_validation_rejects_wrong_types():
    cfg = OmegaConf.create({"simulation": {"n_jobs": "many"}})
    with pytest.raises(ConfigurationError):
        validate_config(cfg)


def test_mixed_clock_needs_reset_states():
    cfg = OmegaConf.create({"simulation": {"clock": "mixed"}})
    with pytest.raises(ConfigurationError):
        validate_config(cfg)
