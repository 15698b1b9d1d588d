from omegaconf import DictConfig, OmegaConf
from omegaconf.errors import OmegaConfBaseException

from ..errors import ConfigurationError
from .logging import log_call


@log_call
def validate_config(cfg: DictConfig) -> DictConfig:
    """
    Type-check a simulation config against its schema and validate values.

    Returns the config merged onto the schema defaults.
    """
    # Imported here because the config package imports this module
    from ..config.schemas import Settings

    try:
        merged = OmegaConf.merge(OmegaConf.structured(Settings), cfg)
    except OmegaConfBaseException as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    sim = merged.simulation
    if sim.clock not in ("reset", "forward", "mixed"):
        raise ConfigurationError(
            "clock must be 'reset', 'forward' or 'mixed'")
    if sim.clock == "mixed" and not sim.reset_states:
        raise ConfigurationError("A mixed clock needs reset_states")
    if not sim.max_t > 0:
        raise ConfigurationError("max_t must be positive")
    if sim.start_age >= sim.max_age:
        raise ConfigurationError("start_age must be less than max_age")
    if sim.start_time < 0:
        raise ConfigurationError("start_time must be non-negative")
    if sim.n_patients <= 0:
        raise ConfigurationError("n_patients must be positive")
    if sim.n_samples is not None and sim.n_samples <= 0:
        raise ConfigurationError("n_samples must be positive")
    if sim.n_jobs <= 0:
        raise ConfigurationError("n_jobs must be positive")
    if any(t < 0 for t in sim.times):
        raise ConfigurationError("times must be non-negative")

    sampler = merged.sampler
    if sampler.method not in ("discrete", "invcdf"):
        raise ConfigurationError("sampler method must be 'discrete' or 'invcdf'")
    if sampler.step <= 0:
        raise ConfigurationError("sampler step must be positive")
    if sampler.max_horizon <= 0:
        raise ConfigurationError("max_horizon must be positive")
    if sampler.integration.method not in ("quad", "riemann"):
        raise ConfigurationError(
            "integration method must be 'quad' or 'riemann'")
    if sampler.integration.step <= 0:
        raise ConfigurationError("integration step must be positive")
    return merged
