"""
Parameter store for survival models.

Coefficients are held as one table per distribution parameter, with one row
per parameter sample (a draw for probabilistic sensitivity analysis) and one
column per covariate. The natural-scale value of a parameter for a given sample
and covariate row is the inverse link of the linear predictor x'beta.
"""

import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .distributions import Family, HazardModel, IntegrationConfig
from .errors import ConfigurationError
from .utils.logging import log_call

# Link function of each distribution parameter (flexsurv parameterizations)
_LINKS: Dict[Family, Dict[str, str]] = {
    Family.EXPONENTIAL: {"rate": "log"},
    Family.WEIBULL: {"shape": "log", "scale": "log"},
    Family.WEIBULL_PH: {"shape": "log", "scale": "log"},
    Family.GOMPERTZ: {"shape": "identity", "rate": "log"},
    Family.GAMMA: {"shape": "log", "rate": "log"},
    Family.LOGNORMAL: {"meanlog": "identity", "sdlog": "log"},
    Family.LOGLOGISTIC: {"shape": "log", "scale": "log"},
    Family.GENGAMMA: {"mu": "identity", "sigma": "log", "Q": "identity"},
}

_INVERSE_LINKS = {
    "log": np.exp,
    "identity": lambda x: x,
}

_LINKS_FORWARD = {
    "log": np.log,
    "identity": lambda x: x,
}


def _vector_param(family: Family):
    """Name, prefix and first index of the vector parameter of a family."""
    if family == Family.PWEXP:
        return "rate", "rate", 1
    return "gamma", "gamma", 0


def _param_links(family: Family, aux: Dict[str, Any]) -> Dict[str, str]:
    if family in _LINKS:
        return _LINKS[family]
    if family == Family.PWEXP:
        n = len(np.ravel(aux.get("time", [])))
        return {f"rate{i}": "log" for i in range(1, n + 1)}
    if family == Family.SURVSPLINE:
        n = len(np.ravel(aux.get("knots", [])))
        return {f"gamma{i}": "identity" for i in range(n)}
    n = len(np.ravel(aux.get("powers", []))) + 1
    return {f"gamma{i}": "identity" for i in range(n)}


def _as_frame(name: str, value: Union[pd.DataFrame, np.ndarray, Sequence[float]]
              ) -> pd.DataFrame:
    if isinstance(value, pd.DataFrame):
        return value
    arr = np.asarray(value, dtype=float)
    if arr.ndim == 1:
        return pd.DataFrame({"intercept": arr})
    if arr.ndim == 2 and arr.shape[1] == 1:
        return pd.DataFrame({"intercept": arr[:, 0]})
    raise ConfigurationError(
        f"Coefficients for {name!r} with more than one covariate must be a "
        f"DataFrame with named columns")


@dataclass
class SurvParams:
    """
    Coefficients of a parametric or flexible survival model.

    Parameters
    ----------
    family : Family or str
        Distribution family tag
    coefs : dict
        Maps each parameter name to a DataFrame of shape
        (n_samples, n_covariates). ``pwexp`` uses ``rate1``..``rateK``;
        ``survspline`` and ``fracpoly`` use ``gamma0``..``gammaK``.
    aux : dict, optional
        Auxiliary configuration passed to ``HazardModel``
    integration : IntegrationConfig, optional
        Cumulative hazard method for flexible families

    Attributes
    ----------
    n_samples : int
        Number of parameter samples (rows of every coefficient table)
    """

    family: Family
    coefs: Dict[str, Any]
    aux: Dict[str, Any] = field(default_factory=dict)
    integration: IntegrationConfig = field(default_factory=IntegrationConfig)

    def __post_init__(self):
        try:
            self.family = Family(self.family)
        except ValueError:
            raise ConfigurationError(
                f"Unknown distribution family {self.family!r}") from None
        self._links = _param_links(self.family, self.aux)

        missing = [name for name in self._links if name not in self.coefs]
        unknown = [name for name in self.coefs if name not in self._links]
        if missing or unknown:
            raise ConfigurationError(
                f"{self.family.value} coefficients must be exactly "
                f"{list(self._links)}; missing {missing}, unexpected {unknown}")

        self.coefs = {name: _as_frame(name, self.coefs[name])
                      for name in self._links}
        n_rows = {len(df) for df in self.coefs.values()}
        if len(n_rows) != 1:
            raise ConfigurationError(
                "All coefficient tables must have one row per parameter "
                f"sample; got row counts {sorted(n_rows)}")
        self._values = {name: df.to_numpy(dtype=float)
                        for name, df in self.coefs.items()}
        self._columns = {name: list(df.columns)
                         for name, df in self.coefs.items()}

    @property
    def n_samples(self) -> int:
        return len(next(iter(self.coefs.values())))

    @property
    def parameter_names(self) -> List[str]:
        return list(self._links)

    @property
    def covariates(self) -> List[str]:
        """Covariate columns used by any parameter, in first-seen order."""
        seen: List[str] = []
        for cols in self._columns.values():
            seen.extend(c for c in cols if c not in seen)
        return seen

    @classmethod
    def point_estimate(
        cls,
        family: Union[Family, str],
        aux: Optional[Dict[str, Any]] = None,
        integration: Optional[IntegrationConfig] = None,
        **values: Any
    ) -> "SurvParams":
        """
        Single-sample, intercept-only store from natural-scale values.

        Vector parameters (``rate`` for ``pwexp``, ``gamma`` for flexible
        families) are given as sequences.

        Examples
        --------
        >>> params = SurvParams.point_estimate("weibull", shape=1.2, scale=5.0)
        >>> params.n_samples
        1
        """
        family = Family(family)
        aux = aux or {}
        if family in _LINKS:
            links = _LINKS[family]
            natural = values
        else:
            vector_name, prefix, first = _vector_param(family)
            if vector_name not in values:
                raise ConfigurationError(
                    f"{family.value} point estimate needs {vector_name!r}")
            natural = {f"{prefix}{i + first}": v
                       for i, v in enumerate(np.ravel(values[vector_name]))}
            links = _param_links(family, aux)
        coefs = {}
        for name, link in links.items():
            if name not in natural:
                raise ConfigurationError(
                    f"{family.value} point estimate is missing {name!r}")
            with np.errstate(divide="ignore", invalid="ignore"):
                transformed = _LINKS_FORWARD[link](float(natural[name]))
            coefs[name] = pd.DataFrame({"intercept": [transformed]})
        return cls(family=family, coefs=coefs, aux=aux,
                   integration=integration or IntegrationConfig())

    def design(self, data: pd.DataFrame) -> Dict[str, np.ndarray]:
        """
        Covariate matrices aligned with the rows of ``data``.

        An ``intercept`` column missing from ``data`` is a column of ones.

        Raises
        ------
        ConfigurationError
            If a coefficient column has no matching covariate.
        """
        matrices = {}
        for name, cols in self._columns.items():
            absent = [c for c in cols if c not in data.columns and c != "intercept"]
            if absent:
                raise ConfigurationError(
                    f"Covariates {absent} used by parameter {name!r} of the "
                    f"{self.family.value} model are missing from the input "
                    f"data (available: {list(data.columns)})")
            matrices[name] = np.column_stack([
                data[c].to_numpy(dtype=float) if c in data.columns
                else np.ones(len(data))
                for c in cols
            ])
        return matrices

    def natural_params(
        self,
        sample: int,
        x: Dict[str, np.ndarray]
    ) -> Dict[str, Any]:
        """Natural-scale parameters for one sample and one covariate row."""
        values = {}
        for name, link in self._links.items():
            lp = float(x[name] @ self._values[name][sample])
            values[name] = float(_INVERSE_LINKS[link](lp))
        if self.family in _LINKS:
            return values
        vector_name, _, _ = _vector_param(self.family)
        return {vector_name: np.array(list(values.values()))}

    def hazard_model(
        self,
        sample: int,
        x: Dict[str, np.ndarray],
        integration: Optional[IntegrationConfig] = None
    ) -> HazardModel:
        """``HazardModel`` for one sample and one covariate row."""
        if not 0 <= sample < self.n_samples:
            raise IndexError(
                f"Sample {sample} out of range for {self.n_samples} samples")
        return HazardModel(
            family=self.family,
            params=self.natural_params(sample, x),
            aux=self.aux,
            integration=integration or self.integration,
        )


@log_call
def sample_from_posterior(
    n: int,
    n_samples: int,
    rng: Optional[np.random.Generator] = None
) -> np.ndarray:
    """
    Choose which stored parameter samples to use for ``n`` requested draws.

    Parameters
    ----------
    n : int
        Number of draws requested for the simulation
    n_samples : int
        Number of stored parameter samples
    rng : np.random.Generator, optional
        Random number generator

    Returns
    -------
    indices : np.ndarray
        Row indices into the parameter store

    Warns
    -----
    UserWarning
        If ``n`` exceeds ``n_samples`` and rows are drawn with replacement
    """
    if n < 1 or n_samples < 1:
        raise ConfigurationError("Sample counts must be positive")
    rng = rng if rng is not None else np.random.default_rng()
    if n < n_samples:
        return rng.choice(n_samples, size=n, replace=False)
    if n > n_samples:
        warnings.warn(
            "The number of requested parameter samples is larger than the "
            "number of stored samples; samples have been drawn with "
            "replacement.")
        return rng.choice(n_samples, size=n, replace=True)
    return np.arange(n)
