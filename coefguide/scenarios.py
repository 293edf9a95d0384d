"""
Synthetic datasets for the "which controls belong in the regression" cases.

Four causal structures, each a variant of one ScenarioSpec:

    confounder           C -> T, C -> Y, T -> Y     control for C
    downstream_mediator  T -> M -> Y                do not control for M
    collider             T -> K <- Y                do not control for K
    precision_tradeoff   A -> Y, D -> T, T -> Y     A sharpens, D blurs

Every draw comes from ``numpy.random.default_rng(seed)``; the same
(spec, seed) always yields the same dataset.
"""

import enum
import math
import numbers
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

import numpy as np
import pandas as pd

from .config import SCENARIO_DEFAULTS
from .errors import ValidationError


class ScenarioKind(str, enum.Enum):
    CONFOUNDER = "confounder"
    DOWNSTREAM_MEDIATOR = "downstream_mediator"
    COLLIDER = "collider"
    PRECISION_TRADEOFF = "precision_tradeoff"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        aliases = {"downstreamMediator": cls.DOWNSTREAM_MEDIATOR,
                   "precisionTradeoff": cls.PRECISION_TRADEOFF}
        if value in aliases:
            return aliases[value]
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(
                f"unknown scenario kind {value!r}; expected one of "
                f"{[k.value for k in cls]}") from None


# Column order of the generated frame, per kind.
COLUMNS = {
    ScenarioKind.CONFOUNDER: ("confounder", "treatment", "outcome"),
    ScenarioKind.DOWNSTREAM_MEDIATOR: ("treatment", "mediator", "outcome"),
    ScenarioKind.COLLIDER: ("treatment", "outcome", "collider"),
    ScenarioKind.PRECISION_TRADEOFF: ("aux_predictor", "ad_exposure",
                                      "treatment", "outcome"),
}


@dataclass(frozen=True)
class ScenarioSpec:
    """
    Configuration of one synthetic scenario.

    Attributes
    ----------
    kind : ScenarioKind or str
        Causal structure.
    sample_size : int
        Number of simulated units (>= 1).
    noise_sd : float
        Standard deviation of the outcome noise (> 0).  The confounder
        scenario also uses it as the spread of the confounder.
    true_effect : float
        Causal effect of treatment on outcome.  In the mediator scenario
        it scales the mediator slope (10 * true_effect); the collider
        scenario has no treatment effect and ignores it.
    params : mapping
        Overrides for the scenario's extra parameters
        (see config.SCENARIO_DEFAULTS).
    """

    kind: Any
    sample_size: int
    noise_sd: float
    true_effect: float = 0.0
    params: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "kind", ScenarioKind.parse(self.kind))
        self.validate()
        merged = dict(SCENARIO_DEFAULTS[self.kind.value])
        merged.update(self.params)
        object.__setattr__(self, "params", MappingProxyType(merged))

    def __hash__(self):
        return hash((self.kind, self.sample_size, self.noise_sd,
                     self.true_effect, tuple(sorted(self.params.items()))))

    def validate(self):
        n = self.sample_size
        if not isinstance(n, numbers.Integral) or isinstance(n, bool) or n < 1:
            raise ValidationError(
                f"sample_size must be a positive integer, got {n!r}")
        for name in ("noise_sd", "true_effect"):
            v = getattr(self, name)
            if not isinstance(v, numbers.Real) or not math.isfinite(v):
                raise ValidationError(f"{name} must be a finite number, got {v!r}")
        if self.noise_sd <= 0:
            raise ValidationError(f"noise_sd must be > 0, got {self.noise_sd!r}")
        allowed = SCENARIO_DEFAULTS[self.kind.value]
        unknown = sorted(set(self.params) - set(allowed))
        if unknown:
            raise ValidationError(
                f"unknown parameters {unknown} for {self.kind.value}; "
                f"allowed: {sorted(allowed)}")
        for k, v in self.params.items():
            if not isinstance(v, numbers.Real) or not math.isfinite(v):
                raise ValidationError(f"parameter {k}={v!r} is not a finite number")
            if (k.startswith("p_") and not 0 <= v <= 1) or \
                    (k.endswith("_sd") and v < 0):
                raise ValidationError(f"parameter {k}={v!r} is out of range")

    @property
    def columns(self):
        return COLUMNS[self.kind]

    def with_overrides(self, **changes):
        """Copy of this scenario with some fields replaced."""
        fields = dict(kind=self.kind, sample_size=self.sample_size,
                      noise_sd=self.noise_sd, true_effect=self.true_effect,
                      params=dict(self.params))
        fields.update(changes)
        return ScenarioSpec(**fields)


@dataclass(frozen=True, eq=False)
class Dataset:
    """
    One simulated sample: a record per unit, identical fields in every record.

    The frame is held privately; ``frame`` returns a copy.
    """

    _frame: pd.DataFrame = field(repr=False)
    kind: ScenarioKind
    seed: Any = None

    @property
    def frame(self):
        return self._frame.copy()

    @property
    def columns(self):
        return list(self._frame.columns)

    def column(self, name):
        if name not in self._frame.columns:
            raise ValidationError(
                f"dataset has no field {name!r}; fields: {self.columns}")
        return self._frame[name].to_numpy()

    def records(self):
        """Ordered list of {variable: value} mappings, one per unit."""
        return self._frame.to_dict(orient="records")

    def __len__(self):
        return len(self._frame)

    def __eq__(self, other):
        if not isinstance(other, Dataset):
            return NotImplemented
        return self.kind == other.kind and self._frame.equals(other._frame)


# ---------------------------------------------------------------------------
# Generative models
# ---------------------------------------------------------------------------

def _treat(rng, high, p_high, p_low):
    p = np.where(high, p_high, p_low)
    return (rng.random(len(p)) < p).astype(int)


def _confounder(spec, rng):
    p = spec.params
    n, sd = spec.sample_size, spec.noise_sd
    confounder = rng.normal(0, sd, n)
    treatment = _treat(rng, confounder > 0, p["p_treat_high"], p["p_treat_low"])
    outcome = (p["confounder_effect"] * confounder
               + spec.true_effect * treatment
               + p["intercept"] + rng.normal(0, sd, n))
    return dict(confounder=confounder, treatment=treatment, outcome=outcome)


def _downstream_mediator(spec, rng):
    p = spec.params
    n = spec.sample_size
    treatment = rng.binomial(1, p["p_treat"], n)
    mediator = (rng.normal(p["mediator_mean"], p["mediator_sd"], n)
                + p["mediator_shift"] * treatment)
    # treatment reaches the outcome only through the mediator
    outcome = (p["intercept"] + 10 * spec.true_effect * mediator
               + rng.normal(0, spec.noise_sd, n))
    return dict(treatment=treatment, mediator=mediator, outcome=outcome)


def _collider(spec, rng):
    p = spec.params
    n, sd = spec.sample_size, spec.noise_sd
    treatment = rng.binomial(1, p["p_treat"], n)
    outcome = p["intercept"] + rng.normal(0, sd, n)
    collider = outcome + p["collider_shift"] * treatment + rng.normal(0, sd, n)
    return dict(treatment=treatment, outcome=outcome, collider=collider)


def _precision_tradeoff(spec, rng):
    p = spec.params
    n = spec.sample_size
    aux_predictor = rng.normal(p["aux_mean"], p["aux_sd"], n)
    ad_exposure = rng.binomial(1, p["p_ad"], n)
    treatment = _treat(rng, ad_exposure == 1, p["p_treat_high"], p["p_treat_low"])
    outcome = (p["intercept"] + rng.normal(0, spec.noise_sd, n)
               + spec.true_effect * treatment + aux_predictor)
    return dict(aux_predictor=aux_predictor, ad_exposure=ad_exposure,
                treatment=treatment, outcome=outcome)


GENERATORS = {
    ScenarioKind.CONFOUNDER: _confounder,
    ScenarioKind.DOWNSTREAM_MEDIATOR: _downstream_mediator,
    ScenarioKind.COLLIDER: _collider,
    ScenarioKind.PRECISION_TRADEOFF: _precision_tradeoff,
}


def generate(spec, seed):
    """
    Draw one dataset realizing the scenario's causal structure.

    Parameters
    ----------
    spec : ScenarioSpec
        Scenario configuration (validated on construction).
    seed : int, sequence of int, or numpy.random.SeedSequence
        Explicit seed; the global numpy random state is never used.

    Returns
    -------
    Dataset
        sample_size records with the columns of ``COLUMNS[spec.kind]``.

    Raises
    ------
    ValidationError
        If spec is not a ScenarioSpec or the seed is missing.
    """
    if not isinstance(spec, ScenarioSpec):
        raise ValidationError(f"expected a ScenarioSpec, got {spec!r}")
    if seed is None:
        raise ValidationError("generate needs an explicit seed")
    rng = np.random.default_rng(seed)
    draws = GENERATORS[spec.kind](spec, rng)
    frame = pd.DataFrame({c: draws[c] for c in spec.columns})
    return Dataset(frame, spec.kind, seed)


def make_spec(kind, sample_size=1000, noise_sd=1.0, true_effect=0.0, **params):
    """Keyword-friendly ScenarioSpec constructor."""
    return ScenarioSpec(kind, sample_size, noise_sd, true_effect, params)


def causal_effect(spec):
    """
    Total causal effect of treatment on outcome implied by a spec.

    The collider scenario has none; in the mediator scenario the effect
    runs through the mediator shift (10 * true_effect * mediator_shift,
    which is true_effect at the default shift of 0.1).
    """
    if spec.kind is ScenarioKind.COLLIDER:
        return 0.0
    if spec.kind is ScenarioKind.DOWNSTREAM_MEDIATOR:
        return spec.true_effect * (10 * spec.params["mediator_shift"])
    return float(spec.true_effect)
