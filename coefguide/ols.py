"""
OLS fitting and reporting for scenario datasets.

Fits an outcome on a named set of covariates, reports estimates with
homoskedastic standard errors and Student-t confidence intervals, and
provides the omitted-variable-bias identity and a Monte Carlo driver for
comparing "with" and "without" a control over many seeds.
"""

import math
import warnings
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Tuple

import numpy as np
import pandas as pd
from scipy import stats

from .config import CONFIDENCE_LEVEL, DEFAULT_SEED, INTERCEPT
from .errors import DegeneracyError, ValidationError
from .scenarios import Dataset, ScenarioKind, causal_effect, generate
from .utils import add_const, ols_fit


@dataclass(frozen=True)
class CoefficientEstimate:
    """Point estimate, standard error and confidence interval for one coefficient."""

    estimate: float
    std_error: float
    ci_low: float
    ci_high: float
    df_resid: int

    @property
    def confidence_interval(self):
        return (self.ci_low, self.ci_high)

    @property
    def t_stat(self):
        if self.std_error == 0:
            return math.copysign(math.inf, self.estimate) if self.estimate else math.nan
        return self.estimate / self.std_error

    @property
    def p_value(self):
        """Two-sided p-value for H0: coefficient = 0."""
        t = self.t_stat
        if math.isnan(t):
            return math.nan
        return float(2 * stats.t.sf(abs(t), self.df_resid))

    def covers(self, value):
        return self.ci_low <= value <= self.ci_high

    def is_significant(self, alpha=1 - CONFIDENCE_LEVEL):
        return self.p_value < alpha


@dataclass(frozen=True)
class FitReport:
    """
    Result of one OLS fit.

    Attributes
    ----------
    outcome : str
    covariates : tuple of str
        Covariates in the order given to fit().
    coefficients : mapping
        Name -> CoefficientEstimate, intercept first.
    residual_variance : float
        SSR / (n - p - 1).
    n_obs : int
    df_resid : int
        n - p - 1.
    confidence : float
        Level of the reported intervals.
    """

    outcome: str
    covariates: Tuple[str, ...]
    coefficients: Mapping[str, CoefficientEstimate]
    residual_variance: float
    n_obs: int
    df_resid: int
    confidence: float = CONFIDENCE_LEVEL

    def __getitem__(self, name):
        try:
            return self.coefficients[name]
        except KeyError:
            raise KeyError(
                f"{name!r} not in fit of {self.outcome} on "
                f"{list(self.covariates)}") from None

    def __contains__(self, name):
        return name in self.coefficients

    def estimate(self, name):
        return self[name].estimate

    @property
    def formula(self):
        rhs = " + ".join(self.covariates) if self.covariates else "1"
        return f"{self.outcome} ~ {rhs}"

    def to_frame(self):
        """One row per coefficient: estimate, std_error, ci_low, ci_high, t, p."""
        rows = [
            dict(variable=name, estimate=c.estimate, std_error=c.std_error,
                 ci_low=c.ci_low, ci_high=c.ci_high, t_stat=c.t_stat,
                 p_value=c.p_value)
            for name, c in self.coefficients.items()
        ]
        return pd.DataFrame(rows).set_index("variable")


def _as_frame(dataset):
    if isinstance(dataset, Dataset):
        return dataset.frame
    if isinstance(dataset, pd.DataFrame):
        return dataset
    records = list(dataset)
    if records:
        fields = set(records[0])
        for i, r in enumerate(records):
            if set(r) != fields:
                raise ValidationError(
                    f"record {i} has fields {sorted(r)}, expected "
                    f"{sorted(fields)}")
    return pd.DataFrame.from_records(records)


def estimate(X, y, names=()):
    """
    OLS estimation: beta_hat = (X'X)^{-1} X'y.

    Parameters
    ----------
    X : ndarray, shape (n, k)
        Design matrix (include a constant column for intercept).
    y : ndarray, shape (n,)
        Outcome vector.
    names : sequence of str
        Covariate names for error messages.

    Returns
    -------
    dict with keys:
        beta      : coefficient vector
        se        : standard errors (homoskedastic)
        residuals : OLS residuals
        s2        : estimated error variance
        fitted    : fitted values X @ beta
        df_resid  : n - k
    """
    b, se, e, s2 = ols_fit(X, y, names=names)
    return dict(beta=b, se=se, residuals=e, s2=s2, fitted=X @ b,
                df_resid=X.shape[0] - X.shape[1])


def fit(dataset, outcome, covariates=()):
    """
    Fit outcome ~ 1 + covariates by OLS.

    Parameters
    ----------
    dataset : Dataset, pandas.DataFrame, or sequence of mappings
        Records with identical fields.
    outcome : str
        Outcome field.
    covariates : sequence of str
        Ordered covariate fields, no duplicates; may be empty.

    Returns
    -------
    FitReport

    Raises
    ------
    ValidationError
        Unknown or duplicated names, the outcome or the reserved
        intercept name listed as a covariate, or non-numeric / missing
        values.
    DegeneracyError
        n <= p + 1, or collinear covariates making X'X singular.
    """
    if isinstance(covariates, str):
        raise ValidationError(
            f"covariates must be a sequence of names, got the string {covariates!r}")
    covariates = list(covariates)
    frame = _as_frame(dataset)

    dupes = sorted({c for c in covariates if covariates.count(c) > 1})
    if dupes:
        raise ValidationError(f"duplicate covariates {dupes}")
    if outcome in covariates:
        raise ValidationError(f"outcome {outcome!r} is also listed as a covariate")
    if INTERCEPT in covariates:
        raise ValidationError(
            f"{INTERCEPT!r} is reserved for the constant term; rename that field")
    missing = [c for c in [outcome] + covariates if c not in frame.columns]
    if missing:
        raise ValidationError(
            f"fields {missing} not in dataset; available: {list(frame.columns)}")

    data = frame[[outcome] + covariates]
    bad = [c for c in data.columns
           if not (pd.api.types.is_numeric_dtype(data[c])
                   or pd.api.types.is_bool_dtype(data[c]))]
    if bad:
        raise ValidationError(f"fields {bad} are not numeric")
    if data.isna().to_numpy().any():
        raise ValidationError(
            f"missing values in {data.columns[data.isna().any()].tolist()}")

    y = data[outcome].to_numpy(dtype=float)
    X = add_const(data[covariates].to_numpy(dtype=float))
    res = estimate(X, y, names=covariates)

    df = res["df_resid"]
    q = stats.t.ppf(0.5 + CONFIDENCE_LEVEL / 2, df)
    coefficients = {}
    for name, b, se in zip([INTERCEPT] + covariates, res["beta"], res["se"]):
        coefficients[name] = CoefficientEstimate(
            estimate=float(b), std_error=float(se),
            ci_low=float(b - q * se), ci_high=float(b + q * se),
            df_resid=df,
        )
    return FitReport(
        outcome=outcome,
        covariates=tuple(covariates),
        coefficients=MappingProxyType(coefficients),
        residual_variance=float(res["s2"]),
        n_obs=len(y),
        df_resid=df,
    )


def fit_pair(dataset, outcome, base, extra):
    """Fit without and with the extra covariates: (short, long)."""
    base = list(base)
    extra = [extra] if isinstance(extra, str) else list(extra)
    return fit(dataset, outcome, base), fit(dataset, outcome, base + extra)


def ovb_formula(beta_omitted, cov_included_omitted, var_included):
    """
    Population bias of a one-regressor short regression:
    beta_omitted * Cov(included, omitted) / Var(included).
    """
    if var_included <= 0:
        raise ValidationError(
            f"variance of the included regressor must be > 0, got {var_included!r}")
    return beta_omitted * cov_included_omitted / var_included


def confounder_ovb(spec):
    """
    Expected bias of outcome ~ treatment when the confounder is left out.

    With C ~ N(0, s^2) and P(T=1) = p_high if C > 0 else p_low:

        Cov(T, C) = (p_high - p_low) * s / sqrt(2 pi)
        Var(T)    = pbar * (1 - pbar),   pbar = (p_high + p_low) / 2

    and the confounder enters the outcome with slope confounder_effect.

    Parameters
    ----------
    spec : ScenarioSpec
        A confounder scenario.

    Returns
    -------
    float
        Additive bias in the short-regression treatment coefficient.
    """
    if spec.kind is not ScenarioKind.CONFOUNDER:
        raise ValidationError(
            f"closed-form omitted-variable bias needs a confounder scenario, "
            f"got {spec.kind.value}")
    p = spec.params
    p_high, p_low = p["p_treat_high"], p["p_treat_low"]
    pbar = (p_high + p_low) / 2
    cov = (p_high - p_low) * spec.noise_sd / math.sqrt(2 * math.pi)
    return ovb_formula(p["confounder_effect"], cov, pbar * (1 - pbar))


def omitted_variable_bias(dataset, outcome, included, omitted):
    """
    Sample OVB decomposition for leaving one variable out.

    short = long + gamma * delta holds exactly in sample, where gamma is
    the long-regression coefficient on the omitted variable and delta the
    coefficient on the focal variable from regressing the omitted
    variable on the included ones.  The focal variable is included[0].

    Returns
    -------
    dict with keys:
        short, long : FitReport
        gamma, delta : floats
        bias        : gamma * delta
        difference  : short - long coefficient on the focal variable
    """
    included = [included] if isinstance(included, str) else list(included)
    if not included:
        raise ValidationError("need at least one included covariate")
    focal = included[0]
    short, long_ = fit_pair(dataset, outcome, included, omitted)
    aux = fit(dataset, omitted, included)
    gamma = long_.estimate(omitted)
    delta = aux.estimate(focal)
    return dict(
        short=short,
        long=long_,
        gamma=gamma,
        delta=delta,
        bias=gamma * delta,
        difference=short.estimate(focal) - long_.estimate(focal),
    )


def _model_labels(models):
    if hasattr(models, "items"):
        return {label: list(cov) for label, cov in models.items()}
    return {(" + ".join(cov) or "(none)"): list(cov) for cov in models}


def monte_carlo(spec, models, n_sims=500, seed=DEFAULT_SEED,
                focal="treatment", outcome="outcome"):
    """
    Sampling distribution of the focal coefficient under several models.

    Each replication draws a fresh dataset from a child of
    ``numpy.random.SeedSequence(seed)`` and fits every model on it.

    Parameters
    ----------
    spec : ScenarioSpec
    models : mapping label -> covariates, or sequence of covariate lists
        Every model must include the focal covariate.
    n_sims : int
        Number of replications.
    seed : int
        Root seed.
    focal, outcome : str
        Coefficient tracked and outcome field.

    Returns
    -------
    dict with keys:
        true_effect : causal effect of focal implied by the scenario
        n_sims      : replications run
        models      : label -> dict(estimates, std_errors, covered,
                      mean, bias, sd, mean_se, coverage, n_failed)
    """
    if not isinstance(n_sims, int) or n_sims < 1:
        raise ValidationError(f"n_sims must be a positive integer, got {n_sims!r}")
    labelled = _model_labels(models)
    for label, cov in labelled.items():
        if focal not in cov:
            raise ValidationError(f"model {label!r} does not include {focal!r}")

    truth = causal_effect(spec)
    est = {label: np.full(n_sims, np.nan) for label in labelled}
    ses = {label: np.full(n_sims, np.nan) for label in labelled}
    covered = {label: np.zeros(n_sims, dtype=bool) for label in labelled}

    children = np.random.SeedSequence(seed).spawn(n_sims)
    for sim, child in enumerate(children):
        data = generate(spec, child)
        for label, cov in labelled.items():
            try:
                c = fit(data, outcome, cov)[focal]
            except DegeneracyError:
                continue
            est[label][sim] = c.estimate
            ses[label][sim] = c.std_error
            covered[label][sim] = c.covers(truth)

    out = {}
    n_failed_total = 0
    for label in labelled:
        ok = ~np.isnan(est[label])
        n_failed = int(n_sims - ok.sum())
        n_failed_total += n_failed
        valid = est[label][ok]
        out[label] = dict(
            estimates=valid,
            std_errors=ses[label][ok],
            covered=covered[label][ok],
            mean=float(np.mean(valid)) if ok.any() else math.nan,
            bias=float(np.mean(valid) - truth) if ok.any() else math.nan,
            sd=float(np.std(valid, ddof=1)) if ok.sum() > 1 else math.nan,
            mean_se=float(np.mean(ses[label][ok])) if ok.any() else math.nan,
            coverage=float(np.mean(covered[label][ok])) if ok.any() else math.nan,
            n_failed=n_failed,
        )
    if n_failed_total:
        warnings.warn(
            f"{n_failed_total} model fits across {n_sims} replications were "
            f"degenerate and were dropped", RuntimeWarning, stacklevel=2)

    return dict(true_effect=truth, n_sims=n_sims, models=out)
