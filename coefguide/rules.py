"""
Interpretation rules for regression coefficients.

The rule for a focal covariate x comes from differentiating the linear
predictor of a RegressionForm:

    linear     b*x          ->  b
    log        b*log(x)     ->  b/x
    polynomial sum b_k x^k  ->  sum k*b_k*x^(k-1)
    interaction b*x*z       ->  b*z

If x enters in logs the natural change is "1% increase" (dx = 0.01x),
so the delta is 0.01*x*dy/dx and x cancels for a pure log term.  If the
outcome is log(y) the derivative is a proportional change in y and is
reported in percent (times 100).

The derivative is exact for infinitesimal changes only.  For the
discrete one-unit / one-percent change the exact figure is the integral
of the derivative across the interval, e.g. for b*log(x)

    integral_{x}^{1.01x} b/t dt = b*log(1.01)  ~= 0.00995*b

against the conventional first-order figure b/100.
"""

import math
import numbers
from dataclasses import dataclass
from typing import Optional, Tuple

from .config import ONE_PERCENT, PERCENT_SCALE
from .errors import ValidationError
from .expressions import Expression
from .forms import RegressionForm, parse_form

ADDITIVE = "additive"
PERCENT = "percent"
UNIT_INCREASE = "unit-increase"
ONE_PERCENT_INCREASE = "one-percent-increase"


@dataclass(frozen=True)
class InterpretationRule:
    """
    How a change in one covariate maps to a change in the outcome.

    Attributes
    ----------
    focal : str
        Covariate being changed (all others held fixed).
    outcome : str
        Outcome name.
    delta_expression : Expression
        Change in the outcome for the conventional change in focal,
        to first order.
    delta_kind : str
        "additive" (units of y) or "percent" (percent change in y).
    change_unit : str
        "unit-increase" or "one-percent-increase".
    derivative : Expression
        Partial derivative of the linear predictor w.r.t. focal.
    evaluation_point : tuple of (str, float)
        Covariate values the figures were evaluated at.
    approximate : float or None
        delta_expression evaluated at the point (first-order figure).
    exact : float or None
        Exact change for the discrete unit / 1% change.
    """

    focal: str
    outcome: str
    delta_expression: Expression
    delta_kind: str
    change_unit: str
    derivative: Expression
    evaluation_point: Tuple[Tuple[str, float], ...] = ()
    approximate: Optional[float] = None
    exact: Optional[float] = None

    @property
    def is_percent(self):
        return self.delta_kind == PERCENT

    def describe(self):
        """One-sentence reading of the rule, with figures when available."""
        change = ("A one-unit increase" if self.change_unit == UNIT_INCREASE
                  else "A 1% increase")
        unit = "%" if self.is_percent else ""
        text = (f"{change} in {self.focal} is associated with a "
                f"{self.delta_expression}{unit} change in {self.outcome}")
        needed = self.delta_expression.variables()
        if needed:
            at = ", ".join(f"{k}={v:g}" for k, v in self.evaluation_point
                           if k in needed)
            text += f" (evaluated at {at})"
        if self.approximate is not None:
            text += (f"; {self.approximate:.4g}{unit} (approximate), "
                     f"{self.exact:.4g}{unit} (exact)")
        return text

    def __str__(self):
        return self.describe()


def _coefficient_map(form, coefficients):
    if coefficients is None:
        return None
    if hasattr(coefficients, "keys"):
        return dict(coefficients)
    values = list(coefficients)
    names = form.coefficient_names()
    if len(values) != len(names):
        raise ValidationError(
            f"expected {len(names)} coefficients {names}, got {len(values)}")
    return dict(zip(names, values))


def _expm1(x):
    # exp overflows above ~709.78 log points; the percent change is unbounded
    try:
        return math.expm1(x)
    except OverflowError:
        return math.inf


def derive_rule(form, focal, evaluation_point=None, coefficients=None):
    """
    Derive the interpretation rule for one covariate of a regression form.

    Parameters
    ----------
    form : RegressionForm or str
        Functional form (a formula string is parsed with parse_form).
    focal : str
        Declared covariate whose change is interpreted.
    evaluation_point : mapping or None
        Current values of every variable the rule depends on: the value
        of x for a polynomial slope, the held-fixed value of z for an
        x:z interaction.  Required whenever the rule depends on them.
    coefficients : mapping or sequence or None
        Coefficient values (by name, or in coefficient_names() order).
        When given, the approximate and exact figures are computed.

    Returns
    -------
    InterpretationRule

    Raises
    ------
    ValidationError
        Unknown focal variable, a missing evaluation point or
        coefficient, or a non-positive value under a log.
    """
    if isinstance(form, str):
        form = parse_form(form)
    if not isinstance(form, RegressionForm):
        raise ValidationError(f"expected a RegressionForm, got {form!r}")
    if focal not in form.variables():
        raise ValidationError(
            f"{focal!r} is not a declared covariate of {form}; "
            f"declared: {form.variables()}")

    derivative = form.linear_predictor().derivative(focal)

    if form.main_term(focal).transform == "log":
        change_unit = ONE_PERCENT_INCREASE
        delta = derivative.times_variable(focal).scale(ONE_PERCENT)
    else:
        change_unit = UNIT_INCREASE
        delta = derivative
    if form.outcome_transform == "log":
        delta_kind = PERCENT
        delta = delta.scale(PERCENT_SCALE)
    else:
        delta_kind = ADDITIVE

    point = dict(evaluation_point or {})
    missing = [v for v in delta.variables() if v not in point]
    if missing:
        raise ValidationError(
            f"the rule for {focal!r} is {delta}, which depends on "
            f"{missing}; supply their values in evaluation_point")
    for k, v in point.items():
        if not isinstance(v, numbers.Real) or not math.isfinite(v):
            raise ValidationError(f"evaluation point {k}={v!r} is not a finite number")
        term = form.main_term(k)
        if term is not None and term.transform == "log" and v <= 0:
            raise ValidationError(f"{k} enters in logs and must be > 0, got {v!r}")

    approximate = exact = None
    coefs = _coefficient_map(form, coefficients)
    if coefs is not None:
        approximate = delta.evaluate(coefs, point)
        if change_unit == ONE_PERCENT_INCREASE:
            integral = derivative.integrate(
                focal, point.get(focal), coefs, point, ratio=1 + ONE_PERCENT)
        else:
            integral = derivative.integrate(
                focal, point.get(focal), coefs, point, step=1)
        if delta_kind == PERCENT:
            exact = PERCENT_SCALE * _expm1(integral)
        else:
            exact = integral

    return InterpretationRule(
        focal=focal,
        outcome=form.outcome,
        delta_expression=delta,
        delta_kind=delta_kind,
        change_unit=change_unit,
        derivative=derivative,
        evaluation_point=tuple(sorted(point.items())),
        approximate=approximate,
        exact=exact,
    )


# Canonical textbook cases: (label, formula, focal, evaluation point).
STANDARD_FORMS = [
    ("level-level", "y ~ x", "x", {}),
    ("level-log", "y ~ log(x)", "x", {}),
    ("log-level", "log(y) ~ x", "x", {}),
    ("log-log", "log(y) ~ log(x)", "x", {}),
    ("quadratic", "y ~ x + I(x^2)", "x", {"x": 1.0}),
    ("interaction", "y ~ x + z + x:z", "x", {"z": 1.0}),
    ("log-quadratic", "log(y) ~ x + I(x^2)", "x", {"x": 1.0}),
    ("log-interaction", "log(y) ~ x + z + x:z", "x", {"z": 1.0}),
]


def standard_rules(coefficients=None):
    """
    The standard coefficient-interpretation table.

    Returns
    -------
    list of (label, RegressionForm, InterpretationRule)
    """
    rows = []
    for label, formula, focal, point in STANDARD_FORMS:
        form = parse_form(formula)
        coefs = None
        if coefficients is not None:
            coefs = {b: coefficients.get(b, 0.0)
                     for b in form.coefficient_names()}
        rows.append((label, form, derive_rule(form, focal, point, coefs)))
    return rows
