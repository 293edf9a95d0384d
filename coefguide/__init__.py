"""
coefguide -- reading regression coefficients and choosing controls.

Two pieces, both pure functions over numpy / scipy / pandas:

* rules: differentiate a declared regression form to get the
  marginal-effect rule for a covariate (linear, log, polynomial and
  interaction terms, level or log outcome), with the exact discrete
  change obtained by integrating that derivative.
* scenarios + ols: seeded synthetic data for the confounder,
  downstream-mediator, collider and precision-tradeoff structures, and
  OLS fits with and without a given control.
"""

from .errors import CoefguideError, ValidationError, DegeneracyError
from .forms import RegressionForm, Term, parse_form
from .rules import InterpretationRule, derive_rule, standard_rules
from .scenarios import (ScenarioKind, ScenarioSpec, Dataset, generate,
                        make_spec, causal_effect)
from .ols import (CoefficientEstimate, FitReport, fit, fit_pair,
                  ovb_formula, confounder_ovb, omitted_variable_bias,
                  monte_carlo)
from . import reporting

__all__ = [
    "CoefguideError",
    "ValidationError",
    "DegeneracyError",
    "RegressionForm",
    "Term",
    "parse_form",
    "InterpretationRule",
    "derive_rule",
    "standard_rules",
    "ScenarioKind",
    "ScenarioSpec",
    "Dataset",
    "generate",
    "make_spec",
    "causal_effect",
    "CoefficientEstimate",
    "FitReport",
    "fit",
    "fit_pair",
    "ovb_formula",
    "confounder_ovb",
    "omitted_variable_bias",
    "monte_carlo",
    "reporting",
]
