"""Package-wide constants.

Every tuneable number used by the rule engine, the scenario generators
and the OLS reporter lives here so that scripts and tests import a
single source of truth.
"""

# ---------------------------------------------------------------------------
# Inference
# ---------------------------------------------------------------------------

# Two-sided confidence level for the reported coefficient intervals.
CONFIDENCE_LEVEL = 0.95

# Smallest allowed ratio of the smallest to the largest eigenvalue of X'X
# (the squared singular values of X).  Below it the inverse, and with it
# every standard error, is numerically meaningless.
RANK_TOL = 1e-14

# Label used for the constant column in every FitReport.
INTERCEPT = "Intercept"

# ---------------------------------------------------------------------------
# Interpretation rules
# ---------------------------------------------------------------------------

# A "1% increase" in x moves x to (1 + ONE_PERCENT) * x.
ONE_PERCENT = 0.01

# Proportional changes in a log outcome are reported in percent.
PERCENT_SCALE = 100

# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------

# Seed used by the application scripts when none is given.
DEFAULT_SEED = 42

# Scenario-specific extra parameters.  A ScenarioSpec may override any of
# these through its ``params`` mapping; unknown keys are rejected.
SCENARIO_DEFAULTS = {
    "confounder": {
        "confounder_effect": 100.0,
        "p_treat_high": 0.8,
        "p_treat_low": 0.2,
        "intercept": 50.0,
    },
    "downstream_mediator": {
        "p_treat": 0.5,
        "mediator_mean": 0.5,
        "mediator_sd": 0.1,
        "mediator_shift": 0.1,
        "intercept": 50.0,
    },
    "collider": {
        "p_treat": 0.5,
        "collider_shift": 10.0,
        "intercept": 50.0,
    },
    "precision_tradeoff": {
        "aux_mean": 100.0,
        "aux_sd": 10.0,
        "p_ad": 0.5,
        "p_treat_high": 0.8,
        "p_treat_low": 0.2,
        "intercept": 50.0,
    },
}
