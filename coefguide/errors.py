"""
Exception hierarchy.

ValidationError covers malformed inputs (forms, missing evaluation
points, unknown scenario kinds, bad field names, non-positive sizes).
DegeneracyError covers designs OLS cannot estimate: a rank-deficient
design matrix or too few residual degrees of freedom.
"""


class CoefguideError(Exception):
    """Base class for every error raised by coefguide."""


class ValidationError(CoefguideError, ValueError):
    """Input violates a documented constraint."""


class DegeneracyError(CoefguideError, ArithmeticError):
    """
    OLS cannot be computed for the requested design.

    Attributes
    ----------
    covariates : tuple of str
        Covariates in the attempted fit.
    n_obs : int
        Number of observations.
    n_params : int
        Number of estimated coefficients including the intercept.
    """

    def __init__(self, message, covariates=(), n_obs=None, n_params=None):
        super().__init__(message)
        self.covariates = tuple(covariates)
        self.n_obs = n_obs
        self.n_params = n_params
