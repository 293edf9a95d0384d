"""
Linear-algebra helpers shared by the fitter and the Monte Carlo tools.
"""

import numpy as np

from .config import RANK_TOL
from .errors import DegeneracyError


def add_const(x):
    """
    Prepend a column of ones (intercept) to the design matrix.

    Parameters
    ----------
    x : ndarray
        1-d array, 2-d matrix of regressors, or an (n, 0) matrix for an
        intercept-only model.

    Returns
    -------
    X : ndarray, shape (n, k+1)
        Design matrix with leading ones column.
    """
    x = np.asarray(x, dtype=float)
    x = np.atleast_2d(x).T if x.ndim == 1 else x
    return np.column_stack([np.ones(x.shape[0]), x])


def ols_fit(X, y, names=()):
    """
    OLS estimation via least squares on the design matrix.

    Parameters
    ----------
    X : ndarray, shape (n, k)
        Design matrix (should include a constant column if an intercept
        is desired).
    y : ndarray, shape (n,)
        Outcome vector.
    names : sequence of str
        Covariate names, only used to make DegeneracyError messages
        diagnosable.

    Returns
    -------
    b : ndarray, shape (k,)
        Coefficient estimates  beta_hat = (X'X)^{-1} X'y.
    se : ndarray, shape (k,)
        Homoskedastic standard errors.
    e : ndarray, shape (n,)
        Residuals  y - X @ b.
    s2 : float
        Estimated error variance  e'e / (n - k).

    Raises
    ------
    DegeneracyError
        If n <= k (no residual degrees of freedom) or X'X is singular in
        floating point (collinear or constant covariates).
    """
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float)
    n, k = X.shape
    if n <= k:
        raise DegeneracyError(
            f"need more observations than coefficients: n={n}, "
            f"p+1={k} for covariates {list(names)}",
            covariates=names, n_obs=n, n_params=k,
        )
    U, sv, Vt = np.linalg.svd(X, full_matrices=False)
    # X'X has eigenvalues sv**2; judge its conditioning, not that of X
    if not sv[0] > 0 or (sv[-1] / sv[0]) ** 2 <= RANK_TOL:
        raise DegeneracyError(
            f"X'X is singular (condition number "
            f"{(sv[0] / sv[-1]) ** 2 if sv[-1] > 0 else np.inf:.3g}); "
            f"covariates {list(names)} are collinear or constant "
            f"(n={n}, p+1={k})",
            covariates=names, n_obs=n, n_params=k,
        )
    b = Vt.T @ ((U.T @ y) / sv)
    e = y - X @ b
    s2 = (e @ e) / (n - k)
    # (X'X)^{-1} = V diag(1/sv^2) V'
    var = s2 * np.sum((Vt / sv[:, None]) ** 2, axis=0)
    if not np.all(np.isfinite(var)):
        raise DegeneracyError(
            f"non-finite coefficient variances for covariates {list(names)} "
            f"(n={n}, p+1={k})",
            covariates=names, n_obs=n, n_params=k,
        )
    se = np.sqrt(var)
    return b, se, e, s2
