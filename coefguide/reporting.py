"""
Plain-text tables for fit reports and interpretation rules.
"""

import pandas as pd


def _fmt(digits):
    return lambda x: f"{x:.{digits}f}"


def format_report(report, digits=4):
    """
    Render a FitReport as a header plus a coefficient table.

    Columns: estimate, std. error and the confidence-interval bounds.
    """
    pct = f"{report.confidence:.0%}"
    table = pd.DataFrame(
        {
            "estimate": [c.estimate for c in report.coefficients.values()],
            "std_error": [c.std_error for c in report.coefficients.values()],
            f"ci_low ({pct})": [c.ci_low for c in report.coefficients.values()],
            f"ci_high ({pct})": [c.ci_high for c in report.coefficients.values()],
        },
        index=pd.Index(list(report.coefficients), name="variable"),
    )
    header = (f"OLS: {report.formula}\n"
              f"N = {report.n_obs}  df = {report.df_resid}  "
              f"residual variance = {report.residual_variance:.{digits}f}")
    return header + "\n" + table.to_string(float_format=_fmt(digits))


def compare_reports(reports, variable, labels=None, digits=4):
    """
    Side-by-side view of one coefficient across several fits.

    Parameters
    ----------
    reports : sequence of FitReport
    variable : str
        Coefficient to compare; every report must contain it.
    labels : sequence of str or None
        Row labels; defaults to each report's formula.
    """
    labels = list(labels) if labels is not None else [r.formula for r in reports]
    rows = []
    for label, r in zip(labels, reports):
        c = r[variable]
        rows.append(dict(model=label, estimate=c.estimate,
                         std_error=c.std_error, ci_low=c.ci_low,
                         ci_high=c.ci_high, p_value=c.p_value))
    table = pd.DataFrame(rows).set_index("model")
    return f"Coefficient on {variable}\n" + \
        table.to_string(float_format=_fmt(digits))


def format_rules(rows):
    """Table of (label, form, rule) rows as returned by rules.standard_rules."""
    table = pd.DataFrame(
        [dict(case=label, form=str(form), change=rule.change_unit,
              kind=rule.delta_kind, delta=str(rule.delta_expression))
         for label, form, rule in rows]
    ).set_index("case")
    return table.to_string()


def format_monte_carlo(result, digits=3):
    """Summary table for the dict returned by ols.monte_carlo."""
    rows = [
        dict(model=label, mean=m["mean"], bias=m["bias"], sd=m["sd"],
             mean_se=m["mean_se"], coverage=m["coverage"])
        for label, m in result["models"].items()
    ]
    table = pd.DataFrame(rows).set_index("model")
    return (f"{result['n_sims']} replications, true effect = "
            f"{result['true_effect']:g}\n"
            + table.to_string(float_format=_fmt(digits)))
