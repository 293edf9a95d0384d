"""OLS fitting, reports, the OVB identity and the scenario conclusions."""

import warnings

import numpy as np
import pandas as pd
import pytest
from scipy import stats

from coefguide import (DegeneracyError, ScenarioSpec, ValidationError, fit,
                       fit_pair, generate, monte_carlo, omitted_variable_bias,
                       ovb_formula, confounder_ovb)
from coefguide.config import INTERCEPT


class TestFit:

    def test_matches_closed_form(self, confounder_data):
        report = fit(confounder_data, "outcome", ["treatment", "confounder"])
        frame = confounder_data.frame
        X = np.column_stack([np.ones(len(frame)), frame["treatment"],
                             frame["confounder"]])
        y = frame["outcome"].to_numpy()
        b = np.linalg.solve(X.T @ X, X.T @ y)
        e = y - X @ b
        s2 = e @ e / (len(y) - 3)
        se = np.sqrt(np.diag(s2 * np.linalg.inv(X.T @ X)))

        assert list(report.coefficients) == [INTERCEPT, "treatment", "confounder"]
        assert report.df_resid == len(y) - 3
        assert report.residual_variance == pytest.approx(s2)
        for j, name in enumerate(report.coefficients):
            assert report[name].estimate == pytest.approx(b[j])
            assert report[name].std_error == pytest.approx(se[j])

    def test_confidence_interval_uses_student_t(self, confounder_data):
        report = fit(confounder_data, "outcome", ["treatment"])
        c = report["treatment"]
        q = stats.t.ppf(0.975, report.df_resid)
        assert c.ci_high - c.estimate == pytest.approx(q * c.std_error)
        assert c.estimate - c.ci_low == pytest.approx(q * c.std_error)

    def test_intercept_only(self, confounder_data):
        report = fit(confounder_data, "outcome", [])
        assert report.estimate(INTERCEPT) == \
            pytest.approx(confounder_data.column("outcome").mean())
        assert report.formula == "outcome ~ 1"

    def test_accepts_records_and_frames(self):
        records = [{"x": float(i), "y": 2.0 * i + (-1) ** i} for i in range(10)]
        a = fit(records, "y", ["x"])
        b = fit(pd.DataFrame(records), "y", ["x"])
        assert a.estimate("x") == pytest.approx(b.estimate("x"))

    def test_to_frame(self, confounder_data):
        frame = fit(confounder_data, "outcome", ["treatment"]).to_frame()
        assert list(frame.index) == [INTERCEPT, "treatment"]
        assert {"estimate", "std_error", "ci_low", "ci_high", "p_value"} <= \
            set(frame.columns)


class TestFitValidation:

    def test_unknown_field(self, confounder_data):
        with pytest.raises(ValidationError, match="mediator"):
            fit(confounder_data, "outcome", ["mediator"])

    def test_unknown_outcome(self, confounder_data):
        with pytest.raises(ValidationError):
            fit(confounder_data, "wage", ["treatment"])

    def test_duplicate_covariates(self, confounder_data):
        with pytest.raises(ValidationError, match="duplicate"):
            fit(confounder_data, "outcome", ["treatment", "treatment"])

    def test_outcome_as_covariate(self, confounder_data):
        with pytest.raises(ValidationError):
            fit(confounder_data, "outcome", ["outcome"])

    def test_intercept_name_is_reserved(self):
        frame = pd.DataFrame({"Intercept": [1.0, 2.0, 4.0, 3.0],
                              "y": [1.0, 3.0, 2.0, 5.0]})
        with pytest.raises(ValidationError, match="reserved"):
            fit(frame, "y", [INTERCEPT])

    def test_string_instead_of_list(self, confounder_data):
        with pytest.raises(ValidationError):
            fit(confounder_data, "outcome", "treatment")

    def test_ragged_records(self):
        with pytest.raises(ValidationError, match="record 1"):
            fit([{"x": 1.0, "y": 1.0}, {"x": 2.0}], "y", ["x"])

    def test_missing_values(self):
        frame = pd.DataFrame({"x": [1.0, 2.0, np.nan, 4.0], "y": [1.0, 2.0, 3.0, 4.0]})
        with pytest.raises(ValidationError, match="missing"):
            fit(frame, "y", ["x"])

    def test_non_numeric(self):
        frame = pd.DataFrame({"x": ["a", "b", "c", "d"], "y": [1.0, 2.0, 3.0, 4.0]})
        with pytest.raises(ValidationError, match="numeric"):
            fit(frame, "y", ["x"])


class TestDegeneracy:

    def test_perfectly_collinear_pair(self):
        rng = np.random.default_rng(0)
        x = rng.normal(size=50)
        frame = pd.DataFrame({"x": x, "x2": 2 * x, "y": x + rng.normal(size=50)})
        with pytest.raises(DegeneracyError) as info:
            fit(frame, "y", ["x", "x2"])
        assert info.value.covariates == ("x", "x2")
        assert info.value.n_params == 3

    def test_constant_covariate_collinear_with_intercept(self):
        frame = pd.DataFrame({"c": [1.0] * 6, "y": [1.0, 3.0, 2.0, 5.0, 4.0, 6.0]})
        with pytest.raises(DegeneracyError):
            fit(frame, "y", ["c"])

    def test_near_collinear_pair(self):
        # X is invertible but X'X is singular in double precision
        rng = np.random.default_rng(3)
        x = rng.normal(size=200)
        frame = pd.DataFrame({"x": x, "x2": x + 1e-9 * rng.normal(size=200),
                              "y": x + rng.normal(size=200)})
        with pytest.raises(DegeneracyError) as info:
            fit(frame, "y", ["x", "x2"])
        assert info.value.covariates == ("x", "x2")
        assert info.value.n_obs == 200
        assert info.value.n_params == 3

    def test_mildly_collinear_pair_still_fits(self):
        rng = np.random.default_rng(3)
        x = rng.normal(size=200)
        frame = pd.DataFrame({"x": x, "x2": x + 1e-3 * rng.normal(size=200),
                              "y": x + rng.normal(size=200)})
        report = fit(frame, "y", ["x", "x2"])
        for c in report.coefficients.values():
            assert np.isfinite(c.std_error) and c.std_error > 0
            assert np.isfinite(c.ci_low) and np.isfinite(c.ci_high)

    @pytest.mark.parametrize("n", [2, 3])
    def test_too_few_observations(self, n):
        data = generate(ScenarioSpec("precision_tradeoff", n, 1.0, 1.0), 5)
        with pytest.raises(DegeneracyError) as info:
            fit(data, "outcome", ["treatment", "aux_predictor"])
        assert info.value.n_obs == n

    def test_degeneracy_is_arithmetic_error(self):
        with pytest.raises(ArithmeticError):
            fit([{"x": 1.0, "y": 2.0}], "y", ["x"])


class TestScenarioConclusions:

    def test_confounder_bias_and_adjustment(self, confounder_data, confounder_spec):
        short, long_ = fit_pair(confounder_data, "outcome", ["treatment"], "confounder")
        truth = confounder_spec.true_effect
        assert short.estimate("treatment") - truth > 50, (
            "omitting a positively correlated confounder should bias upward")
        assert abs(long_.estimate("treatment") - truth) < 0.5

    def test_mediator_absorbs_the_effect(self, mediator_data):
        short, long_ = fit_pair(mediator_data, "outcome", ["treatment"], "mediator")
        assert short.estimate("treatment") == pytest.approx(5.0, abs=1.0)
        assert abs(long_.estimate("treatment")) < 0.3
        assert abs(long_.estimate("treatment")) < abs(short.estimate("treatment")) / 5

    def test_collider_creates_spurious_effect(self, collider_data):
        short, long_ = fit_pair(collider_data, "outcome", ["treatment"], "collider")
        assert abs(short.estimate("treatment")) < 0.2
        assert long_.estimate("treatment") < -4.0
        assert long_["treatment"].is_significant()
        assert long_["treatment"].p_value < 1e-6

    def test_precision_tradeoff(self, precision_data):
        base = fit(precision_data, "outcome", ["treatment"])
        sharp = fit(precision_data, "outcome", ["treatment", "aux_predictor"])
        blurred = fit(precision_data, "outcome",
                      ["treatment", "aux_predictor", "ad_exposure"])
        se = lambda r: r["treatment"].std_error
        assert se(sharp) < se(base) / 3
        assert se(blurred) > se(sharp)


class TestOmittedVariableBias:

    def test_formula(self):
        assert ovb_formula(2.0, 0.5, 0.25) == pytest.approx(4.0)
        with pytest.raises(ValidationError):
            ovb_formula(2.0, 0.5, 0.0)

    def test_confounder_closed_form(self, confounder_spec):
        # 100 * 0.6 / sqrt(2 pi) / 0.25 with the default parameters
        expected = 100 * 0.6 / np.sqrt(2 * np.pi) / 0.25
        assert confounder_ovb(confounder_spec) == pytest.approx(expected)
        assert confounder_ovb(confounder_spec.with_overrides(
            params={"p_treat_high": 0.5, "p_treat_low": 0.5})) == 0.0

    def test_confounder_ovb_needs_a_confounder(self):
        with pytest.raises(ValidationError, match="confounder"):
            confounder_ovb(ScenarioSpec("collider", 10, 1.0))

    def test_sample_identity(self, confounder_data):
        res = omitted_variable_bias(confounder_data, "outcome",
                                    ["treatment"], "confounder")
        assert res["difference"] == pytest.approx(res["bias"], abs=1e-8)
        assert res["gamma"] == pytest.approx(100, abs=1)
        assert res["delta"] > 0


class TestMonteCarlo:

    def test_bias_direction_and_coverage(self):
        spec = ScenarioSpec("confounder", 200, 1.0, 2.0)
        res = monte_carlo(spec, {"short": ["treatment"],
                                 "long": ["treatment", "confounder"]},
                          n_sims=200, seed=123)
        short, long_ = res["models"]["short"], res["models"]["long"]
        assert res["true_effect"] == 2.0
        assert short["bias"] == pytest.approx(confounder_ovb(spec), rel=0.05)
        assert short["coverage"] < 0.05
        assert abs(long_["bias"]) < 0.05
        assert 0.88 <= long_["coverage"] <= 0.99, (
            f"95% intervals covered the truth in {long_['coverage']:.1%} of runs")
        assert long_["sd"] == pytest.approx(long_["mean_se"], rel=0.2)

    def test_reproducible(self):
        spec = ScenarioSpec("collider", 50, 1.0)
        models = [["treatment"], ["treatment", "collider"]]
        a = monte_carlo(spec, models, n_sims=20, seed=9)
        b = monte_carlo(spec, models, n_sims=20, seed=9)
        for label in a["models"]:
            np.testing.assert_array_equal(a["models"][label]["estimates"],
                                          b["models"][label]["estimates"])
        assert set(a["models"]) == {"treatment", "treatment + collider"}

    def test_degenerate_replications_are_dropped_with_warning(self):
        # with n=3 a draw where every unit shares one treatment value is common
        spec = ScenarioSpec("collider", 3, 1.0)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            res = monte_carlo(spec, [["treatment"]], n_sims=40, seed=1)
        m = res["models"]["treatment"]
        assert m["n_failed"] > 0
        assert len(m["estimates"]) == 40 - m["n_failed"]
        assert any(issubclass(w.category, RuntimeWarning) for w in caught)

    def test_model_must_include_focal(self):
        with pytest.raises(ValidationError):
            monte_carlo(ScenarioSpec("collider", 50, 1.0), [["collider"]], n_sims=2)
