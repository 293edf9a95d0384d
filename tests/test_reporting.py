"""Text rendering of reports, comparisons and rule tables."""

from coefguide import ScenarioSpec, fit, fit_pair, monte_carlo, standard_rules
from coefguide.reporting import (compare_reports, format_monte_carlo,
                                 format_report, format_rules)


class TestReporting:

    def test_format_report_lists_every_coefficient(self, confounder_data):
        report = fit(confounder_data, "outcome", ["treatment", "confounder"])
        text = format_report(report)
        assert text.startswith("OLS: outcome ~ treatment + confounder")
        for name in ("Intercept", "treatment", "confounder", "std_error",
                     "ci_low (95%)", "ci_high (95%)"):
            assert name in text
        assert f"N = {len(confounder_data)}" in text

    def test_compare_reports(self, collider_data):
        short, long_ = fit_pair(collider_data, "outcome", ["treatment"], "collider")
        text = compare_reports([short, long_], "treatment",
                               labels=["without", "with"])
        assert text.splitlines()[0] == "Coefficient on treatment"
        assert "without" in text and "with" in text
        assert "p_value" in text

    def test_compare_reports_default_labels(self, collider_data):
        short, long_ = fit_pair(collider_data, "outcome", ["treatment"], "collider")
        text = compare_reports([short, long_], "treatment")
        assert "outcome ~ treatment + collider" in text

    def test_format_rules(self):
        text = format_rules(standard_rules())
        assert "level-log" in text
        assert "0.01*b1" in text
        assert "one-percent-increase" in text

    def test_format_monte_carlo(self):
        res = monte_carlo(ScenarioSpec("collider", 60, 1.0),
                          {"naive": ["treatment"]}, n_sims=5, seed=2)
        text = format_monte_carlo(res)
        assert text.startswith("5 replications, true effect = 0")
        assert "coverage" in text and "naive" in text
