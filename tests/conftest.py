"""Shared fixtures: seeded scenario datasets and common regression forms."""

import pytest

from coefguide import ScenarioSpec, generate, parse_form

SEED = 20240611


@pytest.fixture
def confounder_spec():
    return ScenarioSpec("confounder", 1000, 1.0, 5.0)


@pytest.fixture
def confounder_data(confounder_spec):
    return generate(confounder_spec, SEED)


@pytest.fixture
def mediator_data():
    return generate(ScenarioSpec("downstream_mediator", 2000, 1.0, 5.0), SEED)


@pytest.fixture
def collider_data():
    return generate(ScenarioSpec("collider", 2000, 1.0, 0.0), SEED)


@pytest.fixture
def precision_data():
    return generate(ScenarioSpec("precision_tradeoff", 1000, 1.0, 5.0), SEED)


@pytest.fixture
def quadratic_form():
    return parse_form("y ~ x + I(x^2)")


@pytest.fixture
def interaction_form():
    return parse_form("y ~ x + z + x:z")
