import math

import matplotlib

matplotlib.use("Agg")

import pytest

from boundary import get_boundary


class ScriptedRng:
    """Stand-in generator: binomial() returns queued DLT counts (capped at n), then `default`."""

    def __init__(self, outcomes=(), default=0):
        self.outcomes = list(outcomes)
        self.default = default
        self.sizes = []

    def binomial(self, n, p):
        self.sizes.append(int(n))
        if self.outcomes:
            return min(int(self.outcomes.pop(0)), int(n))
        return int(n) if self.default == "all" else min(int(self.default), int(n))


@pytest.fixture
def bd():
    return get_boundary(target=0.3, n_cohort=10, cohortsize=3, K=4, cutoff=math.e, cutoff_e=math.exp(-1))


@pytest.fixture
def oc_kwargs():
    return dict(
        target=0.3,
        n_cohort=10,
        cohortsize=3,
        skeleton=[0.3, 0.4, 0.5, 0.6],
        n_trial=200,
        seed=123,
    )


@pytest.fixture
def scripted_rng():
    return ScriptedRng
