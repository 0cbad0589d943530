import math

import numpy as np
import pytest

from boundary import DEESCALATE, ESCALATE, STAY, get_boundary
from core import ConfigurationError, DomainError


def non_decreasing(values):
    values = list(values)
    return all(a <= b for a, b in zip(values, values[1:]))


def test_table_shapes(bd):
    assert len(bd.full_boundary) == 30
    assert list(bd.cohort_boundary.n) == [3, 6, 9, 12, 15, 18, 21, 24, 27, 30]
    assert bd.kind == "boundary"


def test_single_patient_row(bd):
    row = bd.full_boundary.at(1)
    # 0/1 is not enough evidence to escalate, 1/1 is enough to de-escalate
    assert row["escalate"] == -math.inf
    assert row["deescalate"] == 1
    assert row["elim_lower"] == -math.inf


def test_three_patient_row(bd):
    row = bd.cohort_boundary.at(3)
    assert row["escalate"] == 0
    assert row["deescalate"] == 2
    assert row["elim_lower"] == -math.inf
    assert row["elim_upper"] == 3


def test_cohort_rows_match_full_rows(bd):
    for n in bd.cohort_boundary.n:
        assert bd.cohort_boundary.at(n) == bd.full_boundary.at(n)


def test_escalate_never_exceeds_deescalate(bd):
    t = bd.full_boundary
    assert np.all(t.escalate < t.deescalate)
    assert np.all(t.elim_lower <= t.escalate)
    assert np.all(t.elim_upper >= t.deescalate)


def test_default_design_boundaries_are_monotone_including_sentinels():
    bd = get_boundary(target=0.3, n_cohort=15, cohortsize=3, K=5)
    t = bd.full_boundary
    assert non_decreasing(t.escalate)
    assert non_decreasing(t.deescalate)


@pytest.mark.parametrize("target", [0.2, 0.25, 0.3, 0.4, 0.5])
@pytest.mark.parametrize("cutoff", [1.5, 2.5, math.e])
def test_boundaries_are_monotone_in_n(target, cutoff):
    # the +/-inf "never triggers" entries sit outside the ordering
    t = get_boundary(target=target, n_cohort=15, cohortsize=3, K=5, cutoff=cutoff).full_boundary
    assert non_decreasing(v for v in t.escalate if np.isfinite(v))
    assert non_decreasing(v for v in t.deescalate if np.isfinite(v))
    assert np.all(t.escalate < t.deescalate)


def test_sentinel_rows_never_trigger():
    t = get_boundary(target=0.5, n_cohort=5, cohortsize=3, K=3, cutoff=1.5).full_boundary
    row = t.at(1)
    assert row["deescalate"] == math.inf
    assert t.decide(1, 1) == STAY


def test_decide_and_exclusion(bd):
    t = bd.cohort_boundary
    assert t.decide(3, 0) == ESCALATE
    assert t.decide(3, 1) == STAY
    assert t.decide(3, 2) == DEESCALATE
    assert t.exclusion(3, 3) == "upper"
    assert t.exclusion(3, 1) is None
    assert t.exclusion(9, 0) == "lower"


def test_missing_row_raises(bd):
    with pytest.raises(KeyError):
        bd.cohort_boundary.decide(4, 0)


def test_table_is_read_only(bd):
    with pytest.raises(ValueError):
        bd.full_boundary.escalate[0] = 5


def test_callable_cutoff_matches_scalar():
    a = get_boundary(target=0.25, n_cohort=8, cohortsize=3, K=4, cutoff=2.5, cutoff_e=5 / 24)
    b = get_boundary(target=0.25, n_cohort=8, cohortsize=3, K=4, cutoff=lambda n: 2.5, cutoff_e=lambda n: 5 / 24)
    assert list(a.full_boundary.rows()) == list(b.full_boundary.rows())


def test_larger_cutoff_moves_more_often():
    tight = get_boundary(target=0.3, n_cohort=10, cohortsize=3, K=4, cutoff=1.5).full_boundary
    loose = get_boundary(target=0.3, n_cohort=10, cohortsize=3, K=4, cutoff=5.0).full_boundary
    assert np.all(loose.escalate >= tight.escalate)
    assert np.all(loose.deescalate <= tight.deescalate)


@pytest.mark.parametrize(
    "kwargs,exc",
    [
        (dict(cohortsize=0), ConfigurationError),
        (dict(n_cohort=0), ConfigurationError),
        (dict(K=0), ConfigurationError),
        (dict(target=1.0), DomainError),
        (dict(cutoff=-1.0), DomainError),
    ],
)
def test_invalid_design(kwargs, exc):
    args = dict(target=0.3, n_cohort=10, cohortsize=3, K=4)
    args.update(kwargs)
    with pytest.raises(exc):
        get_boundary(**args)
