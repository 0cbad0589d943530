import math

import numpy as np
import pytest
from scipy.special import beta
from scipy.stats import binom

from core import DomainError
from prbf import prbf01


def reference_prbf(n, y, phi, c=math.e):
    num = phi**y * (1 - phi) ** (n - y) * beta(y + 1, n - y + 1) ** n * c
    den = beta(y + 2, n - y + 1) ** y * beta(y + 1, n - y + 2) ** (n - y)
    return num / den


def test_closed_form_matches_beta_functions():
    assert prbf01(10, 3, 0.3) == pytest.approx(reference_prbf(10, 3, 0.3), rel=1e-6)


@pytest.mark.parametrize("n,y,phi", [(1, 0, 0.3), (3, 1, 0.25), (12, 7, 0.2), (20, 0, 0.33)])
def test_matches_binomial_ratio(n, y, phi):
    # same quantity written as dbinom(y, n, phi) * e / dbinom(y, n, (y+1)/(n+2))
    p_hat = (y + 1) / (n + 2)
    expected = binom.pmf(y, n, phi) * math.e / binom.pmf(y, n, p_hat)
    assert prbf01(n, y, phi) == pytest.approx(expected, rel=1e-9)


def test_hand_computed_value():
    # 0.3 * 0.7^2 / (0.4 * 0.6^2)
    assert prbf01(3, 1, 0.3, cutoff=1.0) == pytest.approx(0.147 / 0.144)


def test_vectorised_over_y():
    ys = np.arange(0, 11)
    out = prbf01(10, ys, 0.3)
    assert out.shape == (11,)
    assert np.all(out > 0)
    for y in (0, 3, 10):
        assert out[y] == pytest.approx(prbf01(10, y, 0.3))


def test_n_zero_is_a_domain_error():
    with pytest.raises(DomainError):
        prbf01(0, 0, 0.3)


@pytest.mark.parametrize("n,y,phi", [(5, 6, 0.3), (5, -1, 0.3), (5, 2, 0.0), (5, 2, 1.2)])
def test_invalid_inputs(n, y, phi):
    with pytest.raises(DomainError):
        prbf01(n, y, phi)
