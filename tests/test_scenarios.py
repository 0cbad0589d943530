import numpy as np
import pytest

from core import ConfigurationError, check_skeleton
from scenarios import random_skeleton


@pytest.mark.parametrize("K", [1, 2, 4, 6])
def test_random_skeleton_is_a_valid_curve(K):
    rng = np.random.default_rng(11)
    for _ in range(50):
        s = random_skeleton(0.3, K, rng=rng)
        assert len(s) == K
        check_skeleton(s)


def test_random_skeleton_with_fixed_mtd():
    rng = np.random.default_rng(3)
    s = random_skeleton(0.25, 5, rng=rng, mtd=2)
    assert np.all(s[:1] <= 0.25)
    assert np.all(s[2:] >= 0.25)


def test_same_generator_state_same_curve():
    a = random_skeleton(0.3, 5, rng=np.random.default_rng(8))
    b = random_skeleton(0.3, 5, rng=np.random.default_rng(8))
    assert np.array_equal(a, b)


def test_mtd_out_of_range():
    with pytest.raises(ConfigurationError):
        random_skeleton(0.3, 4, mtd=5)
