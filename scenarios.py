# scenarios.py
from __future__ import annotations

from typing import Optional

import numpy as np

from core import ConfigurationError, check_target


def random_skeleton(
    target: float,
    K: int,
    rng: Optional[np.random.Generator] = None,
    mtd: Optional[int] = None,
) -> np.ndarray:
    """
    Random monotone true-toxicity curve whose dose closest to target is `mtd`
    (1-based, drawn uniformly when not given).

    Doses below the MTD fall in (0, target), doses above in (target, B) where
    B = target + (1 - target) * Beta(max(K - mtd, 0.5), 1). The MTD itself sits
    within the gap to its neighbours so it stays closest to target.
    Values are rounded to 2 decimals and kept inside [0.01, 0.99].
    """
    target = check_target(target)
    K = int(K)
    if K < 1:
        raise ConfigurationError(f"K must be >= 1, got {K}")
    if rng is None:
        rng = np.random.default_rng()
    if mtd is None:
        mtd = int(rng.integers(1, K + 1))
    if not (1 <= mtd <= K):
        raise ConfigurationError(f"mtd must be in [1, {K}], got {mtd}")
    if K == 1:
        return np.array([round(target, 2)])

    M = rng.beta(max(K - mtd, 0.5), 1.0)
    B = target + (1.0 - target) * M
    s = np.zeros(K, dtype=float)

    if mtd == 1:
        s[1:] = np.sort(rng.uniform(target, B, K - 1))
        s[0] = rng.uniform(max(0.0, 2 * target - s[1]), s[1])
    elif mtd == K:
        s[:-1] = np.sort(rng.uniform(0.0, target, K - 1))
        s[-1] = rng.uniform(s[-2], min(2 * target - s[-2], B))
    else:
        m = mtd - 1
        s[:m] = np.sort(rng.uniform(0.0, target, m))
        s[m + 1:] = np.sort(rng.uniform(target, B, K - mtd))
        d = min(target - s[m - 1], s[m + 1] - target)
        s[m] = rng.uniform(target - d, target + d)

    return np.clip(np.round(s, 2), 0.01, 0.99)
