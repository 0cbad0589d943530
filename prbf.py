# prbf.py
from __future__ import annotations

import math

import numpy as np
from scipy.special import betaln

from core import DomainError, check_target


def prbf01(n: int, y, target: float, cutoff: float = math.e):
    """
    Predictive Bayes factor PrBF_{0,1} for y DLTs out of n patients at one dose:

      phi^y (1-phi)^(n-y) B(y+1,n-y+1)^n c / [B(y+2,n-y+1)^y B(y+1,n-y+2)^(n-y)]

    Small values favour moving away from the current dose (H1), large values
    favour retaining it (H0). `y` may be a scalar or an array of counts.
    """
    n = int(n)
    if n < 1:
        raise DomainError(f"PrBF is undefined for n={n}; at least one patient is required")
    phi = check_target(target)
    if not cutoff > 0:
        raise DomainError(f"cutoff multiplier must be positive, got {cutoff!r}")

    y_arr = np.asarray(y, dtype=float)
    if np.any(y_arr < 0) or np.any(y_arr > n) or np.any(y_arr != np.floor(y_arr)):
        raise DomainError(f"y must be integer counts in [0, {n}], got {y!r}")

    m = n - y_arr
    log_bf = (
        y_arr * math.log(phi)
        + m * math.log1p(-phi)
        + n * betaln(y_arr + 1, m + 1)
        - y_arr * betaln(y_arr + 2, m + 1)
        - m * betaln(y_arr + 1, m + 2)
        + math.log(cutoff)
    )
    out = np.exp(log_bf)
    if out.ndim == 0:
        return float(out)
    return out
