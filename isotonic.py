# isotonic.py
from __future__ import annotations

from typing import List, Tuple

import numpy as np

from core import DegenerateTrialError, DomainError, check_target
from results import MTDSelectionResult


def pava(y) -> Tuple[np.ndarray, List[int]]:
    """
    Unweighted pool-adjacent-violators fit (non-decreasing).

    Returns the fitted values and the 1-based knots, i.e. the last index of
    each constant block. Adjacent blocks are only pooled on a strict violation,
    so equal neighbours stay separate knots.
    """
    vals: List[float] = []
    wts: List[int] = []
    ends: List[int] = []
    for i, v in enumerate(np.asarray(y, dtype=float)):
        vals.append(float(v))
        wts.append(1)
        ends.append(i)
        while len(vals) > 1 and vals[-2] > vals[-1]:
            w = wts[-2] + wts[-1]
            v_new = (vals[-2] * wts[-2] + vals[-1] * wts[-1]) / w
            end = ends[-1]
            del vals[-1], wts[-1], ends[-1]
            vals[-1], wts[-1], ends[-1] = v_new, w, end

    fitted = np.repeat(np.array(vals), np.array(wts))
    knots = [e + 1 for e in ends]
    return fitted, knots


def interpolate_steps(fitted: np.ndarray, knots: List[int]) -> np.ndarray:
    """
    Evaluate the isotonic step function at ranks 1..m with linear interpolation
    between consecutive knots that carry a positive fitted value.
    Rank 1 and rank 2 both fall in the first bucket; rank i > 1 falls in bucket i - 1.
    """
    m = len(fitted)
    if m == 1:
        return np.array(fitted, dtype=float)

    pos_knots = [k for k in knots if fitted[k - 1] > 0]
    out = np.empty(m, dtype=float)
    for i in range(1, m + 1):
        j = 1 if i == 1 else i - 1
        u = next(idx for idx, k in enumerate(pos_knots) if k > j)
        upper = pos_knots[u]
        lower = 1 if u == 0 else pos_knots[u - 1]
        denom = upper - lower
        if denom == 0:
            denom = 1
        y_lo, y_hi = fitted[lower - 1], fitted[upper - 1]
        out[i - 1] = y_lo + (y_hi - y_lo) * (i - lower) / denom
    return out


def _check_counts(n_pts, n_tox) -> Tuple[np.ndarray, np.ndarray]:
    n = np.asarray(n_pts, dtype=float)
    y = np.asarray(n_tox, dtype=float)
    if n.ndim != 1 or y.ndim != 1 or n.shape != y.shape:
        raise DomainError(f"n_pts and n_tox must be equal-length vectors, got {n.shape} and {y.shape}")
    if np.any(n < 0) or np.any(y < 0):
        raise DomainError("patient and toxicity counts must be non-negative")
    if np.any(y > n):
        raise DomainError("toxicity count exceeds patient count at some dose")
    return n, y


def select_mtd(target: float, n_pts, n_tox) -> MTDSelectionResult:
    """
    Select the MTD at the end of a trial.

    Only doses with patients are considered. With no DLTs anywhere the highest
    treated dose is returned. Otherwise the dose whose isotonic DLT estimate is
    closest to target wins; ties go to the highest dose.
    """
    target = check_target(target)
    n, y = _check_counts(n_pts, n_tox)

    treated = np.flatnonzero(n > 0)
    if treated.size == 0:
        raise DegenerateTrialError("no dose has any treated patients")
    doses = [int(d) + 1 for d in treated]

    p = y[treated] / n[treated]
    if p.sum() == 0:
        return MTDSelectionResult(target=target, mtd=doses[-1], p_est=[0.0] * len(doses), doses=doses)

    fitted, knots = pava(p)
    p_iso = interpolate_steps(fitted, knots)
    d = np.abs(p_iso - target)
    best = int(np.flatnonzero(d == d.min()).max())
    return MTDSelectionResult(
        target=target,
        mtd=doses[best],
        p_est=[float(v) for v in p_iso],
        doses=doses,
    )
