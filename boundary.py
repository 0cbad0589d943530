# boundary.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional
import logging
import math

import numpy as np

from core import ConfigurationError, Cutoff, check_target, resolve_cutoff
from prbf import prbf01
from results import BoundaryResult


logger = logging.getLogger(__name__)

ESCALATE = "escalate"
STAY = "stay"
DEESCALATE = "de-escalate"


def _readonly(a: np.ndarray) -> np.ndarray:
    a = np.array(a, dtype=float)
    a.setflags(write=False)
    return a


@dataclass(frozen=True, eq=False)
class BoundaryTable:
    """
    Decision boundaries indexed by the cumulative number of patients n at a dose.

    escalate[i]   : escalate when y <= value  (-inf: never)
    deescalate[i] : de-escalate when y >= value (+inf: never)
    elim_lower[i] : exclude this dose and all lower doses when y <= value (-inf: never)
    elim_upper[i] : exclude this dose and all higher doses when y >= value (+inf: never)

    The +/-inf "never" entries sit outside the ordering in n; only the finite
    entries of each column are non-decreasing in n.
    """

    n: np.ndarray
    escalate: np.ndarray
    deescalate: np.ndarray
    elim_lower: np.ndarray
    elim_upper: np.ndarray
    _index: Dict[int, int] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self):
        for name in ("n", "escalate", "deescalate", "elim_lower", "elim_upper"):
            object.__setattr__(self, name, _readonly(getattr(self, name)))
        object.__setattr__(self, "_index", {int(v): i for i, v in enumerate(self.n)})

    def __len__(self) -> int:
        return len(self.n)

    def _row(self, n: int) -> int:
        try:
            return self._index[int(n)]
        except KeyError:
            raise KeyError(f"No boundary row for n={n}") from None

    def at(self, n: int) -> Dict[str, float]:
        i = self._row(n)
        return {
            "n": int(self.n[i]),
            "escalate": float(self.escalate[i]),
            "deescalate": float(self.deescalate[i]),
            "elim_lower": float(self.elim_lower[i]),
            "elim_upper": float(self.elim_upper[i]),
        }

    def decide(self, n: int, y: int) -> str:
        """Retain/transition rule for y DLTs among n patients at the current dose."""
        i = self._row(n)
        if y <= self.escalate[i]:
            return ESCALATE
        if y >= self.deescalate[i]:
            return DEESCALATE
        return STAY

    def exclusion(self, n: int, y: int) -> Optional[str]:
        """'lower' (subtherapeutic), 'upper' (overly toxic) or None."""
        i = self._row(n)
        if y <= self.elim_lower[i]:
            return "lower"
        if y >= self.elim_upper[i]:
            return "upper"
        return None

    def rows(self) -> Iterator[Dict[str, float]]:
        for v in self.n:
            yield self.at(int(v))

    def subset(self, counts) -> "BoundaryTable":
        idx = [self._row(c) for c in counts]
        return BoundaryTable(
            n=self.n[idx],
            escalate=self.escalate[idx],
            deescalate=self.deescalate[idx],
            elim_lower=self.elim_lower[idx],
            elim_upper=self.elim_upper[idx],
        )


def _scan(n: int, target: float, threshold: float, bf: np.ndarray, ys: np.ndarray):
    """
    Largest y with rate y/n below target and smallest y with rate above it
    whose PrBF falls under threshold.
    """
    hit = bf < threshold
    rate = ys / n
    low = ys[hit & (rate < target)]
    high = ys[hit & (rate > target)]
    lo = float(low.max()) if low.size else -math.inf
    hi = float(high.min()) if high.size else math.inf
    return lo, hi


def boundary_rows(target: float, n_max: int, cutoff: Cutoff = math.e, cutoff_e: Cutoff = math.exp(-1)) -> BoundaryTable:
    """
    Boundaries for every cumulative count n = 1..n_max.
    """
    target = check_target(target)
    ns = np.arange(1, int(n_max) + 1)
    esc, deesc, el_lo, el_hi = [], [], [], []
    for n in ns:
        ys = np.arange(0, n + 1)
        bf = prbf01(int(n), ys, target)
        e, d = _scan(int(n), target, resolve_cutoff(cutoff, int(n)), bf, ys)
        lo, hi = _scan(int(n), target, resolve_cutoff(cutoff_e, int(n)), bf, ys)
        esc.append(e)
        deesc.append(d)
        el_lo.append(lo)
        el_hi.append(hi)
    return BoundaryTable(n=ns, escalate=esc, deescalate=deesc, elim_lower=el_lo, elim_upper=el_hi)


def get_boundary(
    target: float,
    n_cohort: int,
    cohortsize: int,
    K: int,
    cutoff: Cutoff = math.e,
    cutoff_e: Cutoff = math.exp(-1),
):
    """
    Build the PoP boundary tables for one design.

    Returns a BoundaryResult with
      - full_boundary   : rows n = 1..n_cohort*cohortsize (used for titration / cohortsize 1)
      - cohort_boundary : rows at cohort completion, n = cohortsize, 2*cohortsize, ...
    """
    target = check_target(target)
    if int(cohortsize) < 1:
        raise ConfigurationError(f"cohortsize must be >= 1, got {cohortsize}")
    if int(n_cohort) < 1:
        raise ConfigurationError(f"n_cohort must be >= 1, got {n_cohort}")
    if int(K) < 1:
        raise ConfigurationError(f"K must be >= 1, got {K}")

    n_max = int(n_cohort) * int(cohortsize)
    full = boundary_rows(target, n_max, cutoff=cutoff, cutoff_e=cutoff_e)
    cohort_counts: List[int] = [c * int(cohortsize) for c in range(1, int(n_cohort) + 1)]
    cohort = full.subset(cohort_counts)

    logger.debug(
        "Boundary tables built: target=%.3f n_max=%d cohortsize=%d K=%d",
        target, n_max, cohortsize, K,
    )
    return BoundaryResult(
        target=target,
        n_cohort=int(n_cohort),
        cohortsize=int(cohortsize),
        K=int(K),
        full_boundary=full,
        cohort_boundary=cohort,
    )
