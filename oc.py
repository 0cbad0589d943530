# oc.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from multiprocessing import Pool
from typing import List, Sequence
import logging
import math

import numpy as np

from boundary import BoundaryTable, get_boundary
from core import Cutoff, PopConfig
from sim import TrialOutcome, replicate_rng, simulate_trial
from results import OperatingCharacteristicsResult


logger = logging.getLogger(__name__)


def find_true_mtd(skeleton, target: float) -> int:
    """1-based dose whose true DLT rate is closest to target (lowest on ties)."""
    skeleton = np.asarray(skeleton, dtype=float)
    return int(np.argmin(np.abs(skeleton - float(target)))) + 1


def dosing_risk(treated: np.ndarray, true_mtd: int, risk_cutoff: float, sample_size: int):
    """
    (over, under) flags for one trial: more than risk_cutoff * sample_size
    patients treated below (under) or above (over) the true MTD.
    Under-dosing is checked first; a trial is never flagged both ways.
    """
    limit = float(risk_cutoff) * sample_size
    below = int(treated[: true_mtd - 1].sum())
    above = int(treated[true_mtd:].sum())
    if below > limit:
        return False, True
    if above > limit:
        return True, False
    return False, False


# -------------------------
# Accumulator
# -------------------------
@dataclass
class SimulationResult:
    """
    Running sums over replicates. `merge` is associative and commutative, so
    partial results from workers reduce to the same totals in any order.
    """

    n_doses: int
    selected: np.ndarray = field(default=None)
    patients: np.ndarray = field(default=None)
    toxicities: np.ndarray = field(default=None)
    n_early: int = 0
    n_over: int = 0
    n_under: int = 0
    n_skipped: int = 0
    n_completed: int = 0

    def __post_init__(self):
        if self.selected is None:
            self.selected = np.zeros(self.n_doses, dtype=np.int64)
        if self.patients is None:
            self.patients = np.zeros(self.n_doses, dtype=np.int64)
        if self.toxicities is None:
            self.toxicities = np.zeros(self.n_doses, dtype=np.int64)

    def add(self, outcome: TrialOutcome, true_mtd: int, risk_cutoff: float, sample_size: int) -> None:
        if outcome.skipped:
            self.n_skipped += 1
            return
        self.n_completed += 1
        self.patients += outcome.treated
        self.toxicities += outcome.tox
        if outcome.early:
            self.n_early += 1
        else:
            self.selected[outcome.selected - 1] += 1
        over, under = dosing_risk(outcome.treated, true_mtd, risk_cutoff, sample_size)
        self.n_over += int(over)
        self.n_under += int(under)

    def merge(self, other: "SimulationResult") -> "SimulationResult":
        if other.n_doses != self.n_doses:
            raise ValueError("cannot merge results for different numbers of doses")
        return SimulationResult(
            n_doses=self.n_doses,
            selected=self.selected + other.selected,
            patients=self.patients + other.patients,
            toxicities=self.toxicities + other.toxicities,
            n_early=self.n_early + other.n_early,
            n_over=self.n_over + other.n_over,
            n_under=self.n_under + other.n_under,
            n_skipped=self.n_skipped + other.n_skipped,
            n_completed=self.n_completed + other.n_completed,
        )


# -------------------------
# Replicate runner
# -------------------------
def run_replicates(
    indices: Sequence[int],
    table: BoundaryTable,
    cfg: PopConfig,
) -> SimulationResult:
    skeleton = np.asarray(cfg.skeleton, dtype=float)
    true_mtd = find_true_mtd(skeleton, cfg.target)
    acc = SimulationResult(n_doses=len(skeleton))
    for i in indices:
        outcome = simulate_trial(
            rng=replicate_rng(cfg.seed, i),
            table=table,
            skeleton=skeleton,
            target=cfg.target,
            n_cohort=cfg.n_cohort,
            cohortsize=cfg.cohortsize,
            mode=cfg.mode,
            start=cfg.start,
        )
        acc.add(outcome, true_mtd, cfg.risk_cutoff, cfg.sample_size)
    return acc


def _worker_wrapper(args):
    """Unpack arguments for Pool.imap_unordered."""
    indices, table, cfg = args
    return run_replicates(indices, table, cfg)


def _chunks(n: int, n_chunks: int) -> List[range]:
    size = int(math.ceil(n / n_chunks))
    return [range(a, min(n, a + size)) for a in range(0, n, size)]


def summarize(acc: SimulationResult, cfg: PopConfig) -> OperatingCharacteristicsResult:
    """
    Rates per trial. Every denominator is n_trial, including when replicates
    were skipped; `n_skipped` and `n_completed` (which sum to n_trial) are
    reported so callers can audit that.
    """
    n_trial = float(cfg.n_trial)
    num_p = acc.patients / n_trial
    num_tox = acc.toxicities / n_trial
    return OperatingCharacteristicsResult(
        target=float(cfg.target),
        skeleton=[float(v) for v in cfg.skeleton],
        true_mtd=find_true_mtd(cfg.skeleton, cfg.target),
        n_trial=int(cfg.n_trial),
        sel_pct=(acc.selected / n_trial).tolist(),
        num_p=num_p.tolist(),
        num_tox=num_tox.tolist(),
        mean_total_tox=float(acc.toxicities.sum() / n_trial),
        mean_total_patients=float(acc.patients.sum() / n_trial),
        early=acc.n_early / n_trial,
        risk_over=acc.n_over / n_trial,
        risk_under=acc.n_under / n_trial,
        n_skipped=int(acc.n_skipped),
        n_completed=int(acc.n_completed),
    )


def boundary_for(cfg: PopConfig) -> BoundaryTable:
    """Full table for titration or single-patient cohorts, cohort table otherwise."""
    bd = get_boundary(
        target=cfg.target,
        n_cohort=cfg.n_cohort,
        cohortsize=cfg.cohortsize,
        K=cfg.n_doses,
        cutoff=cfg.cutoff,
        cutoff_e=cfg.cutoff_e,
    )
    if cfg.titration or int(cfg.cohortsize) == 1:
        return bd.full_boundary
    return bd.cohort_boundary


def run_oc(cfg: PopConfig) -> OperatingCharacteristicsResult:
    cfg.validate()
    table = boundary_for(cfg)
    n_trial = int(cfg.n_trial)
    n_jobs = min(int(cfg.n_jobs), n_trial)

    logger.info(
        "Simulating %d trials (mode=%s, target=%.3f, K=%d, N=%d, n_jobs=%d)",
        n_trial, cfg.mode, cfg.target, cfg.n_doses, cfg.sample_size, n_jobs,
    )

    if n_jobs <= 1:
        acc = run_replicates(range(n_trial), table, cfg)
    else:
        # cutoffs are already baked into `table`; callables need not pickle
        worker_cfg = replace(cfg, cutoff=1.0, cutoff_e=1.0)
        tasks = [(chunk, table, worker_cfg) for chunk in _chunks(n_trial, n_jobs)]
        acc = SimulationResult(n_doses=cfg.n_doses)
        with Pool(processes=n_jobs) as pool:
            for part in pool.imap_unordered(_worker_wrapper, tasks):
                acc = acc.merge(part)

    if acc.n_skipped:
        logger.warning("%d of %d replicates had no resolvable MTD and were skipped", acc.n_skipped, n_trial)

    res = summarize(acc, cfg)
    logger.info(
        "Done: early=%.3f risk_over=%.3f risk_under=%.3f mean N=%.1f",
        res.early, res.risk_over, res.risk_under, res.mean_total_patients,
    )
    return res


def get_oc(
    target: float,
    n_cohort: int,
    cohortsize: int,
    skeleton,
    n_trial: int = 1000,
    titration: bool = True,
    cutoff: Cutoff = 2.5,
    cutoff_e: Cutoff = 5.0 / 24.0,
    risk_cutoff: float = 0.8,
    earlyterm: bool = True,
    start: int = 1,
    seed: int = 123,
    n_jobs: int = 1,
) -> OperatingCharacteristicsResult:
    """
    Operating characteristics of the PoP design from n_trial simulated trials.

    Selection counts only trials that ran to completion; trials stopped because
    every dose was excluded count toward `early` instead.
    """
    cfg = PopConfig(
        target=target,
        n_cohort=n_cohort,
        cohortsize=cohortsize,
        skeleton=list(skeleton),
        titration=titration,
        cutoff=cutoff,
        cutoff_e=cutoff_e,
        n_trial=n_trial,
        risk_cutoff=risk_cutoff,
        earlyterm=earlyterm,
        start=start,
        seed=seed,
        n_jobs=n_jobs,
    )
    return run_oc(cfg)
