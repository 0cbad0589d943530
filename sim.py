# sim.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import logging

import numpy as np

from boundary import DEESCALATE, ESCALATE, BoundaryTable
from core import ConfigurationError, DegenerateTrialError
from isotonic import select_mtd


logger = logging.getLogger(__name__)

MODES = ("plain", "early", "titration")


# -------------------------
# Random streams
# -------------------------
def replicate_rng(seed: int, index: int) -> np.random.Generator:
    """
    Independent generator for replicate `index`, keyed by (seed, index) so a
    replicate draws the same numbers whatever order or worker runs it.
    """
    return np.random.default_rng(np.random.SeedSequence([int(seed), int(index)]))


# -------------------------
# Per-trial state
# -------------------------
@dataclass
class TrialState:
    """
    Mutable record of one simulated trial. Dose indices are 0-based here.
    """

    treated: np.ndarray
    tox: np.ndarray
    eliminated: np.ndarray
    dose: int
    remaining: int
    early: bool = False

    @classmethod
    def start(cls, n_doses: int, start_idx: int, budget: int) -> "TrialState":
        return cls(
            treated=np.zeros(n_doses, dtype=int),
            tox=np.zeros(n_doses, dtype=int),
            eliminated=np.zeros(n_doses, dtype=bool),
            dose=int(start_idx),
            remaining=int(budget),
        )

    @property
    def n_doses(self) -> int:
        return len(self.treated)

    def treat(self, rng: np.random.Generator, skeleton: np.ndarray, m: int) -> int:
        """Treat m patients at the current dose with a single binomial draw."""
        dlt = int(rng.binomial(m, float(skeleton[self.dose])))
        self.treated[self.dose] += m
        self.tox[self.dose] += dlt
        self.remaining -= m
        return dlt

    def apply_exclusion(self, table: BoundaryTable) -> bool:
        """
        Eliminate the current dose and everything on the excluded side.
        Returns True when no dose is left, i.e. the trial stops early.
        """
        d = self.dose
        side = table.exclusion(self.treated[d], self.tox[d])
        if side == "lower":
            self.eliminated[: d + 1] = True
        elif side == "upper":
            self.eliminated[d:] = True
        if side is not None and self.eliminated.all():
            self.early = True
        return self.early

    def transition(self, table: BoundaryTable, respect_elimination: bool) -> None:
        d = self.dose
        decision = table.decide(self.treated[d], self.tox[d])
        if decision == ESCALATE:
            nxt = d + 1
        elif decision == DEESCALATE:
            nxt = d - 1
        else:
            return

        if not respect_elimination:
            self.dose = max(0, min(self.n_doses - 1, nxt))
        elif 0 <= nxt < self.n_doses and not self.eliminated[nxt]:
            self.dose = nxt


@dataclass(frozen=True)
class TrialOutcome:
    treated: np.ndarray
    tox: np.ndarray
    selected: Optional[int]  # 1-based MTD, None when stopped early or skipped
    final_dose: int  # 1-based dose active when the trial ended
    early: bool
    skipped: bool = False


# -------------------------
# Trial phases
# -------------------------
def _titration_phase(state: TrialState, rng: np.random.Generator, skeleton: np.ndarray, table: BoundaryTable) -> None:
    """
    One patient at a time, escalating after every DLT-free patient.
    The first DLT triggers one decision from the single-patient boundaries and ends the phase.
    """
    top = state.n_doses - 1
    while state.remaining > 0:
        dlt = state.treat(rng, skeleton, 1)
        if dlt:
            state.transition(table, respect_elimination=False)
            return
        state.dose = min(top, state.dose + 1)


def _cohort_phase(
    state: TrialState,
    rng: np.random.Generator,
    skeleton: np.ndarray,
    table: BoundaryTable,
    cohortsize: int,
    exclusion: bool,
) -> None:
    while state.remaining > 0:
        m = min(state.remaining, cohortsize)
        state.treat(rng, skeleton, m)
        if exclusion and state.apply_exclusion(table):
            return
        state.transition(table, respect_elimination=exclusion)


def simulate_trial(
    rng: np.random.Generator,
    table: BoundaryTable,
    skeleton,
    target: float,
    n_cohort: int,
    cohortsize: int,
    mode: str = "titration",
    start: int = 1,
) -> TrialOutcome:
    """
    Run one PoP trial against the true toxicity curve `skeleton`.

    Modes:
      - plain     : cohort stepping, dose clamped to [1, K], no exclusion
      - early     : cohort stepping with dose exclusion and early termination
      - titration : single-patient escalation until the first DLT, then as "early"

    `table` must hold a row for every cumulative count the mode can reach
    (the full table for titration or cohortsize 1, the cohort table otherwise).
    `start` is 1-based.
    """
    if mode not in MODES:
        raise ConfigurationError(f"Unknown simulation mode {mode!r}; expected one of {MODES}")
    skeleton = np.asarray(skeleton, dtype=float)
    budget = int(n_cohort) * int(cohortsize)
    state = TrialState.start(len(skeleton), int(start) - 1, budget)

    if mode == "titration":
        _titration_phase(state, rng, skeleton, table)
    _cohort_phase(state, rng, skeleton, table, int(cohortsize), exclusion=(mode != "plain"))

    if state.early:
        return TrialOutcome(
            treated=state.treated, tox=state.tox, selected=None,
            final_dose=state.dose + 1, early=True,
        )

    try:
        selected = select_mtd(target, state.treated, state.tox).mtd
    except DegenerateTrialError as exc:
        logger.debug("Replicate has no resolvable MTD: %s", exc)
        return TrialOutcome(
            treated=state.treated, tox=state.tox, selected=None,
            final_dose=state.dose + 1, early=False, skipped=True,
        )

    return TrialOutcome(
        treated=state.treated, tox=state.tox, selected=selected,
        final_dose=state.dose + 1, early=False,
    )
