# results.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List
import math

import numpy as np
import pandas as pd


# -------------------------
# Tagged result variants
# -------------------------
# Each variant carries a fixed `kind` tag; plots/summaries dispatch on it.


def _fmt_bound(v: float) -> str:
    if math.isinf(v):
        return "NA"
    return str(int(v))


@dataclass(frozen=True, eq=False)
class BoundaryResult:
    target: float
    n_cohort: int
    cohortsize: int
    K: int
    full_boundary: Any  # boundary.BoundaryTable
    cohort_boundary: Any  # boundary.BoundaryTable
    kind: str = field(default="boundary", init=False)

    def rows(self, full: bool = False) -> List[Dict[str, float]]:
        table = self.full_boundary if full else self.cohort_boundary
        return list(table.rows())

    def to_frame(self, full: bool = False) -> pd.DataFrame:
        df = pd.DataFrame(self.rows(full=full))
        return df.set_index("n")

    def summary(self, full: bool = False) -> str:
        table = self.full_boundary if full else self.cohort_boundary
        lines = [
            f"Boundaries for target DLT rate {self.target:.2f} "
            f"({self.n_cohort} cohorts of size {self.cohortsize}, {self.K} doses)",
            "",
            "Escalate if # of DLT <= escalate, de-escalate if # of DLT >= de-escalate.",
            "Exclude the dose (and lower doses) if # of DLT <= elim_lower;",
            "exclude the dose (and higher doses) if # of DLT >= elim_upper.",
            "",
        ]
        header = ["n", "escalate", "de-escalate", "elim_lower", "elim_upper"]
        lines.append("".join(f"{h:>13}" for h in header))
        for row in table.rows():
            cells = [
                str(row["n"]),
                _fmt_bound(row["escalate"]),
                _fmt_bound(row["deescalate"]),
                _fmt_bound(row["elim_lower"]),
                _fmt_bound(row["elim_upper"]),
            ]
            lines.append("".join(f"{c:>13}" for c in cells))
        return "\n".join(lines)


@dataclass(frozen=True)
class MTDSelectionResult:
    target: float
    mtd: int  # 1-based dose level
    p_est: List[float]  # isotonic estimate for each treated dose, in dose order
    doses: List[int]  # 1-based dose levels p_est refers to
    kind: str = field(default="mtd", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"target": self.target, "mtd": self.mtd, "p_est": list(self.p_est), "doses": list(self.doses)}

    def summary(self) -> str:
        lines = [f"The MTD is dose level {self.mtd}", "", "Dose    Posterior DLT estimate"]
        for d, p in zip(self.doses, self.p_est):
            flag = "  <- MTD" if d == self.mtd else ""
            lines.append(f"{d:>4}    {p:.2f}{flag}")
        return "\n".join(lines)


@dataclass(frozen=True)
class OperatingCharacteristicsResult:
    target: float
    skeleton: List[float]
    true_mtd: int  # 1-based
    n_trial: int
    sel_pct: List[float]
    num_p: List[float]
    num_tox: List[float]
    mean_total_tox: float
    mean_total_patients: float
    early: float
    risk_over: float
    risk_under: float
    n_skipped: int = 0
    n_completed: int = 0
    kind: str = field(default="oc", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sel_pct": list(self.sel_pct),
            "num_p": list(self.num_p),
            "num_tox": list(self.num_tox),
            "mean_total_tox": self.mean_total_tox,
            "mean_total_patients": self.mean_total_patients,
            "early": self.early,
            "risk_over": self.risk_over,
            "risk_under": self.risk_under,
            "n_skipped": self.n_skipped,
            "n_completed": self.n_completed,
        }

    def summary(self) -> str:
        K = len(self.sel_pct)
        sel = np.asarray(self.sel_pct) * 100
        lines = [
            f"Operating characteristics over {self.n_trial} simulated trials "
            f"(target DLT rate {self.target:.2f}, true MTD = dose {self.true_mtd})",
            "",
            "Dose    True p    Selection %    # patients    # DLTs",
        ]
        for k in range(K):
            lines.append(
                f"{k + 1:>4}    {self.skeleton[k]:6.2f}    {sel[k]:11.1f}    "
                f"{self.num_p[k]:10.1f}    {self.num_tox[k]:6.1f}"
            )
        lines += [
            "",
            f"Average number of patients: {self.mean_total_patients:.1f}",
            f"Average number of DLTs: {self.mean_total_tox:.1f}",
            f"Early stopping without selecting the MTD: {self.early * 100:.1f}%",
            f"Risk of overdosing: {self.risk_over * 100:.1f}%",
            f"Risk of underdosing: {self.risk_under * 100:.1f}%",
        ]
        if self.n_skipped:
            lines.append(f"Replicates skipped (no MTD resolvable): {self.n_skipped}")
        return "\n".join(lines)
