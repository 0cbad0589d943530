# plots.py
from __future__ import annotations

import math

import matplotlib.pyplot as plt
import numpy as np


def compact_style(ax):
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    ax.grid(axis="y", linewidth=0.5, alpha=0.25)


def _finite(values):
    return np.array([np.nan if math.isinf(v) else v for v in values], dtype=float)


def plot_boundary(result, full: bool = False):
    table = result.full_boundary if full else result.cohort_boundary
    n = np.asarray(table.n)

    fig, ax = plt.subplots(figsize=(6.6, 3.4), dpi=160)
    ax.step(n, _finite(table.escalate), where="mid", label="Escalate (≤)")
    ax.step(n, _finite(table.deescalate), where="mid", label="De-escalate (≥)")
    ax.step(n, _finite(table.elim_lower), where="mid", linestyle="--", label="Exclude lower (≤)")
    ax.step(n, _finite(table.elim_upper), where="mid", linestyle="--", label="Exclude upper (≥)")
    ax.plot(n, n * result.target, linewidth=0.8, alpha=0.5, color="grey")
    ax.set_title(f"PoP boundaries (target {result.target:.2f})", fontsize=10)
    ax.set_xlabel("Number of patients treated at the dose", fontsize=9)
    ax.set_ylabel("Number of DLTs", fontsize=9)
    compact_style(ax)
    ax.legend(fontsize=8, frameon=False, loc="upper left")
    return fig


def plot_oc(result):
    K = len(result.sel_pct)
    x = np.arange(1, K + 1)
    labels = [f"L{i}" for i in x]

    fig, axes = plt.subplots(1, 3, figsize=(10.5, 3.0), dpi=160)
    panels = [
        (np.asarray(result.sel_pct) * 100, "Selection percentage", "%"),
        (np.asarray(result.num_p), "Average number treated per dose level", "Patients"),
        (np.asarray(result.num_tox), "Average number of DLTs per dose level", "DLTs"),
    ]
    for ax, (vals, title, ylabel) in zip(axes, panels):
        ax.bar(x, vals, 0.6)
        ax.set_title(title, fontsize=9)
        ax.set_xticks(x)
        ax.set_xticklabels(labels, fontsize=8)
        ax.set_ylabel(ylabel, fontsize=8)
        ax.axvline(result.true_mtd, linewidth=1, alpha=0.6)
        compact_style(ax)
    axes[0].text(result.true_mtd + 0.05, axes[0].get_ylim()[1] * 0.92, "True MTD", fontsize=7)
    fig.tight_layout()
    return fig


def plot_mtd(result):
    x = np.asarray(result.doses)
    p = np.asarray(result.p_est)

    fig, ax = plt.subplots(figsize=(5.5, 3.0), dpi=160)
    ax.plot(x, p, marker="o")
    sel = list(result.doses).index(result.mtd)
    ax.plot([result.mtd], [p[sel]], marker="o", markersize=10, color="red", label="MTD")
    ax.axhline(result.target, linewidth=1, alpha=0.6, linestyle="--", label="Target")
    ax.set_xticks(x)
    ax.set_xlabel("Dose level", fontsize=9)
    ax.set_ylabel("Isotonic DLT estimate", fontsize=9)
    ax.set_ylim(0, max(1e-6, p.max(), result.target) * 1.15)
    compact_style(ax)
    ax.legend(fontsize=8, frameon=False, loc="upper left")
    return fig


_PLOTTERS = {
    "boundary": plot_boundary,
    "oc": plot_oc,
    "mtd": plot_mtd,
}


def plot(result, **kwargs):
    """Draw any result variant; dispatches on its `kind` tag."""
    try:
        fn = _PLOTTERS[result.kind]
    except (AttributeError, KeyError):
        raise TypeError(f"Don't know how to plot {type(result).__name__}") from None
    return fn(result, **kwargs)
