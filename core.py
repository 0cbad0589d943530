# core.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union
import logging
import math

import numpy as np
import yaml


logger = logging.getLogger(__name__)

Cutoff = Union[float, Callable[[int], float]]


# -------------------------
# Defaults (single source)
# -------------------------
DEFAULTS: Dict[str, object] = {
    "target": 0.3,
    "n_cohort": 10,
    "cohortsize": 3,
    "titration": True,
    "cutoff": 2.5,
    "cutoff_e": 5.0 / 24.0,
    "skeleton": [0.3, 0.4, 0.5, 0.6],
    "n_trial": 1000,
    "risk_cutoff": 0.8,
    "earlyterm": True,
    "start": 1,  # 1-based dose level
    "seed": 123,
    "n_jobs": 1,
}


# -------------------------
# Errors
# -------------------------
class PopError(Exception):
    """Base class for everything raised by this package."""


class DomainError(PopError, ValueError):
    """An input lies outside the mathematical domain of an operation."""


class ConfigurationError(PopError, ValueError):
    """A design parameter cannot describe a runnable trial."""


class DegenerateTrialError(PopError):
    """
    A simulated trial finished without any resolvable MTD.
    Recovered by the aggregator: the replicate is skipped and tallied.
    """


# -------------------------
# Logging
# -------------------------
def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Basic console logging for scripts and notebooks.
    Library modules only ever create loggers, they never attach handlers.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# -------------------------
# Validation helpers
# -------------------------
def check_target(target: float) -> float:
    t = float(target)
    if not (0.0 < t < 1.0) or not math.isfinite(t):
        raise DomainError(f"target must lie in (0, 1), got {target!r}")
    return t


def check_skeleton(skeleton) -> np.ndarray:
    """
    True toxicity curve: non-empty, each value in (0, 1), non-decreasing.
    """
    s = np.asarray(skeleton, dtype=float)
    if s.ndim != 1 or s.size < 1:
        raise ConfigurationError("skeleton must be a non-empty 1-D sequence (K >= 1)")
    if not np.all(np.isfinite(s)) or np.any(s <= 0.0) or np.any(s >= 1.0):
        raise DomainError(f"skeleton values must lie in (0, 1), got {s.tolist()}")
    if np.any(np.diff(s) < 0):
        raise DomainError(f"skeleton must be non-decreasing, got {s.tolist()}")
    return s


def resolve_cutoff(cutoff: Cutoff, n: int) -> float:
    """Scalar cutoffs apply to every n; callables are evaluated at n."""
    value = cutoff(n) if callable(cutoff) else cutoff
    value = float(value)
    if not value > 0 or math.isnan(value):
        raise DomainError(f"cutoff must be positive, got {value!r} at n={n}")
    return value


# -------------------------
# Configuration
# -------------------------
@dataclass
class PopConfig:
    target: float = 0.3
    n_cohort: int = 10
    cohortsize: int = 3
    skeleton: List[float] = field(default_factory=lambda: [0.3, 0.4, 0.5, 0.6])
    titration: bool = True
    cutoff: Cutoff = 2.5
    cutoff_e: Cutoff = 5.0 / 24.0
    n_trial: int = 1000
    risk_cutoff: float = 0.8
    earlyterm: bool = True
    start: int = 1
    seed: int = 123
    n_jobs: int = 1

    @classmethod
    def from_dict(cls, values: Dict[str, object], defaults: Dict[str, object] = DEFAULTS) -> "PopConfig":
        """
        Fill missing keys from DEFAULTS; unknown keys are an error.
        """
        unknown = set(values) - set(defaults)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        merged = dict(defaults)
        merged.update(values)
        merged["skeleton"] = list(merged["skeleton"])
        return cls(**merged)

    @property
    def n_doses(self) -> int:
        return len(self.skeleton)

    @property
    def sample_size(self) -> int:
        return int(self.n_cohort) * int(self.cohortsize)

    @property
    def mode(self) -> str:
        if self.titration:
            return "titration"
        return "early" if self.earlyterm else "plain"

    def validate(self) -> "PopConfig":
        check_target(self.target)
        check_skeleton(self.skeleton)
        if int(self.cohortsize) < 1:
            raise ConfigurationError(f"cohortsize must be >= 1, got {self.cohortsize}")
        if int(self.n_cohort) < 1:
            raise ConfigurationError(f"n_cohort must be >= 1, got {self.n_cohort}")
        if not (1 <= int(self.start) <= self.n_doses):
            raise ConfigurationError(f"start must be in [1, {self.n_doses}], got {self.start}")
        if int(self.n_trial) < 1:
            raise ConfigurationError(f"n_trial must be >= 1, got {self.n_trial}")
        if not (0.0 < float(self.risk_cutoff) < 1.0):
            raise DomainError(f"risk_cutoff must lie in (0, 1), got {self.risk_cutoff}")
        if int(self.n_jobs) < 1:
            raise ConfigurationError(f"n_jobs must be >= 1, got {self.n_jobs}")
        for n in range(1, self.sample_size + 1):
            resolve_cutoff(self.cutoff, n)
            resolve_cutoff(self.cutoff_e, n)
        return self


def load_config(path: str, overrides: Optional[Dict[str, object]] = None) -> PopConfig:
    """
    Read a YAML mapping of design options. Only scalar cutoffs can be expressed
    this way; pass callables through `overrides`.
    """
    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{path}: expected a mapping at top level")
    if overrides:
        raw.update(overrides)
    cfg = PopConfig.from_dict(raw).validate()
    logger.debug("Loaded configuration from %s: %s", path, cfg)
    return cfg
