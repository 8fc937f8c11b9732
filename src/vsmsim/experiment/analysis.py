"""Confidence intervals over replicated run metrics."""

from dataclasses import dataclass
from typing import Sequence

import numpy as np
from scipy import stats


@dataclass(frozen=True)
class ConfidenceInterval:
    """t-based interval for the mean of one metric across replications.

    Attributes:
        mean: Sample mean.
        std: Sample standard deviation (ddof=1), 0 below two samples.
        lower: Lower bound.
        upper: Upper bound.
        n: Number of replications.
        confidence: Confidence level the bounds were computed for.
    """
    mean: float
    std: float
    lower: float
    upper: float
    n: int
    confidence: float

    @property
    def half_width(self) -> float:
        return (self.upper - self.lower) / 2


def compute_ci(values: Sequence[float], confidence: float = 0.95) -> ConfidenceInterval:
    """Confidence interval for the mean of replicated metric values.

    Fewer than two values give a zero-width interval at the mean
    (0.0 for no values). Identical values give a zero-width interval.

    Raises:
        ValueError: If confidence is not in (0, 1).
    """
    if not 0 < confidence < 1:
        raise ValueError(f"confidence must be in (0, 1), got {confidence}")

    arr = np.asarray(values, dtype=float)
    n = len(arr)
    if n < 2:
        mean = float(arr[0]) if n == 1 else 0.0
        return ConfidenceInterval(mean, 0.0, mean, mean, n, confidence)

    mean = float(arr.mean())
    se = float(stats.sem(arr))
    half_width = float(stats.t.ppf((1 + confidence) / 2, df=n - 1) * se)

    return ConfidenceInterval(
        mean=mean,
        std=float(arr.std(ddof=1)),
        lower=mean - half_width,
        upper=mean + half_width,
        n=n,
        confidence=confidence,
    )

