"""
Running Statistics — Welford accumulator with Chan's parallel merge.

Chunks of samples are folded in one batch at a time, so per-risk mean and
variance never need the full per-iteration arrays and stay numerically stable
for large iteration counts. Merging in a fixed chunk order makes the result
independent of which worker produced which chunk.

mean and m2 may be scalars or numpy arrays (one accumulator per column).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

import numpy as np


@dataclass
class RunningStats:
    count: int = 0
    mean: Any = 0.0
    m2: Any = 0.0

    @classmethod
    def from_batch(cls, values: np.ndarray) -> "RunningStats":
        """Accumulator over axis 0 of values."""
        n = int(values.shape[0]) if values.ndim else 0
        if n == 0:
            zeros = np.zeros(values.shape[1:]) if values.ndim > 1 else 0.0
            return cls(count=0, mean=zeros, m2=zeros)
        mean = values.mean(axis=0)
        m2 = ((values - mean) ** 2).sum(axis=0)
        return cls(count=n, mean=mean, m2=m2)

    def push(self, value: float) -> None:
        """Fold in a single observation (classic Welford step)."""
        self.count += 1
        delta = value - self.mean
        self.mean += delta / self.count
        self.m2 += delta * (value - self.mean)

    def merge(self, other: "RunningStats") -> "RunningStats":
        """Combine two accumulators in place and return self."""
        if other.count == 0:
            return self
        if self.count == 0:
            self.count, self.mean, self.m2 = other.count, other.mean, other.m2
            return self
        total = self.count + other.count
        delta = other.mean - self.mean
        self.mean = self.mean + delta * other.count / total
        self.m2 = self.m2 + other.m2 + delta * delta * self.count * other.count / total
        self.count = total
        return self

    def update(self, values: np.ndarray) -> "RunningStats":
        return self.merge(RunningStats.from_batch(values))

    @property
    def variance(self) -> Any:
        """Population variance."""
        if self.count == 0:
            return np.zeros_like(self.mean) if isinstance(self.mean, np.ndarray) else 0.0
        return np.maximum(0.0, self.m2 / self.count)

    @property
    def std_dev(self) -> Any:
        return np.sqrt(self.variance)


def percentile_index(percentile: float, length: int) -> int:
    """index = floor(p / 100 * n), clamped to the last element."""
    return min(int(math.floor((percentile / 100) * length)), length - 1)


def percentile(sorted_values: np.ndarray, pct: float) -> float:
    """Nearest-rank percentile of an ascending array. Empty input gives 0."""
    n = int(sorted_values.size)
    if n == 0:
        return 0.0
    return float(sorted_values[percentile_index(pct, n)])
