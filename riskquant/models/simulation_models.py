"""
Simulation Data Models — Monte Carlo snapshots, reports, intelligence and deltas.
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from riskquant.models.common import FrozenModel


class SamplingMode(str, Enum):
    FIXED = "fixed"
    TRIANGULAR = "triangular"


class RiskSimulationSummary(FrozenModel):
    """Per-risk outcome of one Monte Carlo run."""

    id: str
    title: str = ""
    category: str = "other"
    expected_cost: float = Field(default=0.0, description="probability × cost impact")
    expected_days: float = Field(default=0.0, description="probability × schedule impact")
    sim_mean_cost: float = 0.0
    sim_mean_days: float = 0.0
    sim_std_dev: float = Field(default=0.0, description="Std-dev of the risk's simulated cost")
    trigger_rate: float = Field(default=0.0, ge=0, le=1)
    velocity: float | None = None
    volatility: float | None = None
    stability: float | None = None


class SimulationSummary(FrozenModel):
    iterations: int = 0
    p50_cost: float = 0.0
    p80_cost: float = 0.0
    p90_cost: float = 0.0
    mean_cost: float = 0.0
    min_cost: float = 0.0
    max_cost: float = 0.0
    cost_std_dev: float = 0.0
    p50_time: float = 0.0
    p80_time: float = 0.0
    p90_time: float = 0.0
    mean_time: float = 0.0
    min_time: float = 0.0
    max_time: float = 0.0


class SimulationSnapshot(FrozenModel):
    """Immutable result of one run. A new run always produces a new snapshot."""

    id: str = ""
    timestamp: str = ""
    seed: int | None = None
    mode: SamplingMode = SamplingMode.FIXED
    iterations: int = 0
    p50_cost: float
    p80_cost: float
    p90_cost: float
    p50_time: float = 0.0
    p80_time: float = 0.0
    p90_time: float = 0.0
    total_expected_cost: float = Field(default=0.0, description="Mean simulated portfolio cost")
    total_expected_days: float = Field(default=0.0, description="Mean simulated portfolio delay")
    cost_std_dev: float = 0.0
    risks: list[RiskSimulationSummary] = Field(default_factory=list)
    avg_velocity: float | None = None
    avg_volatility: float | None = None
    avg_stability: float | None = None


class SimulationResult(FrozenModel):
    """Full sample arrays plus summary. Sample arrays are in iteration order."""

    cost_samples: list[float] = Field(default_factory=list)
    time_samples: list[float] = Field(default_factory=list)
    summary: SimulationSummary = Field(default_factory=SimulationSummary)
    risks: list[RiskSimulationSummary] = Field(default_factory=list)
    seed: int | None = None
    mode: SamplingMode = SamplingMode.FIXED


class SimulationReport(FrozenModel):
    iterations: int
    mean_cost: float
    p50_cost: float
    p80_cost: float
    p90_cost: float
    cost_volatility: float = Field(..., description="Population std-dev of portfolio cost")
    mean_time: float
    p80_time: float


class RiskIntelligence(FrozenModel):
    risk_id: str
    velocity: float = 0.0
    volatility: float = 0.0
    stability: float = Field(default=100.0, ge=0, le=100)
    history_depth: int = 0


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"
    FLAT = "flat"


class RiskDelta(FrozenModel):
    id: str
    title: str = ""
    category: str = "other"
    prev_expected_cost: float
    curr_expected_cost: float
    delta_cost: float
    delta_cost_pct: float
    prev_expected_days: float
    curr_expected_days: float
    delta_days: float
    delta_days_pct: float
    direction: Direction


class SimulationDelta(FrozenModel):
    """Change between two simulation snapshots. Percentages are fractions (0.05 = 5 %)."""

    portfolio_delta_cost: float
    portfolio_delta_cost_pct: float
    portfolio_delta_days: float
    portfolio_delta_days_pct: float
    risk_deltas: list[RiskDelta] = Field(default_factory=list)
