"""
riskquant Configuration — pydantic-settings based.

All settings are read from environment variables or .env file.
Engine defaults (weights, alert thresholds, spend steps) live here so the
algorithms never hard-code them.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application-wide settings sourced from environment variables."""

    # ── Simulation ──
    default_iterations: int = Field(
        default=10_000, description="Monte Carlo iterations when none are requested"
    )
    portfolio_iterations: int = Field(
        default=1_000, description="Iterations for triangular portfolio runs"
    )
    triangular_spread: float = Field(
        default=0.2, description="Triangular min/max spread as a fraction of the mode"
    )
    simulation_chunk_size: int = Field(
        default=2_048,
        description="Iterations per chunk. Fixed so seeded output never depends on worker count",
    )
    simulation_max_workers: int = Field(
        default=4, description="Upper bound on concurrent chunk workers"
    )
    max_iterations: int = Field(
        default=200_000, description="Largest iteration count accepted over HTTP"
    )
    simulation_history_cap: int = Field(
        default=20, description="Simulation snapshots retained in the analysis context"
    )

    # ── Snapshot History ──
    snapshot_history_cap: int = Field(
        default=10, description="Risk snapshots retained per risk (oldest evicted)"
    )
    momentum_window: int = Field(
        default=5, description="Most recent snapshots used for momentum"
    )
    snapshot_history_path: str = Field(
        default="",
        description="JSON file for snapshot persistence. Empty keeps history in memory only",
    )

    # ── Decision Scoring ──
    velocity_weight: float = Field(default=0.35, description="Composite weight for velocity")
    volatility_weight: float = Field(default=0.35, description="Composite weight for volatility")
    stability_weight: float = Field(default=0.30, description="Composite weight for instability")
    velocity_scale: float = Field(default=1.0, description="tanh scale applied to velocity")
    volatility_cap: float = Field(default=0.8, description="Volatility that maps to a full sub-score")

    # ── Alert Thresholds ──
    critical_score_above: float = Field(default=80, description="CRITICAL when score >= this")
    accelerating_velocity_min: float = Field(
        default=5_000, description="ACCELERATING when velocity >= this"
    )
    volatile_coeff_above: float = Field(default=0.4, description="VOLATILE when volatility >= this")
    unstable_stability_below: float = Field(
        default=30, description="UNSTABLE when stability <= this"
    )
    improving_stability_above: float = Field(
        default=75, description="IMPROVING when stability >= this and velocity < 0"
    )
    emerging_min_latest: float = Field(
        default=0.2, description="EMERGING needs the latest trigger rate at or above this"
    )
    emerging_min_rise: float = Field(
        default=0.1, description="EMERGING needs this rise from the first trigger rate"
    )
    top_critical_limit: int = Field(default=10, description="Rows returned by the top-critical selector")
    score_delta_show_threshold: float = Field(
        default=3, description="Smallest score change worth surfacing"
    )

    # ── Forecast ──
    forecast_horizon: int = Field(default=5, description="Forward projection steps")

    # ── Optimisation ──
    default_spend_steps: list[float] = Field(
        default=[0, 25_000, 50_000, 100_000, 200_000],
        description="Cumulative mitigation spend steps",
    )

    # ── Server ──
    port: int = Field(default=5001, description="Server port")
    host: str = Field(default="0.0.0.0", description="Server bind host")
    cors_origins: list[str] = Field(
        default=["*"], description="Allowed CORS origins"
    )

    # ── Audit ──
    audit_log_path: str = Field(
        default="audit.jsonl", description="Path to JSON-lines audit log file"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "RISKQUANT_",
        "case_sensitive": False,
    }


# Singleton instance, imported by other modules
settings = Settings()
