"""
Projection Profiles — Momentum and confidence decay per forecasting scenario.

Neutral is the engine default. Conservative fades momentum sooner, aggressive
lets it persist longer. Each profile must stay within 0.5×-1.5× of neutral.
"""

from __future__ import annotations

from riskquant.models.forecast_models import ProjectionParams, ProjectionProfile

NEUTRAL_MOMENTUM_DECAY = 0.85
NEUTRAL_CONFIDENCE_DECAY = 0.92
DECAY_MULTIPLIER_MIN = 0.5
DECAY_MULTIPLIER_MAX = 1.5


class ProjectionProfileError(ValueError):
    """A profile's decay is outside the safe band around neutral."""


def check_decay(value: float, neutral: float, name: str, profile: ProjectionProfile) -> float:
    low = neutral * DECAY_MULTIPLIER_MIN
    high = neutral * DECAY_MULTIPLIER_MAX
    if not low <= value <= high:
        raise ProjectionProfileError(
            f"Profile {profile.value!r} {name} {value} is outside [{low:.3f}, {high:.3f}] "
            f"(0.5x-1.5x of neutral {neutral})"
        )
    return value


def build_profile(
    profile: ProjectionProfile, momentum_decay: float, confidence_decay: float
) -> ProjectionParams:
    return ProjectionParams(
        momentum_decay=check_decay(momentum_decay, NEUTRAL_MOMENTUM_DECAY, "momentum_decay", profile),
        confidence_decay=check_decay(
            confidence_decay, NEUTRAL_CONFIDENCE_DECAY, "confidence_decay", profile
        ),
    )


PROFILE_PARAMS: dict[ProjectionProfile, ProjectionParams] = {
    ProjectionProfile.NEUTRAL: build_profile(
        ProjectionProfile.NEUTRAL, NEUTRAL_MOMENTUM_DECAY, NEUTRAL_CONFIDENCE_DECAY
    ),
    ProjectionProfile.CONSERVATIVE: build_profile(ProjectionProfile.CONSERVATIVE, 0.78, 0.88),
    ProjectionProfile.AGGRESSIVE: build_profile(ProjectionProfile.AGGRESSIVE, 0.91, 0.95),
}


def get_projection_params(profile: ProjectionProfile | str = ProjectionProfile.NEUTRAL) -> ProjectionParams:
    return PROFILE_PARAMS[ProjectionProfile(profile)]
