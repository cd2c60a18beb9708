"""
Input Parsing — Tagged parse results and the risk schema validation step.

Every engine boundary goes through these functions. A parse never raises:
it returns Valid(value) or Invalid(reason), and the caller decides which
documented default replaces an Invalid.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from riskquant.models.risk_models import (
    MitigationProfile,
    MitigationProfileInput,
    MitigationStatus,
    RatingInput,
    RatingLevel,
    RiskCategory,
    RiskInput,
    RiskRating,
    RiskRecord,
    RiskStatus,
)

logger = logging.getLogger("riskquant.parsing")

T = TypeVar("T")

# Consequence rating (1-5) → currency impact when no explicit cost is given
CONSEQUENCE_COST_MAP: dict[int, float] = {
    1: 25_000,
    2: 100_000,
    3: 300_000,
    4: 750_000,
    5: 1_500_000,
}

DEFAULT_PERSISTENCE = 0.5
# Impacts above this are capped so portfolio sums stay finite
MAX_IMPACT = 1e15
DEFAULT_SENSITIVITY = 0.5


@dataclass(frozen=True)
class Valid(Generic[T]):
    value: T


@dataclass(frozen=True)
class Invalid:
    reason: str


ParseResult = Valid[T] | Invalid


def value_or(result: ParseResult[T], default: T) -> T:
    """Unwrap a parse result, substituting default for Invalid."""
    if isinstance(result, Valid):
        return result.value
    return default


def parse_finite(value: Any) -> ParseResult[float]:
    if value is None:
        return Invalid("missing")
    if isinstance(value, bool):
        return Invalid("boolean is not a number")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return Invalid(f"not a number: {value!r}")
    if not isinstance(value, (int, float)):
        return Invalid(f"not a number: {type(value).__name__}")
    number = float(value)
    if not math.isfinite(number):
        return Invalid(f"not finite: {number}")
    return Valid(number)


def parse_non_negative(value: Any) -> ParseResult[float]:
    parsed = parse_finite(value)
    if isinstance(parsed, Invalid):
        return parsed
    if parsed.value < 0:
        return Invalid(f"negative: {parsed.value}")
    return parsed


def parse_positive(value: Any) -> ParseResult[float]:
    parsed = parse_finite(value)
    if isinstance(parsed, Invalid):
        return parsed
    if parsed.value <= 0:
        return Invalid(f"not positive: {parsed.value}")
    return parsed


def parse_unit_interval(value: Any, clamp: bool = True) -> ParseResult[float]:
    """Finite value in [0, 1]. Out-of-range values are clamped unless clamp=False."""
    parsed = parse_finite(value)
    if isinstance(parsed, Invalid):
        return parsed
    if 0 <= parsed.value <= 1:
        return parsed
    if not clamp:
        return Invalid(f"outside [0, 1]: {parsed.value}")
    return Valid(min(1.0, max(0.0, parsed.value)))


def normalize_probability(value: Any) -> ParseResult[float]:
    """
    Normalise a probability given on any of the register's scales.

        [0, 1]    → as-is
        (1, 100]  → percentage / 100
        otherwise → Invalid

    A bare 1-5 or 1-10 rating overlaps the percentage range and is read as a
    percentage. Ratings belong in inherentRating/residualRating, which go
    through rating_probability.
    """
    parsed = parse_finite(value)
    if isinstance(parsed, Invalid):
        return parsed
    p = parsed.value
    if 0 <= p <= 1:
        return Valid(p)
    if 1 < p <= 100:
        return Valid(p / 100)
    return Invalid(f"probability out of range: {p}")


def rating_probability(value: Any) -> ParseResult[float]:
    """Probability from a rating field: already 0-1, or a 1-5 rating."""
    parsed = parse_finite(value)
    if isinstance(parsed, Invalid):
        return parsed
    p = parsed.value
    if 0 <= p <= 1:
        return Valid(p)
    if 1 <= p <= 5:
        return Valid(p / 5)
    return Invalid(f"rating probability out of range: {p}")


def parse_rating_value(value: Any) -> ParseResult[int]:
    """A 1-5 rating, rounded and clamped."""
    parsed = parse_finite(value)
    if isinstance(parsed, Invalid):
        return parsed
    return Valid(max(1, min(5, round_half_up(parsed.value))))


def consequence_cost(consequence: Any) -> ParseResult[float]:
    rating = parse_rating_value(consequence)
    if isinstance(rating, Invalid):
        return rating
    return Valid(CONSEQUENCE_COST_MAP[rating.value])


def rating_level(score: int) -> RatingLevel:
    if score <= 4:
        return RatingLevel.LOW
    if score <= 9:
        return RatingLevel.MEDIUM
    if score <= 16:
        return RatingLevel.HIGH
    return RatingLevel.EXTREME


def build_rating(raw: RatingInput | None) -> RiskRating | None:
    if raw is None:
        return None
    p = parse_rating_value(raw.probability)
    c = parse_rating_value(raw.consequence)
    if isinstance(p, Invalid) or isinstance(c, Invalid):
        return None
    score = p.value * c.value
    return RiskRating(
        probability=p.value,
        consequence=c.value,
        score=score,
        level=rating_level(score),
    )


def _enum_or(enum_cls, value: Any, default):
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            return default
    return default


def _mitigation_profile(raw: MitigationProfileInput | None) -> MitigationProfile | None:
    if raw is None:
        return None
    effectiveness = parse_unit_interval(raw.effectiveness)
    confidence = parse_unit_interval(raw.confidence)
    return MitigationProfile(
        status=_enum_or(MitigationStatus, raw.status, MitigationStatus.NONE),
        effectiveness=value_or(effectiveness, None),
        confidence=value_or(confidence, None),
        lag_months=value_or(parse_non_negative(raw.lag_months), 0.0),
    )


def _resolve_probability(raw: RiskInput, warnings: list[str]) -> tuple[float, bool]:
    explicit = normalize_probability(raw.probability)
    if isinstance(explicit, Valid):
        if raw.probability != explicit.value:
            warnings.append(f"probability {raw.probability} normalised to {explicit.value:.4f}")
        return explicit.value, True
    if raw.probability is not None:
        warnings.append(f"probability ignored ({explicit.reason})")

    for rating in (raw.residual_rating, raw.inherent_rating):
        if rating is None:
            continue
        from_rating = rating_probability(rating.probability)
        if isinstance(from_rating, Valid):
            return from_rating.value, True
    return 0.0, False


def _resolve_cost(raw: RiskInput, warnings: list[str]) -> float:
    for name, value in (("costImpact", raw.cost_impact), ("baseCostImpact", raw.base_cost_impact)):
        parsed = parse_positive(value)
        if isinstance(parsed, Valid):
            if parsed.value > MAX_IMPACT:
                warnings.append(f"{name} capped at {MAX_IMPACT:g}")
            return min(parsed.value, MAX_IMPACT)
        if value is not None and value != 0:
            warnings.append(f"{name} ignored ({parsed.reason})")

    for rating in (raw.residual_rating, raw.inherent_rating):
        if rating is None:
            continue
        mapped = consequence_cost(rating.consequence)
        if isinstance(mapped, Valid):
            return mapped.value
    return 0.0


def to_risk_record(raw: RiskInput) -> RiskRecord:
    """
    Validate a loose register entry into the canonical RiskRecord.

    Never raises on numeric content. Every coercion is recorded in
    RiskRecord.warnings so callers can surface what was cleaned up.
    """
    warnings: list[str] = []

    probability, probability_known = _resolve_probability(raw, warnings)
    cost = _resolve_cost(raw, warnings)

    days = parse_non_negative(raw.schedule_impact_days)
    if isinstance(days, Invalid) and raw.schedule_impact_days is not None:
        warnings.append(f"scheduleImpactDays ignored ({days.reason})")

    strength = parse_unit_interval(raw.mitigation_strength)
    if isinstance(strength, Invalid) and raw.mitigation_strength is not None:
        warnings.append(f"mitigationStrength ignored ({strength.reason})")

    category = _enum_or(RiskCategory, raw.category, RiskCategory.OTHER)
    status = _enum_or(RiskStatus, raw.status, RiskStatus.OPEN)

    if warnings:
        logger.debug(f"Risk {raw.id} sanitised: {'; '.join(warnings)}")

    return RiskRecord(
        id=raw.id,
        title=raw.title or raw.id,
        category=category,
        status=status,
        probability=probability,
        cost_impact=cost,
        schedule_impact_days=min(value_or(days, 0.0), MAX_IMPACT),
        escalation_persistence=value_or(
            parse_unit_interval(raw.escalation_persistence), DEFAULT_PERSISTENCE
        ),
        sensitivity=value_or(parse_unit_interval(raw.sensitivity), DEFAULT_SENSITIVITY),
        mitigation_strength=value_or(strength, None),
        inherent_rating=build_rating(raw.inherent_rating),
        residual_rating=build_rating(raw.residual_rating),
        mitigation=_mitigation_profile(raw.mitigation_profile),
        probability_known=probability_known,
        warnings=warnings,
    )


def to_risk_records(raws: list[RiskInput]) -> list[RiskRecord]:
    return [to_risk_record(r) for r in raws]


def safe_number(value: Any, default: float = 0.0) -> float:
    """Finite float or default. Used for optional metrics on outputs."""
    return value_or(parse_finite(value), default)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round halves upward (2.5 → 3, −2.5 → −2) rather than to even."""
    return int(math.floor(value + 0.5))
