"""Flood risk scoring model.

Two independent scorers live here:

* ``score_components`` is the detailed composite-indicator scorer used by
  ``RiskIndexData``. Each pillar (exposure, susceptibility, resilience) is the
  weighted sum of its named sub-components.
* ``score_ward`` is the simplified linear model used by ``Ward`` when only the
  five raw ward attributes are known.

Both combine the pillars with the same composite weights and map the result to
the same five risk categories. Everything in this module is pure: no database
access, no mutation of the inputs, no exceptions for missing values.
"""
import enum
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

MIN_SCORE = 0.0
MAX_SCORE = 10.0

EXPOSURE_WEIGHT = 0.4
SUSCEPTIBILITY_WEIGHT = 0.4
RESILIENCE_WEIGHT = 0.2

WARD_RISK_INPUTS = ("population_density", "rainfall", "low_elevation", "urban_land", "drainage_capacity")


class RiskCategory(str, enum.Enum):
    VERY_LOW = "Very Low"
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    VERY_HIGH = "Very High"


# Lower bound (inclusive) of each category, highest first.
CATEGORY_THRESHOLDS = (
    (8.0, RiskCategory.VERY_HIGH),
    (6.0, RiskCategory.HIGH),
    (4.0, RiskCategory.MEDIUM),
    (2.0, RiskCategory.LOW),
)

RISK_COLORS = {
    RiskCategory.VERY_LOW: "#00FF00",
    RiskCategory.LOW: "#90EE90",
    RiskCategory.MEDIUM: "#FFFF00",
    RiskCategory.HIGH: "#FFA500",
    RiskCategory.VERY_HIGH: "#FF0000",
}

RISK_LABELS_VI = {
    RiskCategory.VERY_LOW.value: "Rất Thấp",
    RiskCategory.LOW.value: "Thấp",
    RiskCategory.MEDIUM.value: "Trung Bình",
    RiskCategory.HIGH.value: "Cao",
    RiskCategory.VERY_HIGH.value: "Rất Cao",
}


@dataclass(frozen=True)
class RiskAssessment:
    exposure: float
    susceptibility: float
    resilience: float
    score: float
    category: RiskCategory


@dataclass(frozen=True)
class TrendSummary:
    avg_risk: float = 0.0
    max_risk: float = 0.0
    min_risk: float = 0.0
    count: int = 0
    data: list = field(default_factory=list)


def clamp(value, lower=MIN_SCORE, upper=MAX_SCORE):
    return max(lower, min(upper, value))


def categorize(score) -> RiskCategory:
    """Map a composite score to its category. Intervals are closed below."""
    for lower_bound, category in CATEGORY_THRESHOLDS:
        if score >= lower_bound:
            return category
    return RiskCategory.VERY_LOW


def risk_color(category) -> str:
    try:
        return RISK_COLORS[RiskCategory(category)]
    except ValueError:
        return "#808080"


def composite_score(exposure, susceptibility, resilience) -> float:
    raw = exposure * EXPOSURE_WEIGHT + susceptibility * SUSCEPTIBILITY_WEIGHT - resilience * RESILIENCE_WEIGHT
    return clamp(raw)


def _field(component, name):
    if isinstance(component, Mapping):
        return component.get(name)
    return getattr(component, name, None)


def pillar_score(components: Optional[Mapping]) -> float:
    """Sum of contribution * weight over the components of one pillar.

    The sum is not divided by the total weight and is not clamped, so a pillar
    whose weights add up to more than 1 can exceed 10. A missing weight counts
    as 1 and a component without a contribution is skipped. An explicit weight
    of 0 is not replaced by 1, so it switches the component off.
    """
    total = 0.0
    for component in (components or {}).values():
        if component is None:
            continue
        contribution = _field(component, "contribution")
        if contribution is None:
            continue
        weight = _field(component, "weight")
        total += contribution * (1 if weight is None else weight)
    return total


def score_components(exposure_components, susceptibility_components, resilience_components) -> RiskAssessment:
    exposure = pillar_score(exposure_components)
    susceptibility = pillar_score(susceptibility_components)
    resilience = pillar_score(resilience_components)
    score = composite_score(exposure, susceptibility, resilience)
    return RiskAssessment(exposure, susceptibility, resilience, score, categorize(score))


def score_pillars(exposure, susceptibility, resilience) -> RiskAssessment:
    """Composite and category for already-known pillar scores."""
    exposure = exposure or 0.0
    susceptibility = susceptibility or 0.0
    resilience = resilience or 0.0
    score = composite_score(exposure, susceptibility, resilience)
    return RiskAssessment(exposure, susceptibility, resilience, score, categorize(score))


def score_ward(population_density=None, rainfall=None, low_elevation=None,
               urban_land=None, drainage_capacity=None) -> RiskAssessment:
    pop_density = population_density or 0.0
    rainfall = rainfall or 0.0
    low_elevation = low_elevation or 0.0
    urban_land = urban_land or 0.0
    drainage_capacity = drainage_capacity or 0.0

    exposure = clamp((pop_density / 10000) * 3 + (urban_land / 100) * 2 + (low_elevation / 10) * 2.5)
    susceptibility = clamp((rainfall / 300) * 3 + (10 - drainage_capacity) * 0.5)
    resilience = clamp(drainage_capacity * 0.3 + (10 - low_elevation) * 0.2)
    score = composite_score(exposure, susceptibility, resilience)
    return RiskAssessment(exposure, susceptibility, resilience, score, categorize(score))


def has_all_ward_inputs(values: Mapping) -> bool:
    return all(values.get(name) is not None for name in WARD_RISK_INPUTS)


def summarize_trend(points: Iterable[Mapping]) -> TrendSummary:
    """Average, max and min of ``risk_index`` over time-ordered points."""
    data = list(points)
    if not data:
        return TrendSummary()
    scores = [p["risk_index"] for p in data]
    return TrendSummary(
        avg_risk=sum(scores) / len(scores),
        max_risk=max(scores),
        min_risk=min(scores),
        count=len(scores),
        data=data,
    )
