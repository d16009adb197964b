"""Privacy score services."""

from .privacy_score import (
    DEFAULT_WEIGHTS,
    ONE_MONTH_WEIGHTS,
    PrivacyScore,
    PrivacyScoreCalculator,
    ScoreWeights,
    address_score,
    calculate_score,
    guides_score,
    urls_score,
    weights_for_plan,
)

__all__ = [
    "DEFAULT_WEIGHTS",
    "ONE_MONTH_WEIGHTS",
    "PrivacyScore",
    "PrivacyScoreCalculator",
    "ScoreWeights",
    "address_score",
    "calculate_score",
    "guides_score",
    "urls_score",
    "weights_for_plan",
]
