"""Threshold evaluation package."""

from spend_tracker.evaluation.threshold import (
    DEFAULT_APPROACHING_PERCENT,
    EvaluationError,
    ThresholdEvaluator,
    classify,
)

__all__ = [
    "DEFAULT_APPROACHING_PERCENT",
    "EvaluationError",
    "ThresholdEvaluator",
    "classify",
]
