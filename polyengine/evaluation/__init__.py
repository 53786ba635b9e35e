"""Opportunity evaluation and position sizing."""

from polyengine.evaluation.evaluator import OpportunityEvaluator

__all__ = [
    "OpportunityEvaluator",
]
