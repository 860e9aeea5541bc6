"""Scoring stage."""

from .llm_scorer import LLMScorer, parse_score

__all__ = ["LLMScorer", "parse_score"]
