"""Validation package."""

from trackmoji.validation.validator import AnalysisValidator

__all__ = ["AnalysisValidator"]
