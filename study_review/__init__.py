"""Spaced-repetition review engine for a study tracker."""

__version__ = "0.1.0"
