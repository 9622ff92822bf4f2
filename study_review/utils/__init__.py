"""Utility modules for the review engine."""
