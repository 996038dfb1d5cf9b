"""Observation-level engines (one value per sample, rolling window)."""

from day2day.engines.windowed import rolling_mean

__all__ = ['rolling_mean']
