"""Core entity definitions for the value stream model.

This module contains enums that are used across the codebase,
placed here to avoid circular imports.
"""

from enum import Enum


class ConnectionType(str, Enum):
    """Kind of link between two process steps.

    FORWARD links carry finished work to the next step. REWORK links
    send work back upstream (or to the same step) when it fails the
    step's quality check.
    """
    FORWARD = "forward"
    REWORK = "rework"


class MetricStatus(str, Enum):
    """Traffic-light rating for a value stream metric."""
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"
    NEUTRAL = "neutral"      # Not enough data to rate
