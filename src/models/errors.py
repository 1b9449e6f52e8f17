"""
Error types surfaced by the decode and tracking core.
"""

from __future__ import annotations


class ConfigurationError(ValueError):
    """
    Invalid configuration detected before (or while) setting up the pipeline.

    Raised for label/class-count mismatches, unknown architectures, malformed
    anchors and out-of-range thresholds. Never retried.
    """


class ValueDomainError(ValueError):
    """
    A per-frame value fell outside its domain (e.g. a confidence outside [0, 1]).

    The caller drops the offending frame and continues with the next one.
    """
