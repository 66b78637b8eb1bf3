"""Error types.

Insufficient data and degenerate numerics are reported as reading statuses,
not exceptions. The only raised condition is a missing sample source.
"""

from __future__ import annotations


class BiometricsError(Exception):
    pass


class NotReadyError(BiometricsError, RuntimeError):
    """Raised when an estimator is armed without a sample source."""
