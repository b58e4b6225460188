"""
Recording normalization: canonical ordering, timestamp rebasing, sequence repair.
"""

from .normalizer import (
    NormalizationReport,
    NormalizationResult,
    RecordingNormalizer,
    Relocation,
    TimestampInversion,
)

__all__ = [
    "NormalizationReport",
    "NormalizationResult",
    "RecordingNormalizer",
    "Relocation",
    "TimestampInversion",
]
