"""
Element resolution: ranked selector candidates with a content signature fallback.
"""

from .outcomes import (
    FailureReason,
    ResolutionFailure,
    ResolutionOutcome,
    ResolutionSkip,
    ResolvedElement,
)
from .page import ElementHandle, ElementSnapshot, PageCapability, SelectorQueryError
from .resolver import SelectorResolver
from .strategies import (
    ContentSignatureEvaluator,
    ResolverPolicy,
    SelectorCandidateEvaluator,
    StrategyEvaluator,
    build_candidates,
)

__all__ = [
    "FailureReason",
    "ResolutionFailure",
    "ResolutionOutcome",
    "ResolutionSkip",
    "ResolvedElement",
    "ElementHandle",
    "ElementSnapshot",
    "PageCapability",
    "SelectorQueryError",
    "SelectorResolver",
    "ContentSignatureEvaluator",
    "ResolverPolicy",
    "SelectorCandidateEvaluator",
    "StrategyEvaluator",
    "build_candidates",
]
