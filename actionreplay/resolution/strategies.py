"""
Ranked strategy evaluators used by `SelectorResolver`.

Resolution is an ordered chain of evaluators sharing one `ResolutionState`. Each
evaluator either accepts an element, which ends the chain, or records what it tried
and hands over to the next one. New strategies are added by appending an evaluator;
the resolver's control flow does not change.

## Key Components

1. **SelectorCandidateEvaluator** - Tries the action's selector candidates by priority
2. **ContentSignatureEvaluator** - Structural fingerprint scoring, used only when no
   candidate matched anything
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from actionreplay.resolution.outcomes import CONTENT_SIGNATURE_STRATEGY, ResolvedElement
from actionreplay.resolution.page import (
    ElementHandle,
    ElementSnapshot,
    PageCapability,
    SelectorQueryError,
)
from actionreplay.schemas.recording import (
    BaseAction,
    ContentFingerprint,
    ContentSignature,
    SelectorStrategy,
    SelectorWithMetadata,
)
from actionreplay.utils.logging_config import logger

DEFAULT_RETRY_DELAYS: Tuple[float, ...] = (1.0, 2.0, 3.0)


@dataclass
class ResolverPolicy:
    """Tuning knobs for ambiguous matches.

    Attributes:
        strict_confidence (float): An ambiguous match from a candidate below this
            confidence is accepted right away as low confidence
        relaxed (bool): Accept the first ambiguous high-confidence match as low
            confidence once the whole chain has been exhausted
        retry_delays (Tuple[float, ...]): Seconds to wait before each further pass
            over the chain when nothing matched, for content that renders late
    """

    strict_confidence: float = 80
    relaxed: bool = True
    retry_delays: Tuple[float, ...] = DEFAULT_RETRY_DELAYS


@dataclass
class ResolutionState:
    """Shared bookkeeping for one resolution pass."""

    action: BaseAction
    attempted: List[str] = field(default_factory=list)
    matched_any: bool = False
    ambiguous: Optional[ResolvedElement] = None


def build_candidates(action: BaseAction) -> List[SelectorWithMetadata]:
    """Candidate selectors for an action, ordered by priority then confidence.

    A legacy single selector contributes its strategies at priority 1 with confidence
    100; a bare string legacy selector counts as CSS.
    """
    candidates: List[SelectorWithMetadata] = list(action.selectors or [])

    legacy = action.legacy_selector
    if isinstance(legacy, str):
        if legacy:
            candidates.append(
                SelectorWithMetadata(
                    strategy=SelectorStrategy.CSS, value=legacy, priority=1, confidence=100
                )
            )
    elif legacy is not None:
        candidates.extend(legacy.to_candidates())

    return sorted(candidates, key=lambda candidate: (candidate.priority, -candidate.confidence))


class StrategyEvaluator(ABC):
    """One link of the resolution chain."""

    name: str = "strategy"

    @abstractmethod
    async def evaluate(
        self, page: PageCapability, state: ResolutionState
    ) -> Optional[ResolvedElement]:
        """Return an accepted element, or None to continue with the next evaluator."""
        pass


class SelectorCandidateEvaluator(StrategyEvaluator):
    """Tries each selector candidate in rank order and short-circuits on a unique match."""

    name = "selectors"

    def __init__(self, policy: Optional[ResolverPolicy] = None):
        self.policy = policy or ResolverPolicy()

    async def evaluate(
        self, page: PageCapability, state: ResolutionState
    ) -> Optional[ResolvedElement]:
        action = state.action

        for candidate in build_candidates(action):
            state.attempted.append(candidate.strategy.value)
            matches = await self._query(page, candidate)

            if not matches:
                logger.debug(f"✗ {candidate.describe()} (priority {candidate.priority}): not found")
                continue

            state.matched_any = True
            if len(matches) == 1:
                return self._resolved(action, candidate, matches, 0)

            picked = await self._disambiguate(page, action, candidate, matches)
            if picked is not None:
                return picked

            fallback = self._resolved(action, candidate, matches, 0, low_confidence=True)
            if candidate.confidence < self.policy.strict_confidence:
                logger.warning(
                    f"⚠️ {candidate.describe()} matched {len(matches)} elements, "
                    f"using the first (confidence {candidate.confidence:.0f}%)"
                )
                return fallback

            logger.debug(
                f"{candidate.describe()} matched {len(matches)} elements, "
                f"too many for confidence {candidate.confidence:.0f}%"
            )
            if state.ambiguous is None:
                state.ambiguous = fallback

        return None

    async def _query(
        self, page: PageCapability, candidate: SelectorWithMetadata, scope: Optional[str] = None
    ) -> List[ElementHandle]:
        try:
            return list(await page.query_elements(candidate, scope))
        except SelectorQueryError as e:
            logger.debug(f"✗ {candidate.describe()} could not be evaluated: {e}")
            return []

    async def _disambiguate(
        self,
        page: PageCapability,
        action: BaseAction,
        candidate: SelectorWithMetadata,
        matches: List[ElementHandle],
    ) -> Optional[ResolvedElement]:
        if candidate.context:
            scoped = await self._query(page, candidate, scope=candidate.context)
            if len(scoped) == 1:
                return self._resolved(action, candidate, scoped, 0)
            if scoped:
                matches = scoped

        signature = action.content_signature
        position = signature.preferred_position if signature is not None else None
        if position is not None and 0 <= position < len(matches):
            return self._resolved(action, candidate, matches, position)

        return None

    @staticmethod
    def _resolved(
        action: BaseAction,
        candidate: SelectorWithMetadata,
        matches: Sequence[ElementHandle],
        index: int,
        low_confidence: bool = False,
    ) -> ResolvedElement:
        return ResolvedElement(
            action_id=action.id,
            handle=matches[index],
            strategy=candidate.strategy.value,
            selector_used=candidate.describe(),
            low_confidence=low_confidence,
            match_index=index,
            match_count=len(matches),
        )


def _contains(haystack: str, needle: str) -> bool:
    return needle.strip().lower() in haystack.lower()


def score_snapshot(fingerprint: ContentFingerprint, snapshot: ElementSnapshot) -> int:
    """Number of fingerprint fields found in the snapshot's content."""
    score = 0
    text_fields = (fingerprint.heading, fingerprint.subheading, fingerprint.price, fingerprint.rating)
    for text_field in text_fields:
        if text_field and _contains(snapshot.text, text_field):
            score += 1

    for needle, values in (
        (fingerprint.image_alt, snapshot.image_alts),
        (fingerprint.image_src, snapshot.image_srcs),
        (fingerprint.link_href, snapshot.hrefs),
    ):
        if needle and any(_contains(value, needle) for value in values):
            score += 1
    return score


class ContentSignatureEvaluator(StrategyEvaluator):
    """Locates an element by structural fingerprint when no selector matched anything."""

    name = CONTENT_SIGNATURE_STRATEGY

    def __init__(self, minimum_score: int = 1):
        self.minimum_score = minimum_score

    async def evaluate(
        self, page: PageCapability, state: ResolutionState
    ) -> Optional[ResolvedElement]:
        signature = state.action.content_signature
        if signature is None or state.matched_any:
            return None

        state.attempted.append(self.name)
        try:
            snapshots = list(
                await page.inspect_elements(signature.element_type, signature.list_container)
            )
        except SelectorQueryError as e:
            logger.debug(f"✗ content signature could not be evaluated: {e}")
            return None

        scores = [score_snapshot(signature.content_fingerprint, snapshot) for snapshot in snapshots]
        best = max(scores, default=0)
        if best < self.minimum_score:
            return None

        tied = [index for index, score in enumerate(scores) if score == best]
        index = self._break_tie(signature, tied)
        logger.replay_log(
            f"🧩 Content signature matched {signature.element_type} #{index} "
            f"({best} fingerprint field(s))"
        )
        return ResolvedElement(
            action_id=state.action.id,
            handle=snapshots[index].handle,
            strategy=self.name,
            selector_used=f"{self.name}={signature.element_type}[{index}]",
            low_confidence=len(tied) > 1,
            match_index=index,
            match_count=len(tied),
        )

    @staticmethod
    def _break_tie(signature: ContentSignature, tied: List[int]) -> int:
        for position in (
            signature.fallback_position,
            signature.visual_hints.position if signature.visual_hints else None,
        ):
            if position is not None and position in tied:
                return position
        return tied[0]
