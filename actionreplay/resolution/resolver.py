"""
Selector resolution against a live page.

`SelectorResolver` takes one action and a page capability and returns the element
the action should operate on. It walks a ranked chain of strategy evaluators,
short-circuits on the first unambiguous match and never mutates the page.

## Usage Examples

```python
from actionreplay.resolution import SelectorResolver, ResolvedElement

resolver = SelectorResolver()
outcome = await resolver.resolve(action, page)
if isinstance(outcome, ResolvedElement):
    await page.dispatch_action(action, outcome.handle)
```
"""

from typing import List, Optional, Union

from actionreplay.resolution.outcomes import (
    FailureReason,
    ResolutionFailure,
    ResolutionOutcome,
    ResolutionSkip,
    ResolvedElement,
)
from actionreplay.resolution.page import PageCapability
from actionreplay.resolution.strategies import (
    ContentSignatureEvaluator,
    ResolutionState,
    ResolverPolicy,
    SelectorCandidateEvaluator,
    StrategyEvaluator,
)
from actionreplay.schemas.recording import BaseAction
from actionreplay.utils.cancellation import AbortSignal, abortable_sleep
from actionreplay.utils.logging_config import logger


class SelectorResolver:
    """Resolves an action's target element through an ordered strategy chain.

    Args:
        policy (Optional[ResolverPolicy]): Handling of ambiguous matches and retries
        evaluators (Optional[List[StrategyEvaluator]]): Chain override; defaults to
            selector candidates followed by the content signature fallback
    """

    def __init__(
        self,
        policy: Optional[ResolverPolicy] = None,
        evaluators: Optional[List[StrategyEvaluator]] = None,
    ):
        self.policy = policy or ResolverPolicy()
        self.evaluators: List[StrategyEvaluator] = evaluators or [
            SelectorCandidateEvaluator(self.policy),
            ContentSignatureEvaluator(),
        ]

    async def resolve(
        self,
        action: BaseAction,
        page: PageCapability,
        abort_signal: Optional[AbortSignal] = None,
    ) -> ResolutionOutcome:
        """Resolve `action` against `page`.

        When no candidate matches anything the whole chain is retried after each of
        the policy's `retry_delays`, so elements that render late are still found.
        Ambiguous matches are never retried. The waits stop early if `abort_signal`
        fires.

        Returns:
            ResolutionOutcome: `ResolvedElement` on success (`handle=None` for actions
            that need no element), `ResolutionSkip` for an optional action that could
            not be resolved, `ResolutionFailure` otherwise
        """
        if not action.targets_element:
            return ResolvedElement(action_id=action.id, handle=None)

        delays = self.policy.retry_delays
        state = await self._run_chain(action, page)
        for attempt, delay in enumerate(delays, start=1):
            if isinstance(state, ResolvedElement) or state.matched_any:
                break
            logger.info(
                f"⏳ {action.id}: nothing matched, waiting {delay:g}s for late content "
                f"(retry {attempt}/{len(delays)})"
            )
            if not await abortable_sleep(delay, abort_signal):
                break
            state = await self._run_chain(action, page)

        if isinstance(state, ResolvedElement):
            return state

        if state.ambiguous is not None and self.policy.relaxed:
            logger.warning(
                f"⚠️ {action.id}: no unambiguous match, falling back to "
                f"{state.ambiguous.selector_used} (first of {state.ambiguous.match_count})"
            )
            return state.ambiguous

        reason = FailureReason.AMBIGUOUS if state.ambiguous is not None else FailureReason.NO_MATCH

        if action.may_skip:
            return ResolutionSkip(
                action_id=action.id,
                attempted_strategies=list(state.attempted),
                reason=action.reason or f"optional element not found ({reason.value})",
            )

        return ResolutionFailure(
            action_id=action.id, attempted_strategies=list(state.attempted), reason=reason
        )

    async def _run_chain(
        self, action: BaseAction, page: PageCapability
    ) -> Union[ResolvedElement, ResolutionState]:
        """One pass over the evaluators; the final state when none resolved."""
        state = ResolutionState(action=action)
        for evaluator in self.evaluators:
            resolved = await evaluator.evaluate(page, state)
            if resolved is not None:
                logger.debug(f"✓ {action.id} resolved via {resolved.selector_used}")
                return resolved
        return state
