import asyncio
from typing import Any, Dict, List

import pytest

from actionreplay.resolution import (
    FailureReason,
    ResolutionFailure,
    ResolutionSkip,
    ResolvedElement,
    ResolverPolicy,
    SelectorResolver,
    build_candidates,
)
from actionreplay.resolution.page import ElementSnapshot
from actionreplay.schemas.recording import BaseAction, SelectorStrategy
from actionreplay.utils.cancellation import AbortSignal
from tests.fixtures.models.schema_factories import RecordingFactory, click_action
from tests.mocks.page_mocks import FakePage


def parse(action: Dict[str, Any]) -> BaseAction:
    return RecordingFactory.custom_build(actions=[action]).actions[0]


def ranked(*selectors: Dict[str, Any]) -> List[Dict[str, Any]]:
    return list(selectors)


class TestBuildCandidates:
    """Test suite for candidate ordering."""

    # ? VALID CASE
    def test_orders_by_priority_then_confidence(self) -> None:
        action = parse(
            click_action(
                "act_1",
                0,
                selector="button.buy",
                selectors=ranked(
                    {"strategy": "xpath", "value": "//button", "priority": 3, "confidence": 60},
                    {"strategy": "text", "value": "Buy", "priority": 2, "confidence": 70},
                    {"strategy": "aria-label", "value": "Buy", "priority": 2, "confidence": 90},
                ),
            )
        )

        candidates = build_candidates(action)

        assert [c.strategy for c in candidates] == [
            SelectorStrategy.CSS,
            SelectorStrategy.ARIA_LABEL,
            SelectorStrategy.TEXT,
            SelectorStrategy.XPATH,
        ]


class TestSelectorResolver:
    """Test suite for `SelectorResolver`.

    The resolver walks ranked candidates, short-circuits on a unique match,
    narrows ambiguous matches and falls back to the content signature when no
    selector matched anything.
    """

    @pytest.fixture
    def resolver(self) -> SelectorResolver:
        return SelectorResolver(ResolverPolicy(retry_delays=()))

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_first_unique_match_wins(self, resolver: SelectorResolver) -> None:
        """Lower priority candidates are never queried once one matched uniquely."""
        action = parse(
            click_action(
                "act_1",
                0,
                selectors=ranked(
                    {"strategy": "id", "value": "buy", "priority": 1},
                    {"strategy": "css", "value": "button.buy", "priority": 2},
                ),
            )
        )
        page = FakePage(elements={"buy": ["el-buy"], "button.buy": ["el-other"]})

        outcome = await resolver.resolve(action, page)

        assert isinstance(outcome, ResolvedElement)
        assert outcome.handle == "el-buy"
        assert outcome.selector_used == "id=buy"
        assert [value for _, value, _ in page.queries] == ["buy"]

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_falls_through_missing_and_invalid_selectors(
        self, resolver: SelectorResolver
    ) -> None:
        action = parse(
            click_action(
                "act_1",
                0,
                selectors=ranked(
                    {"strategy": "css-semantic", "value": "button:has-text('Buy')", "priority": 1},
                    {"strategy": "id", "value": "gone", "priority": 2},
                    {"strategy": "text", "value": "Buy now", "priority": 3},
                ),
            )
        )
        page = FakePage(
            elements={"Buy now": ["el-buy"]}, invalid={"button:has-text('Buy')"}
        )

        outcome = await resolver.resolve(action, page)

        assert isinstance(outcome, ResolvedElement)
        assert outcome.strategy == "text"

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_context_narrows_ambiguous_match(self, resolver: SelectorResolver) -> None:
        """A selector with a context hint is re-queried inside that context."""
        action = parse(
            click_action(
                "act_1",
                0,
                selectors=ranked(
                    {"strategy": "text", "value": "OK", "context": "swal2-actions", "priority": 1}
                ),
            )
        )
        page = FakePage(
            elements={"OK": ["el-page-ok", "el-modal-ok"]},
            scoped={("swal2-actions", "OK"): ["el-modal-ok"]},
        )

        outcome = await resolver.resolve(action, page)

        assert isinstance(outcome, ResolvedElement)
        assert outcome.handle == "el-modal-ok"
        assert not outcome.low_confidence

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_visual_position_picks_among_matches(self, resolver: SelectorResolver) -> None:
        action = parse(
            click_action(
                "act_1",
                0,
                selectors=ranked({"strategy": "css", "value": "li.card a", "priority": 1}),
                contentSignature={
                    "elementType": "li",
                    "contentFingerprint": {},
                    "visualHints": {"position": 2},
                },
            )
        )
        page = FakePage(elements={"li.card a": ["card-0", "card-1", "card-2"]})

        outcome = await resolver.resolve(action, page)

        assert isinstance(outcome, ResolvedElement)
        assert outcome.handle == "card-2"
        assert outcome.match_index == 2

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_low_confidence_ambiguity_takes_first(self, resolver: SelectorResolver) -> None:
        action = parse(
            click_action(
                "act_1",
                0,
                selectors=ranked(
                    {"strategy": "css", "value": "button", "priority": 1, "confidence": 40},
                    {"strategy": "id", "value": "never-reached", "priority": 2},
                ),
            )
        )
        page = FakePage(elements={"button": ["b0", "b1"], "never-reached": ["b9"]})

        outcome = await resolver.resolve(action, page)

        assert isinstance(outcome, ResolvedElement)
        assert outcome.handle == "b0"
        assert outcome.low_confidence

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_high_confidence_ambiguity_defers_to_next_candidate(
        self, resolver: SelectorResolver
    ) -> None:
        action = parse(
            click_action(
                "act_1",
                0,
                selectors=ranked(
                    {"strategy": "css", "value": "button.buy", "priority": 1, "confidence": 95},
                    {"strategy": "id", "value": "buy-2", "priority": 2},
                ),
            )
        )
        page = FakePage(elements={"button.buy": ["b0", "b1"], "buy-2": ["b1"]})

        outcome = await resolver.resolve(action, page)

        assert isinstance(outcome, ResolvedElement)
        assert outcome.handle == "b1"
        assert outcome.selector_used == "id=buy-2"

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_relaxed_policy_accepts_remaining_ambiguity(
        self, resolver: SelectorResolver
    ) -> None:
        action = parse(
            click_action(
                "act_1",
                0,
                selectors=ranked({"strategy": "css", "value": "button.buy", "confidence": 95}),
            )
        )
        page = FakePage(elements={"button.buy": ["b0", "b1"]})

        outcome = await resolver.resolve(action, page)

        assert isinstance(outcome, ResolvedElement)
        assert outcome.handle == "b0"
        assert outcome.low_confidence
        assert outcome.match_count == 2

    # ? INVALID CASE
    @pytest.mark.asyncio
    async def test_strict_policy_fails_ambiguous_match(self) -> None:
        resolver = SelectorResolver(ResolverPolicy(relaxed=False, retry_delays=()))
        action = parse(
            click_action(
                "act_1",
                0,
                selectors=ranked({"strategy": "css", "value": "button.buy", "confidence": 95}),
            )
        )
        page = FakePage(elements={"button.buy": ["b0", "b1"]})

        outcome = await resolver.resolve(action, page)

        assert isinstance(outcome, ResolutionFailure)
        assert outcome.reason == FailureReason.AMBIGUOUS

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_content_signature_fallback(self, resolver: SelectorResolver) -> None:
        """When no selector matches, the card with the best fingerprint score is used."""
        action = parse(
            click_action(
                "act_1",
                0,
                selectors=ranked({"strategy": "id", "value": "product-42"}),
                contentSignature={
                    "elementType": "li",
                    "listContainer": "ul.products",
                    "contentFingerprint": {"heading": "Blue Shoes", "imageAlt": "blue shoes"},
                },
            )
        )
        page = FakePage(
            snapshots={
                "li": [
                    ElementSnapshot(handle="card-red", text="Red Shoes 49 EUR", image_alts=["Red shoes"]),
                    ElementSnapshot(handle="card-blue", text="Blue Shoes 59 EUR", image_alts=["Blue shoes"]),
                ]
            }
        )

        outcome = await resolver.resolve(action, page)

        assert isinstance(outcome, ResolvedElement)
        assert outcome.handle == "card-blue"
        assert outcome.strategy == "content-signature"

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_content_signature_tie_uses_fallback_position(
        self, resolver: SelectorResolver
    ) -> None:
        action = parse(
            click_action(
                "act_1",
                0,
                selectors=ranked({"strategy": "id", "value": "missing"}),
                contentSignature={
                    "elementType": "li",
                    "contentFingerprint": {"price": "59"},
                    "fallbackPosition": 1,
                },
            )
        )
        page = FakePage(
            snapshots={
                "li": [
                    ElementSnapshot(handle="card-0", text="59 EUR"),
                    ElementSnapshot(handle="card-1", text="59 EUR"),
                ]
            }
        )

        outcome = await resolver.resolve(action, page)

        assert isinstance(outcome, ResolvedElement)
        assert outcome.handle == "card-1"
        assert outcome.low_confidence

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_optional_action_is_skipped(self, resolver: SelectorResolver) -> None:
        action = parse(
            click_action(
                "act_1",
                0,
                selectors=ranked({"strategy": "id", "value": "cookie-accept"}),
                isOptional=True,
                reason="cookie banner may not appear",
            )
        )

        outcome = await resolver.resolve(action, FakePage())

        assert isinstance(outcome, ResolutionSkip)
        assert outcome.reason == "cookie banner may not appear"

    # ? INVALID CASE
    @pytest.mark.asyncio
    async def test_required_action_without_match_fails(self, resolver: SelectorResolver) -> None:
        action = parse(
            click_action(
                "act_1",
                0,
                selector={"id": "gone", "css": "button.gone", "priority": ["id", "css"]},
            )
        )

        outcome = await resolver.resolve(action, FakePage())

        assert isinstance(outcome, ResolutionFailure)
        assert outcome.reason == FailureReason.NO_MATCH
        assert outcome.attempted_strategies == ["id", "css"]

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_untargeted_action_resolves_without_query(
        self, resolver: SelectorResolver
    ) -> None:
        action = parse({"id": "act_1", "type": "keypress", "timestamp": 0, "key": "Escape"})
        page = FakePage()

        outcome = await resolver.resolve(action, page)

        assert isinstance(outcome, ResolvedElement)
        assert outcome.handle is None
        assert page.queries == []


class TestResolverRetry:
    """Test suite for the resolver's passes over late rendering content."""

    @staticmethod
    def buy_click() -> BaseAction:
        return parse(click_action("act_1", 0, selector={"id": "buy", "priority": ["id"]}))

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_late_element_is_found_on_a_later_pass(self) -> None:
        resolver = SelectorResolver(ResolverPolicy(retry_delays=(0.01, 0.01, 0.01)))
        page = FakePage(elements={"buy": ["b0"]}, late={"buy": 2})

        outcome = await resolver.resolve(self.buy_click(), page)

        assert isinstance(outcome, ResolvedElement)
        assert outcome.handle == "b0"
        assert len(page.queries) == 3

    # ? INVALID CASE
    @pytest.mark.asyncio
    async def test_every_pass_is_used_before_failing(self) -> None:
        resolver = SelectorResolver(ResolverPolicy(retry_delays=(0.01, 0.01)))
        page = FakePage()

        outcome = await resolver.resolve(self.buy_click(), page)

        assert isinstance(outcome, ResolutionFailure)
        assert outcome.reason == FailureReason.NO_MATCH
        assert len(page.queries) == 3

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_ambiguous_match_is_not_retried(self) -> None:
        resolver = SelectorResolver(ResolverPolicy(relaxed=False, retry_delays=(5.0,)))
        page = FakePage(elements={"buy": ["b0", "b1"]})

        outcome = await resolver.resolve(self.buy_click(), page)

        assert isinstance(outcome, ResolutionFailure)
        assert outcome.reason == FailureReason.AMBIGUOUS
        assert len(page.queries) == 1

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_abort_ends_the_wait(self) -> None:
        resolver = SelectorResolver(ResolverPolicy(retry_delays=(30.0,)))
        signal = AbortSignal()
        asyncio.get_running_loop().call_later(0.05, signal.abort)
        page = FakePage(elements={"buy": ["b0"]}, late={"buy": 1})

        outcome = await asyncio.wait_for(
            resolver.resolve(self.buy_click(), page, abort_signal=signal), timeout=5
        )

        assert isinstance(outcome, ResolutionFailure)
        assert len(page.queries) == 1
