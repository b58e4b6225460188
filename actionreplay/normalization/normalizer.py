"""
Recording normalization.

Recorders serialize actions in an order that does not always match the order the
user performed them, may write absolute epoch timestamps, and occasionally capture a
form's submit click before the final keystrokes into that form. `RecordingNormalizer`
turns such a raw recording into a canonical one. It is pure: it never performs I/O
and never mutates its input.

## Steps

1. **Canonical ordering** - sort actions by the numeric part of their id
2. **Timestamp basis detection** - rebase absolute epoch-ms timestamps to zero
3. **Illogical sequence repair** - move inputs captured after their form's submit
   to immediately before it
4. **Residual inversion detection** - report timestamps that still go backwards

## Usage Examples

```python
from actionreplay.normalization import RecordingNormalizer

normalizer = RecordingNormalizer()
canonical = normalizer.normalize(recording)

result = normalizer.normalize_with_report(recording)
for inversion in result.report.unrepaired_inversions:
    print(inversion.action_id, inversion.delta_ms)
```
"""

import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Set, Tuple

from actionreplay.schemas.recording import BaseAction, Recording, SelectorStrategy
from actionreplay.utils.logging_config import logger

EPOCH_THRESHOLD_MS = 1_000_000_000_000
REPAIR_WINDOW_MS = 5_000
REPAIR_LOOKBACK = 5

FORM_TOKEN_PATTERN = re.compile(r"form[#.][\w-]+")
PARENT_SEGMENT_PATTERN = re.compile(r">.*?>")
NON_DIGIT_PATTERN = re.compile(r"\D")
SUBMIT_TEXT_MARKERS = ("submit", "calculate", "send", "save")


@dataclass(frozen=True)
class Relocation:
    """An input action moved to precede the submit-like action it belonged before."""

    action_id: str
    before_action_id: str
    from_index: int
    to_index: int


@dataclass(frozen=True)
class TimestampInversion:
    """A position where an action's timestamp is earlier than its predecessor's."""

    index: int
    action_id: str
    previous_action_id: str
    delta_ms: float
    repaired: bool = False


@dataclass
class NormalizationReport:
    reordered: bool = False
    rebased_timestamps: bool = False
    relocations: List[Relocation] = field(default_factory=list)
    inversions: List[TimestampInversion] = field(default_factory=list)

    @property
    def relocated_action_ids(self) -> Set[str]:
        return {relocation.action_id for relocation in self.relocations}

    @property
    def unrepaired_inversions(self) -> List[TimestampInversion]:
        return [inversion for inversion in self.inversions if not inversion.repaired]

    @property
    def has_anomalies(self) -> bool:
        return bool(self.unrepaired_inversions)


@dataclass
class NormalizationResult:
    recording: Recording
    report: NormalizationReport


def numeric_id(action: BaseAction) -> Optional[int]:
    """Digits of an action id as an int, e.g. `act_012` -> 12; None without digits."""
    digits = NON_DIGIT_PATTERN.sub("", action.id)
    return int(digits) if digits else None


def action_css(action: BaseAction) -> List[str]:
    """CSS selector strings recorded for an action, legacy selector first."""
    css: List[str] = []
    legacy = action.legacy_selector
    if isinstance(legacy, str):
        css.append(legacy)
    elif legacy is not None and legacy.css:
        css.append(legacy.css)

    for candidate in action.selectors or []:
        if candidate.strategy in (SelectorStrategy.CSS, SelectorStrategy.CSS_SEMANTIC) and isinstance(
            candidate.value, str
        ):
            css.append(candidate.value)
    return css


def is_submit_like(action: BaseAction) -> bool:
    """Whether the action submits a form.

    True for explicit `submit` actions and for clicks on a button whose text reads
    like a submit label or whose selector targets `[type="submit"]`.
    """
    if action.type == "submit":
        return True
    if action.type != "click":
        return False

    css = action_css(action)
    if not any("button" in value for value in css):
        return False

    text = (getattr(action, "text", None) or "").lower()
    if any(marker in text for marker in SUBMIT_TEXT_MARKERS):
        return True
    return any('[type="submit"]' in value for value in css)


def _form_tokens(css: List[str]) -> Set[str]:
    return {match.group(0) for value in css for match in FORM_TOKEN_PATTERN.finditer(value)}


def _parent_segments(css: List[str]) -> Set[str]:
    return {match.group(0) for value in css for match in PARENT_SEGMENT_PATTERN.finditer(value)}


def in_same_form(first: BaseAction, second: BaseAction) -> bool:
    """Heuristic check that two actions operate on the same form.

    Compares explicit `form#id` / `form.class` tokens when both selectors carry one,
    otherwise looks for a shared `> parent >` segment.
    """
    first_css = action_css(first)
    second_css = action_css(second)

    first_forms = _form_tokens(first_css)
    second_forms = _form_tokens(second_css)
    if first_forms and second_forms:
        return bool(first_forms & second_forms)

    return bool(_parent_segments(first_css) & _parent_segments(second_css))


class RecordingNormalizer:
    """Turns a raw recording into a canonical, causally ordered one.

    `normalize` is total, deterministic and idempotent.
    """

    def normalize(self, recording: Recording) -> Recording:
        return self.normalize_with_report(recording).recording

    def normalize_with_report(self, recording: Recording) -> NormalizationResult:
        report = NormalizationReport()
        actions: List[Any] = list(recording.actions)

        if not actions:
            return NormalizationResult(recording=recording, report=report)

        actions = self._sort_by_id(actions, report)
        actions = self._rebase_timestamps(actions, report)
        actions = self._repair_sequences(actions, report)
        report.inversions = self._detect_inversions(actions, report)

        for inversion in report.unrepaired_inversions:
            logger.warning(
                f"⚠️ Timestamp inversion: {inversion.action_id} comes after "
                f"{inversion.previous_action_id} but is {inversion.delta_ms}ms earlier"
            )

        return NormalizationResult(recording=recording.with_actions(actions), report=report)

    @staticmethod
    def _sort_by_id(actions: List[Any], report: NormalizationReport) -> List[Any]:
        def sort_key(item: Tuple[int, Any]) -> Tuple[int, int, int]:
            position, action = item
            number = numeric_id(action)
            if number is None:
                return (1, 0, position)
            return (0, number, position)

        ordered = [action for _, action in sorted(enumerate(actions), key=sort_key)]
        report.reordered = [a.id for a in ordered] != [a.id for a in actions]
        return ordered

    @staticmethod
    def _rebase_timestamps(actions: List[Any], report: NormalizationReport) -> List[Any]:
        start = actions[0].timestamp
        if start <= EPOCH_THRESHOLD_MS:
            return actions

        report.rebased_timestamps = True
        logger.debug(f"Rebasing absolute timestamps against {start}")
        return [action.model_copy(update={"timestamp": action.timestamp - start}) for action in actions]

    @staticmethod
    def _repair_sequences(actions: List[Any], report: NormalizationReport) -> List[Any]:
        result = list(actions)
        i = 0
        while i < len(result):
            action = result[i]
            relocated = False

            if action.type == "input":
                for j in range(i - 1, max(0, i - REPAIR_LOOKBACK) - 1, -1):
                    previous = result[j]
                    if not (is_submit_like(previous) and in_same_form(previous, action)):
                        continue

                    gap = action.timestamp - previous.timestamp
                    if 0 <= gap < REPAIR_WINDOW_MS:
                        logger.replay_log(
                            f"🔄 Moving {action.id} (input) before {previous.id} ({previous.type})"
                        )
                        result.pop(i)
                        result.insert(j, action)
                        report.relocations.append(
                            Relocation(
                                action_id=action.id,
                                before_action_id=previous.id,
                                from_index=i,
                                to_index=j,
                            )
                        )
                        relocated = True
                        break

            # restart from the beginning after every relocation
            i = 0 if relocated else i + 1

        return result

    @staticmethod
    def _detect_inversions(
        actions: List[Any], report: NormalizationReport
    ) -> List[TimestampInversion]:
        relocated = report.relocated_action_ids
        inversions: List[TimestampInversion] = []
        for index in range(1, len(actions)):
            previous, current = actions[index - 1], actions[index]
            if current.timestamp < previous.timestamp:
                inversions.append(
                    TimestampInversion(
                        index=index,
                        action_id=current.id,
                        previous_action_id=previous.id,
                        delta_ms=previous.timestamp - current.timestamp,
                        repaired=previous.id in relocated or current.id in relocated,
                    )
                )
        return inversions
