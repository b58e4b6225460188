"""
Recording and action models.

A recording is the captured sequence of user interactions produced by the browser
recorder. The models mirror the recorder's camelCase JSON document exactly and are
frozen once validated; normalization produces new instances instead of mutating.

## Key Components

1. **Recording** - Top level recording document
2. **Action** - Discriminated union over the ten action variants
3. **SelectorWithMetadata** - One ranked selector candidate
4. **LegacySelector** - The recorder's older single multi-strategy selector object
5. **ContentSignature** - Structural fingerprint used as a last resort locator

## Usage Examples

```python
from actionreplay.schemas.recording import Recording

recording = Recording.model_validate(json.loads(raw))
for action in recording.actions:
    print(action.id, action.type)
```
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Timestamp = Union[int, float]


class RecordingModel(BaseModel):
    """Base for every recording document model.

    Unknown recorder fields are kept so a recording survives a validate/dump pass
    without losing data.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="allow",
    )


class SelectorStrategy(str, Enum):
    """Ways of locating a DOM element."""

    ID = "id"
    DATA_TEST_ID = "data-testid"
    ARIA_LABEL = "aria-label"
    NAME = "name"
    TEXT_CONTENT = "text-content"
    TEXT = "text"
    SRC_PATTERN = "src-pattern"
    HREF_PATTERN = "href-pattern"
    CSS = "css"
    CSS_SEMANTIC = "css-semantic"
    XPATH = "xpath"
    POSITION = "position"


class SelectorWithMetadata(RecordingModel):
    """A single ranked selector candidate.

    Attributes:
        strategy (SelectorStrategy): How `value` should be interpreted
        value (Any): Selector value; a `{parent, index}` mapping for `position`
        context (Optional[str]): Scoping hint, e.g. the class of an enclosing modal
        priority (int): 1 is the highest priority
        confidence (float): Recorder confidence in the candidate, 0-100
    """

    strategy: SelectorStrategy
    value: Any
    context: Optional[str] = None
    priority: int = Field(default=1)
    confidence: float = Field(default=100, ge=0, le=100)

    def describe(self) -> str:
        return f"{self.strategy.value}={self.value}"


class SelectorPosition(RecordingModel):
    parent: str
    index: int


# legacy key -> unified strategy
LEGACY_STRATEGY_KEYS: Dict[str, SelectorStrategy] = {
    "id": SelectorStrategy.ID,
    "dataTestId": SelectorStrategy.DATA_TEST_ID,
    "ariaLabel": SelectorStrategy.ARIA_LABEL,
    "name": SelectorStrategy.NAME,
    "css": SelectorStrategy.CSS,
    "xpath": SelectorStrategy.XPATH,
    "xpathAbsolute": SelectorStrategy.XPATH,
    "text": SelectorStrategy.TEXT,
    "textContains": SelectorStrategy.TEXT_CONTENT,
    "position": SelectorStrategy.POSITION,
}


class LegacySelector(RecordingModel):
    """The recorder's single multi-strategy selector object.

    `priority` lists the keys of the populated strategies in the order they should be
    tried, e.g. `["id", "css", "xpath"]`.
    """

    id: Optional[str] = None
    data_test_id: Optional[str] = None
    aria_label: Optional[str] = None
    name: Optional[str] = None
    css: Optional[str] = None
    xpath: Optional[str] = None
    xpath_absolute: Optional[str] = None
    text: Optional[str] = None
    text_contains: Optional[str] = None
    position: Optional[SelectorPosition] = None
    priority: List[str] = Field(default_factory=list)

    def to_candidates(self) -> List[SelectorWithMetadata]:
        """Expand into unified candidates, all at priority 1 and confidence 100.

        Populated keys missing from `priority` are appended in declaration order.
        """
        order = [key for key in self.priority if key in LEGACY_STRATEGY_KEYS]
        order += [key for key in LEGACY_STRATEGY_KEYS if key not in order]

        candidates: List[SelectorWithMetadata] = []
        for key in order:
            value = getattr(self, _legacy_attribute(key))
            if value is None or value == "":
                continue
            if isinstance(value, SelectorPosition):
                value = {"parent": value.parent, "index": value.index}
            candidates.append(
                SelectorWithMetadata(
                    strategy=LEGACY_STRATEGY_KEYS[key], value=value, priority=1, confidence=100
                )
            )
        return candidates


def _legacy_attribute(key: str) -> str:
    return "".join(f"_{char.lower()}" if char.isupper() else char for char in key)


class ContentFingerprint(RecordingModel):
    heading: Optional[str] = None
    subheading: Optional[str] = None
    image_alt: Optional[str] = None
    image_src: Optional[str] = None
    link_href: Optional[str] = None
    price: Optional[str] = None
    rating: Optional[str] = None


class VisualHints(RecordingModel):
    position: Optional[int] = None
    near_text: Optional[str] = None


class ContentSignature(RecordingModel):
    """Structural fallback description of an element inside a repeated list."""

    element_type: str
    list_container: Optional[str] = None
    content_fingerprint: ContentFingerprint = Field(default_factory=ContentFingerprint)
    visual_hints: Optional[VisualHints] = None
    fallback_position: Optional[int] = None

    @property
    def preferred_position(self) -> Optional[int]:
        """Position used to pick one instance among several equally good matches."""
        if self.visual_hints is not None and self.visual_hints.position is not None:
            return self.visual_hints.position
        return self.fallback_position


class NavigationIntent(RecordingModel):
    navigation_intent: Optional[str] = None
    expected_url_change: Optional[Dict[str, Any]] = None
    is_terminal_action: Optional[bool] = None
    action_group: Optional[str] = None
    dependent_actions: List[str] = Field(default_factory=list)
    is_inside_modal: Optional[bool] = None
    modal_id: Optional[str] = None


SelectorField = Optional[Union[LegacySelector, str]]


class BaseAction(RecordingModel):
    """Fields shared by every action variant."""

    id: str
    timestamp: Timestamp
    completed_at: Optional[Timestamp] = None
    url: str = ""
    frame_id: Optional[str] = None
    frame_url: Optional[str] = None
    frame_selector: Optional[str] = None
    context: Optional[NavigationIntent] = None
    is_optional: bool = False
    skip_if_not_found: bool = False
    reason: Optional[str] = None
    selectors: Optional[List[SelectorWithMetadata]] = None
    content_signature: Optional[ContentSignature] = None

    @property
    def legacy_selector(self) -> SelectorField:
        return getattr(self, "selector", None)

    @property
    def targets_element(self) -> bool:
        """Whether the action operates on a page element that must be resolved."""
        return True

    @property
    def may_skip(self) -> bool:
        return self.is_optional or self.skip_if_not_found


class ClickAction(BaseAction):
    type: Literal["click"]
    selector: SelectorField = None
    tag_name: Optional[str] = None
    text: Optional[str] = None
    coordinates: Optional[Dict[str, float]] = None
    coordinates_relative_to: Optional[str] = None
    button: str = "left"
    click_count: int = 1
    modifiers: List[str] = Field(default_factory=list)
    modal_context: Optional[Dict[str, Any]] = None
    expects_navigation: Optional[bool] = None
    is_ajax_form: Optional[bool] = None
    click_type: Optional[str] = None


class InputAction(BaseAction):
    type: Literal["input"]
    selector: SelectorField = None
    tag_name: Optional[str] = None
    value: str = ""
    input_type: str = "text"
    is_sensitive: bool = False
    simulation_type: str = "setValue"
    typing_delay: Optional[int] = None


class SelectAction(BaseAction):
    type: Literal["select"]
    selector: SelectorField = None
    tag_name: Optional[str] = None
    selected_value: Optional[str] = None
    selected_text: Optional[str] = None
    selected_index: Optional[int] = None


class NavigationAction(BaseAction):
    type: Literal["navigation"]
    from_url: str = Field(default="", alias="from")
    to: str = ""
    navigation_trigger: Optional[str] = None
    wait_until: str = "load"
    duration: Optional[float] = None

    @property
    def targets_element(self) -> bool:
        return False


class HoverAction(BaseAction):
    type: Literal["hover"]
    selector: SelectorField = None
    tag_name: Optional[str] = None
    text: Optional[str] = None
    duration: Optional[float] = None
    is_dropdown_parent: Optional[bool] = None


class ScrollAction(BaseAction):
    type: Literal["scroll"]
    scroll_x: float = 0
    scroll_y: float = 0
    element: Union[LegacySelector, str] = "window"

    @property
    def legacy_selector(self) -> SelectorField:
        if isinstance(self.element, str) and self.element == "window":
            return None
        return self.element

    @property
    def targets_element(self) -> bool:
        return self.legacy_selector is not None or bool(self.selectors)


class KeypressAction(BaseAction):
    type: Literal["keypress"]
    key: str
    code: Optional[str] = None
    modifiers: List[str] = Field(default_factory=list)

    @property
    def targets_element(self) -> bool:
        return False


class SubmitAction(BaseAction):
    type: Literal["submit"]
    selector: SelectorField = None
    tag_name: Optional[str] = None
    form_data: Optional[Dict[str, str]] = None


class CheckpointAction(BaseAction):
    type: Literal["checkpoint"]
    check_type: str = "pageLoad"
    expected_url: Optional[str] = None
    actual_url: Optional[str] = None
    selector: SelectorField = None
    expected_value: Optional[str] = None
    actual_value: Optional[str] = None
    passed: bool = True

    @property
    def targets_element(self) -> bool:
        return self.selector is not None or bool(self.selectors)


class ModalLifecycleAction(BaseAction):
    type: Literal["modal-lifecycle"]
    event: str
    modal_element: Optional[Dict[str, Any]] = None

    @property
    def targets_element(self) -> bool:
        return False


Action = Annotated[
    Union[
        ClickAction,
        InputAction,
        SelectAction,
        NavigationAction,
        HoverAction,
        ScrollAction,
        KeypressAction,
        SubmitAction,
        CheckpointAction,
        ModalLifecycleAction,
    ],
    Field(discriminator="type"),
]


class Viewport(RecordingModel):
    width: int
    height: int


class Recording(RecordingModel):
    """A captured sequence of browser interactions.

    Attributes:
        id (str): Recording id
        version (str): Recorder schema version
        test_name (str): Human readable name
        url (str): Page the recording starts on
        start_time (str): ISO timestamp when recording began
        end_time (Optional[str]): ISO timestamp when recording stopped
        viewport (Viewport): Browser viewport during recording
        user_agent (str): Recording browser's user agent
        actions (List[Action]): Captured actions
    """

    id: str
    version: str = "1.0"
    test_name: str
    url: str
    start_time: str
    end_time: Optional[str] = None
    viewport: Viewport
    window_size: Optional[Viewport] = None
    screen_size: Optional[Viewport] = None
    device_pixel_ratio: Optional[float] = None
    user_agent: str
    actions: List[Action] = Field(default_factory=list)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https", "file") or (
            parsed.scheme != "file" and not parsed.netloc
        ):
            raise ValueError(f"'{v}' is not an absolute http(s) or file URL")
        return v

    def with_actions(self, actions: List[Any]) -> "Recording":
        """Return a copy carrying `actions` in place of the current sequence."""
        return self.model_copy(update={"actions": list(actions)})

    def to_json_dict(self) -> Dict[str, Any]:
        """Dump back to the recorder's camelCase document shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)
