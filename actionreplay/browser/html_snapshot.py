"""
Page capability over a static HTML document.

`HtmlSnapshotPage` evaluates selector candidates against saved HTML with lxml, which
lets a recording's selectors be checked offline without launching a browser. CSS
selectors go through lxml's cssselect integration. Dispatching an action records it
and has no other effect.

## Usage Examples

```python
page = HtmlSnapshotPage.from_file(Path("checkout.html"))
outcome = await SelectorResolver().resolve(action, page)
```
"""

from pathlib import Path
from typing import Any, List, Optional, Tuple

from cssselect import SelectorError as CSSSelectorError
from lxml import html
from lxml.etree import XPathError
from lxml.etree import _Element as Element
from lxml.html import HtmlElement

from actionreplay.resolution.page import ElementHandle, ElementSnapshot, SelectorQueryError
from actionreplay.schemas.recording import BaseAction, SelectorStrategy, SelectorWithMetadata

CLASS_XPATH = ".//*[contains(concat(' ', normalize-space(@class), ' '), $token)]"

STRATEGY_XPATHS = {
    SelectorStrategy.ID: ".//*[@id=$value]",
    SelectorStrategy.DATA_TEST_ID: ".//*[@data-testid=$value]",
    SelectorStrategy.NAME: ".//*[@name=$value]",
    SelectorStrategy.TEXT: ".//*[normalize-space(text())=$value]",
    SelectorStrategy.TEXT_CONTENT: (
        ".//*[contains(normalize-space(.), $value)]"
        "[not(.//*[contains(normalize-space(.), $value)])]"
    ),
    SelectorStrategy.HREF_PATTERN: ".//a[contains(@href, $value)]",
    SelectorStrategy.SRC_PATTERN: ".//img[contains(@src, $value)]",
}

ARIA_LABEL_XPATH = ".//*[@aria-label=$value]"
LABEL_FOR_XPATH = ".//label[normalize-space(.)=$value]/@for"


def describe_element(element: HtmlElement) -> str:
    """Short `tag#id.class` description used in logs and the CLI."""
    description = element.tag
    if element.get("id"):
        description += f"#{element.get('id')}"
    classes = (element.get("class") or "").split()
    if classes:
        description += "." + ".".join(classes)
    return description


def _unique(elements: List[Any]) -> List[HtmlElement]:
    seen = set()
    result = []
    for element in elements:
        if not isinstance(element, Element) or id(element) in seen:
            continue
        seen.add(id(element))
        result.append(element)
    return result


class HtmlSnapshotPage:
    """Static page capability evaluated with lxml.

    Attributes:
        tree (HtmlElement): Parsed document root
        dispatched (List[Tuple[str, Optional[str]]]): Action ids with the described target
    """

    def __init__(self, html_content: str):
        self.tree: HtmlElement = html.fromstring(html_content)
        self.dispatched: List[Tuple[str, Optional[str]]] = []

    @classmethod
    def from_file(cls, path: Path) -> "HtmlSnapshotPage":
        return cls(Path(path).read_text(encoding="utf-8"))

    def _css(self, root: HtmlElement, selector: str) -> List[HtmlElement]:
        try:
            return _unique(root.cssselect(selector))
        except (CSSSelectorError, XPathError, ValueError) as e:
            raise SelectorQueryError(f"Invalid CSS selector '{selector}': {e}") from e

    def _scope_roots(self, scope: Optional[str]) -> List[HtmlElement]:
        if not scope:
            return [self.tree]
        if scope[:1] in (".", "#", "[") or any(char in scope for char in " >:="):
            return self._css(self.tree, scope)
        return _unique(self.tree.xpath(CLASS_XPATH, token=f" {scope} "))

    def _evaluate(self, candidate: SelectorWithMetadata, root: HtmlElement) -> List[HtmlElement]:
        strategy = candidate.strategy
        value = candidate.value

        if strategy in STRATEGY_XPATHS:
            return _unique(root.xpath(STRATEGY_XPATHS[strategy], value=str(value)))

        if strategy == SelectorStrategy.ARIA_LABEL:
            labelled = root.xpath(ARIA_LABEL_XPATH, value=str(value))
            for target_id in root.xpath(LABEL_FOR_XPATH, value=str(value)):
                labelled.extend(self.tree.xpath(".//*[@id=$value]", value=str(target_id)))
            return _unique(labelled)

        if strategy in (SelectorStrategy.CSS, SelectorStrategy.CSS_SEMANTIC):
            return self._css(root, str(value))

        if strategy == SelectorStrategy.XPATH:
            try:
                return _unique(root.xpath(str(value)))
            except XPathError as e:
                raise SelectorQueryError(f"Invalid XPath '{value}': {e}") from e

        if strategy == SelectorStrategy.POSITION:
            if not isinstance(value, dict):
                return self._css(root, str(value))
            index = int(value.get("index", 0))
            children = []
            for parent in self._css(root, value.get("parent") or "body"):
                element_children = [child for child in parent if isinstance(child.tag, str)]
                if 0 <= index < len(element_children):
                    children.append(element_children[index])
            return _unique(children)

        raise SelectorQueryError(f"Unsupported selector strategy: {strategy}")

    async def query_elements(
        self, candidate: SelectorWithMetadata, scope: Optional[str] = None
    ) -> List[ElementHandle]:
        matches: List[HtmlElement] = []
        for root in self._scope_roots(scope):
            matches.extend(self._evaluate(candidate, root))
        return _unique(matches)

    async def inspect_elements(
        self, element_type: str, container: Optional[str] = None
    ) -> List[ElementSnapshot]:
        elements: List[HtmlElement] = []
        for root in self._scope_roots(container):
            elements.extend(self._css(root, element_type))

        return [
            ElementSnapshot(
                handle=element,
                text=" ".join(" ".join(element.itertext()).split()),
                image_alts=[img.get("alt", "") for img in element.iter("img")],
                image_srcs=[img.get("src", "") for img in element.iter("img")],
                hrefs=[link.get("href", "") for link in element.iter("a")],
            )
            for element in _unique(elements)
        ]

    async def dispatch_action(self, action: BaseAction, handle: Optional[ElementHandle]) -> None:
        target = describe_element(handle) if handle is not None else None
        self.dispatched.append((action.id, target))
