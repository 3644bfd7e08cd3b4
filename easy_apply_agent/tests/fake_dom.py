"""A BeautifulSoup-backed stand-in for the browser, implementing the UiNode protocol.

Form state (values, checked flags, selected options) lives beside the parsed
tree, the way a browser keeps it beside the DOM, so filling a field does not
change `inner_html`. Clicking calls `FakeDocument.on_click`, which tests use
to swap in the markup of the next step.
"""

import re
from typing import Callable, Dict, List, Optional, Tuple

import soupsieve
from bs4 import BeautifulSoup, Tag

from easy_apply_agent.core.exceptions import InvalidSelectorError

HIDDEN_STYLE = re.compile(r'(display\s*:\s*none|visibility\s*:\s*hidden)', re.I)


def _attr(tag, name: str) -> Optional[str]:
    value = tag.get(name) if isinstance(tag, Tag) else None
    if isinstance(value, list):
        return " ".join(value)
    return value


class FakeNode:
    """One element of a FakeDocument."""

    def __init__(self, doc: "FakeDocument", tag: Tag):
        self.doc = doc
        self.tag = tag

    def __repr__(self):
        return f"FakeNode(<{self.tag.name} id={_attr(self.tag, 'id')!r}>)"

    def _wrap(self, tag: Tag) -> "FakeNode":
        return FakeNode(self.doc, tag)

    # --- queries ---

    async def query_selector_all(self, selector: str) -> List["FakeNode"]:
        try:
            return [self._wrap(t) for t in self.tag.select(selector)]
        except soupsieve.SelectorSyntaxError as e:
            raise InvalidSelectorError(selector, str(e).splitlines()[0]) from e

    async def tag_name(self) -> str:
        return self.tag.name.lower()

    async def get_attribute(self, name: str) -> Optional[str]:
        return _attr(self.tag, name)

    async def is_visible(self) -> bool:
        if self.tag.name == "input" and (_attr(self.tag, "type") or "").lower() == "hidden":
            return False
        node = self.tag
        while isinstance(node, Tag) and node is not self.doc.soup:
            if node.has_attr("hidden") or HIDDEN_STYLE.search(_attr(node, "style") or ""):
                return False
            node = node.parent
        # Nodes of a replaced step are detached from the current tree
        return node is self.doc.soup

    async def inner_text(self) -> str:
        return self.tag.get_text(" ", strip=True)

    async def inner_html(self) -> str:
        return self.tag.decode_contents()

    async def input_value(self) -> str:
        if self.tag.name == "select":
            option = self.doc.selected_option(self.tag)
            if option is None:
                return ""
            value = _attr(option, "value")
            return value if value is not None else option.get_text(strip=True)
        return self.doc.value_of(self.tag)

    async def is_checked(self) -> bool:
        return self.doc.checked_of(self.tag)

    async def closest(self, selector: str) -> Optional["FakeNode"]:
        try:
            found = soupsieve.closest(selector, self.tag)
        except soupsieve.SelectorSyntaxError as e:
            raise InvalidSelectorError(selector, str(e).splitlines()[0]) from e
        return self._wrap(found) if found is not None else None

    async def is_same_node(self, other) -> bool:
        return isinstance(other, FakeNode) and other.tag is self.tag

    # --- actions ---

    def _ensure_enabled(self):
        if self.tag.has_attr("disabled"):
            raise RuntimeError(f"{self!r} is disabled")

    async def fill(self, value: str) -> None:
        self._ensure_enabled()
        input_type = (_attr(self.tag, "type") or "").lower()
        if input_type == "number" and value and not re.fullmatch(r'-?\d+(\.\d+)?', value):
            raise RuntimeError("Cannot type text into input[type=number]")
        self.doc.values[id(self.tag)] = value
        self.doc.log(self, "fill", value)

    async def type(self, text: str) -> None:
        self._ensure_enabled()
        self.doc.values[id(self.tag)] = self.doc.value_of(self.tag) + text
        self.doc.log(self, "type", text)

    async def press(self, key: str) -> None:
        self.doc.log(self, "press", key)

    async def click(self) -> None:
        self._ensure_enabled()
        input_type = (_attr(self.tag, "type") or "").lower()
        if self.tag.name == "input" and input_type == "radio":
            self.doc.check_radio(self.tag)
        elif self.tag.name == "input" and input_type == "checkbox":
            self.doc.checked[id(self.tag)] = not self.doc.checked_of(self.tag)
        self.doc.log(self, "click", self.tag.get_text(" ", strip=True))
        if self.doc.on_click is not None:
            self.doc.on_click(self.doc, self)

    async def set_checked(self, checked: bool) -> None:
        self._ensure_enabled()
        if checked and (_attr(self.tag, "type") or "").lower() == "radio":
            self.doc.check_radio(self.tag)
        else:
            self.doc.checked[id(self.tag)] = checked
        self.doc.log(self, "set_checked", checked)

    async def select_option(self, value: str) -> None:
        self._ensure_enabled()
        for index, option in enumerate(self.tag.find_all("option")):
            option_value = _attr(option, "value")
            if option_value == value or (option_value is None and option.get_text(strip=True) == value):
                self.doc.selected[id(self.tag)] = index
                self.doc.log(self, "select_option", value)
                return
        raise RuntimeError(f"No option with value {value!r}")

    async def dispatch_event(self, event_type: str) -> None:
        self.doc.log(self, "event", event_type)

    async def focus(self) -> None:
        pass


class FakeDocument(FakeNode):
    """The page root. `set_html` replaces the whole tree, as a step transition does."""

    def __init__(self, html: str, on_click: Optional[Callable[["FakeDocument", FakeNode], None]] = None):
        self.values: Dict[int, str] = {}
        self.checked: Dict[int, bool] = {}
        self.selected: Dict[int, int] = {}
        self.actions: List[Tuple[str, str, object]] = []
        self.on_click = on_click
        # Old trees are kept alive so that id()-keyed state never collides
        self._trees: List[BeautifulSoup] = []
        self.soup: BeautifulSoup = None
        self.set_html(html)
        super().__init__(self, self.soup)

    def set_html(self, html: str) -> None:
        self.soup = BeautifulSoup(html, "html.parser")
        self._trees.append(self.soup)
        self.tag = self.soup

    def __repr__(self):
        return "FakeDocument()"

    async def tag_name(self) -> str:
        return "#document"

    async def is_visible(self) -> bool:
        return True

    async def closest(self, selector: str) -> Optional[FakeNode]:
        return None

    # --- form state ---

    def log(self, node: FakeNode, action: str, detail) -> None:
        self.actions.append((_attr(node.tag, "id") or node.tag.name, action, detail))

    def value_of(self, tag: Tag) -> str:
        if id(tag) in self.values:
            return self.values[id(tag)]
        if tag.name == "textarea":
            return tag.get_text()
        return _attr(tag, "value") or ""

    def checked_of(self, tag: Tag) -> bool:
        if id(tag) in self.checked:
            return self.checked[id(tag)]
        return tag.has_attr("checked")

    def check_radio(self, tag: Tag) -> None:
        name = _attr(tag, "name")
        if name:
            for other in self.soup.find_all("input", attrs={"type": "radio", "name": name}):
                self.checked[id(other)] = False
        self.checked[id(tag)] = True

    def selected_option(self, select: Tag) -> Optional[Tag]:
        options = select.find_all("option")
        if not options:
            return None
        if id(select) in self.selected:
            return options[self.selected[id(select)]]
        for option in options:
            if option.has_attr("selected"):
                return option
        return options[0]

    def node(self, selector: str) -> FakeNode:
        """First match of `selector` in the current tree; for assertions."""
        tag = self.soup.select_one(selector)
        if tag is None:
            raise LookupError(selector)
        return FakeNode(self, tag)

    def value(self, selector: str) -> str:
        return self.value_of(self.soup.select_one(selector))

    def is_checked_now(self, selector: str) -> bool:
        return self.checked_of(self.soup.select_one(selector))
