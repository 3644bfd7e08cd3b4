"""Interfaces for the host UI tree and the browser that owns it."""

from typing import List, Optional, Protocol


class UiNode(Protocol):
    """A node of the host UI tree.

    This is the narrow subset of Playwright's ElementHandle the engine uses,
    plus three helpers Playwright exposes only through `evaluate`
    (`tag_name`, `closest`, `is_same_node`). A page or frame root implements
    the same protocol so that every lookup can be scoped uniformly.
    """

    async def query_selector_all(self, selector: str) -> List["UiNode"]:
        """Return matching descendants; raise InvalidSelectorError on bad syntax."""
        ...

    async def tag_name(self) -> str:
        """Lower-case tag name."""
        ...

    async def get_attribute(self, name: str) -> Optional[str]:
        ...

    async def is_visible(self) -> bool:
        """Non-zero area, not display-suppressed and no hidden ancestor."""
        ...

    async def inner_text(self) -> str:
        ...

    async def inner_html(self) -> str:
        ...

    async def input_value(self) -> str:
        """Current value of an input, textarea or select."""
        ...

    async def is_checked(self) -> bool:
        ...

    async def closest(self, selector: str) -> Optional["UiNode"]:
        """Nearest ancestor-or-self matching the selector."""
        ...

    async def is_same_node(self, other: "UiNode") -> bool:
        ...

    async def fill(self, value: str) -> None:
        ...

    async def type(self, text: str) -> None:
        """Type text key by key, as a user would."""
        ...

    async def press(self, key: str) -> None:
        ...

    async def click(self) -> None:
        ...

    async def set_checked(self, checked: bool) -> None:
        ...

    async def select_option(self, value: str) -> None:
        """Select the option whose value attribute equals `value`."""
        ...

    async def dispatch_event(self, event_type: str) -> None:
        ...

    async def focus(self) -> None:
        ...


class BrowserInterface(Protocol):
    """Protocol defining the interface for browser interactions."""

    async def initialize(self) -> bool:
        """Start the browser; False when it could not be launched."""
        ...

    async def wait_for_load(self, timeout: int = 30000) -> bool:
        ...

    async def close(self) -> None:
        ...

    async def root(self) -> UiNode:
        """Root node of the current page's main frame."""
        ...

    async def navigate(self, url: str) -> bool:
        """Navigate to a URL."""
        ...
