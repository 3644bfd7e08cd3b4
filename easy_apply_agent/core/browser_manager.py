"""Core browser management and the Playwright adapter for the host UI tree."""

import logging
import os
from typing import Dict, Any, Optional, List
from playwright.async_api import async_playwright, Page, ElementHandle, Error

from easy_apply_agent.core.browser_interface import BrowserInterface, UiNode
from easy_apply_agent.core.exceptions import InvalidSelectorError

logger = logging.getLogger(__name__)

_SELECTOR_ERROR_MARKERS = ("selector", "syntaxerror", "unexpected token", "unknown engine")


def _is_selector_error(error: Exception) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in _SELECTOR_ERROR_MARKERS)


class PlaywrightNode:
    """Adapts a Playwright ElementHandle to the UiNode protocol."""

    def __init__(self, handle: ElementHandle, click_timeout: float = 5000):
        self._handle = handle
        self.click_timeout = click_timeout

    @property
    def handle(self) -> ElementHandle:
        return self._handle

    def _wrap(self, handle: ElementHandle) -> "PlaywrightNode":
        return PlaywrightNode(handle, self.click_timeout)

    async def query_selector_all(self, selector: str) -> List[UiNode]:
        try:
            handles = await self._handle.query_selector_all(selector)
        except Error as e:
            if _is_selector_error(e):
                raise InvalidSelectorError(selector, str(e).splitlines()[0]) from e
            # Detached scope: nothing can be found inside it any more
            logger.debug(f"Query '{selector}' failed on a stale scope: {e}")
            return []
        return [self._wrap(h) for h in handles]

    async def tag_name(self) -> str:
        try:
            return await self._handle.evaluate("el => el.tagName.toLowerCase()")
        except Error:
            return ""

    async def get_attribute(self, name: str) -> Optional[str]:
        try:
            return await self._handle.get_attribute(name)
        except Error:
            return None

    async def is_visible(self) -> bool:
        try:
            return await self._handle.is_visible()
        except Error:
            return False

    async def inner_text(self) -> str:
        try:
            return await self._handle.inner_text()
        except Error:
            return ""

    async def inner_html(self) -> str:
        try:
            return await self._handle.inner_html()
        except Error:
            return ""

    async def input_value(self) -> str:
        try:
            return await self._handle.input_value()
        except Error:
            return ""

    async def is_checked(self) -> bool:
        try:
            return await self._handle.is_checked()
        except Error:
            return False

    async def closest(self, selector: str) -> Optional[UiNode]:
        try:
            result = await self._handle.evaluate_handle("(el, s) => el.closest(s)", selector)
        except Error as e:
            if _is_selector_error(e):
                raise InvalidSelectorError(selector, str(e).splitlines()[0]) from e
            return None
        element = result.as_element()
        return self._wrap(element) if element else None

    async def is_same_node(self, other: UiNode) -> bool:
        if not isinstance(other, PlaywrightNode):
            return False
        try:
            return await self._handle.evaluate("(a, b) => a === b", other.handle)
        except Error:
            return False

    async def fill(self, value: str) -> None:
        await self._handle.fill(value)

    async def type(self, text: str) -> None:
        await self._handle.type(text, delay=50)

    async def press(self, key: str) -> None:
        await self._handle.press(key)

    async def click(self) -> None:
        await self._handle.scroll_into_view_if_needed(timeout=self.click_timeout)
        await self._handle.click(timeout=self.click_timeout)

    async def set_checked(self, checked: bool) -> None:
        # Site radios and checkboxes are often visually hidden behind their labels
        await self._handle.set_checked(checked, force=True, timeout=self.click_timeout)

    async def select_option(self, value: str) -> None:
        await self._handle.select_option(value=value, timeout=self.click_timeout)

    async def dispatch_event(self, event_type: str) -> None:
        await self._handle.dispatch_event(event_type)

    async def focus(self) -> None:
        await self._handle.focus()


class PageRootNode(PlaywrightNode):
    """Root scope bound to a page rather than to one element handle.

    Queries always go through the page so the root survives client-side
    re-renders of the document body.
    """

    def __init__(self, page: Page, document_handle: ElementHandle, click_timeout: float = 5000):
        super().__init__(document_handle, click_timeout)
        self.page = page

    async def query_selector_all(self, selector: str) -> List[UiNode]:
        try:
            handles = await self.page.query_selector_all(selector)
        except Error as e:
            if _is_selector_error(e):
                raise InvalidSelectorError(selector, str(e).splitlines()[0]) from e
            logger.debug(f"Page query '{selector}' failed: {e}")
            return []
        return [self._wrap(h) for h in handles]

    async def is_visible(self) -> bool:
        return True


class BrowserManager(BrowserInterface):
    """Manages the browser session that hosts the job board."""

    def __init__(
        self,
        visible: bool = False,
        user_data_dir: Optional[str] = None,
        timeout: int = 30000,
        viewport: Optional[Dict[str, int]] = None
    ):
        """Initialize the browser manager.

        Args:
            visible: Whether to show the browser window
            user_data_dir: Persistent profile directory so an existing login is reused
            timeout: Default Playwright timeout in milliseconds
            viewport: Browser viewport size
        """
        self.visible = visible
        self.user_data_dir = os.path.expanduser(user_data_dir) if user_data_dir else None
        self.timeout = timeout
        self.viewport = viewport or {'width': 1280, 'height': 1024}
        self.logger = logging.getLogger(__name__)

        self.playwright = None
        self.browser = None
        self.context = None
        self.page: Optional[Page] = None

    @classmethod
    def from_options(cls, options: Dict[str, Any], visible: bool = False) -> "BrowserManager":
        """Build a manager from `Config.get_browser_options()`."""
        return cls(
            visible=visible or not options.get('headless', True),
            user_data_dir=options.get('user_data_dir'),
            timeout=options.get('timeout', 30000),
            viewport=options.get('viewport'),
        )

    async def initialize(self) -> bool:
        """Launch the browser and open a page.

        Returns:
            True if successful, False otherwise
        """
        try:
            self.playwright = await async_playwright().start()
            if self.user_data_dir:
                self.context = await self.playwright.chromium.launch_persistent_context(
                    self.user_data_dir,
                    headless=not self.visible,
                    viewport=self.viewport
                )
                self.page = self.context.pages[0] if self.context.pages else await self.context.new_page()
            else:
                self.browser = await self.playwright.chromium.launch(headless=not self.visible)
                self.context = await self.browser.new_context(viewport=self.viewport)
                self.page = await self.context.new_page()
            self.page.set_default_timeout(self.timeout)
            self.logger.info("Browser initialized")
            return True
        except Exception as e:
            self.logger.error(f"Failed to start browser: {e}")
            await self.close()
            return False

    async def navigate(self, url: str) -> bool:
        """
        Navigate to a URL.

        Args:
            url: URL to navigate to

        Returns:
            True if navigation successful, False otherwise
        """
        if not self.page:
            self.logger.error("Cannot navigate: browser not initialized")
            return False
        try:
            await self.page.goto(url, wait_until="domcontentloaded", timeout=60000)
            return True
        except Exception as e:
            self.logger.error(f"Failed to navigate to {url}: {e}")
            return False

    async def wait_for_load(self, timeout: int = 30000) -> bool:
        """Wait for the page to settle.

        Args:
            timeout: Timeout in milliseconds

        Returns:
            True if the page loaded successfully, False otherwise
        """
        try:
            await self.page.wait_for_load_state("networkidle", timeout=timeout)
            return True
        except Exception as e:
            self.logger.warning(f"Page did not reach network idle: {e}")
            return False

    async def root(self) -> UiNode:
        """Root node of the current page."""
        document = await self.page.query_selector("html")
        return PageRootNode(self.page, document, click_timeout=min(self.timeout, 5000))

    async def close(self) -> None:
        """Close the browser and stop Playwright."""
        try:
            if self.context:
                await self.context.close()
            if self.browser:
                await self.browser.close()
            if self.playwright:
                await self.playwright.stop()
        except Exception as e:
            self.logger.error(f"Error closing browser: {str(e)}")
        finally:
            self.page = None
            self.context = None
            self.browser = None
            self.playwright = None
