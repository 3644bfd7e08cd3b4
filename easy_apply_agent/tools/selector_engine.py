"""Resilient element lookup over an unstable host UI tree."""

import logging
import re
from dataclasses import dataclass
from typing import Optional, List, Sequence, Tuple

from easy_apply_agent.core.browser_interface import UiNode
from easy_apply_agent.core.cancellation import CancellationToken, poll_until
from easy_apply_agent.core.exceptions import InvalidSelectorError
from easy_apply_agent.tools.constants import DEFAULT_TIMEOUT, POLL_INTERVAL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectorStrategy:
    """An ordered list of query expressions plus an optional text fallback.

    Attributes:
        name: Human-readable name used in logs
        selectors: CSS expressions, most preferred first
        texts: Visible texts (or aria-labels) to fall back on, compared case-insensitively
        text_scope: Expression listing the candidates for the text fallback
    """
    name: str
    selectors: Tuple[str, ...] = ()
    texts: Tuple[str, ...] = ()
    text_scope: str = "button"


def normalize_text(text: Optional[str]) -> str:
    """Lower-case and collapse whitespace."""
    return re.sub(r'\s+', ' ', (text or '')).strip().lower()


def escape_css_string(value: str) -> str:
    """Escape characters unsafe inside a double-quoted CSS string."""
    if not value:
        return ""
    return value.replace('\\', '\\\\').replace('"', '\\"')


def id_selector(element_id: str) -> str:
    """Attribute form of an id selector; safe for ids starting with digits or holding colons."""
    return f'[id="{escape_css_string(element_id)}"]'


class SelectorEngine:
    """Locates elements by trying each expression of a strategy in order.

    The engine never waits and never raises for lookup problems: invalid
    expressions are skipped and a miss is reported as None or an empty list.
    Resolved nodes are never cached, since node identity is not stable
    between polls.
    """

    def __init__(self):
        self.logger = logger

    async def _query(self, scope: UiNode, selector: str) -> List[UiNode]:
        try:
            return await scope.query_selector_all(selector)
        except InvalidSelectorError as e:
            self.logger.debug(f"Skipping invalid selector: {e.message}")
            return []

    async def resolve(self, strategy: SelectorStrategy, scope: UiNode) -> Optional[UiNode]:
        """
        Return the first visible match of the strategy inside `scope`.

        Args:
            strategy: Expressions to try, in order of preference
            scope: Subtree to search

        Returns:
            The first visible node, or None
        """
        for selector in strategy.selectors:
            for node in await self._query(scope, selector):
                if await node.is_visible():
                    self.logger.debug(f"[{strategy.name}] resolved via '{selector}'")
                    return node

        if strategy.texts:
            node = await self.find_by_text(scope, strategy.texts, strategy.text_scope)
            if node:
                self.logger.debug(f"[{strategy.name}] resolved via text fallback")
                return node

        return None

    async def resolve_all(
        self,
        strategy: SelectorStrategy,
        scope: UiNode,
        visible_only: bool = False
    ) -> List[UiNode]:
        """
        Return every match of every expression, deduplicated in discovery order.

        Args:
            strategy: Expressions to try
            scope: Subtree to search
            visible_only: Drop nodes failing the visibility predicate

        Returns:
            List of distinct nodes
        """
        found: List[UiNode] = []
        for selector in strategy.selectors:
            for node in await self._query(scope, selector):
                if await self._contains(found, node):
                    continue
                if visible_only and not await node.is_visible():
                    continue
                found.append(node)
        return found

    async def find_by_text(
        self,
        scope: UiNode,
        texts: Sequence[str],
        text_scope: str = "button"
    ) -> Optional[UiNode]:
        """
        Find a visible element whose text or aria-label matches one of `texts`.

        Exact matches are preferred over prefix matches, and earlier texts
        over later ones.

        Args:
            scope: Subtree to search
            texts: Candidate texts, most preferred first
            text_scope: Expression listing candidate elements

        Returns:
            The matching node, or None
        """
        wanted = [normalize_text(t) for t in texts if t]
        if not wanted:
            return None

        candidates = []
        for node in await self._query(scope, text_scope):
            if not await node.is_visible():
                continue
            label = normalize_text(await node.inner_text())
            aria = normalize_text(await node.get_attribute("aria-label"))
            candidates.append((node, label, aria))

        for text in wanted:
            for node, label, aria in candidates:
                if text in (label, aria):
                    return node
        for text in wanted:
            for node, label, aria in candidates:
                if (label and label.startswith(text)) or (aria and aria.startswith(text)):
                    return node
        return None

    async def exists(self, strategy: SelectorStrategy, scope: UiNode) -> bool:
        """True when the strategy resolves to a visible node."""
        return await self.resolve(strategy, scope) is not None

    async def wait_for_strategy(
        self,
        strategy: SelectorStrategy,
        scope: UiNode,
        token: Optional[CancellationToken] = None,
        timeout: float = DEFAULT_TIMEOUT,
        interval: float = POLL_INTERVAL
    ) -> Optional[UiNode]:
        """
        Poll `resolve` until a node appears, the timeout passes, or the token is cancelled.

        Returns:
            The node, or None when not satisfied
        """
        return await poll_until(
            lambda: self.resolve(strategy, scope),
            timeout=timeout,
            interval=interval,
            token=token,
            description=strategy.name,
        )

    async def _contains(self, nodes: List[UiNode], node: UiNode) -> bool:
        for existing in nodes:
            if existing is node or await existing.is_same_node(node):
                return True
        return False
