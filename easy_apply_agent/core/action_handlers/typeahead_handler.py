"""Handles typeahead/autocomplete inputs, such as the location field."""
import asyncio
from typing import Optional

from .base_handler import BaseFieldHandler, FillContext
from easy_apply_agent.core.exceptions import InteractionFailure
from easy_apply_agent.tools import selectors
from easy_apply_agent.tools.data_formatter import clean_label
from easy_apply_agent.tools.field_classifier import ClassificationResult
from easy_apply_agent.tools.field_inspector import ControlKind, FieldDescriptor


class AutocompleteHandler(BaseFieldHandler):
    """Types the value, then picks the best matching suggestion.

    When no suggestion list shows up the handler falls back to keyboard
    selection (ArrowDown, Enter) and keeps whatever text was typed.
    """

    def can_handle(self, descriptor: FieldDescriptor, classification: ClassificationResult) -> bool:
        return descriptor.control_kind == ControlKind.TEXT and classification.is_autocomplete

    async def apply(
        self,
        descriptor: FieldDescriptor,
        label: str,
        value: Optional[str] = None,
        classification: Optional[ClassificationResult] = None,
        context: Optional[FillContext] = None
    ) -> bool:
        classification = classification or ClassificationResult()
        node = descriptor.node

        value = await self._resolve(label, value, classification, context)
        if not value:
            return False

        self.logger.info(f"Typing '{value}' into typeahead '{label}'")
        try:
            await node.focus()
            await node.fill("")
            await node.type(value)
        except Exception as e:
            raise InteractionFailure(f"Failed to type into '{label}': {e}", label=label) from e

        if context.token is None:
            await asyncio.sleep(self.services.typeahead_delay)
        elif not await context.token.sleep(self.services.typeahead_delay):
            return False

        suggestion = await self._pick_suggestion(value, context)
        try:
            if suggestion is not None:
                await suggestion.click()
                self.logger.debug(f"Clicked typeahead suggestion for '{label}'")
            else:
                self.logger.debug(f"No suggestions for '{label}', using keyboard selection")
                await node.press("ArrowDown")
                await node.press("Enter")
            await self._notify(node, "change", "blur")
        except Exception as e:
            raise InteractionFailure(f"Failed to select suggestion for '{label}': {e}", label=label) from e

        await self._settle(context)
        return bool((await node.input_value() or "").strip())

    async def _pick_suggestion(self, value: str, context: FillContext):
        engine = self.services.engine
        first = await engine.wait_for_strategy(
            selectors.TYPEAHEAD_SUGGESTIONS,
            context.page,
            token=context.token,
            timeout=self.services.suggestion_timeout,
        )
        if first is None:
            return None

        suggestions = await engine.resolve_all(selectors.TYPEAHEAD_SUGGESTIONS, context.page, visible_only=True)
        texts = [clean_label(await s.inner_text()) for s in suggestions]
        index = self.matcher.best(value, texts)
        return suggestions[index] if index is not None else first
