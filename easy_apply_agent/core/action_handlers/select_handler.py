"""Handles native single-select dropdowns."""
from typing import List, Optional

from .base_handler import BaseFieldHandler, FillContext
from easy_apply_agent.core.exceptions import InteractionFailure
from easy_apply_agent.tools.field_classifier import ClassificationResult
from easy_apply_agent.tools.field_inspector import ControlKind, FieldDescriptor, SelectOption


class SelectFieldHandler(BaseFieldHandler):
    """Chooses an option of a <select> by label.

    Matching order: country alias equality for country selects, exact,
    partial, numeric-closest for experience selects, fuzzy, and finally the
    first real option.
    """

    def can_handle(self, descriptor: FieldDescriptor, classification: ClassificationResult) -> bool:
        return descriptor.control_kind == ControlKind.SELECT

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

        options = [o for o in await self.inspector.select_options(node) if not o.placeholder]
        if not options:
            self.logger.warning(f"Select '{label}' has no selectable options")
            return False
        texts = [o.text for o in options]

        value = await self._resolve(label, value, classification, context, options_list=texts)
        if value is None:
            return False

        index = self.choose(value, texts, classification)
        chosen = options[index]
        self.logger.info(f"Selecting '{chosen.text}' for '{label}' (answer '{value}')")
        await self._commit(node, chosen, label)

        await self._settle(context)
        return (await node.input_value() or "") == chosen.value

    def choose(self, value: str, texts: List[str], classification: ClassificationResult) -> int:
        """Index of the option to select; never None."""
        matcher = self.matcher
        if classification.is_country or classification.is_phone_country_code:
            index = self._country_option(value, texts)
            if index is not None:
                return index

        for strategy in (matcher.exact, matcher.partial):
            index = strategy(value, texts)
            if index is not None:
                return index

        if classification.is_experience:
            index = matcher.numeric_at_least(value, texts)
            if index is not None:
                return index

        index = matcher.fuzzy(value, texts)
        if index is not None:
            return index

        self.logger.warning(f"No option matched '{value}', using first option '{texts[0]}'")
        return 0

    def _country_option(self, value: str, texts: List[str]) -> Optional[int]:
        formatter = self.services.formatter
        wanted = formatter.canonical_country(value)
        if not wanted:
            return None
        for i, text in enumerate(texts):
            if formatter.canonical_country(text) == wanted:
                return i
        return None

    async def _commit(self, node, option: SelectOption, label: str) -> None:
        try:
            await node.focus()
            await node.select_option(option.value)
            await self._notify(node, "input", "change", "blur")
        except Exception as e:
            raise InteractionFailure(f"Failed to select '{option.text}' for '{label}': {e}", label=label) from e
