"""Handles radio buttons that share a name but have no fieldset."""
from typing import Optional

from .base_handler import BaseFieldHandler, FillContext
from easy_apply_agent.tools.field_classifier import ClassificationResult
from easy_apply_agent.tools.field_inspector import ControlKind, FieldDescriptor


class RadioGroupHandler(BaseFieldHandler):
    """Picks one radio of a name group by its label text."""

    def can_handle(self, descriptor: FieldDescriptor, classification: ClassificationResult) -> bool:
        return descriptor.control_kind == ControlKind.RADIO

    async def apply(
        self,
        descriptor: FieldDescriptor,
        label: str,
        value: Optional[str] = None,
        classification: Optional[ClassificationResult] = None,
        context: Optional[FillContext] = None
    ) -> bool:
        classification = classification or ClassificationResult()
        pairs = await self._choice_labels(descriptor, context)
        if not pairs:
            return False
        texts = [text for _, text in pairs]

        value = await self._resolve(label, value, classification, context, options_list=texts)
        if value is None:
            return False

        index = self.matcher.best(value, texts)
        if index is None:
            index = self.matcher.affirmative(texts, self.keywords.affirmative)
        if index is None:
            index = 0

        radio, text = pairs[index]
        self.logger.info(f"Choosing '{text}' for '{label}'")
        await self._check_choice(radio, label)
        await self._settle(context)
        return await radio.is_checked()
