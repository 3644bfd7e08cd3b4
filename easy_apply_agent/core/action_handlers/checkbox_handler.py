"""Handles checkbox toggles."""
from typing import Optional

from .base_handler import BaseFieldHandler, FillContext
from easy_apply_agent.core.exceptions import InteractionFailure
from easy_apply_agent.tools.data_formatter import normalize_label
from easy_apply_agent.tools.field_classifier import ClassificationResult
from easy_apply_agent.tools.field_inspector import ControlKind, FieldDescriptor

CHECKED_WORDS = ('true', 'yes', '1', 'on', 'checked')


class CheckboxHandler(BaseFieldHandler):
    """Sets a checkbox from a yes/no value. Consent boxes always end checked."""

    def can_handle(self, descriptor: FieldDescriptor, classification: ClassificationResult) -> bool:
        return descriptor.control_kind == ControlKind.CHECKBOX

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
        if value is None:
            return False

        normalized = normalize_label(value)
        target_state = normalized in CHECKED_WORDS or normalized in self.keywords.affirmative
        self.logger.info(f"Setting checkbox '{label}' to {target_state}")

        try:
            await node.set_checked(target_state)
            await self._notify(node, "input", "change")
            if await node.is_checked() != target_state:
                await node.click()
        except Exception as e:
            raise InteractionFailure(f"Failed to set checkbox '{label}': {e}", label=label) from e

        await self._settle(context)
        return await node.is_checked() == target_state
