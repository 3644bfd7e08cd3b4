"""Handles text inputs and textareas."""
from typing import Optional

from .base_handler import BaseFieldHandler, FillContext
from easy_apply_agent.core.exceptions import InteractionFailure
from easy_apply_agent.tools.data_formatter import extract_number
from easy_apply_agent.tools.field_classifier import ClassificationResult
from easy_apply_agent.tools.field_inspector import ControlKind, FieldDescriptor


class TextFieldHandler(BaseFieldHandler):
    """Fills free-text inputs, formatting phone and numeric values first."""

    def can_handle(self, descriptor: FieldDescriptor, classification: ClassificationResult) -> bool:
        return descriptor.control_kind in (ControlKind.TEXT, ControlKind.TEXTAREA)

    async def apply(
        self,
        descriptor: FieldDescriptor,
        label: str,
        value: Optional[str] = None,
        classification: Optional[ClassificationResult] = None,
        context: Optional[FillContext] = None
    ) -> bool:
        """Resolve, format and fill one text field."""
        classification = classification or ClassificationResult()
        node = descriptor.node
        input_type = (await node.get_attribute("type") or "text").lower()
        numeric_only = classification.is_numeric or classification.is_experience or input_type == "number"

        value = await self._resolve(
            label, value, classification, context,
            numeric_only=numeric_only,
            is_summary=classification.is_summary,
            is_cover_letter=classification.is_cover_letter,
        )
        if value is None:
            self.logger.debug(f"No value for '{label}'")
            return False

        formatted = await self._format(node, value, classification, numeric_only, input_type)
        if not formatted:
            self.logger.warning(f"Value for '{label}' is empty after formatting, skipping")
            return False

        self.logger.info(f"Filling '{label}' with '{formatted[:60]}'")
        try:
            await node.focus()
            await node.fill(formatted)
            await self._notify(node, "input", "change", "blur")
        except Exception as e:
            raise InteractionFailure(f"Failed to fill '{label}': {e}", label=label) from e

        await self._settle(context)
        return bool((await node.input_value() or "").strip())

    async def _format(
        self,
        node,
        value: str,
        classification: ClassificationResult,
        numeric_only: bool,
        input_type: str
    ) -> str:
        formatter = self.services.formatter
        max_length = None
        raw_max = await node.get_attribute("maxlength")
        if raw_max and raw_max.isdigit() and int(raw_max) > 0:
            max_length = int(raw_max)

        if classification.is_phone and not classification.is_phone_country_code:
            result = formatter.format_phone(value, await node.get_attribute("placeholder"), max_length)
            if not result.is_valid:
                self.logger.warning(f"Phone value '{value}' looks invalid: {result.error_message}")
            return result.formatted_value or ""

        if numeric_only:
            return extract_number(value) or value.strip()

        if input_type == "email":
            result = formatter.format_email(value)
            if result.is_valid:
                return result.formatted_value

        return formatter.format_text(value, max_length).formatted_value or ""
