"""Handles radio choices grouped under one fieldset legend."""
from typing import List, Optional

from .base_handler import BaseFieldHandler, FillContext
from easy_apply_agent.tools.field_classifier import ClassificationResult, contains_any
from easy_apply_agent.tools.field_inspector import ControlKind, FieldDescriptor


class ChoiceFieldsetHandler(BaseFieldHandler):
    """Answers a fieldset of radio options.

    The resolved answer is matched against the option labels first. When
    it matches nothing, or came only from the static defaults, the
    question family decides: language proficiency, then skill level,
    then years of experience. Language is checked first so that
    "English proficiency" is never read as a skill question.
    """

    def can_handle(self, descriptor: FieldDescriptor, classification: ClassificationResult) -> bool:
        return descriptor.control_kind == ControlKind.FIELDSET

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
            self.logger.warning(f"Fieldset '{label}' has no options")
            return False
        texts = [text for _, text in pairs]

        value = await self._resolve(label, value, classification, context, options_list=texts)
        if value is None:
            return False

        index = None
        if self.pipeline.last_source != "default":
            index = self.matcher.best(value, texts)
        if index is None:
            index = self.family_choice(label, texts)
        if index is None:
            index = self.matcher.best(value, texts)
        if index is None:
            index = self.matcher.affirmative(texts, self.keywords.affirmative)
        if index is None:
            index = 0

        radio, text = pairs[index]
        self.logger.info(f"Choosing '{text}' for fieldset '{label}'")
        await self._check_choice(radio, label)
        await self._settle(context)
        return await radio.is_checked()

    def family_choice(self, label: str, texts: List[str]) -> Optional[int]:
        """
        Pick an option by question family, or None when the label belongs to none.

        Language and skill questions with no recognizable rung take the
        last option, which lists the highest level on these forms.

        Args:
            label: Fieldset legend
            texts: Option labels

        Returns:
            Option index or None
        """
        kw = self.keywords
        matcher = self.matcher

        if contains_any(label, kw.language_question) or contains_any(label, kw.language_names):
            index = matcher.ladder(texts, kw.language_ladder)
            if index is None:
                index = matcher.highest_numeric(texts)
            if index is None:
                index = len(texts) - 1
            self.logger.debug(f"Language question '{label}' -> {index}")
            return index

        if contains_any(label, kw.skill_question):
            index = matcher.ladder(texts, kw.skill_ladder)
            if index is None:
                index = matcher.highest_numeric(texts)
            if index is None:
                index = len(texts) - 1
            self.logger.debug(f"Skill question '{label}' -> {index}")
            return index

        if contains_any(label, kw.years_question):
            index = matcher.ladder(texts, kw.moderate_years)
            if index is None:
                index = matcher.middle(texts)
            self.logger.debug(f"Years question '{label}' -> {index}")
            return index

        return None
