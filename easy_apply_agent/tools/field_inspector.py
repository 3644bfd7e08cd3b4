"""Tools for discovering the fillable fields of one application step."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from easy_apply_agent.core.browser_interface import UiNode
from easy_apply_agent.tools.constants import UNKNOWN_LABEL
from easy_apply_agent.tools.data_formatter import clean_label, normalize_label
from easy_apply_agent.tools.option_matcher import is_placeholder_option
from easy_apply_agent.tools.selector_engine import SelectorEngine, escape_css_string, id_selector
from easy_apply_agent.tools import selectors

logger = logging.getLogger(__name__)

CONTAINER_LABELS = 'label, legend, .fb-dash-form-element__label, .artdeco-text-input--label'


class ControlKind(Enum):
    """Kinds of form control the handler chain knows about."""
    TEXT = "text"
    TEXTAREA = "textarea"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    FIELDSET = "fieldset"


@dataclass
class FieldDescriptor:
    """One fillable field found during a discovery pass.

    For RADIO and FIELDSET descriptors `group` holds the member radio nodes
    and `node` is the first radio (RADIO) or the fieldset itself (FIELDSET).
    """
    node: UiNode
    label: str
    control_kind: ControlKind
    required: bool = False
    currently_blank: bool = True
    group: List[UiNode] = field(default_factory=list)

    @property
    def is_choice_group(self) -> bool:
        return self.control_kind in (ControlKind.RADIO, ControlKind.FIELDSET)


@dataclass
class SelectOption:
    """An <option> of a select control."""
    text: str
    value: str
    placeholder: bool = False


class FieldInspector:
    """Finds the visible, enabled, editable fields inside a step.

    Discovery is a read-only pass. Descriptors are valid only until the
    next mutation of the tree and must not be kept across steps.
    """

    def __init__(self, engine: Optional[SelectorEngine] = None):
        self.engine = engine or SelectorEngine()
        self.logger = logging.getLogger(__name__)

    async def discover(self, scope: UiNode) -> List[FieldDescriptor]:
        """
        Discover the fields of the current step in document order.

        Radios inside a fieldset are reported once, as a FIELDSET descriptor;
        radios elsewhere are grouped by name into RADIO descriptors.

        Args:
            scope: The application container (or the page root)

        Returns:
            List of FieldDescriptor
        """
        descriptors: List[FieldDescriptor] = []

        for fieldset in await self.engine.resolve_all(selectors.FIELDSETS, scope):
            if not await self._is_interactive(fieldset):
                continue
            radios = await self._visible_members(fieldset, 'input[type="radio"]')
            if not radios:
                continue
            raw = await self._fieldset_label(fieldset)
            label = clean_label(raw) or UNKNOWN_LABEL
            required = await self._group_required(fieldset, radios, raw)
            blank = not await self._any_checked(radios)
            descriptors.append(FieldDescriptor(fieldset, label, ControlKind.FIELDSET, required, blank, radios))

        radio_groups = {}
        for node in await self.engine.resolve_all(selectors.FIELDS, scope):
            if not await self._is_interactive(node):
                continue
            tag = await node.tag_name()
            input_type = (await node.get_attribute("type") or "text").lower() if tag == "input" else ""

            if input_type == "radio":
                if await node.closest("fieldset") is not None:
                    continue
                name = await node.get_attribute("name") or f"__unnamed_{len(radio_groups)}"
                if name in radio_groups:
                    radio_groups[name].group.append(node)
                    continue
                raw = await self._raw_label(node, scope, group_name=name)
                descriptor = FieldDescriptor(
                    node, clean_label(raw) or UNKNOWN_LABEL, ControlKind.RADIO,
                    await self._is_required(node, raw), True, [node],
                )
                radio_groups[name] = descriptor
                descriptors.append(descriptor)
                continue

            if tag == "select":
                kind = ControlKind.SELECT
            elif tag == "textarea":
                kind = ControlKind.TEXTAREA
            elif input_type == "checkbox":
                kind = ControlKind.CHECKBOX
            else:
                kind = ControlKind.TEXT

            raw = await self._raw_label(node, scope)
            descriptor = FieldDescriptor(node, clean_label(raw) or UNKNOWN_LABEL, kind, await self._is_required(node, raw))
            descriptor.currently_blank = await self.is_blank(descriptor)
            descriptors.append(descriptor)

        for descriptor in radio_groups.values():
            descriptor.currently_blank = not await self._any_checked(descriptor.group)

        self.logger.debug(f"Discovered {len(descriptors)} fields")
        return descriptors

    async def is_blank(self, descriptor: FieldDescriptor) -> bool:
        """
        Re-read whether a field currently holds no value.

        Checkboxes are blank when unchecked, choice groups when no member is
        checked, selects when the value is empty or still the placeholder.
        """
        kind = descriptor.control_kind
        node = descriptor.node
        if kind == ControlKind.CHECKBOX:
            return not await node.is_checked()
        if descriptor.is_choice_group:
            return not await self._any_checked(descriptor.group)
        value = (await node.input_value() or "").strip()
        if kind == ControlKind.SELECT:
            if not value:
                return True
            for option in await self.select_options(node):
                if option.value == value:
                    return "select" in normalize_label(option.text)
            return False
        return value == ""

    async def select_options(self, node: UiNode) -> List[SelectOption]:
        """All options of a select, placeholders flagged."""
        result = []
        for option in await node.query_selector_all("option"):
            text = (await option.inner_text() or "").strip()
            value_attr = await option.get_attribute("value")
            value = value_attr if value_attr is not None else text
            disabled = await option.get_attribute("disabled") is not None
            result.append(SelectOption(text, value, is_placeholder_option(text, value_attr, disabled)))
        return result

    async def choice_labels(self, radios: List[UiNode], scope: Optional[UiNode] = None) -> List[Tuple[UiNode, str]]:
        """
        Pair every radio with the text of its own label.

        Args:
            radios: Member radios of one group
            scope: Where to look up `label[for=id]`; defaults to the radio's container

        Returns:
            List of (radio, label text)
        """
        pairs = []
        for radio in radios:
            text = ""
            radio_id = await radio.get_attribute("id")
            search = scope or await radio.closest("fieldset") or await radio.closest(selectors.FIELD_CONTAINER)
            if radio_id and search is not None:
                for label in await search.query_selector_all(f'label[for="{escape_css_string(radio_id)}"]'):
                    text = clean_label(await label.inner_text())
                    if text:
                        break
            if not text:
                wrapper = await radio.closest("label")
                if wrapper is not None:
                    text = clean_label(await wrapper.inner_text())
            if not text:
                text = clean_label(await radio.get_attribute("aria-label")) or (await radio.get_attribute("value") or "")
            pairs.append((radio, text))
        return pairs

    async def validation_errors(self, scope: UiNode) -> List[str]:
        """Texts of the visible, non-empty validation messages inside `scope`."""
        messages = []
        for node in await self.engine.resolve_all(selectors.VALIDATION_ERRORS, scope, visible_only=True):
            text = clean_label(await node.inner_text())
            if text:
                messages.append(text)
        return messages

    async def stuck_indicators(self, scope: UiNode) -> List[str]:
        """
        Describe why the current step would refuse to advance.

        Returns:
            Validation messages, required blank fields and required
            choice groups without a selection. Empty when nothing is wrong.
        """
        indicators = [f"error: {message}" for message in await self.validation_errors(scope)]
        for descriptor in await self.discover(scope):
            if not descriptor.required or not descriptor.currently_blank:
                continue
            if descriptor.is_choice_group:
                indicators.append(f"unanswered choice: {descriptor.label}")
            else:
                indicators.append(f"required blank: {descriptor.label}")
        if indicators:
            self.logger.debug(f"Stuck indicators: {indicators}")
        return indicators

    # --- Discovery helpers ---

    async def _is_interactive(self, node: UiNode) -> bool:
        if not await node.is_visible():
            return False
        if await node.closest(selectors.HIDDEN_CONTAINER) is not None:
            return False
        if await node.get_attribute("disabled") is not None:
            return False
        if (await node.get_attribute("aria-disabled") or "").lower() == "true":
            return False
        return await node.get_attribute("readonly") is None

    async def _visible_members(self, scope: UiNode, selector: str) -> List[UiNode]:
        members = []
        for node in await scope.query_selector_all(selector):
            if await node.get_attribute("disabled") is None and await node.closest(selectors.HIDDEN_CONTAINER) is None:
                members.append(node)
        return members

    async def _any_checked(self, radios: List[UiNode]) -> bool:
        for radio in radios:
            if await radio.is_checked():
                return True
        return False

    async def _raw_label(self, node: UiNode, scope: UiNode, group_name: Optional[str] = None) -> str:
        """Label text in priority order, uncleaned so a trailing '*' can still be seen."""
        element_id = await node.get_attribute("id")
        if element_id and not group_name:
            for label in await scope.query_selector_all(f'label[for="{escape_css_string(element_id)}"]'):
                text = (await label.inner_text() or "").strip()
                if text:
                    return text

        aria_label = (await node.get_attribute("aria-label") or "").strip()
        if aria_label and not group_name:
            return aria_label

        labelled_by = (await node.get_attribute("aria-labelledby") or "").split()
        if labelled_by:
            parts = []
            for ref in labelled_by:
                for target in await scope.query_selector_all(id_selector(ref)):
                    parts.append((await target.inner_text() or "").strip())
            text = " ".join(p for p in parts if p)
            if text:
                return text

        placeholder = (await node.get_attribute("placeholder") or "").strip()
        if placeholder:
            return placeholder

        container = await node.closest(selectors.FIELD_CONTAINER)
        if container is not None:
            for label in await container.query_selector_all(CONTAINER_LABELS):
                # A radio's own label names an option, not the question
                if group_name and await label.get_attribute("for"):
                    continue
                text = (await label.inner_text() or "").strip()
                if text:
                    return text

        return group_name if group_name and not group_name.startswith("__unnamed") else (
            await node.get_attribute("name") or element_id or ""
        )

    async def _fieldset_label(self, fieldset: UiNode) -> str:
        for legend in await fieldset.query_selector_all("legend"):
            text = (await legend.inner_text() or "").strip()
            if text:
                return text
        aria_label = (await fieldset.get_attribute("aria-label") or "").strip()
        if aria_label:
            return aria_label
        for label in await fieldset.query_selector_all(".fb-dash-form-element__label, span, label"):
            text = (await label.inner_text() or "").strip()
            if text:
                return text
        return ""

    async def _is_required(self, node: UiNode, raw_label: str) -> bool:
        if await node.get_attribute("required") is not None:
            return True
        if (await node.get_attribute("aria-required") or "").lower() == "true":
            return True
        if "*" in (raw_label or ""):
            return True
        container = await node.closest(selectors.FIELD_CONTAINER)
        return container is not None and bool(await self.validation_errors(container))

    async def _group_required(self, fieldset: UiNode, radios: List[UiNode], raw_label: str) -> bool:
        if (await fieldset.get_attribute("aria-required") or "").lower() == "true":
            return True
        if "*" in (raw_label or ""):
            return True
        for radio in radios:
            if await radio.get_attribute("required") is not None:
                return True
            if (await radio.get_attribute("aria-required") or "").lower() == "true":
                return True
        return bool(await self.validation_errors(fieldset))
