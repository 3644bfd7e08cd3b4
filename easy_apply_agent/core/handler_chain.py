"""Field handler chain - dispatches each discovered field to the first handler that accepts it."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from easy_apply_agent.core.browser_interface import UiNode
from easy_apply_agent.core.cancellation import CancellationToken
from easy_apply_agent.core.exceptions import InteractionFailure
from easy_apply_agent.tools.field_classifier import ClassificationResult, FieldClassifier
from easy_apply_agent.tools.field_inspector import FieldDescriptor

from .action_handlers.base_handler import BaseFieldHandler, FillContext, HandlerServices
from .action_handlers.fieldset_handler import ChoiceFieldsetHandler
from .action_handlers.typeahead_handler import AutocompleteHandler
from .action_handlers.text_handler import TextFieldHandler
from .action_handlers.select_handler import SelectFieldHandler
from .action_handlers.radio_handler import RadioGroupHandler
from .action_handlers.checkbox_handler import CheckboxHandler

logger = logging.getLogger(__name__)

# Priority order; the first handler whose can_handle() accepts a field wins
HANDLER_TYPES = (
    ChoiceFieldsetHandler,
    AutocompleteHandler,
    TextFieldHandler,
    SelectFieldHandler,
    RadioGroupHandler,
    CheckboxHandler,
)


@dataclass
class FillReport:
    """Outcome of one filling pass, by field label."""
    filled: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def attempted(self) -> int:
        return len(self.filled) + len(self.failed)


class FieldHandlerChain:
    """Fills every field of a step, strictly one after another."""

    def __init__(
        self,
        services: HandlerServices,
        classifier: Optional[FieldClassifier] = None,
        handlers: Optional[Sequence[BaseFieldHandler]] = None
    ):
        self.services = services
        self.inspector = services.inspector
        self.classifier = classifier or FieldClassifier(services.keywords)
        self.handlers: Tuple[BaseFieldHandler, ...] = (
            tuple(handlers) if handlers is not None else tuple(cls(services) for cls in HANDLER_TYPES)
        )
        self.logger = logger

    def handler_for(self, descriptor: FieldDescriptor, classification: ClassificationResult) -> Optional[BaseFieldHandler]:
        for handler in self.handlers:
            if handler.can_handle(descriptor, classification):
                return handler
        return None

    async def fill_fields(
        self,
        scope: UiNode,
        token: Optional[CancellationToken] = None,
        force: bool = False,
        root: Optional[UiNode] = None
    ) -> FillReport:
        """
        Discover and fill the fields of the current step.

        Args:
            scope: Step container
            token: Cancellation token checked before every field
            force: Refill fields that already hold a value and bypass the cache
            root: Page root, used for popups rendered outside the container

        Returns:
            FillReport
        """
        report = FillReport()
        context = FillContext(scope=scope, root=root, token=token, force=force)

        descriptors = await self.inspector.discover(scope)
        ordered = await self._ordered(descriptors)
        self.logger.info(f"Filling {len(ordered)} field(s){' (forced)' if force else ''}")

        for descriptor, classification in ordered:
            if token is not None and token.cancelled:
                report.cancelled = True
                break

            label = descriptor.label
            if not force and not descriptor.currently_blank:
                self.logger.debug(f"'{label}' already filled, skipping")
                report.skipped.append(label)
                continue

            handler = self.handler_for(descriptor, classification)
            if handler is None:
                self.logger.warning(f"No handler for '{label}' ({descriptor.control_kind.value}), skipping")
                report.skipped.append(label)
                continue

            try:
                success = await handler.apply(descriptor, label, classification=classification, context=context)
            except InteractionFailure as e:
                self.logger.warning(f"{handler.__class__.__name__} failed on '{label}': {e.message}")
                report.failed.append(label)
                continue

            if success:
                report.filled.append(label)
            else:
                self.logger.warning(f"{handler.__class__.__name__} could not fill '{label}'")
                report.failed.append(label)

        if token is not None and token.cancelled:
            report.cancelled = True
        self.logger.info(
            f"Fill pass done: {len(report.filled)} filled, {len(report.failed)} failed, "
            f"{len(report.skipped)} skipped"
        )
        return report

    async def _ordered(self, descriptors: List[FieldDescriptor]) -> List[Tuple[FieldDescriptor, ClassificationResult]]:
        """Country fields first, then the other required fields, then optional ones."""
        classified = []
        for descriptor in descriptors:
            classification = await self.classifier.classify(descriptor.node, descriptor.label)
            classified.append((descriptor, classification))

        def rank(item):
            descriptor, classification = item
            if classification.is_country:
                return 0
            return 1 if descriptor.required else 2

        return sorted(classified, key=rank)
