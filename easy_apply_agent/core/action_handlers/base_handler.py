"""Base class for field handlers."""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from easy_apply_agent.core.browser_interface import UiNode
from easy_apply_agent.core.cancellation import CancellationToken
from easy_apply_agent.core.exceptions import InteractionFailure
from easy_apply_agent.core.value_pipeline import ResolutionOptions, ValueResolutionPipeline
from easy_apply_agent.tools.constants import SETTLE_DELAY, SHORT_TIMEOUT, TYPEAHEAD_DELAY
from easy_apply_agent.tools.data_formatter import DataFormatter
from easy_apply_agent.tools.field_classifier import ClassificationResult, KeywordTables, default_keyword_tables
from easy_apply_agent.tools.field_inspector import ControlKind, FieldDescriptor, FieldInspector
from easy_apply_agent.tools.option_matcher import OptionMatcher
from easy_apply_agent.tools.selector_engine import SelectorEngine


@dataclass
class HandlerServices:
    """Long-lived collaborators shared by every handler."""
    pipeline: ValueResolutionPipeline
    inspector: FieldInspector = field(default_factory=FieldInspector)
    engine: SelectorEngine = field(default_factory=SelectorEngine)
    keywords: KeywordTables = field(default_factory=default_keyword_tables)
    matcher: OptionMatcher = field(default_factory=OptionMatcher)
    formatter: Optional[DataFormatter] = None
    settle_delay: float = SETTLE_DELAY
    typeahead_delay: float = TYPEAHEAD_DELAY
    suggestion_timeout: float = SHORT_TIMEOUT

    def __post_init__(self):
        if self.formatter is None:
            self.formatter = DataFormatter(self.keywords.country_aliases)


@dataclass
class FillContext:
    """Per-pass state: where the step lives and how to stop."""
    scope: UiNode
    root: Optional[UiNode] = None
    token: Optional[CancellationToken] = None
    force: bool = False

    @property
    def page(self) -> UiNode:
        return self.root if self.root is not None else self.scope


class BaseFieldHandler:
    """One variant of the closed handler set.

    Subclasses implement `can_handle` and `apply`. `apply` returns True when
    the field ends up holding a value, False when it could not be filled,
    and raises InteractionFailure when the UI rejected an action.
    """

    def __init__(self, services: HandlerServices):
        self.services = services
        self.pipeline = services.pipeline
        self.inspector = services.inspector
        self.matcher = services.matcher
        self.keywords = services.keywords
        self.logger = logging.getLogger(self.__class__.__name__)

    def can_handle(self, descriptor: FieldDescriptor, classification: ClassificationResult) -> bool:
        raise NotImplementedError("Subclasses must implement can_handle.")

    async def apply(
        self,
        descriptor: FieldDescriptor,
        label: str,
        value: Optional[str] = None,
        classification: Optional[ClassificationResult] = None,
        context: Optional[FillContext] = None
    ) -> bool:
        raise NotImplementedError("Subclasses must implement apply.")

    async def _resolve(
        self,
        label: str,
        value: Optional[str],
        classification: ClassificationResult,
        context: FillContext,
        **hints
    ) -> Optional[str]:
        """Ask the pipeline for a value; `hints` become ResolutionOptions fields."""
        options = ResolutionOptions(
            explicit_value=value,
            classification=classification,
            skip_cache=context.force,
            token=context.token,
            **hints
        )
        return await self.pipeline.resolve(label, options)

    async def _settle(self, context: FillContext) -> None:
        """Fixed pause after a commit so the host UI can react."""
        if context.token is not None:
            await context.token.sleep(self.services.settle_delay)
        else:
            await asyncio.sleep(self.services.settle_delay)

    async def _notify(self, node: UiNode, *events: str) -> None:
        for event in events or ("input", "change", "blur"):
            await node.dispatch_event(event)

    async def _check_choice(self, radio: UiNode, label: str) -> None:
        """Select one radio, falling back to a click when setting the state did not stick."""
        try:
            await radio.set_checked(True)
            await self._notify(radio, "input", "change")
            if not await radio.is_checked():
                await radio.click()
        except Exception as e:
            raise InteractionFailure(f"Could not select option for '{label}': {e}", label=label) from e

    async def _choice_labels(self, descriptor: FieldDescriptor, context: FillContext) -> List[Tuple[UiNode, str]]:
        scope = descriptor.node if descriptor.control_kind == ControlKind.FIELDSET else context.scope
        return await self.inspector.choice_labels(descriptor.group, scope)
