"""Step navigator - drives one application modal from its first step to submission."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from easy_apply_agent.core.browser_interface import UiNode
from easy_apply_agent.core.cancellation import CancellationToken, poll_until
from easy_apply_agent.core.confirmation import ConfirmationWatcher
from easy_apply_agent.core.exceptions import BudgetExhausted
from easy_apply_agent.core.handler_chain import FieldHandlerChain
from easy_apply_agent.core.progress_tracker import ProgressTracker, read_progress
from easy_apply_agent.tools import selectors
from easy_apply_agent.tools.constants import (
    BUTTON_POLL_INTERVAL,
    CLICK_DELAY,
    LONG_SETTLE_DELAY,
    MAX_FORM_STEPS,
    REFILL_PROGRESS_THRESHOLD,
    REVIEW_PROGRESS_THRESHOLD,
    TRANSITION_TIMEOUT,
)
from easy_apply_agent.tools.selector_engine import SelectorEngine, SelectorStrategy

logger = logging.getLogger(__name__)


class AttemptOutcome(Enum):
    SUBMITTED = "submitted"
    BLOCKED = "blocked"
    BUDGET_EXHAUSTED = "budget_exhausted"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"


class StepAction(Enum):
    """What the decision phase of one iteration did."""
    ADVANCED = "advanced"
    REVIEWED = "reviewed"
    SUBMITTED = "submitted"
    BLOCKED = "blocked"


@dataclass
class NavigatorSettings:
    """Budgets and delays for one attempt. All durations are seconds."""
    max_steps: int = MAX_FORM_STEPS
    review_threshold: int = REVIEW_PROGRESS_THRESHOLD
    refill_threshold: int = REFILL_PROGRESS_THRESHOLD
    click_delay: float = CLICK_DELAY
    long_settle: float = LONG_SETTLE_DELAY
    transition_timeout: float = TRANSITION_TIMEOUT
    poll_interval: float = BUTTON_POLL_INTERVAL


@dataclass
class ApplicationAttemptState:
    """Mutable state of one attempt, reset at attempt start."""
    step_count: int = 0
    last_progress: Optional[int] = None
    next_clicked: bool = False
    review_clicked: bool = False
    review_present: bool = False
    submit_clicked: bool = False
    last_fingerprint: Optional[int] = None
    last_action: Optional[StepAction] = None
    actions: List[str] = field(default_factory=list)


@dataclass
class AttemptResult:
    """Terminal report of one application attempt."""
    outcome: AttemptOutcome
    steps: int = 0
    reason: str = ""
    actions: List[str] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    job_id: Optional[str] = None
    title: Optional[str] = None
    company: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def success(self) -> bool:
        return self.outcome == AttemptOutcome.SUBMITTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "steps": self.steps,
            "reason": self.reason,
            "actions": list(self.actions),
            "errors": list(self.errors),
            "job_id": self.job_id,
            "title": self.title,
            "company": self.company,
            "timestamp": self.timestamp,
        }


class StepNavigator:
    """Runs the per-step loop: read progress, remediate, fill, decide.

    Each iteration is bounded; the whole attempt is bounded by
    `settings.max_steps`. The cancellation token is checked at every
    suspension point and turns into a CANCELLED outcome, never an exception.
    """

    def __init__(
        self,
        chain: FieldHandlerChain,
        engine: Optional[SelectorEngine] = None,
        tracker: Optional[ProgressTracker] = None,
        confirmation: Optional[ConfirmationWatcher] = None,
        settings: Optional[NavigatorSettings] = None
    ):
        self.chain = chain
        self.pipeline = chain.services.pipeline
        self.inspector = chain.inspector
        self.engine = engine or SelectorEngine()
        self.tracker = tracker or ProgressTracker()
        self.confirmation = confirmation or ConfirmationWatcher(engine=self.engine)
        self.settings = settings or NavigatorSettings()
        self.logger = logger

    async def run_attempt(self, root: UiNode, token: Optional[CancellationToken] = None) -> AttemptResult:
        """
        Fill and submit the application currently open in `root`.

        Args:
            root: Page root (the modal is located inside it on every step)
            token: Cancellation token

        Returns:
            AttemptResult
        """
        token = token or CancellationToken()
        state = ApplicationAttemptState()
        self.tracker.reset()
        self.pipeline.start_attempt()
        await self.pipeline.cache.load()

        for iteration in range(1, self.settings.max_steps + 1):
            if token.cancelled:
                return self._finish(AttemptOutcome.CANCELLED, state, token.reason or "cancelled")
            state.step_count = iteration

            scope = await self._container(root)
            progress = await read_progress(scope, self.engine)
            self.tracker.update(progress)
            if progress is not None:
                state.last_progress = progress
            self.logger.info(f"Step {iteration}/{self.settings.max_steps}, progress {progress if progress is not None else '?'}%")

            if self.tracker.is_stuck():
                await self._remediate(scope, root, token)

            fingerprint = await self._fingerprint(scope)
            if fingerprint == state.last_fingerprint:
                self.logger.debug("Step content unchanged, waiting for it to settle")
                if not await token.sleep(self.settings.long_settle):
                    return self._finish(AttemptOutcome.CANCELLED, state, token.reason or "cancelled")
                scope = await self._container(root)
            state.last_fingerprint = fingerprint

            await self.chain.fill_fields(scope, token, root=root)
            await self._select_resume(scope)
            if token.cancelled:
                return self._finish(AttemptOutcome.CANCELLED, state, token.reason or "cancelled")

            action = await self._decide(scope, state)
            if action is None and self._should_refill(state):
                self.logger.info("No step control available near completion, refilling once")
                await self.chain.fill_fields(scope, token, force=True, root=root)
                action = await self._decide(scope, state)

            if action is None:
                state.last_action = StepAction.BLOCKED
                state.actions.append(StepAction.BLOCKED.value)
                self.logger.warning(f"No viable action on step {iteration}")
                if not await token.sleep(self.settings.click_delay):
                    return self._finish(AttemptOutcome.CANCELLED, state, token.reason or "cancelled")
                continue

            state.last_action = action
            state.actions.append(action.value)

            if action == StepAction.SUBMITTED:
                result = await self.confirmation.wait_for_confirmation(root, token)
                if result.cancelled:
                    return self._finish(AttemptOutcome.CANCELLED, state, token.reason or "cancelled")
                if result.confirmed:
                    return self._finish(AttemptOutcome.SUBMITTED, state, result.reason)
                self.logger.warning("Submit clicked but not confirmed, re-entering the step loop")
                continue

            await self._wait_for_transition(root, fingerprint, token)

        if token.cancelled:
            return self._finish(AttemptOutcome.CANCELLED, state, token.reason or "cancelled")
        if state.last_action == StepAction.BLOCKED:
            return self._finish(AttemptOutcome.BLOCKED, state, "no viable action on the last step")

        error = BudgetExhausted(f"Step budget of {self.settings.max_steps} exhausted", steps=state.step_count)
        result = self._finish(AttemptOutcome.BUDGET_EXHAUSTED, state, error.message)
        result.errors.append(error.to_dict())
        return result

    def _action_order(self, state: ApplicationAttemptState) -> List[Tuple[StepAction, SelectorStrategy]]:
        advance = (StepAction.ADVANCED, selectors.NEXT_BUTTON)
        review = (StepAction.REVIEWED, selectors.REVIEW_BUTTON)
        submit = (StepAction.SUBMITTED, selectors.SUBMIT_BUTTON)
        progress = state.last_progress or 0

        if progress >= 100 or state.review_clicked:
            return [submit, review, advance]
        if progress >= self.settings.review_threshold or (state.next_clicked and state.review_present):
            return [review, submit, advance]
        return [advance, review, submit]

    async def _decide(self, scope: UiNode, state: ApplicationAttemptState) -> Optional[StepAction]:
        """Click the highest-priority step control that is present."""
        state.review_present = await self.engine.exists(selectors.REVIEW_BUTTON, scope)

        for action, strategy in self._action_order(state):
            button = await self.engine.resolve(strategy, scope)
            if button is None:
                continue
            if await self._click(button, strategy.name):
                self._mark(state, action)
                return action

        if not state.next_clicked and not state.review_clicked:
            button = await self.engine.resolve(selectors.GENERIC_SUBMIT_BUTTON, scope)
            if button is not None and await self._click(button, selectors.GENERIC_SUBMIT_BUTTON.name):
                self._mark(state, StepAction.SUBMITTED)
                return StepAction.SUBMITTED

        return None

    def _mark(self, state: ApplicationAttemptState, action: StepAction) -> None:
        if action == StepAction.ADVANCED:
            state.next_clicked = True
        elif action == StepAction.REVIEWED:
            state.review_clicked = True
        elif action == StepAction.SUBMITTED:
            state.submit_clicked = True
        self.logger.info(f"Step action: {action.value}")

    async def _click(self, button: UiNode, name: str) -> bool:
        try:
            await button.click()
            return True
        except Exception as e:
            self.logger.warning(f"Clicking {name} failed: {e}")
            return False

    def _should_refill(self, state: ApplicationAttemptState) -> bool:
        progress = state.last_progress
        return progress is not None and progress >= self.settings.refill_threshold and self.tracker.is_stuck()

    async def _remediate(self, scope: UiNode, root: UiNode, token: CancellationToken) -> None:
        indicators = await self.inspector.stuck_indicators(scope)
        if not indicators:
            return
        self.logger.warning(f"Stuck with {len(indicators)} indicator(s): {indicators[:5]}")
        await self.chain.fill_fields(scope, token, force=True, root=root)

    async def _select_resume(self, scope: UiNode) -> None:
        """Pick the first resume when the step offers resumes and none is selected."""
        cards = await self.engine.resolve_all(selectors.RESUME_CARDS, scope, visible_only=True)
        if not cards or await self.engine.exists(selectors.RESUME_SELECTED, scope):
            return
        radios = await cards[0].query_selector_all('input[type="radio"]')
        try:
            if radios:
                await radios[0].set_checked(True)
            else:
                await cards[0].click()
            self.logger.info("Selected the first resume")
        except Exception as e:
            self.logger.warning(f"Could not select a resume: {e}")

    async def _container(self, root: UiNode) -> UiNode:
        modal = await self.engine.resolve(selectors.MODAL, root)
        return modal if modal is not None else root

    async def _fingerprint(self, scope: UiNode) -> int:
        return len(await scope.inner_html() or "")

    async def _wait_for_transition(self, root: UiNode, before: int, token: CancellationToken) -> bool:
        """Wait, bounded and cancellable, for the step content to change."""
        if not await token.sleep(self.settings.click_delay):
            return False

        async def changed() -> bool:
            scope = await self._container(root)
            return await self._fingerprint(scope) != before

        result = await poll_until(
            changed,
            timeout=self.settings.transition_timeout,
            interval=self.settings.poll_interval,
            token=token,
            description="step transition",
        )
        if not result and not token.cancelled:
            self.logger.debug("Step content did not change after the click")
        return bool(result)

    def _finish(self, outcome: AttemptOutcome, state: ApplicationAttemptState, reason: str) -> AttemptResult:
        self.logger.info(f"Attempt finished: {outcome.value} after {state.step_count} step(s) ({reason})")
        return AttemptResult(outcome=outcome, steps=state.step_count, reason=reason, actions=list(state.actions))
