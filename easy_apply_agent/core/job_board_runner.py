"""Job board runner - applies to every Easy Apply posting of a search results list."""

import logging
from dataclasses import dataclass
from typing import Optional, Set

from easy_apply_agent.core.application_state import ApplicationState
from easy_apply_agent.core.browser_interface import UiNode
from easy_apply_agent.core.cancellation import CancellationToken
from easy_apply_agent.core.step_navigator import AttemptOutcome, AttemptResult, StepNavigator
from easy_apply_agent.tools import selectors
from easy_apply_agent.tools.constants import BETWEEN_JOBS_DELAY, DEFAULT_TIMEOUT, SHORT_TIMEOUT
from easy_apply_agent.tools.data_formatter import clean_label
from easy_apply_agent.tools.selector_engine import SelectorEngine, normalize_text
from easy_apply_agent.utils.error_handling import error_to_dict

logger = logging.getLogger(__name__)


@dataclass
class RunnerSettings:
    """Limits for one run. `max_applications` of 0 means no limit."""
    max_applications: int = 0
    between_jobs_delay: float = BETWEEN_JOBS_DELAY
    element_timeout: float = DEFAULT_TIMEOUT
    short_timeout: float = SHORT_TIMEOUT


@dataclass
class JobCard:
    node: UiNode
    job_id: Optional[str]
    title: str
    company: str
    applied: bool


class JobBoardRunner:
    """Walks the results pages and runs one attempt per eligible job card.

    A failure on one job is recorded and the runner moves on; only
    cancellation, the application limit or the last page stop the run.
    """

    def __init__(
        self,
        navigator: StepNavigator,
        state: ApplicationState,
        engine: Optional[SelectorEngine] = None,
        settings: Optional[RunnerSettings] = None
    ):
        self.navigator = navigator
        self.state = state
        self.engine = engine or SelectorEngine()
        self.settings = settings or RunnerSettings()
        self.seen: Set[str] = set()
        self.logger = logger

    def _limit_reached(self) -> bool:
        limit = self.settings.max_applications
        return limit > 0 and self.state.submitted_count >= limit

    async def run(self, root: UiNode, token: Optional[CancellationToken] = None) -> ApplicationState:
        """
        Apply to the jobs listed on the current results page and the ones after it.

        Args:
            root: Page root showing a search results list
            token: Cancellation token

        Returns:
            The ApplicationState holding every recorded attempt
        """
        token = token or CancellationToken()
        page_number = 1

        while not token.cancelled and not self._limit_reached():
            cards = await self.engine.resolve_all(selectors.JOB_CARDS, root)
            self.logger.info(f"Results page {page_number}: {len(cards)} job card(s)")

            for node in cards:
                if token.cancelled or self._limit_reached():
                    break
                card = await self._card_info(node)
                if card.applied:
                    self.logger.debug(f"Skipping '{card.title}': already applied")
                    continue
                key = card.job_id or f"{card.title}|{card.company}"
                if key in self.seen:
                    continue
                self.seen.add(key)

                result = await self.apply_to_card(card, root, token)
                self.state.record(result)
                if result.outcome == AttemptOutcome.CANCELLED:
                    break
                await token.sleep(self.settings.between_jobs_delay)

            if token.cancelled or self._limit_reached():
                break
            if not await self._next_page(root, token):
                self.logger.info("No more results pages")
                break
            page_number += 1

        summary = self.state.summary()
        self.logger.info(
            f"Run finished: {summary['submitted']} submitted, {summary['failed']} failed, "
            f"{summary['cancelled']} cancelled, {summary['skipped']} skipped"
        )
        return self.state

    async def apply_to_card(self, card: JobCard, root: UiNode, token: CancellationToken) -> AttemptResult:
        """
        Open one job and run the application attempt for it.

        Args:
            card: Parsed job card
            root: Page root
            token: Cancellation token

        Returns:
            AttemptResult tagged with the job's identity
        """
        self.logger.info(f"Applying to '{card.title}' at '{card.company}'")
        try:
            result = await self._attempt(card, root, token)
        except Exception as e:
            self.logger.error(f"Attempt for '{card.title}' failed: {e}", exc_info=True)
            result = AttemptResult(outcome=AttemptOutcome.BLOCKED, reason=str(e), errors=[error_to_dict(e)])

        if await self.engine.exists(selectors.MODAL, root):
            await self.discard_application(root, token)

        result.job_id = card.job_id
        result.title = card.title
        result.company = card.company
        return result

    async def _attempt(self, card: JobCard, root: UiNode, token: CancellationToken) -> AttemptResult:
        link = await self.engine.resolve(selectors.JOB_CARD_LINK, card.node)
        await (link or card.node).click()

        details = await self.engine.wait_for_strategy(
            selectors.JOB_DETAILS, root, token=token, timeout=self.settings.element_timeout
        )
        if token.cancelled:
            return AttemptResult(outcome=AttemptOutcome.CANCELLED, reason=token.reason or "cancelled")
        if details is None:
            return AttemptResult(outcome=AttemptOutcome.SKIPPED, reason="job details did not load")

        button = await self.engine.wait_for_strategy(
            selectors.EASY_APPLY_BUTTON, details, token=token, timeout=self.settings.short_timeout
        )
        if button is None:
            return AttemptResult(outcome=AttemptOutcome.SKIPPED, reason="no Easy Apply button")
        await button.click()

        modal = await self.engine.wait_for_strategy(
            selectors.MODAL, root, token=token, timeout=self.settings.element_timeout
        )
        if token.cancelled:
            return AttemptResult(outcome=AttemptOutcome.CANCELLED, reason=token.reason or "cancelled")
        if modal is None:
            return AttemptResult(outcome=AttemptOutcome.BLOCKED, reason="application modal did not open")

        return await self.navigator.run_attempt(root, token)

    async def discard_application(self, root: UiNode, token: CancellationToken) -> bool:
        """Close a half-filled application and confirm "Discard"."""
        dismiss = await self.engine.resolve(selectors.DISMISS_BUTTON, root)
        if dismiss is None:
            return False
        try:
            await dismiss.click()
            discard = await self.engine.wait_for_strategy(
                selectors.DISCARD_BUTTON, root, token=token, timeout=self.settings.short_timeout
            )
            if discard is not None:
                await discard.click()
            self.logger.info("Discarded the unfinished application")
            return True
        except Exception as e:
            self.logger.warning(f"Could not discard the application: {e}")
            return False

    async def _card_info(self, node: UiNode) -> JobCard:
        title_node = await self.engine.resolve(selectors.JOB_CARD_TITLE, node)
        company_node = await self.engine.resolve(selectors.JOB_CARD_COMPANY, node)
        applied_node = await self.engine.resolve(selectors.JOB_CARD_APPLIED, node)
        applied_text = normalize_text(await applied_node.inner_text()) if applied_node else ""
        return JobCard(
            node=node,
            job_id=await node.get_attribute("data-occludable-job-id") or await node.get_attribute("data-job-id"),
            title=clean_label(await title_node.inner_text()) if title_node else "",
            company=clean_label(await company_node.inner_text()) if company_node else "",
            applied="applied" in applied_text,
        )

    async def _next_page(self, root: UiNode, token: CancellationToken) -> bool:
        button = await self.engine.resolve(selectors.NEXT_PAGE_BUTTON, root)
        if button is None or (await button.get_attribute("disabled")) is not None:
            return False
        try:
            await button.click()
        except Exception as e:
            self.logger.warning(f"Could not open the next results page: {e}")
            return False
        return await token.sleep(self.settings.between_jobs_delay)
