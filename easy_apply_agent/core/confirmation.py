"""Detection of a successful submission after the final click."""

import logging
from dataclasses import dataclass
from typing import Optional

from easy_apply_agent.core.browser_interface import UiNode
from easy_apply_agent.core.cancellation import CancellationToken, poll_until
from easy_apply_agent.tools import selectors
from easy_apply_agent.tools.constants import (
    CONFIRMATION_POLL_INTERVAL,
    CONFIRMATION_TIMEOUT,
    WEAK_SIGNAL_THRESHOLD,
)
from easy_apply_agent.tools.selector_engine import SelectorEngine

logger = logging.getLogger(__name__)


@dataclass
class ConfirmationPolicy:
    """How hard to look for proof that the application went through.

    Attributes:
        timeout: Seconds to keep polling
        poll_interval: Seconds between polls
        weak_signal_threshold: Weak points needed when no strong signal shows up
        assume_success_on_disappear: At timeout, count a vanished modal as success
    """
    timeout: float = CONFIRMATION_TIMEOUT
    poll_interval: float = CONFIRMATION_POLL_INTERVAL
    weak_signal_threshold: int = WEAK_SIGNAL_THRESHOLD
    assume_success_on_disappear: bool = True


@dataclass
class ConfirmationResult:
    confirmed: bool
    reason: str
    weak_points: int = 0
    cancelled: bool = False


class ConfirmationWatcher:
    """Polls the page for strong and weak signs of a sent application."""

    def __init__(self, policy: Optional[ConfirmationPolicy] = None, engine: Optional[SelectorEngine] = None):
        self.policy = policy or ConfirmationPolicy()
        self.engine = engine or SelectorEngine()
        self.logger = logger

    async def wait_for_confirmation(self, root: UiNode, token: Optional[CancellationToken] = None) -> ConfirmationResult:
        """
        Wait until the submission is confirmed or the policy timeout passes.

        Strong signals (the "Application sent" header or message) confirm at
        once. Weak signals score one point each per poll: the modal is gone,
        no submit control remains, an applied badge or toast is shown.

        Args:
            root: Page root
            token: Cancellation token

        Returns:
            ConfirmationResult
        """
        policy = self.policy
        state = {"points": 0, "modal_gone": False}

        async def check() -> Optional[str]:
            if await self.engine.exists(selectors.APPLICATION_SENT_HEADER, root):
                return "application sent header"
            if await self.engine.exists(selectors.APPLICATION_SENT_MESSAGE, root):
                return "application sent message"

            state["modal_gone"] = not await self.engine.exists(selectors.MODAL, root)
            if state["modal_gone"]:
                state["points"] += 1
            if not await self.engine.exists(selectors.SUBMIT_BUTTON, root):
                state["points"] += 1
            if (await self.engine.exists(selectors.APPLIED_BADGE, root)
                    or await self.engine.exists(selectors.SUCCESS_TOAST, root)):
                state["points"] += 1

            if state["points"] >= policy.weak_signal_threshold:
                return f"{state['points']} weak signal points"
            return None

        reason = await poll_until(
            check,
            timeout=policy.timeout,
            interval=policy.poll_interval,
            token=token,
            description="submission confirmation",
        )

        if token is not None and token.cancelled:
            return ConfirmationResult(False, "cancelled", state["points"], cancelled=True)

        if reason:
            self.logger.info(f"Submission confirmed by {reason}")
            await self.dismiss(root)
            return ConfirmationResult(True, reason, state["points"])

        if state["modal_gone"] and policy.assume_success_on_disappear:
            self.logger.info("No confirmation seen but the application modal is gone, assuming success")
            await self.dismiss(root)
            return ConfirmationResult(True, "modal disappeared", state["points"])

        self.logger.warning(f"Submission not confirmed after {policy.timeout}s ({state['points']} weak points)")
        return ConfirmationResult(False, "timeout", state["points"])

    async def dismiss(self, root: UiNode) -> bool:
        """Click the Done or Dismiss control of the acknowledgment dialog, when present."""
        for strategy in (selectors.DONE_BUTTON, selectors.DISMISS_BUTTON):
            button = await self.engine.resolve(strategy, root)
            if button is None:
                continue
            try:
                await button.click()
                self.logger.debug(f"Closed acknowledgment via {strategy.name}")
                return True
            except Exception as e:
                self.logger.warning(f"Could not click {strategy.name}: {e}")
        return False
