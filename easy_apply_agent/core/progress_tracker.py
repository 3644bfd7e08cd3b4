"""Progress tracking for multi-step application forms."""

import logging
import re
import time
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from easy_apply_agent.core.browser_interface import UiNode
from easy_apply_agent.tools import selectors
from easy_apply_agent.tools.constants import STALL_THRESHOLD
from easy_apply_agent.tools.selector_engine import SelectorEngine

logger = logging.getLogger(__name__)

PERCENT_PATTERN = re.compile(r'(\d{1,3})\s*%')


class ProgressState(Enum):
    FRESH = "fresh"
    ADVANCING = "advancing"
    STALLED = "stalled"
    COMPLETE = "complete"


class DecreasePolicy(Enum):
    """What a drop in the progress value means."""
    RESET = "reset"                    # treat like an increase
    COUNT_AS_STALL = "count_as_stall"  # treat like no change


@dataclass
class ProgressSnapshot:
    value: Optional[int]
    timestamp: float
    delta: Optional[int] = None


class ProgressTracker:
    """Watches the completion percentage across steps and detects stalls.

    A value of None means the progress element could not be read and counts
    as "unchanged".
    """

    def __init__(self, stall_threshold: int = STALL_THRESHOLD, decrease_policy: DecreasePolicy = DecreasePolicy.RESET):
        self.stall_threshold = max(1, stall_threshold)
        self.decrease_policy = decrease_policy
        self.history: List[ProgressSnapshot] = []
        self.unchanged_count = 0
        self.state = ProgressState.FRESH
        self.logger = logger

    @property
    def last_value(self) -> Optional[int]:
        """Most recent known value, skipping unreadable snapshots."""
        for snapshot in reversed(self.history):
            if snapshot.value is not None:
                return snapshot.value
        return None

    def update(self, value: Optional[int]) -> ProgressSnapshot:
        """
        Record a new reading and advance the state machine.

        Args:
            value: Percentage 0-100, or None when unknown

        Returns:
            The recorded snapshot
        """
        if value is not None:
            value = max(0, min(100, int(value)))
        previous = self.last_value
        delta = value - previous if value is not None and previous is not None else None
        snapshot = ProgressSnapshot(value=value, timestamp=time.monotonic(), delta=delta)
        self.history.append(snapshot)

        if value == 100:
            self.unchanged_count = 0
            self.state = ProgressState.COMPLETE
            return snapshot

        if value is None:
            changed = False
        elif previous is None:
            changed = True
        elif value > previous:
            changed = True
        elif value < previous:
            self.logger.warning(f"Progress went backwards: {previous}% -> {value}%")
            changed = self.decrease_policy == DecreasePolicy.RESET
        else:
            changed = False

        if changed:
            self.unchanged_count = 0
            self.state = ProgressState.ADVANCING
        else:
            self.unchanged_count += 1
            if self.unchanged_count >= self.stall_threshold:
                if self.state != ProgressState.STALLED:
                    self.logger.info(f"Progress stalled at {self.last_value}% after {self.unchanged_count} readings")
                self.state = ProgressState.STALLED

        return snapshot

    def is_stuck(self) -> bool:
        return self.state == ProgressState.STALLED

    def is_complete(self) -> bool:
        return self.state == ProgressState.COMPLETE

    def reset(self) -> None:
        self.history.clear()
        self.unchanged_count = 0
        self.state = ProgressState.FRESH


async def read_progress(scope: UiNode, engine: Optional[SelectorEngine] = None) -> Optional[int]:
    """
    Scrape the completion percentage of the current step.

    Args:
        scope: Application container
        engine: Selector engine to use

    Returns:
        Percentage 0-100, or None when no progress indicator is readable
    """
    engine = engine or SelectorEngine()

    element = await engine.resolve(selectors.PROGRESS, scope)
    if element is not None:
        for attribute in ("value", "aria-valuenow"):
            raw = await element.get_attribute(attribute)
            if raw:
                try:
                    return int(round(float(raw)))
                except ValueError:
                    logger.debug(f"Unreadable progress {attribute}: {raw!r}")
        match = PERCENT_PATTERN.search(await element.inner_text() or "")
        if match:
            return int(match.group(1))

    label = await engine.resolve(selectors.PROGRESS_LABEL, scope)
    if label is not None:
        match = PERCENT_PATTERN.search(await label.inner_text() or "")
        if match:
            return int(match.group(1))

    return None
