"""Attempt history for one run of the job board runner."""

import json
import logging
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from easy_apply_agent.core.step_navigator import AttemptOutcome, AttemptResult

logger = logging.getLogger(__name__)


class ApplicationState:
    """Collects the AttemptResults of a run and keeps them on disk."""

    def __init__(self, results_dir: str = "results", run_id: Optional[str] = None):
        """
        Initialize the application state.

        Args:
            results_dir: Base directory for run output
            run_id: Run identifier; a timestamp when None
        """
        self.run_id = run_id or datetime.now().strftime("%Y%m%d_%H%M%S")
        self.run_dir = Path(results_dir) / self.run_id
        self.attempts: List[AttemptResult] = []
        self.started_at = datetime.now()

    @property
    def attempts_path(self) -> Path:
        return self.run_dir / "attempts.json"

    def record(self, result: AttemptResult) -> None:
        """
        Add one attempt and rewrite the attempts file.

        Args:
            result: Finished attempt
        """
        self.attempts.append(result)
        logger.info(
            f"Recorded attempt {len(self.attempts)}: {result.outcome.value}"
            f"{' - ' + result.title if result.title else ''}"
        )
        self.save()

    @property
    def submitted_count(self) -> int:
        return sum(1 for a in self.attempts if a.outcome == AttemptOutcome.SUBMITTED)

    def summary(self) -> Dict[str, Any]:
        """Counts per outcome plus the submitted/failed/cancelled totals."""
        counts = Counter(a.outcome.value for a in self.attempts)
        submitted = counts.get(AttemptOutcome.SUBMITTED.value, 0)
        cancelled = counts.get(AttemptOutcome.CANCELLED.value, 0)
        skipped = counts.get(AttemptOutcome.SKIPPED.value, 0)
        return {
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat(),
            "total": len(self.attempts),
            "submitted": submitted,
            "failed": len(self.attempts) - submitted - cancelled - skipped,
            "cancelled": cancelled,
            "skipped": skipped,
            "by_outcome": dict(counts),
        }

    def save(self) -> Optional[Path]:
        """Write attempts and summary; errors are logged, not raised."""
        data = {
            "summary": self.summary(),
            "attempts": [a.to_dict() for a in self.attempts],
        }
        try:
            self.run_dir.mkdir(parents=True, exist_ok=True)
            with open(self.attempts_path, "w") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            logger.error(f"Failed to save attempts to {self.attempts_path}: {e}")
            return None
        return self.attempts_path
