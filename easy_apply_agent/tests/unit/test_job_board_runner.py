import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from easy_apply_agent.core.application_state import ApplicationState
from easy_apply_agent.core.cancellation import CancellationToken
from easy_apply_agent.core.job_board_runner import JobBoardRunner, RunnerSettings
from easy_apply_agent.core.step_navigator import AttemptOutcome, AttemptResult
from easy_apply_agent.tests.fake_dom import FakeDocument

CARD = """
<li data-occludable-job-id="{job_id}">
  <a class="job-card-list__title">{title}</a>
  <div class="job-card-container__primary-description">{company}</div>
  {footer}
</li>
"""

APPLIED = '<div class="job-card-container__footer-job-state">Applied</div>'

DETAILS = '<div class="jobs-details__main-content"><button class="jobs-apply-button">Easy Apply</button></div>'


def results_page(cards, details=DETAILS, next_page=False):
    items = "".join(
        CARD.format(job_id=job_id, title=title, company=company, footer=APPLIED if applied else "")
        for job_id, title, company, applied in cards
    )
    pager = '<button aria-label="View next page">Next</button>' if next_page else ""
    return f"""
    <div>
      <ul>{items}</ul>
      {pager}
      {details}
      <div class="jobs-easy-apply-modal" hidden>
        <button aria-label="Dismiss">Dismiss</button>
      </div>
      <div id="discard-dialog" hidden>
        <button data-test-dialog-primary-btn>Discard</button>
      </div>
    </div>
    """


class JobBoard:
    """Click behaviour of the results page: opening, dismissing and paging."""

    def __init__(self, next_pages=()):
        self.next_pages = list(next_pages)

    def __call__(self, doc, node):
        tag = node.tag
        modal = doc.soup.select_one(".jobs-easy-apply-modal")
        dialog = doc.soup.select_one("#discard-dialog")
        if "jobs-apply-button" in (tag.get("class") or []):
            del modal["hidden"]
        elif tag.get("aria-label") == "Dismiss":
            modal["hidden"] = ""
            del dialog["hidden"]
        elif tag.has_attr("data-test-dialog-primary-btn"):
            dialog["hidden"] = ""
        elif tag.get("aria-label") == "View next page" and self.next_pages:
            doc.set_html(self.next_pages.pop(0))


def close_modal(root):
    root.soup.select_one(".jobs-easy-apply-modal")["hidden"] = ""


def fake_navigator(*outcomes):
    """Navigator double returning `outcomes` in order; SUBMITTED closes the modal."""
    remaining = list(outcomes)

    async def run_attempt(root, token):
        outcome = remaining.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome == AttemptOutcome.SUBMITTED:
            close_modal(root)
        return AttemptResult(outcome=outcome, steps=2)

    navigator = MagicMock()
    navigator.run_attempt = AsyncMock(side_effect=run_attempt)
    return navigator


@pytest.fixture
def settings():
    return RunnerSettings(between_jobs_delay=0, element_timeout=0.1, short_timeout=0.1)


@pytest.fixture
def state(tmp_path):
    return ApplicationState(results_dir=str(tmp_path), run_id="test-run")


CARDS = [
    ("101", "Backend Engineer", "Acme", False),
    ("102", "Data Engineer", "Globex", True),
    ("103", "Site Reliability Engineer", "Initech", False),
]


@pytest.mark.asyncio
async def test_applies_to_unapplied_cards_and_records_them(settings, state, tmp_path):
    doc = FakeDocument(results_page(CARDS), on_click=JobBoard())
    navigator = fake_navigator(AttemptOutcome.SUBMITTED, AttemptOutcome.BLOCKED)
    runner = JobBoardRunner(navigator, state, settings=settings)

    await runner.run(doc, CancellationToken())

    assert navigator.run_attempt.await_count == 2
    assert [(a.job_id, a.title, a.company, a.outcome) for a in state.attempts] == [
        ("101", "Backend Engineer", "Acme", AttemptOutcome.SUBMITTED),
        ("103", "Site Reliability Engineer", "Initech", AttemptOutcome.BLOCKED),
    ]
    # The blocked application was dismissed and discarded
    assert ("button", "click", "Discard") in doc.actions
    assert not await doc.node(".jobs-easy-apply-modal").is_visible()

    saved = json.loads((tmp_path / "test-run" / "attempts.json").read_text())
    assert saved["summary"]["submitted"] == 1
    assert saved["summary"]["failed"] == 1
    assert saved["attempts"][1]["outcome"] == "blocked"


@pytest.mark.asyncio
async def test_stops_at_application_limit(settings, state):
    settings.max_applications = 1
    doc = FakeDocument(results_page(CARDS), on_click=JobBoard())
    navigator = fake_navigator(AttemptOutcome.SUBMITTED, AttemptOutcome.SUBMITTED)

    await JobBoardRunner(navigator, state, settings=settings).run(doc)

    assert navigator.run_attempt.await_count == 1
    assert state.submitted_count == 1


@pytest.mark.asyncio
async def test_failed_attempt_does_not_stop_the_run(settings, state):
    doc = FakeDocument(results_page(CARDS), on_click=JobBoard())
    navigator = fake_navigator(RuntimeError("page crashed"), AttemptOutcome.SUBMITTED)

    await JobBoardRunner(navigator, state, settings=settings).run(doc)

    first, second = state.attempts
    assert first.outcome == AttemptOutcome.BLOCKED
    assert first.errors[0]["context"] == {"type": "RuntimeError"}
    assert second.outcome == AttemptOutcome.SUBMITTED


@pytest.mark.asyncio
async def test_jobs_without_easy_apply_are_skipped(settings, state):
    doc = FakeDocument(results_page(CARDS, details='<div class="jobs-details__main-content"></div>'), on_click=JobBoard())
    navigator = fake_navigator()

    await JobBoardRunner(navigator, state, settings=settings).run(doc)

    navigator.run_attempt.assert_not_awaited()
    assert state.summary()["skipped"] == 2


@pytest.mark.asyncio
async def test_follows_pagination_without_repeating_jobs(settings, state):
    page_two = results_page([("101", "Backend Engineer", "Acme", False), ("201", "Platform Engineer", "Umbrella", False)])
    doc = FakeDocument(results_page(CARDS[:1], next_page=True), on_click=JobBoard([page_two]))
    navigator = fake_navigator(AttemptOutcome.SUBMITTED, AttemptOutcome.SUBMITTED)

    await JobBoardRunner(navigator, state, settings=settings).run(doc)

    assert [a.job_id for a in state.attempts] == ["101", "201"]


@pytest.mark.asyncio
async def test_cancelled_attempt_ends_the_run(settings, state):
    doc = FakeDocument(results_page(CARDS), on_click=JobBoard())
    navigator = fake_navigator(AttemptOutcome.CANCELLED, AttemptOutcome.SUBMITTED)

    await JobBoardRunner(navigator, state, settings=settings).run(doc)

    assert len(state.attempts) == 1
    assert state.summary()["cancelled"] == 1


def test_summary_counts(tmp_path):
    state = ApplicationState(results_dir=str(tmp_path), run_id="r1")
    for outcome in (AttemptOutcome.SUBMITTED, AttemptOutcome.BUDGET_EXHAUSTED, AttemptOutcome.SKIPPED):
        state.record(AttemptResult(outcome=outcome))

    summary = state.summary()

    assert summary["total"] == 3
    assert summary["failed"] == 1
    assert summary["by_outcome"] == {"submitted": 1, "budget_exhausted": 1, "skipped": 1}
    assert state.attempts_path.exists()
