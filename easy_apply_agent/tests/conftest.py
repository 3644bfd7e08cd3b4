"""Test configuration for pytest."""

import sys
from pathlib import Path

# Add the project root directory to Python path
project_root = str(Path(__file__).parent.parent.parent)
if project_root not in sys.path:
    sys.path.insert(0, project_root)

# --- Pytest Fixtures ---

import pytest

from easy_apply_agent.core.action_handlers.base_handler import HandlerServices
from easy_apply_agent.core.answer_cache import AnswerCache
from easy_apply_agent.core.confirmation import ConfirmationPolicy, ConfirmationWatcher
from easy_apply_agent.core.handler_chain import FieldHandlerChain
from easy_apply_agent.core.step_navigator import NavigatorSettings, StepNavigator
from easy_apply_agent.core.value_pipeline import ValueResolutionPipeline
from easy_apply_agent.utils.profile_data import Profile


@pytest.fixture
def profile():
    return Profile.from_dict({
        "profile_text": "Backend engineer with 6 years of Python and Go.",
        "contact": {
            "first_name": "Ada",
            "last_name": "Lovelace",
            "email": "ada@example.com",
            "phone": "+1 (415) 555-0100",
            "city": "Pune",
            "country": "India",
        },
    })


@pytest.fixture
def cache():
    return AnswerCache()


@pytest.fixture
def pipeline(cache, profile):
    """Pipeline with no answer service: unanswered fields fall through to defaults."""
    return ValueResolutionPipeline(cache, client=None, profile=profile)


@pytest.fixture
def services(pipeline):
    return HandlerServices(pipeline=pipeline, settle_delay=0, typeahead_delay=0, suggestion_timeout=0.05)


@pytest.fixture
def chain(services):
    return FieldHandlerChain(services)


@pytest.fixture
def navigator_settings():
    return NavigatorSettings(click_delay=0, long_settle=0, transition_timeout=0.05, poll_interval=0.01)


@pytest.fixture
def navigator(chain, navigator_settings):
    confirmation = ConfirmationWatcher(ConfirmationPolicy(timeout=0.1, poll_interval=0.01))
    return StepNavigator(chain, confirmation=confirmation, settings=navigator_settings)
