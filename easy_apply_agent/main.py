"""Main module for the Easy Apply engine."""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from easy_apply_agent.config import Config
from easy_apply_agent.core.answer_cache import AnswerCache, JsonCacheStore
from easy_apply_agent.core.answer_client import AnswerServiceClient
from easy_apply_agent.core.application_state import ApplicationState
from easy_apply_agent.core.browser_interface import BrowserInterface, UiNode
from easy_apply_agent.core.browser_manager import BrowserManager
from easy_apply_agent.core.cancellation import CancellationToken
from easy_apply_agent.core.confirmation import ConfirmationPolicy, ConfirmationWatcher
from easy_apply_agent.core.exceptions import BrowserError
from easy_apply_agent.core.handler_chain import FieldHandlerChain
from easy_apply_agent.core.job_board_runner import JobBoardRunner, RunnerSettings
from easy_apply_agent.core.llm_wrapper import LLMWrapper
from easy_apply_agent.core.progress_tracker import DecreasePolicy, ProgressTracker
from easy_apply_agent.core.action_handlers.base_handler import HandlerServices
from easy_apply_agent.core.rate_limiter import RateLimitedQueue
from easy_apply_agent.core.step_navigator import NavigatorSettings, StepNavigator
from easy_apply_agent.core.value_pipeline import ValueResolutionPipeline
from easy_apply_agent.tools.field_classifier import FieldClassifier, KeywordTables
from easy_apply_agent.tools.field_inspector import FieldInspector
from easy_apply_agent.tools.selector_engine import SelectorEngine
from easy_apply_agent.utils.error_handling import RetryStrategy
from easy_apply_agent.utils.profile_data import Profile, load_profile

logger = logging.getLogger(__name__)


def build_navigator(config: Config, profile: Profile, api_key: Optional[str] = None) -> StepNavigator:
    """
    Wire the engine's collaborators from configuration.

    Args:
        config: Loaded configuration
        profile: Applicant profile
        api_key: Answer service key; read from the configured variable when None

    Returns:
        A ready StepNavigator
    """
    keywords = KeywordTables.load(config.get('classifier.keyword_tables'))

    cache_path = config.get_cache_path()
    cache = AnswerCache(
        store=JsonCacheStore(cache_path) if cache_path else None,
        similarity_threshold=config.get('cache.similarity_threshold'),
    )

    llm = LLMWrapper(
        model=config.get('answer_service.model'),
        api_key=api_key or config.get_api_key() or None,
        api_key_env=config.get('answer_service.api_key_env'),
        timeout=config.get('answer_service.timeout'),
    )
    client = AnswerServiceClient(
        llm,
        rate_limiter=RateLimitedQueue(config.get('answer_service.rpm')),
        keyword_tables=keywords,
        temperature=config.get('answer_service.temperature'),
        summary_temperature=config.get('answer_service.summary_temperature'),
    )
    pipeline = ValueResolutionPipeline(cache, client=client, profile=profile, keyword_tables=keywords)

    engine = SelectorEngine()
    services = HandlerServices(
        pipeline=pipeline,
        inspector=FieldInspector(engine),
        engine=engine,
        keywords=keywords,
        settle_delay=config.get('timing.settle_delay'),
        typeahead_delay=config.get('timing.typeahead_delay'),
    )
    chain = FieldHandlerChain(services, classifier=FieldClassifier(keywords))

    tracker = ProgressTracker(
        stall_threshold=config.get('navigation.stall_threshold'),
        decrease_policy=DecreasePolicy(config.get('navigation.decrease_policy')),
    )
    confirmation = ConfirmationWatcher(
        ConfirmationPolicy(
            timeout=config.get('confirmation.timeout'),
            poll_interval=config.get('confirmation.poll_interval'),
            weak_signal_threshold=config.get('confirmation.weak_signal_threshold'),
            assume_success_on_disappear=config.get('confirmation.assume_success_on_disappear'),
        ),
        engine=engine,
    )
    settings = NavigatorSettings(
        max_steps=config.get('navigation.max_steps'),
        review_threshold=config.get('navigation.review_threshold'),
        refill_threshold=config.get('navigation.refill_threshold'),
        click_delay=config.get('timing.short_delay'),
        long_settle=config.get('timing.long_settle'),
        transition_timeout=config.get('timing.transition_timeout'),
        poll_interval=config.get('timing.poll_interval'),
    )
    return StepNavigator(chain, engine=engine, tracker=tracker, confirmation=confirmation, settings=settings)


async def open_job_board(browser: BrowserInterface, url: str, token: CancellationToken, retry_delay: float = 1.0) -> UiNode:
    """
    Start the browser and load the search results page.

    Args:
        browser: Browser to drive
        url: Job search results URL
        token: Cancellation token checked between navigation retries
        retry_delay: Base delay between navigation attempts in seconds

    Returns:
        Root node of the loaded page

    Raises:
        BrowserError: When the browser does not start or the page never loads
    """
    if not await browser.initialize():
        raise BrowserError("Browser failed to start", url=url)
    navigation = RetryStrategy(max_retries=3, delay=retry_delay)
    if not await navigation.run(lambda: browser.navigate(url), token, description=f"navigation to {url}"):
        raise BrowserError("Navigation failed", url=url)
    await browser.wait_for_load()
    return await browser.root()


def install_signal_handlers(token: CancellationToken) -> None:
    """Turn SIGINT/SIGTERM into a cooperative cancel."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, token.cancel, f"received {sig.name}")
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform's loop
            logger.debug(f"Cannot install handler for {sig.name}")


async def run(
    url: str,
    profile_path: Optional[str] = None,
    config_path: Optional[str] = None,
    max_applications: Optional[int] = None,
    max_steps: Optional[int] = None,
    visible: bool = False,
    verbose: bool = False
) -> Dict[str, Any]:
    """Apply to the Easy Apply jobs of a search results URL.

    Args:
        url: Job search results URL
        profile_path: Path to the user profile JSON or YAML
        config_path: Path to the configuration file
        max_applications: Stop after this many submitted applications
        max_steps: Step budget per application
        visible: Whether to show the browser
        verbose: Whether to enable verbose output

    Returns:
        The run summary
    """
    load_dotenv()
    config = Config(config_path)
    config.configure_logging(verbose=verbose)
    if max_applications is not None:
        config.set('runner.max_applications', max_applications, persist=False)
    if max_steps is not None:
        config.set('navigation.max_steps', max_steps, persist=False)

    profile = load_profile(profile_path, base_defaults=config.get('defaults'))
    navigator = build_navigator(config, profile)
    state = ApplicationState(results_dir=config.get_storage_path('results'))
    logger.info(f"Starting run {state.run_id} for {url}")

    token = CancellationToken()
    install_signal_handlers(token)

    browser_manager: BrowserInterface = BrowserManager.from_options(config.get_browser_options(), visible=visible)
    try:
        root = await open_job_board(browser_manager, url, token, retry_delay=config.get('timing.short_delay'))

        runner = JobBoardRunner(
            navigator,
            state,
            engine=navigator.engine,
            settings=RunnerSettings(
                max_applications=config.get('runner.max_applications'),
                between_jobs_delay=config.get('runner.between_jobs_delay'),
                element_timeout=config.get('timing.element_timeout'),
            ),
        )
        await runner.run(root, token)
    finally:
        await navigator.pipeline.cache.flush()
        await browser_manager.close()
        state.save()

    summary = state.summary()
    logger.info(f"Results written to {state.attempts_path}")
    return summary


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Easy Apply job application engine")
    parser.add_argument("url", help="Job search results URL")
    parser.add_argument("-p", "--profile", help="Path to user profile (YAML or JSON)")
    parser.add_argument("-c", "--config", help="Path to configuration file")
    parser.add_argument("--max-applications", type=int, help="Stop after this many submitted applications")
    parser.add_argument("--max-steps", type=int, help="Step budget per application")
    parser.add_argument("--visible", action="store_true", help="Show the browser window")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    args = parser.parse_args()

    try:
        summary = asyncio.run(run(
            url=args.url,
            profile_path=args.profile,
            config_path=args.config,
            max_applications=args.max_applications,
            max_steps=args.max_steps,
            visible=args.visible,
            verbose=args.verbose,
        ))
    except BrowserError as e:
        logger.critical(f"{e.message}: {e.context.get('url')}")
        sys.exit(1)
    except Exception as e:
        logger.critical(f"Critical error: {e}", exc_info=True)
        sys.exit(1)

    print(
        f"Run {summary['run_id']}: {summary['submitted']} submitted, {summary['failed']} failed, "
        f"{summary['cancelled']} cancelled, {summary['skipped']} skipped"
    )


if __name__ == "__main__":
    main()
