"""Resolution of the value a field should receive."""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from easy_apply_agent.core.answer_cache import AnswerCache
from easy_apply_agent.core.answer_client import AnswerRequest, AnswerServiceClient, fallback_answer
from easy_apply_agent.core.cancellation import CancellationToken
from easy_apply_agent.core.exceptions import ServiceFailure
from easy_apply_agent.tools.constants import AFFIRMATIVE_ANSWER, MIN_EXPERIENCE_YEARS
from easy_apply_agent.tools.field_classifier import ClassificationResult, KeywordTables, contains_any, default_keyword_tables
from easy_apply_agent.tools.option_matcher import OptionMatcher
from easy_apply_agent.utils.profile_data import Profile

logger = logging.getLogger(__name__)


@dataclass
class ResolutionOptions:
    """Per-field inputs to `ValueResolutionPipeline.resolve`."""
    explicit_value: Optional[str] = None
    classification: Optional[ClassificationResult] = None
    options_list: Optional[List[str]] = None
    skip_cache: bool = False
    numeric_only: bool = False
    is_summary: bool = False
    is_cover_letter: bool = False
    token: Optional[CancellationToken] = None

    @property
    def hints(self) -> dict:
        category = self.classification.category if self.classification else None
        return {"category": category} if category else {}


class ValueResolutionPipeline:
    """Finds a value for a field from the first source that has one.

    Sources, in order: explicit value, consent short-circuit, answer cache,
    answer service, static defaults. Service problems never propagate;
    they fall through to the defaults.
    """

    def __init__(
        self,
        cache: AnswerCache,
        client: Optional[AnswerServiceClient] = None,
        profile: Optional[Profile] = None,
        keyword_tables: Optional[KeywordTables] = None,
        min_experience_years: int = MIN_EXPERIENCE_YEARS
    ):
        """
        Initialize the pipeline.

        Args:
            cache: Shared answer cache
            client: Answer service client; the service step is skipped when None
            profile: Applicant profile for explicit values, context and defaults
            keyword_tables: Tables providing affirmative words and experience denials
            min_experience_years: Service answers below this count as denying experience
        """
        self.cache = cache
        self.client = client
        self.profile = profile or Profile()
        self.keywords = keyword_tables or default_keyword_tables()
        self.min_experience_years = min_experience_years
        self.matcher = OptionMatcher()
        self.history: List[Tuple[str, str]] = []
        self.last_source: Optional[str] = None
        self.logger = logging.getLogger(__name__)

    def start_attempt(self) -> None:
        """Forget the question/answer history of the previous form."""
        self.history = []

    async def resolve(self, label: str, options: Optional[ResolutionOptions] = None) -> Optional[str]:
        """
        Resolve the value for one field.

        Args:
            label: Field label (the question)
            options: Classification and answer-shape hints

        Returns:
            The value, or None when cancelled
        """
        options = options or ResolutionOptions()
        token = options.token
        classification = options.classification or ClassificationResult()
        self.last_source = None

        if token is not None and token.cancelled:
            return None

        explicit = options.explicit_value or self.profile.explicit_value_for(label, classification)
        if explicit:
            self.cache.set(label, explicit, options.hints)
            return self._resolved("explicit", label, explicit)

        if classification.is_consent:
            return self._resolved("consent", label, self.affirmative_default(options.options_list))

        if not options.skip_cache:
            cached = self.cache.get(label, options.hints)
            if cached:
                return self._resolved("cache", label, cached)

        request = self._request(label, options, classification)
        if self.client is not None:
            try:
                answer = await self.client.answer(request)
            except ServiceFailure as e:
                self.logger.warning(f"Answer service failed for '{label}', using defaults: {e.message}")
                answer = None
            if token is not None and token.cancelled:
                self.logger.info(f"Ignoring answer for '{label}': cancelled while waiting")
                return None
            if answer:
                if classification.is_experience and not options.options_list and self.denies_experience(answer):
                    self.logger.warning(f"Service denied experience for '{label}' ('{answer}'), using default")
                    answer = self.profile.default("experience_years")
                self.cache.set(label, answer, options.hints)
                self.history.append((label, answer))
                return self._resolved("service", label, answer)

        return self._resolved("default", label, self.default_value(request, classification))

    def affirmative_default(self, options_list: Optional[List[str]]) -> str:
        """A yes-like option, else the first option, else "Yes"."""
        if options_list:
            index = self.matcher.affirmative(options_list, self.keywords.affirmative)
            return options_list[index if index is not None else 0]
        return AFFIRMATIVE_ANSWER

    def default_value(self, request: AnswerRequest, classification: ClassificationResult) -> str:
        """Static default for a field no other source could answer."""
        profile = self.profile
        if classification.is_country or classification.is_phone_country_code:
            value = profile.default("country")
        elif classification.is_city:
            value = profile.default("city")
        elif classification.is_phone:
            value = profile.default("phone")
        elif classification.is_experience or request.numeric_only:
            value = profile.default("experience_years")
        else:
            return fallback_answer(request, self.matcher, self.keywords.affirmative)

        if request.options_list:
            index = self.matcher.best(value, request.options_list)
            if index is None:
                return fallback_answer(request, self.matcher, self.keywords.affirmative)
            return request.options_list[index]
        return value

    def denies_experience(self, answer: str) -> bool:
        """True for answers like "0", "zero" or "not mentioned"."""
        match = re.match(r'^\s*(\d+)', answer)
        if match:
            return int(match.group(1)) < self.min_experience_years
        return contains_any(answer, self.keywords.experience_denials) or not re.search(r'\d', answer)

    def _request(self, label: str, options: ResolutionOptions, classification: ClassificationResult) -> AnswerRequest:
        return AnswerRequest(
            question=label,
            profile_text=self.profile.profile_text,
            options_list=options.options_list,
            numeric_only=options.numeric_only,
            is_summary=options.is_summary,
            is_cover_letter=options.is_cover_letter,
            is_country=classification.is_country,
            context_lines=self.profile.context_lines(),
            history=list(self.history),
        )

    def _resolved(self, source: str, label: str, value: str) -> str:
        self.last_source = source
        self.logger.debug(f"Resolved '{label}' from {source}: '{value[:60]}'")
        return value
