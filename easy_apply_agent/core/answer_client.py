"""Client for the external answer-generating service."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from easy_apply_agent.core.exceptions import ServiceFailure
from easy_apply_agent.core.llm_wrapper import LLMWrapper
from easy_apply_agent.core.rate_limiter import RateLimitedQueue
from easy_apply_agent.tools.constants import AFFIRMATIVE_ANSWER, MAX_CONTEXT_PAIRS, SUMMARY_FALLBACK
from easy_apply_agent.tools.data_formatter import DataFormatter, extract_number
from easy_apply_agent.tools.field_classifier import KeywordTables, contains_any, default_keyword_tables
from easy_apply_agent.tools.option_matcher import OptionMatcher

logger = logging.getLogger(__name__)

YES_NO_PROMPTS = (
    'are you comfortable', 'are you authorized', 'are you able',
    'can you', 'do you have', 'are you willing', 'would you',
)


@dataclass
class AnswerRequest:
    """One question for the answer service."""
    question: str
    profile_text: str = ""
    options_list: Optional[List[str]] = None
    numeric_only: bool = False
    is_summary: bool = False
    is_cover_letter: bool = False
    is_country: bool = False
    context_lines: List[str] = field(default_factory=list)
    history: List[Tuple[str, str]] = field(default_factory=list)


def fallback_answer(request: AnswerRequest, matcher: Optional[OptionMatcher] = None, affirmative_words=None) -> str:
    """
    Deterministic answer used when the service gives nothing usable.

    Args:
        request: The unanswered request
        matcher: Option matcher used to find a yes-like option
        affirmative_words: Words counted as yes

    Returns:
        A yes-like option (else the first option), the canned summary, or "Yes"
    """
    if request.options_list:
        matcher = matcher or OptionMatcher()
        index = matcher.affirmative(request.options_list, affirmative_words or ["yes"])
        return request.options_list[index if index is not None else 0]
    if request.is_summary or request.is_cover_letter:
        return SUMMARY_FALLBACK
    return AFFIRMATIVE_ANSWER


class AnswerServiceClient:
    """Builds prompts, calls the LLM and normalizes what comes back.

    Every failure surfaces as ServiceFailure; choosing a fallback is the
    caller's job.
    """

    def __init__(
        self,
        llm: LLMWrapper,
        rate_limiter: Optional[RateLimitedQueue] = None,
        keyword_tables: Optional[KeywordTables] = None,
        temperature: float = 0.2,
        summary_temperature: float = 0.7,
        max_context_pairs: int = MAX_CONTEXT_PAIRS
    ):
        """
        Initialize the answer client.

        Args:
            llm: Wrapper around litellm
            rate_limiter: Spaces consecutive calls; unlimited when None
            keyword_tables: Tables providing country aliases and affirmative words
            temperature: Sampling temperature for short answers
            summary_temperature: Sampling temperature for summaries and cover letters
            max_context_pairs: Most prior question/answer pairs included in a prompt
        """
        self.llm = llm
        self.rate_limiter = rate_limiter
        self.keywords = keyword_tables or default_keyword_tables()
        self.temperature = temperature
        self.summary_temperature = summary_temperature
        self.max_context_pairs = max_context_pairs
        self.matcher = OptionMatcher()
        self.formatter = DataFormatter(self.keywords.country_aliases)
        self.logger = logging.getLogger(__name__)

    def build_prompt(self, request: AnswerRequest) -> str:
        """
        Compose the prompt for one question.

        Args:
            request: The question and its answer-shape hints

        Returns:
            Prompt text
        """
        parts = []
        if request.profile_text:
            parts.append(f"Based on my CV: {request.profile_text}")
        if request.context_lines:
            parts.append("Context Information:\n" + "\n".join(request.context_lines))
        if request.history:
            pairs = request.history[-self.max_context_pairs:]
            parts.append("Answers I already gave on this form:\n" + "\n".join(f"Q: {q}\nA: {a}" for q, a in pairs))

        parts.append(f"Question: {request.question}")

        if request.options_list:
            lines = ["Please choose the best option from the following list that matches my profile and preferences:"]
            lines.extend(f"{i}. {option}" for i, option in enumerate(request.options_list, 1))
            has_yes = self.matcher.affirmative(request.options_list, self.keywords.affirmative) is not None
            if has_yes and contains_any(request.question, list(YES_NO_PROMPTS)):
                lines.append(
                    "For questions about my capabilities, authorizations, or willingness, please assume "
                    "I am answering YES unless there's a clear reason not to based on my CV."
                )
            lines.append("Respond with ONLY the option number or the exact text of the option.")
            parts.append("\n".join(lines))
        elif request.numeric_only:
            parts.append("Please respond with ONLY a number.")
        elif request.is_cover_letter:
            parts.append(
                "Please write a professional, concise cover letter explaining why I'm a good fit for this role "
                "based on my experience. Keep it to around 1000 characters."
            )
        elif request.is_summary:
            parts.append(
                "Please provide a concise professional summary based on my CV. Keep it to around 800 characters, "
                "highlighting my key skills and experiences."
            )
        else:
            parts.append("Please provide a direct, concise answer based on my CV. Keep your response short.")

        return "\n\n".join(parts)

    async def answer(self, request: AnswerRequest) -> str:
        """
        Ask the service and normalize its reply.

        Args:
            request: The question to answer

        Returns:
            Normalized answer text

        Raises:
            ServiceFailure: When the call fails or returns nothing usable
        """
        prompt = self.build_prompt(request)
        temperature = self.summary_temperature if (request.is_summary or request.is_cover_letter) else self.temperature
        self.logger.info(f"Asking answer service: '{request.question}'")

        try:
            if self.rate_limiter:
                raw = await self.rate_limiter.execute_api_call(self.llm.acall, prompt, temperature=temperature)
            else:
                raw = await self.llm.acall(prompt, temperature=temperature)
        except ServiceFailure:
            raise
        except Exception as e:
            raise ServiceFailure(f"Answer service call failed: {e}", question=request.question) from e

        answer = self.post_process(raw, request)
        if not answer:
            raise ServiceFailure("Answer service returned no usable answer", question=request.question)
        self.logger.info(f"Answer service replied for '{request.question}': '{answer[:80]}'")
        return answer

    def post_process(self, raw: Optional[str], request: AnswerRequest) -> str:
        """
        Normalize a raw reply.

        With options, a leading number selects that (1-based) option, then
        an option quoted in the reply. A reply naming no option is empty, so
        the caller falls back instead of taking an arbitrary option. Numeric
        requests keep the first integer. Country answers are mapped through
        the alias table.
        """
        answer = (raw or "").strip().strip('"').strip()
        if not answer:
            return ""

        if request.options_list:
            index = self.matcher.answer_to_option(answer, request.options_list)
            if index is None:
                self.logger.warning(f"Reply matched none of {len(request.options_list)} options: '{answer[:80]}'")
                return ""
            answer = request.options_list[index]

        if request.numeric_only:
            number = extract_number(answer)
            if number is None:
                return ""
            answer = number

        if request.is_country and not request.options_list:
            canonical = self.formatter.canonical_country(answer)
            if canonical:
                answer = canonical.title()

        return answer
