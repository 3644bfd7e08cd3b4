"""Tests for the answer service client."""

import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from easy_apply_agent.core.answer_client import AnswerRequest, AnswerServiceClient, fallback_answer
from easy_apply_agent.core.exceptions import ServiceFailure
from easy_apply_agent.core.llm_wrapper import LLMWrapper
from easy_apply_agent.core.rate_limiter import RateLimitedQueue
from easy_apply_agent.tools.constants import SUMMARY_FALLBACK


def make_client(reply="ok"):
    llm = MagicMock()
    llm.acall = AsyncMock(return_value=reply)
    return AnswerServiceClient(llm), llm


class TestPostProcess(unittest.TestCase):
    """Test normalization of raw service replies."""

    def setUp(self):
        self.client, _ = make_client()

    def test_leading_number_selects_option(self):
        request = AnswerRequest("Work mode?", options_list=["Remote", "Hybrid", "On-site"])
        self.assertEqual(self.client.post_process("3", request), "On-site")
        self.assertEqual(self.client.post_process('"2. Hybrid"', request), "Hybrid")

    def test_unmatched_reply_is_empty(self):
        request = AnswerRequest("Work mode?", options_list=["Remote", "Hybrid"])
        self.assertEqual(self.client.post_process("Whatever suits", request), "")

    def test_numeric_keeps_first_integer(self):
        request = AnswerRequest("Years?", numeric_only=True)
        self.assertEqual(self.client.post_process("About 6 years, maybe 7", request), "6")
        self.assertEqual(self.client.post_process("several", request), "")

    def test_country_is_canonicalized(self):
        request = AnswerRequest("Country?", is_country=True)
        self.assertEqual(self.client.post_process("usa", request), "United States")
        self.assertEqual(self.client.post_process("Narnia", request), "Narnia")

    def test_empty_reply(self):
        self.assertEqual(self.client.post_process("  ", AnswerRequest("Q")), "")
        self.assertEqual(self.client.post_process(None, AnswerRequest("Q")), "")


class TestBuildPrompt(unittest.TestCase):
    """Test prompt composition."""

    def setUp(self):
        self.client, _ = make_client()

    def test_prompt_lists_options_with_yes_hint(self):
        request = AnswerRequest(
            "Are you willing to relocate?",
            profile_text="Backend engineer",
            options_list=["Yes", "No"],
            context_lines=["- My current location: Pune"],
            history=[("City", "Pune")],
        )
        prompt = self.client.build_prompt(request)

        self.assertIn("Based on my CV: Backend engineer", prompt)
        self.assertIn("- My current location: Pune", prompt)
        self.assertIn("Q: City\nA: Pune", prompt)
        self.assertIn("1. Yes\n2. No", prompt)
        self.assertIn("assume I am answering YES", prompt)

    def test_history_is_capped(self):
        client = AnswerServiceClient(MagicMock(), max_context_pairs=2)
        request = AnswerRequest("Q", history=[("a", "1"), ("b", "2"), ("c", "3")])
        prompt = client.build_prompt(request)

        self.assertNotIn("Q: a", prompt)
        self.assertIn("Q: c", prompt)

    def test_shape_instructions(self):
        self.assertIn("ONLY a number", self.client.build_prompt(AnswerRequest("Q", numeric_only=True)))
        self.assertIn("cover letter", self.client.build_prompt(AnswerRequest("Q", is_cover_letter=True)))
        self.assertIn("professional summary", self.client.build_prompt(AnswerRequest("Q", is_summary=True)))


class TestFallbackAnswer(unittest.TestCase):

    def test_fallbacks(self):
        self.assertEqual(fallback_answer(AnswerRequest("Q", options_list=["No", "Yes"])), "Yes")
        self.assertEqual(fallback_answer(AnswerRequest("Q", options_list=["Red", "Blue"])), "Red")
        self.assertEqual(fallback_answer(AnswerRequest("Q", is_summary=True)), SUMMARY_FALLBACK)
        self.assertEqual(fallback_answer(AnswerRequest("Q")), "Yes")


@pytest.mark.asyncio
async def test_answer_uses_summary_temperature():
    client, llm = make_client("I build reliable systems.")

    answer = await client.answer(AnswerRequest("Summary", is_summary=True))

    assert answer == "I build reliable systems."
    assert llm.acall.await_args.kwargs["temperature"] == client.summary_temperature


@pytest.mark.asyncio
async def test_answer_wraps_errors_as_service_failure():
    client, llm = make_client()
    llm.acall.side_effect = TimeoutError("slow")

    with pytest.raises(ServiceFailure) as excinfo:
        await client.answer(AnswerRequest("Salary"))

    assert excinfo.value.context["question"] == "Salary"


@pytest.mark.asyncio
async def test_empty_answer_is_a_failure():
    client, _ = make_client("   ")

    with pytest.raises(ServiceFailure):
        await client.answer(AnswerRequest("Salary"))


@pytest.mark.asyncio
async def test_reply_naming_no_option_is_a_failure():
    client, _ = make_client("Somewhere sunny")

    with pytest.raises(ServiceFailure):
        await client.answer(AnswerRequest("Work mode?", options_list=["Remote", "Hybrid"]))


@pytest.mark.asyncio
async def test_rate_limiter_spaces_calls():
    client, llm = make_client("5")
    client.rate_limiter = RateLimitedQueue(rpm_limit=0)

    assert await client.answer(AnswerRequest("Years", numeric_only=True)) == "5"
    llm.acall.assert_awaited_once()


@pytest.mark.asyncio
async def test_llm_wrapper_calls_litellm():
    response = MagicMock()
    response.choices[0].message.content = "  Yes  "
    with patch("easy_apply_agent.core.llm_wrapper.litellm.acompletion", new=AsyncMock(return_value=response)) as completion:
        llm = LLMWrapper(model="gemini/test", api_key="key")
        assert await llm.acall("prompt", temperature=0.5) == "Yes"

    kwargs = completion.await_args.kwargs
    assert kwargs["model"] == "gemini/test"
    assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]
    assert kwargs["temperature"] == 0.5


@pytest.mark.asyncio
async def test_llm_wrapper_raises_service_failure():
    with patch("easy_apply_agent.core.llm_wrapper.litellm.acompletion", new=AsyncMock(side_effect=RuntimeError("down"))):
        llm = LLMWrapper(api_key="key")
        with pytest.raises(ServiceFailure):
            await llm.acall("prompt")


if __name__ == "__main__":
    unittest.main()
