"""Wrapper for interacting with the configured Language Model."""
import logging
import os
from typing import List, Optional

import litellm

from easy_apply_agent.core.exceptions import ServiceFailure
from easy_apply_agent.tools.constants import ANSWER_TIMEOUT, DEFAULT_MODEL

logger = logging.getLogger(__name__)


class LLMWrapper:
    """Provides a consistent interface to the chosen LLM."""

    def __init__(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        api_key_env: str = "GEMINI_API_KEY",
        timeout: float = ANSWER_TIMEOUT
    ):
        """
        Initialize the LLM wrapper.

        Args:
            model: The LLM model name (e.g., 'gemini/gemini-1.5-flash').
            api_key: The API key for the LLM service. Read from `api_key_env` when None.
            api_key_env: Environment variable holding the key
            timeout: Per-request timeout in seconds
        """
        self.model = model or DEFAULT_MODEL
        self.api_key = api_key or os.getenv(api_key_env)
        self.timeout = timeout

        if not self.api_key:
            logger.warning(f"{api_key_env} not set; answer service calls will likely fail")
        logger.info(f"LLMWrapper initialized with model: {self.model}")

    async def acall(
        self,
        prompt: str,
        stop: Optional[List[str]] = None,
        temperature: float = 0.2,
        max_tokens: Optional[int] = None
    ) -> str:
        """
        Makes an asynchronous call to the LLM using litellm.

        Args:
            prompt: The input prompt string.
            stop: Optional list of stop sequences.
            temperature: Sampling temperature.
            max_tokens: Optional maximum tokens to generate.

        Returns:
            The LLM's response content as a string.

        Raises:
            ServiceFailure: If the litellm call fails.
        """
        messages = [{"role": "user", "content": prompt}]
        try:
            logger.debug(f"Sending async prompt to LLM ({self.model}): {prompt[:100]}...")
            response = await litellm.acompletion(
                model=self.model,
                messages=messages,
                api_key=self.api_key,
                temperature=temperature,
                stop=stop,
                max_tokens=max_tokens,
                timeout=self.timeout
            )

            content = response.choices[0].message.content
            logger.debug(f"Received async LLM response: {(content or '')[:100]}...")
            return content.strip() if content else ""

        except Exception as e:
            logger.error(f"Async LLM call failed: {e}", exc_info=True)
            raise ServiceFailure(f"Async LLM communication error: {e}", question=prompt[:200]) from e
