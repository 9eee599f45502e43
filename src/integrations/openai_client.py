#!/usr/bin/env python3
"""
OpenAI integration for political sentiment classification.

Implements the Classifier interface on top of chat completions with
structured outputs, and maps OpenAI failures onto terminal or transient
classifier errors.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import openai
from openai import OpenAI

from core.analysis.base import Classifier
from core.analysis.prompts import SentimentPrompts
from core.exceptions import (
    ClassifierResponseError, TerminalClassifierError, TransientClassifierError, TERMINAL_ERROR_MARKERS
)
from core.schemas import get_schema_by_type
from core.text_sanitizer import preprocess_llm_response

logger = logging.getLogger(__name__)

PROVIDER = 'openai'


class OpenAIClassifier(Classifier):
    """Sentiment classifier backed by the OpenAI chat completions API."""

    name = PROVIDER

    def __init__(self, api_key: Optional[str] = None, model: str = "gpt-4o-mini",
                 timeout: float = 30.0, client: Optional[OpenAI] = None):
        """
        Initialize OpenAI classifier.

        Args:
            api_key: OpenAI API key
            model: Chat model name
            timeout: Request timeout in seconds
            client: Pre-built OpenAI client (tests)
        """
        if client is None:
            if not api_key:
                raise ValueError("OpenAI API key not provided")
            # Retries are owned by RetryingClassifierClient
            client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

        self.client = client
        self.model = model
        self.max_tokens = 500
        self.temperature = 0.3  # Lower temperature for more consistent analysis

    def _build_messages(self, text: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": SentimentPrompts.SYSTEM_PROMPT},
            {"role": "user", "content": SentimentPrompts.get_sentiment_prompt(text)},
        ]

    def submit(self, text: str) -> Dict[str, Any]:
        """
        Classify one post.

        Raises:
            TerminalClassifierError: Invalid credentials or oversized input
            ClassifierResponseError: Unparseable or truncated response
            TransientClassifierError: Any other API failure
        """
        messages = self._build_messages(text)
        logger.debug(f"Making OpenAI sentiment request ({len(text)} chars)")

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": "sentiment_response",
                        "schema": get_schema_by_type("sentiment"),
                        "strict": True
                    }
                }
            )
        except Exception as e:
            raise self._map_error(e) from e

        choice = response.choices[0] if response.choices else None
        if choice is None:
            raise ClassifierResponseError(PROVIDER, "response contained no choices")

        # Detect truncated responses early
        if getattr(choice, "finish_reason", None) == "length":
            raise ClassifierResponseError(PROVIDER, f"response truncated at max_tokens={self.max_tokens}")

        content = preprocess_llm_response(choice.message.content or '{}')

        usage = getattr(response, 'usage', None)
        if usage is not None:
            logger.debug(f"OpenAI call successful - tokens: {usage.prompt_tokens} prompt + "
                         f"{usage.completion_tokens} completion = {usage.total_tokens} total")

        return self._parse_content(content)

    def _parse_content(self, content: str) -> Dict[str, Any]:
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse OpenAI response: {content[:200]}")
            raise ClassifierResponseError(PROVIDER, f"invalid JSON ({e.msg})", content)

        if not isinstance(parsed, dict):
            raise ClassifierResponseError(PROVIDER, f"expected a JSON object, got {type(parsed).__name__}", content)
        return parsed

    @staticmethod
    def _map_error(error: Exception) -> Exception:
        """Translate an OpenAI SDK error into a classifier error."""
        message = str(error)

        if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
            return TerminalClassifierError(PROVIDER, 'invalid_api_key', error)

        for marker in TERMINAL_ERROR_MARKERS:
            if marker in message:
                return TerminalClassifierError(PROVIDER, marker, error)

        return TransientClassifierError(PROVIDER, error)
