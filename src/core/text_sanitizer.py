#!/usr/bin/env python3
"""
Text sanitization utilities for classifier responses.

Handles common issues with LLM output that can break JSON parsing,
including markdown code fences and typographic quotation marks.
"""

import re
import logging

logger = logging.getLogger(__name__)

# Typographic quotation marks that can break JSON parsing
SMART_QUOTES_MAP = {
    "“": '"',  # Left double quotation mark
    "”": '"',  # Right double quotation mark
    "„": '"',  # Double low-9 quotation mark
    "‘": "'",  # Left single quotation mark
    "’": "'",  # Right single quotation mark
}

SMART_QUOTES_TRANSLATION = str.maketrans(SMART_QUOTES_MAP)

CODE_FENCE_PATTERN = re.compile(r'```(?:json)?\s*\n?', re.IGNORECASE)


def normalize_quotes(text: str) -> str:
    """
    Normalize typographic quotation marks to ASCII equivalents.

    Args:
        text: Input text that may contain smart quotes

    Returns:
        Text with normalized ASCII quotes
    """
    if not text:
        return text

    return text.translate(SMART_QUOTES_TRANSLATION)


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences (```json ... ```) around a payload."""
    if not text:
        return text
    return CODE_FENCE_PATTERN.sub('', text).strip()


def preprocess_llm_response(raw_response: str) -> str:
    """
    Preprocess LLM response before JSON parsing.

    Args:
        raw_response: Raw response from LLM

    Returns:
        Preprocessed response ready for JSON parsing
    """
    if not raw_response:
        return raw_response

    processed = normalize_quotes(strip_code_fences(raw_response))

    # Log if we made changes
    if processed != raw_response.strip():
        logger.info("Cleaned markdown fences or smart quotes in LLM response")
        logger.debug(
            "Original length: %d, processed length: %d",
            len(raw_response),
            len(processed),
        )

    return processed
