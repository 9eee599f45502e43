#!/usr/bin/env python3
"""
Input validation and sanitization.

Cleans scraped post text before it is stored and validates the payloads
accepted by the service entry points.
"""

import re
import html
import uuid
import urllib.parse
from typing import Any, Dict, Mapping, Optional
import logging

from .exceptions import ValidationError

logger = logging.getLogger(__name__)

MIN_ANALYZE_LIMIT = 1
MAX_ANALYZE_LIMIT = 50

DEFAULT_POSTS_LIMIT = 50
MAX_POSTS_LIMIT = 100
POST_SOURCES = ('reddit', 'twitter', 'news', 'facebook')
SENTIMENT_FILTERS = ('positive', 'negative', 'neutral')
ALL = 'all'


class SecurityValidator:
    """Handles security validation and sanitization."""

    # Maximum allowed lengths to prevent DoS attacks
    MAX_CONTENT_LENGTH = 5000
    MAX_URL_LENGTH = 2048

    # Allowed URL schemes
    ALLOWED_SCHEMES = {'http', 'https'}

    # Patterns for detecting potentially malicious content
    SUSPICIOUS_PATTERNS = [
        r'<script[\s\S]*?</script>',  # Script tags
        r'javascript:',               # JavaScript URLs
        r'vbscript:',                 # VBScript URLs
        r'on\w+\s*=',                 # Event handlers (onclick, onload, etc.)
    ]

    def __init__(self, max_content_length: Optional[int] = None):
        self.max_content_length = max_content_length or self.MAX_CONTENT_LENGTH
        self.suspicious_regex = re.compile('|'.join(self.SUSPICIOUS_PATTERNS), re.IGNORECASE)

    def validate_url(self, url: Optional[str]) -> bool:
        """
        Check that a source URL uses http(s) and is of sane length.

        Returns:
            True if URL is valid, False otherwise
        """
        if not url or len(url) > self.MAX_URL_LENGTH:
            return False

        try:
            parsed = urllib.parse.urlparse(url)
        except ValueError as e:
            logger.error(f"Error parsing URL {url}: {e}")
            return False

        if parsed.scheme.lower() not in self.ALLOWED_SCHEMES:
            logger.warning(f"Blocked URL with invalid scheme: {parsed.scheme}")
            return False
        return bool(parsed.netloc)

    def sanitize_text(self, text: str, max_length: Optional[int] = None) -> str:
        """
        Sanitize text content by removing HTML tags and suspicious content.

        Args:
            text: Input text to sanitize
            max_length: Maximum allowed length (uses configured default if None)

        Returns:
            Sanitized text
        """
        if not text:
            return ""

        if max_length is None:
            max_length = self.max_content_length

        # Unescape HTML entities first
        text = html.unescape(text)

        # Script blocks go before tag stripping so their bodies are dropped too
        if self.suspicious_regex.search(text):
            logger.warning("Detected suspicious content in text, cleaning...")
            text = self.suspicious_regex.sub('[REMOVED]', text)

        text = re.sub(r'<[^>]+>', '', text)

        text = re.sub(r'\s+', ' ', text).strip()

        if len(text) > max_length:
            text = text[:max_length]
            logger.warning(f"Truncated text longer than {max_length} characters")

        return text


def validate_analyze_payload(payload: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Validate the analysis request body.

    Args:
        payload: Request body; ``limit`` is optional

    Returns:
        Normalized payload with ``limit`` (int or None)

    Raises:
        ValidationError: If payload is not an object or limit is out of range
    """
    if payload is None:
        return {'limit': None}
    if not isinstance(payload, Mapping):
        raise ValidationError('body', payload, 'object')

    limit = payload.get('limit')
    if limit is None:
        return {'limit': None}

    if isinstance(limit, bool) or not isinstance(limit, int):
        raise ValidationError('limit', limit, 'integer')
    if not MIN_ANALYZE_LIMIT <= limit <= MAX_ANALYZE_LIMIT:
        raise ValidationError('limit', limit, f"integer between {MIN_ANALYZE_LIMIT} and {MAX_ANALYZE_LIMIT}")

    return {'limit': limit}


def _validate_uuid(name: str, value: Any) -> str:
    if not value or not isinstance(value, str):
        raise ValidationError(name, value, 'non-empty string')
    try:
        uuid.UUID(value)
    except ValueError:
        raise ValidationError(name, value, 'UUID')
    return value


def validate_run_id(run_id: Any) -> str:
    """
    Validate a run id (UUID string).

    Raises:
        ValidationError: If run_id is missing or not a UUID
    """
    return _validate_uuid('run_id', run_id)


def _int_param(params: Mapping[str, Any], name: str, default: int, minimum: int,
               maximum: Optional[int] = None) -> int:
    value = params.get(name)
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        raise ValidationError(name, value, 'integer')
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise ValidationError(name, value, 'integer')
    if not isinstance(value, int):
        raise ValidationError(name, value, 'integer')

    if value < minimum or (maximum is not None and value > maximum):
        expected = f"integer between {minimum} and {maximum}" if maximum is not None else f"integer >= {minimum}"
        raise ValidationError(name, value, expected)
    return value


def _choice_param(params: Mapping[str, Any], name: str, choices) -> Optional[str]:
    value = params.get(name)
    if value is None or value == '' or value == ALL:
        return None
    if value not in choices:
        raise ValidationError(name, value, f"one of {', '.join(choices + (ALL,))}")
    return value


def _text_param(params: Mapping[str, Any], name: str) -> Optional[str]:
    value = params.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(name, value, 'string')
    value = value.strip()
    if not value or value == ALL:
        return None
    return value


def validate_posts_query(params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Validate post listing parameters.

    ``all`` or an empty value disables a filter. Numeric values may be
    given as strings, as they arrive from query strings.

    Returns:
        Normalized {sentiment, source, topic, search, limit, offset}

    Raises:
        ValidationError: On unknown filter values or out-of-range paging
    """
    if params is None:
        params = {}
    if not isinstance(params, Mapping):
        raise ValidationError('query', params, 'object')

    return {
        'sentiment': _choice_param(params, 'sentiment', SENTIMENT_FILTERS),
        'source': _choice_param(params, 'source', POST_SOURCES),
        'topic': _text_param(params, 'topic'),
        'search': _text_param(params, 'search'),
        'limit': _int_param(params, 'limit', DEFAULT_POSTS_LIMIT, 1, MAX_POSTS_LIMIT),
        'offset': _int_param(params, 'offset', 0, 0),
    }


def validate_post_id(post_id: Any) -> str:
    """
    Validate a post id (UUID string).

    Raises:
        ValidationError: If post_id is missing or not a UUID
    """
    return _validate_uuid('post_id', post_id)
