#!/usr/bin/env python3
"""
Retrying classifier client.

Wraps a Classifier with bounded retries, exponential backoff and response
normalization. Terminal errors propagate on the first occurrence; everything
else is retried and the last error is re-raised once attempts run out.
"""

import logging
import math
from typing import Any, List, Mapping, Optional

from ..clock import Clock
from ..exceptions import ClassifierResponseError, ErrorRecovery, OperationCancelled
from ..models.analysis import ClassificationResult, DEFAULT_SUMMARY, MAX_TOPICS
from .base import Classifier

logger = logging.getLogger(__name__)


def _normalize_sentiment(value: Any) -> str:
    normalized = str(value).lower() if value is not None else ''
    if normalized == 'positive':
        return 'positive'
    if normalized == 'negative':
        return 'negative'
    return 'neutral'


def _normalize_score(value: Any, provider: str) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool):
        raise ClassifierResponseError(provider, f"sentiment_score is not numeric: {value!r}")
    try:
        score = float(value)
    except (TypeError, ValueError):
        raise ClassifierResponseError(provider, f"sentiment_score is not numeric: {value!r}")
    if math.isnan(score):
        raise ClassifierResponseError(provider, "sentiment_score is NaN")
    return score


def _normalize_topics(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [str(topic) for topic in value if topic is not None][:MAX_TOPICS]


def normalize_classification(raw: Any, provider: str = 'classifier') -> ClassificationResult:
    """
    Coerce a raw classifier response into a ClassificationResult.

    Args:
        raw: Mapping returned by Classifier.submit
        provider: Name used in error messages

    Returns:
        Normalized result (label mapped, score clamped, topics truncated)

    Raises:
        ClassifierResponseError: If the response is not a mapping or the score is not numeric
    """
    if not isinstance(raw, Mapping):
        raise ClassifierResponseError(provider, f"expected an object, got {type(raw).__name__}")

    summary = raw.get('summary')
    return ClassificationResult(
        sentiment=_normalize_sentiment(raw.get('sentiment')),
        sentiment_score=_normalize_score(raw.get('sentiment_score'), provider),
        key_topics=_normalize_topics(raw.get('key_topics')),
        summary=str(summary) if summary else DEFAULT_SUMMARY,
    )


class RetryingClassifierClient:
    """Classifier wrapper with retry/backoff and output normalization."""

    def __init__(self,
                 classifier: Classifier,
                 max_retries: int = 3,
                 base_delay: float = 1.0,
                 clock: Optional[Clock] = None):
        """
        Args:
            classifier: Underlying classifier
            max_retries: Total attempts per text (at least 1)
            base_delay: Backoff base in seconds; retry k waits 2^k * base_delay
            clock: Time source used for backoff sleeps
        """
        self.classifier = classifier
        self.max_retries = max(1, int(max_retries))
        self.base_delay = base_delay
        self.clock = clock or Clock()

    @property
    def provider(self) -> str:
        return getattr(self.classifier, 'name', type(self.classifier).__name__)

    def classify(self, text: str) -> ClassificationResult:
        """
        Classify text, retrying transient failures.

        Raises:
            TerminalClassifierError: Immediately, without retrying
            OperationCancelled: If shutdown interrupts a backoff sleep
            Exception: The last error once all attempts fail
        """
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                raw = self.classifier.submit(text)
                return normalize_classification(raw, self.provider)
            except OperationCancelled:
                raise
            except Exception as e:
                if ErrorRecovery.is_terminal_error(e):
                    logger.error(f"Attempt {attempt}/{self.max_retries} failed with terminal error: {e}")
                    raise
                last_error = e
                logger.warning(f"Attempt {attempt}/{self.max_retries} failed: {e}")

                if attempt < self.max_retries:
                    delay = ErrorRecovery.get_retry_delay(attempt, self.base_delay)
                    logger.debug(f"Retrying in {delay:.1f}s")
                    self.clock.sleep(delay)

        raise last_error
