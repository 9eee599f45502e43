#!/usr/bin/env python3
"""
Classifier interface.

A classifier turns one piece of text into a raw sentiment mapping. It signals
failures with TerminalClassifierError (do not retry) or
TransientClassifierError / ClassifierResponseError (may succeed on retry).
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping


class Classifier(ABC):
    """External sentiment-classification capability."""

    name = 'classifier'

    @abstractmethod
    def submit(self, text: str) -> Mapping[str, Any]:
        """
        Classify text.

        Args:
            text: Post content

        Returns:
            Mapping with sentiment, sentiment_score, key_topics and summary

        Raises:
            TerminalClassifierError: If retrying cannot succeed
            TransientClassifierError: For any other failure
        """
        pass
