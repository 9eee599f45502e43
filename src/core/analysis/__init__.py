"""
Sentiment analysis package.

Classifier interface, retrying client and the batch-analysis orchestrator.
"""

from .base import Classifier
from .classifier_client import RetryingClassifierClient, normalize_classification
from .orchestrator import AnalysisOrchestrator
from .prompts import SentimentPrompts

__all__ = [
    'Classifier',
    'RetryingClassifierClient',
    'normalize_classification',
    'AnalysisOrchestrator',
    'SentimentPrompts',
]
