#!/usr/bin/env python3
"""
Core data models for PulseWatch.

Contains all data structures used throughout the application.
"""

from .post import Post, CandidatePost, PostFilters, PostPage, PostWithAnalysis, content_fingerprint
from .analysis import AnalysisResult, ClassificationResult
from .health import HealthEvent, SystemStats
from .run import RunProgress, RunState, AnalysisRunResult

__all__ = [
    'Post', 'CandidatePost', 'PostFilters', 'PostPage', 'PostWithAnalysis', 'content_fingerprint',
    'AnalysisResult', 'ClassificationResult',
    'HealthEvent', 'SystemStats',
    'RunProgress', 'RunState', 'AnalysisRunResult',
]
