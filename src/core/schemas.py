#!/usr/bin/env python3
"""
Centralized JSON schemas for OpenAI structured outputs.

Contains the JSON schemas used for LLM responses to ensure consistency
and enable structured output validation.
"""

from typing import Dict, Any

from .models.analysis import SENTIMENTS

# Schema for per-post political sentiment classification
SENTIMENT_ANALYSIS_SCHEMA = {
    "type": "object",
    "properties": {
        "sentiment": {
            "type": "string",
            "enum": list(SENTIMENTS),
            "description": "Overall sentiment of the post"
        },
        "sentiment_score": {
            "type": "number",
            "description": "From -1.0 (very negative) to +1.0 (very positive)"
        },
        "key_topics": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Key topics or themes, at most 5"
        },
        "summary": {
            "type": "string",
            "description": "Brief summary in 2-3 sentences"
        }
    },
    "required": ["sentiment", "sentiment_score", "key_topics", "summary"],
    "additionalProperties": False
}


def get_schema_by_type(analysis_type: str) -> Dict[str, Any]:
    """
    Get JSON schema by analysis type.

    Raises:
        ValueError: If analysis_type is not recognized
    """
    schemas = {
        "sentiment": SENTIMENT_ANALYSIS_SCHEMA,
    }

    if analysis_type not in schemas:
        raise ValueError(f"Unknown analysis type: {analysis_type}")

    return schemas[analysis_type]
