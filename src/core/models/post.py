#!/usr/bin/env python3
"""
Post data model.

Represents one ingested social-media text record and the candidate shape it
has before it is stored.
"""

import hashlib
from datetime import datetime
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field

import pytz
from dateutil import parser as date_parser


def _parse_datetime_safe(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        dt = value
    elif not value:
        return None
    else:
        try:
            dt = date_parser.parse(value)
        except (ValueError, OverflowError, TypeError):
            return None
    if dt.tzinfo is None:
        dt = pytz.UTC.localize(dt)
    return dt


def content_fingerprint(content: str) -> str:
    """SHA-256 hex digest of the exact content string."""
    return hashlib.sha256(content.encode('utf-8')).hexdigest()


@dataclass(frozen=True)
class Post:
    """
    A stored post.

    Posts are never mutated after ingestion; the analysis workflow and the
    duplicate cleanup only reference them by id.
    """
    id: str
    content: str
    created_at: Optional[datetime] = None
    source: Optional[str] = None
    source_url: Optional[str] = None
    author: Optional[str] = None
    post_date: Optional[datetime] = None
    topic: Optional[str] = None

    @property
    def content_hash(self) -> str:
        return content_fingerprint(self.content)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Post':
        """Build a post from a store row (dict-like)."""
        return cls(
            id=str(row['id']),
            content=row.get('content') or '',
            created_at=_parse_datetime_safe(row.get('created_at')),
            source=row.get('source'),
            source_url=row.get('source_url'),
            author=row.get('author'),
            post_date=_parse_datetime_safe(row.get('post_date')),
            topic=row.get('topic'),
        )


@dataclass
class CandidatePost:
    """A scraped item that has not been stored yet."""
    content: str
    source: str = 'reddit'
    source_url: Optional[str] = None
    author: Optional[str] = None
    post_date: Optional[datetime] = None
    topic: Optional[str] = None

    def __post_init__(self):
        self.content = (self.content or '').strip()
        self.post_date = _parse_datetime_safe(self.post_date)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CandidatePost':
        """Build a candidate from loosely-shaped scraper output."""
        content = data.get('content') or data.get('body') or data.get('text') or data.get('title') or ''
        return cls(
            content=content,
            source=data.get('source') or 'reddit',
            source_url=data.get('source_url') or data.get('url'),
            author=data.get('author') or data.get('username'),
            post_date=data.get('post_date') or data.get('createdAt'),
            topic=data.get('topic'),
        )

    def to_row(self) -> Dict[str, Any]:
        """Row payload for inserting into the posts table."""
        return {
            'source': self.source,
            'source_url': self.source_url,
            'content': self.content,
            'author': self.author,
            'post_date': self.post_date.isoformat() if self.post_date else None,
            'topic': self.topic,
        }


@dataclass
class PostWithAnalysis:
    """A stored post joined with its sentiment analysis, if it has one."""
    post: Post
    sentiment: Optional[str] = None
    sentiment_score: Optional[float] = None
    key_topics: List[str] = field(default_factory=list)
    summary: Optional[str] = None
    analyzed_at: Optional[datetime] = None

    @property
    def is_analyzed(self) -> bool:
        return self.sentiment is not None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'PostWithAnalysis':
        """Build from a joined post/analysis row."""
        score = row.get('sentiment_score')
        return cls(
            post=Post.from_row(row),
            sentiment=row.get('sentiment'),
            sentiment_score=float(score) if score is not None else None,
            key_topics=list(row.get('key_topics') or []),
            summary=row.get('summary'),
            analyzed_at=_parse_datetime_safe(row.get('analyzed_at')),
        )

    def to_dict(self) -> Dict[str, Any]:
        post = self.post
        return {
            'id': post.id,
            'content': post.content,
            'source': post.source,
            'source_url': post.source_url,
            'author': post.author,
            'topic': post.topic,
            'post_date': post.post_date.isoformat() if post.post_date else None,
            'created_at': post.created_at.isoformat() if post.created_at else None,
            'sentiment': self.sentiment,
            'sentiment_score': self.sentiment_score,
            'key_topics': self.key_topics,
            'summary': self.summary,
            'analyzed_at': self.analyzed_at.isoformat() if self.analyzed_at else None,
        }


@dataclass
class PostFilters:
    """Optional equality filters plus a case-insensitive content search."""
    sentiment: Optional[str] = None
    source: Optional[str] = None
    topic: Optional[str] = None
    search: Optional[str] = None


@dataclass
class PostPage:
    """One page of a filtered post listing."""
    posts: List[PostWithAnalysis]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total

    def to_dict(self) -> Dict[str, Any]:
        return {
            'posts': [post.to_dict() for post in self.posts],
            'total': self.total,
            'limit': self.limit,
            'offset': self.offset,
            'has_more': self.has_more,
        }
