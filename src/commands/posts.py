#!/usr/bin/env python3
"""
Posts command: ingest scraped posts, browse stored posts and clean up duplicates.
"""

import json
from argparse import Namespace
from pathlib import Path
from typing import Any, Dict, List

from .base import BaseCommand


def load_candidates(path: str) -> List[Any]:
    """
    Read scraped items from a JSON file.

    Accepts a bare list or an object with an ``items`` list.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not valid JSON of the expected shape
    """
    with open(Path(path), 'r', encoding='utf-8') as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get('items')
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON list of posts or an object with an 'items' list")
    return data


SENTIMENT_ICONS = {
    'positive': '🟢',
    'negative': '🔴',
    'neutral': '⚪',
}


def format_post_line(post: Dict[str, Any], width: int = 80) -> str:
    """One-line listing entry: sentiment icon, id, source and a content preview."""
    icon = SENTIMENT_ICONS.get(post.get('sentiment'), '⏳')
    content = ' '.join((post.get('content') or '').split())
    if len(content) > width:
        content = content[:width - 3] + '...'
    return f"{icon} [{post['id']}] ({post.get('source') or 'unknown'}) {content}"


class PostsCommand(BaseCommand):
    """Manage stored posts."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute posts subcommand."""
        try:
            if subcommand == "ingest":
                return self.ingest(args)
            elif subcommand == "list":
                return self.list(args)
            elif subcommand == "show":
                return self.show(args)
            elif subcommand == "cleanup":
                return self.cleanup(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except Exception as e:
            return self.handle_error(e, f"posts {subcommand}")

    def ingest(self, args: Namespace) -> int:
        """Store new posts from a scraper export."""
        if not self.validate_args(args, ['file']):
            return 22

        candidates = load_candidates(args.file)
        print(f"📥 Ingesting {len(candidates)} posts from {args.file}")

        response = self.service.ingest_posts(self.client_headers(args), candidates)
        if not response.get('success'):
            return self.response_exit_code(response)

        data = response['data']
        print(f"  💾 Stored: {data['stored']}")
        print(f"  🔁 Duplicates skipped: {data['duplicates']}")
        print(f"  ✂️  Filtered (too short): {data['filtered']}")
        print(f"✅ {data['message']}")
        return 0

    def cleanup(self, args: Namespace) -> int:
        """Remove posts with duplicate content, keeping the oldest."""
        print("🧹 Duplicate Cleanup")
        print("=" * 30)

        response = self.service.cleanup_duplicates(self.client_headers(args))
        if not response.get('success'):
            return self.response_exit_code(response)

        data = response['data']
        print(f"  🔍 Duplicates found: {data['duplicates_found']}")
        print(f"  🗑️  Removed: {data['duplicates_removed']}")
        print(f"  📊 Posts: {data['total_posts_before']} → {data['total_posts_after']}")
        if data['failed_batches']:
            print(f"  ⚠️  Failed batches: {data['failed_batches']}")
        print(f"✅ {data['message']}")
        return 0

    def list(self, args: Namespace) -> int:
        """List stored posts, newest first, with optional filters."""
        params = {
            'sentiment': args.sentiment,
            'source': args.source,
            'topic': args.topic,
            'search': args.search,
            'limit': args.limit,
            'offset': args.offset,
        }
        response = self.service.list_posts(self.client_headers(args), params)
        if not response.get('success'):
            return self.response_exit_code(response)

        page = response['data']
        if not page['posts']:
            print("📭 No posts found")
            return 0

        first = page['offset'] + 1
        last = page['offset'] + len(page['posts'])
        print(f"📰 Posts {first}-{last} of {page['total']}")
        print("=" * 50)
        for post in page['posts']:
            print(format_post_line(post))
        if page['has_more']:
            print(f"\n➡️  More: --offset {page['offset'] + page['limit']}")
        return 0

    def show(self, args: Namespace) -> int:
        """Show one post with its analysis."""
        response = self.service.get_post(self.client_headers(args), args.id)
        if not response.get('success'):
            return self.response_exit_code(response)

        post = response['data']
        print(f"📝 Post {post['id']}")
        print("=" * 50)
        print(f"  Source: {post['source'] or 'unknown'}  Topic: {post['topic'] or '-'}")
        print(f"  Author: {post['author'] or '-'}  Created: {post['created_at'] or '-'}")
        if post['source_url']:
            print(f"  URL: {post['source_url']}")
        print(f"\n{post['content']}\n")

        if post['sentiment'] is None:
            print("⏳ Not analyzed yet")
            return 0

        print(f"🎭 Sentiment: {post['sentiment']} ({post['sentiment_score']:+.2f})")
        if post['key_topics']:
            print(f"🏷️  Topics: {', '.join(post['key_topics'])}")
        print(f"📋 Summary: {post['summary']}")
        return 0
