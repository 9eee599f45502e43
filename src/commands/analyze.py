#!/usr/bin/env python3
"""
Analyze command: batch sentiment analysis and run progress.
"""

import threading
from argparse import Namespace
from typing import Any, Dict

from .base import BaseCommand


class AnalyzeCommand(BaseCommand):
    """Run sentiment analysis over unanalyzed posts."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute analyze subcommand."""
        try:
            if subcommand == "run":
                return self.run(args)
            elif subcommand == "progress":
                return self.progress(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except Exception as e:
            return self.handle_error(e, f"analyze {subcommand}")

    def run(self, args: Namespace) -> int:
        """Analyze one batch of posts."""
        limit = getattr(args, 'limit', None)
        payload = {'limit': limit} if limit is not None else None
        headers = self.client_headers(args)

        print("🧠 Sentiment Analysis")
        print("=" * 50)

        if getattr(args, 'watch', False):
            response = self._run_watched(headers, payload, getattr(args, 'interval', 1.0))
        else:
            response = self.service.start_analysis(headers, payload)

        if not response.get('success'):
            return self.response_exit_code(response)

        data = response['data']
        if data.get('run_id'):
            print(f"🆔 Run: {data['run_id']}")
        print(f"✅ Analyzed: {data['analyzed']}")
        print(f"❌ Failed: {data['failed']}")
        print(f"ℹ️  {data['message']}")

        for error in data.get('errors') or []:
            print(f"  • {error}")

        return 0

    def _run_watched(self, headers: Dict[str, str], payload, interval: float) -> Dict[str, Any]:
        """Run analysis on a worker thread while printing progress."""
        outcome: Dict[str, Any] = {}
        service = self.service
        tracker = self.progress_tracker

        def _worker():
            outcome['response'] = service.start_analysis(headers, payload)

        worker = threading.Thread(target=_worker, name='analysis-run', daemon=True)
        worker.start()

        while worker.is_alive():
            worker.join(timeout=interval)
            for run_id in tracker.active_runs():
                progress = tracker.get(run_id)
                if progress is not None and not progress.is_complete:
                    print(f"  ⏳ {run_id[:8]}: {progress.processed}/{progress.total}")

        return outcome.get('response', {'success': False, 'error': 'Analysis did not complete', 'status': 500})

    def progress(self, args: Namespace) -> int:
        """Show progress of a run started in this process."""
        if not self.validate_args(args, ['run_id']):
            return 22

        response = self.service.get_analysis_progress(args.run_id)
        if not response.get('success'):
            if response.get('status') == 404:
                print(f"ℹ️  Run {args.run_id} not found or already completed")
                return 0
            return self.response_exit_code(response)

        progress = response['data']['progress']
        print(f"⏳ Run {args.run_id}: {progress['processed']}/{progress['total']} processed")
        return 0
