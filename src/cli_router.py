#!/usr/bin/env python3
"""
CLI Router for PulseWatch.

Modular command architecture for post ingestion, sentiment analysis and
health monitoring.
"""

import argparse
import logging
import sys
from typing import Optional, List

from core.env_loader import load_env_file
from core.container import reset_container
from commands import get_command, COMMANDS

logger = logging.getLogger(__name__)


class CLIRouter:
    """
    CLI router for PulseWatch commands.

    Command structure:
    - python run.py posts ingest --file scraped.json
    - python run.py analyze run --limit 20
    - python run.py health status
    """

    def __init__(self):
        """Initialize CLI router."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the main argument parser."""
        parser = argparse.ArgumentParser(
            description="PulseWatch political sentiment monitoring",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=self._get_examples_text()
        )

        subparsers = parser.add_subparsers(
            dest='command',
            help='Available commands',
            metavar='{command}'
        )

        self._add_analyze_parser(subparsers)
        self._add_posts_parser(subparsers)
        self._add_health_parser(subparsers)

        return parser

    def _add_analyze_parser(self, subparsers):
        """Add analyze command parser."""
        analyze_parser = subparsers.add_parser(
            'analyze',
            help='Sentiment analysis of stored posts'
        )

        analyze_subparsers = analyze_parser.add_subparsers(
            dest='subcommand',
            help='Analysis operations',
            metavar='{run,progress}'
        )

        # Run subcommand
        run_parser = analyze_subparsers.add_parser('run', help='Analyze one batch of unanalyzed posts')
        run_parser.add_argument('--limit', type=int, default=None, help='Maximum posts to analyze (1-50, default: configured batch size)')
        run_parser.add_argument('--watch', action='store_true', help='Print progress while the run is in flight')
        run_parser.add_argument('--interval', type=float, default=1.0, help='Progress polling interval in seconds (default: 1)')
        run_parser.add_argument('--client-id', dest='client_id', default=None, help='Caller identity used for rate limiting')

        # Progress subcommand
        progress_parser = analyze_subparsers.add_parser('progress', help='Show progress of a run')
        progress_parser.add_argument('--run-id', dest='run_id', required=True, help='Run id returned by analyze run')

    def _add_posts_parser(self, subparsers):
        """Add posts command parser."""
        posts_parser = subparsers.add_parser(
            'posts',
            help='Post ingestion, browsing and cleanup'
        )

        posts_subparsers = posts_parser.add_subparsers(
            dest='subcommand',
            help='Post operations',
            metavar='{ingest,list,show,cleanup}'
        )

        # Ingest subcommand
        ingest_parser = posts_subparsers.add_parser('ingest', help='Store scraped posts from a JSON file')
        ingest_parser.add_argument('--file', required=True, help='JSON file with a list of scraped posts')
        ingest_parser.add_argument('--client-id', dest='client_id', default=None, help='Caller identity used for rate limiting')

        # List subcommand
        list_parser = posts_subparsers.add_parser('list', help='List stored posts with their analyses, newest first')
        list_parser.add_argument('--sentiment', choices=['positive', 'negative', 'neutral', 'all'], default=None, help='Filter by sentiment')
        list_parser.add_argument('--source', choices=['reddit', 'twitter', 'news', 'facebook', 'all'], default=None, help='Filter by source')
        list_parser.add_argument('--topic', default=None, help='Filter by topic')
        list_parser.add_argument('--search', default=None, help='Case-insensitive text search in content')
        list_parser.add_argument('--limit', type=int, default=None, help='Posts per page (1-100, default: 50)')
        list_parser.add_argument('--offset', type=int, default=None, help='Posts to skip (default: 0)')
        list_parser.add_argument('--client-id', dest='client_id', default=None, help='Caller identity used for rate limiting')

        # Show subcommand
        show_parser = posts_subparsers.add_parser('show', help='Show one post with its analysis')
        show_parser.add_argument('--id', required=True, help='Post id (UUID)')
        show_parser.add_argument('--client-id', dest='client_id', default=None, help='Caller identity used for rate limiting')

        # Cleanup subcommand
        cleanup_parser = posts_subparsers.add_parser('cleanup', help='Remove duplicate posts, keeping the oldest')
        cleanup_parser.add_argument('--client-id', dest='client_id', default=None, help='Caller identity used for rate limiting')

    def _add_health_parser(self, subparsers):
        """Add health command parser."""
        health_parser = subparsers.add_parser(
            'health',
            help='System health monitoring and diagnostics'
        )

        health_subparsers = health_parser.add_subparsers(
            dest='subcommand',
            help='Health operations',
            metavar='{status,analytics,check}'
        )

        # Evaluated status report
        status_parser = health_subparsers.add_parser('status', help='Show system status, statistics and recent events')
        status_parser.add_argument('--client-id', dest='client_id', default=None, help='Caller identity used for rate limiting')

        # Sentiment analytics
        analytics_parser = health_subparsers.add_parser('analytics', help='Show sentiment distribution, top topics and the daily timeline')
        analytics_parser.add_argument('--client-id', dest='client_id', default=None, help='Caller identity used for rate limiting')

        # Configuration and connectivity check
        health_subparsers.add_parser('check', help='Check configuration and connectivity')

    def _get_examples_text(self) -> str:
        """Get examples text for help."""
        return """
Examples:
  # Store scraped posts, then analyze a batch
  python run.py posts ingest --file scraped.json
  python run.py analyze run --limit 20 --watch

  # Browse results
  python run.py posts list --sentiment negative --limit 10
  python run.py posts show --id <post-uuid>
  python run.py health analytics

  # Maintenance
  python run.py posts cleanup
  python run.py health status
  python run.py health check

"""

    def route_command(self, args: Optional[List[str]] = None) -> int:
        """
        Route command to appropriate handler.

        Args:
            args: Command line arguments (uses sys.argv if None)

        Returns:
            Exit code
        """
        try:
            if args is None:
                args = sys.argv[1:]

            parsed_args = self.parser.parse_args(args)

            if not parsed_args.command:
                self.parser.print_help()
                return 1

            return self._handle_command(parsed_args)

        except SystemExit as e:
            # argparse calls sys.exit() on error or help
            return e.code if e.code is not None else 0
        except Exception as e:
            logger.error(f"CLI routing error: {e}", exc_info=True)
            return 1

    def _handle_command(self, args: argparse.Namespace) -> int:
        """Handle command structure."""
        logger.debug(f"Handling command: {args.command}")

        if args.command not in COMMANDS:
            available = ', '.join(COMMANDS.keys())
            logger.error(f"Unknown command '{args.command}'. Available: {available}")
            return 1

        subcommand = getattr(args, 'subcommand', None)
        if not subcommand:
            logger.error(f"No subcommand specified for '{args.command}'")
            self.parser.parse_args([args.command, '--help'])  # Show help
            return 1

        try:
            command = get_command(args.command)
            return command.execute(subcommand, args)
        except Exception as e:
            logger.error(f"Error executing {args.command} {subcommand}: {e}", exc_info=True)
            return 1


def _configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    load_env_file()

    try:
        from core.config import get_config_manager
        get_config_manager().update_logging()
    except ValueError as e:
        # Commands report configuration problems themselves
        logger.debug(f"Keeping default logging: {e}")


def main(args: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code
    """
    _configure_logging()

    router = CLIRouter()
    try:
        return router.route_command(args)
    finally:
        # Flushes deferred progress clears and closes the record store
        reset_container()


if __name__ == '__main__':
    exit_code = main()
    sys.exit(exit_code)
