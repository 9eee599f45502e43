#!/usr/bin/env python3
"""
Health check command for monitoring system status.

Reports the evaluated system status and sentiment analytics, and checks
configuration and connectivity of the record store and classifier.
"""

import logging
from argparse import Namespace

from .base import BaseCommand
from core.env_loader import validate_database_config
from core.models.health import ERROR, HEALTHY

logger = logging.getLogger(__name__)

STATUS_ICONS = {
    'healthy': '✅',
    'warning': '⚠️ ',
    'error': '❌',
}


class HealthCommand(BaseCommand):
    """Handle system health monitoring and diagnostics."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute health subcommand."""
        try:
            if subcommand == "status":
                return self.status(args)
            elif subcommand == "analytics":
                return self.analytics(args)
            elif subcommand == "check":
                return self.check(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except Exception as e:
            return self.handle_error(e, f"health {subcommand}")

    def status(self, args: Namespace) -> int:
        """Show the evaluated health report."""
        response = self.service.get_health(self.client_headers(args))
        if not response.get('success'):
            return self.response_exit_code(response)

        report = response['data']
        status = report['status']
        print(f"{STATUS_ICONS.get(status, '•')} System status: {status.upper()}")
        print(f"🔗 Database connected: {'yes' if report['database_connected'] else 'no'}")

        stats = report.get('statistics')
        if stats:
            print("\n📊 Statistics:")
            print(f"  • Posts: {stats['total_posts']:,} ({stats['posts_today']:,} today)")
            print(f"  • Analyzed: {stats['total_analyzed']:,}")
            if stats.get('avg_sentiment_score') is not None:
                print(f"  • Average sentiment: {stats['avg_sentiment_score']:+.2f}")
            print(f"  • Last analysis: {stats.get('last_analysis_time') or 'never'}")

        distribution = report.get('sentiment_distribution') or []
        if distribution:
            print("\n🎭 Sentiment distribution:")
            for row in distribution:
                print(f"  • {row.get('sentiment')}: {row.get('count')} ({row.get('percentage')}%)")

        events = report.get('recent_events') or []
        if events:
            print("\n🕒 Recent events:")
            for event in events:
                print(f"  • {event['recorded_at']} {event['metric_name']}")

        return 1 if status == ERROR else 0

    def analytics(self, args: Namespace) -> int:
        """Show sentiment distribution, top topics and the daily timeline."""
        response = self.service.get_analytics(self.client_headers(args))
        if not response.get('success'):
            return self.response_exit_code(response)

        report = response['data']
        print("📈 Sentiment Analytics")
        print("=" * 50)

        distribution = report.get('sentiment_distribution') or []
        if distribution:
            print("\n🎭 Sentiment distribution:")
            for row in distribution:
                print(f"  • {row.get('sentiment')}: {row.get('count')} ({row.get('percentage')}%)")

        if report['top_topics']:
            print("\n🏷️  Top topics:")
            for row in report['top_topics']:
                print(f"  • {row['topic']}: {row['count']}")

        if report['top_keywords']:
            print("\n🔑 Top keywords:")
            print("  " + ", ".join(f"{row['keyword']} ({row['count']})" for row in report['top_keywords']))

        if report['timeline']:
            print("\n📅 Last days:")
            for day in report['timeline']:
                print(f"  • {day['date']}: {day['total']} posts "
                      f"(+{day['positive']} / -{day['negative']} / ={day['neutral']}), "
                      f"avg {day['avg_score']:+.2f}")

        if not (distribution or report['top_topics'] or report['timeline']):
            print("\n📭 No analyzed posts yet")
        return 0

    def check(self, args: Namespace) -> int:
        """Check configuration and connectivity."""
        print("🏥 System Health Check")
        print("=" * 50)

        overall_healthy = True

        # Configuration validation
        print("\n⚙️  Configuration:")
        try:
            validate_database_config()
            print("  ✅ Database configuration: OK")
        except Exception as e:
            print(f"  ❌ Database configuration: {e}")
            overall_healthy = False

        # Database health
        print("\n📊 Database Status:")
        try:
            health = self.database.health_check()
            if health.get('connected'):
                print(f"  ✅ Database connection ({health.get('backend')}): OK")
            else:
                print("  ❌ Database connection: FAILED")
                print(f"     Error: {health.get('error', 'Unknown error')}")
                overall_healthy = False
        except Exception as e:
            print(f"  ❌ Database check failed: {e}")
            overall_healthy = False

        # Classifier configuration
        print("\n🤖 Classifier:")
        try:
            if self.config.has_openai():
                print(f"  ✅ OpenAI configuration: OK (model {self.config.integrations.openai_model})")
            else:
                print("  ❌ OpenAI configuration: OPENAI_API_KEY not set")
                overall_healthy = False
        except Exception as e:
            print(f"  ❌ Configuration error: {e}")
            overall_healthy = False

        # Summary
        print("\n" + "=" * 50)
        if overall_healthy:
            print(f"✅ Overall Status: {HEALTHY.upper()}")
            return 0
        else:
            print("❌ Overall Status: UNHEALTHY")
            return 1
