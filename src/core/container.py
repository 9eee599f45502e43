#!/usr/bin/env python3
"""
Dependency Injection Container

Provides a centralized way to manage dependencies and avoid scattered
instantiation throughout the codebase. Supports singleton and factory patterns.

Process-wide keyed state (rate-limit windows, run progress, deferred tasks)
lives in singletons registered here rather than in module globals, so tests
can build isolated instances directly.
"""

import logging
from typing import Any, Dict, Callable, TypeVar, Optional
from functools import wraps
import threading

logger = logging.getLogger(__name__)

T = TypeVar('T')


class Container:
    """Simple dependency injection container with lifecycle management."""

    def __init__(self):
        """Initialize empty container."""
        self._factories: Dict[str, Callable] = {}
        self._singletons: Dict[str, Any] = {}
        # Reentrant: singleton factories resolve their own dependencies via get()
        self._lock = threading.RLock()

    def register_singleton(self, service_name: str, factory: Callable[[], T]) -> None:
        """
        Register a service as singleton (created once, reused).

        Args:
            service_name: Unique name for the service
            factory: Function that creates the service instance
        """
        if not getattr(factory, '_is_singleton', False):
            factory = singleton(factory)
        with self._lock:
            self._factories[service_name] = factory
            # Remove any existing instance to force recreation
            if service_name in self._singletons:
                del self._singletons[service_name]

    def register_factory(self, service_name: str, factory: Callable[[], T]) -> None:
        """
        Register a service as factory (new instance each time).

        Args:
            service_name: Unique name for the service
            factory: Function that creates service instances
        """
        with self._lock:
            self._factories[service_name] = factory

    def register_instance(self, service_name: str, instance: T) -> None:
        """
        Register an existing instance as singleton.

        Args:
            service_name: Unique name for the service
            instance: Pre-created service instance
        """
        with self._lock:
            self._singletons[service_name] = instance

    def get(self, service_name: str) -> Any:
        """
        Get service instance by name.

        Raises:
            KeyError: If service is not registered
        """
        # Check for existing singleton first
        if service_name in self._singletons:
            return self._singletons[service_name]

        # Check if factory is registered
        if service_name not in self._factories:
            raise KeyError(f"Service '{service_name}' not registered")

        with self._lock:
            factory = self._factories[service_name]

            if getattr(factory, '_is_singleton', False):
                # Double-check pattern for thread safety
                if service_name not in self._singletons:
                    instance = factory()
                    self._singletons[service_name] = instance
                    logger.debug(f"Created singleton instance for '{service_name}'")
                return self._singletons[service_name]

            # Factory - create new instance each time
            instance = factory()
            logger.debug(f"Created new instance for '{service_name}'")
            return instance

    def has(self, service_name: str) -> bool:
        """Check if service is registered."""
        return service_name in self._factories or service_name in self._singletons

    def peek(self, service_name: str) -> Optional[Any]:
        """Return an already-created singleton without creating it."""
        return self._singletons.get(service_name)

    def clear(self) -> None:
        """Clear all registered services and instances."""
        with self._lock:
            self._factories.clear()
            self._singletons.clear()


def singleton(factory_func: Callable[[], T]) -> Callable[[], T]:
    """
    Decorator to mark a factory function as singleton.

    Usage:
        @singleton
        def create_rate_limiter():
            return RateLimiter()
    """
    @wraps(factory_func)
    def wrapper():
        return factory_func()

    wrapper._is_singleton = True
    return wrapper


# Global container instance
_container: Optional[Container] = None
_container_lock = threading.Lock()


def get_container() -> Container:
    """Get global container instance (thread-safe singleton)."""
    global _container
    if _container is None:
        with _container_lock:
            if _container is None:
                _container = Container()
                _setup_default_services(_container)
    return _container


def reset_container() -> None:
    """Reset global container (useful for testing)."""
    global _container
    with _container_lock:
        if _container:
            shutdown_services(_container)
            _container.clear()
        _container = None


def shutdown_services(container: Container, run_pending: bool = True) -> None:
    """Interrupt sleepers, flush deferred tasks and close the record store."""
    clock = container.peek('clock')
    if clock is not None:
        clock.request_shutdown()

    scheduler = container.peek('scheduler')
    if scheduler is not None:
        scheduler.shutdown(run_pending=run_pending)

    database = container.peek('database')
    if database is not None:
        try:
            database.close()
        except Exception as e:
            logger.warning(f"Error closing record store: {e}")


def _setup_default_services(container: Container) -> None:
    """Set up default service registrations with configuration injection."""

    @singleton
    def create_config():
        from core.config import get_config
        return get_config()

    @singleton
    def create_database():
        from core.database import get_database
        return get_database(container.get('config'))

    @singleton
    def create_clock():
        from core.clock import Clock
        return Clock()

    @singleton
    def create_scheduler():
        from core.tasks import DeferredTaskScheduler
        return DeferredTaskScheduler()

    @singleton
    def create_rate_limiter():
        from core.rate_limit import RateLimiter
        config = container.get('config')
        return RateLimiter(
            policies=config.app.rate_limits,
            sweep_interval=config.app.rate_limit_sweep_interval,
            clock=container.get('clock')
        )

    @singleton
    def create_progress_tracker():
        from core.progress import ProgressTracker
        config = container.get('config')
        return ProgressTracker(
            retention_seconds=config.app.progress_retention_seconds,
            max_age_seconds=config.app.progress_max_age_seconds,
            clock=container.get('clock')
        )

    @singleton
    def create_security_validator():
        from core.validation import SecurityValidator
        config = container.get('config')
        return SecurityValidator(max_content_length=config.app.max_content_length)

    def create_deduplicator():
        from core.deduplication import ContentDeduplicator
        return ContentDeduplicator()

    def create_classifier():
        from integrations.openai_client import OpenAIClassifier
        config = container.get('config')
        if not config.has_openai():
            raise ValueError("OpenAI API key not configured")
        return OpenAIClassifier(
            api_key=config.integrations.openai_api_key,
            model=config.integrations.openai_model,
            timeout=config.integrations.openai_timeout
        )

    @singleton
    def create_classifier_client():
        from core.analysis import RetryingClassifierClient
        config = container.get('config')
        return RetryingClassifierClient(
            container.get('classifier'),
            max_retries=config.app.max_retry_attempts,
            base_delay=config.app.retry_base_delay,
            clock=container.get('clock')
        )

    @singleton
    def create_orchestrator():
        from core.analysis import AnalysisOrchestrator
        config = container.get('config')
        return AnalysisOrchestrator(
            store=container.get('database'),
            classifier_client=container.get('classifier_client'),
            progress=container.get('progress_tracker'),
            scheduler=container.get('scheduler'),
            clock=container.get('clock'),
            batch_size=config.app.analysis_batch_size,
            candidate_multiplier=config.app.analysis_candidate_multiplier,
            inter_item_delay=config.app.inter_item_delay
        )

    @singleton
    def create_ingestion_service():
        from core.ingestion import IngestionService
        config = container.get('config')
        return IngestionService(
            store=container.get('database'),
            deduplicator=container.get('deduplicator'),
            validator=container.get('security_validator'),
            batch_size=config.app.scrape_batch_size,
            min_post_length=config.app.min_post_length
        )

    @singleton
    def create_duplicate_cleaner():
        from core.deduplication import DuplicateCleaner
        config = container.get('config')
        return DuplicateCleaner(container.get('database'), batch_size=config.app.cleanup_batch_size)

    @singleton
    def create_health_monitor():
        from core.health import HealthMonitor
        config = container.get('config')
        return HealthMonitor(container.get('database'), event_limit=config.app.health_event_limit)

    @singleton
    def create_analytics_service():
        from core.analytics import AnalyticsService
        return AnalyticsService(container.get('database'), clock=container.get('clock'))

    @singleton
    def create_service():
        from core.service import PulseWatchService
        return PulseWatchService(
            rate_limiter=container.get('rate_limiter'),
            progress=container.get('progress_tracker'),
            orchestrator_factory=lambda: container.get('orchestrator'),
            ingestion=container.get('ingestion_service'),
            cleaner=container.get('duplicate_cleaner'),
            health_monitor=container.get('health_monitor'),
            store=container.get('database'),
            analytics=container.get('analytics_service'),
            clock=container.get('clock')
        )

    # Register services
    container.register_singleton('config', create_config)
    container.register_singleton('database', create_database)
    container.register_singleton('clock', create_clock)
    container.register_singleton('scheduler', create_scheduler)
    container.register_singleton('rate_limiter', create_rate_limiter)
    container.register_singleton('progress_tracker', create_progress_tracker)
    container.register_singleton('security_validator', create_security_validator)
    container.register_singleton('classifier_client', create_classifier_client)
    container.register_singleton('orchestrator', create_orchestrator)
    container.register_singleton('ingestion_service', create_ingestion_service)
    container.register_singleton('duplicate_cleaner', create_duplicate_cleaner)
    container.register_singleton('health_monitor', create_health_monitor)
    container.register_singleton('analytics_service', create_analytics_service)
    container.register_singleton('service', create_service)

    # Non-singletons
    container.register_factory('deduplicator', create_deduplicator)
    container.register_factory('classifier', create_classifier)

    logger.debug("Default services registered in container")

