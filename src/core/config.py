#!/usr/bin/env python3
"""
Centralized Configuration Manager

Provides a single source of truth for all application configuration,
including environment variables, defaults, and validation.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict

from .env_loader import load_env_file
from .rate_limit import DEFAULT_POLICIES, RateLimitPolicy

logger = logging.getLogger(__name__)

SUPPORTED_BACKENDS = ('supabase', 'postgres')


@dataclass
class DatabaseConfig:
    """Record store connection configuration."""
    supabase_url: str
    backend: str = 'supabase'
    supabase_db_password: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    supabase_service_key: Optional[str] = None
    connection_timeout: int = 30

    @property
    def supabase_api_key(self) -> Optional[str]:
        """Service role key when present, anon key otherwise."""
        return self.supabase_service_key or self.supabase_anon_key


@dataclass
class IntegrationConfig:
    """External integration configuration."""
    openai_api_key: Optional[str] = None
    openai_model: str = 'gpt-4o-mini'
    openai_timeout: float = 30.0


@dataclass
class ApplicationConfig:
    """Core application configuration."""
    # Analysis settings
    analysis_batch_size: int = 20
    analysis_candidate_multiplier: int = 2
    max_retry_attempts: int = 3
    retry_base_delay: float = 1.0
    inter_item_delay: float = 0.5

    # Progress tracking
    progress_retention_seconds: float = 30
    progress_max_age_seconds: float = 3600

    # Rate limiting
    rate_limit_sweep_interval: float = 600  # 10 minutes
    rate_limits: Dict[str, RateLimitPolicy] = field(default_factory=lambda: dict(DEFAULT_POLICIES))

    # Ingestion and cleanup
    scrape_batch_size: int = 50
    cleanup_batch_size: int = 100
    min_post_length: int = 20
    max_content_length: int = 5000

    # Health
    health_event_limit: int = 10

    # Logging
    log_level: str = "INFO"
    verbose_logging: bool = False


@dataclass
class Config:
    """Master configuration container."""
    database: DatabaseConfig
    integrations: IntegrationConfig
    app: ApplicationConfig

    def has_openai(self) -> bool:
        """Check if OpenAI integration is available."""
        return bool(self.integrations.openai_api_key)


class ConfigManager:
    """Manages application configuration with validation and environment loading."""

    def __init__(self, env_file_path: str = ".env"):
        """
        Initialize configuration manager.

        Args:
            env_file_path: Path to .env file relative to project root
        """
        self._config: Optional[Config] = None
        self._env_file_path = env_file_path
        load_env_file(env_file_path)

    def get_config(self, force_reload: bool = False) -> Config:
        """
        Get application configuration.

        Args:
            force_reload: Force reloading configuration from environment

        Returns:
            Complete configuration object
        """
        if self._config is None or force_reload:
            self._config = self._build_config()
        return self._config

    def _build_config(self) -> Config:
        """Build configuration from environment variables."""

        # Database configuration (required)
        database_config = DatabaseConfig(
            supabase_url=self._get_required_env('SUPABASE_URL'),
            backend=os.getenv('DATABASE_BACKEND', 'supabase').lower(),
            supabase_db_password=os.getenv('SUPABASE_DB_PASSWORD'),
            supabase_anon_key=os.getenv('SUPABASE_ANON_KEY'),
            supabase_service_key=os.getenv('SUPABASE_SERVICE_ROLE_KEY'),
            connection_timeout=int(os.getenv('DB_CONNECTION_TIMEOUT', '30'))
        )

        # Integration configuration (optional)
        integration_config = IntegrationConfig(
            openai_api_key=os.getenv('OPENAI_API_KEY'),
            openai_model=os.getenv('OPENAI_MODEL', 'gpt-4o-mini'),
            openai_timeout=float(os.getenv('OPENAI_TIMEOUT', '30'))
        )

        # Application configuration
        app_config = ApplicationConfig(
            analysis_batch_size=int(os.getenv('ANALYSIS_BATCH_SIZE', '20')),
            analysis_candidate_multiplier=int(os.getenv('ANALYSIS_CANDIDATE_MULTIPLIER', '2')),
            max_retry_attempts=int(os.getenv('MAX_RETRY_ATTEMPTS', '3')),
            retry_base_delay=float(os.getenv('RETRY_BASE_DELAY', '1.0')),
            inter_item_delay=float(os.getenv('INTER_ITEM_DELAY', '0.5')),
            progress_retention_seconds=float(os.getenv('PROGRESS_RETENTION_SECONDS', '30')),
            progress_max_age_seconds=float(os.getenv('PROGRESS_MAX_AGE_SECONDS', '3600')),
            rate_limit_sweep_interval=float(os.getenv('RATE_LIMIT_SWEEP_INTERVAL', '600')),
            rate_limits=self._build_rate_limits(),
            scrape_batch_size=int(os.getenv('SCRAPE_BATCH_SIZE', '50')),
            cleanup_batch_size=int(os.getenv('CLEANUP_BATCH_SIZE', '100')),
            min_post_length=int(os.getenv('MIN_POST_LENGTH', '20')),
            max_content_length=int(os.getenv('MAX_CONTENT_LENGTH', '5000')),
            health_event_limit=int(os.getenv('HEALTH_EVENT_LIMIT', '10')),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
            verbose_logging=os.getenv('VERBOSE_LOGGING', 'false').lower() == 'true'
        )

        config = Config(
            database=database_config,
            integrations=integration_config,
            app=app_config
        )

        self._validate_config(config)
        return config

    def _build_rate_limits(self) -> Dict[str, RateLimitPolicy]:
        """Default policies with RATE_LIMIT_<POLICY>_MAX / _WINDOW overrides applied."""
        policies = {}
        for name, policy in DEFAULT_POLICIES.items():
            prefix = f"RATE_LIMIT_{name.upper()}"
            policies[name] = RateLimitPolicy(
                name=name,
                window_seconds=float(os.getenv(f"{prefix}_WINDOW", str(policy.window_seconds))),
                max_requests=int(os.getenv(f"{prefix}_MAX", str(policy.max_requests)))
            )
        return policies

    def _get_required_env(self, key: str) -> str:
        """Get required environment variable."""
        value = os.getenv(key)
        if not value:
            raise ValueError(f"Required environment variable {key} is not set")
        return value

    def _validate_config(self, config: Config) -> None:
        """Validate configuration values."""
        errors = []
        db = config.database
        app = config.app

        # Validate database URL format
        if not db.supabase_url.startswith('https://'):
            errors.append("SUPABASE_URL must start with https://")

        if db.backend not in SUPPORTED_BACKENDS:
            errors.append(f"DATABASE_BACKEND must be one of: {', '.join(SUPPORTED_BACKENDS)}")
        elif db.backend == 'postgres' and not db.supabase_db_password:
            errors.append("SUPABASE_DB_PASSWORD is required for the postgres backend")
        elif db.backend == 'supabase' and not db.supabase_api_key:
            errors.append("SUPABASE_SERVICE_ROLE_KEY or SUPABASE_ANON_KEY is required for the supabase backend")

        # Validate numeric ranges
        if app.analysis_batch_size < 1 or app.analysis_batch_size > 50:
            errors.append("ANALYSIS_BATCH_SIZE must be between 1 and 50")

        if app.analysis_candidate_multiplier < 1:
            errors.append("ANALYSIS_CANDIDATE_MULTIPLIER must be at least 1")

        if app.max_retry_attempts < 1:
            errors.append("MAX_RETRY_ATTEMPTS must be at least 1")

        if app.retry_base_delay < 0 or app.inter_item_delay < 0:
            errors.append("RETRY_BASE_DELAY and INTER_ITEM_DELAY must not be negative")

        if app.scrape_batch_size < 1 or app.cleanup_batch_size < 1:
            errors.append("SCRAPE_BATCH_SIZE and CLEANUP_BATCH_SIZE must be at least 1")

        for policy in app.rate_limits.values():
            if policy.max_requests < 1 or policy.window_seconds <= 0:
                errors.append(f"RATE_LIMIT_{policy.name.upper()} needs a positive limit and window")

        # Validate log level
        valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if app.log_level not in valid_log_levels:
            errors.append(f"LOG_LEVEL must be one of: {', '.join(valid_log_levels)}")

        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

        logger.info("Configuration validation passed")

    def update_logging(self) -> None:
        """Configure logging based on current configuration."""
        config = self.get_config()

        # Set log level
        numeric_level = getattr(logging, config.app.log_level)
        logging.getLogger().setLevel(numeric_level)

        # Configure format
        if config.app.verbose_logging:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
        else:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

        # Update existing handlers
        for handler in logging.getLogger().handlers:
            handler.setLevel(numeric_level)
            formatter = logging.Formatter(format_str, datefmt='%Y-%m-%d %H:%M:%S')
            handler.setFormatter(formatter)


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def get_config() -> Config:
    """Get application configuration."""
    return get_config_manager().get_config()


def reset_config() -> None:
    """Reset configuration manager (useful for testing)."""
    global _config_manager
    _config_manager = None
