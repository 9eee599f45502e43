#!/usr/bin/env python3
"""
Base command class for the modular command architecture.

Provides common functionality and interface that all commands inherit.
Uses dependency injection for better testability and maintainability.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from argparse import Namespace
from core.container import get_container
from core.exceptions import PulseWatchError, ValidationError

logger = logging.getLogger(__name__)


class BaseCommand(ABC):
    """
    Base class for all command endpoints.

    Provides common infrastructure like service access and error handling
    that all commands can use. Uses dependency injection container for
    managing service instances.
    """

    def __init__(self, container=None):
        """
        Initialize base command with dependency injection container.

        Args:
            container: Optional container instance. If None, uses global container.
        """
        self.logger = logging.getLogger(self.__class__.__name__)
        self._container = container or get_container()

    @property
    def config(self):
        """Get configuration from container."""
        return self._container.get('config')

    @property
    def database(self):
        """Get record store from container."""
        return self._container.get('database')

    @property
    def service(self):
        """Get service entry points from container."""
        return self._container.get('service')

    @property
    def progress_tracker(self):
        """Get progress tracker from container."""
        return self._container.get('progress_tracker')

    @abstractmethod
    def execute(self, subcommand: str, args: Namespace) -> int:
        """
        Execute the command with given subcommand and arguments.

        Args:
            subcommand: The specific action to perform
            args: Parsed command line arguments

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        pass

    def get_available_subcommands(self) -> List[str]:
        """Public methods of the command class, excluding base-class helpers."""
        methods = []
        for attr_name in dir(type(self)):
            if attr_name.startswith('_'):
                continue
            if attr_name in dir(BaseCommand):
                continue
            if callable(getattr(type(self), attr_name)):
                methods.append(attr_name)
        return methods

    @staticmethod
    def client_headers(args: Namespace) -> Dict[str, str]:
        """Request headers identifying the caller for rate limiting."""
        client_id = getattr(args, 'client_id', None)
        return {'X-Forwarded-For': client_id} if client_id else {}

    def response_exit_code(self, response: Dict[str, Any]) -> int:
        """Map a service response to an exit code, printing any error."""
        if response.get('success'):
            return 0

        status = response.get('status')
        print(f"❌ {response.get('error')}")
        if response.get('message'):
            print(f"   {response['message']}")
        if status == 429 and response.get('retry_after'):
            print(f"   Retry after: {response['retry_after']}")

        if status == 400:
            return 22
        return 1

    def handle_error(self, error: Exception, context: str = "") -> int:
        """
        Standard error handling for commands.

        Args:
            error: The exception that occurred
            context: Additional context about where the error occurred

        Returns:
            Appropriate exit code
        """
        error_msg = f"{context}: {error}" if context else str(error)
        self.logger.error(error_msg, exc_info=not isinstance(error, PulseWatchError))

        # Map common exceptions to exit codes
        if isinstance(error, KeyboardInterrupt):
            self.logger.info("Command interrupted by user")
            return 130
        elif isinstance(error, FileNotFoundError):
            return 2
        elif isinstance(error, PermissionError):
            return 13
        elif isinstance(error, (ValueError, ValidationError)):
            return 22
        else:
            return 1

    def validate_args(self, args: Namespace, required_args: Optional[List[str]] = None) -> bool:
        """
        Validate that required arguments are present.

        Returns:
            True if valid, False otherwise
        """
        if not required_args:
            return True

        missing = [name for name in required_args if getattr(args, name, None) is None]
        if missing:
            self.logger.error(f"Missing required arguments: {', '.join(missing)}")
            return False

        return True
