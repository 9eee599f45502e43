#!/usr/bin/env python3
"""
Environment variable loader with .env file support.

Safely loads environment variables from .env file if present. Variables
already set in the process environment always win.
"""

import os
from pathlib import Path
from typing import Optional
import logging

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent.parent


def _parse_line(line: str):
    key, value = line.split('=', 1)
    key = key.strip()
    value = value.strip()

    # Remove quotes if present
    if value.startswith('"') and value.endswith('"'):
        value = value[1:-1]
    elif value.startswith("'") and value.endswith("'"):
        value = value[1:-1]
    return key, value


def load_env_file(env_file_path: str = ".env", base_dir: Optional[Path] = None) -> int:
    """
    Load environment variables from .env file if it exists.

    Args:
        env_file_path: Path to .env file (default: ".env" in project root)
        base_dir: Directory the path is relative to (default: project root)

    Returns:
        Number of variables loaded
    """
    env_path = Path(base_dir or PROJECT_ROOT) / env_file_path

    if not env_path.exists():
        logger.debug(f"No .env file found at {env_path}")
        return 0

    try:
        with open(env_path, 'r', encoding='utf-8') as f:
            lines = f.readlines()
    except OSError as e:
        logger.error(f"Error loading .env file {env_path}: {e}")
        return 0

    loaded_count = 0
    for line_num, line in enumerate(lines, 1):
        line = line.strip()

        # Skip empty lines and comments
        if not line or line.startswith('#'):
            continue

        # Parse KEY=VALUE format
        if '=' not in line:
            logger.warning(f"Invalid .env format at line {line_num}: {line}")
            continue

        key, value = _parse_line(line)

        if key not in os.environ:
            os.environ[key] = value
            loaded_count += 1
            logger.debug(f"Loaded {key} from .env")
        else:
            logger.debug(f"Skipped {key} (already in environment)")

    logger.info(f"Loaded {loaded_count} variables from {env_path}")
    return loaded_count


def validate_database_config() -> bool:
    """
    Validate that the selected record store backend has its configuration.

    Returns:
        True if valid configuration found

    Raises:
        ValueError: If required configuration is missing
    """
    backend = os.environ.get('DATABASE_BACKEND', 'supabase').lower()
    if backend == 'postgres':
        required_vars = ['SUPABASE_URL', 'SUPABASE_DB_PASSWORD']
    else:
        required_vars = ['SUPABASE_URL']

    missing = [var for var in required_vars if not os.environ.get(var)]
    if backend != 'postgres' and not (os.environ.get('SUPABASE_SERVICE_ROLE_KEY') or os.environ.get('SUPABASE_ANON_KEY')):
        missing.append('SUPABASE_SERVICE_ROLE_KEY')

    if missing:
        raise ValueError(f"Missing required database environment variables: {', '.join(missing)}")

    supabase_url = os.environ.get('SUPABASE_URL', '')
    if not supabase_url.startswith('https://'):
        raise ValueError("Invalid SUPABASE_URL format. Expected: https://your-project.supabase.co")

    logger.info(f"Database configuration validated successfully ({backend} backend)")
    return True

