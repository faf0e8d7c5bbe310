"""
PathHawk Configuration Module

Scanner defaults, overridable through environment variables or a .env file.
"""

import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in {'1', 'true', 'yes'}


class BaseConfig:
    """Base configuration with safe defaults."""

    # Application
    APP_NAME = 'PathHawk'
    APP_VERSION = '1.0.0'

    LOG_LEVEL = os.environ.get('PATHHAWK_LOG_LEVEL', 'INFO')

    # Scanner Configuration
    SCANNER_CONCURRENCY = int(os.environ.get('PATHHAWK_CONCURRENCY', '10'))
    SCANNER_TIMEOUT = float(os.environ.get('PATHHAWK_TIMEOUT', '10'))
    SCANNER_DELAY = float(os.environ.get('PATHHAWK_DELAY', '0'))  # seconds
    SCANNER_MAX_DEPTH = int(os.environ.get('PATHHAWK_MAX_DEPTH', '0'))
    SCANNER_VERIFY_SSL = _env_bool('PATHHAWK_VERIFY_SSL', 'true')
    SCANNER_USER_AGENT = os.environ.get('PATHHAWK_USER_AGENT', f'{APP_NAME}/{APP_VERSION}')
    SCANNER_PROXY = os.environ.get('PATHHAWK_PROXY') or None
    SCANNER_POLL_INTERVAL = 0.1  # seconds
    SCANNER_MARKER = os.environ.get('PATHHAWK_MARKER', 'FUZZ')


class DevelopmentConfig(BaseConfig):
    """Development configuration for scanning local test servers."""

    SCANNER_VERIFY_SSL = False

    # More verbose logging
    LOG_LEVEL = 'DEBUG'


class TestingConfig(BaseConfig):
    """Testing configuration."""

    SCANNER_CONCURRENCY = 4
    SCANNER_TIMEOUT = 2
    SCANNER_DELAY = 0
    SCANNER_MAX_DEPTH = 0
    SCANNER_POLL_INTERVAL = 0.02
    SCANNER_PROXY = None


class ProductionConfig(BaseConfig):
    """Production configuration."""

    SCANNER_VERIFY_SSL = _env_bool('PATHHAWK_VERIFY_SSL', 'true')

    LOG_LEVEL = 'WARNING'


# Configuration dictionary for easy access
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': BaseConfig
}


def get_config(name=None):
    """Config class for ``name``, falling back to PATHHAWK_ENV then default."""
    name = name or os.environ.get('PATHHAWK_ENV', 'default')
    return config.get(name, BaseConfig)
