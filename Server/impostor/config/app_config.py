"""
Configuration Management Module

Centralized configuration management following the 12-factor app methodology.
All configuration is loaded from environment variables with sensible defaults.
"""

import os
from dotenv import load_dotenv

# Load environment variables from config.env
load_dotenv(os.path.join(os.path.dirname(os.path.abspath(__file__)), 'config.env'))


class Config:
    """Base configuration class with all settings."""

    # Flask Settings
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'
    TESTING = False

    # Server Settings
    HOST = os.getenv('HOST', '127.0.0.1')
    PORT = int(os.getenv('PORT', 5000))
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')

    # Room Lifecycle Settings
    REJOIN_GRACE_SECONDS = int(os.getenv('REJOIN_GRACE_SECONDS', 60))
    LOBBY_IDLE_SECONDS = int(os.getenv('LOBBY_IDLE_SECONDS', 1800))
    MAX_GAME_SECONDS = int(os.getenv('MAX_GAME_SECONDS', 7200))
    JANITOR_INTERVAL_SECONDS = int(os.getenv('JANITOR_INTERVAL_SECONDS', 15))

    # Chat Settings
    CHAT_RATE_LIMIT = int(os.getenv('CHAT_RATE_LIMIT', 5))
    CHAT_RATE_WINDOW_SECONDS = int(os.getenv('CHAT_RATE_WINDOW_SECONDS', 10))

    # Logging Settings
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_DIR = os.getenv('LOG_DIR', 'logs')


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    DEBUG = True


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
