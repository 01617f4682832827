"""
Configuration management for the loyalty portal.
"""
import os
from dotenv import load_dotenv

load_dotenv()


class BaseConfig:
    """Base configuration."""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Shared secret the upstream gateway sends for admin requests
    ADMIN_API_TOKEN = os.getenv('ADMIN_API_TOKEN', '')

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Tier thresholds used when the tier_settings table is empty.
    # Ranges are half-open [min_points, max_points); the top tier is unbounded.
    DEFAULT_TIER_SETTINGS = [
        {'tier': 'bronze', 'display_name': 'Bronze', 'min_points': 0, 'max_points': 1000},
        {'tier': 'silver', 'display_name': 'Silver', 'min_points': 1000, 'max_points': 5000},
        {'tier': 'gold', 'display_name': 'Gold', 'min_points': 5000, 'max_points': 10000},
        {'tier': 'platinum', 'display_name': 'Platinum', 'min_points': 10000, 'max_points': None},
    ]

    # Daily check-in (used when checkin_rewards has no row for the day)
    CHECKIN_CYCLE_DAYS = 7
    CHECKIN_DEFAULT_COINS = int(os.getenv('CHECKIN_DEFAULT_COINS', '5'))
    CHECKIN_BONUS_COINS = int(os.getenv('CHECKIN_BONUS_COINS', '50'))

    # Coin -> point exchange
    EXCHANGE_ENABLED = os.getenv('EXCHANGE_ENABLED', 'true').lower() == 'true'
    COINS_PER_POINT = int(os.getenv('COINS_PER_POINT', '10'))
    EXCHANGE_MIN_COINS = int(os.getenv('EXCHANGE_MIN_COINS', '100'))

    # Upper bound an admin may award for a single receipt
    MAX_RECEIPT_POINTS = 100000

    # Retries for transient database errors (deadlocks, lock timeouts)
    DB_RETRY_ATTEMPTS = 3


class DevelopmentConfig(BaseConfig):
    """Development configuration."""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL',
        'sqlite:///loyalty_dev.db'  # SQLite fallback for local dev
    )


class ProductionConfig(BaseConfig):
    """Production configuration."""
    DEBUG = False

    _db_url = os.getenv('DATABASE_URL', '')
    if _db_url.startswith('postgres://'):
        # SQLAlchemy requires postgresql:// not postgres://
        _db_url = _db_url.replace('postgres://', 'postgresql://', 1)

    SQLALCHEMY_DATABASE_URI = _db_url

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 5,
        'pool_recycle': 300,
        'pool_pre_ping': True,
    }

    _secret_key = os.getenv('SECRET_KEY', '')

    @classmethod
    def validate_secret_key(cls) -> str:
        """
        Validate SECRET_KEY in production environment.

        Raises:
            RuntimeError: If SECRET_KEY is missing or too short
        """
        if not cls._secret_key:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY environment variable is not set!\n"
                "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
            )
        if len(cls._secret_key) < 32:
            raise RuntimeError("CRITICAL: SECRET_KEY is too short (minimum 32 characters required)!")
        return cls._secret_key

    @classmethod
    def validate_admin_token(cls) -> None:
        if not os.getenv('ADMIN_API_TOKEN'):
            raise RuntimeError("CRITICAL: ADMIN_API_TOKEN environment variable is not set!")

    SECRET_KEY = _secret_key


class TestingConfig(BaseConfig):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    ADMIN_API_TOKEN = 'test-admin-token'
    DB_RETRY_ATTEMPTS = 1


config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}


def get_config(config_name: str = 'development'):
    """Get configuration class by name."""
    return config_map.get(config_name, DevelopmentConfig)


def validate_config(config_name: str = 'development') -> None:
    """
    Validate configuration before app startup.

    Raises:
        RuntimeError: If validation fails in production
    """
    if config_name == 'production':
        ProductionConfig.validate_secret_key()
        ProductionConfig.validate_admin_token()
