"""Configuration module for Flask application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '1') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')
    JSON_SORT_KEYS = False

    # Preferred URL scheme (for url_for with _external=True)
    PREFERRED_URL_SCHEME = os.getenv('PREFERRED_URL_SCHEME', 'http')

    # Bearer sessions issued to employees
    SESSION_TTL_DAYS = int(os.getenv('SESSION_TTL_DAYS', '7'))

    # Database - Support multiple environment variable naming conventions
    # Priority: DATABASE_URL > DB_* > POSTGRES_*
    DATABASE_URL = os.getenv('DATABASE_URL')

    if not DATABASE_URL:
        # Try DB_* variables (Docker style)
        DB_HOST = os.getenv('DB_HOST') or os.getenv('POSTGRES_HOST', 'localhost')
        DB_PORT = os.getenv('DB_PORT') or os.getenv('POSTGRES_PORT', '5432')
        DB_NAME = os.getenv('DB_NAME') or os.getenv('POSTGRES_DB', 'perks')
        DB_USER = os.getenv('DB_USER') or os.getenv('POSTGRES_USER', 'perks')
        DB_PASSWORD = os.getenv('DB_PASSWORD') or os.getenv('POSTGRES_PASSWORD', 'perks')

        DATABASE_URL = (
            f"postgresql+psycopg://{DB_USER}:{DB_PASSWORD}"
            f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
        )

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', '0') == '1'

    # PhonePe hosted payment page (co-pay)
    PHONEPE_MERCHANT_ID = os.getenv('PHONEPE_MERCHANT_ID')
    PHONEPE_SALT_KEY = os.getenv('PHONEPE_SALT_KEY')
    PHONEPE_SALT_INDEX = os.getenv('PHONEPE_SALT_INDEX', '1')
    PHONEPE_API_URL = os.getenv('PHONEPE_API_URL', 'https://api-preprod.phonepe.com/apis/pg-sandbox')
    PHONEPE_TIMEOUT = int(os.getenv('PHONEPE_TIMEOUT', '10'))  # seconds

    # Public URLs used to build gateway redirect/callback links
    PUBLIC_BASE_URL = os.getenv('PUBLIC_BASE_URL', 'http://localhost:5000')
    CART_PAGE_PATH = os.getenv('CART_PAGE_PATH', '/cart')

    # Redis Cache Configuration
    # Branding/settings row is read on every checkout; cache it briefly
    REDIS_URL = os.getenv('REDIS_URL', 'redis://redis:6379/0')
    CACHE_ENABLED = os.getenv('CACHE_ENABLED', 'true').lower() == 'true'
    CACHE_DEFAULT_TTL = int(os.getenv('CACHE_DEFAULT_TTL', '60'))  # seconds
    CACHE_SETTINGS_TTL = int(os.getenv('CACHE_SETTINGS_TTL', '30'))
    CACHE_KEY_PREFIX = os.getenv('CACHE_KEY_PREFIX', 'perks')


class TestConfig(Config):
    """Configuration used by the test-suite (SQLite, no Redis)."""

    TESTING = True
    DEBUG = False
    ENV = 'testing'
    SQLALCHEMY_DATABASE_URI = os.getenv('TEST_DATABASE_URL', 'sqlite://')
    SQLALCHEMY_ECHO = False
    CACHE_ENABLED = False
    PHONEPE_MERCHANT_ID = 'PGTESTMERCHANT'
    PHONEPE_SALT_KEY = 'test-salt-key'
    PHONEPE_SALT_INDEX = '1'
    PHONEPE_API_URL = 'https://gateway.test'
