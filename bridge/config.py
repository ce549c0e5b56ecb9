"""
Configuration management for the membership bridge.

Two layers:
- Flask config classes (DEBUG, TESTING, ...) selected by environment name.
- BridgeSettings, the integration settings read from the environment once
  at startup and handed to every service constructor.
"""
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple
from dotenv import load_dotenv

load_dotenv()

DEFAULT_ACUITY_API_URL = 'https://acuityscheduling.com/api/v1'
DEFAULT_PASSKIT_API_URL = 'https://api.pub1.passkit.io'

TRUE_VALUES = {'true', '1', 'yes', 'on', 'enabled'}
FALSE_VALUES = {'false', '0', 'no', 'off', 'disabled'}


def parse_boolean(value, fallback: bool = False) -> bool:
    """Parse a boolean-ish value, returning fallback when it is not recognised."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in TRUE_VALUES:
            return True
        if normalized in FALSE_VALUES:
            return False
    return fallback


def parse_toggle_value(value) -> Optional[bool]:
    """Like parse_boolean, but None for anything unrecognised."""
    if isinstance(value, bool):
        return value
    if not isinstance(value, str):
        return None
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    return None


def _float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value not in (None, '') else default
    except ValueError:
        return default


@dataclass(frozen=True)
class BridgeSettings:
    """Acuity, PassKit and store settings for one running process."""

    acuity_user_id: Optional[str] = None
    acuity_api_key: Optional[str] = None
    acuity_api_url: str = DEFAULT_ACUITY_API_URL
    acuity_webhook_secret: Optional[str] = None
    passkit_api_key: Optional[str] = None
    passkit_api_secret: Optional[str] = None
    passkit_api_url: str = DEFAULT_PASSKIT_API_URL
    passkit_program_id: Optional[str] = None
    membership_product_filter: str = ''
    webhook_enabled_default: bool = True
    redis_url: Optional[str] = None
    http_timeout: float = 30.0
    status_timeout: float = 2.0
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None) -> 'BridgeSettings':
        """Build settings from environment variables."""
        env = os.environ if environ is None else environ

        acuity_api_key = env.get('ACUITY_API_KEY') or None
        redis_url = (
            env.get('REDIS_URL')
            or env.get('KV_URL')
            or env.get('UPSTASH_REDIS_URL')
            or None
        )

        return cls(
            acuity_user_id=env.get('ACUITY_USER_ID') or None,
            acuity_api_key=acuity_api_key,
            acuity_api_url=(env.get('ACUITY_API_URL') or DEFAULT_ACUITY_API_URL).rstrip('/'),
            acuity_webhook_secret=env.get('ACUITY_WEBHOOK_SECRET') or acuity_api_key,
            passkit_api_key=env.get('PASSKIT_API_KEY') or None,
            passkit_api_secret=env.get('PASSKIT_API_SECRET') or None,
            passkit_api_url=(env.get('PASSKIT_API_URL') or DEFAULT_PASSKIT_API_URL).rstrip('/'),
            passkit_program_id=env.get('PASSKIT_PROGRAM_ID') or None,
            membership_product_filter=env.get('MEMBERSHIP_PRODUCT_FILTER', ''),
            webhook_enabled_default=parse_boolean(env.get('WEBHOOK_ENABLED_DEFAULT'), True),
            redis_url=redis_url,
            http_timeout=_float(env.get('HTTP_TIMEOUT_SECONDS'), 30.0),
            status_timeout=_float(env.get('STATUS_TIMEOUT_SECONDS'), 2.0),
            log_level=env.get('LOG_LEVEL', 'INFO'),
        )

    @property
    def acuity_configured(self) -> bool:
        return bool(self.acuity_user_id and self.acuity_api_key)

    @property
    def passkit_configured(self) -> bool:
        return bool(self.passkit_api_key and self.passkit_api_secret)

    @property
    def product_filters(self) -> Tuple[str, ...]:
        """Lowercase, non-empty membership product filter terms."""
        terms = (term.strip().lower() for term in (self.membership_product_filter or '').split(','))
        return tuple(term for term in terms if term)


class BaseConfig:
    """Base configuration."""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')

    APP_NAME = 'acuity-passkit-bridge'
    BUILD = os.getenv('BUILD_ID', 'local')


class DevelopmentConfig(BaseConfig):
    """Development configuration."""
    DEBUG = True


class ProductionConfig(BaseConfig):
    """Production configuration."""
    DEBUG = False


class TestingConfig(BaseConfig):
    """Testing configuration."""
    TESTING = True


config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}


def get_config(config_name: str = 'development'):
    """Get configuration class by name."""
    return config_map.get(config_name, DevelopmentConfig)
