from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping

import pytz

_DEFAULT_ENV = "development"
_ENV_KEY = "FLASK_ENV"
_VALID_ENVS = {"development", "testing", "staging", "production"}
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class EnvironmentInfo:
    name: str
    source: str
    raw_value: str


class EnvReader:
    def __init__(self, data: Mapping[str, str] | None = None):
        self._data = dict(data if data is not None else os.environ)
        self.warnings: list[str] = []

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def _value(self, key: str) -> str | None:
        value = self._data.get(key)
        if value is None:
            return None
        stripped = value.strip()
        return stripped if stripped else None

    def str(self, key: str, default: str | None = None) -> str | None:
        value = self._value(key)
        return value if value is not None else default

    def int(self, key: str, default: int = 0) -> int:
        value = self._value(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            self.warn(f"{key} expected integer but received {value!r}; falling back to {default}.")
            return default

    def bool(self, key: str, default: bool = False) -> bool:
        value = self._value(key)
        if value is None:
            return default
        lowered = value.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        self.warn(f"{key} expected boolean but received {value!r}; falling back to {default}.")
        return default

    def raw(self, key: str) -> str | None:
        return self._data.get(key)


def _normalized_env(value: str | None, *, default: str = _DEFAULT_ENV) -> str:
    if not value:
        return default
    return value.strip().lower() or default


def _normalize_db_url(url: str | None) -> str | None:
    if not url:
        return None
    return 'postgresql://' + url[len('postgres://'):] if url.startswith('postgres://') else url


def _resolve_ratelimit_uri(reader: EnvReader) -> str:
    candidate = reader.str('RATELIMIT_STORAGE_URI')
    if candidate:
        return candidate
    redis_url = reader.str('REDIS_URL')
    if redis_url:
        return redis_url
    return 'memory://'


def _resolve_environment(reader: EnvReader) -> EnvironmentInfo:
    raw_value = reader.str(_ENV_KEY, _DEFAULT_ENV) or _DEFAULT_ENV
    normalized = _normalized_env(raw_value)
    if normalized not in _VALID_ENVS:
        raise RuntimeError(
            f"Invalid {_ENV_KEY}={raw_value!r}. Expected one of {sorted(_VALID_ENVS)}."
        )
    return EnvironmentInfo(name=normalized, source=_ENV_KEY, raw_value=raw_value)


def _resolve_default_timezone(reader: EnvReader) -> str:
    value = reader.str('PRODUCTION_DEFAULT_TIMEZONE', 'UTC') or 'UTC'
    if value not in pytz.all_timezones_set:
        reader.warn(f"PRODUCTION_DEFAULT_TIMEZONE={value!r} is not a known timezone; using UTC.")
        return 'UTC'
    return value


def _resolve_cron_secret(reader: EnvReader, env_name: str) -> str | None:
    value = reader.str('CRON_SECRET')
    if value:
        return value
    if env_name in {'staging', 'production'}:
        reader.warn("CRON_SECRET not set; scheduled endpoints will reject every request.")
    return None


env = EnvReader()
ENV_INFO = _resolve_environment(env)


class BaseConfig:
    FLASK_ENV = ENV_INFO.name
    SECRET_KEY = env.str('FLASK_SECRET_KEY', 'devkey-please-change-in-production')

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SESSION_LIFETIME_MINUTES = env.int('SESSION_LIFETIME_MINUTES', 60)
    PERMANENT_SESSION_LIFETIME = timedelta(minutes=SESSION_LIFETIME_MINUTES)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    WTF_CSRF_ENABLED = True

    RATELIMIT_STORAGE_URI = _resolve_ratelimit_uri(env)
    RATELIMIT_ENABLED = env.bool('RATELIMIT_ENABLED', True)
    RATELIMIT_DEFAULT = env.str('RATELIMIT_DEFAULT', '5000 per hour;1000 per minute')
    CRON_RATELIMIT = env.str('CRON_RATELIMIT', '30 per hour') or '30 per hour'

    LOG_LEVEL = env.str('LOG_LEVEL', 'WARNING') or 'WARNING'
    LOG_REDACT_PII = env.bool('LOG_REDACT_PII', True)

    CRON_SECRET = _resolve_cron_secret(env, ENV_INFO.name)
    DOMAIN_EVENT_WEBHOOK_URL = env.str('DOMAIN_EVENT_WEBHOOK_URL')
    DOMAIN_EVENT_WEBHOOK_SECRET = env.str('DOMAIN_EVENT_WEBHOOK_SECRET')
    DOMAIN_EVENT_MAX_ATTEMPTS = env.int('DOMAIN_EVENT_MAX_ATTEMPTS', 6)
    PRODUCTION_DEFAULT_TIMEZONE = _resolve_default_timezone(env)

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': env.int('SQLALCHEMY_POOL_SIZE', 20),
        'max_overflow': env.int('SQLALCHEMY_MAX_OVERFLOW', 10),
        'pool_pre_ping': True,
        'pool_recycle': env.int('SQLALCHEMY_POOL_RECYCLE', 1800),
    }


class DevelopmentConfig(BaseConfig):
    ENV = 'development'
    DEBUG = True
    SESSION_COOKIE_SECURE = False

    _db_url = _normalize_db_url(env.str('DATABASE_URL'))
    if _db_url:
        SQLALCHEMY_DATABASE_URI = _db_url
    else:
        instance_path = os.path.join(os.path.abspath(os.path.dirname(__file__)), '..', 'instance')
        os.makedirs(instance_path, exist_ok=True)
        SQLALCHEMY_DATABASE_URI = 'sqlite:///' + os.path.join(instance_path, 'plato.db')

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 3600,
    }


class TestingConfig(BaseConfig):
    ENV = 'testing'
    TESTING = True
    WTF_CSRF_ENABLED = False
    SESSION_COOKIE_SECURE = False
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
    }
    RATELIMIT_STORAGE_URI = 'memory://'


class StagingConfig(BaseConfig):
    ENV = 'staging'
    SESSION_COOKIE_SECURE = True
    PREFERRED_URL_SCHEME = 'https'
    DEBUG = False
    TESTING = False
    SQLALCHEMY_DATABASE_URI = _normalize_db_url(env.str('DATABASE_URL'))
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 10,
        'max_overflow': 20,
        'pool_pre_ping': True,
        'pool_recycle': 1800,
    }


class ProductionConfig(BaseConfig):
    ENV = 'production'
    SESSION_COOKIE_SECURE = True
    PREFERRED_URL_SCHEME = 'https'
    DEBUG = False
    TESTING = False
    SQLALCHEMY_DATABASE_URI = _normalize_db_url(env.str('DATABASE_URL'))
    LOG_LEVEL = env.str('LOG_LEVEL', 'INFO') or 'INFO'


config_map = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'staging': StagingConfig,
    'production': ProductionConfig,
}


def get_active_config_name() -> str:
    return ENV_INFO.name


def get_config():
    return config_map[get_active_config_name()]


Config = config_map[ENV_INFO.name]
ENV_DIAGNOSTICS = {
    'active': ENV_INFO.name,
    'source': ENV_INFO.source,
    'variables': {ENV_INFO.source: ENV_INFO.raw_value},
    'warnings': tuple(env.warnings),
}
