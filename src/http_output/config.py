"""
Configuration loader for the HTTP output.

Supports INI file and environment variable overrides.
"""
import os
import configparser
from dataclasses import dataclass, field
from typing import Optional
import structlog

from .transmission.errors import ConfigError
from .transmission.settings import VALID_FORMATS

logger = structlog.get_logger()

VALID_PROTOCOLS = ("http", "https")
VALID_VERIFICATION_MODES = ("full", "certificate", "none")


@dataclass
class Config:
    """Output configuration with defaults."""

    # Endpoints
    hosts: list[str] = field(default_factory=lambda: ["localhost"])
    protocol: str = "http"
    path: str = ""
    params: dict[str, str] = field(default_factory=dict)
    proxy_url: str = ""

    # Authentication
    username: str = ""
    password: str = ""

    # Request shape
    timeout_s: float = 90.0
    compression_level: int = 0
    headers: dict[str, str] = field(default_factory=dict)
    content_type: str = ""
    format: str = "json"
    batch_publish: bool = False
    batch_size: int = 50
    max_retries: int = 3

    # TLS
    tls_enabled: bool = False
    tls_certificate_authorities: list[str] = field(default_factory=list)
    tls_certificate: str = ""
    tls_key: str = ""
    tls_verification_mode: str = "full"

    # Backoff between failed publishes
    backoff_init_s: float = 1.0
    backoff_max_s: float = 60.0

    # Circuit breaker
    circuit_breaker_fail_max: int = 5
    circuit_breaker_timeout_s: int = 60


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _to_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def validate_config(config: Config) -> Config:
    """
    Check option values and ranges.

    Raises:
        ConfigError: On the first invalid value
    """
    if not config.hosts:
        raise ConfigError("at least one host is required")
    if config.protocol not in VALID_PROTOCOLS:
        raise ConfigError(f"invalid protocol: {config.protocol}")
    if not 0 <= config.compression_level <= 9:
        raise ConfigError(f"compression_level must be between 0 and 9, got {config.compression_level}")
    if config.format not in VALID_FORMATS:
        raise ConfigError(f"invalid format: {config.format}")
    if config.tls_verification_mode not in VALID_VERIFICATION_MODES:
        raise ConfigError(f"invalid tls verification_mode: {config.tls_verification_mode}")
    if config.tls_key and not config.tls_certificate:
        raise ConfigError("tls key given without certificate")
    if config.timeout_s <= 0:
        raise ConfigError("timeout_s must be positive")
    if config.batch_size < 1:
        raise ConfigError("batch_size must be at least 1")
    if config.max_retries < 0:
        raise ConfigError("max_retries must not be negative")
    if config.backoff_init_s <= 0 or config.backoff_max_s < config.backoff_init_s:
        raise ConfigError("backoff_init_s must be positive and not above backoff_max_s")
    return config


def _apply_ini(config: Config, parser: configparser.ConfigParser):
    if parser.has_section('output'):
        section = parser['output']
        if 'hosts' in section:
            config.hosts = _split_list(section['hosts'])
        config.protocol = section.get('protocol', config.protocol)
        config.path = section.get('path', config.path)
        config.proxy_url = section.get('proxy_url', config.proxy_url)
        config.timeout_s = section.getfloat('timeout_s', config.timeout_s)
        config.compression_level = section.getint('compression_level', config.compression_level)
        config.content_type = section.get('content_type', config.content_type)
        config.format = section.get('format', config.format)
        config.batch_publish = section.getboolean('batch_publish', config.batch_publish)
        config.batch_size = section.getint('batch_size', config.batch_size)
        config.max_retries = section.getint('max_retries', config.max_retries)

    if parser.has_section('auth'):
        config.username = parser.get('auth', 'username', fallback=config.username)
        config.password = parser.get('auth', 'password', fallback=config.password)

    if parser.has_section('tls'):
        section = parser['tls']
        config.tls_enabled = section.getboolean('enabled', True)
        if 'certificate_authorities' in section:
            config.tls_certificate_authorities = _split_list(section['certificate_authorities'])
        config.tls_certificate = section.get('certificate', config.tls_certificate)
        config.tls_key = section.get('key', config.tls_key)
        config.tls_verification_mode = section.get('verification_mode', config.tls_verification_mode)

    if parser.has_section('backoff'):
        config.backoff_init_s = parser.getfloat('backoff', 'init_s', fallback=config.backoff_init_s)
        config.backoff_max_s = parser.getfloat('backoff', 'max_s', fallback=config.backoff_max_s)

    if parser.has_section('circuit_breaker'):
        config.circuit_breaker_fail_max = parser.getint(
            'circuit_breaker', 'fail_max', fallback=config.circuit_breaker_fail_max)
        config.circuit_breaker_timeout_s = parser.getint(
            'circuit_breaker', 'timeout_s', fallback=config.circuit_breaker_timeout_s)

    if parser.has_section('headers'):
        config.headers = dict(parser.items('headers', raw=True))

    if parser.has_section('params'):
        config.params = dict(parser.items('params', raw=True))


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from INI file and environment variables.

    Priority:
    1. Environment variables (highest)
    2. INI file
    3. Defaults (lowest)

    Environment variable format: HTTP_OUTPUT_<SETTING_NAME>
    Example: HTTP_OUTPUT_HOSTS, HTTP_OUTPUT_COMPRESSION_LEVEL

    Raises:
        ConfigError: If a value cannot be parsed or fails validation
    """
    config = Config()

    # Load from INI file if provided
    if config_path and os.path.exists(config_path):
        # Header names are case sensitive on some endpoints
        parser = configparser.ConfigParser(interpolation=None)
        parser.optionxform = str
        parser.read(config_path)
        try:
            _apply_ini(config, parser)
        except ValueError as e:
            raise ConfigError(f"invalid value in {config_path}: {e}") from e
        logger.info("config_loaded_from_file", path=config_path)

    # Override with environment variables (highest priority)
    env_mappings = {
        'HTTP_OUTPUT_HOSTS': ('hosts', _split_list),
        'HTTP_OUTPUT_PROTOCOL': ('protocol', str),
        'HTTP_OUTPUT_PATH': ('path', str),
        'HTTP_OUTPUT_PROXY_URL': ('proxy_url', str),
        'HTTP_OUTPUT_USERNAME': ('username', str),
        'HTTP_OUTPUT_PASSWORD': ('password', str),
        'HTTP_OUTPUT_TIMEOUT_S': ('timeout_s', float),
        'HTTP_OUTPUT_COMPRESSION_LEVEL': ('compression_level', int),
        'HTTP_OUTPUT_CONTENT_TYPE': ('content_type', str),
        'HTTP_OUTPUT_FORMAT': ('format', str),
        'HTTP_OUTPUT_BATCH_PUBLISH': ('batch_publish', _to_bool),
        'HTTP_OUTPUT_BATCH_SIZE': ('batch_size', int),
        'HTTP_OUTPUT_MAX_RETRIES': ('max_retries', int),
        'HTTP_OUTPUT_TLS_ENABLED': ('tls_enabled', _to_bool),
        'HTTP_OUTPUT_TLS_CERTIFICATE_AUTHORITIES': ('tls_certificate_authorities', _split_list),
        'HTTP_OUTPUT_TLS_CERTIFICATE': ('tls_certificate', str),
        'HTTP_OUTPUT_TLS_KEY': ('tls_key', str),
        'HTTP_OUTPUT_TLS_VERIFICATION_MODE': ('tls_verification_mode', str),
        'HTTP_OUTPUT_BACKOFF_INIT_S': ('backoff_init_s', float),
        'HTTP_OUTPUT_BACKOFF_MAX_S': ('backoff_max_s', float),
    }

    for env_var, (attr, type_fn) in env_mappings.items():
        value = os.environ.get(env_var)
        if value is not None:
            try:
                setattr(config, attr, type_fn(value))
            except ValueError as e:
                raise ConfigError(f"invalid value for {env_var}: {e}") from e
            logger.debug("config_override_from_env", var=env_var)

    return validate_config(config)
