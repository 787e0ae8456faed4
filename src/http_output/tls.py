"""
TLS context construction from output configuration.

verification_mode:
    full         verify the certificate chain and the hostname
    certificate  verify the certificate chain only
    none         no verification
"""
import os
import ssl
from typing import Optional

import structlog

from .config import Config
from .transmission.errors import ConfigError

logger = structlog.get_logger()


def _check_readable(path: str, what: str):
    if not os.path.isfile(path):
        raise ConfigError(f"{what} does not exist: {path}")
    if not os.access(path, os.R_OK):
        raise ConfigError(f"{what} is not readable: {path}")


def load_tls_context(config: Config) -> Optional[ssl.SSLContext]:
    """
    Build an SSLContext, or None when TLS options are not in use.

    Raises:
        ConfigError: If a certificate file is missing or unusable
    """
    if not config.tls_enabled and config.protocol != "https":
        return None

    context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)

    mode = config.tls_verification_mode
    if mode == "none":
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    elif mode == "certificate":
        context.check_hostname = False
        context.verify_mode = ssl.CERT_REQUIRED

    try:
        for ca in config.tls_certificate_authorities:
            _check_readable(ca, "certificate authority")
            context.load_verify_locations(cafile=ca)

        if config.tls_certificate:
            _check_readable(config.tls_certificate, "certificate")
            if config.tls_key:
                _check_readable(config.tls_key, "key")
            context.load_cert_chain(config.tls_certificate, config.tls_key or None)
    except ssl.SSLError as e:
        raise ConfigError(f"invalid TLS material: {e}") from e

    if mode == "none":
        logger.warning("tls_verification_disabled")

    logger.debug(
        "tls_context_loaded",
        verification_mode=mode,
        certificate_authorities=len(config.tls_certificate_authorities),
        client_certificate=bool(config.tls_certificate),
    )
    return context
