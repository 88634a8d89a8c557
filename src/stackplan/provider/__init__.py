"""Provisioning API clients."""

import os
from .base import Provider
from .http import HttpProvider
from ..config.models import ProviderSettings
from ..utils.errors import ConfigError
from ..utils.logging import get_logger

logger = get_logger("provider")


def create_provider(settings: ProviderSettings) -> Provider:
    """
    Build the configured provider.

    Raises:
        ConfigError: If the provider kind is not supported
    """
    if settings.kind != "http":
        raise ConfigError(f"Unsupported provider kind '{settings.kind}'. Supported: http")

    token = os.getenv(settings.token_env) if settings.token_env else None
    if not token:
        logger.debug(f"No API token in ${settings.token_env}, sending unauthenticated requests")
    return HttpProvider(
        base_url=settings.base_url,
        token=token,
        request_timeout=settings.request_timeout,
        poll_interval=settings.poll_interval,
        poll_timeout=settings.poll_timeout,
        max_retries=settings.max_retries,
    )


__all__ = ["Provider", "HttpProvider", "create_provider"]
