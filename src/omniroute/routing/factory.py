"""Factory for creating quote providers and resolvers.

Creates real providers when API keys are available, otherwise
falls back to the simulated provider.
"""

import logging
from typing import Optional

from omniroute.config import Settings, get_settings
from omniroute.routing.base import QuoteProvider
from omniroute.routing.resolver import QuoteResolver

logger = logging.getLogger(__name__)


def create_lifi_provider(settings: Optional[Settings] = None) -> QuoteProvider:
    """Create LI.FI provider.

    LI.FI works without a key (at lower rate limits), so the real provider
    is used whenever dry-run is off.
    """
    settings = settings or get_settings()

    if not settings.dry_run:
        from omniroute.routing.lifi import LiFiProvider
        return LiFiProvider(
            api_key=settings.lifi_api_key or None,
            base_url=settings.lifi_api_url,
            slippage_bps=settings.slippage_bps,
        )

    from omniroute.routing.dry_run import DryRunProvider
    return DryRunProvider(slippage_bps=settings.slippage_bps)


def create_zeroex_provider(settings: Optional[Settings] = None) -> Optional[QuoteProvider]:
    """Create 0x provider, or None when no API key is configured."""
    settings = settings or get_settings()

    if settings.dry_run or not settings.zeroex_api_key:
        return None

    from omniroute.routing.zeroex import ZeroExProvider
    return ZeroExProvider(
        api_key=settings.zeroex_api_key,
        base_url=settings.zeroex_api_url,
        slippage_bps=settings.slippage_bps,
    )


def create_bebop_provider(settings: Optional[Settings] = None) -> Optional[QuoteProvider]:
    """Create Bebop provider, or None when no API key is configured."""
    settings = settings or get_settings()

    if settings.dry_run or not settings.bebop_api_key:
        return None

    from omniroute.routing.bebop import BebopProvider
    return BebopProvider(
        api_key=settings.bebop_api_key,
        base_url=settings.bebop_api_url,
    )


def create_providers(settings: Optional[Settings] = None) -> list[QuoteProvider]:
    """Create every configured provider, in priority order."""
    settings = settings or get_settings()
    providers: list[QuoteProvider] = [create_lifi_provider(settings)]

    zeroex = create_zeroex_provider(settings)
    if zeroex is not None:
        providers.append(zeroex)

    bebop = create_bebop_provider(settings)
    if bebop is not None:
        providers.append(bebop)

    logger.info(f"Configured quote providers: {', '.join(p.name for p in providers)}")
    return providers


def create_resolver(
    providers: Optional[list[QuoteProvider]] = None,
    settings: Optional[Settings] = None,
) -> QuoteResolver:
    """Create a resolver over the given (or configured) providers."""
    settings = settings or get_settings()
    if providers is None:
        providers = create_providers(settings)
    return QuoteResolver(providers, timeout=settings.provider_timeout_seconds)
