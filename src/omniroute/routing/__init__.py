"""Routing module for quote aggregation.

Providers:
- LI.FI: EVM aggregator (ExactIn and ExactOut)
- 0x: EVM aggregator (ExactIn)
- Bebop: EVM RFQ router (ExactIn and ExactOut)
- Dry run: simulated prices for testing
"""

from omniroute.routing.base import (
    ExactInRequest,
    ExactOutRequest,
    Quote,
    QuoteProvider,
    QuoteRequest,
    QuoteSeriousness,
    QuoteType,
    request_amount,
)
from omniroute.routing.convergence import ConvergenceResult, converge
from omniroute.routing.dry_run import DryRunProvider
from omniroute.routing.factory import (
    create_bebop_provider,
    create_lifi_provider,
    create_providers,
    create_resolver,
    create_zeroex_provider,
)
from omniroute.routing.resolver import QuoteResolver, ResolvedQuote, SelectionMode

__all__ = [
    # Base classes
    "Quote",
    "QuoteType",
    "QuoteSeriousness",
    "QuoteRequest",
    "ExactInRequest",
    "ExactOutRequest",
    "QuoteProvider",
    "request_amount",
    # Resolution
    "QuoteResolver",
    "ResolvedQuote",
    "SelectionMode",
    "ConvergenceResult",
    "converge",
    # Providers
    "DryRunProvider",
    # Factory functions
    "create_providers",
    "create_resolver",
    "create_lifi_provider",
    "create_bebop_provider",
    "create_zeroex_provider",
]
