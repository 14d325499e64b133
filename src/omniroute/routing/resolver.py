"""Fans quote batches out to every provider and keeps the best answer."""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from omniroute.routing.base import Quote, QuoteProvider, QuoteRequest

logger = logging.getLogger(__name__)


class SelectionMode(str, Enum):
    """How to rank competing quotes for the same request."""
    MAXIMIZE_OUTPUT = "maximize_output"
    MINIMIZE_INPUT = "minimize_input"


@dataclass(frozen=True)
class ResolvedQuote:
    """The winning quote for one request, or an empty slot."""

    provider: Optional[QuoteProvider] = None
    quote: Optional[Quote] = None

    @property
    def found(self) -> bool:
        return self.quote is not None


def _is_better(candidate: Quote, incumbent: Quote, mode: SelectionMode) -> bool:
    # Strict comparisons: ties stay with the earlier provider
    if mode == SelectionMode.MAXIMIZE_OUTPUT:
        return candidate.output_amount_minimum > incumbent.output_amount_minimum
    if mode == SelectionMode.MINIMIZE_INPUT:
        return candidate.input_amount < incumbent.input_amount
    raise ValueError(f"Unknown selection mode: {mode}")


class QuoteResolver:
    """Aggregates quotes from multiple providers to find the best route."""

    def __init__(
        self,
        providers: Optional[Sequence[QuoteProvider]] = None,
        timeout: Optional[float] = None,
    ):
        self.providers: list[QuoteProvider] = list(providers or [])
        self.timeout = timeout

    def add_provider(self, provider: QuoteProvider) -> None:
        """Add a quote provider."""
        self.providers.append(provider)

    async def _query_provider(
        self,
        provider: QuoteProvider,
        requests: Sequence[QuoteRequest],
    ) -> list[Optional[Quote]]:
        """One provider's answers; a failing provider answers nothing."""
        empty: list[Optional[Quote]] = [None] * len(requests)
        try:
            call = provider.get_quotes(requests)
            if self.timeout:
                quotes = await asyncio.wait_for(call, timeout=self.timeout)
            else:
                quotes = await call
        except asyncio.TimeoutError:
            logger.warning(f"{provider.name} timed out after {self.timeout}s on {len(requests)} request(s)")
            return empty
        except Exception as e:
            logger.warning(f"{provider.name} quote batch failed: {type(e).__name__}: {e}")
            return empty

        if quotes is None or len(quotes) != len(requests):
            logger.warning(
                f"{provider.name} returned {0 if quotes is None else len(quotes)} "
                f"answers for {len(requests)} requests, discarding"
            )
            return empty

        answered = sum(1 for q in quotes if q is not None)
        logger.debug(f"{provider.name} answered {answered}/{len(requests)} request(s)")
        return list(quotes)

    async def resolve(
        self,
        requests: Sequence[QuoteRequest],
        mode: SelectionMode = SelectionMode.MAXIMIZE_OUTPUT,
    ) -> list[ResolvedQuote]:
        """
        Query every provider concurrently and pick a winner per request.

        Args:
            requests: Batch of quote requests
            mode: Ranking policy among providers that answered

        Returns:
            One ResolvedQuote per request, same order
        """
        if not requests:
            return []

        if not self.providers:
            logger.warning("No quote providers configured")
            return [ResolvedQuote() for _ in requests]

        logger.debug(f"Resolving {len(requests)} request(s) across {len(self.providers)} provider(s) ({mode.value})")

        per_provider = await asyncio.gather(
            *(self._query_provider(provider, requests) for provider in self.providers)
        )

        resolved = []
        for index in range(len(requests)):
            best_provider: Optional[QuoteProvider] = None
            best_quote: Optional[Quote] = None
            for provider, quotes in zip(self.providers, per_provider):
                quote = quotes[index]
                if quote is None:
                    continue
                if best_quote is None or _is_better(quote, best_quote, mode):
                    best_provider, best_quote = provider, quote
            resolved.append(ResolvedQuote(provider=best_provider, quote=best_quote))

        found = sum(1 for r in resolved if r.found)
        if found < len(resolved):
            logger.info(f"No quote for {len(resolved) - found} of {len(resolved)} request(s)")
        return resolved

    async def resolve_one(
        self,
        request: QuoteRequest,
        mode: SelectionMode = SelectionMode.MAXIMIZE_OUTPUT,
    ) -> ResolvedQuote:
        """Resolve a single request."""
        (result,) = await self.resolve([request], mode)
        return result
