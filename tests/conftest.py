"""Pytest configuration and fixtures."""

import asyncio
import os
from decimal import ROUND_FLOOR, Decimal
from typing import Optional, Sequence

import pytest

# Set test environment
os.environ["OMNIROUTE_ENVIRONMENT"] = "test"
os.environ["OMNIROUTE_DRY_RUN"] = "true"

from omniroute.config import Settings
from omniroute.data import ChainDatum, ChainID, ChainRegistry, Currency, CurrencyID, Universe
from omniroute.routing.base import (
    ExactInRequest,
    ExactOutRequest,
    Quote,
    QuoteProvider,
    QuoteRequest,
    QuoteSeriousness,
)

CHAIN_A = ChainID(Universe.ETHEREUM, 1)
CHAIN_B = ChainID(Universe.ETHEREUM, 10)

USER = "0x" + "11" * 20

USDC_A = Currency(CurrencyID.USDC, "0x" + "a1" * 20, 6)
USDT_A = Currency(CurrencyID.USDT, "0x" + "b1" * 20, 6)
ETH_A = Currency(CurrencyID.ETH, "0x" + "e1" * 20, 18, is_gas_token=True)
USDC_B = Currency(CurrencyID.USDC, "0x" + "a2" * 20, 6)
ETH_B = Currency(CurrencyID.ETH, "0x" + "e2" * 20, 18, is_gas_token=True)


def units(currency: Currency, amount) -> int:
    """Whole units to atomic units."""
    return currency.to_atomic(Decimal(str(amount)))


class RateProvider(QuoteProvider):
    """Prices swaps at fixed whole-unit rates and records every batch.

    rates maps (input CurrencyID, output CurrencyID) to output per input.
    serious_factor scales serious quotes relative to surveys.
    impact reduces the rate linearly with input size (whole units).
    """

    def __init__(
        self,
        registry: ChainRegistry,
        rates: dict,
        provider_name: str = "rate",
        serious_factor: Decimal = Decimal("1"),
        impact: Decimal = Decimal("0"),
        skip_chains: Sequence[ChainID] = (),
    ):
        self.registry = registry
        self.rates = rates
        self._name = provider_name
        self.serious_factor = serious_factor
        self.impact = impact
        self.skip_chains = list(skip_chains)
        self.batches: list[list[QuoteRequest]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def requests(self) -> list[QuoteRequest]:
        return [r for batch in self.batches for r in batch]

    def _rate(self, request: QuoteRequest, whole_in: Decimal) -> Optional[Decimal]:
        src = self.registry.currency(request.chain, request.input_token)
        dst = self.registry.currency(request.chain, request.output_token)
        rate = self.rates.get((src.currency_id, dst.currency_id))
        if rate is None:
            return None
        rate = rate * (1 - self.impact * whole_in)
        if request.seriousness == QuoteSeriousness.SERIOUS:
            rate = rate * self.serious_factor
        return rate

    def _quote(self, request: QuoteRequest) -> Optional[Quote]:
        if request.chain in self.skip_chains:
            return None
        src = self.registry.currency(request.chain, request.input_token)
        dst = self.registry.currency(request.chain, request.output_token)
        if isinstance(request, ExactInRequest):
            whole_in = src.to_decimal(request.input_amount)
            rate = self._rate(request, whole_in)
            if rate is None:
                return None
            out = dst.to_atomic(whole_in * rate, rounding=ROUND_FLOOR)
            return Quote(request.type, request.input_amount, out, out, {"rate": str(rate)})
        if isinstance(request, ExactOutRequest):
            rate = self._rate(request, Decimal("0"))
            if rate is None:
                return None
            whole_in = dst.to_decimal(request.output_amount) / rate
            return Quote(request.type, src.to_atomic(whole_in), request.output_amount, request.output_amount)
        raise TypeError(type(request).__name__)

    async def get_quotes(self, requests: Sequence[QuoteRequest]) -> list[Optional[Quote]]:
        self.batches.append(list(requests))
        return [self._quote(r) for r in requests]


class FixedProvider(QuoteProvider):
    """Answers every request with the same quote (or None)."""

    def __init__(self, provider_name: str, quote: Optional[Quote], delay: float = 0.0):
        self._name = provider_name
        self.quote = quote
        self.delay = delay
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    async def get_quotes(self, requests: Sequence[QuoteRequest]) -> list[Optional[Quote]]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return [self.quote for _ in requests]


class FailingProvider(QuoteProvider):
    """Raises on every call."""

    def __init__(self, provider_name: str = "broken"):
        self._name = provider_name
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    async def get_quotes(self, requests: Sequence[QuoteRequest]) -> list[Optional[Quote]]:
        self.calls += 1
        raise ConnectionError("upstream unavailable")


@pytest.fixture
def settings() -> Settings:
    """Deterministic planner settings."""
    return Settings(
        safety_multiplier=Decimal("1.025"),
        max_convergence_iterations=16,
        provider_timeout_seconds=2.0,
        canonical_currency="USDC",
        dry_run=True,
    )


@pytest.fixture
def registry() -> ChainRegistry:
    """Two-chain registry with USDC as the settlement currency on both."""
    return ChainRegistry(
        [
            ChainDatum(chain_id=CHAIN_A, currencies=[USDC_A, USDT_A, ETH_A]),
            ChainDatum(chain_id=CHAIN_B, currencies=[USDC_B, ETH_B]),
        ]
    )


@pytest.fixture
def survey_request() -> ExactInRequest:
    """A survey selling 1 ETH for USDC on chain A."""
    return ExactInRequest(
        chain=CHAIN_A,
        user_address=bytes.fromhex("11" * 20),
        input_token=ETH_A.token_address,
        output_token=USDC_A.token_address,
        input_amount=units(ETH_A, 1),
    )
