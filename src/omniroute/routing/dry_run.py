"""Dry-run provider for simulated quotes."""

import logging
from decimal import ROUND_FLOOR, Decimal
from typing import Optional, Sequence

from omniroute.data.chaindata import ChainRegistry, get_default_registry
from omniroute.data.currency import Currency, CurrencyID
from omniroute.errors import ConfigurationError
from omniroute.routing.base import (
    ExactInRequest,
    ExactOutRequest,
    Quote,
    QuoteProvider,
    QuoteRequest,
    request_amount,
)

logger = logging.getLogger(__name__)


# Simulated market prices in USD
# These are for demonstration purposes only and should not be used for real trading
SIMULATED_PRICES: dict[CurrencyID, Decimal] = {
    CurrencyID.USDC: Decimal("1.00"),
    CurrencyID.USDT: Decimal("1.00"),
    CurrencyID.ETH: Decimal("3900.00"),
    CurrencyID.POL: Decimal("0.62"),
    CurrencyID.AVAX: Decimal("52.00"),
    CurrencyID.BNB: Decimal("710.00"),
    CurrencyID.HYPE: Decimal("25.00"),
    CurrencyID.TRX: Decimal("0.27"),
}


class DryRunProvider(QuoteProvider):
    """
    Simulated provider for testing and dry-run planning.

    Prices swaps from a fixed USD price table with:
    - A flat venue fee
    - Linear price impact against a configurable pool depth
    - A slippage haircut on the minimum output
    """

    def __init__(
        self,
        registry: Optional[ChainRegistry] = None,
        fee_percent: Decimal = Decimal("0.003"),
        pool_depth_usd: Decimal = Decimal("1000000"),
        slippage_bps: int = 50,
        provider_name: str = "dry_run",
    ):
        self.registry = registry or get_default_registry()
        self.fee_percent = fee_percent
        self.pool_depth_usd = pool_depth_usd
        self.slippage_bps = slippage_bps
        self._name = provider_name
        self._prices = SIMULATED_PRICES.copy()

    @property
    def name(self) -> str:
        return self._name

    def set_price(self, currency_id: CurrencyID, price: Decimal) -> None:
        """Set simulated price for a currency."""
        self._prices[currency_id] = price

    def get_price(self, currency_id: CurrencyID) -> Optional[Decimal]:
        """Get simulated price for a currency."""
        return self._prices.get(currency_id)

    def _impact(self, usd_value: Decimal) -> Decimal:
        return min(usd_value / self.pool_depth_usd, Decimal("0.5"))

    def _haircut(self, amount: int) -> int:
        return amount * (10000 - self.slippage_bps) // 10000

    def _currencies(self, request: QuoteRequest) -> Optional[tuple[Currency, Currency]]:
        try:
            return (
                self.registry.currency(request.chain, request.input_token),
                self.registry.currency(request.chain, request.output_token),
            )
        except ConfigurationError:
            return None

    def _quote(self, request: QuoteRequest) -> Optional[Quote]:
        if request_amount(request) <= 0:
            return None
        currencies = self._currencies(request)
        if currencies is None:
            return None
        from_currency, to_currency = currencies

        from_price = self._prices.get(from_currency.currency_id)
        to_price = self._prices.get(to_currency.currency_id)
        if from_price is None or to_price is None:
            return None

        if isinstance(request, ExactInRequest):
            usd_in = from_currency.to_decimal(request.input_amount) * from_price
            usd_out = usd_in * (1 - self.fee_percent) * (1 - self._impact(usd_in))
            likely = to_currency.to_atomic(usd_out / to_price, rounding=ROUND_FLOOR)
            return Quote(
                type=request.type,
                input_amount=request.input_amount,
                output_amount_minimum=self._haircut(likely),
                output_amount_likely=likely,
                original_response={"simulated": True, "usd_in": str(usd_in)},
            )

        if isinstance(request, ExactOutRequest):
            usd_out = to_currency.to_decimal(request.output_amount) * to_price
            usd_in = usd_out / (1 - self.fee_percent) / (1 - self._impact(usd_out))
            input_amount = from_currency.to_atomic(usd_in / from_price)
            return Quote(
                type=request.type,
                input_amount=input_amount,
                output_amount_minimum=request.output_amount,
                output_amount_likely=request.output_amount,
                original_response={"simulated": True, "usd_in": str(usd_in)},
            )

        raise TypeError(f"Unknown quote request type: {type(request).__name__}")

    async def get_quotes(self, requests: Sequence[QuoteRequest]) -> list[Optional[Quote]]:
        """Generate simulated quotes."""
        quotes = [self._quote(request) for request in requests]
        logger.debug(f"Simulated {sum(q is not None for q in quotes)}/{len(quotes)} quote(s)")
        return quotes
