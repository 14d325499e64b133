"""Destination resolution: settlement currency into the assets a transfer needs."""

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence, Union

from omniroute.config import Settings, get_settings
from omniroute.data.chaindata import ChainRegistry, get_default_registry
from omniroute.data.chainid import ChainID
from omniroute.data.currency import Currency, CurrencyID
from omniroute.data.utils import address_to_bytes32
from omniroute.errors import LiquidityError
from omniroute.planner.sources import Holding
from omniroute.routing.base import ExactInRequest, Quote, QuoteProvider, QuoteSeriousness
from omniroute.routing.convergence import converge
from omniroute.routing.resolver import QuoteResolver, ResolvedQuote, SelectionMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequiredAsset:
    """An exact amount of a token needed on a chain."""

    chain_id: ChainID
    token_address: bytes
    amount: Decimal

    def __post_init__(self):
        object.__setattr__(self, "token_address", address_to_bytes32(self.token_address))


@dataclass(frozen=True)
class DestinationSwap:
    """A chosen settlement -> destination swap."""

    provider: QuoteProvider
    quote: Quote
    normalized_input: Decimal  # settlement currency spent
    output_amount: Decimal  # destination asset received (minimum)


@dataclass(frozen=True)
class HoldingValuation:
    """A holding's worth in settlement currency, if anyone priced it."""

    holding: Holding
    value: Optional[Decimal]
    provider: Optional[QuoteProvider] = None
    quote: Optional[Quote] = None


@dataclass(frozen=True)
class LiquidationSummary:
    """Total settlement value of a set of holdings."""

    total: Decimal
    valuations: list[HoldingValuation]

    @property
    def unpriced(self) -> list[Holding]:
        return [v.holding for v in self.valuations if v.value is None]


class DestinationResolver:
    """Sizes swaps out of the settlement currency.

    Holds configuration only; calls are independent of each other.
    """

    def __init__(
        self,
        providers: Sequence[QuoteProvider],
        registry: Optional[ChainRegistry] = None,
        canonical_currency: Union[CurrencyID, str, None] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.resolver = QuoteResolver(providers, timeout=settings.provider_timeout_seconds)
        self.registry = registry or get_default_registry()
        self.canonical_currency = CurrencyID.parse(canonical_currency or settings.canonical_currency)
        self.safety_multiplier = settings.safety_multiplier
        self.max_iterations = settings.max_convergence_iterations

    def _settlement(self, chain: ChainID) -> Currency:
        return self.registry.currency_for_id(chain, self.canonical_currency)

    async def determine_destination_swap(
        self,
        chain: ChainID,
        required_token: Union[str, bytes],
        required_amount: Decimal,
        user_address: Union[str, bytes],
        receiver_address: Union[str, bytes, None] = None,
    ) -> Optional[DestinationSwap]:
        """
        Size a settlement -> destination swap that yields at least required_amount.

        A reverse survey (destination -> settlement, never executed) prices the
        destination asset; the implied settlement amount grown by the safety
        multiplier is the first guess, re-quoted until the minimum output covers
        the requirement.

        Returns:
            The swap, or None when the destination already is the settlement currency

        Raises:
            ConfigurationError: chain or token not registered
            LiquidityError: no price, or the iteration cap was hit
        """
        settlement = self._settlement(chain)
        destination = self.registry.currency(chain, required_token)
        required_amount = Decimal(required_amount)

        if destination.currency_id == settlement.currency_id:
            logger.debug(f"{destination.symbol} on {chain} is the settlement currency, no swap needed")
            return None

        user = address_to_bytes32(user_address)
        receiver = address_to_bytes32(receiver_address) if receiver_address is not None else None

        survey = await self.resolver.resolve_one(
            ExactInRequest(
                chain=chain,
                user_address=user,
                input_token=destination.token_address,
                output_token=settlement.token_address,
                input_amount=destination.to_atomic(required_amount),
                seriousness=QuoteSeriousness.PRICE_SURVEY,
            ),
            SelectionMode.MAXIMIZE_OUTPUT,
        )
        if not survey.found:
            raise LiquidityError(f"No price for {destination.symbol} on {chain}")

        implied = settlement.to_decimal(survey.quote.output_amount_likely)
        if implied <= 0:
            raise LiquidityError(f"Survey priced {required_amount} {destination.symbol} on {chain} at zero")

        base = ExactInRequest(
            chain=chain,
            user_address=user,
            input_token=settlement.token_address,
            output_token=destination.token_address,
            input_amount=settlement.to_atomic(implied),
            seriousness=QuoteSeriousness.SERIOUS,
            receiver_address=receiver,
        )

        async def attempt(guess: Decimal) -> tuple[ExactInRequest, ResolvedQuote]:
            request = base.resized(settlement.to_atomic(guess), QuoteSeriousness.SERIOUS)
            return request, await self.resolver.resolve_one(request, SelectionMode.MAXIMIZE_OUTPUT)

        def satisfied(outcome: tuple[ExactInRequest, ResolvedQuote]) -> bool:
            _, resolved = outcome
            if not resolved.found:
                return False
            return destination.to_decimal(resolved.quote.output_amount_minimum) >= required_amount

        converged = await converge(
            implied * self.safety_multiplier,
            attempt,
            satisfied,
            multiplier=self.safety_multiplier,
            max_iterations=self.max_iterations,
            label=f"buying {required_amount} {destination.symbol} on {chain}",
        )
        request, resolved = converged.result
        swap = DestinationSwap(
            provider=resolved.provider,
            quote=resolved.quote,
            normalized_input=settlement.to_decimal(request.input_amount),
            output_amount=destination.to_decimal(resolved.quote.output_amount_minimum),
        )
        logger.info(
            f"Destination swap on {chain}: {swap.normalized_input} {settlement.symbol} -> "
            f"{swap.output_amount} {destination.symbol} via {swap.provider.name}"
        )
        return swap

    async def determine_destination_swaps(
        self,
        requirements: Sequence[RequiredAsset],
        user_address: Union[str, bytes],
        receiver_address: Union[str, bytes, None] = None,
    ) -> list[Optional[DestinationSwap]]:
        """Size several independent destination swaps concurrently.

        Every sizing runs to completion; the first failure (in requirement
        order) is then raised.
        """
        results = await asyncio.gather(
            *(
                self.determine_destination_swap(
                    r.chain_id, r.token_address, r.amount, user_address, receiver_address
                )
                for r in requirements
            ),
            return_exceptions=True,
        )

        swaps: list[Optional[DestinationSwap]] = []
        for requirement, result in zip(requirements, results):
            if isinstance(result, BaseException):
                logger.warning(f"Sizing {requirement.amount} on {requirement.chain_id} failed: {result}")
                raise result
            swaps.append(result)
        return swaps

    async def liquidate_input_holdings(
        self,
        holdings: Sequence[Holding],
        user_address: Union[str, bytes],
    ) -> LiquidationSummary:
        """
        Value holdings in settlement currency for accounting or preview.

        Canonical holdings count at face value. Holdings nobody quotes are
        left out of the total rather than failing the call.
        """
        user = address_to_bytes32(user_address)
        valuations: list[Optional[HoldingValuation]] = [None] * len(holdings)
        pending: list[tuple[int, Currency, ExactInRequest]] = []

        for index, holding in enumerate(holdings):
            currency = self.registry.currency(holding.chain_id, holding.token_address)
            settlement = self._settlement(holding.chain_id)
            if currency.currency_id == settlement.currency_id:
                valuations[index] = HoldingValuation(
                    holding=holding, value=currency.to_decimal(holding.amount)
                )
                continue
            pending.append(
                (
                    index,
                    settlement,
                    ExactInRequest(
                        chain=holding.chain_id,
                        user_address=user,
                        input_token=holding.token_address,
                        output_token=settlement.token_address,
                        input_amount=holding.amount,
                        seriousness=QuoteSeriousness.SERIOUS,
                    ),
                )
            )

        if pending:
            resolved = await self.resolver.resolve(
                [request for _, _, request in pending], SelectionMode.MAXIMIZE_OUTPUT
            )
            for (index, settlement, _), result in zip(pending, resolved):
                holding = holdings[index]
                if not result.found:
                    logger.warning(f"Could not value holding #{index} on {holding.chain_id}")
                    valuations[index] = HoldingValuation(holding=holding, value=None)
                    continue
                valuations[index] = HoldingValuation(
                    holding=holding,
                    value=settlement.to_decimal(result.quote.output_amount_minimum),
                    provider=result.provider,
                    quote=result.quote,
                )

        total = sum((v.value for v in valuations if v.value is not None), Decimal("0"))
        logger.info(f"Valued {len(holdings)} holding(s) at {total} {self.canonical_currency.name}")
        return LiquidationSummary(total=total, valuations=list(valuations))

    async def destination_swap_with_exact_in(
        self,
        chain: ChainID,
        input_amount: Decimal,
        output_token: Union[str, bytes],
        user_address: Union[str, bytes],
        receiver_address: Union[str, bytes, None] = None,
    ) -> DestinationSwap:
        """Spend exactly input_amount of settlement currency on output_token."""
        settlement = self._settlement(chain)
        destination = self.registry.currency(chain, output_token)

        request = ExactInRequest(
            chain=chain,
            user_address=address_to_bytes32(user_address),
            input_token=settlement.token_address,
            output_token=destination.token_address,
            input_amount=settlement.to_atomic(Decimal(input_amount)),
            seriousness=QuoteSeriousness.SERIOUS,
            receiver_address=address_to_bytes32(receiver_address) if receiver_address is not None else None,
        )
        resolved = await self.resolver.resolve_one(request, SelectionMode.MAXIMIZE_OUTPUT)
        if not resolved.found:
            raise LiquidityError(
                f"No quote for {input_amount} {settlement.symbol} -> {destination.symbol} on {chain}"
            )

        return DestinationSwap(
            provider=resolved.provider,
            quote=resolved.quote,
            normalized_input=settlement.to_decimal(request.input_amount),
            output_amount=destination.to_decimal(resolved.quote.output_amount_minimum),
        )
