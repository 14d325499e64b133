"""Source selection: which holdings to spend to raise a settlement amount.

Flow:
1. Canonical holdings at the head of the priority list that already cover
   the target are used as-is, without asking any provider.
2. Otherwise every convertible holding gets a survey quote for its full
   balance, all providers racing concurrently.
3. Holdings are walked in priority order. Canonical holdings are spent
   directly; convertible holdings fill their slots cheapest-to-collect
   first, then highest value first.
4. A holding worth more than what is still needed is re-quoted for a
   smaller amount until the output just covers the remainder.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Sequence, Union

from omniroute.config import Settings, get_settings
from omniroute.data.chaindata import ChainRegistry, get_default_registry
from omniroute.data.chainid import ChainID
from omniroute.data.currency import Currency, CurrencyID
from omniroute.data.fees import FeeTable
from omniroute.data.utils import address_to_bytes32
from omniroute.errors import InsufficientLiquidityError
from omniroute.routing.base import ExactInRequest, Quote, QuoteProvider, QuoteSeriousness
from omniroute.routing.convergence import converge
from omniroute.routing.resolver import QuoteResolver, ResolvedQuote, SelectionMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Holding:
    """A user's balance of one token on one chain."""

    chain_id: ChainID
    token_address: bytes
    amount: int  # atomic units
    value: Optional[Decimal] = None  # valuation score, higher spends first

    def __post_init__(self):
        object.__setattr__(self, "token_address", address_to_bytes32(self.token_address))


@dataclass(frozen=True)
class DirectConsumption:
    """Settlement currency spent as-is."""

    holding: Holding
    priority: int
    currency: Currency
    amount: Decimal

    @property
    def settlement_amount(self) -> Decimal:
        return self.amount

    @property
    def atomic_amount(self) -> int:
        return min(self.currency.to_atomic(self.amount), self.holding.amount)


@dataclass(frozen=True)
class ConvertedConsumption:
    """A holding swapped into settlement currency through a provider."""

    holding: Holding
    priority: int
    currency: Currency
    provider: QuoteProvider
    quote: Quote
    input_amount: Decimal
    output_amount: Decimal

    @property
    def settlement_amount(self) -> Decimal:
        return self.output_amount

    @property
    def atomic_amount(self) -> int:
        return min(self.quote.input_amount, self.holding.amount)


ConsumptionRecord = Union[DirectConsumption, ConvertedConsumption]


def plan_total(records: Sequence[ConsumptionRecord]) -> Decimal:
    """Settlement-currency total a plan delivers."""
    return sum((r.settlement_amount for r in records), Decimal("0"))


@dataclass
class _Source:
    priority: int
    holding: Holding
    currency: Currency
    settlement: Currency  # the canonical currency on the holding's chain
    fee: Decimal = Decimal("0")
    survey_request: Optional[ExactInRequest] = field(default=None, repr=False)

    @property
    def is_canonical(self) -> bool:
        return self.currency.currency_id == self.settlement.currency_id

    @property
    def balance(self) -> Decimal:
        return self.currency.to_decimal(self.holding.amount)

    def __str__(self) -> str:
        return f"#{self.priority} {self.currency.symbol}@{self.holding.chain_id}"


class SourceSelector:
    """Plans which holdings to consume to raise a settlement-currency target.

    Holds configuration only; every select() call is independent.
    """

    def __init__(
        self,
        providers: Sequence[QuoteProvider],
        registry: Optional[ChainRegistry] = None,
        fee_table: Optional[FeeTable] = None,
        canonical_currency: Union[CurrencyID, str, None] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.resolver = QuoteResolver(providers, timeout=settings.provider_timeout_seconds)
        self.registry = registry or get_default_registry()
        self.fee_table = fee_table or FeeTable()
        self.canonical_currency = CurrencyID.parse(canonical_currency or settings.canonical_currency)
        self.safety_multiplier = settings.safety_multiplier
        self.max_iterations = settings.max_convergence_iterations

    def _describe(self, priority: int, holding: Holding, user_address: bytes) -> _Source:
        currency = self.registry.currency(holding.chain_id, holding.token_address)
        settlement = self.registry.currency_for_id(holding.chain_id, self.canonical_currency)
        source = _Source(
            priority=priority,
            holding=holding,
            currency=currency,
            settlement=settlement,
        )
        if not source.is_canonical:
            source.fee = self.fee_table.fee_for(holding.chain_id, holding.token_address)
            source.survey_request = ExactInRequest(
                chain=holding.chain_id,
                user_address=user_address,
                input_token=holding.token_address,
                output_token=settlement.token_address,
                input_amount=holding.amount,
                seriousness=QuoteSeriousness.PRICE_SURVEY,
            )
        return source

    def _canonical_prefix(
        self, sources: list[_Source], target: Decimal
    ) -> Optional[list[ConsumptionRecord]]:
        """Plan from leading canonical holdings alone, if they suffice."""
        records: list[ConsumptionRecord] = []
        remaining = target
        for source in sources:
            if not source.is_canonical:
                return None
            take = min(remaining, source.balance)
            if take > 0:
                records.append(
                    DirectConsumption(
                        holding=source.holding,
                        priority=source.priority,
                        currency=source.currency,
                        amount=take,
                    )
                )
                remaining -= take
            if remaining <= 0:
                return records
        return None

    @staticmethod
    def _walk_order(sources: list[_Source], convertible: list[_Source]) -> list[_Source]:
        """Canonical holdings keep their slots; convertible slots are refilled in ranked order."""
        ranked = iter(convertible)
        return [s if s.is_canonical else next(ranked) for s in sources]

    async def _resize(
        self,
        source: _Source,
        survey: Quote,
        remaining: Decimal,
    ) -> ConvertedConsumption:
        """Re-quote a holding for just enough input to cover remaining."""
        survey_input = source.currency.to_decimal(survey.input_amount)
        survey_output = source.settlement.to_decimal(survey.output_amount_minimum)
        initial = remaining * (survey_input / survey_output) * self.safety_multiplier

        async def attempt(guess: Decimal) -> tuple[ExactInRequest, ResolvedQuote]:
            amount = min(source.currency.to_atomic(guess), source.holding.amount)
            request = source.survey_request.resized(amount, QuoteSeriousness.SERIOUS)
            return request, await self.resolver.resolve_one(request, SelectionMode.MAXIMIZE_OUTPUT)

        def satisfied(outcome: tuple[ExactInRequest, ResolvedQuote]) -> bool:
            _, resolved = outcome
            if not resolved.found:
                return False
            return source.settlement.to_decimal(resolved.quote.output_amount_minimum) >= remaining

        converged = await converge(
            initial,
            attempt,
            satisfied,
            multiplier=self.safety_multiplier,
            max_iterations=self.max_iterations,
            cap=source.balance,
            label=f"sizing {source}",
        )
        request, resolved = converged.result
        output = source.settlement.to_decimal(resolved.quote.output_amount_minimum)
        logger.info(
            f"Partially consuming {source}: {source.currency.to_decimal(request.input_amount)} "
            f"of {source.balance} -> {output} via {resolved.provider.name} "
            f"({converged.iterations} attempt(s))"
        )
        return ConvertedConsumption(
            holding=source.holding,
            priority=source.priority,
            currency=source.currency,
            provider=resolved.provider,
            quote=resolved.quote,
            input_amount=source.currency.to_decimal(request.input_amount),
            output_amount=output,
        )

    async def select(
        self,
        holdings: Sequence[Holding],
        target: Decimal,
        user_address: Union[str, bytes],
    ) -> list[ConsumptionRecord]:
        """
        Build a plan covering target units of the settlement currency.

        Args:
            holdings: Holdings in caller priority order
            target: Settlement-currency amount to raise
            user_address: Owner of the holdings (quoted as taker)

        Returns:
            Consumption records in the order they were chosen

        Raises:
            ConfigurationError: a holding's chain or token is not registered
            LiquidityError: the holdings cannot cover the target
        """
        target = Decimal(target)
        if target <= 0:
            return []

        user = address_to_bytes32(user_address)
        sources = [self._describe(i, h, user) for i, h in enumerate(holdings)]

        fast = self._canonical_prefix(sources, target)
        if fast is not None:
            logger.info(f"Target {target} covered by {len(fast)} leading canonical holding(s)")
            return fast

        # Stable: equal fee and value keep caller priority
        convertible = sorted(
            (s for s in sources if not s.is_canonical),
            key=lambda s: (s.fee, -(s.holding.value or Decimal("0"))),
        )

        surveys: dict[int, ResolvedQuote] = {}
        if convertible:
            resolved = await self.resolver.resolve(
                [s.survey_request for s in convertible],
                SelectionMode.MAXIMIZE_OUTPUT,
            )
            surveys = {s.priority: r for s, r in zip(convertible, resolved)}

        records: list[ConsumptionRecord] = []
        remaining = target

        for source in self._walk_order(sources, convertible):
            if remaining <= 0:
                break

            if source.is_canonical:
                take = min(remaining, source.balance)
                if take <= 0:
                    continue
                records.append(
                    DirectConsumption(
                        holding=source.holding,
                        priority=source.priority,
                        currency=source.currency,
                        amount=take,
                    )
                )
                remaining -= take
                logger.debug(f"Using {take} directly from {source}, {remaining} left")
                continue

            survey = surveys[source.priority]
            if not survey.found:
                logger.warning(f"No provider quoted {source}, skipping")
                continue

            output = source.settlement.to_decimal(survey.quote.output_amount_minimum)
            if output <= 0:
                logger.warning(f"Survey for {source} yields nothing, skipping")
                continue

            if output <= remaining:
                records.append(
                    ConvertedConsumption(
                        holding=source.holding,
                        priority=source.priority,
                        currency=source.currency,
                        provider=survey.provider,
                        quote=survey.quote,
                        input_amount=source.currency.to_decimal(
                            min(survey.quote.input_amount, source.holding.amount)
                        ),
                        output_amount=output,
                    )
                )
                remaining -= output
                logger.debug(f"Liquidating all of {source} for {output}, {remaining} left")
                continue

            record = await self._resize(source, survey.quote, remaining)
            records.append(record)
            remaining -= record.output_amount

        if remaining > 0:
            logger.warning(f"Holdings fall short of {target} by {remaining}")
            raise InsufficientLiquidityError(target, remaining)

        logger.info(
            f"Planned {len(records)} source(s) delivering {plan_total(records)} "
            f"{self.canonical_currency.name} for a {target} target"
        )
        return records


async def auto_select_sources(
    holdings: Sequence[Holding],
    target: Decimal,
    providers: Sequence[QuoteProvider],
    user_address: Union[str, bytes],
    **kwargs,
) -> list[ConsumptionRecord]:
    """One-shot source selection; kwargs go to SourceSelector."""
    selector = SourceSelector(providers, **kwargs)
    return await selector.select(holdings, target, user_address)
