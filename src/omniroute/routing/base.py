"""Abstract quoting interface for liquidity providers."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional, Sequence, Union

from omniroute.data.chainid import ChainID
from omniroute.data.utils import address_to_bytes32

logger = logging.getLogger(__name__)


def _normalize_addresses(request) -> None:
    for attr in ("user_address", "input_token", "output_token", "receiver_address"):
        value = getattr(request, attr)
        if value is not None:
            object.__setattr__(request, attr, address_to_bytes32(value))


class QuoteType(str, Enum):
    """Which side of the swap is fixed."""
    EXACT_IN = "exact_in"
    EXACT_OUT = "exact_out"


class QuoteSeriousness(str, Enum):
    """Survey quotes are indicative only; serious quotes are executable."""
    PRICE_SURVEY = "price_survey"
    SERIOUS = "serious"


@dataclass(frozen=True)
class ExactInRequest:
    """Sell exactly input_amount of input_token."""

    chain: ChainID
    user_address: bytes
    input_token: bytes
    output_token: bytes
    input_amount: int
    seriousness: QuoteSeriousness = QuoteSeriousness.PRICE_SURVEY
    receiver_address: Optional[bytes] = None

    def __post_init__(self):
        _normalize_addresses(self)

    @property
    def type(self) -> QuoteType:
        return QuoteType.EXACT_IN

    def resized(self, input_amount: int, seriousness: QuoteSeriousness) -> "ExactInRequest":
        """Same chain and token pair, new amount."""
        return replace(self, input_amount=input_amount, seriousness=seriousness)


@dataclass(frozen=True)
class ExactOutRequest:
    """Buy exactly output_amount of output_token."""

    chain: ChainID
    user_address: bytes
    input_token: bytes
    output_token: bytes
    output_amount: int
    seriousness: QuoteSeriousness = QuoteSeriousness.PRICE_SURVEY
    receiver_address: Optional[bytes] = None

    def __post_init__(self):
        _normalize_addresses(self)

    @property
    def type(self) -> QuoteType:
        return QuoteType.EXACT_OUT

    def resized(self, output_amount: int, seriousness: QuoteSeriousness) -> "ExactOutRequest":
        """Same chain and token pair, new amount."""
        return replace(self, output_amount=output_amount, seriousness=seriousness)


QuoteRequest = Union[ExactInRequest, ExactOutRequest]


def request_amount(request: QuoteRequest) -> int:
    """The fixed amount of a request, whichever side it is on."""
    if isinstance(request, ExactInRequest):
        return request.input_amount
    if isinstance(request, ExactOutRequest):
        return request.output_amount
    raise TypeError(f"Unknown quote request type: {type(request).__name__}")


@dataclass(frozen=True)
class Quote:
    """A provider's answer to one QuoteRequest, in atomic units."""

    type: QuoteType
    input_amount: int
    output_amount_minimum: int
    output_amount_likely: int
    original_response: Any = None


class QuoteProvider(ABC):
    """Abstract base class for quote providers.

    One implementation per liquidity venue. Providers only price swaps,
    they never execute them.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        pass

    @abstractmethod
    async def get_quotes(self, requests: Sequence[QuoteRequest]) -> list[Optional[Quote]]:
        """
        Quote a batch of swaps.

        Args:
            requests: Swaps to price

        Returns:
            One entry per request, same order; None where there is no route
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
