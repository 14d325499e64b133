"""0x Swap API integration.

Uses the allowance-holder flow: /price for surveys, /quote for serious quotes.
API docs: https://0x.org/docs/api
"""

import asyncio
import logging
from typing import Optional, Sequence

import httpx

from omniroute.data.chainid import Universe
from omniroute.data.utils import bytes32_to_evm_address
from omniroute.routing.base import (
    ExactInRequest,
    ExactOutRequest,
    Quote,
    QuoteProvider,
    QuoteRequest,
    QuoteSeriousness,
)

logger = logging.getLogger(__name__)

ZEROEX_API = "https://api.0x.org"


class ZeroExProvider(QuoteProvider):
    """0x aggregator provider.

    ExactIn only; ExactOut requests are answered with None.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = ZEROEX_API,
        slippage_bps: int = 100,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.slippage_bps = slippage_bps
        self.timeout = timeout
        self._transport = transport

    @property
    def name(self) -> str:
        return "0x"

    def _get_headers(self) -> dict:
        return {
            "0x-api-key": self.api_key,
            "0x-version": "v2",
        }

    async def _fetch(self, client: httpx.AsyncClient, request: QuoteRequest) -> Optional[Quote]:
        if request.chain.universe != Universe.ETHEREUM:
            return None
        if isinstance(request, ExactOutRequest):
            return None
        if not isinstance(request, ExactInRequest):
            raise TypeError(f"Unknown quote request type: {type(request).__name__}")

        path = (
            "/swap/allowance-holder/quote"
            if request.seriousness == QuoteSeriousness.SERIOUS
            else "/swap/allowance-holder/price"
        )

        try:
            response = await client.get(
                path,
                params={
                    "chainId": str(request.chain.chain_id),
                    "sellToken": bytes32_to_evm_address(request.input_token),
                    "buyToken": bytes32_to_evm_address(request.output_token),
                    "taker": bytes32_to_evm_address(request.user_address),
                    "sellAmount": str(request.input_amount),
                    "slippageBps": str(self.slippage_bps),
                },
            )
        except httpx.HTTPError as e:
            logger.warning(f"0x request failed: {e}")
            return None

        if response.status_code != 200:
            logger.warning(f"0x API error: {response.status_code} - {response.text[:200]}")
            return None

        data = response.json()
        if not data.get("liquidityAvailable", True):
            return None

        return Quote(
            type=request.type,
            input_amount=int(data["sellAmount"]),
            output_amount_minimum=int(data["minBuyAmount"]),
            output_amount_likely=int(data["buyAmount"]),
            original_response=data,
        )

    async def get_quotes(self, requests: Sequence[QuoteRequest]) -> list[Optional[Quote]]:
        """Get 0x quotes, one API call per request."""
        async with httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._get_headers(),
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            results = await asyncio.gather(
                *(self._fetch(client, request) for request in requests),
                return_exceptions=True,
            )

        quotes: list[Optional[Quote]] = []
        for result in results:
            if isinstance(result, BaseException):
                logger.warning(f"Caught error in fetching 0x quotes: {type(result).__name__}: {result}")
                quotes.append(None)
            else:
                quotes.append(result)
        return quotes
