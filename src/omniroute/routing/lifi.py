"""LI.FI aggregator integration.

Same-chain quotes through the LI.FI REST API.
API docs: https://docs.li.fi/li.fi-api/li.fi-api
"""

import asyncio
import logging
from typing import Optional, Sequence

import httpx

from omniroute.data.chainid import Universe
from omniroute.data.utils import bytes32_to_evm_address
from omniroute.errors import ProviderError
from omniroute.routing.base import (
    ExactInRequest,
    ExactOutRequest,
    Quote,
    QuoteProvider,
    QuoteRequest,
)

logger = logging.getLogger(__name__)

LIFI_API_V1 = "https://li.quest/v1"

# LI.FI's "no route" answer
NO_QUOTE_CODE = 1002

COMMON_PARAMS = {
    "denyExchanges": "openocean",
}


class LiFiProvider(QuoteProvider):
    """LI.FI aggregator provider.

    Supports ExactIn and ExactOut quotes on EVM chains.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = LIFI_API_V1,
        slippage_bps: int = 100,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize LI.FI provider.

        Args:
            api_key: LI.FI API key (optional, raises rate limits)
            base_url: API base URL
            slippage_bps: Slippage tolerance in basis points
            timeout: HTTP timeout in seconds
            transport: Custom httpx transport (tests)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.slippage_bps = slippage_bps
        self.timeout = timeout
        self._transport = transport

    @property
    def name(self) -> str:
        return "lifi"

    def _get_headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["x-lifi-api-key"] = self.api_key
        return headers

    def _build_params(self, request: QuoteRequest) -> tuple[str, dict]:
        user = bytes32_to_evm_address(request.user_address)
        receiver = (
            bytes32_to_evm_address(request.receiver_address)
            if request.receiver_address is not None
            else user
        )
        chain = str(request.chain.chain_id)
        params = {
            "fromChain": chain,
            "toChain": chain,
            "fromToken": bytes32_to_evm_address(request.input_token),
            "toToken": bytes32_to_evm_address(request.output_token),
            "fromAddress": user,
            "toAddress": receiver,
            "slippage": str(self.slippage_bps / 10000),
            **COMMON_PARAMS,
        }

        if isinstance(request, ExactInRequest):
            params["fromAmount"] = str(request.input_amount)
            return "/quote", params
        if isinstance(request, ExactOutRequest):
            params["toAmount"] = str(request.output_amount)
            return "/quote/toAmount", params
        raise TypeError(f"Unknown quote request type: {type(request).__name__}")

    async def _fetch(self, client: httpx.AsyncClient, request: QuoteRequest) -> Optional[Quote]:
        if request.chain.universe != Universe.ETHEREUM:
            return None

        path, params = self._build_params(request)
        response = await client.get(path, params=params)

        if response.status_code == 404:
            try:
                body = response.json()
            except ValueError:
                body = {}
            if body.get("code") == NO_QUOTE_CODE:
                return None

        if response.status_code != 200:
            raise ProviderError(
                self.name,
                f"API error {response.status_code} - {response.text[:200]}",
                status_code=response.status_code,
            )

        data = response.json()
        estimate = data["estimate"]
        return Quote(
            type=request.type,
            input_amount=int(estimate["fromAmount"]),
            output_amount_minimum=int(estimate["toAmountMin"]),
            output_amount_likely=int(estimate["toAmount"]),
            original_response=data,
        )

    async def get_quotes(self, requests: Sequence[QuoteRequest]) -> list[Optional[Quote]]:
        """Get LI.FI quotes, one API call per request."""
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
                logger.warning(f"LI.FI quote error: {type(result).__name__}: {result}")
                quotes.append(None)
            else:
                quotes.append(result)
        return quotes
