"""Bebop router integration.

Same-chain RFQ and solver quotes through the Bebop router API.
API docs: https://docs.bebop.xyz
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

BEBOP_API = "https://api.bebop.xyz/router"

# EVM chain id -> Bebop path segment
CHAIN_NAMES = {
    1: "ethereum",
    42161: "arbitrum",
    10: "optimism",
    8453: "base",
    167000: "taiko",
    56: "bsc",
    80094: "berachain",
    137: "polygon",
    324: "zksync",
    81457: "blast",
    34443: "mode",
    534352: "scroll",
    5330: "superseed",
}

NO_QUOTE_CODE = 1002

COMMON_PARAMS = {
    "approval_type": "Standard",
    "skip_validation": "true",
    "gasless": "false",
}


def _token_entry(tokens: dict, address: str) -> dict:
    # Bebop keys token maps by checksummed address; match case-insensitively
    for key, value in tokens.items():
        if key.lower() == address.lower():
            return value
    raise KeyError(address)


class BebopProvider(QuoteProvider):
    """Bebop router provider.

    Supports ExactIn and ExactOut quotes on the EVM chains in CHAIN_NAMES.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = BEBOP_API,
        source: str = "omniroute",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.source = source
        self.timeout = timeout
        self._transport = transport

    @property
    def name(self) -> str:
        return "bebop"

    def _get_headers(self) -> dict:
        return {"Source-Auth": self.api_key}

    async def _fetch(self, client: httpx.AsyncClient, request: QuoteRequest) -> Optional[Quote]:
        if request.chain.universe != Universe.ETHEREUM:
            return None
        chain_name = CHAIN_NAMES.get(request.chain.chain_id)
        if chain_name is None:
            return None

        input_token = bytes32_to_evm_address(request.input_token)
        output_token = bytes32_to_evm_address(request.output_token)
        taker = bytes32_to_evm_address(request.user_address)
        params = {
            "source": self.source,
            "sell_tokens": input_token,
            "buy_tokens": output_token,
            "taker_address": taker,
            "receiver_address": (
                bytes32_to_evm_address(request.receiver_address)
                if request.receiver_address is not None
                else taker
            ),
            **COMMON_PARAMS,
        }
        if isinstance(request, ExactInRequest):
            params["sell_amounts"] = str(request.input_amount)
        elif isinstance(request, ExactOutRequest):
            params["buy_amounts"] = str(request.output_amount)
        else:
            raise TypeError(f"Unknown quote request type: {type(request).__name__}")

        response = await client.get(f"/{chain_name}/v1/quote", params=params)

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
        routes = data.get("routes") or []
        if not routes:
            return None

        best = routes[0]
        quote = best["quote"]
        sell = _token_entry(quote["sellTokens"], input_token)
        buy = _token_entry(quote["buyTokens"], output_token)
        return Quote(
            type=request.type,
            input_amount=int(sell["amount"]),
            output_amount_minimum=int(buy["minimumAmount"]),
            output_amount_likely=int(buy["amount"]),
            original_response=best,
        )

    async def get_quotes(self, requests: Sequence[QuoteRequest]) -> list[Optional[Quote]]:
        """Get Bebop quotes, one API call per request."""
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
                logger.warning(f"Caught error in fetching Bebop quotes: {type(result).__name__}: {result}")
                quotes.append(None)
            else:
                quotes.append(result)
        return quotes
