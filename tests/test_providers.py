"""Tests for concrete quote providers and the provider factory."""

import json
import logging
from decimal import Decimal

import httpx
import pytest

from omniroute.config import Settings
from omniroute.data import ChainID, CurrencyID, Universe, get_default_registry
from omniroute.routing.bebop import BebopProvider
from omniroute.routing.base import ExactInRequest, ExactOutRequest, QuoteSeriousness, QuoteType
from omniroute.routing.dry_run import DryRunProvider
from omniroute.routing.factory import (
    create_bebop_provider,
    create_lifi_provider,
    create_providers,
    create_resolver,
    create_zeroex_provider,
)
from omniroute.routing.lifi import LiFiProvider
from omniroute.routing.zeroex import ZeroExProvider

from conftest import CHAIN_A, ETH_A, USDC_A, USER, units

FUEL = ChainID(Universe.FUEL, 9889)


def exact_in(amount: int = 10**18, **kwargs) -> ExactInRequest:
    return ExactInRequest(
        chain=kwargs.pop("chain", CHAIN_A),
        user_address=USER,
        input_token=ETH_A.token_address,
        output_token=USDC_A.token_address,
        input_amount=amount,
        **kwargs,
    )


def exact_out(amount: int = 2000 * 10**6) -> ExactOutRequest:
    return ExactOutRequest(
        chain=CHAIN_A,
        user_address=USER,
        input_token=ETH_A.token_address,
        output_token=USDC_A.token_address,
        output_amount=amount,
    )


class Recorder:
    """httpx handler that records requests and replies via a callback."""

    def __init__(self, reply):
        self.reply = reply
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.reply(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def lifi_estimate(request: httpx.Request) -> httpx.Response:
    params = request.url.params
    from_amount = params.get("fromAmount") or "1000000000000000000"
    return httpx.Response(
        200,
        json={
            "estimate": {
                "fromAmount": from_amount,
                "toAmountMin": "1980000000",
                "toAmount": "2000000000",
            }
        },
    )


class TestLiFiProvider:
    """Tests for LiFiProvider."""

    @pytest.mark.asyncio
    async def test_exact_in_quote(self):
        handler = Recorder(lifi_estimate)
        provider = LiFiProvider(slippage_bps=50, transport=handler.transport)

        (quote,) = await provider.get_quotes([exact_in()])

        assert quote.type == QuoteType.EXACT_IN
        assert quote.input_amount == 10**18
        assert quote.output_amount_minimum == 1_980_000_000
        assert quote.output_amount_likely == 2_000_000_000

        (sent,) = handler.requests
        assert sent.url.path == "/v1/quote"
        params = sent.url.params
        assert params["fromChain"] == params["toChain"] == "1"
        assert params["fromToken"].lower() == "0x" + "e1" * 20
        assert params["toToken"].lower() == "0x" + "a1" * 20
        assert params["fromAddress"] == params["toAddress"]
        assert params["fromAmount"] == str(10**18)
        assert params["slippage"] == "0.005"
        assert params["denyExchanges"] == "openocean"

    @pytest.mark.asyncio
    async def test_exact_out_uses_to_amount_endpoint(self):
        handler = Recorder(lifi_estimate)
        provider = LiFiProvider(transport=handler.transport)

        (quote,) = await provider.get_quotes([exact_out()])

        assert quote.type == QuoteType.EXACT_OUT
        (sent,) = handler.requests
        assert sent.url.path == "/v1/quote/toAmount"
        assert sent.url.params["toAmount"] == str(2000 * 10**6)

    @pytest.mark.asyncio
    async def test_receiver_address(self):
        handler = Recorder(lifi_estimate)
        provider = LiFiProvider(transport=handler.transport)

        await provider.get_quotes([exact_in(receiver_address="0x" + "22" * 20)])

        assert handler.requests[0].url.params["toAddress"].lower() == "0x" + "22" * 20

    @pytest.mark.asyncio
    async def test_api_key_header(self):
        handler = Recorder(lifi_estimate)
        provider = LiFiProvider(api_key="secret", transport=handler.transport)

        await provider.get_quotes([exact_in()])

        assert handler.requests[0].headers["x-lifi-api-key"] == "secret"

    @pytest.mark.asyncio
    async def test_no_route_is_none(self):
        handler = Recorder(lambda r: httpx.Response(404, json={"code": 1002, "message": "No available quotes"}))
        provider = LiFiProvider(transport=handler.transport)

        assert await provider.get_quotes([exact_in()]) == [None]

    @pytest.mark.asyncio
    async def test_server_error_only_affects_its_request(self, caplog):
        def reply(request: httpx.Request) -> httpx.Response:
            if request.url.params["fromAmount"] == "1":
                return httpx.Response(500, text="boom")
            return lifi_estimate(request)

        provider = LiFiProvider(transport=Recorder(reply).transport)

        with caplog.at_level(logging.WARNING, logger="omniroute.routing.lifi"):
            quotes = await provider.get_quotes([exact_in(1), exact_in(10**18)])

        assert quotes[0] is None
        assert quotes[1].input_amount == 10**18
        (record,) = [r for r in caplog.records if r.name == "omniroute.routing.lifi"]
        assert record.levelno == logging.WARNING
        assert "ProviderError" in record.getMessage()

    @pytest.mark.asyncio
    async def test_non_evm_chain_skips_http(self):
        handler = Recorder(lifi_estimate)
        provider = LiFiProvider(transport=handler.transport)

        assert await provider.get_quotes([exact_in(chain=FUEL)]) == [None]
        assert handler.requests == []


def zeroex_reply(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "liquidityAvailable": True,
            "sellAmount": request.url.params["sellAmount"],
            "minBuyAmount": "1970000000",
            "buyAmount": "1990000000",
        },
    )


class TestZeroExProvider:
    """Tests for ZeroExProvider."""

    @pytest.mark.asyncio
    async def test_survey_uses_price_endpoint(self):
        handler = Recorder(zeroex_reply)
        provider = ZeroExProvider(api_key="key", transport=handler.transport)

        (quote,) = await provider.get_quotes([exact_in()])

        assert quote.output_amount_minimum == 1_970_000_000
        assert quote.output_amount_likely == 1_990_000_000
        (sent,) = handler.requests
        assert sent.url.path == "/swap/allowance-holder/price"
        assert sent.headers["0x-api-key"] == "key"
        assert sent.headers["0x-version"] == "v2"
        assert sent.url.params["chainId"] == "1"
        assert sent.url.params["slippageBps"] == "100"

    @pytest.mark.asyncio
    async def test_serious_uses_quote_endpoint(self):
        handler = Recorder(zeroex_reply)
        provider = ZeroExProvider(api_key="key", transport=handler.transport)

        await provider.get_quotes([exact_in(seriousness=QuoteSeriousness.SERIOUS)])

        assert handler.requests[0].url.path == "/swap/allowance-holder/quote"

    @pytest.mark.asyncio
    async def test_exact_out_unsupported(self):
        handler = Recorder(zeroex_reply)
        provider = ZeroExProvider(api_key="key", transport=handler.transport)

        assert await provider.get_quotes([exact_out()]) == [None]
        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_no_liquidity(self):
        handler = Recorder(lambda r: httpx.Response(200, json={"liquidityAvailable": False}))
        provider = ZeroExProvider(api_key="key", transport=handler.transport)

        assert await provider.get_quotes([exact_in()]) == [None]

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        handler = Recorder(lambda r: httpx.Response(400, text=json.dumps({"name": "INPUT_INVALID"})))
        provider = ZeroExProvider(api_key="key", transport=handler.transport)

        assert await provider.get_quotes([exact_in()]) == [None]

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def reply(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        provider = ZeroExProvider(api_key="key", transport=Recorder(reply).transport)

        assert await provider.get_quotes([exact_in()]) == [None]

    @pytest.mark.asyncio
    async def test_malformed_response_logged_as_warning(self, caplog):
        handler = Recorder(lambda r: httpx.Response(200, json={"liquidityAvailable": True}))
        provider = ZeroExProvider(api_key="key", transport=handler.transport)

        with caplog.at_level(logging.WARNING, logger="omniroute.routing.zeroex"):
            assert await provider.get_quotes([exact_in()]) == [None]

        (record,) = [r for r in caplog.records if r.name == "omniroute.routing.zeroex"]
        assert record.levelno == logging.WARNING
        assert "KeyError" in record.getMessage()


def bebop_reply(request: httpx.Request) -> httpx.Response:
    params = request.url.params
    sell = "0x" + "E1" * 20
    buy = "0x" + "A1" * 20
    return httpx.Response(
        200,
        json={
            "routes": [
                {
                    "type": "PMMv3",
                    "quote": {
                        "sellTokens": {sell: {"amount": params.get("sell_amounts") or "1000000000000000000"}},
                        "buyTokens": {
                            buy: {
                                "amount": params.get("buy_amounts") or "1995000000",
                                "minimumAmount": params.get("buy_amounts") or "1985000000",
                            }
                        },
                    },
                }
            ]
        },
    )


class TestBebopProvider:
    """Tests for BebopProvider."""

    @pytest.mark.asyncio
    async def test_exact_in_quote(self):
        handler = Recorder(bebop_reply)
        provider = BebopProvider(api_key="key", transport=handler.transport)

        (quote,) = await provider.get_quotes([exact_in()])

        assert quote.input_amount == 10**18
        assert quote.output_amount_minimum == 1_985_000_000
        assert quote.output_amount_likely == 1_995_000_000
        (sent,) = handler.requests
        assert sent.url.path == "/router/ethereum/v1/quote"
        assert sent.headers["Source-Auth"] == "key"
        assert sent.url.params["sell_amounts"] == str(10**18)
        assert sent.url.params["approval_type"] == "Standard"
        assert sent.url.params["receiver_address"] == sent.url.params["taker_address"]

    @pytest.mark.asyncio
    async def test_exact_out_quote(self):
        handler = Recorder(bebop_reply)
        provider = BebopProvider(api_key="key", transport=handler.transport)

        (quote,) = await provider.get_quotes([exact_out()])

        assert quote.type == QuoteType.EXACT_OUT
        assert quote.output_amount_minimum == 2000 * 10**6
        assert handler.requests[0].url.params["buy_amounts"] == str(2000 * 10**6)

    @pytest.mark.asyncio
    async def test_unsupported_chain_skips_http(self):
        handler = Recorder(bebop_reply)
        provider = BebopProvider(api_key="key", transport=handler.transport)

        quotes = await provider.get_quotes(
            [exact_in(chain=ChainID(Universe.ETHEREUM, 43114)), exact_in(chain=FUEL)]
        )

        assert quotes == [None, None]
        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_no_route(self):
        provider = BebopProvider(
            api_key="key",
            transport=Recorder(lambda r: httpx.Response(404, json={"code": 1002})).transport,
        )
        empty = BebopProvider(
            api_key="key",
            transport=Recorder(lambda r: httpx.Response(200, json={"routes": []})).transport,
        )

        assert await provider.get_quotes([exact_in()]) == [None]
        assert await empty.get_quotes([exact_in()]) == [None]

    @pytest.mark.asyncio
    async def test_server_error_is_isolated(self, caplog):
        provider = BebopProvider(
            api_key="key",
            transport=Recorder(lambda r: httpx.Response(502, text="bad gateway")).transport,
        )

        with caplog.at_level(logging.WARNING, logger="omniroute.routing.bebop"):
            assert await provider.get_quotes([exact_in()]) == [None]

        (record,) = [r for r in caplog.records if r.name == "omniroute.routing.bebop"]
        assert record.levelno == logging.WARNING


class TestDryRunProvider:
    """Tests for the simulated provider."""

    @pytest.fixture
    def mainnet(self):
        registry = get_default_registry()
        chain = ChainID(Universe.ETHEREUM, 1)
        usdc = registry.currency_for_id(chain, CurrencyID.USDC)
        eth = registry.currency_for_id(chain, CurrencyID.ETH)
        return chain, usdc, eth

    @pytest.mark.asyncio
    async def test_exact_in(self, mainnet):
        chain, usdc, eth = mainnet
        provider = DryRunProvider()
        request = ExactInRequest(
            chain=chain,
            user_address=USER,
            input_token=eth.token_address,
            output_token=usdc.token_address,
            input_amount=units(eth, 1),
        )

        (quote,) = await provider.get_quotes([request])

        likely = usdc.to_decimal(quote.output_amount_likely)
        assert Decimal("3800") < likely < Decimal("3900")
        assert quote.output_amount_minimum < quote.output_amount_likely
        assert quote.input_amount == request.input_amount

    @pytest.mark.asyncio
    async def test_exact_out(self, mainnet):
        chain, usdc, eth = mainnet
        provider = DryRunProvider()
        request = ExactOutRequest(
            chain=chain,
            user_address=USER,
            input_token=usdc.token_address,
            output_token=eth.token_address,
            output_amount=units(eth, 1),
        )

        (quote,) = await provider.get_quotes([request])

        assert quote.output_amount_minimum == units(eth, 1)
        assert usdc.to_decimal(quote.input_amount) > Decimal("3900")

    @pytest.mark.asyncio
    async def test_set_price(self, mainnet):
        chain, usdc, eth = mainnet
        provider = DryRunProvider(fee_percent=Decimal("0"), slippage_bps=0)
        provider.set_price(CurrencyID.ETH, Decimal("1000"))
        request = ExactInRequest(
            chain=chain,
            user_address=USER,
            input_token=eth.token_address,
            output_token=usdc.token_address,
            input_amount=units(eth, "0.001"),
        )

        (quote,) = await provider.get_quotes([request])

        assert provider.get_price(CurrencyID.ETH) == Decimal("1000")
        assert usdc.to_decimal(quote.output_amount_minimum) == Decimal("0.999999")

    @pytest.mark.asyncio
    async def test_unknown_token_and_zero_amount(self, mainnet):
        chain, usdc, eth = mainnet
        provider = DryRunProvider()
        unknown = ExactInRequest(
            chain=chain,
            user_address=USER,
            input_token="0x" + "99" * 20,
            output_token=usdc.token_address,
            input_amount=1,
        )
        zero = ExactInRequest(
            chain=chain,
            user_address=USER,
            input_token=eth.token_address,
            output_token=usdc.token_address,
            input_amount=0,
        )

        assert await provider.get_quotes([unknown, zero]) == [None, None]


class TestFactory:
    """Tests for provider factory functions."""

    def test_dry_run_uses_simulator(self):
        settings = Settings(dry_run=True)

        assert isinstance(create_lifi_provider(settings), DryRunProvider)
        assert create_zeroex_provider(settings) is None
        assert [p.name for p in create_providers(settings)] == ["dry_run"]

    def test_live_providers(self):
        settings = Settings(dry_run=False, zeroex_api_key="k", slippage_bps=30)

        providers = create_providers(settings)

        assert [type(p) for p in providers] == [LiFiProvider, ZeroExProvider]
        assert all(p.slippage_bps == 30 for p in providers)

    def test_zeroex_needs_a_key(self):
        settings = Settings(dry_run=False, zeroex_api_key="")

        assert create_zeroex_provider(settings) is None
        assert [p.name for p in create_providers(settings)] == ["lifi"]

    def test_bebop_with_key(self):
        settings = Settings(dry_run=False, bebop_api_key="b", bebop_api_url="https://bebop.test/router/")

        bebop = create_bebop_provider(settings)

        assert isinstance(bebop, BebopProvider)
        assert bebop.base_url == "https://bebop.test/router"
        assert create_bebop_provider(Settings(dry_run=True, bebop_api_key="b")) is None
        assert [p.name for p in create_providers(settings)] == ["lifi", "bebop"]

    def test_resolver_uses_configured_timeout(self):
        settings = Settings(dry_run=True, provider_timeout_seconds=3.5)

        resolver = create_resolver(settings=settings)

        assert resolver.timeout == 3.5
        assert len(resolver.providers) == 1
