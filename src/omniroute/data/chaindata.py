"""Read-only registry of chains and the currencies deployed on them."""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

from omniroute.data.chainid import ChainID, Universe
from omniroute.data.currency import Currency, CurrencyID
from omniroute.data.utils import address_to_bytes32
from omniroute.errors import ConfigurationError

logger = logging.getLogger(__name__)


# ======================
# Chain Configurations
# ======================

RAW_CHAINS: list[dict] = [
    # Ethereum mainnet
    {
        "universe": Universe.ETHEREUM,
        "chain_id": 1,
        "currencies": [
            (CurrencyID.USDC, "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48", 6, False),
            (CurrencyID.USDT, "0xdac17f958d2ee523a2206206994597c13d831ec7", 6, False),
            (CurrencyID.ETH, "0x00", 18, True),
        ],
    },
    # Polygon PoS
    {
        "universe": Universe.ETHEREUM,
        "chain_id": 137,
        "currencies": [
            (CurrencyID.USDC, "0x3c499c542cef5e3811e1192ce70d8cc03d5c3359", 6, False),
            (CurrencyID.USDT, "0xc2132d05d31c914a87c6611c10748aeb04b58e8f", 6, False),
            (CurrencyID.POL, "0x00", 18, True),
        ],
    },
    # Arbitrum One
    {
        "universe": Universe.ETHEREUM,
        "chain_id": 42161,
        "currencies": [
            (CurrencyID.USDC, "0xaf88d065e77c8cc2239327c5edb3a432268e5831", 6, False),
            (CurrencyID.USDT, "0xfd086bc7cd5c481dcc9c85ebe478a1c0b69fcbb9", 6, False),
            (CurrencyID.ETH, "0x00", 18, True),
        ],
    },
    # Optimism
    {
        "universe": Universe.ETHEREUM,
        "chain_id": 10,
        "currencies": [
            (CurrencyID.USDC, "0x0b2c639c533813f4aa9d7837caf62653d097ff85", 6, False),
            (CurrencyID.USDT, "0x94b008aa00579c1307b0ef2c499ad98a8ce58e58", 6, False),
            (CurrencyID.ETH, "0x00", 18, True),
        ],
    },
    # Fuel Ignition
    {
        "universe": Universe.FUEL,
        "chain_id": 9889,
        "currencies": [
            (CurrencyID.USDC, "0x286c479da40dc953bddc3bb4c453b608bba2e0ac483b077bd475174115395e6b", 6, False),
            (CurrencyID.USDT, "0xa0265fb5c32f6e8db3197af3c7eb05c48ae373605b8165b6f4a51c5b0ba4812e", 6, False),
            (CurrencyID.ETH, "0xf8f8b6283d7fa5b672b530cbb84fcccb4ff8dc40f8176ef4544ddb1f1952ad07", 9, True),
        ],
    },
]


@dataclass
class ChainDatum:
    """Registry entry for one chain."""

    chain_id: ChainID
    currencies: list[Currency] = field(default_factory=list)

    @property
    def universe(self) -> Universe:
        return self.chain_id.universe

    def currency_by_address(self, token_address: Union[str, bytes]) -> Optional[Currency]:
        """Find a currency by its (any-width) token address."""
        key = address_to_bytes32(token_address)
        for currency in self.currencies:
            if currency.token_address == key:
                return currency
        return None

    def currency_by_id(self, currency_id: CurrencyID) -> Optional[Currency]:
        """Find a currency by its id."""
        for currency in self.currencies:
            if currency.currency_id == currency_id:
                return currency
        return None


class ChainRegistry:
    """Lookup of chain data keyed by ChainID."""

    def __init__(self, chains: Iterable[ChainDatum] = ()):
        self._chains: dict[ChainID, ChainDatum] = {}
        for datum in chains:
            self.add(datum)

    def add(self, datum: ChainDatum) -> None:
        """Register (or replace) a chain."""
        self._chains[datum.chain_id] = datum

    def __contains__(self, chain_id: ChainID) -> bool:
        return chain_id in self._chains

    def __iter__(self):
        return iter(self._chains.values())

    def lookup(self, chain_id: ChainID) -> ChainDatum:
        """Get chain data, raising ConfigurationError if the chain is unknown."""
        datum = self._chains.get(chain_id)
        if datum is None:
            raise ConfigurationError(f"Chain {chain_id} is not in the registry")
        return datum

    def currency(self, chain_id: ChainID, token_address: Union[str, bytes]) -> Currency:
        """Get the currency for a token on a chain."""
        currency = self.lookup(chain_id).currency_by_address(token_address)
        if currency is None:
            token_hex = address_to_bytes32(token_address).hex()
            raise ConfigurationError(f"Token 0x{token_hex} is not registered on {chain_id}")
        return currency

    def currency_for_id(self, chain_id: ChainID, currency_id: CurrencyID) -> Currency:
        """Get a specific currency's deployment on a chain."""
        currency = self.lookup(chain_id).currency_by_id(currency_id)
        if currency is None:
            raise ConfigurationError(f"{currency_id.name} is not deployed on {chain_id}")
        return currency

    @classmethod
    def from_raw(cls, raw: Iterable[dict]) -> "ChainRegistry":
        """Build a registry from RAW_CHAINS-shaped dicts."""
        registry = cls()
        for entry in raw:
            chain_id = ChainID(Universe(entry["universe"]), int(entry["chain_id"]))
            currencies = [
                Currency(
                    currency_id=CurrencyID(currency_id),
                    token_address=address,
                    decimals=decimals,
                    is_gas_token=is_gas,
                )
                for currency_id, address, decimals, is_gas in entry["currencies"]
            ]
            registry.add(ChainDatum(chain_id=chain_id, currencies=currencies))
        logger.debug(f"Loaded chain registry with {len(registry._chains)} chains")
        return registry


_default_registry: Optional[ChainRegistry] = None


def get_default_registry() -> ChainRegistry:
    """Get the registry built from RAW_CHAINS."""
    global _default_registry
    if _default_registry is None:
        _default_registry = ChainRegistry.from_raw(RAW_CHAINS)
    return _default_registry
