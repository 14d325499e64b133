"""Fungible asset metadata."""

from dataclasses import dataclass, field
from decimal import ROUND_CEILING, Decimal
from enum import IntEnum
from typing import Union

from omniroute.data.utils import address_to_bytes32, atomic_to_decimal, decimal_to_atomic


class CurrencyID(IntEnum):
    """Currencies known to the registry."""
    USDC = 0x1
    USDT = 0x2
    ETH = 0x3
    POL = 0x4
    AVAX = 0x5
    BNB = 0x6
    HYPE = 0x10
    KAIA = 0x11
    SOPH = 0x12
    TRX = 0x13
    VLDM = 0x40
    MON = 0x41

    @classmethod
    def parse(cls, value: Union[str, int, "CurrencyID"]) -> "CurrencyID":
        """Accept a symbol ("usdc"), a numeric id or a CurrencyID."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and not value.isdigit():
            return cls[value.upper()]
        return cls(int(value))


@dataclass(frozen=True)
class Currency:
    """A currency deployed on one chain.

    token_address is always the 32-byte zero-extended form, whatever the
    chain's native address width.
    """

    currency_id: CurrencyID
    token_address: bytes
    decimals: int
    is_gas_token: bool = False
    symbol: str = field(default="", compare=False)

    def __post_init__(self):
        object.__setattr__(self, "token_address", address_to_bytes32(self.token_address))
        if not self.symbol:
            object.__setattr__(self, "symbol", self.currency_id.name)

    def to_decimal(self, atomic: int) -> Decimal:
        """Convert atomic units of this currency into whole units."""
        return atomic_to_decimal(atomic, self.decimals)

    def to_atomic(self, amount: Decimal, rounding: str = ROUND_CEILING) -> int:
        """Convert whole units into atomic units (rounded up by default)."""
        return decimal_to_atomic(amount, self.decimals, rounding)
