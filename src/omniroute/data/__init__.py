"""Chain, currency and fee registries consumed by the planner."""

from omniroute.data.chaindata import RAW_CHAINS, ChainDatum, ChainRegistry, get_default_registry
from omniroute.data.chainid import ChainID, Universe, encode_chain_id36
from omniroute.data.currency import Currency, CurrencyID
from omniroute.data.fees import FeeTable
from omniroute.data.utils import (
    address_to_bytes32,
    atomic_to_decimal,
    decimal_to_atomic,
    zero_extend,
)

__all__ = [
    "RAW_CHAINS",
    "ChainDatum",
    "ChainRegistry",
    "get_default_registry",
    "ChainID",
    "Universe",
    "encode_chain_id36",
    "Currency",
    "CurrencyID",
    "FeeTable",
    "address_to_bytes32",
    "atomic_to_decimal",
    "decimal_to_atomic",
    "zero_extend",
]
