"""Fixed per-token collection fees."""

from decimal import Decimal
from typing import Mapping, Optional, Union

from omniroute.data.chainid import ChainID, Universe
from omniroute.data.utils import address_to_bytes32

FeeKey = tuple[Universe, int, bytes]


class FeeTable:
    """Collection fee (in settlement currency units) per token.

    Tokens absent from the table cost nothing to collect.
    """

    def __init__(self, fees: Optional[Mapping[FeeKey, Decimal]] = None):
        self._fees: dict[FeeKey, Decimal] = {}
        for (universe, chain_id, token), fee in (fees or {}).items():
            self.set(universe, chain_id, token, fee)

    def set(
        self,
        universe: Universe,
        chain_id: int,
        token_address: Union[str, bytes],
        fee: Decimal,
    ) -> None:
        key = (Universe(universe), int(chain_id), address_to_bytes32(token_address))
        self._fees[key] = Decimal(fee)

    def lookup(
        self,
        universe: Universe,
        chain_id: int,
        token_address: Union[str, bytes],
    ) -> Decimal:
        key = (Universe(universe), int(chain_id), address_to_bytes32(token_address))
        return self._fees.get(key, Decimal("0"))

    def fee_for(self, chain: ChainID, token_address: Union[str, bytes]) -> Decimal:
        return self.lookup(chain.universe, chain.chain_id, token_address)

    def __len__(self) -> int:
        return len(self._fees)
