"""Chain identifiers spanning several blockchain universes."""

from dataclasses import dataclass
from enum import IntEnum


class Universe(IntEnum):
    """Blockchain family a chain belongs to."""
    ETHEREUM = 0
    FUEL = 1
    SOLANA = 2
    TRON = 3


def encode_chain_id36(universe: Universe, chain_id: int) -> bytes:
    """Encode as 4-byte big-endian universe followed by a 32-byte chain id."""
    return int(universe).to_bytes(4, "big") + chain_id.to_bytes(32, "big")


@dataclass(frozen=True)
class ChainID:
    """A chain id qualified by its universe."""

    universe: Universe
    chain_id: int

    def __str__(self) -> str:
        return f"{self.universe.name}_{self.chain_id}"

    def to_bytes(self) -> bytes:
        return encode_chain_id36(self.universe, self.chain_id)

    @classmethod
    def from_bytes(cls, data: bytes) -> "ChainID":
        if len(data) != 36:
            raise ValueError(f"Chain id must be 36 bytes, got {len(data)}")
        return cls(
            universe=Universe(int.from_bytes(data[:4], "big")),
            chain_id=int.from_bytes(data[4:], "big"),
        )

    def to_json(self) -> dict:
        return {"universe": self.universe.name, "chainID": hex(self.chain_id)}

    @classmethod
    def from_json(cls, data: dict) -> "ChainID":
        return cls(universe=Universe[data["universe"]], chain_id=int(data["chainID"], 16))
