"""Byte and unit conversion helpers."""

from decimal import ROUND_CEILING, Context, Decimal
from typing import Union

# Wide enough for any uint256 amount
UNIT_CONTEXT = Context(prec=80)


def zero_extend(buf: Union[bytes, bytearray], size: int = 32) -> bytes:
    """Left-pad buf with zeroes to size bytes (truncating longer input)."""
    buf = bytes(buf)
    if len(buf) >= size:
        return buf[:size]
    return b"\x00" * (size - len(buf)) + buf


def address_to_bytes32(address: Union[str, bytes]) -> bytes:
    """Accept a hex string or raw bytes and return the 32-byte form."""
    if isinstance(address, str):
        hex_part = address[2:] if address.lower().startswith("0x") else address
        if len(hex_part) % 2:
            hex_part = "0" + hex_part
        return zero_extend(bytes.fromhex(hex_part))
    return zero_extend(address)


def bytes32_to_evm_address(address: bytes) -> str:
    """Checksummed 20-byte EVM address from its 32-byte form."""
    from eth_utils import to_checksum_address

    return to_checksum_address(address_to_bytes32(address)[12:])


def atomic_to_decimal(amount: int, decimals: int) -> Decimal:
    """Convert raw atomic units into a whole-unit Decimal."""
    return Decimal(amount).scaleb(-decimals, context=UNIT_CONTEXT)


def decimal_to_atomic(amount: Decimal, decimals: int, rounding: str = ROUND_CEILING) -> int:
    """Convert a whole-unit Decimal into atomic units, rounding up by default."""
    scaled = amount.scaleb(decimals, context=UNIT_CONTEXT)
    return int(scaled.to_integral_value(rounding=rounding, context=UNIT_CONTEXT))
