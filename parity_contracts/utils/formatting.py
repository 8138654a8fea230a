"""Formatters turning Python values into their JSON-RPC wire form.

Every formatter is pure and raises InvalidInput before anything is sent.
"""
import string
from typing import Any, Callable, Dict, Mapping, Union

from eth_typing import HexStr
from eth_utils import is_address, to_hex, to_normalized_address

_HEX_DIGITS = frozenset(string.hexdigits)

BLOCK_TAGS = ("latest", "earliest", "pending")


class InvalidInput(ValueError):
    """An argument cannot be brought into its wire format."""


def in_hex(value: Union[bytes, bytearray, str]) -> HexStr:
    """Canonical hex: lowercase, `0x` prefixed, whole bytes.

    Canonical input is returned unchanged.
    """
    if isinstance(value, (bytes, bytearray)):
        return HexStr("0x" + bytes(value).hex())
    if not isinstance(value, str):
        raise InvalidInput(f"Expected bytes or a hex string, got {type(value).__name__}")

    digits = value[2:] if value[:2] in ("0x", "0X") else value
    if not _HEX_DIGITS.issuperset(digits):
        raise InvalidInput(f"{value!r} is not a hex string")
    if len(digits) % 2:
        raise InvalidInput(f"{value!r} has an odd number of hex digits")
    return HexStr("0x" + digits.lower())


def in_address(value: Union[bytes, str]) -> HexStr:
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 20:
            raise InvalidInput(f"Binary address must be 20 bytes long, got {len(value)}")
        return HexStr("0x" + bytes(value).hex())
    if not isinstance(value, str) or not is_address(value):
        raise InvalidInput(f"{value!r} is not a valid address")
    return HexStr(to_normalized_address(value))


def in_number(value: Union[int, str]) -> HexStr:
    """Hex quantity without leading zeros, as used for gas, value and block numbers."""
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise InvalidInput(f"Expected an integer, got {value!r}")
    if isinstance(value, str):
        try:
            value = int(value, 16) if value[:2] in ("0x", "0X") else int(value)
        except ValueError as ex:
            raise InvalidInput(f"{value!r} is not a number") from ex
    if value < 0:
        raise InvalidInput(f"Quantities cannot be negative, got {value}")
    return HexStr(to_hex(value))


def in_block(value: Union[int, str]) -> str:
    if value in BLOCK_TAGS:
        return str(value)
    return in_number(value)


TRANSACTION_FORMATTERS: Dict[str, Callable[[Any], Any]] = {
    "from": in_address,
    "to": in_address,
    "data": in_hex,
    "gas": in_number,
    "gasPrice": in_number,
    "value": in_number,
    "nonce": in_number,
}


def in_transaction(transaction: Mapping[str, Any]) -> Dict[str, Any]:
    if not isinstance(transaction, Mapping):
        raise InvalidInput(f"Expected a transaction dictionary, got {transaction!r}")
    unknown = set(transaction) - set(TRANSACTION_FORMATTERS)
    if unknown:
        raise InvalidInput(f"Unknown transaction fields: {', '.join(sorted(unknown))}")
    return {
        key: TRANSACTION_FORMATTERS[key](value)
        for key, value in transaction.items()
        if value is not None
    }
